from __future__ import annotations

from sqlalchemy.orm import Session

from ventory_imports.core.logging import logger
from ventory_imports.crud.catalog import category_id_by_name, insert_product, product_id_by_sku, set_product_stock
from ventory_imports.crud.users import assign_role, insert_profile
from ventory_imports.services.imports.commands import CreateProduct, CreateUser, RowCommand, SetProductStock
from ventory_imports.services.imports.identity import IdentityProvider


class CatalogLookup:
    """Lookup context backed by the runner's session, so rows see earlier rows of the same run."""

    def __init__(self, db: Session):
        self.db = db

    def category_id_by_name(self, name: str) -> str | None:
        return category_id_by_name(self.db, name)

    def product_id_by_sku(self, sku: str) -> str | None:
        return product_id_by_sku(self.db, sku)


class CommandExecutor:
    """Runs row commands against the collaborator stores; returns the entity id or raises."""

    def __init__(self, db: Session, identity: IdentityProvider, rollback_identity: bool = False):
        self.db = db
        self.identity = identity
        self.rollback_identity = rollback_identity

    def execute(self, command: RowCommand) -> str:
        if isinstance(command, CreateProduct):
            return self._create_product(command)
        if isinstance(command, SetProductStock):
            set_product_stock(self.db, command.product_id, command.stock)
            self.db.flush()
            return command.product_id
        if isinstance(command, CreateUser):
            return self._create_user(command)
        raise TypeError(f"Unsupported row command: {type(command).__name__}")

    def _create_product(self, c: CreateProduct) -> str:
        p = insert_product(
            self.db,
            name=c.name,
            sku=c.sku,
            price=c.price,
            cost_price=c.cost_price,
            stock=c.stock,
            unit=c.unit,
            category_id=c.category_id,
            description=c.description,
            barcode=c.barcode,
            alert_stock=c.alert_stock,
            weight_unit=c.weight_unit,
            is_active=c.is_active,
        )
        return p.id

    def _create_user(self, c: CreateUser) -> str:
        uid = self.identity.create_identity(
            c.email,
            c.password,
            email_confirmed=True,
            metadata={"full_name": c.full_name},
        )
        try:
            insert_profile(self.db, uid, c.full_name, c.email)
            assign_role(self.db, uid, c.role)
        except Exception:
            self.db.rollback()
            if self.rollback_identity:
                self._compensate(uid)
            else:
                logger.warning("import_identity_orphaned", user_id=uid, email=c.email)
            raise
        return uid

    def _compensate(self, uid: str) -> None:
        try:
            self.identity.delete_identity(uid)
            logger.info("import_identity_rolled_back", user_id=uid)
        except Exception as e:
            logger.error("import_identity_rollback_failed", user_id=uid, error=str(e))
