from sqlalchemy.orm import Session
from ventory_imports.db.session import SessionLocal
from ventory_imports.core.config import settings
from ventory_imports.core.logging import logger
from ventory_imports.crud.users import get_user_by_email, create_identity, insert_profile, assign_role
from ventory_imports.crud.catalog import list_categories, create_category
from ventory_imports.db.models.user import Role

DEFAULT_CATEGORIES = ("Bebidas", "Snacks", "Abarrotes", "Limpieza")

def seed_demo(session_factory=SessionLocal):
    db: Session = session_factory()
    try:
        if settings.DEMO_ADMIN_EMAIL and settings.DEMO_ADMIN_PASSWORD:
            u = get_user_by_email(db, settings.DEMO_ADMIN_EMAIL)
            if not u:
                u = create_identity(
                    db,
                    settings.DEMO_ADMIN_EMAIL,
                    settings.DEMO_ADMIN_PASSWORD,
                    metadata={"full_name": "Demo Admin"},
                )
                insert_profile(db, u.id, "Demo Admin", u.email)
                assign_role(db, u.id, Role.admin.value)
                db.commit()
                logger.info("seed_admin_created", email=u.email)
        # categories the demo sheets refer to
        if not list_categories(db):
            for name in DEFAULT_CATEGORIES:
                create_category(db, name)
    finally:
        db.close()
