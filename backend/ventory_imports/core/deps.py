from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from ventory_imports.db.session import SessionLocal
from ventory_imports.core.security import decode_token
from ventory_imports.db.models.user import User, Role
from ventory_imports.crud.users import get_user
from ventory_imports.services.imports.control import Dispatcher, enqueue_run
from ventory_imports.services.imports.errors import Forbidden
from ventory_imports.services.imports.notifier import ProgressNotifier, get_notifier

# tokens are issued by the POS auth service; this API only verifies them
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def get_current_user(db: Session = Depends(get_db), token: str = Depends(oauth2_scheme)) -> User:
    try:
        payload = decode_token(token)
        user_id = payload.get("sub")
    except Exception:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    user = get_user(db, user_id) if user_id else None
    if not user or not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found/disabled")
    return user

def require_roles(*roles: Role):
    allowed = {r.value for r in roles}
    def _dep(user: User = Depends(get_current_user)) -> User:
        if not allowed.intersection(user.role_names):
            raise Forbidden("Forbidden")
        return user
    return _dep

def get_progress_notifier() -> ProgressNotifier:
    return get_notifier()

def get_dispatcher() -> Dispatcher:
    return enqueue_run
