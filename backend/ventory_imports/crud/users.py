import datetime as dt
from sqlalchemy.orm import Session
from ventory_imports.db.models.user import User, UserRole
from ventory_imports.db.models.profile import Profile
from ventory_imports.core.security import hash_password

def get_user(db: Session, user_id: str) -> User | None:
    return db.get(User, user_id)

def get_user_by_email(db: Session, email: str) -> User | None:
    return db.query(User).filter(User.email == email).one_or_none()

def create_identity(db: Session, email: str, password: str, email_confirmed: bool = True, metadata: dict | None = None) -> User:
    u = User(
        email=email,
        password_hash=hash_password(password),
        email_confirmed_at=dt.datetime.now(dt.timezone.utc) if email_confirmed else None,
        user_metadata=metadata or {},
        is_active=True,
    )
    db.add(u)
    db.commit()
    db.refresh(u)
    return u

def delete_identity(db: Session, user_id: str) -> None:
    db.query(User).filter(User.id == user_id).delete(synchronize_session=False)
    db.commit()

def insert_profile(db: Session, user_id: str, full_name: str, email: str) -> Profile:
    p = Profile(user_id=user_id, full_name=full_name, email=email, is_active=True)
    db.add(p)
    db.flush()
    return p

def assign_role(db: Session, user_id: str, role: str, assigned_by: str | None = None) -> UserRole:
    r = UserRole(user_id=user_id, role=role, assigned_by=assigned_by)
    db.add(r)
    db.flush()
    return r
