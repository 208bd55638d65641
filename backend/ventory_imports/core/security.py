import secrets
import string
from datetime import datetime, timedelta, timezone
from jose import jwt
from passlib.context import CryptContext
from ventory_imports.core.config import settings

pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")

_PASSWORD_ALPHABET = string.ascii_letters + string.digits

def hash_password(password: str) -> str:
    return pwd_context.hash(password)

def verify_password(password: str, password_hash: str) -> bool:
    return pwd_context.verify(password, password_hash)

def generate_password(length: int = 16) -> str:
    # always mixes upper, lower, digit and symbol
    body = [secrets.choice(_PASSWORD_ALPHABET) for _ in range(length - 4)]
    body += [
        secrets.choice(string.ascii_uppercase),
        secrets.choice(string.ascii_lowercase),
        secrets.choice(string.digits),
        secrets.choice("!#$%&*+-=?@"),
    ]
    secrets.SystemRandom().shuffle(body)
    return "".join(body)

def create_access_token(sub: str, role: str) -> str:
    now = datetime.now(timezone.utc)
    exp = now + timedelta(minutes=settings.JWT_EXPIRES_MIN)
    payload = {"sub": sub, "role": role, "iat": int(now.timestamp()), "exp": int(exp.timestamp())}
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALG)

def decode_token(token: str) -> dict:
    return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALG])
