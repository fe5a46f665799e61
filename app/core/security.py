"""Password hashing and password policy used by the credential store."""
import re

from passlib.context import CryptContext

pwd_context = CryptContext(schemes=['bcrypt'], deprecated='auto')

_PASSWORD_RE = re.compile(r'(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&])[A-Za-z\d@$!%*?&]{8,}')


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, hashed_password: str) -> bool:
    return pwd_context.verify(password, hashed_password)


def dummy_verify() -> None:
    """Burn the same time as a real verification when no user matched."""
    pwd_context.dummy_verify()


def is_valid_password(password: str) -> bool:
    return bool(_PASSWORD_RE.fullmatch(password))
