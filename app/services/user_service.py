from typing import Optional
from sqlmodel import Session, select

from app.core.security import hash_password
from app.models.enums import UserRole
from app.models.user import User
from app.schemas.user import UserOut


def normalize_username(username: str) -> str:
    return username.strip().lower()


def normalize_email(email: str) -> str:
    return email.strip().lower()


def to_user_out(user: User) -> UserOut:
    return UserOut(
        id=user.id,
        username=user.username,
        email=user.email,
        is_active=user.is_active,
        roles=list(user.roles),
    )


def get_user(session: Session, user_id: str) -> Optional[User]:
    return session.get(User, user_id)


def get_user_by_username(session: Session, username: str) -> Optional[User]:
    return session.exec(select(User).where(User.username == normalize_username(username))).first()


def get_user_by_email(session: Session, email: str) -> Optional[User]:
    return session.exec(select(User).where(User.email == normalize_email(email))).first()


def get_user_by_identifier(session: Session, identifier: str) -> Optional[User]:
    if '@' in identifier:
        user = get_user_by_email(session, identifier)
        if user:
            return user
    return get_user_by_username(session, identifier)


def create_user(
    session: Session,
    username: str,
    email: str,
    password: str,
    roles: Optional[list[str]] = None,
) -> User:
    user = User(
        username=normalize_username(username),
        email=normalize_email(email),
        hashed_password=hash_password(password),
        roles=roles or [UserRole.USER.value],
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


def ensure_superadmin(session: Session, username: str, email: str, password: str) -> tuple[User, bool]:
    """Return the existing superadmin, or create one. The flag tells whether it was created."""
    # roles is a JSON column, so the match happens in Python; rows are fetched lazily.
    for user in session.exec(select(User).order_by(User.created_at)):
        if UserRole.SUPERADMIN.value in user.roles:
            return user, False
    user = create_user(
        session,
        username,
        email,
        password,
        roles=[UserRole.SUPERADMIN.value, UserRole.ADMIN.value, UserRole.USER.value],
    )
    return user, True
