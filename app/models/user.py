from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel
from app.models.base import IDModel, TimestampModel
from app.models.enums import UserRole


class User(IDModel, TimestampModel, SQLModel, table=True):
    __tablename__ = 'users'

    username: str = Field(index=True, unique=True)
    email: str = Field(index=True, unique=True)
    hashed_password: str
    is_active: bool = True
    roles: list[str] = Field(
        default_factory=lambda: [UserRole.USER.value],
        sa_column=Column(JSON, nullable=False),
    )
