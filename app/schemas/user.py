from pydantic import BaseModel, EmailStr


class UserOut(BaseModel):
    id: str
    username: str
    email: EmailStr
    is_active: bool
    roles: list[str]
