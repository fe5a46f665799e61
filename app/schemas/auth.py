from typing import Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


class RegisterRequest(BaseModel):
    model_config = ConfigDict(extra='forbid')

    username: str = Field(..., min_length=1, max_length=64)
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128, json_schema_extra={'format': 'password'})

    @field_validator('username')
    @classmethod
    def strip_username(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError('username must not be blank')
        return value


class LoginRequest(BaseModel):
    model_config = ConfigDict(extra='forbid')

    identifier: str = Field(..., min_length=1, max_length=254)
    password: str = Field(..., min_length=1, max_length=128)


class RefreshRequest(BaseModel):
    model_config = ConfigDict(extra='forbid')

    refresh_token: Optional[str] = None


class LogoutRequest(BaseModel):
    model_config = ConfigDict(extra='forbid')

    refresh_token: Optional[str] = None


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = 'bearer'
    expires_in: int


class StatusResponse(BaseModel):
    status: str = 'ok'


class LogoutAllResponse(StatusResponse):
    revoked: int


class SessionOut(BaseModel):
    id: str
    client_context: str
    issued_at: datetime
    expires_at: datetime
