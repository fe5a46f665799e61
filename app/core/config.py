from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_PROJECT_NAME = "Indicator Platform Auth API"
DEFAULT_API_V1_PREFIX = "/api/v1"
DEFAULT_ACCESS_TOKEN_SECRET = 'change-me-access'
DEFAULT_REFRESH_TOKEN_SECRET = 'change-me-refresh'


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file='.env', extra='ignore')

    PROJECT_NAME: str = DEFAULT_PROJECT_NAME
    API_V1_PREFIX: str = DEFAULT_API_V1_PREFIX
    ENV: str = 'development'
    DEBUG: bool = False

    DATABASE_URL: str = 'sqlite:///./indicator_auth.db'
    LOG_LEVEL: str = 'INFO'
    LOG_JSON: bool = False
    CORS_ORIGINS: list[str] = ['*']

    ACCESS_TOKEN_SECRET: str = DEFAULT_ACCESS_TOKEN_SECRET
    REFRESH_TOKEN_SECRET: str = DEFAULT_REFRESH_TOKEN_SECRET
    ALGORITHM: str = 'HS256'
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 15
    REFRESH_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7
    AUTO_CREATE_TABLES: bool = False

    LOGIN_RATE_LIMIT_ATTEMPTS: int = 5
    LOGIN_RATE_LIMIT_WINDOW_SECONDS: float = 60.0
    LOGIN_RATE_LIMIT_MAX_KEYS: int = 10000

    REFRESH_COOKIE_NAME: str = 'refresh_token'
    REFRESH_COOKIE_SECURE: bool = True
    REFRESH_COOKIE_SAMESITE: str = 'strict'

    @field_validator('CORS_ORIGINS', mode='before')
    @classmethod
    def parse_cors_origins(cls, value):  # type: ignore[override]
        if isinstance(value, str):
            value = value.strip()
            if not value:
                return []
            if value == '*':
                return ['*']
            return [item.strip() for item in value.split(',') if item.strip()]
        return value

    @field_validator('LOGIN_RATE_LIMIT_ATTEMPTS', 'LOGIN_RATE_LIMIT_MAX_KEYS')
    @classmethod
    def positive_int(cls, value: int) -> int:
        if value <= 0:
            raise ValueError('must be positive')
        return value

    @model_validator(mode='after')
    def check_secrets(self) -> 'Settings':
        if self.ACCESS_TOKEN_SECRET == self.REFRESH_TOKEN_SECRET:
            raise ValueError('ACCESS_TOKEN_SECRET and REFRESH_TOKEN_SECRET must differ')
        if self.ENV == 'production' and (
            self.ACCESS_TOKEN_SECRET == DEFAULT_ACCESS_TOKEN_SECRET
            or self.REFRESH_TOKEN_SECRET == DEFAULT_REFRESH_TOKEN_SECRET
        ):
            raise ValueError('token secrets must be configured in production')
        return self

    @property
    def refresh_cookie_path(self) -> str:
        return f"{self.API_V1_PREFIX}/auth"


settings = Settings()
