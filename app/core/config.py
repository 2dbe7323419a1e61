from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    database_url: str = Field(..., alias="DATABASE_URL")

    jwt_secret_key: str = Field(..., alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field("HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(60, alias="ACCESS_TOKEN_EXPIRE_MINUTES")

    # Default for the persisted demo_mode system setting when no row exists yet.
    demo_mode: bool = Field(False, alias="DEMO_MODE")
    # Default for the persisted assignment_mode setting: "app" or "upstream" (read-only).
    assignment_mode: str = Field("app", alias="ASSIGNMENT_MODE")
    # Unset means caseload is not enforced.
    max_mentor_caseload: Optional[int] = Field(None, alias="MAX_MENTOR_CASELOAD")

    log_level: str = Field("INFO", alias="LOG_LEVEL")

    # First super admin, created by app.db.seed_super_admin when both are set.
    super_admin_email: Optional[str] = Field(None, alias="SUPER_ADMIN_EMAIL")
    super_admin_password: Optional[str] = Field(None, alias="SUPER_ADMIN_PASSWORD")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()
