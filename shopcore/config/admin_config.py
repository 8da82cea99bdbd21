from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    ENV: str = "dev"                # "dev" / "staging" / "prod"
    ENABLE_ADMIN: bool = True       # mounts /api/v1/admin routes
    SERVICE_NAME: str = "shopcore"

    class Config:
        env_file = ".env"
        extra="ignore"

admin_config = Settings()
