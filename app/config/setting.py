from pydantic_settings import BaseSettings
import os

from dotenv import load_dotenv

load_dotenv()

class Settings(BaseSettings):
    PROJECT_NAME: str = "MoonDev Review Portal"
    PROJECT_VERSION: str = "0.1.0"
    PROJECT_DESCRIPTION: str = "Developer applications and evaluator reviews"

    DATABASE_URL: str = os.getenv("DATABASE_URL", "postgresql://user:password@db:5432/mydatabase")
    DATABASE_ECHO: bool = False

    SUPABASE_URL: str = os.getenv("SUPABASE_URL", "")
    SUPABASE_KEY: str = os.getenv("SUPABASE_KEY", "")
    AVATAR_BUCKET: str = "avatars"
    SOURCE_CODE_BUCKET: str = "source-code"

    # "memory" keeps live updates inside one process, "redis" fans them out
    CHANGE_FEED_BACKEND: str = os.getenv("CHANGE_FEED_BACKEND", "memory")
    REDIS_URL: str = os.getenv("REDIS_URL", "redis://redis:6379/0")

    # "function", "sendgrid" or "none"
    MAIL_BACKEND: str = os.getenv("MAIL_BACKEND", "function")
    MAIL_FUNCTION_URL: str = os.getenv("MAIL_FUNCTION_URL", "")
    MAIL_FUNCTION_TOKEN: str = os.getenv("MAIL_FUNCTION_TOKEN", "")
    SENDGRID_API_KEY: str = os.getenv("SENDGRID_API_KEY", "YOUR_SENDGRID_API_KEY_HERE")
    MAIL_FROM_EMAIL: str = os.getenv("MAIL_FROM_EMAIL", "team@moondev.io")

    ACCESS_TOKEN_TTL: int = 24*60*60  # seconds
    ACCESS_TOKEN_COOKIE: str = "access_token"

    IMAGE_MAX_BYTES: int = 1024*1024
    IMAGE_MAX_DIMENSION: int = 1080

    ALLOWED_ORIGINS: list[str] = ["*"]

settings = Settings()
