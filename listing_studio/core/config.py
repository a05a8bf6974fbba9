"""
Configuration settings for the Listing Studio backend
"""
from typing import List, Optional
from pydantic_settings import BaseSettings
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class Settings(BaseSettings):
    # API Configuration
    API_V1_STR: str = "/api/v1"
    PROJECT_NAME: str = "Listing Studio Backend"

    # Database Configuration
    DATABASE_URL: str = "sqlite:///./listing_studio.db"

    # CORS Configuration
    BACKEND_CORS_ORIGINS: str = "http://localhost:3000,http://localhost:8000"

    @property
    def CORS_ORIGINS(self) -> List[str]:
        return [origin.strip() for origin in self.BACKEND_CORS_ORIGINS.split(",") if origin.strip()]

    # File Storage Configuration
    STORAGE_BACKEND: str = "local"  # "local" or "s3"
    UPLOAD_DIR: str = "./uploads"
    PUBLIC_BASE_URL: str = "http://localhost:8000"
    AWS_REGION: str = "eu-north-1"
    AWS_S3_BUCKET_NAME: Optional[str] = None

    # Generator Configuration
    GENERATOR_PROVIDER: str = "gemini"
    GEMINI_API_KEY: Optional[str] = None
    GEMINI_IMAGE_MODEL: str = "gemini-2.5-flash-image"
    GEMINI_VIDEO_MODEL: str = "veo-3.1-generate-preview"
    GENERATOR_TIMEOUT_SECONDS: float = 120.0

    # Marketplace (Amazon Selling Partner API) Configuration
    AMAZON_REFRESH_TOKEN: Optional[str] = None
    AMAZON_CLIENT_ID: Optional[str] = None
    AMAZON_CLIENT_SECRET: Optional[str] = None
    AMAZON_SELLER_ID: Optional[str] = None
    AMAZON_MARKETPLACE_ID: str = "ATVPDKIKX0DER"
    AMAZON_ENDPOINT: str = "https://sellingpartnerapi-na.amazon.com"
    AMAZON_TOKEN_URL: str = "https://api.amazon.com/auth/o2/token"
    MARKETPLACE_TIMEOUT_SECONDS: float = 30.0

    # Publishing
    MAX_PUSH_BATCH_SIZE: int = 9
    PUSH_RECONCILE_AFTER_MINUTES: int = 30

    # Celery Configuration
    CELERY_BROKER_URL: str = "pyamqp://guest@localhost//"
    CELERY_RESULT_BACKEND: str = "redis://localhost:6379"

    class Config:
        case_sensitive = True
        env_file = ".env"


settings = Settings()
