from pydantic_settings import BaseSettings
from pydantic import field_validator
from typing import List, Optional

class Settings(BaseSettings):
    APP_NAME: str = "A10 Realty API"
    DEBUG: bool = False

    DATABASE_URL: str = "sqlite+aiosqlite:///./a10.db"
    DATABASE_ECHO: bool = False

    CORS_ORIGINS: str = "*"

    # Upload store - "local" serves files from UPLOADS_DIR, "s3" writes to a bucket
    UPLOAD_BACKEND: str = "local"
    UPLOADS_DIR: str = "uploads"
    UPLOADS_URL_PREFIX: str = "/uploads"
    TMP_DIR: str = "tmp"
    MAX_UPLOAD_BYTES: int = 10 * 1024 * 1024

    # S3/MinIO settings - defaults for local development
    S3_ENDPOINT: str = "localhost:9000"
    S3_ACCESS_KEY: str = "minioadmin"
    S3_SECRET_KEY: str = "minioadminpassword"
    S3_BUCKET: str = "uploads"
    S3_USE_SSL: bool = False
    S3_REGION: str = "us-east-1"
    S3_PUBLIC_BASE_URL: Optional[str] = None

    # External identity service (account lookup by ID token)
    IDENTITY_PROVIDER_URL: str = "https://identitytoolkit.googleapis.com/v1"
    IDENTITY_API_KEY: Optional[str] = None
    IDENTITY_TIMEOUT_SECONDS: float = 10.0
    IDENTITY_CACHE_TTL_SECONDS: int = 300

    # Development mode: requests without a bearer token act as the mock principal
    SKIP_HEADER_CHECK: bool = False
    MOCK_USER_UID: str = "dev-user"
    MOCK_USER_PHONE: str = "+910000000000"
    MOCK_USER_NAME: str = "Developer"

    BOOTSTRAP_ADMIN_PHONES: str = ""

    IMPORT_FETCH_TIMEOUT_SECONDS: float = 20.0
    PROJECTS_PAGE_SIZE: int = 24
    MAX_PAGE_SIZE: int = 200
    TESTIMONIALS_PAGE_SIZE: int = 50

    @field_validator('DEBUG', 'DATABASE_ECHO', 'S3_USE_SSL', 'SKIP_HEADER_CHECK', mode='before')
    @classmethod
    def parse_bool_with_strip(cls, v):
        if isinstance(v, str):
            v = v.strip()
        return v

    class Config:
        # Check for .env in current directory first, then parent directory
        env_file = [".env", "../.env"]
        env_file_encoding = 'utf-8'
        extra = "allow"

    @property
    def cors_origins(self) -> List[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def bootstrap_admin_phones(self) -> List[str]:
        return [p.strip() for p in self.BOOTSTRAP_ADMIN_PHONES.split(",") if p.strip()]

    @property
    def s3_endpoint_url(self) -> str:
        endpoint_url = self.S3_ENDPOINT
        if not endpoint_url.startswith("http://") and not endpoint_url.startswith("https://"):
            scheme = "https" if self.S3_USE_SSL else "http"
            endpoint_url = f"{scheme}://{endpoint_url}"
        return endpoint_url


settings = Settings()
