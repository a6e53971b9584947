import os
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore", frozen=True
    )

    DATABASE_URL: str = "sqlite:///./storefront.db"
    DEFAULT_CURRENCY: str = "INR"
    UPLOADS_ROOT: str = "uploads"
    FRONTEND_ORIGINS: List[str] = ["http://localhost:5173"]
    ADMIN_EMAIL: str = "admin@example.com"
    ADMIN_PASSWORD: str = "admin123"
    BCRYPT_ROUNDS: int = 12
    LOG_LEVEL: str = "INFO"

    @property
    def uploads_root(self) -> str:
        return os.path.abspath(self.UPLOADS_ROOT)

    @property
    def invoices_dir(self) -> str:
        return os.path.join(self.uploads_root, "invoices")

    @property
    def product_images_dir(self) -> str:
        return os.path.join(self.uploads_root, "products")

    def resolve_upload_path(self, relative_path: str) -> str:
        """Absolute path of a file stored relative to the uploads root."""
        return os.path.join(self.uploads_root, relative_path)


settings = Settings()
