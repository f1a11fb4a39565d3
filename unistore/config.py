# unistore/config.py
"""
Configuration management using Pydantic Settings.
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")
    LOG_LEVEL: str = "INFO"
    # Storage instance
    STORAGE_NAME: str = "default"
    STORAGE_PROVIDER: str = "filesystem"
    # Filesystem backend
    STORAGE_BASE_PATH: str = "./storage"
    STORAGE_CREATE_DIRS: bool = True
    STORAGE_PERMISSIONS: Optional[str] = None  # octal, e.g. "0644"
    # Object store backend (not yet implemented)
    OBJECTSTORE_REGION: Optional[str] = None
    OBJECTSTORE_ENDPOINT: Optional[str] = None
    OBJECTSTORE_BUCKET: Optional[str] = None
    OBJECTSTORE_ACCESS_KEY: Optional[str] = None
    OBJECTSTORE_SECRET_KEY: Optional[str] = None
    OBJECTSTORE_SESSION_TOKEN: Optional[str] = None
    OBJECTSTORE_USE_TLS: bool = True
    OBJECTSTORE_FORCE_PATH_STYLE: bool = False
    OBJECTSTORE_MAX_RETRIES: int = 3
    # Signed URLs
    SIGNED_URL_ENABLED: bool = False
    SIGNED_URL_EXPIRES_IN_SECONDS: int = 1800
    SIGNED_URL_SECRET_KEY: Optional[str] = None  # do NOT hardcode in code
    # HTTP adapter
    UPLOAD_DESTINATION_DIR: str = "/uploads"

    def to_storage_config(self):
        """Build a validated StorageConfig from these settings."""
        # Imported here: the logger imports this module at startup
        from unistore.file_access.config import load_storage_config

        provider = self.STORAGE_PROVIDER.lower().strip()
        data = {
            "name": self.STORAGE_NAME,
            "provider": provider,
            "signed_url": {
                "enabled": self.SIGNED_URL_ENABLED,
                "expires_in": self.SIGNED_URL_EXPIRES_IN_SECONDS,
                "secret_key": self.SIGNED_URL_SECRET_KEY or "",
            },
        }
        if provider == "filesystem":
            data["filesystem"] = {
                "base_path": self.STORAGE_BASE_PATH,
                "create_dirs": self.STORAGE_CREATE_DIRS,
                "permissions": self.STORAGE_PERMISSIONS,
            }
        elif provider in ("objectstore", "s3"):
            data["objectstore"] = {
                "region": self.OBJECTSTORE_REGION or "",
                "endpoint": self.OBJECTSTORE_ENDPOINT,
                "bucket": self.OBJECTSTORE_BUCKET or "",
                "access_key": self.OBJECTSTORE_ACCESS_KEY or "",
                "secret_key": self.OBJECTSTORE_SECRET_KEY or "",
                "session_token": self.OBJECTSTORE_SESSION_TOKEN,
                "use_tls": self.OBJECTSTORE_USE_TLS,
                "force_path_style": self.OBJECTSTORE_FORCE_PATH_STYLE,
                "max_retries": self.OBJECTSTORE_MAX_RETRIES,
            }
        return load_storage_config(data)

settings = Settings()
