# unistore/api/dependencies.py
"""
FastAPI dependencies for the storage routes.
"""
from functools import lru_cache

from unistore.file_access.storage import Storage


@lru_cache(maxsize=1)
def get_storage() -> Storage:
    """Storage facade built once from environment settings."""
    return Storage.from_settings()
