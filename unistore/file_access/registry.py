# unistore/file_access/registry.py
"""
Backend registry.

Selects the concrete backend class for a validated StorageConfig. The
variant is chosen once, when a Storage facade is built.
"""
from typing import Any, Dict, List, Mapping, Union

from unistore.file_access.base import StorageBackend
from unistore.file_access.config import StorageConfig, StorageProvider, load_storage_config
from unistore.file_access.errors import ErrorKind, StorageError
from unistore.file_access.localfs_provider import FilesystemBackend
from unistore.file_access.objectstore_provider import ObjectStoreBackend
from unistore.monitoring.logger import log


# Registry of available backends
BACKEND_REGISTRY: Dict[str, type] = {
    StorageProvider.FILESYSTEM.value: FilesystemBackend,
    StorageProvider.OBJECTSTORE.value: ObjectStoreBackend,
}


def register_backend(name: str, backend_class: type) -> None:
    """
    Register a backend class for a provider name.

    Args:
        name: Provider identifier; must be a StorageProvider value
        backend_class: Class implementing StorageBackend

    Raises:
        ValueError: If backend_class doesn't implement StorageBackend or the
            provider name is unknown
    """
    if not isinstance(backend_class, type) or not issubclass(backend_class, StorageBackend):
        raise ValueError(
            f"Backend class must inherit from StorageBackend, got {backend_class}"
        )
    try:
        provider = StorageProvider(name.lower().strip())
    except ValueError:
        raise ValueError(
            f"Unknown provider '{name}'. Known providers: {[p.value for p in StorageProvider]}"
        )

    BACKEND_REGISTRY[provider.value] = backend_class
    log("INFO", f"Registered storage backend: {provider.value} -> {backend_class.__name__}",
        module="registry")


def get_backend(config: Union[StorageConfig, Mapping[str, Any]]) -> StorageBackend:
    """
    Instantiate the backend for a configuration.

    Raises:
        StorageError: INVALID_CONFIG / INVALID_PROVIDER for bad configuration,
            or whatever the backend constructor raises
    """
    config = load_storage_config(config)
    backend_class = BACKEND_REGISTRY.get(config.provider.value)

    if backend_class is None:
        raise StorageError(
            ErrorKind.INVALID_PROVIDER,
            f"unsupported provider: {config.provider.value}"
        )

    try:
        backend = backend_class(config)
    except StorageError:
        raise
    except Exception as exc:
        raise StorageError(
            ErrorKind.INTERNAL_ERROR,
            f"failed to initialize {config.provider.value} backend: {exc}",
            backend=config.provider.value,
            cause=exc,
        ) from exc

    log("INFO", f"Initialized {config.provider.value} backend for storage {config.name}",
        module="registry", storage=config.name)
    return backend


def list_providers() -> List[str]:
    """List all registered provider names."""
    return list(BACKEND_REGISTRY.keys())


def get_provider_info(provider_name: str) -> Dict[str, Any]:
    """
    Get information about a registered backend.

    Raises:
        ValueError: If provider is unknown
    """
    provider_name = provider_name.lower().strip()
    backend_class = BACKEND_REGISTRY.get(provider_name)

    if not backend_class:
        raise ValueError(
            f"Unknown storage provider: '{provider_name}'. "
            f"Available providers: {list(BACKEND_REGISTRY.keys())}"
        )

    return {
        "name": provider_name,
        "class": backend_class.__name__,
        "module": backend_class.__module__,
        "docstring": backend_class.__doc__,
    }
