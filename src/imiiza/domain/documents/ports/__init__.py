from .object_storage_port import ObjectStoragePort, StorageError, StoredFile

__all__ = ["ObjectStoragePort", "StorageError", "StoredFile"]
