from boxgen.storage.blob import BlobNotFoundError, BlobStore, BlobStoreError, FileBlobStore

__all__ = [
    "BlobNotFoundError",
    "BlobStore",
    "BlobStoreError",
    "FileBlobStore",
]
