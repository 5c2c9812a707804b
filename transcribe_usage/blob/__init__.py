"""Blob storage for user uploaded files."""

from .client import USER_FILES_CONTAINER, BlobStore, create_blob_service_client, user_prefix

__all__ = [
    "USER_FILES_CONTAINER",
    "BlobStore",
    "create_blob_service_client",
    "user_prefix",
]
