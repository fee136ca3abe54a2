"""Durable credential storage."""

from .credential_store import (
    ACCESS_TOKEN_KEY,
    REFRESH_TOKEN_KEY,
    USER_KEY,
    CredentialStore,
    FileCredentialStore,
    MemoryCredentialStore,
)

__all__ = [
    "ACCESS_TOKEN_KEY",
    "REFRESH_TOKEN_KEY",
    "USER_KEY",
    "CredentialStore",
    "FileCredentialStore",
    "MemoryCredentialStore",
]
