"""Typed wrappers around the backend's auth, game, admin and content endpoints."""

from .admin import AdminService
from .auth import AuthService
from .content import ContentService
from .game import GameService

__all__ = ["AdminService", "AuthService", "ContentService", "GameService"]
