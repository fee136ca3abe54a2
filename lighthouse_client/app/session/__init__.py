"""Signed-in user lifecycle."""

from .manager import SessionManager, token_expired

__all__ = ["SessionManager", "token_expired"]
