"""
Lighthouse training platform client.
"""

from .main import Lighthouse, create_client

__all__ = ["Lighthouse", "create_client"]
