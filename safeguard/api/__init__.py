"""HTTP surface for the safety engine."""
from .handler import create_app

__all__ = ["create_app"]
