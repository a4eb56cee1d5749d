"""Shared utilities for Safeguard services."""
from .pii import hash_pii, hash_text_for_audit, configure_pii_salt
from .timestamps import to_iso, from_iso, days_between

__all__ = [
    "hash_pii",
    "hash_text_for_audit",
    "configure_pii_salt",
    "to_iso",
    "from_iso",
    "days_between",
]
