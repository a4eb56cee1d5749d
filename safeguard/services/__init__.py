"""Safeguard engine services."""
