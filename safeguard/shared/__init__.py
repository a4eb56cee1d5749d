"""Shared models, utilities and persistence for Safeguard services."""
