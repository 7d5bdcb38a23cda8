"""Clients for external music services."""
