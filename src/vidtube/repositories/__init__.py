"""Persistence adapters. Services depend on the protocols, not on SQLAlchemy."""
