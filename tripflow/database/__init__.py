"""
Database package initialization.

- base: declarative base and mixins
- connection: async engine, session factory and FastAPI dependency
- models: ORM models for all entities

Submodules are imported explicitly where needed to avoid circular imports.
"""

__all__ = []
