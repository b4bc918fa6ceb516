"""Database package."""

from threatscope.db.session import create_session_factory, init_db

__all__ = ["create_session_factory", "init_db"]
