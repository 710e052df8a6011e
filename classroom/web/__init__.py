"""HTTP interface for the Rural Classroom backend."""

from .server import create_app

__all__ = ["create_app"]
