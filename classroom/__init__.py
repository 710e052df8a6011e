"""Rural Classroom resource-sharing backend."""

__version__ = "1.0.0"
