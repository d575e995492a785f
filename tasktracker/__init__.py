"""Task tracking API: users, roles and the task lifecycle."""

__version__ = "1.0.0"
