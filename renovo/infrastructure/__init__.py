"""Infrastructure layer implementations."""

from renovo.infrastructure import storage

__all__ = ["storage"]
