"""Core domain layer - entities, interfaces, services and exceptions."""

from renovo.core import entities, exceptions, interfaces, services

__all__ = ["entities", "interfaces", "services", "exceptions"]
