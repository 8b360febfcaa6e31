"""
Application layer - Use cases and DTOs.

This layer orchestrates business logic by:
1. Defining request/response DTOs for API contracts
2. Implementing use cases that coordinate the ledger engine and storage

Use cases are the only entry point for API handlers.
"""

from renovo.application import dto, use_cases

__all__ = ["dto", "use_cases"]
