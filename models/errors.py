"""
Catalog error types.

Every failure the catalog reports is a CatalogError subclass so callers
can catch the whole family or a single kind.
"""

from typing import Any, Optional


class CatalogError(Exception):
    """Base class for all catalog errors."""


class ValidationError(CatalogError):
    """Input failed a field rule before the store was touched."""

    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")


class DuplicateNameError(CatalogError):
    """A create or rename would give two records of one kind the same name."""

    def __init__(self, entity: str, name: str):
        self.entity = entity
        self.name = name
        super().__init__(f"{entity} named '{name}' already exists")


class NotFoundError(CatalogError):
    """The targeted record does not exist (it may have been deleted)."""

    def __init__(self, entity: str, entity_id: Any):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class IntegrityViolation(CatalogError):
    """
    An invariant check failed after a mutation.

    This indicates a bug in the catalog itself, never bad user input.
    The offending transaction is rolled back before this is raised.
    """

    def __init__(self, problems: list[str], operation: Optional[str] = None):
        self.problems = problems
        self.operation = operation
        detail = "; ".join(problems)
        prefix = f"{operation}: " if operation else ""
        super().__init__(f"{prefix}{detail}")
