"""
Named Entity Repository - shared data access for records with a unique name.

Repositories flush but never commit. The caller owns the transaction so
a mutation and all of its propagation land in one atomic unit.
"""

import logging
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from models.errors import DuplicateNameError, NotFoundError

logger = logging.getLogger(__name__)


class NamedEntityRepository:
    """Base repository for Category, Ingredient and Recipe."""

    model: Any = None
    id_attribute: str = ""
    entity_name: str = ""

    def __init__(self, db: Session):
        """Initialize with a database session."""
        self.db = db

    # ==========================================
    # Reads
    # ==========================================

    def get_by_id(self, entity_id: int):
        """Get a record by ID, or None."""
        return self.db.get(self.model, entity_id)

    def require(self, entity_id: int):
        """Get a record by ID, raising NotFoundError if it is gone."""
        record = self.get_by_id(entity_id) if entity_id is not None else None
        if record is None:
            raise NotFoundError(self.entity_name, entity_id)
        return record

    def exists(self, entity_id: int) -> bool:
        return self.get_by_id(entity_id) is not None

    def get_by_name(self, name: str):
        """Get a record by its exact (already trimmed) name."""
        return self.db.scalars(
            select(self.model).where(self.model.Name == name)
        ).first()

    def get_all(self) -> list:
        """Get every record ordered by name."""
        return list(self.db.scalars(select(self.model).order_by(self.model.Name)))

    # ==========================================
    # Writes
    # ==========================================

    def ensure_name_available(self, name: str, exclude_id: Optional[int] = None) -> None:
        """Raise DuplicateNameError if another record already uses name."""
        existing = self.get_by_name(name)
        if existing is not None and self._id_of(existing) != exclude_id:
            raise DuplicateNameError(self.entity_name, name)

    def create(self, name: str, **fields):
        """Insert a new record after checking the name is free."""
        self.ensure_name_available(name)
        record = self.model(Name=name, **fields)
        self.db.add(record)
        self._flush(name)
        logger.debug(f"Inserted {self.entity_name} {self._id_of(record)} '{name}'")
        return record

    def update(self, entity_id: int, **fields):
        """Update columns in place; a Name change is checked for collisions."""
        record = self.require(entity_id)
        name = fields.get("Name")
        if name is not None:
            self.ensure_name_available(name, exclude_id=entity_id)
        for column, value in fields.items():
            setattr(record, column, value)
        self._flush(name or record.Name)
        return record

    def rename(self, entity_id: int, name: str):
        return self.update(entity_id, Name=name)

    def delete(self, entity_id: int) -> None:
        """
        Remove a single record.

        Does not propagate to referencing rows; use the integrity service
        for the full delete rules.
        """
        record = self.require(entity_id)
        self.db.delete(record)
        self.db.flush()

    # ==========================================
    # Helpers
    # ==========================================

    def _id_of(self, record) -> int:
        return getattr(record, self.id_attribute)

    def _flush(self, name: str) -> None:
        """Flush, translating a unique index hit into DuplicateNameError."""
        try:
            self.db.flush()
        except IntegrityError as e:
            if "UNIQUE" in str(e.orig).upper():
                raise DuplicateNameError(self.entity_name, name) from e
            raise
