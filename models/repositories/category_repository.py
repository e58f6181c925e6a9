"""
Category Repository - data access for categories.
"""

from models.entities import Category
from models.repositories.base import NamedEntityRepository


class CategoryRepository(NamedEntityRepository):
    """Repository for category database operations."""

    model = Category
    id_attribute = "CategoryId"
    entity_name = "Category"
