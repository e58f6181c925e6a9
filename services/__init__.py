"""
Services layer - catalog mutation, integrity and query logic.
"""

from services.catalog_service import CatalogService, CatalogChange
from services.integrity_service import IntegrityService, IngredientDeleteResult
from services.query_service import QueryService, RecipeSort, sort_recipes
from services.locking import ReadWriteLock

__all__ = [
    "CatalogService",
    "CatalogChange",
    "IntegrityService",
    "IngredientDeleteResult",
    "QueryService",
    "RecipeSort",
    "sort_recipes",
    "ReadWriteLock",
]
