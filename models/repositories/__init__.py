"""
Repositories - Data access layer for database operations.
"""

from models.repositories.base import NamedEntityRepository
from models.repositories.category_repository import CategoryRepository
from models.repositories.ingredient_repository import IngredientRepository
from models.repositories.recipe_repository import RecipeRepository

__all__ = [
    "NamedEntityRepository",
    "CategoryRepository",
    "IngredientRepository",
    "RecipeRepository",
]
