"""
Models Package - catalog entities, input schemas and snapshots.
"""

from models.entities import (
    Category,
    Ingredient,
    Recipe,
    RecipeIngredient,
)
from models.errors import (
    CatalogError,
    ValidationError,
    DuplicateNameError,
    NotFoundError,
    IntegrityViolation,
)
from models.schemas import (
    CategoryInput,
    IngredientInput,
    RecipeInput,
    RecipeIngredientInput,
)
from models.snapshots import (
    CategorySnapshot,
    IngredientSnapshot,
    RecipeSnapshot,
    RecipeIngredientSnapshot,
)

__all__ = [
    # ORM entities
    "Category",
    "Ingredient",
    "Recipe",
    "RecipeIngredient",
    # Errors
    "CatalogError",
    "ValidationError",
    "DuplicateNameError",
    "NotFoundError",
    "IntegrityViolation",
    # Input schemas
    "CategoryInput",
    "IngredientInput",
    "RecipeInput",
    "RecipeIngredientInput",
    # Snapshots
    "CategorySnapshot",
    "IngredientSnapshot",
    "RecipeSnapshot",
    "RecipeIngredientSnapshot",
]
