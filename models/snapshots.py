"""
Read-only snapshots returned to callers.

Snapshots are frozen copies detached from the database session, so a
caller can keep, share or mutate its own variables without any effect on
the stored records. Collections are tuples for the same reason.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from models.entities import Category, Ingredient, Recipe, RecipeIngredient

UNKNOWN_INGREDIENT = "Unknown"


@dataclass(frozen=True)
class CategorySnapshot:
    id: int
    name: str

    @classmethod
    def from_entity(cls, category: Category) -> "CategorySnapshot":
        return cls(id=category.CategoryId, name=category.Name)


@dataclass(frozen=True)
class IngredientSnapshot:
    id: int
    name: str

    @classmethod
    def from_entity(cls, ingredient: Ingredient) -> "IngredientSnapshot":
        return cls(id=ingredient.IngredientId, name=ingredient.Name)


@dataclass(frozen=True)
class RecipeIngredientSnapshot:
    """One line of a recipe's ingredient list."""
    id: int
    recipe_id: int
    ingredient_id: Optional[int]
    ingredient_name: Optional[str]
    quantity: str
    position: int

    @property
    def display_name(self) -> str:
        """Ingredient name, or a placeholder once the ingredient is gone."""
        return self.ingredient_name or UNKNOWN_INGREDIENT

    @classmethod
    def from_entity(cls, line: RecipeIngredient) -> "RecipeIngredientSnapshot":
        ingredient = line.ingredient
        return cls(
            id=line.RecipeIngredientId,
            recipe_id=line.RecipeId,
            ingredient_id=line.IngredientId,
            ingredient_name=ingredient.Name if ingredient is not None else None,
            quantity=line.Quantity,
            position=line.OrderIndex,
        )


@dataclass(frozen=True)
class RecipeSnapshot:
    """Full recipe including its ordered ingredient lines."""
    id: int
    name: str
    summary: str
    serving: int
    time: int
    instructions: str
    image_data: Optional[bytes]
    category_id: Optional[int]
    category_name: Optional[str]
    ingredients: tuple[RecipeIngredientSnapshot, ...]
    created_date: Optional[datetime] = None

    @property
    def is_complete(self) -> bool:
        """A recipe needs instructions before it can be cooked from."""
        return bool(self.instructions.strip())

    @classmethod
    def from_entity(
        cls,
        recipe: Recipe,
        lines: Optional[list[RecipeIngredient]] = None,
    ) -> "RecipeSnapshot":
        if lines is None:
            lines = recipe.ingredients
        category = recipe.category
        return cls(
            id=recipe.RecipeId,
            name=recipe.Name,
            summary=recipe.Summary,
            serving=recipe.Serving,
            time=recipe.Time,
            instructions=recipe.Instructions,
            image_data=recipe.ImageData,
            category_id=recipe.CategoryId,
            category_name=category.Name if category is not None else None,
            ingredients=tuple(
                RecipeIngredientSnapshot.from_entity(line)
                for line in sorted(lines, key=lambda x: x.OrderIndex)
            ),
            created_date=recipe.CreatedDate,
        )
