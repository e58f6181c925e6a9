"""
Recipe Repository - data access for recipes and their ingredient lines.

RecipeIngredient rows have no lifecycle of their own, so they are
handled here next to the recipe that owns them.
"""

from typing import Optional

from sqlalchemy import delete, func, select
from sqlalchemy.orm import selectinload

from models.entities import Recipe, RecipeIngredient
from models.errors import NotFoundError
from models.repositories.base import NamedEntityRepository


class RecipeRepository(NamedEntityRepository):
    """Repository for recipe database operations."""

    model = Recipe
    id_attribute = "RecipeId"
    entity_name = "Recipe"

    # ==========================================
    # Recipe Queries
    # ==========================================

    def get_loaded(self, recipe_id: int) -> Optional[Recipe]:
        """Get a recipe with its category and lines loaded."""
        return self.db.scalars(
            self._loaded_query().where(Recipe.RecipeId == recipe_id)
        ).first()

    def get_all_loaded(self) -> list[Recipe]:
        """Get every recipe, name ordered, with relationships loaded."""
        return list(self.db.scalars(self._loaded_query().order_by(Recipe.Name)))

    def get_by_category(self, category_id: Optional[int]) -> list[Recipe]:
        """Get recipes pointing at a category (None for uncategorized)."""
        query = self._loaded_query()
        if category_id is None:
            query = query.where(Recipe.CategoryId.is_(None))
        else:
            query = query.where(Recipe.CategoryId == category_id)
        return list(self.db.scalars(query.order_by(Recipe.Name)))

    def get_by_ingredient(self, ingredient_id: int) -> list[Recipe]:
        """Get recipes with at least one line using an ingredient."""
        owner_ids = select(RecipeIngredient.RecipeId).where(
            RecipeIngredient.IngredientId == ingredient_id
        )
        return list(self.db.scalars(
            self._loaded_query()
            .where(Recipe.RecipeId.in_(owner_ids))
            .order_by(Recipe.Name)
        ))

    def count(self) -> int:
        return self.db.scalar(select(func.count()).select_from(Recipe))

    # ==========================================
    # Ingredient Line Management
    # ==========================================

    def get_lines(self, recipe_id: int) -> list[RecipeIngredient]:
        """Get a recipe's lines in display order."""
        return list(self.db.scalars(
            select(RecipeIngredient)
            .where(RecipeIngredient.RecipeId == recipe_id)
            .order_by(RecipeIngredient.OrderIndex)
        ))

    def get_line(self, line_id: int) -> Optional[RecipeIngredient]:
        return self.db.get(RecipeIngredient, line_id)

    def require_line(self, line_id: int) -> RecipeIngredient:
        line = self.get_line(line_id) if line_id is not None else None
        if line is None:
            raise NotFoundError("RecipeIngredient", line_id)
        return line

    def get_lines_for_ingredient(self, ingredient_id: int) -> list[RecipeIngredient]:
        return list(self.db.scalars(
            select(RecipeIngredient)
            .where(RecipeIngredient.IngredientId == ingredient_id)
            .order_by(RecipeIngredient.RecipeId, RecipeIngredient.OrderIndex)
        ))

    def add_line(
        self,
        recipe_id: int,
        ingredient_id: Optional[int],
        quantity: str = "",
        position: Optional[int] = None
    ) -> RecipeIngredient:
        """Append a line (or insert it at an explicit position index)."""
        if position is None:
            position = self.line_count(recipe_id)
        line = RecipeIngredient(
            RecipeId=recipe_id,
            IngredientId=ingredient_id,
            Quantity=quantity,
            OrderIndex=position
        )
        self.db.add(line)
        self.db.flush()
        return line

    def line_count(self, recipe_id: int) -> int:
        return self.db.scalar(
            select(func.count())
            .select_from(RecipeIngredient)
            .where(RecipeIngredient.RecipeId == recipe_id)
        )

    def delete_line(self, line_id: int) -> RecipeIngredient:
        """Remove one line; the caller compacts the remaining positions."""
        line = self.require_line(line_id)
        self.db.delete(line)
        self.db.flush()
        return line

    def delete_lines(self, recipe_id: int) -> int:
        """Remove every line of a recipe. Returns count deleted."""
        result = self.db.execute(
            delete(RecipeIngredient).where(RecipeIngredient.RecipeId == recipe_id)
        )
        return result.rowcount

    def renumber_lines(self, lines: list[RecipeIngredient]) -> None:
        """Give lines positions 0..n-1 in the order given."""
        for idx, line in enumerate(lines):
            if line.OrderIndex != idx:
                line.OrderIndex = idx
        self.db.flush()

    # ==========================================
    # Helpers
    # ==========================================

    @staticmethod
    def _loaded_query():
        return select(Recipe).options(
            selectinload(Recipe.category),
            selectinload(Recipe.ingredients).selectinload(RecipeIngredient.ingredient),
        )
