"""
Integrity Service - delete-rule propagation and invariant auditing.

Every delete of a referenced record goes through here so the rules are
applied in one place, inside the caller's transaction:

- Category delete:   referencing recipes get CategoryId = NULL
- Recipe delete:     owned RecipeIngredient lines are deleted first
- Ingredient delete: referencing lines get IngredientId = NULL (or are
                     removed when the caller asks), quantities kept

References are forward-only. Questions such as "which recipes are in
this category" are answered by querying, never by a stored list.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from sqlalchemy import distinct, func, or_, select
from sqlalchemy.orm import Session

from models.entities import Category, Ingredient, Recipe, RecipeIngredient
from models.errors import IntegrityViolation, NotFoundError
from models.repositories import (
    CategoryRepository,
    IngredientRepository,
    RecipeRepository,
)
from models.schemas import RecipeIngredientInput

logger = logging.getLogger(__name__)


@dataclass
class IngredientDeleteResult:
    """What happened to the lines that referenced a deleted ingredient."""
    ingredient_id: int
    nullified_lines: int
    removed_lines: int
    affected_recipe_ids: tuple[int, ...]


class IntegrityService:
    """Applies delete rules and reference changes for one session."""

    def __init__(self, db: Session):
        self.db = db
        self.categories = CategoryRepository(db)
        self.ingredients = IngredientRepository(db)
        self.recipes = RecipeRepository(db)

    # ==========================================
    # Delete Rules
    # ==========================================

    def delete_category(self, category_id: int) -> list[int]:
        """
        Delete a category, nullifying it on every recipe that used it.

        Returns the ids of the recipes that were uncategorized.
        """
        self.categories.require(category_id)

        recipes = self.db.scalars(
            select(Recipe).where(Recipe.CategoryId == category_id)
        ).all()
        for recipe in recipes:
            recipe.CategoryId = None
        self.db.flush()

        self.categories.delete(category_id)
        recipe_ids = [r.RecipeId for r in recipes]
        logger.info(
            f"Deleted category {category_id} (nullified {len(recipe_ids)} recipes)"
        )
        return recipe_ids

    def delete_recipe(self, recipe_id: int) -> int:
        """
        Delete a recipe and cascade to its ingredient lines.

        Ingredient records are never touched. Returns the number of
        lines removed.
        """
        self.recipes.require(recipe_id)
        removed = self.recipes.delete_lines(recipe_id)
        self.recipes.delete(recipe_id)
        logger.info(f"Deleted recipe {recipe_id} (removed {removed} ingredient lines)")
        return removed

    def delete_ingredient(
        self,
        ingredient_id: int,
        remove_lines: bool = False
    ) -> IngredientDeleteResult:
        """
        Delete an ingredient.

        Lines pointing at it keep their quantity and owning recipe and
        lose only the ingredient reference. With remove_lines=True those
        lines are deleted instead and the remaining lines renumbered.
        """
        self.ingredients.require(ingredient_id)
        lines = self.recipes.get_lines_for_ingredient(ingredient_id)
        affected = tuple(sorted({line.RecipeId for line in lines}))

        if remove_lines:
            for line in lines:
                self.db.delete(line)
            self.db.flush()
            for recipe_id in affected:
                self.compact_lines(recipe_id)
        else:
            for line in lines:
                line.IngredientId = None
            self.db.flush()

        self.ingredients.delete(ingredient_id)

        result = IngredientDeleteResult(
            ingredient_id=ingredient_id,
            nullified_lines=0 if remove_lines else len(lines),
            removed_lines=len(lines) if remove_lines else 0,
            affected_recipe_ids=affected,
        )
        logger.info(
            f"Deleted ingredient {ingredient_id} "
            f"(nullified {result.nullified_lines}, removed {result.removed_lines} lines)"
        )
        return result

    # ==========================================
    # Reassignment
    # ==========================================

    def assign_category(self, recipe: Recipe, category_id: Optional[int]) -> None:
        """Point a recipe at another category (or none)."""
        if category_id is not None:
            self.categories.require(category_id)
        recipe.CategoryId = category_id

    def assign_ingredient(self, line: RecipeIngredient, ingredient_id: Optional[int]) -> None:
        """Swap the ingredient on a line (None leaves it unnamed)."""
        if ingredient_id is not None:
            self.ingredients.require(ingredient_id)
        line.IngredientId = ingredient_id

    def require_ingredients(self, ingredient_ids: Iterable[Optional[int]]) -> None:
        """Raise NotFoundError for the first referenced ingredient that is gone."""
        missing = self.ingredients.missing_ids(ingredient_ids)
        if missing:
            raise NotFoundError("Ingredient", min(missing))

    def replace_lines(
        self,
        recipe_id: int,
        lines: list[RecipeIngredientInput]
    ) -> list[RecipeIngredient]:
        """
        Replace a recipe's full ingredient list.

        All references are checked before anything is removed, so a bad
        id leaves the old list in place even without a rollback.
        """
        self.recipes.require(recipe_id)
        self.require_ingredients(line.ingredient_id for line in lines)

        removed = self.recipes.delete_lines(recipe_id)
        created = [
            self.recipes.add_line(
                recipe_id,
                line.ingredient_id,
                line.quantity,
                position=idx
            )
            for idx, line in enumerate(lines)
        ]
        logger.debug(
            f"Replaced ingredients of recipe {recipe_id}: "
            f"{removed} removed, {len(created)} created"
        )
        return created

    def compact_lines(self, recipe_id: int) -> None:
        """Close gaps in OrderIndex after lines were removed."""
        self.recipes.renumber_lines(self.recipes.get_lines(recipe_id))

    # ==========================================
    # Invariant Audit
    # ==========================================

    def audit(self) -> list[str]:
        """Return a description of every broken invariant (empty if none)."""
        problems = []

        orphan_lines = self.db.scalars(
            select(RecipeIngredient.RecipeIngredientId)
            .outerjoin(Recipe, Recipe.RecipeId == RecipeIngredient.RecipeId)
            .where(Recipe.RecipeId.is_(None))
        ).all()
        if orphan_lines:
            problems.append(f"ingredient lines without a recipe: {sorted(orphan_lines)}")

        dangling_categories = self.db.scalars(
            select(Recipe.RecipeId)
            .outerjoin(Category, Category.CategoryId == Recipe.CategoryId)
            .where(Recipe.CategoryId.is_not(None), Category.CategoryId.is_(None))
        ).all()
        if dangling_categories:
            problems.append(
                f"recipes pointing at missing categories: {sorted(dangling_categories)}"
            )

        dangling_ingredients = self.db.scalars(
            select(RecipeIngredient.RecipeIngredientId)
            .outerjoin(Ingredient, Ingredient.IngredientId == RecipeIngredient.IngredientId)
            .where(
                RecipeIngredient.IngredientId.is_not(None),
                Ingredient.IngredientId.is_(None)
            )
        ).all()
        if dangling_ingredients:
            problems.append(
                f"lines pointing at missing ingredients: {sorted(dangling_ingredients)}"
            )

        for model in (Category, Ingredient, Recipe):
            table = model.__tablename__
            duplicates = self.db.scalars(
                select(model.Name).group_by(model.Name).having(func.count() > 1)
            ).all()
            if duplicates:
                problems.append(f"duplicate names in {table}: {sorted(duplicates)}")

            blank = self.db.scalars(
                select(model.Name).where(
                    or_(model.Name == "", func.trim(model.Name) != model.Name)
                )
            ).all()
            if blank:
                problems.append(f"blank or untrimmed names in {table}: {blank!r}")

        out_of_range = self.db.scalars(
            select(Recipe.RecipeId).where(or_(Recipe.Serving < 1, Recipe.Time < 1))
        ).all()
        if out_of_range:
            problems.append(f"recipes with serving/time below 1: {sorted(out_of_range)}")

        positions = self.db.execute(
            select(
                RecipeIngredient.RecipeId,
                func.count(),
                func.min(RecipeIngredient.OrderIndex),
                func.max(RecipeIngredient.OrderIndex),
                func.count(distinct(RecipeIngredient.OrderIndex)),
            ).group_by(RecipeIngredient.RecipeId)
        ).all()
        for recipe_id, count, low, high, unique in positions:
            if low != 0 or high != count - 1 or unique != count:
                problems.append(f"recipe {recipe_id} has non-contiguous ingredient order")

        return problems

    def verify(self, operation: Optional[str] = None) -> None:
        """Raise IntegrityViolation if the audit finds anything."""
        self.db.flush()
        problems = self.audit()
        if problems:
            logger.error(f"Integrity audit failed after {operation}: {problems}")
            raise IntegrityViolation(problems, operation)
