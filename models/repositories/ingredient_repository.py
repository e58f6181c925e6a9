"""
Ingredient Repository - data access for ingredients.
"""

from sqlalchemy import select

from models.entities import Ingredient
from models.repositories.base import NamedEntityRepository


class IngredientRepository(NamedEntityRepository):
    """Repository for ingredient database operations."""

    model = Ingredient
    id_attribute = "IngredientId"
    entity_name = "Ingredient"

    def missing_ids(self, ingredient_ids) -> set[int]:
        """Return the subset of ingredient_ids with no matching record."""
        wanted = {i for i in ingredient_ids if i is not None}
        if not wanted:
            return set()
        found = set(self.db.scalars(
            select(Ingredient.IngredientId).where(Ingredient.IngredientId.in_(wanted))
        ))
        return wanted - found
