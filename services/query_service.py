"""
Query Service - filtered, sorted, read-only views of the catalog.

Every call opens a fresh session under the shared read lock and returns
snapshots, so results always reflect the latest committed state and can
never be used to write back.

Search is a case- and accent-insensitive substring test ("creme" finds
"Crème brûlée"). An empty search matches every record.
"""

import unicodedata
from contextlib import contextmanager
from enum import Enum
from typing import Iterable, Optional, Union

from sqlalchemy.orm import Session, sessionmaker

from config.database import SessionLocal
from models.errors import NotFoundError, ValidationError
from models.repositories import (
    CategoryRepository,
    IngredientRepository,
    RecipeRepository,
)
from models.snapshots import CategorySnapshot, IngredientSnapshot, RecipeSnapshot
from services.locking import ReadWriteLock


class RecipeSort(str, Enum):
    """Sort options offered by the recipe list."""
    NAME = "name"
    SERVING_ASC = "serving_asc"
    SERVING_DESC = "serving_desc"
    TIME_ASC = "time_asc"
    TIME_DESC = "time_desc"


# sort option -> (key, descending)
_SORT_KEYS = {
    RecipeSort.SERVING_ASC: (lambda r: r.serving, False),
    RecipeSort.SERVING_DESC: (lambda r: r.serving, True),
    RecipeSort.TIME_ASC: (lambda r: r.time, False),
    RecipeSort.TIME_DESC: (lambda r: r.time, True),
}


def fold_text(text: str) -> str:
    """Lower-case and strip accents for comparison."""
    decomposed = unicodedata.normalize("NFKD", text)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return stripped.casefold()


def matches_search(search: Optional[str], *fields: str) -> bool:
    """True if search is empty or found in any of the fields."""
    if not search:
        return True
    needle = fold_text(search)
    return any(needle in fold_text(field or "") for field in fields)


def parse_sort(sort: Union[RecipeSort, str, None]) -> RecipeSort:
    if sort is None:
        return RecipeSort.NAME
    try:
        return RecipeSort(sort)
    except ValueError:
        options = ", ".join(option.value for option in RecipeSort)
        raise ValidationError("sort", f"must be one of: {options}") from None


def sort_recipes(
    recipes: Iterable[RecipeSnapshot],
    sort: Union[RecipeSort, str, None] = RecipeSort.NAME
) -> list[RecipeSnapshot]:
    """
    Sort recipes by name, then by the requested key.

    Python's sort is stable (also with reverse=True), so recipes with
    equal serving or time stay in name order.
    """
    sort = parse_sort(sort)
    ordered = sorted(recipes, key=lambda r: r.name)
    if sort is RecipeSort.NAME:
        return ordered
    key, descending = _SORT_KEYS[sort]
    return sorted(ordered, key=key, reverse=descending)


class QueryService:
    """
    Read-only access to categories, ingredients and recipes.

    Use `CatalogService.queries`, which shares the catalog's writer lock.
    A QueryService built without a lock gets a private one and does not
    wait for mutations made through any CatalogService.
    """

    def __init__(
        self,
        session_factory: Optional[sessionmaker] = None,
        lock: Optional[ReadWriteLock] = None
    ):
        self._session_factory = session_factory or SessionLocal
        self._lock = lock or ReadWriteLock()

    @contextmanager
    def _read(self):
        """Yield a short-lived session while holding the read lock."""
        with self._lock.read():
            db: Session = self._session_factory()
            try:
                yield db
            finally:
                db.close()

    # ==========================================
    # Categories
    # ==========================================

    def list_categories(self, search: Optional[str] = None) -> list[CategorySnapshot]:
        """Categories whose name contains search, sorted by name."""
        with self._read() as db:
            categories = [
                CategorySnapshot.from_entity(c)
                for c in CategoryRepository(db).get_all()
            ]
        return sorted(
            (c for c in categories if matches_search(search, c.name)),
            key=lambda c: c.name
        )

    def get_category(self, category_id: int) -> CategorySnapshot:
        with self._read() as db:
            return CategorySnapshot.from_entity(CategoryRepository(db).require(category_id))

    def recipes_in_category(self, category_id: int) -> list[RecipeSnapshot]:
        """Recipes pointing at a category, sorted by name."""
        with self._read() as db:
            CategoryRepository(db).require(category_id)
            recipes = RecipeRepository(db).get_by_category(category_id)
            return sort_recipes(RecipeSnapshot.from_entity(r) for r in recipes)

    def uncategorized_recipes(self) -> list[RecipeSnapshot]:
        with self._read() as db:
            recipes = RecipeRepository(db).get_by_category(None)
            return sort_recipes(RecipeSnapshot.from_entity(r) for r in recipes)

    # ==========================================
    # Ingredients
    # ==========================================

    def list_ingredients(self, search: Optional[str] = None) -> list[IngredientSnapshot]:
        """Ingredients whose name contains search, sorted by name."""
        with self._read() as db:
            ingredients = [
                IngredientSnapshot.from_entity(i)
                for i in IngredientRepository(db).get_all()
            ]
        return sorted(
            (i for i in ingredients if matches_search(search, i.name)),
            key=lambda i: i.name
        )

    def get_ingredient(self, ingredient_id: int) -> IngredientSnapshot:
        with self._read() as db:
            return IngredientSnapshot.from_entity(
                IngredientRepository(db).require(ingredient_id)
            )

    def recipes_using_ingredient(self, ingredient_id: int) -> list[RecipeSnapshot]:
        """Recipes with at least one line referencing an ingredient."""
        with self._read() as db:
            IngredientRepository(db).require(ingredient_id)
            recipes = RecipeRepository(db).get_by_ingredient(ingredient_id)
            return sort_recipes(RecipeSnapshot.from_entity(r) for r in recipes)

    # ==========================================
    # Recipes
    # ==========================================

    def list_recipes(
        self,
        search: Optional[str] = None,
        sort: Union[RecipeSort, str, None] = RecipeSort.NAME
    ) -> list[RecipeSnapshot]:
        """
        Recipes whose name or summary contains search.

        Args:
            search: Substring to look for; empty or None returns everything
            sort: One of RecipeSort (or its string value)
        """
        sort = parse_sort(sort)
        with self._read() as db:
            recipes = [
                RecipeSnapshot.from_entity(r)
                for r in RecipeRepository(db).get_all_loaded()
            ]
        return sort_recipes(
            (r for r in recipes if matches_search(search, r.name, r.summary)),
            sort
        )

    def get_recipe(self, recipe_id: int) -> RecipeSnapshot:
        """Get one recipe with its ordered ingredient lines."""
        with self._read() as db:
            recipe = RecipeRepository(db).get_loaded(recipe_id)
            if recipe is None:
                raise NotFoundError("Recipe", recipe_id)
            return RecipeSnapshot.from_entity(recipe)

    def count_recipes(self) -> int:
        with self._read() as db:
            return RecipeRepository(db).count()
