"""
Catalog Service - the only way to change the recipe catalog.

Each public mutation:
1. Validates its input (ValidationError, nothing applied)
2. Takes the writer lock and opens one transaction
3. Applies the change plus any delete-rule propagation
4. Audits the invariants (IntegrityViolation rolls everything back)
5. Commits, releases the lock, then notifies change listeners

Reads go through `catalog.queries` (services.query_service.QueryService),
which shares the same lock so readers never see a half-applied change.
"""

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Mapping, Optional, Union

from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from config.database import SessionLocal, build_engine, build_session_factory, init_db
from config.settings import Settings, get_settings
from models.errors import CatalogError, IntegrityViolation, ValidationError
from models.repositories import (
    CategoryRepository,
    IngredientRepository,
    RecipeRepository,
)
from models.schemas import (
    CategoryInput,
    IngredientInput,
    RecipeIngredientInput,
    RecipeInput,
)
from models.snapshots import CategorySnapshot, IngredientSnapshot, RecipeSnapshot
from services.integrity_service import IngredientDeleteResult, IntegrityService
from services.locking import ReadWriteLock
from services.query_service import QueryService
from services.validation import (
    check_line,
    check_name,
    check_recipe,
    explicit_fields,
    parse_input,
)

logger = logging.getLogger(__name__)

# Marks an argument the caller did not pass (None is a meaningful value)
_UNSET: Any = object()

LineInput = Union[RecipeIngredientInput, Mapping[str, Any]]


@dataclass(frozen=True)
class CatalogChange:
    """Notification sent to listeners after a committed mutation."""
    entity: str  # "category", "ingredient" or "recipe"
    action: str  # "created", "updated" or "deleted"
    entity_id: int


ChangeListener = Callable[[CatalogChange], None]


class _UnitOfWork:
    """Repositories and change log for a single transaction."""

    def __init__(self, db: Session):
        self.db = db
        self.categories = CategoryRepository(db)
        self.ingredients = IngredientRepository(db)
        self.recipes = RecipeRepository(db)
        self.integrity = IntegrityService(db)
        self.changes: list[CatalogChange] = []

    def record(self, entity: str, action: str, entity_id: int) -> None:
        self.changes.append(CatalogChange(entity, action, entity_id))

    def recipe_snapshot(self, recipe_id: int) -> RecipeSnapshot:
        """Reload a recipe from the database and copy it out."""
        self.db.flush()
        self.db.expire_all()
        return RecipeSnapshot.from_entity(self.recipes.get_loaded(recipe_id))


class CatalogService:
    """
    Mutation API for categories, ingredients and recipes.

    Without a session_factory the catalog uses the default engine from
    config.database (RECIPES_DATABASE_URL) and creates its tables there.
    """

    def __init__(
        self,
        session_factory: Optional[sessionmaker] = None,
        settings: Optional[Settings] = None
    ):
        self.settings = settings or get_settings()
        self._session_factory = session_factory or SessionLocal

        bind = self._session_factory.kw.get("bind")
        if session_factory is None:
            # Default engine from config.database; nobody else creates its tables
            init_db(bind)

        shared_reads = not isinstance(getattr(bind, "pool", None), StaticPool)
        self._lock = ReadWriteLock(shared_reads=shared_reads)

        self.queries = QueryService(self._session_factory, self._lock)

        self._listeners: list[ChangeListener] = []
        self._listeners_lock = threading.Lock()
        self._owned_engine = None

    @classmethod
    def open(cls, settings: Optional[Settings] = None) -> "CatalogService":
        """Create a catalog on its own engine, creating tables if needed."""
        settings = settings or get_settings()
        engine = build_engine(settings)
        init_db(engine)
        catalog = cls(build_session_factory(engine), settings)
        catalog._owned_engine = engine
        return catalog

    def close(self) -> None:
        """Release the connections of an engine created by open()."""
        if self._owned_engine is not None:
            self._owned_engine.dispose()
            self._owned_engine = None

    # ==========================================
    # Transactions & Notifications
    # ==========================================

    @contextmanager
    def _transaction(self, operation: str):
        """Run the block as one atomic, audited, serialized unit."""
        with self._lock.write():
            db = self._session_factory()
            uow = _UnitOfWork(db)
            try:
                yield uow
                if self.settings.verify_integrity:
                    uow.integrity.verify(operation)
                db.commit()
            except IntegrityViolation:
                db.rollback()
                raise
            except CatalogError as e:
                db.rollback()
                logger.warning(f"{operation} rejected: {e}")
                raise
            except Exception:
                db.rollback()
                logger.exception(f"{operation} failed")
                raise
            finally:
                db.close()

        self._notify(uow.changes)

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        """
        Register a listener for committed changes.

        Returns a callable that removes the listener again.
        """
        with self._listeners_lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._listeners_lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, changes: list[CatalogChange]) -> None:
        with self._listeners_lock:
            listeners = list(self._listeners)
        for change in changes:
            for listener in listeners:
                try:
                    listener(change)
                except Exception:
                    logger.exception(f"Change listener {listener!r} failed on {change}")

    # ==========================================
    # Categories
    # ==========================================

    def create_category(self, name: str) -> CategorySnapshot:
        data = parse_input(CategoryInput, name=name)
        check_name(data.name, self.settings)

        with self._transaction("create_category") as uow:
            category = uow.categories.create(data.name)
            uow.record("category", "created", category.CategoryId)
            snapshot = CategorySnapshot.from_entity(category)

        logger.info(f"Created category {snapshot.id} '{snapshot.name}'")
        return snapshot

    def update_category(self, category_id: int, name: str) -> CategorySnapshot:
        """Rename a category."""
        data = parse_input(CategoryInput, name=name)
        check_name(data.name, self.settings)

        with self._transaction("update_category") as uow:
            category = uow.categories.rename(category_id, data.name)
            uow.record("category", "updated", category_id)
            snapshot = CategorySnapshot.from_entity(category)

        return snapshot

    def delete_category(self, category_id: int) -> list[int]:
        """
        Delete a category. Its recipes survive, uncategorized.

        Returns the ids of the recipes that lost their category.
        """
        with self._transaction("delete_category") as uow:
            recipe_ids = uow.integrity.delete_category(category_id)
            uow.record("category", "deleted", category_id)
            for recipe_id in recipe_ids:
                uow.record("recipe", "updated", recipe_id)

        return recipe_ids

    # ==========================================
    # Ingredients
    # ==========================================

    def create_ingredient(self, name: str) -> IngredientSnapshot:
        data = parse_input(IngredientInput, name=name)
        check_name(data.name, self.settings)

        with self._transaction("create_ingredient") as uow:
            ingredient = uow.ingredients.create(data.name)
            uow.record("ingredient", "created", ingredient.IngredientId)
            snapshot = IngredientSnapshot.from_entity(ingredient)

        logger.info(f"Created ingredient {snapshot.id} '{snapshot.name}'")
        return snapshot

    def update_ingredient(self, ingredient_id: int, name: str) -> IngredientSnapshot:
        """Rename an ingredient; every recipe line follows automatically."""
        data = parse_input(IngredientInput, name=name)
        check_name(data.name, self.settings)

        with self._transaction("update_ingredient") as uow:
            ingredient = uow.ingredients.rename(ingredient_id, data.name)
            uow.record("ingredient", "updated", ingredient_id)
            snapshot = IngredientSnapshot.from_entity(ingredient)

        return snapshot

    def delete_ingredient(
        self,
        ingredient_id: int,
        remove_lines: bool = False
    ) -> IngredientDeleteResult:
        """
        Delete an ingredient.

        Recipe lines that used it keep their quantity and become unnamed,
        unless remove_lines is set, in which case they are removed too.
        """
        with self._transaction("delete_ingredient") as uow:
            result = uow.integrity.delete_ingredient(ingredient_id, remove_lines)
            uow.record("ingredient", "deleted", ingredient_id)
            for recipe_id in result.affected_recipe_ids:
                uow.record("recipe", "updated", recipe_id)

        return result

    # ==========================================
    # Recipes
    # ==========================================

    def create_recipe(
        self,
        data: Union[RecipeInput, Mapping[str, Any], None] = None,
        **fields: Any
    ) -> RecipeSnapshot:
        """
        Create a recipe, optionally with its ingredient lines.

        Accepts a RecipeInput, a mapping of its fields, keyword fields,
        or a combination (keywords win).
        """
        recipe_data = check_recipe(parse_input(RecipeInput, data, **fields), self.settings)

        with self._transaction("create_recipe") as uow:
            if recipe_data.category_id is not None:
                uow.categories.require(recipe_data.category_id)
            if recipe_data.ingredients:
                uow.integrity.require_ingredients(
                    line.ingredient_id for line in recipe_data.ingredients
                )

            recipe = uow.recipes.create(
                recipe_data.name,
                Summary=recipe_data.summary,
                Serving=recipe_data.serving,
                Time=recipe_data.time,
                Instructions=recipe_data.instructions,
                ImageData=recipe_data.image_data,
                CategoryId=recipe_data.category_id,
            )
            for idx, line in enumerate(recipe_data.ingredients or []):
                uow.recipes.add_line(recipe.RecipeId, line.ingredient_id, line.quantity, idx)

            uow.record("recipe", "created", recipe.RecipeId)
            snapshot = uow.recipe_snapshot(recipe.RecipeId)

        logger.info(
            f"Created recipe {snapshot.id} '{snapshot.name}' "
            f"with {len(snapshot.ingredients)} ingredients"
        )
        return snapshot

    def update_recipe(
        self,
        recipe_id: int,
        data: Union[RecipeInput, Mapping[str, Any], None] = None,
        **fields: Any
    ) -> RecipeSnapshot:
        """
        Save an edited recipe.

        Only the fields the caller sets are changed; everything else keeps
        its stored value. The ingredient list is replaced when the payload
        carries one. Pass category_id=None to clear the category.
        """
        changes = explicit_fields(data)
        changes.update(fields)

        with self._transaction("update_recipe") as uow:
            current = uow.recipes.require(recipe_id)
            merged = {
                "name": current.Name,
                "summary": current.Summary,
                "serving": current.Serving,
                "time": current.Time,
                "instructions": current.Instructions,
                "image_data": current.ImageData,
                "category_id": current.CategoryId,
            }
            merged.update(changes)
            recipe_data = check_recipe(parse_input(RecipeInput, merged), self.settings)

            recipe = uow.recipes.update(
                recipe_id,
                Name=recipe_data.name,
                Summary=recipe_data.summary,
                Serving=recipe_data.serving,
                Time=recipe_data.time,
                Instructions=recipe_data.instructions,
                ImageData=recipe_data.image_data,
            )
            uow.integrity.assign_category(recipe, recipe_data.category_id)
            if recipe_data.ingredients is not None:
                uow.integrity.replace_lines(recipe_id, recipe_data.ingredients)

            uow.record("recipe", "updated", recipe_id)
            snapshot = uow.recipe_snapshot(recipe_id)

        return snapshot

    def assign_recipe_category(
        self,
        recipe_id: int,
        category_id: Optional[int]
    ) -> RecipeSnapshot:
        """Move a recipe to another category, or out of any (None)."""
        with self._transaction("assign_recipe_category") as uow:
            recipe = uow.recipes.require(recipe_id)
            uow.integrity.assign_category(recipe, category_id)
            uow.record("recipe", "updated", recipe_id)
            snapshot = uow.recipe_snapshot(recipe_id)

        return snapshot

    def delete_recipe(self, recipe_id: int) -> int:
        """
        Delete a recipe together with its ingredient lines.

        Returns the number of lines removed.
        """
        with self._transaction("delete_recipe") as uow:
            removed = uow.integrity.delete_recipe(recipe_id)
            uow.record("recipe", "deleted", recipe_id)

        return removed

    # ==========================================
    # Recipe Ingredient Lines
    # ==========================================

    def set_recipe_ingredients(
        self,
        recipe_id: int,
        lines: Iterable[LineInput]
    ) -> RecipeSnapshot:
        """
        Atomically replace a recipe's whole ingredient list.

        The new lines take the order given. If any referenced ingredient
        is missing the call fails and the old list stays as it was.
        """
        parsed = [
            check_line(parse_input(RecipeIngredientInput, line), self.settings)
            for line in lines
        ]

        with self._transaction("set_recipe_ingredients") as uow:
            uow.integrity.replace_lines(recipe_id, parsed)
            uow.record("recipe", "updated", recipe_id)
            snapshot = uow.recipe_snapshot(recipe_id)

        return snapshot

    def add_recipe_ingredient(
        self,
        recipe_id: int,
        ingredient_id: Optional[int],
        quantity: str = ""
    ) -> RecipeSnapshot:
        """Append one ingredient line to the end of a recipe."""
        line = parse_input(
            RecipeIngredientInput, ingredient_id=ingredient_id, quantity=quantity
        )
        check_line(line, self.settings)

        with self._transaction("add_recipe_ingredient") as uow:
            uow.recipes.require(recipe_id)
            uow.integrity.require_ingredients([line.ingredient_id])
            uow.recipes.add_line(recipe_id, line.ingredient_id, line.quantity)
            uow.record("recipe", "updated", recipe_id)
            snapshot = uow.recipe_snapshot(recipe_id)

        return snapshot

    def update_recipe_ingredient(
        self,
        line_id: int,
        quantity: Optional[str] = None,
        ingredient_id: Optional[int] = _UNSET
    ) -> RecipeSnapshot:
        """
        Edit one line's quantity and/or swap its ingredient.

        Pass ingredient_id=None explicitly to clear the reference.
        """
        changes: dict[str, Any] = {}
        if quantity is not None:
            changes["quantity"] = quantity
        if ingredient_id is not _UNSET:
            changes["ingredient_id"] = ingredient_id
        if not changes:
            raise ValidationError("line", "nothing to update")
        parsed = parse_input(RecipeIngredientInput, **changes)
        check_line(parsed, self.settings)

        with self._transaction("update_recipe_ingredient") as uow:
            line = uow.recipes.require_line(line_id)
            if "quantity" in changes:
                line.Quantity = parsed.quantity
            if "ingredient_id" in changes:
                uow.integrity.assign_ingredient(line, parsed.ingredient_id)
            uow.record("recipe", "updated", line.RecipeId)
            snapshot = uow.recipe_snapshot(line.RecipeId)

        return snapshot

    def remove_recipe_ingredient(self, line_id: int) -> RecipeSnapshot:
        """Remove one line; the lines after it move up."""
        with self._transaction("remove_recipe_ingredient") as uow:
            recipe_id = uow.recipes.require_line(line_id).RecipeId
            uow.recipes.delete_line(line_id)
            uow.integrity.compact_lines(recipe_id)
            uow.record("recipe", "updated", recipe_id)
            snapshot = uow.recipe_snapshot(recipe_id)

        return snapshot

    def reorder_recipe_ingredients(
        self,
        recipe_id: int,
        line_ids: Iterable[int]
    ) -> RecipeSnapshot:
        """
        Put a recipe's lines in a new order.

        line_ids must list every current line of the recipe exactly once.
        """
        line_ids = list(line_ids)
        if len(set(line_ids)) != len(line_ids):
            raise ValidationError("line_ids", "must not contain duplicates")

        with self._transaction("reorder_recipe_ingredients") as uow:
            uow.recipes.require(recipe_id)
            lines = {line.RecipeIngredientId: line for line in uow.recipes.get_lines(recipe_id)}
            if set(line_ids) != set(lines):
                raise ValidationError(
                    "line_ids", f"must be a permutation of {sorted(lines)}"
                )
            uow.recipes.renumber_lines([lines[line_id] for line_id in line_ids])
            uow.record("recipe", "updated", recipe_id)
            snapshot = uow.recipe_snapshot(recipe_id)

        return snapshot
