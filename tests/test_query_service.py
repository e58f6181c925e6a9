import dataclasses

import pytest

from models.errors import NotFoundError, ValidationError
from services.query_service import (
    RecipeSort,
    fold_text,
    matches_search,
    parse_sort,
    sort_recipes,
)


@pytest.fixture
def recipes(catalog):
    """Recipes with tied serving and time values."""
    soup = catalog.create_recipe(name="Carrot Soup", summary="Warm and creamy", serving=2, time=40)
    pie = catalog.create_recipe(name="Apple Pie", summary="Classic dessert", serving=4, time=90)
    bread = catalog.create_recipe(name="Banana Bread", summary="Uses ripe bananas", serving=4, time=40)
    brulee = catalog.create_recipe(name="Crème brûlée", summary="French dessert", serving=6, time=60)
    return {"soup": soup, "pie": pie, "bread": bread, "brulee": brulee}


def names(items):
    return [item.name for item in items]


# =============================================================================
# Search helpers
# =============================================================================

def test_fold_text_ignores_case_and_accents():
    assert fold_text("Crème BRÛLÉE") == "creme brulee"


def test_matches_search_empty_matches_everything():
    assert matches_search("", "anything")
    assert matches_search(None, "")


def test_matches_search_any_field():
    assert matches_search("dessert", "Apple Pie", "Classic dessert")
    assert not matches_search("soup", "Apple Pie", "Classic dessert")


def test_parse_sort_accepts_strings_and_rejects_unknown():
    assert parse_sort("serving_desc") is RecipeSort.SERVING_DESC
    assert parse_sort(None) is RecipeSort.NAME
    with pytest.raises(ValidationError) as exc:
        parse_sort("rating")
    assert exc.value.field == "sort"


# =============================================================================
# Recipes
# =============================================================================

def test_default_listing_is_name_ascending(catalog, recipes):
    assert names(catalog.queries.list_recipes()) == [
        "Apple Pie", "Banana Bread", "Carrot Soup", "Crème brûlée"
    ]


def test_empty_filter_returns_everything(catalog, recipes):
    everything = catalog.queries.list_recipes()

    assert catalog.queries.list_recipes(search="") == everything
    assert len(everything) == catalog.queries.count_recipes()


def test_search_matches_name_or_summary(catalog, recipes):
    assert names(catalog.queries.list_recipes(search="DESSERT")) == ["Apple Pie", "Crème brûlée"]
    assert names(catalog.queries.list_recipes(search="bread")) == ["Banana Bread"]
    assert names(catalog.queries.list_recipes(search="creamy")) == ["Carrot Soup"]
    assert catalog.queries.list_recipes(search="lasagna") == []


def test_search_ignores_accents(catalog, recipes):
    assert names(catalog.queries.list_recipes(search="creme")) == ["Crème brûlée"]


def test_serving_ascending_breaks_ties_by_name(catalog, recipes):
    ordered = catalog.queries.list_recipes(sort=RecipeSort.SERVING_ASC)

    assert [(r.name, r.serving) for r in ordered] == [
        ("Carrot Soup", 2),
        ("Apple Pie", 4),
        ("Banana Bread", 4),
        ("Crème brûlée", 6),
    ]


def test_serving_descending_keeps_name_order_for_ties(catalog, recipes):
    ordered = catalog.queries.list_recipes(sort="serving_desc")

    assert names(ordered) == ["Crème brûlée", "Apple Pie", "Banana Bread", "Carrot Soup"]


def test_time_sorts(catalog, recipes):
    assert names(catalog.queries.list_recipes(sort=RecipeSort.TIME_ASC)) == [
        "Banana Bread", "Carrot Soup", "Crème brûlée", "Apple Pie"
    ]
    assert names(catalog.queries.list_recipes(sort=RecipeSort.TIME_DESC)) == [
        "Apple Pie", "Crème brûlée", "Banana Bread", "Carrot Soup"
    ]


def test_filter_and_sort_combined(catalog, recipes):
    ordered = catalog.queries.list_recipes(search="dessert", sort=RecipeSort.SERVING_DESC)

    assert names(ordered) == ["Crème brûlée", "Apple Pie"]


def test_unknown_sort_is_rejected(catalog, recipes):
    with pytest.raises(ValidationError):
        catalog.queries.list_recipes(sort="popularity")


def test_sort_recipes_does_not_modify_input(catalog, recipes):
    listed = catalog.queries.list_recipes(sort=RecipeSort.TIME_DESC)
    before = list(listed)

    sort_recipes(listed, RecipeSort.SERVING_ASC)

    assert listed == before


def test_get_recipe(catalog, recipes):
    snapshot = catalog.queries.get_recipe(recipes["pie"].id)

    assert snapshot == recipes["pie"]
    with pytest.raises(NotFoundError):
        catalog.queries.get_recipe(12345)


def test_snapshots_are_read_only(catalog, recipes):
    snapshot = catalog.queries.get_recipe(recipes["pie"].id)

    with pytest.raises(dataclasses.FrozenInstanceError):
        snapshot.name = "Changed"
    assert catalog.queries.get_recipe(recipes["pie"].id).name == "Apple Pie"


# =============================================================================
# Categories & Ingredients
# =============================================================================

def test_list_categories_sorted_and_filtered(catalog):
    for name in ["Soups", "Desserts", "Italian", "Breakfast"]:
        catalog.create_category(name)

    assert names(catalog.queries.list_categories()) == ["Breakfast", "Desserts", "Italian", "Soups"]
    assert names(catalog.queries.list_categories(search="S")) == ["Breakfast", "Desserts", "Soups"]
    assert names(catalog.queries.list_categories(search="")) == names(catalog.queries.list_categories())


def test_list_ingredients_sorted_and_filtered(catalog):
    for name in ["Sugar", "Flour", "Brown sugar", "Butter"]:
        catalog.create_ingredient(name)

    assert names(catalog.queries.list_ingredients()) == ["Brown sugar", "Butter", "Flour", "Sugar"]
    assert names(catalog.queries.list_ingredients(search="SUGAR")) == ["Brown sugar", "Sugar"]


def test_get_category_and_ingredient(catalog):
    italian = catalog.create_category("Italian")
    flour = catalog.create_ingredient("Flour")

    assert catalog.queries.get_category(italian.id) == italian
    assert catalog.queries.get_ingredient(flour.id) == flour
    with pytest.raises(NotFoundError):
        catalog.queries.get_category(999)
    with pytest.raises(NotFoundError):
        catalog.queries.get_ingredient(999)


def test_recipes_in_category_is_derived(catalog):
    italian = catalog.create_category("Italian")
    catalog.create_recipe(name="Risotto", category_id=italian.id)
    catalog.create_recipe(name="Lasagna", category_id=italian.id)
    catalog.create_recipe(name="Pancakes")

    assert names(catalog.queries.recipes_in_category(italian.id)) == ["Lasagna", "Risotto"]
    assert names(catalog.queries.uncategorized_recipes()) == ["Pancakes"]
    with pytest.raises(NotFoundError):
        catalog.queries.recipes_in_category(999)


def test_recipes_using_ingredient(catalog):
    flour = catalog.create_ingredient("Flour")
    catalog.create_recipe(name="Bread", ingredients=[{"ingredient_id": flour.id, "quantity": "500 g"}])
    catalog.create_recipe(name="Salad")

    assert names(catalog.queries.recipes_using_ingredient(flour.id)) == ["Bread"]
