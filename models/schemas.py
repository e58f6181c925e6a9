"""
Pydantic Schemas (input payloads)

These schemas define the data callers hand to the catalog when creating
or editing records. They handle type coercion and whitespace trimming;
range rules that depend on settings are checked by services.validation.

Naming Convention:
- *Input: data received from callers (create/update operations)
"""

from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, Field, StringConstraints

# Names are trimmed before any comparison or storage
Name = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class CategoryInput(BaseModel):
    """Category data for create and rename."""
    model_config = ConfigDict(frozen=True)

    name: Name = Field(..., description="Category name, unique")


class IngredientInput(BaseModel):
    """Ingredient data for create and rename."""
    model_config = ConfigDict(frozen=True)

    name: Name = Field(..., description="Ingredient name, unique")


class RecipeIngredientInput(BaseModel):
    """
    One ingredient line of a recipe.

    ingredient_id may be None to keep a line whose ingredient was
    deleted; the quantity is free text and may be empty.
    """
    model_config = ConfigDict(frozen=True)

    ingredient_id: Optional[int] = Field(None, description="Referenced ingredient")
    quantity: str = Field("", description="Amount, e.g. '2 cups'")


class RecipeInput(BaseModel):
    """
    Request body for creating or editing a recipe.

    Defaults mirror a freshly added recipe in the form. When ingredients
    is None on an edit the existing lines are left untouched; a list
    (even an empty one) replaces them.
    """
    model_config = ConfigDict(frozen=True)

    name: Name = Field(..., description="Recipe title, unique")
    summary: str = Field("", description="Short description of the dish")
    serving: int = Field(1, description="Number of servings")
    time: int = Field(5, description="Total time in minutes")
    instructions: str = Field("", description="Preparation instructions")
    image_data: Optional[bytes] = Field(None, description="Already decoded image blob")
    category_id: Optional[int] = Field(None, description="Owning category, if any")
    ingredients: Optional[list[RecipeIngredientInput]] = Field(
        None, description="Ordered ingredient lines"
    )
