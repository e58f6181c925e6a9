"""
Input validation - runs before anything is written.

Pydantic handles types and trimming; the rules that depend on settings
(name and quantity lengths, serving and time ranges) are checked here.
Every failure surfaces as models.errors.ValidationError.
"""

from typing import Any, Mapping, TypeVar, Union

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from config.settings import Settings
from models.errors import ValidationError
from models.schemas import RecipeIngredientInput, RecipeInput

SchemaT = TypeVar("SchemaT", bound=BaseModel)


def parse_input(
    schema: type[SchemaT],
    data: Union[SchemaT, Mapping[str, Any], None] = None,
    **fields: Any
) -> SchemaT:
    """
    Build a schema instance from a model, a mapping and/or keyword values.

    Keyword values override entries of data.
    """
    if isinstance(data, schema) and not fields:
        return data

    if isinstance(data, BaseModel):
        payload = data.model_dump()
    else:
        payload = dict(data or {})
    payload.update(fields)

    try:
        return schema.model_validate(payload)
    except PydanticValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first["loc"]) or schema.__name__
        raise ValidationError(field, first["msg"]) from e


def explicit_fields(data: Union[BaseModel, Mapping[str, Any], None]) -> dict[str, Any]:
    """The fields a caller actually supplied, without schema defaults."""
    if isinstance(data, BaseModel):
        return data.model_dump(exclude_unset=True)
    return dict(data or {})


def check_name(name: str, settings: Settings, field: str = "name") -> str:
    """Check an already trimmed name against the configured length."""
    if not name:
        raise ValidationError(field, "must not be empty")
    if len(name) > settings.max_name_length:
        raise ValidationError(
            field, f"must be at most {settings.max_name_length} characters"
        )
    return name


def check_range(value: int, low: int, high: int, field: str) -> int:
    if value < low or value > high:
        raise ValidationError(field, f"must be between {low} and {high}")
    return value


def check_line(
    line: RecipeIngredientInput,
    settings: Settings,
    field: str = "quantity"
) -> RecipeIngredientInput:
    """Check a line's free-text quantity against the configured length."""
    if len(line.quantity) > settings.max_quantity_length:
        raise ValidationError(
            field, f"must be at most {settings.max_quantity_length} characters"
        )
    return line


def check_recipe(data: RecipeInput, settings: Settings) -> RecipeInput:
    """Apply the settings-driven rules to a parsed recipe payload."""
    check_name(data.name, settings)
    check_range(data.serving, settings.min_serving, settings.max_serving, "serving")
    check_range(data.time, settings.min_time, settings.max_time, "time")
    for idx, line in enumerate(data.ingredients or []):
        check_line(line, settings, field=f"ingredients.{idx}.quantity")
    return data

