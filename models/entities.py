"""
SQLAlchemy ORM Entity Models

These models represent the catalog tables. Every relationship is stored
once, as a forward foreign key; the ORM relationships declared here are
read-only conveniences for loading and never used to write.

Delete rules (applied explicitly by services.integrity_service, with the
ON DELETE clauses as a database-level backstop):
- Category deleted   -> Recipe.CategoryId set to NULL
- Recipe deleted     -> its RecipeIngredient rows deleted
- Ingredient deleted -> RecipeIngredient.IngredientId set to NULL

Table Relationships:
    Category (0..1) <── (*) Recipe (1) ──> (*) RecipeIngredient ──> (0..1) Ingredient
"""

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    LargeBinary,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from config.database import Base


class Category(Base):
    """
    A named group of recipes ("Italian", "Desserts").

    The recipes in a category are found by querying Recipe.CategoryId;
    there is no stored list on this side.
    """
    __tablename__ = "Categories"

    CategoryId = Column(Integer, primary_key=True, autoincrement=True)
    Name = Column(String(200), nullable=False, unique=True)


class Ingredient(Base):
    """
    Normalized ingredient names shared by all recipes.
    """
    __tablename__ = "Ingredients"

    IngredientId = Column(Integer, primary_key=True, autoincrement=True)
    Name = Column(String(200), nullable=False, unique=True)


class Recipe(Base):
    """
    Recipe metadata and the central entity in the domain model.

    A recipe owns its RecipeIngredient lines and optionally points at
    one Category.
    """
    __tablename__ = "Recipes"
    __table_args__ = (
        CheckConstraint("Serving >= 1", name="ck_recipes_serving_positive"),
        CheckConstraint("Time >= 1", name="ck_recipes_time_positive"),
    )

    RecipeId = Column(Integer, primary_key=True, autoincrement=True)
    Name = Column(String(200), nullable=False, unique=True)
    Summary = Column(Text, nullable=False, default="")
    Serving = Column(Integer, nullable=False, default=1)
    Time = Column(Integer, nullable=False, default=5)  # Minutes
    Instructions = Column(Text, nullable=False, default="")
    ImageData = Column(LargeBinary, nullable=True)
    CategoryId = Column(
        Integer,
        ForeignKey("Categories.CategoryId", ondelete="SET NULL"),
        nullable=True,
        index=True
    )
    CreatedDate = Column(DateTime, nullable=False, server_default=func.now())

    # Read-only relationships for eager loading
    category = relationship("Category", viewonly=True)
    ingredients = relationship(
        "RecipeIngredient",
        viewonly=True,
        order_by="RecipeIngredient.OrderIndex"
    )


class RecipeIngredient(Base):
    """
    Association between a recipe and an ingredient with a quantity.

    - Quantity is free text ("2 cups", "a pinch") and may be empty
    - IngredientId is NULL once the ingredient has been deleted
    - OrderIndex is the 0-based position of the line within its recipe
    """
    __tablename__ = "RecipeIngredients"

    RecipeIngredientId = Column(Integer, primary_key=True, autoincrement=True)
    RecipeId = Column(
        Integer,
        ForeignKey("Recipes.RecipeId", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    IngredientId = Column(
        Integer,
        ForeignKey("Ingredients.IngredientId", ondelete="SET NULL"),
        nullable=True,
        index=True
    )
    Quantity = Column(String(100), nullable=False, default="")
    OrderIndex = Column(Integer, nullable=False)

    recipe = relationship("Recipe", viewonly=True)
    ingredient = relationship("Ingredient", viewonly=True)
