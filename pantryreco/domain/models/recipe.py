# pantryreco/domain/models/recipe.py
from __future__ import annotations
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from pantryreco.domain.models.units import NormalizedQuantity, UnitFamily

_CAMEL = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------- Recipe aggregate (as handed over by the recipe lifecycle) ----------

class RecipeIngredientIn(BaseModel):
    id: str
    name: str
    quantity: float = 0.0
    unit: Optional[str] = None
    # products linked to the ingredient; only the first one is indexed
    product_ids: List[str] = Field(default_factory=list)

    model_config = _CAMEL


class Recipe(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    categories: List[str] = Field(default_factory=list)
    ingredients: List[RecipeIngredientIn] = Field(default_factory=list)

    model_config = _CAMEL

    @field_validator("categories", "ingredients", mode="before")
    @classmethod
    def _none_to_empty(cls, v):
        return [] if v is None else v


# ---------- Search index documents ----------

class IngredientDocument(BaseModel):
    id: str
    name: str
    quantity: float
    unit: Optional[str] = None
    product_id: Optional[str] = None
    normalized_quantity: float
    base_unit_family: UnitFamily

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    @property
    def requirement(self) -> NormalizedQuantity:
        return NormalizedQuantity(value=self.normalized_quantity, family=self.base_unit_family)


class RecipeDocument(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    categories: List[str] = Field(default_factory=list)
    ingredients_count: int = 0
    ingredients: List[IngredientDocument] = Field(default_factory=list)

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    def to_mongo(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


# ---------- Results ----------

class ScoreSignals(BaseModel):
    base: float = 0.0
    availability: float = 0.0
    urgency: float = 0.0
    preference_matches: int = 0

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class ScoredRecipe(RecipeDocument):
    score: float = Field(ge=0)
    signals: ScoreSignals = Field(default_factory=ScoreSignals)


class RecipeSearchResult(BaseModel):
    total: int
    results: List[ScoredRecipe]

    model_config = {"frozen": True}  # immuable = safe
