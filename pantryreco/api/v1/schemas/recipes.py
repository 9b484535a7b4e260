# pantryreco/api/v1/schemas/recipes.py
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from pantryreco.domain.models.stock import StockEntry, UserPreferences


class DiscoverRequest(BaseModel):
    preferences: UserPreferences = Field(default_factory=UserPreferences)
    stock: List[StockEntry] = Field(default_factory=list)

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @field_validator("preferences", mode="before")
    @classmethod
    def _lenient_preferences(cls, v):
        # null, JSON string or object; garbage -> no preferences
        return UserPreferences.from_raw(v)

    @field_validator("stock", mode="before")
    @classmethod
    def _lenient_stock(cls, v):
        if v is None or not isinstance(v, list):
            return []
        return [s for s in v if isinstance(s, (dict, StockEntry))]


class RelevantRequest(DiscoverRequest):
    query: Optional[str] = None


class SearchRequest(DiscoverRequest):
    query: str = Field(min_length=1)

    @field_validator("query")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("query must not be blank")
        return v.strip()


class IndexResult(BaseModel):
    id: str
    indexed: bool
    ingredients_count: int = 0

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
