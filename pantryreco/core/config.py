# pantryreco/core/config.py
from functools import lru_cache
from typing import Literal
import os
from pydantic_settings import BaseSettings, SettingsConfigDict

from pantryreco.domain.models.scoring import ModeWeights, ScoringConfig

EnvName = Literal["development", "production"]

def _env_file_for(app_env: EnvName) -> str:
    return ".env.development" if app_env == "development" else ".env.production"

class Settings(BaseSettings):

    # Core
    APP_ENV: EnvName = "development"
    APP_NAME: str = "PantryReco"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    GIT_SHA: str = "unknown"

    # Mongo / Atlas Search
    MONGO_URI: str = ""
    MONGO_DB: str = "pantry"
    recipes_collection: str = "recipes"
    recipes_search_index: str = "recipes_index"

    # Search round trip
    search_timeout_ms: int = 5000           # maxTimeMS on the $search aggregation
    search_candidate_k: int = 100           # candidates kept after the in-pipeline ranking
    search_page_size: int = 20              # results returned after collapse
    makeable_stock_limit: int = 1000

    # Scoring weights (function_score style: sum functions, multiply onto base)
    discover_urgency_weight: float = 5.0
    discover_availability_weight: float = 1.5
    search_urgency_weight: float = 1.2
    search_availability_weight: float = 1.5

    # Base query boosts
    name_boost: float = 3.0
    description_boost: float = 1.0
    ingredient_name_boost: float = 2.0
    preferred_category_boost: float = 1.0
    fuzzy_max_edits: int = 1
    fuzzy_prefix_length: int = 3

    collapse_by_name: bool = True

    # pydantic-settings config will be set dynamically in the factory below
    model_config = SettingsConfigDict(env_file=None, case_sensitive=True)

@lru_cache
def get_settings() -> Settings:
    """
    Factory that chooses the right .env file based on APP_ENV.
    Cache makes it cheap to inject via FastAPI dependencies.
    """
    app_env: EnvName = os.getenv("APP_ENV", "development")  # earliest switch
    env_file = _env_file_for(app_env)
    return Settings(
                _env_file=env_file,  # load .env.development or .env.production
                _env_file_encoding="utf-8"
    )


def get_scoring_config() -> ScoringConfig:
    """Builds the scoring constants from settings so every call site shares one struct."""
    s = get_settings()
    return ScoringConfig(
        discover=ModeWeights(urgency=s.discover_urgency_weight, availability=s.discover_availability_weight),
        search=ModeWeights(urgency=s.search_urgency_weight, availability=s.search_availability_weight),
        name_boost=s.name_boost,
        description_boost=s.description_boost,
        ingredient_name_boost=s.ingredient_name_boost,
        preferred_category_boost=s.preferred_category_boost,
        fuzzy_max_edits=s.fuzzy_max_edits,
        fuzzy_prefix_length=s.fuzzy_prefix_length,
        collapse_by_name=s.collapse_by_name,
    )
