# pantryreco/api/deps.py
from fastapi import Depends
from pantryreco.core.config import Settings, get_settings, get_scoring_config
from pantryreco.db.mongo import get_db
from pantryreco.domain.models.scoring import ScoringConfig
from pantryreco.domain.repositories.recipe_search_repo import RecipeSearchRepo

# Dependency for injecting the MongoDB database into endpoints/services
async def mongo_db(db = Depends(get_db)):
    return db

# Recipe search repository bound to the configured collection / Atlas index
async def recipe_search_repo(db = Depends(mongo_db), settings: Settings = Depends(get_settings)) -> RecipeSearchRepo:
    return RecipeSearchRepo(
        db,
        collection_name=settings.recipes_collection,
        index_name=settings.recipes_search_index,
        timeout_ms=settings.search_timeout_ms,
    )

def scoring_config() -> ScoringConfig:
    return get_scoring_config()
