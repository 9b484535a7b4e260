# pantryreco/core/lifespan.py
from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from pymongo.errors import PyMongoError

from pantryreco.db import mongo
from pantryreco.core.config import get_settings
from pantryreco.domain.repositories.recipe_search_repo import RecipeSearchRepo

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()

    # --- Startup ---
    if settings.MONGO_URI:
        await mongo.connect()
        repo = RecipeSearchRepo(
            mongo.get_db(),
            collection_name=settings.recipes_collection,
            index_name=settings.recipes_search_index,
        )
        try:
            await repo.ensure_search_index()
        except PyMongoError as e:
            # index may be managed outside the app (Atlas UI, terraform...)
            logger.error(f"Could not ensure search index '{settings.recipes_search_index}': {e}")
    else:
        logger.warning("No MONGO_URI provided, skipping Mongo connection")

    yield

    # --- Shutdown ---
    if settings.MONGO_URI:
        await mongo.disconnect()
        logger.info("Mongo disconnected")
