# pantryreco/api/v1/routers/recipes.py
from fastapi import APIRouter, Depends
import logging

from pantryreco.api.deps import recipe_search_repo, scoring_config
from pantryreco.api.v1.schemas.recipes import DiscoverRequest, RelevantRequest, SearchRequest
from pantryreco.core.config import Settings, get_settings
from pantryreco.domain.models.recipe import RecipeSearchResult
from pantryreco.domain.services.recipe_discovery_svc import (
    discover_recipes,
    makeable_recipes,
    relevant_recipes,
    search_recipes,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/recipes", tags=["recipes"])


def _paging(settings: Settings) -> dict:
    return {"candidate_k": settings.search_candidate_k, "page_size": settings.search_page_size}


@router.post("/discover", response_model=RecipeSearchResult, response_model_by_alias=True)
async def discover(
    body: DiscoverRequest,
    repo = Depends(recipe_search_repo),
    config = Depends(scoring_config),
    settings: Settings = Depends(get_settings),
):
    """Stock-driven browsing: preferred categories x (urgency*5 + availability*1.5)."""
    logger.info(f"Request: discover stock={len(body.stock)}")
    return await discover_recipes(
        repo, preferences=body.preferences, stock=body.stock, config=config, **_paging(settings)
    )


@router.post("/search", response_model=RecipeSearchResult, response_model_by_alias=True)
async def search(
    body: SearchRequest,
    repo = Depends(recipe_search_repo),
    config = Depends(scoring_config),
    settings: Settings = Depends(get_settings),
):
    """Fuzzy text search with allergen exclusion, re-ranked by stock."""
    logger.info(f"Request: search query={body.query!r} stock={len(body.stock)}")
    return await search_recipes(
        repo, query_text=body.query, preferences=body.preferences, stock=body.stock, config=config, **_paging(settings)
    )


@router.post("/relevant", response_model=RecipeSearchResult, response_model_by_alias=True)
async def relevant(
    body: RelevantRequest,
    repo = Depends(recipe_search_repo),
    config = Depends(scoring_config),
    settings: Settings = Depends(get_settings),
):
    """Search when `query` is non-blank, discover otherwise."""
    return await relevant_recipes(
        repo, query_text=body.query, preferences=body.preferences, stock=body.stock, config=config, **_paging(settings)
    )


@router.post("/makeable", response_model=RecipeSearchResult, response_model_by_alias=True)
async def makeable(
    body: DiscoverRequest,
    repo = Depends(recipe_search_repo),
    config = Depends(scoring_config),
    settings: Settings = Depends(get_settings),
):
    """Recipes fully covered by the given stock."""
    stock = body.stock[: settings.makeable_stock_limit]
    logger.info(f"Request: makeable stock={len(stock)}")
    return await makeable_recipes(
        repo, preferences=body.preferences, stock=stock, config=config, **_paging(settings)
    )
