# pantryreco/api/v1/routers/index.py
from fastapi import APIRouter, Depends, HTTPException
import logging

from pantryreco.api.deps import recipe_search_repo
from pantryreco.api.v1.schemas.recipes import IndexResult
from pantryreco.domain.models.recipe import Recipe
from pantryreco.domain.services.recipe_index_svc import index_recipe, remove_recipe

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/recipes/index", tags=["index"])


@router.put("", response_model=IndexResult, response_model_by_alias=True)
async def upsert_recipe(recipe: Recipe, repo = Depends(recipe_search_repo)):
    """Recipe created/updated upstream: (re)project it into the search index."""
    doc = await index_recipe(repo, recipe)
    return IndexResult(id=doc.id, indexed=True, ingredients_count=doc.ingredients_count)


@router.delete("/{recipe_id}", response_model=IndexResult, response_model_by_alias=True)
async def delete_recipe(recipe_id: str, repo = Depends(recipe_search_repo)):
    """Recipe deleted upstream: drop its search document."""
    if not await remove_recipe(repo, recipe_id):
        raise HTTPException(status_code=404, detail=f"Recipe {recipe_id} is not indexed")
    return IndexResult(id=recipe_id, indexed=False)
