# pantryreco/domain/services/recipe_index_svc.py
import logging

from pantryreco.domain.models.recipe import Recipe, RecipeDocument
from pantryreco.domain.services.recipe_projector import project

logger = logging.getLogger(__name__)


async def index_recipe(search_repo, recipe: Recipe) -> RecipeDocument:
    """Recipe created or updated: project it and upsert the search document."""
    document = project(recipe)
    logger.info(f"Indexing recipe id={recipe.id} name={recipe.name!r} ingredients={document.ingredients_count}")
    logger.debug(f"Indexed document: {document.to_mongo()}")
    await search_repo.upsert(document)
    return document


async def remove_recipe(search_repo, recipe_id: str) -> bool:
    """Recipe deleted: drop its search document. Returns False if it was not indexed."""
    removed = await search_repo.delete(recipe_id)
    if removed:
        logger.info(f"Removed recipe id={recipe_id} from index")
    else:
        logger.warning(f"Recipe id={recipe_id} was not in the index")
    return removed
