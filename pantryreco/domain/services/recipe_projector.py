# pantryreco/domain/services/recipe_projector.py
from pantryreco.domain.models.recipe import IngredientDocument, Recipe, RecipeDocument
from pantryreco.domain.services import unit_conversion_svc as units


def project(recipe: Recipe) -> RecipeDocument:
    """
    Denormalize a recipe into its search document.
    Each ingredient carries its raw and normalized quantity plus the first linked
    product (extra linked products are not indexed).
    """
    ingredients = []
    for ing in recipe.ingredients:
        norm = units.normalize(ing.quantity, ing.unit)
        ingredients.append(
            IngredientDocument(
                id=ing.id,
                name=ing.name,
                quantity=ing.quantity,
                unit=ing.unit,
                product_id=ing.product_ids[0] if ing.product_ids else None,
                normalized_quantity=norm.value,
                base_unit_family=norm.family,
            )
        )

    return RecipeDocument(
        id=recipe.id,
        name=recipe.name,
        description=recipe.description,
        categories=list(recipe.categories),
        ingredients_count=len(ingredients),
        ingredients=ingredients,
    )
