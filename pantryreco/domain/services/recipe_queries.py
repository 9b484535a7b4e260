# pantryreco/domain/services/recipe_queries.py
"""
Atlas Search compound queries for the recipes index.

The compound only produces the *base* relevance score. Availability and urgency are
compiled into aggregation stages (`rank_stages`) that run right after `$search`, so
the candidate page is the best of every match and not an arbitrary slice. Empty
clause lists are never emitted: Atlas rejects `filter: []` and friends.
"""
from typing import Any, Callable, Dict, List, Sequence

from pantryreco.domain.models.scoring import ScoringConfig
from pantryreco.domain.models.stock import UserPreferences
from pantryreco.domain.models.units import UnitFamily
from pantryreco.domain.services.constants import FN_AVAILABILITY, FN_URGENCY
from pantryreco.domain.services.scoring import ScoringContext, ScoringFunction, expiry_reward

INGREDIENTS_PATH = "ingredients"


def _constant(value: float) -> Dict[str, Any]:
    return {"constant": {"value": value}}


def _boost(value: float) -> Dict[str, Any]:
    return {"boost": {"value": value}}


def _embedded(operator: Dict[str, Any]) -> Dict[str, Any]:
    return {"embeddedDocument": {"path": INGREDIENTS_PATH, "operator": operator}}


def preferred_category_clauses(preferences: UserPreferences, config: ScoringConfig) -> List[Dict[str, Any]]:
    """
    One should-clause per preferred category, each worth a constant boost, so the
    compound score is boost * (number of matching categories).
    """
    seen = set()
    clauses = []
    for cat in preferences.preferred_categories:
        key = cat.lower()
        if key in seen:
            continue
        seen.add(key)
        clauses.append({
            "text": {
                "query": cat,
                "path": "categories",
                "score": _constant(config.preferred_category_boost),
            }
        })
    return clauses


def excluded_category_clauses(preferences: UserPreferences) -> List[Dict[str, Any]]:
    if not preferences.excluded_categories:
        return []
    return [{"text": {"query": list(preferences.excluded_categories), "path": "categories"}}]


def allergen_clauses(preferences: UserPreferences) -> List[Dict[str, Any]]:
    if not preferences.allergenes:
        return []
    return [_embedded({"text": {"query": list(preferences.allergenes), "path": f"{INGREDIENTS_PATH}.name"}})]


def in_stock_filter(product_ids: Sequence[str]) -> Dict[str, Any]:
    """At least one ingredient linked to a stocked product."""
    return _embedded({"in": {"path": f"{INGREDIENTS_PATH}.productId", "value": sorted(set(product_ids))}})


def discover_query(preferences: UserPreferences, config: ScoringConfig) -> Dict[str, Any]:
    """
    Browse mode. Base score = preferred-category matches; at least one must match
    when preferences are given. Without preferences every recipe scores 1.
    """
    compound: Dict[str, Any] = {}
    should = preferred_category_clauses(preferences, config)
    if should:
        compound["should"] = should
        compound["minimumShouldMatch"] = 1
    else:
        compound["must"] = [{"exists": {"path": "name", "score": _constant(1.0)}}]

    must_not = excluded_category_clauses(preferences)
    if must_not:
        compound["mustNot"] = must_not
    return {"compound": compound}


def search_query(text: str, preferences: UserPreferences, config: ScoringConfig) -> Dict[str, Any]:
    """
    Text mode. Fuzzy match on name (x3), description (x1) and ingredient names (x2);
    preferred categories add to the score; allergens and excluded categories exclude.
    """
    fuzzy = {"maxEdits": config.fuzzy_max_edits, "prefixLength": config.fuzzy_prefix_length}

    def _text(path: str, boost: float) -> Dict[str, Any]:
        return {"text": {"query": text, "path": path, "fuzzy": fuzzy, "score": _boost(boost)}}

    compound: Dict[str, Any] = {
        "must": [{
            "compound": {
                "should": [
                    _text("name", config.name_boost),
                    _text("description", config.description_boost),
                    _embedded(_text(f"{INGREDIENTS_PATH}.name", config.ingredient_name_boost)),
                ],
                "minimumShouldMatch": 1,
            }
        }]
    }

    should = preferred_category_clauses(preferences, config)
    if should:
        compound["should"] = should

    must_not = allergen_clauses(preferences) + excluded_category_clauses(preferences)
    if must_not:
        compound["mustNot"] = must_not
    return {"compound": compound}


def makeable_query(preferences: UserPreferences, config: ScoringConfig, product_ids: Sequence[str]) -> Dict[str, Any]:
    query = discover_query(preferences, config)
    query["compound"]["filter"] = [in_stock_filter(product_ids)]
    return query


# ---------- Ranking stages ----------
# Field names written by the repository / ranking stages on each candidate.
BASE_FIELD = "_base"
RANK_FIELD = "_rank"


def signal_field(name: str) -> str:
    return f"_{name}"


def availability_expression(context: ScoringContext) -> Dict[str, Any]:
    """
    Fraction of ingredients whose product is stocked in the same unit family with
    at least the normalized required quantity. No ingredients means 1.
    """
    stock = [
        {"p": pid, "f": family.value, "v": qty.value}
        for pid, families in sorted(context.snapshot.totals.items())
        for family, qty in families.items()
        if family != UnitFamily.UNKNOWN
    ]
    covered = {
        "$size": {
            "$filter": {
                "input": {"$ifNull": ["$ingredients", []]},
                "as": "ing",
                "cond": {
                    "$gt": [
                        {"$size": {
                            "$filter": {
                                "input": {"$literal": stock},
                                "as": "s",
                                "cond": {"$and": [
                                    {"$eq": ["$$s.p", "$$ing.productId"]},
                                    {"$eq": ["$$s.f", "$$ing.baseUnitFamily"]},
                                    {"$gte": ["$$s.v", "$$ing.normalizedQuantity"]},
                                ]},
                            }
                        }},
                        0,
                    ]
                },
            }
        }
    }
    return {
        "$cond": [
            {"$lte": [{"$ifNull": ["$ingredientsCount", 0]}, 0]},
            1.0,
            {"$divide": [covered, "$ingredientsCount"]},
        ]
    }


def urgency_expression(context: ScoringContext) -> Any:
    """
    Mean expiry reward over ingredients whose product has a known dlc. Rewards are
    computed here per product for `context.today`, the backend only averages them.
    """
    expiry = sorted(context.snapshot.expiry.items())
    if not expiry:
        return 0.0
    products = [pid for pid, _ in expiry]
    rewards = [expiry_reward(dlc, context.today) for _, dlc in expiry]
    matched = {
        "$filter": {
            "input": {"$ifNull": ["$ingredients", []]},
            "as": "ing",
            "cond": {"$in": ["$$ing.productId", {"$literal": products}]},
        }
    }
    return {
        "$ifNull": [
            {"$avg": {
                "$map": {
                    "input": matched,
                    "as": "ing",
                    "in": {"$arrayElemAt": [
                        {"$literal": rewards},
                        {"$indexOfArray": [{"$literal": products}, "$$ing.productId"]},
                    ]},
                }
            }},
            0.0,
        ]
    }


SIGNAL_EXPRESSIONS: Dict[str, Callable[[ScoringContext], Any]] = {
    FN_AVAILABILITY: availability_expression,
    FN_URGENCY: urgency_expression,
}


def rank_stages(
    functions: Sequence[ScoringFunction],
    context: ScoringContext,
    *,
    fully_available: bool = False,
) -> List[Dict[str, Any]]:
    """
    Stages inserted between `$search` and `$limit`: one field per scoring function,
    then max(0, base * sum(weight * value)) and a sort on it. With `fully_available`
    only candidates whose availability is 1 are kept.
    """
    stages: List[Dict[str, Any]] = [
        {"$addFields": {signal_field(fn.name): SIGNAL_EXPRESSIONS[fn.name](context) for fn in functions}},
    ]
    if fully_available:
        stages.append({"$match": {signal_field(FN_AVAILABILITY): {"$gte": 1.0}}})
    weighted = [{"$multiply": [fn.weight, f"${signal_field(fn.name)}"]} for fn in functions]
    stages.append({
        "$addFields": {RANK_FIELD: {"$max": [0, {"$multiply": [f"${BASE_FIELD}", {"$add": weighted}]}]}}
    })
    stages.append({"$sort": {RANK_FIELD: -1, BASE_FIELD: -1}})
    return stages
