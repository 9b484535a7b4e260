# pantryreco/domain/services/scoring.py
"""
Ranking core.

Two per-document signals are computed from the caller's stock:
  - availability: fraction of the recipe's ingredients covered by stock, in [0, 1]
  - urgency: mean reward for ingredients about to expire, in [-1, 0.5]

They are exposed as ScoringFunction objects (name, weight, evaluate). A query mode
attaches both with its own weights; the weighted values are summed and the sum is
multiplied onto the backend's base relevance score (function_score semantics:
score_mode=sum, boost_mode=multiply). Results are then collapsed by exact name.

The same functions are compiled into the search aggregation (recipe_queries.rank_stages)
so the backend picks the best candidates over every match; `evaluate` here recomputes
the exact values on the returned page.
"""
from __future__ import annotations
from abc import ABC, abstractmethod
from datetime import date
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict

from pantryreco.domain.models.recipe import RecipeDocument, ScoredRecipe, ScoreSignals
from pantryreco.domain.models.scoring import ModeWeights, ScoringConfig
from pantryreco.domain.models.stock import StockSnapshot, UserPreferences
from pantryreco.domain.services import unit_conversion_svc as units
from pantryreco.domain.services.constants import (
    FN_AVAILABILITY,
    FN_URGENCY,
    MODE_DISCOVER,
    MODE_MAKEABLE,
    MODE_SEARCH,
)


class ScoringContext(BaseModel):
    snapshot: StockSnapshot
    today: date

    model_config = ConfigDict(frozen=True)


# ---------- Signals ----------

def availability_score(document: RecipeDocument, snapshot: StockSnapshot) -> float:
    # the denominator counts unlinked ingredients too: they are never "available"
    if document.ingredients_count == 0:
        return 1.0
    available = 0
    for ing in document.ingredients:
        if not ing.product_id:
            continue
        stock_qty = snapshot.available(ing.product_id, ing.base_unit_family)
        if units.is_sufficient(stock_qty, ing.requirement):
            available += 1
    return available / document.ingredients_count


def expiry_reward(dlc: date, today: date) -> float:
    days_left = (dlc - today).days
    if days_left > 0:
        return 1.0 / (1.0 + days_left)
    return -1.0  # expired (or expiring today)


def urgency_score(document: RecipeDocument, expiry: Mapping[str, date], today: date) -> float:
    if not expiry:
        return 0.0
    rewards = [
        expiry_reward(expiry[ing.product_id], today)
        for ing in document.ingredients
        if ing.product_id and ing.product_id in expiry
    ]
    return sum(rewards) / len(rewards) if rewards else 0.0


def preference_matches(document: RecipeDocument, preferences: UserPreferences) -> int:
    """Number of preferred categories present on the recipe. Never negative."""
    if not preferences.preferred_categories:
        return 0
    recipe_cats = {c.strip().lower() for c in document.categories}
    return sum(1 for c in {p.lower() for p in preferences.preferred_categories} if c in recipe_cats)


def matched_preferences(
    document: RecipeDocument,
    base: float,
    *,
    mode: str,
    preferences: UserPreferences,
    config: ScoringConfig,
) -> int:
    """
    In discover and makeable modes the base score is exactly
    preferred_category_boost * (categories matched by the index analyzer), so the
    count is read back from it. Search mode mixes text relevance into the base and
    falls back to a case-insensitive comparison.
    """
    if not preferences.preferred_categories:
        return 0
    if mode != MODE_SEARCH and config.preferred_category_boost > 0:
        return max(0, int(round(base / config.preferred_category_boost)))
    return preference_matches(document, preferences)


# ---------- Scoring functions ----------

class ScoringFunction(ABC):
    """
    Backend-agnostic per-document scoring hook. The Atlas adapter compiles it into
    aggregation expressions by `name`; `evaluate` is the reference implementation.
    """
    name: str = ""

    def __init__(self, weight: float):
        self.weight = float(weight)

    @abstractmethod
    def evaluate(self, document: RecipeDocument, context: ScoringContext) -> float:
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}(weight={self.weight})"


class AvailabilityFunction(ScoringFunction):
    name = FN_AVAILABILITY

    def evaluate(self, document: RecipeDocument, context: ScoringContext) -> float:
        return availability_score(document, context.snapshot)


class UrgencyFunction(ScoringFunction):
    name = FN_URGENCY

    def evaluate(self, document: RecipeDocument, context: ScoringContext) -> float:
        return urgency_score(document, context.snapshot.expiry, context.today)


def mode_weights(mode: str, config: ScoringConfig) -> ModeWeights:
    if mode in (MODE_DISCOVER, MODE_MAKEABLE):
        return config.discover
    if mode == MODE_SEARCH:
        return config.search
    raise ValueError(f"Unknown query mode: {mode}")


def functions_for_mode(mode: str, config: ScoringConfig) -> List[ScoringFunction]:
    weights = mode_weights(mode, config)
    return [UrgencyFunction(weights.urgency), AvailabilityFunction(weights.availability)]


# ---------- Combination ----------

def combine(
    base: float,
    functions: Sequence[ScoringFunction],
    document: RecipeDocument,
    context: ScoringContext,
) -> Tuple[float, Dict[str, float]]:
    """Returns (final score, raw value per function name). Final score is floored at 0."""
    values = {fn.name: fn.evaluate(document, context) for fn in functions}
    summed = sum(fn.weight * values[fn.name] for fn in functions)
    return max(0.0, base * summed), values


def collapse_by_name(results: Iterable[ScoredRecipe]) -> List[ScoredRecipe]:
    """Keep the best-scoring document per exact name. Input order breaks ties."""
    ordered = sorted(results, key=lambda r: -r.score)
    seen = set()
    kept: List[ScoredRecipe] = []
    for r in ordered:
        if r.name in seen:
            continue
        seen.add(r.name)
        kept.append(r)
    return kept


def rank(
    hits: Iterable[Tuple[RecipeDocument, float]],
    *,
    mode: str,
    context: ScoringContext,
    config: ScoringConfig,
    preferences: Optional[UserPreferences] = None,
) -> List[ScoredRecipe]:
    """
    Score (document, base score) pairs for `mode` and return them best first,
    collapsed by name when the config asks for it.
    """
    preferences = preferences or UserPreferences()
    functions = functions_for_mode(mode, config)
    scored: List[ScoredRecipe] = []
    for doc, base in hits:
        score, values = combine(base, functions, doc, context)
        scored.append(
            ScoredRecipe(
                **doc.model_dump(),
                score=score,
                signals=ScoreSignals(
                    base=base,
                    availability=values[FN_AVAILABILITY],
                    urgency=values[FN_URGENCY],
                    preference_matches=matched_preferences(
                        doc, base, mode=mode, preferences=preferences, config=config
                    ),
                ),
            )
        )
    if config.collapse_by_name:
        return collapse_by_name(scored)
    return sorted(scored, key=lambda r: -r.score)
