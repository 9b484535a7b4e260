# pantryreco/domain/services/recipe_discovery_svc.py
import logging
import time
from datetime import date
from typing import Iterable, List, Optional

from pantryreco.domain.models.recipe import RecipeDocument, RecipeSearchResult
from pantryreco.domain.models.scoring import ScoringConfig
from pantryreco.domain.models.stock import StockEntry, UserPreferences
from pantryreco.domain.services import recipe_queries
from pantryreco.domain.services.constants import MODE_DISCOVER, MODE_MAKEABLE, MODE_SEARCH
from pantryreco.domain.services.scoring import ScoringContext, availability_score, functions_for_mode, rank
from pantryreco.domain.services.stock_snapshot_svc import build_snapshot

logger = logging.getLogger(__name__)


def _has_allergen(doc: RecipeDocument, allergens: List[str]) -> bool:
    terms = [a.lower() for a in allergens]
    return any(t in ing.name.lower() for ing in doc.ingredients for t in terms)


async def _run(
    search_repo,
    *,
    mode: str,
    query: dict,
    preferences: UserPreferences,
    stock: Iterable[StockEntry],
    config: ScoringConfig,
    candidate_k: int,
    page_size: int,
    today: Optional[date],
) -> RecipeSearchResult:
    """
    Shared flow for every mode:
      1) snapshot the stock once
      2) one $search round trip: base score, total count, and the scoring
         functions compiled into the aggregation so the top `candidate_k` are
         chosen over every match
      3) exact signals recomputed on the candidates, sum then multiply onto base
      4) collapse by name, truncate to page_size
    Backend errors propagate as SearchBackendError subclasses.
    """
    start = time.perf_counter()
    snapshot = build_snapshot(stock)
    context = ScoringContext(snapshot=snapshot, today=today or date.today())

    stages = recipe_queries.rank_stages(
        functions_for_mode(mode, config), context, fully_available=mode == MODE_MAKEABLE
    )
    total, hits = await search_repo.search(query, limit=candidate_k, rank_stages=stages)

    if mode == MODE_SEARCH and preferences.allergenes:
        before = len(hits)
        hits = [(doc, base) for doc, base in hits if not _has_allergen(doc, preferences.allergenes)]
        if len(hits) != before:
            logger.warning(f"Dropped {before - len(hits)} candidates containing allergens missed by the index")

    if mode == MODE_MAKEABLE:
        hits = [(doc, base) for doc, base in hits if availability_score(doc, snapshot) >= 1.0]
        total = len(hits)

    results = rank(hits, mode=mode, context=context, config=config, preferences=preferences)[:page_size]

    logger.info(
        f"{mode}: stock_products={len(snapshot.totals)}, candidates={len(hits)}, total={total}, "
        f"returned={len(results)}, elapsed={time.perf_counter() - start:.4f}s"
    )
    return RecipeSearchResult(total=total, results=results)


async def discover_recipes(
    search_repo,
    *,
    preferences: Optional[UserPreferences],
    stock: Optional[Iterable[StockEntry]],
    config: ScoringConfig,
    candidate_k: int = 100,
    page_size: int = 20,
    today: Optional[date] = None,
) -> RecipeSearchResult:
    """Browse recipes ranked by preferred categories, urgency (x5) and availability (x1.5)."""
    preferences = preferences or UserPreferences()
    return await _run(
        search_repo,
        mode=MODE_DISCOVER,
        query=recipe_queries.discover_query(preferences, config),
        preferences=preferences,
        stock=stock or [],
        config=config,
        candidate_k=candidate_k,
        page_size=page_size,
        today=today,
    )


async def search_recipes(
    search_repo,
    *,
    query_text: str,
    preferences: Optional[UserPreferences],
    stock: Optional[Iterable[StockEntry]],
    config: ScoringConfig,
    candidate_k: int = 100,
    page_size: int = 20,
    today: Optional[date] = None,
) -> RecipeSearchResult:
    """Fuzzy text search, allergens excluded, re-ranked by urgency (x1.2) and availability (x1.5)."""
    text = (query_text or "").strip()
    if not text:
        raise ValueError("search_recipes requires a non-blank query")
    preferences = preferences or UserPreferences()
    return await _run(
        search_repo,
        mode=MODE_SEARCH,
        query=recipe_queries.search_query(text, preferences, config),
        preferences=preferences,
        stock=stock or [],
        config=config,
        candidate_k=candidate_k,
        page_size=page_size,
        today=today,
    )


async def relevant_recipes(search_repo, *, query_text: Optional[str], **kw) -> RecipeSearchResult:
    """Text search when a query is given, discovery otherwise."""
    if query_text and query_text.strip():
        logger.info(f"Text search with query={query_text.strip()!r}")
        return await search_recipes(search_repo, query_text=query_text, **kw)
    logger.info("Stock-based discovery")
    return await discover_recipes(search_repo, **kw)


async def makeable_recipes(
    search_repo,
    *,
    preferences: Optional[UserPreferences],
    stock: Optional[Iterable[StockEntry]],
    config: ScoringConfig,
    candidate_k: int = 100,
    page_size: int = 20,
    today: Optional[date] = None,
) -> RecipeSearchResult:
    """
    Recipes whose every ingredient is covered by stock, ranked like discovery.
    `total` counts the fully makeable candidates, before collapse.
    """
    preferences = preferences or UserPreferences()
    stock = list(stock or [])
    product_ids: List[str] = sorted({s.product_id for s in stock if s.product_id})
    if not product_ids:
        logger.info("makeable: no stocked products, skipping search")
        return RecipeSearchResult(total=0, results=[])

    return await _run(
        search_repo,
        mode=MODE_MAKEABLE,
        query=recipe_queries.makeable_query(preferences, config, product_ids),
        preferences=preferences,
        stock=stock,
        config=config,
        candidate_k=candidate_k,
        page_size=page_size,
        today=today,
    )
