# pantryreco/domain/repositories/recipe_search_repo.py
from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional, Tuple

from motor.motor_asyncio import AsyncIOMotorCollection, AsyncIOMotorDatabase
from pydantic import ValidationError
from pymongo.errors import ExecutionTimeout, OperationFailure, PyMongoError
from pymongo.operations import SearchIndexModel

from pantryreco.domain.errors import MalformedSearchQuery, SearchBackendUnavailable
from pantryreco.domain.models.recipe import RecipeDocument
from pantryreco.domain.services.recipe_queries import BASE_FIELD

logger = logging.getLogger(__name__)

_STRING_FR = {"type": "string", "analyzer": "lucene.french"}

RECIPE_SEARCH_MAPPING: Dict[str, Any] = {
    "mappings": {
        "dynamic": False,
        "fields": {
            "id": {"type": "token"},
            "name": {
                **_STRING_FR,
                # exact-name sub-field, used for collapse / exact lookups
                "multi": {"keyword": {"type": "string", "analyzer": "lucene.keyword"}},
            },
            "description": _STRING_FR,
            "categories": _STRING_FR,
            "ingredientsCount": {"type": "number"},
            "ingredients": {
                "type": "embeddedDocuments",
                "dynamic": False,
                "fields": {
                    "id": {"type": "token"},
                    "name": _STRING_FR,
                    "quantity": {"type": "number"},
                    "unit": {"type": "token"},
                    "productId": {"type": "token"},
                    "normalizedQuantity": {"type": "number"},
                    "baseUnitFamily": {"type": "token"},
                },
            },
        },
    }
}

_PROJECTION = {
    "_id": 0,
    "id": 1,
    "name": 1,
    "description": 1,
    "categories": 1,
    "ingredientsCount": 1,
    "ingredients": 1,
    "score": f"${BASE_FIELD}",
    "meta": "$_meta",
}


class RecipeSearchRepo:
    """
    Recipe documents + Atlas Search index ('recipes_index') on the 'recipes' collection.
    One `search` call = one aggregation round trip, bounded by maxTimeMS, no retry.
    """

    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        collection_name: str = "recipes",
        index_name: str = "recipes_index",
        timeout_ms: int = 5000,
    ):
        self.col: AsyncIOMotorCollection = db[collection_name]
        self.index_name = index_name
        self.timeout_ms = timeout_ms

    # ---------- Query ----------
    async def search(
        self,
        query: Dict[str, Any],
        limit: int,
        rank_stages: Optional[List[Dict[str, Any]]] = None,
    ) -> Tuple[int, List[Tuple[RecipeDocument, float]]]:
        """
        Runs `$search` with the given operator and returns (total matches, [(document, base score)]).
        The total comes from $$SEARCH_META so it counts every match, not only the returned page.
        `rank_stages` run over every match before the limit, they may read the base score
        from `_base`.
        """
        pipeline: List[Dict[str, Any]] = [
            {"$search": {"index": self.index_name, **query, "count": {"type": "total"}}},
            {"$addFields": {BASE_FIELD: {"$meta": "searchScore"}, "_meta": "$$SEARCH_META"}},
            *(rank_stages or []),
            {"$limit": limit},
            {"$project": _PROJECTION},
        ]
        logger.debug(f"Atlas $search pipeline: {pipeline}")

        try:
            cursor = self.col.aggregate(pipeline, maxTimeMS=self.timeout_ms)
            raw = [doc async for doc in cursor]
        except ExecutionTimeout as e:
            raise SearchBackendUnavailable(f"Search timed out after {self.timeout_ms}ms") from e
        except OperationFailure as e:
            raise MalformedSearchQuery(f"Search backend rejected the query: {e}") from e
        except PyMongoError as e:
            raise SearchBackendUnavailable(f"Search backend unreachable: {e}") from e

        total = self._total_from_meta(raw[0].get("meta")) if raw else 0
        hits: List[Tuple[RecipeDocument, float]] = []
        for doc in raw:
            score = float(doc.pop("score", 0) or 0)
            doc.pop("meta", None)
            try:
                hits.append((RecipeDocument.model_validate(doc), score))
            except ValidationError as e:
                logger.warning(f"Skipping malformed recipe document id={doc.get('id')}: {e}")
        return total, hits

    @staticmethod
    def _total_from_meta(meta: Optional[Dict[str, Any]]) -> int:
        if not isinstance(meta, dict):
            return 0
        count = meta.get("count") or {}
        return int(count.get("total", count.get("lowerBound", 0)) or 0)

    # ---------- Index lifecycle ----------
    async def upsert(self, document: RecipeDocument) -> None:
        try:
            await self.col.replace_one({"id": document.id}, document.to_mongo(), upsert=True)
        except PyMongoError as e:
            raise SearchBackendUnavailable(f"Failed to index recipe {document.id}: {e}") from e

    async def delete(self, recipe_id: str) -> bool:
        try:
            res = await self.col.delete_one({"id": recipe_id})
        except PyMongoError as e:
            raise SearchBackendUnavailable(f"Failed to remove recipe {recipe_id}: {e}") from e
        return res.deleted_count > 0

    async def ensure_search_index(self) -> bool:
        """Creates the Atlas Search index if missing. Returns True when it was created."""
        existing = [ix async for ix in self.col.list_search_indexes(self.index_name)]
        if existing:
            logger.info(f"Search index '{self.index_name}' already present")
            return False
        await self.col.create_search_index(
            SearchIndexModel(definition=RECIPE_SEARCH_MAPPING, name=self.index_name)
        )
        logger.info(f"Search index '{self.index_name}' created")
        return True
