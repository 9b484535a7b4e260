from unittest.mock import AsyncMock, MagicMock

import pytest
from pymongo.errors import ExecutionTimeout, OperationFailure, ServerSelectionTimeoutError

from pantryreco.domain.errors import MalformedSearchQuery, SearchBackendUnavailable
from pantryreco.domain.repositories.recipe_search_repo import RECIPE_SEARCH_MAPPING, RecipeSearchRepo


class _Cursor:
    """Minimal async cursor: yields docs, or raises `error` on first iteration."""

    def __init__(self, docs=(), error=None):
        self._docs = list(docs)
        self._error = error

    def __aiter__(self):
        return self

    async def __anext__(self):
        if self._error:
            raise self._error
        if not self._docs:
            raise StopAsyncIteration
        return self._docs.pop(0)


def _repo(col):
    db = MagicMock()
    db.__getitem__.return_value = col
    return RecipeSearchRepo(db, collection_name="recipes", index_name="recipes_index", timeout_ms=1500)


def _raw(rid, name, score, total):
    return {
        "id": rid,
        "name": name,
        "categories": ["dinner"],
        "ingredientsCount": 1,
        "ingredients": [{
            "id": f"{rid}-i", "name": "leek", "quantity": 2, "unit": "piece", "productId": "p-leek",
            "normalizedQuantity": 2, "baseUnitFamily": "count",
        }],
        "score": score,
        "meta": {"count": {"total": total}},
    }


async def test_search_returns_total_from_meta_and_base_scores():
    col = MagicMock()
    col.aggregate.return_value = _Cursor([_raw("r1", "Soup", 2.5, 42), _raw("r2", "Stew", 1.0, 42)])
    repo = _repo(col)

    total, hits = await repo.search({"compound": {"must": []}}, limit=10)

    assert total == 42
    assert [(d.id, s) for d, s in hits] == [("r1", 2.5), ("r2", 1.0)]
    assert hits[0][0].ingredients[0].product_id == "p-leek"

    pipeline = col.aggregate.call_args.args[0]
    assert pipeline[0]["$search"]["index"] == "recipes_index"
    assert pipeline[0]["$search"]["count"] == {"type": "total"}
    assert pipeline[1] == {"$addFields": {"_base": {"$meta": "searchScore"}, "_meta": "$$SEARCH_META"}}
    assert pipeline[2] == {"$limit": 10}
    assert pipeline[3]["$project"]["score"] == "$_base"
    assert pipeline[3]["$project"]["meta"] == "$_meta"
    assert col.aggregate.call_args.kwargs["maxTimeMS"] == 1500


async def test_rank_stages_run_before_the_limit():
    col = MagicMock()
    col.aggregate.return_value = _Cursor([])
    stages = [{"$addFields": {"_rank": "$_base"}}, {"$sort": {"_rank": -1}}]

    await _repo(col).search({"compound": {}}, limit=7, rank_stages=stages)

    pipeline = col.aggregate.call_args.args[0]
    assert [next(iter(s)) for s in pipeline] == [
        "$search", "$addFields", "$addFields", "$sort", "$limit", "$project",
    ]
    assert pipeline[2:4] == stages


async def test_search_without_hits_reports_zero():
    col = MagicMock()
    col.aggregate.return_value = _Cursor([])
    total, hits = await _repo(col).search({"compound": {}}, limit=5)
    assert (total, hits) == (0, [])


async def test_malformed_documents_are_skipped():
    col = MagicMock()
    broken = _raw("r2", "x", 1.0, 2)
    del broken["name"]
    col.aggregate.return_value = _Cursor([_raw("r1", "Soup", 1.0, 2), broken])
    total, hits = await _repo(col).search({"compound": {}}, limit=5)
    assert total == 2
    assert [d.id for d, _ in hits] == ["r1"]


@pytest.mark.parametrize(
    "error, expected",
    [
        (OperationFailure("PlanExecutor error: unknown operator"), MalformedSearchQuery),
        (ExecutionTimeout("operation exceeded time limit", code=50), SearchBackendUnavailable),
        (ServerSelectionTimeoutError("no servers"), SearchBackendUnavailable),
    ],
)
async def test_backend_errors_are_typed(error, expected):
    col = MagicMock()
    col.aggregate.return_value = _Cursor(error=error)
    with pytest.raises(expected):
        await _repo(col).search({"compound": {}}, limit=5)


async def test_upsert_replaces_by_id(make_doc):
    col = MagicMock()
    col.replace_one = AsyncMock()
    doc = make_doc("r1", "Soup", [("leek", 2, "piece", "p-leek")])

    await _repo(col).upsert(doc)

    filt, body = col.replace_one.call_args.args
    assert filt == {"id": "r1"}
    assert body["ingredientsCount"] == 1
    assert body["ingredients"][0]["productId"] == "p-leek"
    assert col.replace_one.call_args.kwargs == {"upsert": True}


async def test_delete_reports_whether_something_was_removed():
    col = MagicMock()
    col.delete_one = AsyncMock(side_effect=[MagicMock(deleted_count=1), MagicMock(deleted_count=0)])
    repo = _repo(col)
    assert await repo.delete("r1") is True
    assert await repo.delete("r1") is False


async def test_ensure_search_index_creates_when_missing():
    col = MagicMock()
    col.list_search_indexes.return_value = _Cursor([])
    col.create_search_index = AsyncMock()

    assert await _repo(col).ensure_search_index() is True

    model = col.create_search_index.call_args.args[0]
    assert model.document["name"] == "recipes_index"
    assert model.document["definition"] == RECIPE_SEARCH_MAPPING


async def test_ensure_search_index_keeps_existing():
    col = MagicMock()
    col.list_search_indexes.return_value = _Cursor([{"name": "recipes_index"}])
    col.create_search_index = AsyncMock()

    assert await _repo(col).ensure_search_index() is False
    col.create_search_index.assert_not_called()


def test_mapping_declares_every_indexed_field():
    fields = RECIPE_SEARCH_MAPPING["mappings"]["fields"]
    assert set(fields) == {"id", "name", "description", "categories", "ingredientsCount", "ingredients"}
    assert "keyword" in fields["name"]["multi"]
    assert set(fields["ingredients"]["fields"]) == {
        "id", "name", "quantity", "unit", "productId", "normalizedQuantity", "baseUnitFamily",
    }
