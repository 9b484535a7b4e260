# tests/conftest.py
"""
Shared fixtures: a fixed calendar day, default scoring config, a recipe-document
factory going through the real projector, and an in-memory stand-in for the
Atlas Search repository.

The stand-in runs the ranking stages it receives with a tiny evaluator covering the
aggregation operators recipe_queries emits, so ordering over more than
`candidate_k` matches is exercised the way the backend would do it.
"""
from datetime import date, timedelta
import math

import pytest

from pantryreco.domain.models.recipe import Recipe
from pantryreco.domain.models.scoring import ScoringConfig
from pantryreco.domain.models.stock import StockEntry
from pantryreco.domain.services.recipe_projector import project

TODAY = date(2026, 3, 1)


# ---------- aggregation evaluator ----------

_OPS = {
    "$eq": lambda a, b: a == b,
    "$gt": lambda a, b: a > b,
    "$gte": lambda a, b: a >= b,
    "$lte": lambda a, b: a <= b,
    "$and": lambda *a: all(a),
    "$in": lambda a, b: a in b,
    "$size": len,
    "$divide": lambda a, b: a / b,
    "$add": lambda *a: sum(a),
    "$multiply": lambda *a: math.prod(a),
    "$max": lambda *a: max(a),
    "$avg": lambda a: sum(a) / len(a) if a else None,
    "$ifNull": lambda a, b: b if a is None else a,
    "$arrayElemAt": lambda a, i: a[i],
    "$indexOfArray": lambda a, v: a.index(v) if v in a else -1,
}


def _dig(value, path):
    for key in path:
        value = value.get(key) if isinstance(value, dict) else None
    return value


def evaluate(expr, doc, scope=None):
    scope = scope or {}
    if isinstance(expr, str) and expr.startswith("$$"):
        name, *path = expr[2:].split(".")
        return _dig(scope[name], path)
    if isinstance(expr, str) and expr.startswith("$"):
        return _dig(doc, expr[1:].split("."))
    if not isinstance(expr, dict):
        return expr
    [(op, arg)] = expr.items()
    if op == "$literal":
        return arg
    if op == "$cond":
        cond, then, other = arg
        return evaluate(then if evaluate(cond, doc, scope) else other, doc, scope)
    if op in ("$filter", "$map"):
        items = evaluate(arg["input"], doc, scope)
        if op == "$filter":
            return [x for x in items if evaluate(arg["cond"], doc, {**scope, arg["as"]: x})]
        return [evaluate(arg["in"], doc, {**scope, arg["as"]: x}) for x in items]
    args = arg if isinstance(arg, list) else [arg]
    return _OPS[op](*(evaluate(a, doc, scope) for a in args))


def run_stages(rows, stages):
    """Applies $addFields, $match ($gte only) and $sort stages to plain dict rows."""
    rows = [dict(r) for r in rows]
    for stage in stages:
        [(name, body)] = stage.items()
        if name == "$addFields":
            for row in rows:
                row.update({field: evaluate(expr, row) for field, expr in body.items()})
        elif name == "$match":
            rows = [r for r in rows if all(r[f] >= cond["$gte"] for f, cond in body.items())]
        elif name == "$sort":
            for field, direction in reversed(list(body.items())):
                rows.sort(key=lambda r: r[field], reverse=direction < 0)
        else:
            raise AssertionError(f"unsupported stage {name}")
    return rows


class FakeRecipeSearchRepo:
    """Returns preset (document, base score) hits and records every query it receives."""

    def __init__(self, hits=None, total=None, error=None):
        self.hits = list(hits or [])
        self.total = len(self.hits) if total is None else total
        self.error = error
        self.queries = []
        self.stages = []
        self.upserted = []
        self.indexed_ids = {doc.id for doc, _ in self.hits}

    async def search(self, query, limit, rank_stages=None):
        self.queries.append((query, limit))
        self.stages.append(rank_stages)
        if self.error:
            raise self.error
        hits = self.hits
        if rank_stages:
            rows = [{**doc.to_mongo(), "_base": base, "_pos": i} for i, (doc, base) in enumerate(hits)]
            hits = [self.hits[row["_pos"]] for row in run_stages(rows, rank_stages)]
        return self.total, hits[:limit]

    async def upsert(self, document):
        self.upserted.append(document)
        self.indexed_ids.add(document.id)

    async def delete(self, recipe_id):
        if recipe_id in self.indexed_ids:
            self.indexed_ids.discard(recipe_id)
            return True
        return False


@pytest.fixture
def today():
    return TODAY


@pytest.fixture
def config():
    return ScoringConfig()


@pytest.fixture
def make_doc():
    """
    make_doc("r1", "Omelette", [("eggs", 3, "piece", "p-eggs"), ("salt", 1, "g", None)])
    Ingredient tuples: (name, quantity, unit, linked product id or None).
    """
    def _make(recipe_id, name, ingredients=(), categories=(), description=None):
        recipe = Recipe(
            id=recipe_id,
            name=name,
            description=description,
            categories=list(categories),
            ingredients=[
                {
                    "id": f"{recipe_id}-ing-{i}",
                    "name": ing_name,
                    "quantity": qty,
                    "unit": unit,
                    "productIds": [pid] if pid else [],
                }
                for i, (ing_name, qty, unit, pid) in enumerate(ingredients)
            ],
        )
        return project(recipe)
    return _make


@pytest.fixture
def stock_entry():
    """stock_entry("p1", 500, "g", days=2) -> StockEntry with dlc TODAY+2 days."""
    def _make(product_id, quantity, unit, days=None):
        dlc = TODAY + timedelta(days=days) if days is not None else None
        return StockEntry(product_id=product_id, quantity=quantity, unit=unit, dlc=dlc)
    return _make


@pytest.fixture
def aggregate():
    """aggregate(rows, stages) -> rows after the ranking stages, backend order"""
    return run_stages


@pytest.fixture
def make_repo():
    """make_repo(hits=[(doc, base)], total=None, error=None) -> FakeRecipeSearchRepo"""
    return FakeRecipeSearchRepo
