"""JSON Query evaluation over in-memory datasets, built on ``jsonquerylang``.

The engine adds a few functions to the library's builtins: ``unnest``,
numeric aggregates that skip non-numbers, ``count``, and comparisons that
treat ints and floats as one number type. Any parse or evaluation failure is
surfaced as QueryError.

Example:
    >>> run_json_query({"items": games}, ".items | unnest(.genres) | groupBy(.genres.name) | mapValues(size())")
    {"Action": 12, "RPG": 4}
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from functools import reduce
from typing import Any

from jsonquerylang import compile as compile_json_query
from jsonquerylang import parse as parse_json_query

from gamedata.errors import QueryError

logger = logging.getLogger("uvicorn.error")

Evaluator = Callable[[Any], Any]


def _compile(query: Any) -> Evaluator:
    return compile_json_query(query, JSON_QUERY_OPTIONS)


def _build_function(fn: Callable[..., Any]) -> Callable[..., Evaluator]:
    # Arguments compile with the engine's functions, so nested comparisons resolve to ours.
    def build(*args: Any) -> Evaluator:
        compiled = [_compile(arg) for arg in args]
        return lambda data: fn(*(evaluate(data) for evaluate in compiled))

    return build


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _numbers(data: Any) -> list[int | float]:
    if not isinstance(data, list):
        raise TypeError("Array expected")
    return [value for value in data if _is_number(value)]


def _comparable(a: Any, b: Any) -> bool:
    if _is_number(a) and _is_number(b):
        return True
    return type(a) is type(b) and isinstance(a, (str, bool))


def _eq(a: Any, b: Any) -> bool:
    if _is_number(a) and _is_number(b):
        return a == b
    return type(a) is type(b) and a == b


def _gt(a: Any, b: Any) -> bool:
    return _comparable(a, b) and a > b


def _lt(a: Any, b: Any) -> bool:
    return _comparable(a, b) and a < b


def _average(data: Any) -> float | None:
    values = _numbers(data)
    return sum(values) / len(values) if values else None


def _min(data: Any) -> int | float | None:
    values = _numbers(data)
    return min(values) if values else None


def _max(data: Any) -> int | float | None:
    values = _numbers(data)
    return max(values) if values else None


def _count(data: Any) -> int:
    if not isinstance(data, list):
        raise TypeError("Array expected")
    return len(data)


def _set_path(record: dict, path: list, value: Any) -> dict:
    head, *rest = path
    copy = dict(record)
    copy[head] = value if not rest else _set_path(record.get(head) or {}, rest, value)
    return copy


def _unnest(path: Any = None) -> Evaluator:
    """One row per (record, element) of the array at ``path``; the field holds the element."""
    if not isinstance(path, list) or len(path) < 2 or path[0] != "get":
        raise TypeError("unnest() expects a property accessor like .genres")
    keys = path[1:]
    get_collection = _compile(path)

    def unnest(data: Any) -> list[Any]:
        if not isinstance(data, list):
            raise TypeError("unnest() expects an array input")
        rows = []
        for item in data:
            collection = get_collection(item)
            if not isinstance(collection, list) or not collection:
                continue
            for element in collection:
                rows.append(_set_path(item, keys, element))
        return rows

    return unnest


JSON_QUERY_OPTIONS: dict[str, Any] = {
    "functions": {
        "unnest": _unnest,
        "sum": lambda: lambda data: sum(_numbers(data)),
        "average": lambda: _average,
        "min": lambda: _min,
        "max": lambda: _max,
        "count": lambda: _count,
        "eq": _build_function(_eq),
        "ne": _build_function(lambda a, b: not _eq(a, b)),
        "gt": _build_function(_gt),
        "gte": _build_function(lambda a, b: _gt(a, b) or _eq(a, b)),
        "lt": _build_function(_lt),
        "lte": _build_function(lambda a, b: _lt(a, b) or _eq(a, b)),
        "and": _build_function(lambda *args: reduce(lambda a, b: a and b, args) if args else None),
        "or": _build_function(lambda *args: reduce(lambda a, b: a or b, args) if args else None),
        "not": _build_function(lambda a: not a),
    }
}


@dataclass(frozen=True)
class CompiledQuery:
    text: str
    evaluator: Evaluator

    def evaluate(self, data: Any) -> Any:
        try:
            return self.evaluator(data)
        except Exception as e:
            logger.info(f"[query] evaluation_failed error={type(e).__name__}: {e}")
            raise QueryError(self.text, e) from e


def compile_query(query: str) -> CompiledQuery:
    """Parse and compile a query without evaluating it.

    Raises:
        QueryError: Empty/blank query, syntax error, unknown function or
            bad arguments.
    """
    if not isinstance(query, str) or not query.strip():
        raise QueryError(str(query), ValueError("Query must be a non-empty string"))
    try:
        evaluator = _compile(parse_json_query(query))
    except Exception as e:
        logger.info(f"[query] compile_failed error={type(e).__name__}: {e}")
        raise QueryError(query, e) from e
    return CompiledQuery(text=query, evaluator=evaluator)


def run_json_query(data: Any, query: str) -> Any:
    """Evaluate ``query`` against ``data``. Pure; ``data`` is never mutated."""
    return compile_query(query).evaluate(data)
