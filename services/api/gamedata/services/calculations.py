"""Fixed calculations over a dataset (count/avg/min/max, optionally grouped).

Rules:
- ``count`` counts items; it does not look at the field
- ``avg``/``min``/``max`` use numeric values of the field only; a rating of
  0 means "unrated" on RAWG, so ratings <= 0 are ignored
- Empty input: 0 for count, None otherwise
- Grouping is by genre name or platform name; an item in several genres
  contributes to each of them
"""

from dataclasses import dataclass
import logging
from typing import Literal

from gamedata.models import DatasetRecord, GameSummary

logger = logging.getLogger("uvicorn.error")

Operation = Literal["avg", "count", "min", "max"]
NumericField = Literal["metacritic", "rating"]
GroupBy = Literal["genres", "platforms"]


@dataclass(frozen=True)
class Calculation:
    value: float | int | None
    contributing: int
    total: int


@dataclass(frozen=True)
class GroupResult:
    label: str
    value: float | int | None
    count: int


def _field_values(items: list[GameSummary], field: NumericField) -> list[float]:
    values: list[float] = []
    for item in items:
        value = getattr(item, field)
        if value is None:
            continue
        if field == "rating" and value <= 0:
            continue
        values.append(value)
    return values


def calculate(items: list[GameSummary], operation: Operation, field: NumericField) -> Calculation:
    if not items:
        return Calculation(value=0 if operation == "count" else None, contributing=0, total=0)

    if operation == "count":
        return Calculation(value=len(items), contributing=len(items), total=len(items))

    values = _field_values(items, field)
    if not values:
        return Calculation(value=None, contributing=0, total=len(items))

    if operation == "avg":
        value: float | int = sum(values) / len(values)
    elif operation == "min":
        value = min(values)
    elif operation == "max":
        value = max(values)
    else:
        raise ValueError(f"Unsupported operation: {operation}")
    return Calculation(value=value, contributing=len(values), total=len(items))


def _group_labels(item: GameSummary, group_by: GroupBy) -> list[str]:
    if group_by == "genres":
        return [genre.name for genre in item.genres]
    return [entry.platform.name for entry in item.platforms]


def run_calculation(
    dataset: DatasetRecord,
    operation: Operation,
    field: NumericField,
    group_by: GroupBy | None = None,
) -> tuple[int, float | int | list[GroupResult] | None]:
    """Return (items_processed, value) for a dataset.

    Grouped results keep first-seen label order.
    """
    items = dataset.items
    if group_by is None:
        return len(items), calculate(items, operation, field).value

    groups: dict[str, list[GameSummary]] = {}
    for item in items:
        for label in _group_labels(item, group_by):
            groups.setdefault(label, []).append(item)

    results = []
    for label, group_items in groups.items():
        result = calculate(group_items, operation, field)
        results.append(GroupResult(label=label, value=result.value, count=result.contributing))

    logger.info(
        f"[datasets] execute_calculation datasetKey={dataset.key} operation={operation} "
        f"groupBy={group_by} groups={len(results)}"
    )
    return len(items), results
