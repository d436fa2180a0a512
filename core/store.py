# core/store.py
"""
Entity store used by the background jobs.

Jobs describe *which* documents they care about with an `Eligibility` and
*what* to change with `ConditionalUpdate`s; the store turns those into one
filtered read and one bulk write per tick.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Tuple

from pymongo import UpdateOne

_OPERATORS = {
    "lt": lambda a, b: a < b,
    "lte": lambda a, b: a <= b,
    "gt": lambda a, b: a > b,
    "gte": lambda a, b: a >= b,
    "eq": lambda a, b: a == b,
    "ne": lambda a, b: a != b,
}


def get_path(doc: Dict[str, Any], path: str) -> Any:
    """Resolve a dotted path ("current_holder.bot_id") in a document, or None."""
    value: Any = doc
    for part in path.split("."):
        if not isinstance(value, dict) or part not in value:
            return None
        value = value[part]
    return value


def _expr_rank(value: Any) -> Tuple[int, Any]:
    return (0, 0) if value is None else (1, value)


@dataclass(frozen=True)
class Eligibility:
    """
    Declarative selection rule for a job.

    Compares `field` either against another field of the same document
    (`compare_field`) or against a constant (`value`).

    Usage:
        Eligibility("used_slots", "lt", compare_field="slots")
        Eligibility("is_flag_bearer", "eq", value=True)
    """
    field: str
    operator: str
    compare_field: Optional[str] = None
    value: Any = None

    def __post_init__(self):
        if self.operator not in _OPERATORS:
            raise ValueError(f"Unsupported operator: {self.operator}")

    def to_query(self) -> Dict[str, Any]:
        """Render as a MongoDB filter."""
        if self.compare_field is not None:
            return {"$expr": {f"${self.operator}": [f"${self.field}", f"${self.compare_field}"]}}
        return {self.field: {f"${self.operator}": self.value}}

    def matches(self, doc: Dict[str, Any]) -> bool:
        """
        Evaluate against a plain document the way MongoDB evaluates `to_query()`.

        Field-to-field comparisons (`$expr`) order a missing or null field below
        every other value. Ordered comparisons against a constant never match a
        missing or null field.
        """
        left = get_path(doc, self.field)
        compare = _OPERATORS[self.operator]
        if self.compare_field is not None:
            return compare(_expr_rank(left), _expr_rank(get_path(doc, self.compare_field)))
        if self.operator in ("eq", "ne"):
            return compare(left, self.value)
        if left is None or self.value is None:
            return False
        return compare(left, self.value)


@dataclass
class ConditionalUpdate:
    """A single-document `$set` applied only if `filter` still matches."""
    filter: Dict[str, Any]
    set: Dict[str, Any] = field(default_factory=dict)

    def to_operation(self) -> UpdateOne:
        return UpdateOne(self.filter, {"$set": self.set})


class EntityStore(Protocol):
    async def find_eligible(self, eligibility: Eligibility) -> List[Dict[str, Any]]: ...

    async def bulk_update(self, updates: List[ConditionalUpdate]) -> int: ...


class MongoEntityStore:
    """EntityStore over a single Motor collection."""

    def __init__(self, collection):
        self.collection = collection

    @classmethod
    def for_document(cls, document_cls) -> "MongoEntityStore":
        return cls(document_cls.get_pymongo_collection())

    async def find_eligible(self, eligibility: Eligibility) -> List[Dict[str, Any]]:
        cursor = self.collection.find(eligibility.to_query())
        return await cursor.to_list(length=None)

    async def bulk_update(self, updates: List[ConditionalUpdate]) -> int:
        if not updates:
            return 0
        # Unordered: one stale filter must not block the rest of the batch
        result = await self.collection.bulk_write(
            [update.to_operation() for update in updates],
            ordered=False,
        )
        return result.modified_count
