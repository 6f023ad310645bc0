"""
Query predicates

The (column, op, value) triples the row source knows how to render
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any


class FilterOp(str, Enum):
    EQ = "eq"
    NOT_EQ = "neq"
    IS_NULL = "is_null"
    NOT_NULL = "not_null"
    IN = "in"
    ILIKE_PREFIX = "ilike_prefix"


@dataclass(frozen=True)
class Predicate:
    """One (column, op, value) constraint"""

    column: str
    op: FilterOp
    value: Any = None

    def to_dict(self) -> dict:
        value = list(self.value) if isinstance(self.value, tuple) else self.value
        return {"column": self.column, "op": self.op.value, "value": value}
