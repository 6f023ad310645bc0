"""
Filter Applicator

Turns request query parameters into a predicate list for the row source,
restricted to an allow-list of columns. Nothing outside the allow-list ever
reaches the query layer.
"""
from typing import Any, Iterable, List, Mapping, Sequence, Union

from amrdash.core.exceptions import InvalidInputError
from amrdash.core.predicates import FilterOp, Predicate

# Values meaning "no constraint"
NO_CONSTRAINT = frozenset({"", "no_filters", "all"})

RawValue = Union[str, bool, int, float, None, Sequence[str]]


def _coerce(value: str) -> Any:
    lowered = value.lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    return value


def _split(value: RawValue) -> List[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        items = [str(v).strip() for v in value]
    elif isinstance(value, str):
        items = [value.strip()]
    else:
        items = [str(value)]
    return [v for v in items if v.lower() not in NO_CONSTRAINT]


def build_predicates(
    raw_params: Mapping[str, RawValue],
    allowed_columns: Iterable[str],
) -> List[Predicate]:
    """
    Build predicates from request parameters

    Args:
        raw_params: parameter name -> value (string, or list for repeated params)
        allowed_columns: columns that may be filtered on

    Returns:
        Predicates, in parameter order. Keys outside the allow-list and
        "no constraint" values are dropped.
    """
    allowed = set(allowed_columns)
    predicates: List[Predicate] = []

    for key, raw in raw_params.items():
        if key not in allowed:
            continue
        if isinstance(raw, bool):
            predicates.append(Predicate(key, FilterOp.EQ, raw))
            continue

        values = _split(raw)
        if not values:
            continue

        if len(values) > 1:
            predicates.append(Predicate(key, FilterOp.IN, tuple(_coerce(v) for v in values)))
        elif values[0].lower() == "null":
            predicates.append(Predicate(key, FilterOp.IS_NULL))
        else:
            predicates.append(Predicate(key, FilterOp.EQ, _coerce(values[0])))

    return predicates


def validate_column(column: str, allowed_columns: Iterable[str]) -> str:
    """Return column if allowed, else raise InvalidInputError listing the allowed ones"""
    allowed = list(allowed_columns)
    if column not in allowed:
        raise InvalidInputError(
            f"Column '{column}' is not allowed. Allowed columns: {', '.join(allowed)}",
            accepted=allowed,
        )
    return column


def validate_choice(name: str, value: str, choices: Iterable[str]) -> str:
    """Same as validate_column, for enumerated parameters"""
    options = list(choices)
    if value not in options:
        raise InvalidInputError(
            f"Invalid value '{value}' for '{name}'. Accepted values: {', '.join(options)}",
            accepted=options,
        )
    return value


def equals(column: str, value: Any) -> Predicate:
    return Predicate(column, FilterOp.EQ, value)


def any_of(column: str, values: Iterable[Any]) -> Predicate:
    return Predicate(column, FilterOp.IN, tuple(values))


def starts_with(column: str, prefix: str) -> Predicate:
    return Predicate(column, FilterOp.ILIKE_PREFIX, prefix)


def not_null(*columns: str) -> List[Predicate]:
    return [Predicate(c, FilterOp.NOT_NULL) for c in columns]


def not_blank(column: str) -> List[Predicate]:
    """Neither null nor the empty string"""
    return [Predicate(column, FilterOp.NOT_NULL), Predicate(column, FilterOp.NOT_EQ, "")]
