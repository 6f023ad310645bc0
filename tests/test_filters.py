"""
Filter extraction and allow-listing
"""
import pytest

from amrdash.core.exceptions import InvalidInputError
from amrdash.surveillance.filters import (
    FilterOp,
    Predicate,
    build_predicates,
    not_blank,
    validate_choice,
    validate_column,
)

ALLOWED = ["district", "aware", "year_of_survey", "antibiotic_yn"]


def test_unlisted_columns_never_reach_predicates():
    predicates = build_predicates({"district": "Bo", "password": "x", "1=1; drop": "y"}, ALLOWED)
    assert predicates == [Predicate("district", FilterOp.EQ, "Bo")]


def test_no_constraint_values_are_dropped():
    params = {"district": "all", "aware": "no_filters", "year_of_survey": ""}
    assert build_predicates(params, ALLOWED) == []


def test_repeated_values_become_in():
    predicates = build_predicates({"aware": ["Access", "Watch"], "district": ["Bo"]}, ALLOWED)
    assert predicates == [
        Predicate("aware", FilterOp.IN, ("Access", "Watch")),
        Predicate("district", FilterOp.EQ, "Bo"),
    ]


def test_comma_in_a_single_value_is_kept():
    predicates = build_predicates({"district": "Bo, Western Area"}, ALLOWED)
    assert predicates == [Predicate("district", FilterOp.EQ, "Bo, Western Area")]


def test_boolean_and_null_coercion():
    predicates = build_predicates({"antibiotic_yn": "true", "aware": "null", "district": False}, ALLOWED)
    assert predicates == [
        Predicate("antibiotic_yn", FilterOp.EQ, True),
        Predicate("aware", FilterOp.IS_NULL),
        Predicate("district", FilterOp.EQ, False),
    ]


def test_validate_column_lists_accepted_values():
    assert validate_column("aware", ALLOWED) == "aware"
    with pytest.raises(InvalidInputError) as excinfo:
        validate_column("password", ALLOWED)
    assert excinfo.value.status_code == 400
    assert excinfo.value.accepted == ALLOWED
    assert excinfo.value.to_dict()["accepted"] == ALLOWED


def test_validate_choice():
    assert validate_choice("dataset", "human", ["human", "animal"]) == "human"
    with pytest.raises(InvalidInputError):
        validate_choice("dataset", "plants", ["human", "animal"])


def test_predicate_helpers():
    assert not_blank("atc4") == [Predicate("atc4", FilterOp.NOT_NULL), Predicate("atc4", FilterOp.NOT_EQ, "")]
    assert Predicate("aware", FilterOp.IN, ("A", "B")).to_dict() == {"column": "aware", "op": "in", "value": ["A", "B"]}
