"""
ESBL antibiotic suppression
"""
from amrdash.surveillance.esbl import (
    filter_antibiotics_for_organism,
    filter_pairs,
    is_esbl_excluded_antibiotic,
    is_esbl_organism,
    should_hide_pair,
)


def test_esbl_organisms():
    assert is_esbl_organism("eco")
    assert is_esbl_organism(" KPN ")
    assert not is_esbl_organism("sau")
    assert not is_esbl_organism("")


def test_excluded_antibiotic_matches_base_code():
    assert is_esbl_excluded_antibiotic("CTX")
    assert is_esbl_excluded_antibiotic("CTX_ND30")
    assert is_esbl_excluded_antibiotic("ctx nd30")
    assert is_esbl_excluded_antibiotic("ATM_ND30")
    assert not is_esbl_excluded_antibiotic("MEM_ND10")
    assert not is_esbl_excluded_antibiotic("CIP_ND5")


def test_hidden_only_for_esbl_organisms():
    assert should_hide_pair("eco", "CRO_ND30")
    assert not should_hide_pair("sau", "CRO_ND30")
    assert not should_hide_pair("eco", "GEN_ND10")


def test_filter_antibiotics_for_organism():
    panel = ["AMP_ND10", "CIP_ND5", "FEP_ND30", "MEM_ND10", "TZP_ND100"]
    assert filter_antibiotics_for_organism(panel, "kpn") == ["CIP_ND5", "MEM_ND10"]
    assert filter_antibiotics_for_organism(panel, "pae") == panel


def test_filter_pairs():
    pairs = [
        {"organism": "eco", "antibiotic": "CAZ_ND30"},
        {"organism": "eco", "antibiotic": "AMK_ND30"},
        {"organism": "aba", "antibiotic": "CAZ_ND30"},
    ]
    assert filter_pairs(pairs) == pairs[1:]
