"""
Reference data and lookup-view loading
"""
import asyncio

import pytest
from sqlalchemy.exc import ProgrammingError

from amrdash.core.exceptions import UpstreamUnavailableError
from amrdash.surveillance.reference import ReferenceData, load_reference_data, normalize_antibiotic_column

from conftest import InMemoryRowSource


def test_builtin_names_and_fallback():
    reference = ReferenceData()
    assert reference.organism_name("ECO") == "Escherichia coli"
    assert reference.organism_name("xyz") == "xyz"
    assert reference.antibiotic_name("fox nd30") == "Cefoxitin"
    assert reference.antibiotic_name("ZZZ_ND1") == "ZZZ_ND1"
    assert reference.atc4_name("j01dh") == "Carbapenems"
    assert reference.indication_name("CAI") == "Community-acquired (<48h)"


def test_reference_data_is_immutable():
    reference = ReferenceData()
    with pytest.raises(TypeError):
        reference.organisms["eco"] = "changed"


def test_overrides_return_new_object():
    base = ReferenceData()
    merged = base.with_overrides(organisms={"ECO": "E. coli"}, antibiotics={"fox nd30": "Cefoxitin screen"})
    assert merged.organism_name("eco") == "E. coli"
    assert merged.antibiotic_name("FOX_ND30") == "Cefoxitin screen"
    assert base.organism_name("eco") == "Escherichia coli"
    assert base.with_overrides() is base


def test_normalize_antibiotic_column():
    assert normalize_antibiotic_column(" sxt nd1 2 ") == "SXT_ND1_2"


def test_load_from_views():
    source = InMemoryRowSource({
        "organism_mapping": [{"code": "eco", "name": "E. coli (view)"}, {"code": None, "name": "ignored"}],
        "antibiotic_mapping": [{"column_name": "NEW_ND1", "name": "Newmycin"}],
    })
    reference = asyncio.run(load_reference_data(source, "organism_mapping", "antibiotic_mapping"))
    assert reference.organism_name("eco") == "E. coli (view)"
    assert reference.organism_name("sau") == "Staphylococcus aureus"
    assert reference.antibiotic_name("NEW_ND1") == "Newmycin"


@pytest.mark.parametrize("error", [
    UpstreamUnavailableError("down"),
    ProgrammingError("SELECT", {}, Exception("relation does not exist")),
])
def test_unavailable_views_keep_builtin_names(error):
    source = InMemoryRowSource(error=error)
    reference = asyncio.run(load_reference_data(source, "organism_mapping", "antibiotic_mapping"))
    assert reference.organism_name("kpn") == "Klebsiella pneumoniae"
