"""
ESBL antibiotic suppression

For ESBL-producing Enterobacterales, results for penicillins, BL/BLI
combinations, cephalosporins and monobactams are hidden from resistance
tables: the phenotype already predicts them and showing them misleads.
"""
from typing import Iterable, List, Mapping, Sequence, TypeVar

T = TypeVar("T", bound=Mapping[str, str])

ESBL_ORGANISMS = frozenset({
    "eco",  # Escherichia coli
    "kpn",  # Klebsiella pneumoniae
    "kox",  # Klebsiella oxytoca
    "pmi",  # Proteus mirabilis
    "pvu",  # Proteus vulgaris
    "prv",  # Providencia spp.
    "pst",  # Providencia stuartii
    "mmo",  # Morganella morganii
    "ecl",  # Enterobacter cloacae complex
    "eae",  # Klebsiella aerogenes
    "cfr",  # Citrobacter freundii
    "sma",  # Serratia marcescens
})

EXCLUDED_PENICILLINS = ("AMP", "AMX", "PIP", "TIC", "PEN", "PNV", "AMC", "SAM", "TIM", "TZP")
EXCLUDED_CEPHALOSPORINS = (
    "CEF", "LEX", "CLO", "FLC",
    "CXM", "FOX", "CTT",
    "CTX", "CRO", "CAZ", "CFM", "CPD", "CDR", "CZX", "CTB", "CDD",
    "FEP",
)
EXCLUDED_MONOBACTAMS = ("ATM",)

ESBL_EXCLUDED_ANTIBIOTICS = frozenset(
    EXCLUDED_PENICILLINS + EXCLUDED_CEPHALOSPORINS + EXCLUDED_MONOBACTAMS
)


def is_esbl_organism(organism_code: str) -> bool:
    if not organism_code:
        return False
    return organism_code.strip().lower() in ESBL_ORGANISMS


def is_esbl_excluded_antibiotic(antibiotic: str) -> bool:
    """True for 'CTX' as well as the column form 'CTX_ND30' / 'CTX ND30'"""
    if not antibiotic:
        return False
    code = antibiotic.strip().upper()
    base = code.replace(" ", "_").split("_")[0]
    return code in ESBL_EXCLUDED_ANTIBIOTICS or base in ESBL_EXCLUDED_ANTIBIOTICS


def should_hide_pair(organism_code: str, antibiotic: str) -> bool:
    return is_esbl_organism(organism_code) and is_esbl_excluded_antibiotic(antibiotic)


def filter_antibiotics_for_organism(antibiotics: Sequence[str], organism_code: str) -> List[str]:
    if not is_esbl_organism(organism_code):
        return list(antibiotics)
    return [a for a in antibiotics if not is_esbl_excluded_antibiotic(a)]


def filter_pairs(pairs: Iterable[T]) -> List[T]:
    """Drop {organism, antibiotic} records that ESBL rules hide"""
    return [p for p in pairs if not should_hide_pair(p["organism"], p["antibiotic"])]
