"""
Reference data

Lookup tables (age vocabulary, organism and antibiotic display names,
ATC4 class names, indication names) held in one immutable object. Built-in
defaults are overlaid once at startup with the database lookup views and
the result is handed to whoever needs it.
"""
from dataclasses import dataclass, field, replace
from functools import cached_property
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Dict, Iterable, Mapping, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError

from amrdash.core.exceptions import SurveillanceError
from amrdash.core.logging import get_logger

from .age import AGE_CATEGORY_ORDER, AgeOrder

if TYPE_CHECKING:
    from amrdash.core.database import RowSource

logger = get_logger(__name__)

ORGANISM_NAMES: Mapping[str, str] = {
    "aba": "Acinetobacter baumannii",
    "cfr": "Citrobacter freundii",
    "eae": "Klebsiella aerogenes",
    "ecl": "Enterobacter cloacae complex",
    "eco": "Escherichia coli",
    "efa": "Enterococcus faecalis",
    "efm": "Enterococcus faecium",
    "kox": "Klebsiella oxytoca",
    "kpn": "Klebsiella pneumoniae",
    "mmo": "Morganella morganii",
    "pae": "Pseudomonas aeruginosa",
    "pmi": "Proteus mirabilis",
    "pst": "Providencia stuartii",
    "pvu": "Proteus vulgaris",
    "sag": "Streptococcus agalactiae",
    "sal": "Salmonella spp.",
    "sau": "Staphylococcus aureus",
    "sep": "Staphylococcus epidermidis",
    "shi": "Shigella spp.",
    "sma": "Serratia marcescens",
    "spn": "Streptococcus pneumoniae",
}

ANTIBIOTIC_NAMES: Mapping[str, str] = {
    "AMC_ND20": "Amoxicillin-clavulanate",
    "AMK_ND30": "Amikacin",
    "AMP_ND10": "Ampicillin",
    "AMX_ND30": "Amoxicillin",
    "ATM_ND30": "Aztreonam",
    "AZM_ND15": "Azithromycin",
    "CAZ_ND30": "Ceftazidime",
    "CHL_ND30": "Chloramphenicol",
    "CIP_ND5": "Ciprofloxacin",
    "CLI_ND2": "Clindamycin",
    "CLO_ND5": "Cloxacillin",
    "CRO_ND30": "Ceftriaxone",
    "CTX_ND30": "Cefotaxime",
    "CXM_ND30": "Cefuroxime",
    "DOX_ND30": "Doxycycline",
    "ERY_ND15": "Erythromycin",
    "ETP_ND10": "Ertapenem",
    "FEP_ND30": "Cefepime",
    "FLC_ND": "Flucloxacillin",
    "FOX_ND30": "Cefoxitin",
    "GEN_ND10": "Gentamicin",
    "IPM_ND10": "Imipenem",
    "LEX_ND30": "Cephalexin",
    "LNZ_ND30": "Linezolid",
    "LVX_ND5": "Levofloxacin",
    "MEM_ND10": "Meropenem",
    "MNO_ND30": "Minocycline",
    "NAL_ND30": "Nalidixic acid",
    "NIT_ND300": "Nitrofurantoin",
    "NOR_ND10": "Norfloxacin",
    "OFX_ND5": "Ofloxacin",
    "OXA_ND1": "Oxacillin",
    "PEN_ND10": "Penicillin G",
    "PNV_ND10": "Penicillin V",
    "RIF_ND5": "Rifampin",
    "SXT_ND1_2": "Trimethoprim-sulfamethoxazole",
    "TCY_ND30": "Tetracycline",
    "TEC_ND30": "Teicoplanin",
    "TGC_ND15": "Tigecycline",
    "TOB_ND10": "Tobramycin",
    "TZP_ND100": "Piperacillin-tazobactam",
    "VAN_ND30": "Vancomycin",
}

ATC4_CLASS_NAMES: Mapping[str, str] = {
    "J01AA": "Tetracyclines",
    "J01BA": "Chloramphenicol and derivatives",
    "J01CA": "Penicillins with extended spectrum",
    "J01CE": "Beta-lactamase sensitive penicillins",
    "J01CF": "Beta-lactamase resistant penicillins",
    "J01CG": "Beta-lactamase inhibitors",
    "J01CR": "Combinations of penicillins, incl. beta-lactamase inhibitors",
    "J01DB": "First-generation cephalosporins",
    "J01DC": "Second-generation cephalosporins",
    "J01DD": "Third-generation cephalosporins",
    "J01DE": "Fourth-generation cephalosporins",
    "J01DF": "Monobactams",
    "J01DH": "Carbapenems",
    "J01DI": "Other cephalosporins and penems",
    "J01EA": "Trimethoprim and derivatives",
    "J01EE": "Combinations of sulfonamides and trimethoprim, incl. derivatives",
    "J01FA": "Macrolides",
    "J01FF": "Lincosamides",
    "J01GB": "Other aminoglycosides",
    "J01MA": "Fluoroquinolones",
    "J01XA": "Glycopeptide antibacterials",
    "J01XB": "Polymyxins",
    "J01XD": "Imidazole derivatives",
    "J01XE": "Nitrofuran derivatives",
    "J01XX": "Other antibacterials",
    "J02AC": "Triazole derivatives",
    "J04AB": "Antibiotics",
    "J04AK": "Other antimycobacterials",
    "J05AB": "Nucleosides and nucleotides excl. reverse transcriptase inhibitors",
    "J05AH": "Neuraminidase inhibitors",
    "P01AB": "Nitroimidazole derivatives",
}

INDICATION_NAMES: Mapping[str, str] = {
    "CAI": "Community-acquired (<48h)",
    "HAI1": "Post-op surgical site infection",
    "HAI2": "Device/intervention-related (CR-BSI, VAP, CA-UTI)",
    "HAI3": "C. difficile–associated diarrhoea",
    "HAI4": "Other hospital-acquired (incl. HAP)",
    "HAI5": "Present on admission from another hospital",
    "HAI6": "Present on admission from LTCF/Nursing Home",
    "SP1": "Surgical prophylaxis: single dose",
    "SP2": "Surgical prophylaxis: one day",
    "SP3": "Surgical prophylaxis: >1 day",
    "MP": "Medical prophylaxis",
    "OTH": "Other indication",
    "UNK": "Unknown indication",
}


def _frozen(mapping: Mapping[str, str]) -> Mapping[str, str]:
    return MappingProxyType(dict(mapping))


def normalize_antibiotic_column(column: str) -> str:
    """'FOX ND30' and 'fox_nd30' both become 'FOX_ND30'"""
    return "_".join(column.strip().upper().split())


@dataclass(frozen=True)
class ReferenceData:
    """Immutable lookup tables shared by all requests"""

    age_vocabulary: Sequence[str] = AGE_CATEGORY_ORDER
    organisms: Mapping[str, str] = field(default_factory=lambda: _frozen(ORGANISM_NAMES))
    antibiotics: Mapping[str, str] = field(default_factory=lambda: _frozen(ANTIBIOTIC_NAMES))
    atc4_classes: Mapping[str, str] = field(default_factory=lambda: _frozen(ATC4_CLASS_NAMES))
    indications: Mapping[str, str] = field(default_factory=lambda: _frozen(INDICATION_NAMES))

    @cached_property
    def age_order(self) -> AgeOrder:
        return AgeOrder(self.age_vocabulary)

    def organism_name(self, code: Any) -> str:
        text = str(code).strip()
        return self.organisms.get(text.lower(), text)

    def antibiotic_name(self, column: Any) -> str:
        text = str(column)
        return self.antibiotics.get(normalize_antibiotic_column(text), text)

    def atc4_name(self, code: Any) -> str:
        text = str(code).strip()
        return self.atc4_classes.get(text.upper(), text)

    def indication_name(self, code: Any) -> str:
        text = str(code).strip()
        return self.indications.get(text.upper(), text)

    def with_overrides(
        self,
        organisms: Optional[Mapping[str, str]] = None,
        antibiotics: Optional[Mapping[str, str]] = None,
    ) -> "ReferenceData":
        """Copy with extra organism / antibiotic names layered on top"""
        changes: Dict[str, Any] = {}
        if organisms:
            merged = dict(self.organisms)
            merged.update({k.lower(): v for k, v in organisms.items()})
            changes["organisms"] = _frozen(merged)
        if antibiotics:
            merged = dict(self.antibiotics)
            merged.update({normalize_antibiotic_column(k): v for k, v in antibiotics.items()})
            changes["antibiotics"] = _frozen(merged)
        return replace(self, **changes) if changes else self


def _pairs(rows: Iterable[Mapping[str, Any]], key: str, value: str) -> Dict[str, str]:
    return {
        str(row[key]): str(row[value])
        for row in rows
        if row.get(key) and row.get(value)
    }


async def load_reference_data(
    source: "RowSource",
    organism_view: str,
    antibiotic_view: str,
    timeout: Optional[float] = None,
) -> ReferenceData:
    """
    Built-in reference data overlaid with the lookup views

    A view that cannot be read leaves the built-in names in place; the
    failure is logged, not raised, so the API can still start.
    """
    base = ReferenceData()
    organisms: Dict[str, str] = {}
    antibiotics: Dict[str, str] = {}

    try:
        rows = await source.fetch(organism_view, ["code", "name"], timeout=timeout)
        organisms = _pairs(rows, "code", "name")
    except (SurveillanceError, SQLAlchemyError) as e:
        logger.warning(f"Organism view '{organism_view}' unavailable, using built-in names: {e}")

    try:
        rows = await source.fetch(antibiotic_view, ["column_name", "name"], timeout=timeout)
        antibiotics = _pairs(rows, "column_name", "name")
    except (SurveillanceError, SQLAlchemyError) as e:
        logger.warning(f"Antibiotic view '{antibiotic_view}' unavailable, using built-in names: {e}")

    logger.info(
        f"Reference data loaded: {len(organisms)} organism and "
        f"{len(antibiotics)} antibiotic names from views"
    )
    return base.with_overrides(organisms=organisms, antibiotics=antibiotics)
