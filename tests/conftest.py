"""
Shared fixtures

InMemoryRowSource stands in for the database: it evaluates predicates the
way the SQL layer renders them, including SQL NULL semantics.
"""
from typing import Any, Dict, List, Mapping, Optional, Sequence

import pytest

from amrdash.core.config import AppSettings, load_settings
from amrdash.surveillance.filters import FilterOp, Predicate


def _matches(row: Mapping[str, Any], predicate: Predicate) -> bool:
    value = row.get(predicate.column)
    op = predicate.op
    if op is FilterOp.EQ:
        return value is not None and value == predicate.value
    if op is FilterOp.NOT_EQ:
        return value is not None and value != predicate.value
    if op is FilterOp.IS_NULL:
        return value is None
    if op is FilterOp.NOT_NULL:
        return value is not None
    if op is FilterOp.IN:
        return value is not None and value in predicate.value
    if op is FilterOp.ILIKE_PREFIX:
        return isinstance(value, str) and value.lower().startswith(predicate.value.lower())
    raise ValueError(op)


class InMemoryRowSource:
    """RowSource over dicts of rows, recording every call"""

    def __init__(self, tables: Optional[Dict[str, List[Dict[str, Any]]]] = None, error: Optional[Exception] = None):
        self.tables = tables or {}
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    def _select(self, table: str, predicates: Sequence[Predicate]) -> List[Dict[str, Any]]:
        if self.error is not None:
            raise self.error
        return [r for r in self.tables.get(table, []) if all(_matches(r, p) for p in predicates)]

    async def fetch(
        self,
        table: str,
        columns: Optional[Sequence[str]] = None,
        predicates: Sequence[Predicate] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> List[Dict[str, Any]]:
        self.calls.append({"op": "fetch", "table": table, "columns": columns, "predicates": list(predicates)})
        rows = self._select(table, predicates)
        if order_by:
            rows = sorted(rows, key=lambda r: (r.get(order_by) is None, r.get(order_by)), reverse=descending)
        if limit is not None:
            rows = rows[:limit]
        if columns:
            return [{c: r.get(c) for c in columns} for r in rows]
        return [dict(r) for r in rows]

    async def count(
        self,
        table: str,
        predicates: Sequence[Predicate] = (),
        timeout: Optional[float] = None,
    ) -> int:
        self.calls.append({"op": "count", "table": table, "predicates": list(predicates)})
        return len(self._select(table, predicates))


def isolate(organism: str, valid: Any = True, **fields: Any) -> Dict[str, Any]:
    """One AMR_HH row"""
    row: Dict[str, Any] = {
        "ORGANISM": organism,
        "VALID_AST": valid,
        "MDR_TF": None,
        "SEX": "Female",
        "AGE_CAT": "25–34 years",
        "REGION": "Western",
        "SPEC_DATE": None,
    }
    row.update(fields)
    return row


def mrsa_isolates() -> List[Dict[str, Any]]:
    """100 valid S. aureus isolates, 32 cefoxitin-resistant"""
    return [isolate("sau", FOX_ND30="R" if i < 32 else "S") for i in range(100)]


@pytest.fixture
def settings(tmp_path) -> AppSettings:
    return load_settings(
        database_url="postgresql+asyncpg://postgres@db.example.org:5432/postgres",
        database_service_key="service-key",
        log_dir=tmp_path / "logs",
    )


@pytest.fixture
def usage_rows() -> List[Dict[str, Any]]:
    return [
        {"antibiotic_yn": "YES", "aware": "WATCH", "atc4": "J01DD", "sex": "M", "age_cat": "25–34 years",
         "indication": "CAI", "treatment": "TARGETED", "reason_in_notes": True, "guideline_compliance": "yes",
         "culture_to_lab_yesno": 1, "treatment_based_on_biomarker_d": "false", "is_a_stopreview_date_documente": "1",
         "district": "Bo"},
        {"antibiotic_yn": "YES", "aware": "watch", "atc4": "J01DD", "sex": "F", "age_cat": "Under 5 years",
         "indication": "HAI1", "treatment": "EMPIRICAL", "reason_in_notes": False, "guideline_compliance": "no",
         "culture_to_lab_yesno": 0, "treatment_based_on_biomarker_d": "true", "is_a_stopreview_date_documente": "0",
         "district": "Bo"},
        {"antibiotic_yn": "YES", "aware": "Reserve", "atc4": "J01DH", "sex": "F", "age_cat": "65–74 years",
         "indication": "CAI", "treatment": "targeted", "reason_in_notes": True, "guideline_compliance": "YES",
         "culture_to_lab_yesno": 1, "treatment_based_on_biomarker_d": "true", "is_a_stopreview_date_documente": "1",
         "district": "Kenema"},
        {"antibiotic_yn": "NO", "aware": "unknown_drug", "atc4": "J01CA", "sex": "M", "age_cat": "Under 5 years",
         "indication": "MP", "treatment": "EMPIRICAL", "reason_in_notes": True, "guideline_compliance": "yes",
         "culture_to_lab_yesno": 0, "treatment_based_on_biomarker_d": "false", "is_a_stopreview_date_documente": None,
         "district": "Kenema"},
        {"antibiotic_yn": "NO", "aware": None, "atc4": None, "sex": "F", "age_cat": "95+ years",
         "indication": None, "treatment": None, "reason_in_notes": None, "guideline_compliance": None,
         "culture_to_lab_yesno": None, "treatment_based_on_biomarker_d": None, "is_a_stopreview_date_documente": None,
         "district": "Bo"},
    ]
