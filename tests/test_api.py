"""
HTTP API against an in-memory row source
"""
import pytest
from fastapi.testclient import TestClient

from amrdash.api import create_app
from amrdash.core.exceptions import UpstreamUnavailableError
from amrdash.surveillance.aggregate import RATE_UNAVAILABLE
from amrdash.surveillance.reference import ReferenceData

from conftest import InMemoryRowSource, isolate, mrsa_isolates


@pytest.fixture
def source(usage_rows):
    amr = mrsa_isolates()
    amr += [isolate("eco", IPM_ND10="R" if i < 4 else "S", CTX_ND30="R", SEX="Male") for i in range(10)]
    amr.append(isolate("kpn", SPEC_DATE="2024-02-01"))
    return InMemoryRowSource({"AMR_HH": amr, "AMR_Animal": [], "AMU_HH": usage_rows})


@pytest.fixture
def client(settings, source):
    app = create_app(settings, source=source, reference=ReferenceData())
    return TestClient(app, raise_server_exceptions=False)


def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_routes_listing(client):
    body = client.get("/api/routes").json()
    paths = {r["path"] for r in body["data"]}
    assert "/api/amr-priority-resistance" in paths
    assert "/api/amr-profiler" in paths
    assert body["count"] == len(body["data"])


def test_diagnostic_reports_tables(client):
    body = client.get("/api/diagnostic").json()
    assert body["success"] is True
    assert body["data"]["serviceKeySet"] is True
    assert [t["reachable"] for t in body["data"]["tables"]] == [True, True, True]


def test_envelope(client):
    body = client.get("/api/amr-resistance/mrsa").json()
    assert body["success"] is True
    assert body["dataSource"] == "AMR_HH"
    assert "timestamp" in body
    assert body["data"]["resistant"] == 32
    assert body["data"]["total"] == 100
    assert body["data"]["percentage"] == 32.0


def test_small_sample_and_no_limit(client):
    enforced = client.get("/api/amr-resistance/ecoli_carbapenems").json()["data"]
    relaxed = client.get("/api/amr-resistance/ecoli_carbapenems", params={"no_limit": "true"}).json()["data"]
    assert enforced["percentage"] == RATE_UNAVAILABLE
    assert enforced["available"] is False
    assert relaxed["percentage"] == 40.0


def test_query_filters_are_applied(client):
    body = client.get("/api/amr-resistance/ecoli_carbapenems", params={"SEX": "Female", "no_limit": "true"}).json()
    assert body["data"]["total"] == 0


def test_grouped_resistance(client):
    body = client.get("/api/amr-resistance/mrsa", params={"group_by": "SEX"}).json()
    assert body["groupBy"] == "SEX"
    assert body["data"][0]["key"] == "Female"
    assert body["data"][0]["value"] == 32.0


def test_priority_resistance(client):
    body = client.get("/api/amr-priority-resistance").json()
    by_key = {r["key"]: r for r in body["data"]}
    assert by_key["mrsa"]["percentage"] == 32.0
    assert body["minSampleSize"] == 30


def test_unknown_key_is_400(client):
    response = client.get("/api/amr-resistance/not-a-thing")
    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert "mrsa" in body["accepted"]


def test_unknown_dataset_is_400(client):
    response = client.get("/api/amr-isolates-total", params={"dataset": "plants"})
    assert response.status_code == 400
    assert response.json()["accepted"] == ["human", "animal"]


def test_disallowed_column_is_400(client):
    response = client.get("/api/filter-values/password")
    assert response.status_code == 400
    assert "district" in response.json()["accepted"]


def test_missing_parameter_is_400(client):
    response = client.get("/api/amr-sir-distribution")
    assert response.status_code == 400
    assert response.json()["success"] is False


def test_filter_options_and_values(client):
    options = client.get("/api/filter-options").json()["data"]
    assert {"value": "aware", "label": "AWaRe Category"} in options
    assert all(set(o) == {"value", "label"} for o in options)
    assert len(options) == 12

    values = client.get("/api/filter-values/indication").json()
    assert values["data"][0] == {"value": "CAI", "label": "Community-acquired (<48h)"}
    assert values["count"] == 3


def test_legacy_filter_values(client):
    body = client.get("/api/amu-filter-values", params={"column": "district"}).json()
    assert body["values"] == ["Bo", "Kenema"]
    assert body["count"] == 2
    assert body["column"] == "district"


def test_legacy_filter_values_accept_value_columns(client):
    response = client.get("/api/amu-filter-values", params={"column": "sex"})
    assert response.status_code == 200
    assert response.json()["values"] == ["F", "M"]


def test_quality_filter_values(client):
    body = client.get("/api/amu-quality-filter-values", params={"column": "age_cat"}).json()
    assert body["success"] is True
    assert body["column"] == "age_cat"
    assert body["count"] == 4
    assert {"value": "Under 5 years", "label": "Under 5 years"} in body["options"]

    response = client.get("/api/amu-quality-filter-values", params={"column": "password"})
    assert response.status_code == 400
    assert "year_of_survey" in response.json()["accepted"]


def test_amu_quality_indicators(client):
    body = client.get("/api/amu-quality-indicators").json()
    assert body["totalRecords"] == 3
    assert body["tableName"] == "AMU_HH"
    assert len(body["data"]) == 6
    assert body["data"][0]["target"] == 80
    # small cohorts are still reported
    assert [i["value"] for i in body["data"]] == [66.7] * 6


def test_amu_quality_indicators_with_threshold(client):
    body = client.get("/api/amu-quality-indicators", params={"min_sample_size": 30}).json()
    assert [i["value"] for i in body["data"]] == [RATE_UNAVAILABLE] * 6
    assert body["data"][0]["available"] is False


def test_amu_indicator_grouped(client):
    body = client.get(
        "/api/amu-indicator/antibiotic_prevalence", params={"group_by": "district", "no_limit": "true"}
    ).json()
    assert [e["key"] for e in body["data"]] == ["Bo", "Kenema"]


def test_aware_distribution(client):
    body = client.get("/api/amu-aware-distribution").json()
    assert body["data"]["excluded"] == 1
    assert [c["count"] for c in body["data"]["categories"]] == [0, 2, 1, 1]


def test_atc_distribution_bad_level(client):
    assert client.get("/api/amu-atc-distribution", params={"level": "atc9"}).status_code == 400


def test_sir_distribution(client):
    body = client.get("/api/amr-sir-distribution", params={"organism": "eco", "no_limit": "true"}).json()
    antibiotics = [p["antibiotic"] for p in body["data"]]
    assert "IPM_ND10" in antibiotics
    assert "CTX_ND30" not in antibiotics
    assert body["organismName"] == "Escherichia coli"


def test_profiler(client):
    response = client.post(
        "/api/amr-profiler?no_limit=true",
        json={"organism": "sau", "dataset": "human", "filters": {"SEX": "Female"}},
    )
    body = response.json()
    assert response.status_code == 200
    assert body["data"] == [
        {"antibiotic": "FOX_ND30", "name": "Cefoxitin", "S": 68, "I": 0, "R": 32, "total": 100,
         "resistantPercentage": 32.0},
    ]


def test_most_recent_and_not_found(client):
    body = client.get("/api/amr-most-recent-spec-date").json()
    assert body["data"] == {"specDate": "2024-02-01", "organism": "kpn"}

    response = client.get("/api/amr-most-recent-spec-date", params={"dataset": "animal"})
    assert response.status_code == 404
    assert response.json()["success"] is False


def test_top_organisms_and_total(client):
    top = client.get("/api/amr-top-organisms", params={"limit": 2}).json()["data"]
    assert [e["key"] for e in top] == ["sau", "eco"]
    assert client.get("/api/amr-isolates-total").json()["data"] == {"total": 111}


def test_mappings(client):
    organisms = client.get("/api/organism-mappings").json()
    assert {"code": "eco", "name": "Escherichia coli"} in organisms["data"]
    assert organisms["dataSource"] == "organism_mapping"
    antibiotics = client.get("/api/antibiotic-mappings").json()
    assert {"column_name": "FOX_ND30", "name": "Cefoxitin"} in antibiotics["data"]


def test_upstream_failure_is_503(settings):
    source = InMemoryRowSource(error=UpstreamUnavailableError("The database is temporarily unavailable."))
    client = TestClient(create_app(settings, source=source), raise_server_exceptions=False)
    response = client.get("/api/amr-isolates-total")
    assert response.status_code == 503
    assert response.json()["error"] == "Database connectivity issue"


def test_unexpected_failure_is_500(settings):
    source = InMemoryRowSource(error=RuntimeError("boom"))
    client = TestClient(create_app(settings, source=source), raise_server_exceptions=False)
    response = client.get("/api/amr-isolates-total")
    assert response.status_code == 500
    assert response.json() == {
        "success": False,
        "error": "Internal server error",
        "message": "boom",
        "timestamp": response.json()["timestamp"],
    }
