"""
Tests for the REST API.
"""
import pytest
from fastapi.testclient import TestClient

from pivot_explorer.codec.query_codec import QueryCodec, b64encode_json
from pivot_explorer.config import ExplorerConfig
from pivot_explorer.rest_api import create_api
from pivot_explorer.storage.saved_queries import MemorySavedQueryStore
from pivot_explorer.types.pivot_field import PivotConfiguration


@pytest.fixture
def client():
    api = create_api(ExplorerConfig(), store=MemorySavedQueryStore())
    return TestClient(api.get_app())


@pytest.fixture
def configuration_body():
    return {
        "fields": [
            {"field": "Exec:name", "type": "row"},
            {"field": "Metric:name", "type": "column"},
            {"field": "Metric:value", "type": "value", "aggregators": ["avg", "max"]},
            {"field": "Exec:status", "type": "filter", "operator": "==", "value": "done"},
        ],
        "is_relative": True,
        "view_mode": "interactive",
    }


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_options(client):
    data = client.get("/pivot/options").json()
    assert "avg" in data["aggregators"]
    assert "not like" in data["operators"]


def test_encode(client, configuration_body):
    response = client.post("/pivot/encode", json=configuration_body)
    assert response.status_code == 200

    data = response.json()["data"]
    assert data["parameters"]["rows"] == "Exec:name"
    assert data["parameters"]["relative"] == "true"
    assert data["payload"]["values"] == {"Metric:value": ["avg", "max"]}
    assert data["link"].startswith("/pivot?")


def test_encode_unknown_role_rejected(client):
    response = client.post("/pivot/encode", json={"fields": [{"field": "x", "type": "sideways"}]})
    assert response.status_code == 422


def test_decode_round_trip(client, configuration_body):
    parameters = client.post("/pivot/encode", json=configuration_body).json()["data"]["parameters"]

    body = client.get("/pivot/decode", params=parameters).json()

    assert body["status"] == "success"
    assert body["data"]["fields"] == configuration_body["fields"]
    assert body["data"]["is_relative"] is True


def test_decode_partial(client):
    body = client.get("/pivot/decode", params={"rows": "Exec:name", "filters": "@@@"}).json()

    assert body["status"] == "partial"
    assert len(body["errors"]) == 1
    assert body["data"]["fields"] == [{"field": "Exec:name", "type": "row"}]


def test_shape_relative(client):
    parameters = QueryCodec().encode(PivotConfiguration.default())
    parameters["relative"] = "true"
    rows = [
        {"Exec_name": "a", "Metric_name=x/Metric_value/avg": 2.0, "Metric_name=y/Metric_value/avg": 5.0},
        {"Exec_name": "b", "Metric_name=x/Metric_value/avg": 4.0, "Metric_name=y/Metric_value/avg": 2.0},
    ]

    body = client.post("/pivot/shape", json={
        "parameters": parameters,
        "data": rows,
        "baseline": "Metric_name=y/Metric_value/avg",
    }).json()

    result = body["data"]
    assert body["status"] == "success"
    assert result["baseline"] == "Metric_name=y/Metric_value/avg"
    assert result["rows"][0]["Metric_name=x/Metric_value/avg"] == 0.4
    assert result["rows"][1]["Metric_name=x/Metric_value/avg"] == 2.0
    assert result["structure"]["row_columns"] == ["Exec_name"]
    assert result["structure"]["header_levels"][-1] == [{"label": "AVG", "span": 2, "level": "aggregator"}]


def test_saved_query_lifecycle(client):
    parameters = {"rows": "Exec:name", "values": b64encode_json([{"field": "Metric:value", "aggregators": ["sum"]}])}

    saved = client.post("/queries", json={"name": "sums", "parameters": parameters})
    assert saved.status_code == 200
    assert saved.json()["data"]["query"]["url"] == "/pivot"

    listed = client.get("/queries").json()["data"]
    assert [q["name"] for q in listed] == ["sums"]

    loaded = client.get("/queries/sums").json()
    assert loaded["data"]["configuration"]["fields"][1] == {
        "field": "Metric:value", "type": "value", "aggregators": ["sum"],
    }

    link = client.get("/queries/sums/link").json()["link"]
    assert link.startswith("/pivot?rows=Exec%3Aname")

    assert client.delete("/queries/sums").status_code == 200
    assert client.get("/queries").json()["data"] == []


def test_missing_query_is_404(client):
    assert client.get("/queries/nope").status_code == 404
    assert client.get("/queries/nope/link").status_code == 404
    assert client.delete("/queries/nope").status_code == 404


def test_encode_unknown_operator_rejected(client):
    response = client.post("/pivot/encode", json={
        "fields": [{"field": "Exec:status", "type": "filter", "operator": "~", "value": "x"}],
    })
    assert response.status_code == 422


def test_shape_ignores_row_column_baseline(client):
    parameters = QueryCodec().encode(PivotConfiguration.default())
    parameters["relative"] = "true"

    result = client.post("/pivot/shape", json={
        "parameters": parameters,
        "data": [{"Exec_name": "a", "Metric_value/avg": 8.0, "Metric_value/max": 12.0}],
        "baseline": "Exec_name",
    }).json()["data"]

    assert result["baseline"] == "Metric_value/avg"
    assert result["rows"][0] == {"Exec_name": "a", "Metric_value/avg": 1.0, "Metric_value/max": 1.5}
