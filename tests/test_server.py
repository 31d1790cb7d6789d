from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from bulk_gateway import ElasticConfig, ElasticsearchGateway
from bulk_gateway.server import create_app
from tests.fakes import FakeElasticsearch

INDEX = "game-of-thrones"


@pytest.fixture
def fake():
    return FakeElasticsearch()


@pytest.fixture
def client(fake):
    app = create_app(lambda: ElasticsearchGateway(ElasticConfig(url="http://es.test:9200"), client=fake))
    with TestClient(app) as test_client:
        yield test_client


def test_index_get_and_delete_routes(client):
    indexed = client.post(
        f"/{INDEX}/_docs",
        json={"docs": [{"id": "ned", "character": "Ned Stark"}, {"character": "Arya Stark"}], "options": {"refresh": True}},
    )
    assert indexed.status_code == 200
    assert [r["_statusCode"] for r in indexed.json()] == [201, 201]

    got = client.post(f"/{INDEX}/_mget", json={"ids": ["ned", "nobody"]}).json()
    assert got[0]["character"] == "Ned Stark"
    assert got[1] == {"_statusCode": 404, "_index": INDEX, "_id": "nobody", "_found": False, "result": "not_found"}

    deleted = client.post(f"/{INDEX}/_delete", json={"ids": "ned"}).json()
    assert deleted[0]["result"] == "deleted"

    exists = client.post(f"/{INDEX}/_exists", json={"ids": ["ned"]}).json()
    assert exists[0]["exists"] is False


def test_update_routes(client):
    client.post(f"/{INDEX}/_docs", json={"docs": {"id": "ned", "times": 0, "character": "Ned Stark"}})

    updated = client.post(f"/{INDEX}/_update", json={"ids": ["ned"], "script": {"source": "ctx._source.times++"}})
    by_query = client.post(
        f"/{INDEX}/_update_by_query",
        json={"query": {"match": {"character": "stark"}}, "script": {"source": 'ctx._source["house"] = "stark"'}},
    )
    doc = client.post(f"/{INDEX}/_mget", json={"ids": "ned"}).json()[0]

    assert updated.json()[0]["result"] == "updated"
    assert by_query.json()["updated"] == 1
    assert (doc["times"], doc["house"]) == (1, "stark")


def test_update_without_variant_is_unprocessable(client, fake):
    response = client.post(f"/{INDEX}/_update", json={"ids": ["ned"]})

    assert response.status_code == 422
    assert fake.calls == []


def test_search_and_delete_by_query_routes(client, fake):
    client.post(
        f"/{INDEX}/_docs",
        json={"docs": [{"quote": "Winter is coming."}, {"quote": "I am the blood of the dragon."}]},
    )

    hits = client.post(f"/{INDEX}/_search", json={"query": {"match": {"quote": "winter"}}, "size": 5}).json()
    deleted = client.post(f"/{INDEX}/_delete_by_query", json={"query": {"match": {"quote": "dragon"}}}).json()

    assert [h["quote"] for h in hits] == ["Winter is coming."]
    assert fake.calls[-2][1]["body"]["size"] == 5
    assert fake.calls[-2][1]["body"]["from"] == 0
    assert "size" not in fake.calls[-2][1]
    assert deleted["_statusCode"] == 200
    assert deleted["deleted"] == 1


def test_transport_failure_is_service_unavailable(client, fake):
    fake.unreachable_ids = {"ned"}

    response = client.post(f"/{INDEX}/_delete", json={"ids": ["ned"]})

    assert response.status_code == 503
    assert "Elasticsearch unavailable" in response.json()["detail"]


def test_shutdown_closes_gateway(fake):
    app = create_app(lambda: ElasticsearchGateway(ElasticConfig(url="http://es.test:9200"), client=fake))

    with TestClient(app):
        pass

    assert fake.close_calls == 1
