from __future__ import annotations

import os

import pytest

from bulk_gateway import ElasticConfig, ElasticsearchGateway
from tests.fakes import FakeElasticsearch


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers",
        "integration: tests that require a running Elasticsearch cluster",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    if os.getenv("ES_RUN_INTEGRATION") == "1":
        return

    skip_integration = pytest.mark.skip(reason="Set ES_RUN_INTEGRATION=1 to run integration tests")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)


@pytest.fixture
def fake_client() -> FakeElasticsearch:
    return FakeElasticsearch()


@pytest.fixture
def config() -> ElasticConfig:
    return ElasticConfig(url="http://es.test:9200")


@pytest.fixture
async def gateway(config, fake_client):
    gw = ElasticsearchGateway(config, client=fake_client)
    yield gw
    await gw.close()
