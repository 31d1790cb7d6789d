import os
from typing import Optional

from pydantic import BaseModel, Field

DEFAULT_CONCURRENCY = 5


class ElasticConfig(BaseModel):
    url: str  # Engine endpoint, e.g. http://localhost:9200
    key_prefix: Optional[str] = None  # Reserved for index namespacing, unused by the operations
    concurrency: int = Field(default=DEFAULT_CONCURRENCY, ge=1)  # Max in-flight requests per batch
    request_timeout: float = Field(default=30, gt=0)  # Seconds, enforced by the client


def _default_url() -> str:
    es_host = os.getenv("ES_HOST", "localhost")
    es_port = int(os.getenv("ES_PORT", 9200))
    es_scheme = os.getenv("ES_SCHEME", "http")
    return f"{es_scheme}://{es_host}:{es_port}"


def load_config(**overrides) -> ElasticConfig:
    """
    Builds an ElasticConfig from environment variables and keyword overrides.

    Resolution order (later wins):
    1. Model defaults
    2. Environment variables: ES_URL, or ES_SCHEME/ES_HOST/ES_PORT when ES_URL
       is unset; ES_KEY_PREFIX, ES_CONCURRENCY, ES_REQUEST_TIMEOUT
    3. Explicit keyword arguments

    Raises TypeError for an unknown override key.
    """
    values = {"url": os.getenv("ES_URL") or _default_url()}

    key_prefix = os.getenv("ES_KEY_PREFIX")
    if key_prefix:
        values["key_prefix"] = key_prefix

    concurrency = os.getenv("ES_CONCURRENCY")
    if concurrency:
        values["concurrency"] = int(concurrency)

    request_timeout = os.getenv("ES_REQUEST_TIMEOUT")
    if request_timeout:
        values["request_timeout"] = float(request_timeout)

    for key, value in overrides.items():
        if key not in ElasticConfig.model_fields:
            raise TypeError(f"Unknown config key: {key!r}")
        values[key] = value

    return ElasticConfig(**values)
