"""Bulk-oriented convenience layer over the Elasticsearch document APIs."""

from .config import ElasticConfig, load_config
from .exceptions import GatewayClosedError, GatewayError, InputValidationError
from .fanout import bounded_map
from .gateway import ElasticsearchGateway
from .models import ActionResult, Document, Script, UpdateSpec

__all__ = [
    "ActionResult",
    "Document",
    "ElasticConfig",
    "ElasticsearchGateway",
    "GatewayClosedError",
    "GatewayError",
    "InputValidationError",
    "Script",
    "UpdateSpec",
    "bounded_map",
    "load_config",
]
