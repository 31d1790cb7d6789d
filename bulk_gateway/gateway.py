import logging
from typing import Any, Awaitable, Callable, List, Mapping, Optional, Sequence, TypeVar, Union

from elasticsearch import ApiError, AsyncElasticsearch, TransportError
from pydantic import ValidationError

from .config import ElasticConfig, load_config
from .exceptions import GatewayClosedError, InputValidationError
from .fanout import bounded_map
from .models import ActionResult, Document, UpdateSpec
from .normalize import (
    from_error,
    from_exists_response,
    from_get_error,
    from_get_response,
    from_query_response,
    from_search_response,
    from_write_response,
)
from .request_builder import to_id_request, to_index_request, to_query_request, to_update_request

logger = logging.getLogger(__name__)

DocId = Union[str, int]
T = TypeVar("T")


def _as_list(value, what: str) -> list:
    """Accepts a single item or a list/tuple of items; empty lists are rejected."""
    items = list(value) if isinstance(value, (list, tuple)) else [value]
    if not items:
        raise InputValidationError(f"At least one {what} is required")
    return items


def _check_index(index: str) -> None:
    if not isinstance(index, str) or not index.strip():
        raise InputValidationError("Index name must be a non-empty string")


def _check_indices(indices: Union[str, Sequence[str]]) -> None:
    for index in _as_list(indices, "index"):
        _check_index(index)


def _check_ids(ids: Union[DocId, Sequence[DocId]]) -> List[DocId]:
    ids = _as_list(ids, "id")
    for doc_id in ids:
        if isinstance(doc_id, bool) or not isinstance(doc_id, (str, int)) or doc_id == "":
            raise InputValidationError(f"Invalid document id: {doc_id!r}")
    return ids


def _check_query(query: Mapping[str, Any]) -> None:
    if not isinstance(query, Mapping):
        raise InputValidationError("Query payload must be a mapping")


def _to_update_spec(update: Union[UpdateSpec, Mapping[str, Any]]) -> UpdateSpec:
    if isinstance(update, UpdateSpec):
        return update
    try:
        return UpdateSpec.model_validate(update)
    except ValidationError as exc:
        raise InputValidationError(f"Invalid update payload: {exc}") from exc


class ElasticsearchGateway:
    """
    Bulk-oriented wrapper around AsyncElasticsearch.

    Every multi-document operation takes a single item or a list, fans the
    per-item requests out with a concurrency ceiling and returns one
    ActionResult per input item, in input order. Engine errors (missing
    document, version conflict, bad script) are folded into the item's
    result; transport failures propagate and abort the whole call.
    """

    def __init__(self, config: Optional[ElasticConfig] = None, client: Optional[AsyncElasticsearch] = None):
        self.config = config or load_config()
        self.client = client or AsyncElasticsearch(
            [self.config.url], request_timeout=self.config.request_timeout
        )
        self._closed = False
        logger.info("Elasticsearch gateway opened for %s", self.config.url)

    @property
    def closed(self) -> bool:
        return self._closed

    async def close(self) -> None:
        """Release the connection handle. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        await self.client.close()
        logger.info("Elasticsearch gateway closed for %s", self.config.url)

    async def __aenter__(self) -> "ElasticsearchGateway":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    def _ensure_open(self) -> None:
        if self._closed:
            raise GatewayClosedError("Gateway is closed")

    async def _fan_out(self, operation: str, index, items: List[T], func: Callable[[T], Awaitable[ActionResult]]) -> List[ActionResult]:
        logger.debug("Dispatching %s of %d item(s) to %s", operation, len(items), index)
        try:
            return await bounded_map(items, func, self.config.concurrency)
        except TransportError as exc:
            logger.error("Transport failure during %s on %s: %s", operation, index, exc)
            raise

    def _item_failed(self, operation: str, exc: ApiError, index: str, doc_id: Optional[DocId]) -> None:
        logger.warning(
            "%s failed for %s/%s with status %s: %s", operation, index, doc_id, exc.meta.status, exc
        )

    async def index_many(
        self,
        index: str,
        docs: Union[Mapping[str, Any], Sequence[Mapping[str, Any]]],
        **options,
    ) -> List[ActionResult]:
        """Index (create or replace) one or more documents. A document's ``id`` field, if any, becomes its id."""
        self._ensure_open()
        _check_index(index)
        docs = _as_list(docs, "document")
        for doc in docs:
            if not isinstance(doc, Mapping):
                raise InputValidationError(f"Documents must be mappings, got {type(doc).__name__}")

        async def index_one(doc: Mapping[str, Any]) -> ActionResult:
            request = to_index_request(index, doc, options)
            try:
                response = await self.client.index(**request)
            except ApiError as exc:
                self._item_failed("index", exc, index, request.get("id"))
                return from_error(exc, index, request.get("id"))
            return from_write_response(response)

        return await self._fan_out("index", index, docs, index_one)

    async def get_by_id(self, index: str, ids: Union[DocId, Sequence[DocId]], **options) -> List[ActionResult]:
        """Fetch documents; a missing id yields a stub with only ``_index`` and ``_id``."""
        self._ensure_open()
        _check_index(index)
        ids = _check_ids(ids)

        async def get_one(doc_id: DocId) -> ActionResult:
            try:
                response = await self.client.get(**to_id_request(index, doc_id, options))
            except ApiError as exc:
                if exc.meta.status != 404:
                    self._item_failed("get", exc, index, doc_id)
                return from_get_error(exc, index, doc_id)
            return from_get_response(response, index, doc_id)

        return await self._fan_out("get", index, ids, get_one)

    async def delete_by_id(self, index: str, ids: Union[DocId, Sequence[DocId]], **options) -> List[ActionResult]:
        self._ensure_open()
        _check_index(index)
        ids = _check_ids(ids)

        async def delete_one(doc_id: DocId) -> ActionResult:
            try:
                response = await self.client.delete(**to_id_request(index, doc_id, options))
            except ApiError as exc:
                self._item_failed("delete", exc, index, doc_id)
                return from_error(exc, index, doc_id)
            return from_write_response(response)

        return await self._fan_out("delete", index, ids, delete_one)

    async def exists(self, index: str, ids: Union[DocId, Sequence[DocId]], **options) -> List[ActionResult]:
        """Existence check per id: ``exists`` is True with status 200, False with 404."""
        self._ensure_open()
        _check_index(index)
        ids = _check_ids(ids)

        async def exists_one(doc_id: DocId) -> ActionResult:
            try:
                response = await self.client.exists(**to_id_request(index, doc_id, options))
            except ApiError as exc:
                self._item_failed("exists", exc, index, doc_id)
                return from_error(exc, index, doc_id)
            return from_exists_response(response, index, doc_id)

        return await self._fan_out("exists", index, ids, exists_one)

    async def update_by_id(
        self,
        index: str,
        ids: Union[DocId, Sequence[DocId]],
        update: Union[UpdateSpec, Mapping[str, Any]],
        **options,
    ) -> List[ActionResult]:
        """
        Apply the same update to each id.

        ``update`` is either ``{"doc": {...}}`` for a partial merge or
        ``{"script": {"lang": ..., "source": ..., "params": {...}}}``.
        """
        self._ensure_open()
        _check_index(index)
        ids = _check_ids(ids)
        body = _to_update_spec(update).to_body()

        async def update_one(doc_id: DocId) -> ActionResult:
            try:
                response = await self.client.update(**to_update_request(index, doc_id, body, options))
            except ApiError as exc:
                self._item_failed("update", exc, index, doc_id)
                return from_error(exc, index, doc_id)
            return from_write_response(response)

        return await self._fan_out("update", index, ids, update_one)

    async def _single_shot(self, operation: str, index, call: Callable[[], Awaitable[Any]]):
        try:
            return await call()
        except TransportError as exc:
            logger.error("Transport failure during %s on %s: %s", operation, index, exc)
            raise

    async def delete_by_query(
        self,
        indices: Union[str, Sequence[str]],
        query: Mapping[str, Any],
        **options,
    ) -> ActionResult:
        """Delete every document matching ``query``; reports ``total`` and ``deleted``."""
        self._ensure_open()
        _check_indices(indices)
        _check_query(query)
        request = to_query_request(indices, query, options)
        try:
            response = await self._single_shot(
                "delete_by_query", indices, lambda: self.client.delete_by_query(**request)
            )
        except ApiError as exc:
            self._item_failed("delete_by_query", exc, indices, None)
            return from_error(exc)
        return from_query_response(response, "deleted")

    async def update_by_query(
        self,
        index: Union[str, Sequence[str]],
        update: Union[UpdateSpec, Mapping[str, Any]],
        **options,
    ) -> ActionResult:
        """Run a script against every document matched by the update's embedded ``query``."""
        self._ensure_open()
        _check_indices(index)
        request = to_query_request(index, _to_update_spec(update).to_body(), options)
        try:
            response = await self._single_shot(
                "update_by_query", index, lambda: self.client.update_by_query(**request)
            )
        except ApiError as exc:
            self._item_failed("update_by_query", exc, index, None)
            return from_error(exc)
        return from_query_response(response, "updated")

    async def search(
        self,
        index: Union[str, Sequence[str]],
        query: Mapping[str, Any],
        **options,
    ) -> List[Document]:
        """Run a search; hits come back with their content merged with ``_id``/``_score`` metadata."""
        self._ensure_open()
        _check_indices(index)
        _check_query(query)
        request = to_query_request(index, query, options)
        try:
            response = await self._single_shot("search", index, lambda: self.client.search(**request))
        except ApiError as exc:
            self._item_failed("search", exc, index, None)
            return []
        return from_search_response(response)
