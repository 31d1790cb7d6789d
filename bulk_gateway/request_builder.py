"""Builds keyword arguments for the AsyncElasticsearch calls.

Caller options are merged first so the explicit index, id and body always
win over a colliding option.
"""

from typing import Any, Dict, Mapping, Optional, Sequence, Union


def to_index_request(index: str, doc: Mapping[str, Any], options: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
    """Index request for one document; the engine assigns an id when the document has none."""
    request = {**(options or {}), "index": index, "body": doc}
    doc_id = doc.get("id")
    if doc_id is not None:
        request["id"] = doc_id
    else:
        request.pop("id", None)
    return request


def to_id_request(index: str, doc_id: Union[str, int], options: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
    """Request addressing a single document (get, delete, exists)."""
    return {**(options or {}), "index": index, "id": doc_id}


def to_update_request(
    index: str,
    doc_id: Union[str, int],
    body: Mapping[str, Any],
    options: Optional[Mapping[str, Any]] = None,
) -> Dict[str, Any]:
    return {**(options or {}), "index": index, "id": doc_id, "body": body}


def to_query_request(
    index: Union[str, Sequence[str]],
    body: Mapping[str, Any],
    options: Optional[Mapping[str, Any]] = None,
) -> Dict[str, Any]:
    """Request for search and the query-scoped operations; the body is passed through as is."""
    return {**(options or {}), "index": index, "body": body}
