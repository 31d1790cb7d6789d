"""Projects raw engine responses and engine errors onto ActionResult / Document.

Responses are the client's ApiResponse objects: ``response.meta.status``
holds the HTTP status and ``response.body`` the decoded JSON (a bool for
HEAD requests). Engine errors are ``elasticsearch.ApiError`` instances,
which carry the same ``meta`` and ``body``.
"""

from typing import Any, Dict, List, Mapping, Optional, Union

from elasticsearch import ApiError

from .models import ActionResult, Document

METADATA_FIELDS = ("_index", "_id", "_version", "_seq_no", "_primary_term")
# Stored fields with these names stay out of the typed fields and are read through ``source``
RESERVED_FIELDS = frozenset(("result", "total", "updated", "deleted", "exists", "error"))


def _metadata(body: Mapping[str, Any]) -> Dict[str, Any]:
    return {key: body[key] for key in METADATA_FIELDS if body.get(key) is not None}


def _identity(index: Optional[str], doc_id: Optional[Union[str, int]]) -> Dict[str, Any]:
    fields: Dict[str, Any] = {}
    if index is not None:
        fields["_index"] = index
    if doc_id is not None:
        fields["_id"] = str(doc_id)
    return fields


def from_write_response(response) -> ActionResult:
    """Index, delete and update responses all share the same metadata block."""
    body = response.body
    fields = _metadata(body)
    fields["_statusCode"] = response.meta.status
    fields["result"] = body.get("result") or "error"
    return ActionResult.model_validate(fields)


def _not_found_stub(status: int, body: Mapping[str, Any], index: str, doc_id: Union[str, int]) -> ActionResult:
    fields = _identity(body.get("_index", index), body.get("_id", doc_id))
    fields.update({"_statusCode": status, "_found": False, "result": "not_found"})
    return ActionResult.model_validate(fields)


def from_get_response(response, index: str, doc_id: Union[str, int]) -> ActionResult:
    body = response.body
    if not body.get("found"):
        return _not_found_stub(response.meta.status, body, index, doc_id)
    source = body.get("_source", {})
    fields = {key: value for key, value in source.items() if key not in RESERVED_FIELDS}
    # metadata wins on a name clash
    fields.update(_metadata(body))
    fields.update({"_statusCode": response.meta.status, "_found": True, "result": "found"})
    return ActionResult.model_validate(fields).with_content(source)


def from_get_error(exc: ApiError, index: str, doc_id: Union[str, int]) -> ActionResult:
    """A missing document comes back as a 404 error carrying ``found: false``."""
    body = exc.body
    if isinstance(body, Mapping) and body.get("found") is False:
        return _not_found_stub(exc.meta.status, body, index, doc_id)
    return from_error(exc, index, doc_id)


def from_exists_response(response, index: str, doc_id: Union[str, int]) -> ActionResult:
    status = response.meta.status
    exists = 200 <= status < 300
    fields = _identity(index, doc_id)
    fields.update({"_statusCode": status, "exists": exists, "result": "found" if exists else "not_found"})
    return ActionResult.model_validate(fields)


def from_error(
    exc: ApiError,
    index: Optional[str] = None,
    doc_id: Optional[Union[str, int]] = None,
) -> ActionResult:
    """
    Best-effort result for an engine error.

    Identity comes from the request, overridden by whatever the error body
    reports. A delete miss keeps the engine's own ``not_found`` tag and has
    no ``error`` entry; everything else carries the engine's error detail.
    """
    status = exc.meta.status
    body = exc.body
    fields = _identity(index, doc_id)
    detail: Any = None
    tag: Optional[str] = None
    if isinstance(body, Mapping):
        fields.update(_metadata(body))
        tag = body.get("result")
        detail = body.get("error")
        if detail is None and tag is None:
            detail = dict(body) or str(exc)
    else:
        detail = body or str(exc)

    fields["_statusCode"] = status
    fields["result"] = tag or ("not_found" if status == 404 else "error")
    if detail is not None:
        fields["error"] = detail
    return ActionResult.model_validate(fields)


def from_query_response(response, counter: str) -> ActionResult:
    """Delete/update-by-query report aggregate counters instead of identity."""
    body = response.body
    fields: Dict[str, Any] = {
        "_statusCode": response.meta.status,
        "result": counter,
        "total": body.get("total", 0),
        counter: body.get(counter, 0),
    }
    if body.get("failures"):
        fields["error"] = body["failures"]
    return ActionResult.model_validate(fields)


def from_search_response(response) -> List[Document]:
    if response.meta.status != 200:
        return []
    documents = []
    for hit in response.body.get("hits", {}).get("hits", []):
        source = hit.get("_source", {})
        fields = {**source, **_metadata(hit)}
        if hit.get("_score") is not None:
            fields["_score"] = hit["_score"]
        documents.append(Document.model_validate(fields).with_content(source))
    return documents
