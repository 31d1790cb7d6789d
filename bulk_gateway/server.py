import os
from contextlib import asynccontextmanager
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

import uvicorn
from elasticsearch import TransportError
from fastapi import APIRouter, FastAPI, HTTPException, Request
from pydantic import BaseModel, Field

from .exceptions import InputValidationError
from .gateway import ElasticsearchGateway
from .models import Script

router = APIRouter()


# Request bodies. `options` is forwarded to the engine call verbatim (refresh, op_type, routing, ...)
class DocsRequest(BaseModel):
    docs: Union[Dict[str, Any], List[Dict[str, Any]]]
    options: Dict[str, Any] = Field(default_factory=dict)


class IdsRequest(BaseModel):
    ids: Union[str, List[str]]
    options: Dict[str, Any] = Field(default_factory=dict)


class UpdateRequest(IdsRequest):
    doc: Optional[Dict[str, Any]] = None  # Partial document merge
    script: Optional[Script] = None  # Or a script run server side


class QueryRequest(BaseModel):
    query: Dict[str, Any]  # Query DSL clause, e.g. {"match": {"quote": "dragon"}}
    options: Dict[str, Any] = Field(default_factory=dict)


class UpdateByQueryRequest(BaseModel):
    query: Optional[Dict[str, Any]] = None  # Omitted means every document
    script: Script
    options: Dict[str, Any] = Field(default_factory=dict)


class SearchRequest(QueryRequest):
    size: int = Field(default=10, ge=1, le=100)  # Number of hits to return
    from_: int = Field(default=0, ge=0)  # Offset for pagination


def get_gateway(request: Request) -> ElasticsearchGateway:
    return request.app.state.gateway


async def run_gateway_call(call: Awaitable[Any]) -> Any:
    """Maps gateway failures onto HTTP errors: bad input is 422, an unreachable engine 503."""
    try:
        return await call
    except InputValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except TransportError as e:
        raise HTTPException(status_code=503, detail=f"Elasticsearch unavailable: {str(e)}")


@router.post("/{index}/_docs")
async def index_docs(index: str, body: DocsRequest, request: Request):
    results = await run_gateway_call(get_gateway(request).index_many(index, body.docs, **body.options))
    return [result.to_dict() for result in results]


@router.post("/{index}/_mget")
async def get_docs(index: str, body: IdsRequest, request: Request):
    results = await run_gateway_call(get_gateway(request).get_by_id(index, body.ids, **body.options))
    return [result.to_dict() for result in results]


@router.post("/{index}/_exists")
async def exists_docs(index: str, body: IdsRequest, request: Request):
    results = await run_gateway_call(get_gateway(request).exists(index, body.ids, **body.options))
    return [result.to_dict() for result in results]


@router.post("/{index}/_delete")
async def delete_docs(index: str, body: IdsRequest, request: Request):
    results = await run_gateway_call(get_gateway(request).delete_by_id(index, body.ids, **body.options))
    return [result.to_dict() for result in results]


@router.post("/{index}/_update")
async def update_docs(index: str, body: UpdateRequest, request: Request):
    update = body.model_dump(include={"doc", "script"}, exclude_none=True)
    results = await run_gateway_call(get_gateway(request).update_by_id(index, body.ids, update, **body.options))
    return [result.to_dict() for result in results]


@router.post("/{index}/_delete_by_query")
async def delete_by_query(index: str, body: QueryRequest, request: Request):
    result = await run_gateway_call(
        get_gateway(request).delete_by_query(index, {"query": body.query}, **body.options)
    )
    return result.to_dict()


@router.post("/{index}/_update_by_query")
async def update_by_query(index: str, body: UpdateByQueryRequest, request: Request):
    update = body.model_dump(include={"query", "script"}, exclude_none=True)
    result = await run_gateway_call(get_gateway(request).update_by_query(index, update, **body.options))
    return result.to_dict()


@router.post("/{index}/_search")
async def search(index: str, body: SearchRequest, request: Request):
    # size and from ride in the search body, next to the query
    search_body = {"query": body.query, "size": body.size, "from": body.from_}
    hits = await run_gateway_call(get_gateway(request).search(index, search_body, **body.options))
    return [hit.to_dict() for hit in hits]


def create_app(gateway_factory: Callable[[], ElasticsearchGateway] = ElasticsearchGateway) -> FastAPI:
    """Builds the HTTP app; the gateway is opened on startup and closed on shutdown."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.gateway = gateway_factory()
        try:
            yield
        finally:
            await app.state.gateway.close()

    app = FastAPI(title="Elasticsearch bulk gateway", lifespan=lifespan)
    app.include_router(router)
    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", 8000)))
