"""Mount generic CRUD endpoints for a record type on a FastAPI router."""

import logging
from collections.abc import Callable
from typing import Any

from fastapi import APIRouter, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from autocrud.codec import peek_array
from autocrud.context import RequestContext
from autocrud.errors import BindError, CrudError, HookError, PersistenceError, ResolutionError
from autocrud.hooks import HookDispatcher
from autocrud.persistence import PersistenceAdapter
from autocrud.query import to_multimap
from autocrud.result import Result
from autocrud.service import CrudService

logger = logging.getLogger(__name__)

# Checked in order; the first matching class decides the status
ERROR_STATUS: list[tuple[type[CrudError], int]] = [
    (BindError, 400),
    (ResolutionError, 404),
    (HookError, 422),
    (PersistenceError, 500),
]


def status_for(error: CrudError) -> int:
    """HTTP status for an engine error."""
    for error_class, status in ERROR_STATUS:
        if isinstance(error, error_class):
            return status
    return 500


def error_response(error: CrudError) -> JSONResponse:
    """Render an engine error as ``{"errors": [...]}``."""
    status = status_for(error)
    if status >= 500:
        logger.error("Request failed: %s", error.message)
    return JSONResponse(status_code=status, content={"errors": [error.to_dict()]})


def request_context(request: Request) -> RequestContext:
    """Build the hook-facing context from a FastAPI request."""
    return RequestContext(
        params=to_multimap(request.query_params.multi_items()),
        path_params=dict(request.path_params),
        headers={k.lower(): v for k, v in request.headers.items()},
        request=request,
    )


async def _respond(fn: Callable[..., Any], *args: Any, status_code: int = 200) -> JSONResponse:
    try:
        body = await run_in_threadpool(fn, *args)
    except CrudError as e:
        return error_response(e)

    if isinstance(body, Result):
        body = body.to_dict()
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))


def mount(
    router: APIRouter,
    adapter: PersistenceAdapter,
    name: str,
    record_type: type,
    dispatcher: HookDispatcher | None = None,
) -> APIRouter:
    """Register the CRUD endpoints of ``record_type`` under ``/{name}``.

    Args:
        router: Router to add the endpoints to
        adapter: Persistence adapter the endpoints read and write through
        name: Path segment the record type is exposed under
        record_type: Mapped (or FieldDescribable) record class
        dispatcher: Hook dispatcher; defaults to the global registry

    Returns:
        The same router, for chaining
    """
    service = CrudService(record_type, adapter, dispatcher)
    base = f"/{name.strip('/')}"
    tags: list[str] = [service.schema.name]

    @router.get(base, tags=tags, name=f"list_{name}")
    async def list_records(request: Request):
        params = to_multimap(request.query_params.multi_items())
        return await _respond(service.list, params)

    @router.post(base, tags=tags, name=f"create_{name}")
    async def create_records(request: Request):
        raw = await request.body()
        create = service.create_many if peek_array(raw) else service.create
        return await _respond(create, raw, request_context(request), status_code=201)

    for segment, field in service.schema.path_segments():
        _mount_field(router, service, base, segment, field.name, tags)

    logger.debug("Mounted %s at %s", service.schema.name, base)
    return router


def _mount_field(
    router: APIRouter,
    service: CrudService,
    base: str,
    segment: str,
    field_name: str,
    tags: list[str],
) -> None:
    item_path = f"{base}/{segment}/{{value}}"
    batch_path = f"{base}/{segment}"

    @router.get(item_path, tags=tags)
    async def get_record(value: str):
        return await _respond(service.get, field_name, value)

    @router.put(item_path, tags=tags)
    async def update_records(value: str, request: Request):
        raw = await request.body()
        return await _respond(service.update, field_name, value, raw, request_context(request))

    @router.delete(item_path, tags=tags)
    async def delete_records(value: str):
        return await _respond(_counted(service.delete), field_name, value)

    @router.put(batch_path, tags=tags)
    async def update_batch(request: Request):
        raw = await request.body()
        return await _respond(
            _counted(service.update_many), field_name, raw, request_context(request)
        )

    @router.delete(batch_path, tags=tags)
    async def delete_batch(request: Request):
        raw = await request.body()
        return await _respond(_counted(service.delete_many), field_name, raw)


def _counted(fn: Callable[..., int]) -> Callable[..., dict[str, int]]:
    def wrapper(*args: Any) -> dict[str, int]:
        return {"count": fn(*args)}

    return wrapper
