"""
FastAPI application for bulk import/export.

This module exposes the ExchangeService over HTTP. Entity types are
registered on the module-level ``registry`` at process start, before the
server begins handling requests.

API Endpoints:
    - GET /health: Health check
    - GET /api/entities: List registered entity types
    - POST /api/{entity}/import: Upload and import a file
    - GET /api/{entity}/import/template: Download an import template
    - GET /api/{entity}/export: Download an export

Example:
    To run the server:
        uvicorn bulkport.main:app --reload

    Or programmatically:
        from bulkport.main import registry, run_server
        registry.register_import(policy, saver)
        run_server()
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Annotated, Any

import uvicorn
from fastapi import FastAPI, File, HTTPException, Query, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import ValidationError

from bulkport import __version__
from bulkport.config import Settings, load_settings
from bulkport.exceptions import ExchangeError
from bulkport.logging_setup import setup_logging
from bulkport.models import EntityInfo, ErrorResponse, ExportFile, ExportFilter, ImportResult
from bulkport.services import ExchangeRegistry, ExchangeService

logger = logging.getLogger(__name__)

SERVICE_NAME = "Bulk Import/Export Service"
EXPORT_PARAMETERS = frozenset({"format", "page", "size", "sort_by", "sort_dir"})

registry = ExchangeRegistry()
exchange_service: ExchangeService | None = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Builds the exchange service over the module registry on startup and
    drops it on shutdown.

    Args:
        app: The FastAPI application instance.
    """
    global exchange_service
    exchange_service = ExchangeService(registry)
    yield
    exchange_service = None


app = FastAPI(
    title=SERVICE_NAME,
    description="""
    Generic bulk import/export of tabular files for registered entity types.

    ## Features

    - **Import**: CSV, .xlsx/.xlsm (openpyxl), .xls/.xlsb/.ods (python-calamine)
    - **Failure strategies**: FAIL_FAST, SKIP_ERRORS, COLLECT_ALL
    - **Export**: styled .xlsx (XlsxWriter) or CSV
    - **Templates**: marked required columns, example row, dropdown lists
    """,
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition"],
)


def get_service() -> ExchangeService:
    """
    Get the exchange service instance.

    Returns:
        The global ExchangeService instance.

    Raises:
        HTTPException: If the service is not initialized.
    """
    if exchange_service is None:
        raise HTTPException(
            status_code=503,
            detail="Exchange service is not initialized",
        )
    return exchange_service


def handle_exchange_error(error: ExchangeError) -> JSONResponse:
    """
    Convert ExchangeError to appropriate HTTP response.

    Args:
        error: The ExchangeError to convert.

    Returns:
        JSONResponse with appropriate status code and error details.
    """
    status_code_map = {
        "ENTITY_NOT_FOUND": 404,
        "UNSUPPORTED_FORMAT": 400,
        "PARSE_ERROR": 400,
        "ROW_VALIDATION_ERROR": 400,
        "RENDER_ERROR": 500,
        "PERSISTENCE_ERROR": 500,
        "CONFIGURATION_ERROR": 500,
    }

    status_code = status_code_map.get(error.error_code, 500)

    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(**error.to_dict()).model_dump(),
    )


@app.exception_handler(ExchangeError)
async def exchange_error_handler(request: Request, exc: ExchangeError) -> JSONResponse:
    return handle_exchange_error(exc)


def file_response(export_file: ExportFile, error_code: str) -> Response:
    """
    Turn a rendered file into a download response.

    A failed rendering becomes a 500 error response carrying its message.
    """
    if not export_file.success:
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(
                error_code=error_code,
                message=export_file.message,
                details={"filename": export_file.filename},
            ).model_dump(),
        )
    return Response(
        content=export_file.content,
        media_type=export_file.content_type,
        headers={"Content-Disposition": f'attachment; filename="{export_file.filename}"'},
    )


@app.get(
    "/health",
    tags=["System"],
    summary="Health check",
    response_model=dict,
)
async def health_check() -> dict[str, Any]:
    """
    Check the health status of the service.

    Returns:
        Dictionary containing status and timestamp.
    """
    return {
        "status": "healthy",
        "service": SERVICE_NAME,
        "version": __version__,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@app.get(
    "/api/entities",
    tags=["Entities"],
    summary="List registered entity types",
    response_model=list[EntityInfo],
)
async def list_entities() -> list[EntityInfo]:
    """List entity types with their import columns and export fields."""
    return get_service().list_entities()


@app.post(
    "/api/{entity}/import",
    tags=["Import"],
    summary="Import a file",
    response_model=ImportResult,
    responses={
        404: {"model": ErrorResponse, "description": "Entity not registered for import"},
    },
)
async def import_file(
    entity: str,
    file: Annotated[UploadFile, File(description="CSV or spreadsheet file to import")],
) -> ImportResult:
    """
    Import an uploaded file for an entity type.

    The response is 200 whenever the entity exists; whether rows were
    saved is reported by ``success``, the counts and the per-row errors.

    Args:
        entity: Registered entity name.
        file: The uploaded file.

    Returns:
        ImportResult describing the run.
    """
    service = get_service()
    content = await file.read()
    logger.info("Import request for entity '%s', file '%s'", entity, file.filename)
    return service.import_file(entity, content, file.filename)


@app.get(
    "/api/{entity}/import/template",
    tags=["Import"],
    summary="Download an import template",
    responses={
        200: {"content": {"application/octet-stream": {}}, "description": "Template file"},
        404: {"model": ErrorResponse, "description": "Entity not registered for import"},
        500: {"model": ErrorResponse, "description": "Template could not be rendered"},
    },
)
async def download_template(
    entity: str,
    format: Annotated[str | None, Query(description="xlsx (default) or csv")] = None,
) -> Response:
    """
    Download the import template of an entity type.

    Args:
        entity: Registered entity name.
        format: Output format; unknown values fall back to xlsx.
    """
    service = get_service()
    logger.info("Template request for entity '%s', format %s", entity, format)
    return file_response(service.template(entity, format), "RENDER_ERROR")


@app.get(
    "/api/{entity}/export",
    tags=["Export"],
    summary="Download an export",
    responses={
        200: {"content": {"application/octet-stream": {}}, "description": "Export file"},
        400: {"model": ErrorResponse, "description": "Invalid export parameters"},
        404: {"model": ErrorResponse, "description": "Entity not registered for export"},
        500: {"model": ErrorResponse, "description": "Export could not be rendered"},
    },
)
async def export(
    entity: str,
    request: Request,
    format: Annotated[str | None, Query(description="xlsx or csv; the entity default when omitted")] = None,
    page: Annotated[int | None, Query(ge=0, description="0-based page index")] = None,
    size: Annotated[int | None, Query(ge=1, description="Page size")] = None,
    sort_by: Annotated[str | None, Query(description="Field to sort on")] = None,
    sort_dir: Annotated[str, Query(description="asc or desc")] = "asc",
) -> Response:
    """
    Export the records of an entity type.

    Query parameters other than the ones listed are passed to the finder
    as filters, e.g. ``/api/customer/export?status=ACTIVE``.
    """
    service = get_service()
    filters = {
        key: value
        for key, value in request.query_params.items()
        if key not in EXPORT_PARAMETERS
    }

    try:
        export_filter = ExportFilter(
            filters=filters,
            page=page,
            size=size,
            sort_by=sort_by,
            sort_dir=sort_dir,
        )
    except ValidationError as e:
        raise HTTPException(
            status_code=400,
            detail={"error_code": "INVALID_PARAMETERS", "message": e.errors()[0]["msg"]},
        ) from e

    logger.info("Export request for entity '%s', format %s, filters %s", entity, format, filters)
    return file_response(service.export(entity, export_filter, format), "RENDER_ERROR")


def run_server(settings: Settings | None = None) -> None:
    """
    Run the FastAPI server.

    Args:
        settings: Server settings. Defaults to the ones loaded from the
            environment and an optional .env file.

    Example:
        from bulkport.main import run_server
        run_server(Settings(host="127.0.0.1", port=8080))
    """
    settings = settings or load_settings()
    setup_logging(settings.log_level)
    uvicorn.run(
        "bulkport.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.reload,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run_server()
