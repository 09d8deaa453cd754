"""
Flight Tracker HTTP API.

Endpoints:
    GET  /health               - liveness probe
    POST /api/flights          - append one flight record
    GET  /api/flights          - row-level filtered query
    GET  /api/flights/summary  - status counters for the same filters
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import Body, Depends, FastAPI, Header, Query, Request
from fastapi.responses import JSONResponse

from .blob_store import StoreUnavailableError
from .config import Settings
from .identity import AuthenticationError, CallerIdentity
from .models import QueryFilters
from .reader import FlightReader
from .service import Authenticator, build_authenticator, build_reader, build_store, build_writer
from .summary import summarize_flights
from .validation import ValidationError, normalize_scope, normalize_status, parse_date_range
from .writer import FlightWriter


LOGGER = logging.getLogger(__name__)
SERVICE_NAME = "flight-tracker"


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def create_app(
    writer: FlightWriter,
    reader: FlightReader,
    authenticate: Authenticator,
) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        writer: appends validated flights to the partitioned log
        reader: answers filtered queries against the same store
        authenticate: maps an Authorization header value to a caller identity
    """
    app = FastAPI(title="Flight Tracker API")

    @app.exception_handler(ValidationError)
    async def _validation_error(_request: Request, exc: ValidationError) -> JSONResponse:
        return _error(400, str(exc))

    @app.exception_handler(AuthenticationError)
    async def _authentication_error(_request: Request, exc: AuthenticationError) -> JSONResponse:
        return _error(401, str(exc))

    @app.exception_handler(StoreUnavailableError)
    async def _store_unavailable(_request: Request, exc: StoreUnavailableError) -> JSONResponse:
        LOGGER.error("Object store unavailable: %s", exc)
        return _error(503, "storage unavailable, retry later")

    def current_caller(authorization: Optional[str] = Header(None)) -> CallerIdentity:
        return authenticate(authorization)

    def query_filters(
        scope: str = "own",
        status: Optional[str] = None,
        from_: Optional[str] = Query(None, alias="from"),
        to: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> QueryFilters:
        return QueryFilters(
            scope=normalize_scope(scope),
            status=normalize_status(status),
            date_range=parse_date_range(from_, to),
            limit=limit,
        )

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "healthy", "service": SERVICE_NAME}

    @app.post("/api/flights", status_code=201)
    def create_flight(record: Any = Body(...)) -> dict[str, Any]:
        return writer.append(record).to_dict()

    @app.get("/api/flights")
    def list_flights(
        filters: QueryFilters = Depends(query_filters),
        caller: CallerIdentity = Depends(current_caller),
    ) -> dict[str, Any]:
        return reader.query(filters, caller).to_dict()

    @app.get("/api/flights/summary")
    def flights_summary(
        filters: QueryFilters = Depends(query_filters),
        caller: CallerIdentity = Depends(current_caller),
    ) -> dict[str, Any]:
        records, skipped = reader.matching(filters, caller)
        summary = summarize_flights(records).to_dict()
        summary["skipped"] = skipped
        return summary

    return app


def create_app_from_env() -> FastAPI:
    settings = Settings.from_env()
    store = build_store(settings)
    return create_app(
        writer=build_writer(settings, store),
        reader=build_reader(settings, store),
        authenticate=build_authenticator(settings),
    )
