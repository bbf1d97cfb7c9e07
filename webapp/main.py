from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from typing import Awaitable, Dict, Optional

import anyio
from fastapi import APIRouter, FastAPI, Query, Request
from fastapi.responses import JSONResponse

from sales_tracker import reports
from sales_tracker.config import load_config
from sales_tracker.database import TransactionStore
from sales_tracker.errors import SalesReportError, ValidationError
from sales_tracker.seed import initialize_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/transactions")


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


async def _respond(result: Awaitable, failure_message: str):
    """Await ``result`` and map reporting errors to the ``{error}`` shape."""
    try:
        return await result
    except ValidationError as exc:
        return _error(str(exc), 400)
    except SalesReportError:
        logger.exception(failure_message)
        return _error(failure_message, 500)


def _store(request: Request) -> TransactionStore:
    return request.app.state.store


@router.get("/initialize")
async def initialize(request: Request):
    config = request.app.state.config
    try:
        count = await anyio.to_thread.run_sync(
            lambda: initialize_store(
                _store(request),
                url=config["seed_url"],
                timeout=float(config["seed_timeout_seconds"]),
            )
        )
    except SalesReportError:
        logger.exception("Error initializing database")
        return _error("Error initializing database", 500)
    logger.info("Database initialized with %d record(s)", count)
    return {"message": "Database initialized with seed data"}


@router.get("")
@router.get("/", include_in_schema=False)
async def list_transactions(
    request: Request,
    month: Optional[str] = None,
    search: Optional[str] = None,
    page: Optional[str] = None,
    per_page: Optional[str] = Query(None, alias="perPage"),
):
    return await _respond(
        reports.list_transactions(
            _store(request),
            month=month,
            search=search,
            page=page,
            per_page=per_page or request.app.state.config["default_per_page"],
        ),
        "Error fetching transactions",
    )


@router.get("/statistics")
async def statistics(request: Request, month: Optional[str] = None):
    return await _respond(
        reports.statistics(_store(request), month),
        "Error fetching statistics",
    )


@router.get("/barchart")
async def bar_chart(request: Request, month: Optional[str] = None):
    return await _respond(
        reports.bar_chart(_store(request), month),
        "Error fetching bar chart data",
    )


@router.get("/piechart")
async def pie_chart(request: Request, month: Optional[str] = None):
    return await _respond(
        reports.pie_chart(_store(request), month),
        "Error fetching pie chart data",
    )


@router.get("/combined")
async def combined(request: Request, month: Optional[str] = None):
    config = request.app.state.config
    timeout = config.get("query_timeout_seconds")
    return await _respond(
        reports.combined(
            _store(request),
            month,
            timeout=float(timeout) if timeout else None,
        ),
        "Error fetching combined data",
    )


def create_app(
    config: Optional[Dict[str, object]] = None,
    store: Optional[TransactionStore] = None,
) -> FastAPI:
    """Build the API. The store is opened on startup and closed on shutdown."""
    config = config or load_config(os.environ.get("SALESBOARD_CONFIG", "config.yaml"))
    store = store or TransactionStore(str(config["db_path"]))

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        store.open()
        try:
            yield
        finally:
            store.close()

    app = FastAPI(title="Salesboard API", lifespan=lifespan)
    app.state.config = config
    app.state.store = store
    app.include_router(router)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app


app = create_app()
