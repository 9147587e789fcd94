"""FastAPI application factory"""

from contextlib import asynccontextmanager
from typing import Callable, Optional

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from sqlalchemy.orm import Session
from starlette.responses import Response

from peer_ledger.api.middleware import RequestIDMiddleware, MetricsMiddleware
from peer_ledger.api.v1 import capital, ledger, loans, users
from peer_ledger.config import settings
from peer_ledger.domain.engine import CommandResult, LedgerEngine
from peer_ledger.infrastructure.clients.change_feed import ChangeFeedClient, ChangeFeedPublisher
from peer_ledger.infrastructure.database.models import Base
from peer_ledger.infrastructure.database.repositories import SnapshotPersister
from peer_ledger.infrastructure.database.session import SessionLocal
from peer_ledger.infrastructure.observability.logging import setup_logging
from peer_ledger.infrastructure.observability.metrics import record_commit
from peer_ledger.scheduler import OverdueSweepScheduler

# Setup structured logging
setup_logging(settings.log_level)


def create_app(
    engine: Optional[LedgerEngine] = None,
    session_factory: Optional[Callable[[], Session]] = None,
) -> FastAPI:
    """
    Create and configure FastAPI application.

    The ledger engine is wired to its collaborators here: the snapshot store
    (when a session factory is given), metrics, the optional change feed, and
    the overdue sweep scheduler. Stored state is loaded and the scheduler
    started on application startup.
    """
    engine = engine or LedgerEngine()
    persister = SnapshotPersister(session_factory, settings.ledger_key) if session_factory else None
    publisher = ChangeFeedPublisher(ChangeFeedClient()) if settings.change_feed_url else None
    scheduler = OverdueSweepScheduler(engine, settings.sweep_interval_seconds)

    def record_metrics(result: CommandResult) -> None:
        record_commit(result, engine.available_capital().cents)

    if persister is not None:
        engine.subscribe(persister)
    engine.subscribe(record_metrics)
    if publisher is not None:
        engine.subscribe(publisher)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if persister is not None:
            db = session_factory()
            try:
                Base.metadata.create_all(bind=db.get_bind())
            finally:
                db.close()
            stored = persister.hydrate()
            if stored is not None:
                engine.load(*stored)

        if settings.sweep_enabled:
            scheduler.start()
        yield
        await scheduler.stop()
        if publisher is not None:
            await publisher.drain()

    app = FastAPI(
        title="Peer Ledger",
        description="Lending circle ledger: capital, loans, repayments and overdue accrual",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.engine = engine
    app.state.scheduler = scheduler

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name, "version": engine.version}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(users.router, prefix="/v1", tags=["users"])
    app.include_router(capital.router, prefix="/v1", tags=["capital"])
    app.include_router(loans.router, prefix="/v1", tags=["loans"])
    app.include_router(ledger.router, prefix="/v1", tags=["ledger"])

    return app


app = create_app(session_factory=SessionLocal)
