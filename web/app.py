"""
FastAPI 애플리케이션

라우터 등록, 원장 서비스 생명주기, 예외 → HTTP 상태 매핑.
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from adapters.db.sqlite_adapter import SQLiteAdapter
from adapters.interfaces import INotifier
from adapters.slack.notifier import SlackNotifier
from core.config.loader import AppConfig, get_db_path, get_settings
from core.errors import (
    AuditFailure,
    DebtHasPayments,
    NotFound,
    OverpaymentError,
    StoreFailure,
    ValidationError,
)
from core.ledger.events import NotificationDispatcher
from core.ledger.locks import CustomerLocks
from core.ledger.schema import init_ledger_schema
from core.ledger.service import LedgerService
from core.ledger.store import LedgerStore
from jobs.reconciler.recalibrator import Recalibrator
from web.models.responses import ErrorResponse, RecalibrationResponse
from web.routes import audit, balances, customers, entries, health, orders

logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"


def _error(status_code: int, error: str, detail: str, extra: dict | None = None) -> JSONResponse:
    body = ErrorResponse(error=error, detail=detail, extra=extra)
    return JSONResponse(status_code=status_code, content=body.model_dump())


def _register_exception_handlers(app: FastAPI) -> None:
    """원장 예외 → HTTP 응답"""

    @app.exception_handler(OverpaymentError)
    async def overpayment_handler(request: Request, exc: OverpaymentError) -> JSONResponse:
        return _error(
            422,
            "overpayment",
            str(exc),
            {"requested": exc.requested, "open_amount": exc.open_amount},
        )

    @app.exception_handler(ValidationError)
    async def validation_handler(request: Request, exc: ValidationError) -> JSONResponse:
        return _error(422, "validation_error", str(exc))

    @app.exception_handler(NotFound)
    async def not_found_handler(request: Request, exc: NotFound) -> JSONResponse:
        return _error(404, "not_found", str(exc), {"entity": exc.entity, "id": exc.entity_id})

    @app.exception_handler(DebtHasPayments)
    async def debt_has_payments_handler(request: Request, exc: DebtHasPayments) -> JSONResponse:
        return _error(
            409,
            "debt_has_payments",
            str(exc),
            {"debt_id": exc.debt_id, "paid_amount": exc.paid_amount},
        )

    @app.exception_handler(StoreFailure)
    async def store_failure_handler(request: Request, exc: StoreFailure) -> JSONResponse:
        logger.error(f"저장소 실패: {exc}", extra={"path": request.url.path})
        return _error(503, "store_failure", str(exc), {"ledger_committed": exc.ledger_committed})

    @app.exception_handler(AuditFailure)
    async def audit_failure_handler(request: Request, exc: AuditFailure) -> JSONResponse:
        logger.error(f"재보정 실패: {exc}")
        partial = RecalibrationResponse.from_domain(exc.report).model_dump()
        return _error(500, "audit_failure", str(exc), partial)


def create_app(
    config: AppConfig | None = None,
    db_path: Path | str | None = None,
    notifier: INotifier | None = None,
) -> FastAPI:
    """앱 생성

    Args:
        config: 앱 설정 (None이면 settings.yaml)
        db_path: DB 경로 (None이면 설정 모드의 DB)
        notifier: 알림 채널 주입 (None이면 설정에 따라 Slack 또는 비활성)
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """앱 생명주기 관리"""
        app_config = config or get_settings().config
        path = Path(db_path) if db_path is not None else get_db_path(app_config)

        db = SQLiteAdapter(path)
        await db.connect()
        await init_ledger_schema(db)

        channel = notifier
        owned_notifier: SlackNotifier | None = None
        if channel is None and app_config.notifications.enabled:
            owned_notifier = SlackNotifier(app_config.notifications.slack_webhook_url)
            channel = owned_notifier

        dispatcher = NotificationDispatcher(channel, app_config.notifications)
        locks = CustomerLocks()
        store = LedgerStore(db)

        app.state.config = app_config
        app.state.ledger_service = LedgerService(
            store,
            config=app_config.ledger,
            dispatcher=dispatcher,
            locks=locks,
        )
        app.state.recalibrator = Recalibrator(store, locks)
        logger.info(f"Web: 원장 서비스 시작 (mode={app_config.mode.value}, db={path})")

        yield

        await dispatcher.drain()
        if owned_notifier is not None:
            await owned_notifier.close()
        await db.close()
        logger.info("Web: 원장 서비스 종료")

    app = FastAPI(
        title="LedgerConnect API",
        description="소매점 카테고리별 외상 장부 및 상환 배분 API",
        version=API_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # CORS 설정 (개발용)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(customers.router)
    app.include_router(entries.router)
    app.include_router(balances.router)
    app.include_router(orders.router)
    app.include_router(audit.router)

    return app


app = create_app()
