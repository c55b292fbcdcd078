import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm.exc import StaleDataError

from caixa.core.config import settings
from caixa.core.database import SessionLocal, init_db
from caixa.core.deps import require_active_subscription
from caixa.core.exceptions import ConcurrencyConflict, GatewayError, NotFoundError
from caixa.routes.admin import router as admin_router
from caixa.routes.auth import router as auth_router
from caixa.routes.cash_flow import router as cash_flow_router
from caixa.routes.categories import router as categories_router
from caixa.routes.customers import router as customers_router
from caixa.routes.health import router as health_router
from caixa.routes.payment import router as payment_router
from caixa.routes.plans import admin_router as admin_plans_router
from caixa.routes.plans import public_router as public_plans_router
from caixa.routes.sales_purchases import router as sales_purchases_router
from caixa.routes.suppliers import router as suppliers_router
from caixa.routes.transactions import router as transactions_router
from caixa.routes.users import router as users_router
from caixa.services.payment_gateway import PaymentGateway
from caixa.services.seed import seed_demo


logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def build_gateway() -> PaymentGateway:
    return PaymentGateway(
        access_token=settings.gateway_access_token,
        base_url=settings.gateway_base_url,
        webhook_secret=settings.gateway_webhook_secret,
        timeout=settings.gateway_timeout_seconds,
    )


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(ConcurrencyConflict)
    async def conflict_handler(request: Request, exc: ConcurrencyConflict):
        return JSONResponse(status_code=409, content={"detail": str(exc)})

    @app.exception_handler(StaleDataError)
    async def stale_row_handler(request: Request, exc: StaleDataError):
        logger.warning("stale row on %s: %s", request.url.path, exc)
        return JSONResponse(status_code=409, content={"detail": "Registro alterado por outra operação"})

    @app.exception_handler(GatewayError)
    async def gateway_handler(request: Request, exc: GatewayError):
        logger.error("gateway error on %s: %s", request.url.path, exc)
        return JSONResponse(status_code=502, content={"detail": str(exc)})

    # DateParseError, MoneyParseError and ReconciliationError are ValueErrors
    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        return JSONResponse(status_code=400, content={"detail": str(exc)})


def create_app(gateway: Optional[PaymentGateway] = None) -> FastAPI:
    configure_logging()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        app.state.gateway.close()

    app = FastAPI(title="Caixa API", version="0.1.0", lifespan=lifespan)
    app.state.gateway = gateway or build_gateway()

    origins = settings.cors_origins
    if origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    register_exception_handlers(app)

    subscribed = [Depends(require_active_subscription)]

    app.include_router(health_router, prefix="/api", tags=["health"])
    app.include_router(auth_router, prefix="/api/auth", tags=["auth"])
    app.include_router(users_router, prefix="/api/users", tags=["users"])
    app.include_router(transactions_router, prefix="/api/transactions", tags=["transactions"], dependencies=subscribed)
    app.include_router(sales_purchases_router, prefix="/api", tags=["sales"], dependencies=subscribed)
    app.include_router(customers_router, prefix="/api/customers", tags=["customers"], dependencies=subscribed)
    app.include_router(suppliers_router, prefix="/api/suppliers", tags=["suppliers"], dependencies=subscribed)
    app.include_router(categories_router, prefix="/api/categories", tags=["categories"], dependencies=subscribed)
    app.include_router(cash_flow_router, prefix="/api/cash-flow", tags=["cash-flow"], dependencies=subscribed)
    app.include_router(public_plans_router, prefix="/api/public", tags=["plans"])
    app.include_router(admin_plans_router, prefix="/api/admin", tags=["plans"])
    app.include_router(admin_router, prefix="/api/admin", tags=["admin"])
    app.include_router(payment_router, prefix="/api/payment", tags=["payment"])

    return app


app = create_app()

# Only seed in development or when explicitly requested
if settings.env == "dev" or os.getenv("FORCE_SEED") == "true":
    try:
        init_db()
        with SessionLocal() as db:
            seed_demo(db)
    except Exception:
        logger.exception("demo seed failed")
