"""FastAPI application factory."""

import logging
from contextlib import asynccontextmanager
from collections.abc import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from au_payroll.api.routes import (
    employees_router,
    health_router,
    organisations_router,
    pay_runs_router,
    payroll_router,
)
from au_payroll.calculators.leave_calculator import NegativeLeaveBalanceError
from au_payroll.config import settings
from au_payroll.database import create_all, dispose_db
from au_payroll.services.leave_service import EmployeeNotFoundError, LeaveAdjustmentError
from au_payroll.services.pay_run_service import PayRunNotFoundError, PayRunValidationError
from au_payroll.services.state_machine import InvalidTransitionError
from au_payroll.services.stp_service import StpReportNotFoundError
from au_payroll.services.ytd_service import YTDLookupError
from au_payroll.stp.generator import MissingTfnError, StpPreconditionError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    await create_all()
    yield
    await dispose_db()


def _error(status_code: int, detail: str, code: str, context: dict | None = None) -> JSONResponse:
    content: dict = {"detail": detail, "code": code}
    if context:
        content["context"] = context
    return JSONResponse(status_code=status_code, content=content)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="AU Payroll API",
        description="Australian payroll calculation and Single Touch Payroll reporting",
        version=settings.engine_version,
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(PayRunNotFoundError)
    @app.exception_handler(StpReportNotFoundError)
    @app.exception_handler(EmployeeNotFoundError)
    async def not_found_handler(request: Request, exc: Exception) -> JSONResponse:
        return _error(status.HTTP_404_NOT_FOUND, str(exc), "NOT_FOUND")

    @app.exception_handler(InvalidTransitionError)
    async def transition_handler(request: Request, exc: InvalidTransitionError) -> JSONResponse:
        return _error(
            status.HTTP_409_CONFLICT,
            str(exc),
            "INVALID_TRANSITION",
            {"from_status": exc.from_status, "to_status": exc.to_status},
        )

    @app.exception_handler(PayRunValidationError)
    async def validation_handler(request: Request, exc: PayRunValidationError) -> JSONResponse:
        return _error(
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            str(exc),
            "VALIDATION_FAILED",
            {"errors": exc.errors},
        )

    @app.exception_handler(LeaveAdjustmentError)
    async def leave_adjustment_handler(request: Request, exc: LeaveAdjustmentError) -> JSONResponse:
        return _error(
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            str(exc),
            "VALIDATION_FAILED",
            {"errors": exc.errors},
        )

    @app.exception_handler(NegativeLeaveBalanceError)
    async def negative_leave_handler(
        request: Request, exc: NegativeLeaveBalanceError
    ) -> JSONResponse:
        return _error(
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            str(exc),
            "NEGATIVE_LEAVE_BALANCE",
            {"leave_type": exc.leave_type, "balance": str(exc.balance), "hours": str(exc.hours)},
        )

    @app.exception_handler(StpPreconditionError)
    async def stp_precondition_handler(
        request: Request, exc: StpPreconditionError
    ) -> JSONResponse:
        context = None
        if isinstance(exc, MissingTfnError):
            context = {"employee_id": str(exc.employee_id)}
        return _error(
            status.HTTP_422_UNPROCESSABLE_ENTITY, str(exc), "STP_PRECONDITION", context
        )

    @app.exception_handler(YTDLookupError)
    async def ytd_handler(request: Request, exc: YTDLookupError) -> JSONResponse:
        logger.error("YTD lookup failed: %s", exc)
        return _error(status.HTTP_503_SERVICE_UNAVAILABLE, str(exc), "YTD_UNAVAILABLE")

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return _error(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "An unexpected error occurred",
            "INTERNAL_ERROR",
        )

    # Include routers
    app.include_router(health_router)
    app.include_router(payroll_router, prefix="/api/v1")
    app.include_router(pay_runs_router, prefix="/api/v1")
    app.include_router(organisations_router, prefix="/api/v1")
    app.include_router(employees_router, prefix="/api/v1")

    return app


# Default app instance for uvicorn
app = create_app()
