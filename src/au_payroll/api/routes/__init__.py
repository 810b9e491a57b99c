"""API routes."""

from au_payroll.api.routes.employees import router as employees_router
from au_payroll.api.routes.health import router as health_router
from au_payroll.api.routes.organisations import router as organisations_router
from au_payroll.api.routes.pay_runs import router as pay_runs_router
from au_payroll.api.routes.payroll import router as payroll_router

__all__ = [
    "employees_router",
    "health_router",
    "organisations_router",
    "pay_runs_router",
    "payroll_router",
]
