"""Top-level API router."""

from fastapi import APIRouter

from portfolio.api.routes.analytics import router as analytics_router
from portfolio.api.routes.dashboards import router as dashboards_router
from portfolio.api.routes.exports import router as exports_router
from portfolio.api.routes.health import router as health_router
from portfolio.api.routes.milestones import router as milestones_router
from portfolio.api.routes.portfolio import router as portfolio_router
from portfolio.api.routes.projects import router as projects_router
from portfolio.api.routes.reports import router as reports_router

api_router = APIRouter()
api_router.include_router(health_router, tags=["health"])
api_router.include_router(portfolio_router)
api_router.include_router(projects_router)
api_router.include_router(milestones_router)
api_router.include_router(dashboards_router)
api_router.include_router(analytics_router)
api_router.include_router(reports_router)
api_router.include_router(exports_router)
