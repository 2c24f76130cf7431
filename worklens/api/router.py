"""Top-level API router."""

from fastapi import APIRouter

from worklens.api.routes.dashboards import router as dashboards_router
from worklens.api.routes.exports import router as exports_router
from worklens.api.routes.health import router as health_router
from worklens.api.routes.me import router as me_router
from worklens.api.routes.reports import router as reports_router

api_router = APIRouter()
api_router.include_router(health_router, tags=["health"])
api_router.include_router(me_router)
api_router.include_router(reports_router)
api_router.include_router(dashboards_router)
api_router.include_router(exports_router)
