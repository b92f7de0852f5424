"""API routes. Every state-changing route is CSRF-checked; the per-IP API limit is applied by middleware."""

from fastapi import APIRouter, Depends

from app.api import admin, auth, csrf, health
from app.core.csrf import csrf_protect

router = APIRouter(dependencies=[Depends(csrf_protect)])
router.include_router(csrf.router, prefix="/csrf-token", tags=["csrf"])
router.include_router(health.router, prefix="/health", tags=["health"])
router.include_router(admin.router, prefix="/admin", tags=["admin"])
router.include_router(auth.router, prefix="/auth", tags=["auth"])
