"""
API v1 router aggregating all endpoints.
"""
from fastapi import APIRouter

from beatstore.api.v1.auth import router as auth_router
from beatstore.api.v1.checkout import router as checkout_router
from beatstore.api.v1.downloads import router as downloads_router
from beatstore.api.v1.offers import router as offers_router
from beatstore.api.v1.payments import router as payments_router
from beatstore.api.v1.payments import webhook_router
from beatstore.api.v1.saas import router as saas_router
from beatstore.api.v1.tenants import current_router as current_tenant_router
from beatstore.api.v1.tenants import router as tenants_router

api_router = APIRouter()

api_router.include_router(auth_router)
api_router.include_router(current_tenant_router)
api_router.include_router(tenants_router)
api_router.include_router(checkout_router)
api_router.include_router(payments_router)
api_router.include_router(webhook_router)
api_router.include_router(downloads_router)
api_router.include_router(offers_router)
api_router.include_router(saas_router)
