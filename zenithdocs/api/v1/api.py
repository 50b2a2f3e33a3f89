"""
V1 API router aggregator.
"""

from fastapi import APIRouter, Depends

from zenithdocs.api.v1.deps import require_api_key
from zenithdocs.api.v1.endpoints import auth, users

api_router = APIRouter()

# Auth (register, login, refresh, logout, me)
api_router.include_router(auth.router)

# User accounts (API key checked before any identity)
api_router.include_router(users.router, dependencies=[Depends(require_api_key)])
