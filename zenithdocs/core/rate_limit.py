"""
Client-IP rate limiter shared by the auth endpoints.
"""

from __future__ import annotations

from slowapi import Limiter
from slowapi.util import get_remote_address

from zenithdocs.core.config import settings

limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)
