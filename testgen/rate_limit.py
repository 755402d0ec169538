"""Per-client rate limiting for expensive endpoints."""

from slowapi import Limiter
from slowapi.util import get_remote_address

from testgen.config import settings

limiter = Limiter(key_func=get_remote_address, enabled=settings.rate_limit_enabled)

generation_rate_limit = f"{settings.rate_limit_per_minute}/minute"
