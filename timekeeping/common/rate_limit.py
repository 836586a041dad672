"""Rate limiting configuration using slowapi.

Provides a module-level Limiter instance wired into the FastAPI app in
main.py. Clock endpoints are the main traffic source; the default limit is
taken from settings.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from timekeeping.config import settings

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[settings.RATE_LIMIT_DEFAULT],
)
