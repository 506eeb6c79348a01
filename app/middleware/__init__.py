# Middleware package for the streak tracking API

from .request_id import RequestIDMiddleware
from .rate_limit import limiter, rate_limit_read, rate_limit_write, rate_limit_admin

__all__ = [
    "RequestIDMiddleware",
    "limiter",
    "rate_limit_read",
    "rate_limit_write",
    "rate_limit_admin",
]
