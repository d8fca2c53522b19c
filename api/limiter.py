"""
api/limiter.py -- The process-wide slowapi Limiter.

api/main.py registers it on app.state and mounts SlowAPIMiddleware;
api/routes/v1/auth.py decorates the login route with @limiter.limit().
Keys are client IP addresses.

Counters live in this process's memory. Behind several workers each one
counts separately, so a shared storage_uri (e.g. redis://) is required for
LOGIN_RATE_LIMIT to hold across the deployment.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address, storage_uri="memory://")
