"""
api/limiter.py -- Shared slowapi rate limiter for the News API.

api/main.py parks it on app.state and registers the 429 handler; route
modules apply it with @limiter.limit(), placed under the @router decorator so
FastAPI registers the limited function. Counters are keyed on the client IP
and live in process memory, so every route must use this one instance.

Only POST /login is limited. Its limit is a callable, which slowapi treats as
a dynamic limit and evaluates on each request. SlowAPIMiddleware must not be
mounted alongside it: the middleware marks the request as already checked
without evaluating dynamic limits, and the decorator then skips its own check.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from core.config import get_settings

limiter = Limiter(key_func=get_remote_address, storage_uri="memory://")


def login_rate_limit() -> str:
    """Limit string for POST /login, e.g. "10/minute".

    slowapi calls this without the request, so the value comes from the
    process-wide get_settings() (LOGIN_RATE_LIMIT), not from the Settings on
    app.state. A Settings object handed to the lifespan does not change it.
    """
    return get_settings().login_rate_limit
