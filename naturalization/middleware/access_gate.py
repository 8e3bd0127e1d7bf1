"""
Access Gate Middleware

Redirects locked-out applicants from the application topic pages to the
waiting room. The lock is resolved (and cleared when expired) only for
requests that hit a restricted page.
"""

from datetime import date
from typing import Callable, Optional

import structlog
from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import RedirectResponse, Response

from naturalization.core.config import Settings, get_settings
from naturalization.services.lockout.lockout_service import LockoutService
from naturalization.utils.access_control import (
    ALLOWED_PATHS,
    RESTRICTED_PATHS,
    decide_access,
    is_allowed_path,
    is_restricted_path,
)

logger = structlog.get_logger(__name__)


class AccessGateMiddleware(BaseHTTPMiddleware):
    """
    Middleware enforcing the eligibility lockout.

    - Reads the user id from request.state.user_id (set by the auth layer)
    - Anonymous requests pass through untouched
    - Binds user_id to structlog context for the request
    - Issues a 302 to the waiting room when the user is locked
    """

    def __init__(
        self,
        app,
        lockout_service: LockoutService,
        settings: Optional[Settings] = None,
        today: Optional[Callable[[], date]] = None,
    ):
        super().__init__(app)
        self.lockout_service = lockout_service
        self.settings = settings or get_settings()
        self.today = today or date.today
        # The configured waiting room is reachable even under a restricted prefix
        self.allowed_paths = tuple(ALLOWED_PATHS)
        if self.settings.waiting_room_path not in self.allowed_paths:
            self.allowed_paths += (self.settings.waiting_room_path,)

    async def dispatch(self, request: Request, call_next) -> Response:
        user_id = getattr(request.state, "user_id", None)
        if not user_id:
            return await call_next(request)

        # Raw request URI, query string included
        uri = request.url.path
        if request.url.query:
            uri = f"{uri}?{request.url.query}"

        strict = self.settings.strict_path_matching
        structlog.contextvars.bind_contextvars(user_id=str(user_id))

        try:
            locked = False
            if is_restricted_path(uri, RESTRICTED_PATHS, strict) and not is_allowed_path(
                uri, self.allowed_paths, strict
            ):
                locked = await run_in_threadpool(
                    self.lockout_service.is_locked_out, str(user_id), self.today()
                )

            decision = decide_access(
                uri,
                locked,
                allowed_paths=self.allowed_paths,
                waiting_room_path=self.settings.waiting_room_path,
                strict=strict,
            )
            if not decision.allowed:
                logger.info(
                    "access_redirected",
                    path=uri,
                    redirect_to=decision.redirect_to,
                    reason=decision.reason,
                )
                return RedirectResponse(decision.redirect_to, status_code=302)

            return await call_next(request)
        finally:
            structlog.contextvars.unbind_contextvars("user_id")
