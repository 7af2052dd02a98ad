"""Security middleware for FastAPI - session validation and user context."""

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from auth.session import SessionManager
from auth.exceptions import SessionExpiredError
from api.base import error_response, ErrorCodes
from utils.user_context import set_current_user_id, clear_current_user_id


class AuthMiddleware(BaseHTTPMiddleware):
    """Middleware that validates the session and sets user context.

    For protected routes:
    1. Takes the token from 'Authorization: Bearer ...', else the session cookie
    2. Validates it via SessionManager
    3. Sets user_id in request.state and the user context, which scopes
       every invoice query to that user
    4. Clears context after request completes

    Public paths bypass authentication entirely.
    """

    PUBLIC_PATHS = [
        "/health",
        "/docs",
        "/openapi.json",
    ]

    def __init__(self, app, session_manager: SessionManager, cookie_name: str = "session_token"):
        super().__init__(app)
        self._session_manager = session_manager
        self._cookie_name = cookie_name

    def _is_public_path(self, path: str) -> bool:
        return any(path == p or path.startswith(p + "/") for p in self.PUBLIC_PATHS)

    def _extract_token(self, request: Request) -> str | None:
        header = request.headers.get("Authorization", "")
        scheme, _, credentials = header.partition(" ")
        if scheme.lower() == "bearer" and credentials.strip():
            return credentials.strip()
        return request.cookies.get(self._cookie_name)

    def _unauthorized(self, request: Request, code: str, message: str) -> JSONResponse:
        return JSONResponse(
            status_code=401,
            content=error_response(
                code,
                message,
                request_id=getattr(request.state, "request_id", None),
            ).model_dump(mode="json"),
        )

    async def dispatch(self, request: Request, call_next):
        if self._is_public_path(request.url.path):
            return await call_next(request)

        token = self._extract_token(request)
        if not token:
            return self._unauthorized(request, ErrorCodes.NOT_AUTHENTICATED, "Authentication required")

        try:
            session = self._session_manager.validate_session(token)
        except SessionExpiredError:
            return self._unauthorized(request, ErrorCodes.SESSION_EXPIRED, "Session has expired")

        set_current_user_id(session.user_id)
        request.state.user_id = session.user_id
        request.state.session = session

        try:
            return await call_next(request)
        finally:
            clear_current_user_id()
