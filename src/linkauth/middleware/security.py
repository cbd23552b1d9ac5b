"""Security headers middleware.

Learn: Every response gets nosniff and DENY (no MIME sniffing, no
framing of the login pages). On top of that, headers follow what each
part of the API hands out:

- /api/auth/*, /api/protected: bodies carry the signed-in user and
  responses set the session cookie → Cache-Control: no-store, so no
  proxy or browser cache replays one user's session to another.
- /api/auth/oauth/*: the callback URL carries the provider's `code`
  and our `state` in its query string → Referrer-Policy: no-referrer,
  so neither leaks to whatever page the browser loads next.
  Everywhere else: strict-origin-when-cross-origin.
- HTTPS only: Strict-Transport-Security, since the session cookie must
  never travel over plain HTTP once a browser has seen the site on TLS.
"""

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

NO_STORE_PREFIXES = ("/api/auth", "/api/protected")
NO_REFERRER_PREFIX = "/api/auth/oauth/"


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers, tightened per route family."""

    def __init__(self, app, no_store_prefixes: tuple[str, ...] = NO_STORE_PREFIXES):
        super().__init__(app)
        self.no_store_prefixes = no_store_prefixes

    async def dispatch(self, request: Request, call_next) -> Response:
        response: Response = await call_next(request)
        path = request.url.path

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"

        if path.startswith(NO_REFERRER_PREFIX):
            response.headers["Referrer-Policy"] = "no-referrer"
        else:
            response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        if path.startswith(self.no_store_prefixes):
            response.headers["Cache-Control"] = "no-store"

        if request.url.scheme == "https":
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )
        return response
