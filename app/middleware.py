import time
from contextvars import ContextVar

from starlette.types import ASGIApp, Message, Receive, Scope, Send

# ---------------------------------------------------------------------------
# Per-request upstream call counter
# ---------------------------------------------------------------------------


class _CallCounter:
    __slots__ = ("value",)

    def __init__(self) -> None:
        self.value = 0


# The counter object (not an int) lives in the ContextVar so that tasks
# spawned by asyncio.gather, which run in a *copy* of the context, still
# increment the same instance the middleware reads back.
upstream_calls_var: ContextVar[_CallCounter | None] = ContextVar("upstream_calls", default=None)


def increment_upstream_calls() -> None:
    """Record one remote call against the current request, if any."""
    counter = upstream_calls_var.get()
    if counter is not None:
        counter.value += 1


# ---------------------------------------------------------------------------
# Middleware (pure ASGI)
# ---------------------------------------------------------------------------

class TimingMiddleware:
    """
    Pure ASGI middleware that adds two diagnostic response headers:

    - ``X-Response-Time-Ms``: wall-clock time for the entire request.
    - ``X-Upstream-Calls``: remote calls issued by the resource client
      while serving the request.  Zero on a fully cached read.

    Only ``http`` scopes are instrumented; the service exposes no
    websocket routes.  Responses rendered by the catch-all ``Exception``
    handler come from Starlette's ``ServerErrorMiddleware``, which wraps
    this middleware, so unhandled-error (500) responses carry neither
    header.  Errors mapped by the service's own exception handlers (400,
    404, 503, ...) pass through here and are instrumented.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        counter = _CallCounter()
        upstream_calls_var.set(counter)
        start = time.perf_counter()

        async def send_wrapper(message: Message) -> None:
            if message["type"] == "http.response.start":
                duration_ms = round((time.perf_counter() - start) * 1000, 2)
                headers = list(message.get("headers", []))
                headers.append((b"x-response-time-ms", str(duration_ms).encode()))
                headers.append((b"x-upstream-calls", str(counter.value).encode()))
                message["headers"] = headers
            await send(message)

        await self.app(scope, receive, send_wrapper)
