import hmac
import logging
from collections.abc import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from trustprint.api.modules.fingerprint.service import FingerprintService
from trustprint.api.modules.fingerprint.services.core import EMPTY_EVALUATION

logger = logging.getLogger(__name__)

ADMIN_PATH_PREFIX = "/fingerprint/records"

SessionUserGetter = Callable[[Request], str | None]


def get_session_user_id(request: Request) -> str | None:
    """Authenticated user id the host's auth layer put on ``request.state``."""
    value = getattr(request.state, "user_id", None)
    return str(value) if value else None


class ApiKeyMiddleware(BaseHTTPMiddleware):
    """Guards the admin record endpoints with a shared X-API-Key."""

    def __init__(self, app, api_key: str) -> None:  # noqa: ANN001
        super().__init__(app)
        self._api_key = api_key

    async def dispatch(self, request: Request, call_next) -> Response:  # noqa: ANN001
        if not request.url.path.startswith(ADMIN_PATH_PREFIX):
            return await call_next(request)

        provided = request.headers.get("X-API-Key", "")
        if not hmac.compare_digest(provided, self._api_key):
            return JSONResponse(
                {"detail": "Invalid or missing API key"},
                status_code=401,
            )

        return await call_next(request)


class FingerprintMiddleware(BaseHTTPMiddleware):
    """Wires the fingerprint phases around the instrumented auth endpoints.

    Before the endpoint: evaluate signals and stash the result on
    ``request.state.fingerprint_evaluation``. After it: if a session exists,
    reconcile the record, awaited or detached as configured. Failures here
    never change the endpoint's response.
    """

    def __init__(
        self,
        app,  # noqa: ANN001
        session_user_getter: SessionUserGetter = get_session_user_id,
    ) -> None:
        super().__init__(app)
        self._session_user_getter = session_user_getter

    async def dispatch(self, request: Request, call_next) -> Response:  # noqa: ANN001
        try:
            service: FingerprintService = await request.app.state.dishka_container.get(
                FingerprintService
            )
        except Exception:  # noqa: BLE001
            logger.exception("Fingerprint service unavailable, skipping fingerprinting")
            return await call_next(request)

        if not service.is_instrumented(request.url.path):
            return await call_next(request)

        try:
            evaluation = service.evaluate(request.headers)
        except Exception:  # noqa: BLE001
            logger.exception("Fingerprint evaluation failed")
            evaluation = EMPTY_EVALUATION
        request.state.fingerprint_evaluation = evaluation

        response = await call_next(request)

        try:
            user_id = self._session_user_getter(request)
        except Exception:  # noqa: BLE001
            logger.exception(
                "Session user lookup failed", extra={"path": request.url.path}
            )
            return response
        if not user_id:
            return response

        work = service.after_authentication(
            headers=request.headers,
            evaluation=evaluation,
            user_id=user_id,
            client_host=request.client.host if request.client else None,
        )
        await service.dispatch(work)
        return response
