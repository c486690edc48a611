from unittest.mock import MagicMock, patch

import pytest
from fastapi import Request
from starlette.responses import Response

from app.core.logger import request_id_var
from app.middleware.logging import LoggingMiddleware


def make_request(headers: dict | None = None) -> MagicMock:
    request = MagicMock(spec=Request)
    request.state = MagicMock()
    request.method = "POST"
    request.url = MagicMock(path="/api/v1/webhooks/apple")
    request.client = MagicMock(host="10.0.0.1")
    request.headers = headers or {"user-agent": "App Store Server Notifications"}
    return request


@pytest.mark.anyio
class TestLoggingMiddleware:
    """Test LoggingMiddleware functionality."""

    async def test_generates_request_id(self):
        middleware = LoggingMiddleware(MagicMock())
        request = make_request()
        response = Response(status_code=200)

        async def call_next(req):
            return response

        with patch("app.middleware.logging.logger"):
            result = await middleware.dispatch(request, call_next)

        assert len(request.state.request_id) == 8
        assert result.headers["X-Request-ID"] == request.state.request_id

    async def test_reuses_incoming_request_id(self):
        middleware = LoggingMiddleware(MagicMock())
        request = make_request({"X-Request-ID": "upstream-id"})

        async def call_next(req):
            return Response(status_code=204)

        with patch("app.middleware.logging.logger"):
            result = await middleware.dispatch(request, call_next)

        assert result.headers["X-Request-ID"] == "upstream-id"

    async def test_request_id_is_visible_while_handling(self):
        middleware = LoggingMiddleware(MagicMock())
        request = make_request({"X-Request-ID": "in-flight"})
        seen = []

        async def call_next(req):
            seen.append(request_id_var.get())
            return Response(status_code=200)

        with patch("app.middleware.logging.logger"):
            await middleware.dispatch(request, call_next)

        assert seen == ["in-flight"]
        assert request_id_var.get() is None

    async def test_logs_request_and_response(self):
        middleware = LoggingMiddleware(MagicMock())

        async def call_next(req):
            return Response(status_code=201)

        with patch("app.middleware.logging.logger") as mock_logger:
            await middleware.dispatch(make_request(), call_next)

        assert mock_logger.trace.call_count == 2

    async def test_logs_and_reraises_errors(self):
        middleware = LoggingMiddleware(MagicMock())

        async def call_next(req):
            raise RuntimeError("boom")

        with patch("app.middleware.logging.logger") as mock_logger:
            with pytest.raises(RuntimeError, match="boom"):
                await middleware.dispatch(make_request(), call_next)

        mock_logger.bind.return_value.error.assert_called_once()
        assert request_id_var.get() is None
