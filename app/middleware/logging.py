import time
import uuid
from typing import Callable

from fastapi import Request, Response
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.logger import request_id_var

REQUEST_ID_HEADER = "X-Request-ID"


class LoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        # Reuse the caller's request ID so logs can be joined across services
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())[:8]

        request.state.request_id = request_id
        token = request_id_var.set(request_id)

        start_time = time.time()
        client_ip = request.client.host if request.client else "unknown"

        logger.trace(
            f"{request.method} {request.url.path} - "
            f"Client: {client_ip} - User-Agent: {request.headers.get('user-agent', 'unknown')}"
        )

        try:
            response = await call_next(request)

            process_time = time.time() - start_time
            logger.trace(
                f"{request.method} {request.url.path} - "
                f"Status: {response.status_code} - Time: {process_time:.3f}s"
            )

            response.headers[REQUEST_ID_HEADER] = request_id

            return response

        except Exception as e:
            process_time = time.time() - start_time

            logger.bind(
                request_query_params=str(request.query_params),
                request_path_params=request.path_params,
            ).error(
                f"{request.method} {request.url.path} - "
                f"Error: {str(e)} - Time: {process_time:.3f}s"
            )
            raise e
        finally:
            request_id_var.reset(token)
