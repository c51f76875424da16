"""
Request logging middleware.
Logs every request with its status and duration; unhandled exceptions are logged
with full detail before being re-raised.
"""

import logging
import time
from fastapi import Request

logger = logging.getLogger(__name__)


async def request_logging_middleware(request: Request, call_next):
    start_time = time.time()
    try:
        response = await call_next(request)
    except Exception as e:
        process_time = time.time() - start_time
        logger.error(
            f"ERROR in {request.method} {request.url.path} after {process_time:.4f}s: {type(e).__name__}: {e}",
            exc_info=True,
            extra={
                'request_path': request.url.path,
                'request_method': request.method,
                'query_params': str(request.query_params),
            },
        )
        raise  # Re-raise the exception for FastAPI to handle

    process_time = time.time() - start_time
    logger.info(f"{request.method} {request.url.path} -> {response.status_code} in {process_time:.4f}s")
    return response
