"""
Handler decorators for error handling, logging, and response formatting.
"""
import functools
import json
import uuid
from typing import Callable, Any, Dict, Tuple, Union
from logger_config import get_logger
from utils.exceptions import ProjectHubError

logger = get_logger(__name__)

CORS_HEADERS = {
    'Content-Type': 'application/json',
    'Access-Control-Allow-Origin': '*',
}

HandlerResult = Union[Dict[str, Any], Tuple[int, Dict[str, Any]]]


def json_response(
    status_code: int,
    body: Dict[str, Any],
    correlation_id: str = None
) -> Dict[str, Any]:
    """Build an API Gateway proxy response with a JSON body."""
    payload = dict(body)
    if correlation_id:
        payload.setdefault('metadata', {})['correlation_id'] = correlation_id
    return {
        'statusCode': int(status_code),
        'headers': dict(CORS_HEADERS),
        'body': json.dumps(payload, default=str),
    }


def _request_id(context: Any) -> Any:
    return getattr(context, 'aws_request_id', None) if context else None


def api_handler(failure_message: str) -> Callable:
    """
    Decorator for API Gateway Lambda handlers.

    The wrapped function returns either a body dict (sent as 200) or a
    ``(status_code, body)`` tuple. Exceptions become JSON error responses:

    - ProjectHubError: its own status code and message
    - ValueError: 400
    - anything else: 500 with ``failure_message`` and the exception text

    Args:
        failure_message: Summary returned to the caller on unexpected errors

    Returns:
        Decorator producing an API Gateway proxy handler
    """
    def decorator(
        func: Callable[[Any, Any], HandlerResult]
    ) -> Callable[[Any, Any], Dict[str, Any]]:
        @functools.wraps(func)
        def wrapper(event: Any, context: Any) -> Dict[str, Any]:
            correlation_id = str(uuid.uuid4())

            logger.info(
                f"Handler {func.__name__} invoked",
                extra={
                    "correlation_id": correlation_id,
                    "handler": func.__name__,
                    "request_id": _request_id(context),
                }
            )

            try:
                result = func(event, context)
                if isinstance(result, tuple):
                    status_code, body = result
                else:
                    status_code, body = 200, result

                logger.info(
                    f"Handler {func.__name__} completed with {status_code}",
                    extra={"correlation_id": correlation_id}
                )
                return json_response(status_code, body, correlation_id)

            except ProjectHubError as e:
                log = logger.error if e.status_code >= 500 else logger.warning
                log(
                    f"Handler {func.__name__} rejected request: {e.message}",
                    extra={"correlation_id": correlation_id}
                )
                return json_response(
                    e.status_code, {"error": e.message}, correlation_id
                )

            except ValueError as e:
                logger.warning(
                    f"Handler {func.__name__} validation error: {str(e)}",
                    extra={"correlation_id": correlation_id}
                )
                return json_response(400, {"error": str(e)}, correlation_id)

            except Exception as e:
                logger.error(
                    f"Handler {func.__name__} failed: {str(e)}",
                    extra={"correlation_id": correlation_id},
                    exc_info=True
                )
                return json_response(
                    500,
                    {"error": failure_message, "details": str(e)},
                    correlation_id
                )

        return wrapper
    return decorator


def scheduled_handler(failure_message: str) -> Callable:
    """
    Decorator for EventBridge-scheduled jobs.

    The wrapped function returns a summary dict. The scheduler always gets
    a ``{statusCode, body}`` result back; failures are logged, never raised.
    Invalid job input (ValueError) is reported as 400.
    """
    def decorator(
        func: Callable[[Any, Any], Dict[str, Any]]
    ) -> Callable[[Any, Any], Dict[str, Any]]:
        @functools.wraps(func)
        def wrapper(event: Any, context: Any) -> Dict[str, Any]:
            correlation_id = str(uuid.uuid4())
            logger.info(
                f"Scheduled job {func.__name__} started",
                extra={
                    "correlation_id": correlation_id,
                    "request_id": _request_id(context),
                }
            )

            try:
                summary = func(event or {}, context)
            except ValueError as e:
                logger.warning(
                    f"Scheduled job {func.__name__} got invalid input: {str(e)}",
                    extra={"correlation_id": correlation_id}
                )
                return json_response(400, {"error": str(e)}, correlation_id)
            except Exception as e:
                logger.error(
                    f"Scheduled job {func.__name__} failed: {str(e)}",
                    extra={"correlation_id": correlation_id},
                    exc_info=True
                )
                return json_response(
                    500,
                    {"error": failure_message, "details": str(e)},
                    correlation_id
                )

            logger.info(
                f"Scheduled job {func.__name__} finished: {summary.get('message', '')}",
                extra={"correlation_id": correlation_id}
            )
            return json_response(200, {"success": True, **summary}, correlation_id)

        return wrapper
    return decorator
