"""
Helpers for reading API Gateway and direct-invocation Lambda events.
"""
import base64
import json
from typing import Any, Dict, Optional

from utils.exceptions import UnauthorizedError, ValidationError


def parse_body(event: Any) -> Dict[str, Any]:
    """
    Return the JSON payload of an event.

    API Gateway events carry the payload as a (possibly base64) JSON string
    under ``body``; direct invocations pass the payload as the event itself.

    Raises:
        ValidationError: If the body is not a JSON object.
    """
    if not isinstance(event, dict):
        raise ValidationError("request body must be a JSON object")

    if 'body' not in event:
        return event

    raw = event.get('body')
    if raw is None:
        return {}
    if isinstance(raw, dict):
        return raw
    if not isinstance(raw, str):
        raise ValidationError("request body must be a JSON object")

    if event.get('isBase64Encoded'):
        try:
            raw = base64.b64decode(raw.encode('utf-8')).decode('utf-8')
        except (ValueError, UnicodeDecodeError):
            raise ValidationError("request body base64 decode failed")

    if not raw.strip():
        return {}
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        raise ValidationError("request body must be valid JSON")
    if not isinstance(parsed, dict):
        raise ValidationError("request body must be a JSON object")
    return parsed


def claims(event: Any) -> Dict[str, Any]:
    """Cognito authorizer claims of an API Gateway event, or {}."""
    if not isinstance(event, dict):
        return {}
    request_context = event.get('requestContext') or {}
    authorizer = request_context.get('authorizer') or {}
    return authorizer.get('claims') or {}


def require_user(event: Any, require_email: bool = False) -> Dict[str, Optional[str]]:
    """
    Identity of the caller from the authorizer claims.

    Returns:
        Dict with ``user_id`` and ``email``

    Raises:
        UnauthorizedError: If ``sub`` (or ``email`` when required) is missing.
    """
    event_claims = claims(event)
    user_id = event_claims.get('sub')
    email = event_claims.get('email')
    if not user_id or (require_email and not email):
        raise UnauthorizedError()
    return {'user_id': user_id, 'email': email}


def query_param(event: Dict[str, Any], key: str, default: Optional[str] = None) -> Optional[str]:
    params = event.get('queryStringParameters') or {}
    value = params.get(key)
    if value is None or str(value).strip() == '':
        return default
    return str(value).strip()
