"""
Outbound HTTP delivery for organization webhooks and Slack.
"""
import hashlib
import hmac
import json
import requests
from datetime import datetime, timezone
from typing import Dict, Any, List, Optional
from logger_config import get_logger
from utils.exceptions import WebhookDeliveryError

logger = get_logger(__name__)


def sign_payload(secret: str, body: str) -> str:
    """HMAC-SHA256 hex digest of ``body`` keyed with the webhook secret."""
    return hmac.new(secret.encode('utf-8'), body.encode('utf-8'), hashlib.sha256).hexdigest()


class WebhookService:
    """Service for POSTing JSON to customer endpoints."""

    DEFAULT_HEADERS = {
        'Content-Type': 'application/json',
        'User-Agent': 'ProjectHub-Webhooks/1.0',
    }

    def __init__(self, timeout: int = 10, headers: Optional[Dict[str, str]] = None) -> None:
        """
        Initialize webhook service.

        Args:
            timeout: Per-request timeout in seconds
            headers: Optional base headers (defaults to DEFAULT_HEADERS)
        """
        self.timeout = timeout
        self.headers: Dict[str, str] = headers or self.DEFAULT_HEADERS

    def deliver(
        self,
        url: str,
        secret: str,
        event_type: str,
        data: Dict[str, Any]
    ) -> int:
        """
        Deliver one signed event.

        Returns:
            HTTP status code of the endpoint's response

        Raises:
            WebhookDeliveryError: On connection failure or non-2xx response
        """
        payload = {
            'event': event_type,
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'data': data,
        }
        body = json.dumps(payload, default=str)
        headers = dict(self.headers)
        headers['X-Webhook-Signature'] = sign_payload(secret or '', body)
        headers['X-Webhook-Event'] = event_type
        return self._post(url, body, headers)

    def post_slack(
        self,
        webhook_url: str,
        text: str,
        attachments: Optional[List[Dict[str, Any]]] = None
    ) -> int:
        """
        Post a message to a Slack incoming webhook.

        Raises:
            WebhookDeliveryError: On connection failure or non-2xx response
        """
        body = json.dumps({'text': text, 'attachments': attachments or []}, default=str)
        return self._post(webhook_url, body, {'Content-Type': 'application/json'})

    def _post(self, url: str, body: str, headers: Dict[str, str]) -> int:
        try:
            response = requests.post(url, data=body, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f'POST to {url} failed: {str(e)}')
            raise WebhookDeliveryError(f'Request to {url} failed: {str(e)}', url=url) from e

        if not 200 <= response.status_code < 300:
            logger.error(f'POST to {url} returned {response.status_code}')
            raise WebhookDeliveryError(
                f'Endpoint returned status {response.status_code}',
                url=url,
                response_status=response.status_code
            )
        logger.info(f'Delivered payload to {url} ({response.status_code})')
        return response.status_code
