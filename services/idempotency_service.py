"""
Once-per-period guard for the side effects of scheduled jobs.

Digest and reminder emails must go out at most once per user per day even
when EventBridge retries a job. Each delivered email leaves a marker row
(``id`` = hashed key) that expires through the table's TTL attribute.
"""
import hashlib
from datetime import timedelta
from typing import Optional

from logger_config import get_logger
from transforms import isoformat, utcnow
from .dynamodb_service import DynamoDBService

logger = get_logger(__name__)

DEFAULT_TTL_HOURS = 48


class IdempotencyService:
    """Reads and writes completion markers. Both directions fail open."""

    def __init__(self, table_name: Optional[str] = None):
        """
        Args:
            table_name: Marker table (hash key ``id``); empty disables the guard
        """
        self.table_name = table_name
        self.dynamodb_service = DynamoDBService(table_name or '')

    @staticmethod
    def generate_key(operation: str, *identifiers: str) -> str:
        """
        Marker key for one execution of ``operation``.

        ``generate_key('email_digest', user_id, 'daily', '2024-03-04')``
        is stable across retries of the same day's run.

        Returns:
            64 hex characters (SHA-256 of the colon-joined parts)
        """
        parts = ':'.join((operation,) + tuple(identifiers))
        return hashlib.sha256(parts.encode('utf-8')).hexdigest()

    def check(self, idempotency_key: str) -> bool:
        """
        True when the execution already completed.

        A missing table setting or a failed read counts as not completed, so
        a marker-table outage can cause a repeat email but never a lost one.
        """
        if not self.table_name:
            logger.warning('IDEMPOTENCY_TABLE not set, every execution runs')
            return False
        try:
            marker = self.dynamodb_service.get_item(idempotency_key)
        except Exception as e:
            logger.warning(f'Marker lookup failed, running anyway: {str(e)}')
            return False
        if marker is None:
            return False
        logger.info(f'Skipping completed execution {idempotency_key[:16]}...')
        return True

    def mark_complete(
        self,
        idempotency_key: str,
        operation: str = '',
        ttl_hours: int = DEFAULT_TTL_HOURS
    ) -> bool:
        """
        Record a completed execution.

        Returns:
            Whether the marker was written; failures are logged, not raised
        """
        if not self.table_name:
            return False
        now = utcnow()
        try:
            self.dynamodb_service.put_item({
                'id': idempotency_key,
                'operation': operation or None,
                'ttl': int((now + timedelta(hours=ttl_hours)).timestamp()),
                'completed_at': isoformat(now),
            })
        except Exception as e:
            logger.warning(f'Could not write marker {idempotency_key[:16]}...: {str(e)}')
            return False
        logger.debug(f'Marked {operation or "execution"} {idempotency_key[:16]}... for {ttl_hours}h')
        return True
