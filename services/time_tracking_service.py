"""
Time tracking: running timers and manual entries.
"""
from typing import Any, Dict, Iterable, List, Optional

from boto3.dynamodb.conditions import Attr

from logger_config import get_logger
from models import INDEX_BY_TASK, INDEX_BY_USER, TIME_ENTRY
from transforms import duration_minutes, isoformat, parse_datetime, utcnow
from utils.exceptions import ConflictError, ForbiddenError, ValidationError
from .entity_service import EntityService, newest_first, require_text

logger = get_logger(__name__)


class TimeTrackingService(EntityService):
    """Time entries per task and user. Durations are whole minutes."""

    typename = TIME_ENTRY
    label = 'Time entry'

    def running_timer(self, user_id: str) -> Optional[Dict[str, Any]]:
        running = self._list_by(INDEX_BY_USER, user_id, Attr('endTime').not_exists())
        return running[0] if running else None

    def start_timer(
        self,
        organization_id: str,
        task_id: str,
        user_id: str,
        description: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Start a timer on a task.

        Raises:
            ConflictError: If the user already has a running timer
        """
        if self.running_timer(user_id):
            raise ConflictError('You already have an active timer. Please stop it first.')
        return self._create({
            'organizationId': organization_id,
            'taskId': require_text(task_id, 'taskId'),
            'userId': user_id,
            'description': description,
            'startTime': isoformat(utcnow()),
            'billable': False,
        })

    def stop_timer(self, entry_id: str, user_id: Optional[str] = None) -> Dict[str, Any]:
        entry = self.get(entry_id)
        if user_id and entry.get('userId') != user_id:
            raise ForbiddenError('You can only stop your own timer')
        if entry.get('endTime'):
            raise ConflictError('Timer is already stopped')
        end = isoformat(utcnow())
        return self._update(entry_id, {
            'endTime': end,
            'duration': duration_minutes(entry['startTime'], end),
        })

    def create_manual_entry(
        self,
        organization_id: str,
        task_id: str,
        user_id: str,
        start_time: str,
        end_time: Optional[str] = None,
        duration: Optional[int] = None,
        description: Optional[str] = None,
        billable: bool = False
    ) -> Dict[str, Any]:
        """Record finished work. ``duration`` is derived from start/end when absent."""
        start = isoformat(parse_datetime(require_text(start_time, 'startTime')))
        end = isoformat(parse_datetime(end_time)) if end_time else isoformat(utcnow())
        if end < start:
            raise ValidationError('endTime must not be before startTime', field='endTime')
        if duration is None:
            duration = duration_minutes(start, end)
        return self._create({
            'organizationId': organization_id,
            'taskId': require_text(task_id, 'taskId'),
            'userId': user_id,
            'description': description,
            'startTime': start,
            'endTime': end,
            'duration': int(duration),
            'billable': bool(billable),
        })

    def list_by_task(self, task_id: str) -> List[Dict[str, Any]]:
        return newest_first(self._list_by(INDEX_BY_TASK, task_id), key='startTime')

    def list_by_user(self, user_id: str) -> List[Dict[str, Any]]:
        return newest_first(self._list_by(INDEX_BY_USER, user_id), key='startTime')

    @staticmethod
    def total_minutes(entries: Iterable[Dict[str, Any]]) -> int:
        """Sum of recorded durations; running timers count as zero."""
        return sum(int(entry.get('duration') or 0) for entry in entries)
