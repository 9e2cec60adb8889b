"""
Task service.
"""
import json
from typing import Any, Dict, List, Optional

from boto3.dynamodb.conditions import Attr

from logger_config import get_logger
from models import (
    INDEX_BY_ORGANIZATION, INDEX_BY_PROJECT, RECURRENCE_FREQUENCIES, STATUS_DONE,
    TASK, TASK_PRIORITIES, TASK_STATUSES,
)
from transforms import (
    board_position, isoformat, next_occurrence, normalize_tags, parse_datetime,
    parse_recurrence, shift_due_date, start_of_day, utcnow,
)
from utils.exceptions import ValidationError
from .entity_service import EntityService, newest_first, require_choice, require_text

logger = get_logger(__name__)

OPTIONAL_FIELDS = (
    'description', 'assignedToId', 'dueDate', 'startDate', 'estimatedHours',
    'actualHours', 'progressPercentage', 'position', 'parentTaskId',
)
UPDATABLE_FIELDS = OPTIONAL_FIELDS + ('title', 'status', 'priority', 'tags', 'recurrence', 'completedAt')
COPIED_FIELDS = (
    'organizationId', 'projectId', 'title', 'description', 'priority',
    'assignedToId', 'createdById', 'tags', 'estimatedHours',
)
DATE_FIELDS = ('dueDate', 'startDate', 'completedAt')


def encode_recurrence(rule: Any) -> Optional[str]:
    """
    Validate a recurrence rule and return it as the stored JSON string.

    ``nextOccurrence`` defaults to now when the rule omits it.
    """
    if not rule:
        return None
    parsed = parse_recurrence(rule)
    if not parsed:
        raise ValidationError('recurrence must be a JSON object', field='recurrence')
    require_choice(parsed.get('frequency'), RECURRENCE_FREQUENCIES, 'recurrence.frequency')
    interval = parsed.get('interval', 1)
    try:
        interval = int(interval)
    except (TypeError, ValueError):
        raise ValidationError('recurrence.interval must be an integer', field='recurrence')
    if interval < 1:
        raise ValidationError('recurrence.interval must be positive', field='recurrence')
    parsed['interval'] = interval
    parsed['nextOccurrence'] = isoformat(parse_datetime(parsed.get('nextOccurrence') or utcnow()))
    return json.dumps(parsed)


def _clean(fields: Dict[str, Any]) -> Dict[str, Any]:
    for key in DATE_FIELDS:
        if fields.get(key):
            fields[key] = isoformat(parse_datetime(fields[key]))
    if 'tags' in fields:
        fields['tags'] = normalize_tags(fields['tags'])
    if 'recurrence' in fields:
        fields['recurrence'] = encode_recurrence(fields['recurrence'])
    if 'status' in fields:
        require_choice(fields['status'], TASK_STATUSES, 'status')
    if 'priority' in fields:
        require_choice(fields['priority'], TASK_PRIORITIES, 'priority')
    return fields


def new_task_item(
    organization_id: str,
    created_by_id: str,
    data: Dict[str, Any]
) -> Dict[str, Any]:
    """
    Validated task attributes ready for ``EntityService._create`` or a batch write.

    Raises:
        ValidationError: If title or projectId is missing or an enum is unknown
    """
    fields = {key: data[key] for key in OPTIONAL_FIELDS if data.get(key) is not None}
    fields.update({
        'organizationId': organization_id,
        'projectId': require_text(data.get('projectId'), 'projectId'),
        'title': require_text(data.get('title'), 'title', 'Task title is required'),
        'status': data.get('status') or 'TODO',
        'priority': data.get('priority') or 'MEDIUM',
        'tags': data.get('tags') or [],
        'createdById': created_by_id,
    })
    if fields.get('position') is None:
        fields['position'] = board_position(utcnow())
    if data.get('recurrence'):
        fields['recurrence'] = data['recurrence']
    return _clean(fields)


class TaskService(EntityService):
    """CRUD, assignment and board moves for tasks."""

    typename = TASK
    label = 'Task'

    def list(self, organization_id: str) -> List[Dict[str, Any]]:
        return newest_first(self._list_by(INDEX_BY_ORGANIZATION, organization_id))

    def list_by_project(self, project_id: str) -> List[Dict[str, Any]]:
        return newest_first(self._list_by(INDEX_BY_PROJECT, project_id))

    def list_by_assignee(self, user_id: str) -> List[Dict[str, Any]]:
        return newest_first(self.db.scan(TASK, Attr('assignedToId').eq(user_id)))

    def create(
        self,
        organization_id: str,
        created_by_id: str,
        data: Dict[str, Any]
    ) -> Dict[str, Any]:
        return self._create(new_task_item(organization_id, created_by_id, data))

    def update(self, task_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
        """
        Apply a partial update. Moving to DONE stamps ``completedAt`` once.
        """
        fields = _clean({k: v for k, v in changes.items() if k in UPDATABLE_FIELDS})
        if 'title' in fields:
            fields['title'] = require_text(fields['title'], 'title', 'Task title is required')
        task = self.get(task_id)
        if fields.get('status') == STATUS_DONE and not task.get('completedAt') \
                and not fields.get('completedAt'):
            fields['completedAt'] = isoformat(utcnow())
        return self._update(task_id, fields)

    def assign(self, task_id: str, user_id: Optional[str]) -> Dict[str, Any]:
        """Assign to ``user_id``; None unassigns."""
        return self.update(task_id, {'assignedToId': user_id})

    def update_status(self, task_id: str, status: str) -> Dict[str, Any]:
        require_choice(status, TASK_STATUSES, 'status')
        return self.update(task_id, {'status': status})

    def update_priority(self, task_id: str, priority: str) -> Dict[str, Any]:
        require_choice(priority, TASK_PRIORITIES, 'priority')
        return self.update(task_id, {'priority': priority})

    def move(self, task_id: str, status: str, position: float) -> Dict[str, Any]:
        return self.update(task_id, {'status': status, 'position': position})

    def recurring(self) -> List[Dict[str, Any]]:
        return self.db.scan(TASK, Attr('recurrence').exists())

    def spawn_occurrence(self, template: Dict[str, Any], now=None) -> Optional[Dict[str, Any]]:
        """
        Create the next occurrence of a recurring task if it is due.

        The new TODO task copies the template, points at it through
        ``parentTaskId`` and keeps the template's due-date offset. The
        template's rule then advances to the following occurrence.

        Returns:
            The new task, or None when the rule is incomplete or its
            occurrence falls after today's UTC midnight
        """
        rule = parse_recurrence(template.get('recurrence'))
        frequency = rule.get('frequency')
        if not frequency or not rule.get('nextOccurrence'):
            return None
        occurrence = parse_datetime(rule['nextOccurrence'])
        now = now or utcnow()
        if occurrence > start_of_day(now):
            return None

        copied = {key: template.get(key) for key in COPIED_FIELDS}
        task = self._create(dict(
            copied,
            status='TODO',
            dueDate=shift_due_date(occurrence, template.get('dueDate'), rule['nextOccurrence']),
            parentTaskId=template['id'],
            position=board_position(now),
        ))
        following = next_occurrence(occurrence, frequency, rule.get('interval') or 1)
        rule.update(nextOccurrence=isoformat(following), lastCreated=task['createdAt'])
        self.db.update_item(template['id'], {
            'recurrence': json.dumps(rule),
            'updatedAt': task['createdAt'],
        })
        logger.info(f"Created occurrence {task['id']} of recurring task {template['id']}")
        return task
