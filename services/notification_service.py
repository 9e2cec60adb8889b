"""
In-app notifications and the helpers that create them for common events.
"""
from typing import Any, Dict, List, Optional

from boto3.dynamodb.conditions import Attr

from logger_config import get_logger
from models import INDEX_BY_USER, NOTIFICATION, NOTIFICATION_TYPES
from .entity_service import EntityService, newest_first, require_choice, require_text

logger = get_logger(__name__)


class NotificationService(EntityService):
    """Create, list and mark notifications for a user."""

    typename = NOTIFICATION
    label = 'Notification'

    def list_by_user(self, user_id: str, unread_only: bool = False) -> List[Dict[str, Any]]:
        condition = Attr('read').ne(True) if unread_only else None
        return newest_first(self._list_by(INDEX_BY_USER, user_id, condition))

    def unread_count(self, user_id: str) -> int:
        return len(self.list_by_user(user_id, unread_only=True))

    def create(
        self,
        organization_id: str,
        user_id: str,
        title: str,
        message: Optional[str] = None,
        notification_type: str = 'SYSTEM',
        task_id: Optional[str] = None,
        project_id: Optional[str] = None,
        link: Optional[str] = None
    ) -> Dict[str, Any]:
        require_choice(notification_type, NOTIFICATION_TYPES, 'type')
        return self._create({
            'organizationId': organization_id,
            'userId': require_text(user_id, 'userId'),
            'title': require_text(title, 'title'),
            'message': message,
            'type': notification_type,
            'taskId': task_id,
            'projectId': project_id,
            'link': link,
            'read': False,
        })

    def mark_as_read(self, notification_id: str) -> Dict[str, Any]:
        return self._update(notification_id, {'read': True})

    def mark_all_as_read(self, user_id: str) -> int:
        """Mark every unread notification of the user read; returns how many."""
        unread = self.list_by_user(user_id, unread_only=True)
        for notification in unread:
            self._update(notification['id'], {'read': True})
        logger.info(f'Marked {len(unread)} notifications read for user {user_id}')
        return len(unread)

    def notify_task_assignment(
        self,
        organization_id: str,
        user_id: str,
        task: Dict[str, Any],
        assigned_by: Optional[str] = None
    ) -> Dict[str, Any]:
        by = f' by {assigned_by}' if assigned_by else ''
        return self.create(
            organization_id, user_id,
            title='New task assigned',
            message=f"You have been assigned to \"{task.get('title', '')}\"{by}",
            notification_type='TASK_ASSIGNED',
            task_id=task.get('id'),
            project_id=task.get('projectId'),
        )

    def notify_comment(
        self,
        organization_id: str,
        user_id: str,
        task: Dict[str, Any],
        commenter: Optional[str] = None
    ) -> Dict[str, Any]:
        who = commenter or 'Someone'
        return self.create(
            organization_id, user_id,
            title='New comment',
            message=f"{who} commented on \"{task.get('title', '')}\"",
            notification_type='COMMENT',
            task_id=task.get('id'),
            project_id=task.get('projectId'),
        )

    def notify_mention(
        self,
        organization_id: str,
        user_id: str,
        task: Dict[str, Any],
        mentioned_by: Optional[str] = None
    ) -> Dict[str, Any]:
        who = mentioned_by or 'Someone'
        return self.create(
            organization_id, user_id,
            title='You were mentioned',
            message=f"{who} mentioned you in \"{task.get('title', '')}\"",
            notification_type='MENTION',
            task_id=task.get('id'),
            project_id=task.get('projectId'),
        )

    def notify_project_invite(
        self,
        organization_id: str,
        user_id: str,
        project: Dict[str, Any],
        invited_by: Optional[str] = None
    ) -> Dict[str, Any]:
        who = invited_by or 'Someone'
        return self.create(
            organization_id, user_id,
            title='Project invitation',
            message=f"{who} added you to the project \"{project.get('name', '')}\"",
            notification_type='PROJECT_INVITE',
            project_id=project.get('id'),
        )
