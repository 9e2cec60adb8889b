"""
Activity feed entries.
"""
from typing import Any, Dict, List, Optional

from models import ACTIVITY, ACTIVITY_TYPES, INDEX_BY_PROJECT, INDEX_BY_USER
from .entity_service import EntityService, newest_first, require_choice

DEFAULT_LIMIT = 50


class ActivityService(EntityService):
    typename = ACTIVITY
    label = 'Activity'

    def log(
        self,
        organization_id: str,
        user_id: str,
        activity_type: str,
        project_id: Optional[str] = None,
        task_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        require_choice(activity_type, ACTIVITY_TYPES, 'type')
        return self._create({
            'organizationId': organization_id,
            'userId': user_id,
            'type': activity_type,
            'projectId': project_id,
            'taskId': task_id,
            'details': details or {},
        })

    def list_by_project(self, project_id: str, limit: int = DEFAULT_LIMIT) -> List[Dict[str, Any]]:
        return newest_first(self._list_by(INDEX_BY_PROJECT, project_id))[:limit]

    def list_by_user(self, user_id: str, limit: Optional[int] = DEFAULT_LIMIT) -> List[Dict[str, Any]]:
        return newest_first(self._list_by(INDEX_BY_USER, user_id))[:limit]

    def log_project_created(self, user_id: str, project: Dict[str, Any]) -> Dict[str, Any]:
        return self.log(
            project['organizationId'], user_id, 'PROJECT_CREATED',
            project_id=project['id'], details={'name': project.get('name')}
        )

    def log_task_created(self, user_id: str, task: Dict[str, Any]) -> Dict[str, Any]:
        return self.log(
            task['organizationId'], user_id, 'TASK_CREATED',
            project_id=task.get('projectId'), task_id=task['id'],
            details={'title': task.get('title')}
        )

    def log_task_status_changed(
        self,
        user_id: str,
        task: Dict[str, Any],
        old_status: Optional[str]
    ) -> Dict[str, Any]:
        return self.log(
            task['organizationId'], user_id, 'TASK_STATUS_CHANGED',
            project_id=task.get('projectId'), task_id=task['id'],
            details={'title': task.get('title'), 'from': old_status, 'to': task.get('status')}
        )

    def log_comment_added(
        self,
        user_id: str,
        task: Dict[str, Any],
        comment: Dict[str, Any]
    ) -> Dict[str, Any]:
        return self.log(
            comment['organizationId'], user_id, 'COMMENT_ADDED',
            project_id=task.get('projectId'), task_id=task['id'],
            details={'commentId': comment['id']}
        )
