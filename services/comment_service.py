"""
Task comments.
"""
from typing import Any, Dict, List

from models import COMMENT, INDEX_BY_TASK
from transforms import extract_mentions, isoformat, utcnow
from .entity_service import EntityService, oldest_first, require_text


class CommentService(EntityService):
    typename = COMMENT
    label = 'Comment'

    def list_by_task(self, task_id: str) -> List[Dict[str, Any]]:
        return oldest_first(self._list_by(INDEX_BY_TASK, task_id))

    def create(
        self,
        organization_id: str,
        task_id: str,
        user_id: str,
        content: str
    ) -> Dict[str, Any]:
        content = require_text(content, 'content', 'Comment content is required')
        return self._create({
            'organizationId': organization_id,
            'taskId': require_text(task_id, 'taskId'),
            'userId': user_id,
            'content': content,
            'mentions': extract_mentions(content),
        })

    def update(self, comment_id: str, content: str) -> Dict[str, Any]:
        content = require_text(content, 'content', 'Comment content is required')
        return self._update(comment_id, {
            'content': content,
            'mentions': extract_mentions(content),
            'editedAt': isoformat(utcnow()),
        })
