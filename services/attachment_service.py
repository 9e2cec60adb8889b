"""
Task attachments: metadata rows in DynamoDB, file bodies in S3.
"""
import re
import uuid
from typing import Any, Dict, List, Optional

from logger_config import get_logger
from models import ATTACHMENT, INDEX_BY_TASK
from .dynamodb_service import DynamoDBService
from .entity_service import EntityService, newest_first, require_text
from .s3_service import S3Service

logger = get_logger(__name__)

UNSAFE_KEY_CHARS = re.compile(r'[^A-Za-z0-9._-]+')


def attachment_key(organization_id: str, task_id: str, file_name: str) -> str:
    """``organizations/<org>/tasks/<task>/<uuid>-<name>`` with a key-safe name."""
    safe_name = UNSAFE_KEY_CHARS.sub('_', file_name).strip('_') or 'file'
    return f'organizations/{organization_id}/tasks/{task_id}/{uuid.uuid4()}-{safe_name}'


class AttachmentService(EntityService):
    typename = ATTACHMENT
    label = 'Attachment'

    def __init__(self, dynamodb_service: DynamoDBService, s3_service: S3Service) -> None:
        super().__init__(dynamodb_service)
        self.s3 = s3_service

    def create_upload(
        self,
        organization_id: str,
        task_id: str,
        user_id: str,
        file_name: str,
        file_type: Optional[str] = None,
        file_size: Optional[int] = None
    ) -> Dict[str, Any]:
        """
        Register an attachment and return it with a presigned upload URL.

        The client PUTs the file body to ``uploadUrl``.
        """
        file_name = require_text(file_name, 'fileName')
        task_id = require_text(task_id, 'taskId')
        key = attachment_key(organization_id, task_id, file_name)
        attachment = self._create({
            'organizationId': organization_id,
            'taskId': task_id,
            'fileName': file_name,
            'fileType': file_type,
            'fileSize': int(file_size) if file_size is not None else None,
            's3Key': key,
            'uploadedById': user_id,
        })
        return {
            'attachment': attachment,
            'uploadUrl': self.s3.presigned_upload_url(key, content_type=file_type),
        }

    def list_by_task(self, task_id: str) -> List[Dict[str, Any]]:
        return [
            dict(attachment, downloadUrl=self.s3.presigned_download_url(attachment['s3Key']))
            for attachment in newest_first(self._list_by(INDEX_BY_TASK, task_id))
        ]

    def delete(self, attachment_id: str) -> Dict[str, Any]:
        """Remove the S3 object, then the metadata row."""
        attachment = self.get(attachment_id)
        self.s3.delete_object(attachment['s3Key'])
        self.db.delete_item(attachment_id)
        logger.info(f"Deleted attachment {attachment_id} ({attachment['s3Key']})")
        return {'id': attachment_id}
