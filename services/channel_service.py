"""
Chat channels and their messages.
"""
from typing import Any, Dict, Iterable, List, Optional

from boto3.dynamodb.conditions import Attr

from logger_config import get_logger
from models import CHANNEL, CHANNEL_TYPES, INDEX_BY_CHANNEL, INDEX_BY_ORGANIZATION, MESSAGE, TYPENAME
from transforms import channel_slug, extract_mentions, isoformat, utcnow
from utils.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from .entity_service import EntityService, new_item, oldest_first, require_choice, require_text

logger = get_logger(__name__)


class ChannelService(EntityService):
    """Channels are organization scoped; PRIVATE and DIRECT channels only admit members."""

    typename = CHANNEL
    label = 'Channel'

    def create_channel(
        self,
        organization_id: str,
        created_by_id: str,
        name: str,
        channel_type: str = 'PUBLIC',
        description: Optional[str] = None,
        project_id: Optional[str] = None,
        member_ids: Optional[Iterable[str]] = None
    ) -> Dict[str, Any]:
        """
        Raises:
            ValidationError: If the name is empty after normalization
            ConflictError: If the organization already has a channel of that name
        """
        display_name = require_text(name, 'name', 'Channel name is required')
        slug = channel_slug(display_name)
        if not slug:
            raise ValidationError('Channel name must contain letters or digits', field='name')
        require_choice(channel_type, CHANNEL_TYPES, 'type')
        existing = self._list_by(INDEX_BY_ORGANIZATION, organization_id, Attr('name').eq(slug))
        if existing:
            raise ConflictError(f'Channel #{slug} already exists')

        members = [created_by_id, *[m for m in (member_ids or []) if m != created_by_id]]
        return self._create({
            'organizationId': organization_id,
            'name': slug,
            'displayName': display_name,
            'description': description,
            'type': channel_type,
            'projectId': project_id,
            'memberIds': members,
            'createdById': created_by_id,
        })

    def list_channels(self, organization_id: str, user_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """Channels sorted by name; with ``user_id``, only the ones that user can read."""
        channels = self._list_by(INDEX_BY_ORGANIZATION, organization_id)
        if user_id:
            channels = [c for c in channels if self._can_access(c, user_id)]
        return sorted(channels, key=lambda c: c.get('name', ''))

    @staticmethod
    def _can_access(channel: Dict[str, Any], user_id: str) -> bool:
        return channel.get('type', 'PUBLIC') == 'PUBLIC' or user_id in (channel.get('memberIds') or [])

    def _accessible(self, channel_id: str, user_id: str) -> Dict[str, Any]:
        channel = self.get(channel_id)
        if not self._can_access(channel, user_id):
            raise ForbiddenError('You are not a member of this channel')
        return channel

    def post_message(self, channel_id: str, user_id: str, content: str) -> Dict[str, Any]:
        content = require_text(content, 'content', 'Message content is required')
        channel = self._accessible(channel_id, user_id)
        message = self.db.put_item(new_item(MESSAGE, {
            'organizationId': channel['organizationId'],
            'channelId': channel_id,
            'userId': user_id,
            'content': content,
            'mentions': extract_mentions(content),
        }))
        self.db.update_item(channel_id, {'lastMessageAt': message['createdAt']})
        return message

    def list_messages(self, channel_id: str, user_id: Optional[str] = None) -> List[Dict[str, Any]]:
        if user_id:
            self._accessible(channel_id, user_id)
        return oldest_first(self.db.query_index(INDEX_BY_CHANNEL, channel_id, typename=MESSAGE))

    def get_message(self, message_id: str) -> Dict[str, Any]:
        message = self.db.get_item(message_id)
        if not message or message.get(TYPENAME) != MESSAGE:
            raise NotFoundError('Message not found', entity_id=message_id)
        return message

    def edit_message(self, message_id: str, user_id: str, content: str) -> Dict[str, Any]:
        content = require_text(content, 'content', 'Message content is required')
        message = self.get_message(message_id)
        if message.get('userId') != user_id:
            raise ForbiddenError('You can only edit your own messages')
        now = isoformat(utcnow())
        return self.db.update_item(message_id, {
            'content': content,
            'mentions': extract_mentions(content),
            'editedAt': now,
            'updatedAt': now,
        })

    def delete_message(self, message_id: str, user_id: str) -> Dict[str, Any]:
        message = self.get_message(message_id)
        if message.get('userId') != user_id:
            raise ForbiddenError('You can only delete your own messages')
        self.db.delete_item(message_id)
        logger.info(f'Deleted message {message_id} from channel {message.get("channelId")}')
        return {'id': message_id}
