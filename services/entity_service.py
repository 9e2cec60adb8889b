"""
Base class for services that wrap one entity type of the application table.
"""
import uuid
from typing import Any, Dict, Iterable, List, Optional

from boto3.dynamodb.conditions import ConditionBase

from logger_config import get_logger
from models import TYPENAME
from transforms import isoformat, utcnow
from utils.exceptions import NotFoundError, ValidationError
from .dynamodb_service import DynamoDBService

logger = get_logger(__name__)


def require_text(value: Any, field: str, message: Optional[str] = None) -> str:
    """Stripped non-empty string or ValidationError."""
    text = str(value).strip() if value is not None else ''
    if not text:
        raise ValidationError(message or f'{field} is required', field=field)
    return text


def require_choice(value: Any, choices: Iterable[str], field: str) -> str:
    choices = tuple(choices)
    if value not in choices:
        raise ValidationError(
            f'{field} must be one of {", ".join(choices)}', field=field, value=value
        )
    return value


def new_item(typename: str, fields: Dict[str, Any], item_id: Optional[str] = None) -> Dict[str, Any]:
    """A new row of ``typename`` with a fresh id and creation timestamps."""
    now = isoformat(utcnow())
    return {
        'id': item_id or str(uuid.uuid4()),
        **fields,
        'createdAt': now,
        'updatedAt': now,
        TYPENAME: typename,
    }


def newest_first(items: List[Dict[str, Any]], key: str = 'createdAt') -> List[Dict[str, Any]]:
    return sorted(items, key=lambda item: item.get(key) or '', reverse=True)


def oldest_first(items: List[Dict[str, Any]], key: str = 'createdAt') -> List[Dict[str, Any]]:
    return sorted(items, key=lambda item: item.get(key) or '')


class EntityService:
    """CRUD passthrough for one ``__typename`` of the application table."""

    typename: str = ''
    label: str = 'Item'

    def __init__(self, dynamodb_service: DynamoDBService) -> None:
        self.db = dynamodb_service

    def get(self, item_id: str) -> Dict[str, Any]:
        """
        Fetch one entity.

        Raises:
            NotFoundError: If no entity of this type has the id
        """
        item = self.db.get_item(item_id) if item_id else None
        if not item or item.get(TYPENAME) != self.typename:
            raise NotFoundError(f'{self.label} not found', entity_id=item_id)
        return item

    def find(self, item_id: str) -> Optional[Dict[str, Any]]:
        """Like ``get`` but returns None when absent."""
        try:
            return self.get(item_id)
        except NotFoundError:
            return None

    def delete(self, item_id: str) -> Dict[str, Any]:
        self.get(item_id)
        self.db.delete_item(item_id)
        logger.info(f'Deleted {self.typename} {item_id}')
        return {'id': item_id}

    def _create(self, fields: Dict[str, Any], item_id: Optional[str] = None) -> Dict[str, Any]:
        item = new_item(self.typename, fields, item_id)
        created = self.db.put_item(item)
        logger.info(f"Created {self.typename} {item['id']}")
        return created

    def _update(self, item_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
        self.get(item_id)
        changes = dict(changes, updatedAt=isoformat(utcnow()))
        return self.db.update_item(item_id, changes)

    def _list_by(
        self,
        index_name: str,
        value: str,
        filter_expression: Optional[ConditionBase] = None
    ) -> List[Dict[str, Any]]:
        return self.db.query_index(
            index_name, value, typename=self.typename, filter_expression=filter_expression
        )
