"""
DynamoDB service for single-table entity operations.
"""
import json
from decimal import Decimal
from typing import Dict, Any, Iterable, List, Optional, TYPE_CHECKING

import boto3
from boto3.dynamodb.conditions import Attr, ConditionBase, Key
from botocore.exceptions import ClientError

from logger_config import get_logger
from models import INDEX_KEYS, TYPENAME
from utils.exceptions import ConflictError, DataStoreError

if TYPE_CHECKING:
    from mypy_boto3_dynamodb import DynamoDBServiceResource
    from mypy_boto3_dynamodb.service_resource import Table
else:
    DynamoDBServiceResource = Any
    Table = Any

logger = get_logger(__name__)


def to_dynamo(item: Dict[str, Any]) -> Dict[str, Any]:
    """
    Prepare an item for the boto3 resource layer.

    Top-level ``None`` values are dropped so that index key attributes are
    never written as NULL, and floats become ``Decimal``.
    """
    compact = {k: v for k, v in item.items() if v is not None}
    return json.loads(json.dumps(compact), parse_float=Decimal)


def from_dynamo(value: Any) -> Any:
    """Convert ``Decimal`` values read from DynamoDB back to int/float."""
    if isinstance(value, list):
        return [from_dynamo(v) for v in value]
    if isinstance(value, dict):
        return {k: from_dynamo(v) for k, v in value.items()}
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, set):
        return sorted(from_dynamo(v) for v in value)
    return value


class DynamoDBService:
    """Service for DynamoDB operations against the application table."""

    def __init__(self, table_name: str) -> None:
        """
        Initialize DynamoDB service.

        Args:
            table_name: Name of the single application table
        """
        self.table_name = table_name
        self._resource: Optional[DynamoDBServiceResource] = None

    @property
    def resource(self) -> DynamoDBServiceResource:
        """Lazy initialization of DynamoDB resource."""
        if self._resource is None:
            self._resource = boto3.resource('dynamodb')
        return self._resource

    @property
    def table(self) -> Table:
        return self.resource.Table(self.table_name)

    def _fail(self, operation: str, error: ClientError) -> DataStoreError:
        logger.error(
            f'DynamoDB {operation} failed for table {self.table_name}: {str(error)}'
        )
        return DataStoreError(
            f'DynamoDB {operation} failed: {str(error)}',
            table=self.table_name,
            operation=operation
        )

    @staticmethod
    def _is_conditional_failure(error: ClientError) -> bool:
        code = error.response.get('Error', {}).get('Code', '')
        return code == 'ConditionalCheckFailedException'

    def get_item(self, item_id: str) -> Optional[Dict[str, Any]]:
        """
        Get an item by id.

        Returns:
            Item dictionary if found, None otherwise

        Raises:
            DataStoreError: If DynamoDB operation fails
        """
        try:
            response = self.table.get_item(Key={'id': item_id})
        except ClientError as e:
            raise self._fail('get_item', e) from e
        item = response.get('Item')
        return from_dynamo(item) if item else None

    def put_item(
        self,
        item: Dict[str, Any],
        condition: Optional[ConditionBase] = None
    ) -> Dict[str, Any]:
        """
        Put an item into the table.

        Args:
            item: Item dictionary; ``None`` values are not written
            condition: Optional condition expression

        Returns:
            The item as written

        Raises:
            ConflictError: If the condition expression fails
            DataStoreError: If DynamoDB operation fails
        """
        kwargs: Dict[str, Any] = {'Item': to_dynamo(item)}
        if condition is not None:
            kwargs['ConditionExpression'] = condition
        try:
            self.table.put_item(**kwargs)
        except ClientError as e:
            if self._is_conditional_failure(e):
                raise ConflictError(f"Item {item.get('id')} already exists") from e
            raise self._fail('put_item', e) from e
        logger.debug(f"Put {item.get(TYPENAME)} {item.get('id')}")
        return {k: v for k, v in item.items() if v is not None}

    def update_item(
        self,
        item_id: str,
        changes: Optional[Dict[str, Any]] = None,
        increments: Optional[Dict[str, int]] = None
    ) -> Dict[str, Any]:
        """
        Update attributes of an existing item.

        ``changes`` values of ``None`` are removed from the item. Keys of
        ``increments`` may be dotted paths into map attributes
        (``usage.currentUsers``); their values are added atomically.

        Returns:
            The full item after the update

        Raises:
            DataStoreError: If DynamoDB operation fails
        """
        changes = changes or {}
        increments = increments or {}
        names: Dict[str, str] = {}
        values: Dict[str, Any] = {}
        set_clauses: List[str] = []
        remove_clauses: List[str] = []

        def placeholder(path: str) -> str:
            parts = []
            for part in path.split('.'):
                token = f'#n{len(names)}'
                names[token] = part
                parts.append(token)
            return '.'.join(parts)

        for attr, value in changes.items():
            if attr == 'id':
                continue
            path = placeholder(attr)
            if value is None:
                remove_clauses.append(path)
            else:
                token = f':v{len(values)}'
                values[token] = value
                set_clauses.append(f'{path} = {token}')

        for attr, amount in increments.items():
            path = placeholder(attr)
            token = f':v{len(values)}'
            values[token] = amount
            zero = f':v{len(values)}'
            values[zero] = 0
            set_clauses.append(f'{path} = if_not_exists({path}, {zero}) + {token}')

        expression = []
        if set_clauses:
            expression.append('SET ' + ', '.join(set_clauses))
        if remove_clauses:
            expression.append('REMOVE ' + ', '.join(remove_clauses))
        if not expression:
            return self.get_item(item_id) or {}

        kwargs: Dict[str, Any] = {
            'Key': {'id': item_id},
            'UpdateExpression': ' '.join(expression),
            'ExpressionAttributeNames': names,
            'ReturnValues': 'ALL_NEW',
        }
        if values:
            kwargs['ExpressionAttributeValues'] = json.loads(
                json.dumps(values), parse_float=Decimal
            )
        try:
            response = self.table.update_item(**kwargs)
        except ClientError as e:
            raise self._fail('update_item', e) from e
        return from_dynamo(response.get('Attributes', {}))

    def delete_item(self, item_id: str) -> None:
        """
        Delete an item by id.

        Raises:
            DataStoreError: If DynamoDB operation fails
        """
        try:
            self.table.delete_item(Key={'id': item_id})
        except ClientError as e:
            raise self._fail('delete_item', e) from e
        logger.debug(f'Deleted item {item_id}')

    def query_index(
        self,
        index_name: str,
        value: str,
        typename: Optional[str] = None,
        filter_expression: Optional[ConditionBase] = None
    ) -> List[Dict[str, Any]]:
        """
        Query a global secondary index by its hash key, following pagination.

        Args:
            index_name: One of the indexes in ``models.INDEX_KEYS``
            value: Hash key value
            typename: Restrict results to one entity type
            filter_expression: Additional filter condition

        Raises:
            DataStoreError: If DynamoDB operation fails
        """
        kwargs: Dict[str, Any] = {
            'IndexName': index_name,
            'KeyConditionExpression': Key(INDEX_KEYS[index_name]).eq(value),
        }
        combined = self._combine(typename, filter_expression)
        if combined is not None:
            kwargs['FilterExpression'] = combined

        return self._collect('query', self.table.query, kwargs)

    def scan(
        self,
        typename: Optional[str] = None,
        filter_expression: Optional[ConditionBase] = None
    ) -> List[Dict[str, Any]]:
        """
        Scan the table, following pagination.

        Raises:
            DataStoreError: If DynamoDB operation fails
        """
        kwargs: Dict[str, Any] = {}
        combined = self._combine(typename, filter_expression)
        if combined is not None:
            kwargs['FilterExpression'] = combined
        return self._collect('scan', self.table.scan, kwargs)

    def batch_put(self, items: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """
        Write up to 25 items in one BatchWriteItem call.

        Returns:
            Items DynamoDB reported as unprocessed

        Raises:
            DataStoreError: If DynamoDB operation fails
        """
        requests = [{'PutRequest': {'Item': to_dynamo(item)}} for item in items]
        if not requests:
            return []
        try:
            response = self.resource.batch_write_item(
                RequestItems={self.table_name: requests}
            )
        except ClientError as e:
            raise self._fail('batch_write_item', e) from e
        unprocessed = response.get('UnprocessedItems', {}).get(self.table_name, [])
        return [from_dynamo(req['PutRequest']['Item']) for req in unprocessed]

    @staticmethod
    def _combine(
        typename: Optional[str],
        filter_expression: Optional[ConditionBase]
    ) -> Optional[ConditionBase]:
        condition = Attr(TYPENAME).eq(typename) if typename else None
        if filter_expression is not None:
            condition = filter_expression if condition is None else condition & filter_expression
        return condition

    def _collect(self, operation: str, call, kwargs: Dict[str, Any]) -> List[Dict[str, Any]]:
        items: List[Dict[str, Any]] = []
        while True:
            try:
                response = call(**kwargs)
            except ClientError as e:
                raise self._fail(operation, e) from e
            items.extend(from_dynamo(item) for item in response.get('Items', []))
            last_key = response.get('LastEvaluatedKey')
            if not last_key:
                return items
            kwargs['ExclusiveStartKey'] = last_key
