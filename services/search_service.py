"""
Organization-wide search over projects, tasks and members.
"""
from typing import Any, Dict, List

from models import INDEX_BY_ORGANIZATION, ORGANIZATION_MEMBER, PROJECT, TASK, TYPENAME, USER
from transforms import search_records
from .dynamodb_service import DynamoDBService


class SearchService:
    """Fetches the organization's records, then filters them in memory."""

    def __init__(self, dynamodb_service: DynamoDBService) -> None:
        self.db = dynamodb_service

    def _members(self, organization_id: str) -> List[Dict[str, Any]]:
        users = []
        memberships = self.db.query_index(
            INDEX_BY_ORGANIZATION, organization_id, typename=ORGANIZATION_MEMBER
        )
        for membership in memberships:
            user = self.db.get_item(membership['userId'])
            if user and user.get(TYPENAME) == USER:
                users.append(user)
        return users

    def search(self, organization_id: str, query: str) -> Dict[str, List[Dict[str, Any]]]:
        if not (query or '').strip():
            return {'projects': [], 'tasks': [], 'users': []}
        return search_records(
            query,
            self.db.query_index(INDEX_BY_ORGANIZATION, organization_id, typename=PROJECT),
            self.db.query_index(INDEX_BY_ORGANIZATION, organization_id, typename=TASK),
            self._members(organization_id),
        )
