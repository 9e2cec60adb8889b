"""
Project service.
"""
from typing import Any, Dict, List, Optional

from logger_config import get_logger
from models import (
    DEFAULT_MAX_PROJECTS, INDEX_BY_ORGANIZATION, ORGANIZATION, PROJECT,
    PROJECT_STATUSES, TYPENAME,
)
from transforms import isoformat, parse_datetime
from utils.exceptions import ForbiddenError
from .entity_service import EntityService, newest_first, require_choice, require_text

logger = get_logger(__name__)

UPDATABLE_FIELDS = ('name', 'description', 'status', 'color', 'ownerId', 'startDate', 'endDate')
RESTORABLE_STATUSES = tuple(s for s in PROJECT_STATUSES if s != 'ARCHIVED')


def _normalize_dates(fields: Dict[str, Any]) -> Dict[str, Any]:
    for key in ('startDate', 'endDate'):
        if fields.get(key):
            fields[key] = isoformat(parse_datetime(fields[key]))
    return fields


class ProjectService(EntityService):
    """CRUD for projects within an organization."""

    typename = PROJECT
    label = 'Project'

    def list(self, organization_id: str) -> List[Dict[str, Any]]:
        return newest_first(self._list_by(INDEX_BY_ORGANIZATION, organization_id))

    def list_by_owner(self, organization_id: str, owner_id: str) -> List[Dict[str, Any]]:
        return [p for p in self.list(organization_id) if p.get('ownerId') == owner_id]

    def list_by_status(self, organization_id: str, status: str) -> List[Dict[str, Any]]:
        require_choice(status, PROJECT_STATUSES, 'status')
        return [p for p in self.list(organization_id) if p.get('status') == status]

    def create(
        self,
        organization_id: str,
        owner_id: str,
        data: Dict[str, Any]
    ) -> Dict[str, Any]:
        """
        Create a project, enforcing the organization's project limit.

        Raises:
            ValidationError: If the name is missing or the status is unknown
            ForbiddenError: If the organization is at its project limit
        """
        name = require_text(data.get('name'), 'name', 'Project name is required')
        status = require_choice(data.get('status') or 'ACTIVE', PROJECT_STATUSES, 'status')

        organization = self.db.get_item(organization_id)
        if organization and organization.get(TYPENAME) == ORGANIZATION:
            limit = int((organization.get('limits') or {}).get('maxProjects') or DEFAULT_MAX_PROJECTS)
            used = int((organization.get('usage') or {}).get('currentProjects') or 0)
            if used >= limit:
                raise ForbiddenError(
                    f"Your {organization.get('plan', 'FREE')} plan allows up to {limit} projects."
                )

        project = self._create(_normalize_dates({
            'organizationId': organization_id,
            'name': name,
            'description': data.get('description') or '',
            'status': status,
            'color': data.get('color'),
            'ownerId': data.get('ownerId') or owner_id,
            'startDate': data.get('startDate'),
            'endDate': data.get('endDate'),
        }))
        if organization:
            self.db.update_item(organization_id, increments={'usage.currentProjects': 1})
        return project

    def update(self, project_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
        fields = {k: v for k, v in changes.items() if k in UPDATABLE_FIELDS}
        if 'name' in fields:
            fields['name'] = require_text(fields['name'], 'name', 'Project name is required')
        if 'status' in fields:
            require_choice(fields['status'], PROJECT_STATUSES, 'status')
        return self._update(project_id, _normalize_dates(fields))

    def delete(self, project_id: str) -> Dict[str, Any]:
        """Soft delete: the project is archived and stays listed."""
        return self.archive(project_id)

    def hard_delete(self, project_id: str) -> Dict[str, Any]:
        project = self.get(project_id)
        self.db.delete_item(project_id)
        if self.db.get_item(project['organizationId']):
            self.db.update_item(
                project['organizationId'], increments={'usage.currentProjects': -1}
            )
        logger.info(f'Hard-deleted project {project_id}')
        return {'id': project_id}

    def archive(self, project_id: str) -> Dict[str, Any]:
        return self._update(project_id, {'status': 'ARCHIVED'})

    def restore(self, project_id: str, status: Optional[str] = None) -> Dict[str, Any]:
        """Bring an archived project back as ACTIVE or another non-archived status."""
        status = require_choice(status or 'ACTIVE', RESTORABLE_STATUSES, 'status')
        return self._update(project_id, {'status': status})

    def exists_in(self, project_id: str, organization_id: str) -> bool:
        project = self.find(project_id)
        return bool(project) and project.get('organizationId') == organization_id

    def names_by_id(self, project_ids) -> Dict[str, str]:
        """Map of project id to name for display, skipping unknown ids."""
        names = {}
        for project_id in set(filter(None, project_ids)):
            project = self.find(project_id)
            if project:
                names[project_id] = project.get('name', project_id)
        return names
