"""
Organizations, memberships and invitations.
"""
import secrets
from datetime import timedelta
from typing import Any, Dict, List, Optional

from boto3.dynamodb.conditions import Attr

from logger_config import get_logger
from models import (
    INDEX_BY_EMAIL, INDEX_BY_ORGANIZATION, INDEX_BY_TOKEN, INDEX_BY_USER,
    INVITATION, INVITATION_PENDING, MEMBER_ROLES, ORGANIZATION, ORGANIZATION_MEMBER,
    PLAN_LIMITS, ROLE_OWNER, TYPENAME, USER,
)
from transforms import isoformat, utcnow
from utils.exceptions import NotFoundError
from .dynamodb_service import DynamoDBService
from .entity_service import new_item, require_choice

logger = get_logger(__name__)


def plan_features(plan: str) -> Dict[str, bool]:
    """Feature flags unlocked by a subscription plan."""
    paid = plan != 'FREE'
    top_tier = plan in ('PROFESSIONAL', 'ENTERPRISE')
    return {
        'taskAutomation': paid,
        'analytics': paid,
        'customFields': top_tier,
        'apiAccess': top_tier,
    }


def generate_token() -> str:
    """64 hex characters."""
    return secrets.token_hex(32)


class OrganizationService:
    """Tenant records shared by the organization and sign-up handlers."""

    def __init__(self, dynamodb_service: DynamoDBService) -> None:
        self.db = dynamodb_service

    def get_organization(self, organization_id: str) -> Dict[str, Any]:
        organization = self.db.get_item(organization_id) if organization_id else None
        if not organization or organization.get(TYPENAME) != ORGANIZATION:
            raise NotFoundError('Organization not found', entity_id=organization_id)
        return organization

    def slug_taken(self, slug: str) -> bool:
        return bool(self.db.scan(ORGANIZATION, Attr('slug').eq(slug)))

    def create_organization(
        self,
        owner_id: str,
        name: str,
        slug: str,
        plan: str = 'FREE',
        trial_days: int = 14,
        description: Optional[str] = None,
        industry: Optional[str] = None,
        size: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Create a TRIAL organization and the creator's OWNER membership.

        Returns:
            Dict with ``organization`` and ``membership``
        """
        organization = self.db.put_item(new_item(ORGANIZATION, {
            'name': name,
            'slug': slug,
            'description': description or '',
            'industry': industry or '',
            'size': size or 'SMALL',
            'plan': plan,
            'status': 'TRIAL',
            'settings': {
                'allowedDomains': [],
                'ssoEnabled': False,
                'customBranding': {},
                'features': plan_features(plan),
            },
            'limits': dict(PLAN_LIMITS[plan]),
            'usage': {
                'currentUsers': 1,
                'currentProjects': 0,
                'storageUsedBytes': 0,
                'apiCallsThisMonth': 0,
            },
            'billing': {},
            'ownerId': owner_id,
            'trialEndsAt': isoformat(utcnow() + timedelta(days=trial_days)),
        }))
        membership = self.add_member(
            organization['id'], owner_id, ROLE_OWNER, permissions=['*']
        )
        logger.info(f"Created organization {organization['id']} ({slug}) for {owner_id}")
        return {'organization': organization, 'membership': membership}

    def get_membership(self, organization_id: str, user_id: str) -> Optional[Dict[str, Any]]:
        memberships = self.db.query_index(
            INDEX_BY_ORGANIZATION, organization_id,
            typename=ORGANIZATION_MEMBER,
            filter_expression=Attr('userId').eq(user_id)
        )
        return memberships[0] if memberships else None

    def list_members(self, organization_id: str) -> List[Dict[str, Any]]:
        return self.db.query_index(
            INDEX_BY_ORGANIZATION, organization_id, typename=ORGANIZATION_MEMBER
        )

    def mentioned_members(self, organization_id: str, handles: List[str]) -> List[str]:
        """
        User ids of members matching any @handle.

        A handle matches the local part of the member's email or their first
        name, ignoring case.
        """
        wanted = {handle.lower() for handle in handles}
        if not wanted:
            return []
        matched = []
        for membership in self.list_members(organization_id):
            profile = self.db.get_item(membership['userId'])
            if not profile or profile.get(TYPENAME) != USER:
                continue
            names = {
                (profile.get('email') or '').split('@')[0].lower(),
                (profile.get('firstName') or '').lower(),
            }
            if wanted & names:
                matched.append(membership['userId'])
        return matched

    def memberships_of(self, user_id: str) -> List[Dict[str, Any]]:
        return self.db.query_index(INDEX_BY_USER, user_id, typename=ORGANIZATION_MEMBER)

    def count_owners(self, organization_id: str) -> int:
        return sum(1 for m in self.list_members(organization_id) if m.get('role') == ROLE_OWNER)

    def add_member(
        self,
        organization_id: str,
        user_id: str,
        role: str,
        permissions: Optional[List[str]] = None,
        invited_by: Optional[str] = None,
        invited_at: Optional[str] = None
    ) -> Dict[str, Any]:
        return self.db.put_item(new_item(ORGANIZATION_MEMBER, {
            'organizationId': organization_id,
            'userId': user_id,
            'role': require_choice(role, MEMBER_ROLES, 'role'),
            'status': 'ACTIVE',
            'permissions': permissions or [],
            'invitedBy': invited_by,
            'invitedAt': invited_at,
            'joinedAt': isoformat(utcnow()),
        }))

    def remove_member(self, membership: Dict[str, Any]) -> None:
        self.db.delete_item(membership['id'])
        self.change_user_count(membership['organizationId'], -1)
        logger.info(
            f"Removed user {membership['userId']} from organization {membership['organizationId']}"
        )

    def change_user_count(self, organization_id: str, delta: int) -> Dict[str, Any]:
        return self.db.update_item(
            organization_id,
            {'updatedAt': isoformat(utcnow())},
            increments={'usage.currentUsers': delta}
        )

    def find_invitation_by_token(self, token: str) -> Optional[Dict[str, Any]]:
        invitations = self.db.query_index(INDEX_BY_TOKEN, token, typename=INVITATION)
        return invitations[0] if invitations else None

    def pending_invitations(
        self,
        email: str,
        organization_id: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        condition = Attr('status').eq(INVITATION_PENDING)
        if organization_id:
            condition = condition & Attr('organizationId').eq(organization_id)
        return self.db.query_index(
            INDEX_BY_EMAIL, email, typename=INVITATION, filter_expression=condition
        )

    def create_invitation(
        self,
        organization_id: str,
        email: str,
        role: str,
        invited_by: str,
        ttl_days: int = 7
    ) -> Dict[str, Any]:
        expires_at = utcnow() + timedelta(days=ttl_days)
        return self.db.put_item(new_item(INVITATION, {
            'organizationId': organization_id,
            'email': email,
            'role': role,
            'invitedBy': invited_by,
            'token': generate_token(),
            'status': INVITATION_PENDING,
            'expiresAt': isoformat(expires_at),
        }))

    def set_invitation_status(self, invitation_id: str, status: str, **extra: Any) -> Dict[str, Any]:
        changes = dict(extra, status=status, updatedAt=isoformat(utcnow()))
        return self.db.update_item(invitation_id, changes)
