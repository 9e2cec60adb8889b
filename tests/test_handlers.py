"""
Integration tests for the organization, membership and sign-up handlers.
"""
import json
from datetime import timedelta

import pytest

from conftest import TABLE_NAME, api_event
from handler import (
    accept_invite, create_organization, invite_user, post_confirmation, pre_sign_up, remove_user,
)
from services.dynamodb_service import DynamoDBService
from services.organization_service import OrganizationService
from transforms import isoformat, utcnow
from utils.exceptions import ForbiddenError, ValidationError


def _body(response):
    return json.loads(response['body'])


@pytest.fixture
def organizations(db):
    return OrganizationService(db)


@pytest.fixture
def acme(organizations):
    return organizations.create_organization('owner-1', 'Acme', 'acme')['organization']


@pytest.mark.handlers
class TestCreateOrganization:
    def test_creates_trial_organization(self, aws, mock_context, organizations):
        response = create_organization(
            api_event({'name': 'Acme', 'slug': 'acme', 'plan': 'STARTER'}), mock_context
        )

        assert response['statusCode'] == 201
        body = _body(response)
        assert body['success'] is True
        assert body['organization']['status'] == 'TRIAL'
        assert body['organization']['plan'] == 'STARTER'
        assert body['metadata']['correlation_id']
        membership = organizations.get_membership(body['organization']['id'], 'user-1')
        assert membership['role'] == 'OWNER'

    def test_duplicate_slug(self, aws, mock_context, acme):
        response = create_organization(api_event({'name': 'Other', 'slug': 'acme'}), mock_context)
        assert response['statusCode'] == 409
        assert _body(response)['error'] == 'Organization slug already exists'

    @pytest.mark.parametrize('body', [{'name': 'Acme'}, {'slug': 'acme'}, {'name': ' ', 'slug': 'x'}])
    def test_name_and_slug_required(self, aws, mock_context, body):
        response = create_organization(api_event(body), mock_context)
        assert response['statusCode'] == 400
        assert _body(response)['error'] == 'Name and slug are required'

    def test_unknown_plan(self, aws, mock_context):
        response = create_organization(
            api_event({'name': 'Acme', 'slug': 'acme', 'plan': 'GOLD'}), mock_context
        )
        assert response['statusCode'] == 400

    def test_requires_claims(self, aws, mock_context):
        response = create_organization(
            api_event({'name': 'Acme', 'slug': 'acme'}, user_id=None), mock_context
        )
        assert response['statusCode'] == 401

    def test_invalid_json_body(self, aws, mock_context):
        event = api_event()
        event['body'] = '{not json'
        response = create_organization(event, mock_context)
        assert response['statusCode'] == 400


@pytest.mark.handlers
class TestInviteUser:
    def test_owner_invites(self, aws, mock_context, acme, organizations):
        response = invite_user(api_event(
            {'organizationId': acme['id'], 'email': 'new@example.com', 'role': 'ADMIN'},
            user_id='owner-1'
        ), mock_context)

        assert response['statusCode'] == 201
        invitation = _body(response)['invitation']
        assert invitation['role'] == 'ADMIN'
        pending = organizations.pending_invitations('new@example.com', acme['id'])
        assert [i['id'] for i in pending] == [invitation['id']]
        assert pending[0]['invitedBy'] == 'owner-1'

    def test_duplicate_pending_invite(self, aws, mock_context, acme):
        event = api_event({'organizationId': acme['id'], 'email': 'new@example.com'}, user_id='owner-1')
        assert invite_user(event, mock_context)['statusCode'] == 201
        response = invite_user(event, mock_context)
        assert response['statusCode'] == 409
        assert _body(response)['error'] == 'User already invited'

    def test_member_cannot_invite(self, aws, mock_context, acme, organizations):
        organizations.add_member(acme['id'], 'member-1', 'MEMBER')
        response = invite_user(api_event(
            {'organizationId': acme['id'], 'email': 'new@example.com'}, user_id='member-1'
        ), mock_context)
        assert response['statusCode'] == 403
        assert _body(response)['error'] == 'Insufficient permissions to invite users'

    def test_user_limit(self, aws, mock_context, acme, db):
        db.update_item(acme['id'], {'usage': dict(acme['usage'], currentUsers=5)})
        response = invite_user(api_event(
            {'organizationId': acme['id'], 'email': 'new@example.com'}, user_id='owner-1'
        ), mock_context)
        assert response['statusCode'] == 403
        assert 'User limit reached' in _body(response)['error']

    def test_owner_role_is_not_invitable(self, aws, mock_context, acme):
        response = invite_user(api_event(
            {'organizationId': acme['id'], 'email': 'new@example.com', 'role': 'OWNER'},
            user_id='owner-1'
        ), mock_context)
        assert response['statusCode'] == 400

    def test_email_failure_keeps_invitation(self, aws, mock_context, acme, monkeypatch, organizations):
        monkeypatch.setenv('SES_FROM_EMAIL', 'unverified@example.com')
        import config
        config._config = None

        response = invite_user(api_event(
            {'organizationId': acme['id'], 'email': 'new@example.com'}, user_id='owner-1'
        ), mock_context)

        assert response['statusCode'] == 201
        assert organizations.pending_invitations('new@example.com', acme['id'])


@pytest.mark.handlers
class TestAcceptInvite:
    @pytest.fixture
    def invitation(self, acme, organizations):
        return organizations.create_invitation(acme['id'], 'New@Example.com', 'MEMBER', 'owner-1')

    def test_accept(self, aws, mock_context, acme, invitation, organizations, db):
        response = accept_invite(api_event(
            {'token': invitation['token']}, user_id='user-2', email='new@example.com'
        ), mock_context)

        assert response['statusCode'] == 200
        body = _body(response)
        assert body['message'] == 'Welcome to Acme!'
        assert body['membership']['role'] == 'MEMBER'
        assert organizations.get_membership(acme['id'], 'user-2')['invitedBy'] == 'owner-1'
        stored = db.get_item(invitation['id'])
        assert stored['status'] == 'ACCEPTED'
        assert stored['acceptedAt']
        assert db.get_item(acme['id'])['usage']['currentUsers'] == 2

        again = accept_invite(api_event(
            {'token': invitation['token']}, user_id='user-2', email='new@example.com'
        ), mock_context)
        assert again['statusCode'] == 400
        assert _body(again)['error'] == 'Invitation is accepted'

    def test_token_required(self, aws, mock_context):
        response = accept_invite(api_event({}, email='new@example.com'), mock_context)
        assert response['statusCode'] == 400
        assert _body(response)['error'] == 'Invitation token is required'

    def test_email_claim_required(self, aws, mock_context, invitation):
        response = accept_invite(api_event({'token': invitation['token']}, email=None), mock_context)
        assert response['statusCode'] == 401

    def test_unknown_token(self, aws, mock_context):
        response = accept_invite(api_event({'token': 'nope'}, email='new@example.com'), mock_context)
        assert response['statusCode'] == 404

    def test_other_email(self, aws, mock_context, invitation):
        response = accept_invite(api_event(
            {'token': invitation['token']}, email='other@example.com'
        ), mock_context)
        assert response['statusCode'] == 403

    def test_expired(self, aws, mock_context, invitation, db):
        db.update_item(invitation['id'], {'expiresAt': isoformat(utcnow() - timedelta(days=1))})
        response = accept_invite(api_event(
            {'token': invitation['token']}, email='new@example.com'
        ), mock_context)
        assert response['statusCode'] == 400
        assert _body(response)['error'] == 'Invitation has expired'
        assert db.get_item(invitation['id'])['status'] == 'EXPIRED'

    def test_already_member(self, aws, mock_context, acme, invitation, organizations):
        organizations.add_member(acme['id'], 'user-2', 'VIEWER')
        response = accept_invite(api_event(
            {'token': invitation['token']}, user_id='user-2', email='new@example.com'
        ), mock_context)
        assert response['statusCode'] == 409


@pytest.mark.handlers
class TestRemoveUser:
    def test_owner_removes_member(self, aws, mock_context, acme, organizations, db):
        organizations.add_member(acme['id'], 'member-1', 'MEMBER')
        organizations.change_user_count(acme['id'], 1)

        response = remove_user(api_event(
            {'organizationId': acme['id'], 'userIdToRemove': 'member-1'}, user_id='owner-1'
        ), mock_context)

        assert response['statusCode'] == 200
        assert organizations.get_membership(acme['id'], 'member-1') is None
        assert db.get_item(acme['id'])['usage']['currentUsers'] == 1

    def test_cannot_remove_self(self, aws, mock_context, acme):
        response = remove_user(api_event(
            {'organizationId': acme['id'], 'userIdToRemove': 'owner-1'}, user_id='owner-1'
        ), mock_context)
        assert response['statusCode'] == 400

    def test_member_cannot_remove(self, aws, mock_context, acme, organizations):
        organizations.add_member(acme['id'], 'member-1', 'MEMBER')
        organizations.add_member(acme['id'], 'member-2', 'MEMBER')
        response = remove_user(api_event(
            {'organizationId': acme['id'], 'userIdToRemove': 'member-2'}, user_id='member-1'
        ), mock_context)
        assert response['statusCode'] == 403
        assert _body(response)['error'] == 'Only owners and admins can remove users'

    def test_admin_cannot_remove_owner(self, aws, mock_context, acme, organizations):
        organizations.add_member(acme['id'], 'admin-1', 'ADMIN')
        response = remove_user(api_event(
            {'organizationId': acme['id'], 'userIdToRemove': 'owner-1'}, user_id='admin-1'
        ), mock_context)
        assert response['statusCode'] == 403
        assert _body(response)['error'] == 'Only owners can remove other owners'

    def test_non_member_target(self, aws, mock_context, acme):
        response = remove_user(api_event(
            {'organizationId': acme['id'], 'userIdToRemove': 'stranger'}, user_id='owner-1'
        ), mock_context)
        assert response['statusCode'] == 404


def _sign_up_event(email, **attributes):
    return {
        'userName': 'cognito-user-1',
        'request': {'userAttributes': dict(attributes, email=email)},
        'response': {},
    }


@pytest.mark.handlers
class TestSignUpTriggers:
    def test_disposable_domain_rejected(self, aws, mock_context):
        with pytest.raises(ValidationError, match='Disposable'):
            pre_sign_up(_sign_up_event('x@Mailinator.com'), mock_context)

    def test_invited_sign_up(self, aws, mock_context, acme, organizations):
        organizations.create_invitation(acme['id'], 'new@example.com', 'ADMIN', 'owner-1')

        event = pre_sign_up(_sign_up_event('new@example.com'), mock_context)

        assert event['response']['autoConfirmUser'] is False
        assert event['response']['autoVerifyEmail'] is True
        attributes = event['request']['userAttributes']
        assert attributes['custom:organizationId'] == acme['id']
        assert attributes['custom:role'] == 'ADMIN'

    def test_full_organization_rejected(self, aws, mock_context, acme, db):
        db.update_item(acme['id'], {'usage': dict(acme['usage'], currentUsers=5)})
        with pytest.raises(ForbiddenError, match='maximum user limit of 5'):
            pre_sign_up(
                _sign_up_event('new@example.com', **{'custom:organizationId': acme['id']}),
                mock_context
            )

    def test_plain_sign_up_passes(self, aws, mock_context):
        event = pre_sign_up(_sign_up_event('someone@example.com'), mock_context)
        assert event['response'] == {}

    def test_post_confirmation_creates_profile_and_membership(self, aws, mock_context, acme, organizations):
        event = _sign_up_event('new@example.com', given_name='Ann', family_name='Lee', **{
            'custom:organizationId': acme['id'], 'custom:role': 'ADMIN',
        })

        assert post_confirmation(event, mock_context) is event

        user = DynamoDBService(TABLE_NAME).get_item('cognito-user-1')
        assert user['__typename'] == 'User'
        assert user['firstName'] == 'Ann'
        assert user['online'] is False
        assert organizations.get_membership(acme['id'], 'cognito-user-1')['role'] == 'ADMIN'

    def test_post_confirmation_never_raises(self, aws, mock_context):
        event = _sign_up_event('new@example.com')
        post_confirmation(event, mock_context)
        # second confirmation hits the existing profile
        assert post_confirmation(event, mock_context) is event
