"""
Tests for outbound webhook, Slack and notification delivery.
"""
import json
from unittest.mock import Mock, patch

import boto3
import pytest
import requests

from conftest import api_event
from handler import (
    format_project_notification, format_task_notification, send_notification, slack_notifier,
    webhook_dispatcher,
)
from models import USER, WEBHOOK
from services.entity_service import new_item
from services.notification_service import NotificationService
from utils.exceptions import EmailDeliveryError


def _body(response):
    return json.loads(response['body'])


def _webhook(db, url, events=('task.created',), active=True, failure_count=0, organization_id='org-1'):
    return db.put_item(new_item(WEBHOOK, {
        'organizationId': organization_id,
        'url': url,
        'secret': 'shh',
        'events': list(events),
        'active': active,
        'failureCount': failure_count,
    }))


def _respond_by_url(url, **kwargs):
    if 'fail' in url:
        return Mock(ok=False, status_code=500)
    return Mock(ok=True, status_code=200)


def _dispatch_event(**overrides):
    return api_event(dict({
        'organizationId': 'org-1',
        'eventType': 'task.created',
        'data': {'id': 't1', 'title': 'Ship'},
    }, **overrides))


@pytest.mark.handlers
class TestWebhookDispatcher:
    @patch('services.webhook_service.requests.post', side_effect=_respond_by_url)
    def test_records_success_and_failure(self, mock_post, db, mock_context):
        good = _webhook(db, 'https://hooks.example.com/ok', failure_count=3)
        bad = _webhook(db, 'https://hooks.example.com/fail')

        response = webhook_dispatcher(_dispatch_event(), mock_context)

        assert response['statusCode'] == 200
        assert _body(response)['results'] == {'success': 1, 'failed': 1}
        assert mock_post.call_count == 2
        stored_good = db.get_item(good['id'])
        assert stored_good['failureCount'] == 0
        assert stored_good['lastTriggered']
        stored_bad = db.get_item(bad['id'])
        assert stored_bad['failureCount'] == 1
        assert stored_bad['active'] is True

    @patch('services.webhook_service.requests.post', side_effect=_respond_by_url)
    def test_disables_after_repeated_failures(self, mock_post, db, mock_context):
        bad = _webhook(db, 'https://hooks.example.com/fail', failure_count=9)

        webhook_dispatcher(_dispatch_event(), mock_context)

        stored = db.get_item(bad['id'])
        assert stored['failureCount'] == 10
        assert stored['active'] is False

    @patch('services.webhook_service.requests.post')
    def test_connection_errors_count_as_failures(self, mock_post, db, mock_context):
        mock_post.side_effect = requests.Timeout('slow')
        hook = _webhook(db, 'https://hooks.example.com/slow')

        body = _body(webhook_dispatcher(_dispatch_event(), mock_context))

        assert body['results'] == {'success': 0, 'failed': 1}
        assert db.get_item(hook['id'])['failureCount'] == 1

    @patch('services.webhook_service.requests.post')
    def test_skips_inactive_and_unsubscribed(self, mock_post, db, mock_context):
        _webhook(db, 'https://hooks.example.com/off', active=False)
        _webhook(db, 'https://hooks.example.com/other', events=('project.created',))
        _webhook(db, 'https://hooks.example.com/elsewhere', organization_id='org-2')

        body = _body(webhook_dispatcher(_dispatch_event(), mock_context))

        assert body['message'] == 'No webhooks configured for this event'
        mock_post.assert_not_called()

    def test_requires_fields(self, db, mock_context):
        response = webhook_dispatcher(_dispatch_event(data=None), mock_context)
        assert response['statusCode'] == 400


@pytest.mark.handlers
class TestSlackNotifier:
    @patch('services.webhook_service.requests.post')
    def test_posts_message(self, mock_post, db, mock_context, monkeypatch):
        mock_post.return_value = Mock(ok=True, status_code=200)
        monkeypatch.setenv('SLACK_WEBHOOK_URL', 'https://hooks.slack.com/services/T/B/X')
        import config
        config._config = None
        attachment = format_task_notification({'title': 'Ship', 'status': 'DONE'}, 'completed')

        response = slack_notifier(api_event({'message': 'Done!', 'attachments': [attachment]}), mock_context)

        assert response['statusCode'] == 200
        assert mock_post.call_args.args[0] == 'https://hooks.slack.com/services/T/B/X'
        payload = json.loads(mock_post.call_args.kwargs['data'])
        assert payload['text'] == 'Done!'
        assert payload['attachments'][0]['title'] == 'Task completed: Ship'

    def test_requires_url_and_message(self, db, mock_context):
        response = slack_notifier(api_event({'message': 'hi'}), mock_context)
        assert response['statusCode'] == 400
        assert _body(response)['error'] == 'webhookUrl and message are required'

    @patch('services.webhook_service.requests.post')
    def test_slack_error(self, mock_post, db, mock_context):
        mock_post.return_value = Mock(ok=False, status_code=404)
        response = slack_notifier(
            api_event({'message': 'hi', 'webhookUrl': 'https://hooks.slack.com/x'}), mock_context
        )
        assert response['statusCode'] == 500
        assert _body(response)['error'] == 'Endpoint returned status 404'


class TestSlackFormatting:
    def test_task_notification(self):
        attachment = format_task_notification(
            {'title': 'Ship', 'priority': 'HIGH', 'dueDate': '2024-03-04T09:00:00.000Z'}, 'created'
        )
        assert attachment['color'] == '#10b981'
        fields = {f['title']: f['value'] for f in attachment['fields']}
        assert fields == {
            'Status': 'N/A', 'Priority': 'HIGH', 'Assignee': 'Unassigned', 'Due Date': 'Mar 04, 2024',
        }

    def test_unknown_action_color(self):
        assert format_task_notification({}, 'archived')['color'] == '#6b7280'

    def test_project_notification(self):
        attachment = format_project_notification({'name': 'Launch', 'teamSize': 4}, 'created')
        assert attachment['title'] == 'Project created: Launch'
        assert attachment['fields'][1]['value'] == '4 members'


def _sent_count():
    return int(boto3.client('ses', region_name='us-east-1').get_send_quota()['SentLast24Hours'])


def _notification_event(**overrides):
    return api_event(dict({
        'userId': 'user-1',
        'organizationId': 'org-1',
        'type': 'TASK_COMPLETED',
        'title': 'Ship it is done',
        'message': '<p>Ann closed <b>Ship it</b></p>',
        'link': '/tasks/t1',
    }, **overrides))


@pytest.mark.handlers
class TestSendNotification:
    @pytest.fixture
    def user(self, db):
        return db.put_item(new_item(USER, {'email': 'ann@example.com', 'firstName': 'Ann'}, item_id='user-1'))

    def test_in_app_and_email(self, db, mock_context, user):
        response = send_notification(_notification_event(), mock_context)

        assert response['statusCode'] == 200
        results = _body(response)['results']
        assert results['in-app']['success'] is True
        assert results['email'] == {'success': True, 'recipient': 'ann@example.com'}
        assert results['push'] is None
        assert _sent_count() == 1

        stored = NotificationService(db).get(results['in-app']['notificationId'])
        assert stored['type'] == 'TASK_COMPLETED'
        assert stored['link'] == '/tasks/t1'
        assert stored['read'] is False

    def test_in_app_only(self, db, mock_context, user):
        body = _body(send_notification(_notification_event(channels=['in-app']), mock_context))
        assert body['results']['email'] is None
        assert _sent_count() == 0
        assert NotificationService(db).unread_count('user-1') == 1

    def test_push_is_reported_unsupported(self, db, mock_context, user):
        body = _body(send_notification(_notification_event(channels=['push']), mock_context))
        assert body['results']['push']['success'] is False
        assert NotificationService(db).unread_count('user-1') == 0

    def test_email_failure_is_reported(self, db, mock_context, user):
        with patch('handler.SESService.send', side_effect=EmailDeliveryError('rejected')):
            response = send_notification(_notification_event(), mock_context)
        assert response['statusCode'] == 200
        results = _body(response)['results']
        assert results['email'] == {'success': False, 'error': 'rejected'}
        assert results['in-app']['success'] is True

    @pytest.mark.parametrize('missing', ['userId', 'type', 'title', 'message'])
    def test_required_fields(self, db, mock_context, missing):
        response = send_notification(_notification_event(**{missing: ''}), mock_context)
        assert response['statusCode'] == 400
        assert _body(response)['error'] == 'userId, type, title, and message are required'

    def test_unknown_type(self, db, mock_context, user):
        response = send_notification(_notification_event(type='PARTY'), mock_context)
        assert response['statusCode'] == 400

    def test_unknown_user(self, db, mock_context):
        response = send_notification(_notification_event(userId='ghost'), mock_context)
        assert response['statusCode'] == 404
        assert _body(response)['error'] == 'User not found'
