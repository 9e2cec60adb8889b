"""
Integration tests for scheduled jobs and the task import / data export handlers.
"""
import json
from datetime import timedelta
from unittest.mock import patch

import boto3
import pytest

from conftest import EXPORT_BUCKET, api_event
from handler import (
    bulk_task_import, due_date_reminder, email_digest, export_user_data, recurring_task_creator,
)
from kanban import build_board
from models import TASK, USER
from services.entity_service import new_item
from services.notification_service import NotificationService
from services.organization_service import OrganizationService
from services.project_service import ProjectService
from services.task_service import TaskService
from transforms import isoformat, start_of_day, utcnow
from utils.exceptions import DataStoreError


def _body(response):
    return json.loads(response['body'])


def _sent_count():
    return int(boto3.client('ses', region_name='us-east-1').get_send_quota()['SentLast24Hours'])


def _user(db, user_id, email='ann@example.com', first_name='Ann'):
    return db.put_item(new_item(USER, {'email': email, 'firstName': first_name}, item_id=user_id))


@pytest.fixture
def project(db):
    organization = OrganizationService(db).create_organization('owner-1', 'Acme', 'acme')['organization']
    return ProjectService(db).create(organization['id'], 'owner-1', {'name': 'Launch'})


def _task(db, project, **fields):
    data = dict({'projectId': project['id'], 'title': 'Task'}, **fields)
    return TaskService(db).create(project['organizationId'], 'owner-1', data)


@pytest.mark.scheduled
class TestEmailDigest:
    def test_sends_once_per_day(self, db, mock_context, project):
        _user(db, 'user-1')
        _user(db, 'user-2', email='quiet@example.com')
        _task(db, project, title='Ship it', assignedToId='user-1')
        NotificationService(db).create(project['organizationId'], 'user-1', 'Ping', 'hello')

        response = email_digest({'digestType': 'daily'}, mock_context)

        assert response['statusCode'] == 200
        body = _body(response)
        assert body['success'] is True
        assert body['sent'] == 1
        assert body['failed'] == 0
        assert _sent_count() == 1

        again = _body(email_digest({'digestType': 'daily'}, mock_context))
        assert again['sent'] == 0
        assert _sent_count() == 1

    def test_unknown_digest_type(self, db, mock_context):
        response = email_digest({'digestType': 'hourly'}, mock_context)
        assert response['statusCode'] == 400

    def test_defaults_to_daily(self, db, mock_context):
        body = _body(email_digest({}, mock_context))
        assert body['message'] == 'Sent 0 daily digests'


@pytest.mark.scheduled
class TestDueDateReminder:
    def test_groups_and_sends(self, db, mock_context, project):
        _user(db, 'user-1')
        soon = isoformat(utcnow() + timedelta(hours=12))
        later = isoformat(utcnow() + timedelta(days=5))
        _task(db, project, title='Soon', assignedToId='user-1', dueDate=soon)
        _task(db, project, title='Later', assignedToId='user-1', dueDate=later)
        _task(db, project, title='Finished', assignedToId='user-1', dueDate=soon, status='DONE')
        _task(db, project, title='Far', assignedToId='user-1', dueDate=isoformat(utcnow() + timedelta(days=30)))
        _task(db, project, title='Ghost', assignedToId='missing-user', dueDate=soon)

        body = _body(due_date_reminder({}, mock_context))

        assert body['stats'] == {'totalTasks': 3, 'usersNotified': 2}
        assert body['message'] == 'Processed 3 tasks, sent 1 reminders'
        assert _sent_count() == 1

        again = _body(due_date_reminder({}, mock_context))
        assert again['message'] == 'Processed 3 tasks, sent 0 reminders'
        assert _sent_count() == 1

    def test_nothing_due(self, db, mock_context):
        body = _body(due_date_reminder({}, mock_context))
        assert body['stats'] == {'totalTasks': 0, 'usersNotified': 0}


@pytest.mark.scheduled
class TestRecurringTaskCreator:
    def test_creates_due_occurrences(self, db, mock_context, project):
        template = _task(db, project, title='Weekly sync', recurrence={
            'frequency': 'WEEKLY', 'nextOccurrence': isoformat(utcnow() - timedelta(days=1)),
        })
        _task(db, project, title='Not yet', recurrence={
            'frequency': 'DAILY', 'nextOccurrence': isoformat(utcnow() + timedelta(days=3)),
        })
        db.put_item(new_item(TASK, {
            'organizationId': project['organizationId'], 'projectId': project['id'],
            'title': 'Broken', 'recurrence': 'not json',
        }))

        body = _body(recurring_task_creator({}, mock_context))

        assert body['message'] == 'Created 1 recurring tasks'
        created = body['createdTasks'][0]
        assert created['originalTaskId'] == template['id']
        assert created['title'] == 'Weekly sync'
        assert TaskService(db).get(created['newTaskId'])['parentTaskId'] == template['id']

        assert _body(recurring_task_creator({}, mock_context))['createdTasks'] == []

    def test_skips_occurrence_due_later_today(self, db, mock_context, project):
        _task(db, project, title='Nightly', recurrence={
            'frequency': 'DAILY',
            'nextOccurrence': isoformat(start_of_day(utcnow()) + timedelta(hours=23, minutes=58)),
        })

        body = _body(recurring_task_creator({}, mock_context))

        assert body['createdTasks'] == []


@pytest.mark.scheduled
class TestBulkTaskImport:
    def _event(self, project, **body):
        return api_event(dict({
            'organizationId': project['organizationId'],
            'projectId': project['id'],
            'createdById': 'owner-1',
        }, **body))

    def test_import_json_rows(self, db, mock_context, project):
        response = bulk_task_import(self._event(project, tasks=[
            {'title': 'One', 'priority': 'HIGH'},
            {'description': 'no title'},
            {'title': 'Two', 'status': 'IN_PROGRESS'},
            'not an object',
        ]), mock_context)

        assert response['statusCode'] == 200
        body = _body(response)
        assert body['summary'] == {'total': 4, 'success': 2, 'failed': 2}
        assert body['results']['failed'][0]['error'] == 'Task title is required'
        tasks = TaskService(db).list_by_project(project['id'])
        assert sorted(t['title'] for t in tasks) == ['One', 'Two']
        assert all(t['actualHours'] == 0 for t in tasks)

    def test_import_csv_in_batches(self, db, mock_context, project):
        rows = '\n'.join(['title,priority,tags'] + [f'Task {i},LOW,a;b' for i in range(30)])

        body = _body(bulk_task_import(self._event(project, csv=rows), mock_context))

        assert body['summary'] == {'total': 30, 'success': 30, 'failed': 0}
        tasks = TaskService(db).list_by_project(project['id'])
        assert len(tasks) == 30
        assert tasks[0]['tags'] == ['a', 'b']

    def test_imported_rows_keep_file_order_on_board(self, db, mock_context, project):
        rows = '\n'.join(['title'] + [f'Task {i}' for i in range(30)])
        bulk_task_import(self._event(project, csv=rows), mock_context)

        board = build_board(TaskService(db).list_by_project(project['id']))

        assert [t['title'] for t in board['TODO']] == [f'Task {i}' for i in range(30)]
        assert all(isinstance(t['position'], int) for t in board['TODO'])

    def test_batch_failure_reported(self, db, mock_context, project):
        with patch('handler.DynamoDBService.batch_put', side_effect=DataStoreError('throttled')):
            body = _body(bulk_task_import(self._event(project, tasks=[{'title': 'One'}]), mock_context))
        assert body['summary'] == {'total': 1, 'success': 0, 'failed': 1}
        assert body['results']['failed'][0]['error'] == 'Batch write failed'

    def test_requires_rows(self, db, mock_context, project):
        response = bulk_task_import(self._event(project), mock_context)
        assert response['statusCode'] == 400
        assert _body(response)['error'] == 'tasks array or csv text is required'

    def test_requires_ids(self, db, mock_context):
        response = bulk_task_import({'tasks': [{'title': 'x'}]}, mock_context)
        assert response['statusCode'] == 400
        assert _body(response)['error'] == 'organizationId, projectId, and createdById are required'


@pytest.mark.scheduled
class TestExportUserData:
    def test_export(self, db, mock_context, project):
        _user(db, 'owner-1', email='owner@example.com')
        _task(db, project, title='Mine')

        response = export_user_data({'userId': 'owner-1'}, mock_context)

        assert response['statusCode'] == 200
        body = _body(response)
        assert body['summary']['organizations'] == 1
        assert body['summary']['tasks'] == 1
        assert body['summary']['timeEntries'] == 0
        assert body['exportKey'] == f"exports/owner-1/{utcnow().date().isoformat()}.json"
        assert body['downloadUrl']
        stored = boto3.client('s3', region_name='us-east-1').get_object(
            Bucket=EXPORT_BUCKET, Key=body['exportKey']
        )
        document = json.loads(stored['Body'].read())
        assert document['profile']['email'] == 'owner@example.com'
        assert _sent_count() == 1

    def test_without_bucket(self, db, mock_context, monkeypatch):
        monkeypatch.setenv('EXPORT_BUCKET', '')
        import config
        config._config = None
        _user(db, 'user-1')

        body = _body(export_user_data({'userId': 'user-1'}, mock_context))

        assert body['exportKey'] is None
        assert body['downloadUrl'] is None

    def test_unknown_user(self, db, mock_context):
        response = export_user_data({'userId': 'missing'}, mock_context)
        assert response['statusCode'] == 404
        assert _body(response)['error'] == 'User not found'

    def test_user_id_required(self, db, mock_context):
        assert export_user_data({}, mock_context)['statusCode'] == 400
