"""
Lambda handler functions for the ProjectHub backend.

Organization and membership endpoints sit behind API Gateway, the user pool
invokes the sign-up triggers and EventBridge runs the scheduled jobs. Every
handler goes through the service layer for AWS operations.
"""
import json
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta
from typing import Any, Dict, List, Optional

from boto3.dynamodb.conditions import Attr
from more_itertools import chunked

from config import get_config
from email_templates import (
    digest_email, export_email, invitation_email, notification_email, reminder_email,
)
from logger_config import get_logger
from models import (
    ACTIVITY, BATCH_WRITE_SIZE, COMMENT, DISPOSABLE_EMAIL_DOMAINS, INDEX_BY_ORGANIZATION,
    INDEX_BY_USER, INVITABLE_ROLES, INVITATION_ACCEPTED, INVITATION_EXPIRED,
    INVITATION_PENDING, INVITER_ROLES, NOTIFICATION, NOTIFICATION_TYPES, PLAN_LIMITS, REMOVER_ROLES,
    ROLE_MEMBER, ROLE_OWNER, STATUS_DONE, TASK, TIME_ENTRY, TYPENAME, USER, WEBHOOK,
    WEBHOOK_MAX_FAILURES, has_user_headroom, max_users,
)
from services.dynamodb_service import DynamoDBService
from services.entity_service import new_item, require_choice
from services.idempotency_service import IdempotencyService
from services.notification_service import NotificationService
from services.organization_service import OrganizationService
from services.project_service import ProjectService
from services.s3_service import S3Service
from services.ses_service import SESService
from services.task_service import TaskService, new_task_item
from services.webhook_service import WebhookService
from transforms import (
    board_position, digest_window_start, end_of_day, format_date, group_reminders_by_assignee,
    group_tasks_by_status, isoformat, parse_csv_tasks, parse_datetime, utcnow,
)
from utils.decorators import api_handler, scheduled_handler
from utils.events import parse_body, require_user
from utils.exceptions import (
    ConflictError, DataStoreError, EmailDeliveryError, ForbiddenError, NotFoundError,
    ProjectHubError, ValidationError, WebhookDeliveryError,
)

logger = get_logger(__name__)

MAX_WORKERS = 8

TASK_ACTION_COLORS = {
    'created': '#10b981',
    'updated': '#3b82f6',
    'completed': '#8b5cf6',
    'deleted': '#ef4444',
}


def _table() -> DynamoDBService:
    return DynamoDBService(get_config().dynamodb_table)


def _mailer() -> SESService:
    return SESService(get_config().ses_from_email)


# Organizations and membership

@api_handler('Failed to create organization')
def create_organization(event, context):
    """Create a trial organization owned by the caller."""
    config = get_config()
    user = require_user(event)
    body = parse_body(event)

    name = (body.get('name') or '').strip()
    slug = (body.get('slug') or '').strip()
    if not name or not slug:
        raise ValidationError('Name and slug are required')
    plan = body.get('plan') or 'FREE'
    require_choice(plan, PLAN_LIMITS, 'plan')

    organizations = OrganizationService(_table())
    if organizations.slug_taken(slug):
        raise ConflictError('Organization slug already exists')

    created = organizations.create_organization(
        user['user_id'], name, slug,
        plan=plan,
        trial_days=config.trial_days,
        description=body.get('description'),
        industry=body.get('industry'),
        size=body.get('size'),
    )
    organization = created['organization']
    return 201, {
        'success': True,
        'organization': {
            'id': organization['id'],
            'name': name,
            'slug': slug,
            'plan': plan,
            'status': organization['status'],
            'trialEndsAt': organization['trialEndsAt'],
        },
    }


@api_handler('Failed to invite user')
def invite_user(event, context):
    """Create a PENDING invitation and email its accept link."""
    config = get_config()
    user = require_user(event)
    body = parse_body(event)

    organization_id = body.get('organizationId')
    email = (body.get('email') or '').strip()
    role = body.get('role') or ROLE_MEMBER
    if not organization_id or not email:
        raise ValidationError('Organization ID and email are required')
    require_choice(role, INVITABLE_ROLES, 'role')

    organizations = OrganizationService(_table())
    membership = organizations.get_membership(organization_id, user['user_id'])
    if not membership or membership.get('role') not in INVITER_ROLES:
        raise ForbiddenError('Insufficient permissions to invite users')

    organization = organizations.get_organization(organization_id)
    if not has_user_headroom(organization):
        raise ForbiddenError(
            f"User limit reached. Your {organization.get('plan', 'FREE')} plan allows up to "
            f"{max_users(organization)} users. Please upgrade to add more users."
        )
    if organizations.pending_invitations(email, organization_id):
        raise ConflictError('User already invited')

    invitation = organizations.create_invitation(
        organization_id, email, role, user['user_id'], ttl_days=config.invitation_ttl_days
    )
    invite_url = f"{config.app_url}/accept-invite?token={invitation['token']}"
    try:
        _mailer().send(email, invitation_email(
            organization['name'], user.get('email'), role, invite_url, invitation['expiresAt']
        ))
    except EmailDeliveryError as e:
        logger.error(f"Invitation {invitation['id']} created but email failed: {e.message}")

    return 201, {
        'success': True,
        'invitation': {
            'id': invitation['id'],
            'email': email,
            'role': role,
            'expiresAt': invitation['expiresAt'],
        },
    }


@api_handler('Failed to accept invitation')
def accept_invite(event, context):
    """Join the caller to the organization of a PENDING invitation."""
    user = require_user(event, require_email=True)
    token = parse_body(event).get('token')
    if not token:
        raise ValidationError('Invitation token is required')

    organizations = OrganizationService(_table())
    invitation = organizations.find_invitation_by_token(token)
    if not invitation:
        raise NotFoundError('Invitation not found')
    if invitation.get('email', '').lower() != user['email'].lower():
        raise ForbiddenError('This invitation is for a different email address')
    if invitation.get('status') != INVITATION_PENDING:
        raise ValidationError(f"Invitation is {invitation.get('status', '').lower()}")

    if parse_datetime(invitation['expiresAt']) < utcnow():
        organizations.set_invitation_status(invitation['id'], INVITATION_EXPIRED)
        raise ValidationError('Invitation has expired')

    organization = organizations.get_organization(invitation['organizationId'])
    if not has_user_headroom(organization):
        raise ForbiddenError(
            f"Organization has reached user limit. The {organization.get('plan', 'FREE')} "
            f"plan allows up to {max_users(organization)} users."
        )
    if organizations.get_membership(organization['id'], user['user_id']):
        raise ConflictError('You are already a member of this organization')

    membership = organizations.add_member(
        organization['id'], user['user_id'], invitation['role'],
        invited_by=invitation.get('invitedBy'),
        invited_at=invitation.get('createdAt'),
    )
    organizations.set_invitation_status(
        invitation['id'], INVITATION_ACCEPTED, acceptedAt=membership['joinedAt']
    )
    organizations.change_user_count(organization['id'], 1)

    return {
        'success': True,
        'message': f"Welcome to {organization['name']}!",
        'membership': {
            'id': membership['id'],
            'organizationId': organization['id'],
            'organizationName': organization['name'],
            'role': membership['role'],
            'joinedAt': membership['joinedAt'],
        },
    }


@api_handler('Failed to remove user')
def remove_user(event, context):
    """Remove a member. Owners and admins only; the last owner stays."""
    user = require_user(event)
    body = parse_body(event)
    organization_id = body.get('organizationId')
    target_id = body.get('userIdToRemove')
    if not organization_id or not target_id:
        raise ValidationError('Organization ID and user ID are required')
    if target_id == user['user_id']:
        raise ValidationError(
            'You cannot remove yourself. Please transfer ownership first or leave the organization.'
        )

    organizations = OrganizationService(_table())
    requester = organizations.get_membership(organization_id, user['user_id'])
    if not requester:
        raise ForbiddenError('You are not a member of this organization')
    if requester.get('role') not in REMOVER_ROLES:
        raise ForbiddenError('Only owners and admins can remove users')

    target = organizations.get_membership(organization_id, target_id)
    if not target:
        raise NotFoundError('User is not a member of this organization')
    if target.get('role') == ROLE_OWNER:
        if requester.get('role') != ROLE_OWNER:
            raise ForbiddenError('Only owners can remove other owners')
        if organizations.count_owners(organization_id) <= 1:
            raise ValidationError('Cannot remove the last owner. Please transfer ownership first.')

    organizations.remove_member(target)
    return {'success': True, 'message': 'User removed from organization successfully'}


# User pool triggers

def pre_sign_up(event, context):
    """
    Validate a sign-up before the user pool creates the account.

    Raising blocks the sign-up; the message is shown to the user.
    """
    attributes = event['request']['userAttributes']
    email = attributes.get('email') or ''
    domain = email.rsplit('@', 1)[-1].lower()
    if domain in DISPOSABLE_EMAIL_DOMAINS:
        raise ValidationError('Disposable email addresses are not allowed', field='email')

    organizations = OrganizationService(_table())
    invitations = organizations.pending_invitations(email)
    if invitations:
        invitation = invitations[0]
        event.setdefault('response', {})
        event['response']['autoConfirmUser'] = False
        event['response']['autoVerifyEmail'] = True
        if not attributes.get('custom:organizationId'):
            attributes['custom:organizationId'] = invitation['organizationId']
            attributes['custom:role'] = invitation['role']
        logger.info(f"Sign-up for {email} matches invitation to {invitation['organizationId']}")

    organization_id = attributes.get('custom:organizationId')
    if organization_id:
        organization = organizations.db.get_item(organization_id)
        if organization and not has_user_headroom(organization):
            raise ForbiddenError(
                f'Organization has reached the maximum user limit of {max_users(organization)} users'
            )
    return event


def post_confirmation(event, context):
    """
    Create the User profile (and membership, for invited users) after confirmation.

    Never raises: a failure here must not block the confirmed sign-up.
    """
    attributes = event.get('request', {}).get('userAttributes', {})
    user_id = event.get('userName')
    organization_id = attributes.get('custom:organizationId')
    try:
        db = _table()
        now = isoformat(utcnow())
        db.put_item(new_item(USER, {
            'email': attributes.get('email'),
            'firstName': attributes.get('given_name', ''),
            'lastName': attributes.get('family_name', ''),
            'role': ROLE_MEMBER,
            'online': False,
            'lastSeen': now,
        }, item_id=user_id), condition=Attr('id').not_exists())
        logger.info(f'Created profile for user {user_id}')

        if organization_id:
            membership = OrganizationService(db).add_member(
                organization_id, user_id, attributes.get('custom:role') or ROLE_MEMBER
            )
            logger.info(f"Added user {user_id} to organization {organization_id} ({membership['id']})")
    except Exception as e:
        logger.error(f'Post confirmation failed for user {user_id}: {str(e)}', exc_info=True)
    return event


# Scheduled jobs

def _digest_for(db: DynamoDBService, user: Dict[str, Any], since: str):
    tasks = db.scan(TASK, Attr('assignedToId').eq(user['id']) & Attr('updatedAt').gte(since))
    notifications = db.query_index(
        INDEX_BY_USER, user['id'],
        typename=NOTIFICATION,
        filter_expression=Attr('createdAt').gte(since) & Attr('read').eq(False)
    )
    return tasks, notifications


@scheduled_handler('Failed to send digests')
def email_digest(event, context):
    """Email each user a daily or weekly summary of their tasks and unread notifications."""
    config = get_config()
    digest_type = event.get('digestType') or 'daily'
    now = utcnow()
    since = isoformat(digest_window_start(digest_type, now))
    today = now.date().isoformat()

    db = _table()
    idempotency = IdempotencyService(config.idempotency_table)
    users = db.scan(USER, Attr('email').exists())
    logger.info(f'Preparing {digest_type} digest for {len(users)} users')

    outbox = []
    failed = 0
    for user in users:
        key = IdempotencyService.generate_key('email_digest', user['id'], digest_type, today)
        if idempotency.check(key):
            continue
        try:
            tasks, notifications = _digest_for(db, user, since)
        except DataStoreError as e:
            logger.error(f"Skipping digest for user {user['id']}: {e.message}")
            failed += 1
            continue
        if not tasks and not notifications:
            continue
        message = digest_email(
            user, group_tasks_by_status(tasks), notifications, digest_type, config.app_url
        )
        outbox.append((user, key, message))

    mailer = _mailer()
    mailer.client  # create the client before fanning out; creation is not thread-safe
    sent = 0
    with ThreadPoolExecutor(max_workers=MAX_WORKERS) as executor:
        futures = [
            (user, key, executor.submit(mailer.send, user['email'], message))
            for user, key, message in outbox
        ]
        for user, key, future in futures:
            try:
                future.result()
            except EmailDeliveryError as e:
                logger.error(f"Digest for user {user['id']} failed: {e.message}")
                failed += 1
                continue
            idempotency.mark_complete(key, 'email_digest')
            sent += 1

    return {
        'message': f'Sent {sent} {digest_type} digests',
        'sent': sent,
        'failed': failed,
    }


@scheduled_handler('Failed to process reminders')
def due_date_reminder(event, context):
    """Email assignees about open tasks due within the next week."""
    config = get_config()
    now = utcnow()
    horizon = isoformat(end_of_day(now + timedelta(days=7)))
    today = now.date().isoformat()

    db = _table()
    tasks = db.scan(
        TASK,
        Attr('status').ne(STATUS_DONE) & Attr('dueDate').exists() & Attr('dueDate').lte(horizon)
    )
    logger.info(f'Found {len(tasks)} tasks with upcoming due dates')
    reminders = group_reminders_by_assignee(tasks, now)
    project_names = ProjectService(db).names_by_id(task.get('projectId') for task in tasks)

    idempotency = IdempotencyService(config.idempotency_table)
    mailer = _mailer()
    sent = 0
    for user_id, groups in reminders.items():
        key = IdempotencyService.generate_key('due_date_reminder', user_id, today)
        if idempotency.check(key):
            continue
        user = db.get_item(user_id)
        if not user or not user.get('email'):
            logger.info(f'User {user_id} not found or has no email')
            continue
        for bucket in groups.values():
            for task in bucket:
                task['projectName'] = project_names.get(task.get('projectId'))
        message = reminder_email(user, groups, config.app_url)
        if message is None:
            continue
        try:
            mailer.send(user['email'], message)
        except EmailDeliveryError as e:
            logger.error(f'Reminder for user {user_id} failed: {e.message}')
            continue
        idempotency.mark_complete(key, 'due_date_reminder')
        sent += 1

    return {
        'message': f'Processed {len(tasks)} tasks, sent {sent} reminders',
        'stats': {'totalTasks': len(tasks), 'usersNotified': len(reminders)},
    }


@scheduled_handler('Failed to create recurring tasks')
def recurring_task_creator(event, context):
    """Create today's occurrences of recurring tasks."""
    tasks = TaskService(_table())
    templates = tasks.recurring()
    logger.info(f'Found {len(templates)} recurring tasks')

    created = []
    for template in templates:
        try:
            task = tasks.spawn_occurrence(template)
        except ProjectHubError as e:
            logger.error(f"Error processing recurring task {template['id']}: {e.message}")
            continue
        if task:
            created.append({
                'originalTaskId': template['id'],
                'newTaskId': task['id'],
                'title': task.get('title'),
            })

    return {
        'message': f'Created {len(created)} recurring tasks',
        'createdTasks': created,
    }


# Import and export

@api_handler('Failed to import tasks')
def bulk_task_import(event, context):
    """Import tasks from a JSON ``tasks`` array or ``csv`` text, 25 per batch write."""
    body = parse_body(event)
    if body.get('csv'):
        rows = parse_csv_tasks(body['csv'])
    elif isinstance(body.get('tasks'), list):
        rows = body['tasks']
    else:
        raise ValidationError('tasks array or csv text is required')

    organization_id = body.get('organizationId')
    project_id = body.get('projectId')
    created_by_id = body.get('createdById')
    if not organization_id or not project_id or not created_by_id:
        raise ValidationError('organizationId, projectId, and createdById are required')

    success: List[Dict[str, Any]] = []
    failed: List[Dict[str, Any]] = []
    db = _table()
    base_position = board_position(utcnow())
    for batch_number, batch in enumerate(chunked(rows, BATCH_WRITE_SIZE)):
        items = []
        for offset, row in enumerate(batch, start=batch_number * BATCH_WRITE_SIZE):
            if not isinstance(row, dict):
                failed.append({'data': row, 'error': 'Task must be an object'})
                continue
            try:
                data = dict(row, projectId=project_id)
                data.setdefault('position', base_position + offset)
                fields = new_task_item(organization_id, created_by_id, data)
            except ValidationError as e:
                failed.append({'data': row, 'error': e.message})
                continue
            items.append(new_item(TASK, dict(fields, actualHours=0)))
        if not items:
            continue

        try:
            unprocessed = db.batch_put(items)
        except DataStoreError:
            unprocessed = items
        unprocessed_ids = {item['id'] for item in unprocessed}
        for item in items:
            if item['id'] in unprocessed_ids:
                failed.append({'data': item, 'error': 'Batch write failed'})
            else:
                success.append({'id': item['id'], 'title': item['title']})

    logger.info(f'Import complete: {len(success)} success, {len(failed)} failed')
    return {
        'success': True,
        'message': f'Imported {len(success)} tasks',
        'summary': {'total': len(rows), 'success': len(success), 'failed': len(failed)},
        'results': {'success': success, 'failed': failed},
    }


def _user_records(db: DynamoDBService, user_id: str, typename: str) -> List[Dict[str, Any]]:
    return db.query_index(INDEX_BY_USER, user_id, typename=typename)


@api_handler('Failed to export user data')
def export_user_data(event, context):
    """Collect everything stored about a user and email it to them."""
    config = get_config()
    body = parse_body(event)
    user_id = body.get('userId')
    if not user_id:
        raise ValidationError('userId is required')

    db = _table()
    profile = db.get_item(user_id)
    if not profile or profile.get(TYPENAME) != USER:
        raise NotFoundError('User not found', entity_id=user_id)

    document = {
        'profile': profile,
        'organizations': OrganizationService(db).memberships_of(user_id),
        'tasks': db.scan(
            TASK, Attr('createdById').eq(user_id) | Attr('assignedToId').eq(user_id)
        ),
        'comments': _user_records(db, user_id, COMMENT),
        'activities': _user_records(db, user_id, ACTIVITY),
        'notifications': _user_records(db, user_id, NOTIFICATION),
        'timeEntries': _user_records(db, user_id, TIME_ENTRY),
    }
    summary = {key: len(value) for key, value in document.items() if key != 'profile'}
    export_json = json.dumps(document, indent=2, default=str)
    export_date = utcnow().date().isoformat()

    export_key = None
    download_url = None
    if config.export_bucket:
        s3_service = S3Service(config.export_bucket)
        export_key = f'exports/{user_id}/{export_date}.json'
        s3_service.put_json_object(export_key, document, metadata={'user_id': user_id})
        download_url = s3_service.presigned_download_url(export_key)

    if profile.get('email'):
        _mailer().send(
            profile['email'],
            export_email(profile, summary, export_json, export_date, download_url)
        )
    else:
        logger.warning(f'User {user_id} has no email, export not mailed')

    return {
        'success': True,
        'message': 'Data export sent',
        'summary': summary,
        'exportKey': export_key,
        'downloadUrl': download_url,
    }


# Notifications

NOTIFICATION_CHANNELS = ('in-app', 'email', 'push')


@api_handler('Failed to send notification')
def send_notification(event, context):
    """Deliver one notification over the requested channels (in-app, email)."""
    config = get_config()
    body = parse_body(event)
    user_id = body.get('userId')
    notification_type = body.get('type')
    title = body.get('title')
    message = body.get('message')
    if not user_id or not notification_type or not title or not message:
        raise ValidationError('userId, type, title, and message are required')
    require_choice(notification_type, NOTIFICATION_TYPES, 'type')
    channels = body.get('channels') or ['in-app', 'email']
    if not isinstance(channels, list):
        raise ValidationError('channels must be a list', field='channels')
    for channel in channels:
        require_choice(channel, NOTIFICATION_CHANNELS, 'channels')

    db = _table()
    user = db.get_item(user_id)
    if not user or user.get(TYPENAME) != USER:
        raise NotFoundError('User not found', entity_id=user_id)

    results: Dict[str, Any] = {channel: None for channel in NOTIFICATION_CHANNELS}
    if 'in-app' in channels:
        try:
            notification = NotificationService(db).create(
                body.get('organizationId'), user_id, title,
                message=message,
                notification_type=notification_type,
                task_id=body.get('taskId'),
                project_id=body.get('projectId'),
                link=body.get('link'),
            )
            results['in-app'] = {'success': True, 'notificationId': notification['id']}
        except DataStoreError as e:
            logger.error(f'Error creating in-app notification for {user_id}: {e.message}')
            results['in-app'] = {'success': False, 'error': e.message}

    if 'email' in channels and user.get('email'):
        email = notification_email(
            user, notification_type, title, message, config.app_url, link=body.get('link')
        )
        try:
            _mailer().send(user['email'], email)
            results['email'] = {'success': True, 'recipient': user['email']}
        except EmailDeliveryError as e:
            logger.error(f'Error emailing notification to {user_id}: {e.message}')
            results['email'] = {'success': False, 'error': e.message}

    if 'push' in channels:
        results['push'] = {'success': False, 'error': 'Push notifications are not supported'}

    logger.info(f'Notification {notification_type} processed for user {user_id}')
    return {'success': True, 'message': 'Notification sent', 'results': results}


# Outbound integrations

def _record_delivery(
    db: DynamoDBService,
    webhook: Dict[str, Any],
    error: Optional[WebhookDeliveryError]
) -> bool:
    now = isoformat(utcnow())
    if error is not None:
        updated = db.update_item(
            webhook['id'], {'lastTriggered': now}, increments={'failureCount': 1}
        )
        if int(updated.get('failureCount') or 0) >= WEBHOOK_MAX_FAILURES:
            db.update_item(webhook['id'], {'active': False})
            logger.warning(f"Webhook {webhook['id']} disabled after {WEBHOOK_MAX_FAILURES} failures")
        logger.error(f"Webhook {webhook['id']} delivery failed: {error.message}")
        return False
    db.update_item(webhook['id'], {'lastTriggered': now, 'failureCount': 0})
    return True


@api_handler('Failed to dispatch webhooks')
def webhook_dispatcher(event, context):
    """POST a signed event to every active webhook of the organization subscribed to it."""
    config = get_config()
    body = parse_body(event)
    organization_id = body.get('organizationId')
    event_type = body.get('eventType')
    data = body.get('data')
    if not organization_id or not event_type or not data:
        raise ValidationError('organizationId, eventType, and data are required')

    db = _table()
    webhooks = db.query_index(
        INDEX_BY_ORGANIZATION, organization_id,
        typename=WEBHOOK,
        filter_expression=Attr('active').eq(True) & Attr('events').contains(event_type)
    )
    logger.info(f'Found {len(webhooks)} webhooks for event: {event_type}')
    if not webhooks:
        return {'message': 'No webhooks configured for this event', 'results': {'success': 0, 'failed': 0}}

    webhook_service = WebhookService(timeout=config.webhook_timeout_seconds)

    def deliver(webhook: Dict[str, Any]) -> Optional[WebhookDeliveryError]:
        try:
            webhook_service.deliver(webhook['url'], webhook.get('secret', ''), event_type, data)
        except WebhookDeliveryError as e:
            return e
        return None

    # Only HTTP runs in worker threads; the table resource stays on this thread.
    with ThreadPoolExecutor(max_workers=min(len(webhooks), MAX_WORKERS)) as executor:
        errors = list(executor.map(deliver, webhooks))
    outcomes = [_record_delivery(db, webhook, error) for webhook, error in zip(webhooks, errors)]

    succeeded = sum(1 for ok in outcomes if ok)
    return {
        'success': True,
        'message': f'Dispatched {len(webhooks)} webhooks',
        'results': {'success': succeeded, 'failed': len(outcomes) - succeeded},
    }


@api_handler('Failed to send Slack notification')
def slack_notifier(event, context):
    """Post a message to a Slack incoming webhook."""
    config = get_config()
    body = parse_body(event)
    message = body.get('message')
    webhook_url = body.get('webhookUrl') or config.slack_webhook_url
    if not webhook_url or not message:
        raise ValidationError('webhookUrl and message are required')

    WebhookService(timeout=config.webhook_timeout_seconds).post_slack(
        webhook_url, message, body.get('attachments')
    )
    return {'success': True, 'message': 'Slack notification sent'}


def format_task_notification(task: Dict[str, Any], action: str) -> Dict[str, Any]:
    """Slack attachment describing a task event ('created', 'completed', ...)."""
    return {
        'color': TASK_ACTION_COLORS.get(action, '#6b7280'),
        'title': f"Task {action}: {task.get('title', '')}",
        'fields': [
            {'title': 'Status', 'value': task.get('status') or 'N/A', 'short': True},
            {'title': 'Priority', 'value': task.get('priority') or 'N/A', 'short': True},
            {'title': 'Assignee', 'value': task.get('assignedToName') or 'Unassigned', 'short': True},
            {
                'title': 'Due Date',
                'value': format_date(task.get('dueDate')) or 'No due date',
                'short': True,
            },
        ],
        'footer': 'ProjectHub',
        'ts': int(time.time()),
    }


def format_project_notification(project: Dict[str, Any], action: str) -> Dict[str, Any]:
    return {
        'color': '#3b82f6',
        'title': f"Project {action}: {project.get('name', '')}",
        'text': project.get('description') or '',
        'fields': [
            {'title': 'Status', 'value': project.get('status') or 'ACTIVE', 'short': True},
            {'title': 'Team Size', 'value': f"{project.get('teamSize') or 0} members", 'short': True},
        ],
        'footer': 'ProjectHub',
        'ts': int(time.time()),
    }
