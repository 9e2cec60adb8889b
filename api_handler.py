"""
REST entry point for the ProjectHub data API.

One API Gateway proxy integration routes ``METHOD /path`` to the entity
services. The caller is identified by the authorizer claims and must be a
member of the organization that owns the records it touches.
"""
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Pattern, Tuple

from config import get_config
from kanban import build_board, move_card
from logger_config import get_logger
from services.activity_service import ActivityService
from services.attachment_service import AttachmentService
from services.channel_service import ChannelService
from services.comment_service import CommentService
from services.dynamodb_service import DynamoDBService
from services.notification_service import NotificationService
from services.organization_service import OrganizationService
from services.project_service import ProjectService
from services.s3_service import S3Service
from services.search_service import SearchService
from services.task_service import TaskService
from services.time_tracking_service import TimeTrackingService
from utils.decorators import api_handler
from utils.events import parse_body, query_param, require_user
from utils.exceptions import ForbiddenError, NotFoundError, ProjectHubError, ValidationError

logger = get_logger(__name__)


@dataclass
class Request:
    event: Dict[str, Any]
    user_id: str
    email: Optional[str]
    body: Dict[str, Any]
    db: DynamoDBService
    _memberships: Dict[str, bool] = field(default_factory=dict)

    def param(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return query_param(self.event, key, default)

    def organization_id(self) -> str:
        organization_id = self.body.get('organizationId') or self.param('organizationId')
        if not organization_id:
            raise ValidationError('organizationId is required', field='organizationId')
        self.authorize(organization_id)
        return organization_id

    def authorize(self, organization_id: Optional[str]) -> None:
        """Raise ForbiddenError unless the caller belongs to the organization."""
        if organization_id not in self._memberships:
            membership = OrganizationService(self.db).get_membership(organization_id, self.user_id) \
                if organization_id else None
            self._memberships[organization_id] = membership is not None
        if not self._memberships[organization_id]:
            raise ForbiddenError('You are not a member of this organization')

    def owned(self, record: Dict[str, Any]) -> Dict[str, Any]:
        self.authorize(record.get('organizationId'))
        return record


Route = Tuple[str, Pattern, Callable[..., Any]]
ROUTES: List[Route] = []


def route(method: str, path: str):
    """Register a view for ``method`` and a path template like ``/tasks/{task_id}``."""
    pattern = re.compile('^' + re.sub(r'\{(\w+)\}', r'(?P<\1>[^/]+)', path) + '/?$')

    def register(view):
        ROUTES.append((method, pattern, view))
        return view
    return register


def _path(event: Dict[str, Any]) -> str:
    path = str(event.get('path') or '/').strip()
    # Custom-domain base path mappings keep a leading /api.
    if path.startswith('/api/'):
        path = path[len('/api'):]
    return path


# Projects

@route('GET', '/projects')
def list_projects(request: Request):
    projects = ProjectService(request.db)
    organization_id = request.organization_id()
    if request.param('status'):
        items = projects.list_by_status(organization_id, request.param('status'))
    elif request.param('ownerId'):
        items = projects.list_by_owner(organization_id, request.param('ownerId'))
    else:
        items = projects.list(organization_id)
    return {'projects': items}


@route('POST', '/projects')
def create_project(request: Request):
    project = ProjectService(request.db).create(request.organization_id(), request.user_id, request.body)
    ActivityService(request.db).log_project_created(request.user_id, project)
    _notify_new_owner(request, project, None)
    return 201, {'project': project}


def _notify_new_owner(request: Request, project: Dict[str, Any], previous_owner: Optional[str]) -> None:
    owner = project.get('ownerId')
    if owner and owner != previous_owner and owner != request.user_id:
        NotificationService(request.db).notify_project_invite(
            project['organizationId'], owner, project, invited_by=request.email
        )


@route('GET', '/projects/{project_id}')
def get_project(request: Request, project_id: str):
    return {'project': request.owned(ProjectService(request.db).get(project_id))}


@route('PUT', '/projects/{project_id}')
def update_project(request: Request, project_id: str):
    projects = ProjectService(request.db)
    previous = request.owned(projects.get(project_id))
    project = projects.update(project_id, request.body)
    _notify_new_owner(request, project, previous.get('ownerId'))
    return {'project': project}


@route('DELETE', '/projects/{project_id}')
def delete_project(request: Request, project_id: str):
    projects = ProjectService(request.db)
    request.owned(projects.get(project_id))
    if request.param('hard') == 'true':
        return projects.hard_delete(project_id)
    return {'project': projects.delete(project_id)}


@route('POST', '/projects/{project_id}/archive')
def archive_project(request: Request, project_id: str):
    projects = ProjectService(request.db)
    request.owned(projects.get(project_id))
    return {'project': projects.archive(project_id)}


@route('POST', '/projects/{project_id}/restore')
def restore_project(request: Request, project_id: str):
    projects = ProjectService(request.db)
    request.owned(projects.get(project_id))
    return {'project': projects.restore(project_id, request.body.get('status'))}


@route('GET', '/projects/{project_id}/tasks')
def list_project_tasks(request: Request, project_id: str):
    request.owned(ProjectService(request.db).get(project_id))
    return {'tasks': TaskService(request.db).list_by_project(project_id)}


@route('GET', '/projects/{project_id}/activity')
def list_project_activity(request: Request, project_id: str):
    request.owned(ProjectService(request.db).get(project_id))
    limit = int(request.param('limit', '50'))
    return {'activities': ActivityService(request.db).list_by_project(project_id, limit)}


@route('GET', '/activity')
def list_my_activity(request: Request):
    """The caller's own recent activity within one organization."""
    organization_id = request.organization_id()
    limit = int(request.param('limit', '50'))
    items = ActivityService(request.db).list_by_user(request.user_id, limit=None)
    return {'activities': [a for a in items if a.get('organizationId') == organization_id][:limit]}


# Kanban board

@route('GET', '/projects/{project_id}/board')
def get_board(request: Request, project_id: str):
    request.owned(ProjectService(request.db).get(project_id))
    return {'board': build_board(TaskService(request.db).list_by_project(project_id))}


@route('POST', '/projects/{project_id}/board/moves')
def move_board_card(request: Request, project_id: str):
    """Move one card and persist its new status and position."""
    request.owned(ProjectService(request.db).get(project_id))
    tasks = TaskService(request.db)
    body = request.body
    for key in ('sourceStatus', 'sourceIndex', 'destStatus', 'destIndex'):
        if body.get(key) is None:
            raise ValidationError(f'{key} is required', field=key)

    board, moved = move_card(
        build_board(tasks.list_by_project(project_id)),
        body['sourceStatus'], int(body['sourceIndex']),
        body['destStatus'], int(body['destIndex']),
    )
    task = tasks.move(moved['id'], moved['status'], moved['position'])
    if body['sourceStatus'] != body['destStatus']:
        ActivityService(request.db).log_task_status_changed(request.user_id, task, body['sourceStatus'])
    return {'task': task, 'board': board}


# Tasks

@route('GET', '/tasks')
def list_tasks(request: Request):
    tasks = TaskService(request.db)
    if request.param('assignedToId'):
        assignee = request.param('assignedToId')
        if assignee == 'me':
            assignee = request.user_id
        items = tasks.list_by_assignee(assignee)
        for organization_id in {t.get('organizationId') for t in items}:
            request.authorize(organization_id)
        return {'tasks': items}
    return {'tasks': tasks.list(request.organization_id())}


@route('POST', '/tasks')
def create_task(request: Request):
    organization_id = request.organization_id()
    if not ProjectService(request.db).exists_in(request.body.get('projectId'), organization_id):
        raise NotFoundError('Project not found', entity_id=request.body.get('projectId'))
    task = TaskService(request.db).create(organization_id, request.user_id, request.body)
    ActivityService(request.db).log_task_created(request.user_id, task)
    _notify_assignee(request, task, previous=None)
    return 201, {'task': task}


@route('GET', '/tasks/{task_id}')
def get_task(request: Request, task_id: str):
    return {'task': request.owned(TaskService(request.db).get(task_id))}


def _notify_assignee(request: Request, task: Dict[str, Any], previous: Optional[str]) -> None:
    assignee = task.get('assignedToId')
    if assignee and assignee != previous and assignee != request.user_id:
        NotificationService(request.db).notify_task_assignment(
            task['organizationId'], assignee, task, assigned_by=request.email
        )


def _apply_task_change(request: Request, task_id: str, change: Callable[[TaskService], Dict[str, Any]]):
    tasks = TaskService(request.db)
    before = request.owned(tasks.get(task_id))
    task = change(tasks)
    if task.get('status') != before.get('status'):
        ActivityService(request.db).log_task_status_changed(request.user_id, task, before.get('status'))
    _notify_assignee(request, task, previous=before.get('assignedToId'))
    return {'task': task}


@route('PUT', '/tasks/{task_id}')
def update_task(request: Request, task_id: str):
    return _apply_task_change(request, task_id, lambda tasks: tasks.update(task_id, request.body))


@route('PUT', '/tasks/{task_id}/assign')
def assign_task(request: Request, task_id: str):
    return _apply_task_change(
        request, task_id, lambda tasks: tasks.assign(task_id, request.body.get('assignedToId'))
    )


@route('PUT', '/tasks/{task_id}/status')
def update_task_status(request: Request, task_id: str):
    return _apply_task_change(
        request, task_id, lambda tasks: tasks.update_status(task_id, request.body.get('status'))
    )


@route('PUT', '/tasks/{task_id}/priority')
def update_task_priority(request: Request, task_id: str):
    return _apply_task_change(
        request, task_id, lambda tasks: tasks.update_priority(task_id, request.body.get('priority'))
    )


@route('DELETE', '/tasks/{task_id}')
def delete_task(request: Request, task_id: str):
    tasks = TaskService(request.db)
    request.owned(tasks.get(task_id))
    return tasks.delete(task_id)


# Comments

@route('GET', '/tasks/{task_id}/comments')
def list_comments(request: Request, task_id: str):
    request.owned(TaskService(request.db).get(task_id))
    return {'comments': CommentService(request.db).list_by_task(task_id)}


@route('POST', '/tasks/{task_id}/comments')
def create_comment(request: Request, task_id: str):
    task = request.owned(TaskService(request.db).get(task_id))
    comment = CommentService(request.db).create(
        task['organizationId'], task_id, request.user_id, request.body.get('content')
    )
    ActivityService(request.db).log_comment_added(request.user_id, task, comment)
    assignee = task.get('assignedToId')
    if assignee and assignee != request.user_id:
        NotificationService(request.db).notify_comment(
            task['organizationId'], assignee, task, commenter=request.email
        )
    mentioned = OrganizationService(request.db).mentioned_members(
        task['organizationId'], comment.get('mentions') or []
    )
    for user_id in mentioned:
        if user_id != request.user_id:
            NotificationService(request.db).notify_mention(
                task['organizationId'], user_id, task, mentioned_by=request.email
            )
    return 201, {'comment': comment}


def _own_comment(request: Request, comment_id: str) -> CommentService:
    comments = CommentService(request.db)
    comment = request.owned(comments.get(comment_id))
    if comment.get('userId') != request.user_id:
        raise ForbiddenError('You can only change your own comments')
    return comments


@route('PUT', '/comments/{comment_id}')
def update_comment(request: Request, comment_id: str):
    comments = _own_comment(request, comment_id)
    return {'comment': comments.update(comment_id, request.body.get('content'))}


@route('DELETE', '/comments/{comment_id}')
def delete_comment(request: Request, comment_id: str):
    return _own_comment(request, comment_id).delete(comment_id)


# Notifications

@route('GET', '/notifications')
def list_notifications(request: Request):
    unread_only = request.param('unread') == 'true'
    return {
        'notifications': NotificationService(request.db).list_by_user(request.user_id, unread_only)
    }


@route('GET', '/notifications/unread-count')
def unread_notifications(request: Request):
    return {'count': NotificationService(request.db).unread_count(request.user_id)}


@route('POST', '/notifications/read-all')
def read_all_notifications(request: Request):
    return {'updated': NotificationService(request.db).mark_all_as_read(request.user_id)}


def _own_notification(request: Request, notification_id: str) -> NotificationService:
    notifications = NotificationService(request.db)
    if notifications.get(notification_id).get('userId') != request.user_id:
        raise NotFoundError('Notification not found', entity_id=notification_id)
    return notifications


@route('PUT', '/notifications/{notification_id}/read')
def read_notification(request: Request, notification_id: str):
    notifications = _own_notification(request, notification_id)
    return {'notification': notifications.mark_as_read(notification_id)}


@route('DELETE', '/notifications/{notification_id}')
def delete_notification(request: Request, notification_id: str):
    return _own_notification(request, notification_id).delete(notification_id)


# Time tracking

@route('GET', '/time-entries')
def list_my_time_entries(request: Request):
    entries = TimeTrackingService(request.db).list_by_user(request.user_id)
    return {'timeEntries': entries, 'totalMinutes': TimeTrackingService.total_minutes(entries)}


@route('GET', '/tasks/{task_id}/time-entries')
def list_task_time_entries(request: Request, task_id: str):
    request.owned(TaskService(request.db).get(task_id))
    entries = TimeTrackingService(request.db).list_by_task(task_id)
    return {'timeEntries': entries, 'totalMinutes': TimeTrackingService.total_minutes(entries)}


@route('POST', '/tasks/{task_id}/time-entries')
def create_time_entry(request: Request, task_id: str):
    task = request.owned(TaskService(request.db).get(task_id))
    body = request.body
    entry = TimeTrackingService(request.db).create_manual_entry(
        task['organizationId'], task_id, request.user_id,
        start_time=body.get('startTime'),
        end_time=body.get('endTime'),
        duration=body.get('duration'),
        description=body.get('description'),
        billable=bool(body.get('billable')),
    )
    return 201, {'timeEntry': entry}


@route('POST', '/tasks/{task_id}/timer')
def start_timer(request: Request, task_id: str):
    task = request.owned(TaskService(request.db).get(task_id))
    entry = TimeTrackingService(request.db).start_timer(
        task['organizationId'], task_id, request.user_id, request.body.get('description')
    )
    return 201, {'timeEntry': entry}


@route('PUT', '/time-entries/{entry_id}/stop')
def stop_timer(request: Request, entry_id: str):
    return {'timeEntry': TimeTrackingService(request.db).stop_timer(entry_id, request.user_id)}


# Channels

@route('GET', '/channels')
def list_channels(request: Request):
    channels = ChannelService(request.db).list_channels(request.organization_id(), request.user_id)
    return {'channels': channels}


@route('POST', '/channels')
def create_channel(request: Request):
    body = request.body
    channel = ChannelService(request.db).create_channel(
        request.organization_id(), request.user_id, body.get('name'),
        channel_type=body.get('type') or 'PUBLIC',
        description=body.get('description'),
        project_id=body.get('projectId'),
        member_ids=body.get('memberIds'),
    )
    return 201, {'channel': channel}


@route('GET', '/channels/{channel_id}/messages')
def list_messages(request: Request, channel_id: str):
    channels = ChannelService(request.db)
    request.owned(channels.get(channel_id))
    return {'messages': channels.list_messages(channel_id, request.user_id)}


@route('POST', '/channels/{channel_id}/messages')
def post_message(request: Request, channel_id: str):
    channels = ChannelService(request.db)
    request.owned(channels.get(channel_id))
    return 201, {'message': channels.post_message(channel_id, request.user_id, request.body.get('content'))}


@route('PUT', '/messages/{message_id}')
def edit_message(request: Request, message_id: str):
    message = ChannelService(request.db).edit_message(
        message_id, request.user_id, request.body.get('content')
    )
    return {'message': message}


@route('DELETE', '/messages/{message_id}')
def delete_message(request: Request, message_id: str):
    return ChannelService(request.db).delete_message(message_id, request.user_id)


# Attachments

def _attachments(request: Request) -> AttachmentService:
    bucket = get_config().attachments_bucket
    if not bucket:
        raise ProjectHubError('Attachment storage is not configured')
    return AttachmentService(request.db, S3Service(bucket))


@route('GET', '/tasks/{task_id}/attachments')
def list_attachments(request: Request, task_id: str):
    request.owned(TaskService(request.db).get(task_id))
    return {'attachments': _attachments(request).list_by_task(task_id)}


@route('POST', '/tasks/{task_id}/attachments')
def create_attachment(request: Request, task_id: str):
    task = request.owned(TaskService(request.db).get(task_id))
    body = request.body
    upload = _attachments(request).create_upload(
        task['organizationId'], task_id, request.user_id,
        body.get('fileName'),
        file_type=body.get('fileType'),
        file_size=body.get('fileSize'),
    )
    return 201, upload


@route('DELETE', '/attachments/{attachment_id}')
def delete_attachment(request: Request, attachment_id: str):
    attachments = _attachments(request)
    request.owned(attachments.get(attachment_id))
    return attachments.delete(attachment_id)


# Search

@route('GET', '/search')
def search(request: Request):
    results = SearchService(request.db).search(request.organization_id(), request.param('q', ''))
    return {'results': results}


def dispatch(method: str, path: str) -> Tuple[Callable[..., Any], Dict[str, str]]:
    """
    Find the view for a request.

    Raises:
        NotFoundError: If no route matches
    """
    for route_method, pattern, view in ROUTES:
        if route_method != method:
            continue
        match = pattern.match(path)
        if match:
            return view, match.groupdict()
    raise NotFoundError(f'Route not found: {method} {path}')


@api_handler('Request failed')
def handle(event, context):
    """API Gateway proxy handler for every data API route."""
    user = require_user(event)
    method = str(event.get('httpMethod') or '').upper()
    path = _path(event)
    view, path_params = dispatch(method, path)

    request = Request(
        event=event,
        user_id=user['user_id'],
        email=user.get('email'),
        body=parse_body(event) if method in ('POST', 'PUT', 'PATCH') else {},
        db=DynamoDBService(get_config().dynamodb_table),
    )
    logger.info(f'{method} {path} -> {view.__name__} for user {request.user_id}')
    return view(request, **path_params)
