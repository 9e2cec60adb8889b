"""
Entity names, enumerations and plan limits shared by services and handlers.

All entities live in a single DynamoDB table discriminated by the
``__typename`` attribute.
"""

TYPENAME = '__typename'

ORGANIZATION = 'Organization'
ORGANIZATION_MEMBER = 'OrganizationMember'
INVITATION = 'Invitation'
USER = 'User'
PROJECT = 'Project'
TASK = 'Task'
COMMENT = 'Comment'
ACTIVITY = 'Activity'
NOTIFICATION = 'Notification'
TIME_ENTRY = 'TimeEntry'
CHANNEL = 'Channel'
MESSAGE = 'Message'
ATTACHMENT = 'Attachment'
WEBHOOK = 'Webhook'

# Global secondary indexes (hash key only)
INDEX_BY_USER = 'byUser'
INDEX_BY_ORGANIZATION = 'byOrganization'
INDEX_BY_PROJECT = 'byProject'
INDEX_BY_TASK = 'byTask'
INDEX_BY_CHANNEL = 'byChannel'
INDEX_BY_EMAIL = 'byEmail'
INDEX_BY_TOKEN = 'byToken'

INDEX_KEYS = {
    INDEX_BY_USER: 'userId',
    INDEX_BY_ORGANIZATION: 'organizationId',
    INDEX_BY_PROJECT: 'projectId',
    INDEX_BY_TASK: 'taskId',
    INDEX_BY_CHANNEL: 'channelId',
    INDEX_BY_EMAIL: 'email',
    INDEX_BY_TOKEN: 'token',
}

TASK_STATUSES = ('TODO', 'IN_PROGRESS', 'IN_REVIEW', 'DONE', 'BLOCKED')
TASK_PRIORITIES = ('LOW', 'MEDIUM', 'HIGH', 'URGENT')
STATUS_DONE = 'DONE'

PROJECT_STATUSES = ('ACTIVE', 'COMPLETED', 'ON_HOLD', 'ARCHIVED')

MEMBER_ROLES = ('OWNER', 'ADMIN', 'MANAGER', 'MEMBER', 'VIEWER')
INVITABLE_ROLES = ('ADMIN', 'MANAGER', 'MEMBER', 'VIEWER')
INVITER_ROLES = frozenset({'OWNER', 'ADMIN', 'MANAGER'})
REMOVER_ROLES = frozenset({'OWNER', 'ADMIN'})
ROLE_OWNER = 'OWNER'
ROLE_MEMBER = 'MEMBER'

INVITATION_PENDING = 'PENDING'
INVITATION_ACCEPTED = 'ACCEPTED'
INVITATION_EXPIRED = 'EXPIRED'

CHANNEL_TYPES = ('PUBLIC', 'PRIVATE', 'DIRECT')

NOTIFICATION_TYPES = (
    'TASK_ASSIGNED', 'TASK_COMPLETED', 'COMMENT', 'MENTION', 'PROJECT_INVITE',
    'DUE_DATE', 'STATUS_CHANGE', 'SYSTEM',
)

ACTIVITY_TYPES = (
    'PROJECT_CREATED', 'TASK_CREATED', 'TASK_STATUS_CHANGED',
    'TASK_ASSIGNED', 'COMMENT_ADDED', 'MEMBER_JOINED',
)

RECURRENCE_FREQUENCIES = ('DAILY', 'WEEKLY', 'MONTHLY', 'YEARLY')

DIGEST_TYPES = {'daily': 1, 'weekly': 7}

PLAN_LIMITS = {
    'FREE': {
        'maxUsers': 5,
        'maxProjects': 3,
        'maxStorageGB': 1,
        'maxApiCallsPerMonth': 10000,
    },
    'STARTER': {
        'maxUsers': 20,
        'maxProjects': 999,
        'maxStorageGB': 10,
        'maxApiCallsPerMonth': 100000,
    },
    'PROFESSIONAL': {
        'maxUsers': 100,
        'maxProjects': 999,
        'maxStorageGB': 100,
        'maxApiCallsPerMonth': 1000000,
    },
    'ENTERPRISE': {
        'maxUsers': 999,
        'maxProjects': 999,
        'maxStorageGB': 1000,
        'maxApiCallsPerMonth': 10000000,
    },
}
DEFAULT_MAX_USERS = 5
DEFAULT_MAX_PROJECTS = 3

DISPOSABLE_EMAIL_DOMAINS = frozenset({
    'tempmail.com', 'throwaway.email', '10minutemail.com',
    'guerrillamail.com', 'mailinator.com', 'trashmail.com',
})

WEBHOOK_MAX_FAILURES = 10
BATCH_WRITE_SIZE = 25
EMAIL_PREVIEW_LIMIT = 5


def max_users(organization: dict) -> int:
    return int((organization.get('limits') or {}).get('maxUsers') or DEFAULT_MAX_USERS)


def current_users(organization: dict) -> int:
    return int((organization.get('usage') or {}).get('currentUsers') or 0)


def has_user_headroom(organization: dict) -> bool:
    return current_users(organization) < max_users(organization)
