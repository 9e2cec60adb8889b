"""
Rendering for the transactional emails the Lambdas send.

Every template returns an ``EmailMessage`` with an HTML and a plain text
body. User-supplied values are HTML-escaped in the HTML body only.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from html import escape
from typing import Any, Dict, List, Optional

from models import EMAIL_PREVIEW_LIMIT
from transforms import format_date, html_to_text

PRODUCT_NAME = 'ProjectHub'

REMINDER_SECTIONS = (
    ('tomorrow', 'Due Tomorrow', 'DUE TOMORROW', '#ef4444'),
    ('threeDays', 'Due in 3 Days', 'DUE IN 3 DAYS', '#f59e0b'),
    ('week', 'Due This Week', 'DUE THIS WEEK', '#3b82f6'),
)


@dataclass(frozen=True)
class EmailMessage:
    subject: str
    html: str
    text: str


def _year() -> int:
    return datetime.now(timezone.utc).year


def _layout(heading: str, body: str, footer_note: str = '') -> str:
    note = f'<p><small>{footer_note}</small></p>' if footer_note else ''
    return (
        '<!DOCTYPE html><html><body style="font-family: Arial, sans-serif; '
        'line-height: 1.6; color: #333;">'
        '<div style="max-width: 600px; margin: 0 auto; padding: 20px;">'
        f'<h1 style="color: #3b82f6;">{heading}</h1>'
        f'{body}'
        f'<p style="color: #6b7280; font-size: 14px; margin-top: 40px;">'
        f'&copy; {_year()} {PRODUCT_NAME}. All rights reserved.</p>{note}'
        '</div></body></html>'
    )


def _button(url: str, label: str) -> str:
    return (
        f'<a href="{escape(url)}" style="display: inline-block; padding: 12px 24px; '
        f'background: #3b82f6; color: white; text-decoration: none; '
        f'border-radius: 6px;">{escape(label)}</a>'
    )


def _more(items: List[Any]) -> str:
    extra = len(items) - EMAIL_PREVIEW_LIMIT
    return f'<p><small>...and {extra} more</small></p>' if extra > 0 else ''


def digest_email(
    user: Dict[str, Any],
    tasks_by_status: Dict[str, List[Dict[str, Any]]],
    notifications: List[Dict[str, Any]],
    digest_type: str,
    app_url: str
) -> EmailMessage:
    """Daily or weekly activity summary."""
    label = 'Daily' if digest_type == 'daily' else 'Weekly'
    period = 'yesterday' if digest_type == 'daily' else 'this week'
    todo = tasks_by_status.get('TODO', [])
    in_progress = tasks_by_status.get('IN_PROGRESS', [])
    done = tasks_by_status.get('DONE', [])
    total_tasks = sum(len(group) for group in tasks_by_status.values())

    name = user.get('firstName') or 'there'

    sections = [
        f"<p>Hi {escape(name)}! Here's what happened {period}.</p>",
        '<h2>Activity Summary</h2><ul>',
        f'<li>{total_tasks} tasks updated</li>',
        f'<li>{len(notifications)} notifications</li>',
        f'<li>{len(done)} completed</li></ul>',
    ]
    if todo:
        items = ''.join(
            f"<li><strong>{escape(t.get('title', ''))}</strong>"
            + (f"<br><small>Due: {format_date(t['dueDate'])}</small>" if t.get('dueDate') else '')
            + '</li>'
            for t in todo[:EMAIL_PREVIEW_LIMIT]
        )
        sections.append(f'<h3>To Do ({len(todo)})</h3><ul>{items}</ul>{_more(todo)}')
    if in_progress:
        items = ''.join(
            f"<li><strong>{escape(t.get('title', ''))}</strong>"
            + (f"<br><small>{t['progressPercentage']}% complete</small>" if t.get('progressPercentage') else '')
            + '</li>'
            for t in in_progress[:EMAIL_PREVIEW_LIMIT]
        )
        sections.append(f'<h3>In Progress ({len(in_progress)})</h3><ul>{items}</ul>{_more(in_progress)}')
    if notifications:
        items = ''.join(
            f"<li><strong>{escape(n.get('title', ''))}</strong>"
            f"<br><small>{escape(n.get('message') or '')}</small></li>"
            for n in notifications[:EMAIL_PREVIEW_LIMIT]
        )
        sections.append(
            f'<h3>Unread Notifications ({len(notifications)})</h3><ul>{items}</ul>{_more(notifications)}'
        )
    sections.append(_button(f'{app_url}/projects', 'View Dashboard'))

    text_lines = [
        f'Your {label} {PRODUCT_NAME} Digest',
        '',
        'Activity Summary:',
        f'- {total_tasks} tasks updated',
        f'- {len(notifications)} notifications',
        f'- {len(done)} tasks completed',
        '',
        f'To Do ({len(todo)}):',
        *[f"- {t.get('title', '')}" for t in todo[:EMAIL_PREVIEW_LIMIT]],
        '',
        f'In Progress ({len(in_progress)}):',
        *[f"- {t.get('title', '')}" for t in in_progress[:EMAIL_PREVIEW_LIMIT]],
        '',
        f'Unread Notifications ({len(notifications)}):',
        *[f"- {n.get('title', '')}: {n.get('message') or ''}" for n in notifications[:EMAIL_PREVIEW_LIMIT]],
        '',
        f'View Dashboard: {app_url}/projects',
        f'Manage preferences: {app_url}/settings',
        '',
        f'(c) {_year()} {PRODUCT_NAME}',
    ]

    return EmailMessage(
        subject=f'Your {label} {PRODUCT_NAME} Digest',
        html=_layout(
            f'Your {label} Digest',
            ''.join(sections),
            f"You're receiving this {digest_type} digest. "
            f'<a href="{escape(app_url)}/settings">Manage preferences</a>'
        ),
        text='\n'.join(text_lines),
    )


def reminder_email(
    user: Dict[str, Any],
    groups: Dict[str, List[Dict[str, Any]]],
    app_url: str
) -> Optional[EmailMessage]:
    """Due-date reminder grouped by urgency. None when there is nothing due."""
    total = sum(len(groups.get(key, [])) for key, *_ in REMINDER_SECTIONS)
    if total == 0:
        return None
    plural = 's' if total > 1 else ''
    name = user.get('firstName') or 'there'

    html_parts = [
        f'<p>Hi {escape(name)}!</p>',
        f'<p>You have <strong>{total}</strong> task{plural} with upcoming due dates:</p>',
    ]
    text_parts = [f'Hi {name}!', f'You have {total} task(s) with upcoming due dates:', '']
    for key, title, text_title, color in REMINDER_SECTIONS:
        tasks = groups.get(key, [])
        if not tasks:
            continue
        items = ''.join(
            f"<li><strong>{escape(t.get('title', ''))}</strong>"
            + (f"<br><small>Project: {escape(t.get('projectName') or t['projectId'])}</small>" if t.get('projectId') else '')
            + f"<br><small>Due: {format_date(t.get('dueDate'))}</small></li>"
            for t in tasks
        )
        html_parts.append(f'<h3 style="color: {color};">{title} ({len(tasks)})</h3><ul>{items}</ul>')
        text_parts.append(f'{text_title} ({len(tasks)}):')
        text_parts.extend(f"- {t.get('title', '')} ({format_date(t.get('dueDate'))})" for t in tasks)
        text_parts.append('')
    html_parts.append(_button(f'{app_url}/projects', 'View All Tasks'))
    text_parts.extend([f'View all tasks: {app_url}/projects', '', f'(c) {_year()} {PRODUCT_NAME}'])

    return EmailMessage(
        subject=f'Task Reminders: {total} task{plural} due soon',
        html=_layout(
            'Task Reminders',
            ''.join(html_parts),
            "You're receiving this because you have tasks assigned to you."
        ),
        text='\n'.join(text_parts),
    )


def invitation_email(
    organization_name: str,
    inviter_email: Optional[str],
    role: str,
    invite_url: str,
    expires_at: str
) -> EmailMessage:
    inviter = inviter_email or 'A teammate'
    expires = format_date(expires_at)
    body = (
        "<h2>You've been invited!</h2>"
        f'<p>{escape(inviter)} has invited you to join <strong>{escape(organization_name)}</strong> '
        f'on {PRODUCT_NAME}.</p>'
        f'<p>Role: <strong>{escape(role)}</strong></p>'
        f'{_button(invite_url, "Accept Invitation")}'
        '<p>Or copy and paste this link into your browser:</p>'
        f'<p style="word-break: break-all; color: #6b7280;">{escape(invite_url)}</p>'
        f'<p><small>This invitation will expire on {expires}.</small></p>'
    )
    text = '\n'.join([
        f"You've been invited to join {organization_name} on {PRODUCT_NAME}!",
        '',
        f'{inviter} has invited you as a {role}.',
        '',
        f'Accept your invitation by visiting: {invite_url}',
        '',
        f'This invitation will expire on {expires}.',
        '',
        f'(c) {_year()} {PRODUCT_NAME}',
    ])
    return EmailMessage(
        subject=f"You've been invited to join {organization_name} on {PRODUCT_NAME}",
        html=_layout(f'{PRODUCT_NAME} Invitation', body),
        text=text,
    )


def export_email(
    profile: Dict[str, Any],
    summary: Dict[str, int],
    export_json: str,
    export_date: str,
    download_url: Optional[str] = None
) -> EmailMessage:
    """Data export summary with a truncated JSON preview."""
    name = profile.get('firstName') or 'there'
    size_kb = len(export_json.encode('utf-8')) / 1024
    preview = export_json[:500]
    rows = ''.join(
        f'<li>{label}: {count}</li>' for label, count in _summary_labels(summary)
    )
    link = (
        f'<p>{_button(download_url, "Download Full Export")}</p>'
        '<p><small>The download link expires in one hour.</small></p>'
        if download_url else ''
    )
    body = (
        f'<p>Hi {escape(name)}!</p>'
        f'<p>As requested, here is an export of all your data from {PRODUCT_NAME}:</p>'
        f'<h3>Data Summary:</h3><ul>{rows}</ul>{link}'
        f'<pre>{escape(preview)}...</pre>'
        f'<p><small>This is a truncated preview. The full export is {size_kb:.2f} KB.</small></p>'
    )
    text = '\n'.join([
        f'Your {PRODUCT_NAME} Data Export',
        '',
        f'Hi {name}!',
        '',
        'Data Summary:',
        *[f'- {label}: {count}' for label, count in _summary_labels(summary)],
        '',
        *([f'Download: {download_url}', ''] if download_url else []),
        'Full data export:',
        export_json,
        '',
        f'Export generated on {export_date}',
        f'(c) {_year()} {PRODUCT_NAME}',
    ])
    return EmailMessage(
        subject=f'Your {PRODUCT_NAME} Data Export',
        html=_layout('Your Data Export', body, f'Export generated on {export_date}'),
        text=text,
    )


def _summary_labels(summary: Dict[str, int]):
    labels = (
        ('organizations', 'Organizations'),
        ('tasks', 'Tasks'),
        ('comments', 'Comments'),
        ('activities', 'Activities'),
        ('notifications', 'Notifications'),
        ('timeEntries', 'Time Entries'),
    )
    return [(label, summary.get(key, 0)) for key, label in labels]



NOTIFICATION_STYLES = {
    'TASK_ASSIGNED': ('New Task Assigned', '#3b82f6'),
    'TASK_COMPLETED': ('Task Completed', '#10b981'),
    'COMMENT': ('New Comment', '#8b5cf6'),
    'MENTION': ('You were mentioned', '#f59e0b'),
    'PROJECT_INVITE': ('Project Invitation', '#06b6d4'),
    'DUE_DATE': ('Due Date Reminder', '#ef4444'),
}
DEFAULT_NOTIFICATION_STYLE = ('Notification', '#3b82f6')


def notification_email(
    user: Dict[str, Any],
    notification_type: str,
    title: str,
    message: str,
    app_url: str,
    link: Optional[str] = None
) -> EmailMessage:
    """
    Email copy of an in-app notification.

    ``message`` may hold rich text; the plain text body gets its text only.
    ``link`` is a path under ``app_url``.
    """
    subject, color = NOTIFICATION_STYLES.get(notification_type, DEFAULT_NOTIFICATION_STYLE)
    name = user.get('firstName') or 'there'
    url = f'{app_url}{link}' if link else None
    body = (
        f'<p>Hi {escape(name)}!</p>'
        f'<div style="background: white; padding: 20px; border-left: 4px solid {color};">'
        f'<h2 style="margin-top: 0; color: {color};">{escape(title)}</h2>'
        f'<p>{escape(html_to_text(message))}</p></div>'
        + (f'<p style="text-align: center;">{_button(url, "View Details")}</p>' if url else '')
    )
    text = '\n'.join([
        subject,
        '',
        f'Hi {name}!',
        '',
        title,
        '',
        html_to_text(message),
        '',
        *([f'View details: {url}', ''] if url else []),
        f'(c) {_year()} {PRODUCT_NAME}',
    ])
    return EmailMessage(
        subject=subject,
        html=_layout(subject, body, "You're receiving this notification based on your activity."),
        text=text,
    )
