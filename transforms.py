import csv
import io
import json
import math
import re
import datetime
from datetime import timezone, timedelta
from dateutil.parser import parse
from dateutil.relativedelta import relativedelta
from bs4 import BeautifulSoup
from logger_config import get_logger
from models import DIGEST_TYPES, STATUS_DONE

logger = get_logger(__name__)

MENTION_REGEX = re.compile(r'(?<![\w.])@([A-Za-z0-9_.-]+)')
CHANNEL_NAME_REGEX = re.compile(r'[^a-z0-9_-]+')
REMINDER_BUCKETS = ('tomorrow', 'threeDays', 'week')
EPOCH = datetime.datetime(1970, 1, 1, tzinfo=timezone.utc)


def utcnow():
    return datetime.datetime.now(timezone.utc)


def isoformat(value):
    """Millisecond-precision UTC timestamp with a Z suffix.

    Stored timestamps all use this shape so string comparison in filter
    expressions orders them chronologically.
    """
    value = value.astimezone(timezone.utc)
    return value.strftime('%Y-%m-%dT%H:%M:%S.') + f'{value.microsecond // 1000:03d}Z'


def parse_datetime(value):
    """Parse an ISO string (or pass a datetime through) as an aware UTC datetime."""
    if isinstance(value, datetime.datetime):
        parsed = value
    else:
        parsed = parse(str(value))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def end_of_day(value):
    return value.replace(hour=23, minute=59, second=59, microsecond=999000)


def start_of_day(value):
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


def board_position(value, offset=0):
    """Default kanban position: epoch microseconds, so new cards sort last."""
    return (value - EPOCH) // timedelta(microseconds=1) + offset


def format_date(value):
    """Human date for emails, e.g. 'Mar 04, 2024'. Empty string if unset."""
    if not value:
        return ''
    return parse_datetime(value).strftime('%b %d, %Y')


def digest_window_start(digest_type, now):
    """Start of the activity window for a 'daily' or 'weekly' digest."""
    days = DIGEST_TYPES.get(digest_type)
    if days is None:
        raise ValueError(
            f"digestType must be one of {sorted(DIGEST_TYPES)}, got: {digest_type}"
        )
    return now - timedelta(days=days)


def group_tasks_by_status(tasks):
    """{'TODO': [...], 'IN_PROGRESS': [...], 'DONE': [...]} preserving input order."""
    groups = {'TODO': [], 'IN_PROGRESS': [], 'DONE': []}
    for task in tasks:
        groups.setdefault(task.get('status') or 'TODO', []).append(task)
    return groups


def reminder_bucket(due_date, now):
    """
    Urgency bucket for a task due at ``due_date``.

    Overdue tasks count as 'tomorrow'. Returns None past the one-week horizon.
    """
    due = parse_datetime(due_date)
    if due <= end_of_day(now + timedelta(days=1)):
        return 'tomorrow'
    if due <= end_of_day(now + timedelta(days=3)):
        return 'threeDays'
    if due <= end_of_day(now + timedelta(days=7)):
        return 'week'
    return None


def group_reminders_by_assignee(tasks, now):
    """Group open, assigned tasks with a due date into per-user urgency buckets."""
    reminders = {}
    for task in tasks:
        assignee = task.get('assignedToId')
        due_date = task.get('dueDate')
        if not assignee or not due_date or task.get('status') == STATUS_DONE:
            continue
        bucket = reminder_bucket(due_date, now)
        if bucket is None:
            continue
        groups = reminders.setdefault(assignee, {name: [] for name in REMINDER_BUCKETS})
        groups[bucket].append(task)
    return reminders


def parse_recurrence(raw):
    """Recurrence rule stored as a JSON string (or dict). Invalid input gives {}."""
    if not raw:
        return {}
    if isinstance(raw, dict):
        return dict(raw)
    try:
        rule = json.loads(raw)
    except (TypeError, ValueError):
        logger.warning(f'Ignoring unparseable recurrence rule: {raw!r}')
        return {}
    return rule if isinstance(rule, dict) else {}


def next_occurrence(current, frequency, interval=1):
    """Advance ``current`` by one recurrence step. Unknown frequencies step one day."""
    interval = int(interval or 1)
    if frequency == 'DAILY':
        return current + timedelta(days=interval)
    if frequency == 'WEEKLY':
        return current + timedelta(weeks=interval)
    if frequency == 'MONTHLY':
        return current + relativedelta(months=interval)
    if frequency == 'YEARLY':
        return current + relativedelta(years=interval)
    return current + timedelta(days=1)


def shift_due_date(occurrence, original_due_date, original_occurrence):
    """
    Due date for a new occurrence, keeping the template's whole-day offset
    between occurrence and due date. None when the template has no due date.
    """
    if not original_due_date:
        return None
    offset = parse_datetime(original_due_date) - parse_datetime(original_occurrence)
    days = math.floor(offset.total_seconds() / 86400)
    return isoformat(occurrence + timedelta(days=days))


def duration_minutes(start, end):
    """Whole minutes between two timestamps, never negative."""
    seconds = (parse_datetime(end) - parse_datetime(start)).total_seconds()
    return max(0, math.floor(seconds / 60))


def html_to_text(markup):
    """Plain text of a rich-text (HTML) field."""
    if not markup:
        return ''
    text = BeautifulSoup(markup, 'html.parser').get_text(' ')
    return ' '.join(text.split())


def extract_mentions(content):
    """Unique @handles in order of first appearance."""
    seen = []
    for handle in MENTION_REGEX.findall(content or ''):
        handle = handle.rstrip('.')
        if handle and handle not in seen:
            seen.append(handle)
    return seen


def channel_slug(name):
    """'Design Team!' => 'design-team'"""
    slug = CHANNEL_NAME_REGEX.sub('-', (name or '').strip().lower().replace(' ', '-'))
    return slug.strip('-')


def normalize_tags(value):
    if not value:
        return []
    if isinstance(value, (list, tuple)):
        return [str(tag).strip() for tag in value if str(tag).strip()]
    return [tag.strip() for tag in str(value).split(';') if tag.strip()]


def parse_csv_tasks(csv_text):
    """
    Parse CSV task rows (header row required) into task dicts.

    Header names are stripped, empty cells become missing values and the
    ``tags`` column is split on ';'.
    """
    reader = csv.DictReader(io.StringIO((csv_text or '').strip()))
    if reader.fieldnames is None:
        return []
    reader.fieldnames = [name.strip() for name in reader.fieldnames]

    rows = []
    for raw in reader:
        row = {
            key: value.strip()
            for key, value in raw.items()
            if key and value is not None and value.strip() != ''
        }
        if 'tags' in row:
            row['tags'] = normalize_tags(row['tags'])
        if 'estimatedHours' in row:
            try:
                row['estimatedHours'] = float(row['estimatedHours'])
            except ValueError:
                row.pop('estimatedHours')
        rows.append(row)
    return rows


def _matches(query, *values):
    return any(query in (value or '').lower() for value in values)


def search_records(query, projects, tasks, users):
    """
    Case-insensitive substring search over already-fetched lists.

    Projects match on name/description, tasks on title/plain-text
    description, users on first name/last name/email.
    """
    needle = (query or '').strip().lower()
    if not needle:
        return {'projects': [], 'tasks': [], 'users': []}

    return {
        'projects': [
            p for p in projects
            if _matches(needle, p.get('name'), html_to_text(p.get('description')))
        ],
        'tasks': [
            t for t in tasks
            if _matches(needle, t.get('title'), html_to_text(t.get('description')))
        ],
        'users': [
            u for u in users
            if _matches(needle, u.get('firstName'), u.get('lastName'), u.get('email'))
        ],
    }
