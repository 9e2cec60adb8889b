"""
Kanban board layout and card moves.

A board is an ordered mapping of task status to the list of tasks in that
column. Moves are pure list splices; persisting the result is one task
update done by the caller.
"""
from typing import Any, Dict, Iterable, List, Tuple

from models import TASK_STATUSES
from utils.exceptions import ValidationError

Board = Dict[str, List[Dict[str, Any]]]


def _position(task: Dict[str, Any]) -> Tuple[int, float, str]:
    position = task.get('position')
    if position is None:
        return (1, 0, task.get('createdAt') or '')
    return (0, float(position), task.get('createdAt') or '')


def build_board(tasks: Iterable[Dict[str, Any]]) -> Board:
    """Group tasks into status columns ordered by position, then creation time."""
    board: Board = {status: [] for status in TASK_STATUSES}
    for task in tasks:
        status = task.get('status') or 'TODO'
        board.setdefault(status, []).append(task)
    for column in board.values():
        column.sort(key=_position)
    return board


def move_card(
    board: Board,
    source_status: str,
    source_index: int,
    dest_status: str,
    dest_index: int
) -> Tuple[Board, Dict[str, Any]]:
    """
    Move the card at ``source_index`` of one column to ``dest_index`` of another.

    The input board is not modified. ``dest_index`` is clamped to the
    destination column. The moved card comes back with its new ``status``
    and a ``position`` between its neighbours; other cards are unchanged.

    Raises:
        ValidationError: If a column is unknown or ``source_index`` is out of range.
    """
    if source_status not in board:
        raise ValidationError(f'Unknown column: {source_status}', field='sourceStatus')
    if dest_status not in TASK_STATUSES:
        raise ValidationError(f'Unknown column: {dest_status}', field='destStatus')

    new_board: Board = {status: list(cards) for status, cards in board.items()}
    new_board.setdefault(dest_status, [])
    source = new_board[source_status]
    if not 0 <= source_index < len(source):
        raise ValidationError(
            f'No card at index {source_index} in {source_status}',
            field='sourceIndex',
            value=source_index
        )

    card = source.pop(source_index)
    destination = new_board[dest_status]
    dest_index = max(0, min(int(dest_index), len(destination)))
    before = destination[dest_index - 1] if dest_index > 0 else None
    after = destination[dest_index] if dest_index < len(destination) else None
    moved = dict(card, status=dest_status, position=_between(before, after, dest_index))
    destination.insert(dest_index, moved)
    return new_board, moved


def _between(before, after, index: int) -> float:
    # Only the moved card is persisted, so its position must sort between
    # its new neighbours' stored positions.
    low = before.get('position') if before else None
    high = after.get('position') if after else None
    if low is not None and high is not None:
        return (float(low) + float(high)) / 2
    if low is not None:
        return float(low) + 1
    if high is not None:
        return float(high) - 1
    return float(index)
