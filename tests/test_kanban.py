"""
Unit tests for kanban board layout and card moves.
"""
import pytest
from kanban import build_board, move_card
from utils.exceptions import ValidationError


def _task(task_id, status='TODO', position=None, created='2024-01-01T00:00:00.000Z'):
    task = {'id': task_id, 'status': status, 'createdAt': created}
    if position is not None:
        task['position'] = position
    return task


@pytest.fixture
def board():
    return build_board([
        _task('a', 'TODO', 1),
        _task('b', 'TODO', 2),
        _task('c', 'TODO', 3),
        _task('d', 'IN_PROGRESS', 1),
    ])


class TestBuildBoard:
    def test_all_columns_present(self):
        board = build_board([])
        assert list(board) == ['TODO', 'IN_PROGRESS', 'IN_REVIEW', 'DONE', 'BLOCKED']
        assert all(column == [] for column in board.values())

    def test_orders_by_position_then_created(self):
        board = build_board([
            _task('late', created='2024-01-03T00:00:00.000Z'),
            _task('second', position=2),
            _task('first', position=1),
            _task('early', created='2024-01-02T00:00:00.000Z'),
        ])
        assert [t['id'] for t in board['TODO']] == ['first', 'second', 'early', 'late']


class TestMoveCard:
    def test_move_within_column(self, board):
        new_board, moved = move_card(board, 'TODO', 0, 'TODO', 2)
        assert [t['id'] for t in new_board['TODO']] == ['b', 'c', 'a']
        assert moved['id'] == 'a'
        assert moved['position'] == 4.0

    def test_move_across_columns(self, board):
        new_board, moved = move_card(board, 'TODO', 1, 'IN_PROGRESS', 0)
        assert [t['id'] for t in new_board['TODO']] == ['a', 'c']
        assert [t['id'] for t in new_board['IN_PROGRESS']] == ['b', 'd']
        assert moved['status'] == 'IN_PROGRESS'
        assert moved['position'] == 0.0

    def test_position_between_neighbours(self, board):
        _, moved = move_card(board, 'IN_PROGRESS', 0, 'TODO', 1)
        assert moved['position'] == 1.5

    def test_dest_index_is_clamped(self, board):
        new_board, moved = move_card(board, 'TODO', 0, 'DONE', 10)
        assert [t['id'] for t in new_board['DONE']] == ['a']
        assert moved['position'] == 0.0

    def test_input_board_untouched(self, board):
        move_card(board, 'TODO', 0, 'DONE', 0)
        assert [t['id'] for t in board['TODO']] == ['a', 'b', 'c']
        assert board['DONE'] == []
        assert board['TODO'][0]['status'] == 'TODO'

    def test_unknown_columns(self, board):
        with pytest.raises(ValidationError):
            move_card(board, 'NOPE', 0, 'TODO', 0)
        with pytest.raises(ValidationError):
            move_card(board, 'TODO', 0, 'NOPE', 0)

    def test_source_index_out_of_range(self, board):
        with pytest.raises(ValidationError) as exc_info:
            move_card(board, 'IN_REVIEW', 0, 'TODO', 0)
        assert exc_info.value.field == 'sourceIndex'
