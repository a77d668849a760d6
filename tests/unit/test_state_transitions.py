"""Tests for the project lifecycle state machine."""

import pytest

from src.commander.core.errors import InvalidStateError
from src.commander.models import ProjectState
from src.commander.services.lifecycle import ALLOWED_TRANSITIONS, ensure_transition
from tests.factories import ProjectFactory

pytestmark = pytest.mark.unit


def test_transition_table_covers_every_state():
    assert set(ALLOWED_TRANSITIONS) == set(ProjectState)


def test_purged_is_terminal():
    assert ALLOWED_TRANSITIONS[ProjectState.PURGED] == frozenset()


@pytest.mark.parametrize(
    ("archived", "target"),
    [
        (False, ProjectState.ARCHIVED),
        (True, ProjectState.ACTIVE),
        (True, ProjectState.PURGED),
    ],
)
def test_allowed_transitions(archived: bool, target: ProjectState):
    project = ProjectFactory.archived() if archived else ProjectFactory.build()
    ensure_transition(project, target)


@pytest.mark.parametrize(
    ("archived", "target"),
    [
        (False, ProjectState.ACTIVE),
        (False, ProjectState.PURGED),
        (True, ProjectState.ARCHIVED),
    ],
)
def test_rejected_transitions(archived: bool, target: ProjectState):
    project = ProjectFactory.archived() if archived else ProjectFactory.build()
    with pytest.raises(InvalidStateError) as exc_info:
        ensure_transition(project, target)
    assert exc_info.value.project_id == project.id
    assert exc_info.value.current == project.state.value


def test_state_follows_archive_flag():
    assert ProjectFactory.build().state is ProjectState.ACTIVE
    assert ProjectFactory.archived().state is ProjectState.ARCHIVED
