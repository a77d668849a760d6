"""Tests for domain error codes and their HTTP status mapping."""

from uuid import uuid4

import pytest

from src.commander.core.errors import (
    CommanderError,
    ConflictError,
    InvalidPathError,
    InvalidStateError,
    NotFoundError,
    ScanIOError,
    ShuttingDownError,
    StoreError,
    SyncInProgressError,
)
from src.commander.core.exceptions import status_code_for

pytestmark = pytest.mark.unit


@pytest.mark.parametrize(
    ("error", "code", "status_code"),
    [
        (ScanIOError("/w", "missing"), "IO_ERROR", 503),
        (InvalidPathError("/etc", "outside home"), "INVALID_PATH", 400),
        (NotFoundError(uuid4()), "NOT_FOUND", 404),
        (InvalidStateError(uuid4(), "active", "nope"), "INVALID_STATE", 409),
        (ConflictError("path", "/w/a", uuid4()), "CONFLICT", 409),
        (StoreError("commit failed"), "STORE_ERROR", 500),
        (SyncInProgressError(), "SYNC_IN_PROGRESS", 409),
        (ShuttingDownError("sync"), "SHUTTING_DOWN", 503),
    ],
)
def test_error_codes_and_statuses(error: CommanderError, code: str, status_code: int):
    assert error.code == code
    assert status_code_for(error) == status_code


def test_subclass_inherits_parent_status():
    class ScanTimeout(ScanIOError):
        pass

    assert status_code_for(ScanTimeout("/w", "timeout")) == 503


def test_unknown_error_maps_to_500():
    assert status_code_for(CommanderError("boom")) == 500


def test_to_dict_carries_details():
    existing = uuid4()
    payload = ConflictError("identity_key", "git:h/o/r", existing).to_dict()
    assert payload["code"] == "CONFLICT"
    assert payload["field"] == "identity_key"
    assert payload["existing_id"] == str(existing)
    assert "detail" in payload
