"""Tests for check run and webhook payload models"""

import pytest
from pydantic import ValidationError

from vote_gate.utils.schema import (
    CheckConclusion,
    CheckRun,
    CheckStatus,
    PullRequestLabelEvent,
    is_forward_transition,
)


def make_payload(action="labeled", label="vote-required", installation=True):
    payload = {
        "action": action,
        "number": 7,
        "label": {"name": label},
        "repository": {
            "name": "laws",
            "full_name": "parliament/laws",
            "owner": {"login": "parliament"},
        },
        "pull_request": {"number": 7, "head": {"sha": "abc1234def"}},
    }
    if installation:
        payload["installation"] = {"id": 42}
    return payload


def test_check_run_defaults_to_queued():
    """Test a new check run starts queued with no conclusion."""
    run = CheckRun(
        owner="parliament", repo="laws", check_run_id=1,
        head_sha="abc", date_created="2026-01-01T00:00:00+00:00",
    )

    assert run.status == CheckStatus.QUEUED
    assert run.conclusion is None
    assert run.is_active is True
    assert run.repo_full_name == "parliament/laws"


def test_check_run_rejects_conclusion_before_completion():
    """Test a conclusion is only accepted on completed check runs."""
    with pytest.raises(ValidationError):
        CheckRun(
            owner="parliament", repo="laws", check_run_id=1, head_sha="abc",
            status=CheckStatus.IN_PROGRESS, conclusion=CheckConclusion.CANCELLED,
            date_created="2026-01-01T00:00:00+00:00",
        )


def test_check_run_rejects_blank_sha():
    """Test empty identifying fields are rejected."""
    with pytest.raises(ValidationError):
        CheckRun(
            owner="parliament", repo="laws", check_run_id=1, head_sha="  ",
            date_created="2026-01-01T00:00:00+00:00",
        )


def test_completed_check_run_is_not_active():
    run = CheckRun(
        owner="parliament", repo="laws", check_run_id=1, head_sha="abc",
        status="completed", conclusion="cancelled",
        date_created="2026-01-01T00:00:00+00:00",
    )

    assert run.is_active is False
    assert run.conclusion == CheckConclusion.CANCELLED


@pytest.mark.parametrize(
    "current,new,expected",
    [
        (CheckStatus.QUEUED, CheckStatus.IN_PROGRESS, True),
        (CheckStatus.QUEUED, CheckStatus.COMPLETED, True),
        (CheckStatus.IN_PROGRESS, CheckStatus.COMPLETED, True),
        (CheckStatus.IN_PROGRESS, CheckStatus.QUEUED, False),
        (CheckStatus.COMPLETED, CheckStatus.COMPLETED, False),
        (CheckStatus.COMPLETED, CheckStatus.QUEUED, False),
    ],
)
def test_status_only_moves_forward(current, new, expected):
    assert is_forward_transition(current, new) is expected


def test_label_event_from_payload():
    """Test the fields the workflow needs are pulled out of a webhook payload."""
    event = PullRequestLabelEvent.from_payload(make_payload())

    assert event.action == "labeled"
    assert event.owner == "parliament"
    assert event.repo == "laws"
    assert event.repo_full_name == "parliament/laws"
    assert event.number == 7
    assert event.head_sha == "abc1234def"
    assert event.label == "vote-required"
    assert event.installation_id == 42


def test_label_event_without_installation():
    event = PullRequestLabelEvent.from_payload(make_payload(installation=False))

    assert event.installation_id is None


def test_label_event_missing_pull_request():
    """Test a payload without a pull request is reported as malformed."""
    payload = make_payload()
    del payload["pull_request"]

    with pytest.raises(ValueError, match="Malformed"):
        PullRequestLabelEvent.from_payload(payload)
