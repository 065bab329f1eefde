from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional
from enum import Enum


class CheckStatus(str, Enum):
    QUEUED = "queued"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class CheckConclusion(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    NEUTRAL = "neutral"
    CANCELLED = "cancelled"
    SKIPPED = "skipped"
    TIMED_OUT = "timed_out"
    ACTION_REQUIRED = "action_required"


# Statuses a check can still move out of
ACTIVE_STATUSES = (CheckStatus.QUEUED, CheckStatus.IN_PROGRESS)

_STATUS_ORDER = {
    CheckStatus.QUEUED: 0,
    CheckStatus.IN_PROGRESS: 1,
    CheckStatus.COMPLETED: 2,
}


def statuses_before(new: CheckStatus) -> tuple:
    """Statuses a check run may hold and still move to ``new``."""
    new = CheckStatus(new)
    return tuple(s for s in CheckStatus if _STATUS_ORDER[s] < _STATUS_ORDER[new])


def is_forward_transition(current: CheckStatus, new: CheckStatus) -> bool:
    """Return True if moving from ``current`` to ``new`` strictly advances.

    A completed check is terminal, so completed -> completed is rejected too.
    """
    return CheckStatus(current) in statuses_before(new)


class CheckRun(BaseModel):
    """A GitHub check run tracked locally, keyed by GitHub's check run id."""
    id: Optional[int] = None
    owner: str
    repo: str
    check_run_id: int = Field(..., description="GitHub check run id")
    head_sha: str
    status: CheckStatus = CheckStatus.QUEUED
    conclusion: Optional[CheckConclusion] = None
    date_created: str

    @field_validator("owner", "repo", "head_sha")
    @classmethod
    def validate_not_empty(cls, v):
        if not isinstance(v, str):
            raise ValueError("Value must be a string")
        v = v.strip()
        if not v:
            raise ValueError("Value cannot be empty")
        return v

    @model_validator(mode="after")
    def validate_conclusion(self):
        if self.conclusion is not None and self.status != CheckStatus.COMPLETED:
            raise ValueError("Only completed check runs can carry a conclusion")
        return self

    @property
    def repo_full_name(self) -> str:
        return f"{self.owner}/{self.repo}"

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES


class PullRequestLabelEvent(BaseModel):
    """The subset of a ``pull_request.labeled``/``unlabeled`` payload we read."""
    action: str
    owner: str
    repo: str
    repo_full_name: str
    number: int
    head_sha: str
    label: Optional[str] = None
    installation_id: Optional[int] = None

    @classmethod
    def from_payload(cls, payload: dict) -> "PullRequestLabelEvent":
        """Build the event from a raw webhook payload.

        Raises:
            ValueError: If a required field is missing
        """
        try:
            repository = payload["repository"]
            pull_request = payload["pull_request"]
            return cls(
                action=payload["action"],
                owner=repository["owner"]["login"],
                repo=repository["name"],
                repo_full_name=repository["full_name"],
                number=payload.get("number", pull_request.get("number")),
                head_sha=pull_request["head"]["sha"],
                label=(payload.get("label") or {}).get("name"),
                installation_id=(payload.get("installation") or {}).get("id"),
            )
        except (KeyError, TypeError, AttributeError) as e:
            raise ValueError(f"Malformed pull_request payload: missing {e}")
