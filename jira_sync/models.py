"""Shared pydantic models — the contract between the Jira operations and main.py."""

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, SecretStr


class TrackerConfig(BaseModel):
    """Resolved connection settings, passed explicitly into every operation.

    Any field may be missing; operations that need one fail before touching the network.
    """

    model_config = ConfigDict(frozen=True)

    base_url: str | None = None
    email: str | None = None
    api_token: SecretStr | None = None
    project_key: str | None = None
    pass_template: str = ""
    fail_template: str = ""
    version_label: str = ""
    timeout_sec: float = 30.0


class DocNode(BaseModel):
    """One node of an Atlassian Document Format tree (outbound)."""

    model_config = ConfigDict(frozen=True)

    type: str  # doc | paragraph | text | hardBreak
    version: int | None = None  # only on the doc root
    text: str | None = None
    content: list["DocNode"] | None = None


class Story(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str
    summary: str
    description: str  # flattened plain text
    issue_type: str | None = None
    status: str | None = None
    priority: str | None = None
    acceptance_criteria: tuple[str, ...] = ()


class TransitionCandidate(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str


class Attachment(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: Path | None = None

    @property
    def is_uploadable(self) -> bool:
        return self.path is not None and self.path.is_file() and self.path.stat().st_size > 0


class OutcomeKind(str, Enum):
    SUCCESS = "success"
    PARTIAL = "partial"  # e.g. comment posted, no transition applied
    SKIPPED = "skipped"
    CONFIG_MISSING = "config_missing"
    AUTH_FAILURE = "auth_failure"
    PERMISSION_DENIED = "permission_denied"
    NOT_FOUND = "not_found"
    BAD_REQUEST = "bad_request"
    TRANSPORT_ERROR = "transport_error"
    TRANSITION_NOT_AVAILABLE = "transition_not_available"
    UNEXPECTED_STATUS = "unexpected_status"


class Outcome(BaseModel):
    """Result of a single operation — what happened and why."""

    model_config = ConfigDict(frozen=True)

    kind: OutcomeKind
    message: str = ""
    value: str | None = None  # e.g. the key of a created issue

    @property
    def ok(self) -> bool:
        return self.kind is OutcomeKind.SUCCESS

    @classmethod
    def success(cls, message: str = "", value: str | None = None) -> "Outcome":
        return cls(kind=OutcomeKind.SUCCESS, message=message, value=value)
