"""Workflow transitions: discovery, execution and the terminal-state fallback search.

Workflow states are opaque names discovered per request. Candidates are fetched
again before every attempt because the issue may have moved in between.
"""

from collections.abc import Iterable, Sequence
from datetime import datetime

from loguru import logger

from jira_sync.issues import IssueClient
from jira_sync.models import Outcome, OutcomeKind, TransitionCandidate
from jira_sync.transport import FETCH_ERRORS, error_for_status, operation

# Conventional "done" names, tried in this order; the first workable one wins.
TERMINAL_STATES: tuple[str, ...] = ("Done", "Complete", "Resolve", "Close", "Resolved", "Closed")

# No other transition name can succeed after one of these.
_FATAL_KINDS = frozenset(
    {
        OutcomeKind.CONFIG_MISSING,
        OutcomeKind.AUTH_FAILURE,
        OutcomeKind.PERMISSION_DENIED,
        OutcomeKind.NOT_FOUND,
    }
)


def match_transition(candidates: Iterable[TransitionCandidate], name: str) -> TransitionCandidate | None:
    """Return the first candidate whose name equals ``name`` ignoring case."""
    wanted = name.strip().casefold()
    return next((c for c in candidates if c.name.casefold() == wanted), None)


def format_completion_comment(
    test_name: str,
    execution_time_ms: float,
    version: str,
    now: datetime | None = None,
) -> str:
    timestamp = (now or datetime.now()).strftime("%Y-%m-%d %H:%M:%S")
    return "\n".join(
        [
            "Automated test completed",
            f"Test: {test_name}",
            "Status: PASSED",
            f"Execution time: {execution_time_ms / 1000:.2f}s",
            f"Version: {version or 'n/a'}",
            f"Timestamp: {timestamp}",
        ]
    )


class TransitionEngine:
    def __init__(self, issues: IssueClient) -> None:
        self._issues = issues
        self._transport = issues.transport

    def _fetch_candidates(self, issue_key: str) -> list[TransitionCandidate]:
        response = self._transport.get(f"issue/{issue_key}/transitions")
        if response.status_code != 200:
            raise error_for_status(response, f"Fetching transitions for {issue_key}")
        return [
            TransitionCandidate(id=str(t["id"]), name=t["name"])
            for t in response.json().get("transitions", [])
        ]

    def list_transitions(self, issue_key: str) -> list[TransitionCandidate] | None:
        try:
            candidates = self._fetch_candidates(issue_key)
        except FETCH_ERRORS as exc:
            logger.error(f"Could not fetch transitions for {issue_key}: {exc}")
            return None
        logger.debug(f"{issue_key} transitions: {[c.name for c in candidates]}")
        return candidates

    @operation("Transition")
    def transition(self, issue_key: str, transition_name: str) -> Outcome:
        candidates = self._fetch_candidates(issue_key)
        match = match_transition(candidates, transition_name)
        if match is None:
            available = [c.name for c in candidates]
            message = f"Transition '{transition_name}' not available for {issue_key}. Available: {available}"
            logger.warning(message)
            return Outcome(kind=OutcomeKind.TRANSITION_NOT_AVAILABLE, message=message)

        response = self._transport.post(f"issue/{issue_key}/transitions", {"transition": {"id": match.id}})
        if response.status_code not in (200, 204):
            raise error_for_status(response, f"Applying '{match.name}' to {issue_key}")
        logger.info(f"{issue_key} transitioned via '{match.name}' (id {match.id})")
        return Outcome.success(f"{issue_key} transitioned to {match.name}", value=match.name)

    def find_first_transition(self, issue_key: str, names: Sequence[str] = TERMINAL_STATES) -> Outcome:
        """Try each transition name in order and stop at the first that succeeds."""
        last = Outcome(kind=OutcomeKind.TRANSITION_NOT_AVAILABLE, message="No transition names given")
        for name in names:
            last = self.transition(issue_key, name)
            if last.ok or last.kind in _FATAL_KINDS:
                return last
        message = f"None of {list(names)} could be applied to {issue_key}"
        logger.warning(message)
        return Outcome(kind=last.kind, message=message)

    def complete(
        self,
        issue_key: str,
        test_name: str,
        execution_time_ms: float,
        names: Sequence[str] = TERMINAL_STATES,
    ) -> Outcome:
        """Post a completion comment, then move the issue to the first available terminal state."""
        comment = format_completion_comment(test_name, execution_time_ms, self._issues.config.version_label)
        commented = self._issues.add_comment(issue_key, comment)
        if commented.kind is OutcomeKind.CONFIG_MISSING:
            return commented

        moved = self.find_first_transition(issue_key, names)
        if commented.ok and moved.ok:
            return Outcome.success(f"{issue_key} completed: {moved.message}", value=moved.value)
        if commented.ok:
            message = f"Completion comment posted on {issue_key} but no transition applied: {moved.message}"
            logger.warning(message)
            return Outcome(kind=OutcomeKind.PARTIAL, message=message)
        if moved.ok:
            message = f"{issue_key} transitioned to {moved.value} but the completion comment failed"
            logger.warning(message)
            return Outcome(kind=OutcomeKind.PARTIAL, message=message, value=moved.value)
        logger.error(f"Completing {issue_key} failed: {moved.message}")
        return moved
