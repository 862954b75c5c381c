"""Issue operations against Jira: existence checks, comments, attachments, bugs and stories."""

from pathlib import Path

from loguru import logger

from jira_sync.criteria import extract_acceptance_criteria
from jira_sync.document import flatten, to_payload
from jira_sync.models import Attachment, Outcome, OutcomeKind, Story, TrackerConfig
from jira_sync.transport import (
    FETCH_ERRORS,
    ConfigMissingError,
    JiraTransport,
    TrackerError,
    error_for_status,
    operation,
)

BUG_LABEL = "BugByAutomationFailure"
STORY_FIELDS = ["key", "summary", "issuetype", "status", "priority", "description"]

_EXISTS_MESSAGES = {
    OutcomeKind.NOT_FOUND: "Issue {key} not found",
    OutcomeKind.AUTH_FAILURE: "Authentication failed while checking {key}; verify JIRA_EMAIL and JIRA_API_TOKEN",
    OutcomeKind.PERMISSION_DENIED: "No permission to view issue {key}",
}

_CREATE_MESSAGES = {
    OutcomeKind.BAD_REQUEST: "Jira rejected the bug payload (check project key and issue type)",
    OutcomeKind.AUTH_FAILURE: "Authentication failed while creating bug",
    OutcomeKind.PERMISSION_DENIED: "No permission to create issues in project {project}",
}


def compose_result_comment(config: TrackerConfig, summary: str, details: str | None, is_failed: bool) -> str:
    """Build the pass/fail comment text posted for a test result."""
    template = config.fail_template if is_failed else config.pass_template
    lines = [" ".join(part for part in (template, config.version_label) if part), f"Summary: {summary}"]
    if is_failed and details:
        lines.append(f"Details: {details}")
    return "\n".join(line for line in lines if line)


def _as_attachment(attachment: Attachment | Path | str | None) -> Attachment:
    if isinstance(attachment, Attachment):
        return attachment
    return Attachment(path=Path(attachment) if attachment else None)


def _story_from_node(node: dict) -> Story:
    fields = node["fields"]
    description = flatten(fields.get("description"))
    return Story(
        key=node["key"],
        summary=fields.get("summary") or "",
        description=description,
        issue_type=(fields.get("issuetype") or {}).get("name"),
        status=(fields.get("status") or {}).get("name"),
        priority=(fields.get("priority") or {}).get("name"),
        acceptance_criteria=tuple(extract_acceptance_criteria(description)),
    )


class IssueClient:
    def __init__(self, config: TrackerConfig, transport: JiraTransport | None = None) -> None:
        self._config = config
        self._transport = transport or JiraTransport(config)

    @property
    def config(self) -> TrackerConfig:
        return self._config

    @property
    def transport(self) -> JiraTransport:
        return self._transport

    @operation("Issue check")
    def check_exists(self, issue_key: str) -> Outcome:
        response = self._transport.get(f"issue/{issue_key}")
        if response.status_code == 200:
            logger.info(f"Issue {issue_key} exists")
            return Outcome.success(f"Issue {issue_key} exists", value=issue_key)
        error = error_for_status(response, f"Checking {issue_key}")
        template = _EXISTS_MESSAGES.get(error.kind)
        message = template.format(key=issue_key) if template else str(error)
        logger.warning(message)
        return Outcome(kind=error.kind, message=message)

    @operation("Adding comment")
    def add_comment(self, issue_key: str, comment_text: str) -> Outcome:
        response = self._transport.post(f"issue/{issue_key}/comment", {"body": to_payload(comment_text)})
        if response.status_code not in (200, 201):
            raise error_for_status(response, f"Adding comment to {issue_key}")
        logger.info(f"Comment added to {issue_key}")
        return Outcome.success(f"Comment added to {issue_key}")

    @operation("Uploading attachment")
    def upload_attachment(self, issue_key: str, attachment: Attachment | Path | str | None) -> Outcome:
        attachment = _as_attachment(attachment)
        try:
            if not attachment.is_uploadable:
                logger.warning(f"No attachment to upload for {issue_key} ({attachment.path or 'none given'})")
                return Outcome(kind=OutcomeKind.SKIPPED, message="Attachment missing or empty")

            path: Path = attachment.path  # type: ignore[assignment]
            with path.open("rb") as fh:
                response = self._transport.request(
                    "POST",
                    f"issue/{issue_key}/attachments",
                    files={"file": (path.name, fh)},
                    headers={"X-Atlassian-Token": "no-check"},
                )
        except OSError as exc:
            # unreadable, or removed after the check
            logger.error(f"Cannot read attachment {attachment.path} for {issue_key}: {exc}")
            return Outcome(kind=OutcomeKind.TRANSPORT_ERROR, message=f"Cannot read attachment: {exc}")
        if response.status_code not in (200, 201):
            raise error_for_status(response, f"Uploading {path.name} to {issue_key}")
        logger.info(f"Attachment {path.name} uploaded to {issue_key}")
        return Outcome.success(f"Attachment {path.name} uploaded to {issue_key}")

    @operation("Reporting test result")
    def update_with_test_result(
        self,
        issue_key: str,
        summary: str,
        description: str | None = None,
        attachment: Attachment | Path | str | None = None,
        is_failed: bool = False,
    ) -> Outcome:
        exists = self.check_exists(issue_key)
        if not exists.ok:
            logger.error(f"Not reporting result to {issue_key}: {exists.message}")
            return exists

        comment = compose_result_comment(self._config, summary, description, is_failed)
        commented = self.add_comment(issue_key, comment)
        if is_failed:
            # independent of the comment; never rolls it back
            uploaded = self.upload_attachment(issue_key, attachment)
            if uploaded.kind not in (OutcomeKind.SUCCESS, OutcomeKind.SKIPPED):
                logger.warning(f"Result comment kept on {issue_key} despite attachment failure")
        return commented

    @operation("Creating bug")
    def create_bug(
        self,
        summary: str,
        description: str,
        attachment: Attachment | Path | str | None = None,
    ) -> Outcome:
        project = self._config.project_key
        if not project or not project.strip():
            raise ConfigMissingError("PROJECT_KEY is required to create a bug; no request was sent")

        payload = {
            "fields": {
                "project": {"key": project},
                "summary": summary,
                "description": to_payload(description),
                "labels": [BUG_LABEL],
                "issuetype": {"name": "Bug"},
            }
        }
        response = self._transport.post("issue", payload)
        if response.status_code != 201:
            error = error_for_status(response, "Creating bug")
            template = _CREATE_MESSAGES.get(error.kind)
            reason = f"{template.format(project=project)}: {response.text[:500]}" if template else str(error)
            raise TrackerError(reason, kind=error.kind, status_code=error.status_code)

        created_key = response.json()["key"]
        logger.info(f"Bug created in Jira: {created_key}")
        if attachment is not None:
            self.upload_attachment(created_key, attachment)
        return Outcome.success(f"Bug created: {created_key}", value=created_key)

    @operation("Replacing description")
    def replace_description(self, issue_key: str, new_description: str) -> Outcome:
        response = self._transport.put(f"issue/{issue_key}", {"fields": {"description": to_payload(new_description)}})
        if response.status_code not in (200, 204):
            raise error_for_status(response, f"Updating description of {issue_key}")
        logger.info(f"Description of {issue_key} replaced")
        return Outcome.success(f"Description of {issue_key} replaced")

    def get_story(self, issue_key: str) -> Story | None:
        """Fetch an issue and return it as a Story, or None on any failure."""
        try:
            response = self._transport.get(f"issue/{issue_key}")
            if response.status_code != 200:
                raise error_for_status(response, f"Fetching story {issue_key}")
            story = _story_from_node(response.json())
        except FETCH_ERRORS as exc:
            logger.error(f"Fetching story {issue_key} failed: {exc}")
            return None
        logger.info(f"Fetched {story.key} with {len(story.acceptance_criteria)} acceptance criteria")
        return story

    def search_stories(self, jql: str | None = None, max_results: int = 50) -> list[Story]:
        """Run a JQL search (default: the whole project) and return matching stories."""
        try:
            if jql is None:
                if not self._config.project_key:
                    raise ConfigMissingError("PROJECT_KEY is required for the default search; no request was sent")
                jql = f"project={self._config.project_key}"
            response = self._transport.post(
                "search/jql",
                {"jql": jql, "maxResults": max_results, "fields": STORY_FIELDS},
            )
            if response.status_code != 200:
                raise error_for_status(response, f"Searching '{jql}'")
            stories = [_story_from_node(node) for node in response.json().get("issues", [])]
        except FETCH_ERRORS as exc:
            logger.error(f"Story search failed: {exc}")
            return []
        logger.info(f"Found {len(stories)} issues for '{jql}'")
        return stories
