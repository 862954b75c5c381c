"""Shared test fixtures."""

from pathlib import Path

import pytest

from jira_sync.issues import IssueClient
from jira_sync.models import Story, TrackerConfig
from jira_sync.transitions import TransitionEngine


@pytest.fixture
def config() -> TrackerConfig:
    return TrackerConfig(
        base_url="https://example.atlassian.net",
        email="qa@example.com",
        api_token="tok_secret",
        project_key="ECS",
        pass_template="Test passed on",
        fail_template="Test failed on",
        version_label="v1.2",
    )


@pytest.fixture
def client(config: TrackerConfig) -> IssueClient:
    return IssueClient(config)


@pytest.fixture
def engine(client: IssueClient) -> TransitionEngine:
    return TransitionEngine(client)


@pytest.fixture
def screenshot(tmp_path: Path) -> Path:
    path = tmp_path / "failure.png"
    path.write_bytes(b"\x89PNG fake image data")
    return path


@pytest.fixture
def sample_story() -> Story:
    return Story(
        key="ECS-12",
        summary="User can log in",
        description="As a user I want to log in\n",
        issue_type="Story",
        status="To Do",
        priority="High",
        acceptance_criteria=("Given a registered user", "Then the dashboard is shown"),
    )
