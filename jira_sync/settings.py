"""Settings resolution with named profile support."""

import os
from collections.abc import Mapping
from functools import lru_cache
from pathlib import Path

import tomlkit
import typer
from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from jira_sync.models import TrackerConfig

CONFIG_PATH = Path.home() / ".config" / "jira-sync" / "config.toml"


class JiraSyncSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Connection
    jira_base_url: str | None = None
    jira_email: str | None = None
    jira_api_token: SecretStr | None = None
    project_key: str | None = None
    jira_timeout_sec: float = 30.0

    # Free-text comment templates, keys match the properties files used by test suites
    pass_comment: str = Field(default="", validation_alias=AliasChoices("PassComment", "pass_comment"))
    fail_comment: str = Field(
        default="",
        validation_alias=AliasChoices("FailedComment", "FailComment", "fail_comment"),
    )
    version: str = Field(default="", validation_alias=AliasChoices("Version", "version"))

    def to_config(self) -> TrackerConfig:
        return TrackerConfig(
            base_url=self.jira_base_url,
            email=self.jira_email,
            api_token=self.jira_api_token,
            project_key=self.project_key,
            pass_template=self.pass_comment,
            fail_template=self.fail_comment,
            version_label=self.version,
            timeout_sec=self.jira_timeout_sec,
        )


@lru_cache(maxsize=1)
def _load_toml() -> tomlkit.TOMLDocument:
    """Load ~/.config/jira-sync/config.toml, returning empty document if missing."""
    if not CONFIG_PATH.exists():
        return tomlkit.document()
    with CONFIG_PATH.open() as fh:
        return tomlkit.load(fh)


def _list_profiles(config: Mapping) -> list[str]:
    # tomlkit Table implements MutableMapping but not dict, so check Mapping
    return [k for k, v in config.items() if isinstance(v, Mapping)]


def get_settings(profile: str | None = None) -> JiraSyncSettings:
    """Resolve the active profile and return populated JiraSyncSettings.

    Precedence (highest to lowest):
    1. profile argument (--profile CLI flag)
    2. JIRA_SYNC_PROFILE env var
    3. default_profile key in ~/.config/jira-sync/config.toml
    4. First profile defined in ~/.config/jira-sync/config.toml

    Missing credentials are not an error here: each operation reports them itself.
    """
    toml_config = _load_toml()

    active = (
        profile
        or os.environ.get("JIRA_SYNC_PROFILE")
        or toml_config.get("default_profile")
        or ((_profiles := _list_profiles(toml_config)) and _profiles[0] or None)
    )

    profile_defaults: dict = {}
    if active:
        if active in toml_config and isinstance(toml_config[active], Mapping):
            profile_defaults = dict(toml_config[active])
        else:
            profiles = _list_profiles(toml_config)
            typer.echo(f"Profile '{active}' not found in {CONFIG_PATH}. Available: {profiles or '(none)'}")
            raise typer.Exit(1)

    # env vars + .env override profile defaults
    settings = JiraSyncSettings(**profile_defaults)
    settings_from_env = JiraSyncSettings()
    overrides = {
        name: getattr(settings_from_env, name)
        for name in settings_from_env.model_fields_set
    }
    if overrides:
        settings = settings.model_copy(update=overrides)
    return settings


def get_config(profile: str | None = None) -> TrackerConfig:
    return get_settings(profile=profile).to_config()
