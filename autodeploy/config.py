"""Configuration management with Pydantic Settings + optional YAML."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from autodeploy.utils.platform import get_config_dir


class ServerConfig(BaseModel):
    bind: str = "127.0.0.1"
    port: int = 7878
    webhook_path: str = "ad"
    max_body_bytes: int = 1024 * 1024

    @field_validator("webhook_path")
    @classmethod
    def _strip_slashes(cls, value: str) -> str:
        path = value.strip().strip("/")
        if path.startswith("api/"):
            path = path[len("api/"):]
        if not path or path == "status":
            raise ValueError("webhook_path must be a non-empty path other than 'status'")
        return path


class AnsibleConfig(BaseModel):
    project_dir: str = "/srv/cloud-ansible"
    binary: str = "ansible-playbook"
    playbook: str = "controler_playbook.yaml"
    inventory: str = "inventories/control.yaml"
    extra_args: list[str] = Field(default_factory=list)
    timeout_seconds: float = 900.0
    # What a delivery does when its tag is already deploying: block or bounce
    lock_policy: Literal["wait", "reject"] = "wait"

    @field_validator("timeout_seconds")
    @classmethod
    def _positive_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("timeout_seconds must be positive")
        return value


class EmailConfig(BaseModel):
    smtp_host: str = ""
    smtp_port: int = 25
    use_starttls: bool = False
    username: str = ""
    password: str = ""
    sender: str = "autodeploy@localhost"
    recipients: list[str] = Field(default_factory=list)
    max_output_chars: int = 10_000
    timeout_seconds: float = 30.0

    @field_validator("recipients", mode="before")
    @classmethod
    def _split_recipients(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [part.strip() for part in value.split(",") if part.strip()]
        return value


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="AUTODEPLOY_",
        env_nested_delimiter="__",
        env_file=".env",
        extra="ignore",
        case_sensitive=False,
    )

    webhook_secret: str = ""
    server: ServerConfig = Field(default_factory=ServerConfig)
    ansible: AnsibleConfig = Field(default_factory=AnsibleConfig)
    email: EmailConfig = Field(default_factory=EmailConfig)
    # repository full name ("owner/name") -> playbook tag
    targets: dict[str, str] = Field(default_factory=dict)
    log_level: str = "INFO"
    log_json: bool = False
    log_file: str = ""

    @field_validator("targets")
    @classmethod
    def _check_targets(cls, value: dict[str, str]) -> dict[str, str]:
        for repo, tag in value.items():
            owner, _, name = repo.partition("/")
            if not owner or not name or "/" in name:
                raise ValueError(f"target {repo!r} is not an 'owner/name' repository")
            if not tag.strip():
                raise ValueError(f"target {repo!r} has an empty tag")
        return value

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # YAML values arrive as init kwargs; environment wins over them
        return env_settings, dotenv_settings, init_settings, file_secret_settings


def load_settings(config_path: str | Path | None = None) -> Settings:
    """Load settings from env vars, optionally overlaying a YAML config."""
    yaml_data: dict[str, Any] = {}

    # Determine config file path
    if config_path is None:
        config_path = os.environ.get("AUTODEPLOY_CONFIG")
    if config_path is None:
        default = get_config_dir() / "config.yaml"
        if default.exists():
            config_path = default

    # An explicitly named file that is missing is a startup error
    if config_path is not None:
        path = Path(config_path)
        with open(path) as f:
            yaml_data = yaml.safe_load(f) or {}

    # Build settings: YAML values as defaults, env vars override
    return Settings(**yaml_data)
