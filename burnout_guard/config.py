from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field

from burnout_guard import CONFIG_PATH, PROJECT_ROOT

logger = logging.getLogger(__name__)


# =============================================================================
# Protection rules (args/burnout_guard.yaml -> protection)
# =============================================================================

class LunchConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    skip_after_window: bool = Field(default=False)


class HardStopConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    skip_if_present: bool = Field(default=False)


class ProtectionConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    calendar_id: str = Field(default="primary")
    horizon_hours: int = Field(default=36, ge=1)
    max_events: int = Field(default=100, ge=1, le=2500)
    timezone: Optional[str] = None
    failure_policy: Literal["abort_run", "skip_rule"] = Field(default="abort_run")
    max_concurrent_users: int = Field(default=1, ge=1)
    run_timeout_seconds: Optional[float] = Field(default=None, gt=0)
    lunch: LunchConfig = Field(default_factory=LunchConfig)
    hard_stop: HardStopConfig = Field(default_factory=HardStopConfig)


# =============================================================================
# Scheduler, auth, storage, server
# =============================================================================

class SchedulerConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    enabled: bool = Field(default=True)
    schedule: str = Field(default="*/20 * * * *")
    run_on_start: bool = Field(default=False)


class DescopeConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    base_url: str = Field(default="https://api.descope.com")
    oauth_provider: str = Field(default="google")
    request_timeout_seconds: float = Field(default=30.0, gt=0)


class UsersConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    store_path: str = Field(default="data/users.json")

    def resolved_path(self) -> Path:
        path = Path(self.store_path)
        return path if path.is_absolute() else PROJECT_ROOT / path


class ServerConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=3000, ge=1, le=65535)


class BurnoutGuardConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    protection: ProtectionConfig = Field(default_factory=ProtectionConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    descope: DescopeConfig = Field(default_factory=DescopeConfig)
    users: UsersConfig = Field(default_factory=UsersConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)


# =============================================================================
# Secrets (environment only, never YAML)
# =============================================================================

class DescopeCredentials(BaseModel):
    project_id: str = ""
    management_key: str = ""
    outbound_app_id: str = ""

    @classmethod
    def from_env(cls) -> DescopeCredentials:
        return cls(
            project_id=os.environ.get("DESCOPE_PROJECT_ID", ""),
            management_key=os.environ.get("DESCOPE_MANAGEMENT_KEY", ""),
            outbound_app_id=os.environ.get("DESCOPE_OUTBOUND_APP_ID", ""),
        )

    def missing(self) -> list[str]:
        names = {
            "DESCOPE_PROJECT_ID": self.project_id,
            "DESCOPE_MANAGEMENT_KEY": self.management_key,
            "DESCOPE_OUTBOUND_APP_ID": self.outbound_app_id,
        }
        return [name for name, value in names.items() if not value]


# =============================================================================
# load_and_validate
# =============================================================================

def _apply_env_overrides(config: BurnoutGuardConfig) -> BurnoutGuardConfig:
    tz = os.environ.get("BURNOUT_GUARD_TIMEZONE")
    if tz:
        config.protection.timezone = tz
    port = os.environ.get("PORT")
    if port and port.isdigit():
        config.server.port = int(port)
    return config


def load_and_validate(path: Path | None = None) -> BurnoutGuardConfig:
    yaml_path = path or CONFIG_PATH

    try:
        if yaml_path.exists():
            with open(yaml_path) as f:
                raw = yaml.safe_load(f) or {}
        else:
            raw = {}

        config = BurnoutGuardConfig.model_validate(raw)
    except Exception as e:
        logger.warning(f"Config validation failed for {yaml_path}: {e}, using defaults")
        config = BurnoutGuardConfig()

    return _apply_env_overrides(config)
