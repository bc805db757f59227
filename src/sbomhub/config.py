"""Configuration for sbomhub."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

from sbomhub.analytics.models import SLOTargets
from sbomhub.models import ValidationError
from sbomhub.sbom.identity import IdentityMode
from sbomhub.ssvc.engine import DecisionPolicy
from sbomhub.ssvc.models import ProjectDefaults

logger = logging.getLogger(__name__)

CONFIG_FILENAMES = (".sbomhub.yaml", "sbomhub.yaml")


class ConfigError(Exception):
    """Configuration file could not be loaded."""
    pass


@dataclass
class Config:
    """Settings shared by the CLI and the engines."""

    # Diff
    identity_mode: IdentityMode = IdentityMode.NAME

    # SSVC
    ssvc_policy: DecisionPolicy = DecisionPolicy.DEPLOYER
    ssvc_defaults: ProjectDefaults = field(default_factory=ProjectDefaults)

    # Analytics
    slo_targets: SLOTargets = field(default_factory=SLOTargets)
    default_period_days: int = 30
    max_period_days: int = 365

    # OSV
    osv_base_url: str = "https://api.osv.dev/v1"
    osv_timeout: float = 30.0
    osv_cache_ttl: int = 300
    osv_default_ecosystem: Optional[str] = None

    # Logging
    log_level: str = "WARNING"

    @classmethod
    def from_dict(cls, data: dict) -> "Config":
        """Create config from dictionary, applying environment overrides."""
        ssvc = data.get("ssvc", {}) or {}
        analytics = data.get("analytics", {}) or {}
        osv = data.get("osv", {}) or {}

        try:
            policy = DecisionPolicy(ssvc.get("policy", "deployer"))
        except ValueError:
            raise ValidationError("ssvc.policy", ssvc.get("policy")) from None

        config = cls(
            identity_mode=IdentityMode.parse(
                os.environ.get("SBOMHUB_IDENTITY_MODE") or data.get("identity_mode", "name")
            ),
            ssvc_policy=policy,
            ssvc_defaults=ProjectDefaults.from_dict(ssvc),
            slo_targets=SLOTargets.from_dict(data.get("slo_targets", {}) or {}),
            default_period_days=int(analytics.get("default_period_days", 30)),
            max_period_days=int(analytics.get("max_period_days", 365)),
            osv_base_url=os.environ.get("SBOMHUB_OSV_URL") or osv.get("base_url", "https://api.osv.dev/v1"),
            osv_timeout=float(osv.get("timeout", 30.0)),
            osv_cache_ttl=int(osv.get("cache_ttl", 300)),
            osv_default_ecosystem=osv.get("default_ecosystem"),
            log_level=(os.environ.get("SBOMHUB_LOG_LEVEL") or data.get("log_level", "WARNING")).upper(),
        )

        if not 1 <= config.default_period_days <= config.max_period_days:
            raise ValidationError(
                "analytics.default_period_days",
                config.default_period_days,
                f"default_period_days must be between 1 and {config.max_period_days}",
            )
        return config

    def to_dict(self) -> dict:
        """Convert config to dictionary."""
        return {
            "identity_mode": self.identity_mode.value,
            "ssvc": {"policy": self.ssvc_policy.value, **self.ssvc_defaults.to_dict()},
            "slo_targets": self.slo_targets.to_dict(),
            "analytics": {
                "default_period_days": self.default_period_days,
                "max_period_days": self.max_period_days,
            },
            "osv": {
                "base_url": self.osv_base_url,
                "timeout": self.osv_timeout,
                "cache_ttl": self.osv_cache_ttl,
                "default_ecosystem": self.osv_default_ecosystem,
            },
            "log_level": self.log_level,
        }


def find_config_file(root: Optional[Path] = None) -> Optional[Path]:
    """Find a config file in the given directory (default: cwd)."""
    root = root or Path.cwd()
    for name in CONFIG_FILENAMES:
        candidate = root / name
        if candidate.is_file():
            return candidate
    return None


def load_config(path: Optional[Path] = None) -> Config:
    """Load configuration from YAML.

    Args:
        path: Explicit config file; when None the working directory is
            searched and defaults are used if nothing is found.

    Raises:
        ConfigError: If the file cannot be read or parsed.
        ValidationError: If a value is out of range.
    """
    if path is None:
        path = find_config_file()
        if path is None:
            return Config.from_dict({})

    try:
        content = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e

    try:
        data = yaml.safe_load(content) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")

    logger.debug(f"Loaded configuration from {path}")
    return Config.from_dict(data)


def write_config(config: Config, path: Path) -> Path:
    """Write configuration to a YAML file."""
    with open(path, "w") as f:
        yaml.dump(config.to_dict(), f, default_flow_style=False, sort_keys=False)
    return path
