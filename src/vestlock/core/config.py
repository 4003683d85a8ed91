"""
vestlock Configuration

Deployment policy for locking contracts, read from environment variables
(``VESTLOCK_*``) or from a deployment manifest (YAML or JSON).

Policies that differ between deployments:
- Withdrawal window: anytime, or only while the cliff is running
- Beneficiary set bounds (minimum and optional maximum)
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Mapping

import yaml

logger = logging.getLogger(__name__)


class WithdrawalPolicy(Enum):
    ANYTIME = "anytime"
    CLIFF_ONLY = "cliff_only"


class ConfigurationError(Exception):
    """Raised when required configuration is missing or invalid."""
    pass


ENVIRONMENT = os.getenv("VESTLOCK_ENV", "development")
LOG_LEVEL = os.getenv("VESTLOCK_LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("VESTLOCK_LOG_FILE", "").strip() or None

DEFAULT_WITHDRAWAL_POLICY = os.getenv("VESTLOCK_WITHDRAWAL_POLICY", WithdrawalPolicy.ANYTIME.value)
DEFAULT_MIN_BENEFICIARIES = os.getenv("VESTLOCK_MIN_BENEFICIARIES", "1")
DEFAULT_MAX_BENEFICIARIES = os.getenv("VESTLOCK_MAX_BENEFICIARIES", "")

BASIS_POINTS_DENOMINATOR = 10_000


def _parse_policy(value: Any) -> WithdrawalPolicy:
    if isinstance(value, WithdrawalPolicy):
        return value
    try:
        return WithdrawalPolicy(str(value).strip().lower())
    except ValueError as exc:
        allowed = ", ".join(p.value for p in WithdrawalPolicy)
        raise ConfigurationError(
            f"Invalid withdrawal policy {value!r}; expected one of: {allowed}"
        ) from exc


def _parse_int(name: str, value: Any, allow_empty: bool = False) -> int | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        if allow_empty:
            return None
        raise ConfigurationError(f"{name} is required")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}") from exc


@dataclass(frozen=True)
class LockingConfig:
    """Deployment policy applied to a locking contract."""

    withdrawal_policy: WithdrawalPolicy = WithdrawalPolicy.ANYTIME
    min_beneficiaries: int = 1
    max_beneficiaries: int | None = None
    environment: str = "development"
    log_level: str = "INFO"
    log_file: str | None = None

    def __post_init__(self) -> None:
        if self.min_beneficiaries < 1:
            raise ConfigurationError("min_beneficiaries must be at least 1")
        if self.max_beneficiaries is not None and self.max_beneficiaries < self.min_beneficiaries:
            raise ConfigurationError(
                f"max_beneficiaries ({self.max_beneficiaries}) is below "
                f"min_beneficiaries ({self.min_beneficiaries})"
            )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "LockingConfig":
        """Build a config from a plain mapping (manifest section)."""
        return cls(
            withdrawal_policy=_parse_policy(data.get("withdrawal_policy", WithdrawalPolicy.ANYTIME)),
            min_beneficiaries=_parse_int("min_beneficiaries", data.get("min_beneficiaries", 1)),
            max_beneficiaries=_parse_int(
                "max_beneficiaries", data.get("max_beneficiaries"), allow_empty=True
            ),
            environment=str(data.get("environment", ENVIRONMENT)),
            log_level=str(data.get("log_level", LOG_LEVEL)).upper(),
            log_file=data.get("log_file", LOG_FILE),
        )

    @classmethod
    def from_env(cls) -> "LockingConfig":
        """Build a config from ``VESTLOCK_*`` environment variables."""
        config = cls.from_mapping(
            {
                "withdrawal_policy": os.getenv("VESTLOCK_WITHDRAWAL_POLICY", DEFAULT_WITHDRAWAL_POLICY),
                "min_beneficiaries": os.getenv("VESTLOCK_MIN_BENEFICIARIES", DEFAULT_MIN_BENEFICIARIES),
                "max_beneficiaries": os.getenv("VESTLOCK_MAX_BENEFICIARIES", DEFAULT_MAX_BENEFICIARIES),
                "environment": os.getenv("VESTLOCK_ENV", ENVIRONMENT),
                "log_level": os.getenv("VESTLOCK_LOG_LEVEL", LOG_LEVEL),
                "log_file": os.getenv("VESTLOCK_LOG_FILE", "").strip() or None,
            }
        )
        logger.debug(
            "Locking config loaded from environment",
            extra={
                "event": "config.loaded",
                "withdrawal_policy": config.withdrawal_policy.value,
                "max_beneficiaries": config.max_beneficiaries,
            }
        )
        return config

    def to_dict(self) -> dict[str, Any]:
        return {
            "withdrawal_policy": self.withdrawal_policy.value,
            "min_beneficiaries": self.min_beneficiaries,
            "max_beneficiaries": self.max_beneficiaries,
            "environment": self.environment,
            "log_level": self.log_level,
            "log_file": self.log_file,
        }


@dataclass
class DeploymentManifest:
    """A locking-contract deployment plus an optional scenario to replay."""

    owner: str
    funding_address: str
    beneficiaries: list[str]
    start_time: int
    locking_duration: int
    cliff_duration: int
    token: dict[str, Any] = field(default_factory=dict)
    funding_amount: int = 0
    config: LockingConfig = field(default_factory=LockingConfig)
    steps: list[dict[str, Any]] = field(default_factory=list)


_REQUIRED_KEYS = (
    "owner",
    "funding_address",
    "beneficiaries",
    "start_time",
    "locking_duration",
    "cliff_duration",
)


def _read_manifest_file(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise ConfigurationError(f"Deployment manifest not found: {path}")
    with open(path, "r") as f:
        if path.suffix.lower() == ".json":
            data = json.load(f)
        else:
            data = yaml.safe_load(f)
    if not isinstance(data, dict):
        raise ConfigurationError(f"Deployment manifest {path} must be a mapping")
    return data


def load_deployment(source: str | Path | Mapping[str, Any]) -> DeploymentManifest:
    """
    Load a deployment manifest.

    Args:
        source: Path to a ``.yaml``/``.yml``/``.json`` file, or an already
            parsed mapping

    Returns:
        Parsed manifest

    Raises:
        ConfigurationError: If the manifest is missing keys or malformed
    """
    data = dict(source) if isinstance(source, Mapping) else _read_manifest_file(Path(source))

    missing = [key for key in _REQUIRED_KEYS if key not in data]
    if missing:
        raise ConfigurationError(f"Deployment manifest missing keys: {', '.join(missing)}")

    beneficiaries = data["beneficiaries"]
    if not isinstance(beneficiaries, list):
        raise ConfigurationError("beneficiaries must be a list of addresses")

    steps = data.get("steps") or []
    if not isinstance(steps, list):
        raise ConfigurationError("steps must be a list")

    return DeploymentManifest(
        owner=str(data["owner"]),
        funding_address=str(data["funding_address"]),
        beneficiaries=[str(b) for b in beneficiaries],
        start_time=_parse_int("start_time", data["start_time"]),
        locking_duration=_parse_int("locking_duration", data["locking_duration"]),
        cliff_duration=_parse_int("cliff_duration", data["cliff_duration"]),
        token=dict(data.get("token") or {}),
        funding_amount=_parse_int("funding_amount", data.get("funding_amount", 0)),
        config=LockingConfig.from_mapping(data.get("policy") or {}),
        steps=[dict(step) for step in steps],
    )
