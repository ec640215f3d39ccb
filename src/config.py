"""
Configuration management for the access stack installer.

Holds the stack name, region and waiter settings, with defaults that match
the FindingsCloudVRM deployment and optional overrides from a YAML file.
"""

import logging
import re
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

logger = logging.getLogger(__name__)

DEFAULT_STACK_NAME = "FindingsCloudVRM"
DEFAULT_REGION = "us-east-1"
SECURITY_HUB_READ_ONLY_ARN = "arn:aws:iam::aws:policy/AWSSecurityHubReadOnlyAccess"

STACK_NAME_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9-]{0,127}$")
REGION_PATTERN = re.compile(r"^[a-z]{2}(-[a-z]+)+-\d+$")


# Expected type of each field and whether it may be null
FIELD_TYPES = {
    "stack_name": (str, False),
    "region": (str, False),
    "profile": (str, True),
    "template_file": (str, True),
    "managed_policy_arns": (list, False),
    "waiter_delay": (int, False),
    "waiter_max_attempts": (int, False),
}


class ConfigError(Exception):
    """Raised when installer configuration cannot be loaded or is invalid."""


@dataclass
class InstallerConfig:
    """Configuration for a single access stack installation."""

    stack_name: str = DEFAULT_STACK_NAME
    region: str = DEFAULT_REGION
    profile: Optional[str] = None

    # Where the rendered template is saved, if anywhere
    template_file: Optional[str] = None

    managed_policy_arns: List[str] = field(
        default_factory=lambda: [SECURITY_HUB_READ_ONLY_ARN]
    )

    # CloudFormation waiter settings
    waiter_delay: int = 30
    waiter_max_attempts: int = 120

    def validate(self) -> List[str]:
        """Return a list of validation errors (empty when valid)."""
        errors = []

        if not self.stack_name:
            errors.append("Stack name must not be empty")
        elif not STACK_NAME_PATTERN.match(self.stack_name):
            errors.append(
                f"Invalid stack name '{self.stack_name}': must start with a letter "
                "and contain only letters, digits and hyphens (max 128 characters)"
            )

        if not self.region:
            errors.append("Region must not be empty")
        elif not REGION_PATTERN.match(self.region):
            errors.append(f"Invalid region '{self.region}'")

        if not self.managed_policy_arns:
            errors.append("At least one managed policy ARN is required")

        if self.waiter_delay <= 0 or self.waiter_max_attempts <= 0:
            errors.append("Waiter delay and max attempts must be positive")

        return errors

    @property
    def waiter_config(self) -> Dict[str, int]:
        """Waiter configuration in the form boto3 expects."""
        return {"Delay": self.waiter_delay, "MaxAttempts": self.waiter_max_attempts}

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary."""
        return {k: v for k, v in self.__dict__.items() if not k.startswith("_")}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InstallerConfig":
        """Create config from dictionary."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(str(k) for k in set(data) - known)
        if unknown:
            raise ConfigError(f"Unknown configuration keys: {', '.join(unknown)}")

        for key, value in data.items():
            expected, optional = FIELD_TYPES[key]
            if value is None and optional:
                continue
            # bool is an int subclass but never a valid count
            if not isinstance(value, expected) or isinstance(value, bool):
                raise ConfigError(
                    f"Invalid value for '{key}': expected {expected.__name__}, "
                    f"got {type(value).__name__}"
                )
            if expected is list and not all(isinstance(v, str) for v in value):
                raise ConfigError(f"Invalid value for '{key}': expected a list of strings")

        return cls(**data)


def load_config(
    config_file: Optional[Union[str, Path]] = None, **overrides: Any
) -> InstallerConfig:
    """
    Build installer configuration.

    Defaults are merged with the YAML file (if given), then with any
    override that is not None.

    Args:
        config_file: Optional path to a YAML configuration file
        **overrides: Explicit values, typically from command line flags

    Returns:
        InstallerConfig instance
    """
    data: Dict[str, Any] = {}

    if config_file:
        path = Path(config_file)
        if not path.exists():
            raise ConfigError(f"Config file not found: {path}")

        try:
            with open(path, "r") as f:
                file_data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e

        if not isinstance(file_data, dict):
            raise ConfigError(f"Config file {path} must contain a mapping")

        logger.debug(f"Loaded configuration from {path}")
        data.update(file_data)

    data.update({k: v for k, v in overrides.items() if v is not None})

    return InstallerConfig.from_dict(data)
