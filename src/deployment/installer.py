"""
Install and uninstall the IAM access stack.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    NoCredentialsError,
    WaiterError,
)

from cloudformation import StackDiagnostics, StackManager, failure_hints
from config import InstallerConfig
from iam import OUTPUT_FIELDS, AccessStackTemplate

logger = logging.getLogger(__name__)


class InstallStatus(Enum):
    """Outcome of an install or uninstall operation."""
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"
    NOT_FOUND = "not_found"


@dataclass
class InstallResult:
    """Result of an install or uninstall operation."""
    status: InstallStatus
    message: str
    outputs: Dict[str, Tuple[str, str]] = field(default_factory=dict)
    hints: List[str] = field(default_factory=list)
    report: Optional[str] = None

    @property
    def success(self) -> bool:
        """Failed operations are the only unsuccessful ones."""
        return self.status != InstallStatus.FAILED


class AccessStackInstaller:
    """Create or delete the access stack described by an InstallerConfig."""

    def __init__(
        self, config: InstallerConfig, manager: Optional[StackManager] = None
    ):
        """
        Initialize installer.

        Args:
            config: Installer configuration
            manager: Stack manager (created from config if not provided)
        """
        self.config = config
        self.manager = manager or StackManager(
            region=config.region,
            profile=config.profile,
            waiter_config=config.waiter_config,
        )

    @property
    def stack_name(self) -> str:
        return self.config.stack_name

    @property
    def region(self) -> str:
        return self.config.region

    def check_credentials(self) -> Optional[Dict[str, Any]]:
        """Return the caller identity, or None when no usable credentials exist."""
        try:
            sts = self.manager.session.client("sts")
            identity = sts.get_caller_identity()
        except NoCredentialsError:
            logger.debug("No AWS credentials found")
            return None
        except ClientError as e:
            logger.debug(f"AWS credential validation failed: {e}")
            return None
        except BotoCoreError as e:
            logger.debug(f"AWS credential check failed: {e}")
            return None

        logger.debug(f"Running as {identity.get('Arn')}")
        return {"account_id": identity["Account"], "arn": identity["Arn"]}

    def stack_exists(self) -> bool:
        return self.manager.stack_exists(self.stack_name)

    def render_template(self) -> AccessStackTemplate:
        return AccessStackTemplate(self.stack_name, self.config.managed_policy_arns)

    def install(self) -> InstallResult:
        """Create the stack, wait for it and collect its outputs."""
        if self.stack_exists():
            return InstallResult(
                InstallStatus.SKIPPED,
                f"CloudFormation stack '{self.stack_name}' already exists in region "
                f"'{self.region}'. Uninstall it first.",
            )

        template = self.render_template()
        template_body = template.to_yaml()

        if self.config.template_file:
            path = template.write(self.config.template_file)
            logger.info(f"Template written to {path}")

        validation = self.manager.validate_stack_template(template_body)
        if not validation["valid"]:
            return self._failure(
                f"Template validation failed: {validation['error']}",
                validation["error"],
                diagnose=False,
            )

        try:
            self.manager.create_stack(
                self.stack_name, template_body, capabilities=["CAPABILITY_NAMED_IAM"]
            )
        except ClientError as e:
            return self._failure(f"Stack creation failed: {e}", str(e), diagnose=False)

        try:
            self.manager.wait_for_creation(self.stack_name)
        except WaiterError as e:
            return self._failure(f"Stack creation did not complete: {e}", str(e))

        outputs = self.manager.get_output_descriptions(self.stack_name)
        return InstallResult(
            InstallStatus.SUCCESS,
            f"Stack '{self.stack_name}' created in region '{self.region}'.",
            outputs=outputs,
        )

    def uninstall(self) -> InstallResult:
        """Delete the stack and wait for the deletion to finish."""
        if not self.stack_exists():
            return InstallResult(
                InstallStatus.NOT_FOUND,
                f"Stack '{self.stack_name}' not found in region '{self.region}'. "
                "Nothing to uninstall.",
            )

        try:
            self.manager.delete_stack(self.stack_name)
        except ClientError as e:
            return self._failure(f"Stack deletion failed: {e}", str(e), diagnose=False)
        except WaiterError as e:
            return self._failure(f"Stack deletion did not complete: {e}", str(e))

        return InstallResult(InstallStatus.SUCCESS, "Stack deletion completed.")

    def _failure(self, message: str, error_text: str, diagnose: bool = True) -> InstallResult:
        logger.debug(message)
        result = InstallResult(InstallStatus.FAILED, message, hints=failure_hints(error_text))

        if diagnose:
            diagnosis = self.manager.diagnose_stack_failure(self.stack_name)
            for hint in diagnosis["recommendations"]:
                if hint not in result.hints:
                    result.hints.append(hint)
            result.report = StackDiagnostics(self.manager).generate_report(self.stack_name)

        return result

    @staticmethod
    def credential_lines(outputs: Dict[str, Tuple[str, str]]) -> List[Tuple[str, str]]:
        """Return (label, value) pairs for the credential outputs in display order."""
        lines = []
        for key, default_label in OUTPUT_FIELDS:
            if key in outputs:
                description, value = outputs[key]
                lines.append((description or default_label, value))
        return lines
