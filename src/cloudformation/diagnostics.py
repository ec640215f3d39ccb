"""
CloudFormation stack diagnostics and troubleshooting.
"""

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, List

if TYPE_CHECKING:
    from .stack_manager import StackManager

logger = logging.getLogger(__name__)

ASSUME_ROLE_HINT = (
    "The request to assume a role was denied. Your AWS Organization may "
    "restrict sts:AssumeRole through a service control policy (SCP) or a "
    "permissions boundary. Ask your organization administrator to allow "
    "role assumption for this account."
)


def failure_hints(text: str) -> List[str]:
    """Get human-readable hints for an error message or failure reason."""
    hints = []

    if "AccessDenied" in text and "sts:AssumeRole" in text:
        hints.append(ASSUME_ROLE_HINT)
    elif "AccessDenied" in text or "is not authorized" in text:
        hints.append(
            "Check that your credentials allow CloudFormation and IAM operations "
            "(cloudformation:*, iam:CreateUser, iam:CreateRole, iam:PutUserPolicy, "
            "iam:CreateAccessKey)."
        )

    if "already exists" in text.lower():
        hints.append(
            "An IAM user or role with the same name already exists. Choose a "
            "different stack name or remove the existing resource."
        )

    if "requires capabilities" in text.lower():
        hints.append("The stack must be created with CAPABILITY_NAMED_IAM.")

    return hints


class StackDiagnostics:
    """Diagnose CloudFormation stack issues."""

    def __init__(self, stack_manager: "StackManager"):
        """Initialize diagnostics with a stack manager."""
        self.stack_manager = stack_manager
        self.cloudformation = stack_manager.cloudformation

    def generate_report(self, stack_name: str) -> str:
        """Generate a diagnostic report for a stack."""
        report = []
        report.append("CloudFormation Stack Diagnostic Report")
        report.append(f"Stack: {stack_name}")
        report.append(f"Time: {datetime.now().isoformat()}")
        report.append("=" * 80)

        diagnosis = self.stack_manager.diagnose_stack_failure(stack_name)

        if diagnosis.get("error") and not diagnosis["status"]:
            report.append(f"\n❌ Unable to describe stack: {diagnosis['error']}")
        elif not diagnosis["status"]:
            report.append("\n❌ Stack does not exist")
            return "\n".join(report)
        else:
            report.append(f"\n📊 Stack Status: {diagnosis['status']}")

        if diagnosis["failed_resources"]:
            report.append(f"\n❌ Failed Resources ({len(diagnosis['failed_resources'])})")
            for resource in diagnosis["failed_resources"]:
                report.append(f"\n  Resource: {resource['logical_id']}")
                report.append(f"  Type: {resource['resource_type']}")
                report.append(f"  Status: {resource['status']}")
                report.append(f"  Reason: {resource['reason']}")

        if diagnosis["status"]:
            events = self.get_recent_events(stack_name, limit=10)
            if events:
                report.append("\n📅 Recent Events:")
            for event in events:
                status_emoji = self._get_status_emoji(event["ResourceStatus"])
                report.append(
                    f"  {status_emoji} {event['LogicalResourceId']} "
                    f"({event['ResourceStatus']})"
                )
                if event.get("ResourceStatusReason"):
                    report.append(f"    → {event['ResourceStatusReason']}")

        if diagnosis["recommendations"]:
            report.append("\n💡 Recommendations:")
            for i, rec in enumerate(diagnosis["recommendations"], 1):
                report.append(f"  {i}. {rec}")

        return "\n".join(report)

    def get_recent_events(self, stack_name: str, limit: int = 20) -> List[Dict[str, Any]]:
        """Get the most recent stack events, newest first."""
        events: List[Dict[str, Any]] = []

        try:
            response = self.cloudformation.describe_stack_events(StackName=stack_name)
        except Exception as e:
            logger.warning(f"Error getting events for {stack_name}: {e}")
            return events

        for event in response.get("StackEvents", [])[:limit]:
            events.append(
                {
                    "Timestamp": event.get("Timestamp"),
                    "LogicalResourceId": event["LogicalResourceId"],
                    "ResourceType": event.get("ResourceType"),
                    "ResourceStatus": event["ResourceStatus"],
                    "ResourceStatusReason": event.get("ResourceStatusReason"),
                }
            )

        return events

    def _get_status_emoji(self, status: str) -> str:
        """Get emoji for resource status."""
        if "COMPLETE" in status and "ROLLBACK" not in status:
            return "✅"
        elif "FAILED" in status:
            return "❌"
        elif "IN_PROGRESS" in status:
            return "🔄"
        elif "ROLLBACK" in status:
            return "↩️"
        else:
            return "•"
