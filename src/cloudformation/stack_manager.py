"""
CloudFormation stack management operations.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

import boto3
from botocore.exceptions import ClientError

from .diagnostics import failure_hints

logger = logging.getLogger(__name__)


FAILED_RESOURCE_STATES = ["CREATE_FAILED", "UPDATE_FAILED", "DELETE_FAILED"]


class StackManager:
    """Manage CloudFormation stack operations."""

    def __init__(
        self,
        region: Optional[str] = None,
        profile: Optional[str] = None,
        waiter_config: Optional[Dict[str, int]] = None,
    ):
        """
        Initialize stack manager.

        Args:
            region: AWS region
            profile: AWS profile to use
            waiter_config: Delay/MaxAttempts passed to CloudFormation waiters
        """
        self.region = region or "us-east-1"
        self.profile = profile
        self.waiter_config = waiter_config or {"Delay": 30, "MaxAttempts": 120}

        # Initialize AWS client
        session_args = {"region_name": self.region}
        if profile:
            session_args["profile_name"] = profile

        self.session = boto3.Session(**session_args)
        self.cloudformation = self.session.client("cloudformation")

    def get_stack_status(self, stack_name: str) -> Optional[str]:
        """Get current stack status."""
        try:
            response = self.cloudformation.describe_stacks(StackName=stack_name)
            if response["Stacks"]:
                return str(response["Stacks"][0]["StackStatus"])
        except ClientError as e:
            if "does not exist" in str(e):
                return None
            raise
        return None

    def stack_exists(self, stack_name: str) -> bool:
        """Check whether a stack exists (deleted stacks are not visible by name)."""
        return self.get_stack_status(stack_name) is not None

    def create_stack(
        self,
        stack_name: str,
        template_body: str,
        capabilities: Optional[List[str]] = None,
        parameters: Optional[Dict[str, str]] = None,
    ) -> str:
        """
        Start stack creation.

        Args:
            stack_name: Name of the stack
            template_body: Template document (YAML or JSON)
            capabilities: CloudFormation capabilities to acknowledge
            parameters: Template parameter overrides

        Returns:
            Stack ID of the new stack
        """
        params: Dict[str, Any] = {
            "StackName": stack_name,
            "TemplateBody": template_body,
            "Capabilities": capabilities or ["CAPABILITY_NAMED_IAM"],
        }
        if parameters:
            params["Parameters"] = [
                {"ParameterKey": k, "ParameterValue": v} for k, v in parameters.items()
            ]

        logger.info(f"Creating stack {stack_name} in {self.region}")
        response = self.cloudformation.create_stack(**params)
        return str(response["StackId"])

    def wait_for_creation(self, stack_name: str) -> None:
        """Block until stack creation completes. Raises WaiterError on failure."""
        logger.debug(f"Waiting for stack_create_complete on {stack_name}")
        waiter = self.cloudformation.get_waiter("stack_create_complete")
        waiter.wait(StackName=stack_name, WaiterConfig=self.waiter_config)

    def delete_stack(self, stack_name: str) -> bool:
        """
        Delete a CloudFormation stack and wait for the deletion to finish.

        Returns:
            True once the stack is gone. A stack that does not exist counts
            as deleted.
        """
        status = self.get_stack_status(stack_name)
        if not status:
            logger.info(f"Stack {stack_name} does not exist")
            return True

        if status == "DELETE_IN_PROGRESS":
            logger.info("Stack deletion already in progress")
        else:
            logger.info(f"Deleting stack {stack_name} in {self.region}")
            self.cloudformation.delete_stack(StackName=stack_name)

        self.wait_for_deletion(stack_name)
        return True

    def wait_for_deletion(self, stack_name: str) -> None:
        """Block until stack deletion completes. Raises WaiterError on failure."""
        logger.debug(f"Waiting for stack_delete_complete on {stack_name}")
        waiter = self.cloudformation.get_waiter("stack_delete_complete")
        waiter.wait(StackName=stack_name, WaiterConfig=self.waiter_config)

    def get_stack_outputs(self, stack_name: str) -> Dict[str, str]:
        """Get outputs from a CloudFormation stack."""
        return {
            key: value
            for key, (_, value) in self.get_output_descriptions(stack_name).items()
        }

    def get_output_descriptions(self, stack_name: str) -> Dict[str, Tuple[str, str]]:
        """Get outputs as key -> (description, value)."""
        response = self.cloudformation.describe_stacks(StackName=stack_name)
        outputs = {}
        if response["Stacks"]:
            for output in response["Stacks"][0].get("Outputs", []):
                outputs[output["OutputKey"]] = (
                    output.get("Description", output["OutputKey"]),
                    output["OutputValue"],
                )
        return outputs

    def validate_stack_template(self, template_body: str) -> Dict[str, Any]:
        """Validate a CloudFormation template.

        Args:
            template_body: Template content as string

        Returns:
            Validation result
        """
        try:
            response = self.cloudformation.validate_template(TemplateBody=template_body)

            return {
                "valid": True,
                "parameters": response.get("Parameters", []),
                "capabilities": response.get("Capabilities", []),
                "description": response.get("Description", ""),
            }

        except ClientError as e:
            return {
                "valid": False,
                "error": str(e),
                "error_code": e.response["Error"]["Code"],
            }

    def get_failed_events(self, stack_name: str) -> List[Dict[str, Any]]:
        """Get stack events for resources that failed."""
        failed = []
        paginator = self.cloudformation.get_paginator("describe_stack_events")

        for page in paginator.paginate(StackName=stack_name):
            for event in page["StackEvents"]:
                if event["ResourceStatus"] in FAILED_RESOURCE_STATES:
                    failed.append(
                        {
                            "logical_id": event["LogicalResourceId"],
                            "resource_type": event["ResourceType"],
                            "status": event["ResourceStatus"],
                            "reason": event.get(
                                "ResourceStatusReason", "No reason provided"
                            ),
                            "timestamp": str(event["Timestamp"]),
                        }
                    )
        return failed

    def diagnose_stack_failure(self, stack_name: str) -> Dict[str, Any]:
        """Diagnose stack failure and return detailed information."""
        diagnosis: Dict[str, Any] = {
            "stack_name": stack_name,
            "status": None,
            "failed_resources": [],
            "recommendations": [],
        }

        try:
            status = self.get_stack_status(stack_name)
        except ClientError as e:
            diagnosis["error"] = str(e)
            diagnosis["recommendations"].extend(failure_hints(str(e)))
            return diagnosis

        diagnosis["status"] = status

        if not status:
            diagnosis["recommendations"].append("Stack does not exist")
            return diagnosis

        try:
            diagnosis["failed_resources"] = self.get_failed_events(stack_name)
        except ClientError as e:
            diagnosis["error"] = str(e)

        for resource in diagnosis["failed_resources"]:
            for hint in failure_hints(resource["reason"]):
                if hint not in diagnosis["recommendations"]:
                    diagnosis["recommendations"].append(hint)

        if status == "ROLLBACK_COMPLETE":
            diagnosis["recommendations"].append(
                "Stack is in ROLLBACK_COMPLETE state. Uninstall it before installing again."
            )
        elif status == "DELETE_FAILED":
            diagnosis["recommendations"].append(
                "Stack deletion failed. Check the failed resources and retry the uninstall."
            )

        return diagnosis
