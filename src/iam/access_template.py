"""
CloudFormation template for the Security Hub read-only access stack.

The stack creates:
  1. An IAM user,
  2. An IAM role trusted only by that user,
  3. The AWSSecurityHubReadOnlyAccess managed policy on the role,
  4. An inline policy on the user allowing sts:AssumeRole for the role only,
  5. An access key for the user,
  6. Outputs for the access key, role ARN, region and account ID.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from troposphere import GetAtt, Output, Parameter, Ref, Template
from troposphere import iam

from config import SECURITY_HUB_READ_ONLY_ARN

# Display order for stack outputs, with their labels
OUTPUT_FIELDS = [
    ("AccountID", "Account ID"),
    ("Region", "Region"),
    ("AccessKey", "Access Key"),
    ("SecretKey", "Secret Key"),
    ("RoleARN", "Role ARN"),
]


class AccessStackTemplate:
    """Build the IAM access stack template for a given stack name."""

    def __init__(
        self, stack_name: str, managed_policy_arns: Optional[List[str]] = None
    ):
        """
        Initialize and build the template.

        Args:
            stack_name: CloudFormation stack name, used as the prefix for
                every IAM resource name
            managed_policy_arns: Managed policies attached to the role
        """
        if not stack_name:
            raise ValueError("stack_name must not be empty")

        self.stack_name = stack_name
        self.managed_policy_arns = managed_policy_arns or [SECURITY_HUB_READ_ONLY_ARN]
        self.template = Template()

        self._create_template()

    @property
    def user_name(self) -> str:
        return f"{self.stack_name}_User"

    @property
    def role_name(self) -> str:
        return f"{self.stack_name}_Role"

    @property
    def inline_policy_name(self) -> str:
        return f"{self.stack_name}_Inline"

    def _create_template(self) -> None:
        self.template.set_version("2010-09-09")
        self.template.set_description(
            "CloudFormation template that creates an IAM user, an IAM role "
            "trusted only by that user with read-only Security Hub access, an "
            "inline policy allowing the user to assume the role, and an access "
            "key for the user."
        )

        self._create_parameters()
        self._create_user()
        self._create_role()
        self._create_inline_policy()
        self._create_access_key()
        self._create_outputs()

    def _create_parameters(self) -> None:
        self.user_name_param = self.template.add_parameter(
            Parameter(
                "IAMUserName",
                Type="String",
                Description="Name of the IAM User to create.",
                Default=self.user_name,
            )
        )
        self.role_name_param = self.template.add_parameter(
            Parameter(
                "IAMRoleName",
                Type="String",
                Description="Name of the IAM Role to create.",
                Default=self.role_name,
            )
        )

    def _create_user(self) -> None:
        self.user = self.template.add_resource(
            iam.User("CFNUser", UserName=Ref(self.user_name_param))
        )

    def _create_role(self) -> None:
        # Only the stack's own user may assume the role
        assume_role_policy = {
            "Version": "2012-10-17",
            "Statement": [
                {
                    "Effect": "Allow",
                    "Principal": {"AWS": GetAtt(self.user, "Arn")},
                    "Action": "sts:AssumeRole",
                }
            ],
        }

        self.role = self.template.add_resource(
            iam.Role(
                "CFNRole",
                DependsOn=self.user.title,
                RoleName=Ref(self.role_name_param),
                AssumeRolePolicyDocument=assume_role_policy,
                ManagedPolicyArns=list(self.managed_policy_arns),
            )
        )

    def _create_inline_policy(self) -> None:
        self.inline_policy = self.template.add_resource(
            iam.PolicyType(
                "CFNUserInlinePolicy",
                PolicyName=self.inline_policy_name,
                PolicyDocument={
                    "Version": "2012-10-17",
                    "Statement": [
                        {
                            "Effect": "Allow",
                            "Action": "sts:AssumeRole",
                            "Resource": GetAtt(self.role, "Arn"),
                        }
                    ],
                },
                Users=[Ref(self.user_name_param)],
            )
        )

    def _create_access_key(self) -> None:
        self.access_key = self.template.add_resource(
            iam.AccessKey("CFNUserAccessKey", UserName=Ref(self.user))
        )

    def _create_outputs(self) -> None:
        values = {
            "AccountID": Ref("AWS::AccountId"),
            "Region": Ref("AWS::Region"),
            "RoleARN": GetAtt(self.role, "Arn"),
            "AccessKey": Ref(self.access_key),
            "SecretKey": GetAtt(self.access_key, "SecretAccessKey"),
        }
        labels = dict(OUTPUT_FIELDS)

        for key in ("AccountID", "Region", "RoleARN", "AccessKey", "SecretKey"):
            self.template.add_output(
                Output(key, Description=labels[key], Value=values[key])
            )

    def to_dict(self) -> Dict[str, Any]:
        """Convert template to dictionary."""
        return json.loads(self.template.to_json())

    def to_yaml(self) -> str:
        """Convert template to YAML."""
        return self.template.to_yaml()

    def to_json(self) -> str:
        """Convert template to JSON."""
        return self.template.to_json()

    def write(self, path: Union[str, Path]) -> Path:
        """Write the YAML template to a file and return its path."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.to_yaml())
        return path
