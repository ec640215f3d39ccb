"""
Tests for the access stack CloudFormation template.
"""

import pytest

from config import SECURITY_HUB_READ_ONLY_ARN
from iam.access_template import OUTPUT_FIELDS, AccessStackTemplate


class TestAccessStackTemplate:
    """Test AccessStackTemplate generation."""

    @pytest.fixture
    def template(self):
        return AccessStackTemplate("DemoStack")

    @pytest.fixture
    def template_dict(self, template):
        return template.to_dict()

    def test_derived_names(self, template):
        """Test resource names are derived from the stack name."""
        assert template.user_name == "DemoStack_User"
        assert template.role_name == "DemoStack_Role"
        assert template.inline_policy_name == "DemoStack_Inline"

    def test_header(self, template_dict):
        assert template_dict["AWSTemplateFormatVersion"] == "2010-09-09"
        assert "IAM user" in template_dict["Description"]

    def test_parameters(self, template_dict):
        """Test user and role name parameters default to stack-derived names."""
        params = template_dict["Parameters"]

        assert params["IAMUserName"]["Type"] == "String"
        assert params["IAMUserName"]["Default"] == "DemoStack_User"
        assert params["IAMRoleName"]["Type"] == "String"
        assert params["IAMRoleName"]["Default"] == "DemoStack_Role"

    def test_resource_types(self, template_dict):
        resources = template_dict["Resources"]

        assert resources["CFNUser"]["Type"] == "AWS::IAM::User"
        assert resources["CFNRole"]["Type"] == "AWS::IAM::Role"
        assert resources["CFNUserInlinePolicy"]["Type"] == "AWS::IAM::Policy"
        assert resources["CFNUserAccessKey"]["Type"] == "AWS::IAM::AccessKey"

    def test_user(self, template_dict):
        user = template_dict["Resources"]["CFNUser"]
        assert user["Properties"]["UserName"] == {"Ref": "IAMUserName"}

    def test_role_trusts_only_user(self, template_dict):
        """Test the role can only be assumed by the stack's user."""
        role = template_dict["Resources"]["CFNRole"]
        props = role["Properties"]

        assert role["DependsOn"] == "CFNUser"
        assert props["RoleName"] == {"Ref": "IAMRoleName"}
        assert props["ManagedPolicyArns"] == [SECURITY_HUB_READ_ONLY_ARN]

        statements = props["AssumeRolePolicyDocument"]["Statement"]
        assert len(statements) == 1
        assert statements[0]["Effect"] == "Allow"
        assert statements[0]["Action"] == "sts:AssumeRole"
        assert statements[0]["Principal"] == {"AWS": {"Fn::GetAtt": ["CFNUser", "Arn"]}}

    def test_inline_policy_scoped_to_role(self, template_dict):
        """Test the user may assume only this stack's role."""
        policy = template_dict["Resources"]["CFNUserInlinePolicy"]["Properties"]

        assert policy["PolicyName"] == "DemoStack_Inline"
        assert policy["Users"] == [{"Ref": "IAMUserName"}]

        statement = policy["PolicyDocument"]["Statement"][0]
        assert statement["Action"] == "sts:AssumeRole"
        assert statement["Resource"] == {"Fn::GetAtt": ["CFNRole", "Arn"]}

    def test_access_key(self, template_dict):
        key = template_dict["Resources"]["CFNUserAccessKey"]
        assert key["Properties"]["UserName"] == {"Ref": "CFNUser"}

    def test_outputs(self, template_dict):
        """Test every credential output is present with its description."""
        outputs = template_dict["Outputs"]

        assert set(outputs) == {key for key, _ in OUTPUT_FIELDS}
        assert outputs["AccountID"]["Value"] == {"Ref": "AWS::AccountId"}
        assert outputs["Region"]["Value"] == {"Ref": "AWS::Region"}
        assert outputs["RoleARN"]["Value"] == {"Fn::GetAtt": ["CFNRole", "Arn"]}
        assert outputs["AccessKey"]["Value"] == {"Ref": "CFNUserAccessKey"}
        assert outputs["SecretKey"]["Value"] == {
            "Fn::GetAtt": ["CFNUserAccessKey", "SecretAccessKey"]
        }
        for key, label in OUTPUT_FIELDS:
            assert outputs[key]["Description"] == label

    def test_output_display_order(self):
        assert [key for key, _ in OUTPUT_FIELDS] == [
            "AccountID",
            "Region",
            "AccessKey",
            "SecretKey",
            "RoleARN",
        ]

    def test_stack_name_substituted_consistently(self):
        """Test rendering with a different name changes every derived name."""
        first = AccessStackTemplate("Alpha").to_yaml()
        second = AccessStackTemplate("Beta").to_yaml()

        for suffix in ("_User", "_Role", "_Inline"):
            assert f"Alpha{suffix}" in first
            assert f"Beta{suffix}" in second
            assert f"Beta{suffix}" not in first
            assert f"Alpha{suffix}" not in second

    def test_custom_managed_policies(self):
        arns = ["arn:aws:iam::aws:policy/ReadOnlyAccess"]
        template = AccessStackTemplate("Demo", managed_policy_arns=arns)

        role = template.to_dict()["Resources"]["CFNRole"]
        assert role["Properties"]["ManagedPolicyArns"] == arns

    def test_empty_stack_name(self):
        with pytest.raises(ValueError):
            AccessStackTemplate("")

    def test_write(self, template, tmp_path):
        """Test the YAML template is written to disk."""
        path = template.write(tmp_path / "nested" / "template.yaml")

        assert path.exists()
        content = path.read_text()
        assert "DemoStack_User" in content
        assert "AWSSecurityHubReadOnlyAccess" in content
