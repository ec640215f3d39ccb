#!/usr/bin/env python3
"""
Installer CLI for the Security Hub read-only access stack.
"""

import logging
import sys
from typing import List, Optional

import click
from click.core import ParameterSource

from config import DEFAULT_REGION, DEFAULT_STACK_NAME, ConfigError, load_config
from deployment import AccessStackInstaller, InstallResult, InstallStatus
from cloudformation import failure_hints
from iam import AccessStackTemplate

logger = logging.getLogger(__name__)

CONTEXT_SETTINGS = {"help_option_names": ["--help", "-h"]}

# Flags that count as an explicit request from the user
EXPLICIT_PARAMS = ("stack_name", "region", "uninstall", "config_file")


def setup_logging(verbose: bool = False) -> None:
    """Configure root logging for the CLI."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
    )


class InstallerCommand(click.Command):
    """Command that reports usage errors with the full help text and exit code 1."""

    def parse_args(self, ctx: click.Context, args: List[str]) -> List[str]:
        try:
            return super().parse_args(ctx, args)
        except click.UsageError as e:
            click.echo(f"Error: {e.format_message()}", err=True)
            click.echo(ctx.get_help(), err=True)
            ctx.exit(1)


def _not_blank(ctx: click.Context, param: click.Parameter, value: Optional[str]) -> Optional[str]:
    if value is not None and not value.strip():
        raise click.BadParameter("must not be empty")
    return value


def _params_provided(ctx: click.Context) -> bool:
    return any(
        ctx.get_parameter_source(name) == ParameterSource.COMMANDLINE
        for name in EXPLICIT_PARAMS
    )


def _print_result(result: InstallResult) -> None:
    if result.status == InstallStatus.FAILED:
        click.echo(click.style(f"Error: {result.message}", fg="red"), err=True)
        if result.report:
            click.echo(result.report, err=True)
        for hint in result.hints:
            click.echo(click.style(f"Hint: {hint}", fg="yellow"), err=True)
    else:
        click.echo(result.message)


def _print_credentials(result: InstallResult) -> None:
    for label, value in AccessStackInstaller.credential_lines(result.outputs):
        click.echo(click.style(f"{label}: ", fg="green") + value)


@click.command(cls=InstallerCommand, context_settings=CONTEXT_SETTINGS)
@click.option(
    "--stack-name",
    callback=_not_blank,
    help=f"Specify the CloudFormation stack name (default: {DEFAULT_STACK_NAME})",
)
@click.option(
    "--region",
    callback=_not_blank,
    help=f"Specify the AWS region (default: {DEFAULT_REGION})",
)
@click.option("--uninstall", is_flag=True, help="Uninstall the specified stack")
@click.option("--profile", help="AWS profile to use")
@click.option(
    "--config",
    "config_file",
    type=click.Path(dir_okay=False),
    help="YAML file with installer settings",
)
@click.option(
    "--template-file",
    type=click.Path(dir_okay=False),
    help="Also write the rendered template to this file",
)
@click.option(
    "--print-template", is_flag=True, help="Print the rendered template and exit"
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def main(
    ctx: click.Context,
    stack_name: Optional[str],
    region: Optional[str],
    uninstall: bool,
    profile: Optional[str],
    config_file: Optional[str],
    template_file: Optional[str],
    print_template: bool,
    verbose: bool,
) -> None:
    """Install or uninstall the IAM user, role and access key that grant
    read-only Security Hub access through a CloudFormation stack."""
    setup_logging(verbose)

    try:
        config = load_config(
            config_file,
            stack_name=stack_name,
            region=region,
            profile=profile,
            template_file=template_file,
        )
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    errors = config.validate()
    if errors:
        for error in errors:
            click.echo(f"Error: {error}", err=True)
        click.echo(ctx.get_help(), err=True)
        sys.exit(1)

    logger.debug(f"Resolved configuration: {config.to_dict()}")

    if print_template:
        template = AccessStackTemplate(config.stack_name, config.managed_policy_arns)
        click.echo(template.to_yaml())
        return

    try:
        installer = AccessStackInstaller(config)
    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if installer.check_credentials() is None:
        click.echo(
            "Error: AWS credentials are not configured or could not be verified. "
            "Run with --verbose for details.",
            err=True,
        )
        sys.exit(1)

    try:
        result = _run(ctx, installer, uninstall)
    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        for hint in failure_hints(str(e)):
            click.echo(click.style(f"Hint: {hint}", fg="yellow"), err=True)
        sys.exit(1)

    if result is None:
        return

    has_credentials = result.status == InstallStatus.SUCCESS and bool(result.outputs)
    if has_credentials:
        click.echo("Fetching stack outputs...")

    _print_result(result)
    if has_credentials:
        _print_credentials(result)

    if not result.success:
        sys.exit(1)


def _run(
    ctx: click.Context, installer: AccessStackInstaller, uninstall: bool
) -> Optional[InstallResult]:
    name, region = installer.stack_name, installer.region

    # With no explicit flags, an existing default stack means there is nothing to do
    if not _params_provided(ctx) and installer.stack_exists():
        click.echo(f"Default stack '{name}' exists in region '{region}'.")
        click.echo(ctx.get_help())
        return None

    exists = installer.stack_exists()

    if uninstall:
        if exists:
            click.echo(
                f"Uninstalling CloudFormation stack '{name}' from region '{region}'..."
            )
            click.echo("Waiting for stack deletion to complete...")
        return installer.uninstall()

    if not exists:
        click.echo(f"Installing CloudFormation stack '{name}' in region '{region}'...")
        click.echo("Waiting for stack creation to complete...")
    return installer.install()


if __name__ == "__main__":
    main()
