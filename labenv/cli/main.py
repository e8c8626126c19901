"""Main CLI entry point using Typer."""

import logging
import signal
import sys
from typing import Dict, List, Optional

import typer
from botocore.exceptions import BotoCoreError, ClientError
from rich.console import Console
from rich.table import Table

from ..aws.client import TeardownClients, create_boto_client
from ..aws.credentials import CredentialValidationError, validate_credentials
from ..config import Config
from ..tagging import parse_tags
from ..terraform.runner import TerraformNotFoundError, TerraformRunner
from ..utils.logging import setup_logging

logger = logging.getLogger(__name__)

# Create Typer app
app = typer.Typer(
    name="labenv",
    help="Ephemeral lab environment manager - bring-up, tagging and clean teardown of AWS/EKS environments",
    add_completion=False,
)

# Create Rich console for output
console = Console()

# Global config
config: Optional[Config] = None


@app.callback()
def main(
    env: Optional[str] = typer.Option(None, "--env", "-e", help="Environment name (default: dev or $ENV)"),
    region: Optional[str] = typer.Option(None, "--region", "-r", help="AWS region (default: us-east-1 or $REGION)"),
    profile: Optional[str] = typer.Option(None, "--profile", "-p", help="AWS profile name"),
    config_path: Optional[str] = typer.Option(
        None, "--config", help="Config file (default: $LABENV_CONFIG or ~/.labenv/config.yaml)"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress output except errors"),
    no_color: bool = typer.Option(False, "--no-color", help="Disable colored output"),
):
    """Ephemeral lab environment manager."""
    global config

    try:
        config = Config.load(config_path)
    except ValueError as e:
        console.print(f"✗ {e}", style="bold red")
        raise typer.Exit(code=1)

    # CLI options win over file and environment
    config.update({"environment": env, "region": region, "aws_profile": profile})

    log_level = "ERROR" if quiet else ("DEBUG" if verbose else config.log_level)
    setup_logging(level=log_level, verbose=verbose)

    if no_color:
        console.no_color = True


def _runner() -> TerraformRunner:
    return TerraformRunner(
        config.terraform_dir,
        terraform_bin=config.terraform_bin,
        output_handler=lambda line: console.print(line, markup=False, highlight=False),
    )


def _parse_tags(tag_strings: Optional[List[str]]) -> Dict[str, str]:
    try:
        return parse_tags(tag_strings or [])
    except ValueError as e:
        console.print(f"✗ {e}", style="bold red")
        raise typer.Exit(code=1)


def _validate_credentials() -> dict:
    try:
        identity = validate_credentials(config.aws_profile, config.region)
    except CredentialValidationError as e:
        console.print(f"✗ {e}", style="bold red")
        raise typer.Exit(code=1)

    console.print(f"✓ Authenticated as [cyan]{identity['arn']}[/cyan] (account {identity['account_id']})")
    return identity


@app.command()
def version():
    """Show version information."""
    import boto3

    from .. import __version__

    console.print(f"labenv version {__version__}")
    console.print(f"Python {sys.version.split()[0]}")
    console.print(f"boto3 {boto3.__version__}")


@app.command()
def up(
    tag: Optional[List[str]] = typer.Option(None, "--tag", "-t", help="Extra tag key=value (repeatable)"),
):
    """Create the environment: init, staged applies, full apply, then kubeconfig."""
    from ..bringup import EnvironmentBringUp

    extra_tags = _parse_tags(tag)

    console.print(f"🚀 Bringing up [bold cyan]{config.environment}[/bold cyan] in {config.region}\n")
    _validate_credentials()

    try:
        code = EnvironmentBringUp(config, _runner(), extra_tags=extra_tags).run()
    except TerraformNotFoundError as e:
        console.print(f"✗ {e}", style="bold red")
        raise typer.Exit(code=127)

    if code != 0:
        console.print(f"\n✗ Bring-up failed (exit code {code})", style="bold red")
        raise typer.Exit(code=code)

    console.print(f"\n✓ [bold green]{config.environment} is up[/bold green]. Try: kubectl get nodes")


@app.command()
def plan(
    tag: Optional[List[str]] = typer.Option(None, "--tag", "-t", help="Extra tag key=value (repeatable)"),
):
    """Show what Terraform would change."""
    from ..bringup import prepare_variables

    prepare_variables(config, _parse_tags(tag))
    try:
        result = _runner().plan()
    except TerraformNotFoundError as e:
        console.print(f"✗ {e}", style="bold red")
        raise typer.Exit(code=127)

    if not result.ok:
        raise typer.Exit(code=result.returncode)


@app.command()
def kube():
    """Point the local kubeconfig at the environment's EKS cluster."""
    from ..cluster import update_kubeconfig

    code = update_kubeconfig(config.cluster_name, config.region, config.aws_profile)
    if code != 0:
        raise typer.Exit(code=code)

    console.print(f"✓ kubectl configured for [cyan]{config.cluster_name}[/cyan]")


@app.command()
def down(
    dry_run: bool = typer.Option(False, "--dry-run", help="List what would be deleted without deleting anything"),
    skip_cleanup: bool = typer.Option(
        False, "--skip-cleanup", help="Skip dependent resource cleanup and run terraform destroy directly"
    ),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation prompt"),
):
    """Tear the environment down.

    Removes load balancers, target groups, security groups, network interfaces
    and elastic IPs created outside Terraform, then runs terraform destroy and
    checks for leaked resources. The exit code is terraform destroy's.
    """
    from ..teardown.audit import AuditStorage
    from ..teardown.pipeline import TeardownPipeline
    from ..teardown.reporter import TeardownReporter

    _validate_credentials()

    if not dry_run and not yes:
        confirm = typer.confirm(
            f"Destroy environment '{config.environment}' in {config.region}? This cannot be undone", default=False
        )
        if not confirm:
            console.print("Cancelled")
            raise typer.Exit(code=0)

    pipeline = TeardownPipeline(
        config,
        _runner(),
        audit_storage=None if dry_run else AuditStorage(config.audit_dir),
    )
    reporter = TeardownReporter(console)

    def _interrupt(signum, frame):
        # A second interrupt falls through to the default handler.
        signal.signal(signal.SIGINT, signal.default_int_handler)
        console.print("\n[yellow]Interrupt received; stopping after the current step[/yellow]")
        pipeline.cancel()

    previous_handler = signal.signal(signal.SIGINT, _interrupt)
    try:
        result = pipeline.run(dry_run=dry_run, skip_cleanup=skip_cleanup)
    except TerraformNotFoundError as e:
        console.print(f"✗ {e}", style="bold red")
        raise typer.Exit(code=127)
    finally:
        signal.signal(signal.SIGINT, previous_handler)

    if dry_run:
        reporter.display_plan(result.summary)
        raise typer.Exit(code=0)

    if not skip_cleanup:
        reporter.display_summary(result.summary)

    if result.summary.cancelled:
        console.print("\n✗ Teardown cancelled before terraform destroy", style="bold yellow")
        console.print("  Re-run 'labenv down' to finish tearing the environment down")
    elif result.destroy_result is not None and not result.destroy_result.ok:
        returncode = result.destroy_result.returncode
        console.print(f"\n✗ terraform destroy failed (exit code {returncode})", style="bold red")
        console.print("\n[bold]Recovery:[/bold]")
        console.print("  1. Re-run 'labenv down' to clean up dependent resources again and retry destroy")
        console.print("  2. Check 'labenv cleanup-check' for load balancers or security groups still present")
        console.print("  3. Inspect the resources named in the terraform error above")
    else:
        console.print(f"\n✓ [bold green]{config.environment} destroyed[/bold green]")
        if result.leaks is not None:
            console.print(reporter.format_leaks(result.leaks))

    if result.audit_path:
        console.print(f"[dim]Audit log: {result.audit_path}[/dim]")

    raise typer.Exit(code=result.exit_code)


@app.command("cleanup-check")
def cleanup_check(
    export: Optional[str] = typer.Option(None, "--export", help="Export leaked resources to a JSON file"),
):
    """Report load balancers and security groups still owned by the environment."""
    from ..teardown.reporter import TeardownReporter
    from ..teardown.state import StateReader
    from ..teardown.verification import LeakChecker

    _validate_credentials()

    try:
        environment = StateReader(_runner()).read(config.environment, config.region)
    except TerraformNotFoundError as e:
        console.print(f"✗ {e}", style="bold red")
        raise typer.Exit(code=127)

    console.print(f"\n🔍 Checking for leaked resources of [bold cyan]{environment.name}[/bold cyan]\n")

    try:
        clients = TeardownClients.create(environment.region, config.aws_profile)
        leaks = LeakChecker(environment, clients).check()
    except (ClientError, BotoCoreError) as e:
        console.print(f"✗ Leak check failed: {e}", style="bold red")
        raise typer.Exit(code=1)

    reporter = TeardownReporter(console)
    console.print(reporter.format_leaks(leaks))

    if export:
        reporter.export_leaks_json(leaks, export)
        console.print(f"\n✓ Exported leaked resources to: [cyan]{export}[/cyan]")


@app.command()
def security():
    """Verify that GuardDuty, AWS Config and Security Hub are enabled."""
    from ..security.reporter import BaselineReporter
    from ..security.scanner import BaselineScanner

    _validate_credentials()
    console.print(f"\n🔍 Verifying security baseline services in {config.region}\n")

    scanner = BaselineScanner(
        lambda service: create_boto_client(service, region_name=config.region, profile_name=config.aws_profile),
        config.region,
    )

    try:
        result = scanner.scan()
    except BotoCoreError as e:
        console.print(f"✗ Security baseline check failed: {e}", style="bold red")
        raise typer.Exit(code=1)

    console.print(BaselineReporter().format_terminal(result))


@app.command()
def history(
    limit: int = typer.Option(10, "--limit", "-n", help="Number of recent teardowns to show"),
):
    """Show recent teardown runs from the audit log."""
    from ..teardown.audit import AuditStorage

    runs = AuditStorage(config.audit_dir).query_teardowns(environment=config.environment)
    if not runs:
        console.print(f"No teardown runs recorded for {config.environment}")
        return

    table = Table(title=f"Teardown History ({config.environment})", show_header=True, header_style="bold magenta")
    table.add_column("Run", style="cyan")
    table.add_column("Status")
    table.add_column("Attempts", justify="right")
    table.add_column("Destroy Exit", justify="right")
    table.add_column("Leaks", justify="right")

    for run in runs[-limit:]:
        teardown = run["teardown"]
        leaks = run.get("leaks")
        destroy_code = teardown.get("destroy_returncode")
        table.add_row(
            teardown["run_id"],
            teardown["status"],
            str(teardown["total_attempts"]),
            "" if destroy_code is None else str(destroy_code),
            "" if leaks is None else str(len(leaks)),
        )

    console.print(table)


def cli_main():
    """Entry point for console script."""
    app()


if __name__ == "__main__":
    cli_main()
