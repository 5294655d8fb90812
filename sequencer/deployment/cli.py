"""CLI for contract deployment sequencing."""

import asyncio
import json
from pathlib import Path
from typing import List, Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from ..config import deploy_settings, settings
from ..core.exceptions import SequencerError
from ..observability import setup_logging, setup_telemetry, shutdown_telemetry
from .deployer import DEFAULT_SIMULATED_SENDER, SimulatedDeployer, Web3ContractDeployer
from .loader import ManifestLoader, ManifestLoadError
from .models import DeploymentManifest, NetworkConfig
from .registry import AddressRegistry
from .resolver import DependencyResolver
from .sequencer import DeploymentSequencer

app = typer.Typer(
    name="sequencer",
    help="Contract deployment sequencer - deploy manifests in dependency order",
    add_completion=False,
)
console = Console()


@app.callback()
def configure() -> None:
    """Configure logging and tracing for every command."""
    setup_logging(
        level=settings.log_level,
        json_format=settings.log_json,
        log_file=settings.log_file,
    )
    setup_telemetry(
        service_name=settings.otel_service_name,
        endpoint=settings.otel_endpoint,
        protocol=settings.otel_protocol,
        enabled=settings.otel_enabled,
    )


def _network(manifest: DeploymentManifest, name: str) -> NetworkConfig:
    """Get a network with DEPLOY_ACCOUNTS merged over its named accounts."""
    network = manifest.get_network(name)
    if not deploy_settings.accounts:
        return network
    return NetworkConfig(
        **{
            **network.model_dump(),
            "accounts": {**network.accounts, **deploy_settings.accounts},
        }
    )


def _registry(state_dir: Optional[Path]) -> AddressRegistry:
    return AddressRegistry.in_state_dir(state_dir or Path(deploy_settings.state_dir))


# ============================================================================
# Validate Command
# ============================================================================


@app.command()
def validate(
    manifest_file: Path = typer.Argument(..., help="Path to manifest YAML file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Validate a deployment manifest."""
    console.print(f"[bold]Validating manifest:[/bold] {manifest_file}")

    loader = ManifestLoader()
    resolver = DependencyResolver()

    try:
        manifest = loader.load(manifest_file)
        resolver.check_acyclic(manifest.units)
    except ManifestLoadError as e:
        console.print(f"[red]✗ Validation failed:[/red]\n{escape(str(e))}")
        raise typer.Exit(code=1)
    except SequencerError as e:
        console.print(f"[red]✗ Validation failed:[/red]\n{escape(str(e))}")
        raise typer.Exit(code=1)

    console.print("[green]✓ Manifest is valid[/green]")

    if verbose:
        console.print(f"\n[bold]Project:[/bold] {manifest.project.name} v{manifest.project.version}")
        console.print(f"[bold]Networks:[/bold] {', '.join(manifest.networks) or 'none'}")
        console.print(f"[bold]Units:[/bold] {len(manifest.units)}")

        table = Table(title="Units")
        table.add_column("Name", style="cyan")
        table.add_column("Contract", style="green")
        table.add_column("Tags", style="magenta")
        table.add_column("Arguments", style="yellow")

        for unit in manifest.units:
            table.add_row(
                unit.name,
                unit.artifact,
                ", ".join(sorted(unit.tags)),
                ", ".join(arg.describe() for arg in unit.args) or "-",
            )

        console.print(table)


# ============================================================================
# Plan Command
# ============================================================================


@app.command()
def plan(
    manifest_file: Path = typer.Argument(..., help="Path to manifest YAML file"),
    network: str = typer.Option(..., "--network", "-n", help="Target network"),
    tags: Optional[List[str]] = typer.Option(None, "--tag", "-t", help="Deploy only these tags"),
    state_dir: Optional[Path] = typer.Option(None, "--state-dir", help="Registry directory"),
    output_format: str = typer.Option(
        "table", "--format", "-f", help="Output format: table, json"
    ),
):
    """Show the deployment order without deploying (dry run)."""
    loader = ManifestLoader()
    resolver = DependencyResolver()

    try:
        manifest = loader.load(manifest_file)
        net = _network(manifest, network)
        deployment_plan = resolver.plan(manifest.units, tags)
        registry = _registry(state_dir)
    except ManifestLoadError as e:
        console.print(f"[red]✗ Validation failed:[/red]\n{escape(str(e))}")
        raise typer.Exit(code=1)
    except ValidationError as e:
        console.print(f"[red]✗ Invalid configuration:[/red]\n{escape(str(e))}")
        raise typer.Exit(code=1)
    except SequencerError as e:
        console.print(f"[red]✗ Planning failed:[/red]\n{escape(str(e))}")
        raise typer.Exit(code=1)

    deployed = registry.addresses(net.name)

    if output_format == "json":
        units = {}
        for name in deployment_plan.order:
            unit = manifest.get_unit(name)
            units[name] = {
                "contract": unit.artifact,
                "args": [arg.describe() for arg in unit.args],
                "dependencies": deployment_plan.dependencies[name],
                "address": deployed.get(name),
            }
        typer.echo(
            json.dumps(
                {
                    "network": net.name,
                    "order": deployment_plan.order,
                    "stages": deployment_plan.stages,
                    "units": units,
                },
                indent=2,
            )
        )
        return

    console.print(f"[bold]Deployment plan for {manifest.project.name} on {net.name}[/bold]")

    stage_table = Table(title="Deployment Stages")
    stage_table.add_column("Stage", style="cyan")
    stage_table.add_column("Units", style="green")
    stage_table.add_column("Count", style="yellow")

    for idx, stage in enumerate(deployment_plan.stages):
        stage_table.add_row(str(idx + 1), ", ".join(stage), str(len(stage)))

    console.print(stage_table)

    unit_table = Table(title="Units")
    unit_table.add_column("Unit", style="cyan")
    unit_table.add_column("Arguments", style="yellow")
    unit_table.add_column("Status", style="green")

    for name in deployment_plan.order:
        unit = manifest.get_unit(name)
        status = deployed.get(name, "[dim]pending[/dim]")
        unit_table.add_row(
            name, ", ".join(arg.describe() for arg in unit.args) or "-", status
        )

    console.print(unit_table)


# ============================================================================
# Run Command
# ============================================================================


@app.command()
def run(
    manifest_file: Path = typer.Argument(..., help="Path to manifest YAML file"),
    network: str = typer.Option(..., "--network", "-n", help="Target network"),
    tags: Optional[List[str]] = typer.Option(None, "--tag", "-t", help="Deploy only these tags"),
    state_dir: Optional[Path] = typer.Option(None, "--state-dir", help="Registry directory"),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Simulate against an in-memory copy of the registry"
    ),
    reset: bool = typer.Option(
        False, "--reset", help="Forget the network's recorded deployments first"
    ),
):
    """Deploy every pending unit of a manifest."""
    console.print(f"[bold]Deploying manifest:[/bold] {manifest_file}")

    async def _deploy():
        loader = ManifestLoader()
        resolver = DependencyResolver()

        try:
            manifest = loader.load(manifest_file)
            net = _network(manifest, network)
            registry = _registry(state_dir)

            if dry_run:
                registry = registry.snapshot()
                deployer = SimulatedDeployer(
                    chain_id=net.chain_id,
                    sender=net.accounts.get("deployer", DEFAULT_SIMULATED_SENDER),
                )
                console.print("[yellow]Dry run: nothing will be sent or persisted[/yellow]")
            else:
                deployer = Web3ContractDeployer.from_settings(net, deploy_settings)

            if reset:
                removed = registry.reset(net.name)
                console.print(f"[yellow]Forgot {removed} recorded deployments on {net.name}[/yellow]")

            units = resolver.select(manifest.units, tags) if tags else manifest.units

            sequencer = DeploymentSequencer(deployer, registry, net, resolver)
            report = await sequencer.run(units)

        except ManifestLoadError as e:
            console.print(f"[red]✗ Validation failed:[/red]\n{escape(str(e))}")
            raise typer.Exit(code=1)
        except ValidationError as e:
            console.print(f"[red]✗ Invalid configuration:[/red]\n{escape(str(e))}")
            raise typer.Exit(code=1)
        except SequencerError as e:
            console.print(f"[red]✗ Deployment failed:[/red]\n{escape(str(e))}")
            raise typer.Exit(code=1)
        finally:
            shutdown_telemetry()

        table = Table(title=f"Deployments on {report.network}")
        table.add_column("Unit", style="cyan")
        table.add_column("Address", style="green")
        table.add_column("Outcome", style="yellow")

        for result in report.results:
            outcome = "already deployed" if result.reused else result.status.value
            table.add_row(result.name, result.address or "-", outcome)

        console.print(table)
        console.print(
            Panel(
                f"[green]✓ Run complete[/green]\n\n"
                f"Run ID: {report.run_id}\n"
                f"Deployed: {len(report.deployed)}\n"
                f"Already deployed: {len(report.reused)}",
                title="Deployment Complete",
            )
        )

    asyncio.run(_deploy())


# ============================================================================
# Addresses Command
# ============================================================================


@app.command()
def addresses(
    network: str = typer.Option(..., "--network", "-n", help="Network name"),
    state_dir: Optional[Path] = typer.Option(None, "--state-dir", help="Registry directory"),
    output_format: str = typer.Option(
        "table", "--format", "-f", help="Output format: table, json"
    ),
):
    """Show recorded deployment addresses."""
    try:
        registry = _registry(state_dir)
    except SequencerError as e:
        console.print(f"[red]✗ Cannot read registry:[/red]\n{escape(str(e))}")
        raise typer.Exit(code=1)

    recorded = registry.addresses(network)

    if output_format == "json":
        typer.echo(json.dumps(recorded, indent=2))
        return

    if not recorded:
        console.print(f"[yellow]No deployments recorded on {network}[/yellow]")
        return

    table = Table(title=f"Deployments on {network}")
    table.add_column("Unit", style="cyan")
    table.add_column("Contract", style="magenta")
    table.add_column("Address", style="green")
    table.add_column("Block", style="yellow")

    for record in registry.records(network):
        table.add_row(
            record.name,
            record.contract,
            record.address,
            str(record.block_number) if record.block_number is not None else "-",
        )

    console.print(table)


# ============================================================================
# Main
# ============================================================================


def main():
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
