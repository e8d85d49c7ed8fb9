"""
Command Line Interface for the janitor resource tracker.
"""

from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from ..config import get_settings
from ..db.tracker import ResourceTracker
from ..logging_config import configure_logging
from ..resources import CleanupState, Resource, ResourceType
from ..rules.volume import RuleConfig, RuleOutcome, make_rule

app = typer.Typer(help="Janitor Resource Tracker - track cloud resources for cleanup")
console = Console()


def get_tracker() -> ResourceTracker:
    """Tracker for the configured database."""
    return ResourceTracker.from_settings(get_settings())


@app.callback()
def main() -> None:
    settings = get_settings()
    configure_logging(settings.log_level, settings.log_format)


@app.command("init-db")
def init_db():
    """Create the resource table if it does not exist."""
    tracker = get_tracker()
    tracker.ensure_schema()
    console.print(f"✅ Table [bold]{tracker.table.name}[/bold] is ready")


@app.command("list")
def list_command(
    region: str = typer.Option(..., help="Region to list resources in"),
    resource_type: Optional[ResourceType] = typer.Option(
        None, "--type", help="Only resources of this type"
    ),
    state: Optional[CleanupState] = typer.Option(None, help="Only resources in this state"),
):
    """List tracked resources in a region."""
    resources = get_tracker().list_resources(region, resource_type=resource_type, state=state)

    table = Table(
        title=f"Tracked resources in {region}", show_header=True, header_style="bold magenta"
    )
    table.add_column("Resource", style="cyan")
    table.add_column("Type")
    table.add_column("State", style="green")
    table.add_column("Owner")
    table.add_column("Expected termination")

    for resource in resources:
        fields = resource.to_field_map()
        table.add_row(
            resource.resource_id,
            resource.resource_type.value,
            resource.state.value if resource.state else "-",
            resource.owner_email or "-",
            fields["expectedTerminationTime"] or "-",
        )

    console.print(table)
    console.print(f"{len(resources)} resource(s)")


def _load(tracker: ResourceTracker, resource_id: str, region: Optional[str]) -> Resource:
    resource = tracker.find(resource_id, region)
    if resource is None:
        console.print(f"❌ Resource {resource_id} not found")
        raise typer.Exit(code=1)
    return resource


@app.command()
def show(
    resource_id: str = typer.Argument(..., help="Resource id"),
    region: Optional[str] = typer.Option(None, help="Region of the resource"),
):
    """Show every stored field of a resource."""
    resource = _load(get_tracker(), resource_id, region)

    table = Table(title=str(resource), show_header=True, header_style="bold magenta")
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    for name, value in sorted(resource.to_field_map().items()):
        table.add_row(name, value if value is not None else "-")
    console.print(table)


@app.command("evaluate")
def evaluate_command(
    resource_id: str = typer.Argument(..., help="Resource id"),
    region: str = typer.Option(..., help="Region of the resource"),
    save: bool = typer.Option(False, help="Persist the resource when it gets marked"),
):
    """Run the volume override tag rule against a stored resource."""
    tracker = get_tracker()
    resource = _load(tracker, resource_id, region)

    rule = make_rule(RuleConfig(tag_key=get_settings().janitor_tag))
    outcome = rule(resource)
    console.print(f"Outcome: [bold]{outcome.value}[/bold]")

    if outcome == RuleOutcome.MARK_FOR_CLEANUP:
        console.print(f"Reason: {resource.termination_reason}")
        if save:
            tracker.upsert(resource)
            console.print("✅ Saved")


if __name__ == "__main__":
    app()
