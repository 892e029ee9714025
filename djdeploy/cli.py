"""Command line interface for djdeploy."""

import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import click

from .database import parse_database_url
from .errors import DeployError
from .events import deployed_paths, events_path, get_status_from_events, read_events
from .ids import is_valid_run_id, run_started_at
from .loader import load_declarations
from .provider import DjangoProvider
from .redact import redact_database
from .resolver import resolve_resource
from .state import ConvergenceRun, get_djdeploy_home


def _json_output(data: Dict[str, Any]) -> None:
    print(json.dumps(data, indent=2, default=str))


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def main(verbose: bool):
    """
    djdeploy - Converge hosts to declared Django application deployments.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@main.command("deploy")
@click.argument("declaration", type=click.Path(exists=True, dir_okay=False))
@click.option("--log-dir", type=click.Path(file_okay=False), help="Directory for run event logs (default: $DJDEPLOY_HOME)")
@click.option("--json", "output_json", is_flag=True, help="Output machine-readable JSON")
def deploy_cmd(declaration: str, log_dir: Optional[str], output_json: bool):
    """
    Deploy every application in a declaration file.
    """
    log_path = Path(log_dir) if log_dir else get_djdeploy_home()
    results: List[Dict[str, Any]] = []
    try:
        resources = load_declarations(declaration)
        with ConvergenceRun(log_dir=log_path) as run:
            for resource in resources:
                result = DjangoProvider(resource, run).action_deploy()
                results.append(result.to_dict())
            summary = run.summary()
            status = get_status_from_events(run.events)
    except DeployError as e:
        click.echo(f"Deployment failed: {e}", err=True)
        sys.exit(1)

    if output_json:
        _json_output({
            "run_id": summary["run_id"],
            "status": status,
            "applications": results,
            "states": summary["states"],
        })
        return

    click.echo(f"Run {summary['run_id']}: {status}")
    for item in results:
        marker = "changed" if item["changed"] else "up to date"
        click.echo(f"  {item['path']}: {marker}")
        for step in item["steps"]:
            if step["skipped"]:
                continue
            click.echo(f"    - {step['name']}{' (changed)' if step['changed'] else ''}")


@main.command("resolve")
@click.argument("declaration", type=click.Path(exists=True, dir_okay=False))
def resolve_cmd(declaration: str):
    """
    Show the resolved attributes of each application without deploying.
    """
    try:
        resolved = [resolve_resource(r).to_dict() for r in load_declarations(declaration)]
    except DeployError as e:
        click.echo(f"Resolution failed: {e}", err=True)
        sys.exit(1)

    for item in resolved:
        item["database"] = redact_database(item["database"])
    _json_output({"applications": resolved})


@main.command("status")
@click.argument("run_id")
@click.option("--log-dir", type=click.Path(file_okay=False), help="Directory for run event logs (default: $DJDEPLOY_HOME)")
@click.option("--json", "output_json", is_flag=True, help="Output machine-readable JSON")
def status_cmd(run_id: str, log_dir: Optional[str], output_json: bool):
    """
    Show the status of a recorded convergence run.
    """
    if not is_valid_run_id(run_id):
        click.echo(f"Invalid run id: {run_id}", err=True)
        sys.exit(1)
    log_path = Path(log_dir) if log_dir else get_djdeploy_home()
    if log_path is None:
        click.echo("No log directory: pass --log-dir or set DJDEPLOY_HOME", err=True)
        sys.exit(1)

    events = read_events(events_path(log_path, run_id))
    if not events:
        click.echo(f"No events recorded for run {run_id}", err=True)
        sys.exit(1)

    status = get_status_from_events(events)
    outcomes = deployed_paths(events)
    started = run_started_at(run_id)
    if output_json:
        _json_output({
            "run_id": run_id,
            "started_at": started.isoformat() if started else None,
            "status": status,
            "applications": outcomes,
        })
        return

    click.echo(f"Run {run_id}: {status}")
    if started:
        click.echo(f"  started {started:%Y-%m-%d %H:%M:%S}")
    for path, outcome in sorted(outcomes.items()):
        click.echo(f"  {path}: {outcome}")


@main.command("parse-url")
@click.argument("url")
@click.option("--path", "app_path", default=".", type=click.Path(), help="Application base path")
def parse_url_cmd(url: str, app_path: str):
    """
    Print the DATABASES entry for a database URL.
    """
    try:
        config = parse_database_url(url, str(Path(app_path).resolve()))
    except DeployError as e:
        click.echo(f"Parse failed: {e}", err=True)
        sys.exit(1)
    _json_output(redact_database(config))


if __name__ == "__main__":
    main()
