import argparse
import json
import sys

from rich.table import Table

from ..config import OnceOnly, TableHelpAction, TableRichHelpFormatter
from ..utils.console import _output_lock, console
from ..utils.logging import error, set_verbosity, status
from .client import OrchestratorClient, OrchestratorError, build_auth


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="reghound-jobs",
        description="Show the runbook instances spawned by an Orchestrator job.",
        formatter_class=TableRichHelpFormatter,
        add_help=False,
    )
    ap.add_argument("-h", "--help", action=TableHelpAction, help="Show this help message")

    svc = ap.add_argument_group("Service options")
    svc.add_argument(
        "--service-url",
        required=True,
        help="Orchestrator web service root, e.g. http://scorch:81/Orchestrator2012/Orchestrator.svc",
    )
    svc.add_argument("--job-id", required=True, help="Job GUID")
    svc.add_argument("--timeout", type=int, default=30, help="Request timeout in seconds (default: 30)")
    svc.add_argument("--insecure", action="store_true", help="Don't verify the server's TLS certificate")

    auth = ap.add_argument_group("Authentication options")
    auth.add_argument("-u", "--username", action=OnceOnly, help="Username")
    auth.add_argument("-p", "--password", action=OnceOnly, help="Password")
    auth.add_argument("-d", "--domain", action=OnceOnly, help="Domain")

    out = ap.add_argument_group("Output options")
    out.add_argument("--json", action="store_true", help="Print job and instances as JSON instead of a table")
    out.add_argument("--debug", action="store_true", help="Enable debug output")
    return ap


def _instance_table(instances) -> Table:
    table = Table(header_style="bold cyan", border_style="cyan")
    table.add_column("Id", style="white", no_wrap=True)
    table.add_column("RunbookId", style="dim", no_wrap=True)
    table.add_column("Status", style="bold")
    table.add_column("CreationTime", style="white")
    table.add_column("CompletionTime", style="white")
    for inst in instances:
        color = {"Completed": "green", "Failed": "red", "Warning": "yellow"}.get(inst.status or "", "white")
        table.add_row(
            inst.id,
            inst.runbook_id or "",
            f"[{color}]{inst.status or ''}[/]",
            inst.creation_time.isoformat() if inst.creation_time else "",
            inst.completion_time.isoformat() if inst.completion_time else "[dim]running[/]",
        )
    return table


def main(argv=None):
    args = build_parser().parse_args(argv)
    set_verbosity(False, args.debug)

    client = OrchestratorClient(
        args.service_url,
        auth=build_auth(args.username, args.password, args.domain),
        timeout=args.timeout,
        verify=not args.insecure,
    )
    try:
        with client:
            job = client.get_job(args.job_id)
            instances = client.get_runbook_instances(job)
    except OrchestratorError as e:
        error(f"Orchestrator request failed: {e}")
        sys.exit(1)

    if args.json:
        print(json.dumps({"job": job.to_dict(), "runbook_instances": [i.to_dict() for i in instances]}, indent=2))
        return

    status(f"[*] Job {job.id}: {job.status or 'unknown'} ({len(instances)} runbook instance(s))")
    if instances:
        with _output_lock:
            console.print(_instance_table(instances))


if __name__ == "__main__":
    main()
