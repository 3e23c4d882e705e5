import argparse
import os
import sys
from typing import Any, Dict, List

from rich.console import Console
from rich.table import Table
from rich_argparse import RichHelpFormatter

try:
    import tomllib
except ImportError:
    # Python < 3.11
    try:
        import tomli as tomllib
    except ImportError:
        tomllib = None

from .engine.filter import MATCH_ALL, compile_pattern
from .exceptions import MalformedPatternError
from .models.registry import Hive
from .utils.helpers import is_ipv4, parse_target_list

CONFIG_PATHS = [
    "reghound.toml",
    "config/reghound.toml",
    "~/.config/reghound/reghound.toml",
]

# TOML section -> {toml key: argparse dest}
_CONFIG_KEYS = {
    "authentication": {
        "username": "username",
        "password": "password",
        "domain": "domain",
        "hashes": "hashes",
        "kerberos": "kerberos",
        "aes_key": "aes_key",
    },
    "target": {
        "target": "target",
        "targets_file": "targets_file",
        "dc_ip": "dc_ip",
        "timeout": "timeout",
        "threads": "threads",
        "rate_limit": "rate_limit",
        "ping": "ping",
    },
    "scan": {
        "hive": "hive",
        "key": "key",
        "filter": "filter",
        "recurse": "recurse",
        "no_svc_start": "no_svc_start",
    },
    "output": {
        "json": "json",
        "csv": "csv",
        "no_summary": "no_summary",
        "fail_on_error": "fail_on_error",
        "verbose": "verbose",
        "debug": "debug",
    },
}


class TableRichHelpFormatter(RichHelpFormatter):
    """
    Custom help formatter that displays argument groups with Rich styling.
    Uses uppercase group names and custom color scheme.
    """

    styles = {
        **RichHelpFormatter.styles,
        "argparse.groups": "bold cyan",
        "argparse.args": "green",
        "argparse.metavar": "yellow",
        "argparse.help": "white",
    }

    group_name_formatter = str.upper


class TableHelpAction(argparse.Action):
    """
    Custom help action that displays arguments in Rich tables.
    """

    def __init__(self, option_strings, dest=argparse.SUPPRESS, default=argparse.SUPPRESS, help=None):
        super().__init__(
            option_strings=option_strings,
            dest=dest,
            default=default,
            nargs=0,
            help=help,
        )

    def __call__(self, parser, namespace, values, option_string=None):
        console = Console()

        if parser.description:
            console.print(f"\n[bold white]{parser.description}[/]\n")

        console.print(f"[dim]Usage:[/] [bold]{parser.prog}[/] [OPTIONS] --key KEY\n")

        for group in parser._action_groups:
            actions = [a for a in group._group_actions if not isinstance(a, (argparse._HelpAction, TableHelpAction))]
            if not actions:
                continue

            console.print(f"[bold cyan]{group.title.upper()}[/]")
            if group.description:
                console.print(f"[dim]{group.description}[/]")

            table = Table(
                border_style="dim",
                show_header=True,
                header_style="bold white",
                padding=(0, 1),
                expand=False,
            )
            table.add_column("Option", style="green", no_wrap=True)
            table.add_column("Description", style="white")

            for action in actions:
                opts = ", ".join(action.option_strings) if action.option_strings else action.dest
                if action.metavar:
                    opts += f" [yellow]{action.metavar}[/]"
                elif action.type and action.type is not bool:
                    opts += f" [yellow]{action.dest.upper()}[/]"

                help_text = action.help or ""
                if action.default not in (None, True, False, argparse.SUPPRESS):
                    if "default:" not in help_text.lower():
                        help_text += f" [dim](default: {action.default})[/]"

                table.add_row(opts, help_text)

            console.print(table)
            console.print()

        parser.exit()


class OnceOnly(argparse.Action):
    """
    Custom argparse Action to prevent arguments from being specified multiple times.
    Catches a flag (e.g. -d) being accidentally reused as part of another
    flag's value (e.g. -debug).

    Tracks flags actually seen on the command line, so a value loaded from
    reghound.toml can still be overridden once.
    """

    def __call__(self, parser, namespace, values, option_string=None):
        seen = namespace.__dict__.setdefault("_once_seen", set())
        if self.dest in seen:
            raise argparse.ArgumentError(self, f"Argument {option_string} can only be specified once.")
        seen.add(self.dest)
        setattr(namespace, self.dest, values)


def load_config(paths: List[str] = None) -> Dict[str, Any]:
    """
    Load argparse defaults from the first reghound.toml found.

    Priority:
    1. ./reghound.toml
    2. ./config/reghound.toml
    3. ~/.config/reghound/reghound.toml
    """
    if not tomllib:
        return {}

    config_data: Dict[str, Any] = {}
    loaded_path = None
    for path in paths or CONFIG_PATHS:
        path = os.path.expanduser(path)
        if os.path.exists(path):
            try:
                with open(path, "rb") as f:
                    config_data = tomllib.load(f)
                loaded_path = path
                break
            except (OSError, tomllib.TOMLDecodeError) as e:
                print(f"[!] Error loading config file {path}: {e}")

    if not config_data:
        return {}

    if loaded_path == "reghound.toml":
        # Credentials in the working directory are easy to leak
        print("[!] WARNING: Using reghound.toml from current directory")
        print("[!] This can be a security risk - consider moving to config/reghound.toml")

    defaults: Dict[str, Any] = {}
    for section, keys in _CONFIG_KEYS.items():
        values = config_data.get(section, {})
        for toml_key, dest in keys.items():
            if toml_key in values:
                defaults[dest] = values[toml_key]

    # Allow target = ["a", "b"] as well as the comma-separated string
    if isinstance(defaults.get("target"), list):
        defaults["target"] = ",".join(defaults["target"])

    return defaults


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="reghound",
        description="Remote registry key enumeration over SMB (Get-RegKey -Recurse for many hosts).",
        formatter_class=TableRichHelpFormatter,
        add_help=False,
    )
    ap.add_argument("-h", "--help", action=TableHelpAction, help="Show this help message")

    # Authentication options
    auth = ap.add_argument_group("Authentication options")
    auth.add_argument("-u", "--username", action=OnceOnly, help="Username")
    auth.add_argument("-p", "--password", action=OnceOnly, help="Password (omit with -k if using Kerberos/ccache)")
    auth.add_argument("-d", "--domain", action=OnceOnly, help="Domain (omit for local accounts)")
    auth.add_argument("--hashes", help="NTLM hashes in LM:NT format (or NT-only 32-hex) to use instead of password")
    auth.add_argument("-k", "--kerberos", action="store_true", help="Use Kerberos authentication (supports ccache)")
    auth.add_argument(
        "--aes-key",
        dest="aes_key",
        help="AES key for Kerberos authentication (AES-128: 32 hex chars, AES-256: 64 hex chars). Implies -k.",
    )
    auth.add_argument("--dc-ip", help="Domain controller IP (required when using Kerberos without DNS)")

    # Target selection
    target = ap.add_argument_group("Target options", "Without targets the local machine is scanned.")
    target.add_argument("-t", "--target", action=OnceOnly, help="Target(s) - single host or comma-separated list")
    target.add_argument("--targets-file", help="File with targets, one per line")
    target.add_argument("--timeout", type=int, default=5, help="Connection timeout in seconds (default: 5)")
    target.add_argument(
        "--threads",
        type=int,
        default=1,
        help="Number of parallel worker threads (default: 1 = sequential)",
    )
    target.add_argument(
        "--rate-limit",
        type=float,
        default=None,
        help="Maximum targets started per second (default: unlimited)",
    )
    target.add_argument("--ping", action="store_true", help="Skip hosts that don't answer on TCP/445 first")

    # Scan options
    scan = ap.add_argument_group("Scan options")
    scan.add_argument(
        "--hive",
        default=Hive.LOCAL_MACHINE.value,
        help="Hive to open: LocalMachine, CurrentUser, Users, ClassesRoot, CurrentConfig, "
        "PerformanceData or HKLM/HKCU/... (default: LocalMachine)",
    )
    scan.add_argument("--key", help="Key path under the hive, e.g. SOFTWARE\\Microsoft (required)")
    scan.add_argument(
        "--filter",
        default=MATCH_ALL,
        help="Wildcard filter for subkey names: * ? [abc] [a-z], case-insensitive (default: *)",
    )
    scan.add_argument("--recurse", action="store_true", help="Descend into every subkey, matched or not")
    scan.add_argument(
        "--no-svc-start",
        action="store_true",
        help="Don't start the RemoteRegistry service when it is stopped",
    )

    # Output options
    out = ap.add_argument_group("Output options")
    out.add_argument("--json", help="Write records (and diagnostics) to a JSON file")
    out.add_argument("--csv", help="Write records to a CSV file")
    out.add_argument("--no-summary", action="store_true", help="Don't print the per-host summary")
    out.add_argument(
        "--fail-on-error",
        action="store_true",
        help="Exit with code 2 if any host or key reported an error",
    )

    misc = ap.add_argument_group("Misc")
    misc.add_argument("--verbose", action="store_true", help="Enable verbose output")
    misc.add_argument("--debug", action="store_true", help="Enable debug output (print full stack traces)")

    defaults = load_config()
    if defaults:
        ap.set_defaults(**defaults)

    return ap


def read_targets(args) -> List[str]:
    """
    Targets from --target and --targets-file, in that order.

    Blank lines and '#' comments in the file are ignored. Returns [""] (the
    local machine) when neither option was given.
    """
    targets = parse_target_list(args.target)
    if args.targets_file:
        with open(args.targets_file, encoding="utf-8") as f:
            for line in f:
                t = line.strip()
                if t and not t.startswith("#"):
                    targets.append(t)
    if not args.target and not args.targets_file:
        return [""]
    return targets


def validate_args(args):
    if args.key is None:
        print("[!] --key is required (use --key '' to enumerate the hive root)")
        sys.exit(1)

    try:
        args.hive = Hive.parse(args.hive)
    except ValueError as e:
        print(f"[!] {e}")
        sys.exit(1)
    if args.hive == Hive.DYN_DATA:
        print("[!] DynData cannot be opened over the remote registry protocol")
        sys.exit(1)

    try:
        compile_pattern(args.filter)
    except MalformedPatternError as e:
        # Malformed filters match nothing; warn instead of failing
        print(f"[!] WARNING: {e} - no keys will match")

    if args.threads < 1:
        print("[!] --threads must be at least 1")
        sys.exit(1)
    if args.rate_limit is not None and args.rate_limit <= 0:
        print("[!] --rate-limit must be positive")
        sys.exit(1)

    if args.targets_file and not os.path.isfile(args.targets_file):
        print(f"[!] Targets file does not exist: {args.targets_file}")
        sys.exit(1)

    if getattr(args, "aes_key", None):
        args.kerberos = True

    # Authentication method validation
    if not args.kerberos and not args.username:
        print("[!] Username (-u/--username) is required unless using Kerberos ccache (-k)")
        sys.exit(1)
    if not args.password and not args.hashes and not args.kerberos:
        print("[!] ERROR: Authentication required")
        print("[!] You must specify one of:")
        print("[!]   -p PASSWORD     (password authentication)")
        print("[!]   --hashes HASH   (NTLM hash authentication)")
        print("[!]   --aes-key KEY   (Kerberos with AES key)")
        print("[!]   -k              (Kerberos authentication with ccache)")
        print()
        if "KRB5CCNAME" in os.environ:
            print("[!] Detected KRB5CCNAME environment variable - did you forget the -k flag?")
        sys.exit(1)

    # Kerberos needs names, not addresses
    if args.kerberos:
        for t in parse_target_list(args.target):
            if is_ipv4(t):
                print(
                    "[!] Targets verification failed. Please supply hostnames or fqdns or switch to NTLM Auth "
                    "(Kerberos doesn't like IP addresses)"
                )
                sys.exit(1)
