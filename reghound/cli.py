# RegHound command-line entry point.
#
# Parses arguments, runs the multi-host scan and prints records,
# diagnostics, exports and the per-host summary.

import sys
import threading
import time
from typing import List

from .auth import AuthContext
from .config import build_parser, read_targets, validate_args
from .engine import ParallelScanner, ScanConfig, ScanRequest, collect_diagnostics, iter_records
from .models.diagnostic import DiagnosticLog
from .models.registry import KeyRecord, normalize_key_path
from .output.printer import print_diagnostic, print_records
from .output.summary import print_summary_table
from .output.writer import write_csv, write_json
from .utils.console import print_banner
from .utils.helpers import normalize_targets
from .utils.logging import debug, error, info, set_verbosity, status, warn

EXIT_OK = 0
EXIT_USAGE = 1
EXIT_ERRORS = 2


def _handle_exports(args, records: List[KeyRecord], diagnostics: DiagnosticLog) -> None:
    """Write --json / --csv files if requested."""
    if args.json:
        write_json(args.json, records, diagnostics=list(diagnostics))
    if args.csv:
        write_csv(args.csv, records)


def main():
    print_banner()
    ap = build_parser()
    args = ap.parse_args()

    set_verbosity(args.verbose, args.debug)
    validate_args(args)

    try:
        targets = normalize_targets(read_targets(args), domain=None)
    except OSError as e:
        error(f"Failed to read targets: {e}")
        sys.exit(EXIT_USAGE)
    if not targets:
        error("No targets to scan")
        sys.exit(EXIT_USAGE)

    auth = AuthContext(
        username=args.username or "",
        password=args.password,
        domain=args.domain or "",
        hashes=args.hashes,
        aes_key=getattr(args, "aes_key", None),
        kerberos=args.kerberos,
        dc_ip=args.dc_ip,
        timeout=args.timeout,
    )
    debug(f"Auth: {auth!r}")

    request = ScanRequest(
        hive=args.hive,
        path=normalize_key_path(args.key),
        pattern=args.filter,
        recurse=args.recurse,
        ping=args.ping,
        start_service=not args.no_svc_start,
    )
    status(
        f"[*] Enumerating {request.hive.long_name}\\{request.path} "
        f"(filter: {request.pattern}{', recursive' if request.recurse else ''}) on {len(targets)} target(s)"
    )

    cancel = threading.Event()
    scanner = ParallelScanner(
        ScanConfig(workers=args.threads, rate_limit=args.rate_limit, show_progress=len(targets) > 1),
        auth=auth,
        cancel=cancel,
    )

    start_time = time.perf_counter()
    try:
        results = scanner.run(targets, request)
    except KeyboardInterrupt:
        # Workers check the event between keys and close their handles
        cancel.set()
        warn("Interrupted - stopping scan")
        sys.exit(130)
    info(f"Scan finished in {time.perf_counter() - start_time:.2f}s")

    diagnostics = collect_diagnostics(results, DiagnosticLog(listener=print_diagnostic))
    records = list(iter_records(results))

    print_records(records)
    _handle_exports(args, records, diagnostics)

    if not args.no_summary:
        print_summary_table(results)

    if args.fail_on_error and diagnostics.errors():
        sys.exit(EXIT_ERRORS)


if __name__ == "__main__":
    main()
