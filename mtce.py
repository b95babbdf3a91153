#!/usr/bin/env python3
"""
MTCE: Mail TLSA Check Exporter
Synthetic probe: checks that the certificate a mail server presents after
STARTTLS (SMTP and IMAP, IPv4 and IPv6) matches its DANE TLSA record, and
exposes the outcome as Prometheus gauges.
"""
import argparse
import asyncio
import os
import sys

# Ensure project root is on path when run as script
_PROJECT_ROOT = os.path.dirname(os.path.abspath(__file__))
if _PROJECT_ROOT not in sys.path:
    sys.path.insert(0, _PROJECT_ROOT)

from core.config import build_config, load_env_config, merge_config
from core.errors import ConfigError
from core.scanner import run_probe
from core.utils import setup_logging
from reporting.metrics import render_metrics

# Exit codes: 0 = success, 1 = validation error
EXIT_SUCCESS = 0
EXIT_VALIDATION = 1


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mtce",
        description="Mail TLSA Check Exporter: verify SMTP/IMAP STARTTLS certificates against a DANE TLSA record. Options override MTCE_* env variables.",
    )
    parser.add_argument("--smtp", metavar="HOST", help="SMTP hostname (MTCE_SMTP_HOSTNAME); omit to disable SMTP checks")
    parser.add_argument("--smtp-port", type=int, metavar="PORT", help="SMTP port (MTCE_SMTP_PORT, default 587)")
    parser.add_argument("--imap", metavar="HOST", help="IMAP hostname (MTCE_IMAP_HOSTNAME); omit to disable IMAP checks")
    parser.add_argument("--imap-port", type=int, metavar="PORT", help="IMAP port (MTCE_IMAP_PORT, default 143)")
    parser.add_argument("--tlsa-record", metavar="NAME", help="TLSA record name (MTCE_TLSA_RECORD, default _25._tcp.<smtp host>)")
    parser.add_argument("--timeout", type=int, metavar="MS", help="Per-operation timeout in milliseconds (MTCE_CHECK_TIMEOUT, default 15000)")
    parser.add_argument("--ipv4", action=argparse.BooleanOptionalAction, default=None, help="Enable IPv4 checks (MTCE_IPV4_ENABLED)")
    parser.add_argument("--ipv6", action=argparse.BooleanOptionalAction, default=None, help="Enable IPv6 checks (MTCE_IPV6_ENABLED)")
    parser.add_argument("--ehlo-name", metavar="NAME", help="EHLO identity (MTCE_EHLO_NAME)")
    parser.add_argument("--concurrent", action="store_true", default=None, help="Run the per-family checks concurrently (MTCE_CONCURRENT_CHECKS)")
    parser.add_argument("--port", type=int, metavar="PORT", help="HTTP listen port (MTCE_SERVER_PORT, default 19309)")
    parser.add_argument("--once", action="store_true", help="Run one probe, print metrics to stdout and exit")
    parser.add_argument("--verbose", action="store_true", default=None, help="Verbose (debug) logging (MTCE_VERBOSE)")
    parser.add_argument("--log-file", metavar="FILE", help="Append logs to file (MTCE_LOG_FILE)")
    return parser


def cli_overrides(args: argparse.Namespace) -> dict:
    """Map parsed CLI args onto config keys; unset options are None."""
    return {
        "smtp_hostname": (args.smtp or "").strip() or None,
        "smtp_port": args.smtp_port,
        "imap_hostname": (args.imap or "").strip() or None,
        "imap_port": args.imap_port,
        "tlsa_record": (args.tlsa_record or "").strip() or None,
        "timeout_ms": args.timeout,
        "ipv4_enabled": args.ipv4,
        "ipv6_enabled": args.ipv6,
        "ehlo_name": (args.ehlo_name or "").strip() or None,
        "concurrent_checks": args.concurrent,
        "server_port": args.port,
        "verbose": args.verbose,
        "log_file": (args.log_file or "").strip() or None,
    }


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    merged = merge_config(load_env_config(), cli_overrides(args))
    try:
        cfg = build_config(merged)
    except ConfigError as e:
        print(f"mtce: {e}", file=sys.stderr)
        return EXIT_VALIDATION
    setup_logging(cfg.verbose, cfg.log_file)

    if args.once:
        report = asyncio.run(run_probe(cfg))
        sys.stdout.write(render_metrics(report, cfg.protocols).decode("utf-8"))
        return EXIT_SUCCESS

    from reporting.server import serve
    serve(cfg)
    return EXIT_SUCCESS


if __name__ == "__main__":
    sys.exit(main())
