"""
Virality Service - CLI.

============================================================
RESPONSIBILITY
============================================================
Operator command-line interface for the configuration store.

- Inspect the current configuration and version history
- Publish partial updates from YAML/JSON files
- Roll back to a previous version
- Start and resolve A/B tests

============================================================
USAGE
============================================================
python -m virality_service.cli show
python -m virality_service.cli history
python -m virality_service.cli update --file thresholds.yaml --description "Raise high" --author alice
python -m virality_service.cli rollback 1.0.0-2026-01-05T10-00-00-000000 --author bob
python -m virality_service.cli ab-start --config-a a.yaml --config-b b.yaml --name weights --split 0.5
python -m virality_service.cli ab-resolve ab_test_1767607200000_1a2b3c4d --subject user-42

============================================================
"""

import argparse
import json
import logging
import sys
from dataclasses import replace
from typing import Any, Dict, List, Optional

from core.exceptions import ViralityEngineError
from virality_scoring.config import load_config_file

from .service import ViralityRiskService, create_service
from .settings import LOG_LEVELS, ServiceSettings


logger = logging.getLogger(__name__)


# ============================================================
# CLI ARGUMENT PARSER
# ============================================================

def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="virality-config",
        description="Virality risk scoring configuration management",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  show        - Print the current configuration
  history     - List published versions, newest first
  update      - Merge a partial configuration file and publish it
  rollback    - Make a previous version current again
  ab-start    - Start an A/B test between two configuration files
  ab-resolve  - Show which arm a subject falls into

Examples:
  %(prog)s show
  %(prog)s update --file thresholds.yaml --description "Raise high threshold"
  %(prog)s rollback 1.0.0-2026-01-05T10-00-00-000000
  %(prog)s ab-resolve ab_test_1767607200000_1a2b3c4d --subject user-42
        """
    )

    # --------------------------------------------------------
    # Store Options
    # --------------------------------------------------------
    store_group = parser.add_argument_group("Store Options")

    store_group.add_argument(
        "--database-url",
        type=str,
        metavar="URL",
        help="Configuration store URL (default: $VIRALITY_DATABASE_URL)",
    )

    # --------------------------------------------------------
    # Logging Options
    # --------------------------------------------------------
    logging_group = parser.add_argument_group("Logging Options")

    logging_group.add_argument(
        "--log-level",
        type=str,
        choices=list(LOG_LEVELS),
        help="Logging level (default: $LOG_LEVEL or INFO)",
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version="%(prog)s 1.0.0",
    )

    # --------------------------------------------------------
    # Commands
    # --------------------------------------------------------
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("show", help="Print the current configuration")

    subparsers.add_parser("history", help="List published versions")

    update_parser = subparsers.add_parser("update", help="Publish a partial configuration")
    update_parser.add_argument("--file", "-f", required=True, metavar="PATH",
                               help="YAML or JSON file with the sections to change")
    update_parser.add_argument("--description", "-d", default="Manual update",
                               help="Reason for the change")
    update_parser.add_argument("--author", "-a", default="cli", help="Who made the change")

    rollback_parser = subparsers.add_parser("rollback", help="Roll back to a version")
    rollback_parser.add_argument("version", metavar="VERSION", help="Version id to restore")
    rollback_parser.add_argument("--author", "-a", default="cli", help="Who made the change")

    ab_start_parser = subparsers.add_parser("ab-start", help="Start an A/B test")
    ab_start_parser.add_argument("--config-a", required=True, metavar="PATH",
                                 help="Partial configuration for arm A")
    ab_start_parser.add_argument("--config-b", required=True, metavar="PATH",
                                 help="Partial configuration for arm B")
    ab_start_parser.add_argument("--name", required=True, help="Test name")
    ab_start_parser.add_argument("--split", type=float, default=0.5,
                                 help="Fraction of traffic routed to arm A (default: 0.5)")

    ab_resolve_parser = subparsers.add_parser("ab-resolve", help="Resolve an A/B arm")
    ab_resolve_parser.add_argument("test_id", metavar="TEST_ID", help="A/B test id")
    ab_resolve_parser.add_argument("--subject", metavar="ID",
                                   help="Subject id (random draw if omitted)")

    return parser


# ============================================================
# CLI CONFIGURATION BUILDER
# ============================================================

def build_settings(args: argparse.Namespace) -> ServiceSettings:
    """Environment settings overridden by CLI flags."""
    settings = ServiceSettings.from_env()
    overrides: Dict[str, Any] = {}
    if args.database_url:
        overrides["database_url"] = args.database_url
    if args.log_level:
        overrides["log_level"] = args.log_level
    return replace(settings, **overrides) if overrides else settings


# ============================================================
# COMMANDS
# ============================================================

def _print_json(payload: Any) -> None:
    print(json.dumps(payload, indent=2, sort_keys=True))


def run_command(service: ViralityRiskService, args: argparse.Namespace) -> int:
    """Execute one parsed command against ``service``."""
    if args.command == "show":
        _print_json(service.current_config().to_dict())

    elif args.command == "history":
        for version in service.list_versions():
            marker = "*" if version.is_active else " "
            print(
                f"{marker} {version.version}  {version.state.value:10s}  "
                f"{version.created_by:15s}  {version.description}"
            )

    elif args.command == "update":
        partial = load_config_file(args.file, partial=True)
        version_id = service.update_config(partial, args.description, args.author)
        print(version_id)

    elif args.command == "rollback":
        service.rollback_config(args.version, args.author)
        print(f"Rolled back to {args.version}")

    elif args.command == "ab-start":
        config_a = load_config_file(args.config_a, partial=True)
        config_b = load_config_file(args.config_b, partial=True)
        test_id = service.start_ab_test(config_a, config_b, args.name, args.split)
        print(test_id)

    elif args.command == "ab-resolve":
        arm, config = service.resolve_ab_test(args.test_id, args.subject)
        _print_json({"arm": arm.value, "config": config.to_dict()})

    return 0


# ============================================================
# MAIN ENTRY POINT
# ============================================================

def main(argv: Optional[List[str]] = None, service: Optional[ViralityRiskService] = None) -> int:
    """
    Main CLI entry point.

    Args:
        argv: Command line arguments (default: sys.argv[1:])
        service: Pre-built service (built from settings if omitted)

    Returns:
        Exit code
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    try:
        settings = build_settings(args)
        logging.basicConfig(
            level=getattr(logging, settings.log_level, logging.INFO),
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )

        if service is None:
            service = create_service(settings)
        return run_command(service, args)
    except ViralityEngineError as e:
        logger.debug(e.to_log_format())
        print(f"Error: {e.message}", file=sys.stderr)
        if len(getattr(e, "errors", [])) > 1:
            for detail in e.errors:
                print(f"  - {detail}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
