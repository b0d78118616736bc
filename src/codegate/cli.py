"""
Command-line interface for the world code admission gate.
"""

import argparse
import sys
from pathlib import Path
from typing import Optional

from . import __version__
from .config import config
from .detector import CodeValidator
from .models import REJECT, FileContext


EXIT_OK = 0
EXIT_ERROR = 1
EXIT_REJECTED = 2

CONTEXT_CHOICES = ("auto", "user", "shared", "bundled", "other")


def main(argv: Optional[list] = None) -> int:
    """
    Main entry point for the CLI.

    Args:
        argv: Command-line arguments (defaults to sys.argv)

    Returns:
        Exit code: 0 when admitted, 2 when rejected or not analyzable,
        1 on usage errors
    """
    parser = argparse.ArgumentParser(
        prog="codegate",
        description="Statically vet third-party JavaScript before it runs in a shared world",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Validate a single build output file
  %(prog)s scan dist/__federation_expose_World-abc123.js

  # Validate a whole bundle and save the report
  %(prog)s scan dist/ -o report.json

  # Grant network access to an API host
  %(prog)s scan dist/ --allow-domain api.example.com
        """,
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    scan_parser = subparsers.add_parser(
        "scan",
        help="Validate JavaScript/HTML files or a bundle directory",
    )
    scan_parser.add_argument(
        "path",
        type=str,
        help="Path to a JavaScript/HTML file or bundle directory",
    )
    scan_parser.add_argument(
        "-o", "--output",
        type=str,
        help="Output file for results (default: stdout)",
        default=None,
    )
    scan_parser.add_argument(
        "--allow-domain",
        dest="allowed_domains",
        action="append",
        default=[],
        metavar="DOMAIN",
        help="Host the code may contact (repeatable)",
    )
    scan_parser.add_argument(
        "--context",
        choices=CONTEXT_CHOICES,
        default="auto",
        help="File provenance; 'auto' classifies each file by its name (default: auto)",
    )
    scan_parser.add_argument(
        "-j", "--workers",
        type=int,
        default=None,
        help="Threads used for directory scans (default: CODEGATE_WORKERS or 1)",
    )
    scan_parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose output",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    args = parser.parse_args(argv)

    if args.command == "scan":
        validation = config.validate()
        for warning in validation["warnings"]:
            print(f"Warning: {warning}", file=sys.stderr)
        if not validation["valid"]:
            for error in validation["errors"]:
                print(f"Error: {error}", file=sys.stderr)
            return EXIT_ERROR
        return handle_scan(args)

    parser.print_help()
    return EXIT_ERROR


def build_file_context(choice: str, path: Path) -> Optional[FileContext]:
    """Explicit FileContext for a --context choice, None for 'auto'."""
    if choice == "auto":
        return None
    return FileContext(
        file_path=str(path),
        is_user_code=choice == "user",
        is_shared_library=choice == "shared",
        is_bundled_dependency=choice == "bundled",
    )


def handle_scan(args) -> int:
    """Handle the scan command."""
    input_path = Path(args.path)
    if not input_path.exists():
        print(f"Error: Path '{args.path}' does not exist", file=sys.stderr)
        return EXIT_ERROR

    workers = args.workers if args.workers is not None else config.workers
    validator = CodeValidator(
        verbose=args.verbose,
        allowed_domains=config.allowed_domains + args.allowed_domains,
        max_file_bytes=config.max_file_bytes,
        workers=workers,
    )

    try:
        results = validator.analyze(input_path, build_file_context(args.context, input_path))

        if args.output:
            validator.save_results(results, Path(args.output))
            print(f"Results saved to {args.output}")
        else:
            validator.print_results(results)

    except KeyboardInterrupt:
        print("\nInterrupted by user", file=sys.stderr)
        return 130

    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        if args.verbose:
            import traceback
            traceback.print_exc()
        return EXIT_ERROR

    if results.get("skipped"):
        return EXIT_OK
    if "error" in results or results.get("error_count") or results.get("verdict") == REJECT \
            or not results.get("valid", False):
        return EXIT_REJECTED
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
