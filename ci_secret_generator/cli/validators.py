"""Input validation for CLI arguments."""
import logging
import sys

LOG_LEVELS = ("debug", "info", "warning", "error", "critical")


def validate_log_level(level: str) -> int:
    """
    Map a log level name to its logging constant.

    Raises:
        SystemExit with code 2 if the level is unknown
    """
    if not level or level.lower() not in LOG_LEVELS:
        print(f"Error: invalid log level specified: '{level}'", file=sys.stderr)
        print(f"\nLog level is one of {', '.join(LOG_LEVELS)}", file=sys.stderr)
        sys.exit(2)
    return getattr(logging, level.upper())


def validate_options(args) -> None:
    """
    Validate required flags before any file is read.

    Args:
        args: Parsed argparse namespace

    Raises:
        SystemExit with code 2 if validation fails
    """
    if not args.credentials_path:
        print("Error: --credentials-path is empty", file=sys.stderr)
        sys.exit(2)

    if not args.config:
        print("Error: --config is empty", file=sys.stderr)
        print("\nPass the YAML item config with --config <path>", file=sys.stderr)
        sys.exit(2)

    if args.concurrency < 1:
        print(f"Error: --concurrency must be at least 1, got {args.concurrency}", file=sys.stderr)
        sys.exit(2)
