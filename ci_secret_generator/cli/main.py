"""CLI entrypoint for ci-secret-generator."""
import sys
import json
import argparse
import logging
import tempfile
from pathlib import Path
from typing import Any, Dict

from .validators import LOG_LEVELS, validate_log_level, validate_options
from ci_secret_generator.secrets.domains.config_loader import load_config
from ci_secret_generator.secrets.domains.errors import ConfigError
from ci_secret_generator.secrets.domains.gcp_client import GCPSecretStore, get_project_id
from ci_secret_generator.secrets.domains.redaction import SecretSet, install_redaction
from ci_secret_generator.secrets.domains.store import DryRunSecretStore, SecretStore
from ci_secret_generator.secrets.workflows.update import generate_secrets

VERSION = "0.1.0"

logger = logging.getLogger(__name__)


def configure_logging(level: int, secrets: SecretSet) -> None:
    """Log to stderr with every known secret scrubbed at emission."""
    logging.basicConfig(
        level=level,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr
    )
    logging.getLogger().setLevel(level)
    install_redaction(secrets)


def read_credentials(credentials_path: str, secrets: SecretSet) -> Dict[str, Any]:
    """
    Read the service account key file used to reach the secret store.

    The file content and its private key are added to secrets before
    anything else can log them.

    Raises:
        ConfigError: If the file is unreadable, empty or not a JSON object
    """
    try:
        text = Path(credentials_path).read_text().strip()
    except OSError as e:
        raise ConfigError(f"Failed to read credentials file at {credentials_path}: {e}")

    if not text:
        raise ConfigError(f"Credentials file at {credentials_path} was empty")
    secrets.add(text)

    try:
        credentials = json.loads(text)
    except ValueError as e:
        raise ConfigError(f"Credentials file at {credentials_path} is not valid JSON: {e}")
    if not isinstance(credentials, dict):
        raise ConfigError(f"Credentials file at {credentials_path} must hold a JSON object")

    for key in ("private_key", "private_key_id"):
        if credentials.get(key):
            secrets.add(str(credentials[key]))
    return credentials


def build_store(args, credentials: Dict[str, Any], secrets: SecretSet) -> SecretStore:
    """
    Create the dry-run or the live store.

    Raises:
        ConfigError: If the live store's project cannot be determined
    """
    if args.dry_run:
        if args.dry_run_output:
            stream = open(args.dry_run_output, "w")
        else:
            stream = tempfile.NamedTemporaryFile(
                "w", prefix="ci-secret-generator-", suffix=".yaml", delete=False
            )
        logger.info(f"Dry-Run enabled, writing secrets to {stream.name}")
        return DryRunSecretStore(stream)

    project_id = get_project_id(args.project_id or credentials.get("project_id"))
    if not project_id:
        raise ConfigError(
            "Project ID not found. Pass --project-id, set GCP_PROJECT, "
            "or use a service account file that names its project"
        )
    logger.info(f"Uploading secrets to project {project_id}")
    return GCPSecretStore(project_id, args.credentials_path, on_secret=secrets.add)


def _logout(store: SecretStore) -> bool:
    try:
        store.logout()
    except Exception as e:
        logger.error(f"failed to logout: {e}")
        return False
    return True


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ci-secret-generator",
        description="Generate secret values with shell commands and upload them to GCP Secret Manager",
        epilog="""
Exit codes:
  0 - Success
  1 - Runtime error (unreadable files, invalid config, failed commands or uploads)
  2 - Usage error (missing or invalid flags)

Environment variables:
  GCP_PROJECT - GCP project ID (used when --project-id is not given and the
                service account file names no project)
        """
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"ci-secret-generator {VERSION}"
    )
    parser.add_argument(
        "--dry-run",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Write intended operations to a file instead of uploading (default: enabled)"
    )
    parser.add_argument(
        "--dry-run-output",
        help="File that receives dry-run operations (default: a new temporary file)"
    )
    parser.add_argument(
        "--config",
        default="",
        help="Path to the YAML config describing the secret items"
    )
    parser.add_argument(
        "--credentials-path",
        default="",
        help="Path to the service account JSON key used for Secret Manager"
    )
    parser.add_argument(
        "--project-id",
        help="GCP project ID (defaults to the service account's project, then GCP_PROJECT, then gcloud config)"
    )
    parser.add_argument(
        "--log-level",
        default="info",
        help=f"Log level is one of {', '.join(LOG_LEVELS)}"
    )
    parser.add_argument(
        "--concurrency",
        type=int,
        default=1,
        help="Maximum number of concurrent requests to the secret store"
    )
    return parser


def main(argv=None):
    """Main CLI entrypoint.

    Exit codes:
        0 - Success
        1 - Runtime errors (setup failures, failed commands or uploads)
        2 - Usage errors (invalid arguments)
    """
    args = build_parser().parse_args(argv)

    level = validate_log_level(args.log_level)
    secrets = SecretSet()
    configure_logging(level, secrets)
    validate_options(args)
    if args.concurrency > 1:
        logger.debug(f"--concurrency={args.concurrency} requested; items are processed sequentially")

    try:
        credentials = read_credentials(args.credentials_path, secrets)
        templates = load_config(args.config)
        store = build_store(args, credentials, secrets)
    except (ConfigError, OSError) as e:
        logger.error(f"Failed to complete options: {e}")
        sys.exit(1)

    logged_out = False
    try:
        error = generate_secrets(templates, store)
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        sys.exit(1)
    finally:
        logged_out = _logout(store)

    if error:
        logger.error(f"Failed to update secrets: {error}")
        sys.exit(1)
    if not logged_out:
        sys.exit(1)
    logger.info("Updated secrets.")


if __name__ == "__main__":
    main()
