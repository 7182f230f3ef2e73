"""Pre-flight check for a bunq-bridge deployment's ``.env`` file.

The tool answers two questions before the service is (re)started:

1. Can the file produce a working Bunq credential? It resolves the auth mode
   and credential identity, checks that the RSA key pair parses and belongs
   together, and that the SQLite paths for session records and webhook
   events are usable.
2. Has the credential drifted since the last known-good state? ``record``
   stores the file checksum together with the resolved environment, auth
   mode and identity; ``verify`` reports which of those changed. A changed
   identity means every cached installation and session is orphaned and the
   next request runs the full handshake again.

Example usages::

    # Validate the credential and record the expected baseline.
    python -m scripts.check_env record --env-file /opt/bunq-bridge/.env \
        --baseline /opt/bunq-bridge/.env.baseline.json

    # Run later (e.g. from cron/systemd) to alert on drift.
    python -m scripts.check_env verify --env-file /opt/bunq-bridge/.env \
        --baseline /opt/bunq-bridge/.env.baseline.json
"""

from __future__ import annotations

import argparse
import hashlib
import json
import sys
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Callable, Optional

from pydantic import ValidationError

from bunq_bridge.core.config import BunqSettings, StorageSettings
from bunq_bridge.core.errors import ConfigurationError
from bunq_bridge.services.credentials import resolve_credential
from bunq_bridge.utils.signing import verify_key_pair

EXIT_OK = 0
EXIT_VALIDATION_ERROR = 2
EXIT_CHECKSUM_ERROR = 3
EXIT_RUNTIME_ERROR = 5

# Baseline fields compared by ``verify``; the checksum is handled separately.
CREDENTIAL_FIELDS = ("environment", "auth_mode", "identity")


@dataclass
class EnvReport:
    """What the bridge would run with if started from the inspected file."""

    checksum: str
    environment: str
    auth_mode: str
    identity: str
    base_url: str
    session_db_path: Optional[str]
    event_queue_db_path: str

    def baseline(self) -> dict:
        data = asdict(self)
        return {key: data[key] for key in ("checksum", *CREDENTIAL_FIELDS)}


def _compute_hash(env_file: Path) -> str:
    """Return the SHA256 checksum for the target environment file."""
    return hashlib.sha256(env_file.read_bytes()).hexdigest()


def _check_db_path(variable: str, value: Optional[str]) -> None:
    """Reject SQLite paths the stores could not open or create."""
    if value is None:
        return
    path = Path(value)
    if path.is_dir():
        raise ConfigurationError(f"{variable} points at a directory: {path}")
    # Missing parents are created on startup, but not through an existing file.
    for parent in path.parents:
        if parent.exists():
            if not parent.is_dir():
                raise ConfigurationError(
                    f"{variable} cannot be created below the file {parent}"
                )
            break


def _inspect_env(env_file: Path) -> EnvReport:
    """Resolve the credential and storage settings held in ``env_file``."""
    bunq = BunqSettings(_env_file=env_file)  # type: ignore[call-arg]
    credential = resolve_credential(bunq)
    verify_key_pair(credential.private_key, credential.public_key)

    storage = StorageSettings(_env_file=env_file)  # type: ignore[call-arg]
    _check_db_path("SESSION_DB_PATH", storage.session_db_path)
    _check_db_path("EVENT_QUEUE_DB_PATH", storage.event_queue_db_path)

    return EnvReport(
        checksum=_compute_hash(env_file),
        environment=credential.environment.value,
        auth_mode=credential.auth_mode.value,
        identity=credential.identity,
        base_url=credential.base_url,
        session_db_path=storage.session_db_path,
        event_queue_db_path=storage.event_queue_db_path,
    )


def _print_report(report: EnvReport) -> None:
    print(f"Environment:     {report.environment} ({report.base_url})")
    print(f"Auth mode:       {report.auth_mode}")
    print(f"Credential id:   {report.identity}")
    print(f"Session store:   {report.session_db_path or 'in-memory'}")
    print(f"Event queue:     {report.event_queue_db_path}")


def _record_baseline(report: EnvReport, baseline_file: Path) -> int:
    """Persist the checksum and resolved credential to ``baseline_file``."""
    baseline_file.write_text(
        json.dumps(report.baseline(), indent=2, sort_keys=True) + "\n", encoding="utf-8"
    )
    print(f"Recorded baseline to {baseline_file} ({report.checksum})")
    return EXIT_OK


def _load_baseline(baseline_file: Path) -> dict:
    try:
        data = json.loads(baseline_file.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Baseline {baseline_file} is not valid JSON.") from exc
    if not isinstance(data, dict) or "checksum" not in data:
        raise ConfigurationError(f"Baseline {baseline_file} has no checksum.")
    return data


def _verify_baseline(report: EnvReport, baseline_file: Path) -> int:
    """Compare the current file against the recorded baseline."""
    if not baseline_file.exists():
        print(
            f"Expected baseline file {baseline_file} is missing. "
            "Re-run with the 'record' command to establish a baseline.",
            file=sys.stderr,
        )
        return EXIT_RUNTIME_ERROR

    try:
        expected = _load_baseline(baseline_file)
    except ConfigurationError as exc:
        print(str(exc), file=sys.stderr)
        return EXIT_RUNTIME_ERROR

    if expected["checksum"] == report.checksum:
        print("Environment checksum OK.")
        return EXIT_OK

    current = report.baseline()
    changed = [
        field for field in CREDENTIAL_FIELDS if expected.get(field) != current[field]
    ]
    lines = [
        "Environment checksum mismatch!",
        f"  expected: {expected['checksum']}",
        f"  actual:   {report.checksum}",
    ]
    for field in changed:
        lines.append(f"  {field}: {expected.get(field)} -> {current[field]}")
    if "identity" in changed:
        lines.append(
            "The credential identity changed; cached installations and sessions "
            "will not be reused and a full handshake runs on the next request."
        )
    elif not changed:
        lines.append("The resolved credential is unchanged.")
    lines.append("Investigate recent changes before restarting services.")
    print("\n".join(lines), file=sys.stderr)
    return EXIT_CHECKSUM_ERROR


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Validate the Bunq credential and detect .env drift."
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_common_arguments(subparser: argparse.ArgumentParser) -> None:
        subparser.add_argument(
            "--env-file",
            default=".env",
            type=Path,
            help="Path to the environment file (default: .env in the repo root).",
        )

    record_parser = subparsers.add_parser(
        "record",
        help="Validate the credential and store the baseline.",
    )
    add_common_arguments(record_parser)
    record_parser.add_argument(
        "--baseline",
        required=True,
        type=Path,
        help="Location to write the JSON baseline.",
    )

    verify_parser = subparsers.add_parser(
        "verify",
        help="Validate the credential and compare it with the baseline.",
    )
    add_common_arguments(verify_parser)
    verify_parser.add_argument(
        "--baseline",
        required=True,
        type=Path,
        help="Location of the previously recorded baseline.",
    )

    check_parser = subparsers.add_parser(
        "check",
        help="Validate the credential without touching any baseline.",
    )
    add_common_arguments(check_parser)

    return parser


def _ensure_env_file(env_file: Path) -> None:
    if not env_file.exists():
        raise FileNotFoundError(
            f"Environment file {env_file} does not exist. "
            "Ensure the path is correct or create it before running this tool."
        )


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    env_file: Path = args.env_file

    try:
        _ensure_env_file(env_file)
        report = _inspect_env(env_file)
    except FileNotFoundError as exc:
        print(str(exc), file=sys.stderr)
        return EXIT_RUNTIME_ERROR
    except ValidationError as exc:
        print(
            "Settings validation failed. Missing or invalid values detected:\n"
            f"{exc.json(indent=2)}",
            file=sys.stderr,
        )
        return EXIT_VALIDATION_ERROR
    except ConfigurationError as exc:
        print(f"Bunq configuration is not usable: {exc}", file=sys.stderr)
        return EXIT_VALIDATION_ERROR
    except Exception as exc:  # pylint: disable=broad-except
        print(f"Unexpected error during validation: {exc}", file=sys.stderr)
        return EXIT_RUNTIME_ERROR

    _print_report(report)

    command: str = args.command
    handlers: dict[str, Callable[[], int]] = {
        "record": lambda: _record_baseline(report, args.baseline),
        "verify": lambda: _verify_baseline(report, args.baseline),
        "check": lambda: EXIT_OK,
    }
    return handlers[command]()


if __name__ == "__main__":  # pragma: no cover - script entry point
    sys.exit(main())
