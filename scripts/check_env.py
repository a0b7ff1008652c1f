"""Check that a client ``.env`` file loads and has not drifted.

``check`` builds the client settings from the file and prints a short
summary. ``record`` does the same and then stores the file's SHA256 next to
it; ``verify`` compares the file against that stored baseline.

Example usages::

    python -m scripts.check_env check --env-file .env
    python -m scripts.check_env record --env-file .env --hash-file .env.sha256
    python -m scripts.check_env verify --env-file .env --hash-file .env.sha256
"""

from __future__ import annotations

import argparse
import hashlib
import sys
from pathlib import Path

from pydantic import ValidationError

from liftsync.core.config import AppSettings, load_settings

EXIT_OK = 0
EXIT_VALIDATION_ERROR = 2
EXIT_CHECKSUM_ERROR = 3
EXIT_RUNTIME_ERROR = 5


def _sha256(path: Path) -> str:
    return hashlib.sha256(path.read_bytes()).hexdigest()


def _describe(settings: AppSettings) -> str:
    secret = "set" if settings.security.credential_secret else "MISSING"
    return "\n".join(
        [
            f"environment:        {settings.environment}",
            f"api base url:       {settings.api.base_url}",
            f"refresh path:       {settings.api.refresh_path}",
            f"credential secret:  {secret}",
            f"credential db:      {settings.storage.credential_db_path}",
            f"cache db:           {settings.storage.cache_db_path}",
            f"sync page limit:    {settings.sync.max_pages}",
        ]
    )


def _check(settings: AppSettings, args: argparse.Namespace) -> int:
    print(_describe(settings))
    if not settings.security.credential_secret:
        print(
            "Warning: LIFTSYNC_CREDENTIAL_SECRET is empty; sign-in will not persist.",
            file=sys.stderr,
        )
    return EXIT_OK


def _record(settings: AppSettings, args: argparse.Namespace) -> int:
    _check(settings, args)
    checksum = _sha256(args.env_file)
    args.hash_file.write_text(f"{checksum}\n", encoding="utf-8")
    print(f"Baseline written to {args.hash_file} ({checksum})")
    return EXIT_OK


def _verify(settings: AppSettings, args: argparse.Namespace) -> int:
    hash_file: Path = args.hash_file
    if not hash_file.exists():
        print(
            f"No baseline at {hash_file}; run 'record' first.",
            file=sys.stderr,
        )
        return EXIT_RUNTIME_ERROR

    expected = hash_file.read_text(encoding="utf-8").strip()
    actual = _sha256(args.env_file)
    if expected != actual:
        print(
            f"{args.env_file} changed since the baseline was recorded\n"
            f"  baseline: {expected}\n"
            f"  current:  {actual}",
            file=sys.stderr,
        )
        return EXIT_CHECKSUM_ERROR
    print(f"{args.env_file} matches its baseline.")
    return EXIT_OK


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Validate LIFTSYNC_* settings and detect .env drift."
    )
    commands = parser.add_subparsers(dest="command", required=True)

    for name, handler, needs_hash, help_text in (
        ("check", _check, False, "Load settings and print a summary."),
        ("record", _record, True, "Load settings and write the checksum baseline."),
        ("verify", _verify, True, "Load settings and compare against the baseline."),
    ):
        sub = commands.add_parser(name, help=help_text)
        sub.add_argument(
            "--env-file",
            default=Path(".env"),
            type=Path,
            help="Environment file to load (default: ./.env).",
        )
        if needs_hash:
            sub.add_argument(
                "--hash-file",
                required=True,
                type=Path,
                help="Checksum baseline location.",
            )
        sub.set_defaults(handler=handler)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)

    env_file: Path = args.env_file
    if not env_file.is_file():
        print(f"Environment file {env_file} does not exist.", file=sys.stderr)
        return EXIT_RUNTIME_ERROR

    try:
        settings = load_settings(env_file)
    except ValidationError as exc:
        print(
            f"{env_file} does not produce valid settings:\n{exc.json(indent=2)}",
            file=sys.stderr,
        )
        return EXIT_VALIDATION_ERROR
    except OSError as exc:
        print(f"Could not read {env_file}: {exc}", file=sys.stderr)
        return EXIT_RUNTIME_ERROR

    return args.handler(settings, args)


if __name__ == "__main__":  # pragma: no cover - script entry point
    sys.exit(main())
