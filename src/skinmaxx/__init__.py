"""skinmaxx: skin-health scoring from face-analysis photos."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from rich.console import Console

if TYPE_CHECKING:
    from skinmaxx.client import ScanClient
    from skinmaxx.config import Settings
    from skinmaxx.db import Database

__version__ = "0.1.0"

LIGHTING_MESSAGE = "Please find better lighting for accurate analysis."


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="skinmaxx",
        description="Skin-health scoring from face photos.",
    )
    parser.add_argument(
        "--db", type=Path, default=None, help="Journal database (default: $SKINMAXX_DB)"
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Show debug logging"
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # status command
    subparsers.add_parser("status", help="Show journal and provider status")

    # register command
    register_parser = subparsers.add_parser("register", help="Create a user")
    register_parser.add_argument("email", help="User email")
    register_parser.add_argument("--name", required=True, help="Display name")

    # remove-user command
    remove_parser = subparsers.add_parser(
        "remove-user", help="Delete a user and all their scans"
    )
    remove_parser.add_argument("user_id", help="User id")

    # analyze command
    analyze_parser = subparsers.add_parser("analyze", help="Analyze a face photo")
    analyze_parser.add_argument("image", type=Path, help="Image file")
    analyze_parser.add_argument("--user", required=True, help="User id")
    analyze_parser.add_argument(
        "--save", action="store_true", help="Save the result to the journal"
    )
    analyze_parser.add_argument(
        "--json", action="store_true", help="Print result as JSON"
    )
    analyze_parser.add_argument(
        "--force", action="store_true", help="Skip the lighting check"
    )

    # history command
    history_parser = subparsers.add_parser("history", help="List a user's scans")
    history_parser.add_argument("--user", required=True, help="User id")
    history_parser.add_argument(
        "--sort",
        choices=["newest", "oldest", "highest", "lowest"],
        default="newest",
        help="Sort order (default: newest)",
    )
    history_parser.add_argument(
        "--json", action="store_true", help="Print scans as JSON"
    )

    # delete command
    delete_parser = subparsers.add_parser("delete", help="Delete a scan")
    delete_parser.add_argument("scan_id", help="Scan id")
    delete_parser.add_argument("--user", required=True, help="User id")

    args = parser.parse_args(argv)

    from skinmaxx.ui import setup_logging

    setup_logging(args.verbose)

    if args.command == "status":
        return cmd_status(args.db)
    if args.command == "register":
        return cmd_register(args.db, args.email, args.name)
    if args.command == "remove-user":
        return cmd_remove_user(args.db, args.user_id)
    if args.command == "analyze":
        return cmd_analyze(
            args.db, args.image, args.user, args.save, args.json, args.force
        )
    if args.command == "history":
        return cmd_history(args.db, args.user, args.json, args.sort)
    if args.command == "delete":
        return cmd_delete(args.db, args.scan_id, args.user)

    parser.print_help()
    return 1


def _error(message: str) -> int:
    print(f"Error: {message}", file=sys.stderr)
    return 1


def _open_db(db_path: Path | None) -> tuple[Settings, Database]:
    from skinmaxx.config import load_settings
    from skinmaxx.db import get_db

    settings = load_settings()
    return settings, get_db(db_path or settings.db_path)


def _build_client(db_path: Path | None, user_id: str) -> ScanClient:
    """Wire settings, gateway, analyzer, service and client together."""
    from skinmaxx.analyze import Analyzer
    from skinmaxx.client import LocalTransport, ScanClient
    from skinmaxx.gateway import FaceDetectionGateway
    from skinmaxx.service import ScanService

    settings, db = _open_db(db_path)
    service = ScanService(Analyzer(FaceDetectionGateway(settings.provider)), db)
    return ScanClient(LocalTransport(service, user_id))


def cmd_status(db_path: Path | None) -> int:
    """Show journal and provider status."""
    from skinmaxx.config import mask_secret

    settings, db = _open_db(db_path)
    provider = settings.provider

    print(f"Journal: {db.db_path}")
    print(f"Users: {db.count_users()}")
    print(f"Scans: {db.count_scans()}")
    print(f"Face++ configured: {'yes' if provider.is_configured else 'no'}")
    print(f"Face++ key: {mask_secret(provider.api_key)}")
    for i, endpoint in enumerate(provider.endpoints, 1):
        print(f"Endpoint {i}: {endpoint}")
    return 0


def cmd_register(db_path: Path | None, email: str, name: str) -> int:
    """Create a user."""
    _, db = _open_db(db_path)
    if db.get_user_by_email(email) is not None:
        return _error(f"{email} is already registered")

    user = db.create_user(email, name)
    print(f"Registered {user.email}: {user.id}")
    return 0


def cmd_remove_user(db_path: Path | None, user_id: str) -> int:
    """Delete a user and, by cascade, their scans."""
    _, db = _open_db(db_path)
    scans = db.count_scans(user_id)
    if not db.delete_user(user_id):
        return _error(f"Unknown user: {user_id}")

    print(f"Removed {user_id} and {scans} scans")
    return 0


def cmd_analyze(
    db_path: Path | None,
    image: Path,
    user_id: str,
    save: bool,
    as_json: bool,
    force: bool,
) -> int:
    """Analyze a photo and optionally save it to the journal."""
    from skinmaxx.errors import NoFaceDetectedError, RateLimitError, SkinmaxxError
    from skinmaxx.ingest import check_lighting, decode_image, encode_image_file
    from skinmaxx.ui import result_table, summary_lines

    if not image.is_file():
        return _error(f"{image} is not a file")

    console = Console()
    try:
        image_uri = encode_image_file(image)
        if not force:
            lighting = check_lighting(decode_image(image_uri))
            if not lighting.is_valid:
                return _error(
                    f"Image too dark (brightness {lighting.brightness:.0f}). "
                    f"{LIGHTING_MESSAGE}"
                )

        client = _build_client(db_path, user_id)
        with Console(stderr=True).status("[cyan]Analyzing skin..."):
            result = client.analyze_scan(image_uri)
        scan = client.save_scan(result, image_uri) if save else None
    except NoFaceDetectedError as e:
        return _error(f"{e.message}. Please retake the photo facing the camera.")
    except RateLimitError:
        return _error("Too many requests. Please wait a moment and try again.")
    except SkinmaxxError as e:
        return _error(e.message)

    if as_json:
        data = result.to_wire()
        if scan is not None:
            data["scanId"] = scan["id"]
        print(json.dumps(data, indent=2))
        return 0

    console.print(result_table(result))
    for line in summary_lines(result):
        console.print(line)
    if scan is not None:
        console.print(f"Saved scan {scan['id']}")
    return 0


def cmd_history(
    db_path: Path | None, user_id: str, as_json: bool, order: str = "newest"
) -> int:
    """List a user's scans in the requested order."""
    from skinmaxx.ui import history_table

    _, db = _open_db(db_path)
    if db.get_user(user_id) is None:
        return _error(f"Unknown user: {user_id}")

    scans = db.get_history(user_id, order)
    if as_json:
        print(json.dumps([s.to_wire() for s in scans], indent=2))
        return 0

    Console().print(history_table(scans))
    return 0


def cmd_delete(db_path: Path | None, scan_id: str, user_id: str) -> int:
    """Delete one of a user's scans."""
    _, db = _open_db(db_path)
    if not db.delete_scan(user_id, scan_id):
        return _error(f"Scan not found: {scan_id}")

    print(f"Deleted {scan_id}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
