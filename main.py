"""Command-line interface for the CampusConnect portal."""

from __future__ import annotations
import argparse
import logging
import sys
from typing import Sequence

from campusconnect.config import Settings, load_settings
from campusconnect.errors import PortalError
from campusconnect.portal import CampusPortal
from campusconnect.store import RecordStore

logger = logging.getLogger("campusconnect.main")


def _parse_args(argv: Sequence[str] | None, settings: Settings | None = None) -> argparse.Namespace:
    if settings is None:
        settings = load_settings()

    parser = argparse.ArgumentParser(description="CampusConnect portal utilities")
    subparsers = parser.add_subparsers(dest="command")

    parser.set_defaults(command="serve")

    subparsers.add_parser("init-data", help="Create the data directory and empty entity files")

    serve_parser = subparsers.add_parser("serve", help="Start the HTTP portal service")
    serve_parser.add_argument("--host", default=settings.host, help="Bind address for the API")
    serve_parser.add_argument(
        "--port",
        type=int,
        default=settings.port,
        help=f"Port for the HTTP API (default: {settings.port})",
    )

    subparsers.add_parser("admin", help="Launch the interactive administration console")

    args_list = list(argv) if argv is not None else sys.argv[1:]
    known_commands = {"serve", "admin", "init-data"}

    if not args_list:
        args_list = ["serve"]
    else:
        first = args_list[0]
        if first in ("-h", "--help"):
            return parser.parse_args(args_list)
        if first not in known_commands:
            if any(flag in args_list for flag in ("-h", "--help")):
                return parser.parse_args(args_list)
            args_list = ["serve", *args_list]

    return parser.parse_args(args_list)


def _initialise_store(settings: Settings) -> RecordStore:
    store = RecordStore(settings.data_dir)
    store.initialize()
    logger.info("Data files stored in %s", settings.data_dir)
    return store


def _serve(*, settings: Settings, store: RecordStore, host: str, port: int) -> None:
    from campusconnect.api import ENDPOINTS, create_app
    import uvicorn

    app = create_app(settings=settings, store=store, initialize_store=False)

    logger.info("CampusConnect server running on http://%s:%s", host, port)
    logger.info("Available endpoints:")
    for method, path, summary in ENDPOINTS:
        logger.info("   %s %s - %s", method, path, summary)
    if not settings.admin_tokens:
        logger.warning("Admin routes are open: set CAMPUS_ADMIN_TOKENS to require a bearer token")

    uvicorn.run(app, host=host, port=port, log_level="info")


def _run_admin_cli(portal: CampusPortal) -> None:
    """Provide an interactive management console for administrators."""

    print("CampusConnect Administration Console")
    print("Press Ctrl+C at any time to exit.\n")

    try:
        while True:
            print("Select an option:")
            print("  1) List all users")
            print("  2) List support requests")
            print("  3) Update a request status")
            print("  4) Respond to a request")
            print("  5) Post an announcement")
            print("  6) Delete an announcement")
            print("  7) Show statistics")
            print("  8) Exit")

            choice = input("Enter choice [1-8]: ").strip()

            try:
                if choice == "1":
                    _list_users(portal)
                elif choice == "2":
                    _list_requests(portal)
                elif choice == "3":
                    _update_request_status(portal)
                elif choice == "4":
                    _respond_to_request(portal)
                elif choice == "5":
                    _post_announcement(portal)
                elif choice == "6":
                    _delete_announcement(portal)
                elif choice == "7":
                    _show_stats(portal)
                elif choice == "8":
                    print("Goodbye!")
                    return
                else:
                    print("Invalid selection. Please choose a number from the menu.\n")
            except PortalError as exc:
                print(f"Error: {exc.message}")

            print()
    except KeyboardInterrupt:
        print("\nExiting administration console.")


def _list_users(portal: CampusPortal) -> None:
    users = portal.list_users()
    if not users:
        print("No users are currently registered.")
        return

    print(f"{len(users)} user(s) found:")
    print(f"{'Type':<8}  {'Number':<12}  {'Name':<28}  {'Email':<32}  Created")
    print("-" * 100)
    for user in users:
        number = user.get("studentNumber") or user.get("staffNumber") or "-"
        name = f"{user.get('firstName', '')} {user.get('lastName', '')}"
        print(
            f"{user.get('userType', '?'):<8}  {number:<12}  {name:<28}  "
            f"{user.get('email', ''):<32}  {user.get('createdAt', '')}"
        )


def _list_requests(portal: CampusPortal) -> None:
    requests = portal.list_requests_with_users()
    if not requests:
        print("No support requests have been submitted.")
        return

    print(f"{len(requests)} request(s) found:")
    for request in requests:
        print(
            f"- {request.get('id')} [{request.get('status')}] {request.get('type')} "
            f"from {request.get('userName')}: {request.get('details')}"
        )
        if request.get("response"):
            print(f"    Response: {request['response']}")


def _update_request_status(portal: CampusPortal) -> None:
    request_id = input("Request ID: ").strip()
    status = input("New status (e.g. Approved): ").strip()
    portal.update_request_status(request_id, status)
    print("Request updated successfully.")


def _respond_to_request(portal: CampusPortal) -> None:
    request_id = input("Request ID: ").strip()
    response = input("Response: ").strip()
    portal.add_request_response(request_id, response)
    print("Response added successfully.")


def _post_announcement(portal: CampusPortal) -> None:
    title = input("Title: ").strip()
    content = input("Content: ").strip()
    kind = input("Type [general]: ").strip() or None
    record = portal.post_announcement(title=title, content=content, type=kind)
    print(f"Announcement {record['id']} posted.")


def _delete_announcement(portal: CampusPortal) -> None:
    announcement_id = input("Announcement ID: ").strip()
    if portal.delete_announcement(announcement_id):
        print("Announcement deleted.")
    else:
        print("No announcement with that ID; nothing was deleted.")


def _show_stats(portal: CampusPortal) -> None:
    stats = portal.stats()
    print(f"Users:            {stats['totalUsers']} ({stats['studentCount']} students, {stats['staffCount']} staff)")
    print(f"Requests:         {stats['totalRequests']} ({stats['pendingRequests']} pending)")
    print(f"Feedback entries: {stats['totalFeedback']}")


def main(argv: Sequence[str] | None = None) -> None:
    """Entry point for CLI usage."""

    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")

    settings = load_settings()
    args = _parse_args(argv, settings)
    store = _initialise_store(settings)

    if args.command == "serve":
        _serve(settings=settings, store=store, host=args.host, port=args.port)
    elif args.command == "admin":
        _run_admin_cli(CampusPortal(store, email_domain=settings.email_domain))
    elif args.command == "init-data":
        print("Data initialisation complete.")


if __name__ == "__main__":
    main()
