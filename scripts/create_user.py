import argparse
import getpass
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from campusconnect.config import load_settings
from campusconnect.errors import PortalError
from campusconnect.portal import CampusPortal
from campusconnect.store import RecordStore


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Register a CampusConnect student or staff account")
    parser.add_argument("user_type", choices=("student", "staff"), help="Kind of account to create")
    parser.add_argument("number", help="Student or staff number used to log in")
    parser.add_argument("first_name", help="First name")
    parser.add_argument("last_name", help="Last name")
    parser.add_argument("email", help="Institutional email address")
    parser.add_argument(
        "--data-dir",
        dest="data_dir",
        default=None,
        help="Directory holding the JSON data files (defaults to CAMPUS_DATA_DIR or ./data)",
    )
    return parser.parse_args()


def prompt_for_password() -> str:
    for _ in range(3):
        password = getpass.getpass("Password: ")
        confirm = getpass.getpass("Confirm password: ")
        if password != confirm:
            print("Passwords do not match. Try again.", file=sys.stderr)
            continue
        if len(password) < 6:
            print("Password must be at least 6 characters long.", file=sys.stderr)
            continue
        return password
    raise SystemExit("Failed to set password after three attempts.")


def main() -> int:
    args = parse_args()
    password = prompt_for_password()

    settings = load_settings()
    data_dir = Path(args.data_dir).expanduser().resolve(strict=False) if args.data_dir else settings.data_dir

    store = RecordStore(data_dir)
    store.initialize()
    portal = CampusPortal(store, email_domain=settings.email_domain)

    try:
        user = portal.register(
            user_type=args.user_type,
            first_name=args.first_name,
            last_name=args.last_name,
            email=args.email,
            password=password,
            student_number=args.number if args.user_type == "student" else None,
            staff_number=args.number if args.user_type == "staff" else None,
        )
    except PortalError as exc:  # duplicates, wrong domain, etc.
        print(f"Error: {exc.message}", file=sys.stderr)
        return 1

    print(f"Created {user.user_type} #{user.id}: {user.full_name} <{user.email}>")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
