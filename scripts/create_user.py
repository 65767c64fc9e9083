import argparse
import getpass
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from superbudget.config import load_database_path
from superbudget.database import Database, resolve_database_path
from superbudget.errors import ConflictError
from superbudget.security import hash_password

MIN_PASSWORD_LENGTH = 6


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create a Super Budget dashboard user")
    parser.add_argument("name", help="Display name for the user")
    parser.add_argument("email", help="Unique email address for login")
    parser.add_argument(
        "--db",
        dest="db_path",
        default=None,
        help="Path to the SQLite database (defaults to the configured path or data/superbudget.sqlite3)",
    )
    return parser.parse_args()


def prompt_for_password() -> str:
    for _ in range(3):
        password = getpass.getpass("Password: ")
        confirm = getpass.getpass("Confirm password: ")
        if password != confirm:
            print("Passwords do not match. Try again.", file=sys.stderr)
            continue
        if len(password) < MIN_PASSWORD_LENGTH:
            print(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long.", file=sys.stderr)
            continue
        return password
    raise SystemExit("Failed to set password after three attempts.")


def main() -> int:
    args = parse_args()
    name = args.name.strip()
    email = args.email.strip()
    if not name or not email:
        print("Error: name and email must not be empty", file=sys.stderr)
        return 1
    configured = load_database_path()
    db_path = resolve_database_path(args.db_path or (str(configured) if configured else None))

    database = Database(db_path)
    database.initialize()

    if database.get_user_by_email(email) is not None:
        print(f"Error: a user with email {email} already exists", file=sys.stderr)
        return 1
    password = prompt_for_password()

    try:
        user = database.create_user(email, name, hash_password(password))
    except ConflictError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    print(f"Created user {user.id}: {user.name} <{user.email}>")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
