"""CLI script to create (or reset the password of) an admin user.

Usage: python scripts/create_admin.py --username NAME --password PASSWORD
"""
import argparse
import pathlib
import sys

# Ensure the repository root is on sys.path so `courses_api` imports work when running this script directly
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
from sqlmodel import Session
from courses_api.config import get_settings
from courses_api.database import create_db_and_tables, create_db_engine
from courses_api import repositories, services


def main(username: str, password: str, database_url: str = None):
    """Create the user, or update the password if it already exists.

    Results are printed to stdout for a quick CLI feedback loop.
    """
    engine = create_db_engine(database_url or get_settings().DATABASE_URL)
    create_db_and_tables(engine)
    with Session(engine) as session:
        svc = services.AuthService(session)
        existing = repositories.UserRepository(session).get_by_username(username)
        if existing:
            svc.set_password(existing, password)
            print(f'Updated password for {username} (id {existing.id})')
            return existing.id
        user = svc.create_user(username, password)
        print(f'Created admin {username} (id {user.id})')
        return user.id


if __name__ == '__main__':
    parser = argparse.ArgumentParser()
    parser.add_argument('--username', required=True)
    parser.add_argument('--password', required=True)
    parser.add_argument('--database-url', help='Override DATABASE_URL')
    args = parser.parse_args()
    main(args.username, args.password, args.database_url)
