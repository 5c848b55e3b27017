import argparse
import logging

from app.models.account import Role
from app.service.db.postgres import build_engine, create_db_and_tables
from app.service.db.utils import seed_account

"""
    Execute w/ command: python -m app.service.db.seed_accounts grace@moondev.io secret --role evaluator
"""

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def main(email: str, password: str, role: Role, replace: bool):
    engine = build_engine()
    try:
        create_db_and_tables(engine)
        seed_account(engine, email, password, role, replace=replace)
    finally:
        engine.dispose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Provision a portal account.")
    parser.add_argument("email", help="Login email of the account.")
    parser.add_argument("password", help="Plain-text password, stored as a bcrypt hash.")
    parser.add_argument("--role", choices=[role.value for role in Role], default=Role.DEVELOPER.value)
    parser.add_argument("--replace", action="store_true", help="Recreate the account if it already exists.")
    args = parser.parse_args()

    main(args.email, args.password, Role(args.role), args.replace)
