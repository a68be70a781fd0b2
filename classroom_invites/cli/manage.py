"""Operator commands.

Usage:
    classroom-manage init-db
    classroom-manage create-user --email a@b.com --name Ada --role teacher
    classroom-manage issue-invite --class-id 42 --issued-by 7 --expires-in-minutes 1440 --max-uses 5
"""

import argparse
import getpass
import logging
import sys

from sqlalchemy import select

from classroom_invites.database import Base, SessionLocal, engine
from classroom_invites.errors import InviteError
from classroom_invites.models.school_class import SchoolClass
from classroom_invites.models.user import ROLES, User
from classroom_invites.services.invite_store import INVITE_ROLES, create_invite

logger = logging.getLogger(__name__)


def non_negative_int(value: str) -> int:
    number = int(value)
    if number < 0:
        raise argparse.ArgumentTypeError(f"must be 0 or greater, got {number}")
    return number


def init_db(args: argparse.Namespace) -> int:
    Base.metadata.create_all(bind=engine)
    print("Database schema created.")
    return 0


def create_user(args: argparse.Namespace) -> int:
    password = args.password or getpass.getpass("Password: ").strip()
    if not all([args.email, args.name, password]):
        print("All fields are required.", file=sys.stderr)
        return 1

    email = args.email.strip().lower()
    db = SessionLocal()
    try:
        existing = db.execute(
            select(User).where(User.email == email)
        ).scalar_one_or_none()
        if existing:
            print(f"User with email {email} already exists.", file=sys.stderr)
            return 1

        user = User(email=email, name=args.name, role=args.role, password_hash="")
        user.set_password(password)
        db.add(user)
        db.commit()
        print(f"{args.role.capitalize()} user '{args.name}' created with id {user.id}.")
    finally:
        db.close()
    return 0


def issue_invite(args: argparse.Namespace) -> int:
    db = SessionLocal()
    try:
        school_class = db.get(SchoolClass, args.class_id)
        if school_class is None:
            print(f"Class {args.class_id} not found.", file=sys.stderr)
            return 1
        issuer = db.get(User, args.issued_by or school_class.owner_id)
        if issuer is None:
            print(f"User {args.issued_by} not found.", file=sys.stderr)
            return 1

        try:
            invite = create_invite(
                db,
                school_class,
                issuer,
                role=args.role,
                expires_in_minutes=args.expires_in_minutes,
                max_uses=args.max_uses,
            )
        except InviteError as exc:
            db.rollback()
            print(f"Error: {exc.message}", file=sys.stderr)
            return 1
        db.commit()
        expiry = invite.expires_at.isoformat() if invite.expires_at else "never"
        print(f"{invite.code}\texpires={expiry}\tmax_uses={invite.max_uses or 'unlimited'}")
    finally:
        db.close()
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="classroom-manage", description="Classroom invites administration")
    subparsers = parser.add_subparsers(dest="command", required=True)

    init_parser = subparsers.add_parser("init-db", help="Create all tables")
    init_parser.set_defaults(func=init_db)

    user_parser = subparsers.add_parser("create-user", help="Create a user account")
    user_parser.add_argument("--email", required=True)
    user_parser.add_argument("--name", required=True)
    user_parser.add_argument("--role", choices=ROLES, default="admin")
    user_parser.add_argument("--password", help="Prompted for when omitted")
    user_parser.set_defaults(func=create_user)

    invite_parser = subparsers.add_parser("issue-invite", help="Issue an invite code for a class")
    invite_parser.add_argument("--class-id", type=int, required=True)
    invite_parser.add_argument("--issued-by", type=int, help="Issuing user id (default: class owner)")
    invite_parser.add_argument("--role", choices=INVITE_ROLES, default=None)
    invite_parser.add_argument("--expires-in-minutes", type=non_negative_int, default=0)
    invite_parser.add_argument("--max-uses", type=non_negative_int, default=0)
    invite_parser.set_defaults(func=issue_invite)

    return parser


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
