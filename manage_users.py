"""
ACCOUNT MANAGEMENT HELPER
Quick script to bootstrap and maintain user accounts in the database.
Public registration only ever creates plain users, so the first admin is made here.

Usage:
    python manage_users.py --create-admin <username> <email> [--name NAME] [--password PASSWORD]
    python manage_users.py --list
    python manage_users.py --promote <username>
    python manage_users.py --demote <username>
    python manage_users.py --delete <username>
"""

import getpass
import sys

from fastapi import HTTPException

from bloghub.config import Settings
from bloghub.database import Database
from bloghub.models.user import User, ROLE_ADMIN, ROLE_USER
from bloghub.services.security import PasswordHasher
from bloghub.services.users import create_user


def open_database(settings):
    database = Database(settings.database_url)
    database.init()
    return database


def create_admin(database, hasher, username, email, name=None, password=None):
    """Create an admin account"""
    if not password:
        password = getpass.getpass("Password for new admin: ")
    if len(password) < 8:
        print("❌ Password must be at least 8 characters")
        return False

    db = database.SessionLocal()
    try:
        try:
            user = create_user(db, hasher, email=email, username=username, password=password,
                               name=name, role=ROLE_ADMIN)
        except HTTPException as e:
            print(f"❌ {e.detail}")
            return False

        print("✅ Admin created successfully!")
        print(f"   Id: {user.id}")
        print(f"   Username: {user.username}")
        print(f"   Email: {user.email}")
        return True
    finally:
        db.close()


def list_users(database):
    db = database.SessionLocal()
    try:
        users = db.query(User).order_by(User.id).all()

        if not users:
            print("No users found.")
            return

        print(f"\n{'Id':<6} {'Username':<20} {'Email':<32} {'Role':<8} {'Created':<12}")
        print("-" * 80)

        for u in users:
            created = u.created_at.strftime("%Y-%m-%d") if u.created_at else "-"
            print(f"{u.id:<6} {u.username:<20} {u.email:<32} {u.role:<8} {created:<12}")

        print()
    finally:
        db.close()


def set_role(database, username, role):
    db = database.SessionLocal()
    try:
        user = db.query(User).filter(User.username == username).first()
        if not user:
            print(f"❌ User '{username}' not found!")
            return False

        user.role = role
        db.commit()

        print(f"✅ User '{username}' is now {role}")
        return True
    finally:
        db.close()


def delete_user(database, username):
    db = database.SessionLocal()
    try:
        user = db.query(User).filter(User.username == username).first()
        if not user:
            print(f"❌ User '{username}' not found!")
            return False

        db.delete(user)
        db.commit()

        print(f"✅ User '{username}' and their posts have been deleted")
        return True
    finally:
        db.close()


def main(argv):
    if len(argv) < 2:
        print(__doc__)
        return 1

    settings = Settings.from_env()
    database = open_database(settings)
    command = argv[1]

    try:
        if command == "--create-admin":
            if len(argv) < 4:
                print("Usage: python manage_users.py --create-admin <username> <email> [--name NAME] [--password PASSWORD]")
                return 1

            username, email = argv[2], argv[3]
            name = None
            password = None

            # Parse optional arguments
            i = 4
            while i < len(argv):
                if argv[i] == "--name" and i + 1 < len(argv):
                    name = argv[i + 1]
                    i += 2
                elif argv[i] == "--password" and i + 1 < len(argv):
                    password = argv[i + 1]
                    i += 2
                else:
                    i += 1

            hasher = PasswordHasher(rounds=settings.bcrypt_rounds)
            return 0 if create_admin(database, hasher, username, email, name, password) else 1

        if command == "--list":
            list_users(database)
            return 0

        if command in ("--promote", "--demote", "--delete"):
            if len(argv) < 3:
                print(f"Usage: python manage_users.py {command} <username>")
                return 1
            if command == "--delete":
                ok = delete_user(database, argv[2])
            else:
                ok = set_role(database, argv[2], ROLE_ADMIN if command == "--promote" else ROLE_USER)
            return 0 if ok else 1

        print(f"Unknown command: {command}")
        print(__doc__)
        return 1
    finally:
        database.dispose()


if __name__ == "__main__":
    sys.exit(main(sys.argv))
