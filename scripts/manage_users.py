#!/usr/bin/env python3
"""
Administer accounts in the configured database.

Usage:
    python scripts/manage_users.py list
    python scripts/manage_users.py create <username> [--email EMAIL]
    python scripts/manage_users.py delete <username>
"""

import argparse
import asyncio
import logging
import os
import sys
from getpass import getpass

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from boltauth.auth import CredentialStore, DuplicateUsername, PasswordHasher, UserNotFound
from boltauth.auth.service import MIN_PASSWORD_LENGTH, MIN_USERNAME_LENGTH, validate_email, ValidationError
from boltauth.config import settings
from boltauth.db import SQLiteDatabase

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

logger = logging.getLogger(__name__)


async def list_users(store: CredentialStore) -> int:
    users = sorted(await store.list_all(), key=lambda u: u.created_at)
    if not users:
        print("No users")
        return 0
    for user in users:
        last_login = user.last_login.isoformat() if user.last_login else "-"
        print(f"{user.id}  {user.username:<24} {user.email or '-':<32} last login {last_login}")
    return 0


async def create_user(store: CredentialStore, username: str, email: str = None) -> int:
    if len(username) < MIN_USERNAME_LENGTH:
        print(f"Username must be at least {MIN_USERNAME_LENGTH} characters")
        return 1
    try:
        validate_email(email)
    except ValidationError as e:
        print(e.message)
        return 1

    pw1 = getpass("Password: ")
    pw2 = getpass("Repeat password: ")
    if pw1 != pw2:
        print("Passwords do not match")
        return 1
    if len(pw1) < MIN_PASSWORD_LENGTH:
        print(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
        return 1

    try:
        user = await store.create(username, await store.hasher.hash_async(pw1), email)
    except DuplicateUsername:
        print(f"Username already exists: {username}")
        return 1

    print(f"OK -> {user.id}")
    return 0


async def delete_user(store: CredentialStore, username: str) -> int:
    try:
        user = await store.get_by_username(username)
        await store.delete(user.id)
    except UserNotFound:
        print(f"No such user: {username}")
        return 1
    print(f"Deleted {username}")
    return 0


async def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Manage Bolt accounts")
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("list", help="List all users")
    create = sub.add_parser("create", help="Create a user")
    create.add_argument("username")
    create.add_argument("--email", default=None)
    delete = sub.add_parser("delete", help="Delete a user")
    delete.add_argument("username")
    args = parser.parse_args(argv)

    db = SQLiteDatabase(settings.database_path)
    await db.initialize()
    store = CredentialStore(db, PasswordHasher(settings.bcrypt_rounds))

    try:
        if args.command == "list":
            return await list_users(store)
        if args.command == "create":
            return await create_user(store, args.username, args.email)
        return await delete_user(store, args.username)
    finally:
        await db.close()


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
