#!/usr/bin/env python3
"""
Generate a bcrypt password hash with the configured cost (BCRYPT_ROUNDS).
Usage: python scripts/hash_password.py <password>
"""

import os
import sys

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from boltauth.auth import hash_password
from boltauth.config import settings


def main():
    if len(sys.argv) != 2:
        print("Usage: python scripts/hash_password.py <password>")
        sys.exit(1)

    password = sys.argv[1]
    hashed = hash_password(password)

    print(f"\nbcrypt (rounds={settings.bcrypt_rounds}):\n")
    print(hashed)
    print()


if __name__ == "__main__":
    main()
