#!/usr/bin/env python3
"""Create an API key for a new account on the sync server.

Usage:
    python create_api_key.py "Alice's iPhone"

The raw key is printed once and cannot be recovered afterwards.
"""

import os
import sys

from dotenv import load_dotenv

# Add src to path so we can import our modules
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

# Load environment variables before the engine reads DATABASE_URL
load_dotenv()

from auth import create_api_key  # noqa: E402
from database import SessionLocal  # noqa: E402


def main():
    if len(sys.argv) != 2:
        print(__doc__)
        sys.exit(1)

    db = SessionLocal()
    try:
        record, key = create_api_key(db, sys.argv[1])
        print(f"✓ Created API key for {record.name} (id {record.id})")
        print(f"\nAPI Key:\n{key}")
        print("\nConfigure the client with:")
        print(f'export GYMLOG_API_KEY="{key}"')
    finally:
        db.close()


if __name__ == "__main__":
    main()
