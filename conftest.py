"""
Global pytest configuration.

Loads .env before any tests run, regardless of how the tests are executed
(pytest, IDE, etc.).
"""

import os
from pathlib import Path

from dotenv import load_dotenv


def pytest_configure():
    """Load environment variables from the project's .env file, if present."""
    env_file = Path(__file__).parent / ".env"

    if env_file.exists():
        load_dotenv(env_file, override=True)
        print(f"✓ Loaded environment variables from {env_file}")

    missing_vars = [var for var in ("AZURE_DEVOPS_URL", "AZURE_DEVOPS_PAT") if not os.getenv(var)]
    if missing_vars:
        print(f"⚠️  Missing environment variables: {missing_vars}")
        print("   Only offline tests will run meaningfully; server connection is always mocked.")
