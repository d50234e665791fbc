"""Configuration and credential management for SmartCart."""

import json
import os
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# App directories
APP_NAME = "smartcart"
CONFIG_DIR = Path.home() / f".{APP_NAME}"
CREDENTIALS_FILE = CONFIG_DIR / "credentials.json"

# API Configuration
KROGER_API_BASE_URL = "https://api-ce.kroger.com/v1"
KROGER_TOKEN_URL = f"{KROGER_API_BASE_URL}/connect/oauth2/token"
KROGER_SCOPE = "product.compact"
SERPAPI_URL = "https://serpapi.com/search.json"

# Kroger tokens live for 30 minutes; refresh a little early
TOKEN_TTL_SECONDS = 25 * 60
REQUEST_TIMEOUT = 15.0


def _load_credentials_file() -> dict[str, str]:
    if not CREDENTIALS_FILE.exists():
        return {}
    try:
        with open(CREDENTIALS_FILE) as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError):
        return {}
    return data if isinstance(data, dict) else {}


def get_kroger_credentials() -> tuple[str | None, str | None]:
    """Get Kroger client credentials from environment or config file."""
    client_id = os.getenv("KROGER_CLIENT_ID")
    client_secret = os.getenv("KROGER_CLIENT_SECRET")

    if client_id and client_secret:
        return client_id, client_secret

    creds = _load_credentials_file()
    return creds.get("kroger_client_id"), creds.get("kroger_client_secret")


def get_serpapi_key() -> str | None:
    """Get the SerpAPI key used for Walmart searches."""
    key = os.getenv("SERPAPI_API_KEY")
    if key:
        return key
    return _load_credentials_file().get("serpapi_api_key")


def get_max_workers() -> int:
    """Fan-out for concurrent price lookups."""
    try:
        value = int(os.getenv("SMARTCART_MAX_WORKERS", "4"))
    except ValueError:
        return 4
    return max(1, value)


def save_credentials(**values: str) -> None:
    """Merge the given credentials into the config file."""
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    creds = _load_credentials_file()
    creds.update({k: v for k, v in values.items() if v})

    with open(CREDENTIALS_FILE, "w") as f:
        json.dump(creds, f)
    # Set restrictive permissions
    CREDENTIALS_FILE.chmod(0o600)


def clear_credentials() -> None:
    """Remove saved credentials."""
    if CREDENTIALS_FILE.exists():
        CREDENTIALS_FILE.unlink()
