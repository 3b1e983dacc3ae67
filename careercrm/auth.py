"""Google OAuth credentials shared by the Gmail and Sheets clients."""

import logging
from typing import Any

from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow

from .config import CONFIG_DIR, Config

logger = logging.getLogger(__name__)

GMAIL_SCOPES = ["https://www.googleapis.com/auth/gmail.readonly"]
SHEETS_SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]


def client_config(config: Config) -> dict[str, Any]:
    """Build an installed-app client config from the stored client id."""
    return {
        "installed": {
            "client_id": config.google_client_id,
            "client_secret": config.google_client_secret,
            "auth_uri": "https://accounts.google.com/o/oauth2/auth",
            "token_uri": "https://oauth2.googleapis.com/token",
            "redirect_uris": ["http://localhost"],
        }
    }


def get_credentials(config: Config, scopes: list[str], token_name: str) -> Credentials:
    """Get or refresh API credentials for the given scopes."""
    token_path = CONFIG_DIR / token_name
    credentials_path = CONFIG_DIR / "credentials.json"

    creds = None

    if token_path.exists():
        creds = Credentials.from_authorized_user_file(str(token_path), scopes)

    if not creds or not creds.valid:
        if creds and creds.expired and creds.refresh_token:
            logger.info(f"Refreshing expired credentials ({token_name})")
            creds.refresh(Request())
        else:
            if config.google_client_id:
                flow = InstalledAppFlow.from_client_config(client_config(config), scopes)
            elif credentials_path.exists():
                flow = InstalledAppFlow.from_client_secrets_file(
                    str(credentials_path), scopes
                )
            else:
                raise FileNotFoundError(
                    f"No Google client id configured and {credentials_path} not found. "
                    "Run `careercrm setup --google-client-id ...` or download "
                    "credentials.json from Google Cloud Console."
                )
            logger.info("Starting OAuth flow")
            creds = flow.run_local_server(port=0)

        token_path.parent.mkdir(parents=True, exist_ok=True)
        with open(token_path, "w") as token:
            token.write(creds.to_json())
            logger.info(f"Saved credentials to {token_path}")

    return creds
