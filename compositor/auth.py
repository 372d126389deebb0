import json
import logging
from pathlib import Path

from google.auth.transport.requests import Request
from google.oauth2 import service_account
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow

from .config import Settings
from .errors import ConfigError

logger = logging.getLogger(__name__)

SCOPES = [
    "https://www.googleapis.com/auth/spreadsheets",
    "https://www.googleapis.com/auth/drive.readonly",
]


def _is_service_account(path: Path) -> bool:
    with path.open("r", encoding="utf-8") as f:
        return json.load(f).get("type") == "service_account"


def get_credentials(settings: Settings):
    """
    Credentials for the spreadsheet and drive services.

    A service-account key in `credentials.json` is used directly. Otherwise
    `credentials.json` is treated as an OAuth client secret: a cached
    `token.json` is refreshed when expired, and the installed-app flow runs
    when no usable token exists.
    """
    secret_path = settings.credentials_path
    token_path = settings.token_path

    if not secret_path.exists():
        raise ConfigError(f"Google credentials not found: {secret_path}")

    if _is_service_account(secret_path):
        return service_account.Credentials.from_service_account_file(
            str(secret_path), scopes=SCOPES
        )

    creds = None
    if token_path.exists():
        creds = Credentials.from_authorized_user_file(str(token_path), SCOPES)

    if creds and creds.valid:
        return creds

    if creds and creds.expired and creds.refresh_token:
        logger.info("Refreshing Google token")
        creds.refresh(Request())
    else:
        logger.warning("No usable Google token, starting browser sign-in")
        flow = InstalledAppFlow.from_client_secrets_file(str(secret_path), SCOPES)
        creds = flow.run_local_server(port=0)

    with token_path.open("w", encoding="utf-8") as f:
        f.write(creds.to_json())
    logger.info("Google token saved to %s", token_path)
    return creds
