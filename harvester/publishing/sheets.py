"""Google Sheets publisher for the harvested token."""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.parse import quote

import requests
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import AuthorizedSession
from google.oauth2 import service_account

from ..errors import ConfigurationError


logger = logging.getLogger(__name__)


SHEETS_API_BASE = "https://sheets.googleapis.com/v4/spreadsheets"
SHEETS_SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]


@dataclass(frozen=True)
class PublishAck:
    """What the Sheets API reported after an update."""

    spreadsheet_id: str
    updated_range: Optional[str]
    updated_cells: int


class SheetsPublisher:
    """Overwrites a fixed range with ``[token, timestamp]`` (RAW input, no formulas)."""

    def __init__(
        self,
        session: requests.Session,
        spreadsheet_id: str,
        value_range: str = "Sheet1!A1:B1",
        timeout: float = 30,
    ):
        """Initialize publisher.

        Args:
            session: Authorized requests session for the Sheets API
            spreadsheet_id: Target spreadsheet ID
            value_range: A1 range receiving token and timestamp
            timeout: Request timeout in seconds
        """
        self.session = session
        self.spreadsheet_id = spreadsheet_id
        self.value_range = value_range
        self.timeout = timeout

    @classmethod
    def from_service_account_info(
        cls,
        info: Dict[str, Any],
        spreadsheet_id: str,
        value_range: str = "Sheet1!A1:B1",
        timeout: float = 30,
    ) -> "SheetsPublisher":
        """Build a publisher authenticated as a Google service account.

        Raises:
            ConfigurationError: If the service account info is malformed
        """
        logger.info("Authenticating with service account...")
        try:
            credentials = service_account.Credentials.from_service_account_info(info, scopes=SHEETS_SCOPES)
        except (ValueError, GoogleAuthError) as e:
            raise ConfigurationError(f"Invalid service account credentials: {e}") from e
        return cls(AuthorizedSession(credentials), spreadsheet_id, value_range, timeout)

    def publish(self, token: str, timestamp: str) -> PublishAck:
        """Write token and timestamp into the configured range.

        Args:
            token: Captured access token
            timestamp: ISO-8601 capture time

        Returns:
            PublishAck: Update summary from the API

        Raises:
            requests.HTTPError: If the API rejects the update
        """
        url = f"{SHEETS_API_BASE}/{self.spreadsheet_id}/values/{quote(self.value_range, safe='')}"
        body = {
            "range": self.value_range,
            "majorDimension": "ROWS",
            "values": [[token, timestamp]],
        }

        logger.info(f"Updating {self.value_range} in spreadsheet {self.spreadsheet_id}")
        response = self.session.put(
            url,
            params={"valueInputOption": "RAW"},
            json=body,
            timeout=self.timeout,
        )
        response.raise_for_status()

        data = response.json()
        ack = PublishAck(
            spreadsheet_id=data.get("spreadsheetId", self.spreadsheet_id),
            updated_range=data.get("updatedRange"),
            updated_cells=int(data.get("updatedCells", 0)),
        )
        logger.info(f"✓ Sheet updated: {ack.updated_cells} cells in {ack.updated_range}")
        return ack
