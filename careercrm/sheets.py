"""Google Sheets export of the application board and recruiter list."""

import logging
from typing import Any, Optional

from googleapiclient.discovery import build

from .auth import SHEETS_SCOPES, get_credentials
from .board import all_contacts
from .config import Config
from .models import ApplicationRecord

logger = logging.getLogger(__name__)

BOARD_HEADERS = [
    "Company",
    "Status",
    "Last Updated",
    "Emails",
    "Contacts",
    "Latest Subject",
]

CONTACT_HEADERS = [
    "Name",
    "Email",
    "Role",
    "Company",
    "LinkedIn",
    "Last Contact",
]


def board_rows(records: list[ApplicationRecord]) -> list[list[str]]:
    """Convert records to spreadsheet rows."""
    rows = []
    for record in records:
        latest = record.emails[-1].subject if record.emails else ""
        rows.append([
            record.company,
            record.status.value,
            record.last_updated.isoformat(),
            str(len(record.emails)),
            str(len(record.contacts)),
            latest,
        ])
    return rows


def contact_rows(records: list[ApplicationRecord]) -> list[list[str]]:
    """Convert recruiter contacts to spreadsheet rows."""
    return [
        [
            c.name,
            c.email,
            c.role,
            c.company,
            c.linkedin or "",
            c.last_contact_date.isoformat(),
        ]
        for c in all_contacts(records)
    ]


def replace_sheet(service, spreadsheet_id: str, sheet_name: str, headers: list[str], rows: list[list[str]]) -> None:
    """Overwrite a tab with a header row followed by data rows."""
    service.spreadsheets().values().clear(
        spreadsheetId=spreadsheet_id,
        range=f"{sheet_name}!A:Z",
        body={},
    ).execute()

    service.spreadsheets().values().update(
        spreadsheetId=spreadsheet_id,
        range=f"{sheet_name}!A1",
        valueInputOption="RAW",
        body={"values": [headers] + rows},
    ).execute()

    logger.info(f"Wrote {len(rows)} rows to {sheet_name}")


def export_board(records: list[ApplicationRecord], config: Config, service: Optional[Any] = None) -> bool:
    """Mirror the records to the configured spreadsheet.

    Returns False without doing anything when no spreadsheet is configured.
    """
    if not config.spreadsheet_id:
        logger.debug("No spreadsheet configured, skipping export")
        return False

    if service is None:
        creds = get_credentials(config, SHEETS_SCOPES, "sheets_token.json")
        service = build("sheets", "v4", credentials=creds)

    replace_sheet(service, config.spreadsheet_id, config.sheet_name, BOARD_HEADERS, board_rows(records))
    replace_sheet(
        service,
        config.spreadsheet_id,
        config.contacts_sheet_name,
        CONTACT_HEADERS,
        contact_rows(records),
    )
    return True
