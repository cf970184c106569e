# sheets_service.py

import json
import logging
from typing import Optional

from google.oauth2.service_account import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from .errors import ConfigurationError, NetworkError, StructureValidationError
from .models import CustomerRow, ROW_WIDTH, SheetRow
from .name_matcher import normalize_name
from .order_sequencer import extract_key, sort_customer_rows

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]

EXPECTED_HEADERS = [
    "Name",
    "Ig Link",
    "Contenus",
    "Numéro de commande",
    "Suivi de commande",
    "Done",
    "Tiktok Link",
    "ITEMS GIFT",
]

HEADER_ROW = 1


# ---------- CREDENTIALS ----------
def load_credentials(settings) -> Credentials:
    """Inline JSON (hosted deployments) wins over the local credentials file."""
    try:
        if settings.uses_inline_credentials:
            info = json.loads(settings.credentials_json)
            return Credentials.from_service_account_info(info, scopes=SCOPES)
        return Credentials.from_service_account_file(settings.credentials_file, scopes=SCOPES)
    except (ValueError, OSError) as err:
        raise ConfigurationError(f"Invalid Google service account credentials: {err}")


def get_service(settings):
    return build("sheets", "v4", credentials=load_credentials(settings), cache_discovery=False)


# ---------- SHEET STRUCTURE ----------
def validate_sheet_structure(rows: list[SheetRow]) -> None:
    """Raise StructureValidationError unless row 1 carries the expected A-H headers."""
    headers = rows[0].cells()[:len(EXPECTED_HEADERS)] if rows else []
    if headers != EXPECTED_HEADERS:
        raise StructureValidationError(
            "Sheet structure does not match the expected headers",
            headers=headers,
            expected_headers=EXPECTED_HEADERS,
        )


def check_sheet_structure(rows: list[SheetRow]) -> dict:
    try:
        validate_sheet_structure(rows)
    except StructureValidationError as err:
        return {
            "isValid": False,
            "headers": err.headers,
            "expectedHeaders": err.expected_headers,
            "message": str(err),
        }
    return {
        "isValid": True,
        "headers": EXPECTED_HEADERS,
        "expectedHeaders": EXPECTED_HEADERS,
        "message": "Sheet structure is valid",
    }


def find_customer_rows(rows: list[SheetRow], customer_name: str, exclude_row: Optional[int] = None) -> list[CustomerRow]:
    """Data rows whose column D equals `customer_name`, sorted chronologically."""
    target = normalize_name(customer_name)
    matches = [
        CustomerRow(row.row_number, row.order_number.strip(), extract_key(row.order_number))
        for row in rows
        if row.row_number > HEADER_ROW
        and row.row_number != exclude_row
        and target
        and normalize_name(row.name) == target
    ]
    return sort_customer_rows(matches)


def analyze_customer_orders(rows: list[SheetRow], customer_name: str) -> dict:
    by_number = {row.row_number: row for row in rows}
    customer_rows = find_customer_rows(rows, customer_name)
    return {
        "customerName": customer_name,
        "totalOrders": len(customer_rows),
        "orders": [
            {
                "rowIndex": c.row_number,
                "orderNumber": c.order_number,
                "orderKey": c.key,
                "hasTracking": bool(by_number[c.row_number].tracking_number.strip()),
                "hasItems": bool(by_number[c.row_number].items_gift.strip()),
            }
            for c in customer_rows
        ],
        "chronologicalOrder": "sorted" if len(customer_rows) > 1 else "single",
    }


# ---------- GOOGLE SHEETS ----------
class GoogleSheetsStore:
    """Spreadsheet store backed by the Sheets v4 values API."""

    def __init__(self, service, spreadsheet_id: str, sheet_range: str = "A:L", sheet_tab_id: int = 0):
        self.service = service
        self.spreadsheet_id = spreadsheet_id
        self.sheet_range = sheet_range
        self.sheet_tab_id = sheet_tab_id
        self.tab_prefix = sheet_range.split("!", 1)[0] + "!" if "!" in sheet_range else ""

    @classmethod
    def from_settings(cls, settings) -> "GoogleSheetsStore":
        return cls(
            get_service(settings),
            settings.spreadsheet_id,
            sheet_range=settings.sheet_range,
            sheet_tab_id=settings.sheet_tab_id,
        )

    def _row_range(self, row_number: int) -> str:
        return f"{self.tab_prefix}A{row_number}:L{row_number}"

    def _values(self):
        return self.service.spreadsheets().values()

    def read_all_rows(self) -> list[SheetRow]:
        try:
            result = (
                self._values()
                .get(spreadsheetId=self.spreadsheet_id, range=self.sheet_range)
                .execute()
            )
        except HttpError as err:
            raise NetworkError(f"Google Sheets read failed: {err}")
        values = result.get("values", [])
        return [SheetRow.from_cells(index, cells) for index, cells in enumerate(values, start=1)]

    def update_row(self, row_number: int, cells: list) -> dict:
        body = {"values": [_pad(cells)]}
        try:
            response = self._values().update(
                spreadsheetId=self.spreadsheet_id,
                range=self._row_range(row_number),
                valueInputOption="RAW",
                body=body,
            ).execute()
        except HttpError as err:
            raise NetworkError(f"Failed to update row {row_number}: {err}")
        logger.debug("Row %s updated (%s)", row_number, response.get("updatedRange"))
        return response

    def insert_row_at(self, row_number: int, cells: list) -> dict:
        """Shift rows at/after `row_number` down by one, then write the new row."""
        request = {
            "insertDimension": {
                "range": {
                    "sheetId": self.sheet_tab_id,
                    "dimension": "ROWS",
                    "startIndex": row_number - 1,
                    "endIndex": row_number,
                },
                "inheritFromBefore": False,
            }
        }
        try:
            self.service.spreadsheets().batchUpdate(
                spreadsheetId=self.spreadsheet_id,
                body={"requests": [request]},
            ).execute()
        except HttpError as err:
            raise NetworkError(f"Failed to insert row at {row_number}: {err}")
        return self.update_row(row_number, cells)

    def append_row(self, cells: list) -> dict:
        try:
            response = self._values().append(
                spreadsheetId=self.spreadsheet_id,
                range=self.sheet_range,
                valueInputOption="RAW",
                insertDataOption="INSERT_ROWS",
                body={"values": [_pad(cells)]},
            ).execute()
        except HttpError as err:
            raise NetworkError(f"Failed to append row: {err}")
        return response.get("updates", {})

    def test_connection(self) -> dict:
        try:
            response = self.service.spreadsheets().get(
                spreadsheetId=self.spreadsheet_id,
                fields="properties.title,sheets.properties",
            ).execute()
        except HttpError as err:
            return {"success": False, "error": str(err)}
        return {
            "success": True,
            "spreadsheet": {
                "title": response["properties"]["title"],
                "sheets": [
                    {"title": s["properties"]["title"], "sheetId": s["properties"]["sheetId"]}
                    for s in response.get("sheets", [])
                ],
            },
        }


def _pad(cells: list) -> list:
    cells = list(cells)[:ROW_WIDTH]
    return cells + [""] * (ROW_WIDTH - len(cells))
