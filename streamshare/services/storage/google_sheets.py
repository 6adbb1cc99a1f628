"""
Google Sheets Storage Implementation

An alternative backend for households that would rather look at their
data in a spreadsheet than in a database dashboard.

LAYOUT:
- One worksheet per resource (Members, Services, Payments)
- Row 1 is a header row with the column names
- `member_ids` is stored as a JSON array in a single cell
- Ids are generated here (uuid4); Sheets has no row identity

TRADEOFFS:
- No transactions: every write is a single append, update or delete
- Reads fetch the whole worksheet and filter in Python
"""

import json
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, Optional
from uuid import uuid4

import gspread
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from streamshare.config import get_settings
from streamshare.config.settings import GoogleSheetsSettings
from streamshare.models.household import Member, Payment, Service
from streamshare.services.storage.interface import (
    HouseholdStorageInterface,
    NotFoundError,
    PersistenceError,
    StoreConnectionError,
)
from streamshare.services.storage.records import (
    MEMBER_COLUMNS,
    PAYMENT_COLUMNS,
    SERVICE_COLUMNS,
    member_from_record,
    new_member_record,
    new_payment_record,
    new_service_record,
    payment_from_record,
    service_from_record,
    service_members_to_record,
)


class GoogleSheetsClient:
    """
    Service-account connection to the household spreadsheet.

    Connects lazily; connection setup is retried, sheet writes are not.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

    @property
    def settings(self) -> GoogleSheetsSettings:
        return self._settings

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """Authorize with the service account key on first use."""
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError as e:
                raise StoreConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                ) from e
            except Exception as e:
                raise StoreConnectionError(f"Failed to connect to Google Sheets: {e}") from e

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Open the spreadsheet named by GOOGLE_SHEETS_SPREADSHEET_ID."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound as e:
                raise StoreConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                ) from e
        return self._spreadsheet

    def get_sheet(self, title: str, columns: list[str]) -> gspread.Worksheet:
        """Get a worksheet, creating it with a header row if missing."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=1000,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet


def _row_to_record(row: list, columns: list[str]) -> dict:
    """Zip a sheet row with its header; missing trailing cells read as empty."""
    return {col: (row[i] if i < len(row) else "") for i, col in enumerate(columns)}


def _decode_member_ids(cell: str) -> list:
    if not cell:
        return []
    return json.loads(cell)


class GoogleSheetsHouseholdStorage(HouseholdStorageInterface):
    """
    Google Sheets implementation of household storage.

    One row per entity. Payments are appended, so the newest payment
    is the last row; listing reverses that.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        super().__init__()
        self._client = client or GoogleSheetsClient()
        self._names = self._client.settings

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _members_sheet(self) -> gspread.Worksheet:
        return self._client.get_sheet(self._names.members_sheet_name, MEMBER_COLUMNS)

    def _services_sheet(self) -> gspread.Worksheet:
        return self._client.get_sheet(self._names.services_sheet_name, SERVICE_COLUMNS)

    def _payments_sheet(self) -> gspread.Worksheet:
        return self._client.get_sheet(self._names.payments_sheet_name, PAYMENT_COLUMNS)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _fetch_rows(self, sheet_getter: Callable[[], gspread.Worksheet]) -> list[list]:
        """All data rows, header excluded."""
        return sheet_getter().get_all_values()[1:]

    def _read(
        self,
        what: str,
        sheet_getter: Callable[[], gspread.Worksheet],
        columns: list[str],
        translate: Callable[[dict], object],
    ) -> list:
        try:
            rows = self._fetch_rows(sheet_getter)
        except PersistenceError:
            raise
        except Exception as e:
            raise PersistenceError(f"Failed to list {what}: {e}") from e

        items = []
        for row in rows:
            if not row or not row[0]:  # Skip empty rows
                continue
            try:
                items.append(translate(_row_to_record(row, columns)))
            except Exception as e:
                self.skip_row(what, row[0], e)
        return items

    def _append(self, what: str, sheet: gspread.Worksheet, row: list) -> None:
        try:
            sheet.append_row(row, value_input_option="RAW")
        except Exception as e:
            raise PersistenceError(f"Failed to save {what}: {e}") from e

    def _find_row_index(self, sheet: gspread.Worksheet, row_id: str) -> Optional[int]:
        """1-based sheet row number of the entity, or None."""
        for idx, row in enumerate(sheet.get_all_values()[1:], start=2):  # Row 1 is header
            if row and row[0] == row_id:
                return idx
        return None

    def _delete(self, what: str, sheet_getter: Callable[[], gspread.Worksheet], row_id: str) -> None:
        try:
            sheet = sheet_getter()
            idx = self._find_row_index(sheet, row_id)
            if idx is not None:
                sheet.delete_rows(idx)
        except PersistenceError:
            raise
        except Exception as e:
            raise PersistenceError(f"Failed to delete {what}: {e}") from e

    @staticmethod
    def _now() -> str:
        return datetime.now(timezone.utc).isoformat()

    # -------------------------------------------------------------------------
    # Members
    # -------------------------------------------------------------------------

    async def list_members(self) -> list[Member]:
        return self._read("members", self._members_sheet, MEMBER_COLUMNS, member_from_record)

    async def insert_member(self, name: str) -> Member:
        record = {"id": str(uuid4()), **new_member_record(name), "created_at": self._now()}
        try:
            sheet = self._members_sheet()
        except PersistenceError:
            raise
        except Exception as e:
            raise PersistenceError(f"Failed to open members sheet: {e}") from e
        self._append("member", sheet, [record[col] for col in MEMBER_COLUMNS])
        return member_from_record(record)

    async def delete_member(self, member_id: str) -> None:
        self._delete("member", self._members_sheet, member_id)

    # -------------------------------------------------------------------------
    # Services
    # -------------------------------------------------------------------------

    @staticmethod
    def _service_row(record: dict) -> list:
        return [
            record["id"],
            record["name"],
            str(record["cost"]),
            json.dumps(record["member_ids"]),
            record["created_at"],
        ]

    @staticmethod
    def _service_from_sheet(record: dict) -> Service:
        record = dict(record, member_ids=_decode_member_ids(record.get("member_ids", "")))
        return service_from_record(record)

    async def list_services(self) -> list[Service]:
        return self._read("services", self._services_sheet, SERVICE_COLUMNS, self._service_from_sheet)

    async def insert_service(self, name: str, cost: Decimal) -> Service:
        record = {"id": str(uuid4()), **new_service_record(name, cost), "created_at": self._now()}
        try:
            sheet = self._services_sheet()
        except PersistenceError:
            raise
        except Exception as e:
            raise PersistenceError(f"Failed to open services sheet: {e}") from e
        self._append("service", sheet, self._service_row(record))
        return service_from_record(record)

    async def delete_service(self, service_id: str) -> None:
        self._delete("service", self._services_sheet, service_id)

    async def update_service_members(
        self,
        service_id: str,
        member_ids: list[str],
    ) -> None:
        column = SERVICE_COLUMNS.index("member_ids") + 1
        value = json.dumps(service_members_to_record(member_ids)["member_ids"])
        try:
            sheet = self._services_sheet()
            idx = self._find_row_index(sheet, service_id)
            if idx is None:
                raise NotFoundError(f"Service not found: {service_id}")
            sheet.update_cell(idx, column, value)
        except PersistenceError:
            raise
        except Exception as e:
            raise PersistenceError(f"Failed to update service {service_id}: {e}") from e

    # -------------------------------------------------------------------------
    # Payments
    # -------------------------------------------------------------------------

    async def list_payments(self) -> list[Payment]:
        payments = self._read("payments", self._payments_sheet, PAYMENT_COLUMNS, payment_from_record)
        # Appended oldest first; newest first for callers
        payments.reverse()
        return payments

    async def insert_payment(
        self,
        member_id: str,
        month: str,
        date: str,
    ) -> Payment:
        record = {"id": str(uuid4()), **new_payment_record(member_id, month, date)}
        try:
            sheet = self._payments_sheet()
        except PersistenceError:
            raise
        except Exception as e:
            raise PersistenceError(f"Failed to open payments sheet: {e}") from e
        self._append("payment", sheet, [record[col] for col in PAYMENT_COLUMNS])
        return payment_from_record(record)

    async def delete_payment(self, payment_id: str) -> None:
        self._delete("payment", self._payments_sheet, payment_id)
