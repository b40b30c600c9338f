"""
Google Sheets Remote Mirror

DESIGN DECISION: Google Sheets is used as the remote mirror because:
1. Users can view their transactions directly in Sheets
2. No server setup required
3. Built-in backup (Google's infrastructure)

TRADEOFFS:
- Not suitable for high-volume data (fine for one household)
- No transactions (the local store stays the source of truth)
- Limited query capabilities (we filter in Python)

Every failure is raised as `RemoteUnavailableError`; the layered
repository swallows it on writes and falls back to local on reads.
"""

import asyncio
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from uangku.config import GoogleSheetsSettings, get_settings
from uangku.models.result import RemoteUnavailableError
from uangku.models.transaction import (
    ExpenseDetails,
    IncomeDetails,
    Transaction,
    TransactionKind,
)
from uangku.services.storage.interface import RemoteTransactionStore


logger = structlog.get_logger(__name__)


# Column mappings for Transactions sheet
TRANSACTION_COLUMNS = [
    "id",
    "user_id",
    "kind",
    "description",
    "amount",
    "date",
    "category_id",
    "source",
    "payment_method",
    "synced_at",
]


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
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
            except FileNotFoundError:
                raise RemoteUnavailableError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise RemoteUnavailableError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise RemoteUnavailableError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def get_transactions_sheet(self) -> gspread.Worksheet:
        """Get or create the Transactions worksheet."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(self._settings.transactions_sheet_name)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=self._settings.transactions_sheet_name,
                rows=1000,
                cols=len(TRANSACTION_COLUMNS),
            )
            sheet.append_row(TRANSACTION_COLUMNS)
        return sheet


def transaction_to_row(transaction: Transaction) -> list:
    """Convert a Transaction to a spreadsheet row."""
    return [
        transaction.id,
        transaction.user_id,
        transaction.kind.value,
        transaction.description,
        str(transaction.amount),
        transaction.date,
        transaction.category_id,
        transaction.source or "",
        transaction.payment_method or "",
        datetime.now(timezone.utc).isoformat(),
    ]


def row_to_transaction(row: list) -> Transaction:
    """Convert a spreadsheet row to a Transaction."""
    def safe_get(index: int, default: str = "") -> str:
        try:
            return row[index] if row[index] else default
        except IndexError:
            return default

    kind = TransactionKind(safe_get(2))
    if kind is TransactionKind.INCOME:
        details = IncomeDetails(source=safe_get(7, "Unknown"))
    else:
        details = ExpenseDetails(payment_method=safe_get(8, "Cash"))

    return Transaction(
        id=safe_get(0),
        user_id=safe_get(1),
        description=safe_get(3),
        amount=Decimal(safe_get(4)),
        date=safe_get(5),
        category_id=safe_get(6),
        details=details,
    )


class GoogleSheetsTransactionStore(RemoteTransactionStore):
    """
    Google Sheets implementation of the remote mirror.

    Transactions are stored as rows in a worksheet with one transaction
    per row, keyed by the id in column A.

    gspread is blocking: every worksheet call runs in a worker thread
    via `asyncio.to_thread`.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _find_row(self, sheet: gspread.Worksheet, transaction_id: str) -> Optional[int]:
        """1-based sheet row index for an id, or None."""
        all_rows = sheet.get_all_values()
        # Start from 2 (row 1 is header)
        for idx, row in enumerate(all_rows[1:], start=2):
            if row and row[0] == transaction_id:
                return idx
        return None

    def _push_sync(self, transaction: Transaction) -> None:
        sheet = self._client.get_transactions_sheet()
        row = transaction_to_row(transaction)
        idx = self._find_row(sheet, transaction.id)
        if idx is None:
            sheet.append_row(row, value_input_option="RAW")
        else:
            for col_idx, value in enumerate(row, start=1):
                sheet.update_cell(idx, col_idx, value)

    def _remove_sync(self, transaction_id: str) -> None:
        sheet = self._client.get_transactions_sheet()
        idx = self._find_row(sheet, transaction_id)
        if idx is not None:
            sheet.delete_rows(idx)

    def _fetch_rows_sync(self) -> list[list]:
        sheet = self._client.get_transactions_sheet()
        return sheet.get_all_values()[1:]  # Skip header

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type(RemoteUnavailableError),
        reraise=True,
    )
    async def push(self, transaction: Transaction) -> None:
        """Insert or replace a transaction row."""
        try:
            await asyncio.to_thread(self._push_sync, transaction)
        except RemoteUnavailableError:
            raise
        except Exception as e:
            raise RemoteUnavailableError(f"Failed to push transaction: {e}")

    async def remove(self, transaction_id: str) -> None:
        """Delete the row holding a transaction, if any."""
        try:
            await asyncio.to_thread(self._remove_sync, transaction_id)
        except RemoteUnavailableError:
            raise
        except Exception as e:
            raise RemoteUnavailableError(f"Failed to remove transaction: {e}")

    async def fetch_by_user(self, user_id: str) -> list[Transaction]:
        """List a user's mirrored transactions in sheet order."""
        try:
            all_rows = await asyncio.to_thread(self._fetch_rows_sync)
        except RemoteUnavailableError:
            raise
        except Exception as e:
            raise RemoteUnavailableError(f"Failed to fetch transactions: {e}")

        transactions = []
        for row in all_rows:
            if not row or not row[0]:  # Skip empty rows
                continue
            if len(row) < 2 or row[1] != user_id:
                continue
            try:
                transactions.append(row_to_transaction(row))
            except Exception as e:
                logger.warning("remote_row_skipped", row_id=row[0], error=str(e))
                continue

        return transactions
