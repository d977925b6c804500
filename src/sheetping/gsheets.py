"""Google Sheets binding for the TabularStore interface."""

from __future__ import annotations

from typing import List, Sequence

import google.auth.exceptions
import httplib2
from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from . import config
from .errors import FatalError, SheetNotFoundError, StoreError
from .store import TabularStore

SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]

# Failures reaching the API at all, as opposed to error responses
TRANSPORT_ERRORS = (
    httplib2.HttpLib2Error,
    OSError,
    google.auth.exceptions.GoogleAuthError,
)


def a1_range(name: str, cells: str = "") -> str:
    """A1 range for a worksheet. Quoted, or names like `web01` read as cells."""
    quoted = "'" + name.replace("'", "''") + "'"
    return f"{quoted}!{cells}" if cells else quoted


class GoogleSheetsStore(TabularStore):
    supports_formulas = True

    def __init__(self, service, spreadsheet_id: str):
        self._sheets = service.spreadsheets()
        self.spreadsheet_id = spreadsheet_id

    @classmethod
    def from_key_file(cls, key_path: str, spreadsheet_id: str) -> "GoogleSheetsStore":
        try:
            creds = service_account.Credentials.from_service_account_file(
                key_path, scopes=SCOPES
            )
            service = build("sheets", "v4", credentials=creds, cache_discovery=False)
        except (OSError, ValueError, google.auth.exceptions.GoogleAuthError) as err:
            raise FatalError(f"unable to create sheets service: {err}") from err
        return cls(service, spreadsheet_id)

    def _execute(self, request, name: str):
        try:
            return request.execute()
        except HttpError as err:
            # Ranges naming an unknown worksheet fail to parse
            if err.resp.status == 400 and "Unable to parse range" in str(err):
                raise SheetNotFoundError(name) from err
            raise StoreError(f"sheets request failed: {err}") from err
        except TRANSPORT_ERRORS as err:
            raise StoreError(f"unable to reach sheets: {err}") from err

    def _update(self, name: str, cell: str, values: Sequence[object], option: str) -> None:
        body = {"majorDimension": "ROWS", "values": [list(values)]}
        request = self._sheets.values().update(
            spreadsheetId=self.spreadsheet_id,
            range=a1_range(name, cell),
            valueInputOption=option,
            body=body,
        )
        self._execute(request, name)

    def _batch_update(self, name: str, request: dict) -> None:
        body = {"requests": [request]}
        self._execute(
            self._sheets.batchUpdate(spreadsheetId=self.spreadsheet_id, body=body),
            name,
        )

    def read_values(self, name: str) -> List[List[object]]:
        request = self._sheets.values().get(
            spreadsheetId=self.spreadsheet_id, range=a1_range(name)
        )
        return self._execute(request, name).get("values", [])

    def read_header_row(self, name: str) -> List[str]:
        request = self._sheets.values().get(
            spreadsheetId=self.spreadsheet_id, range=a1_range(name, "1:1")
        )
        values = self._execute(request, name).get("values", [])
        return [str(h) for h in values[0]] if values else []

    def write_header_row(self, name: str, headers: Sequence[str]) -> None:
        self._update(name, "A1", headers, "RAW")

    def write_snapshot_row(self, name: str, values: Sequence[object]) -> None:
        self._update(name, "A2", values, "USER_ENTERED")

    def append_row(self, name: str, values: Sequence[object]) -> None:
        request = self._sheets.values().append(
            spreadsheetId=self.spreadsheet_id,
            range=a1_range(name),
            valueInputOption="USER_ENTERED",
            insertDataOption="INSERT_ROWS",
            body={"majorDimension": "ROWS", "values": [list(values)]},
        )
        self._execute(request, name)

    def delete_rows(self, name: str, start: int, count: int) -> None:
        self._batch_update(
            name,
            {
                "deleteDimension": {
                    "range": {
                        "sheetId": self.get_sheet_id(name),
                        "dimension": "ROWS",
                        "startIndex": start,
                        "endIndex": start + count,
                    }
                }
            },
        )

    def create_sheet(self, name: str) -> None:
        self._batch_update(
            name,
            {
                "addSheet": {
                    "properties": {
                        "title": name,
                        "gridProperties": {
                            "rowCount": config.RESERVED_ROWS,
                            "columnCount": 1,
                        },
                    }
                }
            },
        )

    def get_row_count(self, name: str) -> int:
        # Rows holding values; the grid itself may carry trailing blank rows
        return len(self.read_values(name))

    def get_sheet_id(self, name: str) -> int:
        request = self._sheets.get(
            spreadsheetId=self.spreadsheet_id, fields="sheets.properties(sheetId,title)"
        )
        for sheet in self._execute(request, name).get("sheets", []):
            props = sheet.get("properties", {})
            if props.get("title") == name:
                return int(props["sheetId"])
        raise SheetNotFoundError(name)
