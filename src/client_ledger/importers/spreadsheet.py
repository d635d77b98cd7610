import logging
import re
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import List, Optional

import pandas as pd

from client_ledger.domain.models import Transaction, ZERO

logger = logging.getLogger(__name__)

AMOUNT_NOISE = re.compile(r"(KES|USD|\$|,|\s)", re.IGNORECASE)


class SpreadsheetLedgerImporter:
    """
    Reads a client's ledger from a .csv or .xlsx sheet.

    The expected columns are the statement's own: Date, Description,
    Money IN, Money OUT. Sheets exported from other tools often carry a
    title block above the table, so the header row is searched for in
    the first rows instead of assumed to be row 0.

    Example:
        importer = SpreadsheetLedgerImporter()
        transactions = importer.parse('old_ledger.xlsx')
    """

    DATE_COL = "Date"
    DESCRIPTION_COL = "Description"
    MONEY_IN_COL = "Money IN"
    MONEY_OUT_COL = "Money OUT"

    SUPPORTED_SUFFIXES = ('.csv', '.xlsx')
    HEADER_SEARCH_ROWS = 20

    def validate_file(self, filepath: Path | str) -> None:
        """
        Check the file exists and has a supported extension.

        Raises:
            FileNotFoundError: If file doesn't exist
            ValueError: If the extension is not supported
        """
        path = Path(filepath)

        if not path.exists():
            raise FileNotFoundError(f"File does not exist on path {path}")

        if path.suffix.lower() not in self.SUPPORTED_SUFFIXES:
            raise ValueError(f"File must be .csv or .xlsx, got {path.suffix}")

    def parse(self, filepath: Path | str) -> List[Transaction]:
        """
        Parse a ledger sheet into transactions.

        Rows without a date are skipped; blank amounts count as zero. The
        returned transactions have no client or currency yet.

        Raises:
            FileNotFoundError: If file doesn't exist
            ValueError: If the file can't be read or lacks required columns
        """
        self.validate_file(filepath)

        try:
            df_raw = self._read(filepath, header=None)
        except Exception as e:
            raise ValueError(f"Failed to read {filepath}: {e}") from e

        header_row = self._find_header_row(df_raw)
        if header_row is None:
            raise ValueError("Could not find a Date/Description header row in the file")

        df = df_raw.iloc[header_row + 1:].copy()
        df.columns = [str(c).strip() for c in df_raw.iloc[header_row]]
        self._validate_columns(df)

        transactions = []
        for index, row in df.iterrows():
            if pd.isna(row[self.DATE_COL]) or str(row[self.DATE_COL]).strip() == "":
                continue
            try:
                transactions.append(self._parse_row(row))
            except (ValueError, InvalidOperation) as e:
                logger.warning("Skipping row %s: %s", index, e)

        logger.info("Parsed %d transactions from %s", len(transactions), filepath)
        return transactions

    def _read(self, filepath: Path | str, header: Optional[int]) -> pd.DataFrame:
        if Path(filepath).suffix.lower() == '.csv':
            return pd.read_csv(filepath, header=header, dtype=str, keep_default_na=True)
        return pd.read_excel(filepath, header=header)

    def _find_header_row(self, df_raw: pd.DataFrame) -> Optional[int]:
        """Index of the first row mentioning both 'date' and 'description'"""
        for i in range(min(self.HEADER_SEARCH_ROWS, len(df_raw))):
            row_str = ' '.join(str(x).lower() for x in df_raw.iloc[i] if pd.notna(x))
            if 'date' in row_str and 'description' in row_str:
                return i
        return None

    def _validate_columns(self, df: pd.DataFrame) -> None:
        """Ensure all required columns are present"""
        required = [self.DATE_COL, self.DESCRIPTION_COL, self.MONEY_IN_COL, self.MONEY_OUT_COL]
        missing = [col for col in required if col not in df.columns]
        if missing:
            raise ValueError(
                f"Missing required columns: {missing}. "
                f"Available columns: {list(df.columns)}"
            )

    def _parse_amount(self, value) -> Decimal:
        if pd.isna(value):
            return ZERO
        text = AMOUNT_NOISE.sub("", str(value))
        if text in ("", "-"):
            return ZERO
        return abs(Decimal(text))

    def _parse_row(self, row: pd.Series) -> Transaction:
        day = pd.to_datetime(row[self.DATE_COL], dayfirst=False).date()
        description = row[self.DESCRIPTION_COL]
        return Transaction(
            date=day,
            description="" if pd.isna(description) else str(description).strip(),
            credit=self._parse_amount(row[self.MONEY_IN_COL]),
            debit=self._parse_amount(row[self.MONEY_OUT_COL]),
        )
