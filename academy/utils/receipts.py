import re
from datetime import date
from typing import Optional
from ..core.errors import SequencingError

# Financial years run April to March
FINANCIAL_YEAR_START_MONTH = 4
SEQUENCE_WIDTH = 3

RECEIPT_PATTERN = re.compile(r"^(\d{2}-\d{2})/(\d+)$")


class ReceiptNumbering:
    """Receipt identifiers of the form "<FY>/<seq>", e.g. "24-25/003" """

    @staticmethod
    def financial_year(today: Optional[date] = None) -> str:
        """
        Label of the financial year containing ``today``.

        April 2024 .. March 2025 is "24-25".
        """
        today = today or date.today()
        year = today.year

        if today.month >= FINANCIAL_YEAR_START_MONTH:
            start, end = year, year + 1
        else:
            start, end = year - 1, year

        return f"{start % 100:02d}-{end % 100:02d}"

    @staticmethod
    def prefix(financial_year: str) -> str:
        return f"{financial_year}/"

    @staticmethod
    def parse_sequence(receipt_id: str) -> int:
        """Numeric suffix of a receipt id; malformed ids are never guessed at"""
        match = RECEIPT_PATTERN.match(receipt_id or "")
        if not match:
            raise SequencingError(f"Cannot continue receipt numbering after malformed receipt '{receipt_id}'")
        return int(match.group(2))

    @staticmethod
    def format(financial_year: str, sequence: int) -> str:
        # Width is a minimum; 1000 follows 999
        return f"{financial_year}/{sequence:0{SEQUENCE_WIDTH}d}"

    @staticmethod
    def next_after(financial_year: str, latest_receipt_id: Optional[str]) -> str:
        """Receipt id that follows ``latest_receipt_id`` within ``financial_year``"""
        if latest_receipt_id is None:
            return ReceiptNumbering.format(financial_year, 1)

        if not latest_receipt_id.startswith(ReceiptNumbering.prefix(financial_year)):
            raise SequencingError(
                f"Receipt '{latest_receipt_id}' does not belong to financial year {financial_year}"
            )

        sequence = ReceiptNumbering.parse_sequence(latest_receipt_id)
        return ReceiptNumbering.format(financial_year, sequence + 1)


# Examples:
"""
financial_year(date(2025, 3, 31)) -> "24-25"
financial_year(date(2025, 4, 1))  -> "25-26"
next_after("24-25", None)         -> "24-25/001"
next_after("24-25", "24-25/002")  -> "24-25/003"
next_after("24-25", "24-25/999")  -> "24-25/1000"
"""
