"""
Sequence Number Module

Human-readable document numbers of the form ``PREFIX-YYYY-NNNNNN``, unique
per (prefix, year). The next number is found by locking the owning table and
counting the numbers already issued for that prefix and year.
"""

from typing import Optional

from .config import get_config
from .storage import StorageInterface


class SequenceNumberGenerator:
    """Issues loan and payment numbers"""

    def __init__(self, storage: StorageInterface, padding: Optional[int] = None):
        self.storage = storage
        self.padding = padding if padding is not None else get_config().sequence_padding

    def format(self, prefix: str, year: int, value: int) -> str:
        return f"{prefix}-{year}-{value:0{self.padding}d}"

    def next_number(self, table: str, field: str, prefix: str, year: int) -> str:
        """
        Issue the next number for a prefix and year

        Must run inside the same transaction that saves the numbered record,
        so two writers cannot both count the same total.

        Args:
            table: Table holding the numbered records
            field: Record field carrying the number
            prefix: Number prefix (``LN``, ``LP``)
            year: Calendar year of issue

        Returns:
            Formatted number, e.g. ``LN-2026-000001``
        """
        prefix_year = f"{prefix}-{year}-"
        with self.storage.atomic():
            records = self.storage.find_for_update(table, {})
            issued = sum(
                1 for record in records
                if str(record.get(field) or "").startswith(prefix_year)
            )
            return self.format(prefix, year, issued + 1)
