"""
Base parser classes and utilities.

Provides reusable parsing functionality for raw AT command responses.
"""

import logging
from abc import ABC, abstractmethod
from typing import TypeVar, Generic

from ..exceptions import FramingError

logger = logging.getLogger(__name__)

T = TypeVar('T')


class ResponseParser(ABC, Generic[T]):
    """
    Abstract base class for response parsers.

    Parsers convert raw response text into typed data structures.
    """

    @abstractmethod
    def parse(self, response: str) -> T:
        """
        Parse a raw response.

        Args:
            response: Response text as accumulated by the AT sender

        Returns:
            Parsed data structure

        Raises:
            FramingError: If response cannot be parsed
        """
        pass


class PrefixedFieldsParser(ResponseParser[list[str]]):
    """Parser for "+CMD: a,b,c" lines, returning the comma-separated fields."""

    def __init__(self, prefix: str, expected_parts: int | None = None):
        """
        Initialize parser.

        Args:
            prefix: Line prefix including colon (e.g., "+QISEND:")
            expected_parts: Expected number of fields (None = any)
        """
        self.prefix = prefix
        self.expected_parts = expected_parts

    def parse(self, response: str) -> list[str]:
        """Parse the fields of the first line carrying the prefix."""
        for line in response.splitlines():
            line = line.strip()
            if line.startswith(self.prefix):
                break
        else:
            raise FramingError(f"{self.prefix} line missing", response=response)

        parts = [p.strip().strip('"') for p in line[len(self.prefix):].split(",")]

        if self.expected_parts is not None and len(parts) != self.expected_parts:
            raise FramingError(
                f"Expected {self.expected_parts} fields, got {len(parts)}",
                response=response
            )

        return parts
