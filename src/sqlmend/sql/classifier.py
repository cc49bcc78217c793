# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Classify MySQL error messages into repairable failure signatures.

Signatures are tried in order; the first match wins. Only statements whose
target table can be read from the SQL (UPDATE and INSERT) are classified.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum


class FailureSignature(str, Enum):
    DATA_TOO_LONG = "data_too_long"
    ROW_TOO_LARGE = "row_too_large"


@dataclass(frozen=True)
class ErrorSignature:
    """A known error message pattern.

    If the pattern has a ``column`` group, its value is the offending column.
    """

    kind: FailureSignature
    pattern: re.Pattern[str]

    def match(self, message: str) -> re.Match[str] | None:
        return self.pattern.search(message)


@dataclass(frozen=True)
class Classification:
    kind: FailureSignature
    table: str
    column: str | None = None


SIGNATURES: tuple[ErrorSignature, ...] = (
    ErrorSignature(
        FailureSignature.DATA_TOO_LONG,
        re.compile(r"Data too long for column '(?P<column>[^']+)'", re.IGNORECASE),
    ),
    ErrorSignature(
        FailureSignature.ROW_TOO_LARGE,
        re.compile(
            r"Row\s+size\s+too\s+large\.\s*The\s+maximum\s+row\s+size\s+for\s+the\s+used\s+table"
        ),
    ),
)

_TABLE_PATTERNS = (
    re.compile(r"^\s*update\s+(\S+)\s+", re.IGNORECASE),
    re.compile(r"^\s*insert\s+into\s+(\S+)\s+", re.IGNORECASE),
)


def table_name_from_sql(sql: str) -> str:
    """Return the target table of an UPDATE or INSERT statement, else ""."""
    for pattern in _TABLE_PATTERNS:
        match = pattern.search(sql)
        if match:
            return match.group(1)
    return ""


def classify(
    message: str,
    sql: str,
    signatures: tuple[ErrorSignature, ...] = SIGNATURES,
) -> Classification | None:
    """Match an error message against the known signatures.

    Args:
        message: Server error text.
        sql: The statement that failed.
        signatures: Ordered signature table.

    Returns:
        Classification, or None when the statement has no target table or the
        message is unrecognized.
    """
    table = table_name_from_sql(sql)
    if not table:
        return None
    for signature in signatures:
        match = signature.match(message)
        if match is None:
            continue
        column = match.groupdict().get("column")
        return Classification(kind=signature.kind, table=table, column=column)
    return None


__all__ = [
    "FailureSignature",
    "ErrorSignature",
    "Classification",
    "SIGNATURES",
    "table_name_from_sql",
    "classify",
]
