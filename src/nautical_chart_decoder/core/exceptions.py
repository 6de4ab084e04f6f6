#!/usr/bin/env python3
# Copyright (C) 2024-2025 Viktor Kolbasov <contact@studentdotai.com>
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.

"""
exceptions.py

Error types raised while decoding an S-57 exchange file.

Every fatal condition surfaces as a ChartDecodeError subclass so callers can
treat "this file cannot be charted" with a single except clause.
"""

from typing import Optional


class ChartDecodeError(Exception):
    """Base class for all fatal decode failures."""

    pass


class FormatError(ChartDecodeError):
    """Malformed leader, directory, field or subfield; unsupported input."""

    def __init__(self, message: str, tag: Optional[str] = None, offset: Optional[int] = None):
        self.tag = tag
        self.offset = offset
        details = []
        if tag is not None:
            details.append(f"tag={tag}")
        if offset is not None:
            details.append(f"offset={offset}")
        if details:
            message = f"{message} ({', '.join(details)})"
        super().__init__(message)


class OutOfOrderError(ChartDecodeError):
    """A data record carries a "0001" number that does not follow its predecessor."""

    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(f"Out of order record ID: expected {expected}, found {actual}")


class ChartIOError(ChartDecodeError, IOError):
    """The underlying input stream failed."""

    pass


class ChartMapError(ValueError):
    """Raised by ChartMap when a mutation would break its key invariants."""

    pass


class UnresolvedReferenceWarning(UserWarning):
    """
    A feature or edge points at a key that is not in the map.

    Collected by ChartMap.end_file() and handed back with the decode result.
    Exchange sets cut from a larger chart legitimately contain these.
    """

    def __init__(self, source: int, reference: int, kind: str):
        self.source = source
        self.reference = reference
        self.kind = kind
        super().__init__(f"{kind} reference {reference:#x} from {source:#x} does not resolve")
