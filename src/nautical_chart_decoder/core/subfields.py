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
subfields.py

Typed subfield decoding for the S-57 binary implementation.

Each field tag has a fixed layout: an ordered list of subfields, each either
a fixed-width ASCII value, a delimited string or a little-endian binary
integer. Repeating fields (ATTF, FSPT, SG2D, ...) are the same layout
occurring back to back until the field terminator.
"""

from typing import Dict, NamedTuple, Optional, Tuple, Union

from .exceptions import FormatError
from .iso8211 import FIELD_TERMINATOR, UNIT_TERMINATOR


class Subfield(NamedTuple):
    """
    One subfield descriptor.

    kind is one of:
        'A' fixed-width ASCII string
        'I' fixed-width ASCII integer
        'R' fixed-width ASCII real
        'D' string delimited by the unit (or field) terminator
        'b' unsigned little-endian binary integer of ``width`` bytes
        's' signed little-endian binary integer of ``width`` bytes
    """
    name: str
    kind: str
    width: int = 0


Layout = Tuple[Subfield, ...]
Value = Union[int, float, str, None]


def _b(name: str, width: int) -> Subfield:
    return Subfield(name, 'b', width)


def _s(name: str, width: int) -> Subfield:
    return Subfield(name, 's', width)


def _d(name: str) -> Subfield:
    return Subfield(name, 'D')


# S-57 Edition 3.1, Part 3, binary implementation (ENC product specification).
# B(40) and B(64) bit fields are read as unsigned integers of 5 and 8 bytes.
FIELD_LAYOUTS: Dict[str, Layout] = {
    '0001': (_b('I8RN', 2),),
    'DSID': (_b('RCNM', 1), _b('RCID', 4), _b('EXPP', 1), _b('INTU', 1), _d('DSNM'), _d('EDTN'),
             _d('UPDN'), Subfield('UADT', 'A', 8), Subfield('ISDT', 'A', 8), Subfield('STED', 'R', 4),
             _b('PRSP', 1), _d('PSDN'), _d('PRED'), _b('PROF', 1), _b('AGEN', 2), _d('COMT')),
    'DSSI': (_b('DSTR', 1), _b('AALL', 1), _b('NALL', 1), _b('NOMR', 4), _b('NOCR', 4), _b('NOGR', 4),
             _b('NOLR', 4), _b('NOIN', 4), _b('NOCN', 4), _b('NOED', 4), _b('NOFA', 4)),
    'DSPM': (_b('RCNM', 1), _b('RCID', 4), _b('HDAT', 1), _b('VDAT', 1), _b('SDAT', 1), _b('CSCL', 4),
             _b('DUNI', 1), _b('HUNI', 1), _b('PUNI', 1), _b('COUN', 1), _b('COMF', 4), _b('SOMF', 4),
             _d('COMT')),
    'FRID': (_b('RCNM', 1), _b('RCID', 4), _b('PRIM', 1), _b('GRUP', 1), _b('OBJL', 2), _b('RVER', 2),
             _b('RUIN', 1)),
    'FOID': (_b('AGEN', 2), _b('FIDN', 4), _b('FIDS', 2)),
    'ATTF': (_b('ATTL', 2), _d('ATVL')),
    'NATF': (_b('ATTL', 2), _d('ATVL')),
    'FFPT': (_b('LNAM', 8), _b('RIND', 1), _d('COMT')),
    'FSPT': (_b('NAME', 5), _b('ORNT', 1), _b('USAG', 1), _b('MASK', 1)),
    'VRID': (_b('RCNM', 1), _b('RCID', 4), _b('RVER', 2), _b('RUIN', 1)),
    'VRPT': (_b('NAME', 5), _b('ORNT', 1), _b('USAG', 1), _b('TOPI', 1), _b('MASK', 1)),
    'SG2D': (_s('YCOO', 4), _s('XCOO', 4)),
    'SG3D': (_s('YCOO', 4), _s('XCOO', 4), _s('VE3D', 4)),
}


class SubfieldCursor:
    """
    A read cursor bound to one field's byte range.

    ``next(name)`` walks the layout cyclically, decoding and discarding any
    subfields before ``name``, so callers only ask for what they use and
    still stay aligned on repeating groups.
    """

    def __init__(self, encoding: str = 'latin-1'):
        self.default_encoding = encoding
        self.encoding = encoding
        self.data = b''
        self.layout: Layout = ()
        self.tag: Optional[str] = None
        self.base = 0
        self.offset = 0
        self.end = 0
        self.limit = 0
        self.index = 0
        self.wide = False

    def position(self, record: bytes, field_area: int, field_offset: int, layout: Layout, length: int,
                 tag: Optional[str] = None, base: int = 0, wide: bool = False,
                 encoding: Optional[str] = None) -> 'SubfieldCursor':
        """
        Binds the cursor to ``length`` bytes at ``field_area + field_offset``.

        ``base`` is the absolute file offset of ``record`` and only feeds
        error messages. ``wide`` selects UCS-2 strings with two-byte
        terminators (lexical level 2).
        """
        start = field_area + field_offset
        end = start + length
        if start < 0 or end > len(record):
            raise FormatError(f"Field range {start}:{end} outside record of {len(record)} bytes",
                              tag=tag, offset=base + start)
        self.data = record
        self.layout = layout
        self.tag = tag
        self.base = base
        self.offset = start
        self.index = 0
        self.wide = wide
        self.encoding = encoding or self.default_encoding
        if wide and length >= 2 and record[end - 2] == FIELD_TERMINATOR and record[end - 1] == 0:
            end -= 2
        elif length >= 1 and record[end - 1] == FIELD_TERMINATOR:
            end -= 1
        self.end = end
        self.limit = start + length
        return self

    def has_more(self) -> bool:
        """True while bytes remain before the field terminator."""
        return self.offset < self.end

    def next(self, name: str) -> Value:
        """Decodes subfield ``name``, skipping any subfields before it in the layout."""
        for _ in range(len(self.layout)):
            subfield = self.layout[self.index]
            value = self._take(subfield)
            self.index = (self.index + 1) % len(self.layout)
            if subfield.name == name:
                return value
        raise ValueError(f"Subfield {name} is not part of the {self.tag} layout")

    def skip_group(self) -> None:
        """Consumes the rest of the current repeating group."""
        while self.index != 0:
            self._take(self.layout[self.index])
            self.index = (self.index + 1) % len(self.layout)

    def _fixed(self, subfield: Subfield) -> bytes:
        stop = self.offset + subfield.width
        if stop > self.end:
            raise FormatError(f"Subfield {subfield.name} reads past the end of the field",
                              tag=self.tag, offset=self.base + self.offset)
        raw = self.data[self.offset:stop]
        self.offset = stop
        return raw

    def _delimited(self, subfield: Subfield) -> str:
        step = 2 if self.wide else 1
        idx = self.offset
        while idx + step <= self.limit:
            unit = self.data[idx] if step == 1 else self.data[idx] | (self.data[idx + 1] << 8)
            if unit == UNIT_TERMINATOR or unit == FIELD_TERMINATOR:
                break
            idx += step
        else:
            raise FormatError(f"Subfield {subfield.name} has no terminator",
                              tag=self.tag, offset=self.base + self.offset)
        text = self.data[self.offset:idx].decode(self.encoding)
        # The field terminator stays unconsumed: it is the end of the data.
        self.offset = idx + step if unit == UNIT_TERMINATOR else min(idx, self.end)
        return text

    def _take(self, subfield: Subfield) -> Value:
        kind = subfield.kind
        if kind == 'D':
            return self._delimited(subfield)
        raw = self._fixed(subfield)
        if kind == 'b' or kind == 's':
            return int.from_bytes(raw, 'little', signed=(kind == 's'))
        text = raw.decode('ascii').strip()
        if kind == 'A':
            return text
        if not text:
            return None
        if kind == 'I':
            return int(text)
        if kind == 'R':
            return float(text)
        raise ValueError(f"Unknown subfield kind {kind!r} for {subfield.name}")
