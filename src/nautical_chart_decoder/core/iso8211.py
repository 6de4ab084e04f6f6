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
iso8211.py

Record framing for ISO/IEC 8211 files: the 24-byte leader, the field
directory that follows it and the field area the directory points into.

A file is one Data Descriptive Record (leader identifier 'L') followed by
Data Records. Nothing in the format allows resynchronising after a bad
record, so every framing problem raises FormatError.
"""

import logging
from typing import BinaryIO, Iterator, List, NamedTuple

from .exceptions import ChartIOError, FormatError

logger = logging.getLogger(__name__)

LEADER_LENGTH = 24
FIELD_TERMINATOR = 0x1E
UNIT_TERMINATOR = 0x1F
DDR_LEADER_ID = 'L'


class Leader(NamedTuple):
    record_length: int
    leader_id: str
    base_address: int
    size_length: int
    size_position: int
    size_tag: int

    @property
    def is_ddr(self) -> bool:
        return self.leader_id == DDR_LEADER_ID

    @property
    def entry_width(self) -> int:
        return self.size_length + self.size_position + self.size_tag

    @property
    def body_length(self) -> int:
        return self.record_length - LEADER_LENGTH

    @property
    def field_area(self) -> int:
        """Start of the field area, relative to the end of the leader."""
        return self.base_address - LEADER_LENGTH


class DirectoryEntry(NamedTuple):
    tag: str
    length: int
    position: int


class Record(NamedTuple):
    leader: Leader
    body: bytes
    entries: List[DirectoryEntry]
    offset: int

    @property
    def is_ddr(self) -> bool:
        return self.leader.is_ddr

    def field_start(self, entry: DirectoryEntry) -> int:
        """Index of the first byte of ``entry`` within ``body``."""
        return self.leader.field_area + entry.position


def _digit(value: int, name: str) -> int:
    if not 0x30 <= value <= 0x39:
        raise ValueError(f"{name} is not a digit")
    return value - 0x30


def parse_leader(leader: bytes, offset: int = 0) -> Leader:
    """
    Decodes a 24-byte record leader.

    Raises FormatError when the numeric fields do not parse, which is what an
    encrypted or compressed ENC looks like from here.
    """
    if len(leader) != LEADER_LENGTH:
        raise FormatError(f"Truncated leader: {len(leader)} of {LEADER_LENGTH} bytes", offset=offset)
    try:
        record_length = int(leader[0:5].decode('ascii'))
        base_address = int(leader[12:17].decode('ascii'))
        size_length = _digit(leader[20], "field length size")
        size_position = _digit(leader[21], "field position size")
        size_tag = _digit(leader[23], "field tag size")
        leader_id = chr(leader[6])
    except (ValueError, UnicodeDecodeError) as e:
        raise FormatError("Invalid file format - encrypted/compressed ENC file?", offset=offset) from e

    if record_length <= LEADER_LENGTH:
        raise FormatError(f"Record length {record_length} is shorter than its leader", offset=offset)
    if not LEADER_LENGTH < base_address <= record_length:
        raise FormatError(f"Field area address {base_address} outside record of {record_length} bytes",
                          offset=offset)
    if size_length == 0 or size_position == 0 or size_tag == 0:
        raise FormatError("Zero-width directory entry map", offset=offset)

    return Leader(record_length, leader_id, base_address, size_length, size_position, size_tag)


def parse_directory(leader: Leader, body: bytes, offset: int = 0) -> List[DirectoryEntry]:
    """
    Walks the directory at the start of ``body`` until the field terminator.

    Each entry is (tag, length, position) with widths taken from the leader's
    entry map. Positions are relative to the field area.
    """
    entries = []
    width = leader.entry_width
    field_area = leader.field_area
    area_size = len(body) - field_area
    idx = 0
    while idx < field_area and body[idx] != FIELD_TERMINATOR:
        if idx + width > field_area:
            raise FormatError("Directory entry runs into the field area", offset=offset + LEADER_LENGTH + idx)
        raw = body[idx:idx + width]
        try:
            tag = raw[:leader.size_tag].decode('ascii')
            length = int(raw[leader.size_tag:leader.size_tag + leader.size_length].decode('ascii'))
            position = int(raw[leader.size_tag + leader.size_length:].decode('ascii'))
        except (ValueError, UnicodeDecodeError) as e:
            raise FormatError("Malformed directory entry", offset=offset + LEADER_LENGTH + idx) from e
        if position + length > area_size:
            raise FormatError(f"Field of {length} bytes at {position} overruns the record",
                              tag=tag, offset=offset + LEADER_LENGTH + idx)
        entries.append(DirectoryEntry(tag, length, position))
        idx += width
    return entries


def _read(stream: BinaryIO, size: int) -> bytes:
    """
    Reads ``size`` bytes, or fewer only at end of file. Raw streams (pipes,
    sockets, unbuffered files) may return short reads before that.
    """
    chunks = []
    remaining = size
    try:
        while remaining > 0:
            chunk = stream.read(remaining)
            if not chunk:
                break
            chunks.append(chunk)
            remaining -= len(chunk)
    except OSError as e:
        raise ChartIOError(f"Failed reading exchange file: {e}") from e
    return b''.join(chunks)


def iter_records(stream: BinaryIO) -> Iterator[Record]:
    """Yields every record in ``stream`` until a clean end of file."""
    offset = 0
    while True:
        leader_bytes = _read(stream, LEADER_LENGTH)
        if not leader_bytes:
            return
        leader = parse_leader(leader_bytes, offset)
        body = _read(stream, leader.body_length)
        if len(body) != leader.body_length:
            raise FormatError(f"Truncated record: {len(body)} of {leader.body_length} bytes", offset=offset)
        entries = parse_directory(leader, body, offset)
        logger.debug(f"Record at {offset}: {'DDR' if leader.is_ddr else 'DR'} with {len(entries)} fields")
        yield Record(leader, body, entries, offset)
        offset += leader.record_length
