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
s57_decoder.py

Decodes one S-57 exchange file into a ChartMap.

Each data record is either a feature record (FRID, FOID, ATTF, NATF, FFPT,
FSPT), a vector record (VRID, VRPT, SG2D, SG3D) or dataset metadata (DSID,
DSSI, DSPM). The decoder walks the directory of each record, decodes the
fields it knows and applies them to the map. A feature is committed to the
map once every field of its record has been applied.

Any fault aborts the whole file: ISO 8211 has no point to resume from.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO, Callable, Dict, List, Optional, Set, Union

from .chart_map import ChartMap, DatasetInfo, Edge, Feature, NodeFlag, PrimitiveKind
from .config import DecoderConfig
from .exceptions import ChartDecodeError, ChartIOError, ChartMapError, FormatError, OutOfOrderError, \
    UnresolvedReferenceWarning
from .iso8211 import LEADER_LENGTH, Record, iter_records
from .subfields import FIELD_LAYOUTS, SubfieldCursor
from ..utils.s57_utils import S57Utils

logger = logging.getLogger(__name__)

MAX_SEQUENCE = 0xFFFF
RECORD_NUMBER_MODULUS = 1 << 16


# --- Record states ---

class NoneOpen:
    """No feature or vector record has been opened in the current record."""

    def __repr__(self):
        return 'NoneOpen'


NONE_OPEN = NoneOpen()


@dataclass
class OpenFeature:
    primitive: PrimitiveKind
    objl: int
    feature: Optional[Feature] = None


@dataclass
class OpenVector:
    """A vector record; ``edge`` is set for edge records only."""
    name: int
    flag: NodeFlag
    edge: Optional[Edge] = None
    sequence: int = 0
    coordinates: int = 0


State = Union[NoneOpen, OpenFeature, OpenVector]


@dataclass
class DecodeSession:
    """Per-file decode state: scaling factors, lexical levels, record counter."""
    comf: float = 1.0
    somf: float = 1.0
    aall: int = 0
    nall: int = 0
    record_number: int = 0
    records: int = 0
    skipped_tags: Set[str] = field(default_factory=set)


@dataclass
class DecodeResult:
    chart: ChartMap
    warnings: List[UnresolvedReferenceWarning]
    records: int

    @property
    def bounds(self):
        return self.chart.bounds


class S57Decoder:
    """
    Field dispatcher for S-57 data records.

    One instance may decode many files one after another; every call to
    ``decode`` starts a fresh DecodeSession.
    """

    def __init__(self, config: Optional[DecoderConfig] = None):
        self.config = config or DecoderConfig()
        self._handlers: Dict[str, Callable] = {
            '0001': self._record_id,
            'DSID': self._dataset_id,
            'DSSI': self._dataset_structure,
            'DSPM': self._dataset_parameters,
            'FRID': self._feature_id,
            'FOID': self._feature_name,
            'ATTF': self._attributes,
            'NATF': self._attributes,
            'FFPT': self._feature_pointers,
            'FSPT': self._spatial_pointers,
            'VRID': self._vector_id,
            'VRPT': self._vector_pointers,
            'SG2D': self._coordinates_2d,
            'SG3D': self._coordinates_3d,
        }

    def decode(self, stream: BinaryIO, chart: Optional[ChartMap] = None) -> DecodeResult:
        """
        Decodes ``stream`` into ``chart`` (a new ChartMap by default).

        The stream is closed whether decoding succeeds or not. On failure the
        map must be discarded.
        """
        chart = chart if chart is not None else ChartMap()
        session = DecodeSession()
        cursor = SubfieldCursor(self.config.attribute_encoding)
        try:
            for record in iter_records(stream):
                session.records += 1
                if record.is_ddr:
                    continue
                self._decode_record(record, session, cursor, chart)
            try:
                warnings = chart.end_file(resolve=self.config.resolve_references)
            except ChartMapError as e:
                raise FormatError(str(e)) from e
        finally:
            stream.close()

        logger.info(f"Decoded {session.records} records: {chart.summary()}, "
                    f"{len(warnings)} unresolved reference(s)")
        return DecodeResult(chart, warnings, session.records)

    def _decode_record(self, record: Record, session: DecodeSession, cursor: SubfieldCursor,
                       chart: ChartMap) -> None:
        state: State = NONE_OPEN
        for entry in record.entries:
            handler = self._handlers.get(entry.tag)
            if handler is None:
                if entry.tag not in session.skipped_tags:
                    session.skipped_tags.add(entry.tag)
                    logger.debug(f"Skipping unsupported field {entry.tag}")
                continue
            start = record.field_start(entry)
            offset = record.offset + LEADER_LENGTH + start
            wide = entry.tag == 'NATF' and session.nall == 2
            cursor.position(record.body, record.leader.field_area, entry.position, FIELD_LAYOUTS[entry.tag],
                            entry.length, tag=entry.tag, base=record.offset + LEADER_LENGTH, wide=wide,
                            encoding=self.config.national_encoding if wide else None)
            try:
                state = handler(cursor, state, session, chart)
            except ChartDecodeError:
                raise
            except (ChartMapError, ValueError, ArithmeticError, IndexError) as e:
                raise FormatError(f"Cannot decode field: {e}", tag=entry.tag, offset=offset) from e
        self._close(state, record, chart)

    @staticmethod
    def _close(state: State, record: Record, chart: ChartMap) -> None:
        """Commits whatever the record opened once all of its fields are applied."""
        if isinstance(state, OpenFeature):
            if state.feature is None:
                raise FormatError("Feature record without FOID", tag='FRID', offset=record.offset)
            chart.end_feature(state.feature)

    @staticmethod
    def _require_feature(state: State, tag: str) -> Feature:
        if not isinstance(state, OpenFeature) or state.feature is None:
            raise ValueError(f"{tag} outside a named feature record")
        return state.feature

    @staticmethod
    def _require_vector(state: State, tag: str) -> OpenVector:
        if not isinstance(state, OpenVector):
            raise ValueError(f"{tag} outside a vector record")
        return state

    # --- Control and dataset fields ---

    def _record_id(self, cursor: SubfieldCursor, state: State, session: DecodeSession, chart: ChartMap) -> State:
        number = cursor.next('I8RN')
        session.record_number += 1
        expected = session.record_number % RECORD_NUMBER_MODULUS
        if self.config.check_sequence and number != expected:
            raise OutOfOrderError(expected, number)
        return state

    def _dataset_id(self, cursor: SubfieldCursor, state: State, session: DecodeSession, chart: ChartMap) -> State:
        values = {}
        for name in ('INTU', 'DSNM', 'EDTN', 'UPDN', 'UADT', 'ISDT', 'STED', 'AGEN', 'COMT'):
            values[name] = cursor.next(name)
        chart.dataset = DatasetInfo(**values)
        logger.info(f"Dataset {chart.dataset.name} edition {chart.dataset.edition} update {chart.dataset.update}")
        return state

    def _dataset_structure(self, cursor: SubfieldCursor, state: State, session: DecodeSession,
                           chart: ChartMap) -> State:
        session.aall = cursor.next('AALL')
        session.nall = cursor.next('NALL')
        return state

    def _dataset_parameters(self, cursor: SubfieldCursor, state: State, session: DecodeSession,
                            chart: ChartMap) -> State:
        comf = cursor.next('COMF')
        somf = cursor.next('SOMF')
        if comf <= 0 or somf <= 0:
            raise ValueError(f"Multiplication factors must be positive (COMF={comf}, SOMF={somf})")
        session.comf = float(comf)
        session.somf = float(somf)
        logger.debug(f"COMF={comf} SOMF={somf}")
        return state

    # --- Feature records ---

    def _feature_id(self, cursor: SubfieldCursor, state: State, session: DecodeSession, chart: ChartMap) -> State:
        if state is not NONE_OPEN:
            raise ValueError("FRID in a record that is already open")
        primitive = PrimitiveKind.from_code(cursor.next('PRIM'))
        objl = cursor.next('OBJL')
        return OpenFeature(primitive, objl)

    def _feature_name(self, cursor: SubfieldCursor, state: State, session: DecodeSession,
                      chart: ChartMap) -> State:
        if not isinstance(state, OpenFeature) or state.feature is not None:
            raise ValueError("FOID without a preceding FRID")
        name = S57Utils.long_name(cursor.next('AGEN'), cursor.next('FIDN'), cursor.next('FIDS'))
        state.feature = chart.new_feature(name, state.primitive, state.objl)
        return state

    def _attributes(self, cursor: SubfieldCursor, state: State, session: DecodeSession, chart: ChartMap) -> State:
        feature = self._require_feature(state, cursor.tag)
        while cursor.has_more():
            code = cursor.next('ATTL')
            value = cursor.next('ATVL').strip()
            if value:
                chart.new_att(feature, code, value)
        return state

    def _feature_pointers(self, cursor: SubfieldCursor, state: State, session: DecodeSession,
                          chart: ChartMap) -> State:
        feature = self._require_feature(state, 'FFPT')
        while cursor.has_more():
            name = cursor.next('LNAM')
            relation = cursor.next('RIND')
            cursor.skip_group()
            chart.new_obj(feature, name, relation)
        return state

    def _spatial_pointers(self, cursor: SubfieldCursor, state: State, session: DecodeSession,
                          chart: ChartMap) -> State:
        feature = self._require_feature(state, 'FSPT')
        while cursor.has_more():
            name = S57Utils.pointer_key(cursor.next('NAME'))
            chart.new_prim(feature, name, cursor.next('ORNT'), cursor.next('USAG'), cursor.next('MASK'))
        return state

    # --- Vector records ---

    def _vector_id(self, cursor: SubfieldCursor, state: State, session: DecodeSession, chart: ChartMap) -> State:
        if state is not NONE_OPEN:
            raise ValueError("VRID in a record that is already open")
        rcnm = cursor.next('RCNM')
        rcid = cursor.next('RCID')
        flag = NodeFlag.from_rcnm(rcnm)
        name = S57Utils.vector_key(rcnm, rcid)
        edge = chart.new_edge(name) if flag is NodeFlag.ANON else None
        return OpenVector(name, flag, edge)

    def _vector_pointers(self, cursor: SubfieldCursor, state: State, session: DecodeSession,
                         chart: ChartMap) -> State:
        vector = self._require_vector(state, 'VRPT')
        if vector.edge is None:
            raise ValueError("VRPT in a node record")
        while cursor.has_more():
            name = S57Utils.pointer_key(cursor.next('NAME'))
            topology = cursor.next('TOPI')
            cursor.skip_group()
            chart.add_conn(vector.edge, name, topology)
        return state

    def _coordinates_2d(self, cursor: SubfieldCursor, state: State, session: DecodeSession,
                        chart: ChartMap) -> State:
        vector = self._require_vector(state, 'SG2D')
        while cursor.has_more():
            lat = cursor.next('YCOO') / session.comf
            lon = cursor.next('XCOO') / session.comf
            if vector.flag is NodeFlag.ANON:
                vector.sequence += 1
                if vector.sequence > MAX_SEQUENCE:
                    raise ValueError(f"More than {MAX_SEQUENCE} vertices in one vector record")
                chart.new_node(vector.name + vector.sequence, lat, lon, NodeFlag.ANON, edge=vector.edge)
            else:
                if vector.coordinates:
                    raise ValueError("Named node record carries more than one coordinate")
                chart.new_node(vector.name, lat, lon, vector.flag)
            vector.coordinates += 1
        return state

    def _coordinates_3d(self, cursor: SubfieldCursor, state: State, session: DecodeSession,
                        chart: ChartMap) -> State:
        vector = self._require_vector(state, 'SG3D')
        while cursor.has_more():
            lat = cursor.next('YCOO') / session.comf
            lon = cursor.next('XCOO') / session.comf
            depth = cursor.next('VE3D') / session.somf
            if vector.sequence > MAX_SEQUENCE:
                raise ValueError(f"More than {MAX_SEQUENCE} soundings in one vector record")
            chart.new_node(vector.name + vector.sequence, lat, lon, NodeFlag.ANON, depth=depth)
            vector.sequence += 1
            vector.coordinates += 1
        return state


def decode_chart(stream: BinaryIO, config: Optional[DecoderConfig] = None,
                 chart: Optional[ChartMap] = None) -> DecodeResult:
    """Decodes an open binary stream; the stream is closed afterwards."""
    return S57Decoder(config).decode(stream, chart)


def decode_file(path: Union[str, Path], config: Optional[DecoderConfig] = None) -> DecodeResult:
    """Opens and decodes an S-57 file (.000 base cell or .00n update)."""
    path = Path(path)
    logger.info(f"Decoding {path.name}")
    try:
        stream = open(path, 'rb')
    except OSError as e:
        raise ChartIOError(f"Cannot open {path}: {e}") from e
    return decode_chart(stream, config)
