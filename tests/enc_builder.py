"""
enc_builder.py

Builds small S-57 exchange files in memory for the test suite, so tests
need no chart data on disk.
"""

import io
import struct
from typing import Iterable, List, Optional, Sequence, Tuple

FT = b'\x1e'
UT = b'\x1f'

AGEN = 550
FIDS = 1

ISOLATED = 110
CONNECTED = 120
EDGE = 130


def iso_record(fields: Sequence[Tuple], leader_id: bytes = b'D') -> bytes:
    """
    Frames one ISO 8211 record. Each field is (tag, payload) and gets a field
    terminator appended, or (tag, payload, terminator) to choose it.
    """
    area = b''
    entries = []
    for item in fields:
        tag, payload = item[0], item[1]
        terminator = item[2] if len(item) > 2 else FT
        data = payload + terminator
        entries.append((tag, len(data), len(area)))
        area += data
    directory = b''.join(
        tag.encode('ascii') + b'%05d' % length + b'%05d' % position for tag, length, position in entries
    ) + FT
    base = 24 + len(directory)
    total = base + len(area)
    leader = (b'%05d' % total + b' ' + leader_id + b'   ' + b'  ' + b'%05d' % base + b'   '
              + b'55' + b'0' + b'4')
    assert len(leader) == 24
    return leader + directory + area


def ddr() -> bytes:
    return iso_record([('0000', b'0000;&   S57 test'), ('0001', b'0100;&   DDF RECORD IDENTIFIER')],
                      leader_id=b'L')


# --- field payloads ---

def record_id(number: int) -> bytes:
    return struct.pack('<H', number)


def dsid(name: str = 'US5TEST1.000', edition: str = '2', update: str = '0', uadt: str = '20240101',
         isdt: str = '20240115', sted: str = '03.1', agen: int = AGEN, intu: int = 5) -> bytes:
    return (struct.pack('<BIBB', 10, 1, 1, intu)
            + name.encode('ascii') + UT + edition.encode('ascii') + UT + update.encode('ascii') + UT
            + uadt.encode('ascii') + isdt.encode('ascii') + sted.encode('ascii')
            + struct.pack('<B', 1) + b'2.0' + UT + b'1.0' + UT + struct.pack('<BH', 1, agen) + UT)


def dssi(aall: int = 1, nall: int = 1) -> bytes:
    return struct.pack('<BBB8I', 2, aall, nall, 0, 0, 0, 0, 0, 0, 0, 0)


def dspm(comf: int, somf: int) -> bytes:
    return struct.pack('<BIBBBIBBBBII', 20, 1, 2, 17, 23, 22000, 1, 1, 1, 1, comf, somf) + UT


def frid(rcid: int, prim: int, objl: int) -> bytes:
    return struct.pack('<BIBBHHB', 100, rcid, prim, 2, objl, 1, 1)


def foid(fidn: int, agen: int = AGEN, fids: int = FIDS) -> bytes:
    return struct.pack('<HIH', agen, fidn, fids)


def attf(pairs: Iterable[Tuple[int, str]]) -> bytes:
    return b''.join(struct.pack('<H', code) + value.encode('latin-1') + UT for code, value in pairs)


def natf_wide(pairs: Iterable[Tuple[int, str]]) -> bytes:
    return b''.join(struct.pack('<H', code) + value.encode('utf-16-le') + b'\x1f\x00' for code, value in pairs)


def ffpt(refs: Iterable[Tuple[int, int]]) -> bytes:
    return b''.join(struct.pack('<QB', lnam, rind) + UT for lnam, rind in refs)


def fspt(refs: Iterable[Tuple[int, int, int, int, int]]) -> bytes:
    """refs are (rcnm, rcid, orientation, usage, mask)."""
    return b''.join(struct.pack('<BIBBB', *ref) for ref in refs)


def vrid(rcnm: int, rcid: int) -> bytes:
    return struct.pack('<BIHB', rcnm, rcid, 1, 1)


def vrpt(refs: Iterable[Tuple[int, int, int]]) -> bytes:
    """refs are (rcnm, rcid, topology indicator)."""
    return b''.join(struct.pack('<BIBBBB', rcnm, rcid, 255, 255, topi, 255) for rcnm, rcid, topi in refs)


def sg2d(coords: Iterable[Tuple[float, float]], comf: int) -> bytes:
    return b''.join(struct.pack('<ii', round(lat * comf), round(lon * comf)) for lat, lon in coords)


def sg3d(coords: Iterable[Tuple[float, float, float]], comf: int, somf: int) -> bytes:
    return b''.join(struct.pack('<iii', round(lat * comf), round(lon * comf), round(depth * somf))
                    for lat, lon, depth in coords)


def long_name(fidn: int, agen: int = AGEN, fids: int = FIDS) -> int:
    return (fids << 48) | (fidn << 16) | agen


def vector_key(rcnm: int, rcid: int) -> int:
    return ((rcnm << 32) | rcid) << 16


class ChunkedStream(io.RawIOBase):
    """A raw stream that hands out at most ``chunk`` bytes per read."""

    def __init__(self, data: bytes, chunk: int = 16):
        super().__init__()
        self._data = data
        self._pos = 0
        self._chunk = chunk

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        piece = self._data[self._pos:self._pos + min(self._chunk, len(buffer))]
        buffer[:len(piece)] = piece
        self._pos += len(piece)
        return len(piece)


class EncBuilder:
    """Collects data records and numbers them with "0001" fields on output."""

    def __init__(self, comf: int = 10000000, somf: int = 10, parameters: bool = True):
        self.comf = comf
        self.somf = somf
        self.records: List[List[Tuple]] = []
        if parameters:
            self.add(('DSPM', dspm(comf, somf)))

    def add(self, *fields: Tuple) -> 'EncBuilder':
        self.records.append(list(fields))
        return self

    def dataset(self, name: str = 'US5TEST1.000', aall: int = 1, nall: int = 1) -> 'EncBuilder':
        self.records.insert(0, [('DSID', dsid(name=name)), ('DSSI', dssi(aall, nall))])
        return self

    def node(self, rcid: int, lat: float, lon: float, rcnm: int = ISOLATED) -> 'EncBuilder':
        return self.add(('VRID', vrid(rcnm, rcid)), ('SG2D', sg2d([(lat, lon)], self.comf)))

    def edge(self, rcid: int, vertices: Sequence[Tuple[float, float]], first: Optional[int] = None,
             last: Optional[int] = None) -> 'EncBuilder':
        fields = [('VRID', vrid(EDGE, rcid))]
        conns = []
        if first is not None:
            conns.append((CONNECTED, first, 1))
        if last is not None:
            conns.append((CONNECTED, last, 2))
        if conns:
            fields.append(('VRPT', vrpt(conns)))
        if vertices:
            fields.append(('SG2D', sg2d(vertices, self.comf)))
        return self.add(*fields)

    def soundings(self, rcid: int, points: Sequence[Tuple[float, float, float]]) -> 'EncBuilder':
        return self.add(('VRID', vrid(ISOLATED, rcid)), ('SG3D', sg3d(points, self.comf, self.somf)))

    def feature(self, rcid: int, prim: int, objl: int, fidn: int, attributes: Sequence[Tuple[int, str]] = (),
                spatial: Sequence[Tuple[int, int, int, int, int]] = (),
                objects: Sequence[Tuple[int, int]] = ()) -> 'EncBuilder':
        fields = [('FRID', frid(rcid, prim, objl)), ('FOID', foid(fidn))]
        if attributes:
            fields.append(('ATTF', attf(attributes)))
        if objects:
            fields.append(('FFPT', ffpt(objects)))
        if spatial:
            fields.append(('FSPT', fspt(spatial)))
        return self.add(*fields)

    def to_bytes(self, numbers: Optional[Sequence[int]] = None) -> bytes:
        numbers = list(numbers) if numbers is not None else list(range(1, len(self.records) + 1))
        out = ddr()
        for number, fields in zip(numbers, self.records):
            out += iso_record([('0001', record_id(number))] + fields)
        return out

    def stream(self, numbers: Optional[Sequence[int]] = None) -> io.BytesIO:
        return io.BytesIO(self.to_bytes(numbers))
