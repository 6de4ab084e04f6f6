#!/usr/bin/env python3
"""
s57_utils.py

Utility helpers for S-57 identifiers.
- S57Utils: builds and splits feature long names and vector record keys,
  maps object class codes to acronyms and classifies dataset names into
  usage bands.
"""

import logging
from typing import Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)


class S57Utils:
    """
    Utility class for S-57 naming conventions.

    Feature keys are the 8-byte LNAM read little-endian:
    FIDS << 48 | FIDN << 16 | AGEN.
    Vector keys leave 16 low bits for a per-record sequence number:
    (RCNM << 32 | RCID) << 16.
    """

    SEQUENCE_BITS = 16

    # Common object classes from the S-57 object catalogue, keyed by OBJL.
    OBJECT_CLASSES: Dict[int, str] = {
        1: 'ADMARE', 2: 'AIRARE', 3: 'ACHBRT', 4: 'ACHARE', 5: 'BCNCAR', 6: 'BCNISD',
        7: 'BCNLAT', 8: 'BCNSAW', 9: 'BCNSPP', 10: 'BERTHS', 11: 'BRIDGE', 12: 'BUISGL',
        13: 'BUAARE', 14: 'BOYCAR', 15: 'BOYINB', 16: 'BOYISD', 17: 'BOYLAT', 18: 'BOYSAW',
        19: 'BOYSPP', 20: 'CBLARE', 21: 'CBLOHD', 22: 'CBLSUB', 30: 'COALNE', 42: 'DEPARE',
        43: 'DEPCNT', 71: 'LNDARE', 72: 'LNDELV', 74: 'LNDMRK', 75: 'LIGHTS', 86: 'OBSTRN',
        112: 'RESARE', 119: 'SEAARE', 121: 'SBDARE', 122: 'SLCONS', 129: 'SOUNDG',
        144: 'TOPMAR', 153: 'UWTROC', 154: 'UNSARE', 159: 'WRECKS',
        300: 'M_ACCY', 301: 'M_CSCL', 302: 'M_COVR', 303: 'M_HDAT', 304: 'M_HOPA',
        305: 'M_NPUB', 306: 'M_NSYS', 307: 'M_PROD', 308: 'M_QUAL', 309: 'M_SDAT',
        310: 'M_SREL', 311: 'M_UNIT', 312: 'M_VDAT',
        400: 'C_AGGR', 401: 'C_ASSO', 402: 'C_STAC',
    }

    USAGE_BANDS: Dict[str, str] = {
        '1': 'Overview', '2': 'General', '3': 'Coastal',
        '4': 'Approach', '5': 'Harbour', '6': 'Berthing',
    }

    @staticmethod
    def long_name(agen: int, fidn: int, fids: int) -> int:
        """Composes a feature key from the FOID subfields."""
        return (fids << 48) | (fidn << 16) | agen

    @staticmethod
    def split_long_name(name: int) -> Tuple[int, int, int]:
        """Returns (AGEN, FIDN, FIDS) for a feature key."""
        return name & 0xFFFF, (name >> 16) & 0xFFFFFFFF, (name >> 48) & 0xFFFF

    @classmethod
    def vector_key(cls, rcnm: int, rcid: int) -> int:
        """Key of a vector record as assembled from VRID."""
        return ((rcnm << 32) | rcid) << cls.SEQUENCE_BITS

    @classmethod
    def pointer_key(cls, raw: int) -> int:
        """
        Key of the record a 5-byte NAME subfield points to.

        NAME is RCNM (1 byte) followed by RCID (4 bytes); read little-endian
        that is RCID << 8 | RCNM.
        """
        return cls.vector_key(raw & 0xFF, raw >> 8)

    @classmethod
    def split_vector_key(cls, key: int) -> Tuple[int, int, int]:
        """Returns (RCNM, RCID, sequence) for a vector or node key."""
        record = key >> cls.SEQUENCE_BITS
        return record >> 32, record & 0xFFFFFFFF, key & ((1 << cls.SEQUENCE_BITS) - 1)

    @classmethod
    def object_class_acronym(cls, objl: int) -> Optional[str]:
        """Converts an OBJL code (e.g. 129) to its acronym ('SOUNDG')."""
        acronym = cls.OBJECT_CLASSES.get(objl)
        if acronym is None:
            logger.debug(f"Object class code {objl} has no known acronym.")
        return acronym

    @classmethod
    def object_class_code(cls, acronym: str) -> Optional[int]:
        """Converts an acronym (case-insensitive) back to its OBJL code."""
        wanted = acronym.upper()
        for code, name in cls.OBJECT_CLASSES.items():
            if name == wanted:
                return code
        return None

    @classmethod
    def usage_band(cls, dataset_name: str) -> Optional[str]:
        """
        Usage band of a dataset from the third character of its name,
        e.g. 'US5FL10M.000' -> 'Harbour'.
        """
        if not dataset_name or len(dataset_name) < 3:
            return None
        return cls.USAGE_BANDS.get(dataset_name[2])

    @classmethod
    def name_list_to_bands(cls, name_list: List[str]) -> Dict[str, List[str]]:
        """Groups dataset names by usage band, dropping bands with no members."""
        bands: Dict[str, List[str]] = {band: [] for band in cls.USAGE_BANDS.values()}
        for name in name_list or []:
            band = cls.usage_band(name)
            if band:
                bands[band].append(name)
        return {k: v for k, v in bands.items() if v}
