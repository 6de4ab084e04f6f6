"""
Nautical Chart Decoder

Decodes IHO S-57 Electronic Navigational Chart (ENC) exchange files, the
ISO/IEC 8211 binary encoding, into an in-memory topological map of nodes,
edges and features with their attributes and cross references.

Installation
------------
From a local checkout:
    pip install -e .

Usage
-----
    from nautical_chart_decoder import decode_file
    result = decode_file("US5FL10M.000")
    result.chart.features, result.chart.bounds, result.warnings
"""

__version__ = "0.1.0"
__author__ = "Viktor Kolbasov"
__email__ = "contact@studentdotai.com"
__license__ = "AGPL-3.0-only"

from nautical_chart_decoder.core.chart_map import (
    Bounds,
    ChartMap,
    DatasetInfo,
    Edge,
    Feature,
    FeatureRef,
    Node,
    NodeFlag,
    PrimitiveKind,
    Relation,
    SpatialRef,
)
from nautical_chart_decoder.core.config import DecoderConfig
from nautical_chart_decoder.core.exceptions import (
    ChartDecodeError,
    ChartIOError,
    ChartMapError,
    FormatError,
    OutOfOrderError,
    UnresolvedReferenceWarning,
)
from nautical_chart_decoder.core.s57_decoder import DecodeResult, S57Decoder, decode_chart, decode_file

_all_exports = [
    "__version__",
    "__author__",
    "__email__",
    "__license__",
    "Bounds",
    "ChartMap",
    "DatasetInfo",
    "Edge",
    "Feature",
    "FeatureRef",
    "Node",
    "NodeFlag",
    "PrimitiveKind",
    "Relation",
    "SpatialRef",
    "DecoderConfig",
    "ChartDecodeError",
    "ChartIOError",
    "ChartMapError",
    "FormatError",
    "OutOfOrderError",
    "UnresolvedReferenceWarning",
    "DecodeResult",
    "S57Decoder",
    "decode_chart",
    "decode_file",
]

from nautical_chart_decoder.utils.geometry_utils import GeometryBuilder
_all_exports.append("GeometryBuilder")

# Tabular export needs pandas/geopandas; the decoder works without them.
try:
    from nautical_chart_decoder.utils.misc_utils import ChartFrames
    _all_exports.append("ChartFrames")
except ImportError:
    pass

__all__ = _all_exports
