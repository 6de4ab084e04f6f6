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
chart_map.py

The topology store filled by the S-57 decoder: nodes, edges and features
keyed by their 64-bit names, plus the chart's coordinate bounds.

The map is a plain accumulator. Which feature or edge a field belongs to is
tracked by the decoder, which hands that object to every call. Nothing
here knows about ISO 8211.
"""

import logging
import math
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Set, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator
from shapely.geometry import box
from shapely.geometry.polygon import Polygon

from .exceptions import ChartMapError, UnresolvedReferenceWarning

logger = logging.getLogger(__name__)

# ORNT / USAG / MASK codes
FORWARD = 1
REVERSE = 2
EXTERIOR = 1
INTERIOR = 2
EXTERIOR_TRUNCATED = 3
NOT_APPLICABLE = 255

# TOPI codes carried by VRPT
BEGINNING_NODE = 1
END_NODE = 2

SEQUENCE_MASK = 0xFFFF


class NodeFlag(Enum):
    """How a node is named in the exchange set."""
    ISOL = 110  # isolated node record
    CONN = 120  # connected node record
    ANON = 0    # vertex of an edge or sounding group

    @classmethod
    def from_rcnm(cls, rcnm: int) -> 'NodeFlag':
        if rcnm == cls.ISOL.value:
            return cls.ISOL
        if rcnm == cls.CONN.value:
            return cls.CONN
        return cls.ANON


class PrimitiveKind(Enum):
    POINT = 1
    LINE = 2
    AREA = 3
    NOSP = 255

    @classmethod
    def from_code(cls, code: int) -> 'PrimitiveKind':
        if code in (1, 2, 3):
            return cls(code)
        return cls.NOSP


class Relation(Enum):
    """FFPT relationship indicator."""
    UNKNOWN = 0
    MASTER = 1
    SLAVE = 2
    PEER = 3

    @classmethod
    def from_code(cls, code: int) -> 'Relation':
        if code in (1, 2, 3):
            return cls(code)
        return cls.UNKNOWN


class DatasetInfo(BaseModel):
    """A Pydantic model for the DSID dataset identification field."""
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., alias='DSNM')
    edition: str = Field('', alias='EDTN')
    update: str = Field('', alias='UPDN')
    update_date: Optional[date] = Field(None, alias='UADT')
    issue_date: Optional[date] = Field(None, alias='ISDT')
    s57_edition: Optional[float] = Field(None, alias='STED')
    agency: int = Field(0, alias='AGEN')
    intended_usage: int = Field(0, alias='INTU')
    comment: str = Field('', alias='COMT')

    @field_validator('update_date', 'issue_date', mode='before')
    @classmethod
    def parse_date(cls, value: Any) -> Optional[date]:
        """DSID dates are 'YYYYMMDD' strings; blanks mean no date."""
        if isinstance(value, str):
            value = value.strip()
            if not value:
                return None
            try:
                return datetime.strptime(value, '%Y%m%d').date()
            except ValueError:
                logger.warning(f"Could not parse DSID date: {value}")
                return None
        return value


@dataclass
class Bounds:
    """Latitude/longitude extent in radians, empty until the first coordinate."""
    min_lat: float = math.radians(90.0)
    min_lon: float = math.radians(180.0)
    max_lat: float = math.radians(-90.0)
    max_lon: float = math.radians(-180.0)

    @property
    def is_empty(self) -> bool:
        return self.min_lat > self.max_lat or self.min_lon > self.max_lon

    def extend(self, lat: float, lon: float) -> None:
        """Widens the bounds to include (lat, lon), both in radians."""
        if lat < self.min_lat:
            self.min_lat = lat
        if lat > self.max_lat:
            self.max_lat = lat
        if lon < self.min_lon:
            self.min_lon = lon
        if lon > self.max_lon:
            self.max_lon = lon

    def to_degrees(self) -> Tuple[float, float, float, float]:
        """Returns (min_lat, min_lon, max_lat, max_lon) in degrees."""
        return (math.degrees(self.min_lat), math.degrees(self.min_lon),
                math.degrees(self.max_lat), math.degrees(self.max_lon))

    def to_polygon(self) -> Optional[Polygon]:
        """The bounds as a lon/lat box in degrees, or None while empty."""
        if self.is_empty:
            return None
        min_lat, min_lon, max_lat, max_lon = self.to_degrees()
        return box(min_lon, min_lat, max_lon, max_lat)


@dataclass(frozen=True)
class Node:
    name: int
    lat: float
    lon: float
    flag: NodeFlag
    depth: Optional[float] = None


@dataclass
class Edge:
    """
    An edge vector record. ``nodes`` holds the interior vertices in stored
    order; ``first`` and ``last`` are the connected nodes from VRPT.
    """
    name: int
    nodes: List[int] = field(default_factory=list)
    first: Optional[int] = None
    last: Optional[int] = None
    connections: List[Tuple[int, int]] = field(default_factory=list)

    @property
    def vertices(self) -> List[int]:
        """Node keys in canonical order, boundary nodes included."""
        keys = list(self.nodes)
        if self.first is not None:
            keys.insert(0, self.first)
        if self.last is not None:
            keys.append(self.last)
        return keys


@dataclass(frozen=True)
class SpatialRef:
    """One FSPT pointer: how a feature uses an edge or node."""
    name: int
    orientation: int = FORWARD
    usage: int = NOT_APPLICABLE
    mask: int = NOT_APPLICABLE

    @property
    def reversed(self) -> bool:
        return self.orientation == REVERSE


@dataclass(frozen=True)
class FeatureRef:
    name: int
    relation: Relation = Relation.UNKNOWN


@dataclass
class Feature:
    name: int
    primitive: PrimitiveKind
    objl: int
    attributes: Dict[int, str] = field(default_factory=dict)
    objects: List[FeatureRef] = field(default_factory=list)
    prims: List[SpatialRef] = field(default_factory=list)
    slaves: List[int] = field(default_factory=list)
    master: Optional[int] = None


class ChartMap:
    """
    Accumulates one decoded chart.

    The map holds no notion of an open record: callers pass the Feature or
    Edge returned by ``new_feature``/``new_edge`` into the calls that fill
    it. Not thread-safe; decode each file into its own instance.
    """

    def __init__(self):
        self.nodes: Dict[int, Node] = {}
        self.edges: Dict[int, Edge] = {}
        self.features: Dict[int, Feature] = {}
        self.index: Dict[int, List[int]] = defaultdict(list)
        self._indexed: Set[int] = set()
        self.bounds = Bounds()
        self.dataset: Optional[DatasetInfo] = None
        self.complete = False

    # --- Feature records ---

    def new_feature(self, name: int, primitive: PrimitiveKind, objl: int) -> Feature:
        """Registers a feature under its long name."""
        if name in self.features:
            raise ChartMapError(f"Duplicate feature name {name:#x}")
        feature = Feature(name, primitive, objl)
        self.features[name] = feature
        return feature

    def _member(self, feature: Feature) -> Feature:
        if self.features.get(feature.name) is not feature:
            raise ChartMapError(f"Feature {feature.name:#x} does not belong to this map")
        return feature

    def new_att(self, feature: Feature, code: int, value: str) -> None:
        self._member(feature).attributes[code] = value

    def new_obj(self, feature: Feature, name: int, relation: int) -> None:
        self._member(feature).objects.append(FeatureRef(name, Relation.from_code(relation)))

    def new_prim(self, feature: Feature, name: int, orientation: int, usage: int,
                 mask: int = NOT_APPLICABLE) -> None:
        self._member(feature).prims.append(SpatialRef(name, orientation, usage, mask))

    def end_feature(self, feature: Feature) -> Feature:
        """Adds a completed feature to the object class index."""
        self._member(feature)
        if feature.name in self._indexed:
            raise ChartMapError(f"Feature {feature.name:#x} was already closed")
        self._indexed.add(feature.name)
        self.index[feature.objl].append(feature.name)
        return feature

    # --- Vector records ---

    def new_edge(self, name: int) -> Edge:
        if name in self.edges:
            raise ChartMapError(f"Duplicate edge name {name:#x}")
        edge = Edge(name)
        self.edges[name] = edge
        return edge

    def add_conn(self, edge: Edge, name: int, topology: int) -> None:
        if self.edges.get(edge.name) is not edge:
            raise ChartMapError(f"Edge {edge.name:#x} does not belong to this map")
        edge.connections.append((name, topology))
        if topology == BEGINNING_NODE:
            edge.first = name
        elif topology == END_NODE:
            edge.last = name

    def new_node(self, name: int, lat: float, lon: float, flag: NodeFlag = NodeFlag.ANON,
                 depth: Optional[float] = None, edge: Optional[Edge] = None) -> Node:
        """
        Adds a node at (lat, lon) degrees and widens the bounds.

        Anonymous 2-D nodes are vertices of ``edge`` and are appended to it
        in encounter order; 3-D nodes (``depth`` given) stand alone.
        """
        if name in self.nodes:
            raise ChartMapError(f"Duplicate node name {name:#x}")
        if depth is None and flag is NodeFlag.ANON:
            if edge is None:
                raise ChartMapError(f"Anonymous node {name:#x} outside an edge")
            edge.nodes.append(name)
        node = Node(name, lat, lon, flag, depth)
        self.nodes[name] = node
        self.bounds.extend(math.radians(lat), math.radians(lon))
        return node

    # --- Lookups ---

    def get_node(self, name: int) -> Optional[Node]:
        return self.nodes.get(name)

    def get_edge(self, name: int) -> Optional[Edge]:
        return self.edges.get(name)

    def get_feature(self, name: int) -> Optional[Feature]:
        return self.features.get(name)

    def features_of_class(self, objl: int) -> List[Feature]:
        return [self.features[name] for name in self.index.get(objl, [])]

    def edge_nodes(self, name: int, reverse: bool = False) -> List[Node]:
        """Resolved vertices of an edge, in stored or reversed order."""
        edge = self.edges[name]
        nodes = [self.nodes[key] for key in edge.vertices if key in self.nodes]
        if reverse:
            nodes.reverse()
        return nodes

    def node_group(self, name: int) -> List[Node]:
        """
        The node ``name`` and, for sounding records, the nodes that follow it
        under the same vector record key.
        """
        node = self.nodes.get(name)
        if node is None:
            return []
        group = [node]
        if node.depth is None:
            return group
        record = name & ~SEQUENCE_MASK
        key = name + 1
        while key in self.nodes and key & ~SEQUENCE_MASK == record:
            group.append(self.nodes[key])
            key += 1
        return group

    def iter_features(self) -> Iterator[Feature]:
        return iter(self.features.values())

    def summary(self) -> Dict[str, int]:
        return {
            'nodes': len(self.nodes),
            'edges': len(self.edges),
            'features': len(self.features),
            'classes': len(self.index),
        }

    # --- End of file ---

    def end_file(self, resolve: bool = True) -> List[UnresolvedReferenceWarning]:
        """
        Closes the map and checks every cross reference.

        Returns one warning per reference that does not resolve. Slave
        features are linked to their masters; the links are rebuilt on every
        call.
        """
        unclosed = [name for name in self.features if name not in self._indexed]
        if unclosed:
            raise ChartMapError(f"{len(unclosed)} feature(s) were never closed, first {unclosed[0]:#x}")
        self.complete = True
        if not resolve:
            return []

        for feature in self.features.values():
            feature.slaves = []
            feature.master = None

        warnings: List[UnresolvedReferenceWarning] = []
        for feature in self.features.values():
            for prim in feature.prims:
                if prim.name not in self.edges and prim.name not in self.nodes:
                    warnings.append(UnresolvedReferenceWarning(feature.name, prim.name, 'spatial'))
            for obj in feature.objects:
                target = self.features.get(obj.name)
                if target is None:
                    warnings.append(UnresolvedReferenceWarning(feature.name, obj.name, 'feature'))
                elif obj.relation is Relation.SLAVE:
                    feature.slaves.append(target.name)
                    target.master = feature.name
        for edge in self.edges.values():
            for key in (edge.first, edge.last):
                if key is not None and key not in self.nodes:
                    warnings.append(UnresolvedReferenceWarning(edge.name, key, 'node'))

        for warning in warnings:
            logger.warning(str(warning))
        return warnings
