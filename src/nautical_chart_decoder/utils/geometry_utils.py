#!/usr/bin/env python3
"""
geometry_utils.py

Builds shapely geometries for decoded features from the chart topology.
Coordinates are (lon, lat) in degrees, with depth as Z for soundings.
"""

import logging
from typing import Dict, List, Optional, Tuple

from shapely.geometry import LineString, MultiLineString, MultiPoint, MultiPolygon, Point, Polygon
from shapely.geometry.base import BaseGeometry

from ..core.chart_map import INTERIOR, ChartMap, Feature, PrimitiveKind, SpatialRef

logger = logging.getLogger(__name__)

Coord = Tuple[float, ...]


class GeometryBuilder:
    """
    Assembles point, line and area geometries from FSPT references.

    Lines are chained in reference order, honouring each reference's
    orientation. Areas are closed into rings; rings built from interior
    usage edges become holes of the exterior ring that contains them.
    References that do not resolve are skipped.
    """

    def __init__(self, chart: ChartMap):
        self.chart = chart

    def build(self, feature: Feature) -> Optional[BaseGeometry]:
        if feature.primitive is PrimitiveKind.POINT:
            return self._points(feature)
        if feature.primitive is PrimitiveKind.LINE:
            return self._lines(feature)
        if feature.primitive is PrimitiveKind.AREA:
            return self._areas(feature)
        return None

    def build_all(self) -> Dict[int, Optional[BaseGeometry]]:
        return {feature.name: self.build(feature) for feature in self.chart.iter_features()}

    def _points(self, feature: Feature) -> Optional[BaseGeometry]:
        coords: List[Coord] = []
        for ref in feature.prims:
            for node in self.chart.node_group(ref.name):
                if node.depth is None:
                    coords.append((node.lon, node.lat))
                else:
                    coords.append((node.lon, node.lat, node.depth))
        if not coords:
            return None
        if len({len(c) for c in coords}) > 1:
            coords = [c[:2] for c in coords]
        if len(coords) == 1:
            return Point(coords[0])
        return MultiPoint(coords)

    def _edge_coords(self, ref: SpatialRef) -> List[Coord]:
        if self.chart.get_edge(ref.name) is None:
            return []
        return [(node.lon, node.lat) for node in self.chart.edge_nodes(ref.name, ref.reversed)]

    def _lines(self, feature: Feature) -> Optional[BaseGeometry]:
        parts: List[List[Coord]] = []
        for ref in feature.prims:
            coords = self._edge_coords(ref)
            if len(coords) < 2:
                continue
            if parts and parts[-1][-1] == coords[0]:
                parts[-1].extend(coords[1:])
            else:
                parts.append(list(coords))
        if not parts:
            return None
        if len(parts) == 1:
            return LineString(parts[0])
        return MultiLineString(parts)

    def _rings(self, feature: Feature) -> List[Tuple[List[Coord], bool]]:
        rings: List[Tuple[List[Coord], bool]] = []
        current: Optional[List[Coord]] = None
        exterior = True
        for ref in feature.prims:
            coords = self._edge_coords(ref)
            if len(coords) < 2:
                continue
            if current is not None and current[-1] == coords[0]:
                current.extend(coords[1:])
            else:
                if current is not None:
                    logger.debug(f"Open ring in feature {feature.name:#x}")
                    rings.append((current, exterior))
                current = list(coords)
                exterior = ref.usage != INTERIOR
            if len(current) >= 4 and current[0] == current[-1]:
                rings.append((current, exterior))
                current = None
        if current is not None:
            rings.append((current, exterior))
        return [(ring, ext) for ring, ext in rings if len(ring) >= 3]

    def _areas(self, feature: Feature) -> Optional[BaseGeometry]:
        rings = self._rings(feature)
        shells = [ring for ring, ext in rings if ext]
        holes = [ring for ring, ext in rings if not ext]
        if not shells:
            shells, holes = holes, []
        if not shells:
            return None

        assigned: List[List[List[Coord]]] = [[] for _ in shells]
        outlines = [Polygon(shell) for shell in shells]
        for hole in holes:
            sample = Polygon(hole).representative_point()
            for idx, outline in enumerate(outlines):
                if outline.contains(sample):
                    assigned[idx].append(hole)
                    break
            else:
                logger.debug(f"Interior ring outside every exterior ring in feature {feature.name:#x}")

        polygons = [Polygon(shell, assigned[idx]) for idx, shell in enumerate(shells)]
        if len(polygons) == 1:
            return polygons[0]
        return MultiPolygon(polygons)
