import pytest
from shapely.geometry import LineString, MultiPoint, Point, Polygon

from nautical_chart_decoder.core.chart_map import ChartMap, NodeFlag, PrimitiveKind
from nautical_chart_decoder.utils.geometry_utils import GeometryBuilder


def add_edge(chart: ChartMap, name: int, coords, first=None, last=None):
    """Adds an edge whose vertices are given as (lat, lon) pairs."""
    edge = chart.new_edge(name)
    if first is not None:
        chart.add_conn(edge, first, 1)
    if last is not None:
        chart.add_conn(edge, last, 2)
    for i, (lat, lon) in enumerate(coords, start=1):
        chart.new_node(name + i, lat, lon, edge=edge)


def add_feature(chart: ChartMap, name: int, primitive: PrimitiveKind, prims):
    feature = chart.new_feature(name, primitive, 42)
    for prim in prims:
        chart.new_prim(feature, *prim)
    return chart.end_feature(feature)


@pytest.fixture
def chart() -> ChartMap:
    return ChartMap()


def test_point(chart):
    chart.new_node(0x100, 55.0, 9.0, NodeFlag.ISOL)
    feature = add_feature(chart, 1, PrimitiveKind.POINT, [(0x100, 1, 255)])
    geometry = GeometryBuilder(chart).build(feature)
    assert isinstance(geometry, Point)
    assert (geometry.x, geometry.y) == (9.0, 55.0)


def test_sounding_group(chart):
    """Test that a sounding reference yields every depth of its record."""
    chart.new_node(0x10000, 1.0, 2.0, depth=5.5)
    chart.new_node(0x10001, 1.5, 2.5, depth=7.0)
    feature = add_feature(chart, 1, PrimitiveKind.POINT, [(0x10000, 1, 255)])
    geometry = GeometryBuilder(chart).build(feature)
    assert isinstance(geometry, MultiPoint)
    assert [p.z for p in geometry.geoms] == [5.5, 7.0]


def test_line_chains_edges_with_orientation(chart):
    chart.new_node(0x1000, 0.0, 0.0, NodeFlag.CONN)
    chart.new_node(0x2000, 0.0, 2.0, NodeFlag.CONN)
    chart.new_node(0x3000, 1.0, 3.0, NodeFlag.CONN)
    add_edge(chart, 0x100000, [(0.0, 1.0)], first=0x1000, last=0x2000)
    # Stored from 0x3000 to 0x2000, used reversed.
    add_edge(chart, 0x200000, [(0.5, 2.5)], first=0x3000, last=0x2000)
    feature = add_feature(chart, 1, PrimitiveKind.LINE, [(0x100000, 1, 255), (0x200000, 2, 255)])

    geometry = GeometryBuilder(chart).build(feature)
    assert isinstance(geometry, LineString)
    assert list(geometry.coords) == [(0.0, 0.0), (1.0, 0.0), (2.0, 0.0), (2.5, 0.5), (3.0, 1.0)]


def test_area_with_hole(chart):
    """Test that interior usage edges become a hole of the exterior ring."""
    add_edge(chart, 0x100000, [(0.0, 0.0), (0.0, 10.0), (10.0, 10.0), (10.0, 0.0), (0.0, 0.0)])
    add_edge(chart, 0x200000, [(4.0, 4.0), (4.0, 6.0), (6.0, 6.0), (6.0, 4.0), (4.0, 4.0)])
    feature = add_feature(chart, 1, PrimitiveKind.AREA, [(0x100000, 1, 1), (0x200000, 1, 2)])

    geometry = GeometryBuilder(chart).build(feature)
    assert isinstance(geometry, Polygon)
    assert len(geometry.interiors) == 1
    assert geometry.area == pytest.approx(100.0 - 4.0)


def test_unresolved_and_nosp(chart):
    missing = add_feature(chart, 1, PrimitiveKind.LINE, [(0xDEAD0000, 1, 255)])
    meta = add_feature(chart, 2, PrimitiveKind.NOSP, [])
    builder = GeometryBuilder(chart)
    assert builder.build(missing) is None
    assert builder.build_all() == {1: None, 2: None}
    assert builder.build(meta) is None
