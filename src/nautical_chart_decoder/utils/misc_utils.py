import json
import logging
from pathlib import Path
from typing import Union

import geopandas as gpd
import pandas as pd

from ..core.chart_map import ChartMap
from .geometry_utils import GeometryBuilder
from .s57_utils import S57Utils


logger = logging.getLogger(__name__)


class ChartFrames:
    """Tabular views of a decoded chart for analysis and export."""

    def __init__(self, chart: ChartMap):
        self.chart = chart

    def nodes_df(self) -> pd.DataFrame:
        """One row per node: key, position in degrees, depth and naming flag."""
        rows = [
            {'name': n.name, 'lat': n.lat, 'lon': n.lon, 'depth': n.depth, 'flag': n.flag.name}
            for n in self.chart.nodes.values()
        ]
        return pd.DataFrame(rows, columns=['name', 'lat', 'lon', 'depth', 'flag'])

    def features_df(self) -> pd.DataFrame:
        """
        One row per feature with its long name split into AGEN/FIDN/FIDS,
        the object class and the attribute mapping as a JSON string.
        """
        rows = []
        for feature in self.chart.iter_features():
            agen, fidn, fids = S57Utils.split_long_name(feature.name)
            rows.append({
                'lnam': f"{feature.name:016X}",
                'agen': agen,
                'fidn': fidn,
                'fids': fids,
                'objl': feature.objl,
                'acronym': S57Utils.object_class_acronym(feature.objl),
                'prim': feature.primitive.name,
                'attributes': json.dumps({str(k): v for k, v in sorted(feature.attributes.items())}),
                'prims': len(feature.prims),
                'objects': len(feature.objects),
                'master': f"{feature.master:016X}" if feature.master is not None else None,
            })
        columns = ['lnam', 'agen', 'fidn', 'fids', 'objl', 'acronym', 'prim', 'attributes', 'prims',
                   'objects', 'master']
        return pd.DataFrame(rows, columns=columns)

    def features_gdf(self, crs: int = 4326) -> gpd.GeoDataFrame:
        """Features with their assembled geometries; NOSP features get no geometry."""
        df = self.features_df()
        geometries = GeometryBuilder(self.chart).build_all()
        df['geometry'] = [geometries[name] for name in self.chart.features]
        return gpd.GeoDataFrame(df, geometry='geometry', crs=f"EPSG:{crs}")

    def to_geojson(self, destination: Union[str, Path]) -> Path:
        """Writes the features GeoDataFrame as a GeoJSON FeatureCollection."""
        destination = Path(destination)
        destination.parent.mkdir(parents=True, exist_ok=True)
        gdf = self.features_gdf()
        destination.write_text(gdf.to_json(), encoding='utf-8')
        logger.info(f"Wrote {len(gdf)} features to {destination}")
        return destination


class CoordinateConverter:
    """A utility class for converting between different coordinate formats."""

    @staticmethod
    def decimal_to_dmh(decimal_degrees: float, is_latitude: bool) -> tuple:
        """
        Converts decimal degrees to Degrees, Minutes, Hemisphere (DMH).

        Args:
            decimal_degrees (float): The coordinate in decimal degrees.
            is_latitude (bool): True if the coordinate is a latitude, False for longitude.

        Returns:
            tuple: A tuple containing (degrees, minutes, hemisphere).
        """
        decimal_degrees = float(decimal_degrees)
        abs_decimal = abs(decimal_degrees)

        degrees = int(abs_decimal)
        minutes = (abs_decimal - degrees) * 60

        if is_latitude:
            hemisphere = 'N' if decimal_degrees >= 0 else 'S'
        else:
            hemisphere = 'E' if decimal_degrees >= 0 else 'W'

        return degrees, minutes, hemisphere

    @staticmethod
    def _carry_minutes(degrees: int, minutes: float, places: int = 3) -> tuple:
        """Rounds minutes to ``places`` and carries a full 60 into the degrees."""
        minutes = round(minutes, places)
        if minutes >= 60:
            return degrees + 1, minutes - 60
        return degrees, minutes

    @staticmethod
    def format_position(lat: float, lon: float) -> str:
        """Formats a position as e.g. "55 00.000 N 009 30.000 E"."""
        lat_d, lat_m, lat_h = CoordinateConverter.decimal_to_dmh(lat, True)
        lon_d, lon_m, lon_h = CoordinateConverter.decimal_to_dmh(lon, False)
        lat_d, lat_m = CoordinateConverter._carry_minutes(lat_d, lat_m)
        lon_d, lon_m = CoordinateConverter._carry_minutes(lon_d, lon_m)
        return f"{lat_d:02d} {lat_m:06.3f} {lat_h} {lon_d:03d} {lon_m:06.3f} {lon_h}"
