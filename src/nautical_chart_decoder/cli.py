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

import argparse
import logging
import sys

from pydantic import ValidationError

from nautical_chart_decoder.core.config import DecoderConfig
from nautical_chart_decoder.core.exceptions import ChartDecodeError
from nautical_chart_decoder.core.s57_decoder import decode_file
from nautical_chart_decoder.utils.misc_utils import ChartFrames, CoordinateConverter
from nautical_chart_decoder.utils.s57_utils import S57Utils

logger = logging.getLogger(__name__)


def _log_summary(result) -> None:
    chart = result.chart
    if chart.dataset is not None:
        band = S57Utils.usage_band(chart.dataset.name) or 'unknown'
        logger.info(f"Dataset: {chart.dataset.name} (edition {chart.dataset.edition}, "
                    f"update {chart.dataset.update}, usage band {band})")
    counts = chart.summary()
    logger.info(f"Records: {result.records}, nodes: {counts['nodes']}, edges: {counts['edges']}, "
                f"features: {counts['features']} in {counts['classes']} object classes")
    if chart.bounds.is_empty:
        logger.info("Bounds: no coordinates decoded")
    else:
        min_lat, min_lon, max_lat, max_lon = chart.bounds.to_degrees()
        logger.info(f"Bounds: {CoordinateConverter.format_position(min_lat, min_lon)} to "
                    f"{CoordinateConverter.format_position(max_lat, max_lon)}")
    if result.warnings:
        logger.warning(f"{len(result.warnings)} reference(s) did not resolve")


def main(argv=None):
    """Main function to parse arguments and run the decoder."""
    parser = argparse.ArgumentParser(
        description="S-57 ENC decoder. Reads one ISO 8211 exchange file and reports its topology.",
        formatter_class=argparse.RawTextHelpFormatter
    )
    parser.add_argument("input_file", help="S-57 exchange file (.000 base cell or .00n update).")
    parser.add_argument(
        "--geojson",
        metavar="OUT",
        help="Write the decoded features with assembled geometries to a GeoJSON file."
    )
    parser.add_argument(
        "--no-sequence-check",
        action='store_true',
        help="Do not enforce monotonic '0001' record numbering."
    )
    parser.add_argument(
        "--no-resolve",
        action='store_true',
        help="Skip the end-of-file reference resolution pass."
    )
    parser.add_argument(
        "--env-file",
        help="Load ENC_DECODER_* settings from this .env file."
    )
    parser.add_argument(
        "-v", "--verbose",
        action='store_true',
        help="Enable debug logging."
    )

    args = parser.parse_args(argv)

    try:
        config = DecoderConfig.from_env(args.env_file)
        overrides = {}
        if args.no_sequence_check:
            overrides['check_sequence'] = False
        if args.no_resolve:
            overrides['resolve_references'] = False
        if args.verbose:
            overrides['log_level'] = 'DEBUG'
        config = config.model_copy(update=overrides)
    except ValidationError as e:
        print(f"Invalid decoder settings: {e}", file=sys.stderr)
        return 2

    logging.basicConfig(
        level=config.log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        stream=sys.stdout
    )

    try:
        result = decode_file(args.input_file, config)
        _log_summary(result)
        if args.geojson:
            ChartFrames(result.chart).to_geojson(args.geojson)
    except ChartDecodeError as e:
        logger.error(f"Cannot chart {args.input_file}: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
