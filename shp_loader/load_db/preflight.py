"""
preflight.py - Optional pre-flight look at a shapefile with fiona.

Only used with --check. Without it a bad path is reported by shp2pgsql itself.
"""

from dataclasses import dataclass
from typing import Optional

import fiona
from fiona.errors import FionaError

from shp_loader.exceptions import DataError
from shp_loader.utils.logger import get_logger

logger = get_logger()


@dataclass(frozen=True)
class ShapefileSummary:
    path: str
    geometry_type: Optional[str]
    feature_count: int
    epsg: Optional[int]


def _detect_epsg(crs) -> Optional[int]:
    if not crs:
        return None
    try:
        return crs.to_epsg()
    except Exception as e:
        logger.debug(f"Could not match CRS to an EPSG code: {e}")
        return None


def inspect_shapefile(shp_path: str) -> ShapefileSummary:
    """
    Open shp_path with fiona and summarise it.

    Raises:
        DataError: if fiona cannot open or read the file
    """
    try:
        with fiona.open(shp_path) as src:
            summary = ShapefileSummary(
                path=str(shp_path),
                geometry_type=src.schema.get("geometry"),
                feature_count=len(src),
                epsg=_detect_epsg(src.crs),
            )
    except (FionaError, OSError) as e:
        raise DataError(f"Cannot read shapefile {shp_path}: {e}", step="check")
    logger.info(
        f"Shapefile {summary.path}: {summary.feature_count} features, "
        f"geometry={summary.geometry_type}, epsg={summary.epsg}"
    )
    return summary


def check_projection(summary: ShapefileSummary, source_projection: int) -> bool:
    """Warn when the file's own CRS disagrees with the declared source projection."""
    if summary.epsg is None:
        logger.warning(f"No EPSG code detected for {summary.path}; using EPSG:{source_projection} as declared")
        return False
    if summary.epsg != source_projection:
        logger.warning(
            f"Shapefile CRS is EPSG:{summary.epsg} but source projection was given as EPSG:{source_projection}"
        )
        return False
    return True
