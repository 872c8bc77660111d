"""
request.py - The immutable description of one shapefile load.
"""

import re
from dataclasses import dataclass
from typing import List, Optional

from shp_loader.exceptions import UsageError

# Identifiers go into SQL and the shp2pgsql table argument unquoted
_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_$]*$")


def validate_identifier(value: str, what: str) -> str:
    if not value:
        raise UsageError(f"{what} must not be empty")
    if not _IDENTIFIER_RE.match(value):
        raise UsageError(f"{what} '{value}' is not a valid SQL identifier")
    return value


def parse_epsg(value, what: str) -> int:
    """Parse a positive integer EPSG code."""
    try:
        code = int(str(value).strip())
    except ValueError:
        raise UsageError(f"{what} must be an integer EPSG code, got '{value}'")
    if code <= 0:
        raise UsageError(f"{what} must be a positive EPSG code, got {code}")
    return code


@dataclass(frozen=True)
class LoadRequest:
    """Everything needed to drop, recreate and populate schema.table."""

    schema: str
    table: str
    source_projection: int
    shapefile_path: str
    target_projection: Optional[int] = None
    verbose: bool = False
    dbname: Optional[str] = None
    host: Optional[str] = None
    port: Optional[int] = None
    user: Optional[str] = None
    spatial_index: bool = True
    encoding: Optional[str] = None
    dry_run: bool = False
    check: bool = False

    def __post_init__(self):
        validate_identifier(self.schema, "schema")
        validate_identifier(self.table, "table")
        parse_epsg(self.source_projection, "source projection")
        if self.target_projection is not None:
            parse_epsg(self.target_projection, "target projection")
        if not self.shapefile_path:
            raise UsageError("shapefile path must not be empty")

    @property
    def qualified_table(self) -> str:
        return f"{self.schema}.{self.table}"

    @property
    def reprojects(self) -> bool:
        return self.target_projection is not None

    def describe(self) -> List[str]:
        """Resolved configuration as key=value lines, in a fixed order."""
        target = self.target_projection if self.reprojects else "none"
        lines = [
            f"schema={self.schema}",
            f"table={self.table}",
            f"sourceProjection={self.source_projection}",
            f"targetProjection={target}",
            f"shapefile={self.shapefile_path}",
        ]
        if self.dbname:
            lines.append(f"dbname={self.dbname}")
        if self.host:
            lines.append(f"host={self.host}")
        if self.port:
            lines.append(f"port={self.port}")
        if self.user:
            lines.append(f"user={self.user}")
        lines.append(f"spatialIndex={'yes' if self.spatial_index else 'no'}")
        if self.encoding:
            lines.append(f"encoding={self.encoding}")
        return lines
