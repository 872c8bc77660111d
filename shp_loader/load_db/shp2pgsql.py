"""
shp2pgsql.py - Build command lines for the external PostGIS tools.

shp2pgsql converts a shapefile into SQL; psql executes it. Both are only
shelled out to, never reimplemented here.
"""

from typing import List, Optional

from shp_loader import config
from .request import LoadRequest


def projection_argument(request: LoadRequest) -> str:
    """
    SRID argument for shp2pgsql -s.

    'SRC:TGT' reprojects from the source to the target projection,
    plain 'SRC' declares the source projection only.
    """
    if request.reprojects:
        return f"{request.source_projection}:{request.target_projection}"
    return str(request.source_projection)


def build_shp2pgsql_command(request: LoadRequest, executable: Optional[str] = None) -> List[str]:
    cmd = [executable or config.SHP2PGSQL_BIN]
    if request.spatial_index:
        cmd.append("-I")
    if request.encoding:
        cmd.extend(["-W", request.encoding])
    cmd.extend(["-s", projection_argument(request)])
    cmd.append(request.shapefile_path)
    cmd.append(request.qualified_table)
    return cmd


def build_psql_command(request: LoadRequest, sql: Optional[str] = None, executable: Optional[str] = None) -> List[str]:
    """
    psql argv for one statement (sql given) or for reading SQL from stdin.

    ON_ERROR_STOP makes psql exit non-zero on the first failing statement.
    Connection settings left unset fall back to the PG* environment variables.
    """
    cmd = [executable or config.PSQL_BIN, "-X", "-q", "-v", "ON_ERROR_STOP=1"]
    if request.host:
        cmd.extend(["-h", request.host])
    if request.port:
        cmd.extend(["-p", str(request.port)])
    if request.user:
        cmd.extend(["-U", request.user])
    if request.dbname:
        cmd.extend(["-d", request.dbname])
    if sql is not None:
        cmd.extend(["-c", sql])
    return cmd
