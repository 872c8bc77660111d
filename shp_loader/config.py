import os

# External tools; override when they are not on PATH under their usual names
PSQL_BIN = os.environ.get("SHP_LOADER_PSQL", "psql")
SHP2PGSQL_BIN = os.environ.get("SHP_LOADER_SHP2PGSQL", "shp2pgsql")

# No file log unless a directory is configured
LOG_DIR = os.environ.get("SHP_LOADER_LOG_DIR") or None

DEFAULT_SPATIAL_INDEX = True

EXIT_OK = 0
EXIT_NO_ARGS = 1
EXIT_USAGE = 2
EXIT_TOOL_MISSING = 127
EXIT_INTERRUPTED = 130
