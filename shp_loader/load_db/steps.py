"""
steps.py - The fixed drop / create / import sequence.

Each step is named and reports a StepResult; the driver in postgis.py stops
at the first result that is not ok.
"""

from dataclasses import dataclass

from .request import LoadRequest

DROP_TABLE = "drop_table"
CREATE_SCHEMA = "create_schema"
IMPORT_SHAPEFILE = "import_shapefile"

STEP_ORDER = (DROP_TABLE, CREATE_SCHEMA, IMPORT_SHAPEFILE)

STEP_DESCRIPTIONS = {
    DROP_TABLE: "Dropping table if it exists",
    CREATE_SCHEMA: "Creating schema if missing",
    IMPORT_SHAPEFILE: "Importing shapefile",
}


@dataclass(frozen=True)
class StepResult:
    name: str
    returncode: int
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def drop_table_sql(request: LoadRequest) -> str:
    return f"DROP TABLE IF EXISTS {request.qualified_table};"


def create_schema_sql(request: LoadRequest) -> str:
    return f"CREATE SCHEMA IF NOT EXISTS {request.schema};"


def exit_status(returncode: int) -> int:
    """Map a subprocess return code to a shell-style exit status (signals -> 128+n)."""
    if returncode < 0:
        return 128 - returncode
    return returncode
