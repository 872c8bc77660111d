"""
postgis.py - Load a shapefile into PostGIS by shelling out to psql and shp2pgsql.

Steps, in order, with no transaction spanning them:
    1. DROP TABLE IF EXISTS schema.table
    2. CREATE SCHEMA IF NOT EXISTS schema
    3. shp2pgsql ... | psql

Running the same request again repeats all three steps and ends in the same state.
"""

import shlex
import shutil
import subprocess
import tempfile
from typing import Callable, List, Optional, Tuple

from shp_loader import config
from shp_loader.exceptions import DataError, LoaderEnvironmentError
from shp_loader.utils.logger import get_logger
from .request import LoadRequest
from .shp2pgsql import build_psql_command, build_shp2pgsql_command
from .steps import (
    CREATE_SCHEMA,
    DROP_TABLE,
    IMPORT_SHAPEFILE,
    STEP_DESCRIPTIONS,
    STEP_ORDER,
    StepResult,
    create_schema_sql,
    drop_table_sql,
    exit_status,
)

logger = get_logger()


def _read_spool(spool) -> str:
    spool.seek(0)
    return spool.read().decode("utf-8", errors="replace").strip()


def _terminate(*procs) -> None:
    """Kill and reap children left running when the import is interrupted."""
    for proc in procs:
        if proc.poll() is None:
            proc.kill()
        proc.wait()


class PostGISLoader:
    """Runs the drop / create / import sequence for one LoadRequest."""

    def __init__(self, request: LoadRequest, psql: Optional[str] = None, shp2pgsql: Optional[str] = None):
        self.request = request
        self.psql = psql or config.PSQL_BIN
        self.shp2pgsql = shp2pgsql or config.SHP2PGSQL_BIN

    def steps(self) -> List[Tuple[str, Callable[[], StepResult]]]:
        handlers = {
            DROP_TABLE: self.drop_table,
            CREATE_SCHEMA: self.create_schema,
            IMPORT_SHAPEFILE: self.import_shapefile,
        }
        return [(name, handlers[name]) for name in STEP_ORDER]

    def plan(self) -> List[Tuple[str, str]]:
        """Shell rendering of every step, for --dry-run."""
        req = self.request
        import_cmd = (
            shlex.join(build_shp2pgsql_command(req, self.shp2pgsql))
            + " | "
            + shlex.join(build_psql_command(req, executable=self.psql))
        )
        return [
            (DROP_TABLE, shlex.join(build_psql_command(req, drop_table_sql(req), self.psql))),
            (CREATE_SCHEMA, shlex.join(build_psql_command(req, create_schema_sql(req), self.psql))),
            (IMPORT_SHAPEFILE, import_cmd),
        ]

    def ensure_tools(self) -> None:
        """Fail before touching the database if psql or shp2pgsql is missing."""
        for step, tool in ((DROP_TABLE, self.psql), (IMPORT_SHAPEFILE, self.shp2pgsql)):
            if shutil.which(tool) is None:
                raise LoaderEnvironmentError(
                    f"{step}: '{tool}' not found on PATH. Install PostgreSQL client and PostGIS tools.",
                    exit_code=config.EXIT_TOOL_MISSING,
                    step=step,
                )

    def run(self) -> List[StepResult]:
        """
        Execute every step in order, halting at the first failure.

        Returns:
            The StepResults of all steps (all ok)

        Raises:
            LoaderEnvironmentError: database or tool failure, names the step
            DataError: shp2pgsql rejected the shapefile or projection
        """
        if self.request.check:
            from .preflight import check_projection, inspect_shapefile

            summary = inspect_shapefile(self.request.shapefile_path)
            check_projection(summary, self.request.source_projection)

        self.ensure_tools()
        results = []
        total = len(STEP_ORDER)
        for index, (name, handler) in enumerate(self.steps(), start=1):
            logger.info(f"Step {index}/{total}: {STEP_DESCRIPTIONS[name]} ({name})")
            result = handler()
            results.append(result)
            if not result.ok:
                raise self._failure(result)
            logger.info(f"Step {index}/{total}: {name} done")
        logger.info(f"Loaded {self.request.shapefile_path} into {self.request.qualified_table}")
        return results

    def _failure(self, result: StepResult):
        message = f"{result.name} failed (exit {result.returncode})"
        if result.message:
            message = f"{message}: {result.message}"
        if isinstance(result, ConversionResult):
            return DataError(message, exit_code=result.returncode, step=result.name)
        return LoaderEnvironmentError(message, exit_code=result.returncode, step=result.name)

    def _run_sql(self, name: str, sql: str) -> StepResult:
        cmd = build_psql_command(self.request, sql, self.psql)
        logger.debug(f"Running: {shlex.join(cmd)}")
        try:
            proc = subprocess.run(cmd, capture_output=True, text=True)
        except OSError as e:
            return StepResult(name, config.EXIT_TOOL_MISSING, f"cannot run {self.psql}: {e}")
        if proc.stdout.strip():
            logger.debug(proc.stdout.strip())
        return StepResult(name, exit_status(proc.returncode), proc.stderr.strip())

    def drop_table(self) -> StepResult:
        return self._run_sql(DROP_TABLE, drop_table_sql(self.request))

    def create_schema(self) -> StepResult:
        return self._run_sql(CREATE_SCHEMA, create_schema_sql(self.request))

    def import_shapefile(self) -> StepResult:
        """
        Pipe shp2pgsql's SQL into psql.

        shp2pgsql's stderr is spooled to a temp file so neither process can
        stall on a full pipe. A psql failure wins over shp2pgsql being killed
        by the broken pipe it leaves behind.
        """
        conv_cmd = build_shp2pgsql_command(self.request, self.shp2pgsql)
        db_cmd = build_psql_command(self.request, executable=self.psql)
        logger.debug(f"Running: {shlex.join(conv_cmd)} | {shlex.join(db_cmd)}")

        with tempfile.TemporaryFile() as conv_err, tempfile.TemporaryFile() as db_out:
            try:
                conv = subprocess.Popen(conv_cmd, stdout=subprocess.PIPE, stderr=conv_err)
            except OSError as e:
                return StepResult(IMPORT_SHAPEFILE, config.EXIT_TOOL_MISSING, f"cannot run {self.shp2pgsql}: {e}")
            try:
                db = subprocess.Popen(db_cmd, stdin=conv.stdout, stdout=db_out, stderr=subprocess.STDOUT)
            except OSError as e:
                conv.kill()
                conv.wait()
                return StepResult(IMPORT_SHAPEFILE, config.EXIT_TOOL_MISSING, f"cannot run {self.psql}: {e}")
            finally:
                conv.stdout.close()
            try:
                db_rc = db.wait()
                conv_rc = conv.wait()
            except BaseException:
                _terminate(db, conv)
                raise

            conv_msg = _read_spool(conv_err)
            db_msg = _read_spool(db_out)

        if conv_msg:
            logger.debug(f"{self.shp2pgsql}: {conv_msg}")
        if db_msg:
            logger.debug(f"{self.psql}: {db_msg}")

        if db_rc != 0 and conv_rc <= 0:
            return StepResult(IMPORT_SHAPEFILE, exit_status(db_rc), db_msg)
        if conv_rc != 0:
            return ConversionResult(IMPORT_SHAPEFILE, exit_status(conv_rc), conv_msg)
        return StepResult(IMPORT_SHAPEFILE, 0)


class ConversionResult(StepResult):
    """A StepResult whose failure came from the conversion utility."""
