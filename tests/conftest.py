import logging
import os
import stat
import sys
from pathlib import Path

import pytest


@pytest.fixture(autouse=True)
def reset_logger():
    """Drop handlers bound to a previous test's captured stdout."""
    yield
    log = logging.getLogger("shp_loader")
    for handler in list(log.handlers):
        log.removeHandler(handler)
        handler.close()


def _write_script(path: Path, body: str) -> str:
    path.write_text("#!/bin/sh\n" + body)
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return str(path)


class FakeTools:
    """Stand-in psql and shp2pgsql executables that record how they were called."""

    def __init__(self, root: Path):
        self.root = root
        self.psql_calls = root / "psql_calls.log"
        self.psql_stdin = root / "psql_stdin.sql"
        self.shp2pgsql_calls = root / "shp2pgsql_calls.log"
        self.psql = None
        self.shp2pgsql = None
        self.make_psql()
        self.make_shp2pgsql()

    def make_psql(self, fail_on=None, exit_code=2, message="psql: error: connection to server failed"):
        """fail_on: substring of the argv (e.g. 'DROP', 'CREATE', 'stdin') that makes psql fail."""
        check = ""
        if fail_on == "stdin":
            check = f'case " $* " in *" -c "*) ;; *) echo "{message}" >&2; exit {exit_code} ;; esac\n'
        elif fail_on:
            check = f'case "$*" in *{fail_on}*) echo "{message}" >&2; exit {exit_code} ;; esac\n'
        body = (
            f'printf "%s\\n" "$*" >> "{self.psql_calls}"\n'
            + check
            + f'case " $* " in *" -c "*) ;; *) cat >> "{self.psql_stdin}" ;; esac\n'
            + "exit 0\n"
        )
        self.psql = _write_script(self.root / "psql", body)
        return self.psql

    def make_shp2pgsql(self, exit_code=0, message="Unable to open shapefile"):
        if exit_code:
            body = (
                f'printf "%s\\n" "$*" >> "{self.shp2pgsql_calls}"\n'
                f'echo "{message}" >&2\n'
                f"exit {exit_code}\n"
            )
        else:
            body = (
                f'printf "%s\\n" "$*" >> "{self.shp2pgsql_calls}"\n'
                'echo "Shapefile type: Polygon" >&2\n'
                'echo "BEGIN;"\n'
                'echo "CREATE TABLE loaded (gid serial);"\n'
                'echo "COMMIT;"\n'
                "exit 0\n"
            )
        self.shp2pgsql = _write_script(self.root / "shp2pgsql", body)
        return self.shp2pgsql

    def psql_lines(self):
        if not self.psql_calls.exists():
            return []
        return self.psql_calls.read_text().splitlines()

    def shp2pgsql_lines(self):
        if not self.shp2pgsql_calls.exists():
            return []
        return self.shp2pgsql_calls.read_text().splitlines()

    def imported_sql(self):
        if not self.psql_stdin.exists():
            return ""
        return self.psql_stdin.read_text()


@pytest.fixture
def fake_tools(tmp_path):
    if sys.platform == "win32":
        pytest.skip("fake tools are /bin/sh scripts")
    return FakeTools(tmp_path)


@pytest.fixture
def configured_tools(fake_tools, monkeypatch):
    """Point the loader's default tool paths at the fakes."""
    from shp_loader import config

    monkeypatch.setattr(config, "PSQL_BIN", fake_tools.psql)
    monkeypatch.setattr(config, "SHP2PGSQL_BIN", fake_tools.shp2pgsql)
    return fake_tools
