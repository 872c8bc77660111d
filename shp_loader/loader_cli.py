"""
loader_cli.py - Command-line interface for loading one shapefile into PostGIS.

Usage:
    shp-loader -s soil -t geology -p 4267 -n 2261 -v /data/ny.shp
    python -m shp_loader -s soil -t geology -p 4267 /data/ny.shp
"""

import argparse
import sys
from typing import List, Optional, Tuple

from shp_loader import config
from shp_loader.exceptions import ShapefileLoaderError, UsageError
from shp_loader.load_db.postgis import PostGISLoader
from shp_loader.load_db.request import LoadRequest, parse_epsg
from shp_loader.utils.logger import get_logger, setup_logger

# Short flags that take no value and may be bundled with -h, as in -vh
_BUNDLE_FLAGS = "vh"


class LoaderArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that raises UsageError instead of exiting."""

    def error(self, message):
        raise UsageError(message)


def wants_help(argv: List[str]) -> bool:
    """
    True when argv asks for help anywhere before a "--" terminator.

    Recognises -h, --help, its unambiguous prefixes (--he, --hel) and -h
    bundled after value-less short flags (-vh). A letter that takes a value
    ends the bundle, so -sh means schema "h".
    """
    for arg in argv:
        if arg == "--":
            return False
        if arg.startswith("--"):
            if len(arg) > 3 and "--help".startswith(arg):
                return True
            continue
        if arg.startswith("-") and len(arg) > 1:
            for letter in arg[1:]:
                if letter not in _BUNDLE_FLAGS:
                    break
                if letter == "h":
                    return True
    return False


def _epsg(what):
    def convert(value):
        try:
            return parse_epsg(value, what)
        except UsageError as e:
            raise argparse.ArgumentTypeError(str(e))
    return convert


def build_parser() -> LoaderArgumentParser:
    parser = LoaderArgumentParser(
        prog="shp-loader",
        description="Load an ESRI shapefile into a PostGIS table (drop table, create schema, shp2pgsql | psql)",
        epilog="""
Examples:
  # Load with reprojection from NAD27 (4267) to NY Long Island (2261):
  shp-loader -s soil -t geology -p 4267 -n 2261 -v /data/ny.shp

  # Load without reprojection:
  shp-loader -s soil -t geology -p 4267 /data/ny.shp

  # Show the commands without running them:
  shp-loader -s soil -t geology -p 4267 --dry-run /data/ny.shp

Connection settings not given on the command line come from PGHOST,
PGPORT, PGUSER, PGDATABASE and PGPASSWORD, as for psql.
""",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        add_help=False,
        allow_abbrev=False,
    )

    parser.add_argument("-s", dest="schema", metavar="SCHEMA", required=True, help="Target schema (created if missing)")
    parser.add_argument("-t", dest="table", metavar="TABLE", required=True, help="Target table (dropped and recreated)")
    parser.add_argument("-p", dest="source_projection", metavar="EPSG", type=_epsg("source projection"), required=True, help="EPSG code of the shapefile's projection")
    parser.add_argument("-n", dest="target_projection", metavar="EPSG", type=_epsg("target projection"), default=None, help="EPSG code to reproject to (default: no reprojection)")
    parser.add_argument("-v", dest="verbose", action="store_true", help="Print the resolved configuration and debug output")
    parser.add_argument("-h", "--help", action="store_true", dest="show_help", help="Show this help and exit")

    db = parser.add_argument_group("database connection")
    db.add_argument("--dbname", default=None, help="Database name (psql -d)")
    db.add_argument("--host", default=None, help="Database host (psql -h)")
    db.add_argument("--port", type=int, default=None, help="Database port (psql -p)")
    db.add_argument("--user", default=None, help="Database user (psql -U)")

    behaviour = parser.add_argument_group("import behaviour")
    behaviour.add_argument("--no-index", dest="spatial_index", action="store_false", default=config.DEFAULT_SPATIAL_INDEX, help="Do not create a spatial index on the geometry column")
    behaviour.add_argument("--encoding", default=None, help="Character encoding of the DBF attributes (shp2pgsql -W)")
    behaviour.add_argument("--check", action="store_true", help="Open the shapefile with fiona and check its projection before loading")
    behaviour.add_argument("--dry-run", action="store_true", help="Print the commands for each step and exit")
    behaviour.add_argument("--log-dir", default=None, help="Also write a log file to this directory")

    parser.add_argument("shapefile", metavar="SHAPEFILE", help="Path to the .shp file (must be the last argument)")
    return parser


def parse_request(argv: List[str], parser: Optional[LoaderArgumentParser] = None) -> Tuple[LoadRequest, Optional[str]]:
    """
    Parse command-line arguments into a LoadRequest and the optional log directory.

    Raises:
        UsageError: on unknown flags, missing required values or invalid values,
            or when the shapefile path is not the last argument
    """
    parser = parser or build_parser()
    args = parser.parse_args(argv)
    if not argv or argv[-1] != args.shapefile:
        raise UsageError("shapefile path must be the last argument")
    return LoadRequest(
        schema=args.schema,
        table=args.table,
        source_projection=args.source_projection,
        target_projection=args.target_projection,
        shapefile_path=args.shapefile,
        verbose=args.verbose,
        dbname=args.dbname,
        host=args.host,
        port=args.port,
        user=args.user,
        spatial_index=args.spatial_index,
        encoding=args.encoding,
        dry_run=args.dry_run,
        check=args.check,
    ), args.log_dir


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Args:
        argv: Command-line arguments (default: sys.argv[1:])

    Returns:
        Exit code: 0 success or help, 1 no arguments, 2 usage error,
        otherwise the failing tool's exit status
    """
    if argv is None:
        argv = sys.argv[1:]
    parser = build_parser()

    if not argv:
        parser.print_usage(sys.stdout)
        return config.EXIT_NO_ARGS

    if wants_help(argv):
        parser.print_help(sys.stdout)
        return config.EXIT_OK

    try:
        request, log_dir = parse_request(argv, parser)
    except UsageError as e:
        print(f"ERROR: {e}")
        print(f"Run '{parser.prog} -h' for usage.")
        return e.exit_code

    setup_logger(verbose=request.verbose, log_dir=log_dir)
    logger = get_logger()

    if request.verbose:
        for line in request.describe():
            print(line)

    loader = PostGISLoader(request)

    if request.dry_run:
        for name, command in loader.plan():
            print(f"{name}: {command}")
        return config.EXIT_OK

    try:
        loader.run()
    except KeyboardInterrupt:
        print("ERROR: interrupted by user")
        return config.EXIT_INTERRUPTED
    except ShapefileLoaderError as e:
        logger.debug(f"{type(e).__name__} in step {e.step}", exc_info=request.verbose)
        print(f"ERROR: {e}")
        return e.exit_code
    except Exception as e:
        print(f"ERROR: import failed: {e}")
        if request.verbose:
            import traceback

            traceback.print_exc()
        return 1

    logger.info("Import complete!")
    return config.EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
