import sys

from shp_loader import config
from shp_loader.loader_cli import main

if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\nInterrupted by user. Exiting.")
        sys.exit(config.EXIT_INTERRUPTED)
