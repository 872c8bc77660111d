# __init__.py for load_db package
# preflight is not imported here so fiona is only loaded when --check is used.

from . import request
from . import steps
from . import shp2pgsql
from . import postgis
