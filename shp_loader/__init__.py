"""
shp_loader - load an ESRI shapefile into a PostGIS table via shp2pgsql and psql.
"""

__version__ = "0.1.0"
