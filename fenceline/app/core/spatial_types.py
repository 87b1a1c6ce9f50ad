"""
Column type for geodetic geometries.

On PostgreSQL the column is a PostGIS ``geography(<type>, 4326)`` (declared
through GeoAlchemy2, which also creates the GiST index). Engines without a
spatial extension, SQLite in tests and local runs, store the same geometry
as WKT text.
"""
from geoalchemy2 import Geography
from sqlalchemy.types import Text, TypeDecorator

from fenceline.app.core.constants import SRID


class GeographyType(TypeDecorator):
    """geography(<geometry_type>, 4326) on PostGIS, WKT text elsewhere."""

    impl = Text
    cache_ok = True

    def __init__(self, geometry_type: str = "GEOMETRY"):
        super().__init__()
        self.geometry_type = geometry_type

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(
                Geography(geometry_type=self.geometry_type, srid=SRID, spatial_index=True)
            )
        return dialect.type_descriptor(Text())
