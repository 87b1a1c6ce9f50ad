from sqlalchemy import String, DateTime
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime
from typing import Optional
from fenceline.app.core.base import Base
from fenceline.app.core.spatial_types import GeographyType


class Merchant(Base):
    __tablename__ = 'merchants'

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(255))
    # Shop location, used to centre the fence drawing map
    center_location: Mapped[Optional[str]] = mapped_column(GeographyType("POINT"), nullable=True, deferred=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)
