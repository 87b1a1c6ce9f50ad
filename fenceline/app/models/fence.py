from sqlalchemy import String, ForeignKey, DateTime, Float, Text, Index
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime
from typing import Optional
from fenceline.app.core.base import Base
from fenceline.app.core.spatial_types import GeographyType


class Fence(Base):
    __tablename__ = 'fences'

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    merchant_id: Mapped[str] = mapped_column(String(64), ForeignKey('merchants.id', ondelete='CASCADE'))
    fence_name: Mapped[str] = mapped_column(String(255))
    fence_desc: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    rule_id: Mapped[Optional[int]] = mapped_column(ForeignKey('delivery_rules.id', ondelete='SET NULL'), nullable=True)
    # 'polygon' | 'circle' (ShapeType values)
    shape_type: Mapped[str] = mapped_column(String(16))
    # Metres; only meaningful for circles
    radius: Mapped[float] = mapped_column(Float, default=0.0)
    # Polygon ring or circle center. Always read through ST_AsGeoJSON, never loaded raw.
    geom: Mapped[Optional[str]] = mapped_column(GeographyType("GEOMETRY"), nullable=True, deferred=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, onupdate=datetime.now)

    __table_args__ = (
        Index('ix_fences_merchant_id', 'merchant_id'),
        Index('ix_fences_merchant_shape', 'merchant_id', 'shape_type'),
    )
