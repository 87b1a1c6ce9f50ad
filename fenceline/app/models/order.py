from sqlalchemy import String, ForeignKey, DateTime, DECIMAL, Text, Index, Boolean, JSON
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime
from typing import Optional, List
import uuid
from fenceline.app.core.base import Base
from fenceline.app.core.spatial_types import GeographyType


def _new_order_id() -> str:
    return str(uuid.uuid4())


class Order(Base):
    __tablename__ = 'orders'

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_order_id)
    user_id: Mapped[str] = mapped_column(String(64))
    merchant_id: Mapped[str] = mapped_column(String(64), ForeignKey('merchants.id'))
    create_time: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)
    amount: Mapped[float] = mapped_column(DECIMAL(10, 2))
    status: Mapped[str] = mapped_column(String(20), default='pending')
    # Assigned from the matching fence at creation; never changed afterwards
    rule_id: Mapped[Optional[int]] = mapped_column(ForeignKey('delivery_rules.id'), nullable=True)

    recipient_name: Mapped[str] = mapped_column(String(255))
    recipient_address: Mapped[str] = mapped_column(Text)
    recipient_coords: Mapped[Optional[str]] = mapped_column(GeographyType("POINT"), deferred=True)

    # Courier tracking
    current_position: Mapped[Optional[str]] = mapped_column(GeographyType("POINT"), nullable=True, deferred=True)
    route_path: Mapped[Optional[List[List[float]]]] = mapped_column(JSON(), nullable=True)
    last_update_time: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    is_abnormal: Mapped[bool] = mapped_column(Boolean, default=False)
    abnormal_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index('ix_orders_merchant_id', 'merchant_id'),
        Index('ix_orders_merchant_status', 'merchant_id', 'status'),
        Index('ix_orders_merchant_created', 'merchant_id', 'create_time'),
        Index('ix_orders_merchant_user', 'merchant_id', 'user_id'),
    )
