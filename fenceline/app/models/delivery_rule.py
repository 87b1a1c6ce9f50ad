from sqlalchemy import String, Integer
from sqlalchemy.orm import Mapped, mapped_column
from fenceline.app.core.base import Base


class DeliveryRule(Base):
    """Time-of-delivery rule a fence points at. ``logic`` is opaque to this service."""
    __tablename__ = 'delivery_rules'

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255))
    logic: Mapped[int] = mapped_column(Integer, default=0)
