from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from fenceline.app.core.constants import MIN_POLYGON_VERTICES, ShapeType


class CamelModel(BaseModel):
    """camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Fences ---
class FenceCreate(CamelModel):
    fence_name: str = Field(min_length=1, max_length=255)
    fence_desc: Optional[str] = None
    rule_id: Optional[int] = None
    shape_type: ShapeType
    coordinates: List[List[float]]
    radius: float = 0

    @model_validator(mode="after")
    def check_shape(self):
        if self.shape_type == ShapeType.CIRCLE:
            if not self.coordinates:
                raise ValueError("circle requires a center point")
            if self.radius <= 0:
                raise ValueError("circle radius must be greater than 0")
        elif len(self.coordinates) < MIN_POLYGON_VERTICES:
            raise ValueError(f"polygon requires at least {MIN_POLYGON_VERTICES} points")
        return self


class FenceResponse(CamelModel):
    id: int
    merchant_id: str
    fence_name: str
    fence_desc: Optional[str] = None
    rule_id: Optional[int] = None
    shape_type: str
    coordinates: List[List[float]]
    radius: float


# --- Delivery check ---
class DeliveryCheckResponse(CamelModel):
    is_deliverable: bool
    rule_id: Optional[int] = None
    message: str


# --- Orders ---
class OrderCreate(CamelModel):
    user_id: str = Field(min_length=1, max_length=64)
    amount: Decimal = Field(ge=0)
    recipient_name: str = Field(min_length=1, max_length=255)
    recipient_address: str = Field(min_length=1, max_length=1000)
    recipient_coords: List[float]


class OrderResponse(CamelModel):
    id: str
    user_id: str
    merchant_id: str
    create_time: Optional[datetime] = None
    amount: float
    status: str
    recipient_name: Optional[str] = None
    recipient_address: Optional[str] = None
    recipient_coords: List[float]
    current_position: Optional[List[float]] = None
    route_path: Optional[List[List[float]]] = None
    last_update_time: Optional[datetime] = None
    is_abnormal: bool = False
    abnormal_reason: Optional[str] = None
    rule_id: Optional[int] = None


class OrderListResponse(CamelModel):
    orders: List[OrderResponse]
    total_count: int
    current_page: int
    page_size: int


class OrderStatusUpdate(CamelModel):
    status: str


class PositionUpdate(CamelModel):
    coordinates: List[float]


class AbnormalFlag(CamelModel):
    reason: Optional[str] = Field(default=None, max_length=1000)


# --- Delivery rules ---
class DeliveryRuleCreate(CamelModel):
    name: str = Field(min_length=1, max_length=255)
    logic: int


class DeliveryRuleResponse(DeliveryRuleCreate):
    id: int


# --- Merchant ---
class MerchantConfigResponse(CamelModel):
    merchant_id: str
    location: List[float]
