"""Pydantic models for API data validation."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import UUID

import structlog
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidationInfo,
    ValidatorFunctionWrapHandler,
    field_validator,
    model_validator,
)

log = structlog.get_logger()


class ExperimentStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"


class BillingInterval(str, Enum):
    MONTH = "month"
    YEAR = "year"


# -------------------------
# Tracking
# -------------------------
class TrackingEventIn(BaseModel):
    """
    A telemetry event sent by a browser or a server-side emitter.

    Only `event` is strict. A malformed optional field is logged and replaced
    by its default.
    """

    model_config = ConfigDict(populate_by_name=True)

    event: str = Field(min_length=1)
    properties: Dict[str, Any] = Field(default_factory=dict)
    user_id: Optional[str] = Field(default=None, alias="userId")
    timestamp: Optional[datetime] = None

    @field_validator("properties", mode="wrap")
    @classmethod
    def _lenient_properties(cls, value: Any, handler: ValidatorFunctionWrapHandler):
        try:
            return handler(value)
        except ValidationError:
            log.info("tracking_event.field_dropped", field="properties")
            return {}

    @field_validator("user_id", "timestamp", mode="wrap")
    @classmethod
    def _lenient_optional(
        cls, value: Any, handler: ValidatorFunctionWrapHandler, info: ValidationInfo
    ):
        try:
            return handler(value)
        except ValidationError:
            log.info("tracking_event.field_dropped", field=info.field_name)
            return None


# -------------------------
# A/B testing
# -------------------------
class TrackAbEventRequest(BaseModel):
    """An outcome to record against an existing assignment."""

    test_id: UUID
    variant_id: UUID
    event_type: str = Field(min_length=1)  # e.g. 'view', 'click', 'purchase'
    event_value: Optional[float] = None
    metadata: Optional[Dict[str, Any]] = None
    anon_id: Optional[str] = Field(default=None, min_length=1)


class AssignVariantRequest(BaseModel):
    test_id: UUID
    anon_id: Optional[str] = Field(default=None, min_length=1)


class VariantCreate(BaseModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    is_control: bool = False
    traffic_weight: float = Field(default=50.0, ge=0, le=100)
    config: Dict[str, Any] = Field(default_factory=dict)


class ABTestCreate(BaseModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    hypothesis: Optional[str] = None
    test_type: str = Field(min_length=1)  # 'pricing', 'landing_page', 'checkout', ...
    status: ExperimentStatus = ExperimentStatus.DRAFT
    traffic_allocation: float = Field(default=100.0, ge=0, le=100)
    variants: List[VariantCreate] = Field(min_length=2)

    @model_validator(mode="after")
    def _check_variants(self):
        if sum(1 for v in self.variants if v.is_control) > 1:
            raise ValueError("A test can have at most one control variant.")
        if sum(v.traffic_weight for v in self.variants) <= 0:
            raise ValueError("Variant traffic weights must not all be zero.")
        return self


class ABTestStatusUpdate(BaseModel):
    """Only the status of an existing test can change."""

    model_config = ConfigDict(extra="forbid")

    status: ExperimentStatus


class VariantMetrics(BaseModel):
    variant_id: str
    name: str
    is_control: bool
    impressions: int
    conversions: int
    conversion_rate: float
    total_revenue: float
    average_order_value: float
    p_value: Optional[float] = None
    confidence_level: Optional[float] = None
    is_significant: Optional[bool] = None


class ABTestMetrics(BaseModel):
    test_id: str
    variants: List[VariantMetrics]


# -------------------------
# Conversions and billing
# -------------------------
class PurchaseConversion(BaseModel):
    """A purchase to relay to the ad platform's conversions API."""

    event_id: str = Field(min_length=1)
    value: float = Field(ge=0)
    currency: str = Field(default="USD", min_length=3, max_length=3)
    email: Optional[str] = None
    content_ids: List[str] = Field(default_factory=list)


class SubscriptionUpsert(BaseModel):
    user_id: Optional[str] = None
    status: str = Field(min_length=1)
    plan_name: Optional[str] = None
    price_cents: int = Field(ge=0)
    interval: BillingInterval
    current_period_end: Optional[datetime] = None
