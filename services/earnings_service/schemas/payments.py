"""Checkout, verification and client-claim schemas.

Amounts sent to the checkout widget (``amount``) are in units, matching what
Paystack expects. Everything user-facing elsewhere is in KES.
"""

import uuid
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class CheckoutResponse(BaseModel):
    reference: str
    amount: int
    key: str


class CourseCheckoutResponse(CheckoutResponse):
    course_title: str = Field(..., alias="courseTitle")

    model_config = ConfigDict(populate_by_name=True)


class MarkPaidRequest(BaseModel):
    reference: Optional[str] = None


class MarkPaidResponse(BaseModel):
    success: bool
    user_id: str = Field(..., alias="userId")
    message: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)


class VerifyResponse(BaseModel):
    verified: bool
    data: Optional[dict[str, Any]] = None
    message: Optional[str] = None


class PaymentClaimRequest(BaseModel):
    """Body for ``/courses/{id}/order`` and ``/courses/{id}/unlock``."""

    reference: Optional[str] = None
    paystack_ref: Optional[str] = Field(default=None, alias="paystackRef")
    amount: Optional[int] = None

    model_config = ConfigDict(populate_by_name=True)

    @property
    def claimed_reference(self) -> Optional[str]:
        return self.paystack_ref or self.reference


class VerifyCoursePaymentRequest(BaseModel):
    reference: str = Field(..., min_length=1)


class CoursePaymentResponse(BaseModel):
    success: bool
    message: str
    course_id: Optional[uuid.UUID] = Field(default=None, alias="courseId")

    model_config = ConfigDict(populate_by_name=True)


class UnlockResponse(BaseModel):
    success: bool
    message: str
    purchase_id: Optional[uuid.UUID] = Field(default=None, alias="purchaseId")

    model_config = ConfigDict(populate_by_name=True)


class OrderResponse(BaseModel):
    success: bool
    message: str
    order_id: Optional[uuid.UUID] = Field(default=None, alias="orderId")
    status: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)
