from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, EmailStr, Field


class CreatePaymentIntentRequest(BaseModel):
    amount: Decimal = Field(..., ge=1, description="EUR, at least 1")
    email: EmailStr
    skuCode: Optional[str] = None


class PaymentIntentResponse(BaseModel):
    clientSecret: str
    paymentIntentId: str
    transactionId: Optional[str] = None


class WebhookAck(BaseModel):
    received: bool = True
