from decimal import Decimal
from typing import List, Optional
from uuid import uuid4

from pydantic import EmailStr, Field, model_validator

from storefront.schemas.common import CamelModel

POSTAL_CODE_PATTERN = r"^[0-9]{6}$"


class AddressIn(CamelModel):
    line1: str = Field(..., min_length=1)
    line2: Optional[str] = None
    city: str = Field(..., min_length=1)
    state: Optional[str] = None
    postal_code: str = Field(..., pattern=POSTAL_CODE_PATTERN)
    country: str = Field(..., min_length=1)
    label: Optional[str] = None


class CustomerIn(CamelModel):
    first_name: str
    last_name: str
    email: EmailStr
    phone: Optional[str] = None


class OrderItemIn(CamelModel):
    product_id: str
    sku: str
    quantity: int = Field(..., gt=0)
    unit_price: Decimal
    discount: Optional[Decimal] = None
    tax: Optional[Decimal] = None

    @property
    def line_total(self) -> Decimal:
        return (
            self.unit_price * self.quantity
            - (self.discount or 0)
            + (self.tax or 0)
        )


class OrderCreateIn(CamelModel):
    order_number: Optional[str] = None
    transaction_id: str = Field(default_factory=lambda: str(uuid4()))
    channel: Optional[str] = None
    currency: Optional[str] = None
    customer: CustomerIn
    billing_address: Optional[AddressIn] = None
    shipping_address: AddressIn
    items: List[OrderItemIn]
    total_amount: Optional[Decimal] = None
    status: Optional[str] = None
    note: Optional[str] = None

    @model_validator(mode="after")
    def _default_total(self):
        # checkout clients may omit the total; derive it from the lines
        if self.total_amount is None:
            self.total_amount = sum(
                (item.line_total for item in self.items), Decimal("0")
            )
        return self


class StatusUpdateIn(CamelModel):
    status: str
    actor: Optional[str] = None
