"""Request bodies accepted by the HTTP API."""

from typing import List, Optional, Union

from pydantic import BaseModel, Field


class AdminLogin(BaseModel):
    username: str
    password: str


class OrderLine(BaseModel):
    id: Optional[Union[int, str]] = None
    name: str = Field(..., min_length=1)
    price: float = Field(..., ge=0)
    quantity: int = Field(..., ge=1)


class PlaceOrderRequest(BaseModel):
    cart: Optional[List[OrderLine]] = None
    phone: Optional[str] = None
    payment_id: Optional[str] = None
    priority_level: Optional[str] = None


class CheckoutRequest(BaseModel):
    items: List[OrderLine] = []
    priority_fee: int = 0
    phone: str = ""
    payment_token: str = Field(..., min_length=1)


class InventoryCreate(BaseModel):
    name: Optional[str] = None
    price: Optional[Union[float, str]] = None
    quantity: Optional[Union[int, str]] = None


class InventoryUpdate(BaseModel):
    name: Optional[str] = None
    price: Optional[Union[float, str]] = None
    quantity: Optional[Union[int, str]] = None
