"""Resource records mirroring the Wave API JSON schema."""

from __future__ import annotations

from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel

from waveapps.fields import WaveModel
from waveapps.timestamps import Date, DateTime

T = TypeVar("T")


class Currency(WaveModel):
    """A currency in ISO 4217 format."""

    url: Optional[str] = None
    code: Optional[str] = None
    symbol: Optional[str] = None
    name: Optional[str] = None

    def __str__(self) -> str:
        return f"{self.code} ({self.name})"


class Province(WaveModel):
    name: Optional[str] = None
    slug: Optional[str] = None

    def __str__(self) -> str:
        return self.name or ""


class Country(WaveModel):
    """A country in ISO 3166-1 alpha-2 format."""

    name: Optional[str] = None
    country_code: Optional[str] = None
    currency_code: Optional[str] = None
    provinces: Optional[List[Province]] = None
    url: Optional[str] = None

    def __str__(self) -> str:
        return f"{self.name} ({self.country_code})"


class Address(WaveModel):
    address1: Optional[str] = None
    address2: Optional[str] = None
    city: Optional[str] = None
    province: Optional[Province] = None
    country: Optional[Country] = None
    postal_code: Optional[str] = None


class ShippingDetails(WaveModel):
    ship_to_contact: Optional[str] = None
    delivery_instructions: Optional[str] = None
    phone_number: Optional[str] = None
    address: Optional[Address] = None


class Account(WaveModel):
    """A ledger account belonging to a business."""

    id: Optional[int] = None
    url: Optional[str] = None
    name: Optional[str] = None
    active: Optional[bool] = None
    account_type: Optional[str] = None
    account_class: Optional[str] = None
    standard_account_number: Optional[int] = None
    account_number: Optional[int] = None
    is_payment: Optional[bool] = None
    can_delete: Optional[bool] = None
    is_currency_editable: Optional[bool] = None
    is_name_editable: Optional[bool] = None
    is_payment_editable: Optional[bool] = None
    date_created: Optional[DateTime] = None
    date_modified: Optional[DateTime] = None
    currency: Optional[Currency] = None

    def __str__(self) -> str:
        return f"{self.name} (type={self.account_type}, payment={self.is_payment})"


class Business(WaveModel):
    id: Optional[str] = None
    url: Optional[str] = None
    company_name: Optional[str] = None
    primary_currency_code: Optional[str] = None
    business_type: Optional[str] = None
    business_subtype: Optional[str] = None
    organizational_type: Optional[str] = None
    address1: Optional[str] = None
    address2: Optional[str] = None
    city: Optional[str] = None
    province: Optional[Province] = None
    country: Optional[Country] = None
    postal_code: Optional[str] = None
    phone_number: Optional[str] = None
    mobile_phone_number: Optional[str] = None
    toll_free_phone_number: Optional[str] = None
    fax_number: Optional[str] = None
    website: Optional[str] = None
    is_personal_business: Optional[bool] = None
    date_created: Optional[DateTime] = None
    date_modified: Optional[DateTime] = None

    def __str__(self) -> str:
        return f"{self.company_name} (id={self.id})"


def _full_name(first: Optional[str], last: Optional[str]) -> str:
    if first is None and last is None:
        return ""
    if first is None:
        return last or ""
    if last is None:
        return first
    return f"{first} {last}"


class Customer(WaveModel):
    """An entity associated with an invoice or transaction."""

    id: Optional[int] = None
    url: Optional[str] = None
    account_number: Optional[str] = None
    customer_name: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    fax_number: Optional[str] = None
    mobile_number: Optional[str] = None
    phone_number: Optional[str] = None
    toll_free_number: Optional[str] = None
    website: Optional[str] = None
    currency: Optional[Currency] = None
    shipping_details: Optional[ShippingDetails] = None
    address: Optional[Address] = None
    date_created: Optional[DateTime] = None
    date_modified: Optional[DateTime] = None

    def full_name(self) -> str:
        """'First Last', or whichever of the two is set."""
        return _full_name(self.first_name, self.last_name)

    def __str__(self) -> str:
        name = self.full_name()
        if self.email is None:
            return name
        if name:
            return f"{name} ({self.email})"
        return self.email


class Product(WaveModel):
    id: Optional[int] = None
    url: Optional[str] = None
    name: Optional[str] = None
    price: Optional[float] = None
    description: Optional[str] = None
    is_sold: Optional[bool] = None
    is_bought: Optional[bool] = None
    income_account: Optional[Account] = None
    expense_account: Optional[Account] = None
    date_created: Optional[DateTime] = None
    date_modified: Optional[DateTime] = None

    def __str__(self) -> str:
        return self.name or ""


class UserEmail(WaveModel):
    email: Optional[str] = None
    is_verified: Optional[bool] = None
    is_default: Optional[bool] = None


class UserProfile(WaveModel):
    date_of_birth: Optional[Date] = None


class BusinessRef(WaveModel):
    id: Optional[str] = None
    url: Optional[str] = None


class User(WaveModel):
    id: Optional[str] = None
    url: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    emails: Optional[List[UserEmail]] = None
    profile: Optional[UserProfile] = None
    businesses: Optional[List[BusinessRef]] = None
    date_created: Optional[DateTime] = None
    date_modified: Optional[DateTime] = None
    last_login: Optional[DateTime] = None

    def full_name(self) -> str:
        return _full_name(self.first_name, self.last_name)

    def __str__(self) -> str:
        return self.full_name()


class ResultsPage(BaseModel, Generic[T]):
    """List envelope: ``{"next": ..., "previous": ..., "results": [...]}``."""

    results: List[T]
