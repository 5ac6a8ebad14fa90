"""One service per Wave API resource.

Every operation builds its path by interpolating the identifiers as given; an
identifier that is not valid inside a URL path (a bare ``%`` for instance)
raises ``InvalidURLError`` before anything is sent.

Wave API docs: http://docs.waveapps.com/
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional, Tuple, Union

from pydantic import TypeAdapter

from waveapps.models import (
    Account,
    Business,
    Country,
    Currency,
    Customer,
    Product,
    Province,
    ResultsPage,
    User,
)
from waveapps.options import (
    BusinessListOptions,
    CustomerListOptions,
    ProductGetOptions,
    ProductListOptions,
    add_options,
)

if TYPE_CHECKING:
    from waveapps.client import Client, Response

ID = Union[str, int]

_account = TypeAdapter(Account)
_accounts = TypeAdapter(List[Account])
_business = TypeAdapter(Business)
_businesses = TypeAdapter(List[Business])
_country = TypeAdapter(Country)
_countries = TypeAdapter(List[Country])
_provinces = TypeAdapter(List[Province])
_currency = TypeAdapter(Currency)
_currencies = TypeAdapter(List[Currency])
_customer = TypeAdapter(Customer)
_customers = TypeAdapter(List[Customer])
_product = TypeAdapter(Product)
_product_page = TypeAdapter(ResultsPage[Product])
_user = TypeAdapter(User)


class Service:
    def __init__(self, client: "Client") -> None:
        self.client = client

    def _call(
        self,
        method: str,
        path: str,
        target: Optional[TypeAdapter] = None,
        *,
        body=None,
        partial: bool = False,
        paginated: bool = False,
    ):
        request = self.client.new_request(method, path, body, partial=partial)
        return self.client.do(request, target, paginated=paginated)


class AccountsService(Service):
    """Ledger accounts of a business.

    Wave API docs: http://docs.waveapps.com/endpoints/accounts.html
    """

    def list(self, business_id: ID) -> Tuple[List[Account], "Response"]:
        return self._call("GET", f"businesses/{business_id}/accounts", _accounts)

    def get(self, business_id: ID, account_id: ID) -> Tuple[Account, "Response"]:
        return self._call("GET", f"businesses/{business_id}/accounts/{account_id}", _account)

    def create(self, business_id: ID, account: Account) -> Tuple[Account, "Response"]:
        """Create an account from a standard account template."""
        return self._call("POST", f"businesses/{business_id}/accounts", _account, body=account)

    def replace(self, business_id: ID, account_id: ID, account: Account) -> Tuple[Account, "Response"]:
        return self._call(
            "PUT", f"businesses/{business_id}/accounts/{account_id}", _account, body=account
        )

    def update(self, business_id: ID, account_id: ID, account: Account) -> Tuple[Account, "Response"]:
        return self._call(
            "PATCH",
            f"businesses/{business_id}/accounts/{account_id}",
            _account,
            body=account,
            partial=True,
        )

    def delete(self, business_id: ID, account_id: ID) -> "Response":
        """Delete an account. The server refuses unless ``can_delete`` is true."""
        _, response = self._call("DELETE", f"businesses/{business_id}/accounts/{account_id}")
        return response


class BusinessesService(Service):
    """Businesses owned by the authenticated user.

    Wave API docs: http://docs.waveapps.com/endpoints/businesses.html
    """

    def list(self, options: Optional[BusinessListOptions] = None) -> Tuple[List[Business], "Response"]:
        return self._call("GET", add_options("businesses", options), _businesses)

    def get(self, business_id: ID) -> Tuple[Business, "Response"]:
        return self._call("GET", f"businesses/{business_id}", _business)

    def create(self, business: Business) -> Tuple[Business, "Response"]:
        return self._call("POST", "businesses", _business, body=business)

    def replace(self, business_id: ID, business: Business) -> Tuple[Business, "Response"]:
        return self._call("PUT", f"businesses/{business_id}", _business, body=business)

    def update(self, business_id: ID, business: Business) -> Tuple[Business, "Response"]:
        return self._call("PATCH", f"businesses/{business_id}", _business, body=business, partial=True)


class CountriesService(Service):
    """Wave API docs: http://docs.waveapps.com/endpoints/geography.html"""

    def list(self) -> Tuple[List[Country], "Response"]:
        return self._call("GET", "countries", _countries)

    def get(self, code: str) -> Tuple[Country, "Response"]:
        return self._call("GET", f"countries/{code}", _country)

    def provinces(self, code: str) -> Tuple[List[Province], "Response"]:
        return self._call("GET", f"countries/{code}/provinces", _provinces)


class CurrenciesService(Service):
    """Wave API docs: http://docs.waveapps.com/endpoints/currencies.html"""

    def list(self) -> Tuple[List[Currency], "Response"]:
        return self._call("GET", "currencies", _currencies)

    def get(self, code: str) -> Tuple[Currency, "Response"]:
        return self._call("GET", f"currencies/{code}", _currency)


class CustomersService(Service):
    """Wave API docs: http://docs.waveapps.com/endpoints/customers.html"""

    def list(
        self, business_id: ID, options: Optional[CustomerListOptions] = None
    ) -> Tuple[List[Customer], "Response"]:
        path = add_options(f"businesses/{business_id}/customers", options)
        return self._call("GET", path, _customers)

    def get(self, business_id: ID, customer_id: ID) -> Tuple[Customer, "Response"]:
        return self._call("GET", f"businesses/{business_id}/customers/{customer_id}", _customer)

    def create(self, business_id: ID, customer: Customer) -> Tuple[Customer, "Response"]:
        return self._call("POST", f"businesses/{business_id}/customers", _customer, body=customer)

    def replace(self, business_id: ID, customer_id: ID, customer: Customer) -> Tuple[Customer, "Response"]:
        return self._call(
            "PUT", f"businesses/{business_id}/customers/{customer_id}", _customer, body=customer
        )

    def update(self, business_id: ID, customer_id: ID, customer: Customer) -> Tuple[Customer, "Response"]:
        return self._call(
            "PATCH",
            f"businesses/{business_id}/customers/{customer_id}",
            _customer,
            body=customer,
            partial=True,
        )

    def delete(self, business_id: ID, customer_id: ID) -> "Response":
        _, response = self._call("DELETE", f"businesses/{business_id}/customers/{customer_id}")
        return response


class ProductsService(Service):
    """Products sold or bought by a business. Lists are paginated.

    Wave API docs: http://docs.waveapps.com/endpoints/products.html
    """

    def list(
        self, business_id: ID, options: Optional[ProductListOptions] = None
    ) -> Tuple[List[Product], "Response"]:
        path = add_options(f"businesses/{business_id}/products", options)
        page, response = self._call("GET", path, _product_page, paginated=True)
        return page.results, response

    def get(
        self, business_id: ID, product_id: ID, options: Optional[ProductGetOptions] = None
    ) -> Tuple[Product, "Response"]:
        path = add_options(f"businesses/{business_id}/products/{product_id}", options)
        return self._call("GET", path, _product)

    def create(self, business_id: ID, product: Product) -> Tuple[Product, "Response"]:
        return self._call("POST", f"businesses/{business_id}/products", _product, body=product)

    def replace(self, business_id: ID, product_id: ID, product: Product) -> Tuple[Product, "Response"]:
        return self._call(
            "PUT", f"businesses/{business_id}/products/{product_id}", _product, body=product
        )

    def update(self, business_id: ID, product_id: ID, product: Product) -> Tuple[Product, "Response"]:
        return self._call(
            "PATCH",
            f"businesses/{business_id}/products/{product_id}",
            _product,
            body=product,
            partial=True,
        )

    def delete(self, business_id: ID, product_id: ID) -> "Response":
        _, response = self._call("DELETE", f"businesses/{business_id}/products/{product_id}")
        return response


class UsersService(Service):
    """The authenticated user.

    Wave API docs: http://docs.waveapps.com/endpoints/users.html
    """

    def get(self) -> Tuple[User, "Response"]:
        return self._call("GET", "user", _user)

    def replace(self, user: User) -> Tuple[User, "Response"]:
        return self._call("PUT", "user", _user, body=user)

    def update(self, user: User) -> Tuple[User, "Response"]:
        return self._call("PATCH", "user", _user, body=user, partial=True)
