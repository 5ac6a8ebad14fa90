"""Client library for the Wave accounting API (https://developer.waveapps.com).

The library does not authenticate: hand ``Client`` a ``requests.Session``
that already does, for example::

    from waveapps import Client, Product, ProductListOptions
    from waveapps.transport import authorized_session

    client = Client(authorized_session("... access token ..."))
    businesses, _ = client.businesses.list()
    products, response = client.products.list(
        businesses[0].id, ProductListOptions(embed_accounts=True, page=2)
    )
    print(response.current_page, response.total_count)

Record fields left unset are omitted from PATCH bodies, so partial updates
only touch what was assigned::

    client.products.update(business_id, product_id, Product(price=42.34))
"""

__version__ = "0.1.0"

from waveapps.client import DEFAULT_BASE_URL, USER_AGENT, Client, Response, check_response  # noqa: E402
from waveapps.errors import (  # noqa: E402
    DecodeError,
    ErrorResponse,
    InvalidURLError,
    ParseError,
    RangeError,
    SerializationError,
    WaveError,
)
from waveapps.fields import WaveModel, boolean, float64, integer, string  # noqa: E402
from waveapps.models import (  # noqa: E402
    Account,
    Address,
    Business,
    BusinessRef,
    Country,
    Currency,
    Customer,
    Product,
    Province,
    ShippingDetails,
    User,
    UserEmail,
    UserProfile,
)
from waveapps.options import (  # noqa: E402
    BusinessListOptions,
    CustomerListOptions,
    PageOptions,
    ProductGetOptions,
    ProductListOptions,
)

__all__ = [
    "DEFAULT_BASE_URL",
    "USER_AGENT",
    "Account",
    "Address",
    "Business",
    "BusinessListOptions",
    "BusinessRef",
    "Client",
    "Country",
    "Currency",
    "Customer",
    "CustomerListOptions",
    "DecodeError",
    "ErrorResponse",
    "InvalidURLError",
    "PageOptions",
    "ParseError",
    "Product",
    "ProductGetOptions",
    "ProductListOptions",
    "Province",
    "RangeError",
    "Response",
    "SerializationError",
    "ShippingDetails",
    "User",
    "UserEmail",
    "UserProfile",
    "WaveError",
    "WaveModel",
    "boolean",
    "check_response",
    "float64",
    "integer",
    "string",
]
