from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def normalize_id(value: str) -> str:
    """Strip the query-string decoration Shopify sometimes appends to a GID.

    ``"gid://shopify/Cart/1?key=abc"`` -> ``"gid://shopify/Cart/1"``
    """
    return value.split("?", 1)[0]


class CamelModel(BaseModel):
    """Base for models serialized back to the browser in camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Money(CamelModel):
    amount: str
    currency_code: str


class CartCost(CamelModel):
    subtotal_amount: Money | None = None
    total_amount: Money | None = None


class Merchandise(CamelModel):
    """The purchasable product variant a line points at."""

    id: str
    title: str | None = None


class CartLine(CamelModel):
    id: str
    quantity: int
    merchandise: Merchandise


class Cart(CamelModel):
    """Domain model of a Shopify storefront cart (never stored locally)."""

    id: str  # normalized GID, e.g. "gid://shopify/Cart/c1-abc"
    checkout_url: str | None = None
    cost: CartCost | None = None
    lines: list[CartLine] = Field(default_factory=list)

    @property
    def total_quantity(self) -> int:
        return sum(line.quantity for line in self.lines)

    def find_line(self, line_id: str) -> CartLine | None:
        line_id = normalize_id(line_id)
        return next((line for line in self.lines if line.id == line_id), None)
