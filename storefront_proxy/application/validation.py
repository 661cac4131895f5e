"""Input checks run before any upstream call."""

from storefront_proxy.domain.cart import normalize_id
from storefront_proxy.domain.errors import ValidationError


def require_fields(**fields: object) -> None:
    missing = [name for name, value in fields.items() if value is None or value == ""]
    if missing:
        raise ValidationError(missing=missing)


def require_id(name: str, value: object) -> str:
    """Return ``value`` stripped and normalized, or raise ``ValidationError``."""
    require_fields(**{name: value})
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{name} must be a non-empty string")
    return normalize_id(value.strip())


def require_quantity(value: object) -> int:
    require_fields(quantity=value)
    # bool is an int subclass; True must not mean "1"
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError("quantity must be an integer")
    if value < 1:
        raise ValidationError("quantity must be at least 1")
    return value
