"""Product snapshot normalizer.

Converts a best-effort marketplace listing payload into a ProductSnapshot.
Marketplace APIs return the same field under several names and often send
numbers as strings ("12.50", "1,234", "96.5%", "5000+ sold"), so every field
is looked up through a list of aliases and coerced here, before any stage
sees it.
"""

import logging
import re
from collections.abc import Iterable, Mapping
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from pydantic import ValidationError

from resale_scout.analysis.errors import NormalizationError
from resale_scout.analysis.models import Currency, ProductSnapshot
from resale_scout.analysis.money import to_money

logger = logging.getLogger(__name__)


# Field aliases, in priority order
PRICE_FIELDS = ("price", "source_price", "app_sale_price", "target_sale_price", "sale_price", "original_price")
RATING_FIELDS = ("rating", "evaluate_rate")
FEEDBACK_FIELDS = ("feedback_rate", "positive_feedback", "positive_feedback_rate")
ORDER_FIELDS = ("order_count", "orders", "lastest_volume", "latest_volume", "sales")
SHIPPING_FIELDS = ("shipping_cost", "shipping_fee", "freight")
CURRENCY_FIELDS = ("currency", "target_currency", "currency_code")
ESTABLISHED_FIELDS = ("store_established", "store_open_date", "store_opened_at")
TITLE_FIELDS = ("title", "product_title", "name")
ID_FIELDS = ("id", "product_id", "item_id")
CATEGORY_FIELDS = ("categories", "category", "category_name", "first_level_category_name")
IMAGE_FINGERPRINT_FIELDS = ("image_fingerprint", "image_hash")

_NUMBER_RE = re.compile(r"-?[\d.,]+")


def _first_present(raw: Mapping[str, Any], aliases: Iterable[str]) -> tuple[Optional[str], Any]:
    """Return (field, value) for the first alias holding a non-empty value."""
    for key in aliases:
        value = raw.get(key)
        if value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        return key, value
    return None, None


def _require_finite(number: Decimal, value: Any, field: str) -> Decimal:
    if not number.is_finite():
        raise NormalizationError(f"{field}: {value!r} is not a finite number", field=field)
    return number


def _parse_decimal(value: Any, field: str) -> Decimal:
    """Coerce a number or numeric string to Decimal.

    Handles thousands separators, currency symbols, percent signs and
    trailing text such as "5000+ sold".
    """
    if isinstance(value, bool):
        raise NormalizationError(f"{field}: boolean is not a number", field=field)
    if isinstance(value, Decimal):
        return _require_finite(value, value, field)
    if isinstance(value, (int, float)):
        return _require_finite(Decimal(str(value)), value, field)

    match = _NUMBER_RE.search(str(value))
    if not match:
        raise NormalizationError(f"{field}: cannot parse {value!r} as a number", field=field)
    text = match.group(0)

    if "," in text and "." in text:
        # The separator that comes last is the decimal point: 1,234.56 or 1.234,56
        if text.rfind(",") > text.rfind("."):
            text = text.replace(".", "").replace(",", ".")
        else:
            text = text.replace(",", "")
    elif "," in text:
        # "12,50" is a decimal comma, "1,234" is a thousands separator
        head, _, tail = text.rpartition(",")
        text = f"{head.replace(',', '')}.{tail}" if len(tail) != 3 else text.replace(",", "")

    try:
        result = Decimal(text)
    except InvalidOperation as e:
        raise NormalizationError(f"{field}: cannot parse {value!r} as a number", field=field) from e
    return _require_finite(result, value, field)


def _is_percentage(value: Any) -> bool:
    return isinstance(value, str) and "%" in value


def _parse_rating(key: str, value: Any) -> float:
    rating = _parse_decimal(value, "rating")
    # evaluate_rate is a positive-review percentage on a 0-100 scale
    if key == "evaluate_rate" or _is_percentage(value) or rating > 5:
        rating = rating / 20
    return float(rating)


def _parse_feedback(value: Any) -> float:
    feedback = _parse_decimal(value, "feedback_rate")
    if _is_percentage(value) or feedback > 1:
        feedback = feedback / 100
    return float(feedback)


def _parse_currency(value: Any, reference_currency: Currency) -> Currency:
    if value is None:
        return reference_currency
    try:
        return Currency(str(value).strip().upper())
    except ValueError as e:
        raise NormalizationError(f"Unsupported currency: {value!r}", field="currency") from e


def _parse_date(value: Any) -> Optional[date]:
    """Parse an established date; returns None when it cannot be read."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        # Epoch timestamps, seconds or milliseconds
        seconds = value / 1000 if value > 1e11 else value
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc).date()
        except (OverflowError, OSError, ValueError):
            return None

    text = str(value).strip()
    for fmt in ("%Y-%m-%d", "%Y-%m", "%Y/%m/%d", "%d.%m.%Y", "%b %d, %Y"):
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        return None


def months_between(start: date, end: date) -> int:
    """Whole calendar months from start to end (0 if start is in the future)."""
    months = (end.year - start.year) * 12 + (end.month - start.month)
    if end.day < start.day:
        months -= 1
    return max(months, 0)


def _parse_categories(value: Any) -> frozenset[str]:
    if value is None:
        return frozenset()
    if isinstance(value, str):
        items: Iterable[Any] = value.split(",")
    elif isinstance(value, Iterable):
        items = value
    else:
        items = [value]
    return frozenset(str(item).strip().lower() for item in items if str(item).strip())


def normalize(
    raw_listing: Mapping[str, Any],
    reference_currency: Currency = Currency.EUR,
    as_of: Optional[date] = None,
) -> ProductSnapshot:
    """Normalize a raw marketplace listing into a ProductSnapshot.

    Args:
        raw_listing: Listing payload from the marketplace source
        reference_currency: Currency to assume when the listing states none
        as_of: Date used to compute the store age (defaults to today, UTC)

    Returns:
        Immutable ProductSnapshot

    Raises:
        NormalizationError: If price or rating is absent or unusable
    """
    if not isinstance(raw_listing, Mapping):
        raise NormalizationError(f"Listing must be a mapping, got {type(raw_listing).__name__}")

    # --- Mandatory fields ---

    price_key, price_value = _first_present(raw_listing, PRICE_FIELDS)
    if price_key is None:
        raise NormalizationError("Listing has no price field", field="price")
    source_price = to_money(_parse_decimal(price_value, price_key))
    if source_price <= 0:
        raise NormalizationError(f"Listing price must be positive, got {source_price}", field="price")

    rating_key, rating_value = _first_present(raw_listing, RATING_FIELDS)
    if rating_key is None:
        raise NormalizationError("Listing has no rating field", field="rating")
    rating = _parse_rating(rating_key, rating_value)

    # --- Optional fields ---

    _, feedback_value = _first_present(raw_listing, FEEDBACK_FIELDS)
    feedback_rate = _parse_feedback(feedback_value) if feedback_value is not None else None

    _, orders_value = _first_present(raw_listing, ORDER_FIELDS)
    order_count = int(_parse_decimal(orders_value, "order_count")) if orders_value is not None else 0

    _, shipping_value = _first_present(raw_listing, SHIPPING_FIELDS)
    shipping_cost = (
        to_money(_parse_decimal(shipping_value, "shipping_cost"))
        if shipping_value is not None
        else Decimal("0.00")
    )

    _, currency_value = _first_present(raw_listing, CURRENCY_FIELDS)
    currency = _parse_currency(currency_value, reference_currency)

    _, established_value = _first_present(raw_listing, ESTABLISHED_FIELDS)
    established = _parse_date(established_value) if established_value is not None else None
    if established is None:
        if established_value is not None:
            logger.debug(f"Unreadable store established date: {established_value!r}")
        store_age_months = 0
        store_age_known = False
    else:
        today = as_of or datetime.now(timezone.utc).date()
        store_age_months = months_between(established, today)
        store_age_known = True

    _, title = _first_present(raw_listing, TITLE_FIELDS)
    _, product_id = _first_present(raw_listing, ID_FIELDS)
    _, categories = _first_present(raw_listing, CATEGORY_FIELDS)
    _, fingerprint = _first_present(raw_listing, IMAGE_FINGERPRINT_FIELDS)

    try:
        snapshot = ProductSnapshot(
            product_id=str(product_id) if product_id is not None else None,
            title=str(title) if title is not None else "",
            source_price=source_price,
            shipping_cost=shipping_cost,
            currency=currency,
            rating=rating,
            feedback_rate=feedback_rate,
            order_count=order_count,
            store_age_months=store_age_months,
            store_age_known=store_age_known,
            categories=_parse_categories(categories),
            image_fingerprint=str(fingerprint) if fingerprint is not None else None,
        )
    except ValidationError as e:
        raise NormalizationError(f"Listing failed validation: {e}") from e

    logger.debug(
        f"Normalized listing {snapshot.product_id}: price={snapshot.source_price} "
        f"{snapshot.currency.value}, rating={snapshot.rating}, orders={snapshot.order_count}, "
        f"age={snapshot.store_age_months}mo"
    )
    return snapshot
