from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

PAYMENT_CURRENCIES = ("inr", "gbp", "usd", "eur", "aud", "cad")

# Smallest charge Stripe accepts, in minor units.
MINIMUM_AMOUNTS = {
    "inr": 50,
    "gbp": 30,
    "usd": 50,
}

CURRENCY_SYMBOLS = {
    "inr": "₹",
    "gbp": "£",
    "usd": "$",
    "eur": "€",
    "aud": "A$",
    "cad": "C$",
}

STATEMENT_DESCRIPTORS = {
    "inr": "GH_IND",
    "gbp": "GH_UK",
    "usd": "GH_US",
}

SUPPORTED_CURRENCIES = [
    {
        "code": "INR",
        "symbol": "₹",
        "name": "Indian Rupee",
        "country": "India",
        "minimumAmount": 0.50,
        "stripeSupported": True,
    },
    {
        "code": "GBP",
        "symbol": "£",
        "name": "British Pound",
        "country": "United Kingdom",
        "minimumAmount": 0.30,
        "stripeSupported": True,
    },
    {
        "code": "USD",
        "symbol": "$",
        "name": "US Dollar",
        "country": "United States",
        "minimumAmount": 0.50,
        "stripeSupported": True,
    },
]


class CurrencyError(ValueError):
    pass


def resolve_payment_currency(currency: str = "inr", country: Optional[str] = None) -> str:
    resolved = (currency or "inr").lower()
    if country:
        country_lower = country.lower()
        if "india" in country_lower:
            resolved = "inr"
        elif "uk" in country_lower or "united kingdom" in country_lower:
            resolved = "gbp"
        elif (
            "us" in country_lower
            or "usa" in country_lower
            or "united states" in country_lower
        ):
            resolved = "usd"
    if resolved not in PAYMENT_CURRENCIES:
        raise CurrencyError(
            f"Currency {resolved} is not supported. "
            f"Supported currencies: {', '.join(PAYMENT_CURRENCIES)}"
        )
    return resolved


def to_minor_units(amount: float) -> int:
    value = Decimal(str(amount)) * 100
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def check_minimum(amount_minor: int, currency: str) -> None:
    minimum = MINIMUM_AMOUNTS.get(currency)
    if minimum and amount_minor < minimum:
        raise CurrencyError(
            f"Minimum amount for {currency.upper()} is {minimum / 100:g}"
        )


def currency_for_country(country: str) -> tuple[str, str]:
    country_lower = country.lower()
    if "india" in country_lower:
        return "inr", "₹"
    if any(name in country_lower for name in ("uk", "united kingdom", "britain")):
        return "gbp", "£"
    if any(name in country_lower for name in ("us", "usa", "united states")):
        return "usd", "$"
    if "euro" in country_lower or "eu" in country_lower:
        return "eur", "€"
    return "usd", "$"


def symbol_for_country(country: Optional[str]) -> str:
    if not country:
        return "$"
    country_lower = country.lower()
    if country_lower == "india":
        return "₹"
    if country_lower in {"united kingdom", "uk", "great britain"}:
        return "£"
    return "$"


def statement_descriptor_suffix(currency: str) -> str:
    return STATEMENT_DESCRIPTORS.get(currency, "GH_BOOKING")


def format_indian_number(value: str) -> str:
    """Group digits the Indian way: 1,23,456.78."""
    integer_part, _, decimal_part = value.partition(".")
    decimals = f".{decimal_part}" if decimal_part else ""
    last_three = integer_part[-3:]
    others = integer_part[:-3]
    if not others:
        return last_three + decimals
    groups = []
    while len(others) > 2:
        groups.insert(0, others[-2:])
        others = others[:-2]
    if others:
        groups.insert(0, others)
    return ",".join(groups) + "," + last_three + decimals


def format_currency(amount: float, currency: str) -> str:
    code = currency.lower()
    formatted = f"{Decimal(str(amount)).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)}"
    if code == "inr":
        return f"₹ {format_indian_number(formatted)}"
    return f"{CURRENCY_SYMBOLS.get(code, '$')}{formatted}"
