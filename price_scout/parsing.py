"""Text heuristics shared by sources: prices, regions, durations, trials."""
import re
from decimal import Decimal, InvalidOperation
from typing import Optional

from .models import Duration, Region

PRODUCT_KEYWORDS = ("game pass", "gamepass", "game-pass", "game+pass")
REQUIRED_KEYWORDS = ("ultimate",)
TRIAL_KEYWORDS = ("trial", "14 day", "14-day", "7 day", "7-day", "3 day", "1 day")

# Checked in order; first hit wins. Short codes need surrounding delimiters.
_REGION_PATTERNS: list[tuple[Region, re.Pattern]] = [
    (Region.UAE, re.compile(r"\buae\b|emirates|\bae\b")),
    (Region.TURKEY, re.compile(r"turkey|türkiye|\btr\b")),
    (Region.ARGENTINA, re.compile(r"argentina|\bar\b")),
    (Region.BRAZIL, re.compile(r"brazil|brasil|\bbr\b")),
    (Region.INDIA, re.compile(r"india|\binr\b")),
    (Region.US, re.compile(r"\busa?\b|united states")),
    (Region.UK, re.compile(r"\buk\b|united kingdom|\bgbp\b")),
    (Region.EU, re.compile(r"europe|\beu\b")),
    (Region.GLOBAL, re.compile(r"global|worldwide|\bww\b")),
]

_DURATION_PATTERNS: list[tuple[Duration, re.Pattern]] = [
    (Duration.TWELVE_MONTHS, re.compile(r"12[\s-]*months?|1[\s-]*year|annual|yearly")),
    (Duration.SIX_MONTHS, re.compile(r"\b6[\s-]*months?")),
    (Duration.THREE_MONTHS, re.compile(r"\b3[\s-]*months?")),
    (Duration.ONE_MONTH, re.compile(r"\b1[\s-]*months?")),
]


def normalize_whitespace(value: str) -> str:
    """Collapse repeated spaces and newlines."""
    return re.sub(r"\s+", " ", value).strip()


def to_decimal(price_text: Optional[str]) -> Optional[Decimal]:
    """
    Best-effort conversion of a scraped price string to Decimal.

    Handles both "1,299.50" and "1.299,50" styles: when both separators are
    present the rightmost one is the decimal point; a lone separator
    followed by exactly three digits is a thousands separator.
    """
    if not price_text:
        return None

    cleaned = re.sub(r"[^\d,.]", "", price_text)
    if not cleaned or not re.search(r"\d", cleaned):
        return None

    last_comma = cleaned.rfind(",")
    last_dot = cleaned.rfind(".")

    if last_comma >= 0 and last_dot >= 0:
        if last_comma > last_dot:
            normalized = cleaned.replace(".", "").replace(",", ".")
        else:
            normalized = cleaned.replace(",", "")
    elif last_comma >= 0 or last_dot >= 0:
        sep = "," if last_comma >= 0 else "."
        decimals = len(cleaned) - cleaned.rfind(sep) - 1
        if cleaned.count(sep) > 1 or decimals == 3:
            normalized = cleaned.replace(sep, "")
        else:
            normalized = cleaned.replace(sep, ".")
    else:
        normalized = cleaned

    try:
        value = Decimal(normalized)
    except InvalidOperation:
        return None
    return value


def price_in_bounds(value: Optional[Decimal], max_price: float) -> bool:
    return value is not None and Decimal(0) < value < Decimal(str(max_price))


def is_valid_product_title(title: str) -> bool:
    """True when the title names the tracked subscription product."""
    lower = title.lower()
    if not any(k in lower for k in REQUIRED_KEYWORDS):
        return False
    return any(k in lower for k in PRODUCT_KEYWORDS)


def is_trial(title: str) -> bool:
    lower = title.lower()
    return any(k in lower for k in TRIAL_KEYWORDS)


def detect_region(title: str, url: str = "", default: Region = Region.GLOBAL) -> Region:
    """Guess the key's region lock from its title and URL."""
    text = f"{title} {url}".lower().replace("/", " ").replace("_", " ")
    for region, pattern in _REGION_PATTERNS:
        if pattern.search(text):
            return region
    return default


def detect_duration(title: str) -> Duration:
    """Guess the subscription length from the title; unlabeled means one month."""
    text = title.lower()
    for duration, pattern in _DURATION_PATTERNS:
        if pattern.search(text):
            return duration
    return Duration.ONE_MONTH
