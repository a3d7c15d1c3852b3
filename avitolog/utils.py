"""
Utility functions for text processing, URL/price/date normalization and logging.
"""
import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Optional
from urllib.parse import urlparse

from .config import config
from .models import Price


DEFAULT_CURRENCY = "RUB"

_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.\-]*:")
_PRICE_RE = re.compile(r"\d[\d\s,.]*")
_ITEM_ID_RE = re.compile(r"_(\d+)$|/(\d+)$")

# Genitive month names and their short forms, keyed by the first three letters
_MONTHS = {
    "янв": 1, "фев": 2, "мар": 3, "апр": 4, "мая": 5, "май": 5,
    "июн": 6, "июл": 7, "авг": 8, "сен": 9, "окт": 10, "ноя": 11, "дек": 12,
}
_DAY_MONTH_YEAR_RE = re.compile(r"^(\d{1,2})\s+([а-яё]+)\.?\s+(\d{4})\b")
_DAY_MONTH_RE = re.compile(r"^(\d{1,2})\s+([а-яё]+)\.?(?:\s|,|$)")
_DOTTED_FULL_RE = re.compile(r"^(\d{1,2}\.\d{1,2}\.\d{4})\b")
_DOTTED_SHORT_RE = re.compile(r"^(\d{1,2}\.\d{1,2}\.\d{2})\b")


def init_logger(
    name: str = "avitolog",
    console_level: str = "INFO",
    file_level: str = "DEBUG",
    log_file: Optional[str] = "avitolog.log"
) -> logging.Logger:
    """Initialize logger with console and optional file handlers."""
    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG)
    if logger.handlers:
        return logger

    console_level_num = getattr(logging, console_level.upper(), logging.INFO)
    ch = logging.StreamHandler()
    ch.setLevel(console_level_num)

    fmt = logging.Formatter("%(asctime)s [%(levelname)s] %(message)s")
    ch.setFormatter(fmt)
    logger.addHandler(ch)

    if log_file:  # Create file handler only if log_file is provided
        file_level_num = getattr(logging, file_level.upper(), logging.DEBUG)
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(file_level_num)
        fh.setFormatter(fmt)
        logger.addHandler(fh)

    return logger


def now_iso() -> str:
    """Return current UTC timestamp in ISO format."""
    return datetime.now(timezone.utc).isoformat()


def clean_text(s: Optional[str]) -> str:
    """Clean and normalize text by removing extra whitespace."""
    if not s:
        return ""
    s = re.sub(r"\s+", " ", s)
    return s.strip()


def site_origin(base_url: str = config.BASE_URL) -> str:
    """Return scheme://host of the base URL without a trailing slash."""
    parsed = urlparse(base_url)
    if parsed.scheme and parsed.netloc:
        return f"{parsed.scheme}://{parsed.netloc}"
    return base_url.rstrip("/")


def normalize_url(href: Optional[str], base_url: str = config.BASE_URL) -> str:
    """
    Make a link found on the page absolute.

    Absolute links are returned unchanged, protocol-relative ones get https,
    everything else is attached to the site origin. Applying it twice gives
    the same result as applying it once.
    """
    if not href:
        return ""
    href = href.strip()
    if not href:
        return ""

    if _SCHEME_RE.match(href):
        return href
    if href.startswith("//"):
        return "https:" + href

    origin = site_origin(base_url)
    if href.startswith("/"):
        return origin + href

    try:
        parsed = urlparse(href)
    except ValueError:
        parsed = None
    if parsed is not None and parsed.scheme and parsed.netloc:
        return href
    return origin + "/" + href


def is_same_site(url: str, domain: str = config.ALLOWED_DOMAIN) -> bool:
    """True when the URL points to the domain or one of its subdomains."""
    host = (urlparse(url).hostname or "").lower()
    return host == domain or host.endswith("." + domain)


def extract_item_id(href: Optional[str]) -> str:
    """Pull the numeric listing id from the end of an item URL."""
    if not href:
        return ""
    path = urlparse(href.strip()).path.rstrip("/")
    m = _ITEM_ID_RE.search(path)
    if not m:
        return ""
    return m.group(1) or m.group(2)


def extract_category_id(category_url: Optional[str]) -> str:
    """Category slug: the last path segment of a category URL."""
    if not category_url:
        return ""
    segments = [s for s in urlparse(category_url.strip()).path.split("/") if s]
    return segments[-1] if segments else ""


def parse_price(price_text: Optional[str]) -> Price:
    """
    Parse price text to extract numeric value and currency.

    Recognizes $ and € (USD, EUR); everything else is rubles. When no number
    can be read the value stays 0 and the raw text is still kept.
    """
    raw = price_text or ""
    currency = DEFAULT_CURRENCY
    if "$" in raw:
        currency = "USD"
    elif "€" in raw:
        currency = "EUR"

    value = 0.0
    m = _PRICE_RE.search(raw)
    if m:
        num = re.sub(r"\s+", "", m.group(0)).replace(",", ".").rstrip(".")
        try:
            value = float(num)
        except ValueError:
            value = 0.0

    return Price(value=value, currency=currency, text=raw)


def _month_number(token: str) -> Optional[int]:
    return _MONTHS.get(token[:3])


def parse_date(date_text: Optional[str], now: Optional[datetime] = None) -> datetime:
    """
    Parse a publish date as shown on the site into a local datetime.

    Understands "сегодня"/"вчера", "5 марта 2024", "5 марта", "05.03.2024"
    and "05.03.24". Anything else falls back to the current time so the
    listing still carries a timestamp.
    """
    now = now or datetime.now()
    s = (date_text or "").strip().lower()
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)

    if "сегодня" in s:
        return midnight
    if "вчера" in s:
        return midnight - timedelta(days=1)

    m = _DAY_MONTH_YEAR_RE.match(s)
    if m and _month_number(m.group(2)):
        try:
            return datetime(int(m.group(3)), _month_number(m.group(2)), int(m.group(1)))
        except ValueError:
            pass

    m = _DAY_MONTH_RE.match(s)
    if m and _month_number(m.group(2)):
        try:
            return datetime(now.year, _month_number(m.group(2)), int(m.group(1)))
        except ValueError:
            pass

    for pattern, fmt in ((_DOTTED_FULL_RE, "%d.%m.%Y"), (_DOTTED_SHORT_RE, "%d.%m.%y")):
        m = pattern.match(s)
        if m:
            try:
                return datetime.strptime(m.group(1), fmt)
            except ValueError:
                continue

    return now
