"""Formatting helpers shared by page fetchers."""

import re
import unicodedata
from datetime import datetime
from typing import Optional, Union
from urllib.parse import quote

MONTHS_ID = [
    "Januari",
    "Februari",
    "Maret",
    "April",
    "Mei",
    "Juni",
    "Juli",
    "Agustus",
    "September",
    "Oktober",
    "November",
    "Desember",
]

MONTHS_ID_SHORT = ["Jan", "Feb", "Mar", "Apr", "Mei", "Jun", "Jul", "Agu", "Sep", "Okt", "Nov", "Des"]


def format_price(price: Optional[Union[int, float]]) -> str:
    """Format an amount as Indonesian Rupiah, e.g. ``Rp 1.250.000``."""
    amount = int(round(price or 0))
    sign = "-" if amount < 0 else ""
    grouped = f"{abs(amount):,}".replace(",", ".")
    return f"{sign}Rp {grouped}"


def format_date(value: Optional[datetime]) -> str:
    """Format a date as ``17 Oktober 2026``."""
    if not value:
        return ""
    return f"{value.day:02d} {MONTHS_ID[value.month - 1]} {value.year}"


def month_label(value: datetime) -> str:
    """Short month label used by the trend charts, e.g. ``Okt 2026``."""
    return f"{MONTHS_ID_SHORT[value.month - 1]} {value.year}"


def truncate_text(text: Optional[str], max_length: int = 100) -> str:
    if not text:
        return ""
    if len(text) <= max_length:
        return text
    return text[:max_length] + "..."


def slugify(text: str) -> str:
    """Build a URL slug from a title."""
    text = unicodedata.normalize("NFKD", text).encode("ascii", "ignore").decode("ascii")
    text = text.lower().strip()
    text = re.sub(r"[^\w\s-]", "", text)  # Remove punctuation
    text = re.sub(r"[\s_-]+", "-", text)
    return text.strip("-")


def whatsapp_url(number: Optional[str], message: str, default_number: str) -> str:
    """Build a wa.me link from a phone number in any notation."""
    digits = re.sub(r"[^0-9]", "", number or "") or default_number
    return f"https://wa.me/{digits}?text={quote(message)}"
