from __future__ import annotations

import re
from datetime import date, datetime

DEFAULT_DATE_FORMAT = "MM/dd/yyyy"

# date-fns style tokens stored in user settings
_DATE_TOKENS = {
    "MMMM": "%B",
    "yyyy": "%Y",
    "yy": "%y",
    "MM": "%m",
    "dd": "%d",
}
_LETTER_RUN = re.compile(r"[A-Za-z]+")


def format_currency(amount: float, currency: str = "USD") -> str:
    """Render an amount rounded to cents, e.g. ``USD 1,234.50``."""

    return f"{currency} {round(float(amount), 2):,.2f}"


def format_quantity(value: float) -> str:
    """Fixed-point quantity without trailing zeros: ``2``, ``1.5``, ``1000000``."""

    text = f"{value:.4f}".rstrip("0").rstrip(".")
    return "0" if text in ("", "-0") else text


def to_strftime(pattern: str) -> str:
    """Translate a date pattern such as ``dd/MM/yy`` to strftime directives.

    Raises ``ValueError`` for any letter run that is not a supported token.
    """

    def _directive(match: re.Match) -> str:
        token = match.group(0)
        try:
            return _DATE_TOKENS[token]
        except KeyError:
            raise ValueError(f"Unsupported date token {token!r} in {pattern!r}") from None

    return _LETTER_RUN.sub(_directive, pattern.replace("%", "%%"))


def format_date(value: date | datetime | None, pattern: str = DEFAULT_DATE_FORMAT) -> str:
    if value is None:
        return ""
    return value.strftime(to_strftime(pattern))


def humanize(value: str) -> str:
    """``bank_transfer`` -> ``BANK TRANSFER``."""

    return value.replace("_", " ").upper()
