from __future__ import annotations
import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional, Union

_THOUSANDS_COMMA_RE = re.compile(r"^\d{1,3}(,\d{3})+$")
_NUMBER_RE = re.compile(r"^\d+(\.\d+)?$")

CENT = Decimal("0.01")


def round2(x: Union[Decimal, float, int, str]) -> Decimal:
    return Decimal(str(x)).quantize(CENT, rounding=ROUND_HALF_UP)


def parse_amount(token: Optional[str]) -> Optional[Decimal]:
    """Parse a money token accepting both comma and dot as decimal separator.

    "21.00" -> 21.00, "1,50" -> 1.50, "1,200.50" -> 1200.50,
    "1.200,50" -> 1200.50, "1,200" -> 1200.00. A single dot is always decimal.
    Returns None for anything that is not a non-negative number.
    """
    if not token:
        return None
    s = token.strip().replace(" ", "").replace(" ", "")
    if not s:
        return None
    if "," in s and "." in s:
        if s.rfind(",") > s.rfind("."):
            s = s.replace(".", "").replace(",", ".")
        else:
            s = s.replace(",", "")
    elif "," in s:
        s = s.replace(",", "") if _THOUSANDS_COMMA_RE.match(s) else s.replace(",", ".")
    elif s.count(".") > 1:
        s = s.replace(".", "")
    if not _NUMBER_RE.match(s):
        return None
    try:
        return round2(s)
    except InvalidOperation:
        return None
