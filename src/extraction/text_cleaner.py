"""
Text cleaning and date normalization for OCR output.

clean_text() normalizes punctuation and whitespace, repairs well-known OCR
character confusions and canonicalizes date separators. It is idempotent:
clean_text(clean_text(x)) == clean_text(x) for every string.

normalize_date() turns a single date string into zero-padded DD/MM/YYYY.
"""

import logging
import re
from dataclasses import dataclass
from datetime import date
from typing import List, Optional

logger = logging.getLogger(__name__)

_MAX_CLEAN_ROUNDS = 10

UNICODE_PUNCTUATION = {
    "\u2018": "'",
    "\u2019": "'",
    "\u201a": "'",
    "\u201c": '"',
    "\u201d": '"',
    "\u201e": '"',
    "\u2013": "-",
    "\u2014": "-",
    "\u2212": "-",
    "\u00a0": " ",
    "\u2009": " ",
    "\u202f": " ",
    "\r\n": "\n",
    "\r": "\n",
}

# Whole-word OCR misreads seen on certificate labels
WORD_CONFUSIONS = {
    "Narne": "Name",
    "Dafe": "Date",
    "Birfh": "Birth",
    "Cerfificate": "Certificate",
    "Certlficate": "Certificate",
    "Nurnber": "Number",
    "Numbcr": "Number",
    "forrn": "form",
    "Candldate": "Candidate",
    "Reglstration": "Registration",
    "Listenlng": "Listening",
    "Readlng": "Reading",
    "Wrltlng": "Writing",
    "Speaklng": "Speaking",
    "0verall": "Overall",
}


def _case_variants(table: dict) -> dict:
    variants = {}
    for wrong, right in table.items():
        variants[wrong] = right
        variants[wrong.capitalize()] = right.capitalize()
        variants[wrong.upper()] = right.upper()
        variants[wrong.lower()] = right.lower()
    return variants


_WORD_TABLE = _case_variants(WORD_CONFUSIONS)
_WORD_PATTERN = re.compile(
    r"\b(" + "|".join(sorted(map(re.escape, _WORD_TABLE), key=len, reverse=True)) + r")\b"
)

_PIPE_NEAR_LETTER = re.compile(r"\|(?=[A-Za-z])|(?<=[A-Za-z])\|")
_O_BETWEEN_DIGITS = re.compile(r"(?<=\d)[Oo](?=\d)")
_ONE_BETWEEN_DIGITS = re.compile(r"(?<=\d)[lI|](?=\d)")
_LABEL_COLON = re.compile(r"(?<=[^\W\d_])[ \t]*:[ \t]*")
_DMY_DATE = re.compile(
    r"\b(\d{1,2})[ \t]*([./-])[ \t]*(\d{1,2})[ \t]*\2[ \t]*(\d{4})\b"
)
_YMD_DATE = re.compile(
    r"\b(\d{4})[ \t]*([./-])[ \t]*(\d{1,2})[ \t]*\2[ \t]*(\d{1,2})\b"
)
_DECIMAL_COMMA = re.compile(r"(?<=\d),(?=\d\b)")
_SPACED_DECIMAL_POINT = re.compile(r"(?<=\b\d)[ \t]*\.[ \t]*(?=\d\b)")
_INLINE_SPACE = re.compile(r"[ \t\f\v]+")


def _clean_once(text: str) -> str:
    for wrong, right in UNICODE_PUNCTUATION.items():
        text = text.replace(wrong, right)

    text = _WORD_PATTERN.sub(lambda m: _WORD_TABLE[m.group(1)], text)
    text = _O_BETWEEN_DIGITS.sub("0", text)
    text = _ONE_BETWEEN_DIGITS.sub("1", text)
    text = _PIPE_NEAR_LETTER.sub("I", text)
    text = _LABEL_COLON.sub(": ", text)
    text = _DMY_DATE.sub(r"\1/\3/\4", text)
    text = _YMD_DATE.sub(r"\1-\3-\4", text)
    text = _DECIMAL_COMMA.sub(".", text)
    text = _SPACED_DECIMAL_POINT.sub(".", text)

    lines = (_INLINE_SPACE.sub(" ", line).strip() for line in text.split("\n"))
    return "\n".join(line for line in lines if line)


def clean_text(text: Optional[str]) -> str:
    """
    Normalize raw OCR text before field extraction.

    Steps:
    1. Smart quotes, dashes and exotic spaces to ASCII
    2. Whole-word confusion table (e.g., "Narne" → "Name")
    3. Digit-context repairs: O/o → 0 and l/I/| → 1 between two digits
    4. '|' touching a letter → 'I'
    5. "Label :value" → "Label: value"
    6. Date separators: "15 . 03 . 1995" → "15/03/1995", "1995.03.15" → "1995-03-15"
    7. Decimal repairs in scores: "7,5" → "7.5", "7 . 5" → "7.5"
    8. Collapse spaces per line, strip lines, drop blank lines (line breaks kept)

    The steps are applied until the text stops changing, which makes the
    function idempotent.

    Args:
        text: Raw recognized text (None is treated as empty)

    Returns:
        Cleaned text

    Example:
        >>> clean_text("Candidate Narne :  NGUYEN VAN AN\\nDafe of Birfh 15.03.1995")
        'Candidate Name: NGUYEN VAN AN\\nDate of Birth 15/03/1995'
    """
    if not text:
        return ""

    current = text
    for _ in range(_MAX_CLEAN_ROUNDS):
        cleaned = _clean_once(current)
        if cleaned == current:
            break
        current = cleaned
    return current


# ═══════════════════════════════════════════════════════════════════════════
# Dates
# ═══════════════════════════════════════════════════════════════════════════

MONTHS = {
    "jan": 1,
    "feb": 2,
    "mar": 3,
    "apr": 4,
    "may": 5,
    "jun": 6,
    "jul": 7,
    "aug": 8,
    "sep": 9,
    "sept": 9,
    "oct": 10,
    "nov": 11,
    "dec": 12,
}

_MONTH_NAME = (
    r"(?:Jan(?:uary)?|Feb(?:ruary)?|Mar(?:ch)?|Apr(?:il)?|May|June?|July?"
    r"|Aug(?:ust)?|Sept?(?:ember)?|Oct(?:ober)?|Nov(?:ember)?|Dec(?:ember)?)"
)

_NUMERIC_DMY = re.compile(r"^(\d{1,2})[/.\-](\d{1,2})[/.\-](\d{4})$")
_NUMERIC_YMD = re.compile(r"^(\d{4})[/.\-](\d{1,2})[/.\-](\d{1,2})$")
_DAY_MONTH_NAME = re.compile(
    rf"^(\d{{1,2}})(?:st|nd|rd|th)?\s+({_MONTH_NAME})\.?,?\s+(\d{{4}})$", re.I
)
_MONTH_NAME_DAY = re.compile(
    rf"^({_MONTH_NAME})\.?\s+(\d{{1,2}})(?:st|nd|rd|th)?,?\s+(\d{{4}})$", re.I
)

DATE_PATTERN = re.compile(
    r"\b\d{1,2}[/.\-]\d{1,2}[/.\-]\d{4}\b"
    r"|\b\d{4}[/.\-]\d{1,2}[/.\-]\d{1,2}\b"
    rf"|\b\d{{1,2}}(?:st|nd|rd|th)?\s+{_MONTH_NAME}\.?,?\s+\d{{4}}\b"
    rf"|\b{_MONTH_NAME}\.?\s+\d{{1,2}}(?:st|nd|rd|th)?,?\s+\d{{4}}\b",
    re.I,
)


@dataclass(frozen=True)
class DateMatch:
    """A date-like substring found in text."""

    raw: str
    normalized: Optional[str]
    start: int
    end: int


def _month_number(name: str) -> int:
    key = name.lower().rstrip(".")
    return MONTHS.get(key[:4] if key.startswith("sept") else key[:3], 0)


def _format(day: int, month: int, year: int) -> Optional[str]:
    try:
        date(year, month, day)
    except ValueError:
        return None
    return f"{day:02d}/{month:02d}/{year:04d}"


def normalize_date(text: Optional[str]) -> Optional[str]:
    """
    Normalize a single date string to zero-padded DD/MM/YYYY.

    Accepts D/M/YYYY (day first; falls back to month first only when the
    second number cannot be a month), YYYY-M-D, "15 March 1995" and
    "March 15, 1995", with '/', '.' or '-' separators.

    Args:
        text: Date string

    Returns:
        DD/MM/YYYY string, or None if the text is not a valid calendar date

    Example:
        >>> normalize_date("5.3.1995")
        '05/03/1995'
        >>> normalize_date("05/03/1995")
        '05/03/1995'
    """
    if not text:
        return None
    value = text.strip()

    match = _NUMERIC_DMY.match(value)
    if match:
        first, second, year = (int(g) for g in match.groups())
        if second > 12 and first <= 12:
            first, second = second, first
        return _format(first, second, year)

    match = _NUMERIC_YMD.match(value)
    if match:
        year, month, day = (int(g) for g in match.groups())
        return _format(day, month, year)

    match = _DAY_MONTH_NAME.match(value)
    if match:
        return _format(int(match.group(1)), _month_number(match.group(2)), int(match.group(3)))

    match = _MONTH_NAME_DAY.match(value)
    if match:
        return _format(int(match.group(2)), _month_number(match.group(1)), int(match.group(3)))

    return None


def parse_date(text: Optional[str]) -> Optional[date]:
    """Parse a date string (any normalize_date format) into a date."""
    normalized = normalize_date(text)
    if normalized is None:
        return None
    day, month, year = (int(p) for p in normalized.split("/"))
    return date(year, month, day)


def find_dates(text: str) -> List[DateMatch]:
    """Find every date-like substring in order of appearance."""
    return [
        DateMatch(
            raw=m.group(0),
            normalized=normalize_date(m.group(0)),
            start=m.start(),
            end=m.end(),
        )
        for m in DATE_PATTERN.finditer(text)
    ]
