"""Text helpers for order-listing cells: money, dates, lines."""
import hashlib
import re
from typing import Optional

BIDI_MARKS = re.compile(r"[\u200e\u200f]")

MONEY_RE = re.compile(r"R\$\s*[\u200e\u200f]*\s*\d+(?:\.\d{3})*,\d{2}", re.IGNORECASE)
MONEY_MARKER_RE = re.compile(r"R\$\s*[\u200e\u200f]*\s*\d", re.IGNORECASE)
QUANTITY_RE = re.compile(r"(?:^|(?<=\s))[x×]\s*\d+\b", re.IGNORECASE)
DATE_RE = re.compile(r"\d{2}/\d{2}/\d{4}")
TIME_RE = re.compile(r"\b\d{1,2}:\d{2}\b")
DATE_TIME_RE = re.compile(r"(\d{2}/\d{2}/\d{4})\s*(\d{1,2}:\d{2})")

# Status labels next to the timestamp we keep; "expira" is never preferred.
PREFERRED_DATE_LABELS = ("ordenado", "pago", "pagado", "paid", "ordered")
EXPIRY_LABEL_RE = re.compile(r"\b(?:expira|expires|expiry)\b", re.IGNORECASE)


def clean_text(text: Optional[str]) -> str:
    """Collapse whitespace (newlines included) and trim."""
    if not text:
        return ""
    return re.sub(r"\s+", " ", BIDI_MARKS.sub("", str(text))).strip()


def split_lines(text: Optional[str]) -> list[str]:
    """Split on newlines, clean each line, drop blanks."""
    return [line for line in (clean_text(part) for part in str(text or "").splitlines()) if line]


def normalize_money_text(text: Optional[str]) -> str:
    """Normalize a money string to the "R$ 29,99" form."""
    if not text:
        return ""
    cleaned = clean_text(text)
    return re.sub(r"R\$\s?", "R$ ", cleaned, flags=re.IGNORECASE).strip()


def parse_money_to_number(value_text: Optional[str]) -> Optional[float]:
    """Parse Brazilian money text ("R$ 1.234,56") to a float."""
    if not value_text:
        return None
    cleaned = re.sub(r"R\$\s?", "", str(value_text), flags=re.IGNORECASE)
    cleaned = cleaned.replace(".", "").replace(",", ".")
    cleaned = re.sub(r"[^0-9.\-]", "", cleaned).strip()
    if not cleaned:
        return None
    try:
        return float(cleaned)
    except ValueError:
        return None


def extract_first_money(text: Optional[str]) -> str:
    """First currency amount in the text, normalized; "" when absent."""
    match = MONEY_RE.search(str(text or ""))
    return normalize_money_text(match.group(0)) if match else ""


def remove_money(text: str) -> str:
    return clean_text(MONEY_RE.sub(" ", text))


def remove_quantity(text: str) -> str:
    return clean_text(QUANTITY_RE.sub(" ", text))


def parse_quantity(text: Optional[str]) -> str:
    """Quantity marker normalized to "x<n>"; "" when absent or zero."""
    match = re.search(r"[x×]\s*(\d+)", clean_text(text), re.IGNORECASE)
    if not match or int(match.group(1)) <= 0:
        return ""
    return f"x{int(match.group(1))}"


def _format_pair(match: Optional[re.Match]) -> str:
    return f"{match.group(1)} {match.group(2)}" if match else ""


def _pair_around_label(line: str, start: int, end: int) -> str:
    """Pair after the label (up to an expiry label), else the last pair before it."""
    after = line[end:]
    expiry = EXPIRY_LABEL_RE.search(after)
    if expiry:
        after = after[: expiry.start()]
    pair = _format_pair(DATE_TIME_RE.search(after))
    if pair:
        return pair

    # Text following an expiry label belongs to the expiry date.
    before = EXPIRY_LABEL_RE.split(line[:start])[0]
    pairs = list(DATE_TIME_RE.finditer(before))
    return _format_pair(pairs[-1]) if pairs else ""


def pick_date_time(text: Optional[str], preferred_labels=PREFERRED_DATE_LABELS) -> str:
    """
    Pick a stable "dd/mm/yyyy hh:mm" from a status cell.

    The pair on the line of a preferred label wins (before or after the label),
    or the next line when the label stands alone. Otherwise the first pair on a
    line without an expiry label is used. Expiry timestamps are never preferred
    so re-scrapes keep the same value.
    """
    lines = split_lines(text)

    for label in preferred_labels:
        label_re = re.compile(rf"\b{re.escape(label)}\b", re.IGNORECASE)
        for idx, line in enumerate(lines):
            found = label_re.search(line)
            if not found:
                continue
            pair = _pair_around_label(line, found.start(), found.end())
            if not pair and idx + 1 < len(lines) and not EXPIRY_LABEL_RE.search(lines[idx + 1]):
                pair = _format_pair(DATE_TIME_RE.search(lines[idx + 1]))
            if pair:
                return pair

    for line in lines:
        if not EXPIRY_LABEL_RE.search(line):
            pair = _format_pair(DATE_TIME_RE.search(line))
            if pair:
                return pair

    return _format_pair(DATE_TIME_RE.search(clean_text(text)))


def content_fingerprint(produto: str, valor: str, cliente: str, data_hora: str) -> str:
    """
    Deterministic fallback identity: sha1 over "produto|valor|cliente|dataHora".
    Field order and hash are fixed; existing histories depend on them.
    """
    key = "|".join(str(v or "").strip() for v in (produto, valor, cliente, data_hora))
    return hashlib.sha1(key.encode("utf-8")).hexdigest()
