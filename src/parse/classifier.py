"""
Classify the raw text cells of one order row into semantic fields.

Roles are assigned by an ordered list of rules run against a shrinking pool of
unclaimed cells: money, status/date-time, order number, client, product. Each
rule claims at most one cell and a claimed cell leaves the pool, so no cell can
carry two roles. When no cell looks like a product, the first cell left in the
pool becomes the product.

Rows with fewer than three cells are treated as one unsegmented block of text:
label-prefixed fragments ("Pedido: ...", "Cliente: ...") are read first, then
the remaining plain fragments are used by position (client, then product).
"""
import logging
import re
from dataclasses import dataclass
from typing import Callable, Optional

from src.parse.models import RowFields
from src.parse.text_utils import (
    DATE_RE,
    DATE_TIME_RE,
    MONEY_MARKER_RE,
    MONEY_RE,
    QUANTITY_RE,
    TIME_RE,
    clean_text,
    extract_first_money,
    normalize_money_text,
    pick_date_time,
    remove_money,
    remove_quantity,
    split_lines,
)

logger = logging.getLogger(__name__)

ROLE_MONEY = "money"
ROLE_STATUS = "status"
ROLE_ORDER = "order"
ROLE_CLIENT = "client"
ROLE_PRODUCT = "product"

# Rows with fewer cells than this are parsed as a single text block
MIN_SEGMENTED_CELLS = 3

STATUS_KEYWORD_RE = re.compile(
    r"\b(?:ordenado|pago|pagado|expira|ordered|paid|expires)\b", re.IGNORECASE
)
SUBPEDIDO_RE = re.compile(r"\bsubpedido\b", re.IGNORECASE)
LONG_NUMERIC_RE = re.compile(r"\b\d{10,}\b")
LONG_ALNUM_RE = re.compile(r"\b[A-Za-z0-9]{10,}\b")
# Leading product code: 4+ alphanumerics with at least one digit ("19936CPA")
PRODUCT_CODE_RE = re.compile(r"^\s*((?=[A-Za-z]*\d)[A-Za-z0-9]{4,})\b")
ALPHA_RUN_RE = re.compile(r"[A-Za-zÀ-ÿ]{2,}")

LABELED_ORDER_RE = re.compile(r"\b(?:pedido|order)\b\s*[#:·-]?\s*([A-Za-z0-9-]{4,})", re.IGNORECASE)
HASH_ORDER_RE = re.compile(r"#\s*([0-9]{4,})")
KNOWN_LABEL_RE = re.compile(r"^\s*(?:pedido|order|cliente|produto|valor|data)\b\s*[:#-]", re.IGNORECASE)


def looks_like_money(text: str) -> bool:
    return bool(MONEY_MARKER_RE.search(text))


def looks_like_date_or_time(text: str) -> bool:
    return bool(DATE_RE.search(text) or TIME_RE.search(text))


def long_mixed_tokens(text: str) -> list[str]:
    """Tokens of 10+ alphanumerics that mix letters and digits."""
    return [
        token
        for token in LONG_ALNUM_RE.findall(text)
        if re.search(r"\d", token) and re.search(r"[A-Za-z]", token)
    ]


def is_product_cell(text: str) -> bool:
    """A leading product code plus a currency or quantity marker."""
    if not PRODUCT_CODE_RE.search(text):
        return False
    return bool(looks_like_money(text) or QUANTITY_RE.search(text))


def is_money_cell(text: str) -> bool:
    return bool(MONEY_RE.search(text)) and not is_product_cell(text)


def is_status_cell(text: str) -> bool:
    return bool(DATE_TIME_RE.search(text) or STATUS_KEYWORD_RE.search(text))


def is_order_cell(text: str) -> bool:
    if looks_like_money(text) or looks_like_date_or_time(text):
        return False
    return bool(SUBPEDIDO_RE.search(text) or LONG_NUMERIC_RE.search(text) or long_mixed_tokens(text))


def is_client_cell(text: str) -> bool:
    if is_product_cell(text) or is_status_cell(text) or is_order_cell(text) or looks_like_money(text):
        return False
    return bool(ALPHA_RUN_RE.search(text))


@dataclass(frozen=True)
class FieldRule:
    role: str
    matches: Callable[[str], bool]


# Precedence matters: an earlier rule's claim removes the cell from the pool.
FIELD_RULES: tuple[FieldRule, ...] = (
    FieldRule(ROLE_MONEY, is_money_cell),
    FieldRule(ROLE_STATUS, is_status_cell),
    FieldRule(ROLE_ORDER, is_order_cell),
    FieldRule(ROLE_CLIENT, is_client_cell),
    FieldRule(ROLE_PRODUCT, is_product_cell),
)


def assign_roles(cells: list[str]) -> dict[str, str]:
    """Map each role to the raw text of the cell it claimed."""
    pool = [str(cell) for cell in cells if cell and str(cell).strip()]
    assigned: dict[str, str] = {}

    for rule in FIELD_RULES:
        for idx, cell in enumerate(pool):
            if rule.matches(cell):
                assigned[rule.role] = pool.pop(idx)
                break

    if ROLE_PRODUCT not in assigned and pool:
        assigned[ROLE_PRODUCT] = pool.pop(0)

    return assigned


def extract_product(product_text: str) -> tuple[str, str]:
    """Return (product_code, display name) from a product cell."""
    lines = split_lines(product_text)
    if not lines:
        return "", ""

    code_match = PRODUCT_CODE_RE.match(lines[0])
    code = code_match.group(1) if code_match else ""

    name_parts = []
    for idx, line in enumerate(lines):
        if idx == 0 and code:
            line = line[code_match.end():]
        line = remove_money(remove_quantity(line))
        if line and line != code:
            name_parts.append(line)

    produto = " ".join(part for part in [code, " ".join(name_parts)] if part).strip()
    return code, produto


def extract_order_number(order_text: str) -> str:
    """Long numeric token first, then a long mixed alphanumeric one."""
    numeric = LONG_NUMERIC_RE.search(order_text or "")
    if numeric:
        return numeric.group(0)
    mixed = long_mixed_tokens(order_text or "")
    return mixed[0] if mixed else ""


def extract_client(client_text: str) -> str:
    """Name plus location: up to three line/comma fragments joined by spaces."""
    fragments = []
    for line in split_lines(client_text):
        fragments.extend(part for part in (clean_text(p) for p in line.split(",")) if part)
    return " ".join(fragments[:3]).strip()


def classify_cells(cells: list[str]) -> RowFields:
    """Classify a row delivered as discrete cells."""
    roles = assign_roles(cells)
    product_text = roles.get(ROLE_PRODUCT, "")
    status_text = roles.get(ROLE_STATUS) or "\n".join(str(c) for c in cells if c)

    product_code, produto = extract_product(product_text)
    valor = extract_first_money(roles.get(ROLE_MONEY, "")) or extract_first_money(product_text)

    return RowFields(
        product_code=product_code,
        produto=produto,
        valor=valor,
        pedido_numero=extract_order_number(roles.get(ROLE_ORDER, "")),
        cliente=extract_client(roles.get(ROLE_CLIENT, "")),
        data_hora=pick_date_time(status_text),
    )


def pick_labeled_value(segments: list[str], label: str) -> str:
    """Value after "<label>:" / "<label> #" / "<label> -" in the first segment that has it."""
    pattern = re.compile(rf"\b{label}\b\s*[:#-]?\s*(.+)$", re.IGNORECASE)
    for segment in segments:
        match = pattern.search(segment)
        if match:
            return match.group(1).strip()
    return ""


def extract_order_id_from_text(text: str) -> str:
    """Order id from 'Pedido #123456', 'Order: AB-1234', '#123456' or a bare 10+ digit token."""
    if not text:
        return ""
    labeled = LABELED_ORDER_RE.search(text)
    if labeled:
        return labeled.group(1)
    hashed = HASH_ORDER_RE.search(text)
    if hashed:
        return hashed.group(1)
    for segment in text.split(" | "):
        if not looks_like_money(segment) and not looks_like_date_or_time(segment):
            numeric = LONG_NUMERIC_RE.search(segment)
            if numeric:
                return numeric.group(0)
    return ""


def _is_noisy_segment(segment: str) -> bool:
    return bool(
        looks_like_date_or_time(segment)
        or re.search(r"R\$", segment, re.IGNORECASE)
        or re.search(r"\b(?:pedido|order)\b", segment, re.IGNORECASE)
        or HASH_ORDER_RE.search(segment)
        or LONG_NUMERIC_RE.search(segment)
        or STATUS_KEYWORD_RE.fullmatch(segment.strip())
        or KNOWN_LABEL_RE.search(segment)
    )


def split_block(cells: list[str]) -> list[str]:
    segments = []
    for cell in cells:
        for part in re.split(r"\r?\n| \| ", str(cell or "")):
            part = clean_text(part)
            if part:
                segments.append(part)
    return segments


def classify_block(cells: list[str]) -> RowFields:
    """Classify a row that arrived as one (or two) unsegmented text blocks."""
    segments = split_block(cells)
    if not segments:
        return RowFields()

    joined = " | ".join(segments)
    order_id = extract_order_id_from_text(joined)

    money_segment = next((s for s in segments if looks_like_money(s)), "")
    valor = extract_first_money(money_segment) or normalize_money_text(pick_labeled_value(segments, "valor"))

    data_hora = pick_date_time("\n".join(segments)) or pick_labeled_value(segments, "data")

    cliente = pick_labeled_value(segments, "cliente")
    produto = pick_labeled_value(segments, "produto")

    candidates = [s for s in segments if not _is_noisy_segment(s)]
    if not cliente and candidates:
        cliente = candidates.pop(0)
    if not produto and candidates:
        produto = candidates.pop(0)

    return RowFields(
        produto=produto,
        valor=valor,
        pedido_numero=order_id,
        cliente=cliente,
        data_hora=data_hora,
    )


def classify_row(cells: Optional[list[str]]) -> RowFields:
    """Classify one row, choosing the cell or block strategy by cell count."""
    cells = [c for c in (cells or []) if c and str(c).strip()]
    if not cells:
        return RowFields()
    if len(cells) >= MIN_SEGMENTED_CELLS:
        return classify_cells(cells)
    return classify_block(cells)
