"""Data models for scraped order rows and sale records."""
from dataclasses import dataclass
from typing import Any, Optional
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from src.parse.text_utils import parse_money_to_number

PRODUTOS_SEPARATOR = " | "

# Scalar fields merged with "first non-empty wins"; `id` is the grouping key.
SCALAR_FIELDS = (
    "legacy_id",
    "upseller_id",
    "order_id",
    "payment_id",
    "pedido_numero",
    "product_code",
    "produto",
    "valor",
    "cliente",
    "cidade_uf",
    "data_hora",
    "pago",
    "ordenado",
    "expira",
    "envio",
    "conta",
    "plataforma",
)


class SaleItem(BaseModel):
    """One line item of a multi-item order."""

    model_config = ConfigDict(populate_by_name=True)

    sku: str = ""
    preco: str = ""
    quantidade: str = ""
    variacao: str = ""
    imagem: Optional[str] = None

    def is_empty(self) -> bool:
        return not (self.sku or self.preco or self.quantidade or self.variacao)


class Sale(BaseModel):
    """Canonical sale record; serialized with the history file's camelCase names."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., min_length=1, description="Primary stable identity")
    legacy_id: Optional[str] = Field(default=None, alias="legacyId")
    upseller_id: Optional[str] = Field(default=None, alias="upsellerId")
    order_id: Optional[str] = Field(default=None, alias="orderId")
    payment_id: Optional[str] = Field(
        default=None,
        alias="paymentId",
        validation_alias=AliasChoices("paymentId", "pedidoId"),
    )
    pedido_numero: Optional[str] = Field(default=None, alias="pedidoNumero")
    product_code: Optional[str] = Field(default=None, alias="productCode")
    produto: Optional[str] = None
    produtos: list[str] = Field(default_factory=list)
    valor: Optional[str] = None
    cliente: Optional[str] = None
    cidade_uf: Optional[str] = Field(default=None, alias="cidadeUf")
    data_hora: Optional[str] = Field(default=None, alias="dataHora")
    pago: Optional[str] = None
    ordenado: Optional[str] = None
    expira: Optional[str] = None
    envio: Optional[str] = None
    conta: Optional[str] = None
    plataforma: Optional[str] = None
    itens: list[SaleItem] = Field(default_factory=list)

    @field_validator("id")
    @classmethod
    def _strip_id(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("id must be non-empty")
        return value

    @field_validator("produtos")
    @classmethod
    def _unique_produtos(cls, value: list[str]) -> list[str]:
        return unique_codes(value)

    @property
    def valor_numerico(self) -> Optional[float]:
        """Order amount as a number, e.g. "R$ 1.234,56" -> 1234.56."""
        return parse_money_to_number(self.valor)

    def to_record(self) -> dict[str, Any]:
        """Dict for the history file: aliases, no empty optional fields."""
        record = self.model_dump(by_alias=True, exclude_none=True)
        if not record.get("produtos"):
            record.pop("produtos", None)
        if not record.get("itens"):
            record.pop("itens", None)
        else:
            record["itens"] = [
                {k: v for k, v in item.items() if v not in (None, "")}
                for item in record["itens"]
            ]
        return record


class RowBlock(BaseModel):
    """One unit of raw page content supplied by the snapshot accessor."""

    cells: list[str] = Field(default_factory=list)
    structural_id: Optional[str] = None
    product_codes: list[str] = Field(default_factory=list)
    items: list[SaleItem] = Field(default_factory=list)
    meta: dict[str, str] = Field(default_factory=dict)


@dataclass
class RowFields:
    """Semantic fields recovered from one row block by the classifier."""

    product_code: str = ""
    produto: str = ""
    valor: str = ""
    pedido_numero: str = ""
    cliente: str = ""
    data_hora: str = ""

    def is_empty(self) -> bool:
        return not (
            self.product_code
            or self.produto
            or self.valor
            or self.pedido_numero
            or self.cliente
            or self.data_hora
        )


def unique_codes(codes) -> list[str]:
    """Trim, drop empties and deduplicate while keeping first-seen order."""
    seen: dict[str, None] = {}
    for code in codes or []:
        code = str(code).strip()
        if code:
            seen.setdefault(code, None)
    return list(seen)
