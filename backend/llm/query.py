"""
Structured queries produced by query understanding.

Tool input models double as JSON Schema sources: ``model_json_schema()`` of
QuotationRequest / PriceOnlyRequest is what the providers advertise as the
tool input schema, so field descriptions here are read by the model.

Product variants are externally tagged, one key per level:

    {"Cable": {"PowerControl": {"LT": {"conductor": "Copper", ...}}}}
"""

from enum import Enum
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, model_serializer, model_validator


class Conductor(str, Enum):
    """Conductor material. "Cu" means Copper, "Al" means Aluminium."""

    COPPER = "Copper"
    ALUMINIUM = "Aluminium"


class FlexibleType(str, Enum):
    FR = "FR"
    FRLSH = "FRLSH"
    HRFR = "HRFR"
    ZHFR = "ZHFR"


class CoaxialType(str, Enum):
    RG6 = "RG6"
    RG11 = "RG11"
    RG59 = "RG59"


class SolarType(str, Enum):
    BS = "BS"
    EN = "EN"


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, serialize_by_alias=True)


class _OneOf(_Frozen):
    """Externally tagged variant holder: exactly one field must be set.

    Fields are declared lower-case with the variant name as alias; the
    alias is the wire key.
    """

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        serialize_by_alias=True,
        json_schema_extra={"minProperties": 1, "maxProperties": 1},
    )

    @model_validator(mode="after")
    def _exactly_one(self):
        fields = type(self).model_fields
        chosen = [info.alias or name for name, info in fields.items() if getattr(self, name) is not None]
        if len(chosen) != 1:
            expected = sorted(info.alias or name for name, info in fields.items())
            raise ValueError(f"{type(self).__name__} needs exactly one of {expected}, got {chosen or 'none'}")
        return self

    @model_serializer(mode="wrap")
    def _tagged(self, handler):
        return {key: value for key, value in handler(self).items() if value is not None}

    def _chosen(self) -> str:
        for name in type(self).model_fields:
            if getattr(self, name) is not None:
                return name
        raise AssertionError("validated model has no variant")

    @property
    def variant(self) -> str:
        """Wire name of the variant that is set."""
        name = self._chosen()
        return type(self).model_fields[name].alias or name

    @property
    def inner(self):
        return getattr(self, self._chosen())


class LT(_Frozen):
    """Armoured / unarmoured low-tension cable."""

    conductor: Conductor
    core_size: str = Field(description='Core size eg. "3"')
    sqmm: str
    armoured: bool = Field(strict=True)

    def describe(self) -> str:
        kind = "armoured" if self.armoured else "unarmoured"
        return f"{self.core_size}C x {self.sqmm} sqmm {self.conductor.value} {kind} LT cable"


class HT(_Frozen):
    """High-tension cable, voltage grade above 1.1 KV."""

    conductor: Conductor
    voltage_grade: str
    core_size: str
    sqmm: str

    def describe(self) -> str:
        return f"{self.core_size}C x {self.sqmm} sqmm {self.conductor.value} {self.voltage_grade} HT cable"


class Flexible(_Frozen):
    core_size: str = Field(description='Core size eg. "3"')
    sqmm: str
    flexible_type: FlexibleType = Field(
        description='Type of flexible cable eg. "FR" / "FRLSH" - do not apply any loading for flexible cables'
    )

    def describe(self) -> str:
        return f"{self.core_size}C x {self.sqmm} sqmm {self.flexible_type.value} flexible cable"


class Telephone(_Frozen):
    pair_size: str
    conductor_mm: str

    def describe(self) -> str:
        return f"{self.pair_size} pair x {self.conductor_mm} mm telephone cable"


class Submersible(_Frozen):
    core_size: str
    sqmm: str

    def describe(self) -> str:
        return f"{self.core_size}C x {self.sqmm} sqmm submersible cable"


class Solar(_Frozen):
    solar_type: SolarType
    sqmm: str

    def describe(self) -> str:
        return f"{self.sqmm} sqmm {self.solar_type.value} solar cable"


class PowerControl(_OneOf):
    lt: Optional[LT] = Field(
        default=None, alias="LT", description="For armoured/unarmoured cables - use this variant"
    )
    ht: Optional[HT] = Field(
        default=None, alias="HT", description="For HT cables with voltages more than 1.1 KV use this variant"
    )
    flexible: Optional[Flexible] = Field(
        default=None, alias="Flexible", description="For all kinds of flexible cables use this"
    )

    def describe(self) -> str:
        return self.inner.describe()


class Cable(_OneOf):
    power_control: Optional[PowerControl] = Field(
        default=None,
        alias="PowerControl",
        description="Use this variant for armoured / unarmoured / flexible cables",
    )
    telephone: Optional[Telephone] = Field(
        default=None, alias="Telephone", description="Use this variant for telephone cables"
    )
    coaxial: Optional[CoaxialType] = Field(default=None, alias="Coaxial")
    submersible: Optional[Submersible] = Field(default=None, alias="Submersible")
    solar: Optional[Solar] = Field(default=None, alias="Solar")

    def describe(self) -> str:
        if self.coaxial is not None:
            return f"{self.coaxial.value} coaxial cable"
        return self.inner.describe()


class Product(_OneOf):
    cable: Optional[Cable] = Field(default=None, alias="Cable")

    def describe(self) -> str:
        return self.inner.describe()


class QuoteItem(_Frozen):
    product: Product = Field(description="Specific electrical product for which quotation is required")
    brand: str = Field(description="Brand name for product")
    tag: str = Field(description="Selects which pricelist to use for pricing the item")
    discount: float = Field(strict=True, description="in percentage eg. 0.70 means 70%")
    loading_frls: float = Field(
        strict=True,
        description="in percentage eg. 0.03 means 3% - applicable only for LT/HT cable types",
    )
    loading_pvc: float = Field(
        strict=True,
        description="in percentage eg. 0.05 means 5%, - applicable only for LT/HT cable types",
    )
    quantity: float = Field(strict=True, description="Quantity required")
    user_base_price: Optional[float] = Field(
        default=None,
        strict=True,
        description="Final price that can optionally be provided by the user - If provided, skip price lookup",
    )
    markup: Optional[float] = Field(
        default=None,
        strict=True,
        description="Optional - Apply markup/margin, if given, to user_base_price (eg. 0.015 means 1.5%)",
    )


class QuotationRequest(_Frozen):
    items: List[QuoteItem] = Field(description="List of items for which quotation is required")
    delivery_charges: float = Field(strict=True, description="Delivery charges, if provided by user, defaults to 0")
    to: Optional[List[str]] = Field(
        default=None, description="Optional addressee for the quotation/proforma invoice"
    )
    terms_and_conditions: Optional[List[str]] = Field(
        default=None, description="Optional terms and conditions for the quotation/proforma invoice"
    )


class PriceOnlyItem(_Frozen):
    product: Product
    brand: str = "kei"
    tag: str = "latest"
    discount: float = Field(default=0.0, strict=True)
    quantity: Optional[float] = Field(default=None, strict=True)
    loading_frls: float = Field(default=0.0, strict=True)
    loading_pvc: float = Field(default=0.0, strict=True)


class PriceOnlyRequest(_Frozen):
    items: List[PriceOnlyItem]


def _describe_items(items) -> str:
    parts = []
    for item in items:
        text = f"{item.brand} {item.product.describe()}"
        if item.quantity is not None:
            text += f" x {item.quantity:g}"
        parts.append(text)
    return "; ".join(parts)


# =============================================================================
# QUERY VARIANTS
# =============================================================================


class MetalPricing(_Frozen):
    kind: Literal["MetalPricing"] = "MetalPricing"

    def summary(self) -> str:
        return "Current MCX metal prices for copper and aluminium"


class GetPriceList(_Frozen):
    kind: Literal["GetPriceList"] = "GetPriceList"
    brand: str = "kei"
    keywords: List[str]

    def summary(self) -> str:
        return f"Price list for {self.brand} matching {', '.join(self.keywords) or 'any keyword'}"


class GetQuotation(_Frozen):
    kind: Literal["GetQuotation"] = "GetQuotation"
    request: QuotationRequest

    def summary(self) -> str:
        return f"Quotation for {_describe_items(self.request.items)}"


class GetProformaInvoice(_Frozen):
    kind: Literal["GetProformaInvoice"] = "GetProformaInvoice"
    request: QuotationRequest

    def summary(self) -> str:
        return f"Proforma invoice for {_describe_items(self.request.items)}"


class GetPricesOnly(_Frozen):
    kind: Literal["GetPricesOnly"] = "GetPricesOnly"
    request: PriceOnlyRequest

    def summary(self) -> str:
        return f"Prices for {_describe_items(self.request.items)}"


class GetStock(_Frozen):
    kind: Literal["GetStock"] = "GetStock"
    query: str

    def summary(self) -> str:
        return f"Stock availability for {self.query}"


class ListAvailablePricelists(_Frozen):
    kind: Literal["ListAvailablePricelists"] = "ListAvailablePricelists"
    brand: Optional[str] = None

    def summary(self) -> str:
        return f"List of available {self.brand} price lists" if self.brand else "List of available price lists"


class UnsupportedQuery(_Frozen):
    kind: Literal["UnsupportedQuery"] = "UnsupportedQuery"

    def summary(self) -> str:
        return "Unsupported query"


Query = Annotated[
    Union[
        MetalPricing,
        GetPriceList,
        GetQuotation,
        GetProformaInvoice,
        GetPricesOnly,
        GetStock,
        ListAvailablePricelists,
        UnsupportedQuery,
    ],
    Field(discriminator="kind"),
]

query_adapter = TypeAdapter(Query)
