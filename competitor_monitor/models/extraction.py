"""
Structured extraction models.

Extraction produces three fixed record kinds. Each kind is a dataclass with
explicit optional fields; ``ExtractedData.from_dict`` validates untrusted
LLM output into these shapes.
"""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class RecordKind(Enum):
    """Kinds of records carried by an extraction result."""

    PRICE = "prices"
    PROMOTION = "promotions"
    MENU_ITEM = "menu_items"


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


def _required_str(entry: Dict[str, Any], key: str, kind: RecordKind) -> str:
    value = entry.get(key)
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        raise ValueError(f"{kind.value} entry field '{key}' must be a scalar")
    return str(value)


@dataclass
class PriceEntry:
    """A priced item observed on a page."""

    item: str
    price: str
    currency: Optional[str] = None
    category: Optional[str] = None

    kind = RecordKind.PRICE

    @classmethod
    def from_dict(cls, entry: Dict[str, Any]) -> "PriceEntry":
        return cls(
            item=_required_str(entry, "item", cls.kind),
            price=_required_str(entry, "price", cls.kind),
            currency=_optional_str(entry.get("currency")),
            category=_optional_str(entry.get("category")),
        )


@dataclass
class Promotion:
    """A promotion or offer observed on a page."""

    title: str
    description: str
    discount: Optional[str] = None
    valid_until: Optional[str] = None

    kind = RecordKind.PROMOTION

    @classmethod
    def from_dict(cls, entry: Dict[str, Any]) -> "Promotion":
        valid_until = entry.get("valid_until", entry.get("validUntil"))
        return cls(
            title=_required_str(entry, "title", cls.kind),
            description=_required_str(entry, "description", cls.kind),
            discount=_optional_str(entry.get("discount")),
            valid_until=_optional_str(valid_until),
        )


@dataclass
class MenuItem:
    """A menu item, product or service listing."""

    name: str
    category: Optional[str] = None
    price: Optional[str] = None
    description: Optional[str] = None

    kind = RecordKind.MENU_ITEM

    @classmethod
    def from_dict(cls, entry: Dict[str, Any]) -> "MenuItem":
        return cls(
            name=_required_str(entry, "name", cls.kind),
            category=_optional_str(entry.get("category")),
            price=_optional_str(entry.get("price")),
            description=_optional_str(entry.get("description")),
        )


_RECORD_TYPES = {
    RecordKind.PRICE: PriceEntry,
    RecordKind.PROMOTION: Promotion,
    RecordKind.MENU_ITEM: MenuItem,
}


@dataclass
class ExtractedData:
    """Structured business data extracted from one page."""

    prices: List[PriceEntry] = field(default_factory=list)
    promotions: List[Promotion] = field(default_factory=list)
    menu_items: List[MenuItem] = field(default_factory=list)
    raw_text: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any) -> "ExtractedData":
        """Validate a decoded JSON payload into an ExtractedData.

        Missing or null arrays default to empty lists. Anything that is not
        an object at the top level, or a non-list array field, raises
        ValueError.
        """
        if not isinstance(data, dict):
            raise ValueError(
                f"Extraction result must be a JSON object, got {type(data).__name__}"
            )

        records: Dict[RecordKind, list] = {}
        for kind, record_type in _RECORD_TYPES.items():
            entries = data.get(kind.value)
            if entries is None:
                records[kind] = []
                continue

            if not isinstance(entries, list):
                raise ValueError(f"'{kind.value}' must be a list")

            parsed = []
            for entry in entries:
                if not isinstance(entry, dict):
                    raise ValueError(f"'{kind.value}' entries must be objects")
                parsed.append(record_type.from_dict(entry))
            records[kind] = parsed

        raw_text = data.get("raw_text")
        return cls(
            prices=records[RecordKind.PRICE],
            promotions=records[RecordKind.PROMOTION],
            menu_items=records[RecordKind.MENU_ITEM],
            raw_text=str(raw_text) if raw_text is not None else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to plain JSON-compatible data, omitting empty optionals."""
        result: Dict[str, Any] = {
            "prices": [_compact(asdict(p)) for p in self.prices],
            "promotions": [_compact(asdict(p)) for p in self.promotions],
            "menu_items": [_compact(asdict(m)) for m in self.menu_items],
        }
        if self.raw_text is not None:
            result["raw_text"] = self.raw_text
        return result

    def is_empty(self) -> bool:
        return not (self.prices or self.promotions or self.menu_items)


def _compact(record: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in record.items() if value is not None}
