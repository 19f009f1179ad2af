"""
PDF price-list catalog.

Loaded once at startup from a JSON list of ``{pdf_path, brand, keywords}``
entries. Backs the list_available_pricelists information tool.
"""

import json
import logging
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, ValidationError as PydanticValidationError

logger = logging.getLogger(__name__)


class PriceListInfo(BaseModel):
    brand: str
    pdf_path: str
    keywords: List[str]


class AvailablePricelists(BaseModel):
    pricelists: List[PriceListInfo]


class _CatalogEntry(BaseModel):
    pdf_path: str
    brand: str
    keywords: List[str] = []


class PriceListService:
    """In-memory price-list index keyed by lower-case brand."""

    def __init__(self, entries: Optional[List[dict]] = None):
        self._by_brand: Dict[str, List[_CatalogEntry]] = {}
        for raw in entries or []:
            entry = _CatalogEntry.model_validate(raw)
            self._by_brand.setdefault(entry.brand.lower(), []).append(entry)

    @classmethod
    def from_file(cls, path: str | Path) -> "PriceListService":
        """Load the catalog; a missing or unreadable file gives an empty catalog."""
        path = Path(path)
        if not path.exists():
            logger.warning(f"Price list catalog not found at {path}, starting empty")
            return cls()
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            service = cls(data)
        except (OSError, ValueError, TypeError, PydanticValidationError) as e:
            logger.warning(f"Price list catalog at {path} is invalid ({e}), starting empty")
            return cls()
        logger.info(f"Loaded {service.count} price lists for {len(service._by_brand)} brands")
        return service

    @property
    def count(self) -> int:
        return sum(len(entries) for entries in self._by_brand.values())

    def find_pricelist(self, brand: str, keywords: List[str]) -> Optional[str]:
        """First PDF of the brand sharing any keyword (case-insensitive)."""
        wanted = {k.lower() for k in keywords}
        for entry in self._by_brand.get(brand.lower(), []):
            if any(k.lower() in wanted for k in entry.keywords):
                return entry.pdf_path
        return None

    def list_available_pricelists(self, brand_filter: Optional[str] = None) -> AvailablePricelists:
        pricelists = []
        for brand, entries in self._by_brand.items():
            if brand_filter and brand != brand_filter.lower():
                continue
            for entry in entries:
                pricelists.append(PriceListInfo(brand=brand, pdf_path=entry.pdf_path, keywords=list(entry.keywords)))
        return AvailablePricelists(pricelists=pricelists)
