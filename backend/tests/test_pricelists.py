"""
Tests for the PDF price-list catalog.
"""

import json

from services.pricelists import PriceListService


class TestCatalog:
    """In-memory lookups."""

    def test_count(self, pricelist_service):
        assert pricelist_service.count == 3

    def test_list_all(self, pricelist_service):
        listed = pricelist_service.list_available_pricelists()
        assert {p.brand for p in listed.pricelists} == {"kei", "polycab"}

    def test_list_filtered(self, pricelist_service):
        listed = pricelist_service.list_available_pricelists("KEI")
        assert [p.pdf_path for p in listed.pricelists] == [
            "data/pricelists/kei_lt_armoured_latest.pdf",
            "data/pricelists/kei_flexible_latest.pdf",
        ]

    def test_list_unknown_brand(self, pricelist_service):
        assert pricelist_service.list_available_pricelists("havells").pricelists == []

    def test_find_by_keyword(self, pricelist_service):
        assert pricelist_service.find_pricelist("kei", ["House Wire"]) == "data/pricelists/kei_flexible_latest.pdf"
        assert pricelist_service.find_pricelist("polycab", ["current"]) == "data/pricelists/polycab_current.pdf"

    def test_find_no_match(self, pricelist_service):
        assert pricelist_service.find_pricelist("kei", ["solar"]) is None


class TestLoading:
    """Catalog file loading."""

    def test_from_file(self, tmp_path):
        path = tmp_path / "pdf_pricelists.json"
        path.write_text(json.dumps([{"pdf_path": "a.pdf", "brand": "kei", "keywords": ["latest"]}]), encoding="utf-8")
        assert PriceListService.from_file(path).count == 1

    def test_missing_file(self, tmp_path):
        assert PriceListService.from_file(tmp_path / "missing.json").count == 0

    def test_invalid_file(self, tmp_path):
        path = tmp_path / "pdf_pricelists.json"
        path.write_text(json.dumps([{"brand": "kei"}]), encoding="utf-8")
        assert PriceListService.from_file(path).count == 0

    def test_shipped_catalog_loads(self):
        """The catalog shipped with the backend is valid."""
        from config import BACKEND_DIR

        assert PriceListService.from_file(BACKEND_DIR / "data" / "pdf_pricelists.json").count > 0
