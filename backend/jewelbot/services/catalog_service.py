# /jewelbot/services/catalog_service.py

import re
import logging
from pathlib import Path
from typing import Optional, List, Dict, Any, Tuple
from openpyxl import load_workbook

from jewelbot.config.settings import settings
from jewelbot.models.domain import ProductRecord
from jewelbot.utils.metrics import catalog_size_gauge

# This service loads the product spreadsheet once at startup and keeps the
# records in memory, in sheet order, for the rest of the process lifetime.

logger = logging.getLogger(__name__)

# Spreadsheet header (lower-cased) -> ProductRecord field
COLUMN_ALIASES: Dict[str, str] = {
    "jewel code": "code",
    "sku": "code",
    "code": "code",
    "category": "category",
    "product name": "category",
    "sub category": "sub_category",
    "sub-category": "sub_category",
    "subcategory": "sub_category",
    "collection": "collection",
    "style": "style",
    "purity": "purity",
    "sale price": "price",
    "price": "price",
    "gender": "gender",
    "gross weight": "gross_weight",
    "gross wt": "gross_weight",
    "net weight": "net_weight",
    "net wt": "net_weight",
    "stone weight": "stone_weight",
    "stone wt": "stone_weight",
    "dia wt": "stone_weight",
    "diamond weight": "stone_weight",
    "image url": "image_url",
    "image": "image_url",
}

NUMERIC_FIELDS = {"price", "gross_weight", "net_weight", "stone_weight"}


def parse_number(value: Any) -> Optional[float]:
    """Parses spreadsheet numbers such as 3000, '3,000' or '₹ 3000.50'."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    match = re.search(r"-?\d+(?:\.\d+)?", str(value).replace(",", ""))
    return float(match.group()) if match else None


def _clean_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    text = str(value).replace("\u00A0", " ").strip()
    return text or None


def _header_map(header_row: Tuple[Any, ...]) -> Dict[int, str]:
    """Maps column index -> record field, first matching column wins."""
    mapping: Dict[int, str] = {}
    taken = set()
    for idx, raw in enumerate(header_row):
        key = re.sub(r"\s+", " ", str(raw or "")).strip().lower()
        field_name = COLUMN_ALIASES.get(key)
        if field_name and field_name not in taken:
            mapping[idx] = field_name
            taken.add(field_name)
    return mapping


def _row_to_record(row: Tuple[Any, ...], mapping: Dict[int, str]) -> Optional[ProductRecord]:
    data: Dict[str, Any] = {}
    for idx, field_name in mapping.items():
        value = row[idx] if idx < len(row) else None
        data[field_name] = parse_number(value) if field_name in NUMERIC_FIELDS else _clean_text(value)
    if not data.get("code"):
        return None
    return ProductRecord(**data)


class CatalogService:
    def __init__(self, path: str):
        self.path = Path(path)
        self._products: List[ProductRecord] = []

    @property
    def products(self) -> List[ProductRecord]:
        return self._products

    def __len__(self) -> int:
        return len(self._products)

    def load(self) -> List[ProductRecord]:
        """
        Reads the workbook into memory. A missing or unreadable file yields an
        empty catalog so the service still starts and answers without products.
        """
        if not self.path.exists():
            logger.error(f"Catalog file not found at {self.path}. Starting with an empty catalog.")
            self._products = []
        else:
            try:
                self._products = self._read_workbook()
                logger.info(f"Loaded {len(self._products)} products from {self.path}.")
            except Exception as e:
                logger.error(f"Failed to read catalog {self.path}: {e}", exc_info=True)
                self._products = []
        catalog_size_gauge.set(len(self._products))
        return self._products

    def _read_workbook(self) -> List[ProductRecord]:
        wb = load_workbook(filename=str(self.path), read_only=True, data_only=True)
        try:
            sheets = wb.worksheets
            if not sheets:
                return []
            records = self._read_product_sheet(sheets[0])
            # An optional second sheet maps jewel codes to image links.
            if len(sheets) > 1:
                image_map = self._read_image_sheet(sheets[1])
                if image_map:
                    records = [
                        r if r.image_url or r.code not in image_map
                        else r.model_copy(update={"image_url": image_map[r.code]})
                        for r in records
                    ]
            return records
        finally:
            wb.close()

    def _read_product_sheet(self, ws) -> List[ProductRecord]:
        rows = ws.iter_rows(values_only=True)
        header = next(rows, None)
        if not header:
            return []
        mapping = _header_map(header)
        if "code" not in mapping.values():
            logger.error("Catalog sheet has no jewel code column. No products loaded.")
            return []

        records: List[ProductRecord] = []
        skipped = 0
        for row in rows:
            record = _row_to_record(row, mapping)
            if record is None:
                skipped += 1
                continue
            records.append(record)
        if skipped:
            logger.warning(f"Skipped {skipped} catalog rows without a jewel code.")
        return records

    def _read_image_sheet(self, ws) -> Dict[str, str]:
        rows = ws.iter_rows(values_only=True)
        header = next(rows, None)
        if not header:
            return {}
        mapping = _header_map(header)
        inverse = {field_name: idx for idx, field_name in mapping.items()}
        if "code" not in inverse or "image_url" not in inverse:
            return {}

        image_map: Dict[str, str] = {}
        for row in rows:
            code = _clean_text(row[inverse["code"]] if inverse["code"] < len(row) else None)
            url = _clean_text(row[inverse["image_url"]] if inverse["image_url"] < len(row) else None)
            if code and url:
                image_map[code] = url
        return image_map


# Globally accessible instance, loaded in the application lifespan
catalog_service = CatalogService(settings.catalog_path)
