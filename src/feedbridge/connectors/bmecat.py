"""
feedbridge BMEcat Connector — Import product data from BMEcat XML catalogs.

Supports BMEcat 2005 (PRODUCT / SUPPLIER_PID) and BMEcat 1.2
(ARTICLE / SUPPLIER_AID) exports, as used in German B2B e-commerce.

The catalog is parsed with BeautifulSoup's lenient html.parser so that
truncated or slightly malformed exports still load: entities and CDATA
are decoded, unclosed tags are closed at their parent, and tag names are
matched case-insensitively.
"""

import os
import warnings
from typing import Any, Dict, List, Optional, Sequence

from bs4 import BeautifulSoup, XMLParsedAsHTMLWarning

from .base import BaseConnector, register_connector
from ..core.schema import FieldMapping, FieldType, Schema, SchemaField, SyncResult
from ..errors import ConnectorConnectionError
from ..utils.logger import get_logger

logger = get_logger(__name__)

CATALOG_INFO_TAGS = {
    "catalog_id": "CATALOG_ID",
    "catalog_version": "CATALOG_VERSION",
    "catalog_name": "CATALOG_NAME",
    "supplier_name": "SUPPLIER_NAME",
    "generation_date": "GENERATION_DATE",
}

# (product element, supplier id element, price element) per format version
PRODUCT_LAYOUTS = (
    ("PRODUCT", "SUPPLIER_PID", "PRODUCT_PRICE"),
    ("ARTICLE", "SUPPLIER_AID", "ARTICLE_PRICE"),
)

DEFAULT_CURRENCY = "EUR"
DEFAULT_MIME_TYPE = "image/jpeg"


def _text(element, tag: str) -> Optional[str]:
    """Stripped text of the first `tag` below `element`; None when empty."""
    found = element.find(tag.lower())
    if found is None:
        return None
    value = found.get_text().strip()
    return value or None


def _parse_amount(raw: Optional[str]) -> Optional[float]:
    if raw is None:
        return None
    text = raw.strip()
    if text.count(",") == 1 and "." not in text:
        text = text.replace(",", ".")
    try:
        return float(text)
    except ValueError:
        return None


def _features(product) -> List[Dict[str, Any]]:
    features = []
    for feature in product.find_all("feature"):
        name = _text(feature, "FNAME")
        value = _text(feature, "FVALUE")
        if name and value:
            features.append({"name": name, "value": value, "unit": _text(feature, "FUNIT")})
    return features


def _prices(product, price_tag: str) -> List[Dict[str, Any]]:
    prices = []
    for price in product.find_all(price_tag.lower()):
        amount = _parse_amount(_text(price, "PRICE_AMOUNT"))
        if amount is None:
            continue
        prices.append({
            "price_type": "net",
            "price_amount": amount,
            "price_currency": _text(price, "PRICE_CURRENCY") or DEFAULT_CURRENCY,
        })
    return prices


def _mime_info(product) -> List[Dict[str, Any]]:
    mimes = []
    for mime in product.find_all("mime"):
        source = _text(mime, "MIME_SOURCE")
        if source:
            mimes.append({
                "mime_type": _text(mime, "MIME_TYPE") or DEFAULT_MIME_TYPE,
                "mime_source": source,
                "mime_descr": _text(mime, "MIME_DESCR"),
            })
    return mimes


def parse_bmecat(markup: str | bytes, encoding: Optional[str] = None) -> tuple[Dict[str, Any], List[Dict[str, Any]]]:
    """Parse a BMEcat document into (catalog_info, products).

    Products without a supplier id are dropped.
    """
    with warnings.catch_warnings():
        warnings.filterwarnings("ignore", category=XMLParsedAsHTMLWarning)
        soup = BeautifulSoup(markup, "html.parser", from_encoding=encoding if isinstance(markup, bytes) else None)

    catalog_info = {key: _text(soup, tag) for key, tag in CATALOG_INFO_TAGS.items()}

    products = []
    for product_tag, pid_tag, price_tag in PRODUCT_LAYOUTS:
        for element in soup.find_all(product_tag.lower()):
            supplier_pid = _text(element, pid_tag)
            if not supplier_pid:
                continue
            products.append({
                "supplier_pid": supplier_pid,
                "description_short": _text(element, "DESCRIPTION_SHORT") or "",
                "description_long": _text(element, "DESCRIPTION_LONG"),
                "manufacturer_pid": _text(element, "MANUFACTURER_PID") or _text(element, "MANUFACTURER_AID"),
                "manufacturer_name": _text(element, "MANUFACTURER_NAME"),
                "ean": _text(element, "EAN") or _text(element, "INTERNATIONAL_PID"),
                "keywords": [k.get_text().strip() for k in element.find_all("keyword") if k.get_text().strip()],
                "category": _text(element, "CATALOG_GROUP_ID"),
                "features": _features(element),
                "prices": _prices(element, price_tag),
                "mime_info": _mime_info(element),
            })

    return catalog_info, products


# Fixed field list; (name, type, nullable)
PRODUCT_FIELDS = (
    ("supplier_pid", FieldType.STRING, False),
    ("description_short", FieldType.STRING, False),
    ("description_long", FieldType.STRING, True),
    ("manufacturer_pid", FieldType.STRING, True),
    ("manufacturer_name", FieldType.STRING, True),
    ("ean", FieldType.STRING, True),
    ("keywords", FieldType.ARRAY, True),
    ("category", FieldType.STRING, True),
    ("features", FieldType.ARRAY, True),
    ("prices", FieldType.ARRAY, True),
    ("mime_info", FieldType.ARRAY, True),
)


class BMEcatConnector(BaseConnector):
    """Connector for BMEcat XML catalog files.

    Config:
        filePath: Path to the catalog XML (required).
        encoding: Override the encoding declared in the XML prolog.

    Example:
        >>> connector = BMEcatConnector("bosch-catalog", "Bosch Product Catalog")
        >>> connector.connect({"filePath": "./Bosch_ETIM10_BMEcat2.xml"})
        >>> connector.preview(10)
    """

    def __init__(self, id: str, name: str):
        super().__init__(id, name)
        self.file_path = ""
        self.products: List[Dict[str, Any]] = []
        self.catalog_info: Dict[str, Any] = {}

    def connect(self, config: Dict[str, Any]) -> None:
        self._require(config, "filePath")
        self.config = dict(config)
        self.file_path = os.path.expanduser(config["filePath"])
        self.connected = False

        if not os.path.isfile(self.file_path):
            raise ConnectorConnectionError(f"Catalog file not found: {self.file_path}")

        try:
            with open(self.file_path, "rb") as f:
                content = f.read()
        except OSError as e:
            raise ConnectorConnectionError(f"Cannot read {self.file_path}: {e}") from e

        self.catalog_info, self.products = parse_bmecat(content, config.get("encoding"))
        self.connected = True
        logger.info(
            "connector.connected",
            connector_id=self.id,
            file=self.file_path,
            catalog_id=self.catalog_info.get("catalog_id"),
            records=len(self.products),
        )

    def disconnect(self) -> None:
        self.products = []
        self.catalog_info = {}
        self.connected = False

    def test_connection(self) -> bool:
        return bool(self.file_path) and os.path.isfile(self.file_path)

    def get_catalog_info(self) -> Dict[str, Any]:
        """Catalog-level metadata from the document header."""
        return dict(self.catalog_info)

    def get_schema(self) -> Schema:
        self.ensure_connected()
        first = self.products[0] if self.products else {}
        fields = []
        for name, field_type, nullable in PRODUCT_FIELDS:
            fields.append(SchemaField(
                name=name,
                type=field_type,
                nullable=nullable,
                sample=first.get(name) if not nullable else None,
            ))
        return Schema(fields=fields)

    def preview(self, limit: int = 10) -> List[Dict[str, Any]]:
        self.ensure_connected()
        return [dict(p) for p in self.products[:max(limit, 0)]]

    def sync(self, mapping: Sequence[FieldMapping]) -> SyncResult:
        self.ensure_connected()
        return self._run_sync(self.products, mapping)


# Register this connector
register_connector(
    "bmecat",
    BMEcatConnector,
    label="BMEcat Catalog",
    description="BMEcat 1.2 / 2005 XML product catalog",
)
