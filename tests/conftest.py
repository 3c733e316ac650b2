"""
Catalog Feed Sync - Test Fixtures
Shared fixtures for pytest tests.
"""

import json
from pathlib import Path
from typing import Dict, List
from xml.sax.saxutils import escape

import httpx
import pytest

# Add project root to path
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from config.settings import Settings
from feedsync.fetcher import FeedFetcher
from feedsync.models import CategoryMapConfig, MarkupConfig, RawFeedRecord


FEED_URL = "https://vendor.test/export/products.xml"


# =============================================================================
# POLICY FIXTURES
# =============================================================================

@pytest.fixture
def markup_dict() -> dict:
    return {
        "default": {"multiplier": 1.2, "roundTo": 2},
        "categoryOverrides": {
            "Garden Furniture": {"multiplier": 1.5, "roundTo": 2},
            "Lighting": {"multiplier": 2.0, "roundTo": 0},
        },
        "saleRules": {"useDiscountedPrice": True},
    }


@pytest.fixture
def category_dict() -> dict:
    return {
        "mapping": {
            "Garden Furniture": "Garden",
            "Chairs": "Seating",
            "Stools": "Seating",
            "Offers": None,
            "Showroom": "Garden",
        },
        "excludeCategories": ["Showroom", "B2B Only"],
        "passthrough": True,
    }


@pytest.fixture
def markup_config(markup_dict) -> MarkupConfig:
    return MarkupConfig.model_validate(markup_dict)


@pytest.fixture
def category_config(category_dict) -> CategoryMapConfig:
    return CategoryMapConfig.model_validate(category_dict)


# =============================================================================
# FEED FIXTURES
# =============================================================================

def _product_xml(product: Dict) -> str:
    parts = ["<product>"]
    for key, value in product.items():
        if isinstance(value, list):
            items = "".join(f"<item>{escape(str(v))}</item>" for v in value)
            parts.append(f"<{key}>{items}</{key}>")
        elif value is None:
            parts.append(f"<{key}/>")
        else:
            parts.append(f"<{key}>{escape(str(value))}</{key}>")
    parts.append("</product>")
    return "".join(parts)


@pytest.fixture
def build_feed():
    """Return a callable that renders product dicts as a vendor XML feed."""
    def _build(products: List[Dict]) -> bytes:
        body = "\n".join(_product_xml(p) for p in products)
        xml = f'<?xml version="1.0" encoding="UTF-8"?>\n<products>\n{body}\n</products>\n'
        return xml.encode("utf-8")
    return _build


@pytest.fixture
def feed_products() -> List[Dict]:
    """Three sellable products and one out-of-stock product."""
    return [
        {
            "sku": "1001",
            "name": "Teak Garden Chair",
            "quantity": "12",
            "retail-price": "100.00",
            "discounted-price": "80.00",
            "categories": ["Garden Furniture", "Chairs"],
            "photo": "https://cdn.vendor.test/1001/main.jpg",
            "photos": ["http://cdn.vendor.test/1001/main.jpg?v=2", "https://cdn.vendor.test/1001/side.jpg"],
            "description": "Solid teak chair.",
            "comments": "Assembly required.",
            "color": "Natural",
            "material": "Teak",
        },
        {
            "sku": "1002",
            "name": "Bar Stool",
            "quantity": "3",
            "retail-price": "40.00",
            "categories": ["Stools"],
            "photo": "https://cdn.vendor.test/1002/main.jpg",
            "description": "Metal bar stool.",
        },
        {
            "sku": "1003",
            "name": "Ceiling Lamp",
            "quantity": "5",
            "retail-price": "30.25",
            "categories": ["Lighting"],
            "description": "Pendant lamp.",
        },
        {
            "sku": "1004",
            "name": "Sold Out Table",
            "quantity": "0",
            "retail-price": "250.00",
            "categories": ["Garden Furniture"],
        },
    ]


@pytest.fixture
def feed_bytes(build_feed, feed_products) -> bytes:
    return build_feed(feed_products)


@pytest.fixture
def make_record():
    """Build a RawFeedRecord with sensible defaults."""
    def _make(**overrides) -> RawFeedRecord:
        data = {
            "sku": "2001",
            "name": "Test Product",
            "quantity": 5,
            "retail_price": 100.0,
            "categories": [],
            "description": "A product.",
        }
        data.update(overrides)
        return RawFeedRecord(**data)
    return _make


# =============================================================================
# HTTP / SETTINGS FIXTURES
# =============================================================================

@pytest.fixture
def make_fetcher():
    """Return a callable building a FeedFetcher backed by httpx.MockTransport."""
    def _make(body: bytes = b"", status_code: int = 200, exc: Exception = None) -> FeedFetcher:
        def handler(request: httpx.Request) -> httpx.Response:
            if exc is not None:
                raise exc
            return httpx.Response(status_code, content=body)
        client = httpx.Client(transport=httpx.MockTransport(handler))
        return FeedFetcher(FEED_URL, client=client)
    return _make


@pytest.fixture
def policy_files(tmp_path, markup_dict, category_dict) -> Dict[str, Path]:
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    markup_path = config_dir / "markup.json"
    category_path = config_dir / "category-map.json"
    markup_path.write_text(json.dumps(markup_dict), encoding="utf-8")
    category_path.write_text(json.dumps(category_dict), encoding="utf-8")
    return {"markup": markup_path, "category_map": category_path}


@pytest.fixture
def sync_settings(tmp_path, policy_files) -> Settings:
    """Settings pointing every path into tmp_path."""
    return Settings(
        _env_file=None,
        liberta_feed_url=FEED_URL,
        markup_path=policy_files["markup"],
        category_map_path=policy_files["category_map"],
        state_path=tmp_path / "data" / "last-sync.json",
        history_path=tmp_path / "public" / "sync-history.json",
        catalog_path=tmp_path / "public" / "products.json",
        discord_webhook_url=None,
        dry_run=False,
    )
