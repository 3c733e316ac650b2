"""
Catalog Feed Sync - Product Transformer
Applies business rules (stock/price filtering, category mapping, markup,
slugs) to turn raw feed records into canonical storefront products.
"""

import logging
import math
import re
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Optional, Set, Tuple

from .models import (
    CanonicalProduct,
    CategoryMapConfig,
    MarkupConfig,
    MarkupRule,
    RawFeedRecord,
    TransformStats,
)

logger = logging.getLogger(__name__)


EXCERPT_LENGTH = 200
EXCERPT_MARKER = "..."

# Latin lowercase, digits, the Greek and Coptic block, whitespace, hyphen
_SLUG_STRIP = re.compile(r"[^a-z0-9\u0370-\u03ff\s-]")
_SLUG_SEPARATORS = re.compile(r"[\s-]+")
_URL_SCHEME = re.compile(r"^[a-z][a-z0-9+.\-]*://", re.IGNORECASE)

# Skip reasons, in the order they are checked
SKIP_OUT_OF_STOCK = "out_of_stock"
SKIP_MISSING_IDENTITY = "missing_identity"
SKIP_INVALID_PRICE = "invalid_price"
SKIP_DUPLICATE_SKU = "duplicate_sku"


# =============================================================================
# PURE HELPERS
# =============================================================================

def create_slug(text: str) -> str:
    """
    Create a URL-safe slug (keeps Greek characters).

    Examples:
        "Garden Chair  (Teak)"  -> "garden-chair-teak"
        "Καρέκλα Κήπου - Μαύρη" -> "καρέκλα-κήπου-μαύρη"
    """
    slug = _SLUG_STRIP.sub("", (text or "").lower())
    slug = _SLUG_SEPARATORS.sub("-", slug)
    return slug.strip("-")


def map_categories(raw_categories: List[str], config: CategoryMapConfig) -> List[str]:
    """
    Translate vendor categories into site categories.

    Exclusion wins over mapping; a mapping target of None drops the label;
    unmapped labels are kept verbatim only when passthrough is on. Output is
    de-duplicated in first-seen order.
    """
    excluded = set(config.exclude_categories)
    mapped: List[str] = []

    for category in raw_categories:
        if category in excluded:
            continue

        if category in config.mapping:
            target = config.mapping[category]
        elif config.passthrough:
            target = category
        else:
            target = None

        if target is not None and target not in mapped:
            mapped.append(target)

    return mapped


def resolve_markup_rule(raw_categories: List[str], config: MarkupConfig) -> MarkupRule:
    """First RAW category with an override wins, else the default rule."""
    for category in raw_categories:
        rule = config.category_overrides.get(category)
        if rule is not None:
            return rule
    return config.default


def apply_markup(amount: float, rule: MarkupRule) -> float:
    """Multiply and round half-up to ``rule.round_to`` decimal places."""
    exponent = Decimal(1).scaleb(-rule.round_to)
    value = Decimal(str(amount)) * Decimal(str(rule.multiplier))
    return float(value.quantize(exponent, rounding=ROUND_HALF_UP))


def build_description(description: str, comments: str) -> str:
    if comments:
        return f"{description}\n\n{comments}"
    return description


def build_excerpt(description: str) -> str:
    if len(description) > EXCERPT_LENGTH:
        return description[:EXCERPT_LENGTH] + EXCERPT_MARKER
    return description


def normalize_image_key(url: str) -> str:
    """Dedup key for an image URL: protocol and query string removed."""
    key = _URL_SCHEME.sub("", url.strip())
    return key.split("?", 1)[0]


def extract_images(record: RawFeedRecord) -> List[str]:
    """Primary photo first, then auxiliary photos, de-duplicated by normalized URL."""
    images: List[str] = []
    seen: Set[str] = set()

    candidates = ([record.photo] if record.photo else []) + list(record.photos)
    for url in candidates:
        if not url:
            continue
        key = normalize_image_key(url)
        if key in seen:
            continue
        seen.add(key)
        images.append(url)

    return images


def assign_unique_slug(slug: str, used: Set[str], counters: Dict[str, int]) -> str:
    """
    Resolve a slug collision against the slugs already emitted.

    The first product keeps the bare slug; later ones get ``-2``, ``-3``...
    using a counter scoped to that base slug.
    """
    if slug not in used:
        counters.setdefault(slug, 1)
        used.add(slug)
        return slug

    count = counters.get(slug, 1)
    candidate = slug
    while candidate in used:
        count += 1
        candidate = f"{slug}-{count}"
    counters[slug] = count
    used.add(candidate)
    return candidate


# =============================================================================
# TRANSFORMER
# =============================================================================

class ProductTransformer:
    """
    Converts RawFeedRecord -> CanonicalProduct.

    Records are dropped (not flagged) when they are out of stock, have no
    name/sku, or have no positive retail price.
    """

    def __init__(
        self,
        markup: MarkupConfig,
        categories: CategoryMapConfig,
        id_prefix: str = "liberta",
    ):
        self.markup = markup
        self.categories = categories
        self.id_prefix = id_prefix

    def product_id(self, sku: str) -> str:
        return f"{self.id_prefix}-{sku}"

    def skip_reason(self, record: RawFeedRecord) -> Optional[str]:
        """Return why a record would be skipped, or None if it is valid."""
        if record.quantity <= 0:
            return SKIP_OUT_OF_STOCK
        if not record.name or not record.sku:
            return SKIP_MISSING_IDENTITY
        if record.retail_price <= 0:
            return SKIP_INVALID_PRICE
        return None

    def transform(self, record: RawFeedRecord) -> Optional[CanonicalProduct]:
        """
        Transform a single record.

        Returns:
            CanonicalProduct, or None if the record is skipped. The slug is
            the bare slug; batch-level collisions are handled by
            transform_all().
        """
        if self.skip_reason(record):
            return None

        mapped_categories = map_categories(record.categories, self.categories)
        rule = resolve_markup_rule(record.categories, self.markup)

        price = apply_markup(record.retail_price, rule)
        if not math.isfinite(price) or price <= 0:
            return None
        sale_price = self._sale_price(record, rule, price)

        description = build_description(record.description, record.comments)

        return CanonicalProduct(
            id=self.product_id(record.sku),
            title=record.name,
            slug=create_slug(record.name) or create_slug(record.sku),
            description=description,
            excerpt=build_excerpt(record.description),
            price=price,
            sale_price=sale_price,
            images=extract_images(record),
            categories=mapped_categories,
            color=record.color,
            dimensions=record.dimensions,
            material=record.material,
            in_stock=True,
            stock=record.quantity,
        )

    def _sale_price(
        self, record: RawFeedRecord, rule: MarkupRule, price: float
    ) -> Optional[float]:
        """Vendor discount is honoured only when it is really below list price."""
        if not self.markup.sale_rules.use_discounted_price:
            return None

        discounted = record.discounted_price
        if discounted is None or discounted <= 0 or discounted >= record.retail_price:
            return None

        sale_price = apply_markup(discounted, rule)
        # Rounding can collapse a tiny discount onto the list price
        if sale_price >= price:
            return None
        return sale_price

    def transform_all(
        self, records: List[RawFeedRecord]
    ) -> Tuple[List[CanonicalProduct], TransformStats]:
        """
        Transform a whole batch, resolving slug collisions in encounter order.

        A SKU that repeats within the feed keeps its first accepted record;
        later ones are counted as duplicate_sku.

        Returns:
            Tuple of (products, stats)
        """
        stats = TransformStats(total=len(records))
        products: List[CanonicalProduct] = []
        used_slugs: Set[str] = set()
        slug_counters: Dict[str, int] = {}
        seen_ids: Set[str] = set()

        for record in records:
            reason = self.skip_reason(record)
            if reason:
                setattr(stats, reason, getattr(stats, reason) + 1)
                logger.debug(f"SKU {record.sku or '?'}: skipped ({reason})")
                continue

            product = self.transform(record)
            if product is None:
                # Marked-up price rounded to zero or overflowed
                stats.invalid_price += 1
                continue
            if product.id in seen_ids:
                stats.duplicate_sku += 1
                logger.debug(f"SKU {record.sku}: skipped ({SKIP_DUPLICATE_SKU})")
                continue
            seen_ids.add(product.id)
            product.slug = assign_unique_slug(product.slug, used_slugs, slug_counters)
            products.append(product)

        stats.accepted = len(products)
        logger.info(
            f"Transformed {stats.accepted} valid in-stock products "
            f"({stats.skipped} skipped: {stats.out_of_stock} out of stock, "
            f"{stats.missing_identity} missing name/sku, {stats.invalid_price} invalid price, "
            f"{stats.duplicate_sku} duplicate sku)"
        )
        return products, stats
