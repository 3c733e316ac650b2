"""
Catalog Feed Sync - Delta Engine
Content-hash change detection between successive feed ingestions.
"""

import json
import logging
from hashlib import md5
from typing import Dict, List, Tuple

from .models import CanonicalProduct, Delta

logger = logging.getLogger(__name__)


# Fields that define "the product changed". Order is fixed; list values
# (images, categories) are hashed in feed order.
HASHED_FIELDS = (
    "title",
    "price",
    "salePrice",
    "stock",
    "images",
    "categories",
    "description",
    "color",
    "dimensions",
    "material",
)


def hash_product(product: CanonicalProduct) -> str:
    """MD5 of the hashed field subset, absent optionals left out."""
    data = product.model_dump(by_alias=True)
    relevant = {
        field: data[field]
        for field in HASHED_FIELDS
        if data.get(field) is not None
    }
    content = json.dumps(relevant, ensure_ascii=False, separators=(",", ":"))
    return md5(content.encode("utf-8")).hexdigest()


def compute_delta(
    products: List[CanonicalProduct],
    previous_hashes: Dict[str, str],
) -> Tuple[Delta, Dict[str, str]]:
    """
    Classify products as new / changed / unchanged and find removed ids.

    Args:
        products: Current transformed batch
        previous_hashes: id -> hash table from the last persisted run

    Returns:
        Tuple of (delta, new_hashes); new_hashes is the table to persist
    """
    new_hashes: Dict[str, str] = {}
    delta = Delta()

    for product in products:
        product_hash = hash_product(product)
        new_hashes[product.id] = product_hash

        previous = previous_hashes.get(product.id)
        if previous is None:
            delta.new.append(product.id)
        elif previous != product_hash:
            delta.changed.append(product.id)
        else:
            delta.unchanged += 1

    delta.removed = [pid for pid in previous_hashes if pid not in new_hashes]

    logger.debug(
        f"Delta: {len(delta.new)} new, {len(delta.changed)} changed, "
        f"{len(delta.removed)} removed, {delta.unchanged} unchanged"
    )
    return delta, new_hashes


def has_changes(delta: Delta) -> bool:
    """True if anything was added, removed or changed."""
    return bool(delta.new or delta.removed or delta.changed)
