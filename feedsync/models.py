"""
Catalog Feed Sync - Pydantic Models
Data models for feed records, canonical products, policies and sync state.
"""

import math
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def _finite_float(value) -> Optional[float]:
    """Parse a vendor number; blank, unparsable, NaN and infinite values give None."""
    if value is None:
        return None
    try:
        number = float(str(value).strip())
    except (TypeError, ValueError, OverflowError):
        return None
    return number if math.isfinite(number) else None


class SyncOutcome(str, Enum):
    """Terminal states of a sync run."""
    NO_CHANGES = "no_changes"   # steady state, nothing written
    WRITTEN = "written"         # catalog + state + history replaced
    DRY_RUN = "dry_run"         # changes detected, writes suppressed
    FAILED = "failed"           # fatal gate, nothing written


# =============================================================================
# FEED RECORDS
# =============================================================================

class RawFeedRecord(BaseModel):
    """One <product> element from the vendor XML feed (before transformation)."""
    model_config = ConfigDict(populate_by_name=True)

    sku: str = ""
    name: str = ""
    quantity: int = 0
    retail_price: float = Field(default=0.0, alias="retail-price")
    discounted_price: Optional[float] = Field(default=None, alias="discounted-price")
    categories: List[str] = Field(default_factory=list)
    photo: Optional[str] = None
    photos: List[str] = Field(default_factory=list)
    description: str = ""
    comments: str = ""
    color: Optional[str] = None
    dimensions: Optional[str] = None
    material: Optional[str] = None

    @field_validator("sku", "name", "description", "comments", mode="before")
    @classmethod
    def clean_text(cls, v):
        """Missing text becomes an empty string; everything is trimmed."""
        if v is None:
            return ""
        return str(v).strip()

    @field_validator("photo", "color", "dimensions", "material", mode="before")
    @classmethod
    def clean_optional_text(cls, v):
        """Blank optional attributes are treated as absent."""
        if v is None:
            return None
        s = str(v).strip()
        return s or None

    @field_validator("quantity", mode="before")
    @classmethod
    def parse_quantity(cls, v):
        """
        Vendor quantities arrive as text; anything unparsable counts as 0.

        Fractional values are truncated ("5.7" -> 5); NaN and infinities
        count as 0.
        """
        value = _finite_float(v)
        return int(value) if value is not None else 0

    @field_validator("retail_price", mode="before")
    @classmethod
    def parse_price(cls, v):
        value = _finite_float(v)
        return value if value is not None else 0.0

    @field_validator("discounted_price", mode="before")
    @classmethod
    def parse_discounted_price(cls, v):
        """An empty, unparsable or non-finite discount means no discount at all."""
        return _finite_float(v)


class CanonicalProduct(BaseModel):
    """Normalized storefront product, serialized with camelCase keys."""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str
    slug: str
    description: str = ""
    excerpt: str = ""
    price: float = Field(gt=0, allow_inf_nan=False)
    sale_price: Optional[float] = Field(default=None, alias="salePrice", allow_inf_nan=False)
    images: List[str] = Field(default_factory=list)
    categories: List[str] = Field(default_factory=list)
    color: Optional[str] = None
    dimensions: Optional[str] = None
    material: Optional[str] = None
    in_stock: bool = Field(default=True, alias="inStock")
    stock: int = Field(ge=0)

    @model_validator(mode="after")
    def check_sale_price(self):
        if self.sale_price is not None and self.sale_price >= self.price:
            raise ValueError(
                f"salePrice {self.sale_price} must be below price {self.price}"
            )
        return self

    def to_catalog_dict(self) -> dict:
        """Storefront JSON shape: camelCase, absent optionals omitted."""
        return self.model_dump(by_alias=True, exclude_none=True)


# =============================================================================
# POLICY CONFIGURATION
# =============================================================================

class MarkupRule(BaseModel):
    """Price multiplier and rounding precision."""
    model_config = ConfigDict(populate_by_name=True)

    multiplier: float = Field(gt=0)
    round_to: int = Field(default=2, ge=0, alias="roundTo")


class SaleRules(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    use_discounted_price: bool = Field(default=True, alias="useDiscountedPrice")


class MarkupConfig(BaseModel):
    """Markup policy: default rule plus overrides keyed by RAW vendor category."""
    model_config = ConfigDict(populate_by_name=True)

    default: MarkupRule
    category_overrides: Dict[str, MarkupRule] = Field(
        default_factory=dict, alias="categoryOverrides"
    )
    sale_rules: SaleRules = Field(default_factory=SaleRules, alias="saleRules")


class CategoryMapConfig(BaseModel):
    """Vendor category -> site category translation."""
    model_config = ConfigDict(populate_by_name=True)

    mapping: Dict[str, Optional[str]] = Field(default_factory=dict)
    exclude_categories: List[str] = Field(default_factory=list, alias="excludeCategories")
    passthrough: bool = False


# =============================================================================
# DELTA / STATE / HISTORY
# =============================================================================

class Delta(BaseModel):
    """Classification of the current batch against the previous hash table."""
    new: List[str] = Field(default_factory=list)
    removed: List[str] = Field(default_factory=list)
    changed: List[str] = Field(default_factory=list)
    unchanged: int = 0


class DeltaCounts(BaseModel):
    new: int = 0
    removed: int = 0
    changed: int = 0
    unchanged: int = 0

    @classmethod
    def from_delta(cls, delta: Delta) -> "DeltaCounts":
        return cls(
            new=len(delta.new),
            removed=len(delta.removed),
            changed=len(delta.changed),
            unchanged=delta.unchanged,
        )


class DeltaSummary(DeltaCounts):
    """Delta counts plus sampled ids, as stored in the sync state file."""
    model_config = ConfigDict(populate_by_name=True)

    new_ids: List[str] = Field(default_factory=list, alias="newIds")
    removed_ids: List[str] = Field(default_factory=list, alias="removedIds")
    changed_ids: List[str] = Field(default_factory=list, alias="changedIds")


class SyncState(BaseModel):
    """Durable record of the most recent run that wrote files."""
    model_config = ConfigDict(populate_by_name=True)

    last_sync: Optional[datetime] = Field(default=None, alias="lastSync")
    product_count: int = Field(default=0, alias="productCount")
    product_hash: Dict[str, str] = Field(default_factory=dict, alias="productHash")
    delta: DeltaSummary = Field(default_factory=DeltaSummary)

    @classmethod
    def empty(cls) -> "SyncState":
        """Baseline used when no state file exists yet."""
        return cls()


class HistoryEntry(BaseModel):
    """One line of the audit trail; only runs with changes are recorded."""
    model_config = ConfigDict(populate_by_name=True)

    timestamp: datetime
    product_count: int = Field(alias="productCount")
    delta: DeltaCounts
    sample_new_ids: List[str] = Field(default_factory=list, alias="sampleNewIds")
    sample_removed_ids: List[str] = Field(default_factory=list, alias="sampleRemovedIds")
    sample_changed_ids: List[str] = Field(default_factory=list, alias="sampleChangedIds")


# =============================================================================
# RUN REPORTING
# =============================================================================

class TransformStats(BaseModel):
    """Per-run counters for records the transformer accepted or skipped."""
    total: int = 0
    accepted: int = 0
    out_of_stock: int = 0
    missing_identity: int = 0
    invalid_price: int = 0
    duplicate_sku: int = 0

    @property
    def skipped(self) -> int:
        return (
            self.out_of_stock + self.missing_identity
            + self.invalid_price + self.duplicate_sku
        )


class SyncSummary(BaseModel):
    """Summary of a sync run for the CLI report and notifications."""
    timestamp: datetime = Field(default_factory=datetime.now)
    outcome: SyncOutcome = SyncOutcome.FAILED

    feed_bytes: int = 0
    records_parsed: int = 0
    transform: TransformStats = Field(default_factory=TransformStats)
    delta: Optional[DeltaCounts] = None

    sample_ids: List[str] = Field(default_factory=list)
    files_written: List[str] = Field(default_factory=list)
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.outcome != SyncOutcome.FAILED

    @property
    def products_count(self) -> int:
        return self.transform.accepted
