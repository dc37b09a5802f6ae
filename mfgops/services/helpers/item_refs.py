"""
Tagged item references.

Several rows point at exactly one of a fixed set of item tables:

    ProductionOrder / Recipe     → product | semi_product
    RecipeDetail                 → raw_material | semi_product
    WarehouseInventory           → product | raw_material | semi_product

Services never juggle the nullable ``<kind>_id`` columns directly. Input is
parsed into an ``ItemRef`` (exactly one variant populated) and written back
through ``ItemRef.columns``. The tables repeat the rule as a CHECK constraint.
"""

from __future__ import annotations

from dataclasses import dataclass

from mfgops.core.exceptions import ValidationError
from mfgops.models.catalog import Product, RawMaterial, SemiProduct

OUTPUT_KINDS = ("product", "semi_product")
INGREDIENT_KINDS = ("raw_material", "semi_product")
STOCK_KINDS = ("product", "raw_material", "semi_product")

ITEM_MODELS = {
    "product": Product,
    "raw_material": RawMaterial,
    "semi_product": SemiProduct,
}

ITEM_LABELS = {
    "product": "Product",
    "raw_material": "Raw material",
    "semi_product": "Semi-product",
}


def _exactly_one_message(kinds) -> str:
    fields = [f"{k}_id" for k in kinds]
    if len(fields) == 2:
        return f"Either {fields[0]} or {fields[1]} must be provided, but not both"
    return f"Exactly one of {', '.join(fields)} must be provided"


@dataclass(frozen=True)
class ItemRef:
    kind: str
    id: int

    @classmethod
    def from_payload(cls, data: dict, kinds) -> "ItemRef":
        """Parse ``<kind>_id`` keys of *data*; exactly one must be set.

        Raises:
            ValidationError: none or several of the variants are set, or the
                id is not an integer.
        """
        present = [k for k in kinds if data.get(f"{k}_id") not in (None, "")]
        if len(present) != 1:
            raise ValidationError(_exactly_one_message(kinds), details={
                f"{k}_id": data.get(f"{k}_id") for k in kinds
            })
        kind = present[0]
        try:
            item_id = int(data[f"{kind}_id"])
        except (TypeError, ValueError):
            raise ValidationError(f"{kind}_id must be an integer")
        return cls(kind, item_id)

    @classmethod
    def of(cls, row, kinds) -> "ItemRef":
        """Read the reference currently stored on *row*."""
        return cls.from_payload({f"{k}_id": getattr(row, f"{k}_id") for k in kinds}, kinds)

    @classmethod
    def merged(cls, row, patch: dict, kinds) -> "ItemRef | None":
        """Resolve the reference an update of *row* would leave behind.

        Returns None when *patch* touches none of the variant columns. Keys
        present in *patch* override the stored values, so switching variants
        requires nulling the old one explicitly.
        """
        if not any(f"{k}_id" in patch for k in kinds):
            return None
        merged = {f"{k}_id": getattr(row, f"{k}_id") for k in kinds}
        merged.update({f"{k}_id": patch[f"{k}_id"] for k in kinds if f"{k}_id" in patch})
        return cls.from_payload(merged, kinds)

    @property
    def model(self):
        return ITEM_MODELS[self.kind]

    @property
    def label(self) -> str:
        return ITEM_LABELS[self.kind]

    def columns(self, kinds) -> dict:
        """Column values for every variant of *kinds*: ours set, others None."""
        return {f"{k}_id": (self.id if k == self.kind else None) for k in kinds}
