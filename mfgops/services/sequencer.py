"""
Sequencer — sparse ordering keys for ordered child rows.

Recipe ingredients and spec parameters carry an integer ``sequence`` used only
for display/processing order. A new child gets ``max(live sequence) + 10`` of
its parent, or ``10`` for the first one, so inserting never renumbers siblings
and leaves gaps for manual reordering.

Same read-then-write race as the uniqueness checks: two concurrent inserts
under one parent may receive the same value.
"""

from sqlalchemy import select

from mfgops.models import db

SEQUENCE_STEP = 10


def next_sequence(model, parent_column: str, parent_id: int, company_id: int, *, column: str = "sequence") -> int:
    """Return the next sequence value for a child of *parent_id*.

    Args:
        model: Child model (e.g. RecipeDetail).
        parent_column: FK column naming the parent (e.g. "recipe_id").
        parent_id: Parent PK.
        company_id: Company of the parent; children of other companies are ignored.
        column: Ordering column on *model*.
    """
    seq_col = getattr(model, column)
    stmt = (
        select(seq_col)
        .where(
            getattr(model, parent_column) == parent_id,
            model.company_id == company_id,
            model.status.is_(True),
            seq_col.is_not(None),
        )
        .order_by(seq_col.desc())
        .limit(1)
    )
    top = db.session.execute(stmt).scalar_one_or_none()
    if top is None:
        return SEQUENCE_STEP
    return top + SEQUENCE_STEP
