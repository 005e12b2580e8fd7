"""Dashboard aggregates computed from blocks and application records."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Iterable, Sequence

import pandas as pd

from farmview.core.models import ApplicationRecord, Block

BLOCK_TABLE_COLUMNS = [
    "name",
    "area_acres",
    "product",
    "planting_date",
    "last_application",
    "next_harvest",
    "color",
]


@dataclass(frozen=True)
class DashboardStats:
    """Headline numbers shown on the dashboard cards.

    Attributes
    ----------
    total_acres : float
        Sum of block acreage.
    active_blocks : int
        Number of blocks with a polygon.
    last_harvest : date | None
        Most recent harvest date not after ``today``.
    last_harvest_block : str | None
        Block harvested on ``last_harvest``.
    next_application : date | None
        Earliest application date on or after ``today``.
    next_application_product : str | None
        Product scheduled for ``next_application``.
    """

    total_acres: float = 0.0
    active_blocks: int = 0
    last_harvest: date | None = None
    last_harvest_block: str | None = None
    next_application: date | None = None
    next_application_product: str | None = None


def _to_date(value) -> date | None:
    if not value:
        return None
    parsed = pd.to_datetime(value, errors="coerce")
    if pd.isna(parsed):
        return None
    return parsed.date()


def compute_dashboard_stats(
    blocks: Sequence[Block],
    applications: Sequence[ApplicationRecord] = (),
    today: date | None = None,
) -> DashboardStats:
    """Compute dashboard card values.

    Parameters
    ----------
    blocks : Sequence[Block]
        Blocks of the farms in view.
    applications : Sequence[ApplicationRecord], optional
        Logged applications; their ``next_application`` dates compete with
        the per-block ones.
    today : datetime.date, optional
        Reference day, defaults to the current date.

    Returns
    -------
    DashboardStats
        Aggregated card values.
    """
    today = today or date.today()
    total_acres = sum(float(b.area_acres or 0.0) for b in blocks)
    active = sum(1 for b in blocks if len(b.coordinates or []) >= 3)

    harvests = []
    for block in blocks:
        when = _to_date(block.next_harvest)
        if when and when <= today:
            harvests.append((when, block.name))
    last_harvest, last_block = max(harvests, default=(None, None))

    upcoming = []
    for block in blocks:
        when = _to_date(block.next_application)
        if when and when >= today:
            product = block.last_application.product if block.last_application else None
            upcoming.append((when, product or block.name))
    for record in applications:
        when = _to_date(record.next_application)
        if when and when >= today:
            upcoming.append((when, record.product))
    next_app, next_product = min(upcoming, default=(None, None))

    return DashboardStats(
        total_acres=round(total_acres, 2),
        active_blocks=active,
        last_harvest=last_harvest,
        last_harvest_block=last_block,
        next_application=next_app,
        next_application_product=next_product,
    )


def products_applied(
    applications: Iterable[ApplicationRecord],
    blocks: Iterable[Block] = (),
) -> pd.Series:
    """Litres applied per product, largest first.

    Logged application records and the last application stored on each
    block are both counted.

    Returns
    -------
    pandas.Series
        Float series indexed by product name.
    """
    rows = [{"product": a.product, "liters": float(a.quantity)} for a in applications]
    rows.extend(
        {"product": b.last_application.product, "liters": b.last_application.liters}
        for b in blocks
        if b.last_application is not None
    )
    if not rows:
        return pd.Series(dtype="float64", name="liters")
    df = pd.DataFrame(rows)
    totals = df.groupby("product")["liters"].sum()
    return totals.sort_values(ascending=False)


def cane_distribution(blocks: Iterable[Block]) -> pd.Series:
    """Acreage share per cane variety, in percent.

    Blocks without a variety are grouped under ``"Unspecified"``.
    """
    rows = [
        {"variety": b.cane_variety or "Unspecified", "acres": float(b.area_acres or 0.0)}
        for b in blocks
    ]
    if not rows:
        return pd.Series(dtype="float64", name="share")
    df = pd.DataFrame(rows)
    totals = df.groupby("variety")["acres"].sum()
    total = totals.sum()
    if total <= 0:
        share = df.groupby("variety").size() / len(df) * 100.0
    else:
        share = totals / total * 100.0
    return share.rename("share").sort_values(ascending=False).round(2)


def blocks_table(blocks: Iterable[Block]) -> pd.DataFrame:
    """Tabular block overview used by the dashboard grid."""
    rows = []
    for block in blocks:
        last = block.last_application
        rows.append(
            {
                "name": block.name,
                "area_acres": float(block.area_acres or 0.0),
                "product": last.product if last else "",
                "planting_date": block.planting_date or "",
                "last_application": (last.date or "") if last else "",
                "next_harvest": block.next_harvest or "",
                "color": block.color,
            }
        )
    if not rows:
        return pd.DataFrame(columns=BLOCK_TABLE_COLUMNS)
    return pd.DataFrame(rows)[BLOCK_TABLE_COLUMNS]
