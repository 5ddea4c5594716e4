# Overview: Read-only summaries derived from already-fetched records; no persistence here.

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Iterable, Sequence

from hkinv.time_utils import utcnow, to_iso_date

"""
Reporting rules:
- low stock:   current_stock <= min_stock
- stock status: low    current <= min
                medium current <= 1.5 * min (exactly 1.5x is medium)
                high   otherwise
- overdue borrow: type == borrow, status != completed, due_date set and its
  midnight (UTC) before now, so a borrow due today is overdue after 00:00
- cost rows: sums over laundry log entries dated in the selected month/year,
  total_cost = qty_pick_up * unit price, pending shown as max(0, pending - returned)

Every function takes decoded records (services.records) or anything with the
same attributes, and returns plain values.
"""

UNASSIGNED_LOCATION = "Unassigned"


# -----------------------------------------------------------------------------
# Stock
# -----------------------------------------------------------------------------

def is_low_stock(item) -> bool:
    return item.current_stock <= item.min_stock


def low_stock_items(items: Iterable, limit: int | None = None) -> list:
    low = [item for item in items if is_low_stock(item)]
    return low[:limit] if limit is not None else low


def stock_status(item) -> str:
    current, minimum = item.current_stock, item.min_stock
    if current <= minimum:
        return "low"
    # current <= 1.5 * min, kept in integers
    if 2 * current <= 3 * minimum:
        return "medium"
    return "high"


def location_totals(items: Iterable) -> list[dict]:
    totals: dict[str, dict] = {}
    for item in items:
        name = (item.location or "").strip() or UNASSIGNED_LOCATION
        entry = totals.setdefault(name, {"location": name, "item_count": 0, "total_stock": 0})
        entry["item_count"] += 1
        entry["total_stock"] += item.current_stock
    return [totals[name] for name in sorted(totals)]


# -----------------------------------------------------------------------------
# Transactions
# -----------------------------------------------------------------------------

def _as_datetime(value: date | datetime) -> datetime:
    # A bare date means midnight at the start of that day
    if isinstance(value, datetime):
        return value
    return datetime.combine(value, time.min)


def is_overdue(tx, *, now: date | datetime | None = None) -> bool:
    if tx.type != "borrow" or tx.status == "completed" or tx.due_date is None:
        return False
    return _as_datetime(tx.due_date) < _as_datetime(now or utcnow())


def overdue_borrows(transactions: Iterable, *, now: date | datetime | None = None) -> list:
    return [tx for tx in transactions if is_overdue(tx, now=now)]


def transactions_in_range(
    transactions: Iterable,
    *,
    start: date | None = None,
    end: date | None = None,
) -> list:
    """Inclusive on both ends; either bound may be open."""
    out = []
    for tx in transactions:
        if start is not None and tx.date < start:
            continue
        if end is not None and tx.date > end:
            continue
        out.append(tx)
    return out


def transaction_report(
    transactions: Iterable,
    items: Iterable,
    suppliers: Iterable = (),
    *,
    start: date | None = None,
    end: date | None = None,
) -> list[dict]:
    items_by_id = {item.id: item for item in items}
    suppliers_by_id = {s.id: s for s in suppliers}
    rows = []
    for tx in transactions_in_range(transactions, start=start, end=end):
        item = items_by_id.get(tx.item_id)
        supplier = suppliers_by_id.get(tx.supplier_id) if tx.supplier_id is not None else None
        rows.append(
            {
                "id": tx.id,
                "date": to_iso_date(tx.date),
                "type": tx.type,
                "item_code": item.code if item else None,
                "item_name": item.name if item else None,
                "quantity": tx.quantity,
                "status": tx.status,
                "supplier_name": supplier.name if supplier else None,
                "borrower_id": tx.borrower_id,
                "due_date": to_iso_date(tx.due_date),
                "return_date": to_iso_date(tx.return_date),
                "notes": tx.notes,
            }
        )
    return rows


def _recent_first(transactions: Iterable) -> list:
    return sorted(transactions, key=lambda tx: (tx.date, tx.id), reverse=True)


def dashboard_summary(
    *,
    items: Sequence,
    transactions: Sequence,
    users: Sequence = (),
    suppliers: Sequence = (),
    categories: Sequence = (),
    low_stock_limit: int = 5,
    recent_limit: int = 5,
) -> dict:
    counts_by_type = Counter(tx.type for tx in transactions)
    return {
        "counts": {
            "items": len(items),
            "active_items": sum(1 for i in items if i.status == "active"),
            "users": len(users),
            "suppliers": len(suppliers),
            "categories": len(categories),
            "transactions": len(transactions),
        },
        "total_in": sum(tx.quantity for tx in transactions if tx.type == "in"),
        "total_out": sum(tx.quantity for tx in transactions if tx.type == "out"),
        "transactions_by_type": {t: counts_by_type.get(t, 0) for t in ("in", "out", "borrow", "return")},
        "low_stock": [
            {**item.to_dict(), "stock_status": stock_status(item)}
            for item in low_stock_items(items, limit=low_stock_limit)
        ],
        "low_stock_total": len(low_stock_items(items)),
        "recent_transactions": [tx.to_dict() for tx in _recent_first(transactions)[:recent_limit]],
    }


@dataclass(frozen=True)
class Notification:
    kind: str
    severity: str
    message: str
    ref_id: int | None = None

    def to_dict(self) -> dict:
        return {"kind": self.kind, "severity": self.severity, "message": self.message, "ref_id": self.ref_id}


def notifications(items: Iterable, transactions: Sequence, *, now: date | datetime | None = None) -> list[Notification]:
    out = []
    for item in low_stock_items(items):
        out.append(
            Notification(
                kind="low_stock",
                severity="warning",
                message=f"{item.name} is low on stock ({item.current_stock} {item.unit}, minimum {item.min_stock})",
                ref_id=item.id,
            )
        )
    for tx in overdue_borrows(transactions, now=now):
        out.append(
            Notification(
                kind="overdue_borrow",
                severity="error",
                message=f"Borrow #{tx.id} by {tx.borrower_id or 'unknown'} was due {to_iso_date(tx.due_date)}",
                ref_id=tx.id,
            )
        )
    pending = sum(1 for tx in transactions if tx.status == "pending")
    if pending:
        out.append(
            Notification(
                kind="pending_transactions",
                severity="info",
                message=f"{pending} transaction(s) awaiting completion",
            )
        )
    return out


# -----------------------------------------------------------------------------
# Laundry cost control
# -----------------------------------------------------------------------------

NO_PICK_UP = "-"


@dataclass(frozen=True)
class CostRow:
    item_id: int
    item_name: str
    pick_up_date: str
    qty_pick_up: int
    pending: int
    returned: int
    price: int
    total_cost: int

    @property
    def pending_displayed(self) -> int:
        return max(0, self.pending - self.returned)

    def to_dict(self) -> dict:
        return {
            "item_id": self.item_id,
            "item_name": self.item_name,
            "pick_up_date": self.pick_up_date,
            "qty_pick_up": self.qty_pick_up,
            "pending": self.pending,
            "returned": self.returned,
            "pending_displayed": self.pending_displayed,
            "price": self.price,
            "total_cost": self.total_cost,
        }


def entries_in_month(entries: Iterable, month: int, year: int) -> list:
    return [e for e in entries if e.date.month == month and e.date.year == year]


def aggregate_costs(entries: Iterable, definitions: Iterable, month: int, year: int) -> list[CostRow]:
    """One row per cost-item definition, in definition order."""
    selected = entries_in_month(entries, month, year)
    rows = []
    for definition in definitions:
        logs = [e for e in selected if e.item_id == definition.id]
        qty = sum(e.out_quantity for e in logs)
        rows.append(
            CostRow(
                item_id=definition.id,
                item_name=definition.name,
                pick_up_date=max((to_iso_date(e.date) for e in logs), default=NO_PICK_UP),
                qty_pick_up=qty,
                pending=sum(e.pending_quantity for e in logs),
                returned=sum(e.returned_quantity for e in logs),
                price=definition.price,
                total_cost=qty * definition.price,
            )
        )
    return rows


def last_log_update(entries: Iterable) -> str | None:
    """Latest returned_date (or date) across all entries, ISO formatted."""
    stamps = [e.returned_date or e.date for e in entries]
    return to_iso_date(max(stamps)) if stamps else None


def cost_summary(rows: Sequence[CostRow]) -> dict:
    total_cost = sum(r.total_cost for r in rows)
    total_processed = sum(r.qty_pick_up for r in rows)
    # Half-up rounding on whole Rupiah
    average = (total_cost + total_processed // 2) // total_processed if total_processed else 0
    return {
        "total_cost": total_cost,
        "total_processed": total_processed,
        "total_pending": sum(r.pending_displayed for r in rows),
        "average_cost_per_piece": average,
    }
