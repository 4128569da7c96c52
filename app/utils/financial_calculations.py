from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List, Optional, Tuple, Dict, Any

ZERO = Decimal("0.00")


def money(x) -> Decimal:
    """Always return 2-decimal Decimal with HALF_UP rounding."""
    if x is None:
        x = 0
    if not isinstance(x, Decimal):
        x = Decimal(str(x))
    return x.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def as_date(value) -> Optional[date]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


# -------------------------------------------------
# Shares
# -------------------------------------------------
def user_share(amount, unit_area, total_area) -> Decimal:
    """
    share = amount * unit_area / total_area

    Example:
      amount=1000, unit_area=50, total_area=200 => 250.00
    """
    total_area = Decimal(str(total_area or 0))
    if total_area <= 0:
        return ZERO
    return money(Decimal(str(amount or 0)) * Decimal(str(unit_area or 0)) / total_area)


# -------------------------------------------------
# Payments / status
# -------------------------------------------------
def counts_as_paid(amount, receipt_image_path=None) -> bool:
    """Receipt-only rows (image attached) and non-positive rows are not money received."""
    return money(amount) > 0 and not receipt_image_path


def paid_total(payments: Iterable) -> Decimal:
    total = ZERO
    for p in payments:
        if counts_as_paid(p.amount, getattr(p, "receipt_image_path", None)):
            total += money(p.amount)
    return money(total)


def installment_status(share_amount, paid_amount, due_date, today: Optional[date] = None) -> str:
    share = money(share_amount)
    paid = money(paid_amount)
    today = today or date.today()

    if share <= 0:
        return "PENDING"
    if paid >= share:
        return "PAID"
    if paid > 0:
        return "PARTIAL"
    due = as_date(due_date)
    if due is not None and due < today:
        return "OVERDUE"
    return "PENDING"


# -------------------------------------------------
# Penalties
# -------------------------------------------------
def calculate_penalty(due_date, payment_date, daily_amount, grace_days: int = 0) -> Tuple[int, Decimal]:
    """
    grace_date = due_date + grace_days
    paid on/before grace_date => (0, 0)
    otherwise days_late = whole days after grace_date, penalty = days_late * daily_amount

    Example:
      due=2024-01-01, paid=2024-01-15, daily=10, grace=5 => (9, 90.00)
    """
    daily = money(daily_amount)
    due = as_date(due_date)
    paid_on = as_date(payment_date)
    if due is None or paid_on is None:
        return 0, ZERO

    grace = max(int(grace_days or 0), 0)
    grace_ordinal = due.toordinal() + grace
    days_late = paid_on.toordinal() - grace_ordinal
    if days_late <= 0:
        return 0, ZERO

    return days_late, money(daily * days_late)


# -------------------------------------------------
# Allocation
# -------------------------------------------------
def allocate_payment(amount, installments: Iterable[Tuple[Any, Any, Any]]) -> Tuple[List[Tuple[Any, Decimal]], Decimal]:
    """
    installments: (key, share_amount, paid_amount) already ordered by due date.
    Each open installment takes min(remaining, share - paid).

    Returns ([(key, applied_amount), ...], leftover).
    """
    remaining = money(amount)
    if remaining <= 0:
        raise ValueError("amount must be > 0")

    allocations = []
    for key, share, paid in installments:
        if remaining <= 0:
            break
        open_amount = money(share) - money(paid)
        if open_amount <= 0:
            continue
        applied = min(remaining, open_amount)
        allocations.append((key, money(applied)))
        remaining = money(remaining - applied)

    return allocations, remaining


# -------------------------------------------------
# Summaries
# -------------------------------------------------
def percentage(part, whole) -> float:
    whole = money(whole)
    if whole <= 0:
        return 0.0
    return float(money(money(part) * 100 / whole))


def financial_summary(rows: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
    """rows carry share_amount, paid_amount and optionally penalty_amount."""
    total_share = ZERO
    total_paid = ZERO
    total_penalty = ZERO
    count = 0
    paid_count = 0

    for r in rows:
        count += 1
        share = money(r.get("share_amount"))
        paid = money(r.get("paid_amount"))
        total_share += share
        total_paid += paid
        total_penalty += money(r.get("penalty_amount"))
        if share > 0 and paid >= share:
            paid_count += 1

    remaining = max(money(total_share - total_paid), ZERO)

    return {
        "installment_count": count,
        "paid_installment_count": paid_count,
        "total_share": money(total_share),
        "total_paid": money(total_paid),
        "total_remaining": remaining,
        "total_penalty": money(total_penalty),
        "paid_percentage": percentage(total_paid, total_share),
    }
