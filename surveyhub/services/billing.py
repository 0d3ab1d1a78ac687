"""Bill arithmetic and bill-number suggestion."""
import re
from typing import Iterable, Mapping, Any, Dict, List, Optional
import uuid


PAID = "PAID"

# Leading integer of a bill number: optional whitespace and sign, then digits
_LEADING_INT = re.compile(r"\s*[+-]?\d+")


def compute_totals(items: Iterable[Mapping[str, Any]], is_gst_bill: bool, state_gst: float, central_gst: float) -> Dict[str, float]:
    """
    subtotal is the sum of item amounts (amount is authoritative, rate is informational);
    tax applies only to GST bills.
    """
    subtotal = float(sum(float(item.get("amount") or 0) for item in items))
    if is_gst_bill:
        total_tax_amount = subtotal * (float(state_gst or 0) + float(central_gst or 0)) / 100
    else:
        total_tax_amount = 0.0
    return {
        "subtotal": subtotal,
        "total_tax_amount": total_tax_amount,
        "total_amount": subtotal + total_tax_amount,
    }


def site_ids_from_items(items: Iterable[Mapping[str, Any]]) -> List[str]:
    # Deduplicated, first-seen order
    seen: List[str] = []
    for item in items:
        site_id = str(item.get("site_id"))
        if site_id not in seen:
            seen.append(site_id)
    return seen


def site_status_for_payment(payment_status: str) -> str:
    return "BILL PAID" if payment_status == PAID else "BILL SUBMITTED"


def normalize_items(items: Iterable[Mapping[str, Any]], site_names: Mapping[str, str]) -> List[Dict[str, Any]]:
    """Give each line item its own id and fill a missing site name from the site."""
    out = []
    for item in items:
        site_id = str(item["site_id"])
        out.append({
            "id": str(item.get("id") or uuid.uuid4()),
            "site_id": site_id,
            "site_name": item.get("site_name") or site_names.get(site_id, ""),
            "description": item["description"],
            "rate": float(item["rate"]),
            "amount": float(item["amount"]),
        })
    return out


def suggest_next_bill_number(latest: Optional[str]) -> str:
    """
    Increment the leading integer of the admin's latest bill number, where
    latest means greatest by string order ("99" sorts after "908").
    Falls back to "1" when there is no bill or it does not start with digits.
    """
    match = _LEADING_INT.match(latest or "")
    if not match:
        return "1"
    return str(int(match.group(0)) + 1)
