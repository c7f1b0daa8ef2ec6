"""Informational ticket priority classification."""

NORMAL = "normal"
HIGH = "high"
VIP = "vip"


def classify_priority(
    total_price_cents: int,
    quantity: int,
    vip_threshold_cents: int = 10_000,
    bulk_quantity_threshold: int = 5,
) -> str:
    """
    Classify a purchase for staff display.

    total >= vip_threshold_cents       → "vip"
    quantity >= bulk_quantity_threshold → "high"
    else                                → "normal"

    Priority never influences state transitions.
    """
    if total_price_cents >= vip_threshold_cents:
        return VIP
    if quantity >= bulk_quantity_threshold:
        return HIGH
    return NORMAL
