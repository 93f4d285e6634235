from decimal import Decimal, ROUND_HALF_UP
from typing import Union

from core.config import settings
from models.delivery import PackageType

PACKAGE_MULTIPLIERS = {
    PackageType.STANDARD: Decimal("1"),
    PackageType.HANDLE_WITH_CARE: Decimal("1.2"),
    PackageType.FRAGILE: Decimal("1.5"),
    PackageType.OVERSIZED: Decimal("2"),
}

def estimate_price(weight_kg: Union[Decimal, float, int], package_type: PackageType) -> Decimal:
    """Estimated delivery price in INR.

    The base rate plus the per-kg rate is rounded to whole rupees before the
    package multiplier is applied.
    """
    weight = Decimal(str(weight_kg))
    if weight <= 0:
        raise ValueError("Weight must be positive")

    subtotal = (Decimal(settings.PRICING_BASE_RATE) + weight * settings.PRICING_RATE_PER_KG).quantize(
        Decimal("1"), rounding=ROUND_HALF_UP
    )
    multiplier = PACKAGE_MULTIPLIERS.get(PackageType(package_type), Decimal("1"))
    return (subtotal * multiplier).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)

def format_price(amount: Decimal) -> str:
    return f"₹{amount:.2f}"
