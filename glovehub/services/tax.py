from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

UNIT = Decimal("1")


def qunit(x: Decimal) -> int:
    """Round to the smallest currency unit, half up."""
    return int(x.quantize(UNIT, rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class PpnBreakdown:
    subtotal: int
    ppn_rate: Decimal
    ppn_amount: int
    total_with_ppn: int


def calc_ppn(subtotal: int, ppn_rate: Decimal) -> PpnBreakdown:
    # PPN base is the pre-tax sale price (Dasar Pengenaan Pajak)
    rate = Decimal(str(ppn_rate))
    ppn_amount = qunit(Decimal(int(subtotal)) * rate)
    return PpnBreakdown(int(subtotal), rate, ppn_amount, int(subtotal) + ppn_amount)


def format_idr(amount: int) -> str:
    """Rp 1.234.567 (dot thousands separator, no decimals)."""
    sign = "-" if amount < 0 else ""
    return f"{sign}Rp {abs(int(amount)):,}".replace(",", ".")
