# ==== LINE AND INVOICE ARITHMETIC ==== #

"""
Money arithmetic for invoice lines and invoice totals.

All amounts are ``Decimal`` rounded to two places with ROUND_HALF_UP, the
convention of Indian GST invoices.

Line:
    gross      = quantity × unit_price
    discount   = explicit, or percentage/flat of gross
    taxable    = gross − discount
    tax        = CGST + SGST (intra-state) or IGST (inter-state), plus cess,
                 each taxable × rate / 100; or taxable × tax_rate / 100
    line_total = gross − discount + tax

Invoice:
    subtotal = Σ gross, discount = Σ discount, tax = Σ tax
    total    = subtotal − discount + tax
    balance  = total − Σ payments
"""

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional

from easybill.errors import BusinessError, ErrorCodes


CENT = Decimal("0.01")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")


def money(value: Optional[Decimal | int | float | str]) -> Decimal:
    if value is None:
        return ZERO
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def percent_of(amount: Decimal, rate: Optional[Decimal]) -> Decimal:
    if not rate:
        return ZERO
    return money(amount * Decimal(str(rate)) / HUNDRED)


@dataclass
class LineAmounts:
    gross: Decimal
    discount: Decimal
    taxable: Decimal
    cgst: Decimal = ZERO
    sgst: Decimal = ZERO
    igst: Decimal = ZERO
    cess: Decimal = ZERO
    tax: Decimal = ZERO

    @property
    def line_total(self) -> Decimal:
        return money(self.gross - self.discount + self.tax)


@dataclass
class InvoiceTotals:
    subtotal: Decimal = ZERO
    discount: Decimal = ZERO
    tax: Decimal = ZERO
    cgst: Decimal = ZERO
    sgst: Decimal = ZERO
    igst: Decimal = ZERO
    cess: Decimal = ZERO
    paid: Decimal = ZERO
    lines: list = field(default_factory=list)

    @property
    def total(self) -> Decimal:
        return money(self.subtotal - self.discount + self.tax)

    @property
    def balance(self) -> Decimal:
        return money(self.total - self.paid)


def compute_line(
    quantity: int,
    unit_price: Decimal,
    *,
    discount_type: Optional[str] = None,
    discount_value: Optional[Decimal] = None,
    discount_amount: Optional[Decimal] = None,
    tax_rate: Optional[Decimal] = None,
    tax_amount: Optional[Decimal] = None,
    cgst_rate: Optional[Decimal] = None,
    sgst_rate: Optional[Decimal] = None,
    igst_rate: Optional[Decimal] = None,
    cess_rate: Optional[Decimal] = None,
    is_interstate: bool = False,
) -> LineAmounts:
    """Compute the amounts of one invoice line.

    Raises:
        BusinessError: INVALID_DISCOUNT when the discount exceeds the gross
            amount or a percentage exceeds 100
    """
    gross = money(Decimal(quantity) * Decimal(str(unit_price)))

    # --► DISCOUNT
    if discount_type and discount_value is not None:
        value = Decimal(str(discount_value))
        if discount_type == "PERCENTAGE":
            if value > HUNDRED:
                raise BusinessError(
                    ErrorCodes.INVALID_DISCOUNT, "Discount percentage %s exceeds 100", value
                )
            discount = percent_of(gross, value)
        else:
            discount = money(value)
    else:
        discount = money(discount_amount)

    if discount > gross:
        raise BusinessError(
            ErrorCodes.INVALID_DISCOUNT, "Discount %s exceeds line amount %s", discount, gross
        )

    taxable = gross - discount
    line = LineAmounts(gross=gross, discount=discount, taxable=taxable)

    # --► TAX
    if any(rate is not None for rate in (cgst_rate, sgst_rate, igst_rate, cess_rate)):
        if is_interstate:
            line.igst = percent_of(taxable, igst_rate)
        else:
            line.cgst = percent_of(taxable, cgst_rate)
            line.sgst = percent_of(taxable, sgst_rate)
        line.cess = percent_of(taxable, cess_rate)
        line.tax = money(line.cgst + line.sgst + line.igst + line.cess)
    elif tax_rate is not None:
        line.tax = percent_of(taxable, tax_rate)
    else:
        line.tax = money(tax_amount)

    return line


def summarize(lines: Iterable[LineAmounts], payments: Iterable[Decimal] = ()) -> InvoiceTotals:
    totals = InvoiceTotals()
    for line in lines:
        totals.lines.append(line)
        totals.subtotal += line.gross
        totals.discount += line.discount
        totals.tax += line.tax
        totals.cgst += line.cgst
        totals.sgst += line.sgst
        totals.igst += line.igst
        totals.cess += line.cess
    totals.paid = money(sum((Decimal(str(p)) for p in payments), ZERO))
    return totals
