from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable

from django.conf import settings

ZERO = Decimal('0.00')
CENT = Decimal('0.01')

_ONES = (
    'Zero', 'One', 'Two', 'Three', 'Four', 'Five', 'Six', 'Seven', 'Eight', 'Nine', 'Ten',
    'Eleven', 'Twelve', 'Thirteen', 'Fourteen', 'Fifteen', 'Sixteen', 'Seventeen', 'Eighteen', 'Nineteen',
)
_TENS = ('', '', 'Twenty', 'Thirty', 'Forty', 'Fifty', 'Sixty', 'Seventy', 'Eighty', 'Ninety')
_SCALES = ((10 ** 9, 'Billion'), (10 ** 6, 'Million'), (10 ** 3, 'Thousand'))


def to_decimal(value, default: Decimal = ZERO) -> Decimal:
    if value is None or value == '':
        return default
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return default


def quantize_money(value) -> Decimal:
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def line_total(quantity, unit_price) -> Decimal:
    return quantize_money(to_decimal(quantity) * to_decimal(unit_price))


def sum_totals(values: Iterable) -> Decimal:
    return quantize_money(sum((to_decimal(value) for value in values), Decimal('0')))


def vat_breakdown(subtotal, vat_percentage) -> tuple[Decimal, Decimal, Decimal]:
    """Return (subtotal, vat_amount, net_amount) for a VAT percentage."""
    subtotal = quantize_money(subtotal)
    vat_amount = quantize_money(subtotal * to_decimal(vat_percentage) / Decimal('100'))
    return subtotal, vat_amount, quantize_money(subtotal + vat_amount)


def estimation_profit(quotation_amount, estimated_amount, commission_amount) -> Decimal | None:
    # No quotation amount means there is nothing to measure profit against.
    if quotation_amount is None or quotation_amount == '':
        return None
    return quantize_money(
        to_decimal(quotation_amount) - to_decimal(estimated_amount) - to_decimal(commission_amount)
    )


def _words_below_thousand(number: int) -> str:
    parts = []
    hundreds, rest = divmod(number, 100)
    if hundreds:
        parts.append(f"{_ONES[hundreds]} Hundred")
    if rest:
        if rest < 20:
            parts.append(_ONES[rest])
        else:
            tens, ones = divmod(rest, 10)
            parts.append(_TENS[tens] if not ones else f"{_TENS[tens]}-{_ONES[ones]}")
    return ' '.join(parts)


def integer_to_words(number: int) -> str:
    if number == 0:
        return _ONES[0]
    parts = []
    for scale, label in _SCALES:
        if number >= scale:
            chunk, number = divmod(number, scale)
            parts.append(f"{integer_to_words(chunk)} {label}")
    if number:
        parts.append(_words_below_thousand(number))
    return ' '.join(parts)


def amount_in_words(amount) -> str:
    """Spell out a money amount, e.g. ``One Hundred Five UAE Dirhams and Fifty Fils``."""
    amount = quantize_money(amount)
    sign = 'Minus ' if amount < 0 else ''
    whole, fraction = divmod(abs(amount), 1)
    currency = getattr(settings, 'CURRENCY_NAME', 'UAE Dirhams')
    fraction_name = getattr(settings, 'CURRENCY_FRACTION_NAME', 'Fils')
    words = f"{sign}{integer_to_words(int(whole))} {currency}"
    cents = int((fraction * 100).to_integral_value())
    if cents:
        words = f"{words} and {integer_to_words(cents)} {fraction_name}"
    return words
