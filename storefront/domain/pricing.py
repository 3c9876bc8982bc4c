"""Order pricing rules.

Pure functions of the subtotal and discount: no I/O and no hidden state,
so identical inputs always price identically.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from storefront.domain.value_objects import DEFAULT_CURRENCY, Money, OrderTotals


@dataclass(frozen=True)
class PricingPolicy:
    """Fixed business rules for shipping and tax.

    Attributes:
        free_shipping_threshold: Subtotal at or above which shipping is free.
        flat_shipping_fee: Fee charged below the threshold.
        tax_rate: Tax applied to the subtotal (GST).
    """

    free_shipping_threshold: Money = Money(50000)
    flat_shipping_fee: Money = Money(5000)
    tax_rate: Decimal = Decimal("0.18")

    @classmethod
    def from_amounts(
        cls,
        free_shipping_threshold: Decimal | int | str,
        flat_shipping_fee: Decimal | int | str,
        tax_rate: Decimal | float | str,
        currency: str = DEFAULT_CURRENCY,
    ) -> "PricingPolicy":
        """Build a policy from amounts in major units."""
        return cls(
            free_shipping_threshold=Money.from_decimal(free_shipping_threshold, currency),
            flat_shipping_fee=Money.from_decimal(flat_shipping_fee, currency),
            tax_rate=Decimal(str(tax_rate)),
        )

    def shipping_for(self, subtotal: Money) -> Money:
        if subtotal >= self.free_shipping_threshold:
            return Money.zero(subtotal.currency)
        return self.flat_shipping_fee

    def tax_for(self, subtotal: Money) -> Money:
        """Tax rounded half-up to the minor unit."""
        tax_minor = (Decimal(subtotal.amount_minor) * self.tax_rate).quantize(
            Decimal("1"), rounding=ROUND_HALF_UP
        )
        return Money(amount_minor=int(tax_minor), currency=subtotal.currency)

    def calculate(self, subtotal: Money, discount: Money | None = None) -> OrderTotals:
        """Price a subtotal.

        Args:
            subtotal: Sum of cart line totals.
            discount: Externally supplied discount, zero when absent.

        Returns:
            OrderTotals whose total reconciles with its parts.

        Raises:
            NegativeMoneyError: If the discount exceeds everything else.
        """
        discount = discount or Money.zero(subtotal.currency)
        shipping = self.shipping_for(subtotal)
        tax = self.tax_for(subtotal)
        total = subtotal + shipping + tax - discount
        return OrderTotals(
            subtotal=subtotal,
            shipping=shipping,
            tax=tax,
            discount=discount,
            total=total,
        )
