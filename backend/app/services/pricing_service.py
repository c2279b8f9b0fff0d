"""
Pricing Service
Computes the full price breakdown of an order

Pure function of (rules, customer location, items, evaluation date):
no database access and no clock reads, so two calls with the same
inputs always return the same result.

Steps:
1. Location tariff on every unit price (rounded per unit, then per line)
2. Volume discount candidate (total quantity across all lines)
3. Date discount candidate (priority rule first, then seasonal rules)
4. The candidate with the larger discount AMOUNT wins; discounts never stack
5. The winning rate is distributed to every eligible line

Author: TM3
Date: 2026-10-12
"""
from datetime import date
from decimal import Decimal
from functools import reduce
from typing import List, NamedTuple, Optional, Sequence

from app.core.exceptions import InvalidOrderItem
from app.domain.money import Money, sum_money
from app.domain.order import AppliedDiscount, OrderLineItem, PricingBreakdown
from app.domain.pricing import (
    DEFAULT_PRICING_RULES,
    DateDiscount,
    DateDiscountRule,
    DiscountDescriptor,
    PricingRuleSet,
    VolumeDiscount,
)
from app.domain.product import Product


class PricingItem(NamedTuple):
    """A resolved product and the quantity requested"""
    product: Product
    quantity: int


class PricingResult(NamedTuple):
    """Priced lines, order breakdown and the full applied discount (if any)"""
    items: List[OrderLineItem]
    pricing: PricingBreakdown
    discount: Optional[DiscountDescriptor]


class DiscountCandidate(NamedTuple):
    descriptor: DiscountDescriptor
    amount: Money


class _Line(NamedTuple):
    product: Product
    quantity: int
    unit_base: Money


class PricingService:
    """Deterministic pricing and discount-rule evaluator"""

    def __init__(self, rules: PricingRuleSet = DEFAULT_PRICING_RULES):
        self.rules = rules

    def price(
        self,
        location_code: Optional[str],
        items: Sequence[PricingItem],
        evaluation_date: date,
    ) -> PricingResult:
        """
        Price an order

        Args:
            location_code: Customer location (unknown codes are neutral)
            items: (product, quantity) pairs, in request order
            evaluation_date: Calendar date used for date discounts

        Returns:
            PricingResult with per-line unit prices and the breakdown

        Raises:
            InvalidOrderItem: if a quantity is not a positive integer
        """
        multiplier = self.rules.tariff_multiplier(location_code)

        lines = []
        for product, quantity in items:
            if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
                raise InvalidOrderItem(product.id, quantity)
            unit_base = Money(product.price).times(multiplier)
            lines.append(_Line(product, quantity, unit_base))

        base_price = sum_money(line.unit_base.times(line.quantity) for line in lines)
        total_quantity = sum(line.quantity for line in lines)

        candidates = [
            candidate
            for candidate in (
                self._volume_candidate(base_price, total_quantity),
                self._date_candidate(base_price, lines, evaluation_date),
            )
            if candidate is not None and candidate.amount > Money.zero()
        ]
        best = reduce(self._larger_discount, candidates, None)
        descriptor = best.descriptor if best else None

        priced_items = []
        discount_amount = Money.zero()
        for line in lines:
            unit_final = line.unit_base
            if descriptor is not None and descriptor.covers(line.product.category):
                unit_final = line.unit_base.times(Decimal(1) - descriptor.rate)
            priced_items.append(OrderLineItem(
                product_id=line.product.id,
                quantity=line.quantity,
                unit_base_price=line.unit_base.amount,
                unit_final_price=unit_final.amount,
            ))
            discount_amount = discount_amount + (line.unit_base - unit_final).times(line.quantity)

        pricing = PricingBreakdown(
            base_price=base_price.amount,
            location_tariff_rate=multiplier,
            applied_discount=(
                AppliedDiscount(type=descriptor.type, rate=descriptor.rate) if descriptor else None
            ),
            discount_amount=discount_amount.amount,
            final_price=(base_price - discount_amount).amount,
        )
        return PricingResult(items=priced_items, pricing=pricing, discount=descriptor)

    @staticmethod
    def _larger_discount(
        best: Optional[DiscountCandidate],
        candidate: DiscountCandidate,
    ) -> DiscountCandidate:
        # strictly greater replaces, so the earlier candidate keeps a tie
        if best is None or candidate.amount > best.amount:
            return candidate
        return best

    def _volume_candidate(self, base_price: Money, total_quantity: int) -> Optional[DiscountCandidate]:
        rule = self.rules.volume_rule_for(total_quantity)
        if rule is None:
            return None
        return DiscountCandidate(
            descriptor=VolumeDiscount(min_items=rule.min_items, rate=rule.rate),
            amount=base_price.times(rule.rate),
        )

    def _date_candidate(
        self,
        base_price: Money,
        lines: Sequence[_Line],
        evaluation_date: date,
    ) -> Optional[DiscountCandidate]:
        for rule in self.rules.priority_rules_on(evaluation_date):
            if not rule.categories:
                return DiscountCandidate(self._describe(rule), base_price.times(rule.rate))
            candidate = self._scoped_candidate(rule, lines)
            if candidate is not None:
                return candidate

        for rule in self.rules.seasonal_rules_on(evaluation_date):
            candidate = self._scoped_candidate(rule, lines)
            if candidate is not None:
                return candidate

        return None

    def _scoped_candidate(self, rule: DateDiscountRule, lines: Sequence[_Line]) -> Optional[DiscountCandidate]:
        eligible = [line for line in lines if rule.covers(line.product.category)]
        if not eligible:
            return None
        amount = sum_money(
            line.unit_base.times(rule.rate).times(line.quantity) for line in eligible
        )
        return DiscountCandidate(self._describe(rule), amount)

    @staticmethod
    def _describe(rule: DateDiscountRule) -> DateDiscount:
        return DateDiscount(
            type=rule.type,
            rate=rule.rate,
            eligible_dates=rule.dates,
            eligible_categories=rule.categories,
        )
