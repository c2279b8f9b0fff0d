"""
Pricing Rules - location tariffs, volume discounts and date discounts

The rule catalog is an immutable value: it is built (or loaded from a
JSON file) once at startup and handed to the PricingService.

Author: TM3
Date: 2026-10-12
"""
from datetime import date
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Annotated, FrozenSet, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.domain.money import round_rate
from app.domain.product import ProductCategory


class LocationCode(str, Enum):
    """Customer location codes known to the default tariff table"""
    US = "US"
    EU = "EU"
    ASIA = "ASIA"


class DiscountType(str, Enum):
    VOLUME = "volume"
    BLACK_FRIDAY = "black_friday"
    HOLIDAY = "holiday"


NEUTRAL_MULTIPLIER = Decimal("1.0000")


class _Rule(BaseModel):
    model_config = ConfigDict(frozen=True)

    description: Optional[str] = None


class LocationTariffRule(_Rule):
    """Price multiplier applied to every unit price for one location"""
    location: str
    multiplier: Decimal = Field(..., gt=0)

    @field_validator("multiplier")
    @classmethod
    def _four_places(cls, value: Decimal) -> Decimal:
        return round_rate(value)


class VolumeDiscountRule(_Rule):
    """Discount rate unlocked by the total quantity ordered"""
    min_items: int = Field(..., ge=1)
    rate: Decimal = Field(..., ge=0, le=1)

    @field_validator("rate")
    @classmethod
    def _four_places(cls, value: Decimal) -> Decimal:
        return round_rate(value)


class DateDiscountRule(_Rule):
    """
    Discount active on specific calendar dates.

    An empty category set means every category is eligible.
    """
    type: DiscountType
    rate: Decimal = Field(..., ge=0, le=1)
    dates: FrozenSet[date]
    categories: FrozenSet[ProductCategory] = frozenset()

    @field_validator("rate")
    @classmethod
    def _four_places(cls, value: Decimal) -> Decimal:
        return round_rate(value)

    @field_validator("type")
    @classmethod
    def _not_volume(cls, value: DiscountType) -> DiscountType:
        if value == DiscountType.VOLUME:
            raise ValueError("date discounts cannot use the volume type")
        return value

    def is_active_on(self, day: date) -> bool:
        return day in self.dates

    def covers(self, category: ProductCategory) -> bool:
        return not self.categories or category in self.categories


# ============================================================================
# Discount descriptors (tagged variant)
# ============================================================================

class VolumeDiscount(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["volume"] = "volume"
    min_items: int
    rate: Decimal

    @property
    def type(self) -> DiscountType:
        return DiscountType.VOLUME

    def covers(self, category: ProductCategory) -> bool:
        return True


class DateDiscount(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["date"] = "date"
    type: DiscountType
    rate: Decimal
    eligible_dates: FrozenSet[date]
    eligible_categories: FrozenSet[ProductCategory] = frozenset()

    def covers(self, category: ProductCategory) -> bool:
        return not self.eligible_categories or category in self.eligible_categories


DiscountDescriptor = Annotated[Union[VolumeDiscount, DateDiscount], Field(discriminator="kind")]


# ============================================================================
# Rule catalog
# ============================================================================

class PricingRuleSet(BaseModel):
    """
    Complete pricing catalog.

    Date rules whose type equals priority_discount_type take precedence
    over every other (seasonal) date rule active on the same day.
    """
    model_config = ConfigDict(frozen=True)

    location_tariffs: Tuple[LocationTariffRule, ...] = ()
    volume_discounts: Tuple[VolumeDiscountRule, ...] = ()
    date_discounts: Tuple[DateDiscountRule, ...] = ()
    priority_discount_type: DiscountType = DiscountType.BLACK_FRIDAY

    @field_validator("location_tariffs")
    @classmethod
    def _unique_locations(cls, rules: Tuple[LocationTariffRule, ...]) -> Tuple[LocationTariffRule, ...]:
        locations = [rule.location for rule in rules]
        if len(locations) != len(set(locations)):
            raise ValueError("duplicate location in tariff rules")
        return rules

    @field_validator("volume_discounts")
    @classmethod
    def _descending_thresholds(cls, rules: Tuple[VolumeDiscountRule, ...]) -> Tuple[VolumeDiscountRule, ...]:
        return tuple(sorted(rules, key=lambda rule: rule.min_items, reverse=True))

    def tariff_multiplier(self, location: Optional[str]) -> Decimal:
        """Multiplier for a location; unknown locations are neutral"""
        for rule in self.location_tariffs:
            if rule.location == location:
                return rule.multiplier
        return NEUTRAL_MULTIPLIER

    def volume_rule_for(self, total_quantity: int) -> Optional[VolumeDiscountRule]:
        """Highest threshold met by the total quantity"""
        for rule in self.volume_discounts:
            if total_quantity >= rule.min_items:
                return rule
        return None

    def priority_rules_on(self, day: date) -> Tuple[DateDiscountRule, ...]:
        return tuple(
            rule for rule in self.date_discounts
            if rule.type == self.priority_discount_type and rule.is_active_on(day)
        )

    def seasonal_rules_on(self, day: date) -> Tuple[DateDiscountRule, ...]:
        return tuple(
            rule for rule in self.date_discounts
            if rule.type != self.priority_discount_type and rule.is_active_on(day)
        )


def _holiday_dates(*isodates: str) -> FrozenSet[date]:
    return frozenset(date.fromisoformat(d) for d in isodates)


DEFAULT_PRICING_RULES = PricingRuleSet(
    location_tariffs=(
        LocationTariffRule(
            location=LocationCode.EU.value,
            multiplier=Decimal("1.15"),
            description="Prices increased by 15% due to VAT",
        ),
        LocationTariffRule(
            location=LocationCode.ASIA.value,
            multiplier=Decimal("0.95"),
            description="Prices reduced by 5% due to lower logistics costs",
        ),
    ),
    volume_discounts=(
        VolumeDiscountRule(min_items=50, rate=Decimal("0.30"), description="50 or more units: 30% off"),
        VolumeDiscountRule(min_items=10, rate=Decimal("0.20"), description="10 or more units: 20% off"),
        VolumeDiscountRule(min_items=5, rate=Decimal("0.10"), description="5 or more units: 10% off"),
    ),
    date_discounts=(
        DateDiscountRule(
            type=DiscountType.BLACK_FRIDAY,
            rate=Decimal("0.25"),
            dates=_holiday_dates("2025-11-29"),
            description="Black Friday Sale: 25% off all products",
        ),
        DateDiscountRule(
            type=DiscountType.HOLIDAY,
            rate=Decimal("0.15"),
            dates=_holiday_dates(
                "2025-01-01", "2025-01-06", "2025-04-20", "2025-04-21",
                "2025-05-01", "2025-05-03", "2025-06-08", "2025-06-19",
                "2025-08-15", "2025-11-01", "2025-11-11", "2025-12-24",
                "2025-12-25", "2025-12-26",
            ),
            categories=frozenset({ProductCategory.ELECTRONICS, ProductCategory.CLOTHING}),
            description="Holiday Sales: 15% off selected product categories",
        ),
    ),
    priority_discount_type=DiscountType.BLACK_FRIDAY,
)


def load_pricing_rules(path: Optional[str] = None) -> PricingRuleSet:
    """
    Load the rule catalog from a JSON file, or return the built-in default

    Args:
        path: Path to a JSON document matching PricingRuleSet

    Returns:
        Validated, immutable PricingRuleSet
    """
    if not path:
        return DEFAULT_PRICING_RULES
    return PricingRuleSet.model_validate_json(Path(path).read_text(encoding="utf-8"))
