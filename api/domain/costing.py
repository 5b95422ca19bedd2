# SPDX-License-Identifier: Apache-2.0

"""
Cost aggregation for menus and distribution executions.

Menu costing follows the per-batch model used by SPPG kitchens: scaled
ingredient cost plus labour and utilities (direct cost), then packaging,
equipment, cleaning and a percentage overhead on direct cost (indirect cost).
All amounts are Rupiah.
"""

from dataclasses import dataclass, field, asdict
from decimal import Decimal
from typing import Any, Dict, List, Optional

from models.entities import MenuIngredient, NutritionMenu
from models.requests import CalculateCostRequest

DEFAULT_BATCH_PORTIONS = 100
DEFAULT_LABOR_COST_PER_HOUR = Decimal("20000")
PREPARATION_SHARE = Decimal("0.4")
COOKING_SHARE = Decimal("0.6")
DEFAULT_GAS_COST = Decimal("5000")
DEFAULT_ELECTRICITY_COST = Decimal("1500")
DEFAULT_WATER_COST = Decimal("1000")
PACKAGING_COST_PER_PORTION = Decimal("500")
DEFAULT_EQUIPMENT_COST = Decimal("8000")
DEFAULT_CLEANING_COST = Decimal("5000")
DEFAULT_OVERHEAD_PERCENTAGE = Decimal("15")

# Over-budget variance (%) above which a budget is flagged as far over
FAR_OVER_BUDGET_THRESHOLD = 10
TREND_THRESHOLD = 0.05


class CostCalculationError(ValueError):
    """Raised when a menu cannot be costed."""


@dataclass
class IngredientCost:
    inventory_item_id: str
    inventory_item_name: str
    quantity: float
    unit: str
    cost_per_unit: float
    total_cost: float


@dataclass
class MenuCostResult:
    """Cost breakdown of one production batch of a menu."""
    total_ingredient_cost: float
    ingredient_breakdown: List[IngredientCost]
    labor_cost_per_hour: float
    preparation_hours: float
    cooking_hours: float
    total_labor_cost: float
    gas_cost: float
    electricity_cost: float
    water_cost: float
    total_utility_cost: float
    packaging_cost: float
    equipment_cost: float
    cleaning_cost: float
    overhead_percentage: float
    overhead_cost: float
    total_direct_cost: float
    total_indirect_cost: float
    grand_total_cost: float
    planned_portions: int
    cost_per_portion: float
    budget_allocation: Optional[float]
    ingredient_cost_ratio: float
    labor_cost_ratio: float
    overhead_cost_ratio: float
    calculation_method: str = "AUTO"
    is_over_budget: Optional[bool] = None
    notes: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def default_batch_hours(portions: int) -> Decimal:
    """Kitchen hours for a batch: 1.5 below 50 portions, 4 above 150, else 2.5."""
    if portions < 50:
        return Decimal("1.5")
    if portions > 150:
        return Decimal("4.0")
    return Decimal("2.5")


def _override(value: Optional[float], default: Decimal) -> Decimal:
    return default if value is None else Decimal(str(value))


def calculate_ingredient_costs(menu: NutritionMenu, ingredients: List[MenuIngredient]) -> List[IngredientCost]:
    """Scale each ingredient from the 100 g basis to the menu serving size and price it.

    Ingredients without a joined inventory item are skipped.
    """
    scale = Decimal(str(menu.serving_size)) / Decimal("100")
    breakdown = []

    for ingredient in ingredients:
        item = ingredient.inventory_item
        if item is None:
            continue

        actual_quantity = Decimal(str(ingredient.quantity)) * scale
        total = actual_quantity * Decimal(str(item.cost_per_unit or 0))
        breakdown.append(IngredientCost(
            inventory_item_id=ingredient.inventory_item_id,
            inventory_item_name=item.item_name,
            quantity=float(actual_quantity),
            unit=item.unit,
            cost_per_unit=float(item.cost_per_unit or 0),
            total_cost=float(total),
        ))

    return breakdown


def calculate_menu_cost(
    menu: NutritionMenu,
    ingredients: List[MenuIngredient],
    options: Optional[CalculateCostRequest] = None
) -> MenuCostResult:
    """
    Calculate the full cost of a production batch of a menu.

    Args:
        menu: Menu providing serving size and default batch size
        ingredients: Ingredients joined with their inventory items
        options: Operational overrides; unset values use kitchen defaults

    Raises:
        CostCalculationError: if the menu has no ingredients
    """
    if not ingredients:
        raise CostCalculationError("Cannot calculate cost: menu has no ingredients")

    options = options or CalculateCostRequest()

    breakdown = calculate_ingredient_costs(menu, ingredients)
    ingredient_total = sum((Decimal(str(line.total_cost)) for line in breakdown), Decimal("0"))

    # A zero planned_portions falls back like an absent one
    batch_portions = options.planned_portions or menu.batch_size or DEFAULT_BATCH_PORTIONS
    hours = default_batch_hours(batch_portions)

    labor_rate = _override(options.labor_cost_per_hour, DEFAULT_LABOR_COST_PER_HOUR)
    preparation_hours = _override(options.preparation_hours, hours * PREPARATION_SHARE)
    cooking_hours = _override(options.cooking_hours, hours * COOKING_SHARE)
    labor_total = labor_rate * (preparation_hours + cooking_hours)

    gas = _override(options.gas_cost, DEFAULT_GAS_COST)
    electricity = _override(options.electricity_cost, DEFAULT_ELECTRICITY_COST)
    water = _override(options.water_cost, DEFAULT_WATER_COST)
    utility_total = gas + electricity + water

    packaging = _override(options.packaging_cost, PACKAGING_COST_PER_PORTION * batch_portions)
    equipment = _override(options.equipment_cost, DEFAULT_EQUIPMENT_COST)
    cleaning = _override(options.cleaning_cost, DEFAULT_CLEANING_COST)

    # A zero overhead percentage also falls back to the default
    overhead_pct = Decimal(str(options.overhead_percentage)) if options.overhead_percentage else DEFAULT_OVERHEAD_PERCENTAGE

    direct_total = ingredient_total + labor_total + utility_total
    overhead = direct_total * overhead_pct / 100
    indirect_total = packaging + equipment + cleaning + overhead
    grand_total = direct_total + indirect_total

    portions = options.planned_portions or menu.batch_size or 1
    cost_per_portion = grand_total / portions

    budget = options.budget_allocation if options.budget_allocation else None

    return MenuCostResult(
        total_ingredient_cost=_money(ingredient_total),
        ingredient_breakdown=breakdown,
        labor_cost_per_hour=float(labor_rate),
        preparation_hours=float(preparation_hours),
        cooking_hours=float(cooking_hours),
        total_labor_cost=_money(labor_total),
        gas_cost=float(gas),
        electricity_cost=float(electricity),
        water_cost=float(water),
        total_utility_cost=_money(utility_total),
        packaging_cost=_money(packaging),
        equipment_cost=float(equipment),
        cleaning_cost=float(cleaning),
        overhead_percentage=float(overhead_pct),
        overhead_cost=_money(overhead),
        total_direct_cost=_money(direct_total),
        total_indirect_cost=_money(indirect_total),
        grand_total_cost=_money(grand_total),
        planned_portions=portions,
        cost_per_portion=_money(cost_per_portion),
        budget_allocation=budget,
        ingredient_cost_ratio=_ratio(ingredient_total, grand_total),
        labor_cost_ratio=_ratio(labor_total, grand_total),
        overhead_cost_ratio=_ratio(overhead, grand_total),
        is_over_budget=(float(grand_total) > budget) if budget is not None else None,
        notes=options.notes,
    )


# Distribution execution costs


@dataclass
class CostBreakdown:
    """Production and distribution costs of one distribution execution."""
    production_estimated: float = 0
    production_actual: Optional[float] = None
    production_cost_per_portion: Optional[float] = None
    transport: Optional[float] = None
    fuel: Optional[float] = None
    packaging: Optional[float] = None
    other: Optional[float] = None
    total_portions: Optional[int] = None
    estimated_beneficiaries: Optional[int] = None

    @property
    def production_total(self) -> float:
        return self.production_actual or self.production_estimated

    @property
    def distribution_total(self) -> float:
        return (self.transport or 0) + (self.fuel or 0) + (self.packaging or 0) + (self.other or 0)

    @property
    def grand_total(self) -> float:
        return self.production_total + self.distribution_total


def build_cost_breakdown(
    production: Optional[Dict[str, Any]] = None,
    distribution: Optional[Dict[str, Any]] = None,
    schedule: Optional[Dict[str, Any]] = None
) -> CostBreakdown:
    """
    Combine raw production, distribution and schedule cost records.

    Fuel from the distribution record and the schedule are summed; zero or
    missing amounts become None.
    """
    production = production or {}
    distribution = distribution or {}
    schedule = schedule or {}

    fuel = (distribution.get("fuel_cost") or 0) + (schedule.get("fuel_cost") or 0)

    return CostBreakdown(
        production_estimated=production.get("estimated_cost") or 0,
        production_actual=production.get("actual_cost"),
        production_cost_per_portion=production.get("cost_per_portion"),
        transport=distribution.get("transport_cost") or None,
        fuel=fuel if fuel > 0 else None,
        packaging=schedule.get("packaging_cost") or None,
        other=distribution.get("other_costs") or None,
        total_portions=schedule.get("total_portions"),
        estimated_beneficiaries=schedule.get("estimated_beneficiaries"),
    )


def calculate_cost_variance(estimated: float, actual: Optional[float]) -> Optional[Dict[str, Any]]:
    """Variance of actual against estimated cost, None while actual is unknown."""
    if actual is None:
        return None

    amount = actual - estimated
    return {
        "amount": amount,
        "percentage": (amount / estimated * 100) if estimated > 0 else 0,
        "is_over_budget": amount > 0,
    }


def calculate_cost_per_beneficiary(total_cost: float, beneficiary_count: int) -> float:
    if beneficiary_count == 0:
        return 0
    return total_cost / beneficiary_count


def calculate_cost_efficiency(costs: CostBreakdown) -> Dict[str, float]:
    """Per-portion and per-beneficiary cost plus the production/distribution split."""
    grand_total = costs.grand_total
    portions = costs.total_portions or 1
    beneficiaries = costs.estimated_beneficiaries or 1

    return {
        "cost_per_portion": grand_total / portions,
        "cost_per_beneficiary": grand_total / beneficiaries,
        "production_efficiency": (costs.production_total / grand_total * 100) if grand_total > 0 else 0,
        "distribution_efficiency": (costs.distribution_total / grand_total * 100) if grand_total > 0 else 0,
    }


def get_budget_status(variance_percentage: float) -> Dict[str, str]:
    """Label and severity colour for a budget variance percentage."""
    if variance_percentage == 0:
        return {"label": "Sesuai Budget", "color": "success"}
    if variance_percentage > 0:
        if variance_percentage > FAR_OVER_BUDGET_THRESHOLD:
            return {"label": "Jauh Over Budget", "color": "error"}
        return {"label": "Sedikit Over Budget", "color": "warning"}
    return {"label": "Under Budget", "color": "success"}


def compare_costs(current: CostBreakdown, previous: CostBreakdown) -> Dict[str, float]:
    total_change = current.grand_total - previous.grand_total
    return {
        "production_change": current.production_total - previous.production_total,
        "distribution_change": current.distribution_total - previous.distribution_total,
        "total_change": total_change,
        "change_percentage": (total_change / previous.grand_total * 100) if previous.grand_total > 0 else 0,
    }


def calculate_cost_trends(history: List[CostBreakdown]) -> Dict[str, Any]:
    """
    Summarise a chronological cost history.

    The trend compares the mean of the later half with the earlier half;
    a change within 5% of the earlier mean is 'stable'.
    """
    if not history:
        return {"trend": "stable", "average_cost": 0, "highest_cost": 0, "lowest_cost": 0}

    totals = [cost.grand_total for cost in history]
    trend = "stable"

    if len(totals) >= 2:
        middle = len(totals) // 2
        first_avg = sum(totals[:middle]) / middle
        second_avg = sum(totals[middle:]) / (len(totals) - middle)
        diff = second_avg - first_avg
        threshold = first_avg * TREND_THRESHOLD
        if diff > threshold:
            trend = "increasing"
        elif diff < -threshold:
            trend = "decreasing"

    return {
        "trend": trend,
        "average_cost": sum(totals) / len(totals),
        "highest_cost": max(totals),
        "lowest_cost": min(totals),
    }


def format_rupiah(amount: Optional[float]) -> str:
    """Format an amount as Indonesian Rupiah without decimals, e.g. 'Rp 1.250.000'."""
    if amount is None:
        return "Rp 0"
    rounded = int(Decimal(str(amount)).quantize(Decimal("1")))
    sign = "-" if rounded < 0 else ""
    return f"{sign}Rp {abs(rounded):,}".replace(",", ".")


def _money(value: Decimal) -> float:
    return float(value.quantize(Decimal("0.01")))


def _ratio(part: Decimal, whole: Decimal) -> float:
    if not whole:
        return 0.0
    return float((part / whole * 100).quantize(Decimal("0.01")))
