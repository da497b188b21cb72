# =============================================================================
# routing/costs.py  -  Trip cost estimation
# =============================================================================
#
# Pure arithmetic over a NormalizedRoute:
#
#   distance_km  = distance_meters / 1000
#   fuel_needed  = distance_km / 100 * fuel_efficiency       (liters)
#   fuel_cost    = fuel_needed * fuel_price
#   toll_cost    = route.toll_info.estimated_cost            if known
#                  distance_km * toll_estimate_per_km        otherwise
#   total_cost   = fuel_cost + toll_cost
#
# Money is rounded half-up to cents.  The provider never prices tolls, so
# the flat per-km estimate is what almost every call ends up using.
# =============================================================================

from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from routing.config import CostDefaults
from routing.errors import InsufficientDataError
from routing.models import CostEstimate, NormalizedRoute, VehicleOptions

_CENTS = Decimal("0.01")


def round_money(amount: float) -> float:
    """Round to two decimals, half-up (2.345 → 2.35)."""
    return float(Decimal(str(amount)).quantize(_CENTS, rounding=ROUND_HALF_UP))


def _resolve(value: Optional[float], default: float, name: str) -> float:
    # Missing or zero falls back to the configured default.
    if not value:
        return default
    if value < 0:
        raise ValueError(f"{name} must be positive, got {value}")
    return float(value)


def estimate_costs(
    route: Optional[NormalizedRoute],
    vehicle_options: Optional[VehicleOptions],
    defaults: CostDefaults,
) -> CostEstimate:
    """Estimate fuel, toll and total cost for driving `route`.

    Args:
        route: The route to cost.  Callers holding only an origin and a
               destination must fetch a route first.
        vehicle_options: Per-call fuel efficiency / price; either may be None.
        defaults: Configured fallbacks and the per-km toll estimate.

    Raises:
        InsufficientDataError: route is None.
        ValueError: a negative fuel efficiency or fuel price.
    """
    if route is None:
        raise InsufficientDataError("No route data available for cost estimation")

    vehicle_options = vehicle_options or VehicleOptions()
    fuel_efficiency = _resolve(
        vehicle_options.fuel_efficiency, defaults.vehicle_fuel_efficiency, "fuelEfficiency"
    )
    fuel_price = _resolve(vehicle_options.fuel_price, defaults.fuel_price_per_liter, "fuelPrice")

    distance_km = route.distance_meters / 1000
    fuel_needed = (distance_km / 100) * fuel_efficiency
    fuel_cost = fuel_needed * fuel_price

    if route.toll_info.estimated_cost is not None:
        toll_cost = float(route.toll_info.estimated_cost)
        toll_source = "Provided with route"
    else:
        toll_cost = distance_km * defaults.toll_estimate_per_km
        toll_source = f"{defaults.toll_estimate_per_km} per km flat estimate"

    return CostEstimate(
        fuel_cost=round_money(fuel_cost),
        toll_cost=round_money(toll_cost),
        total_cost=round_money(fuel_cost + toll_cost),
        breakdown={
            "distance": f"{distance_km:.1f} km",
            "fuelNeeded": f"{fuel_needed:.1f} L",
            "fuelEfficiency": f"{fuel_efficiency} L/100km",
            "fuelPrice": f"{fuel_price}/L",
        },
        assumptions={
            "fuelEfficiency": f"{fuel_efficiency} L/100km",
            "fuelPrice": f"{fuel_price} per liter",
            "tollEstimate": toll_source,
        },
    )
