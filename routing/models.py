# =============================================================================
# routing/models.py  -  Data Models (the "nouns" of the system)
# =============================================================================
#
# These dataclasses define the shape of everything that flows between the
# provider adapter, the estimators and the tool dispatcher.
#
# NAMING:
#   Python attributes are snake_case.  The JSON that leaves the server is
#   camelCase (distance, durationInTraffic, tollInfo, ...), so every model
#   that is sent to a client has a to_dict() that produces the wire shape.
#
# LIFETIME:
#   Nothing here is persisted.  A RouteQuery is built per tool call, a
#   NormalizedRoute is built from one provider response, and both are
#   dropped when the tool call returns.  Models are frozen so nothing
#   downstream can mutate a route after the adapter produced it.
# =============================================================================

from dataclasses import dataclass, field
from typing import Any, Optional

from routing.errors import InsufficientDataError

TRAFFIC_MODELS = ("best_guess", "pessimistic", "optimistic")


# -----------------------------------------------------------------------------
# RouteOptions / RouteQuery - what the caller asked for
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class RouteOptions:
    """Routing preferences forwarded to the provider."""

    avoid_tolls: bool = False
    avoid_highways: bool = False
    avoid_ferries: bool = False
    departure_time: Optional[str] = None     # "now" or an ISO-8601 datetime
    traffic_model: str = "best_guess"
    alternatives: bool = False

    def __post_init__(self):
        if self.traffic_model not in TRAFFIC_MODELS:
            raise ValueError(
                f"Invalid traffic model '{self.traffic_model}'. "
                f"Expected one of: {', '.join(TRAFFIC_MODELS)}"
            )

    @classmethod
    def from_dict(
        cls, data: Optional[dict], default_traffic_model: str = "best_guess", **overrides
    ) -> "RouteOptions":
        """Build options from the camelCase object a tool call carries.

        `overrides` (snake_case) win over anything in `data`.
        """
        data = data or {}
        values = {
            "avoid_tolls": bool(data.get("avoidTolls", False)),
            "avoid_highways": bool(data.get("avoidHighways", False)),
            "avoid_ferries": bool(data.get("avoidFerries", False)),
            "departure_time": data.get("departureTime"),
            "traffic_model": data.get("trafficModel") or default_traffic_model,
            "alternatives": bool(data.get("alternatives", False)),
        }
        values.update(overrides)
        return cls(**values)


@dataclass(frozen=True)
class RouteQuery:
    """One directions request: where from, where to, via where, and how."""

    origin: str                              # Address or "lat,lng"
    destination: str
    waypoints: tuple[str, ...] = ()
    options: RouteOptions = field(default_factory=RouteOptions)


# -----------------------------------------------------------------------------
# NormalizedRoute - the provider-agnostic route
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class Step:
    """One turn-by-turn instruction, with HTML already stripped."""

    instruction: str
    distance_text: str                       # "0.4 km"
    duration_text: str                       # "2 mins"
    maneuver: Optional[str] = None           # "turn-left", "merge", ...

    def to_dict(self) -> dict:
        return {
            "instruction": self.instruction,
            "distance": self.distance_text,
            "duration": self.duration_text,
            "maneuver": self.maneuver,
        }


@dataclass(frozen=True)
class TollInfo:
    """Best-effort toll signal derived from the route's warning strings.

    estimated_cost stays None for provider routes; only a route object sent
    back by a client can carry a figure here.
    """

    has_tolls: bool = False
    warnings: tuple[str, ...] = ()
    estimated_cost: Optional[float] = None

    def to_dict(self) -> dict:
        return {
            "hasTolls": self.has_tolls,
            "warnings": list(self.warnings),
            "estimatedCost": self.estimated_cost,
        }


@dataclass(frozen=True)
class NormalizedRoute:
    """A single route, reshaped from one provider response."""

    summary: str
    distance_meters: int
    duration_seconds: int
    duration_in_traffic_seconds: int         # == duration_seconds without live data
    polyline: str = ""
    steps: tuple[Step, ...] = ()
    warnings: tuple[str, ...] = ()
    toll_info: TollInfo = field(default_factory=TollInfo)
    bounds: Optional[dict] = None
    copyrights: str = ""

    def to_dict(self) -> dict:
        return {
            "summary": self.summary,
            "distance": self.distance_meters,
            "duration": self.duration_seconds,
            "durationInTraffic": self.duration_in_traffic_seconds,
            "polyline": self.polyline,
            "steps": [step.to_dict() for step in self.steps],
            "warnings": list(self.warnings),
            "tollInfo": self.toll_info.to_dict(),
            "bounds": self.bounds,
            "copyrights": self.copyrights,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "NormalizedRoute":
        """Rebuild a route from the camelCase object calculate_route returned.

        Only `distance` is strictly needed for costing; everything else
        falls back to empty values.  Numbers must be non-negative and the
        nested tollInfo / steps must keep the shape to_dict() produces.

        Raises:
            InsufficientDataError: a field is missing, negative or the
                wrong type.
        """
        distance = _non_negative(data.get("distance"), "distance")
        if distance is None:
            raise InsufficientDataError(
                "Route object must include a numeric 'distance' in meters"
            )
        duration = _non_negative(data.get("duration"), "duration") or 0
        in_traffic = _non_negative(data.get("durationInTraffic"), "durationInTraffic")
        if in_traffic is None:
            in_traffic = duration

        toll = data.get("tollInfo")
        if toll is None:
            toll = {}
        if not isinstance(toll, dict):
            raise InsufficientDataError("Route 'tollInfo' must be an object")
        toll_info = TollInfo(
            has_tolls=bool(toll.get("hasTolls", False)),
            warnings=tuple(toll.get("warnings") or ()),
            estimated_cost=_non_negative(toll.get("estimatedCost"), "tollInfo.estimatedCost"),
        )

        raw_steps = data.get("steps") or ()
        if not isinstance(raw_steps, (list, tuple)) or not all(isinstance(s, dict) for s in raw_steps):
            raise InsufficientDataError("Route 'steps' must be a list of objects")
        steps = tuple(
            Step(
                instruction=s.get("instruction", ""),
                distance_text=s.get("distance", ""),
                duration_text=s.get("duration", ""),
                maneuver=s.get("maneuver"),
            )
            for s in raw_steps
        )
        return cls(
            summary=data.get("summary", ""),
            distance_meters=distance,
            duration_seconds=duration,
            duration_in_traffic_seconds=in_traffic,
            polyline=data.get("polyline", ""),
            steps=steps,
            warnings=tuple(data.get("warnings") or ()),
            toll_info=toll_info,
            bounds=data.get("bounds"),
            copyrights=data.get("copyrights", ""),
        )


def _non_negative(value: Any, name: str):
    """None passes through; anything else must be a number >= 0."""
    if value is None:
        return None
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        raise InsufficientDataError(f"Route '{name}' must be a number")
    if value < 0:
        raise InsufficientDataError(f"Route '{name}' must not be negative, got {value}")
    return value


# -----------------------------------------------------------------------------
# TrafficSnapshot - live traffic plus departure-time samples
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class TrafficSnapshot:
    """Primary traffic reading plus how it shifts with later departures.

    alternative_times maps a label like "+30min" to
    {"duration": <seconds>, "departureTime": <ISO-8601>}.  Samples that
    failed are simply absent.
    """

    duration: int
    duration_in_traffic: int
    route: NormalizedRoute
    alternative_times: dict[str, dict[str, Any]] = field(default_factory=dict)


# -----------------------------------------------------------------------------
# VehicleOptions / CostEstimate - trip cost inputs and outputs
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class VehicleOptions:
    """Per-call vehicle parameters.  None means "use the configured default"."""

    fuel_efficiency: Optional[float] = None  # Liters per 100 km
    fuel_price: Optional[float] = None       # Currency per liter

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "VehicleOptions":
        data = data or {}
        return cls(
            fuel_efficiency=data.get("fuelEfficiency"),
            fuel_price=data.get("fuelPrice"),
        )


@dataclass(frozen=True)
class CostEstimate:
    """Fuel + toll cost for one route, rounded to cents."""

    fuel_cost: float
    toll_cost: float
    total_cost: float
    breakdown: dict[str, str] = field(default_factory=dict)
    assumptions: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "fuel": self.fuel_cost,
            "tolls": self.toll_cost,
            "total": self.total_cost,
            "breakdown": dict(self.breakdown),
            "assumptions": dict(self.assumptions),
        }
