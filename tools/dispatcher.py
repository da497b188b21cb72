# =============================================================================
# tools/dispatcher.py  -  Tool catalog + call routing
# =============================================================================
#
# WHAT THIS FILE DOES:
#   Declares the four tools the server offers and routes a named call to
#   the handler that implements it.  Each handler:
#     1. Reads its (camelCase) arguments
#     2. Calls the directions client, possibly several times concurrently
#     3. Runs the results through the cost estimator / traffic classifier
#     4. Returns a result envelope:
#          {"success": true, <payload>, "metadata": {"timestamp": ..., ...}}
#
# THE ERROR BOUNDARY:
#   call_tool() never raises.  Whatever goes wrong inside a handler (unknown
#   tool, no route, provider failure, bad arguments) comes back as
#     {"content": [{"type": "text", "text": "Error: <message>"}], "isError": true}
#
# PARTIAL FAILURES:
#   compare_routes is ALL_OR_NOTHING: if any of its queries fails, the whole
#   comparison fails.  get_live_traffic's departure-time samples are
#   BEST_EFFORT (handled inside DirectionsClient.get_traffic_info).
# =============================================================================

import copy
import json
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Optional, Protocol

from routing.config import CostDefaults, RoutingDefaults
from routing.costs import estimate_costs
from routing.errors import InsufficientDataError, UnknownToolError
from routing.fanout import FanOutPolicy, gather
from routing.models import (
    NormalizedRoute,
    RouteOptions,
    RouteQuery,
    TrafficSnapshot,
    VehicleOptions,
)
from routing.traffic import classify

logger = logging.getLogger(__name__)

RECOMMENDATION_REASON = "Fastest travel time with current traffic conditions"

_TRAFFIC_MODEL_SCHEMA = {
    "type": "string",
    "enum": ["best_guess", "pessimistic", "optimistic"],
    "default": "best_guess",
}

# =============================================================================
# Tool catalog
# =============================================================================
TOOLS: list[dict[str, Any]] = [
    {
        "name": "calculate_route",
        "description": "Calculate optimal route between origin and destination with traffic consideration",
        "inputSchema": {
            "type": "object",
            "properties": {
                "origin": {"type": "string", "description": "Starting location (address or coordinates)"},
                "destination": {"type": "string", "description": "Destination location (address or coordinates)"},
                "waypoints": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Optional waypoints between origin and destination",
                },
                "options": {
                    "type": "object",
                    "properties": {
                        "avoidTolls": {"type": "boolean", "default": False},
                        "avoidHighways": {"type": "boolean", "default": False},
                        "avoidFerries": {"type": "boolean", "default": False},
                        "departureTime": {"type": "string", "description": "ISO datetime for departure"},
                        "trafficModel": _TRAFFIC_MODEL_SCHEMA,
                    },
                },
            },
            "required": ["origin", "destination"],
        },
    },
    {
        "name": "compare_routes",
        "description": "Compare multiple route alternatives with different options",
        "inputSchema": {
            "type": "object",
            "properties": {
                "origin": {"type": "string", "description": "Starting location"},
                "destination": {"type": "string", "description": "Destination location"},
                "waypoints": {"type": "array", "items": {"type": "string"}},
                "alternatives": {"type": "boolean", "default": True},
                "compareOptions": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "avoidTolls": {"type": "boolean"},
                            "avoidHighways": {"type": "boolean"},
                            "avoidFerries": {"type": "boolean"},
                            "trafficModel": _TRAFFIC_MODEL_SCHEMA,
                        },
                    },
                },
            },
            "required": ["origin", "destination"],
        },
    },
    {
        "name": "get_live_traffic",
        "description": "Get live traffic information and travel time for a route",
        "inputSchema": {
            "type": "object",
            "properties": {
                "origin": {"type": "string", "description": "Starting location"},
                "destination": {"type": "string", "description": "Destination location"},
                "departureTime": {"type": "string", "description": "Departure time (now, or ISO datetime)"},
            },
            "required": ["origin", "destination"],
        },
    },
    {
        "name": "estimate_costs",
        "description": "Estimate trip costs including fuel, tolls, and total expenses",
        "inputSchema": {
            "type": "object",
            "properties": {
                "route": {
                    "type": "object",
                    "description": "Route object from calculate_route or provide origin/destination",
                },
                "origin": {"type": "string"},
                "destination": {"type": "string"},
                "vehicleOptions": {
                    "type": "object",
                    "properties": {
                        "fuelEfficiency": {"type": "number", "description": "Liters per 100km"},
                        "fuelPrice": {"type": "number", "description": "Price per liter"},
                    },
                },
            },
        },
    },
]


class RouteProvider(Protocol):
    """What the dispatcher needs from a directions client."""

    async def calculate_route(self, query: RouteQuery) -> NormalizedRoute: ...

    async def get_traffic_info(
        self, origin: str, destination: str, departure_time: Optional[str] = "now"
    ) -> TrafficSnapshot: ...


def text_result(payload: dict) -> dict:
    """Wrap a handler envelope as MCP text content (pretty-printed JSON)."""
    return {"content": [{"type": "text", "text": json.dumps(payload, indent=2)}]}


def error_result(message: str) -> dict:
    return {"content": [{"type": "text", "text": f"Error: {message}"}], "isError": True}


def _route_summary(index: int, route: NormalizedRoute, options: Any) -> dict:
    return {
        "id": index,
        "summary": route.summary,
        "distance": route.distance_meters,
        "duration": route.duration_seconds,
        "durationInTraffic": route.duration_in_traffic_seconds,
        "tollInfo": route.toll_info.to_dict(),
        "options": options,
    }


# =============================================================================
# ToolDispatcher
# =============================================================================
class ToolDispatcher:
    """Maps tool names to handlers and turns every outcome into an MCP result."""

    def __init__(
        self,
        provider: RouteProvider,
        cost_defaults: Optional[CostDefaults] = None,
        routing_defaults: Optional[RoutingDefaults] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.provider = provider
        self.cost_defaults = cost_defaults or CostDefaults()
        self.routing_defaults = routing_defaults or RoutingDefaults()
        self._clock = clock
        self._handlers: dict[str, Callable[[dict], Awaitable[dict]]] = {
            "calculate_route": self.calculate_route,
            "compare_routes": self.compare_routes,
            "get_live_traffic": self.get_live_traffic,
            "estimate_costs": self.estimate_costs,
        }

    def list_tools(self) -> list[dict[str, Any]]:
        """A fresh copy of the catalog; callers may mutate it freely."""
        return copy.deepcopy(TOOLS)

    async def call_tool(self, name: str, arguments: Optional[dict] = None) -> dict:
        """Run tool `name`.  Always returns an MCP result dict, never raises."""
        try:
            handler = self._handlers.get(name)
            if handler is None:
                raise UnknownToolError(name)
            payload = await handler(arguments or {})
        except Exception as exc:
            logger.warning("Tool %s failed: %s: %s", name, type(exc).__name__, exc)
            return error_result(str(exc))
        return text_result(payload)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------
    def _metadata(self, **extra) -> dict:
        return {"timestamp": self._clock().isoformat(), **extra}

    @staticmethod
    def _endpoints(args: dict) -> tuple[str, str]:
        for key in ("origin", "destination"):
            if not args.get(key):
                raise ValueError(f"Missing required argument: {key}")
        return args["origin"], args["destination"]

    def _options(self, data: Optional[dict], **overrides) -> RouteOptions:
        return RouteOptions.from_dict(
            data, default_traffic_model=self.routing_defaults.traffic_model, **overrides
        )

    # -------------------------------------------------------------------------
    # Handlers
    # -------------------------------------------------------------------------
    async def calculate_route(self, args: dict) -> dict:
        origin, destination = self._endpoints(args)
        options = self._options(args.get("options"))
        query = RouteQuery(origin, destination, tuple(args.get("waypoints") or ()), options)

        route = await self.provider.calculate_route(query)
        return {
            "success": True,
            "route": route.to_dict(),
            "metadata": self._metadata(trafficModel=options.traffic_model),
        }

    async def compare_routes(self, args: dict) -> dict:
        origin, destination = self._endpoints(args)
        waypoints = tuple(args.get("waypoints") or ())
        compare_options = list(args.get("compareOptions") or [])
        if len(compare_options) > self.routing_defaults.max_alternatives:
            raise ValueError(
                f"Too many compareOptions: {len(compare_options)} "
                f"(maximum {self.routing_defaults.max_alternatives})"
            )

        queries = [
            RouteQuery(
                origin, destination, waypoints,
                self._options(None, alternatives=bool(args.get("alternatives", True))),
            )
        ]
        queries += [
            RouteQuery(origin, destination, waypoints, self._options(option))
            for option in compare_options
        ]
        routes = await gather(
            [self.provider.calculate_route(q) for q in queries],
            FanOutPolicy.ALL_OR_NOTHING,
            labels=["default"] + [f"compareOptions[{i}]" for i in range(len(compare_options))],
        )

        entries = [
            _route_summary(i, route, "default" if i == 0 else compare_options[i - 1])
            for i, route in enumerate(routes)
        ]
        # min() keeps the first of equal keys, so ties go to the lower id.
        fastest = min(entries, key=lambda e: e["durationInTraffic"])
        shortest = min(entries, key=lambda e: e["distance"])

        return {
            "success": True,
            "comparison": {
                "routes": entries,
                "recommendation": {"recommended": fastest, "reason": RECOMMENDATION_REASON},
                "summary": {"fastestRoute": fastest, "shortestRoute": shortest},
            },
            "metadata": self._metadata(routesCompared=len(entries)),
        }

    async def get_live_traffic(self, args: dict) -> dict:
        origin, destination = self._endpoints(args)
        departure_time = args.get("departureTime") or "now"

        snapshot = await self.provider.get_traffic_info(origin, destination, departure_time)
        condition = classify(snapshot.duration, snapshot.duration_in_traffic)
        return {
            "success": True,
            "traffic": {
                "currentDuration": snapshot.duration,
                "durationInTraffic": snapshot.duration_in_traffic,
                "trafficDelay": snapshot.duration_in_traffic - snapshot.duration,
                "trafficCondition": condition.value,
                "alternativeTimes": snapshot.alternative_times,
                "route": snapshot.route.to_dict(),
            },
            "metadata": self._metadata(departureTime=departure_time),
        }

    async def estimate_costs(self, args: dict) -> dict:
        route_arg = args.get("route")
        if route_arg:
            if not isinstance(route_arg, dict):
                raise InsufficientDataError("'route' must be a route object from calculate_route")
            route = NormalizedRoute.from_dict(route_arg)
        elif args.get("origin") and args.get("destination"):
            route = await self.provider.calculate_route(
                RouteQuery(args["origin"], args["destination"], options=self._options(None))
            )
        else:
            raise InsufficientDataError(
                "No route data available for cost estimation: "
                "provide a route or an origin and destination"
            )

        costs = estimate_costs(
            route, VehicleOptions.from_dict(args.get("vehicleOptions")), self.cost_defaults
        )
        return {
            "success": True,
            "costs": costs.to_dict(),
            "route": {
                "distance": route.distance_meters,
                "duration": route.duration_seconds,
                "tollInfo": route.toll_info.to_dict(),
            },
            "metadata": self._metadata(currency=self.cost_defaults.currency),
        }
