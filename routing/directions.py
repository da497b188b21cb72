# =============================================================================
# routing/directions.py  -  Google Maps Directions adapter
# =============================================================================
#
# WHAT THIS MODULE DOES:
#   Talks to the Google Maps Directions web service and turns its JSON into
#   NormalizedRoute objects.  It is the ONLY module that knows what a
#   Directions response looks like (legs, html_instructions, overview
#   polyline, status codes).
#
# THE FLOW:
#   1. Build query parameters from a RouteQuery (mode, units, waypoints,
#      avoid list, departure time, traffic model, alternatives)
#   2. GET /maps/api/directions/json with httpx
#   3. Map the response status onto our error taxonomy
#   4. Reshape every returned route with format_route_response()
#   5. Pick one with the route selection policy
#
# ROUTE SELECTION:
#   Google already ranks the routes it returns.  The default policy,
#   first_route, takes that ranking as-is.  fastest_route is the drop-in
#   alternative that re-ranks locally by duration in traffic.
# =============================================================================

import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Sequence

import httpx

from routing.config import RoutingDefaults
from routing.errors import NoRouteFoundError, ProviderError
from routing.fanout import FanOutPolicy, gather
from routing.models import (
    NormalizedRoute,
    RouteOptions,
    RouteQuery,
    Step,
    TollInfo,
    TrafficSnapshot,
)

logger = logging.getLogger(__name__)

DIRECTIONS_URL = "https://maps.googleapis.com/maps/api/directions/json"

# Departure offsets sampled by get_traffic_info, in minutes from now.
TRAFFIC_SAMPLE_OFFSETS = (30, 60, 120)

_HTML_TAG = re.compile(r"<[^>]*>")
_NO_ROUTE_STATUSES = {"ZERO_RESULTS", "NOT_FOUND"}


# =============================================================================
# Route selection policies
# =============================================================================
RouteSelector = Callable[[Sequence[NormalizedRoute]], NormalizedRoute]


def first_route(routes: Sequence[NormalizedRoute]) -> NormalizedRoute:
    """Trust the provider's ranking."""
    return routes[0]


def fastest_route(routes: Sequence[NormalizedRoute]) -> NormalizedRoute:
    """Lowest duration in traffic; ties go to the earlier route."""
    return min(routes, key=lambda r: r.duration_in_traffic_seconds)


DEFAULT_ROUTE_SELECTION: RouteSelector = first_route


# =============================================================================
# Response reshaping
# =============================================================================
def strip_html(text: str) -> str:
    """'Turn <b>left</b> onto Main St' → 'Turn left onto Main St'."""
    return _HTML_TAG.sub("", text or "")


def extract_toll_info(warnings: Sequence[str]) -> TollInfo:
    toll_warnings = tuple(w for w in warnings if "toll" in w.lower())
    return TollInfo(has_tolls=bool(toll_warnings), warnings=toll_warnings)


def format_route_response(raw: dict) -> NormalizedRoute:
    """Reshape one Directions API route into a NormalizedRoute.

    Distances and durations are copied as-is (meters / seconds).  A route
    through waypoints has one leg per stop; its totals are summed and its
    steps concatenated.  Legs without `duration_in_traffic` count their
    plain duration instead.

    Raises:
        ProviderError: the route is missing the fields we rely on.
    """
    try:
        legs = raw["legs"]
        if not legs:
            raise ValueError("route has no legs")

        distance = sum(leg["distance"]["value"] for leg in legs)
        duration = sum(leg["duration"]["value"] for leg in legs)
        in_traffic = sum(
            (leg.get("duration_in_traffic") or leg["duration"])["value"] for leg in legs
        )
        steps = tuple(
            Step(
                instruction=strip_html(step.get("html_instructions", "")),
                distance_text=step["distance"]["text"],
                duration_text=step["duration"]["text"],
                maneuver=step.get("maneuver"),
            )
            for leg in legs
            for step in leg.get("steps", ())
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise ProviderError(f"Malformed route in provider response: {exc!r}") from exc

    warnings = tuple(raw.get("warnings") or ())
    return NormalizedRoute(
        summary=raw.get("summary", ""),
        distance_meters=distance,
        duration_seconds=duration,
        duration_in_traffic_seconds=max(in_traffic, 0),
        polyline=(raw.get("overview_polyline") or {}).get("points", ""),
        steps=steps,
        warnings=warnings,
        toll_info=extract_toll_info(warnings),
        bounds=raw.get("bounds"),
        copyrights=raw.get("copyrights", ""),
    )


# =============================================================================
# Query parameter helpers
# =============================================================================
def build_avoid(options: RouteOptions) -> Optional[str]:
    """Fold the avoid flags into 'tolls|highways|ferries'; None when empty."""
    avoid = []
    if options.avoid_tolls:
        avoid.append("tolls")
    if options.avoid_highways:
        avoid.append("highways")
    if options.avoid_ferries:
        avoid.append("ferries")
    return "|".join(avoid) if avoid else None


def parse_departure_time(value: Optional[str]):
    """Return "now" or epoch seconds for an ISO-8601 departure time."""
    if value is None or value == "now":
        return "now"
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError as exc:
        raise ValueError(
            f"Invalid departureTime '{value}': expected 'now' or an ISO datetime"
        ) from exc
    return int(parsed.timestamp())


# =============================================================================
# DirectionsClient
# =============================================================================
class DirectionsClient:
    """Async client for the Directions API.

    Args:
        api_key: Google Maps API key.
        defaults: Routing defaults (units, traffic model, waypoint limit,
                  request timeout).
        base_url: Directions endpoint, overridable for testing.
        transport: Optional httpx transport (tests use httpx.MockTransport).
        select_route: Route selection policy, see DEFAULT_ROUTE_SELECTION.
        clock: Returns "now" as an aware datetime; drives traffic sampling.
    """

    def __init__(
        self,
        api_key: str,
        defaults: Optional[RoutingDefaults] = None,
        *,
        base_url: str = DIRECTIONS_URL,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        select_route: RouteSelector = DEFAULT_ROUTE_SELECTION,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.api_key = api_key
        self.defaults = defaults or RoutingDefaults()
        self.base_url = base_url
        self._transport = transport
        self._select_route = select_route
        self._clock = clock

    # -------------------------------------------------------------------------
    # HTTP
    # -------------------------------------------------------------------------
    async def _fetch_routes(self, params: dict) -> list[NormalizedRoute]:
        """Run one Directions request and return every route it holds."""
        query = {k: v for k, v in params.items() if v is not None}
        query["key"] = self.api_key
        query.setdefault("mode", "driving")
        query.setdefault("units", self.defaults.units)

        try:
            async with httpx.AsyncClient(
                timeout=self.defaults.timeout_seconds, transport=self._transport
            ) as client:
                response = await client.get(self.base_url, params=query)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as exc:
            code = exc.response.status_code
            raise ProviderError(
                f"Google Maps API error: HTTP {code}", status=str(code)
            ) from exc
        except httpx.HTTPError as exc:
            raise ProviderError(f"Google Maps API error: {exc}") from exc
        except ValueError as exc:
            raise ProviderError("Google Maps API error: response is not valid JSON") from exc

        if not isinstance(data, dict):
            raise ProviderError("Google Maps API error: unexpected response shape")

        status = data.get("status", "UNKNOWN")
        if status in _NO_ROUTE_STATUSES:
            raise NoRouteFoundError(f"No route found ({status})")
        if status != "OK":
            message = data.get("error_message") or status
            raise ProviderError(f"Google Maps API error: {message}", status=status)

        routes = data.get("routes") or []
        if not routes:
            raise NoRouteFoundError("No route found")
        return [format_route_response(r) for r in routes]

    # -------------------------------------------------------------------------
    # Public operations
    # -------------------------------------------------------------------------
    def build_params(self, query: RouteQuery) -> dict:
        """Directions query parameters for `query` (without the API key)."""
        if len(query.waypoints) > self.defaults.max_waypoints:
            raise ValueError(
                f"Too many waypoints: {len(query.waypoints)} "
                f"(maximum {self.defaults.max_waypoints})"
            )
        options = query.options
        return {
            "origin": query.origin,
            "destination": query.destination,
            "waypoints": "|".join(query.waypoints) if query.waypoints else None,
            "mode": "driving",
            "units": self.defaults.units,
            "departure_time": parse_departure_time(options.departure_time),
            "traffic_model": options.traffic_model or self.defaults.traffic_model,
            "avoid": build_avoid(options),
            "alternatives": "true" if options.alternatives else "false",
        }

    async def calculate_route(self, query: RouteQuery) -> NormalizedRoute:
        """Fetch directions for `query` and return the selected route.

        Raises:
            NoRouteFoundError: the provider returned zero routes.
            ProviderError: transport, auth, quota or malformed response.
            ValueError: too many waypoints or an unparseable departure time.
        """
        routes = await self._fetch_routes(self.build_params(query))
        return self._select_route(routes)

    async def get_traffic_info(
        self, origin: str, destination: str, departure_time: Optional[str] = "now"
    ) -> TrafficSnapshot:
        """Live traffic for origin → destination plus later-departure samples.

        The primary query must succeed.  The +30/+60/+120 minute samples run
        concurrently and are best-effort: a failed sample is logged and
        left out of alternative_times.
        """
        primary = await self._fetch_routes({
            "origin": origin,
            "destination": destination,
            "departure_time": parse_departure_time(departure_time),
            "traffic_model": self.defaults.traffic_model,
        })
        route = self._select_route(primary)

        now = self._clock()
        labels = [f"+{minutes}min" for minutes in TRAFFIC_SAMPLE_OFFSETS]
        samples = await gather(
            [
                self._sample_departure(origin, destination, now + timedelta(minutes=minutes))
                for minutes in TRAFFIC_SAMPLE_OFFSETS
            ],
            FanOutPolicy.BEST_EFFORT,
            labels=[f"alternative time {label}" for label in labels],
        )
        alternative_times = {
            label: sample for label, sample in zip(labels, samples) if sample is not None
        }
        logger.debug("Traffic samples collected: %d/%d", len(alternative_times), len(labels))

        return TrafficSnapshot(
            duration=route.duration_seconds,
            duration_in_traffic=route.duration_in_traffic_seconds,
            route=route,
            alternative_times=alternative_times,
        )

    async def _sample_departure(self, origin: str, destination: str, departure: datetime) -> dict:
        routes = await self._fetch_routes({
            "origin": origin,
            "destination": destination,
            "departure_time": int(departure.timestamp()),
            "traffic_model": self.defaults.traffic_model,
        })
        route = self._select_route(routes)
        return {
            "duration": route.duration_in_traffic_seconds,
            "departureTime": departure.isoformat(),
        }
