import json
from datetime import datetime, timezone
from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from routing.config import CostDefaults, RoutingDefaults
from routing.models import NormalizedRoute, TollInfo, TrafficSnapshot

FIXED_NOW = datetime(2025, 3, 1, 8, 0, tzinfo=timezone.utc)


def make_leg(distance=10_000, duration=600, in_traffic=None, steps=None):
    leg = {
        "distance": {"text": f"{distance / 1000:.1f} km", "value": distance},
        "duration": {"text": f"{duration // 60} mins", "value": duration},
        "steps": steps if steps is not None else [
            {
                "html_instructions": "Turn <b>left</b> onto Main St",
                "distance": {"text": "0.4 km", "value": 400},
                "duration": {"text": "1 min", "value": 60},
                "maneuver": "turn-left",
            },
            {
                "html_instructions": "Continue to <div style=\"font-size:0.9em\">Destination</div>",
                "distance": {"text": "9.6 km", "value": 9600},
                "duration": {"text": "9 mins", "value": 540},
            },
        ],
    }
    if in_traffic is not None:
        leg["duration_in_traffic"] = {"text": f"{in_traffic // 60} mins", "value": in_traffic}
    return leg


def make_route(summary="I-5 N", legs=None, warnings=None):
    return {
        "summary": summary,
        "legs": legs if legs is not None else [make_leg()],
        "overview_polyline": {"points": "a~l~Fjk~uOwHJy@P"},
        "warnings": warnings if warnings is not None else [],
        "bounds": {
            "northeast": {"lat": 47.62, "lng": -122.30},
            "southwest": {"lat": 47.60, "lng": -122.34},
        },
        "copyrights": "Map data ©2025 Google",
    }


def directions_payload(*routes, status="OK", error_message=None):
    payload = {"status": status, "routes": list(routes)}
    if error_message:
        payload["error_message"] = error_message
    return payload


class RecordingTransport:
    """httpx.MockTransport wrapper that records every request's query params.

    `responder` receives the parsed query (dict of single values) and returns
    either a JSON-able dict, an httpx.Response, or raises an httpx error.
    """

    def __init__(self, responder):
        self.responder = responder
        self.requests = []
        self.transport = httpx.MockTransport(self._handle)

    def _handle(self, request):
        params = {k: v[0] for k, v in parse_qs(urlparse(str(request.url)).query).items()}
        self.requests.append(params)
        result = self.responder(params)
        if isinstance(result, httpx.Response):
            return result
        return httpx.Response(200, content=json.dumps(result).encode())


@pytest.fixture
def routing_defaults():
    return RoutingDefaults()


@pytest.fixture
def cost_defaults():
    return CostDefaults(fuel_price_per_liter=1.50, vehicle_fuel_efficiency=8.0, toll_estimate_per_km=0.05)


def normalized(summary="Route", distance=100_000, duration=3600, in_traffic=None, toll_cost=None):
    return NormalizedRoute(
        summary=summary,
        distance_meters=distance,
        duration_seconds=duration,
        duration_in_traffic_seconds=duration if in_traffic is None else in_traffic,
        toll_info=TollInfo(estimated_cost=toll_cost),
    )


class FakeProvider:
    """In-memory RouteProvider for dispatcher tests."""

    def __init__(self, routes=None, snapshot=None, fail_on=None):
        self.routes = list(routes or [normalized()])
        self.snapshot = snapshot
        self.fail_on = fail_on or {}
        self.queries = []
        self.traffic_calls = []

    async def calculate_route(self, query):
        index = len(self.queries)
        self.queries.append(query)
        if index in self.fail_on:
            raise self.fail_on[index]
        return self.routes[min(index, len(self.routes) - 1)]

    async def get_traffic_info(self, origin, destination, departure_time="now"):
        self.traffic_calls.append((origin, destination, departure_time))
        if self.snapshot is None:
            route = self.routes[0]
            return TrafficSnapshot(route.duration_seconds, route.duration_in_traffic_seconds, route)
        return self.snapshot
