import asyncio
import json

from routing.config import RoutingDefaults
from routing.errors import NoRouteFoundError, ProviderError
from routing.models import TrafficSnapshot
from tools.dispatcher import RECOMMENDATION_REASON, ToolDispatcher
from tests.conftest import FIXED_NOW, FakeProvider, normalized


def make_dispatcher(provider, cost_defaults, **kwargs):
    return ToolDispatcher(provider, cost_defaults=cost_defaults, clock=lambda: FIXED_NOW, **kwargs)


def call(dispatcher, name, arguments=None):
    return asyncio.run(dispatcher.call_tool(name, arguments))


def payload_of(result):
    assert not result.get("isError"), result
    return json.loads(result["content"][0]["text"])


# -----------------------------------------------------------------------------
# Catalog and error boundary
# -----------------------------------------------------------------------------
def test_list_tools_exposes_four_tools(cost_defaults):
    tools = make_dispatcher(FakeProvider(), cost_defaults).list_tools()

    assert [t["name"] for t in tools] == [
        "calculate_route", "compare_routes", "get_live_traffic", "estimate_costs",
    ]
    by_name = {t["name"]: t for t in tools}
    assert by_name["calculate_route"]["inputSchema"]["required"] == ["origin", "destination"]
    assert "required" not in by_name["estimate_costs"]["inputSchema"]
    assert all(t["description"] for t in tools)


def test_list_tools_returns_an_independent_copy(cost_defaults):
    dispatcher = make_dispatcher(FakeProvider(), cost_defaults)
    tools = dispatcher.list_tools()
    tools.pop()
    tools[0]["name"] = "renamed"
    tools[0]["inputSchema"]["required"].append("waypoints")

    fresh = dispatcher.list_tools()
    assert len(fresh) == 4
    assert fresh[0]["name"] == "calculate_route"
    assert fresh[0]["inputSchema"]["required"] == ["origin", "destination"]


def test_unknown_tool_returns_error_result(cost_defaults):
    result = call(make_dispatcher(FakeProvider(), cost_defaults), "teleport", {})

    assert result["isError"] is True
    assert result["content"][0]["type"] == "text"
    assert result["content"][0]["text"] == "Error: Unknown tool: teleport"


def test_handler_exception_becomes_error_result(cost_defaults):
    provider = FakeProvider(fail_on={0: NoRouteFoundError("No route found")})
    result = call(make_dispatcher(provider, cost_defaults), "calculate_route",
                  {"origin": "A", "destination": "B"})

    assert result == {"content": [{"type": "text", "text": "Error: No route found"}], "isError": True}


def test_missing_origin_is_reported(cost_defaults):
    result = call(make_dispatcher(FakeProvider(), cost_defaults), "get_live_traffic", {"destination": "B"})
    assert result["isError"] is True
    assert "origin" in result["content"][0]["text"]


# -----------------------------------------------------------------------------
# calculate_route
# -----------------------------------------------------------------------------
def test_calculate_route_envelope(cost_defaults):
    provider = FakeProvider(routes=[normalized("I-90 E", distance=42_000, duration=1800, in_traffic=2000)])
    result = payload_of(call(make_dispatcher(provider, cost_defaults), "calculate_route", {
        "origin": "Seattle", "destination": "Bellevue",
        "waypoints": ["Mercer Island"],
        "options": {"avoidTolls": True, "trafficModel": "optimistic"},
    }))

    assert result["success"] is True
    assert result["route"]["summary"] == "I-90 E"
    assert result["route"]["distance"] == 42_000
    assert result["route"]["durationInTraffic"] == 2000
    assert result["metadata"] == {"timestamp": FIXED_NOW.isoformat(), "trafficModel": "optimistic"}

    query = provider.queries[0]
    assert query.waypoints == ("Mercer Island",)
    assert query.options.avoid_tolls is True
    assert query.options.traffic_model == "optimistic"


def test_calculate_route_uses_configured_traffic_model(cost_defaults):
    provider = FakeProvider()
    dispatcher = make_dispatcher(provider, cost_defaults, routing_defaults=RoutingDefaults(traffic_model="pessimistic"))
    result = payload_of(call(dispatcher, "calculate_route", {"origin": "A", "destination": "B"}))

    assert result["metadata"]["trafficModel"] == "pessimistic"


def test_invalid_traffic_model_is_error_result(cost_defaults):
    result = call(make_dispatcher(FakeProvider(), cost_defaults), "calculate_route", {
        "origin": "A", "destination": "B", "options": {"trafficModel": "clairvoyant"},
    })
    assert result["isError"] is True
    assert "clairvoyant" in result["content"][0]["text"]


# -----------------------------------------------------------------------------
# compare_routes
# -----------------------------------------------------------------------------
def test_compare_routes_issues_one_query_per_option(cost_defaults):
    provider = FakeProvider(routes=[
        normalized("Default", distance=30_000, in_traffic=1500),
        normalized("No tolls", distance=25_000, in_traffic=1400),
        normalized("No highways", distance=28_000, in_traffic=1600),
    ])
    compare_options = [{"avoidTolls": True}, {"avoidHighways": True}]
    result = payload_of(call(make_dispatcher(provider, cost_defaults), "compare_routes", {
        "origin": "A", "destination": "B", "compareOptions": compare_options,
    }))

    assert len(provider.queries) == 3
    assert provider.queries[0].options.alternatives is True
    assert provider.queries[1].options.avoid_tolls is True
    assert provider.queries[2].options.avoid_highways is True

    comparison = result["comparison"]
    assert [r["id"] for r in comparison["routes"]] == [0, 1, 2]
    assert comparison["routes"][0]["options"] == "default"
    assert comparison["routes"][1]["options"] == {"avoidTolls": True}
    assert comparison["recommendation"]["recommended"]["id"] == 1
    assert comparison["recommendation"]["reason"] == RECOMMENDATION_REASON
    assert comparison["summary"]["fastestRoute"]["id"] == 1
    assert comparison["summary"]["shortestRoute"]["id"] == 1
    assert result["metadata"]["routesCompared"] == 3


def test_compare_routes_ties_go_to_first_route(cost_defaults):
    provider = FakeProvider(routes=[
        normalized("First", distance=20_000, in_traffic=1200),
        normalized("Second", distance=20_000, in_traffic=1200),
        normalized("Third", distance=20_000, in_traffic=1200),
    ])
    comparison = payload_of(call(make_dispatcher(provider, cost_defaults), "compare_routes", {
        "origin": "A", "destination": "B", "compareOptions": [{}, {}],
    }))["comparison"]

    assert comparison["recommendation"]["recommended"]["id"] == 0
    assert comparison["summary"]["shortestRoute"]["id"] == 0


def test_compare_routes_fails_when_any_query_fails(cost_defaults):
    provider = FakeProvider(fail_on={2: ProviderError("Google Maps API error: quota exceeded")})
    result = call(make_dispatcher(provider, cost_defaults), "compare_routes", {
        "origin": "A", "destination": "B", "compareOptions": [{"avoidTolls": True}, {"avoidHighways": True}],
    })

    assert result["isError"] is True
    assert "quota exceeded" in result["content"][0]["text"]
    assert len(provider.queries) == 3


def test_compare_routes_queries_are_in_flight_together(cost_defaults):
    class GatedProvider(FakeProvider):
        """Holds every query until all three are in flight."""

        def __init__(self):
            super().__init__()
            self.in_flight = 0
            self.peak = 0
            self.all_arrived = None

        async def calculate_route(self, query):
            if self.all_arrived is None:
                self.all_arrived = asyncio.Event()
            self.in_flight += 1
            self.peak = max(self.peak, self.in_flight)
            if self.in_flight == 3:
                self.all_arrived.set()
            try:
                await asyncio.wait_for(self.all_arrived.wait(), timeout=2)
            finally:
                self.in_flight -= 1
            return await super().calculate_route(query)

    provider = GatedProvider()
    result = payload_of(call(make_dispatcher(provider, cost_defaults), "compare_routes", {
        "origin": "A", "destination": "B", "compareOptions": [{"avoidTolls": True}, {"avoidFerries": True}],
    }))

    assert provider.peak == 3
    assert result["metadata"]["routesCompared"] == 3


def test_compare_routes_limits_option_count(cost_defaults):
    dispatcher = make_dispatcher(FakeProvider(), cost_defaults, routing_defaults=RoutingDefaults(max_alternatives=1))
    result = call(dispatcher, "compare_routes", {
        "origin": "A", "destination": "B", "compareOptions": [{}, {}],
    })
    assert result["isError"] is True
    assert "compareOptions" in result["content"][0]["text"]


# -----------------------------------------------------------------------------
# get_live_traffic
# -----------------------------------------------------------------------------
def test_live_traffic_envelope(cost_defaults):
    route = normalized(duration=1000, in_traffic=1350)
    snapshot = TrafficSnapshot(1000, 1350, route, {"+30min": {"duration": 1200, "departureTime": "t"}})
    provider = FakeProvider(snapshot=snapshot)

    result = payload_of(call(make_dispatcher(provider, cost_defaults), "get_live_traffic",
                             {"origin": "A", "destination": "B"}))

    traffic = result["traffic"]
    assert traffic["currentDuration"] == 1000
    assert traffic["durationInTraffic"] == 1350
    assert traffic["trafficDelay"] == 350
    assert traffic["trafficCondition"] == "heavy"
    assert traffic["alternativeTimes"] == {"+30min": {"duration": 1200, "departureTime": "t"}}
    assert traffic["route"]["summary"] == "Route"
    assert result["metadata"]["departureTime"] == "now"
    assert provider.traffic_calls == [("A", "B", "now")]


def test_live_traffic_zero_duration_is_error_result(cost_defaults):
    provider = FakeProvider(snapshot=TrafficSnapshot(0, 0, normalized(duration=0)))
    result = call(make_dispatcher(provider, cost_defaults), "get_live_traffic",
                  {"origin": "A", "destination": "A"})
    assert result["isError"] is True


# -----------------------------------------------------------------------------
# estimate_costs
# -----------------------------------------------------------------------------
def test_estimate_costs_without_route_or_endpoints_is_error_result(cost_defaults):
    provider = FakeProvider()
    result = call(make_dispatcher(provider, cost_defaults), "estimate_costs", {})

    assert result["isError"] is True
    assert result["content"][0]["text"].startswith("Error: No route data available")
    assert provider.queries == []


def test_estimate_costs_with_only_origin_is_error_result(cost_defaults):
    result = call(make_dispatcher(FakeProvider(), cost_defaults), "estimate_costs", {"origin": "A"})
    assert result["isError"] is True


def test_estimate_costs_calculates_route_from_endpoints(cost_defaults):
    provider = FakeProvider(routes=[normalized(distance=100_000, duration=3600)])
    result = payload_of(call(make_dispatcher(provider, cost_defaults), "estimate_costs", {
        "origin": "A", "destination": "B",
        "vehicleOptions": {"fuelEfficiency": 8.0, "fuelPrice": 1.5},
    }))

    assert len(provider.queries) == 1
    assert result["costs"]["fuel"] == 12.0
    assert result["costs"]["tolls"] == 5.0
    assert result["costs"]["total"] == 17.0
    assert result["route"] == {
        "distance": 100_000,
        "duration": 3600,
        "tollInfo": {"hasTolls": False, "warnings": [], "estimatedCost": None},
    }
    assert result["metadata"]["currency"] == "USD"


def test_estimate_costs_accepts_route_object(cost_defaults):
    provider = FakeProvider()
    route = {
        "summary": "I-5",
        "distance": 200_000,
        "duration": 7200,
        "tollInfo": {"hasTolls": True, "warnings": ["Toll road"], "estimatedCost": 3.5},
    }
    result = payload_of(call(make_dispatcher(provider, cost_defaults), "estimate_costs", {"route": route}))

    assert provider.queries == []
    assert result["costs"]["fuel"] == 24.0
    assert result["costs"]["tolls"] == 3.5
    assert result["costs"]["total"] == 27.5
    assert result["route"]["tollInfo"]["hasTolls"] is True


def test_estimate_costs_route_without_distance_is_error_result(cost_defaults):
    result = call(make_dispatcher(FakeProvider(), cost_defaults), "estimate_costs",
                  {"route": {"summary": "x"}})
    assert result["isError"] is True
    assert "distance" in result["content"][0]["text"]


def test_estimate_costs_rejects_negative_distance(cost_defaults):
    result = call(make_dispatcher(FakeProvider(), cost_defaults), "estimate_costs",
                  {"route": {"distance": -100_000}})

    assert result["isError"] is True
    assert "distance" in result["content"][0]["text"]
    assert "negative" in result["content"][0]["text"]


def test_estimate_costs_rejects_negative_duration(cost_defaults):
    result = call(make_dispatcher(FakeProvider(), cost_defaults), "estimate_costs",
                  {"route": {"distance": 1000, "duration": -5}})
    assert result["isError"] is True
    assert "duration" in result["content"][0]["text"]


def test_estimate_costs_rejects_bad_toll_estimate(cost_defaults):
    dispatcher = make_dispatcher(FakeProvider(), cost_defaults)
    for estimated in (-3.5, "free", True):
        result = call(dispatcher, "estimate_costs", {
            "route": {"distance": 1000, "tollInfo": {"hasTolls": True, "estimatedCost": estimated}},
        })
        assert result["isError"] is True, estimated
        assert "estimatedCost" in result["content"][0]["text"]


def test_estimate_costs_rejects_misshapen_route_parts(cost_defaults):
    dispatcher = make_dispatcher(FakeProvider(), cost_defaults)

    toll_list = call(dispatcher, "estimate_costs", {"route": {"distance": 1000, "tollInfo": ["toll"]}})
    assert toll_list["content"][0]["text"] == "Error: Route 'tollInfo' must be an object"

    bad_step = call(dispatcher, "estimate_costs", {"route": {"distance": 1000, "steps": ["left"]}})
    assert bad_step["content"][0]["text"] == "Error: Route 'steps' must be a list of objects"
