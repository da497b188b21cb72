# =============================================================================
# tools/mcp_server.py  -  FastMCP Tool Server (ALL tools in one place)
# =============================================================================
#
# WHAT THIS FILE DOES:
#   Registers the four route-planning tools on a FastMCP server.  Each tool
#   is a thin typed wrapper around ToolDispatcher.call_tool() - the
#   dispatcher owns the argument handling, the provider calls and the
#   result envelopes.
#
# HOW IT WORKS (the flow):
#   1. An MCP client lists tools and calls one by name (e.g. "compare_routes")
#   2. FastMCP routes the call to the decorated function below
#   3. The function forwards the arguments to the dispatcher
#   4. A success envelope goes back as the dispatcher's own pretty-printed
#      text; an error result is re-raised as ToolError so the client
#      receives isError=true with the same "Error: <message>" text
#
# ARGUMENT SCHEMAS:
#   Nested arguments are typed with the models in schemas.py, so the
#   served inputSchema carries the same properties and trafficModel enum
#   as the TOOLS catalog.
#
# TOOL NAMING CONVENTIONS:
#   - calculate_* / estimate_* → compute something for one trip
#   - compare_*                → several queries, ranked
#   - get_*                    → read-only retrieval
#   All tools are read-only and safe to retry; each one spends provider
#   request quota.
#
# RUNNING THIS SERVER:
#   python main.py   (loads .env and config, then serves over stdio)
# =============================================================================

import json
import logging
import sys
from typing import Optional

from fastmcp import FastMCP
from fastmcp.exceptions import ToolError
from fastmcp.tools.tool import ToolResult
from mcp.types import TextContent

from tools.dispatcher import ToolDispatcher
from tools.schemas import CompareOptionInput, RouteOptionsInput, VehicleOptionsInput

# =============================================================================
# Logging Setup
# =============================================================================
# Logs go to STDERR: STDOUT carries the MCP JSON-RPC stream when the server
# runs over stdio.
#
# ANSI COLOR CODES:
#     - CYAN for incoming requests (tool name + parameters)
#     - GREEN for response JSON
#     - YELLOW for intermediate status / error messages
# =============================================================================

_CYAN = "\033[36m"     # Requests (tool calls with params)
_GREEN = "\033[32m"    # Responses (JSON output)
_YELLOW = "\033[33m"   # Status/progress messages
_RESET = "\033[0m"     # Reset to default terminal color

SERVER_NAME = "route-planner"


def configure_logging(level: int = logging.INFO) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s [MCP] %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )


def _log_request(tool_name: str, **params) -> None:
    """Log an incoming tool call with its parameters in CYAN."""
    param_str = ", ".join(f"{k}={v!r}" for k, v in params.items())
    logging.info(f"{_CYAN}{tool_name} called with: {param_str}{_RESET}")


def _log_status(message: str) -> None:
    """Log an intermediate status message in YELLOW."""
    logging.info(f"{_YELLOW}  → {message}{_RESET}")


def _log_response(tool_name: str, result: dict) -> dict:
    """Log the tool response as compact JSON in GREEN, then return it."""
    logging.info(f"{_GREEN}  ← {tool_name} response: {json.dumps(result, separators=(',', ':'))}{_RESET}")
    return result


async def forward(dispatcher: ToolDispatcher, tool_name: str, **params) -> ToolResult:
    """Send one tool call through the dispatcher and pass its text back.

    Parameters left at None are dropped so the dispatcher's own defaults
    apply.  The success text is returned unchanged (indented JSON).
    """
    arguments = {k: v for k, v in params.items() if v is not None}
    _log_request(tool_name, **arguments)

    result = await dispatcher.call_tool(tool_name, arguments)
    text = result["content"][0]["text"]
    if result.get("isError"):
        _log_status(text)
        raise ToolError(text)
    _log_response(tool_name, json.loads(text))
    return ToolResult(content=[TextContent(type="text", text=text)])


# =============================================================================
# Create the FastMCP server instance
# =============================================================================
def create_server(dispatcher: ToolDispatcher) -> FastMCP:
    """Build a FastMCP server whose tools all route through `dispatcher`."""
    mcp = FastMCP(SERVER_NAME)

    # -------------------------------------------------------------------------
    # TOOL 1: calculate_route
    # -------------------------------------------------------------------------
    @mcp.tool()
    async def calculate_route(
        origin: str,
        destination: str,
        waypoints: Optional[list[str]] = None,
        options: Optional[RouteOptionsInput] = None,
    ) -> ToolResult:
        """Calculate optimal route between origin and destination with traffic consideration.

        Args:
            origin: Starting location (address or "lat,lng" coordinates).
            destination: Destination location (address or coordinates).
            waypoints: Optional stops between origin and destination, in order.
            options: Optional routing preferences:
                - avoidTolls, avoidHighways, avoidFerries: booleans
                - departureTime: "now" or an ISO datetime
                - trafficModel: "best_guess" (default), "pessimistic" or "optimistic"

        Returns:
            {"success": true, "route": {...}, "metadata": {...}} where route has
            summary, distance (m), duration (s), durationInTraffic (s),
            polyline, steps, warnings, tollInfo, bounds and copyrights.
        """
        return await forward(
            dispatcher, "calculate_route",
            origin=origin, destination=destination, waypoints=waypoints,
            options=options.to_arguments() if options else None,
        )

    # -------------------------------------------------------------------------
    # TOOL 2: compare_routes
    # -------------------------------------------------------------------------
    @mcp.tool()
    async def compare_routes(
        origin: str,
        destination: str,
        waypoints: Optional[list[str]] = None,
        alternatives: bool = True,
        compareOptions: Optional[list[CompareOptionInput]] = None,
    ) -> ToolResult:
        """Compare multiple route alternatives with different options.

        One default route is fetched, plus one route per entry in
        compareOptions (each may set avoidTolls, avoidHighways, avoidFerries,
        trafficModel).  All queries run at once; if any of them fails the
        whole comparison fails.

        Returns:
            A comparison with every route (ids 0..N), the fastest and the
            shortest, and a recommendation (always the fastest).
        """
        compare_options = None
        if compareOptions is not None:
            compare_options = [option.to_arguments() for option in compareOptions]
        return await forward(
            dispatcher, "compare_routes",
            origin=origin, destination=destination, waypoints=waypoints,
            alternatives=alternatives, compareOptions=compare_options,
        )

    # -------------------------------------------------------------------------
    # TOOL 3: get_live_traffic
    # -------------------------------------------------------------------------
    @mcp.tool()
    async def get_live_traffic(
        origin: str,
        destination: str,
        departureTime: str = "now",
    ) -> ToolResult:
        """Get live traffic information and travel time for a route.

        Also samples travel time for departures 30, 60 and 120 minutes from
        now (samples that fail are left out).

        Returns:
            currentDuration, durationInTraffic, trafficDelay (seconds),
            trafficCondition (light / moderate / heavy / severe),
            alternativeTimes and the route itself.
        """
        return await forward(
            dispatcher, "get_live_traffic",
            origin=origin, destination=destination, departureTime=departureTime,
        )

    # -------------------------------------------------------------------------
    # TOOL 4: estimate_costs
    # -------------------------------------------------------------------------
    @mcp.tool()
    async def estimate_costs(
        route: Optional[dict] = None,
        origin: Optional[str] = None,
        destination: Optional[str] = None,
        vehicleOptions: Optional[VehicleOptionsInput] = None,
    ) -> ToolResult:
        """Estimate trip costs including fuel, tolls, and total expenses.

        Pass either a route object returned by calculate_route, or an origin
        and destination (a route is calculated first).

        Args:
            vehicleOptions: Optional {"fuelEfficiency": L/100km,
                "fuelPrice": price per liter}; configured defaults otherwise.

        Returns:
            costs (fuel, tolls, total, breakdown, assumptions), the costed
            route's distance / duration / tollInfo, and the currency.
        """
        return await forward(
            dispatcher, "estimate_costs",
            route=route, origin=origin, destination=destination,
            vehicleOptions=vehicleOptions.to_arguments() if vehicleOptions else None,
        )

    return mcp
