# =============================================================================
# tools/schemas.py  -  Typed tool arguments
# =============================================================================
#
# WHAT THIS FILE DOES:
#   Describes the nested objects the tools accept (options, compareOptions
#   entries, vehicleOptions) as pydantic models.  FastMCP builds each tool's
#   inputSchema from the wrapper signatures in mcp_server.py, so these models
#   are what a client actually sees in the tool list: the property names,
#   defaults and the trafficModel enum of the TOOLS catalog in dispatcher.py.
#
# FIELD NAMES:
#   camelCase on purpose - they are the wire names.  to_arguments() hands
#   the dispatcher only the fields the client actually sent, so the
#   dispatcher's own defaults (and its echo of compareOptions) are unchanged.
# =============================================================================

from typing import Literal, Optional

from pydantic import BaseModel, Field

TrafficModel = Literal["best_guess", "pessimistic", "optimistic"]


class ToolArguments(BaseModel):
    def to_arguments(self) -> dict:
        return self.model_dump(exclude_unset=True)


class RouteOptionsInput(ToolArguments):
    """Routing preferences for calculate_route."""

    avoidTolls: bool = False
    avoidHighways: bool = False
    avoidFerries: bool = False
    departureTime: Optional[str] = Field(None, description="ISO datetime for departure")
    trafficModel: Optional[TrafficModel] = Field(
        None, description="best_guess (default), pessimistic or optimistic"
    )


class CompareOptionInput(ToolArguments):
    """One alternative option set for compare_routes."""

    avoidTolls: bool = False
    avoidHighways: bool = False
    avoidFerries: bool = False
    trafficModel: Optional[TrafficModel] = None


class VehicleOptionsInput(ToolArguments):
    fuelEfficiency: Optional[float] = Field(None, description="Liters per 100km")
    fuelPrice: Optional[float] = Field(None, description="Price per liter")
