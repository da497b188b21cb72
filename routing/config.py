# =============================================================================
# routing/config.py  -  Settings loaded once at startup
# =============================================================================
#
# WHERE SETTINGS COME FROM (later wins):
#   1. Built-in defaults (the dataclass defaults below)
#   2. A JSON file - config/config.json, or the path in ROUTE_PLANNER_CONFIG
#   3. Environment variables (a .env file is loaded by main.py first):
#        GOOGLE_MAPS_API_KEY   → googleMaps.apiKey
#        ROUTE_PLANNER_HOST    → server.host
#        ROUTE_PLANNER_PORT    → server.port
#
# The JSON file mirrors this layout:
#   {
#     "googleMaps": {"apiKey": "..."},
#     "server":     {"host": "localhost", "port": 3000},
#     "routing":    {"defaultTrafficModel": "best_guess", "maxWaypoints": 25,
#                    "maxAlternatives": 3, "units": "metric"},
#     "costs":      {"fuelPricePerLiter": 1.5, "vehicleFuelEfficiency": 8.0,
#                    "tollEstimatePerKm": 0.05, "currency": "USD"}
#   }
#
# The resulting Settings object is handed to the directions client and the
# tool dispatcher when they are constructed.  Nothing reads configuration
# from module-level globals.
# =============================================================================

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from routing.errors import ConfigurationError
from routing.models import TRAFFIC_MODELS

API_KEY_PLACEHOLDER = "YOUR_GOOGLE_MAPS_API_KEY_HERE"
DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent / "config" / "config.json"


@dataclass(frozen=True)
class ServerSettings:
    host: str = "localhost"
    port: int = 3000


@dataclass(frozen=True)
class RoutingDefaults:
    """Defaults applied to every directions query."""

    traffic_model: str = "best_guess"
    max_waypoints: int = 25
    max_alternatives: int = 3
    units: str = "metric"
    timeout_seconds: float = 10.0


@dataclass(frozen=True)
class CostDefaults:
    """Fallbacks for the cost estimator when a caller omits vehicle data."""

    fuel_price_per_liter: float = 1.50
    vehicle_fuel_efficiency: float = 8.0   # L/100km
    toll_estimate_per_km: float = 0.05
    currency: str = "USD"


@dataclass(frozen=True)
class Settings:
    api_key: str
    server: ServerSettings = field(default_factory=ServerSettings)
    routing: RoutingDefaults = field(default_factory=RoutingDefaults)
    costs: CostDefaults = field(default_factory=CostDefaults)


def _read_config_file(path: Path) -> dict:
    """Read the JSON config file.  A missing file means "use defaults"."""
    if not path.exists():
        return {}
    try:
        with path.open(encoding="utf-8") as fh:
            data = json.load(fh)
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigurationError(f"Error loading config {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config {path} must contain a JSON object")
    return data


def load_settings(path: Optional[str] = None, environ: Optional[dict] = None) -> Settings:
    """Build Settings from defaults, the JSON config file and the environment.

    Args:
        path: Config file path.  Falls back to ROUTE_PLANNER_CONFIG, then to
              config/config.json next to the project root.
        environ: Mapping to read overrides from (defaults to os.environ).

    Raises:
        ConfigurationError: unreadable config, bad values, or a missing /
            placeholder API key.
    """
    env = os.environ if environ is None else environ
    config_path = Path(path or env.get("ROUTE_PLANNER_CONFIG") or DEFAULT_CONFIG_PATH)
    raw = _read_config_file(config_path)

    maps_cfg = raw.get("googleMaps") or {}
    server_cfg = raw.get("server") or {}
    routing_cfg = raw.get("routing") or {}
    costs_cfg = raw.get("costs") or {}

    api_key = env.get("GOOGLE_MAPS_API_KEY") or maps_cfg.get("apiKey")
    if not api_key or api_key == API_KEY_PLACEHOLDER:
        raise ConfigurationError(
            "Please set your Google Maps API key in config/config.json "
            "or the GOOGLE_MAPS_API_KEY environment variable"
        )

    try:
        server = ServerSettings(
            host=env.get("ROUTE_PLANNER_HOST") or server_cfg.get("host", ServerSettings.host),
            port=int(env.get("ROUTE_PLANNER_PORT") or server_cfg.get("port", ServerSettings.port)),
        )
        routing = RoutingDefaults(
            traffic_model=routing_cfg.get("defaultTrafficModel", RoutingDefaults.traffic_model),
            max_waypoints=int(routing_cfg.get("maxWaypoints", RoutingDefaults.max_waypoints)),
            max_alternatives=int(routing_cfg.get("maxAlternatives", RoutingDefaults.max_alternatives)),
            units=routing_cfg.get("units", RoutingDefaults.units),
            timeout_seconds=float(routing_cfg.get("timeoutSeconds", RoutingDefaults.timeout_seconds)),
        )
        costs = CostDefaults(
            fuel_price_per_liter=float(costs_cfg.get("fuelPricePerLiter", CostDefaults.fuel_price_per_liter)),
            vehicle_fuel_efficiency=float(costs_cfg.get("vehicleFuelEfficiency", CostDefaults.vehicle_fuel_efficiency)),
            toll_estimate_per_km=float(costs_cfg.get("tollEstimatePerKm", CostDefaults.toll_estimate_per_km)),
            currency=costs_cfg.get("currency", CostDefaults.currency),
        )
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid value in config {config_path}: {exc}") from exc

    if routing.traffic_model not in TRAFFIC_MODELS:
        raise ConfigurationError(
            f"routing.defaultTrafficModel must be one of {', '.join(TRAFFIC_MODELS)}"
        )

    return Settings(api_key=api_key, server=server, routing=routing, costs=costs)
