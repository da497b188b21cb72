# =============================================================================
# main.py  -  Entry Point for the Route Planner MCP Server
# =============================================================================
#
# HOW TO RUN:
#   uv run python main.py
#
# WHAT HAPPENS:
#   1. Loads .env (GOOGLE_MAPS_API_KEY, ROUTE_PLANNER_CONFIG, ...)
#   2. Loads settings from config/config.json + environment (routing/config.py)
#   3. Exits with status 1 if the API key is missing or still the placeholder
#   4. Builds the directions client, the tool dispatcher and the FastMCP server
#   5. Serves the four tools over stdio until the client disconnects
# =============================================================================

import logging
import sys

from dotenv import load_dotenv

# Load environment variables from .env before settings are read.
load_dotenv()

from routing.config import load_settings
from routing.directions import DirectionsClient
from routing.errors import ConfigurationError
from tools.dispatcher import ToolDispatcher
from tools.mcp_server import configure_logging, create_server

logger = logging.getLogger(__name__)


def main() -> None:
    configure_logging()

    try:
        settings = load_settings()
    except ConfigurationError as exc:
        logger.error("Configuration error: %s", exc)
        sys.exit(1)

    client = DirectionsClient(settings.api_key, settings.routing)
    dispatcher = ToolDispatcher(
        client,
        cost_defaults=settings.costs,
        routing_defaults=settings.routing,
    )
    server = create_server(dispatcher)

    logger.info(
        "Starting %s over stdio (%d tools, traffic model %s)",
        server.name, len(dispatcher.list_tools()), settings.routing.traffic_model,
    )
    server.run()


if __name__ == "__main__":
    main()
