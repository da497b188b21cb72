# =============================================================================
# routing/__init__.py
# =============================================================================
# This package contains ALL routing logic for the route planner server.
#
# ARCHITECTURAL RULE:
#   Nothing in this package imports FastMCP or any MCP machinery.  Every
#   module here can be imported and exercised without a running server:
#     - models.py      → dataclasses for queries, routes, costs
#     - directions.py  → the Google Maps Directions adapter
#     - costs.py       → fuel + toll arithmetic
#     - traffic.py     → congestion classification
#     - fanout.py      → concurrent sub-query policies
#     - config.py      → settings loaded once at startup
#     - errors.py      → the error taxonomy
# =============================================================================
