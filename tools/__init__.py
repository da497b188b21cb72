# =============================================================================
# tools/__init__.py
# =============================================================================
# This package is the MCP layer between clients and routing/.
#
#   dispatcher.py  → tool catalog, name → handler routing, result envelopes,
#                    and the error boundary (call_tool never raises)
#   mcp_server.py  → FastMCP registration of the four tools + logging setup
#
# WHAT TOOLS DO NOT DO:
#   - They do NOT talk HTTP to Google (that's routing/directions.py)
#   - They do NOT hold arithmetic (that's routing/costs.py, routing/traffic.py)
# =============================================================================
