"""policygate API: FastAPI transport for upstream MCP clients."""
