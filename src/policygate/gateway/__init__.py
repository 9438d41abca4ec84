"""
policygate Gateway

Everything around the policy layer: configuration, downstream MCP clients,
the allow-listed tool catalog, and the service that routes each call.
"""

from policygate.gateway.catalog import ToolCatalog, normalize_input_schema
from policygate.gateway.client import McpStdioClient, ToolClient
from policygate.gateway.config import GatewayConfig, ServerConfig, load_config, parse_config
from policygate.gateway.models import ToolDescriptor
from policygate.gateway.service import PolicyGateway, failure_response

__all__ = [
    "GatewayConfig",
    "McpStdioClient",
    "PolicyGateway",
    "ServerConfig",
    "ToolCatalog",
    "ToolClient",
    "ToolDescriptor",
    "failure_response",
    "load_config",
    "normalize_input_schema",
    "parse_config",
]
