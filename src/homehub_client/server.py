"""MCP Server for Home Hub Management.

This module provides an MCP (Model Context Protocol) server for managing a
Home Hub through AI assistants. It exposes the hub client as MCP tools.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv
from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from .config import ClientConfig
from .errors import HubError
from .hub_client import Hub

# Load environment variables
load_dotenv()

# Configure module logger
logger = logging.getLogger(__name__)


class ClientManager:
    """Manages the Hub client lifecycle.

    The hub accepts one session at a time, so every tool call shares a single
    lazily created Hub instance.

    Attributes:
        config: Client configuration.
    """

    def __init__(self, config: Optional[ClientConfig] = None) -> None:
        """Initialize the client manager.

        Args:
            config: Optional client configuration. If not provided,
                    configuration is loaded from environment variables.
        """
        self._config = config or ClientConfig.from_env()
        self._client: Optional[Hub] = None
        self._lock = asyncio.Lock()

    @property
    def config(self) -> ClientConfig:
        """Get the client configuration."""
        return self._config

    async def get_client(self) -> Hub:
        """Get or create the Hub client.

        Returns:
            Configured Hub instance.
        """
        async with self._lock:
            if self._client is None:
                logger.debug("Creating new Hub client for %s", self._config.target_url)
                self._client = self._config.create_hub()
            return self._client

    async def reset_client(self) -> None:
        """Reset the client, forcing re-authentication on next use."""
        async with self._lock:
            if self._client:
                try:
                    await asyncio.to_thread(self._client.logout)
                except HubError as e:
                    logger.debug("Error during logout: %s", e)
                self._client = None
            logger.debug("Client reset")


# Global client manager instance, created on first use
_client_manager: Optional[ClientManager] = None


def get_client_manager() -> ClientManager:
    """Get the global client manager.

    Returns:
        The global ClientManager instance.
    """
    global _client_manager
    if _client_manager is None:
        _client_manager = ClientManager()
    return _client_manager


# Initialize MCP server
server = Server("homehub-mcp")

_NO_ARGS: Dict[str, Any] = {"type": "object", "properties": {}, "required": []}


def _get_tool_definitions() -> List[Tool]:
    """Get the list of available tool definitions.

    Returns:
        List of Tool definitions for the MCP server.
    """
    return [
        Tool(
            name="hub_status",
            description="Get hub model, firmware, internet status and sync speeds",
            inputSchema=_NO_ARGS,
        ),
        Tool(
            name="hub_login",
            description="Log in to the hub, replacing any existing session",
            inputSchema=_NO_ARGS,
        ),
        Tool(
            name="hub_diagnostics",
            description="Get diagnostic information about the hub session",
            inputSchema=_NO_ARGS,
        ),
        Tool(
            name="connected_devices",
            description="List all devices currently connected to the hub",
            inputSchema=_NO_ARGS,
        ),
        Tool(
            name="device_info",
            description="Get details of a single device by host id",
            inputSchema={
                "type": "object",
                "properties": {
                    "id": {
                        "type": "integer",
                        "description": "Host id as listed by connected_devices"
                    }
                },
                "required": ["id"]
            }
        ),
        Tool(
            name="event_log",
            description="Download the hub event log",
            inputSchema=_NO_ARGS,
        ),
        Tool(
            name="bandwidth_monitor",
            description="Get today's traffic per device from the bandwidth monitor",
            inputSchema=_NO_ARGS,
        ),
        Tool(
            name="light_status",
            description="Get the hub light status and brightness",
            inputSchema=_NO_ARGS,
        ),
        Tool(
            name="set_light_brightness",
            description="Set the hub light brightness",
            inputSchema={
                "type": "object",
                "properties": {
                    "brightness": {
                        "type": "integer",
                        "description": "Brightness percentage from 0 to 100",
                        "minimum": 0,
                        "maximum": 100
                    }
                },
                "required": ["brightness"]
            }
        ),
        Tool(
            name="set_light_enabled",
            description="Turn the hub light on or off",
            inputSchema={
                "type": "object",
                "properties": {
                    "enabled": {
                        "type": "boolean",
                        "description": "True to turn the light on"
                    }
                },
                "required": ["enabled"]
            }
        ),
        Tool(
            name="reboot_hub",
            description="Reboot the hub (use with caution!)",
            inputSchema={
                "type": "object",
                "properties": {
                    "confirm": {
                        "type": "boolean",
                        "description": "Must be true to confirm reboot"
                    }
                },
                "required": ["confirm"]
            }
        ),
    ]


def _handle_tool_call(
    client: Hub,
    name: str,
    arguments: Dict[str, Any]
) -> Any:
    """Handle a tool call and return the result.

    Args:
        client: The Hub instance.
        name: The tool name.
        arguments: The tool arguments.

    Returns:
        The JSON-serializable result of the tool call.

    Raises:
        ValueError: If the tool name is unknown.
    """
    if name == "hub_status":
        return client.get_status()

    elif name == "hub_login":
        return {"success": client.login()}

    elif name == "hub_diagnostics":
        return client.get_diagnostics()

    elif name == "connected_devices":
        return [device.to_dict() for device in client.connected_devices()]

    elif name == "device_info":
        return client.device_info(int(arguments["id"])).to_dict()

    elif name == "event_log":
        return {"event_log": client.event_log()}

    elif name == "bandwidth_monitor":
        return [usage.to_dict() for usage in client.bandwidth_monitor()]

    elif name == "light_status":
        return {
            "status": client.light_status(),
            "brightness": client.light_brightness(),
        }

    elif name == "set_light_brightness":
        client.set_light_brightness(int(arguments["brightness"]))
        return {"success": True}

    elif name == "set_light_enabled":
        client.set_light_enabled(bool(arguments["enabled"]))
        return {"success": True}

    elif name == "reboot_hub":
        if arguments.get("confirm"):
            client.reboot()
            return {"success": True, "message": "Reboot initiated"}
        else:
            return {"error": "Reboot not confirmed. Set confirm=true to proceed."}

    else:
        raise ValueError(f"Unknown tool: {name}")


@server.list_tools()
async def list_tools() -> List[Tool]:
    """List available tools.

    Returns:
        List of available Tool definitions.
    """
    return _get_tool_definitions()


@server.call_tool()
async def call_tool(name: str, arguments: Dict[str, Any]) -> List[TextContent]:
    """Handle tool calls.

    Args:
        name: The tool name to call.
        arguments: The arguments for the tool.

    Returns:
        List containing a single TextContent with the JSON result.
    """
    manager = get_client_manager()
    if name == "hub_login":
        # Start from a fresh client so the old session is logged out first
        await manager.reset_client()
    client = await manager.get_client()

    try:
        result = await asyncio.to_thread(_handle_tool_call, client, name, arguments)
        return [TextContent(type="text", text=json.dumps(result, indent=2))]
    except ValueError as e:
        logger.warning("Invalid tool call: %s", e)
        return [TextContent(type="text", text=json.dumps({"error": str(e)}, indent=2))]
    except HubError as e:
        logger.error("Hub error for %s: %r", name, e)
        error = {"error": str(e), "type": type(e).__name__}
        return [TextContent(type="text", text=json.dumps(error, indent=2))]


def main() -> None:
    """Main entry point for the MCP server."""
    # Configure logging
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    async def run() -> None:
        """Run the MCP server."""
        logger.info("Starting Home Hub MCP server")
        async with stdio_server() as (read_stream, write_stream):
            await server.run(
                read_stream,
                write_stream,
                server.create_initialization_options()
            )

    asyncio.run(run())


if __name__ == "__main__":
    main()
