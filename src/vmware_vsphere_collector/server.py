"""
VMware vSphere Collector MCP Server

Exposes metric collection and metric discovery as Model Context Protocol
tools.

Author: uldyssian-sh
License: MIT
"""

import asyncio
import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import structlog

# MCP imports
from mcp.server import NotificationOptions, Server
from mcp.server.models import InitializationOptions
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

# Local imports
from . import __version__
from .collector import VSphereCollector
from .config import CollectorConfig
from .exceptions import ValidationError

logger = structlog.get_logger(__name__)


class VSphereCollectorMCPServer:
    """VMware vSphere Collector MCP Server"""

    def __init__(self, config: Dict[str, Any], collector: Optional[VSphereCollector] = None):
        self.config = config
        self.collector_config = CollectorConfig.from_dict(config)
        self.collector = collector or VSphereCollector()
        self.server = Server("vmware-vsphere-collector")

        self._register_handlers()

        logger.info("VMware vSphere Collector MCP Server initialized",
                    cluster=self.collector_config.cluster_name)

    def _register_handlers(self) -> None:
        """Register MCP protocol handlers"""

        @self.server.list_tools()
        async def handle_list_tools() -> List[Tool]:
            """List available MCP tools"""
            return self.list_tools()

        @self.server.call_tool()
        async def handle_call_tool(name: str, arguments: Dict[str, Any]) -> List[TextContent]:
            """Handle tool calls"""
            return await self.call_tool(name, arguments)

    def list_tools(self) -> List[Tool]:
        return [
            Tool(
                name="collect_metrics",
                description="Collect current vSphere host and VM metrics for the given namespaces",
                inputSchema={
                    "type": "object",
                    "properties": {
                        "namespaces": {
                            "type": "array",
                            "items": {"type": "string"},
                            "description": "Metric namespaces, e.g. /intel/vmware/vsphere/host/*/mem/*/free"
                        }
                    },
                    "required": ["namespaces"]
                }
            ),
            Tool(
                name="list_metric_types",
                description="List namespace templates of all metrics the collector can produce",
                inputSchema={
                    "type": "object",
                    "properties": {}
                }
            ),
            Tool(
                name="get_collector_metrics",
                description="Collector self-monitoring metrics in Prometheus text format",
                inputSchema={
                    "type": "object",
                    "properties": {}
                }
            ),
        ]

    async def call_tool(self, name: str, arguments: Optional[Dict[str, Any]]) -> List[TextContent]:
        arguments = arguments or {}
        try:
            if name == "collect_metrics":
                result = await self._collect_metrics(arguments)
            elif name == "list_metric_types":
                result = await self._list_metric_types(arguments)
            elif name == "get_collector_metrics":
                result = await self._get_collector_metrics(arguments)
            else:
                raise ValidationError(f"Unknown tool: {name}")

            return [TextContent(type="text", text=json.dumps(result, indent=2))]

        except Exception as e:
            logger.error("Tool failed", tool=name, error=str(e))
            error_result = {
                "error": str(e),
                "error_type": type(e).__name__,
                "tool": name,
                "timestamp": datetime.now(timezone.utc).isoformat()
            }
            return [TextContent(type="text", text=json.dumps(error_result, indent=2))]

    # Tool implementations
    async def _collect_metrics(self, args: Dict[str, Any]) -> Dict[str, Any]:
        """Collect metrics for requested namespaces"""
        namespaces = args.get("namespaces")
        if not namespaces or not isinstance(namespaces, list):
            raise ValidationError("At least one namespace is required")

        metrics = await asyncio.to_thread(
            self.collector.collect_metrics, namespaces, self.collector_config
        )

        return {
            "success": True,
            "metrics": [metric.to_dict() for metric in metrics],
            "count": len(metrics)
        }

    async def _list_metric_types(self, args: Dict[str, Any]) -> Dict[str, Any]:
        """List available metric namespaces"""
        metric_types = [descriptor.to_dict() for descriptor in self.collector.get_metric_types()]
        return {
            "success": True,
            "metric_types": metric_types,
            "count": len(metric_types)
        }

    async def _get_collector_metrics(self, args: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "success": True,
            "metrics": self.collector.metrics.export().decode("utf-8")
        }

    async def start(self) -> None:
        """Start the MCP server"""
        try:
            async with stdio_server() as (read_stream, write_stream):
                await self.server.run(
                    read_stream,
                    write_stream,
                    InitializationOptions(
                        server_name="vmware-vsphere-collector",
                        server_version=__version__,
                        capabilities=self.server.get_capabilities(
                            notification_options=NotificationOptions(),
                            experimental_capabilities={}
                        )
                    )
                )
        except Exception as e:
            logger.error("Server startup failed", error=str(e))
            raise
        finally:
            await self.stop()

    async def stop(self) -> None:
        """Stop the MCP server"""
        await asyncio.to_thread(self.collector.close)
        logger.info("VMware vSphere Collector MCP Server stopped")
