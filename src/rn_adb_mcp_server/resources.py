"""Read-only MCP resources."""

import json
from typing import List

from mcp.server.lowlevel.helper_types import ReadResourceContents
from mcp.types import Resource

from .errors import ValidationError
from .performance import generate_performance_report
from .services.advisory import PERFORMANCE_SCENARIOS, get_performance_optimizations
from .tools.base import ToolContext

DEVICES_URI = "adb://devices"
PERFORMANCE_REPORT_URI = "rn://performance-report"
GUIDE_URI_PREFIX = "rn://guides/performance/"


def list_resources() -> List[Resource]:
    resources = [
        Resource(
            uri=DEVICES_URI,
            name="Connected devices",
            description="Android devices currently visible to adb",
            mimeType="application/json",
        ),
        Resource(
            uri=PERFORMANCE_REPORT_URI,
            name="Server performance report",
            description="Timing of adb commands and tool calls made by this server",
            mimeType="text/markdown",
        ),
    ]
    for scenario in PERFORMANCE_SCENARIOS:
        resources.append(
            Resource(
                uri=f"{GUIDE_URI_PREFIX}{scenario}",
                name=f"{scenario.replace('_', ' ').capitalize()} guide",
                description=f"React Native {scenario.replace('_', ' ')} optimization guide",
                mimeType="text/markdown",
            )
        )
    return resources


async def read_resource(ctx: ToolContext, uri: str) -> List[ReadResourceContents]:
    if uri == DEVICES_URI:
        devices = await ctx.adb.list_devices(include_offline=True)
        payload = json.dumps([d.to_dict() for d in devices], indent=2)
        return [ReadResourceContents(content=payload, mime_type="application/json")]

    if uri == PERFORMANCE_REPORT_URI:
        return [ReadResourceContents(content=generate_performance_report(), mime_type="text/markdown")]

    if uri.startswith(GUIDE_URI_PREFIX):
        scenario = uri[len(GUIDE_URI_PREFIX):]
        if scenario in PERFORMANCE_SCENARIOS:
            guide = get_performance_optimizations(scenario, "both")
            return [ReadResourceContents(content=guide, mime_type="text/markdown")]

    raise ValidationError(f"Unknown resource: {uri}")
