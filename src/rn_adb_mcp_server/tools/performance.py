"""Runtime performance probes built on dumpsys."""

import re
from typing import Any, Dict, Optional

from pydantic import Field

from ..adb.validators import validate_package_name
from ..errors import PackageNotFoundError
from .base import DeviceInput, PackageInput, ToolContext, resolve_target_device, tool

MEMINFO_PATTERNS = {
    "total_pss_kb": re.compile(r"TOTAL(?: PSS)?:?\s+(\d+)"),
    "java_heap_kb": re.compile(r"Java Heap:\s+(\d+)"),
    "native_heap_kb": re.compile(r"Native Heap:\s+(\d+)"),
    "graphics_kb": re.compile(r"Graphics:\s+(\d+)"),
    "total_rss_kb": re.compile(r"TOTAL RSS:\s+(\d+)"),
}

CPU_LOAD_RE = re.compile(r"Load:\s*([\d.]+)\s*/\s*([\d.]+)\s*/\s*([\d.]+)")
CPU_TOTAL_RE = re.compile(r"([\d.]+)%\s+TOTAL")
CPU_PROCESS_RE = re.compile(r"^\s*([\d.]+)%\s+(\d+)/(\S+?):")

GFX_PATTERNS = {
    "total_frames": re.compile(r"Total frames rendered:\s*(\d+)"),
    "janky_frames": re.compile(r"Janky frames:\s*(\d+)"),
    "janky_percent": re.compile(r"Janky frames:\s*\d+\s*\(([\d.]+)%\)"),
    "percentile_50_ms": re.compile(r"50th percentile:\s*(\d+)ms"),
    "percentile_90_ms": re.compile(r"90th percentile:\s*(\d+)ms"),
    "percentile_95_ms": re.compile(r"95th percentile:\s*(\d+)ms"),
    "percentile_99_ms": re.compile(r"99th percentile:\s*(\d+)ms"),
}

JANK_WARNING_PERCENT = 10.0


class CpuUsageInput(DeviceInput):
    package_name: Optional[str] = Field(default=None, description="Only report processes of this package")
    limit: int = Field(default=10, ge=1, le=100, description="Maximum number of processes to return")


class FrameStatsInput(PackageInput):
    reset: bool = Field(default=False, description="Reset the frame counters after reading")


def _number(value: str):
    return float(value) if "." in value else int(value)


@tool(
    name="get_memory_info",
    description="Reports PSS, Java heap and native heap usage of an app (dumpsys meminfo)",
    input_model=PackageInput,
    action="get memory info",
    category="performance",
)
async def get_memory_info(ctx: ToolContext, params: PackageInput) -> Dict[str, Any]:
    package_name = validate_package_name(params.package_name)
    device_id = await resolve_target_device(ctx, params.device_id)

    result = await ctx.adb.execute(["shell", "dumpsys", "meminfo", package_name], device_id=device_id)
    if "No process found" in result.stdout:
        raise PackageNotFoundError(package_name, {"device_id": device_id, "reason": "app is not running"})

    memory = {}
    for key, pattern in MEMINFO_PATTERNS.items():
        match = pattern.search(result.stdout)
        if match:
            memory[key] = int(match.group(1))

    total = memory.get("total_pss_kb")
    summary = f"{package_name} uses {total / 1024:.1f} MB PSS" if total else f"No PSS total reported for {package_name}"
    return {
        "success": True,
        "device_id": device_id,
        "package_name": package_name,
        "memory": memory,
        "summary": summary,
    }


@tool(
    name="get_cpu_usage",
    description="Reports CPU load and the busiest processes (dumpsys cpuinfo)",
    input_model=CpuUsageInput,
    action="get CPU usage",
    category="performance",
)
async def get_cpu_usage(ctx: ToolContext, params: CpuUsageInput) -> Dict[str, Any]:
    package_name = validate_package_name(params.package_name) if params.package_name else None
    device_id = await resolve_target_device(ctx, params.device_id)

    result = await ctx.adb.execute(["shell", "dumpsys", "cpuinfo"], device_id=device_id)
    output = result.stdout

    processes = []
    for line in output.splitlines():
        match = CPU_PROCESS_RE.match(line)
        if not match:
            continue
        percent, pid, name = match.groups()
        if package_name and not name.startswith(package_name):
            continue
        processes.append({"cpu_percent": float(percent), "pid": int(pid), "name": name})
    processes.sort(key=lambda p: p["cpu_percent"], reverse=True)
    processes = processes[:params.limit]

    response: Dict[str, Any] = {
        "success": True,
        "device_id": device_id,
        "processes": processes,
    }
    load = CPU_LOAD_RE.search(output)
    if load:
        response["load_average"] = [float(v) for v in load.groups()]
    total = CPU_TOTAL_RE.search(output)
    if total:
        response["total_cpu_percent"] = float(total.group(1))

    if package_name:
        app_total = sum(p["cpu_percent"] for p in processes)
        response["summary"] = f"{package_name} uses {app_total:.1f}% CPU"
    else:
        response["summary"] = f"Total CPU {response.get('total_cpu_percent', 'unknown')}%, {len(processes)} process(es) listed"
    return response


@tool(
    name="get_frame_stats",
    description="Reports rendered and janky frame counts for an app (dumpsys gfxinfo)",
    input_model=FrameStatsInput,
    action="get frame statistics",
    category="performance",
)
async def get_frame_stats(ctx: ToolContext, params: FrameStatsInput) -> Dict[str, Any]:
    package_name = validate_package_name(params.package_name)
    device_id = await resolve_target_device(ctx, params.device_id)

    result = await ctx.adb.execute(["shell", "dumpsys", "gfxinfo", package_name], device_id=device_id)
    if "No process found" in result.stdout:
        raise PackageNotFoundError(package_name, {"device_id": device_id, "reason": "app is not running"})

    stats = {}
    for key, pattern in GFX_PATTERNS.items():
        match = pattern.search(result.stdout)
        if match:
            stats[key] = _number(match.group(1))

    if params.reset:
        await ctx.adb.execute(["shell", "dumpsys", "gfxinfo", package_name, "reset"], device_id=device_id)

    janky = stats.get("janky_percent")
    if janky is None:
        summary = f"No frame data reported for {package_name}"
    elif janky > JANK_WARNING_PERCENT:
        summary = f"{janky}% janky frames for {package_name}; rendering needs attention"
    else:
        summary = f"{janky}% janky frames for {package_name}"
    return {
        "success": True,
        "device_id": device_id,
        "package_name": package_name,
        "frames": stats,
        "reset": params.reset,
        "summary": summary,
    }
