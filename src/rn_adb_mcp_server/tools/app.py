"""Application install, inspection and lifecycle tools."""

import asyncio
import re
import shutil
from pathlib import Path
from typing import Any, Dict, List, Optional

from loguru import logger
from pydantic import Field

from ..adb.types import DetailedPackageInfo, PackageInfo
from ..adb.validators import validate_file_path, validate_package_name
from ..errors import ADBError, PackageNotFoundError
from .base import DeviceInput, PackageInput, ToolContext, resolve_target_device, tool

INSTALL_TIMEOUT_MS = 120000
AAPT_TIMEOUT_SECONDS = 10
RESTART_DELAY_SECONDS = 1

INSTALL_FAILURES = [
    ("install_failed_already_exists", "App already installed. Use replace=true to update it"),
    ("install_failed_version_downgrade", "Version downgrade not allowed. Use allow_downgrade=true"),
    ("install_failed_insufficient_storage", "Insufficient storage space on device"),
    ("install_failed_invalid_apk", "Invalid or corrupted APK file"),
]

ACTIVITY_RE = re.compile(r"([a-zA-Z0-9_.]+/[a-zA-Z0-9_.$]+)")
APK_PACKAGE_RE = re.compile(r"package: name='([^']+)'")

PERMISSIONS_SECTION_RE = re.compile(r"requested permissions:([\s\S]*?)(?=\n\s*\n|\ninstall permissions:)")


class InstallAppInput(DeviceInput):
    apk_path: str = Field(description="Path to the APK file on the local machine")
    replace: bool = Field(default=False, description="Replace an existing installation (-r)")
    grant_permissions: bool = Field(default=False, description="Grant all runtime permissions (-g)")
    allow_downgrade: bool = Field(default=False, description="Allow version code downgrade (-d)")
    allow_test_apk: bool = Field(default=False, description="Allow test-only APKs (-t)")


class UninstallAppInput(PackageInput):
    keep_data: bool = Field(default=False, description="Keep data and cache directories (-k)")


class ListPackagesInput(DeviceInput):
    filter: Optional[str] = Field(default=None, description="Only return packages containing this text")
    show_system: bool = Field(default=False, description="Include system packages")
    show_third_party: bool = Field(default=True, description="Include third-party packages")
    show_disabled: bool = Field(default=False, description="Include disabled packages")


class RestartAppInput(PackageInput):
    clear_data: bool = Field(default=False, description="Clear app data before restarting")


async def read_apk_package_name(apk_path: str) -> Optional[str]:
    """Read the package name with ``aapt dump badging`` when aapt is installed."""
    aapt = shutil.which("aapt")
    if not aapt:
        return None
    try:
        process = await asyncio.create_subprocess_exec(
            aapt, "dump", "badging", apk_path,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.DEVNULL,
        )
        stdout, _ = await asyncio.wait_for(process.communicate(), AAPT_TIMEOUT_SECONDS)
    except (OSError, asyncio.TimeoutError) as exc:
        logger.debug("aapt failed for {}: {}", apk_path, exc)
        return None
    match = APK_PACKAGE_RE.search(stdout.decode("utf-8", errors="replace"))
    return match.group(1) if match else None


def _check_apk(apk_path: str) -> Path:
    validate_file_path(apk_path)
    path = Path(apk_path)
    if not path.exists():
        raise ADBError("APK file not found", {"apk_path": apk_path})
    if not path.is_file():
        raise ADBError("APK path must be a file", {"apk_path": apk_path})
    if path.suffix.lower() != ".apk":
        raise ADBError("File must have .apk extension", {"apk_path": apk_path, "extension": path.suffix.lower()})
    return path


@tool(
    name="install_app",
    description="Installs an APK file on a connected Android device",
    input_model=InstallAppInput,
    action="install APK on device",
    category="app",
)
async def install_app(ctx: ToolContext, params: InstallAppInput) -> Dict[str, Any]:
    apk_path = params.apk_path
    _check_apk(apk_path)
    device_id = await resolve_target_device(ctx, params.device_id)

    args = ["install"]
    if params.replace:
        args.append("-r")
    if params.grant_permissions:
        args.append("-g")
    if params.allow_downgrade:
        args.append("-d")
    if params.allow_test_apk:
        args.append("-t")
    args.append(apk_path)

    result = await ctx.adb.execute(args, device_id=device_id, timeout=INSTALL_TIMEOUT_MS, throw_on_error=False)
    output = result.stdout.lower()

    if "success" in output:
        response: Dict[str, Any] = {
            "success": True,
            "device_id": device_id,
            "message": f"Successfully installed APK on {device_id}",
            "apk_path": apk_path,
            "options": {
                "replaced": params.replace,
                "permissions_granted": params.grant_permissions,
                "downgrade_allowed": params.allow_downgrade,
                "test_apk_allowed": params.allow_test_apk,
            },
        }
        package_name = await read_apk_package_name(apk_path)
        if package_name:
            response["package_name"] = package_name
        return response

    error_output = result.stdout or result.stderr
    details = {"device_id": device_id, "apk_path": apk_path, "error_output": error_output}
    lowered = error_output.lower()
    if "failed to install" in output or "failure" in output or "failure" in lowered:
        for code, message in INSTALL_FAILURES:
            if code in lowered:
                raise ADBError(message, details)
        raise ADBError("Failed to install APK", details)

    raise ADBError(
        "Unexpected response from ADB install command",
        {"device_id": device_id, "apk_path": apk_path, "response": error_output},
    )


@tool(
    name="uninstall_app",
    description="Uninstalls an application from a connected Android device",
    input_model=UninstallAppInput,
    action="uninstall app from device",
    category="app",
)
async def uninstall_app(ctx: ToolContext, params: UninstallAppInput) -> Dict[str, Any]:
    package_name = validate_package_name(params.package_name)
    device_id = await resolve_target_device(ctx, params.device_id)

    args = ["uninstall"]
    if params.keep_data:
        args.append("-k")
    args.append(package_name)

    result = await ctx.adb.execute(args, device_id=device_id, throw_on_error=False)
    output = result.stdout.lower()

    if "success" in output:
        return {
            "success": True,
            "device_id": device_id,
            "package_name": package_name,
            "message": f"Successfully uninstalled {package_name} from {device_id}",
            "data_kept": params.keep_data,
        }

    error_output = result.stdout or result.stderr
    lowered = error_output.lower()
    if "failure" in lowered or "failed" in lowered:
        if "not installed" in lowered or "unknown package" in lowered:
            raise PackageNotFoundError(package_name, {"device_id": device_id, "error_output": error_output})
        details = {"device_id": device_id, "package_name": package_name, "error_output": error_output}
        if "delete_failed_internal_error" in lowered:
            raise ADBError("Internal error during uninstallation", details)
        raise ADBError("Failed to uninstall package", details)

    raise ADBError(
        "Unexpected response from ADB uninstall command",
        {"device_id": device_id, "package_name": package_name, "response": error_output},
    )


@tool(
    name="list_packages",
    description="Lists installed packages on a connected Android device",
    input_model=ListPackagesInput,
    action="list packages on device",
    category="app",
)
async def list_packages(ctx: ToolContext, params: ListPackagesInput) -> Dict[str, Any]:
    device_id = await resolve_target_device(ctx, params.device_id)

    queries = []
    if params.show_third_party:
        queries.append(("third-party", "-3"))
    if params.show_system:
        queries.append(("system", "-s"))
    if params.show_disabled:
        queries.append(("disabled", "-d"))

    packages: Dict[str, PackageInfo] = {}
    for package_type, flag in queries:
        result = await ctx.adb.execute(
            ["shell", "pm", "list", "packages", flag], device_id=device_id, throw_on_error=False,
        )
        if not result.success:
            continue
        for line in result.stdout.splitlines():
            line = line.strip()
            if not line.startswith("package:"):
                continue
            name = line[len("package:"):].strip()
            if params.filter and params.filter not in name:
                continue
            packages.setdefault(name, PackageInfo(package_name=name, type=package_type))

    ordered = sorted(packages.values(), key=lambda p: p.package_name)
    counts = {t: sum(1 for p in ordered if p.type == t) for t in ("third-party", "system", "disabled")}
    return {
        "packages": [p.to_dict() for p in ordered],
        "total": len(ordered),
        "third_party_count": counts["third-party"],
        "system_count": counts["system"],
        "disabled_count": counts["disabled"],
        "device_id": device_id,
        "summary": (
            f"Found {len(ordered)} package(s): {counts['third-party']} third-party, "
            f"{counts['system']} system, {counts['disabled']} disabled"
        ),
        "filter_applied": params.filter,
    }


def _search(pattern: str, text: str) -> Optional[str]:
    match = re.search(pattern, text)
    return match.group(1).strip() if match else None


def parse_package_dump(package_name: str, output: str, device_id: Optional[str] = None) -> DetailedPackageInfo:
    """Extract package details from ``dumpsys package`` output."""
    info = DetailedPackageInfo(package_name=package_name, device_id=device_id)
    info.version_name = _search(r"versionName=(\S+)", output)
    info.version_code = _search(r"versionCode=(\d+)", output)
    info.install_location = _search(r"installLocation=(\S+)", output)
    info.first_install_time = _search(r"firstInstallTime=([^\n]+)", output)
    info.last_update_time = _search(r"lastUpdateTime=([^\n]+)", output)
    info.data_dir = _search(r"dataDir=(\S+)", output)
    info.apk_path = _search(r"codePath=(\S+)", output)

    for attr, pattern in (("uid", r"userId=(\d+)"), ("target_sdk", r"targetSdk=(\d+)"), ("min_sdk", r"minSdk=(\d+)")):
        value = _search(pattern, output)
        if value is not None:
            setattr(info, attr, int(value))

    section = PERMISSIONS_SECTION_RE.search(output)
    if section:
        info.permissions = [
            line.strip().split(":")[0]
            for line in section.group(1).splitlines()
            if line.strip().startswith("android.permission.")
        ]

    if info.apk_path and "/system/" in info.apk_path:
        info.is_system_app = True

    if "enabled=1" in output or "ENABLED" in output:
        info.is_enabled = True
    elif "enabled=0" in output or "DISABLED" in output:
        info.is_enabled = False
    return info


@tool(
    name="get_package_info",
    description="Shows version, install time, paths, SDK levels and permissions of an installed package",
    input_model=PackageInput,
    action="get package information",
    category="app",
)
async def get_package_info(ctx: ToolContext, params: PackageInput) -> Dict[str, Any]:
    package_name = validate_package_name(params.package_name)
    device_id = await resolve_target_device(ctx, params.device_id)

    result = await ctx.adb.execute(
        ["shell", "dumpsys", "package", package_name], device_id=device_id, throw_on_error=False,
    )
    if not result.success or not result.stdout or "Unable to find package" in result.stdout:
        raise PackageNotFoundError(package_name, {"device_id": device_id})

    return parse_package_dump(package_name, result.stdout, device_id).to_dict()


def _find_main_activity(dump: str) -> Optional[str]:
    lines = dump.splitlines()
    for index, line in enumerate(lines):
        if "android.intent.action.MAIN" in line:
            window = "\n".join(lines[index:index + 2])
            match = ACTIVITY_RE.search(window)
            if match:
                return match.group(1)
    return None


async def launch_package(ctx: ToolContext, package_name: str, device_id: str) -> str:
    """Start the launcher activity, falling back to the MAIN activity from dumpsys."""
    result = await ctx.adb.execute(
        ["shell", "monkey", "-p", package_name, "-c", "android.intent.category.LAUNCHER", "1"],
        device_id=device_id,
        throw_on_error=False,
    )
    if result.success and "No activities found" not in result.stdout and "aborted" not in result.stdout:
        return f"App launched: {package_name}"

    dump = await ctx.adb.execute(["shell", "dumpsys", "package", package_name], device_id=device_id)
    activity = _find_main_activity(dump.stdout)
    if not activity:
        raise ADBError(
            f"Failed to launch app: could not determine main activity for {package_name}",
            {"package_name": package_name, "monkey_output": result.stdout or result.stderr},
        )
    await ctx.adb.execute(["shell", "am", "start", "-n", activity], device_id=device_id)
    return f"App launched with activity: {activity}"


@tool(
    name="launch_app",
    description="Launches an application on a connected Android device",
    input_model=PackageInput,
    action="launch app",
    category="app",
)
async def launch_app(ctx: ToolContext, params: PackageInput) -> Dict[str, Any]:
    package_name = validate_package_name(params.package_name)
    device_id = await resolve_target_device(ctx, params.device_id)
    message = await launch_package(ctx, package_name, device_id)
    return {"success": True, "device_id": device_id, "package_name": package_name, "message": message}


@tool(
    name="force_stop_app",
    description="Force stops a running application on a connected Android device",
    input_model=PackageInput,
    action="force stop app",
    category="app",
)
async def force_stop_app(ctx: ToolContext, params: PackageInput) -> Dict[str, Any]:
    package_name = validate_package_name(params.package_name)
    device_id = await resolve_target_device(ctx, params.device_id)
    await ctx.adb.execute(["shell", "am", "force-stop", package_name], device_id=device_id)
    return {
        "success": True,
        "device_id": device_id,
        "package_name": package_name,
        "message": f"App force stopped: {package_name}",
    }


async def _clear_data(ctx: ToolContext, package_name: str, device_id: str) -> str:
    result = await ctx.adb.execute(["shell", "pm", "clear", package_name], device_id=device_id)
    if "success" not in result.stdout.lower():
        raise ADBError(
            f"Failed to clear app data for {package_name}",
            {"device_id": device_id, "response": result.stdout or result.stderr},
        )
    return result.stdout


@tool(
    name="clear_app_data",
    description="Clears all data for an application on a connected Android device",
    input_model=PackageInput,
    action="clear app data",
    category="app",
)
async def clear_app_data(ctx: ToolContext, params: PackageInput) -> Dict[str, Any]:
    package_name = validate_package_name(params.package_name)
    device_id = await resolve_target_device(ctx, params.device_id)
    await _clear_data(ctx, package_name, device_id)
    return {
        "success": True,
        "device_id": device_id,
        "package_name": package_name,
        "message": f"App data cleared for {package_name}",
    }


@tool(
    name="restart_app",
    description="Force stops an application, optionally clears its data, then starts it again",
    input_model=RestartAppInput,
    action="restart app",
    category="app",
)
async def restart_app(ctx: ToolContext, params: RestartAppInput) -> Dict[str, Any]:
    package_name = validate_package_name(params.package_name)
    device_id = await resolve_target_device(ctx, params.device_id)

    steps: List[str] = []
    await ctx.adb.execute(["shell", "am", "force-stop", package_name], device_id=device_id)
    steps.append("stopped")
    if params.clear_data:
        await _clear_data(ctx, package_name, device_id)
        steps.append("data cleared")

    await asyncio.sleep(RESTART_DELAY_SECONDS)
    launch_message = await launch_package(ctx, package_name, device_id)
    steps.append("started")

    return {
        "success": True,
        "device_id": device_id,
        "package_name": package_name,
        "steps": steps,
        "message": f"App restarted: {package_name}. {launch_message}",
    }
