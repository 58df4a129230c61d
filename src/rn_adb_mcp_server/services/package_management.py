"""Upgrade, audit, resolve and migrate JavaScript dependencies.

Every report is markdown. Package manager failures are written into the
report rather than raised, so a partial report still reaches the client.
"""

import asyncio
import json
import os
import re
import time
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence

from loguru import logger

from ..errors import PackageManagerError, ValidationError
from .file_analysis import PACKAGE_MIGRATIONS, react_native_minor
from .version_utils import is_minor_or_patch_update, is_patch_update

PACKAGE_MANAGERS = ("npm", "yarn", "pnpm")
UPDATE_LEVELS = ("patch", "minor", "major", "all")
SEVERITY_LEVELS = ("low", "moderate", "high", "critical")
NEW_ARCHITECTURE_PACKAGES = (
    "react-native-reanimated",
    "react-native-gesture-handler",
    "react-native-screens",
)

NO_PACKAGE_JSON = "❌ No package.json found in the specified project path."

OUTDATED_COMMANDS = {
    "npm": ["npm", "outdated", "--json"],
    "yarn": ["yarn", "outdated", "--json"],
    "pnpm": ["pnpm", "outdated", "--format", "json"],
}
AUDIT_COMMANDS = {
    "npm": ["npm", "audit", "--json"],
    "yarn": ["yarn", "audit", "--json"],
    "pnpm": ["pnpm", "audit", "--json"],
}
LIST_COMMANDS = {
    "npm": ["npm", "list", "--json"],
    "yarn": ["yarn", "list", "--json"],
    "pnpm": ["pnpm", "list", "--json"],
}
# (add verb, remove verb)
INSTALL_VERBS = {
    "npm": ("install", "uninstall"),
    "yarn": ("add", "remove"),
    "pnpm": ("add", "remove"),
}


@dataclass(frozen=True)
class CommandResult:
    argv: Sequence[str]
    exit_code: int
    stdout: str
    stderr: str
    duration_ms: int

    @property
    def success(self) -> bool:
        return self.exit_code == 0

    @property
    def command(self) -> str:
        return " ".join(self.argv)


async def run_command(argv: Sequence[str], cwd: str, timeout_ms: int) -> CommandResult:
    """Run a package manager without a shell.

    A non-zero exit is returned, not raised; ``npm outdated`` and ``npm audit``
    use it to signal findings.
    """
    logger.debug("running {} in {}", " ".join(argv), cwd)
    start = time.monotonic()
    try:
        process = await asyncio.create_subprocess_exec(
            *argv,
            cwd=cwd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as exc:
        raise PackageManagerError(f"Could not start {argv[0]}: {exc}", {"command": " ".join(argv)}) from exc

    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout_ms / 1000)
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        raise PackageManagerError(
            f"{argv[0]} timed out after {timeout_ms}ms",
            {"command": " ".join(argv), "timeout": timeout_ms},
        )

    return CommandResult(
        argv=list(argv),
        exit_code=process.returncode,
        stdout=stdout.decode("utf-8", errors="replace"),
        stderr=stderr.decode("utf-8", errors="replace"),
        duration_ms=int((time.monotonic() - start) * 1000),
    )


def _check_manager(package_manager: str) -> str:
    if package_manager not in PACKAGE_MANAGERS:
        raise ValidationError(
            f"Unsupported package manager: {package_manager}",
            {"supported": list(PACKAGE_MANAGERS)},
        )
    return package_manager


def load_package_json(project_path: str) -> Optional[Dict[str, Any]]:
    path = os.path.join(project_path, "package.json")
    if not os.path.isfile(path):
        return None
    with open(path, encoding="utf-8") as f:
        try:
            return json.load(f)
        except ValueError as exc:
            raise ValidationError(f"package.json is not valid JSON: {exc}", {"path": path}) from exc


def all_dependencies(package_json: Dict[str, Any]) -> Dict[str, str]:
    return {**package_json.get("dependencies", {}), **package_json.get("devDependencies", {})}


def _json_lines(text: str) -> Iterable[Dict[str, Any]]:
    for line in text.splitlines():
        line = line.strip()
        if not line.startswith("{"):
            continue
        try:
            yield json.loads(line)
        except ValueError:
            continue


def parse_outdated(output: str) -> Dict[str, Dict[str, str]]:
    """Normalise npm/pnpm objects and yarn's line-delimited table."""
    if not output.strip():
        return {}
    try:
        data = json.loads(output)
    except ValueError:
        data = None

    if isinstance(data, dict) and data.get("type") != "table":
        return {
            name: {
                "current": info.get("current") or "missing",
                "wanted": info.get("wanted", ""),
                "latest": info.get("latest", ""),
                "type": info.get("type") or info.get("dependencyType") or "dependencies",
            }
            for name, info in data.items()
            if isinstance(info, dict)
        }

    result = {}
    for event in _json_lines(output):
        if event.get("type") != "table":
            continue
        for row in event.get("data", {}).get("body", []):
            if len(row) >= 5:
                result[row[0]] = {"current": row[1], "wanted": row[2], "latest": row[3], "type": row[4]}
    return result


def should_upgrade(current: str, latest: str, update_level: str) -> bool:
    if update_level in ("all", "major"):
        return True
    if update_level == "minor":
        return is_minor_or_patch_update(current, latest)
    if update_level == "patch":
        return is_patch_update(current, latest)
    return False


def upgrade_argv(package_manager: str, package: str, version: str) -> List[str]:
    if package_manager == "yarn":
        return ["yarn", "upgrade", f"{package}@{version}"]
    if package_manager == "pnpm":
        return ["pnpm", "update", f"{package}@{version}"]
    return ["npm", "install", f"{package}@{version}"]


def meets_severity_threshold(severity: str, threshold: str) -> bool:
    if severity not in SEVERITY_LEVELS:
        return False
    return SEVERITY_LEVELS.index(severity) >= SEVERITY_LEVELS.index(threshold)


def parse_audit(output: str) -> Dict[str, Dict[str, str]]:
    """Map package name to severity, title and patched versions."""
    try:
        data = json.loads(output) if output.strip() else {}
    except ValueError:
        data = None

    vulnerabilities: Dict[str, Dict[str, str]] = {}
    # yarn emits one event object per line
    if isinstance(data, dict) and "type" not in data:
        for name, vuln in (data.get("vulnerabilities") or {}).items():
            title = vuln.get("title")
            if not title:
                titles = [v.get("title") for v in vuln.get("via", []) if isinstance(v, dict) and v.get("title")]
                title = titles[0] if titles else "N/A"
            fix = vuln.get("fixAvailable")
            patched = vuln.get("patched_versions")
            if not patched and isinstance(fix, dict):
                patched = f"{fix.get('name')}@{fix.get('version')}"
            vulnerabilities[name] = {
                "severity": vuln.get("severity", "low"),
                "title": title,
                "patched_versions": patched or "None",
            }
        # pnpm reports advisories keyed by id
        for advisory in (data.get("advisories") or {}).values():
            vulnerabilities[advisory.get("module_name", "unknown")] = {
                "severity": advisory.get("severity", "low"),
                "title": advisory.get("title", "N/A"),
                "patched_versions": advisory.get("patched_versions") or "None",
            }
        return vulnerabilities

    for event in _json_lines(output):
        if event.get("type") != "auditAdvisory":
            continue
        advisory = event.get("data", {}).get("advisory", {})
        vulnerabilities[advisory.get("module_name", "unknown")] = {
            "severity": advisory.get("severity", "low"),
            "title": advisory.get("title", "N/A"),
            "patched_versions": advisory.get("patched_versions") or "None",
        }
    return vulnerabilities


def audit_fix_argv(package_manager: str) -> List[str]:
    return [package_manager, "audit", "fix"]


def find_dependency_conflicts(tree: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Packages that appear with more than one version anywhere in the tree."""
    versions: Dict[str, List[str]] = {}

    def walk(node: Dict[str, Any]) -> None:
        for name, info in (node.get("dependencies") or {}).items():
            if not isinstance(info, dict):
                continue
            seen = versions.setdefault(name, [])
            version = info.get("version")
            if version and version not in seen:
                seen.append(version)
            walk(info)

    walk(tree)
    return [
        {"package": name, "versions": found, "reason": "Multiple versions detected in dependency tree"}
        for name, found in versions.items()
        if len(found) > 1
    ]


def dependency_resolutions(package_json: Dict[str, Any], package_manager: str) -> List[Dict[str, str]]:
    deps = all_dependencies(package_json)
    resolutions = []
    if "react-native" in deps and "react" in deps:
        add_verb, _ = INSTALL_VERBS[package_manager]
        resolutions.append({
            "package": "react",
            "issue": f"React {deps['react']} may not match the version required by React Native {deps['react-native']}",
            "solution": "Align react with the version listed in the React Native release notes",
            "command": f"{package_manager} {add_verb} react@<version required by react-native>",
        })
    return resolutions


def migration_commands(package_manager: str, old_package: str, new_packages: List[str]) -> List[List[str]]:
    add_verb, remove_verb = INSTALL_VERBS[package_manager]
    return [
        [package_manager, remove_verb, old_package],
        [package_manager, add_verb, *new_packages],
    ]


def react_native_recommendations(package_json: Dict[str, Any]) -> str:
    deps = all_dependencies(package_json)
    rn_version = deps.get("react-native")
    if not rn_version:
        return ""

    current = re.sub(r"[^0-9.]", "", rn_version)
    line = react_native_minor(rn_version)
    lines = ["## 🎯 React Native Specific Recommendations", ""]
    if line < 70:
        lines += [
            "🚨 **Critical: React Native version is outdated**",
            f"- Current: {current}",
            "- Recommended: 0.72+",
            "- Benefits: New Architecture, better performance, latest features",
            "- Upgrade guide: https://react-native-community.github.io/upgrade-helper/",
            "",
        ]
    elif line < 72:
        lines += [
            "⚠️ **React Native could be updated**",
            f"- Current: {current}",
            "- Latest stable: 0.72+",
            "- Consider upgrading for latest features and bug fixes",
            "",
        ]
    else:
        lines += ["✅ React Native version is current", ""]

    lines += [
        "### 🏗️ New Architecture Readiness",
        "",
        "Check if your dependencies support the New Architecture (Fabric + TurboModules):",
        "",
    ]
    present = [pkg for pkg in NEW_ARCHITECTURE_PACKAGES if pkg in deps]
    if present:
        lines.append("Ensure these packages support New Architecture:")
        lines.extend(f"- {pkg}" for pkg in present)
        lines.append("")
    return "\n".join(lines) + "\n"


def _header(title: str, package_json: Dict[str, Any], package_manager: str) -> List[str]:
    return [
        f"# {title}",
        "",
        f"**Project:** {package_json.get('name') or 'Unknown'}",
        f"**Package Manager:** {package_manager}",
        "",
    ]


class PackageManager:
    """Runs package manager workflows inside one project directory."""

    def __init__(self, project_path: str, package_manager: str = "npm", timeout_ms: int = 600000):
        self.project_path = project_path
        self.package_manager = _check_manager(package_manager)
        self.timeout_ms = timeout_ms

    async def _run(self, argv: Sequence[str]) -> CommandResult:
        return await run_command(argv, self.project_path, self.timeout_ms)

    async def upgrade_packages(self, update_level: str = "minor", auto_apply: bool = False,
                               check_vulnerabilities: bool = True, target_packages: Optional[List[str]] = None) -> str:
        package_json = load_package_json(self.project_path)
        if package_json is None:
            return NO_PACKAGE_JSON
        report = _header("📦 Package Upgrade Analysis", package_json, self.package_manager)
        report += ["## 🔍 Checking for Outdated Packages", ""]

        try:
            result = await self._run(OUTDATED_COMMANDS[self.package_manager])
            outdated = parse_outdated(result.stdout)
            if target_packages:
                outdated = {k: v for k, v in outdated.items() if k in target_packages}
            if not outdated:
                report += ["✅ All packages are up to date!", ""]
            else:
                report += await self._render_upgrades(outdated, update_level, auto_apply)
        except PackageManagerError as exc:
            report += [f"⚠️ Could not check for outdated packages: {exc}", ""]

        if check_vulnerabilities:
            report += ["## 🛡️ Security Check", ""]
            try:
                audit = parse_audit((await self._run(AUDIT_COMMANDS[self.package_manager])).stdout)
                if audit:
                    report += [
                        f"Found {len(audit)} vulnerabilities.",
                        "",
                        f"**Fix command:** `{' '.join(audit_fix_argv(self.package_manager))}`",
                        "",
                    ]
                else:
                    report += ["✅ No known vulnerabilities found!", ""]
            except PackageManagerError as exc:
                report += [f"⚠️ Could not check for vulnerabilities: {exc}", ""]

        return "\n".join(report) + "\n" + react_native_recommendations(package_json)

    async def _render_upgrades(self, outdated: Dict[str, Dict[str, str]], update_level: str,
                               auto_apply: bool) -> List[str]:
        lines = [
            "| Package | Current | Wanted | Latest | Type |",
            "|---------|---------|--------|--------|------|",
        ]
        upgrades = []
        for name, info in outdated.items():
            lines.append(f"| {name} | {info['current']} | {info['wanted']} | {info['latest']} | {info['type']} |")
            if should_upgrade(info["current"], info["latest"], update_level):
                upgrades.append((name, info))
        lines.append("")

        if not upgrades:
            lines += [f"No upgrades match the {update_level} update level.", ""]
            return lines

        lines += ["## 🚀 Recommended Upgrades", ""]
        if not auto_apply:
            lines += ["### Manual Upgrade Commands", "", "```bash"]
            lines += [" ".join(upgrade_argv(self.package_manager, name, info["latest"])) for name, info in upgrades]
            lines += ["```", ""]
            return lines

        lines += ["### Applying Automatic Upgrades", ""]
        for name, info in upgrades:
            lines.append(f"Upgrading {name} from {info['current']} to {info['latest']}...")
            try:
                result = await self._run(upgrade_argv(self.package_manager, name, info["latest"]))
            except PackageManagerError as exc:
                lines += [f"❌ Failed to upgrade {name}: {exc}", ""]
                continue
            if result.success:
                lines += [f"✅ Successfully upgraded {name}", ""]
            else:
                lines += [f"❌ Failed to upgrade {name}: {result.stderr.strip() or result.exit_code}", ""]
        return lines

    async def resolve_dependencies(self, fix_conflicts: bool = False, generate_resolutions: bool = True) -> str:
        package_json = load_package_json(self.project_path)
        if package_json is None:
            return NO_PACKAGE_JSON
        report = _header("🔧 Dependency Resolution Analysis", package_json, self.package_manager)
        report += ["## 🔍 Analyzing Dependency Tree", ""]

        try:
            result = await self._run(LIST_COMMANDS[self.package_manager])
            unmet = re.findall(r"UNMET (?:PEER )?DEPENDENCY ([^\n]+)", result.stderr)
            if unmet:
                report += ["⚠️ Found unmet dependencies:", ""]
                report += [f"- {dep.strip()}" for dep in unmet]
                report.append("")
            try:
                tree = json.loads(result.stdout)
            except ValueError:
                report += ["⚠️ Could not parse dependency tree for conflict analysis", ""]
            else:
                # pnpm returns one tree per workspace project
                trees = tree if isinstance(tree, list) else [tree]
                conflicts = [c for t in trees for c in find_dependency_conflicts(t)]
                if conflicts:
                    report += ["🚨 **Dependency Conflicts Found:**", ""]
                    for conflict in conflicts:
                        report += [
                            f"**{conflict['package']}**",
                            f"- Required versions: {', '.join(conflict['versions'])}",
                            f"- Conflict reason: {conflict['reason']}",
                            "",
                        ]
                else:
                    report += ["✅ No dependency conflicts detected!", ""]
        except PackageManagerError as exc:
            report += [f"⚠️ Could not analyze dependency tree: {exc}", ""]

        if generate_resolutions:
            report += ["## 🛠️ Resolution Suggestions", ""]
            resolutions = dependency_resolutions(package_json, self.package_manager)
            if resolutions:
                report += ["### Recommended Resolutions", ""]
                for resolution in resolutions:
                    report += [
                        f"**{resolution['package']}**",
                        f"- Issue: {resolution['issue']}",
                        f"- Solution: {resolution['solution']}",
                        f"- Command: `{resolution['command']}`",
                        "",
                    ]
            else:
                report += ["✅ No additional resolutions needed!", ""]

        if fix_conflicts:
            report += ["## 🔧 Attempting Automatic Fixes", ""]
            argv = [self.package_manager, "install"]
            report += [f"Running: `{' '.join(argv)}`", ""]
            try:
                result = await self._run(argv)
            except PackageManagerError as exc:
                report += [f"❌ Failed to resolve dependencies automatically: {exc}", ""]
            else:
                if not result.success:
                    report += [f"❌ Failed to resolve dependencies automatically:\n```\n{result.stderr.strip()}\n```", ""]
                elif result.stderr.strip() and "warn" not in result.stderr.lower():
                    report += [f"⚠️ Warnings/Errors during installation:\n```\n{result.stderr.strip()}\n```", ""]
                else:
                    report += ["✅ Dependencies resolved successfully!", ""]

        return "\n".join(report) + "\n"

    async def audit_packages(self, auto_fix: bool = False, severity_threshold: str = "low") -> str:
        if severity_threshold not in SEVERITY_LEVELS:
            raise ValidationError(
                f"Invalid severity threshold: {severity_threshold}",
                {"allowed": list(SEVERITY_LEVELS)},
            )
        package_json = load_package_json(self.project_path)
        if package_json is None:
            return NO_PACKAGE_JSON
        report = _header("🛡️ Security Audit Report", package_json, self.package_manager)

        try:
            result = await self._run(AUDIT_COMMANDS[self.package_manager])
        except PackageManagerError as exc:
            report += [f"⚠️ Could not complete security audit: {exc}", ""]
            return "\n".join(report) + "\n"

        vulnerabilities = parse_audit(result.stdout)
        if not vulnerabilities:
            report += ["✅ No security vulnerabilities found!", ""]
            return "\n".join(report) + "\n"

        matching = {
            name: vuln for name, vuln in vulnerabilities.items()
            if meets_severity_threshold(vuln["severity"], severity_threshold)
        }
        if not matching:
            report += [f"✅ No vulnerabilities found meeting the {severity_threshold} severity threshold!", ""]
            return "\n".join(report) + "\n"

        report += [
            f"Found {len(matching)} vulnerabilities meeting severity threshold.",
            "",
            "| Package | Severity | Title | Patched Versions |",
            "|---------|----------|-------|------------------|",
        ]
        report += [
            f"| {name} | {v['severity']} | {v['title']} | {v['patched_versions']} |"
            for name, v in matching.items()
        ]
        report.append("")

        fix_argv = audit_fix_argv(self.package_manager)
        if auto_fix:
            report += ["## 🔧 Attempting Automatic Fixes", "", f"Running: `{' '.join(fix_argv)}`", ""]
            try:
                fix = await self._run(fix_argv)
            except PackageManagerError as exc:
                report += [f"❌ Failed to auto-fix vulnerabilities: {exc}", ""]
            else:
                if fix.success:
                    report += [f"✅ Fix completed:\n```\n{fix.stdout.strip()}\n```", ""]
                else:
                    report += [f"❌ Failed to auto-fix vulnerabilities:\n```\n{fix.stderr.strip()}\n```", ""]
        else:
            report += [
                "## 🛠️ Manual Fix Recommendations",
                "",
                "Run the following command to attempt automatic fixes:",
                f"```bash\n{' '.join(fix_argv)}\n```",
                "",
            ]
        return "\n".join(report) + "\n"

    async def migrate_packages(self, auto_migrate: bool = False, target_packages: Optional[List[str]] = None) -> str:
        package_json = load_package_json(self.project_path)
        if package_json is None:
            return NO_PACKAGE_JSON
        report = _header("📦 Package Migration Analysis", package_json, self.package_manager)
        deps = all_dependencies(package_json)

        needed = [
            (old, migration, migration_commands(self.package_manager, old, migration["install"]))
            for old, migration in PACKAGE_MIGRATIONS.items()
            if old in deps and (not target_packages or old in target_packages)
        ]
        if not needed:
            report += ["✅ No package migrations needed!", ""]
            return "\n".join(report) + "\n"

        report += ["## 🔄 Packages Requiring Migration", ""]
        for old, migration, commands in needed:
            report += [f"**{old}** → **{migration['new_package']}**", f"- Reason: {migration['reason']}", "- Commands:"]
            report += [f"  - `{' '.join(argv)}`" for argv in commands]
            report.append("")

        if not auto_migrate:
            report += [
                "## 📋 Manual Migration Instructions",
                "",
                "Run the following commands to perform the migrations:",
                "",
                "```bash",
            ]
            report += [" ".join(argv) for _, _, commands in needed for argv in commands]
            report += ["```", ""]
            return "\n".join(report) + "\n"

        report += ["## 🚀 Performing Automatic Migration", ""]
        for old, _, commands in needed:
            report += [f"### Migrating {old}", ""]
            for argv in commands:
                report.append(f"Running: `{' '.join(argv)}`")
                try:
                    result = await self._run(argv)
                except PackageManagerError as exc:
                    report += [f"❌ Failed: {exc}", ""]
                    continue
                report += ["✅ Success" if result.success else f"❌ Failed: {result.stderr.strip()}", ""]

        report += self._drop_migrated(package_json, [old for old, _, _ in needed])
        return "\n".join(report) + "\n"

    def _drop_migrated(self, package_json: Dict[str, Any], packages: List[str]) -> List[str]:
        for section in ("dependencies", "devDependencies"):
            for name in packages:
                package_json.get(section, {}).pop(name, None)
        path = os.path.join(self.project_path, "package.json")
        try:
            with open(path, "w", encoding="utf-8") as f:
                json.dump(package_json, f, indent=2)
                f.write("\n")
        except OSError as exc:
            logger.warning("could not rewrite {}: {}", path, exc)
            return [f"⚠️ Could not update package.json: {exc}", ""]
        return ["✅ Updated package.json to remove old dependencies", ""]
