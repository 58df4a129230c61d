"""React Native code analysis, advisory and package management tools.

None of these need a device; they read the project directory on the host.
"""

import asyncio
import os
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from ..errors import ValidationError
from ..paths import resolve_path
from ..services import advisory, file_analysis, report_formatter
from ..services.package_management import PackageManager
from .base import ToolContext, tool


class FocusArea(str, Enum):
    ALL = "all"
    LIST_RENDERING = "list_rendering"
    MEMORY_USAGE = "memory_usage"
    BUNDLE_SIZE = "bundle_size"
    ANIMATIONS = "animations"


class Scenario(str, Enum):
    LIST_RENDERING = "list_rendering"
    NAVIGATION = "navigation"
    ANIMATIONS = "animations"
    MEMORY_USAGE = "memory_usage"
    BUNDLE_SIZE = "bundle_size"
    STARTUP_TIME = "startup_time"


class Platform(str, Enum):
    IOS = "ios"
    ANDROID = "android"
    BOTH = "both"


class ProjectType(str, Enum):
    SIMPLE_APP = "simple_app"
    COMPLEX_APP = "complex_app"
    ENTERPRISE = "enterprise"
    LIBRARY = "library"


class Feature(str, Enum):
    AUTHENTICATION = "authentication"
    OFFLINE_SUPPORT = "offline_support"
    REAL_TIME = "real_time"
    ANALYTICS = "analytics"
    PUSH_NOTIFICATIONS = "push_notifications"


class IssueType(str, Enum):
    CRASH = "crash"
    PERFORMANCE = "performance"
    NETWORKING = "networking"
    BUILD = "build"
    UI = "ui"
    OTHER = "other"


class PackageManagerName(str, Enum):
    NPM = "npm"
    YARN = "yarn"
    PNPM = "pnpm"


class UpdateLevel(str, Enum):
    PATCH = "patch"
    MINOR = "minor"
    MAJOR = "major"
    ALL = "all"


class Severity(str, Enum):
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    CRITICAL = "critical"


class ProjectInput(BaseModel):
    project_path: str = Field(description="Path to the React Native project root")


class PerformanceAnalysisInput(ProjectInput):
    focus_areas: List[FocusArea] = Field(
        default_factory=lambda: [FocusArea.ALL],
        description="Areas to check",
    )


class PerformanceOptimizationsInput(BaseModel):
    scenario: Scenario = Field(description="Scenario to get optimization guidance for")
    platform: Platform = Field(default=Platform.BOTH, description="Target platform")


class ArchitectureAdviceInput(BaseModel):
    project_type: ProjectType = Field(description="Kind of project")
    features: List[Feature] = Field(default_factory=list, description="Features the app needs")


class DebuggingGuidanceInput(BaseModel):
    issue_type: IssueType = Field(description="Category of the problem")
    platform: Platform = Field(default=Platform.BOTH, description="Affected platform")
    error_message: Optional[str] = Field(default=None, description="Error message, if any")


class PackageProjectInput(ProjectInput):
    package_manager: PackageManagerName = Field(default=PackageManagerName.NPM, description="Package manager to use")


class UpgradePackagesInput(PackageProjectInput):
    update_level: UpdateLevel = Field(default=UpdateLevel.MINOR, description="Largest update to recommend")
    auto_apply: bool = Field(default=False, description="Run the upgrade commands")
    check_vulnerabilities: bool = Field(default=True, description="Also run a security audit")
    target_packages: Optional[List[str]] = Field(default=None, description="Limit to these packages")


class ResolveDependenciesInput(PackageProjectInput):
    fix_conflicts: bool = Field(default=False, description="Run a fresh install to settle the tree")
    generate_resolutions: bool = Field(default=True, description="Suggest resolutions")


class AuditPackagesInput(PackageProjectInput):
    auto_fix: bool = Field(default=False, description="Run the audit fix command")
    severity_threshold: Severity = Field(default=Severity.LOW, description="Lowest severity to report")


class MigratePackagesInput(PackageProjectInput):
    auto_migrate: bool = Field(default=False, description="Run the migration commands and update package.json")
    target_packages: Optional[List[str]] = Field(default=None, description="Limit to these deprecated packages")


def _project_dir(project_path: str) -> str:
    if not project_path or not project_path.strip():
        raise ValidationError("Project path is required")
    path = resolve_path(project_path)
    if not os.path.isdir(path):
        raise ValidationError(f"Project path does not exist or is not a directory: {path}", {"path": path})
    return path


def _package_manager(ctx: ToolContext, params: PackageProjectInput) -> PackageManager:
    return PackageManager(
        _project_dir(params.project_path),
        params.package_manager.value,
        timeout_ms=ctx.settings.package_command_timeout_ms,
    )


@tool(
    name="analyze_codebase",
    description="Scans a React Native project for components, common issues and suggestions",
    input_model=ProjectInput,
    action="analyze codebase",
    category="analysis",
)
async def analyze_codebase(ctx: ToolContext, params: ProjectInput) -> str:
    path = _project_dir(params.project_path)
    analysis = await asyncio.to_thread(file_analysis.analyze_codebase, path)
    return report_formatter.format_codebase_analysis(analysis, path)


@tool(
    name="analyze_performance",
    description="Looks for list rendering, memory, bundle size and animation problems",
    input_model=PerformanceAnalysisInput,
    action="analyze performance",
    category="analysis",
)
async def analyze_performance(ctx: ToolContext, params: PerformanceAnalysisInput) -> str:
    path = _project_dir(params.project_path)
    areas = [area.value for area in params.focus_areas]
    issues = await asyncio.to_thread(file_analysis.analyze_performance, path, areas)
    return report_formatter.format_performance_analysis(issues, path)


@tool(
    name="analyze_codebase_comprehensive",
    description=(
        "Full review: security, performance, code quality, refactoring, deprecated APIs, "
        "accessibility, testing and upgrades"
    ),
    input_model=ProjectInput,
    action="analyze codebase comprehensively",
    category="analysis",
)
async def analyze_codebase_comprehensive(ctx: ToolContext, params: ProjectInput) -> str:
    path = _project_dir(params.project_path)
    analysis = await asyncio.to_thread(file_analysis.analyze_comprehensive, path)
    return report_formatter.format_comprehensive_analysis(analysis, path)


@tool(
    name="get_performance_optimizations",
    description="Optimization guidance for a React Native performance scenario",
    input_model=PerformanceOptimizationsInput,
    action="get performance optimizations",
    category="advisory",
)
async def get_performance_optimizations(ctx: ToolContext, params: PerformanceOptimizationsInput) -> str:
    return advisory.get_performance_optimizations(params.scenario.value, params.platform.value)


@tool(
    name="get_architecture_advice",
    description="Project structure and state management advice by project type and features",
    input_model=ArchitectureAdviceInput,
    action="get architecture advice",
    category="advisory",
)
async def get_architecture_advice(ctx: ToolContext, params: ArchitectureAdviceInput) -> str:
    return advisory.get_architecture_advice(params.project_type.value, [f.value for f in params.features])


@tool(
    name="get_debugging_guidance",
    description="Step-by-step debugging guidance for crashes, performance, networking, build and UI issues",
    input_model=DebuggingGuidanceInput,
    action="get debugging guidance",
    category="advisory",
)
async def get_debugging_guidance(ctx: ToolContext, params: DebuggingGuidanceInput) -> str:
    return advisory.get_debugging_guidance(params.issue_type.value, params.platform.value, params.error_message)


@tool(
    name="upgrade_packages",
    description="Lists outdated packages and recommends or applies upgrades",
    input_model=UpgradePackagesInput,
    action="upgrade packages",
    category="packages",
)
async def upgrade_packages(ctx: ToolContext, params: UpgradePackagesInput) -> str:
    return await _package_manager(ctx, params).upgrade_packages(
        update_level=params.update_level.value,
        auto_apply=params.auto_apply,
        check_vulnerabilities=params.check_vulnerabilities,
        target_packages=params.target_packages,
    )


@tool(
    name="resolve_dependencies",
    description="Finds unmet and conflicting dependencies and suggests resolutions",
    input_model=ResolveDependenciesInput,
    action="resolve dependencies",
    category="packages",
)
async def resolve_dependencies(ctx: ToolContext, params: ResolveDependenciesInput) -> str:
    return await _package_manager(ctx, params).resolve_dependencies(
        fix_conflicts=params.fix_conflicts,
        generate_resolutions=params.generate_resolutions,
    )


@tool(
    name="audit_packages",
    description="Runs a security audit and optionally applies fixes",
    input_model=AuditPackagesInput,
    action="audit packages",
    category="packages",
)
async def audit_packages(ctx: ToolContext, params: AuditPackagesInput) -> str:
    return await _package_manager(ctx, params).audit_packages(
        auto_fix=params.auto_fix,
        severity_threshold=params.severity_threshold.value,
    )


@tool(
    name="migrate_packages",
    description="Replaces deprecated React Native packages with their maintained successors",
    input_model=MigratePackagesInput,
    action="migrate packages",
    category="packages",
)
async def migrate_packages(ctx: ToolContext, params: MigratePackagesInput) -> str:
    return await _package_manager(ctx, params).migrate_packages(
        auto_migrate=params.auto_migrate,
        target_packages=params.target_packages,
    )
