"""Markdown rendering for the analysis tools."""

from collections import Counter
from typing import Iterable, List

from .file_analysis import AnalysisIssue, CodebaseAnalysis, ComprehensiveAnalysis

SEVERITY_ICONS = {"critical": "🔴", "high": "🟠", "medium": "🟡", "low": "🟢"}
MAX_OTHER_FILES = 10
MAX_SECTION_ISSUES = 10


def _by_severity(issues: Iterable[AnalysisIssue], *severities: str) -> List[AnalysisIssue]:
    return [i for i in issues if i.severity in severities]


def format_codebase_analysis(analysis: CodebaseAnalysis, project_path: str) -> str:
    components = [c for c in analysis.components if c.is_component]
    others = [c for c in analysis.components if not c.is_component]

    lines = [
        "# React Native Codebase Analysis",
        "",
        f"**Project Path:** {project_path}",
        f"**Total Files Analyzed:** {analysis.total_files}",
        f"**Components Found:** {len(components)}",
        "",
    ]

    if analysis.issues:
        lines.append(f"## 🚨 Issues Found ({len(analysis.issues)})")
        lines.extend(f"- {issue}" for issue in analysis.issues)
        lines.append("")

    if analysis.suggestions:
        lines.append(f"## 💡 Suggestions ({len(analysis.suggestions)})")
        lines.extend(f"- {suggestion}" for suggestion in analysis.suggestions)
        lines.append("")

    if components:
        lines.append(f"## 📱 Components ({len(components)})")
        lines.extend(f"- {c.file_name} ({c.lines_of_code} lines)" for c in components)
        lines.append("")

    if others:
        lines.append(f"## 📄 Other Files ({len(others)})")
        lines.extend(f"- {c.file_name} ({c.lines_of_code} lines)" for c in others[:MAX_OTHER_FILES])
        if len(others) > MAX_OTHER_FILES:
            lines.append(f"- ... and {len(others) - MAX_OTHER_FILES} more files")
        lines.append("")

    return "\n".join(lines)


def _issue_block(issue: AnalysisIssue) -> List[str]:
    return [
        f"### {issue.file}",
        f"**Issue:** {issue.issue}",
        f"**Solution:** {issue.suggestion}",
        "",
    ]


def format_performance_analysis(issues: List[AnalysisIssue], project_path: str) -> str:
    lines = [
        "# React Native Performance Analysis",
        "",
        f"**Project Path:** {project_path}",
        f"**Performance Issues Found:** {len(issues)}",
        "",
    ]

    if not issues:
        lines.append("✅ No major performance issues detected! Your code follows good performance practices.")
        return "\n".join(lines)

    groups = [
        ("🔴 High Priority Issues", _by_severity(issues, "critical", "high")),
        ("🟡 Medium Priority Issues", _by_severity(issues, "medium")),
        ("🟢 Low Priority Optimizations", _by_severity(issues, "low")),
    ]
    for title, group in groups:
        if not group:
            continue
        lines.append(f"## {title} ({len(group)})")
        lines.append("")
        for issue in group:
            lines.extend(_issue_block(issue))

    categories = Counter(issue.type or issue.category or "general" for issue in issues)
    if len(categories) > 1:
        lines.append("## 📊 Issues by Category")
        for category, count in categories.most_common():
            lines.append(f"- **{category.replace('_', ' ')}:** {count} issue(s)")
        lines.append("")

    return "\n".join(lines)


def _section(title: str, issues: List[AnalysisIssue]) -> List[str]:
    if not issues:
        return []
    lines = [f"## {title} ({len(issues)})", ""]
    for issue in issues[:MAX_SECTION_ISSUES]:
        icon = SEVERITY_ICONS.get(issue.severity, "⚪")
        label = f" [{issue.category}]" if issue.category else ""
        lines.append(f"- {icon} **{issue.file}**{label}: {issue.issue}")
        lines.append(f"  - 💡 {issue.suggestion}")
    if len(issues) > MAX_SECTION_ISSUES:
        lines.append(f"- ... and {len(issues) - MAX_SECTION_ISSUES} more")
    lines.append("")
    return lines


def format_comprehensive_analysis(analysis: ComprehensiveAnalysis, project_path: str) -> str:
    all_issues = analysis.all_issues()
    lines = [
        "# 🔍 Comprehensive React Native Codebase Analysis",
        "",
        f"**Project Path:** {project_path}",
        f"**Total Files Analyzed:** {analysis.total_files}",
        "",
        "## 📊 Analysis Summary",
        "",
        f"- **Security Issues:** {len(analysis.security)}",
        f"- **Performance Issues:** {len(analysis.performance)}",
        f"- **Code Quality Issues:** {len(analysis.code_quality)}",
        f"- **Refactoring Opportunities:** {len(analysis.refactoring)}",
        f"- **Deprecated Features:** {len(analysis.deprecated)}",
        f"- **Accessibility Issues:** {len(analysis.accessibility)}",
        f"- **Testing Gaps:** {len(analysis.testing)}",
        f"- **Upgrade Recommendations:** {len(analysis.upgrades)}",
        "",
    ]

    if not all_issues:
        lines.append("✅ **Excellent!** No significant issues found. Your codebase follows React Native best practices.")
        return "\n".join(lines)

    urgent = _by_severity(all_issues, "critical", "high")
    if urgent:
        lines.append(f"## 🚨 Critical & High Priority Issues ({len(urgent)})")
        lines.append("")
        for issue in urgent[:MAX_SECTION_ISSUES]:
            lines.append(f"- {SEVERITY_ICONS[issue.severity]} **{issue.file}**: {issue.issue}")
        lines.append("")

    lines.extend(_section("🛡️ Security Analysis", analysis.security))
    lines.extend(_section("⚡ Performance", analysis.performance))
    lines.extend(_section("📝 Code Quality", analysis.code_quality))
    lines.extend(_section("🔧 Refactoring Opportunities", analysis.refactoring))
    lines.extend(_section("⚠️ Deprecated Features", analysis.deprecated))
    lines.extend(_section("♿ Accessibility Improvements", analysis.accessibility))
    lines.extend(_section("🧪 Testing Recommendations", analysis.testing))
    lines.extend(_section("📦 Package & Version Upgrades", analysis.upgrades))

    lines.append("## 🎯 Next Steps")
    lines.append("")
    step = 1
    if analysis.security:
        lines.append(f"{step}. Resolve security issues first, starting with critical findings")
        step += 1
    if urgent:
        lines.append(f"{step}. Fix the remaining high priority issues")
        step += 1
    if analysis.deprecated or analysis.upgrades:
        lines.append(f"{step}. Plan migrations away from deprecated APIs and outdated packages")
        step += 1
    lines.append(f"{step}. Re-run this analysis after changes to track progress")
    lines.append("")

    return "\n".join(lines)
