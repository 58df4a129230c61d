"""Tests for the canned guidance tables."""

import pytest

from rn_adb_mcp_server.services.advisory import (
    PERFORMANCE_GUIDES,
    PERFORMANCE_SCENARIOS,
    get_architecture_advice,
    get_debugging_guidance,
    get_performance_optimizations,
)


class TestPerformanceOptimizations:
    def test_every_scenario_has_a_guide(self):
        assert set(PERFORMANCE_SCENARIOS) == set(PERFORMANCE_GUIDES)

    def test_both_platforms_has_no_notes(self):
        guide = get_performance_optimizations("list_rendering")

        assert "## List Rendering Optimizations" in guide
        assert "Platform-Specific Notes" not in guide

    @pytest.mark.parametrize("platform, note", [("ios", "Instruments"), ("android", "R8/ProGuard")])
    def test_platform_notes(self, platform, note):
        guide = get_performance_optimizations("startup_time", platform)

        assert f"### Platform-Specific Notes ({platform.upper()}):" in guide
        assert note in guide

    def test_unknown_scenario(self):
        assert get_performance_optimizations("teleportation") == (
            "Performance optimization guidance not available for this scenario."
        )


class TestArchitectureAdvice:
    def test_project_type(self):
        assert "## Enterprise App Architecture" in get_architecture_advice("enterprise")

    def test_features_are_appended_in_order(self):
        advice = get_architecture_advice("simple_app", ["offline_support", "authentication", "unknown"])

        assert advice.index("### Offline-First Architecture:") < advice.index("### Authentication Architecture:")

    def test_unknown_project_type_gets_general_advice(self):
        assert "## General Architecture Advice" in get_architecture_advice("library")


class TestDebuggingGuidance:
    def test_platform_section_is_filled(self):
        guidance = get_debugging_guidance("crash", "android")

        assert "## Debugging App Crashes" in guidance
        assert "### Platform-Specific (Android):" in guidance
        assert "FATAL EXCEPTION" in guidance
        assert "{platform}" not in guidance
        assert "class ErrorBoundary extends React.Component {" in guidance

    @pytest.mark.parametrize("issue_type", ["crash", "performance", "networking", "build", "ui"])
    def test_all_issue_types_render(self, issue_type):
        guidance = get_debugging_guidance(issue_type)

        assert "### Platform-Specific (Both platforms):" in guidance
        assert "{{" not in guidance

    def test_error_message_analysis(self):
        guidance = get_debugging_guidance("networking", "ios", "Network request failed")

        assert "App Transport Security" in guidance
        assert "### Specific Error Analysis:\n**Error:** Network request failed" in guidance

    def test_unknown_issue_type_falls_back(self):
        guidance = get_debugging_guidance("other")

        assert "## General Debugging Guidance" in guidance
        assert "Specific Error Analysis" not in guidance
