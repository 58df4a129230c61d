"""Tests for package manager workflows with a scripted command runner."""

import asyncio
import json

import pytest

from rn_adb_mcp_server.errors import PackageManagerError, ValidationError
from rn_adb_mcp_server.services import package_management as pm
from rn_adb_mcp_server.services.package_management import (
    NO_PACKAGE_JSON,
    CommandResult,
    PackageManager,
    find_dependency_conflicts,
    meets_severity_threshold,
    parse_audit,
    parse_outdated,
    react_native_recommendations,
    should_upgrade,
    upgrade_argv,
)

NPM_OUTDATED = json.dumps({
    "lodash": {"current": "4.17.15", "wanted": "4.17.21", "latest": "4.17.21", "type": "dependencies"},
    "react-navigation": {"current": "4.4.0", "wanted": "4.4.4", "latest": "5.0.0", "type": "dependencies"},
})

NPM_AUDIT = json.dumps({
    "vulnerabilities": {
        "minimist": {"severity": "critical", "title": "Prototype Pollution", "fixAvailable": True},
        "glob-parent": {
            "severity": "moderate",
            "via": [{"title": "Regular expression denial of service"}],
            "fixAvailable": {"name": "glob-parent", "version": "5.1.2"},
        },
    },
})


class FakeRunner:
    """Stands in for run_command; replies are looked up by joined argv."""

    def __init__(self):
        self.replies = {}
        self.calls = []

    def reply(self, command, stdout="", stderr="", exit_code=0):
        self.replies[command] = (stdout, stderr, exit_code)

    async def __call__(self, argv, cwd, timeout_ms):
        command = " ".join(argv)
        self.calls.append(command)
        reply = self.replies.get(command, ("", "", 0))
        if isinstance(reply, Exception):
            raise reply
        stdout, stderr, exit_code = reply
        return CommandResult(argv=list(argv), exit_code=exit_code, stdout=stdout, stderr=stderr, duration_ms=1)


@pytest.fixture
def runner(monkeypatch):
    fake = FakeRunner()
    monkeypatch.setattr(pm, "run_command", fake)
    return fake


@pytest.fixture
def project(tmp_path):
    package_json = {
        "name": "demo-app",
        "dependencies": {
            "react": "18.2.0",
            "react-native": "0.68.2",
            "react-native-camera": "^4.2.1",
            "react-native-reanimated": "^2.14.0",
            "lodash": "^4.17.15",
        },
        "devDependencies": {"jest": "^29.0.0"},
    }
    (tmp_path / "package.json").write_text(json.dumps(package_json))
    return tmp_path


class TestHelpers:
    def test_parse_npm_outdated(self):
        outdated = parse_outdated(NPM_OUTDATED)

        assert outdated["lodash"] == {
            "current": "4.17.15", "wanted": "4.17.21", "latest": "4.17.21", "type": "dependencies",
        }

    def test_parse_yarn_outdated_table(self):
        output = "\n".join([
            json.dumps({"type": "info", "data": "Color legend"}),
            json.dumps({"type": "table", "data": {
                "head": ["Package", "Current", "Wanted", "Latest", "Package Type", "URL"],
                "body": [["axios", "0.21.1", "0.21.4", "1.6.0", "dependencies", "https://axios-http.com"]],
            }}),
        ])

        assert parse_outdated(output) == {
            "axios": {"current": "0.21.1", "wanted": "0.21.4", "latest": "1.6.0", "type": "dependencies"},
        }

    def test_parse_outdated_empty(self):
        assert parse_outdated("") == {}
        assert parse_outdated("not json") == {}

    @pytest.mark.parametrize(
        "current, latest, level, expected",
        [
            ("4.17.15", "4.17.21", "patch", True),
            ("4.4.0", "5.0.0", "minor", False),
            ("4.4.0", "4.6.0", "minor", True),
            ("4.4.0", "4.6.0", "patch", False),
            ("4.4.0", "5.0.0", "major", True),
            ("4.4.0", "5.0.0", "all", True),
        ],
    )
    def test_should_upgrade(self, current, latest, level, expected):
        assert should_upgrade(current, latest, level) is expected

    def test_upgrade_argv_per_manager(self):
        assert upgrade_argv("npm", "lodash", "4.17.21") == ["npm", "install", "lodash@4.17.21"]
        assert upgrade_argv("yarn", "lodash", "4.17.21") == ["yarn", "upgrade", "lodash@4.17.21"]
        assert upgrade_argv("pnpm", "lodash", "4.17.21") == ["pnpm", "update", "lodash@4.17.21"]

    def test_severity_threshold(self):
        assert meets_severity_threshold("critical", "high") is True
        assert meets_severity_threshold("moderate", "high") is False
        assert meets_severity_threshold("info", "low") is False

    def test_parse_npm_audit(self):
        vulnerabilities = parse_audit(NPM_AUDIT)

        assert vulnerabilities["minimist"] == {
            "severity": "critical", "title": "Prototype Pollution", "patched_versions": "None",
        }
        assert vulnerabilities["glob-parent"]["title"] == "Regular expression denial of service"
        assert vulnerabilities["glob-parent"]["patched_versions"] == "glob-parent@5.1.2"

    def test_parse_yarn_audit_lines(self):
        output = "\n".join([
            json.dumps({"type": "auditAdvisory", "data": {"advisory": {
                "module_name": "ws", "severity": "high", "title": "ReDoS", "patched_versions": ">=7.4.6",
            }}}),
            json.dumps({"type": "auditSummary", "data": {}}),
        ])

        assert parse_audit(output) == {"ws": {"severity": "high", "title": "ReDoS", "patched_versions": ">=7.4.6"}}

    def test_find_dependency_conflicts(self):
        tree = {"dependencies": {
            "a": {"version": "1.0.0", "dependencies": {"shared": {"version": "2.0.0"}}},
            "b": {"version": "1.0.0", "dependencies": {"shared": {"version": "3.1.0"}}},
            "shared": {"version": "2.0.0"},
        }}

        assert find_dependency_conflicts(tree) == [{
            "package": "shared",
            "versions": ["2.0.0", "3.1.0"],
            "reason": "Multiple versions detected in dependency tree",
        }]

    @pytest.mark.parametrize(
        "version, expected",
        [
            ("0.68.2", "🚨 **Critical: React Native version is outdated**"),
            ("^0.71.0", "⚠️ **React Native could be updated**"),
            ("0.73.4", "✅ React Native version is current"),
        ],
    )
    def test_react_native_recommendations(self, version, expected):
        text = react_native_recommendations({"dependencies": {"react-native": version}})

        assert expected in text
        assert "### 🏗️ New Architecture Readiness" in text

    def test_no_react_native(self):
        assert react_native_recommendations({"dependencies": {"react": "18.2.0"}}) == ""


class TestUpgradePackages:
    @pytest.mark.asyncio
    async def test_manual_commands_respect_update_level(self, project, runner):
        runner.reply("npm outdated --json", NPM_OUTDATED, exit_code=1)

        report = await PackageManager(str(project)).upgrade_packages(update_level="minor", check_vulnerabilities=False)

        assert "# 📦 Package Upgrade Analysis" in report
        assert "**Project:** demo-app" in report
        assert "**Package Manager:** npm" in report
        assert "| lodash | 4.17.15 | 4.17.21 | 4.17.21 | dependencies |" in report
        assert "npm install lodash@4.17.21" in report
        assert "react-navigation@5.0.0" not in report
        assert "🚨 **Critical: React Native version is outdated**" in report
        assert "- react-native-reanimated" in report
        assert runner.calls == ["npm outdated --json"]

    @pytest.mark.asyncio
    async def test_auto_apply_runs_upgrades(self, project, runner):
        runner.reply("npm outdated --json", NPM_OUTDATED, exit_code=1)
        runner.reply("npm install react-navigation@5.0.0", stderr="ERESOLVE unable to resolve", exit_code=1)

        report = await PackageManager(str(project)).upgrade_packages(
            update_level="major", auto_apply=True, check_vulnerabilities=False,
        )

        assert "✅ Successfully upgraded lodash" in report
        assert "❌ Failed to upgrade react-navigation: ERESOLVE unable to resolve" in report
        assert "npm install lodash@4.17.21" in runner.calls

    @pytest.mark.asyncio
    async def test_target_packages_and_vulnerabilities(self, project, runner):
        runner.reply("yarn outdated --json", "")
        runner.reply("yarn audit --json", json.dumps({"type": "auditAdvisory", "data": {"advisory": {
            "module_name": "ws", "severity": "high", "title": "ReDoS",
        }}}))

        report = await PackageManager(str(project), "yarn").upgrade_packages(target_packages=["lodash"])

        assert "✅ All packages are up to date!" in report
        assert "Found 1 vulnerabilities." in report
        assert "**Fix command:** `yarn audit fix`" in report

    @pytest.mark.asyncio
    async def test_command_failure_is_reported(self, project, runner):
        runner.replies["npm outdated --json"] = PackageManagerError("Could not start npm: not found")

        report = await PackageManager(str(project)).upgrade_packages(check_vulnerabilities=False)

        assert "⚠️ Could not check for outdated packages: Could not start npm: not found" in report

    @pytest.mark.asyncio
    async def test_missing_package_json(self, tmp_path, runner):
        assert await PackageManager(str(tmp_path)).upgrade_packages() == NO_PACKAGE_JSON
        assert runner.calls == []


class TestResolveDependencies:
    @pytest.mark.asyncio
    async def test_conflicts_unmet_and_resolutions(self, project, runner):
        tree = {"dependencies": {
            "a": {"version": "1.0.0", "dependencies": {"shared": {"version": "1.0.0"}}},
            "shared": {"version": "2.0.0"},
        }}
        runner.reply("npm list --json", json.dumps(tree), "npm ERR! UNMET PEER DEPENDENCY react@17.0.0", 1)

        report = await PackageManager(str(project)).resolve_dependencies()

        assert "# 🔧 Dependency Resolution Analysis" in report
        assert "- react@17.0.0" in report
        assert "**shared**" in report
        assert "- Required versions: 1.0.0, 2.0.0" in report
        assert "- Command: `npm install react@<version required by react-native>`" in report

    @pytest.mark.asyncio
    async def test_fix_conflicts_with_pnpm(self, project, runner):
        runner.reply("pnpm list --json", json.dumps([{"dependencies": {}}]))

        report = await PackageManager(str(project), "pnpm").resolve_dependencies(
            fix_conflicts=True, generate_resolutions=False,
        )

        assert "✅ No dependency conflicts detected!" in report
        assert "Resolution Suggestions" not in report
        assert "Running: `pnpm install`" in report
        assert "✅ Dependencies resolved successfully!" in report

    @pytest.mark.asyncio
    async def test_unparseable_tree(self, project, runner):
        runner.reply("npm list --json", "garbage")

        report = await PackageManager(str(project)).resolve_dependencies(generate_resolutions=False)

        assert "⚠️ Could not parse dependency tree for conflict analysis" in report


class TestAuditPackages:
    @pytest.mark.asyncio
    async def test_threshold_filters_table(self, project, runner):
        runner.reply("npm audit --json", NPM_AUDIT, exit_code=1)

        report = await PackageManager(str(project)).audit_packages(severity_threshold="high")

        assert "# 🛡️ Security Audit Report" in report
        assert "Found 1 vulnerabilities meeting severity threshold." in report
        assert "| minimist | critical | Prototype Pollution | None |" in report
        assert "glob-parent" not in report
        assert "```bash\nnpm audit fix\n```" in report

    @pytest.mark.asyncio
    async def test_nothing_above_threshold(self, project, runner):
        runner.reply("npm audit --json", json.dumps({"vulnerabilities": {
            "glob-parent": {"severity": "moderate", "title": "ReDoS"},
        }}), exit_code=1)

        report = await PackageManager(str(project)).audit_packages(severity_threshold="high")

        assert "✅ No vulnerabilities found meeting the high severity threshold!" in report

    @pytest.mark.asyncio
    async def test_auto_fix(self, project, runner):
        runner.reply("npm audit --json", NPM_AUDIT, exit_code=1)
        runner.reply("npm audit fix", "fixed 2 of 2 vulnerabilities")

        report = await PackageManager(str(project)).audit_packages(auto_fix=True)

        assert "✅ Fix completed:\n```\nfixed 2 of 2 vulnerabilities\n```" in report
        assert runner.calls == ["npm audit --json", "npm audit fix"]

    @pytest.mark.asyncio
    async def test_clean_audit(self, project, runner):
        runner.reply("npm audit --json", json.dumps({"vulnerabilities": {}}))

        report = await PackageManager(str(project)).audit_packages()

        assert "✅ No security vulnerabilities found!" in report

    @pytest.mark.asyncio
    async def test_invalid_threshold(self, project, runner):
        with pytest.raises(ValidationError, match="Invalid severity threshold"):
            await PackageManager(str(project)).audit_packages(severity_threshold="extreme")


class TestMigratePackages:
    @pytest.mark.asyncio
    async def test_manual_instructions(self, project, runner):
        report = await PackageManager(str(project), "yarn").migrate_packages()

        assert "**react-native-camera** → **react-native-vision-camera**" in report
        assert "yarn remove react-native-camera" in report
        assert "yarn add react-native-vision-camera" in report
        assert runner.calls == []

    @pytest.mark.asyncio
    async def test_auto_migrate_rewrites_package_json(self, project, runner):
        report = await PackageManager(str(project)).migrate_packages(auto_migrate=True)

        assert runner.calls == ["npm uninstall react-native-camera", "npm install react-native-vision-camera"]
        assert "✅ Updated package.json to remove old dependencies" in report
        package_json = json.loads((project / "package.json").read_text())
        assert "react-native-camera" not in package_json["dependencies"]
        assert package_json["dependencies"]["react-native"] == "0.68.2"

    @pytest.mark.asyncio
    async def test_nothing_to_migrate(self, project, runner):
        report = await PackageManager(str(project)).migrate_packages(target_packages=["react-navigation"])

        assert "✅ No package migrations needed!" in report


def test_unsupported_package_manager(tmp_path):
    with pytest.raises(ValidationError, match="Unsupported package manager: bun"):
        PackageManager(str(tmp_path), "bun")


class TestRunCommand:
    @pytest.mark.asyncio
    async def test_spawn_failure(self, monkeypatch, tmp_path):
        async def fake_exec(*argv, **kwargs):
            raise FileNotFoundError("npm")

        monkeypatch.setattr(pm.asyncio, "create_subprocess_exec", fake_exec)

        with pytest.raises(PackageManagerError, match="Could not start npm"):
            await pm.run_command(["npm", "outdated"], str(tmp_path), 1000)

    @pytest.mark.asyncio
    async def test_timeout_kills_process(self, monkeypatch, tmp_path):
        class Hanging:
            returncode = None
            killed = False

            async def communicate(self):
                await asyncio.sleep(10)

            def kill(self):
                self.killed = True

            async def wait(self):
                return -9

        process = Hanging()

        async def fake_exec(*argv, **kwargs):
            return process

        monkeypatch.setattr(pm.asyncio, "create_subprocess_exec", fake_exec)

        with pytest.raises(PackageManagerError, match="npm timed out after 50ms"):
            await pm.run_command(["npm", "install"], str(tmp_path), 50)
        assert process.killed is True

    @pytest.mark.asyncio
    async def test_nonzero_exit_is_returned(self, monkeypatch, tmp_path):
        class Done:
            returncode = 1

            async def communicate(self):
                return b"{}", b"warn"

        async def fake_exec(*argv, **kwargs):
            assert kwargs["cwd"] == str(tmp_path)
            return Done()

        monkeypatch.setattr(pm.asyncio, "create_subprocess_exec", fake_exec)

        result = await pm.run_command(["npm", "audit", "--json"], str(tmp_path), 1000)

        assert result.success is False
        assert result.stdout == "{}"
        assert result.command == "npm audit --json"
