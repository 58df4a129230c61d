"""Tests for adb argument validators."""

import pytest

from rn_adb_mcp_server.adb.validators import (
    sanitize_for_shell,
    validate_device_id,
    validate_file_path,
    validate_host,
    validate_package_name,
    validate_port,
    validate_shell_command,
    validate_timeout,
)
from rn_adb_mcp_server.errors import ValidationError


class TestValidatePackageName:
    @pytest.mark.parametrize("name", ["com.example.app", "com.facebook.react_native", "org.a1.b2"])
    def test_accepts_reverse_domain_names(self, name):
        assert validate_package_name(name) == name

    @pytest.mark.parametrize("name", ["", "example", "com..app", "1com.example", "com.example.", "com.exa mple"])
    def test_rejects_malformed_names(self, name):
        with pytest.raises(ValidationError):
            validate_package_name(name)

    def test_rejects_java_keyword_segment(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_package_name("com.class.app")
        assert exc_info.value.details["segment"] == "class"

    def test_rejects_non_string(self):
        with pytest.raises(ValidationError):
            validate_package_name(None)


class TestValidateDeviceId:
    def test_trims_whitespace(self):
        assert validate_device_id("  emulator-5554 ") == "emulator-5554"

    def test_accepts_network_serial(self):
        assert validate_device_id("192.168.1.20:5555") == "192.168.1.20:5555"

    @pytest.mark.parametrize("device_id", ["", "   ", "abc;rm", "abc|cat", "$(id)", "a`b`"])
    def test_rejects_empty_and_metacharacters(self, device_id):
        with pytest.raises(ValidationError):
            validate_device_id(device_id)


class TestValidateFilePath:
    def test_accepts_absolute_device_path(self):
        assert validate_file_path("/sdcard/Download/app.log") == "/sdcard/Download/app.log"

    def test_rejects_traversal(self):
        with pytest.raises(ValidationError, match="traversal"):
            validate_file_path("/sdcard/../data")

    def test_rejects_metacharacters(self):
        with pytest.raises(ValidationError):
            validate_file_path("/sdcard/a;rm -rf /")

    def test_absolute_paths_can_be_disallowed(self):
        with pytest.raises(ValidationError, match="Absolute"):
            validate_file_path("/sdcard/file.txt", allow_absolute=False)
        with pytest.raises(ValidationError, match="Absolute"):
            validate_file_path("C:\\temp\\file.txt", allow_absolute=False)
        assert validate_file_path("relative/file.txt", allow_absolute=False) == "relative/file.txt"


class TestValidatePortAndHost:
    @pytest.mark.parametrize("port", [1, 5555, 65535])
    def test_valid_ports(self, port):
        assert validate_port(port) == port

    @pytest.mark.parametrize("port", [0, 65536, -1, "5555", True, 55.5])
    def test_invalid_ports(self, port):
        with pytest.raises(ValidationError):
            validate_port(port)

    @pytest.mark.parametrize("host", ["192.168.1.100", "localhost", "pixel-7.lan"])
    def test_valid_hosts(self, host):
        assert validate_host(host) == host

    @pytest.mark.parametrize("host", ["", "bad host", "host;reboot", "-leading.dash"])
    def test_invalid_hosts(self, host):
        with pytest.raises(ValidationError):
            validate_host(host)


class TestValidateShellCommand:
    def test_accepts_plain_command(self):
        assert validate_shell_command("pm list packages") == "pm list packages"

    @pytest.mark.parametrize(
        "command",
        [
            "ls; rm -rf /sdcard",
            "echo hi > /dev/block/sda",
            "echo $(id)",
            "echo `id`",
            "ls; mkfs.ext4 /dev/sda",
            "ls; :(){ :|:& };:",
        ],
    )
    def test_rejects_dangerous_patterns(self, command):
        with pytest.raises(ValidationError, match="dangerous"):
            validate_shell_command(command)

    def test_allow_list_checks_base_command(self):
        assert validate_shell_command("getprop ro.product.model", ["getprop", "pm"])
        with pytest.raises(ValidationError, match="not in the allowed list"):
            validate_shell_command("reboot", ["getprop", "pm"])

    def test_empty_command_rejected(self):
        with pytest.raises(ValidationError):
            validate_shell_command("   ")


class TestValidateTimeout:
    def test_zero_and_max_are_accepted(self):
        assert validate_timeout(0) == 0
        assert validate_timeout(300000) == 300000

    def test_negative_rejected(self):
        with pytest.raises(ValidationError, match="Timeout cannot be negative"):
            validate_timeout(-1)

    def test_above_max_rejected(self):
        with pytest.raises(ValidationError, match="Timeout cannot exceed 1000ms"):
            validate_timeout(1001, max_timeout=1000)


def test_sanitize_for_shell_escapes_quotes_and_expansions():
    assert sanitize_for_shell('say "hi" $HOME `x`!') == 'say \\"hi\\" \\$HOME \\`x\\`\\!'
    assert sanitize_for_shell("a\nb") == "a\\nb"
