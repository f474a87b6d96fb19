"""Tests for platform detection, native classifiers and library rules."""

import pytest

from mclauncher.exceptions import PlatformUnresolvable
from mclauncher.platform_info import Platform, detect_platform

DENY_WINDOWS = {"rules": [{"action": "allow"}, {"action": "deny", "os": {"name": "windows"}}]}


class TestNativeClassifier:
    @pytest.mark.parametrize(
        ("system", "machine", "expected"),
        [
            ("Darwin", "arm64", "natives-macos-arm64"),
            ("Darwin", "x86_64", "natives-macos-x86_64"),
            ("Windows", "AMD64", "natives-windows-x86_64"),
            ("Windows", "x86", "natives-windows-x86"),
            ("Windows", "ARM64", "natives-windows-arm64"),
            ("Linux", "x86_64", "natives-linux-x86_64"),
            ("Linux", "i686", "natives-linux-x86"),
            ("Linux", "aarch64", "natives-linux-arm64"),
            ("Linux", "armv7l", "natives-linux-arm32"),
        ],
    )
    def test_known_platforms(self, system: str, machine: str, expected: str) -> None:
        assert detect_platform(system, machine).native_classifier == expected

    @pytest.mark.parametrize(("system", "machine"), [("FreeBSD", "amd64"), ("Linux", "riscv64"), ("Darwin", "i386")])
    def test_unknown_platform_has_no_classifier(self, system: str, machine: str) -> None:
        assert detect_platform(system, machine).native_classifier is None

    def test_require_classifier_raises_when_unresolvable(self) -> None:
        with pytest.raises(PlatformUnresolvable):
            Platform(os_name=None, arch="x86_64").require_classifier()

    def test_legacy_natives_map_with_arch_placeholder(self, windows: Platform) -> None:
        lib = {
            "natives": {"windows": "natives-windows-${arch}"},
            "downloads": {"classifiers": {"natives-windows-64": {"path": "a.jar", "url": "u"}}},
        }
        assert windows.classifier_for(lib) == "natives-windows-64"

    def test_platform_token_preferred(self, linux: Platform) -> None:
        lib = {"downloads": {"classifiers": {"natives-linux-x86_64": {}, "natives-windows-x86_64": {}}}}
        assert linux.classifier_for(lib) == "natives-linux-x86_64"

    def test_no_classifier_for_other_platform_only(self, linux: Platform) -> None:
        lib = {"downloads": {"classifiers": {"natives-windows-x86_64": {}}}}
        assert linux.classifier_for(lib) is None


class TestRules:
    def test_no_rules_allowed(self, linux: Platform) -> None:
        assert linux.is_library_allowed({"name": "a:b:c"})

    def test_last_match_wins(self, linux: Platform, mac_arm: Platform, windows: Platform) -> None:
        assert linux.is_library_allowed(DENY_WINDOWS)
        assert mac_arm.is_library_allowed(DENY_WINDOWS)
        assert not windows.is_library_allowed(DENY_WINDOWS)

    def test_allow_only_one_os(self, linux: Platform, mac_arm: Platform) -> None:
        lib = {"rules": [{"action": "allow", "os": {"name": "osx"}}]}
        assert mac_arm.is_library_allowed(lib)
        assert not linux.is_library_allowed(lib)

    def test_disallow_action_is_a_deny(self, mac_arm: Platform) -> None:
        lib = {"rules": [{"action": "allow"}, {"action": "disallow", "os": {"name": "osx"}}]}
        assert not mac_arm.is_library_allowed(lib)

    def test_arch_clause(self) -> None:
        rules = [{"action": "allow", "os": {"name": "linux", "arch": "x86"}}]
        assert Platform("linux", "x86").rules_allow(rules)
        assert not Platform("linux", "x86_64").rules_allow(rules)

    def test_features_clause(self, linux: Platform) -> None:
        rules = [{"action": "allow", "features": {"is_demo_user": True}}]
        assert not linux.rules_allow(rules)
        assert linux.rules_allow(rules, features={"is_demo_user": True})


class TestPlatformProperties:
    def test_separator_and_startup_flags(self, linux: Platform, windows: Platform, mac_arm: Platform) -> None:
        assert windows.classpath_separator == ";"
        assert linux.classpath_separator == ":"
        assert mac_arm.startup_jvm_args == ["-XstartOnFirstThread"]
        assert linux.startup_jvm_args == []
