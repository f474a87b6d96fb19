import logging
import platform as _platform
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .exceptions import PlatformUnresolvable

log = logging.getLogger(__name__)

# Manifest OS name -> classifier OS segment
_CLASSIFIER_OS = {'windows': 'windows', 'osx': 'macos', 'linux': 'linux'}

_SUPPORTED_ARCHES = {
    'windows': ('x86_64', 'x86', 'arm64'),
    'osx': ('x86_64', 'arm64'),
    'linux': ('x86_64', 'x86', 'arm64', 'arm32'),
}


def normalize_os_name(system: str) -> Optional[str]:
    """Maps platform.system() (or a manifest os name) to 'windows', 'osx' or 'linux'."""
    name = system.lower()
    if name.startswith('win'):
        return 'windows'
    if name in ('darwin', 'osx', 'macos', 'mac') or name.startswith('mac'):
        return 'osx'
    if name == 'linux':
        return 'linux'
    return None


def normalize_arch(machine: str) -> Optional[str]:
    """Maps platform.machine() to 'x86_64', 'x86', 'arm64' or 'arm32'."""
    machine = machine.lower()
    if machine in ('amd64', 'x86_64', 'x64'):
        return 'x86_64'
    if machine in ('i386', 'i686', 'x86'):
        return 'x86'
    if machine in ('arm64', 'aarch64'):
        return 'arm64'
    if machine.startswith('arm') and '64' not in machine:
        return 'arm32'
    return None


@dataclass(frozen=True)
class Platform:
    """
    The OS/architecture a launch is prepared for.

    `os_name` and `arch` are None when the running system is not one the
    game ships natives for; rule evaluation still works, but no native
    classifier is available.
    """
    os_name: Optional[str]
    arch: Optional[str]

    @property
    def native_classifier(self) -> Optional[str]:
        """Classifier token for this platform, e.g. 'natives-macos-arm64', or None."""
        if self.os_name not in _CLASSIFIER_OS or self.arch not in _SUPPORTED_ARCHES[self.os_name]:
            return None
        return f"natives-{_CLASSIFIER_OS[self.os_name]}-{self.arch}"

    def require_classifier(self) -> str:
        classifier = self.native_classifier
        if classifier is None:
            raise PlatformUnresolvable(f"No native classifier for os={self.os_name} arch={self.arch}")
        return classifier

    @property
    def is_windows(self) -> bool:
        return self.os_name == 'windows'

    @property
    def is_mac(self) -> bool:
        return self.os_name == 'osx'

    @property
    def classpath_separator(self) -> str:
        return ';' if self.is_windows else ':'

    @property
    def startup_jvm_args(self) -> List[str]:
        # GLFW must own the main thread on macOS
        return ['-XstartOnFirstThread'] if self.is_mac else []

    def classifier_for(self, library: Dict[str, Any]) -> Optional[str]:
        """
        Picks the classifier key in `library` that holds this platform's natives.

        Newer manifests key classifiers by the platform token; older ones map
        the OS name to a classifier through a `natives` table that may contain
        an `${arch}` placeholder.
        """
        classifiers = library.get('downloads', {}).get('classifiers') or {}
        if not classifiers:
            return None

        token = self.native_classifier
        if token and token in classifiers:
            return token

        legacy = (library.get('natives') or {}).get(self.os_name or '')
        if legacy:
            bits = '32' if self.arch in ('x86', 'arm32') else '64'
            key = legacy.replace('${arch}', bits)
            if key in classifiers:
                return key
        return None

    def _os_matches(self, os_rule: Dict[str, Any]) -> bool:
        if 'name' in os_rule and normalize_os_name(os_rule['name']) != self.os_name:
            return False
        if 'arch' in os_rule and normalize_arch(os_rule['arch']) != self.arch:
            return False
        return True

    def rule_applies(self, rule: Dict[str, Any], features: Optional[Dict[str, bool]] = None) -> bool:
        os_rule = rule.get('os')
        if isinstance(os_rule, dict) and not self._os_matches(os_rule):
            return False
        wanted = rule.get('features')
        if isinstance(wanted, dict):
            features = features or {}
            if any(features.get(name, False) != value for name, value in wanted.items()):
                return False
        return True

    def rules_allow(self, rules: Optional[List[Dict[str, Any]]],
                    features: Optional[Dict[str, bool]] = None) -> bool:
        """
        Evaluates a manifest `rules` list as an ordered override chain.

        Every rule that applies overwrites the verdict, so the last applicable
        rule decides. With no rules the item is allowed; with rules but none
        applicable it is not.
        """
        if not rules:
            return True

        allowed = False
        for rule in rules:
            if self.rule_applies(rule, features):
                allowed = rule.get('action', 'allow') == 'allow'
        return allowed

    def is_library_allowed(self, library: Dict[str, Any]) -> bool:
        return self.rules_allow(library.get('rules'))


def detect_platform(system: Optional[str] = None, machine: Optional[str] = None) -> Platform:
    """Builds a Platform from the running interpreter, or from the given strings."""
    system = system if system is not None else _platform.system()
    machine = machine if machine is not None else _platform.machine()

    os_name = normalize_os_name(system)
    arch = normalize_arch(machine)
    if os_name is None:
        log.warning(f"Unsupported operating system: {system}")
    if arch is None:
        log.warning(f"Unsupported architecture: {machine}")
    return Platform(os_name=os_name, arch=arch)
