"""Pattern-based checks over React Native source text.

Everything here is regex and substring matching on raw file content; no
JavaScript parsing takes place.
"""

import json
import os
import re
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from . import file_scanner
from .version_utils import major_version, minor_version

PERFORMANCE_AREAS = ("list_rendering", "memory_usage", "bundle_size", "animations")

FLATLIST_RE = re.compile(r"<FlatList[\s\S]*?(?:/>|</FlatList>)")
SCROLLVIEW_MAP_RE = re.compile(r"<ScrollView[\s\S]*?>[\s\S]*?\.map\s*\([\s\S]*?</ScrollView>")
WILDCARD_IMPORT_RE = re.compile(r"""import\s+\*\s+as\s+(\w+)\s+from\s+['"]([^'"]+)['"]""")
INLINE_STYLE_RE = re.compile(r"style\s*=\s*\{\{[^}]+\}\}")
HEAVY_LIBRARIES = ("lodash", "moment", "date-fns")

LONG_FILE_LINES = 300
MANY_USE_STATE = 5
MANY_INLINE_HANDLERS = 5
MAX_UNTESTED_REPORTED = 20


@dataclass
class AnalysisIssue:
    file: str
    issue: str
    suggestion: str
    severity: str
    type: Optional[str] = None
    category: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


@dataclass
class FileAnalysis:
    file_name: str
    file_path: str
    is_component: bool
    lines_of_code: int
    issues: List[str] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)


@dataclass
class CodebaseAnalysis:
    total_files: int
    components: List[FileAnalysis] = field(default_factory=list)
    issues: List[str] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)


@dataclass
class ComprehensiveAnalysis:
    total_files: int
    security: List[AnalysisIssue] = field(default_factory=list)
    performance: List[AnalysisIssue] = field(default_factory=list)
    code_quality: List[AnalysisIssue] = field(default_factory=list)
    refactoring: List[AnalysisIssue] = field(default_factory=list)
    deprecated: List[AnalysisIssue] = field(default_factory=list)
    accessibility: List[AnalysisIssue] = field(default_factory=list)
    testing: List[AnalysisIssue] = field(default_factory=list)
    upgrades: List[AnalysisIssue] = field(default_factory=list)

    def all_issues(self) -> List[AnalysisIssue]:
        return (
            self.security + self.performance + self.code_quality + self.refactoring
            + self.deprecated + self.accessibility + self.testing + self.upgrades
        )


def is_component(content: str) -> bool:
    has_react_import = re.search(r"""import\s+.*React.*from\s+['"]react['"]""", content) is not None
    has_rn_import = re.search(r"""from\s+['"]react-native['"]""", content) is not None
    has_export = re.search(r"export\s+(?:default\s+)?(?:function|class|const)", content) is not None
    has_jsx = re.search(r"<[A-Z]\w*[\s\S]*?>", content) is not None
    return (has_react_import or has_rn_import) and has_export and has_jsx


def analyze_file_content(content: str, file_path: str) -> FileAnalysis:
    """General component checks used by the codebase overview."""
    name = os.path.basename(file_path)
    analysis = FileAnalysis(
        file_name=name,
        file_path=file_path,
        is_component=is_component(content),
        lines_of_code=len(content.split("\n")),
    )
    if not analysis.is_component:
        return analysis

    issues, suggestions = analysis.issues, analysis.suggestions

    for flat_list in FLATLIST_RE.findall(content):
        if "keyExtractor" not in flat_list:
            issues.append(f"{name}: FlatList missing keyExtractor prop")
        if "getItemLayout" not in flat_list and len(flat_list) > 200:
            suggestions.append(f"{name}: Consider adding getItemLayout to FlatList for better performance")

    if SCROLLVIEW_MAP_RE.search(content):
        issues.append(f"{name}: Using .map() inside ScrollView - consider FlatList for performance")

    has_use_state = re.search(r"useState\s*\(", content)
    has_use_effect = re.search(r"useEffect\s*\(", content)
    has_use_callback = re.search(r"useCallback\s*\(", content)
    has_handlers = re.search(r"on(?:Press|Change|Submit|Focus|Blur)\s*=", content)
    if has_use_state and has_use_effect and has_handlers and not has_use_callback:
        issues.append(f"{name}: Event handlers without useCallback may cause re-renders")

    if INLINE_STYLE_RE.search(content) and not re.search(r"StyleSheet\.create\s*\(", content):
        suggestions.append(f"{name}: Replace inline styles with StyleSheet.create for better performance")

    if WILDCARD_IMPORT_RE.search(content):
        suggestions.append(f"{name}: Consider using named imports instead of wildcard imports")

    if re.search(r"setInterval\s*\(", content) and "clearInterval" not in content:
        issues.append(f"{name}: setInterval without clearInterval may cause memory leaks")
    if re.search(r"addEventListener\s*\(", content) and "removeEventListener" not in content:
        issues.append(f"{name}: Event listeners without cleanup may cause memory leaks")

    return analysis


def _wants(focus_areas: Iterable[str], area: str) -> bool:
    focus = set(focus_areas)
    return "all" in focus or area in focus


def analyze_file_performance(content: str, file_path: str, focus_areas: Iterable[str]) -> List[AnalysisIssue]:
    name = os.path.basename(file_path)
    focus_areas = list(focus_areas)
    issues: List[AnalysisIssue] = []

    def add(type_: str, severity: str, issue: str, suggestion: str) -> None:
        issues.append(AnalysisIssue(file=name, type=type_, severity=severity, issue=issue, suggestion=suggestion))

    if _wants(focus_areas, "list_rendering"):
        flat_lists = FLATLIST_RE.findall(content)
        for index, flat_list in enumerate(flat_lists):
            label = f"FlatList #{index + 1}" if len(flat_lists) > 1 else "FlatList"
            if "getItemLayout" not in flat_list:
                add("list_rendering", "medium",
                    f"{label} without getItemLayout - impacts scrolling performance",
                    "Add getItemLayout={(data, index) => ({length: ITEM_HEIGHT, offset: ITEM_HEIGHT * index, index})} "
                    "if items have known fixed height")
            if "removeClippedSubviews" not in flat_list:
                add("list_rendering", "low",
                    f"{label} without removeClippedSubviews optimization",
                    "Add removeClippedSubviews={true} for better memory usage with large lists")
            if "keyExtractor" not in flat_list:
                add("list_rendering", "high",
                    f"{label} missing keyExtractor - can cause rendering issues",
                    "Add keyExtractor={(item, index) => item.id?.toString() || index.toString()}")
            if "maxToRenderPerBatch" not in flat_list and len(flat_list) > 300:
                add("list_rendering", "low",
                    f"Large {label} without batch rendering optimization",
                    "Consider adding maxToRenderPerBatch={5} and windowSize={10} for large lists")

        if SCROLLVIEW_MAP_RE.search(content):
            add("list_rendering", "high",
                "ScrollView with .map() can cause performance issues with large datasets",
                "Replace ScrollView + .map() with FlatList for virtualized rendering")

    if _wants(focus_areas, "memory_usage"):
        intervals = re.findall(r"setInterval\s*\([^)]+\)", content)
        cleanup_re = r"clearInterval|useEffect\s*\([^,]+,\s*\[\]\)[\s\S]*?return\s*\(\s*\)\s*=>|componentWillUnmount"
        if intervals and not re.search(cleanup_re, content):
            add("memory_usage", "high",
                f"{len(intervals)} setInterval(s) without proper cleanup",
                "Clear intervals in useEffect cleanup or componentWillUnmount: () => clearInterval(intervalId)")

        listeners = re.findall(r"addEventListener\s*\([^)]+\)", content)
        listener_cleanup_re = r"removeEventListener|useEffect\s*\([^,]+,\s*\[\]\)[\s\S]*?return\s*\(\s*\)\s*=>"
        if listeners and not re.search(listener_cleanup_re, content):
            add("memory_usage", "high",
                f"{len(listeners)} event listener(s) without cleanup",
                "Remove event listeners in useEffect cleanup or componentWillUnmount")

        if re.search(r"useState\s*\(\s*\{[\s\S]{100,}\}\s*\)", content):
            add("memory_usage", "medium",
                "Large object in useState - may impact performance",
                "Consider breaking down large state objects or using useReducer")

    if _wants(focus_areas, "bundle_size"):
        for _, module_name in WILDCARD_IMPORT_RE.findall(content):
            add("bundle_size", "medium",
                f"Wildcard import from '{module_name}' increases bundle size",
                f"Use named imports: import {{ specificFunction }} from '{module_name}'")
        for lib in HEAVY_LIBRARIES:
            if re.search(rf"""import.*from\s+['"]{re.escape(lib)}['"]""", content):
                add("bundle_size", "medium",
                    f"Heavy library '{lib}' import detected",
                    f"Consider using specific imports from '{lib}' or lighter alternatives")

    if _wants(focus_areas, "animations"):
        if "Animated." in content and "useNativeDriver" not in content:
            add("animations", "medium",
                "Animations without native driver may cause performance issues",
                "Add useNativeDriver: true to Animated.timing/spring/decay for better performance")

    return issues


SECURITY_CHECKS = [
    (re.compile(r"""(api[_-]?key|secret|password|access[_-]?token)\s*[:=]\s*['"][^'"]{8,}['"]""", re.IGNORECASE),
     "critical", "secrets", "Hardcoded credential or API key",
     "Move secrets to a backend or use react-native-config with values kept out of source control"),
    (re.compile(r"""['"]http://(?!localhost|127\.0\.0\.1|10\.0\.2\.2)"""),
     "high", "network", "Insecure HTTP URL",
     "Use HTTPS for all network requests"),
    (re.compile(r"\beval\s*\("),
     "high", "code_injection", "Use of eval()",
     "Avoid eval; parse data with JSON.parse or explicit logic"),
    (re.compile(r"""AsyncStorage\.setItem\(\s*['"][^'"]*(token|password|secret)""", re.IGNORECASE),
     "high", "data_storage", "Sensitive data stored in AsyncStorage",
     "Store credentials with react-native-keychain or encrypted storage"),
    (re.compile(r"console\.log\([^)]*(password|token|secret)", re.IGNORECASE),
     "medium", "logging", "Sensitive value written to console",
     "Remove logging of credentials and tokens"),
    (re.compile(r"""originWhitelist=\{\[\s*['"]\*['"]\s*\]\}"""),
     "medium", "webview", "WebView allows any origin",
     "Restrict originWhitelist to the domains the WebView needs"),
]

DEPRECATED_CHECKS = [
    (re.compile(r"\b(?<!UNSAFE_)componentWillMount\b"), "high",
     "componentWillMount is deprecated", "Move logic to componentDidMount or useEffect"),
    (re.compile(r"\b(?<!UNSAFE_)componentWillReceiveProps\b"), "high",
     "componentWillReceiveProps is deprecated", "Use getDerivedStateFromProps or useEffect"),
    (re.compile(r"\b(?<!UNSAFE_)componentWillUpdate\b"), "high",
     "componentWillUpdate is deprecated", "Use componentDidUpdate or useEffect"),
    (re.compile(r"""import\s*\{[^}]*\bListView\b[^}]*\}\s*from\s*['"]react-native['"]"""), "high",
     "ListView was removed from React Native", "Use FlatList or SectionList"),
    (re.compile(r"""import\s*\{[^}]*\bAsyncStorage\b[^}]*\}\s*from\s*['"]react-native['"]"""), "high",
     "AsyncStorage was removed from React Native core",
     "Use @react-native-async-storage/async-storage"),
    (re.compile(r"""import\s*\{[^}]*\bNetInfo\b[^}]*\}\s*from\s*['"]react-native['"]"""), "medium",
     "NetInfo was removed from React Native core", "Use @react-native-community/netinfo"),
    (re.compile(r"""import\s*\{[^}]*\bClipboard\b[^}]*\}\s*from\s*['"]react-native['"]"""), "medium",
     "Clipboard was removed from React Native core", "Use @react-native-clipboard/clipboard"),
    (re.compile(r"""import\s*\{[^}]*\bPropTypes\b[^}]*\}\s*from\s*['"]react['"]|React\.PropTypes"""), "medium",
     "PropTypes from react is deprecated", "Use the prop-types package or TypeScript types"),
]

TOUCHABLE_RE = re.compile(r"<(TouchableOpacity|TouchableHighlight|TouchableWithoutFeedback|Pressable)\b([^>]*)>")
IMAGE_RE = re.compile(r"<Image\b([^>]*)/?>")
TEXT_INPUT_RE = re.compile(r"<TextInput\b([^>]*)/?>")


def analyze_security(content: str, file_path: str) -> List[AnalysisIssue]:
    name = os.path.basename(file_path)
    return [
        AnalysisIssue(file=name, issue=issue, suggestion=suggestion, severity=severity, category=category)
        for pattern, severity, category, issue, suggestion in SECURITY_CHECKS
        if pattern.search(content)
    ]


def analyze_code_quality(content: str, file_path: str) -> List[AnalysisIssue]:
    name = os.path.basename(file_path)
    issues = []
    line_count = len(content.split("\n"))
    if line_count > LONG_FILE_LINES:
        issues.append(AnalysisIssue(name, f"File has {line_count} lines", "Split into smaller components or modules",
                                    "medium", category="complexity"))
    console_logs = len(re.findall(r"console\.log\(", content))
    if console_logs:
        issues.append(AnalysisIssue(name, f"{console_logs} console.log statement(s)",
                                    "Remove debug logging or use a logger that is stripped in production",
                                    "low", category="debugging"))
    if file_path.endswith((".ts", ".tsx")):
        any_types = len(re.findall(r":\s*any\b", content))
        if any_types:
            issues.append(AnalysisIssue(name, f"{any_types} use(s) of the any type", "Replace any with specific types",
                                        "low", category="type_safety"))
    if re.search(r"\?[^:;\n]*\?[^:;\n]*:", content):
        issues.append(AnalysisIssue(name, "Nested ternary expression", "Extract the logic into a function or if/else",
                                    "low", category="readability"))
    todos = len(re.findall(r"\b(TODO|FIXME)\b", content))
    if todos:
        issues.append(AnalysisIssue(name, f"{todos} TODO/FIXME comment(s)", "Track open work in the issue tracker",
                                    "low", category="maintenance"))
    return issues


def analyze_refactoring(content: str, file_path: str) -> List[AnalysisIssue]:
    name = os.path.basename(file_path)
    issues = []
    if re.search(r"class\s+\w+\s+extends\s+(?:React\.)?(?:Pure)?Component\b", content):
        issues.append(AnalysisIssue(name, "Class component", "Convert to a function component with hooks",
                                    "medium", category="modernization"))
    use_states = len(re.findall(r"useState\s*\(", content))
    if use_states > MANY_USE_STATE:
        issues.append(AnalysisIssue(name, f"{use_states} useState hooks in one component",
                                    "Group related state with useReducer or a custom hook",
                                    "medium", category="state_management"))
    inline_handlers = len(re.findall(r"=\{\s*\([^)]*\)\s*=>", content))
    if inline_handlers > MANY_INLINE_HANDLERS:
        issues.append(AnalysisIssue(name, f"{inline_handlers} inline arrow functions in JSX props",
                                    "Define handlers with useCallback outside the JSX",
                                    "low", category="rendering"))
    return issues


def analyze_deprecated(content: str, file_path: str) -> List[AnalysisIssue]:
    name = os.path.basename(file_path)
    return [
        AnalysisIssue(file=name, issue=issue, suggestion=suggestion, severity=severity, category="deprecated_api")
        for pattern, severity, issue, suggestion in DEPRECATED_CHECKS
        if pattern.search(content)
    ]


def analyze_accessibility(content: str, file_path: str) -> List[AnalysisIssue]:
    name = os.path.basename(file_path)
    issues = []

    unlabeled = [
        tag for tag, attrs in TOUCHABLE_RE.findall(content)
        if "accessibilityLabel" not in attrs and "accessibilityRole" not in attrs
    ]
    if unlabeled:
        issues.append(AnalysisIssue(name, f"{len(unlabeled)} touchable element(s) missing accessibility label",
                                    "Add accessibilityLabel and accessibilityRole to interactive elements",
                                    "medium", category="screen_reader"))

    images = [attrs for attrs in IMAGE_RE.findall(content)
              if "accessibilityLabel" not in attrs and "accessible={false}" not in attrs]
    if images:
        issues.append(AnalysisIssue(name, f"{len(images)} image(s) without accessibility label",
                                    "Describe meaningful images with accessibilityLabel or mark decorative ones accessible={false}",
                                    "low", category="screen_reader"))

    inputs = [attrs for attrs in TEXT_INPUT_RE.findall(content) if "accessibilityLabel" not in attrs]
    if inputs:
        issues.append(AnalysisIssue(name, f"{len(inputs)} text input(s) without accessibility label",
                                    "Add accessibilityLabel; placeholders are not announced reliably",
                                    "low", category="forms"))
    return issues


def analyze_testing(component_files: List[str], test_files: List[str]) -> List[AnalysisIssue]:
    if component_files and not test_files:
        return [AnalysisIssue("project", "No test files found",
                              "Set up Jest with @testing-library/react-native and start with critical screens",
                              "high", category="coverage")]

    tested = {os.path.basename(t).split(".")[0].lower() for t in test_files}
    issues = []
    for path in component_files:
        stem = os.path.basename(path).split(".")[0]
        if stem.lower() not in tested:
            issues.append(AnalysisIssue(os.path.basename(path), "Missing test coverage",
                                        f"Add {stem}.test.tsx covering rendering and user interaction",
                                        "low", category="coverage"))
    return issues[:MAX_UNTESTED_REPORTED]


def read_package_json(project_path: str) -> Optional[Dict[str, Any]]:
    try:
        with open(os.path.join(project_path, "package.json"), encoding="utf-8") as f:
            return json.load(f)
    except (OSError, ValueError):
        return None


def react_native_minor(version: str) -> int:
    """React Native ships as 0.x, so the release line lives in the minor part."""
    major = major_version(version)
    return minor_version(version) if major == 0 else major


def analyze_upgrades(project_path: str) -> List[AnalysisIssue]:
    package_json = read_package_json(project_path)
    if not package_json:
        return []
    deps = {**package_json.get("dependencies", {}), **package_json.get("devDependencies", {})}
    issues = []

    rn_version = deps.get("react-native")
    if rn_version:
        line = react_native_minor(rn_version)
        if line < 70:
            issues.append(AnalysisIssue("package.json", f"Outdated React Native version ({rn_version})",
                                        "Upgrade to 0.72+ with the React Native Upgrade Helper",
                                        "high", category="react_native"))
        elif line < 72:
            issues.append(AnalysisIssue("package.json", f"React Native {rn_version} could be updated",
                                        "Consider upgrading to 0.72+ for the latest fixes",
                                        "medium", category="react_native"))

    for old_package, migration in PACKAGE_MIGRATIONS.items():
        if old_package in deps:
            issues.append(AnalysisIssue("package.json", f"{old_package} should be replaced",
                                        f"Migrate to {migration['new_package']}: {migration['reason']}",
                                        "medium", category="migration"))
    return issues


# old package -> replacement
PACKAGE_MIGRATIONS: Dict[str, Dict[str, Any]] = {
    "react-native-vector-icons": {
        "new_package": "@expo/vector-icons",
        "reason": "Better maintained and more feature-rich",
        "install": ["@expo/vector-icons"],
    },
    "react-native-asyncstorage": {
        "new_package": "@react-native-async-storage/async-storage",
        "reason": "Official community package with better support",
        "install": ["@react-native-async-storage/async-storage"],
    },
    "@react-native-community/async-storage": {
        "new_package": "@react-native-async-storage/async-storage",
        "reason": "Package moved to new organization",
        "install": ["@react-native-async-storage/async-storage"],
    },
    "react-native-camera": {
        "new_package": "react-native-vision-camera",
        "reason": "Better performance and actively maintained",
        "install": ["react-native-vision-camera"],
    },
    "react-navigation": {
        "new_package": "@react-navigation/native",
        "reason": "Updated to version 6 with better architecture",
        "install": ["@react-navigation/native", "@react-navigation/native-stack"],
    },
}


def _read_file(path: str) -> str:
    with open(path, encoding="utf-8", errors="replace") as f:
        return f.read()


def analyze_codebase(project_path: str) -> CodebaseAnalysis:
    files = file_scanner.find_react_native_files(project_path)
    result = CodebaseAnalysis(total_files=len(files))
    for path in files:
        analysis = analyze_file_content(_read_file(path), path)
        result.components.append(analysis)
        result.issues.extend(analysis.issues)
        result.suggestions.extend(analysis.suggestions)
    return result


def analyze_performance(project_path: str, focus_areas: Iterable[str]) -> List[AnalysisIssue]:
    focus_areas = list(focus_areas) or ["all"]
    issues: List[AnalysisIssue] = []
    for path in file_scanner.find_react_native_files(project_path):
        issues.extend(analyze_file_performance(_read_file(path), path, focus_areas))
    return issues


def analyze_comprehensive(project_path: str) -> ComprehensiveAnalysis:
    files = file_scanner.find_react_native_files(project_path)
    result = ComprehensiveAnalysis(total_files=len(files))
    components = []
    for path in files:
        content = _read_file(path)
        if is_component(content):
            components.append(path)
        result.security.extend(analyze_security(content, path))
        result.performance.extend(analyze_file_performance(content, path, ["all"]))
        result.code_quality.extend(analyze_code_quality(content, path))
        result.refactoring.extend(analyze_refactoring(content, path))
        result.deprecated.extend(analyze_deprecated(content, path))
        result.accessibility.extend(analyze_accessibility(content, path))
    result.testing = analyze_testing(components, file_scanner.find_test_files(project_path))
    result.upgrades = analyze_upgrades(project_path)
    return result
