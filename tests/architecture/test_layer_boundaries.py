"""
Layer boundary tests.

1. forecast_kernel/** may NOT import forecast_engines, forecast_config or
   forecast_services.  The kernel never depends upward.

2. forecast_engines/** may NOT import forecast_config, forecast_services,
   sqlalchemy or the kernel's persistence packages.  Engines take policy
   values as arguments and do no I/O.

3. Engines never read the wall clock.

4. Top-level definitions are separated by two blank lines.

These tests read source code via AST and cannot break anything.
"""

import ast
from pathlib import Path

from forecast_kernel.invariants import ALL_FORECAST_INVARIANTS, FORBIDDEN_KERNEL_IMPORTS

REPO_ROOT = Path(__file__).resolve().parents[2]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _python_files(package: str) -> list[Path]:
    return sorted((REPO_ROOT / package).rglob("*.py"))


def _extract_imports(filepath: Path) -> list[tuple[int, str]]:
    """Extract (line_number, module_string) for all imports in a file."""
    tree = ast.parse(filepath.read_text(), filename=str(filepath))
    results: list[tuple[int, str]] = []
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            for alias in node.names:
                results.append((node.lineno, alias.name))
        elif isinstance(node, ast.ImportFrom):
            if node.module:
                results.append((node.lineno, node.module))
    return results


def _violations(package: str, forbidden: tuple[str, ...]) -> list[str]:
    found: list[str] = []
    for filepath in _python_files(package):
        for lineno, module in _extract_imports(filepath):
            for prefix in forbidden:
                if module == prefix or module.startswith(f"{prefix}."):
                    found.append(
                        f"  {filepath.relative_to(REPO_ROOT)}:{lineno} imports '{module}'"
                    )
    return found


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


class TestKernelNoUpwardDependencies:
    """forecast_kernel/** must not import outer layers."""

    def test_kernel_does_not_import_forbidden_packages(self):
        violations = _violations("forecast_kernel", FORBIDDEN_KERNEL_IMPORTS)
        assert not violations, (
            "Kernel boundary violation:\n" + "\n".join(violations)
        )

    def test_kernel_files_found(self):
        assert _python_files("forecast_kernel"), "forecast_kernel/ not found from repo root"


class TestEnginesArePure:
    """forecast_engines/** must stay free of config, services and persistence."""

    FORBIDDEN_PREFIXES = (
        "forecast_config",
        "forecast_services",
        "forecast_kernel.db",
        "forecast_kernel.models",
        "forecast_kernel.selectors",
        "sqlalchemy",
    )

    def test_engines_do_not_import_forbidden_packages(self):
        violations = _violations("forecast_engines", self.FORBIDDEN_PREFIXES)
        assert not violations, (
            "Engine purity violation:\n" + "\n".join(violations)
        )

    def test_engines_do_not_read_the_clock(self):
        offenders: list[str] = []
        for filepath in _python_files("forecast_engines"):
            tree = ast.parse(filepath.read_text(), filename=str(filepath))
            for node in ast.walk(tree):
                if isinstance(node, ast.Attribute) and node.attr in ("now", "today", "utcnow"):
                    offenders.append(f"  {filepath.relative_to(REPO_ROOT)}:{node.lineno}")
        assert not offenders, "Engines must take as_of dates:\n" + "\n".join(offenders)


class TestSourceLayout:
    """Top-level definitions are separated by two blank lines."""

    PACKAGES = ("forecast_kernel", "forecast_engines", "forecast_config", "forecast_services")

    def test_two_blank_lines_before_top_level_definitions(self):
        offenders: list[str] = []
        for package in self.PACKAGES:
            for filepath in _python_files(package):
                source = filepath.read_text()
                lines = source.splitlines()
                tree = ast.parse(source, filename=str(filepath))
                for node in tree.body[1:]:
                    if not isinstance(node, (ast.FunctionDef, ast.ClassDef)):
                        continue
                    start = min([node.lineno] + [d.lineno for d in node.decorator_list])
                    index = start - 2
                    while index >= 0 and lines[index].lstrip().startswith("#"):
                        index -= 1
                    if index < 1 or lines[index].strip() or lines[index - 1].strip():
                        offenders.append(f"  {filepath.relative_to(REPO_ROOT)}:{start}")
        assert not offenders, "Expected two blank lines before:\n" + "\n".join(offenders)


class TestInvariantsDeclared:
    """The invariant contract is complete."""

    def test_invariants_non_empty(self):
        assert len(ALL_FORECAST_INVARIANTS) == 4
