"""Run coordinator: load config, analyze files in parallel, aggregate diagnostics."""

from __future__ import annotations

import enum
import logging
import os
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from archlint.engine.config import LintConfig, find_config, load_config, parse_config
from archlint.engine.diagnostics import (
    RULE_CRASHED_MESSAGE,
    SEVERITY_ERROR,
    SEVERITY_WARN,
    UNPARSABLE_FILE_RULE,
    Diagnostic,
    DiagnosticAggregator,
    has_errors,
)
from archlint.engine.errors import ConfigurationError, ParseUnavailableError, RuleExecutionError
from archlint.engine.scope import DEFAULT_IGNORES, GlobSet, compile_glob
from archlint.engine.syntax import parse_source, supported_extensions

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Iterator, Sequence

    from archlint.engine.registry import RuleEntry, RuleRegistry
    from archlint.engine.scope import ScopeResolver
    from archlint.engine.syntax import ParsedSource

logger = logging.getLogger(__name__)

DEFAULT_SLOW_RULE_MS = 2000.0


class RunState(enum.Enum):
    IDLE = "idle"
    LOADING = "loading"
    ANALYZING = "analyzing"
    AGGREGATING = "aggregating"
    DONE = "done"
    FAILED = "failed"


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass
class LintResult:
    """Result of a lint run."""

    diagnostics: list[Diagnostic] = field(default_factory=list)
    files_analyzed: int = 0
    files_skipped: int = 0
    rules_configured: int = 0
    partial: bool = False
    elapsed_ms: float = 0.0

    @property
    def has_errors(self) -> bool:
        return has_errors(self.diagnostics)

    @property
    def passed(self) -> bool:
        """A partial run never counts as a clean pass."""
        return not self.partial and not self.has_errors

    @property
    def error_count(self) -> int:
        return sum(1 for d in self.diagnostics if d.severity == SEVERITY_ERROR)

    @property
    def warning_count(self) -> int:
        return sum(1 for d in self.diagnostics if d.severity == SEVERITY_WARN)


# ---------------------------------------------------------------------------
# File enumeration
# ---------------------------------------------------------------------------


def relative_posix(path: Path, project_root: Path) -> str:
    """Project-relative POSIX path, or the absolute POSIX path if outside the root."""
    try:
        return path.resolve().relative_to(project_root.resolve()).as_posix()
    except ValueError:
        return path.resolve().as_posix()


def collect_files(
    project_root: Path,
    targets: Sequence[str] | None = None,
    *,
    ignores: GlobSet | None = None,
) -> list[Path]:
    """Expand *targets* (files, directories or globs) into source files.

    With no targets the whole project root is walked.  Hidden directories
    and directories covered by *ignores* (default: ``node_modules`` and
    ``.git``) are not descended into.  Only files with a supported extension
    are returned from directory walks and globs; explicitly named files are
    always kept.  The result is sorted and free of duplicates.
    """
    if ignores is None:
        ignores = GlobSet.compile(DEFAULT_IGNORES)
    found: dict[str, Path] = {}

    def _add(path: Path) -> None:
        found.setdefault(str(path.resolve()), path)

    for target in targets or ["."]:
        candidate = Path(target)
        if not candidate.is_absolute():
            candidate = project_root / candidate
        if candidate.is_file():
            _add(candidate)
        elif candidate.is_dir():
            for path in _walk(candidate, project_root, ignores):
                _add(path)
        else:
            regex = compile_glob(target)
            for path in _walk(project_root, project_root, ignores):
                if regex.match(relative_posix(path, project_root)):
                    _add(path)

    return [found[key] for key in sorted(found)]


def _walk(top: Path, project_root: Path, ignores: GlobSet) -> Iterator[Path]:
    """Yield supported source files under *top*, pruning skipped directories."""
    extensions = supported_extensions()
    for dirpath, dirnames, filenames in os.walk(top):
        current = Path(dirpath)
        kept: list[str] = []
        for name in dirnames:
            if name.startswith("."):
                continue
            if ignores.covers_directory(relative_posix(current / name, project_root)):
                logger.debug("Pruning ignored directory %s", current / name)
                continue
            kept.append(name)
        dirnames[:] = kept
        for name in filenames:
            if os.path.splitext(name)[1] in extensions:
                yield current / name


def _read_file(path: Path) -> bytes:
    return path.read_bytes()


# ---------------------------------------------------------------------------
# Coordinator
# ---------------------------------------------------------------------------


class RunCoordinator:
    """Drive one lint run through ``IDLE → LOADING → ANALYZING → AGGREGATING → DONE``.

    Configuration errors move the run to ``FAILED`` before any file is
    analyzed.  Failures of a single file or rule never fail the run: they
    become diagnostics.  :meth:`cancel` stops files that have not started
    yet; the result is then marked partial.
    """

    def __init__(
        self,
        registry: RuleRegistry,
        *,
        jobs: int | None = None,
        reader: Callable[[Path], bytes] = _read_file,
        parser: Callable[[str, bytes], ParsedSource] = parse_source,
        cancel_event: threading.Event | None = None,
        slow_rule_ms: float = DEFAULT_SLOW_RULE_MS,
    ) -> None:
        self.registry = registry
        self.jobs = jobs or os.cpu_count() or 1
        self._reader = reader
        self._parser = parser
        self._cancel = cancel_event or threading.Event()
        self._slow_rule_ms = slow_rule_ms
        self._state = RunState.IDLE
        self._state_lock = threading.Lock()

    # -- state ------------------------------------------------------------

    @property
    def state(self) -> RunState:
        with self._state_lock:
            return self._state

    def _transition(self, new_state: RunState) -> None:
        with self._state_lock:
            logger.debug("Run state %s -> %s", self._state.value, new_state.value)
            self._state = new_state

    def cancel(self) -> None:
        """Request cancellation; files not yet started are skipped."""
        logger.info("Lint run cancellation requested")
        self._cancel.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    # -- loading ----------------------------------------------------------

    def load(self, config: Path | dict[str, object] | LintConfig) -> LintConfig:
        """Validate *config*; a ``ConfigurationError`` fails the run."""
        if self.state is not RunState.IDLE:
            msg = f"Run already started (state: {self.state.value})"
            raise RuntimeError(msg)
        self._transition(RunState.LOADING)
        try:
            if isinstance(config, LintConfig):
                return config
            if isinstance(config, Path):
                return load_config(config, self.registry)
            return parse_config(config, self.registry)
        except ConfigurationError:
            self._transition(RunState.FAILED)
            raise

    # -- running ----------------------------------------------------------

    def run(
        self,
        config: Path | dict[str, object] | LintConfig,
        files: Iterable[Path],
        *,
        project_root: Path,
    ) -> LintResult:
        """Load *config* and analyze *files*; return the ordered result.

        Raises ``ConfigurationError`` (state ``FAILED``) before touching any
        file when the configuration is invalid.
        """
        lint_config = self.load(config)
        return self.analyze(lint_config, files, project_root=project_root)

    def analyze(
        self,
        lint_config: LintConfig,
        files: Iterable[Path],
        *,
        project_root: Path,
    ) -> LintResult:
        """Analyze *files* against an already loaded configuration."""
        if self.state is not RunState.LOADING:
            msg = f"Configuration not loaded (state: {self.state.value})"
            raise RuntimeError(msg)
        start = time.monotonic()
        resolver = lint_config.scope_resolver()

        self._transition(RunState.ANALYZING)
        aggregator = DiagnosticAggregator()
        paths: dict[str, Path] = {}
        for path in files:
            rel = relative_posix(path, project_root)
            if resolver.is_ignored(rel):
                logger.debug("Ignoring %s", rel)
                continue
            paths.setdefault(rel, path)

        skipped = 0
        try:
            with ThreadPoolExecutor(max_workers=self.jobs, thread_name_prefix="archlint") as pool:
                futures = [
                    pool.submit(self._analyze_file, rel, path, resolver)
                    for rel, path in sorted(paths.items())
                ]
                for future in futures:
                    outcome = future.result()
                    if outcome is None:
                        skipped += 1
                        continue
                    rel, diagnostics = outcome
                    aggregator.add(rel, diagnostics)
        except Exception:
            self._transition(RunState.FAILED)
            raise

        self._transition(RunState.AGGREGATING)
        diagnostics = aggregator.results()
        partial = self.cancelled
        if partial:
            logger.warning(
                "Lint run cancelled: %d file(s) skipped, result is partial", skipped
            )

        elapsed = (time.monotonic() - start) * 1000
        self._transition(RunState.DONE)
        return LintResult(
            diagnostics=diagnostics,
            files_analyzed=aggregator.file_count,
            files_skipped=skipped,
            rules_configured=lint_config.rule_count,
            partial=partial,
            elapsed_ms=elapsed,
        )

    def _analyze_file(
        self, rel_path: str, path: Path, resolver: ScopeResolver
    ) -> tuple[str, list[Diagnostic]] | None:
        """Analyze one file; return ``None`` if skipped due to cancellation."""
        if self._cancel.is_set():
            return None

        entries = resolver.active_entries(rel_path)
        if not entries:
            return rel_path, []

        try:
            content = self._reader(path)
            source = self._parser(rel_path, content)
        except ParseUnavailableError as exc:
            logger.info("Skipping unparsable file %s: %s", rel_path, exc.reason)
            return rel_path, [_unparsable(rel_path, exc.reason, exc.line, exc.column)]
        except OSError as exc:
            logger.warning("Cannot read file: %s", rel_path)
            return rel_path, [_unparsable(rel_path, f"cannot read file: {exc}", 1, 1)]
        except Exception as exc:  # noqa: BLE001
            logger.warning("Failed to load %s: %s", rel_path, exc)
            logger.debug("Load failure traceback", exc_info=True)
            return rel_path, [_unparsable(rel_path, f"{type(exc).__name__}: {exc}", 1, 1)]

        diagnostics: list[Diagnostic] = []
        for _block, entry in entries:
            diagnostics.extend(self._run_rule(source, entry))
        return rel_path, diagnostics

    def _run_rule(self, source: ParsedSource, entry: RuleEntry) -> list[Diagnostic]:
        module = self.registry.get(entry.rule_id)
        if module is None:
            # Only reachable with a registry that differs from the one used at load time.
            msg = f"Rule '{entry.rule_id}' is not registered"
            raise ConfigurationError(msg)

        started = time.monotonic()
        try:
            diagnostics = list(module.evaluate(source, entry))
        except Exception as exc:  # noqa: BLE001
            error = RuleExecutionError(entry.rule_id, source.path, exc)
            logger.warning("%s", error)
            logger.debug("Rule crash traceback", exc_info=True)
            return [
                Diagnostic(
                    file=source.path,
                    line=1,
                    column=1,
                    rule_id=entry.rule_id,
                    severity=SEVERITY_ERROR,
                    message=RULE_CRASHED_MESSAGE,
                )
            ]

        elapsed_ms = (time.monotonic() - started) * 1000
        if elapsed_ms > self._slow_rule_ms:
            logger.warning(
                "Rule '%s' took %.0f ms on %s", entry.rule_id, elapsed_ms, source.path
            )
        return diagnostics


def _unparsable(rel_path: str, reason: str, line: int, column: int) -> Diagnostic:
    return Diagnostic(
        file=rel_path,
        line=line,
        column=column,
        rule_id=UNPARSABLE_FILE_RULE,
        severity=SEVERITY_ERROR,
        message=f"File could not be parsed: {reason}",
    )


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def lint(
    project_root: Path,
    *,
    config_path: Path | None = None,
    paths: Sequence[str] | None = None,
    registry: RuleRegistry | None = None,
    jobs: int | None = None,
    cancel_event: threading.Event | None = None,
) -> LintResult:
    """Lint a project: find the config, collect files, run the coordinator.

    Parameters
    ----------
    project_root:
        Root that globs and reported paths are relative to.
    config_path:
        Explicit configuration file.  When *None* the default names
        (``archlint.yml``, ``archlint.yaml``, ``.archlint.yml``) are searched
        in *project_root*.
    paths:
        Files, directories or globs to analyze (default: the whole root).
    registry:
        Rule registry; defaults to the built-in rules.
    jobs:
        Worker threads (default: CPU count).
    cancel_event:
        Set it from another thread to stop the run early.

    Raises
    ------
    ConfigurationError
        When no configuration is found or it is invalid.
    """
    if registry is None:
        # Lazy import: archlint.rules depends on the engine package.
        from archlint.rules import default_registry

        registry = default_registry()

    if config_path is None:
        config_path = find_config(project_root)
        if config_path is None:
            msg = f"No archlint configuration found in {project_root}"
            raise ConfigurationError(msg)

    coordinator = RunCoordinator(registry, jobs=jobs, cancel_event=cancel_event)
    lint_config = coordinator.load(config_path)
    files = collect_files(project_root, paths, ignores=lint_config.ignores)
    logger.debug("Collected %d file(s) under %s", len(files), project_root)

    return coordinator.analyze(lint_config, files, project_root=project_root)
