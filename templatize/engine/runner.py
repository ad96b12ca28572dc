"""
Multi-file runner.

Applies the engine to a whole project directory: discovers files, converts
or restores each one independently in a thread pool, writes results
atomically and collects a run-level report. A failure in one file never
affects its siblings.
"""

import json
import logging
import shutil
import tempfile
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from ..utils import atomic_write, find_project_files, read_text
from .changes import ConversionResult
from .dispatcher import detect_format, get_strategy
from .errors import ConfigurationError, NoMatchWarning, TemplatizeError, UnsupportedFormatError
from .jsonscan import parse_json
from .placeholders import (DEFAULT_FORMAT, PlaceholderFormat, find_tokens, normalize_format, parse_token,
                           validate_name)
from .restore import locate_tokens, restore_content
from .rules import RULE_FILE_NAMES, RuleSet, load_rules

logger = logging.getLogger(__name__)

TEMPLATE_MANIFEST = "template.json"
UNDO_LOG = ".template-undo.json"
UNDO_LOG_VERSION = "1.0.0"
DEFAULT_IGNORE = [".git", "node_modules"]
DEV_INDICATORS = {
    ".git": "Git repository (.git directory found)",
    "node_modules": "Node modules installed (node_modules directory found)",
    ".env": "Environment file found (.env) - may contain secrets",
}


class FileStatus(Enum):
    """Outcome of one file in a run."""
    OK = "ok"
    CHANGED = "changed"
    SKIPPED = "skipped"
    ERROR = "error"


@dataclass
class FileReport:
    """Per-file entry of a RunReport."""
    path: str
    status: FileStatus
    format_id: Optional[str] = None
    changes: int = 0
    placeholders: Dict[str, str] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)
    reason: Optional[str] = None
    error_type: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        return data


@dataclass
class RunReport:
    """Run-level report: one FileReport per file plus counts per status."""
    operation: str
    project_path: str
    files: List[FileReport] = field(default_factory=list)
    dry_run: bool = False
    started_at: datetime = field(default_factory=datetime.now)
    finished_at: Optional[datetime] = None

    @property
    def counts(self) -> Dict[str, int]:
        counts = {status.value: 0 for status in FileStatus}
        for report in self.files:
            counts[report.status.value] += 1
        return counts

    @property
    def has_errors(self) -> bool:
        return any(report.status == FileStatus.ERROR for report in self.files)

    @property
    def total_changes(self) -> int:
        return sum(report.changes for report in self.files)

    @property
    def warnings(self) -> List[str]:
        return [warning for report in self.files for warning in report.warnings]

    @property
    def placeholders(self) -> Dict[str, str]:
        found = {}
        for report in self.files:
            for name, value in report.placeholders.items():
                found.setdefault(name, value)
        return found

    def get(self, path: str) -> Optional[FileReport]:
        for report in self.files:
            if report.path == path:
                return report
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "operation": self.operation,
            "project": self.project_path,
            "dry_run": self.dry_run,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "counts": self.counts,
            "changes": self.total_changes,
            "files": [report.to_dict() for report in self.files],
        }


def error_report(path: str, error: Exception, format_id: Optional[str] = None) -> FileReport:
    logger.error(f"{path}: {error}")
    detail = error.message if isinstance(error, TemplatizeError) else str(error)
    return FileReport(path, FileStatus.ERROR, format_id, error_type=type(error).__name__, error=detail)


# -- template.json and the undo log ------------------------------------------

def default_manifest(name: str, placeholder_format=None) -> Dict[str, Any]:
    return {
        "name": name,
        "description": "",
        "placeholderFormat": normalize_format(placeholder_format).value,
        "placeholders": {},
    }


def load_manifest(project_path) -> Optional[Dict[str, Any]]:
    """Reads template.json, or returns None when it does not exist."""
    path = Path(project_path) / TEMPLATE_MANIFEST
    if not path.is_file():
        return None
    try:
        with open(path, "r", encoding="utf-8") as f:
            manifest = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid {TEMPLATE_MANIFEST}: {e}", str(path))
    if not isinstance(manifest, dict):
        raise ConfigurationError(f"{TEMPLATE_MANIFEST} must be an object", str(path))
    return manifest


def save_manifest(project_path, manifest: Dict[str, Any]) -> Path:
    path = Path(project_path) / TEMPLATE_MANIFEST
    atomic_write(path, json.dumps(manifest, indent=2, ensure_ascii=False) + "\n")
    return path


def merge_placeholders(manifest: Dict[str, Any], detected: Dict[str, str], placeholder_format=None) -> Dict[str, Any]:
    """Adds detected placeholders to a manifest; existing entries win."""
    placeholders = manifest.setdefault("placeholders", {})
    for name, original in sorted(detected.items()):
        if name not in placeholders:
            placeholders[name] = {
                "default": original,
                "description": f"Replaces '{original}'",
            }
    if placeholder_format is not None:
        manifest["placeholderFormat"] = normalize_format(placeholder_format).value
    return manifest


def manifest_defaults(manifest: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """ValueMap made of the manifest's placeholder defaults."""
    values = {}
    for name, spec in ((manifest or {}).get("placeholders") or {}).items():
        if isinstance(spec, dict) and "default" in spec:
            values[name] = spec["default"]
        elif not isinstance(spec, dict):
            values[name] = spec
    return values


def load_undo_log(project_path) -> Optional[Dict[str, Any]]:
    path = Path(project_path) / UNDO_LOG
    if not path.is_file():
        return None
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError:
        logger.warning(f"Existing undo log {path} is corrupted, starting a new one")
        return None
    return data if isinstance(data, dict) else None


def update_undo_log(project_path, operations: List[Dict[str, Any]]) -> Path:
    """Records file operations; a file keeps the content it had before its first conversion."""
    existing = load_undo_log(project_path) or {}
    known = {op.get("path"): op for op in existing.get("fileOperations", []) if isinstance(op, dict)}
    for operation in operations:
        known.setdefault(operation["path"], operation)
    undo = {
        "metadata": {
            "timestamp": datetime.now().isoformat(),
            "version": UNDO_LOG_VERSION,
            "command": "convert",
        },
        "fileOperations": sorted(known.values(), key=lambda op: op["path"]),
    }
    path = Path(project_path) / UNDO_LOG
    atomic_write(path, json.dumps(undo, indent=2, ensure_ascii=False) + "\n")
    return path


def reserved_files() -> List[str]:
    return [TEMPLATE_MANIFEST, UNDO_LOG] + list(RULE_FILE_NAMES)


# -- runs --------------------------------------------------------------------

class _ProjectRun:
    """Shared discovery, pool and cancellation handling."""

    operation = ""

    def __init__(self, project_path, workers: int = 4, dry_run: bool = False,
                 ignore: Optional[List[str]] = None, cancel_event: Optional[threading.Event] = None):
        self.project_path = Path(project_path)
        self.workers = max(1, int(workers or 1))
        self.dry_run = dry_run
        self.ignore = list(ignore) if ignore is not None else list(DEFAULT_IGNORE)
        self.cancel_event = cancel_event or threading.Event()

    def cancel(self):
        """Files not yet started are reported as skipped."""
        self.cancel_event.set()

    def project_files(self) -> List[str]:
        reserved = set(reserved_files())
        return [
            path for path in find_project_files(self.project_path, self.ignore)
            if path not in reserved
        ]

    def process(self, relative_path: str) -> FileReport:
        raise NotImplementedError

    def _guarded(self, relative_path: str) -> FileReport:
        if self.cancel_event.is_set():
            return FileReport(relative_path, FileStatus.SKIPPED, reason="cancelled")
        try:
            return self.process(relative_path)
        except UnsupportedFormatError as e:
            return FileReport(relative_path, FileStatus.SKIPPED, reason=e.message)
        except (TemplatizeError, NoMatchWarning, OSError, UnicodeDecodeError) as e:
            return error_report(relative_path, e)

    def run_files(self, files: List[str]) -> RunReport:
        report = RunReport(self.operation, str(self.project_path), dry_run=self.dry_run)
        logger.debug(f"{self.operation}: {len(files)} file(s) with {self.workers} worker(s)")
        with ThreadPoolExecutor(max_workers=self.workers) as executor:
            futures = {executor.submit(self._guarded, path): path for path in files}
            for future in as_completed(futures):
                report.files.append(future.result())
        report.files.sort(key=lambda r: r.path)
        report.finished_at = datetime.now()
        return report


class ProjectConverter(_ProjectRun):
    """Converts a project into a template according to its rule file."""

    operation = "convert"

    def __init__(self, project_path, rule_set: Optional[RuleSet] = None, placeholder_format=None,
                 workers: int = 4, dry_run: bool = False, assume_yes: bool = False,
                 config_path=None, strict: bool = False, **kwargs):
        super().__init__(project_path, workers, dry_run, **kwargs)
        self.rule_set = rule_set
        self.config_path = config_path
        self.placeholder_format = placeholder_format
        self.assume_yes = assume_yes
        self.strict = strict
        self._undo: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()

    def development_indicators(self) -> List[str]:
        return [message for name, message in DEV_INDICATORS.items() if (self.project_path / name).exists()]

    def effective_format(self) -> PlaceholderFormat:
        if self.placeholder_format is not None:
            return normalize_format(self.placeholder_format)
        if self.rule_set is not None and self.rule_set.placeholder_format:
            return normalize_format(self.rule_set.placeholder_format)
        return DEFAULT_FORMAT

    def discover_files(self) -> List[str]:
        return [path for path in self.project_files() if self.rule_set.rules_for_file(path)]

    def process(self, relative_path: str) -> FileReport:
        plan = self.rule_set.plan_file(relative_path)
        if not plan:
            return FileReport(relative_path, FileStatus.SKIPPED, reason="no applicable rules")

        original = read_text(self.project_path / relative_path)
        content = original
        results: List[ConversionResult] = []
        for format_id, configs in plan.items():
            strategy = get_strategy(format_id, relative_path)
            result = strategy.convert(content, configs, relative_path, self.effective_format(), self.strict)
            content = result.apply(content)
            results.append(result)

        report = FileReport(relative_path, FileStatus.OK, ", ".join(plan))
        report.changes = sum(len(result.changes) for result in results)
        report.warnings = [str(warning) for result in results for warning in result.warnings]
        for result in results:
            for name, value in result.placeholders.items():
                if parse_token(value) is None:
                    report.placeholders.setdefault(name, value)

        if content != original:
            report.status = FileStatus.CHANGED
            if not self.dry_run:
                atomic_write(self.project_path / relative_path, content)
                with self._lock:
                    self._undo[relative_path] = {
                        "type": "modify",
                        "path": relative_path,
                        "originalContent": original,
                        "format": report.format_id,
                        "placeholderFormat": self.effective_format().value,
                    }
        return report

    def run(self) -> RunReport:
        """
        Converts every file that has rules.

        Raises:
            ConfigurationError: If the rule file is missing or invalid, or
                the directory looks like a development checkout and
                assume_yes is off.
        """
        indicators = self.development_indicators()
        if indicators and not self.assume_yes:
            raise ConfigurationError(
                "This appears to be a development repository: " + "; ".join(indicators)
                + ". Use --yes to proceed anyway."
            )
        if self.rule_set is None:
            self.rule_set = load_rules(self.project_path, self.config_path)

        report = self.run_files(self.discover_files())

        if not self.dry_run and self._undo:
            update_undo_log(self.project_path, list(self._undo.values()))
        if not self.dry_run and report.placeholders:
            manifest = load_manifest(self.project_path) or default_manifest(self.project_path.name)
            save_manifest(self.project_path,
                          merge_placeholders(manifest, report.placeholders, self.effective_format()))
        logger.info(f"Converted {report.counts['changed']} file(s) with {report.total_changes} change(s)")
        return report


class ProjectRestorer(_ProjectRun):
    """Restores a template, either from the undo log or from a ValueMap."""

    operation = "restore"

    def __init__(self, project_path, values: Optional[Dict[str, Any]] = None, keep_undo: bool = False,
                 placeholder_format=None, **kwargs):
        super().__init__(project_path, **kwargs)
        self.values = values
        self.keep_undo = keep_undo
        self.placeholder_format = placeholder_format
        self._operations: Dict[str, Dict[str, Any]] = {}

    def token_format(self):
        if self.placeholder_format is not None:
            return normalize_format(self.placeholder_format)
        manifest = load_manifest(self.project_path)
        if manifest and manifest.get("placeholderFormat"):
            return normalize_format(manifest["placeholderFormat"])
        return None

    def process(self, relative_path: str) -> FileReport:
        if self.values is None:
            return self._restore_from_undo(relative_path)
        return self._restore_from_values(relative_path)

    def _restore_from_undo(self, relative_path):
        operation = self._operations[relative_path]
        target = self.project_path / relative_path
        original = operation.get("originalContent")
        if not isinstance(original, str):
            raise ConfigurationError("undo entry has no original content", relative_path)
        current = read_text(target) if target.exists() else None
        report = FileReport(relative_path, FileStatus.OK, operation.get("format"))
        if current != original:
            report.status = FileStatus.CHANGED
            report.changes = 1
            if not self.dry_run:
                atomic_write(target, original)
        return report

    def _restore_from_values(self, relative_path):
        try:
            content = read_text(self.project_path / relative_path)
        except UnicodeDecodeError:
            return FileReport(relative_path, FileStatus.SKIPPED, reason="not a text file")
        token_format = self.token_format()
        tokens = locate_tokens(content, token_format)
        format_id = detect_format(relative_path)
        report = FileReport(relative_path, FileStatus.OK, format_id)
        if not tokens:
            return report
        restored = restore_content(content, self.values, format_id, relative_path, token_format)
        report.placeholders = {token.name: str(self.values[token.name]) for token in tokens}
        if restored != content:
            report.status = FileStatus.CHANGED
            report.changes = len(tokens)
            if not self.dry_run:
                atomic_write(self.project_path / relative_path, restored)
        return report

    def run(self) -> RunReport:
        """
        Restores every file.

        Raises:
            ConfigurationError: In undo mode, if there is no undo log.
        """
        if self.values is None:
            undo = load_undo_log(self.project_path)
            if not undo or not undo.get("fileOperations"):
                raise ConfigurationError(
                    f"No undo log ({UNDO_LOG}) found; restore with --values or --set instead"
                )
            self._operations = {op["path"]: op for op in undo["fileOperations"]
                                if isinstance(op, dict) and op.get("path")}
            report = self.run_files(sorted(self._operations))
            if not self.dry_run and not self.keep_undo and not report.has_errors \
                    and not self.cancel_event.is_set():
                (self.project_path / UNDO_LOG).unlink()
                logger.debug(f"Removed {UNDO_LOG}")
        else:
            report = self.run_files(self.project_files())
        logger.info(f"Restored {report.counts['changed']} file(s)")
        return report


# -- validate and test -------------------------------------------------------

@dataclass
class ValidationResult:
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    undeclared: Dict[str, List[str]] = field(default_factory=dict)

    @property
    def valid(self) -> bool:
        return not self.errors and not self.undeclared


def validate_project(project_path, config_path=None, ignore: Optional[List[str]] = None) -> ValidationResult:
    """
    Checks a template: rule file, template.json and token declarations.

    Every token found in project files must be declared in template.json.
    Declared placeholders that no file uses are reported as warnings.
    """
    result = ValidationResult()
    project = Path(project_path)

    try:
        load_rules(project, config_path)
    except ConfigurationError as e:
        result.warnings.append(str(e))

    manifest = None
    try:
        manifest = load_manifest(project)
    except ConfigurationError as e:
        result.errors.append(str(e))
    if manifest is None:
        if not result.errors:
            result.errors.append(f"{TEMPLATE_MANIFEST} not found")
        return result

    declared = manifest.get("placeholders") or {}
    if not isinstance(declared, dict):
        result.errors.append(f"{TEMPLATE_MANIFEST}: placeholders must be an object")
        return result
    for name in declared:
        try:
            validate_name(name)
        except ConfigurationError as e:
            result.errors.append(e.message)

    try:
        token_format = normalize_format(manifest.get("placeholderFormat"))
    except ConfigurationError as e:
        result.errors.append(e.message)
        return result

    used = set()
    runner = _ProjectRun(project, ignore=ignore)
    for relative_path in runner.project_files():
        try:
            content = read_text(project / relative_path)
        except (UnicodeDecodeError, OSError):
            continue
        names = sorted({token.name for token in find_tokens(content, token_format)})
        used.update(names)
        missing = [name for name in names if name not in declared]
        if missing:
            result.undeclared[relative_path] = missing

    for name in sorted(set(declared) - used):
        result.warnings.append(f"Placeholder '{name}' is declared but not used")
    return result


@dataclass
class TemplateTestResult:
    report: RunReport
    directory: Path
    problems: List[str] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return not self.problems and not self.report.has_errors


def check_restored_file(path: Path, relative_path: str) -> Optional[str]:
    """Parse check for structured files after restoration."""
    format_id = detect_format(relative_path)
    if format_id not in ("json", "yaml"):
        return None
    try:
        content = read_text(path)
        if format_id == "json":
            parse_json(content, relative_path)
        else:
            list(yaml.safe_load_all(content))
    except TemplatizeError as e:
        return str(e)
    except yaml.YAMLError as e:
        return f"{relative_path}: invalid YAML after restoration: {e}"
    return None


def run_template_test(project_path, values: Optional[Dict[str, Any]] = None, keep_temp: bool = False,
                      workers: int = 4, ignore: Optional[List[str]] = None) -> TemplateTestResult:
    """
    Restores a copy of a template with its default values and checks the output.

    Args:
        project_path: Template directory.
        values: Overrides for the template.json defaults.
        keep_temp: Keep the temporary directory for inspection.

    Returns:
        TemplateTestResult with the restore report and any problems found.
    """
    source = Path(project_path)
    manifest = load_manifest(source)
    if manifest is None:
        raise ConfigurationError(f"{TEMPLATE_MANIFEST} not found in {source}")
    merged = manifest_defaults(manifest)
    merged.update(values or {})

    ignore = list(ignore) if ignore is not None else list(DEFAULT_IGNORE)
    directory = Path(tempfile.mkdtemp(prefix="templatize-test-"))
    target = directory / source.name
    shutil.copytree(source, target, ignore=shutil.ignore_patterns(*ignore))
    logger.debug(f"Testing template in {target}")

    try:
        restorer = ProjectRestorer(target, values=merged, workers=workers, ignore=ignore)
        report = restorer.run()
        result = TemplateTestResult(report, target)
        token_format = restorer.token_format()
        for relative_path in restorer.project_files():
            file_path = target / relative_path
            try:
                content = read_text(file_path)
            except UnicodeDecodeError:
                continue
            remaining = sorted({token.name for token in locate_tokens(content, token_format)})
            if remaining:
                result.problems.append(f"{relative_path}: unresolved placeholder(s) {', '.join(remaining)}")
            problem = check_restored_file(file_path, relative_path)
            if problem:
                result.problems.append(problem)
    finally:
        if not keep_temp:
            shutil.rmtree(directory, ignore_errors=True)
    return result
