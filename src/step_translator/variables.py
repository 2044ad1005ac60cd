"""Variable references - translation and cross-test usage tracking.

Recorded tests reference global variables as ``{{ NAME }}``. Generated
scripts read them from the environment as ``${process.env.NAME}`` inside a
template literal. The usage index records which tests reference which
variable so the variables can be provisioned before the checks run.
"""

import json
import logging
import re
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable

logger = logging.getLogger(__name__)

SOURCE_VAR = re.compile(r"\{\{\s*(\w+)\s*\}\}")
TARGET_VAR = re.compile(r"\$\{process\.env\.(\w+)\}")


def translate(text: str | None) -> str | None:
    """Rewrite {{ NAME }} tokens into ${process.env.NAME}."""
    if not text:
        return text
    return SOURCE_VAR.sub(r"${process.env.\1}", text)


def extract_variable_names(text: str | None) -> list[str]:
    """Names referenced in either the source or the translated form."""
    if not text:
        return []
    names = dict.fromkeys(SOURCE_VAR.findall(text))
    names.update(dict.fromkeys(TARGET_VAR.findall(text)))
    return list(names)


class VariableUsageIndex:
    """Accumulates variable name -> names of tests that reference it."""

    def __init__(self):
        self._usage: dict[str, set[str]] = {}
        self._lock = threading.Lock()

    def track(self, test_name: str, text: str | None) -> list[str]:
        """Record every variable referenced by text for test_name."""
        names = extract_variable_names(text)
        if names:
            with self._lock:
                for name in names:
                    self._usage.setdefault(name, set()).add(test_name)
        return names

    def track_many(self, test_name: str, texts: Iterable[str | None]) -> None:
        for text in texts:
            self.track(test_name, text)

    def merge(self, usage: dict[str, Iterable[str]]) -> None:
        """Merge name -> test names pairs, keeping existing entries."""
        with self._lock:
            for name, tests in usage.items():
                self._usage.setdefault(name, set()).update(tests)

    def usage(self) -> dict[str, dict]:
        """Usage per variable, most referenced first."""
        with self._lock:
            snapshot = {name: sorted(tests) for name, tests in self._usage.items()}

        ordered = sorted(snapshot.items(), key=lambda item: (-len(item[1]), item[0]))
        return {
            name: {"usageCount": len(tests), "checks": tests}
            for name, tests in ordered
        }

    def tests_for(self, name: str) -> list[str]:
        with self._lock:
            return sorted(self._usage.get(name, ()))

    def __len__(self) -> int:
        with self._lock:
            return len(self._usage)

    def __contains__(self, name: str) -> bool:
        with self._lock:
            return name in self._usage

    def report(self) -> dict:
        usage = self.usage()
        return {
            "generatedAt": datetime.now(timezone.utc).isoformat(),
            "totalVariablesReferenced": len(usage),
            "variables": usage,
        }

    def load(self, path: Path) -> None:
        """
        Merge a report written by a previous run.

        Re-running for a subset of tests must not drop what earlier runs
        recorded for other tests. A missing file is fine; an unreadable one
        is logged and ignored.
        """
        if not path.exists():
            return

        try:
            report = json.loads(path.read_text(encoding="utf-8"))
            variables = report.get("variables", {})
            self.merge({
                name: entry.get("checks", [])
                for name, entry in variables.items()
            })
        except (OSError, ValueError, AttributeError) as e:
            logger.warning("Ignoring unreadable variable usage report %s: %s", path, e)
            return

        logger.debug("Loaded %d variables from %s", len(variables), path)

    def save(self, path: Path) -> dict:
        """Write the usage report and return it."""
        report = self.report()
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(report, indent=2) + "\n", encoding="utf-8")
        logger.info("Written variable usage report: %s", path)
        return report


def read_report(path: Path) -> dict | None:
    """Read a persisted usage report, or None when there is none."""
    if not path.exists():
        return None
    return json.loads(path.read_text(encoding="utf-8"))
