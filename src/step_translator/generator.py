"""Batch generation - one spec file per test, plus manifests and the shared helper."""

import json
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Iterable

from .config import Config
from .exceptions import SynthesisError
from .models import (
    BrowserTest,
    GeneratedFile,
    GenerationResult,
    MultiStepTest,
    SkippedTest,
    TestError,
)
from .records import load_records, parse_browser_test, parse_multistep_test
from .synth.browser import BrowserSpecSynthesizer
from .synth.helpers import FIND_IN_FRAME_HELPER_SOURCE
from .synth.multistep import MultiStepSpecSynthesizer
from .text import sanitize_filename
from .variables import VariableUsageIndex

logger = logging.getLogger(__name__)

MANIFEST_NAME = "_manifest.json"
SPEC_SUFFIX = ".spec.ts"

PUBLIC = "public"
PRIVATE = "private"


@dataclass
class TestOutcome:
    """What translating one record produced, before anything is written."""

    __test__ = False  # not a pytest class

    test_id: str
    name: str
    text: str | None = None
    step_count: int = 0
    frame_step_count: int = 0
    manual_locator_count: int = 0
    unsupported_step_count: int = 0
    skipped_subtypes: list[str] = field(default_factory=list)
    error: str | None = None


def record_id(raw: dict) -> str:
    return str(raw.get("public_id") or raw.get("name") or "unknown")


def location_type(raw: dict) -> str:
    """Tests that run on any private location go to the private batch."""
    return PRIVATE if raw.get("privateLocations") else PUBLIC


def split_by_location(records: Iterable[dict]) -> dict[str, list[dict]]:
    batches: dict[str, list[dict]] = {PUBLIC: [], PRIVATE: []}
    for raw in records:
        batches[location_type(raw)].append(raw)
    return batches


def unique_filename(stem: str, used: set[str]) -> str:
    """stem.spec.ts, or stem-2.spec.ts, stem-3.spec.ts... on collision."""
    filename = f"{stem}{SPEC_SUFFIX}"
    counter = 2
    while filename in used:
        filename = f"{stem}-{counter}{SPEC_SUFFIX}"
        counter += 1
    used.add(filename)
    return filename


def browser_texts(test: BrowserTest) -> list[str | None]:
    """Every piece of a browser test that may reference a variable."""
    texts = [test.start_url]
    for step in test.steps:
        for attr in ("url", "value"):
            value = getattr(step.params, attr, None)
            if isinstance(value, str):
                texts.append(value)
    return texts


def multistep_texts(test: MultiStepTest) -> list[str | None]:
    texts: list[str | None] = []
    for step in test.steps:
        texts.append(step.request.url)
        texts.extend(step.request.headers.values())
        texts.append(step.request.body)
    return texts


def manifest(result: GenerationResult, include_skipped: bool = False) -> dict[str, Any]:
    """Manifest consumed when wiring each script into a scheduled check."""
    data: dict[str, Any] = {
        "generatedAt": datetime.now(timezone.utc).isoformat(),
        "outputDir": result.output_dir,
        "locationType": result.location_type,
        "files": [
            {
                "logicalId": f.logical_id,
                "name": f.name,
                "filename": f.filename,
                "stepCount": f.step_count,
                "hasIframes": f.has_iframes,
                "iframeStepCount": f.iframe_step_count,
            }
            for f in result.files
        ],
    }
    if include_skipped:
        data["skipped"] = [
            {
                "logicalId": s.logical_id,
                "name": s.name,
                "incompatibleSubtypes": s.incompatible_subtypes,
            }
            for s in result.skipped
        ]
    if result.errors:
        data["errors"] = [asdict(e) for e in result.errors]
    return data


class BatchGenerator:
    """
    Turns collections of exported test records into spec files.

    Records are split into public and private batches, each written to its
    own directory with a manifest. Tests are translated independently (on
    `config.workers` threads) and written in input order; one failing test
    is recorded as a TestError and does not stop the batch.
    """

    def __init__(self, config: Config | None = None, usage: VariableUsageIndex | None = None):
        self.config = config or Config()
        self.usage = usage if usage is not None else VariableUsageIndex()
        self.browser = BrowserSpecSynthesizer(self.config)
        self.multi = MultiStepSpecSynthesizer(self.config)

    # Browser tests

    def generate_browser(
        self,
        records: list[dict],
        output_dir: Path | None = None,
    ) -> list[GenerationResult]:
        output_dir = output_dir or self.config.browser_output_dir
        results = [
            self._run_batch(batch, output_dir / kind, kind, self.translate_browser)
            for kind, batch in split_by_location(records).items()
            if batch
        ]

        if any(result.iframe_test_count for result in results):
            self.write_helper(output_dir)
        return results

    def translate_browser(self, raw: dict) -> TestOutcome:
        test = parse_browser_test(raw)
        if not test.steps and not test.start_url:
            raise SynthesisError("nothing to translate: no steps and no start URL")
        self.usage.track_many(test.name, browser_texts(test))

        script = self.browser.synthesize(test)
        return TestOutcome(
            test_id=test.public_id,
            name=test.name,
            text=script.text,
            step_count=len(test.steps),
            frame_step_count=script.frame_step_count,
            manual_locator_count=script.manual_locator_count,
            unsupported_step_count=script.unsupported_step_count,
        )

    def write_helper(self, output_dir: Path) -> Path:
        """Write the findInFrame() module the frame-aware specs import."""
        path = output_dir / f"{self.config.script.helper_module}.ts"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(FIND_IN_FRAME_HELPER_SOURCE, encoding="utf-8")
        logger.info("Written iframe helper: %s", path)
        return path

    # Multi-step API tests

    def generate_multi(
        self,
        records: list[dict],
        output_dir: Path | None = None,
    ) -> list[GenerationResult]:
        output_dir = output_dir or self.config.multi_output_dir
        return [
            self._run_batch(batch, output_dir / kind, kind, self.translate_multi, include_skipped=True)
            for kind, batch in split_by_location(records).items()
            if batch
        ]

    def translate_multi(self, raw: dict) -> TestOutcome:
        test = parse_multistep_test(raw)
        if not test.steps:
            raise SynthesisError("nothing to translate: no steps")

        incompatible = self.multi.incompatible_subtypes(test)
        if incompatible:
            logger.info("Skipping %s: incompatible step types %s", test.name, ", ".join(incompatible))
            return TestOutcome(test_id=test.public_id, name=test.name, skipped_subtypes=incompatible)

        self.usage.track_many(test.name, multistep_texts(test))
        script = self.multi.synthesize(test)
        return TestOutcome(
            test_id=test.public_id,
            name=test.name,
            text=script.text,
            step_count=script.step_count,
        )

    # Batches

    def _run_batch(
        self,
        records: list[dict],
        output_dir: Path,
        kind: str,
        translate: Callable[[dict], TestOutcome],
        include_skipped: bool = False,
    ) -> GenerationResult:
        output_dir.mkdir(parents=True, exist_ok=True)
        result = GenerationResult(location_type=kind, output_dir=str(output_dir))
        used: set[str] = set()

        for outcome in self._translate_all(records, translate):
            if outcome.error is not None:
                result.errors.append(TestError(outcome.test_id, outcome.name, outcome.error))
                continue
            if outcome.skipped_subtypes:
                result.skipped.append(
                    SkippedTest(outcome.test_id, outcome.name, outcome.skipped_subtypes)
                )
                continue

            filename = unique_filename(sanitize_filename(outcome.name), used)
            (output_dir / filename).write_text(outcome.text or "", encoding="utf-8")
            result.files.append(GeneratedFile(
                logical_id=outcome.test_id,
                name=outcome.name,
                filename=filename,
                step_count=outcome.step_count,
                has_iframes=outcome.frame_step_count > 0,
                iframe_step_count=outcome.frame_step_count,
            ))
            result.manual_locator_count += outcome.manual_locator_count
            result.unsupported_step_count += outcome.unsupported_step_count

        manifest_path = output_dir / MANIFEST_NAME
        manifest_path.write_text(
            json.dumps(manifest(result, include_skipped), indent=2) + "\n",
            encoding="utf-8",
        )
        logger.info(
            "%s: %d written, %d skipped, %d failed -> %s",
            kind, result.success_count, len(result.skipped), len(result.errors), output_dir,
        )
        return result

    def _translate_all(
        self,
        records: list[dict],
        translate: Callable[[dict], TestOutcome],
    ) -> list[TestOutcome]:
        def run(raw: dict) -> TestOutcome:
            try:
                return translate(raw)
            except Exception as e:
                test_id = record_id(raw)
                logger.error("Failed to translate %s: %s", test_id, e)
                logger.debug("Traceback for %s", test_id, exc_info=True)
                return TestOutcome(
                    test_id=test_id,
                    name=str(raw.get("name") or test_id),
                    error=str(e) or type(e).__name__,
                )

        if self.config.workers == 1:
            return [run(raw) for raw in records]

        # map() yields in input order regardless of completion order
        with ThreadPoolExecutor(max_workers=self.config.workers) as pool:
            return list(pool.map(run, records))


def _run(
    config: Config,
    input_path: Path,
    generate: Callable[[BatchGenerator, list[dict]], list[GenerationResult]],
) -> list[GenerationResult]:
    records = load_records(input_path)
    logger.info("Loaded %d tests from %s", len(records), input_path)

    usage = VariableUsageIndex()
    usage.load(config.variable_report_path)

    results = generate(BatchGenerator(config, usage), records)
    usage.save(config.variable_report_path)
    return results


def generate_browser_tests(
    config: Config,
    input_path: Path,
    output_dir: Path | None = None,
) -> list[GenerationResult]:
    """
    Generate browser specs for an exported collection.

    The variable usage report is loaded first and saved afterwards, so a
    re-run for part of the collection keeps entries recorded for the rest.

    Raises:
        InputCollectionError: if the input file is missing or unreadable
    """
    return _run(config, input_path, lambda gen, records: gen.generate_browser(records, output_dir))


def generate_multistep_tests(
    config: Config,
    input_path: Path,
    output_dir: Path | None = None,
) -> list[GenerationResult]:
    """Generate request specs for an exported multi-step API collection."""
    return _run(config, input_path, lambda gen, records: gen.generate_multi(records, output_dir))
