"""Browser step synthesizer - turn recorded browser steps into a Playwright spec."""

import logging
from dataclasses import dataclass, field
from typing import Callable

from ..analyzer.frame_analyzer import FrameAnalyzer, url_path
from ..analyzer.locator_resolver import resolve
from ..config import Config
from ..models import (
    BrowserTest,
    CheckMode,
    FrameVerdict,
    Locator,
    LocatorKind,
    Step,
    StepType,
)
from ..text import (
    RESERVED_BINDINGS,
    element_var_name,
    escape_regex,
    escape_string,
    escape_template_literal,
    unique_name,
)
from ..variables import SOURCE_VAR, translate
from .helpers import FIND_IN_FRAME_FUNCTION

logger = logging.getLogger(__name__)

MANUAL_LOCATOR = 'page.locator("/* MANUAL: locator not found */")'

# Element-targeting steps; their action can also run on a findInFrame() capture
ELEMENT_TYPES = frozenset({
    StepType.TYPE_TEXT,
    StepType.CLICK,
    StepType.HOVER,
    StepType.SELECT_OPTION,
    StepType.ASSERT_ELEMENT_PRESENT,
    StepType.ASSERT_ELEMENT_CONTENT,
})

HTTP_METHODS = frozenset({"get", "post", "put", "patch", "delete", "head"})


@dataclass
class ScriptContext:
    """Per-test state carried from step to step."""

    test_name: str
    used_names: set[str] = field(default_factory=lambda: set(RESERVED_BINDINGS))
    frame_captures: int = 0
    manual_locators: int = 0
    unsupported_steps: int = 0


@dataclass
class SynthesizedScript:
    """A generated spec plus what the manifest needs to know about it."""

    text: str
    frame_verdict: FrameVerdict
    frame_step_count: int = 0
    manual_locator_count: int = 0
    unsupported_step_count: int = 0

    @property
    def has_iframes(self) -> bool:
        return self.frame_step_count > 0


# Rendering helpers


def locator_code(locator: Locator) -> str:
    """Playwright expression addressing the locator on the main page."""
    if locator.kind is LocatorKind.NONE:
        return MANUAL_LOCATOR
    if locator.kind is LocatorKind.TEXT:
        return f'page.getByText("{escape_string(locator.value)}")'
    if locator.kind is LocatorKind.XPATH:
        return f'page.locator("xpath={escape_string(locator.value)}")'
    return f'page.locator("{escape_string(locator.value)}")'


def frame_selector(locator: Locator) -> str:
    """Selector string literal usable with findInFrame()."""
    if locator.kind is LocatorKind.TEXT:
        return f'"text={escape_string(locator.value)}"'
    if locator.kind is LocatorKind.XPATH:
        return f'"xpath={escape_string(locator.value)}"'
    return f'"{escape_string(locator.value)}"'


def template_value(text: str | None) -> str:
    """Template literal with {{ VAR }} tokens read from the environment."""
    return f"`{translate(escape_template_literal(text))}`"


def string_value(text: str | None) -> str:
    """Plain string literal, or a template literal when it references variables."""
    if text and SOURCE_VAR.search(text):
        return template_value(text)
    return f'"{escape_string(text)}"'


def expect_fn(step: Step) -> str:
    """Soft assertions record the failure and let the test go on."""
    return "expect.soft" if step.allow_failure else "expect"


def _comment(text: str) -> str:
    return " ".join(text.split())


# Step templates. Each returns the statement lines for one step; target is the
# expression addressing the step's element (a locator or a frame capture).

Template = Callable[[Step, str, ScriptContext], list[str]]


def _navigate(step: Step, target: str, ctx: ScriptContext) -> list[str]:
    return [f"await page.goto({template_value(step.params.url)});"]


def _type_text(step: Step, target: str, ctx: ScriptContext) -> list[str]:
    return [f"await {target}.fill({template_value(step.params.value)});"]


def _click(step: Step, target: str, ctx: ScriptContext) -> list[str]:
    return [f"await {target}.click();"]


def _hover(step: Step, target: str, ctx: ScriptContext) -> list[str]:
    return [f"await {target}.hover();"]


def _press_key(step: Step, target: str, ctx: ScriptContext) -> list[str]:
    return [f'await page.keyboard.press("{escape_string(step.params.key)}");']


def _select_option(step: Step, target: str, ctx: ScriptContext) -> list[str]:
    return [f"await {target}.selectOption({template_value(step.params.value)});"]


def _wait(step: Step, target: str, ctx: ScriptContext) -> list[str]:
    return [f"await page.waitForTimeout({step.params.duration_ms});"]


def _refresh(step: Step, target: str, ctx: ScriptContext) -> list[str]:
    return ["await page.reload();"]


def _scroll(step: Step, target: str, ctx: ScriptContext) -> list[str]:
    x, y = step.params.x, step.params.y
    return [f"await page.evaluate(() => window.scrollBy({x}, {y}));"]


def regex_value(text: str | None, prefix: str = "") -> str:
    """
    Regex matching text literally.

    Values referencing {{ VAR }} become a RegExp built at runtime: the literal
    parts are regex-escaped and the tokens read from the environment.
    """
    if not text or not SOURCE_VAR.search(text):
        return f"/{prefix}{escape_regex(text)}/"

    parts = []
    last = 0
    for match in SOURCE_VAR.finditer(text):
        parts.append(escape_template_literal(escape_regex(text[last:match.start()])))
        parts.append(f"${{process.env.{match.group(1)}}}")
        last = match.end()
    parts.append(escape_template_literal(escape_regex(text[last:])))
    return f"new RegExp(`{prefix}{''.join(parts)}`)"


def _assert_element_present(step: Step, target: str, ctx: ScriptContext) -> list[str]:
    return [f"await {expect_fn(step)}({target}).toBeVisible();"]


def _assert_element_content(step: Step, target: str, ctx: ScriptContext) -> list[str]:
    expect = expect_fn(step)
    value = step.params.value
    check = step.params.check

    if check is CheckMode.EQUALS:
        return [f"await {expect}({target}).toHaveText({string_value(value)});"]
    if check is CheckMode.STARTS_WITH:
        return [f"await {expect}({target}).toHaveText({regex_value(value, '^')});"]
    if check is CheckMode.NOT_CONTAINS:
        return [f"await {expect}({target}).not.toContainText({string_value(value)});"]
    return [f"await {expect}({target}).toContainText({string_value(value)});"]


def _assert_page_contains(step: Step, target: str, ctx: ScriptContext) -> list[str]:
    value = string_value(step.params.value)
    return [f'await {expect_fn(step)}(page.locator("body")).toContainText({value});']


def _assert_current_url(step: Step, target: str, ctx: ScriptContext) -> list[str]:
    expect = expect_fn(step)
    value = step.params.value
    check = step.params.check

    if check is CheckMode.EQUALS:
        return [f"await {expect}(page).toHaveURL({string_value(value)});"]
    if check is CheckMode.STARTS_WITH:
        return [f"await {expect}(page).toHaveURL({regex_value(value, '^')});"]
    if check is CheckMode.NOT_CONTAINS:
        return [f"await {expect}(page).not.toHaveURL({regex_value(value)});"]
    return [f"await {expect}(page).toHaveURL({regex_value(value)});"]


def _run_api_test(step: Step, target: str, ctx: ScriptContext) -> list[str]:
    method = step.params.method.lower()
    url = template_value(step.params.url)
    response = unique_name("apiResponse", ctx.used_names)

    if method in HTTP_METHODS:
        call = f"page.request.{method}({url})"
    else:
        call = f'page.request.fetch({url}, {{ method: "{escape_string(method.upper())}" }})'

    return [
        "// Embedded API test",
        f"const {response} = await {call};",
        f"await {expect_fn(step)}({response}).toBeOK();",
    ]


def _unsupported(step: Step, target: str, ctx: ScriptContext) -> list[str]:
    raw_type = escape_string(step.raw_type)
    return [f'// TODO: Unsupported step type "{raw_type}" - manual conversion required']


TEMPLATES: dict[StepType, Template] = {
    StepType.NAVIGATE: _navigate,
    StepType.TYPE_TEXT: _type_text,
    StepType.CLICK: _click,
    StepType.HOVER: _hover,
    StepType.PRESS_KEY: _press_key,
    StepType.SELECT_OPTION: _select_option,
    StepType.WAIT: _wait,
    StepType.REFRESH: _refresh,
    StepType.SCROLL: _scroll,
    StepType.ASSERT_ELEMENT_PRESENT: _assert_element_present,
    StepType.ASSERT_ELEMENT_CONTENT: _assert_element_content,
    StepType.ASSERT_PAGE_CONTAINS: _assert_page_contains,
    StepType.ASSERT_CURRENT_URL: _assert_current_url,
    StepType.RUN_API_TEST: _run_api_test,
    StepType.UNSUPPORTED: _unsupported,
}

_missing_templates = set(StepType) - set(TEMPLATES)
if _missing_templates:
    raise ImportError(f"No step template for: {sorted(t.value for t in _missing_templates)}")


class BrowserSpecSynthesizer:
    """Synthesize Playwright specs for recorded browser tests."""

    def __init__(self, config: Config | None = None):
        self.config = config or Config()
        self.frame_analyzer = FrameAnalyzer(self.config.frame_detection)

    def synthesize(self, test: BrowserTest) -> SynthesizedScript:
        """
        Generate the spec for one test.

        Steps are emitted strictly in source order; each fragment is preceded
        by a "// Step N: name" comment.
        """
        verdict = self.frame_analyzer.analyze(test.start_url, test.steps)
        ctx = ScriptContext(test_name=test.name)

        body: list[list[str]] = []
        if self._needs_start_navigation(test):
            body.append([
                "// Navigate to start URL",
                f"await page.goto({template_value(test.start_url)});",
            ])

        for index, step in enumerate(test.steps):
            body.append(self.synthesize_step(step, index, verdict, ctx))

        text = self._assemble(test, body, uses_frames=ctx.frame_captures > 0)
        return SynthesizedScript(
            text=text,
            frame_verdict=verdict,
            frame_step_count=ctx.frame_captures,
            manual_locator_count=ctx.manual_locators,
            unsupported_step_count=ctx.unsupported_steps,
        )

    def synthesize_step(
        self,
        step: Step,
        index: int,
        verdict: FrameVerdict,
        ctx: ScriptContext,
    ) -> list[str]:
        """Lines for one step, comment included."""
        lines = [f"// Step {index + 1}: {_comment(step.label)}"]

        if step.type is StepType.UNSUPPORTED:
            ctx.unsupported_steps += 1
            logger.warning(
                "%s: step %d has unsupported type %r, left for manual conversion",
                ctx.test_name, index + 1, step.raw_type,
            )

        target = "page"
        if step.type in ELEMENT_TYPES:
            locator = resolve(step.element)
            if not locator.found:
                ctx.manual_locators += 1
                logger.debug(
                    "%s: step %d (%s) has no usable locator, needs manual review",
                    ctx.test_name, index + 1, step.label,
                )
            elif index in verdict:
                return lines + self._frame_capture(step, index, locator, verdict, ctx)
            target = locator_code(locator)

        return lines + TEMPLATES[step.type](step, target, ctx)

    def _frame_capture(
        self,
        step: Step,
        index: int,
        locator: Locator,
        verdict: FrameVerdict,
        ctx: ScriptContext,
    ) -> list[str]:
        var = unique_name(element_var_name(step.name or step.raw_type), ctx.used_names)
        ctx.frame_captures += 1
        src = url_path(verdict[index].src_url)
        logger.info("%s: step %d -> iframe %s", ctx.test_name, index + 1, src)

        return [
            f"// May be inside an iframe ({_comment(src)}), searching frames first",
            f"const {var} = await {FIND_IN_FRAME_FUNCTION}(page, {frame_selector(locator)});",
            *TEMPLATES[step.type](step, var, ctx),
        ]

    @staticmethod
    def _needs_start_navigation(test: BrowserTest) -> bool:
        if not test.start_url:
            return False
        if not test.steps or not test.steps[0].is_navigation:
            return True
        first_url = test.steps[0].params.url
        return first_url.rstrip("/") != test.start_url.rstrip("/")

    def _assemble(self, test: BrowserTest, body: list[list[str]], uses_frames: bool) -> str:
        indent = self.config.script.indent
        name = escape_string(test.name)

        out = ['import { test, expect } from "@playwright/test";']
        if uses_frames:
            helper = self.config.script.helper_module
            out.append(f'import {{ {FIND_IN_FRAME_FUNCTION} }} from "../{helper}";')
        out += [
            "",
            f'test.describe("{name}", () => {{',
            f'{indent}test("{name}", async ({{ page }}) => {{',
            f"{indent * 2}test.setTimeout({self.config.script.test_timeout_ms:_});",
        ]

        for fragment in body:
            out.append("")
            out.extend(f"{indent * 2}{line}" for line in fragment)

        out += [
            f"{indent}}});",
            "});",
            "",
        ]
        return "\n".join(out)


def synthesize(test: BrowserTest, config: Config | None = None) -> SynthesizedScript:
    """Convenience wrapper around BrowserSpecSynthesizer.synthesize."""
    return BrowserSpecSynthesizer(config).synthesize(test)
