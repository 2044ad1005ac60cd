"""Multi-step API synthesizer - turn recorded request chains into Playwright request specs."""

import json
from dataclasses import dataclass

from ..config import Config
from ..models import ApiAssertion, ApiRequest, ApiStep, MultiStepTest
from ..text import escape_string, regex_literal
from .browser import HTTP_METHODS, template_value

BODY_METHODS = ("post", "put", "patch")

# operator -> (matcher, negated)
MATCHERS: dict[str, tuple[str, bool]] = {
    "is": ("toBe", False),
    "isNot": ("toBe", True),
    "lessThan": ("toBeLessThan", False),
    "lessThanOrEqual": ("toBeLessThanOrEqual", False),
    "moreThan": ("toBeGreaterThan", False),
    "moreThanOrEqual": ("toBeGreaterThanOrEqual", False),
    "contains": ("toContain", False),
    "doesNotContain": ("toContain", True),
    "matches": ("toMatch", False),
    "doesNotMatch": ("toMatch", True),
    "isEmpty": ("toBeFalsy", False),
    "isNotEmpty": ("toBeTruthy", False),
}

NO_TARGET_OPERATORS = ("isEmpty", "isNotEmpty")
REGEX_OPERATORS = ("matches", "doesNotMatch")


@dataclass
class SynthesizedApiScript:
    """A generated request spec."""

    text: str
    step_count: int


def target_literal(operator: str, target: str | int | float | None, numeric: bool = False) -> str:
    """Render an assertion target as a TypeScript expression."""
    if operator in REGEX_OPERATORS and isinstance(target, str):
        return regex_literal(target)
    if isinstance(target, bool):
        return "true" if target else "false"
    if isinstance(target, (int, float)):
        return str(target)
    if target is None:
        return "undefined"
    if not isinstance(target, str):
        target = json.dumps(target)
    elif numeric and target.strip().lstrip("-").isdigit():
        return target.strip()
    return f'"{escape_string(target)}"'


def comparison_code(expect_expr: str, operator: str, target, numeric: bool = False) -> str:
    """expect(...) call for one operator, e.g. expect(x).not.toContain("a");"""
    matcher, negated = MATCHERS.get(operator, ("toBe", False))
    prefix = f"{expect_expr}.not" if negated else expect_expr
    args = "" if operator in NO_TARGET_OPERATORS else target_literal(operator, target, numeric)

    code = f"{prefix}.{matcher}({args});"
    if operator not in MATCHERS:
        code += f" // Unknown operator: {operator}"
    return code


def assertion_code(assertion: ApiAssertion, response: str, body: str, soft: bool) -> str:
    """One assertion line; unsupported assertions become comments."""
    expect = "expect.soft" if soft else "expect"
    operator = assertion.operator
    target = assertion.target

    if assertion.type == "statusCode":
        return comparison_code(f"{expect}({response}.status())", operator, target, numeric=True)

    if assertion.type == "responseTime":
        return f"// Response time assertion: {operator} {target}ms (enforced by the check runner)"

    if assertion.type == "body":
        if operator == "validatesJSONPath":
            return "// JSONPath assertion requires manual conversion"
        return comparison_code(f"{expect}({body})", operator, target)

    if assertion.type == "header":
        if not assertion.property:
            return "// Header assertion missing property"
        header = escape_string(assertion.property.lower())
        return comparison_code(f'{expect}({response}.headers()["{header}"])', operator, target)

    return f"// Unknown assertion type: {assertion.type}"


class MultiStepSpecSynthesizer:
    """Synthesize Playwright request specs for multi-step API tests."""

    def __init__(self, config: Config | None = None):
        self.config = config or Config()

    def incompatible_subtypes(self, test: MultiStepTest) -> list[str]:
        """Step subtypes that cannot run as HTTP requests (tcp, icmp, dns, wait...)."""
        allowed = self.config.multi_step.http_compatible_subtypes
        found: dict[str, None] = {}
        for step in test.steps:
            if step.subtype and step.subtype not in allowed:
                found[step.subtype] = None
        return list(found)

    def synthesize(self, test: MultiStepTest) -> SynthesizedApiScript:
        indent = self.config.script.indent
        name = escape_string(test.name)

        out = [
            'import { test, expect } from "@playwright/test";',
            "",
            f'test.describe("{name}", () => {{',
            f'{indent}test("{name}", async ({{ request }}) => {{',
        ]

        for index, step in enumerate(test.steps):
            if index:
                out.append("")
            out.extend(f"{indent * 2}{line}" for line in self.synthesize_step(step, index))

        out += [
            f"{indent}}});",
            "});",
            "",
        ]
        return SynthesizedApiScript(text="\n".join(out), step_count=len(test.steps))

    def synthesize_step(self, step: ApiStep, index: int) -> list[str]:
        """Lines for one request and its assertions."""
        response = f"response{index + 1}"
        body = f"body{index + 1}"

        lines = [f"// Step {index + 1}: {' '.join(step.name.split())}"]
        lines += self._request_code(step.request, response)

        if any(a.type == "body" for a in step.assertions):
            lines.append(f"const {body} = await {response}.text();")

        for assertion in step.assertions:
            lines.append(assertion_code(assertion, response, body, soft=step.allow_failure))

        return lines

    def _request_code(self, request: ApiRequest, response: str) -> list[str]:
        indent = self.config.script.indent
        method = request.method.lower() or "get"
        url = template_value(request.url)

        options: list[str] = []
        if request.headers:
            options.append("headers: {")
            for key, value in request.headers.items():
                options.append(f'{indent}"{escape_string(key)}": {template_value(value)},')
            options.append("},")
        if request.body and method in BODY_METHODS:
            options.append(f"data: {template_value(request.body)},")

        if method in HTTP_METHODS:
            call = f"request.{method}({url}"
        else:
            call = f"request.fetch({url}"
            options.insert(0, f'method: "{escape_string(method.upper())}",')

        if not options:
            return [f"const {response} = await {call});"]

        return [
            f"const {response} = await {call}, {{",
            *(f"{indent}{option}" for option in options),
            "});",
        ]
