"""Loading and parsing of exported test records."""

import json
from pathlib import Path
from typing import Any

from .exceptions import InputCollectionError
from .models import (
    ApiAssertion,
    ApiRequest,
    ApiStep,
    BrowserTest,
    CheckMode,
    ElementActionParams,
    ElementContentParams,
    ElementDescriptor,
    EmbeddedRequestParams,
    EmptyParams,
    KeyPressParams,
    MultiLocator,
    MultiStepTest,
    NavigateParams,
    PageTextParams,
    ScrollParams,
    Step,
    StepParams,
    StepType,
    UnsupportedParams,
    UrlCheckParams,
    WaitParams,
)

# Export fields carried on the parsed test for reference
METADATA_KEYS = ("status", "options", "message", "originalLocations", "type", "subtype")


def load_records(path: Path) -> list[dict[str, Any]]:
    """
    Load the exported test collection.

    Accepts either {"tests": [...]} or a bare list of test records.

    Raises:
        InputCollectionError: if the file is missing, unreadable or not a collection
    """
    if not path.exists():
        raise InputCollectionError(f"Input file not found: {path}")

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise InputCollectionError(f"Cannot read {path}: {e}") from e

    if isinstance(data, dict):
        data = data.get("tests", [])
    if not isinstance(data, list):
        raise InputCollectionError(f"{path} does not contain a list of tests")

    return [record for record in data if isinstance(record, dict)]


def _str(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def _int(value: Any, default: int) -> int:
    """Whole part of a number or numeric string; default when there is none."""
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        return default


def _bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return value is True


def _metadata(raw: dict) -> dict[str, Any]:
    return {key: raw[key] for key in METADATA_KEYS if key in raw}


def parse_element(raw: Any) -> ElementDescriptor | None:
    """Parse params.element into an ElementDescriptor."""
    if not isinstance(raw, dict):
        return None

    hints = raw.get("multiLocator") or {}
    if not isinstance(hints, dict):
        hints = {}

    return ElementDescriptor(
        target_outer_html=raw.get("targetOuterHTML") or None,
        multi_locator=MultiLocator(
            ro=hints.get("ro") or None,
            co=hints.get("co") or None,
            cl=hints.get("cl") or None,
            at=hints.get("at") or None,
            ab=hints.get("ab") or None,
        ),
        url=raw.get("url") or None,
    )


def _parse_params(step_type: StepType, params: dict) -> StepParams:
    value = _str(params.get("value"))

    if step_type is StepType.NAVIGATE:
        return NavigateParams(url=value)

    if step_type in (
        StepType.TYPE_TEXT,
        StepType.CLICK,
        StepType.HOVER,
        StepType.SELECT_OPTION,
        StepType.ASSERT_ELEMENT_PRESENT,
    ):
        return ElementActionParams(element=parse_element(params.get("element")), value=value)

    if step_type is StepType.PRESS_KEY:
        return KeyPressParams(key=value or "Enter")

    if step_type is StepType.WAIT:
        return WaitParams(duration_ms=_int(params.get("value"), 1000) or 1000)

    if step_type is StepType.REFRESH:
        return EmptyParams()

    if step_type is StepType.SCROLL:
        return ScrollParams(x=_int(params.get("x"), 0), y=_int(params.get("y"), 0))

    if step_type is StepType.ASSERT_ELEMENT_CONTENT:
        return ElementContentParams(
            element=parse_element(params.get("element")),
            value=value,
            check=CheckMode.from_source(params.get("check")),
        )

    if step_type is StepType.ASSERT_PAGE_CONTAINS:
        return PageTextParams(value=value)

    if step_type is StepType.ASSERT_CURRENT_URL:
        return UrlCheckParams(value=value, check=CheckMode.from_source(params.get("check")))

    if step_type is StepType.RUN_API_TEST:
        request = params.get("request") or {}
        request = (request.get("config") or {}).get("request") or {}
        return EmbeddedRequestParams(
            method=_str(request.get("method")) or "GET",
            url=_str(request.get("url")),
        )

    return UnsupportedParams(raw=params)


def parse_step(raw: dict) -> Step:
    """Parse one browser step record."""
    raw_type = _str(raw.get("type"))
    step_type = StepType.from_source(raw_type)
    params = raw.get("params")
    if not isinstance(params, dict):
        params = {}

    return Step(
        type=step_type,
        name=_str(raw.get("name")),
        allow_failure=_bool(raw.get("allowFailure")),
        params=_parse_params(step_type, params),
        raw_type=raw_type or step_type.value,
    )


def parse_browser_test(raw: dict) -> BrowserTest:
    """Parse one exported browser test record."""
    config = raw.get("config") or {}
    steps = raw.get("steps")
    if steps is None:
        steps = config.get("steps") or []

    return BrowserTest(
        public_id=_str(raw.get("public_id")) or _str(raw.get("name")),
        name=_str(raw.get("name")) or _str(raw.get("public_id")),
        steps=[parse_step(s) for s in steps if isinstance(s, dict)],
        start_url=(config.get("request") or {}).get("url") or None,
        locations=list(raw.get("locations") or []),
        private_locations=list(raw.get("privateLocations") or []),
        tags=list(raw.get("tags") or []),
        metadata=_metadata(raw),
    )


def _parse_assertion(raw: dict) -> ApiAssertion:
    return ApiAssertion(
        type=_str(raw.get("type")),
        operator=_str(raw.get("operator")),
        target=raw.get("target"),
        property=raw.get("property"),
    )


def parse_api_step(raw: dict) -> ApiStep:
    """Parse one multi-step API test step."""
    request = raw.get("request") or {}
    headers = request.get("headers") or {}
    if not isinstance(headers, dict):
        headers = {}
    body = request.get("body")

    return ApiStep(
        name=_str(raw.get("name")),
        request=ApiRequest(
            method=_str(request.get("method")) or "GET",
            url=_str(request.get("url")),
            headers={str(k): _str(v) for k, v in headers.items()},
            body=body if body is None or isinstance(body, str) else json.dumps(body),
        ),
        assertions=[_parse_assertion(a) for a in raw.get("assertions") or [] if isinstance(a, dict)],
        subtype=raw.get("subtype"),
        allow_failure=_bool(raw.get("allowFailure")),
    )


def parse_multistep_test(raw: dict) -> MultiStepTest:
    """Parse one exported multi-step API test record."""
    config = raw.get("config") or {}

    return MultiStepTest(
        public_id=_str(raw.get("public_id")) or _str(raw.get("name")),
        name=_str(raw.get("name")) or _str(raw.get("public_id")),
        steps=[parse_api_step(s) for s in config.get("steps") or [] if isinstance(s, dict)],
        locations=list(raw.get("locations") or []),
        private_locations=list(raw.get("privateLocations") or []),
        tags=list(raw.get("tags") or []),
        metadata=_metadata(raw),
    )
