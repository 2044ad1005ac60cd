"""Core data models for Step Translator."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class StepType(Enum):
    """Browser step types understood by the synthesizer."""

    NAVIGATE = "goToUrl"
    TYPE_TEXT = "typeText"
    CLICK = "click"
    HOVER = "hover"
    PRESS_KEY = "pressKey"
    SELECT_OPTION = "selectOption"
    WAIT = "wait"
    REFRESH = "refresh"
    SCROLL = "scroll"
    ASSERT_ELEMENT_PRESENT = "assertElementPresent"
    ASSERT_ELEMENT_CONTENT = "assertElementContent"
    ASSERT_PAGE_CONTAINS = "assertPageContains"
    ASSERT_CURRENT_URL = "assertCurrentUrl"
    RUN_API_TEST = "runApiTest"
    UNSUPPORTED = "unsupported"

    @classmethod
    def from_source(cls, value: str | None) -> "StepType":
        """Map a source type name, falling back to UNSUPPORTED."""
        for member in cls:
            if member.value == value and member is not cls.UNSUPPORTED:
                return member
        return cls.UNSUPPORTED


class CheckMode(Enum):
    """Comparison used by content and URL assertions."""

    CONTAINS = "contains"
    EQUALS = "equals"
    STARTS_WITH = "startsWith"
    NOT_CONTAINS = "notContains"

    @classmethod
    def from_source(cls, value: str | None) -> "CheckMode":
        """Unknown or missing modes compare with CONTAINS."""
        for member in cls:
            if member.value == value:
                return member
        return cls.CONTAINS


class LocatorKind(Enum):
    """Kind of a resolved locator, most stable first."""

    ID = "id"
    TEST_ID = "testId"
    NAME = "name"
    TEXT = "text"
    CLASS = "class"
    XPATH = "xpath"
    NONE = "none"


class FrameReason(Enum):
    """Why a step was attributed to an iframe."""

    KNOWN_PATH = "known_path"
    CROSS_HOST = "cross_host"
    PATH_DIVERGENCE = "path_divergence"


@dataclass(frozen=True)
class Locator:
    """A single resolved selector."""

    kind: LocatorKind
    value: str

    @property
    def found(self) -> bool:
        return self.kind is not LocatorKind.NONE


NOT_FOUND = Locator(LocatorKind.NONE, "")


@dataclass
class MultiLocator:
    """Independently computed locator hints recorded with an element."""

    ro: str | None = None  # role/id XPath or text predicate
    co: str | None = None  # JSON array of {"text": ...}
    cl: str | None = None  # class containment XPath
    at: str | None = None  # attribute XPath
    ab: str | None = None  # absolute XPath


@dataclass
class ElementDescriptor:
    """Redundant evidence about the element a step targets."""

    target_outer_html: str | None = None
    multi_locator: MultiLocator = field(default_factory=MultiLocator)
    url: str | None = None  # page URL observed when the element was located

    @property
    def is_empty(self) -> bool:
        hints = self.multi_locator
        return not any((
            self.target_outer_html,
            hints.ro, hints.co, hints.cl, hints.at, hints.ab,
        ))


# Step params, one variant per step family


@dataclass
class EmptyParams:
    """Steps that carry no parameters."""


@dataclass
class NavigateParams:
    url: str = ""


@dataclass
class ElementActionParams:
    """Click, hover, type text and select option."""

    element: ElementDescriptor | None = None
    value: str = ""


@dataclass
class KeyPressParams:
    key: str = "Enter"


@dataclass
class WaitParams:
    duration_ms: int = 1000


@dataclass
class ScrollParams:
    x: int = 0
    y: int = 0


@dataclass
class ElementContentParams:
    element: ElementDescriptor | None = None
    value: str = ""
    check: CheckMode = CheckMode.CONTAINS


@dataclass
class PageTextParams:
    value: str = ""


@dataclass
class UrlCheckParams:
    value: str = ""
    check: CheckMode = CheckMode.CONTAINS


@dataclass
class EmbeddedRequestParams:
    method: str = "GET"
    url: str = ""


@dataclass
class UnsupportedParams:
    raw: dict[str, Any] = field(default_factory=dict)


StepParams = (
    EmptyParams
    | NavigateParams
    | ElementActionParams
    | KeyPressParams
    | WaitParams
    | ScrollParams
    | ElementContentParams
    | PageTextParams
    | UrlCheckParams
    | EmbeddedRequestParams
    | UnsupportedParams
)


PARAMS_BY_TYPE: dict[StepType, type] = {
    StepType.NAVIGATE: NavigateParams,
    StepType.TYPE_TEXT: ElementActionParams,
    StepType.CLICK: ElementActionParams,
    StepType.HOVER: ElementActionParams,
    StepType.PRESS_KEY: KeyPressParams,
    StepType.SELECT_OPTION: ElementActionParams,
    StepType.WAIT: WaitParams,
    StepType.REFRESH: EmptyParams,
    StepType.SCROLL: ScrollParams,
    StepType.ASSERT_ELEMENT_PRESENT: ElementActionParams,
    StepType.ASSERT_ELEMENT_CONTENT: ElementContentParams,
    StepType.ASSERT_PAGE_CONTAINS: PageTextParams,
    StepType.ASSERT_CURRENT_URL: UrlCheckParams,
    StepType.RUN_API_TEST: EmbeddedRequestParams,
    StepType.UNSUPPORTED: UnsupportedParams,
}


@dataclass
class Step:
    """One recorded browser action."""

    type: StepType
    name: str = ""
    allow_failure: bool = False
    params: StepParams | None = None
    raw_type: str = ""  # source type name, kept for UNSUPPORTED steps

    def __post_init__(self) -> None:
        expected = PARAMS_BY_TYPE[self.type]
        if self.params is None:
            self.params = expected()
        elif not isinstance(self.params, expected):
            raise TypeError(
                f"{self.type.value} step needs {expected.__name__}, "
                f"got {type(self.params).__name__}"
            )
        if not self.raw_type:
            self.raw_type = self.type.value

    @property
    def label(self) -> str:
        return self.name or self.raw_type

    @property
    def element(self) -> ElementDescriptor | None:
        """Target element, for element-targeting steps."""
        return getattr(self.params, "element", None)

    @property
    def is_navigation(self) -> bool:
        return self.type is StepType.NAVIGATE


@dataclass
class BrowserTest:
    """A recorded browser test."""

    public_id: str
    name: str
    steps: list[Step] = field(default_factory=list)
    start_url: str | None = None
    locations: list[str] = field(default_factory=list)
    private_locations: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)  # scheduling passthrough

    @property
    def is_private(self) -> bool:
        return bool(self.private_locations)


@dataclass
class FrameTarget:
    """A step whose element is believed to live inside an iframe."""

    step_index: int
    src_url: str
    reason: FrameReason


FrameVerdict = dict[int, FrameTarget]


# Multi-step API tests


@dataclass
class ApiAssertion:
    """One assertion on an API response."""

    type: str
    operator: str
    target: str | int | float | None = None
    property: str | None = None


@dataclass
class ApiRequest:
    method: str = "GET"
    url: str = ""
    headers: dict[str, str] = field(default_factory=dict)
    body: str | None = None


@dataclass
class ApiStep:
    """One request of a multi-step API test."""

    name: str
    request: ApiRequest = field(default_factory=ApiRequest)
    assertions: list[ApiAssertion] = field(default_factory=list)
    subtype: str | None = None
    allow_failure: bool = False


@dataclass
class MultiStepTest:
    """A recorded multi-step API test."""

    public_id: str
    name: str
    steps: list[ApiStep] = field(default_factory=list)
    locations: list[str] = field(default_factory=list)
    private_locations: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def is_private(self) -> bool:
        return bool(self.private_locations)


# Generation results


@dataclass
class GeneratedFile:
    """A script written for one test."""

    logical_id: str
    name: str
    filename: str
    step_count: int
    has_iframes: bool = False
    iframe_step_count: int = 0


@dataclass
class SkippedTest:
    logical_id: str
    name: str
    incompatible_subtypes: list[str]


@dataclass
class TestError:
    """A test whose translation failed."""

    __test__ = False  # not a pytest class

    test_id: str
    name: str
    message: str


@dataclass
class GenerationResult:
    """Summary of one batch of generated scripts."""

    location_type: str
    output_dir: str
    files: list[GeneratedFile] = field(default_factory=list)
    skipped: list[SkippedTest] = field(default_factory=list)
    errors: list[TestError] = field(default_factory=list)
    manual_locator_count: int = 0
    unsupported_step_count: int = 0

    @property
    def success_count(self) -> int:
        return len(self.files)

    @property
    def iframe_test_count(self) -> int:
        return sum(1 for f in self.files if f.has_iframes)

    @property
    def iframe_step_count(self) -> int:
        return sum(f.iframe_step_count for f in self.files)
