"""Frame analyzer - infer which steps target elements inside iframes.

The recorder does not say when an element lives in an iframe. The only
evidence is the page URL it observed when locating each element, so the
steps are scanned in order while tracking which page the browser is on:

  * login/SSO hosts are transient redirects, never iframe content;
  * a URL equal to the current page is the page itself;
  * /frames/, /embed/ and /widget/ paths are iframes whatever the host;
  * another host than the current page is an iframe;
  * after a login redirect, a same-host URL whose first path segment leaves
    the start URL's application is an iframe;
  * anything else is an ordinary navigation on the same site.
"""

import logging
from dataclasses import dataclass
from urllib.parse import urlsplit

from ..config import FrameDetectionConfig
from ..models import FrameReason, FrameTarget, FrameVerdict, Step

logger = logging.getLogger(__name__)


def url_hostname(url: str | None) -> str:
    """Lower-cased hostname, or "" when the URL has none."""
    if not url:
        return ""
    try:
        return (urlsplit(url).hostname or "").lower()
    except ValueError:
        return ""


def url_path(url: str) -> str:
    try:
        return urlsplit(url).path
    except ValueError:
        return url


def first_path_segment(url: str | None) -> str:
    """'https://x/CipherWeb/admin' -> 'CipherWeb'."""
    if not url_hostname(url):
        return ""
    segments = [s for s in url_path(url).split("/") if s]
    return segments[0] if segments else ""


@dataclass
class FrameAnalysisState:
    """Scan state for one pass over a test's steps."""

    current_page_url: str = ""
    current_page_hostname: str = ""
    start_first_path_segment: str = ""
    seen_auth_redirect: bool = False

    @classmethod
    def starting_at(cls, start_url: str | None) -> "FrameAnalysisState":
        start_url = start_url or ""
        return cls(
            current_page_url=start_url,
            current_page_hostname=url_hostname(start_url),
            start_first_path_segment=first_path_segment(start_url),
        )

    def move_to(self, url: str) -> None:
        """Follow a navigation; an unparsable target keeps the old hostname."""
        self.current_page_url = url
        if hostname := url_hostname(url):
            self.current_page_hostname = hostname


class FrameAnalyzer:
    """Attribute element-targeting steps to iframes from URL evidence."""

    def __init__(self, config: FrameDetectionConfig | None = None):
        self.config = config or FrameDetectionConfig()

    def analyze(self, start_url: str | None, steps: list[Step]) -> FrameVerdict:
        """
        Scan steps once, left to right.

        Args:
            start_url: The test's start URL, if any
            steps: Steps in source order

        Returns:
            Map of step index to the iframe the step's element lives in
        """
        state = FrameAnalysisState.starting_at(start_url)
        verdict: FrameVerdict = {}

        for index, step in enumerate(steps):
            if target := self._scan_step(state, index, step):
                verdict[index] = target
                logger.debug(
                    "Step %d (%s) targets iframe %s [%s]",
                    index + 1, step.label, url_path(target.src_url), target.reason.value,
                )

        return verdict

    def _scan_step(
        self,
        state: FrameAnalysisState,
        index: int,
        step: Step,
    ) -> FrameTarget | None:
        if step.is_navigation:
            state.move_to(step.params.url)
            return None

        element = step.element
        element_url = element.url if element else None
        if not element_url:
            return None

        # Login redirects never move the page context
        if self.is_auth_redirect(element_url):
            state.seen_auth_redirect = True
            return None

        element_hostname = url_hostname(element_url)
        if not element_hostname:
            return None

        if element_url == state.current_page_url:
            return None

        if self.is_known_iframe_path(element_url):
            return FrameTarget(index, element_url, FrameReason.KNOWN_PATH)

        if state.current_page_hostname and element_hostname != state.current_page_hostname:
            return FrameTarget(index, element_url, FrameReason.CROSS_HOST)

        if self._diverges_from_start(state, element_url):
            return FrameTarget(index, element_url, FrameReason.PATH_DIVERGENCE)

        state.move_to(element_url)
        return None

    def _diverges_from_start(self, state: FrameAnalysisState, element_url: str) -> bool:
        if self.config.path_divergence_requires_auth and not state.seen_auth_redirect:
            return False
        if not state.start_first_path_segment:
            return False
        return first_path_segment(element_url) != state.start_first_path_segment

    def is_auth_redirect(self, url: str) -> bool:
        """Check if the URL is on an identity provider host."""
        hostname = url_hostname(url)
        return bool(hostname) and any(p in hostname for p in self.config.auth_host_patterns)

    def is_known_iframe_path(self, url: str) -> bool:
        """Check if the URL path contains a known iframe segment."""
        path = url_path(url).lower()
        return any(f"/{marker}/" in path for marker in self.config.iframe_path_markers)


def analyze(
    start_url: str | None,
    steps: list[Step],
    config: FrameDetectionConfig | None = None,
) -> FrameVerdict:
    """Convenience wrapper around FrameAnalyzer.analyze."""
    return FrameAnalyzer(config).analyze(start_url, steps)
