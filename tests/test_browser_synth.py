"""Tests for browser spec synthesis."""

import pytest

from step_translator.config import Config, ScriptConfig
from step_translator.models import (
    BrowserTest,
    CheckMode,
    ElementActionParams,
    ElementContentParams,
    ElementDescriptor,
    EmbeddedRequestParams,
    KeyPressParams,
    MultiLocator,
    NavigateParams,
    PageTextParams,
    ScrollParams,
    Step,
    StepType,
    UnsupportedParams,
    UrlCheckParams,
    WaitParams,
)
from step_translator.synth.browser import (
    MANUAL_LOCATOR,
    TEMPLATES,
    BrowserSpecSynthesizer,
    synthesize,
)

WIDGET_URL = "https://cdn.example/frames/widget.html"


def element(html: str | None = None, url: str | None = None) -> ElementDescriptor:
    return ElementDescriptor(target_outer_html=html, url=url)


def browser_test(*steps: Step, start_url: str | None = None, name: str = "Sample") -> BrowserTest:
    return BrowserTest(public_id="t-1", name=name, steps=list(steps), start_url=start_url)


def content_step(allow_failure: bool = False, check: CheckMode = CheckMode.EQUALS, value: str = "42") -> Step:
    return Step(
        StepType.ASSERT_ELEMENT_CONTENT,
        name="Test total",
        allow_failure=allow_failure,
        params=ElementContentParams(element=element('<td id="total">42</td>'), value=value, check=check),
    )


def lines_of(text: str) -> list[str]:
    return [line.strip() for line in text.splitlines()]


class TestEndToEnd:
    def test_navigate_then_type(self):
        script = synthesize(browser_test(
            Step(StepType.NAVIGATE, name="Open login", params=NavigateParams("https://app.example/login")),
            Step(
                StepType.TYPE_TEXT,
                name='Type text on input "email"',
                params=ElementActionParams(element=element('<input id="email">'), value="user@x.com"),
            ),
        ))

        lines = lines_of(script.text)
        goto = [i for i, line in enumerate(lines) if "page.goto(" in line]
        fill = [i for i, line in enumerate(lines) if ".fill(" in line]

        assert len(goto) == 1
        assert len(fill) == 1
        assert goto[0] < fill[0]
        assert lines[goto[0]] == "await page.goto(`https://app.example/login`);"
        assert lines[fill[0]] == 'await page.locator("#email").fill(`user@x.com`);'
        assert "findInFrame" not in script.text
        assert script.frame_verdict == {}
        assert not script.has_iframes

    def test_single_step_in_iframe(self):
        script = synthesize(browser_test(
            Step(
                StepType.CLICK,
                name='Click on button "Open"',
                params=ElementActionParams(element=element('<button id="open">Open</button>', WIDGET_URL)),
            ),
            start_url="https://app.example/",
        ))

        lines = lines_of(script.text)
        assert script.text.count("await findInFrame(") == 1
        assert 'const buttonOpen = await findInFrame(page, "#open");' in lines
        assert "await buttonOpen.click();" in lines
        assert lines.index('const buttonOpen = await findInFrame(page, "#open");') < lines.index(
            "await buttonOpen.click();"
        )
        assert "// May be inside an iframe (/frames/widget.html), searching frames first" in lines
        assert 'import { findInFrame } from "../helpers";' in lines
        assert script.frame_step_count == 1
        assert script.has_iframes


class TestScriptLayout:
    def test_header_and_timeout(self):
        text = synthesize(browser_test(name='Checkout "EU"')).text
        assert text.startswith('import { test, expect } from "@playwright/test";\n')
        assert 'test.describe("Checkout \\"EU\\"", () => {' in text
        assert 'test("Checkout \\"EU\\"", async ({ page }) => {' in text
        assert "test.setTimeout(120_000);" in text
        assert text.endswith("});\n")

    def test_custom_timeout_and_helper(self):
        config = Config(script=ScriptConfig(test_timeout_ms=60000, helper_module="frames"))
        step = Step(StepType.CLICK, name="Click", params=ElementActionParams(element=element('<a id="x">', WIDGET_URL)))
        text = BrowserSpecSynthesizer(config).synthesize(browser_test(step, start_url="https://app.example/")).text
        assert "test.setTimeout(60_000);" in text
        assert 'import { findInFrame } from "../frames";' in text

    def test_step_comments_follow_source_order(self):
        text = synthesize(browser_test(
            Step(StepType.WAIT, name="Pause", params=WaitParams(2000)),
            Step(StepType.REFRESH, name="Reload"),
            Step(StepType.PRESS_KEY, name="Submit  form\nnow"),
        )).text
        positions = [text.index(f"// Step {n}:") for n in (1, 2, 3)]
        assert positions == sorted(positions)
        assert "// Step 3: Submit form now" in text

    def test_start_navigation_inserted(self):
        text = synthesize(browser_test(
            Step(StepType.CLICK, name="Click", params=ElementActionParams(element=element('<a id="go">'))),
            start_url="https://app.example/home",
        )).text
        assert "// Navigate to start URL" in text
        assert text.index("page.goto(`https://app.example/home`)") < text.index("// Step 1:")

    def test_start_navigation_not_duplicated(self):
        text = synthesize(browser_test(
            Step(StepType.NAVIGATE, params=NavigateParams("https://app.example/home/")),
            start_url="https://app.example/home",
        )).text
        assert text.count("page.goto(") == 1
        assert "// Navigate to start URL" not in text

    def test_start_navigation_when_first_goto_differs(self):
        text = synthesize(browser_test(
            Step(StepType.NAVIGATE, params=NavigateParams("https://app.example/other")),
            start_url="https://app.example/home",
        )).text
        assert text.count("page.goto(") == 2


class TestSoftAssertions:
    def test_allow_failure_is_soft(self):
        text = synthesize(browser_test(content_step(allow_failure=True))).text
        assert 'await expect.soft(page.locator("#total")).toHaveText("42");' in text

    def test_hard_by_default(self):
        step = Step(
            StepType.ASSERT_ELEMENT_CONTENT,
            params=ElementContentParams(element=element('<td id="total">'), value="42", check=CheckMode.EQUALS),
        )
        text = synthesize(browser_test(step)).text
        assert 'await expect(page.locator("#total")).toHaveText("42");' in text
        assert "expect.soft" not in text

    def test_explicit_hard(self):
        text = synthesize(browser_test(content_step(allow_failure=False))).text
        assert "expect.soft" not in text


class TestTemplates:
    def test_table_is_total(self):
        assert set(TEMPLATES) == set(StepType)

    @pytest.mark.parametrize("check, expected", [
        (CheckMode.CONTAINS, 'await expect(page.locator("#total")).toContainText("Total: $5");'),
        (CheckMode.EQUALS, 'await expect(page.locator("#total")).toHaveText("Total: $5");'),
        (CheckMode.STARTS_WITH, r'await expect(page.locator("#total")).toHaveText(/^Total: \$5/);'),
        (CheckMode.NOT_CONTAINS, 'await expect(page.locator("#total")).not.toContainText("Total: $5");'),
    ])
    def test_content_checks(self, check, expected):
        text = synthesize(browser_test(content_step(check=check, value="Total: $5"))).text
        assert expected in lines_of(text)

    @pytest.mark.parametrize("check, expected", [
        (CheckMode.CONTAINS, r"await expect(page).toHaveURL(/\/dashboard/);"),
        (CheckMode.EQUALS, 'await expect(page).toHaveURL("/dashboard");'),
        (CheckMode.STARTS_WITH, r"await expect(page).toHaveURL(/^\/dashboard/);"),
        (CheckMode.NOT_CONTAINS, r"await expect(page).not.toHaveURL(/\/dashboard/);"),
    ])
    def test_url_checks(self, check, expected):
        step = Step(StepType.ASSERT_CURRENT_URL, params=UrlCheckParams("/dashboard", check))
        assert expected in lines_of(synthesize(browser_test(step)).text)

    def test_url_contains_with_variable(self):
        step = Step(StepType.ASSERT_CURRENT_URL, params=UrlCheckParams("{{ BASE_PATH }}/dashboard", CheckMode.CONTAINS))
        text = synthesize(browser_test(step)).text
        assert r"await expect(page).toHaveURL(new RegExp(`${process.env.BASE_PATH}\\/dashboard`));" in lines_of(text)

    def test_url_not_contains_with_variable(self):
        step = Step(StepType.ASSERT_CURRENT_URL, params=UrlCheckParams("/a.b/{{ TENANT }}", CheckMode.NOT_CONTAINS))
        text = synthesize(browser_test(step)).text
        assert r"await expect(page).not.toHaveURL(new RegExp(`\\/a\\.b\\/${process.env.TENANT}`));" in lines_of(text)

    def test_starts_with_variable(self):
        text = synthesize(browser_test(
            content_step(check=CheckMode.STARTS_WITH, value="{{ GREETING }} there")
        )).text
        expected = 'await expect(page.locator("#total")).toHaveText(new RegExp(`^${process.env.GREETING} there`));'
        assert expected in lines_of(text)
        assert "{{" not in text

    def test_page_contains_with_variable(self):
        step = Step(StepType.ASSERT_PAGE_CONTAINS, params=PageTextParams("Hello {{ USER_NAME }}"))
        text = synthesize(browser_test(step)).text
        assert 'await expect(page.locator("body")).toContainText(`Hello ${process.env.USER_NAME}`);' in text

    def test_fill_with_variable(self):
        step = Step(
            StepType.TYPE_TEXT,
            params=ElementActionParams(element=element('<input name="password">'), value="{{ PASSWORD }}"),
        )
        text = synthesize(browser_test(step)).text
        assert 'await page.locator("[name=\\"password\\"]").fill(`${process.env.PASSWORD}`);' in text

    def test_template_literal_escaping(self):
        step = Step(
            StepType.TYPE_TEXT,
            params=ElementActionParams(element=element('<input id="q">'), value="cost `${x}`"),
        )
        text = synthesize(browser_test(step)).text
        assert r"fill(`cost \`\${x}\``);" in text

    def test_simple_actions(self):
        lines = lines_of(synthesize(browser_test(
            Step(StepType.HOVER, params=ElementActionParams(element=element('<nav id="menu">'))),
            Step(StepType.SELECT_OPTION, params=ElementActionParams(element=element('<select id="c">'), value="NL")),
            Step(StepType.PRESS_KEY, params=KeyPressParams("Tab")),
            Step(StepType.PRESS_KEY),
            Step(StepType.WAIT, params=WaitParams(2500)),
            Step(StepType.REFRESH),
            Step(StepType.SCROLL, params=ScrollParams(0, 500)),
            Step(StepType.ASSERT_ELEMENT_PRESENT, params=ElementActionParams(element=element('<img id="logo">'))),
        )).text)

        assert 'await page.locator("#menu").hover();' in lines
        assert 'await page.locator("#c").selectOption(`NL`);' in lines
        assert 'await page.keyboard.press("Tab");' in lines
        assert 'await page.keyboard.press("Enter");' in lines
        assert "await page.waitForTimeout(2500);" in lines
        assert "await page.reload();" in lines
        assert "await page.evaluate(() => window.scrollBy(0, 500));" in lines
        assert 'await expect(page.locator("#logo")).toBeVisible();' in lines

    def test_text_and_xpath_locators(self):
        lines = lines_of(synthesize(browser_test(
            Step(StepType.CLICK, params=ElementActionParams(element=ElementDescriptor(
                multi_locator=MultiLocator(co='[{"text": "Sign \\"in\\""}]'),
            ))),
        )).text)
        assert 'await page.getByText("Sign \\"in\\"").click();' in lines

    def test_embedded_api_tests_get_unique_names(self):
        lines = lines_of(synthesize(browser_test(
            Step(StepType.RUN_API_TEST, params=EmbeddedRequestParams("GET", "https://api.example/health")),
            Step(StepType.RUN_API_TEST, allow_failure=True, params=EmbeddedRequestParams("OPTIONS", "{{ API }}/x")),
        )).text)

        assert "const apiResponse = await page.request.get(`https://api.example/health`);" in lines
        assert "await expect(apiResponse).toBeOK();" in lines
        assert (
            'const apiResponse2 = await page.request.fetch(`${process.env.API}/x`, { method: "OPTIONS" });'
            in lines
        )
        assert "await expect.soft(apiResponse2).toBeOK();" in lines


class TestRecovery:
    def test_unsupported_step(self):
        step = Step(StepType.UNSUPPORTED, name="Extract", raw_type="extractVariable", params=UnsupportedParams({"x": 1}))
        script = synthesize(browser_test(step, Step(StepType.REFRESH)))
        assert '// TODO: Unsupported step type "extractVariable" - manual conversion required' in script.text
        assert "await page.reload();" in script.text
        assert script.unsupported_step_count == 1

    def test_missing_locator_placeholder(self):
        step = Step(StepType.CLICK, name="Click on it", params=ElementActionParams(element=None))
        script = synthesize(browser_test(step))
        assert f"await {MANUAL_LOCATOR}.click();" in script.text
        assert script.manual_locator_count == 1

    def test_missing_locator_in_iframe_is_not_captured(self):
        step = Step(StepType.CLICK, params=ElementActionParams(element=element("<div>", WIDGET_URL)))
        script = synthesize(browser_test(step, start_url="https://app.example/"))
        assert 0 in script.frame_verdict
        assert script.frame_step_count == 0
        assert "findInFrame" not in script.text
        assert MANUAL_LOCATOR in script.text

    def test_wrong_params_rejected(self):
        with pytest.raises(TypeError):
            Step(StepType.CLICK, params=WaitParams(10))


class TestFrameCaptureNames:
    def frame_click(self, name: str, html: str = '<button id="open">') -> Step:
        return Step(StepType.CLICK, name=name, params=ElementActionParams(element=element(html, WIDGET_URL)))

    def test_duplicate_names_get_suffix(self):
        text = synthesize(browser_test(
            self.frame_click('Click on button "Open"'),
            self.frame_click('Click on button "Open"'),
            start_url="https://app.example/",
        )).text
        assert "const buttonOpen = " in text
        assert "const buttonOpen2 = " in text
        assert "await buttonOpen2.click();" in text

    def test_reserved_names_adjusted(self):
        text = synthesize(browser_test(
            self.frame_click("Click on page"),
            start_url="https://app.example/",
        )).text
        assert "const pageElement = await findInFrame(page, " in text

    def test_text_locator_inside_frame(self):
        step = Step(
            StepType.ASSERT_ELEMENT_CONTENT,
            name='Test div "Recent Reports..."',
            allow_failure=True,
            params=ElementContentParams(
                element=ElementDescriptor(
                    multi_locator=MultiLocator(co='[{"text": "Recent Reports"}]'),
                    url=WIDGET_URL,
                ),
                value="Reports",
            ),
        )
        lines = lines_of(synthesize(browser_test(step, start_url="https://app.example/")).text)
        assert 'const divRecentReports = await findInFrame(page, "text=Recent Reports");' in lines
        assert 'await expect.soft(divRecentReports).toContainText("Reports");' in lines
