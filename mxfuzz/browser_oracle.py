"""Playwright-driven oracle for a sanitizer comparison page.

The target page is expected to expose a text input for the payload, a button
that runs every sanitizer, and one result item per sanitizer holding the
sanitizer name and its output.
"""

from __future__ import annotations

from typing import Any, Optional

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError
from playwright.sync_api import sync_playwright

from mxfuzz.errors import OracleUnavailable
from mxfuzz.oracle import BaseOracle, OracleResult, is_valid_output

_READ_RESULTS_JS = """
([itemSelector, nameSelector, outputSelector]) => {
    return Array.from(document.querySelectorAll(itemSelector)).map(item => {
        const name = item.querySelector(nameSelector);
        const output = item.querySelector(outputSelector);
        return {
            sanitizer: name ? name.textContent.trim() : '',
            output: output ? output.textContent.trim() : '',
        };
    });
}
"""

_SUBMIT_JS = """
([inputSelector, submitSelector, readySelector, payload]) => {
    if (readySelector) {
        document.querySelectorAll(readySelector).forEach(marker => marker.remove());
    }
    document.querySelector(inputSelector).value = payload;
    document.querySelector(submitSelector).click();
}
"""


class PlaywrightOracle(BaseOracle):
    """Headless Chromium session pointed at the sanitizer comparison page."""

    def __init__(
        self,
        url: str,
        headless: bool = True,
        input_selector: str = "#multilineInput",
        submit_selector: str = "button",
        result_selector: str = "#resultsContainer .result-item",
        name_selector: str = "h3",
        output_selector: str = "pre",
        ready_selector: Optional[str] = None,
        navigation_timeout_ms: int = 30000,
        ready_timeout_ms: int = 5000,
    ) -> None:
        self.url = url
        self.headless = headless
        self.input_selector = input_selector
        self.submit_selector = submit_selector
        self.result_selector = result_selector
        self.name_selector = name_selector
        self.output_selector = output_selector
        self.ready_selector = ready_selector
        self.navigation_timeout_ms = int(navigation_timeout_ms)
        self.ready_timeout_ms = int(ready_timeout_ms)
        self.playwright: Any = None
        self.browser: Any = None
        self.page: Any = None

    def start(self) -> "PlaywrightOracle":
        """Launch the browser and load the target page."""

        if self.page is not None:
            return self
        try:
            self.playwright = sync_playwright().start()
            self.browser = self.playwright.chromium.launch(headless=self.headless)
            self.page = self.browser.new_page()
            self.page.goto(self.url, wait_until="load", timeout=self.navigation_timeout_ms)
        except PlaywrightError as exc:
            self.close()
            raise OracleUnavailable(f"Cannot open target page {self.url}: {exc}") from exc
        print(f"[Oracle] loaded {self.url} (headless={self.headless})")
        return self

    def __enter__(self) -> "PlaywrightOracle":
        return self.start()

    def submit(self, genome: str) -> None:
        page = self._require_page()
        try:
            # Stale ready markers are cleared first so settle() waits for this payload.
            page.evaluate(_SUBMIT_JS, [self.input_selector, self.submit_selector, self.ready_selector, genome])
        except PlaywrightError as exc:
            raise OracleUnavailable(f"Payload submission failed: {exc}") from exc

    def settle(self, delay_seconds: float) -> None:
        page = self._require_page()
        try:
            if self.ready_selector:
                page.wait_for_selector(self.ready_selector, state="attached", timeout=self.ready_timeout_ms)
            elif delay_seconds > 0:
                page.wait_for_timeout(delay_seconds * 1000.0)
        except PlaywrightTimeoutError as exc:
            raise OracleUnavailable(
                f"Ready signal {self.ready_selector!r} not seen within {self.ready_timeout_ms}ms"
            ) from exc
        except PlaywrightError as exc:
            raise OracleUnavailable(f"Page became unavailable while settling: {exc}") from exc

    def collect_results(self) -> OracleResult:
        outputs: dict[str, Optional[str]] = {}
        for item in self._read_items():
            outputs[item["sanitizer"]] = item["output"]
        return OracleResult(outputs=outputs)

    def live_sanitizer_count(self) -> int:
        return sum(1 for item in self._read_items() if is_valid_output(item["output"]))

    def close(self) -> None:
        browser, playwright = self.browser, self.playwright
        self.page = self.browser = self.playwright = None
        try:
            if browser is not None:
                browser.close()
        finally:
            if playwright is not None:
                playwright.stop()

    def _read_items(self) -> list[dict[str, str]]:
        page = self._require_page()
        try:
            items = page.evaluate(
                _READ_RESULTS_JS,
                [self.result_selector, self.name_selector, self.output_selector],
            )
        except PlaywrightError as exc:
            raise OracleUnavailable(f"Reading sanitizer results failed: {exc}") from exc
        return [
            {"sanitizer": str(item.get("sanitizer", "")), "output": str(item.get("output", ""))}
            for item in items or []
        ]

    def _require_page(self) -> Any:
        if self.page is None:
            raise OracleUnavailable("Browser oracle is not started; call start() first.")
        return self.page
