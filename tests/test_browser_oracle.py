from __future__ import annotations

import unittest

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from mxfuzz import browser_oracle
from mxfuzz.browser_oracle import PlaywrightOracle
from mxfuzz.errors import OracleUnavailable
from mxfuzz.oracle import ERROR_MARKER


class _DummyPage:
    """Comparison page double: each submission renders the next scripted frame.

    The frame only replaces the rendered results once the ready marker is
    absent and the page is given time to finish (``wait_for_selector``).
    """

    def __init__(self, frames: list[list[dict]], ready_selector: str = "#done") -> None:
        self.frames = list(frames)
        self.ready_selector = ready_selector
        self.ready_attached = False
        self.rendered: list[dict] = []
        self._pending: list[dict] | None = None
        self.submitted: list[str] = []
        self.waits: list[tuple[str, object]] = []

    def evaluate(self, script: str, args: list) -> object:
        if script is browser_oracle._SUBMIT_JS:
            _, _, ready_selector, payload = args
            if ready_selector == self.ready_selector:
                self.ready_attached = False
            self.submitted.append(payload)
            self._pending = self.frames.pop(0)
            return None
        if script is browser_oracle._READ_RESULTS_JS:
            return list(self.rendered)
        raise AssertionError("unexpected script")

    def wait_for_selector(self, selector: str, state: str = "visible", timeout: float = 0) -> None:
        self.waits.append(("selector", selector))
        if self.ready_attached:
            return
        if self._pending is None:
            raise PlaywrightTimeoutError(f"waiting for {selector} exceeded {timeout}ms")
        self.rendered, self._pending = self._pending, None
        self.ready_attached = True

    def wait_for_timeout(self, timeout: float) -> None:
        self.waits.append(("timeout", timeout))
        if self._pending is not None:
            self.rendered, self._pending = self._pending, None


class _FailingPage:
    def evaluate(self, script: str, args: list) -> object:
        raise PlaywrightError("Target page, context or browser has been closed")

    def wait_for_selector(self, selector: str, state: str = "visible", timeout: float = 0) -> None:
        raise PlaywrightError("Target page, context or browser has been closed")

    def wait_for_timeout(self, timeout: float) -> None:
        raise PlaywrightError("Target page, context or browser has been closed")


class _DummyBrowser:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.closed = False

    def close(self) -> None:
        self.closed = True
        if self.fail:
            raise PlaywrightError("browser already gone")


class _DummyPlaywright:
    def __init__(self) -> None:
        self.stopped = False

    def stop(self) -> None:
        self.stopped = True


def _items(**outputs: str) -> list[dict]:
    return [{"sanitizer": name, "output": output} for name, output in outputs.items()]


def _oracle(page, ready_selector=None) -> PlaywrightOracle:
    oracle = PlaywrightOracle(url="http://lab.local/", ready_selector=ready_selector)
    oracle.page = page
    return oracle


class ReadySignalTests(unittest.TestCase):
    def test_each_payload_reads_its_own_results(self) -> None:
        page = _DummyPage(
            [
                _items(dompurify="<b></b>", sanitize_html="<b></b>"),
                _items(dompurify="<i></i>", sanitize_html="<svg></svg>"),
            ]
        )
        oracle = _oracle(page, ready_selector="#done")

        oracle.submit("<b>")
        oracle.settle(0.6)
        first = oracle.collect_results()
        oracle.submit("<i><svg>")
        oracle.settle(0.6)
        second = oracle.collect_results()

        self.assertEqual(first.distinct_count(), 1)
        self.assertEqual(second.outputs, {"dompurify": "<i></i>", "sanitize_html": "<svg></svg>"})
        self.assertEqual(page.submitted, ["<b>", "<i><svg>"])
        self.assertEqual(page.waits, [("selector", "#done"), ("selector", "#done")])

    def test_missing_ready_signal_raises(self) -> None:
        oracle = _oracle(_DummyPage([]), ready_selector="#done")
        with self.assertRaises(OracleUnavailable) as ctx:
            oracle.settle(0.6)
        self.assertIsInstance(ctx.exception.__cause__, PlaywrightTimeoutError)

    def test_fixed_delay_without_ready_selector(self) -> None:
        page = _DummyPage([_items(a="x")])
        oracle = _oracle(page)
        oracle.submit("<b>")
        oracle.settle(0.25)
        oracle.settle(0)
        self.assertEqual(page.waits, [("timeout", 250.0)])


class ResultReadingTests(unittest.TestCase):
    def test_collect_maps_names_to_outputs(self) -> None:
        page = _DummyPage([_items(left="<b></b>", middle=ERROR_MARKER, right="")])
        oracle = _oracle(page)
        oracle.submit("<b>")
        oracle.settle(0.1)

        result = oracle.collect_results()

        self.assertEqual(result.outputs, {"left": "<b></b>", "middle": ERROR_MARKER, "right": ""})
        self.assertEqual(result.valid_outputs(), {"left": "<b></b>"})

    def test_live_count_skips_error_and_empty_outputs(self) -> None:
        page = _DummyPage([_items(a="<p></p>", b=ERROR_MARKER, c="", d="<p></p>")])
        oracle = _oracle(page)
        oracle.submit("<p>")
        oracle.settle(0.1)
        self.assertEqual(oracle.live_sanitizer_count(), 2)


class FailureWrappingTests(unittest.TestCase):
    def test_page_errors_become_oracle_unavailable(self) -> None:
        oracle = _oracle(_FailingPage())
        for call in (
            lambda: oracle.submit("<b>"),
            lambda: oracle.settle(0.1),
            oracle.collect_results,
            oracle.live_sanitizer_count,
        ):
            with self.subTest(call=call):
                with self.assertRaises(OracleUnavailable) as ctx:
                    call()
                self.assertIsInstance(ctx.exception.__cause__, PlaywrightError)

    def test_calls_before_start_are_rejected(self) -> None:
        oracle = PlaywrightOracle(url="http://lab.local/")
        with self.assertRaises(OracleUnavailable):
            oracle.submit("<b>")
        with self.assertRaises(OracleUnavailable):
            oracle.collect_results()


class CloseTests(unittest.TestCase):
    def test_close_stops_playwright_even_if_browser_close_fails(self) -> None:
        oracle = PlaywrightOracle(url="http://lab.local/")
        browser, driver = _DummyBrowser(fail=True), _DummyPlaywright()
        oracle.browser, oracle.playwright, oracle.page = browser, driver, object()

        with self.assertRaises(PlaywrightError):
            oracle.close()

        self.assertTrue(browser.closed)
        self.assertTrue(driver.stopped)
        self.assertIsNone(oracle.page)
        oracle.close()

    def test_close_without_start_is_a_no_op(self) -> None:
        PlaywrightOracle(url="http://lab.local/").close()


if __name__ == "__main__":
    unittest.main()
