from contextlib import contextmanager
from unittest.mock import MagicMock, patch

import pytest
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError


@pytest.fixture(autouse=True)
def no_metrics_redis():
    # Counters are best-effort; keep them off a real Redis in every test.
    with patch("dispute_triage.observability.metrics.get_redis", return_value=MagicMock()):
        yield


class FakeElement:
    def __init__(self, text):
        self._text = text

    def text_content(self):
        return self._text


class FakePage:
    """
    Scriptable stand-in for a Playwright page.

    present   selectors query_selector() finds (value is the element text)
    on_click  selector -> list of callables, one consumed per click
    timeouts  selectors whose wait_for_selector() times out
    """

    def __init__(self, present=None, on_click=None, timeouts=None, title="Home"):
        self.present = dict(present or {})
        self.on_click = {k: list(v) for k, v in (on_click or {}).items()}
        self.timeouts = set(timeouts or [])
        self._title = title
        self.calls = []
        self.goto_error = None

    def goto(self, url, **kwargs):
        self.calls.append(("goto", url))
        if self.goto_error is not None:
            raise self.goto_error

    def wait_for_selector(self, selector, **kwargs):
        self.calls.append(("wait_for_selector", selector))
        if selector in self.timeouts:
            raise PlaywrightTimeoutError(f"Timeout waiting for {selector}")

    def query_selector(self, selector):
        if selector in self.present:
            return FakeElement(self.present[selector])
        return None

    def fill(self, selector, value):
        self.calls.append(("fill", selector, value))

    def click(self, selector):
        self.calls.append(("click", selector))
        hooks = self.on_click.get(selector)
        if hooks:
            hooks.pop(0)(self)

    def select_option(self, selector, value):
        self.calls.append(("select_option", selector, value))

    def title(self):
        return self._title

    @contextmanager
    def expect_navigation(self, **kwargs):
        yield

    def clicked(self, selector):
        return [c for c in self.calls if c == ("click", selector)]


@pytest.fixture
def fake_page():
    return FakePage
