# drivers.py
# Low-level browser capability consumed by the executor.
#
# Drivers address the page exclusively through data-agent-* annotations
# derived from semantic names. Every driver failure surfaces as
# ExecutionFault. One driver instance belongs to one in-flight execution.

import re
from typing import Any, Callable, Protocol
from urllib.parse import urlparse

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import Page

from agent_actions.errors import ExecutionFault
from agent_actions.models import DiscoveredAction

_NAME_RE = re.compile(r"^[\w.-]+$")
STATUS_SETTLE_MS = 500

# Runs in the page. Mirrors the annotation conventions: top-level actions
# have at most one dot; "<action>.<verb>" children are submit controls.
DISCOVER_SCRIPT = """
() => {
  const results = [];
  const seen = new Set();
  document.querySelectorAll('[data-agent-kind="action"][data-agent-action]').forEach((el) => {
    const name = el.getAttribute('data-agent-action');
    if (name.split('.').length > 2 || seen.has(name)) return;
    seen.add(name);
    const fields = [];
    const optionsOf = (f) => f.tagName.toLowerCase() === 'select'
      ? Array.from(f.querySelectorAll('option')).map((o) => o.value).filter((v) => v)
      : [];
    el.querySelectorAll('[data-agent-kind="field"]').forEach((f) => {
      fields.push({ field: f.getAttribute('data-agent-field'), tagName: f.tagName.toLowerCase(), options: optionsOf(f) });
    });
    document.querySelectorAll(`[data-agent-kind="field"][data-agent-for-action="${name}"]`).forEach((f) => {
      const fieldName = f.getAttribute('data-agent-field');
      if (!fields.some((x) => x.field === fieldName)) {
        fields.push({ field: fieldName, tagName: f.tagName.toLowerCase(), forAction: name, options: optionsOf(f) });
      }
    });
    const statuses = [];
    el.querySelectorAll('[data-agent-kind="status"]').forEach((s) => {
      statuses.push({ output: s.getAttribute('data-agent-output'), tagName: s.tagName.toLowerCase() });
    });
    let submitAction = null;
    el.querySelectorAll('[data-agent-kind="action"]').forEach((sub) => {
      const subAction = sub.getAttribute('data-agent-action');
      if (subAction && subAction.startsWith(name + '.')) submitAction = subAction;
    });
    results.push({
      action: name,
      kind: 'action',
      danger: el.getAttribute('data-agent-danger'),
      confirm: el.getAttribute('data-agent-confirm'),
      scope: el.getAttribute('data-agent-scope'),
      idempotent: el.getAttribute('data-agent-idempotent'),
      fields,
      statuses,
      submitAction,
    });
  });
  return results;
}
"""

READ_STATUS_SCRIPT = """
() => {
  const el = document.querySelector('[data-agent-kind="status"]');
  if (!el) return null;
  return [el.getAttribute('data-agent-output') || '', (el.textContent || '').trim()];
}
"""


class BrowserDriver(Protocol):
    def current_url(self) -> str: ...

    def has_semantic_elements(self) -> bool: ...

    def discover_actions(self) -> list[DiscoveredAction]: ...

    def navigate(self, url: str) -> None: ...

    def fill(self, field: str, value: Any) -> None: ...

    def click(self, action: str) -> None: ...

    def read_status(self) -> tuple[str, str] | None: ...


def _checked_name(name: str) -> str:
    if not _NAME_RE.match(name):
        raise ExecutionFault(f"Refusing to address element with unsafe name {name!r}")
    return name


# ---------------------------------------------------------------------------
# Playwright
# ---------------------------------------------------------------------------


class PlaywrightDriver:
    """Drives a Playwright sync ``Page`` through its semantic annotations."""

    def __init__(self, page: Page) -> None:
        self._page = page

    def current_url(self) -> str:
        return self._page.url

    def has_semantic_elements(self) -> bool:
        try:
            return self._page.locator("[data-agent-kind]").count() > 0
        except PlaywrightError as exc:
            raise ExecutionFault(f"Detection failed: {exc}") from exc

    def discover_actions(self) -> list[DiscoveredAction]:
        try:
            raw = self._page.evaluate(DISCOVER_SCRIPT)
        except PlaywrightError as exc:
            raise ExecutionFault(f"Discovery failed: {exc}") from exc
        return [DiscoveredAction.model_validate(item) for item in raw]

    def navigate(self, url: str) -> None:
        try:
            self._page.goto(url, wait_until="networkidle")
        except PlaywrightError as exc:
            raise ExecutionFault(f"Navigation to {url} failed: {exc}") from exc

    def fill(self, field: str, value: Any) -> None:
        selector = f'[data-agent-field="{_checked_name(field)}"]'
        try:
            element = self._page.query_selector(selector)
            if element is None:
                raise ExecutionFault(f'Field "{field}" not found on page')
            tag = element.evaluate("(el) => el.tagName.toLowerCase()")
            input_type = element.get_attribute("type") or ""

            if tag == "select":
                self._page.select_option(selector, str(value))
            elif tag == "input" and input_type in ("checkbox", "radio"):
                self._page.set_checked(selector, bool(value))
            elif tag in ("input", "textarea"):
                self._page.fill(selector, str(value))
            else:
                raise ExecutionFault(f'Field "{field}" is a <{tag}> and cannot be filled')
        except PlaywrightError as exc:
            raise ExecutionFault(f'Filling "{field}" failed: {exc}') from exc

    def click(self, action: str) -> None:
        try:
            self._page.click(f'[data-agent-action="{_checked_name(action)}"]')
            self._page.wait_for_timeout(STATUS_SETTLE_MS)
        except PlaywrightError as exc:
            raise ExecutionFault(f'Clicking "{action}" failed: {exc}') from exc

    def read_status(self) -> tuple[str, str] | None:
        try:
            raw = self._page.evaluate(READ_STATUS_SCRIPT)
        except PlaywrightError as exc:
            raise ExecutionFault(f"Reading status failed: {exc}") from exc
        if not raw:
            return None
        output, text = raw
        return output, text


# ---------------------------------------------------------------------------
# In-memory double
# ---------------------------------------------------------------------------


class MemoryDriver:
    """
    Headless driver over an in-memory site. Used for tests and dry runs.

    ``pages`` maps a path to the actions shown there. ``statuses`` maps a
    clicked action to the (output, text) status it produces, or to a
    callable receiving the filled values. Names in ``fail_on`` (field or
    action names, or a step type like "navigate") raise ExecutionFault.
    """

    def __init__(
        self,
        pages: dict[str, list[DiscoveredAction]] | None = None,
        statuses: dict[str, tuple[str, str] | Callable[[dict[str, Any]], tuple[str, str]]] | None = None,
        start_url: str = "http://localhost/",
        fail_on: tuple[str, ...] = (),
    ) -> None:
        self.pages = pages or {}
        self.statuses = statuses or {}
        self.url = start_url
        self.fail_on = set(fail_on)
        self.values: dict[str, Any] = {}
        self.calls: list[tuple[str, ...]] = []
        self._last_click: str | None = None

    def _maybe_fail(self, step: str, name: str) -> None:
        if step in self.fail_on or name in self.fail_on:
            raise ExecutionFault(f"{step} {name} failed")

    def current_url(self) -> str:
        return self.url

    def has_semantic_elements(self) -> bool:
        return bool(self.pages.get(urlparse(self.url).path))

    def discover_actions(self) -> list[DiscoveredAction]:
        return list(self.pages.get(urlparse(self.url).path, []))

    def navigate(self, url: str) -> None:
        self._maybe_fail("navigate", url)
        self.calls.append(("navigate", url))
        self.url = url
        self.values.clear()
        self._last_click = None

    def fill(self, field: str, value: Any) -> None:
        self._maybe_fail("fill", field)
        self.calls.append(("fill", field))
        self.values[field] = value

    def click(self, action: str) -> None:
        self._maybe_fail("click", action)
        self.calls.append(("click", action))
        self._last_click = action

    def read_status(self) -> tuple[str, str] | None:
        self._maybe_fail("read_status", self._last_click or "")
        self.calls.append(("read_status",))
        if self._last_click is None:
            return None
        status = self.statuses.get(self._last_click)
        if callable(status):
            return status(dict(self.values))
        return status
