import asyncio
import logging
import operator
import re
import time
from typing import Optional, Dict, Any, List

from playwright.async_api import (
    async_playwright,
    Browser,
    BrowserContext,
    Frame,
    Locator,
    Page,
    Playwright,
)

from ..core.errors import StepError, UnsupportedStepError
from ..core.models import Step

logger = logging.getLogger("uirotator.playwright")

MOUSE_BUTTONS = {
    "primary": "left",
    "auxiliary": "middle",
    "secondary": "right",
    "back": "left",
    "forward": "left",
}

COUNT_OPERATORS = {
    "==": operator.eq,
    ">=": operator.ge,
    "<=": operator.le,
}
POLL_INTERVAL_S = 0.1

_ARIA_ROLE = re.compile(r'^(?P<name>.*?)\[role="(?P<role>[^"]+)"\]$')


def _aria_locator(root: Frame, query: str) -> Locator:
    match = _ARIA_ROLE.match(query)
    if match:
        name = match.group("name")
        role = match.group("role")
        if name:
            return root.get_by_role(role, name=name, exact=True)
        return root.get_by_role(role)
    return root.get_by_label(query, exact=True).or_(root.get_by_text(query, exact=True))


def _part_locator(parent: Any, selector: str) -> Locator:
    if selector.startswith("aria/"):
        return _aria_locator(parent, selector[len("aria/"):])
    if selector.startswith("xpath/"):
        return parent.locator("xpath=" + selector[len("xpath/"):])
    if selector.startswith("text/"):
        return parent.get_by_text(selector[len("text/"):])
    if selector.startswith("pierce/"):
        # Playwright CSS already pierces open shadow roots.
        return parent.locator(selector[len("pierce/"):])
    return parent.locator(selector)


def build_locator(root: Frame, selectors: List[Any]) -> Locator:
    """Combine every selector group of a step into one locator.

    Each group is either a single selector or a chain that descends through
    shadow roots; the groups are alternatives for the same element.
    """
    combined: Optional[Locator] = None
    for group in selectors:
        parts = [group] if isinstance(group, str) else list(group)
        if not parts:
            continue
        locator = _part_locator(root, parts[0])
        for part in parts[1:]:
            locator = _part_locator(locator, part)
        combined = locator if combined is None else combined.or_(locator)
    if combined is None:
        raise ValueError("Step has no usable selectors")
    return combined


class PlaywrightEngine:
    """Chromium session that replays recorder steps one at a time."""

    def __init__(self, executable_path: Optional[str] = None, args: Optional[List[str]] = None, headless: bool = True):
        self.executable_path = executable_path
        self.args = list(args or [])
        self.headless = headless
        self._pw: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self._page: Optional[Page] = None

    async def start(self) -> None:
        self._pw = await async_playwright().start()
        launch_args: Dict[str, Any] = {"headless": self.headless, "args": self.args}
        if self.executable_path:
            launch_args["executable_path"] = self.executable_path
        self._browser = await self._pw.chromium.launch(**launch_args)
        self._context = await self._browser.new_context()
        self._page = await self._context.new_page()

    async def stop(self) -> None:
        """Close the context, browser and driver; a failing close does not skip the rest."""
        context, browser, pw = self._context, self._browser, self._pw
        self._page = None
        self._context = None
        self._browser = None
        self._pw = None
        try:
            if context:
                await context.close()
        finally:
            try:
                if browser:
                    await browser.close()
            finally:
                if pw:
                    await pw.stop()

    @property
    def page(self) -> Page:
        if self._page is None:
            raise StepError("session", "Browser session is not started")
        return self._page

    def _frame(self, step: Step) -> Frame:
        frame = self.page.main_frame
        for index in step.get("frame") or []:
            children = frame.child_frames
            if index >= len(children):
                raise StepError(step.type, f"Frame {step.get('frame')} not found")
            frame = children[index]
        return frame

    def _locator(self, step: Step) -> Locator:
        selectors = step.selectors
        if not isinstance(selectors, list) or not selectors:
            raise StepError(step.type, f"Step {step.type} has no selectors")
        return build_locator(self._frame(step), selectors).first

    def _expects_navigation(self, step: Step) -> bool:
        events = step.get("assertedEvents") or []
        return any(isinstance(e, dict) and e.get("type") == "navigation" for e in events)

    async def run_step(self, step: Step, timeout_ms: int) -> None:
        handler = getattr(self, "_step_" + _snake(step.type), None)
        if handler is None:
            raise UnsupportedStepError(step.type)
        if self._expects_navigation(step):
            async with self.page.expect_navigation(timeout=timeout_ms):
                await handler(step, timeout_ms)
        else:
            await handler(step, timeout_ms)

    async def _step_set_viewport(self, step: Step, timeout_ms: int) -> None:
        await self.page.set_viewport_size({"width": int(step.get("width")), "height": int(step.get("height"))})

    async def _step_navigate(self, step: Step, timeout_ms: int) -> None:
        await self.page.goto(step.get("url"), timeout=timeout_ms)

    def _click_options(self, step: Step, timeout_ms: int) -> Dict[str, Any]:
        options: Dict[str, Any] = {"timeout": timeout_ms}
        if step.get("offsetX") is not None and step.get("offsetY") is not None:
            options["position"] = {"x": step.get("offsetX"), "y": step.get("offsetY")}
        button = step.get("button")
        if button:
            options["button"] = MOUSE_BUTTONS.get(button, "left")
        if step.get("duration"):
            options["delay"] = step.get("duration")
        return options

    async def _step_click(self, step: Step, timeout_ms: int) -> None:
        await self._locator(step).click(**self._click_options(step, timeout_ms))

    async def _step_double_click(self, step: Step, timeout_ms: int) -> None:
        options = self._click_options(step, timeout_ms)
        options.pop("delay", None)
        await self._locator(step).dblclick(**options)

    async def _step_hover(self, step: Step, timeout_ms: int) -> None:
        await self._locator(step).hover(timeout=timeout_ms)

    async def _step_change(self, step: Step, timeout_ms: int) -> None:
        locator = self._locator(step)
        value = step.value if step.value is not None else ""
        tag = await locator.evaluate("el => el.tagName", timeout=timeout_ms)
        if str(tag).upper() == "SELECT":
            await locator.select_option(value, timeout=timeout_ms)
        else:
            await locator.fill(value, timeout=timeout_ms)

    async def _step_key_down(self, step: Step, timeout_ms: int) -> None:
        await self.page.keyboard.down(step.get("key"))

    async def _step_key_up(self, step: Step, timeout_ms: int) -> None:
        await self.page.keyboard.up(step.get("key"))

    async def _step_scroll(self, step: Step, timeout_ms: int) -> None:
        x = step.get("x", 0)
        y = step.get("y", 0)
        if step.selectors:
            await self._locator(step).evaluate("(el, [x, y]) => el.scroll(x, y)", [x, y], timeout=timeout_ms)
        else:
            await self._frame(step).evaluate("([x, y]) => window.scroll(x, y)", [x, y])

    async def _step_wait_for_element(self, step: Step, timeout_ms: int) -> None:
        op = step.get("operator", ">=")
        count = step.get("count", 1)
        visible = step.get("visible", True)
        if op == ">=" and count == 1:
            await self._locator(step).wait_for(state="visible" if visible else "attached", timeout=timeout_ms)
            return

        compare = COUNT_OPERATORS.get(op)
        if compare is None:
            raise StepError(step.type, f"Unknown waitForElement operator: {op}")
        matches = build_locator(self._frame(step), step.selectors)
        if visible:
            # Chained "visible" engine narrows the current matches.
            matches = matches.locator("visible=true")
        deadline = time.monotonic() + timeout_ms / 1000.0
        while True:
            found = await matches.count()
            if compare(found, count):
                return
            if time.monotonic() >= deadline:
                raise StepError(step.type, f"Expected {op} {count} elements, found {found}")
            await asyncio.sleep(POLL_INTERVAL_S)

    async def _step_wait_for_expression(self, step: Step, timeout_ms: int) -> None:
        await self._frame(step).wait_for_function(step.get("expression"), timeout=timeout_ms)

    async def _step_emulate_network_conditions(self, step: Step, timeout_ms: int) -> None:
        assert self._context is not None
        session = await self._context.new_cdp_session(self.page)
        await session.send("Network.emulateNetworkConditions", {
            "offline": False,
            "latency": step.get("latency", 0),
            "downloadThroughput": step.get("download", -1),
            "uploadThroughput": step.get("upload", -1),
        })

    async def _step_close(self, step: Step, timeout_ms: int) -> None:
        await self.page.close()

    async def _step_custom_step(self, step: Step, timeout_ms: int) -> None:
        logger.debug("Skipping custom step %s", step.get("name"))


def _snake(name: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()
