"""Device emulation and synthetic touch gestures on a Playwright page."""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional

from playwright.async_api import BrowserContext, Error as PlaywrightError, Page

from webqa.mobile.devices import BREAKPOINTS, DeviceProfile, get_device

logger = logging.getLogger(__name__)

BREAKPOINT_HEIGHT = 800

PINCH_SCRIPT = """
({ centerX, centerY, scale, duration }) => {
    const touch = (id, x) => new Touch({ identifier: id, target: document.body, clientX: x, clientY: centerY });
    const start = [touch(0, centerX - 50), touch(1, centerX + 50)];
    document.body.dispatchEvent(new TouchEvent('touchstart', { touches: start, changedTouches: start, bubbles: true }));
    setTimeout(() => {
        const moved = [touch(0, centerX - 50 * scale), touch(1, centerX + 50 * scale)];
        document.body.dispatchEvent(new TouchEvent('touchmove', { touches: moved, changedTouches: moved, bubbles: true }));
    }, duration / 2);
    setTimeout(() => {
        document.body.dispatchEvent(new TouchEvent('touchend', { touches: [], changedTouches: start, bubbles: true }));
    }, duration);
}
"""

SHAKE_SCRIPT = """
() => {
    const event = new DeviceMotionEvent('devicemotion', {
        acceleration: { x: 10, y: 10, z: 10 },
        accelerationIncludingGravity: { x: 10, y: 10, z: 10 },
        rotationRate: { alpha: 0, beta: 0, gamma: 0 },
        interval: 16
    });
    window.dispatchEvent(event);
}
"""

IN_VIEWPORT_SCRIPT = """
(element) => {
    const rect = element.getBoundingClientRect();
    return rect.top >= 0 && rect.left >= 0
        && rect.bottom <= window.innerHeight && rect.right <= window.innerWidth;
}
"""

DEVICE_INFO_SCRIPT = """
() => ({
    userAgent: navigator.userAgent,
    devicePixelRatio: window.devicePixelRatio,
    touchSupport: 'ontouchstart' in window
})
"""


def interpolate(start: tuple[float, float], end: tuple[float, float], steps: int) -> list[tuple[float, float]]:
    """Return ``steps`` evenly spaced points from just after ``start`` to ``end``."""
    if steps < 1:
        raise ValueError("steps must be at least 1")
    (x0, y0), (x1, y1) = start, end
    return [(x0 + (x1 - x0) * i / steps, y0 + (y1 - y0) * i / steps) for i in range(1, steps + 1)]


class MobileHelper:
    """Emulates devices on an existing page and drives touch-style gestures.

    Viewport and user agent are applied to the live page. The pixel ratio
    can only be overridden for pages created after the call, through the
    context's init script.
    """

    def __init__(
        self,
        page: Page,
        context: Optional[BrowserContext] = None,
        screenshot_dir: Path | str = "screenshots",
    ):
        self.page = page
        self.context = context
        self.screenshot_dir = Path(screenshot_dir)
        self.current_device: Optional[DeviceProfile] = None

    async def set_device(self, name: str) -> DeviceProfile:
        """Emulate a catalog device by name.

        Raises:
            KeyError: If the device is unknown
        """
        device = get_device(name)
        await self.set_custom_device(device)
        return device

    async def set_custom_device(self, device: DeviceProfile) -> None:
        self.current_device = device
        await self.page.set_viewport_size(device.viewport)
        await self.page.set_extra_http_headers({"User-Agent": device.user_agent})

        if self.context is not None:
            await self.context.add_init_script(
                "Object.defineProperty(window, 'devicePixelRatio', "
                f"{{ get() {{ return {device.device_scale_factor}; }} }});"
            )

        logger.info(f"Device emulation set to: {device.name} ({device.width}x{device.height})")

    async def rotate_device(self) -> DeviceProfile:
        """Toggle between portrait and landscape.

        Raises:
            RuntimeError: If no device has been set
        """
        if self.current_device is None:
            raise RuntimeError("No device set for rotation")

        device = self.current_device
        rotated = device.landscape() if device.orientation == "portrait" else device.portrait()
        await self.set_custom_device(rotated)
        logger.info(f"Device rotated to: {rotated.orientation}")
        return rotated

    async def tap(self, selector: str, timeout_ms: Optional[float] = None) -> None:
        await self.page.locator(selector).tap(timeout=timeout_ms)
        logger.debug(f"Tapped on: {selector}")

    async def double_tap(self, selector: str) -> None:
        await self.page.locator(selector).dblclick()
        logger.debug(f"Double tapped on: {selector}")

    async def long_press(self, selector: str, duration_ms: int = 1000) -> None:
        box = await self.page.locator(selector).bounding_box()
        if not box:
            raise RuntimeError(f"Element not found for long press: {selector}")
        await self.page.mouse.move(box["x"] + box["width"] / 2, box["y"] + box["height"] / 2)
        await self.page.mouse.down()
        await self.page.wait_for_timeout(duration_ms)
        await self.page.mouse.up()

    async def swipe_by_coordinates(
        self,
        start_x: float,
        start_y: float,
        end_x: float,
        end_y: float,
        steps: int = 10,
        duration_ms: float = 1000,
    ) -> None:
        """Drag from one point to another in ``steps`` moves spread over ``duration_ms``."""
        await self.page.mouse.move(start_x, start_y)
        await self.page.mouse.down()
        for x, y in interpolate((start_x, start_y), (end_x, end_y), steps):
            await self.page.mouse.move(x, y)
            await self.page.wait_for_timeout(duration_ms / steps)
        await self.page.mouse.up()
        logger.debug(f"Swiped from ({start_x}, {start_y}) to ({end_x}, {end_y})")

    async def swipe(self, from_selector: str, to_selector: str, steps: int = 10, duration_ms: float = 1000) -> None:
        """Swipe between the centres of two elements."""
        from_box = await self.page.locator(from_selector).bounding_box()
        to_box = await self.page.locator(to_selector).bounding_box()
        if not from_box or not to_box:
            raise RuntimeError("Elements not found for swipe")

        await self.swipe_by_coordinates(
            from_box["x"] + from_box["width"] / 2,
            from_box["y"] + from_box["height"] / 2,
            to_box["x"] + to_box["width"] / 2,
            to_box["y"] + to_box["height"] / 2,
            steps=steps,
            duration_ms=duration_ms,
        )

    async def pinch_zoom(self, center_x: float, center_y: float, scale: float, duration_ms: float = 1000) -> None:
        await self.page.evaluate(
            PINCH_SCRIPT,
            {"centerX": center_x, "centerY": center_y, "scale": scale, "duration": duration_ms},
        )
        logger.debug(f"Pinch zoom at ({center_x}, {center_y}) with scale {scale}")

    async def shake_device(self) -> None:
        await self.page.evaluate(SHAKE_SCRIPT)

    async def test_responsive_breakpoints(
        self,
        check: Callable[[str, int], Awaitable[Any]],
        breakpoints: Optional[list[tuple[str, int]]] = None,
    ) -> dict[str, Any]:
        """Resize through each breakpoint and run ``check(name, width)``.

        Returns:
            Mapping of breakpoint name to the check's return value
        """
        results = {}
        for name, width in breakpoints or BREAKPOINTS:
            logger.info(f"Testing breakpoint: {name} ({width}px)")
            await self.page.set_viewport_size({"width": width, "height": BREAKPOINT_HEIGHT})
            results[name] = await check(name, width)
        return results

    async def is_element_in_viewport(self, selector: str) -> bool:
        return await self.page.locator(selector).evaluate(IN_VIEWPORT_SCRIPT)

    async def scroll_into_view(self, selector: str) -> None:
        await self.page.locator(selector).scroll_into_view_if_needed()

    async def get_device_info(self) -> dict[str, Any]:
        info = await self.page.evaluate(DEVICE_INFO_SCRIPT)
        return {"viewport": self.page.viewport_size or {"width": 0, "height": 0}, **info}

    async def take_screenshot(self, name: str, full_page: bool = False) -> Path:
        timestamp = datetime.now().strftime("%Y-%m-%dT%H-%M-%S-%f")
        device = (self.current_device.name if self.current_device else "unknown-device").replace(" ", "_")
        self.screenshot_dir.mkdir(parents=True, exist_ok=True)
        path = self.screenshot_dir / f"mobile_{device}_{name}_{timestamp}.png"
        await self.page.screenshot(path=str(path), full_page=full_page)
        logger.info(f"Mobile screenshot taken: {path}")
        return path

    async def test_touch_interactions(self, selector: str) -> dict[str, bool]:
        """Try each gesture on an element and report which ones succeeded."""
        results = {"tap": False, "doubleTap": False, "longPress": False, "swipe": False}

        async def attempt(key: str, gesture: Callable[[], Awaitable[Any]]) -> None:
            try:
                await gesture()
                results[key] = True
            except (PlaywrightError, RuntimeError) as e:
                logger.warning(f"{key} check failed on {selector}: {e}")

        async def swipe_right() -> None:
            box = await self.page.locator(selector).bounding_box()
            if not box:
                raise RuntimeError(f"Element not found for swipe: {selector}")
            x = box["x"] + box["width"] / 2
            y = box["y"] + box["height"] / 2
            await self.swipe_by_coordinates(x, y, x + 100, y)

        await attempt("tap", lambda: self.tap(selector))
        await attempt("doubleTap", lambda: self.double_tap(selector))
        await attempt("longPress", lambda: self.long_press(selector))
        await attempt("swipe", swipe_right)
        return results
