"""Device profiles and responsive breakpoints for mobile emulation."""

from dataclasses import dataclass, replace
from typing import Any, Optional

IOS_SAFARI_UA = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 15_0 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/15.0 Mobile/15E148 Safari/604.1"
)
IPAD_SAFARI_UA = (
    "Mozilla/5.0 (iPad; CPU OS 15_0 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/15.0 Mobile/15E148 Safari/604.1"
)
DEFAULT_ANDROID_UA = (
    "Mozilla/5.0 (Linux; Android 11; SM-G991B) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.120 Mobile Safari/537.36"
)


@dataclass(frozen=True)
class DeviceProfile:
    """Viewport, user agent and input capabilities of an emulated device."""

    name: str
    user_agent: str
    width: int
    height: int
    device_scale_factor: float = 2
    is_mobile: bool = True
    has_touch: bool = True
    orientation: str = "portrait"

    @property
    def device_type(self) -> str:
        """Return ``phone`` for small viewports and ``tablet`` otherwise."""
        if self.width < 500 and self.height < 1000:
            return "phone"
        return "tablet"

    @property
    def platform(self) -> str:
        if "iPhone" in self.user_agent or "iPad" in self.user_agent:
            return "ios"
        if "Android" in self.user_agent:
            return "android"
        return "other"

    @property
    def viewport(self) -> dict[str, int]:
        return {"width": self.width, "height": self.height}

    def landscape(self) -> "DeviceProfile":
        """Return the same device rotated to landscape."""
        if self.orientation == "landscape":
            return self
        return replace(self, width=self.height, height=self.width, orientation="landscape")

    def portrait(self) -> "DeviceProfile":
        if self.orientation == "portrait":
            return self
        return replace(self, width=self.height, height=self.width, orientation="portrait")

    def context_options(self) -> dict[str, Any]:
        """Keyword arguments for ``Browser.new_context``."""
        return {
            "viewport": self.viewport,
            "user_agent": self.user_agent,
            "device_scale_factor": self.device_scale_factor,
            "is_mobile": self.is_mobile,
            "has_touch": self.has_touch,
        }

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "userAgent": self.user_agent,
            "viewport": self.viewport,
            "deviceScaleFactor": self.device_scale_factor,
            "isMobile": self.is_mobile,
            "hasTouch": self.has_touch,
            "orientation": self.orientation,
            "type": self.device_type,
            "platform": self.platform,
        }


DEVICES: dict[str, DeviceProfile] = {
    device.name: device
    for device in [
        DeviceProfile("iPhone 13", IOS_SAFARI_UA, 390, 844, 3),
        DeviceProfile("iPhone 13 Pro Max", IOS_SAFARI_UA, 428, 926, 3),
        DeviceProfile("iPhone SE", IOS_SAFARI_UA, 375, 667, 2),
        DeviceProfile("Samsung Galaxy S21", DEFAULT_ANDROID_UA, 384, 854, 2.75),
        DeviceProfile(
            "Samsung Galaxy S21 Ultra",
            "Mozilla/5.0 (Linux; Android 11; SM-G998B) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/91.0.4472.120 Mobile Safari/537.36",
            412,
            915,
            3.5,
        ),
        DeviceProfile(
            "Google Pixel 6",
            "Mozilla/5.0 (Linux; Android 12; Pixel 6) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/91.0.4472.120 Mobile Safari/537.36",
            412,
            915,
            2.625,
        ),
        DeviceProfile("iPad Air", IPAD_SAFARI_UA, 820, 1180, 2),
        DeviceProfile("iPad Pro", IPAD_SAFARI_UA, 1024, 1366, 2),
        DeviceProfile(
            "Samsung Galaxy Tab S8",
            "Mozilla/5.0 (Linux; Android 12; SM-X706B) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/91.0.4472.120 Safari/537.36",
            800,
            1280,
            2.5,
        ),
    ]
}

BREAKPOINTS: list[tuple[str, int]] = [
    ("mobile-small", 320),
    ("mobile-medium", 375),
    ("mobile-large", 414),
    ("tablet-small", 768),
    ("tablet-large", 1024),
    ("desktop-small", 1200),
    ("desktop-large", 1920),
]


def get_device(name: str) -> DeviceProfile:
    """Look up a device profile by name.

    Raises:
        KeyError: If no such device is defined
    """
    try:
        return DEVICES[name]
    except KeyError:
        raise KeyError(f"Unknown device '{name}'. Available: {', '.join(DEVICES)}") from None


def get_devices_by_type(device_type: str) -> list[DeviceProfile]:
    return [d for d in DEVICES.values() if d.device_type == device_type]


def get_devices_by_platform(platform: str) -> list[DeviceProfile]:
    return [d for d in DEVICES.values() if d.platform == platform]


def create_custom_device(
    name: str,
    user_agent: Optional[str] = None,
    width: int = 375,
    height: int = 667,
    device_scale_factor: float = 2,
    is_mobile: bool = True,
    has_touch: bool = True,
    orientation: str = "portrait",
) -> DeviceProfile:
    """Build a device profile, defaulting to a mid-size Android phone."""
    return DeviceProfile(
        name=name,
        user_agent=user_agent or DEFAULT_ANDROID_UA,
        width=width,
        height=height,
        device_scale_factor=device_scale_factor,
        is_mobile=is_mobile,
        has_touch=has_touch,
        orientation=orientation,
    )
