"""Mobile device emulation."""

from webqa.mobile.devices import BREAKPOINTS, DEVICES, DeviceProfile, create_custom_device, get_device
from webqa.mobile.helper import MobileHelper

__all__ = ["BREAKPOINTS", "DEVICES", "DeviceProfile", "MobileHelper", "create_custom_device", "get_device"]
