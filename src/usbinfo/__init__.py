"""
usbinfo - USB device descriptor reporting.

Describes connected USB devices with class names resolved from the
usb.ids class table, and monitors devices as they come and go.
"""

__version__ = "0.1.0"
__author__ = "usbinfo Contributors"

from usbinfo.config import UsbInfoConfig, load_config

__all__ = ["UsbInfoConfig", "load_config", "__version__"]
