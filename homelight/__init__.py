"""Bridge battery-powered BLE smart lights to callers that want fresh state."""

__version__ = "0.1.0"
