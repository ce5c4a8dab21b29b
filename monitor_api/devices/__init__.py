from .registry import DeviceRegistry, DeviceStatus, DeviceStatusPolicy

__all__ = ["DeviceRegistry", "DeviceStatus", "DeviceStatusPolicy"]
