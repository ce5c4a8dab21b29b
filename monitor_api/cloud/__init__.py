from .client import CloudThing, DeviceCloudClient

__all__ = ["CloudThing", "DeviceCloudClient"]
