"""
Autopilot Exceptions
"""


class AutopilotError(Exception):
    """Base class for autopilot errors"""


class AutopilotRunError(AutopilotError):
    """The run cannot proceed (config or catalog unreadable, empty catalog)"""

    def __init__(self, shop: str, message: str):
        self.shop = shop
        super().__init__(f"Autopilot run failed for {shop}: {message}")


class AutopilotRunInProgress(AutopilotError):
    """Another run already holds the lock for this shop"""

    def __init__(self, shop: str):
        self.shop = shop
        super().__init__(f"Autopilot run already in progress for {shop}")


class PriceUpdateError(AutopilotError):
    """The remote price update did not succeed"""
