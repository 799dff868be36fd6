"""
Shopify Autopilot Backend

Catalog sync, performance tracking and the pricing/marketing autopilot.
"""

__version__ = "1.0.0"
