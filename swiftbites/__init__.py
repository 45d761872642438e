"""
SWIFTBITES ORDERING SERVICE
Storefront catalog, cart/checkout, pickup-token orders and the staff queue
"""

__version__ = "1.0.0"
