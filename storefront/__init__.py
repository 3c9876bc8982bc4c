"""Storefront checkout backend.

Cart aggregation, pricing and checkout orchestration for the mobile
shopping client, backed by hosted payment, shipping and OTP services.
"""

__version__ = "0.1.0"
