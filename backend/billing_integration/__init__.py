"""
Billing Integration Module

Pushes customer address changes to the billing provider.
"""

from .billing_client import BillingClient

__all__ = ['BillingClient']
