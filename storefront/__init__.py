"""Storefront API: catalog, accounts, orders and Braintree checkout over MongoDB."""

__version__ = "0.1.0"
