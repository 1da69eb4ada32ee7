"""Chat assistant for a business-intelligence product."""

__version__ = "0.1.0"
