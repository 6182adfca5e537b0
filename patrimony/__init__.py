"""Personal patrimony tracker: live prices, EUR valuation and allocations."""

__version__ = "0.1.0"
