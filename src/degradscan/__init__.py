"""DegradScan: degradation-product reports for chemical substances."""

__version__ = "0.1.0"
