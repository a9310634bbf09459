"""netpulse: keep track of whether your internet is still alive."""

__version__ = "0.9.1"
