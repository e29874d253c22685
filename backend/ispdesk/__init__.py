"""ISP Desk: subscriber billing and arrears tracking for small ISPs."""

__version__ = "0.1.0"
