"""cloudmux — session multiplexing for cloud terminals and log tails."""

__version__ = "0.1.0"
