"""ferrolint: style lints for Rust sources."""

__version__ = "0.1.0"
