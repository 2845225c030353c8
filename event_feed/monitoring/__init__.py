from .logging import RateLimitedLogger, TextFormatter, configure_logging

__all__ = ["RateLimitedLogger", "TextFormatter", "configure_logging"]
