from .logging import PIIFilter, get_logger, setup_logging, setup_logging_from_config

__all__ = ["PIIFilter", "get_logger", "setup_logging", "setup_logging_from_config"]
