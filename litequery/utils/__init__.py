from litequery.utils.logging import configure_logging, get_logger, log_fields

__all__ = ("configure_logging", "get_logger", "log_fields")
