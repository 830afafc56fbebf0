import sys
from loguru import logger


class LoggerManager:
    def __init__(self):
        self.console_sink_id = None
        self.file_sink_id = None

        # Always remove the default handler
        logger.remove()

    def enable_console(self, level: str = "INFO", serialize: bool = False):
        if self.console_sink_id is None:
            self.console_sink_id = logger.add(
                sys.stdout, level=level, colorize=not serialize, serialize=serialize
            )

    def disable_console(self):
        if self.console_sink_id is not None:
            logger.remove(self.console_sink_id)
            self.console_sink_id = None

    def configure(self, logging_config):
        """Apply a LoggingConfig: console level, optional rotating file sink, JSON output."""
        self.disable_console()
        self.enable_console(level=logging_config.level.upper(), serialize=logging_config.enable_json)

        if self.file_sink_id is not None:
            logger.remove(self.file_sink_id)
            self.file_sink_id = None

        if logging_config.enable_file_logging:
            self.file_sink_id = logger.add(
                logging_config.log_file or "mediachat.log",
                level=logging_config.level.upper(),
                rotation=logging_config.max_file_size,
                retention=f"{logging_config.retention_days} days",
                serialize=logging_config.enable_json,
                enqueue=True,
            )


log_manager = LoggerManager()
