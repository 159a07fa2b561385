import logging
import sys

from gemdesk.components.logger.logger_interface import LoggerInterface

ROOT_LOGGER_NAME = "gemdesk"


class Logger(LoggerInterface):
    def __init__(self, log_format: str, log_level: str) -> None:
        self.log_format = log_format
        self.log_level = log_level.upper()

        self._root = logging.getLogger(ROOT_LOGGER_NAME)
        self._root.setLevel(self.log_level)
        if not self._root.handlers:
            handler = logging.StreamHandler(sys.stderr)
            handler.setFormatter(logging.Formatter(self.log_format))
            self._root.addHandler(handler)
        self._root.propagate = False

    def get_logger(self, name: str) -> logging.Logger:
        return self._root.getChild(name)
