import logging
import os
import datetime as dt
from pathlib import Path
from typing import Dict, Optional

DEFAULT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def log_file_for(name: str, log_dir: str | Path, daily_rotation: bool = True) -> Path:
    """
    Resolve the file a logger writes to.

    Daily files are per component: 'session.telemetry' logs to
    telemetry_<date>.log, so telemetry rows never interleave with model or
    corpus messages.
    """
    log_path = Path(log_dir)
    if daily_rotation:
        component = name.rsplit('.', 1)[-1]
        log_date = dt.datetime.now().strftime('%Y-%m-%d')
        return log_path / f"{component}_{log_date}.log"
    return log_path / f"{name.replace('.', '_')}.log"


def setup_logger(
    name: str,
    log_dir: str | Path = "data/logs",
    level: int = logging.INFO,
    log_format: str = DEFAULT_FORMAT,
    daily_rotation: bool = True,
    console_output: bool = False
) -> logging.Logger:
    """
    Setup and configure a logger with file handler and optional console output.

    Calling again with the same target file is a no-op; a different target
    (another log_dir, e.g. a rebuilt session) replaces the old handlers.

    :param name: Logger name (e.g., 'session.corpus')
    :param log_dir: Directory to store log files (default: 'data/logs')
    :param level: Logging level (default: logging.INFO)
    :param log_format: Log message format string
    :param daily_rotation: If True, creates one file per component per day (default: True)
    :param console_output: If True, also outputs logs to console (default: False)

    :return: Configured logger instance

    Example:
        >>> logger = setup_logger('session.model', 'data/logs/session')
        >>> logger.warning('Model failed to load')
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    log_file = log_file_for(name, log_dir, daily_rotation)
    for handler in logger.handlers:
        if isinstance(handler, logging.FileHandler) and handler.baseFilename == os.path.abspath(log_file):
            return logger

    _drop_handlers(logger)
    log_file.parent.mkdir(parents=True, exist_ok=True)

    formatter = logging.Formatter(log_format)

    file_handler = logging.FileHandler(log_file)
    file_handler.setLevel(level)
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    if console_output:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    return logger


def _drop_handlers(logger: logging.Logger) -> None:
    for handler in logger.handlers[:]:
        handler.close()
        logger.removeHandler(handler)


class LoggerFactory:
    """
    Factory class for the session's component loggers.

    Example:
        >>> factory = LoggerFactory(log_dir='data/logs/session', level=logging.INFO)
        >>> corpus_logger = factory.get_logger('session.corpus')
        >>> telemetry_logger = factory.get_logger('session.telemetry', log_format='%(message)s')
        >>> factory.close()
    """

    def __init__(
        self,
        log_dir: str | Path = "data/logs",
        level: int = logging.INFO,
        log_format: str = DEFAULT_FORMAT,
        daily_rotation: bool = True,
        console_output: bool = False
    ):
        self.log_dir = log_dir
        self.level = level
        self.log_format = log_format
        self.daily_rotation = daily_rotation
        self.console_output = console_output
        self._loggers: Dict[str, logging.Logger] = {}

    def get_logger(self, name: str, log_format: Optional[str] = None) -> logging.Logger:
        """
        Create a logger with the factory's configuration.

        :param name: Logger name
        :param log_format: Per-logger format override
        :return: Configured logger instance
        """
        logger = setup_logger(
            name=name,
            log_dir=self.log_dir,
            level=self.level,
            log_format=log_format or self.log_format,
            daily_rotation=self.daily_rotation,
            console_output=self.console_output
        )
        self._loggers[name] = logger
        return logger

    def close(self) -> None:
        """Close the file handlers of every logger this factory configured."""
        for logger in self._loggers.values():
            _drop_handlers(logger)
        self._loggers.clear()
