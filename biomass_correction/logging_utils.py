"""
Logging for the biomass correction workflow.

Components log through ``biomass_correction.<component>`` loggers; the
command line entry point configures the root handlers once per run.
"""

import logging
import sys
from pathlib import Path
from typing import Optional, Union

LOGGER_NAMESPACE = 'biomass_correction'
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'
BANNER = '=' * 80


def setup_logging(
    level: Union[str, int] = 'INFO',
    component_name: Optional[str] = None,
    log_file: Optional[Union[str, Path]] = None,
) -> logging.Logger:
    """
    Send log records to stdout, and to ``log_file`` when given.

    Existing root handlers are replaced, so repeated runs in one process
    do not duplicate output.

    Args:
        level: Logging level name or number
        component_name: Component whose logger is returned
        log_file: Optional file that receives the same records

    Returns:
        logging.Logger: The component logger (or the package logger)
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper())

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path))

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(level)
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    return get_logger(component_name) if component_name else logging.getLogger(LOGGER_NAMESPACE)


def get_logger(component_name: str) -> logging.Logger:
    return logging.getLogger(f'{LOGGER_NAMESPACE}.{component_name}')


def log_pipeline_start(logger: logging.Logger, pipeline_name: str, config: dict = None) -> None:
    """Banner plus one line per top-level configuration section."""
    logger.info(BANNER)
    logger.info(f"STARTING: {pipeline_name}")
    for key, value in (config or {}).items():
        if key.startswith('_'):
            continue
        summary = f"{len(value)} settings" if isinstance(value, dict) else value
        logger.info(f"  {key}: {summary}")
    logger.info(BANNER)


def log_pipeline_end(logger: logging.Logger, pipeline_name: str, success: bool = True,
                     elapsed_time: float = None) -> None:
    status = "FINISHED" if success else "FAILED"
    timing = f" in {elapsed_time:.1f}s" if elapsed_time is not None else ""
    logger.info(BANNER)
    logger.info(f"{status}: {pipeline_name}{timing}")
    logger.info(BANNER)


def log_section(logger: logging.Logger, section_name: str) -> None:
    logger.info(f"--- {section_name} ---")
