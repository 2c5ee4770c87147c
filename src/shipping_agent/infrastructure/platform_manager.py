import logging
import os
from pathlib import Path


def create_logger(
    log_level: str = "INFO",
    logger_name: str = "shipping-agent",
    logs_dir: str | Path | None = None,
) -> logging.Logger:
    """
    Create a logger that outputs to console and optionally to a file.

    Args:
        log_level (str): Logging level (e.g., "INFO", "DEBUG").
        logger_name (str): Name for the logger instance, also used as the log file name.
        logs_dir (str | Path | None): Directory for log files. If None, only the console
            handler is attached.

    Returns:
        logging.Logger: Configured logger instance.
    """
    logger = logging.getLogger(logger_name)
    logger.setLevel(getattr(logging, log_level.upper(), logging.DEBUG))
    formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(message)s")

    if not logger.handlers:  # Prevent handler duplication
        # Console handler (stdio) - always add this
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    has_file_handler = any(isinstance(h, logging.FileHandler) for h in logger.handlers)
    if logs_dir is not None and not has_file_handler:
        try:
            logs_path = Path(logs_dir)
            logs_path.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(logs_path / f"{logger_name}.log")
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)
        except OSError as e:
            # If file logging fails, just continue with console logging
            logger.warning(f"File logging disabled: {e}")

    return logger


def get_parameters(
    param_names: list[str] | str,
    base_path: str = "",
) -> dict[str, str | None]:
    """
    Retrieve configuration parameters from environment variables.

    Parameters are stored in the environment in uppercase, optionally prefixed by
    `base_path` (e.g. base_path "SHIPPING_" looks up "SHIPPING_OPENAI_API_KEY" first).
    The returned mapping is keyed by the lowercase parameter name.

    Args:
        param_names (list[str] | str): One or more parameter names.
        base_path (str): Optional environment prefix tried before the bare name.

    Returns:
        dict[str, str | None]: Parameter values; None when a parameter is not set.
    """
    if isinstance(param_names, str):
        param_names = [param_names]

    result: dict[str, str | None] = {}
    for param_name in param_names:
        env_name = param_name.upper()
        value = None
        if base_path:
            value = os.getenv(f"{base_path.upper()}{env_name}")
        if value is None:
            value = os.getenv(env_name)
        result[param_name.lower()] = value
    return result
