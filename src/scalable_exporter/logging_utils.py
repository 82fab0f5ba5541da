"""
Provides centralized logging functionality for the transactions exporter.
Logs events, errors, warnings and API calls to help with troubleshooting
and to leave an audit trail of every export run.

Console output is limited to warnings and errors by default. The CLI adds a
dated log file in the "logs" directory via enable_file_logging().
"""

import json
import logging
import traceback
from datetime import datetime
from pathlib import Path
from typing import Dict, Any, Optional, Union

# Configure the main application logger
logger = logging.getLogger("scalable_exporter")
logger.setLevel(logging.INFO)

# Configure the console handler if it hasn't been set up yet
if not logger.handlers:
    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.WARNING)  # Only warnings and errors to console
    console_format = logging.Formatter('%(levelname)s: %(message)s')
    console_handler.setFormatter(console_format)
    logger.addHandler(console_handler)

SENSITIVE_KEYS = ["cookie", "token", "secret", "pass", "auth", "session"]


def enable_file_logging(log_dir: Union[str, Path] = "logs") -> Path:
    """
    Attach a file handler writing to <log_dir>/scalable_exporter_<date>.log.

    Returns the path of the log file. Calling it twice for the same file
    does not add a second handler.
    """
    logs_path = Path(log_dir)
    logs_path.mkdir(parents=True, exist_ok=True)
    log_date = datetime.now().strftime("%Y%m%d")
    log_path = logs_path / f"scalable_exporter_{log_date}.log"

    for handler in logger.handlers:
        if isinstance(handler, logging.FileHandler) and Path(handler.baseFilename) == log_path.resolve():
            return log_path

    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setLevel(logging.INFO)
    file_format = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    file_handler.setFormatter(file_format)
    logger.addHandler(file_handler)
    return log_path


def set_console_level(level: int) -> None:
    """Change the level of the console handler(s), e.g. for --verbose."""
    for handler in logger.handlers:
        if type(handler) is logging.StreamHandler:
            handler.setLevel(level)


def format_details(details: Optional[Dict[str, Any]] = None) -> str:
    """Format details dictionary as JSON string if available."""
    if details:
        try:
            return json.dumps(details, default=str)
        except Exception:
            return str(details)
    return ""


def log_event(
    component: str,
    message: str,
    details: Optional[Dict[str, Any]] = None
) -> None:
    """
    Log a normal application event.

    Parameters:
        component: The application component generating the event
        message: The event message
        details: Optional dictionary of additional details
    """
    detail_str = format_details(details)
    logger.info(f"[{component}] {message} {detail_str if detail_str else ''}".rstrip())


def log_error(
    component: str,
    error_type: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
    exception: Optional[BaseException] = None
) -> None:
    """
    Log an error with detailed information.

    Parameters:
        component: The application component where the error occurred
        error_type: Classification of the error
        message: The error message
        details: Optional dictionary of additional details
        exception: Optional exception object to extract traceback
    """
    detail_str = format_details(details)

    if exception:
        error_details = f" | Exception: {type(exception).__name__}: {str(exception)}"
        logger.error(f"[{component}] ERROR - {error_type}: {message}{error_details} {detail_str if detail_str else ''}".rstrip())

        tb_str = ''.join(traceback.format_exception(type(exception), exception, exception.__traceback__))
        logger.debug(f"[{component}] Traceback: {tb_str}")
    else:
        logger.error(f"[{component}] ERROR - {error_type}: {message} {detail_str if detail_str else ''}".rstrip())


def log_warning(
    component: str,
    warning_type: str,
    message: str,
    details: Optional[Dict[str, Any]] = None
) -> None:
    """
    Log a warning with detailed information.

    Parameters:
        component: The application component generating the warning
        warning_type: Classification of the warning
        message: The warning message
        details: Optional dictionary of additional details
    """
    detail_str = format_details(details)
    logger.warning(f"[{component}] WARNING - {warning_type}: {message} {detail_str if detail_str else ''}".rstrip())


def sanitize_params(params: Dict[str, Any]) -> Dict[str, Any]:
    """Return a copy of params with sensitive values masked."""
    sanitized = {**params}
    for key in sanitized:
        if any(sensitive in key.lower() for sensitive in SENSITIVE_KEYS):
            sanitized[key] = "********"
    return sanitized


def log_api_call(
    api_name: str,
    endpoint: str,
    method: str = "POST",
    params: Optional[Dict[str, Any]] = None,
    success: bool = True,
    response_code: Optional[Union[int, str]] = None,
    duration_ms: Optional[float] = None,
    error_message: Optional[str] = None
) -> None:
    """
    Log an API call with request and response details.

    Parameters:
        api_name: Name of the API operation being called
        endpoint: The API endpoint
        method: HTTP method (GET, POST, etc.)
        params: Optional dictionary of request parameters (will be sanitized)
        success: Whether the call was successful
        response_code: HTTP status code or other response code
        duration_ms: Time taken for the call in milliseconds
        error_message: Error message if the call failed
    """
    details: Dict[str, Any] = {
        "method": method,
        "endpoint": endpoint,
        "success": success
    }

    if params:
        details["params"] = sanitize_params(params)

    if response_code is not None:
        details["response_code"] = response_code

    if duration_ms is not None:
        details["duration_ms"] = round(duration_ms, 1)

    if not success and error_message:
        details["error"] = error_message
        log_error("API", f"{api_name}Call", f"Failed API call to {endpoint}", details)
    else:
        log_event("API", f"API call to {api_name} - {endpoint}", details)
