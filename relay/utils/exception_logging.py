"""
Utility functions for exception logging and for turning exceptions into
envelope-friendly error details.
"""

import logging
import traceback
from typing import List, Optional


def _safe_str(obj) -> str:
    """
    Safely convert an object to string, handling cases where __str__ or __repr__ might fail.

    Args:
        obj: The object to convert to string

    Returns:
        A string representation of the object, falling back to safe alternatives
    """
    try:
        return str(obj)
    except Exception:
        try:
            return repr(obj)
        except Exception:
            try:
                return f"<{type(obj).__name__} object (string conversion failed)>"
            except Exception:
                return "<object (all string conversions failed)>"


def _safe_get_exceptions(exception_group) -> list:
    try:
        return list(exception_group.exceptions)
    except Exception:
        return []


def exception_code(exception: Optional[BaseException]) -> str:
    """Error code reported in the envelope: the exception class name."""
    if exception is None:
        return "ERRR"
    try:
        return type(exception).__name__
    except Exception:
        return "ERRR"


def format_exception_message(exception: Optional[BaseException]) -> str:
    """
    Format an exception message, including sub-exceptions for exception groups.
    Never raises, even for broken exception objects.
    An exception with an empty message is described by its class name.
    """
    try:
        if exception is None:
            return "None"

        message = _safe_str(exception)
        if not message:
            message = exception_code(exception)

        sub_exceptions = []
        if hasattr(exception, "exceptions"):
            sub_exceptions = _safe_get_exceptions(exception)

        if sub_exceptions:
            parts = []
            for sub_exc in sub_exceptions:
                parts.append(f"{exception_code(sub_exc)}: {_safe_str(sub_exc)}")
            return f"{message} (Sub-exceptions: {'; '.join(parts)})"
        return message
    except Exception:
        return "<exception (all formatting failed)>"


def exception_stack(exception: Optional[BaseException]) -> List[str]:
    """
    Describe an exception as a list of lines for the error envelope:
    the chain of causes first, then the frames the exception passed through.
    """
    stack: List[str] = []
    if exception is None:
        return stack
    try:
        seen = {id(exception)}
        cause = exception.__cause__ or exception.__context__
        while cause is not None and id(cause) not in seen:
            seen.add(id(cause))
            stack.append(
                f"\t[{exception_code(cause)}] >>> {format_exception_message(cause)}"
            )
            cause = cause.__cause__ or cause.__context__

        for frame in traceback.extract_tb(exception.__traceback__):
            stack.append(f"{frame.filename}:{frame.lineno} in {frame.name}")
    except Exception:
        stack.append("(stack extraction failed)")
    return stack


def log_exception_with_details(
    logger: logging.Logger,
    prefix: str,
    exception: Optional[BaseException],
    level: int = logging.ERROR,
) -> None:
    """
    Log an exception with detailed information, including sub-exceptions for exception groups.
    This function never raises, even for broken exception objects or logger failures.

    Args:
        logger: The logger instance to use
        prefix: Prefix for the log message (e.g., "[Forward]", "[Envelope]")
        exception: The exception to log
        level: The logging level to use (default: ERROR)
    """
    try:
        safe_prefix = _safe_str(prefix) if prefix is not None else ""
        sub_exceptions = []
        if exception is not None and hasattr(exception, "exceptions"):
            sub_exceptions = _safe_get_exceptions(exception)

        if sub_exceptions:
            logger.log(
                level,
                f"{safe_prefix} Exception with {len(sub_exceptions)} sub-exceptions: "
                f"{_safe_str(exception)}",
            )
            for i, sub_exc in enumerate(sub_exceptions):
                logger.log(
                    level,
                    f"{safe_prefix} Sub-exception {i+1}: {exception_code(sub_exc)}: {_safe_str(sub_exc)}",
                    exc_info=sub_exc,
                )
        else:
            logger.log(
                level,
                f"{safe_prefix} Exception: {format_exception_message(exception)}",
                exc_info=exception if exception is not None else False,
            )
    except Exception:
        try:
            logger.log(logging.ERROR, f"{prefix} Exception (logging failed)")
        except Exception:
            pass
