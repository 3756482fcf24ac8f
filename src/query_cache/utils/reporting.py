import logging


def report_soft_failure(logger: logging.Logger, show_errors: bool, message: str, *args: object) -> None:
    """Log a cache problem that the caller recovers from.

    Soft failures are only worth a warning when error reporting is on;
    otherwise they are kept at debug level so a flaky cache stays quiet.
    """
    logger.log(logging.WARNING if show_errors else logging.DEBUG, message, *args)
