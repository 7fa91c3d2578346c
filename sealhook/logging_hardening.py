"""Logging setup and redaction.

A webhook token is a bearer credential: whoever holds the URL can trigger the
delivery. Tokens therefore never reach the logs; the filter below rewrites
``/wh/<token>`` path segments and secret-looking assignments before records
are emitted.
"""
import logging
import re

SECRET_PATTERNS = [
    (re.compile(r'(/wh/)[A-Za-z0-9_\-]+=*'), r'\1[REDACTED]'),
    (re.compile(r'((?:secret|password)=)\S+', re.IGNORECASE), r'\1[REDACTED]'),
    (re.compile(r'("(?:secret|password|token)":\s*")[^"]*(")', re.IGNORECASE), r'\1[REDACTED]\2'),
]

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def redact(text: str) -> str:
    for pattern, replacement in SECRET_PATTERNS:
        text = pattern.sub(replacement, text)
    return text


class TokenRedactionFilter(logging.Filter):
    """Filter that redacts webhook tokens and secrets from log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = redact(record.msg)

        if record.args and isinstance(record.args, tuple):
            record.args = tuple(redact(arg) if isinstance(arg, str) else arg for arg in record.args)

        return True


def setup_logging_redaction() -> None:
    """Attach a single TokenRedactionFilter to the root handlers and known loggers."""
    redact_filter = TokenRedactionFilter()

    root_logger = logging.getLogger()
    targets = [root_logger, *root_logger.handlers]
    targets += [logging.getLogger(name) for name in list(logging.root.manager.loggerDict)]

    for target in targets:
        for f in target.filters[:]:
            if isinstance(f, TokenRedactionFilter):
                target.removeFilter(f)
        target.addFilter(redact_filter)


def setup_logging(debug: bool = False) -> None:
    """Configure the root logger and install redaction."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format=LOG_FORMAT,
        force=True,
    )
    # httpx logs every request URL at INFO
    logging.getLogger("httpx").setLevel(logging.DEBUG if debug else logging.WARNING)
    setup_logging_redaction()
