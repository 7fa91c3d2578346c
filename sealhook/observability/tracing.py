from opentelemetry.sdk.trace import SpanProcessor, ReadableSpan
from opentelemetry.context import Context
import re
from typing import Optional

from sealhook.logging_hardening import redact


class TokenRedactingSpanProcessor(SpanProcessor):
    """
    SpanProcessor that scrubs webhook tokens and credentials from span
    attributes before delegating to the exporting processor.
    """
    def __init__(self, processor: SpanProcessor):
        self._processor = processor
        self._sensitive_keys = {"authorization", "cookie", "set-cookie"}
        self._sensitive_patterns = [
            re.compile(r"http\.request\.header\..*", re.IGNORECASE),
            re.compile(r"http\.response\.header\..*", re.IGNORECASE),
            re.compile(r".*(secret|password).*", re.IGNORECASE),
        ]

    def on_start(self, span, parent_context: Optional[Context] = None) -> None:
        self._processor.on_start(span, parent_context)

    def on_end(self, span: ReadableSpan) -> None:
        if span.attributes:
            new_attributes = {}
            for key, value in span.attributes.items():
                if self._should_redact(key):
                    new_attributes[key] = "[REDACTED]"
                elif isinstance(value, str):
                    # url.path, http.target, http.url all carry the token
                    new_attributes[key] = redact(value)
                else:
                    new_attributes[key] = value

            # ReadableSpan is immutable once ended; the SDK keeps attributes here
            if hasattr(span, "_attributes"):
                span._attributes = new_attributes

        self._processor.on_end(span)

    def shutdown(self) -> None:
        self._processor.shutdown()

    def force_flush(self, timeout_millis: int = 30000) -> bool:
        return self._processor.force_flush(timeout_millis)

    def _should_redact(self, key: str) -> bool:
        key_lower = key.lower()
        if key_lower in self._sensitive_keys:
            return True
        return any(pattern.match(key_lower) for pattern in self._sensitive_patterns)
