"""Payload templates.

Templates are Jinja2, executed in a sandbox against the decoded JSON payload:
the keys of the top-level object become template names, and nested values
are reached with dot paths (``{{ order.customer.email }}``). Missing fields
render empty at any depth, so a template still renders when the payload is
empty. Booleans and null print in JSON spelling (``true``, ``false``,
``null``).
"""
import hashlib
import logging
from typing import Any, Dict, Mapping, Optional

from jinja2 import ChainableUndefined, Template, TemplateError, TemplateSyntaxError
from jinja2.sandbox import SandboxedEnvironment

from sealhook.errors import TemplateCompileError, TemplateRenderError

logger = logging.getLogger(__name__)


def _json_scalar(value: Any) -> Any:
    """Spell booleans and null the way JSON does."""
    if value is None:
        return "null"
    if value is True:
        return "true"
    if value is False:
        return "false"
    return value


class TemplateEngine:
    """Compiles and renders payload templates."""

    def __init__(self):
        self._env = SandboxedEnvironment(
            autoescape=False,
            keep_trailing_newline=True,
            undefined=ChainableUndefined,
            finalize=_json_scalar,
        )

    def compile(self, source: str) -> Template:
        try:
            return self._env.from_string(source)
        except TemplateSyntaxError as e:
            raise TemplateCompileError(f"line {e.lineno}: {e.message}") from e
        except TemplateError as e:
            raise TemplateCompileError(str(e)) from e

    def render(self, template: Template, data: Optional[Mapping[str, Any]]) -> bytes:
        """Render ``template`` against ``data`` (``None`` for an empty payload)."""
        if data is None:
            context: Dict[str, Any] = {}
        elif isinstance(data, Mapping):
            context = dict(data)
        else:
            raise TemplateRenderError("template data must be a JSON object")

        try:
            return template.render(context).encode("utf-8")
        except TemplateError as e:
            raise TemplateRenderError(str(e)) from e
        except (TypeError, ValueError, ArithmeticError, LookupError, AttributeError) as e:
            raise TemplateRenderError(f"{type(e).__name__}: {e}") from e


def fingerprint(target_url: str, template: str) -> str:
    """Cache key for a (target URL, template) pair."""
    url_bytes = target_url.encode()
    h = hashlib.sha256()
    h.update(len(url_bytes).to_bytes(8, "big"))
    h.update(url_bytes)
    h.update(template.encode())
    return h.hexdigest()


class TemplateCache:
    """Compiled templates keyed by configuration fingerprint.

    Reads are plain dict lookups. Two concurrent misses on the same key both
    compile and the last insert wins; both results are equivalent. Entries
    are never evicted.
    """

    def __init__(self, engine: TemplateEngine):
        self.engine = engine
        self._templates: Dict[str, Template] = {}

    def __len__(self) -> int:
        return len(self._templates)

    def get_or_compile(self, target_url: str, template: str) -> Template:
        key = fingerprint(target_url, template)

        cached = self._templates.get(key)
        if cached is not None:
            return cached

        compiled = self.engine.compile(template)
        self._templates[key] = compiled
        logger.debug(f"Compiled template {key[:12]} ({len(self._templates)} cached)")
        return compiled
