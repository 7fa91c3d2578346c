"""CLI for sealhook: run the server, mint and inspect webhook URLs offline."""
import json
from pathlib import Path
from typing import Optional

import click

from sealhook.core.config import get_settings
from sealhook.dependencies import build_sealer
from sealhook.domain.sealer import WEBHOOK_PATH, Sealer, extract_token
from sealhook.domain.templates import TemplateEngine
from sealhook.errors import InvalidTokenError, TemplateCompileError
from sealhook.logging_hardening import setup_logging


def _sealer(settings) -> Sealer:
    try:
        return build_sealer(settings)
    except RuntimeError as e:
        raise click.ClickException(str(e))


@click.group()
@click.option("--debug/--no-debug", default=None, help="Enable debug logging (env: DEBUG)")
@click.pass_context
def cli(ctx: click.Context, debug: Optional[bool]):
    """sealhook - stateless webhook remapper."""
    settings = get_settings()
    if debug is not None:
        settings.DEBUG = debug
    setup_logging(settings.DEBUG)
    ctx.obj = settings


@cli.command()
@click.option("--host", default=None, help="Address to listen on (env: HOST)")
@click.option("--port", default=None, type=int, help="Port to listen on (env: PORT)")
@click.pass_obj
def serve(settings, host: Optional[str], port: Optional[int]):
    """Run the HTTP server."""
    import uvicorn
    from sealhook.main import create_app

    try:
        app = create_app(settings)
    except RuntimeError as e:
        raise click.ClickException(str(e))

    uvicorn.run(
        app,
        host=host or settings.HOST,
        port=port or settings.PORT,
        timeout_graceful_shutdown=settings.SHUTDOWN_TIMEOUT_SECONDS,
        log_config=None,  # keep the root handler set up by setup_logging
    )


@cli.command()
@click.option("--url", "target_url", required=True, help="Target URL the webhook is relayed to")
@click.option("--template", default=None, help="Payload template (Jinja2)")
@click.option("--template-file", type=click.Path(exists=True, dir_okay=False, path_type=Path),
              default=None, help="Read the payload template from a file")
@click.pass_obj
def seal(settings, target_url: str, template: Optional[str], template_file: Optional[Path]):
    """Validate a template and print the webhook URL for it."""
    if (template is None) == (template_file is None):
        raise click.UsageError("Pass exactly one of --template or --template-file")
    if template_file is not None:
        template = template_file.read_text()

    try:
        TemplateEngine().compile(template)
    except TemplateCompileError as e:
        raise click.ClickException(f"invalid template: {e}")

    token = _sealer(settings).seal(target_url, template)
    click.echo(settings.BASE_URL + WEBHOOK_PATH + token)


@cli.command()
@click.argument("token")
@click.pass_obj
def unseal(settings, token: str):
    """Print the target URL and template behind a token or webhook URL."""
    try:
        config = _sealer(settings).unseal(extract_token(token.strip()))
    except InvalidTokenError as e:
        raise click.ClickException(e.message)

    click.echo(json.dumps({"url": config.url, "template": config.tmpl}, indent=2))


@cli.command()
@click.pass_obj
def version(settings):
    """Print the application version."""
    click.echo(f"sealhook, version: {settings.VERSION}")


if __name__ == "__main__":
    cli()
