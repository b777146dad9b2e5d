# === FILE: wp_mirror/cli.py ===
#!/usr/bin/env python3
"""
Command line entry point of wp_mirror.

Commands:
  config      Show the loaded configuration
  pages       List slugs and titles of a route
  warm        Rebuild the sitemap and pre-fill page and asset caches
  invalidate  Re-render the cached variants of one page
  clean       Drop every cache entry of a route
  serve       Run the mirror HTTP server

Common options:
  --config PATH       Path to the YAML/JSON config (default: configs/default.yaml)
  --log-level LEVEL   Logging level (DEBUG, INFO, ...)
  --log-file PATH     Log file (stderr only when not given)
  --log-format FORMAT Logging format string

Example:
  wp-mirror --config configs/default.yaml warm --route stories
  wp-mirror invalidate stories/about --lang fr
"""
import asyncio
import json
import sys
from pathlib import Path

import click
from aiohttp import ClientError, web

from wp_mirror import __version__
from wp_mirror.config import load_config
from wp_mirror.engine import Mirror
from wp_mirror.exceptions import MirrorError
from wp_mirror.logger import configure
from wp_mirror.server import create_app

CONTEXT_SETTINGS = dict(help_option_names=["--help"])


def print_error(message: str):
    click.secho(message, fg='red', err=True)
    sys.exit(1)


def run_with_mirror(ctx, action):
    """Open a Mirror for the loaded config, run ``action(mirror)`` and report fatal errors."""
    cfg = ctx.obj['config']
    route = ctx.params.get('route')
    if route is not None:
        try:
            cfg.route(route)
        except KeyError:
            print_error(f'Unknown route: {route}')

    async def _runner():
        async with Mirror(cfg, progress=click.echo) as mirror:
            return await action(mirror)

    try:
        return asyncio.run(_runner())
    except (MirrorError, ClientError, asyncio.TimeoutError) as e:
        print_error(f'Error: {e}')


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(__version__, '--version', '-v', message='wp_mirror, version %(version)s')
@click.option(
    '--config', '-c', 'config_path',
    default='configs/default.yaml',
    show_default=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help='Path to the configuration file.'
)
@click.option(
    '--log-level', 'log_level',
    default='INFO', show_default=True,
    type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']),
    help='Logging level'
)
@click.option(
    '--log-file', 'log_file',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Log file path (stderr if not given)'
)
@click.option(
    '--log-format', 'log_format',
    default='%(asctime)s %(levelname)s %(message)s',
    show_default=True,
    help='Logging format string'
)
@click.pass_context
def cli(ctx, config_path, log_level, log_file, log_format):
    """wp_mirror command group."""
    configure(
        level=log_level,
        log_file=str(log_file) if log_file else None,
        log_format=log_format
    )
    try:
        cfg = load_config(config_path)
    except Exception as e:
        print_error(f'Failed to load configuration: {e}')
    ctx.ensure_object(dict)
    ctx.obj['config'] = cfg


@cli.command('config', context_settings=CONTEXT_SETTINGS)
@click.pass_context
def show_config(ctx):
    """Show the current configuration as JSON (passwords hidden)."""
    cfg = ctx.obj['config']
    data = cfg.model_dump(mode='json', exclude={'api': {'password', 'key'}})
    click.echo(json.dumps(data, indent=2, ensure_ascii=False))


@cli.command('pages', context_settings=CONTEXT_SETTINGS)
@click.option('--route', '-r', default=None, help='Route name (all routes if omitted)')
@click.pass_context
def pages(ctx, route):
    """List the slugs and titles of each route."""
    async def action(mirror):
        return {e.route: await e.get_pages() for e in mirror.select(route)}

    result = run_with_mirror(ctx, action)
    click.echo(json.dumps(result, indent=2, ensure_ascii=False))


@cli.command('warm', context_settings=CONTEXT_SETTINGS)
@click.option('--route', '-r', default=None, help='Route name (all routes if omitted)')
@click.pass_context
def warm(ctx, route):
    """Rebuild sitemaps, re-render all pages and fetch referenced assets."""
    async def action(mirror):
        return [await e.warm_all() for e in mirror.select(route)]

    reports = run_with_mirror(ctx, action)
    click.echo(
        f'Done: {sum(r.pages for r in reports)} pages, {sum(r.assets for r in reports)} assets'
    )


@cli.command('invalidate', context_settings=CONTEXT_SETTINGS)
@click.argument('path')
@click.option('--lang', '-l', default=None, help='Only this language (all if omitted)')
@click.pass_context
def invalidate(ctx, path, lang):
    """Evict and re-render the cached variants of PATH (e.g. stories/about)."""
    async def action(mirror):
        return await mirror.invalidate(path, lang)

    done = run_with_mirror(ctx, action)
    if not done:
        print_error(f'Nothing to invalidate for {path}')


@cli.command('clean', context_settings=CONTEXT_SETTINGS)
@click.option('--route', '-r', default=None, help='Route name (all routes if omitted)')
@click.pass_context
def clean(ctx, route):
    """Drop every cache entry of the selected routes."""
    async def action(mirror):
        for e in mirror.select(route):
            e.clean_cache()
            click.echo(f'Cleaned {e.route}')

    run_with_mirror(ctx, action)


@cli.command('serve', context_settings=CONTEXT_SETTINGS)
@click.option('--host', default='127.0.0.1', show_default=True)
@click.option('--port', default=8080, show_default=True, type=int)
@click.pass_context
def serve(ctx, host, port):
    """Serve the mirror over HTTP."""
    cfg = ctx.obj['config']

    async def _app():
        mirror = Mirror(cfg)
        app = create_app(mirror)

        async def _lifecycle(_app):
            async with mirror:
                yield

        app.cleanup_ctx.append(_lifecycle)
        return app

    web.run_app(_app(), host=host, port=port)


if __name__ == "__main__":
    cli()
