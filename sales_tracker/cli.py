# sales_tracker/cli.py
import json
import logging
import os

import anyio
import click
from dotenv import load_dotenv

from sales_tracker import reports
from sales_tracker.config import load_config
from sales_tracker.database import TransactionStore
from sales_tracker.errors import SalesReportError, ValidationError
from sales_tracker.seed import initialize_store

REPORTS = {
    "statistics": reports.statistics,
    "barchart": reports.bar_chart,
    "piechart": reports.pie_chart,
    "combined": reports.combined,
}


def _setup(ctx, config_path, env_file, db_path):
    if env_file:
        load_dotenv(env_file)
    logging.basicConfig(level=os.getenv("SALESBOARD_LOG_LEVEL", "INFO").upper())
    cfg = load_config(config_path)
    if db_path:
        cfg['db_path'] = db_path
    ctx.obj = cfg
    return cfg


config_option = click.option(
    '--config', 'config_path',
    default='config.yaml',
    type=click.Path(dir_okay=False),
    help='Path to config.yaml (defaults are used when it does not exist)'
)
db_option = click.option(
    '--db', 'db_path',
    default=None,
    type=click.Path(dir_okay=False),
    help='SQLite database file (overrides config)'
)
env_option = click.option(
    '--env-file', 'env_file',
    default=None,
    type=click.Path(exists=True, dir_okay=False),
    help='Optional .env file to load before reading the config'
)


@click.group()
def main():
    """
    Seed a local store of product-sale transactions and serve monthly
    sales reports over it.
    """


@main.command()
@config_option
@db_option
@env_option
@click.option('--source', 'source_url', default=None, help='Seed feed URL (overrides config)')
@click.pass_context
def initialize(ctx, config_path, db_path, env_file, source_url):
    """Fetch the seed feed and replace the stored transactions with it."""
    cfg = _setup(ctx, config_path, env_file, db_path)
    url = source_url or cfg['seed_url']
    with TransactionStore(cfg['db_path']) as store:
        try:
            count = initialize_store(store, url=url, timeout=float(cfg['seed_timeout_seconds']))
        except SalesReportError as e:
            raise click.ClickException(f"Error initializing database: {e}")
    click.echo(f"Stored {count} transaction(s) in {cfg['db_path']}.")


@main.command()
@config_option
@db_option
@env_option
@click.option('--host', default=None, help='Host to bind (overrides config)')
@click.option('--port', default=None, type=int, help='Port to bind (overrides config)')
@click.pass_context
def serve(ctx, config_path, db_path, env_file, host, port):
    """Run the reporting API."""
    import uvicorn
    from webapp.main import create_app

    cfg = _setup(ctx, config_path, env_file, db_path)
    server = cfg['server']
    host = host or server['host']
    port = port or int(server['port'])
    click.echo(f"Salesboard API running at http://{host}:{port} (db: {cfg['db_path']})")
    uvicorn.run(create_app(cfg), host=host, port=port)


@main.command()
@click.argument('name', type=click.Choice(sorted(REPORTS)))
@click.option('--month', required=True, help='Month of sale, 1-12 (any year)')
@config_option
@db_option
@click.pass_context
def report(ctx, name, month, config_path, db_path):
    """Print one monthly report as JSON."""
    cfg = _setup(ctx, config_path, None, db_path)

    kwargs = {}
    if name == 'combined' and cfg.get('query_timeout_seconds'):
        kwargs['timeout'] = float(cfg['query_timeout_seconds'])

    async def _run():
        with TransactionStore(cfg['db_path']) as store:
            return await REPORTS[name](store, month, **kwargs)

    try:
        payload = anyio.run(_run)
    except ValidationError as e:
        raise click.BadParameter(str(e), param_hint="'--month'")
    except SalesReportError as e:
        raise click.ClickException(str(e))
    click.echo(json.dumps(payload, indent=2))


if __name__ == "__main__":
    main()
