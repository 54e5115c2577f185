"""
Command line entry point.

    keeper -c /etc/keeper/config.json
"""

import logging
import sys

import click

from keeper import configure_logging, create_dispatcher
from keeper.config import ConfigLoadError, get_settings, load_config

logger = logging.getLogger(__name__)


def run_batch(backup_config, settings) -> bool:
    """
    Run every configured task once.

    Returns:
        True if every stage of every task succeeded
    """
    dispatcher = create_dispatcher(backup_config, settings)
    results = dispatcher.dispatch(backup_config.all_tasks)
    return all(result.succeeded for result in results)


@click.command()
@click.option('-c', '--config', 'config_path', required=True,
              type=click.Path(dir_okay=False), help='Path to the configuration file')
def main(config_path):
    """Run the configured backup tasks."""
    try:
        settings = get_settings()
    except ConfigLoadError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    configure_logging(settings)

    try:
        backup_config = load_config(config_path)
    except ConfigLoadError as e:
        logger.critical(str(e))
        sys.exit(1)

    if backup_config.schedule:
        from keeper.scheduler import init_scheduler, start_scheduler

        try:
            init_scheduler(
                lambda: run_batch(backup_config, settings),
                backup_config.schedule,
                timezone=settings.SCHEDULER_TIMEZONE
            )
        except ValueError as e:
            logger.critical(f"Invalid schedule '{backup_config.schedule}': {e}")
            sys.exit(1)

        start_scheduler()
        return

    ok = run_batch(backup_config, settings)

    if not ok and backup_config.fail_on_error:
        sys.exit(1)


if __name__ == '__main__':
    main()
