"""
Command-line entry point for a migration run.

All settings come from the environment (see ``medichat_migration.config``).
Exit status is 0 once the run reaches its summary, whatever the per-record
error counts, and 1 when a store cannot be acquired.
"""

import sys
from typing import Optional

from .config import MigrationConfig
from .exceptions import FatalConnectionError
from .migration import MigrationOrchestrator, StoreConnector
from .utils.logging import bind_run_context, configure_logging, get_logger

logger = get_logger('medichat_migration.cli')


def main(connector: Optional[StoreConnector] = None) -> int:
    try:
        config = MigrationConfig.from_environment()
    except ValueError as error:
        configure_logging()
        logger.error("invalid_configuration", error=str(error))
        print(f"Invalid configuration: {error}", file=sys.stderr)
        return 1

    configure_logging(config.log_level, config.log_format)
    run_id = bind_run_context()
    logger.info("migration_started", run_id=run_id, **config.to_dict())

    orchestrator = MigrationOrchestrator(config)
    try:
        orchestrator.run(connector or StoreConnector(config))
    except FatalConnectionError as error:
        logger.critical(
            "migration_failed",
            store=error.store,
            error=error.message,
            correlation_id=error.correlation_id,
        )
        print(f"Migration failed: {error.message}", file=sys.stderr)
        return 1
    return 0
