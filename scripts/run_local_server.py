#!/usr/bin/env python3
"""Local Flask server for testing and development."""

import os
import sys
import click
import logging
from pathlib import Path

# Make the package importable without installing it
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from excel_template_filler.main import app, setup_logging


@click.command()
@click.option('--host', default='0.0.0.0', help='Host to bind to')
@click.option('--port', default=8080, type=int, help='Port to bind to')
@click.option('--debug', is_flag=True, help='Enable debug mode')
@click.option('--env', default='development', help='Environment (development, testing, production)')
@click.option('--reload', is_flag=True, help='Enable auto-reload on file changes')
@click.option('--log-level', default='INFO', help='Log level (DEBUG, INFO, WARNING, ERROR)')
@click.option('--quiet', '-q', is_flag=True, help='Quiet mode - reduce logging verbosity')
def run_server(host, port, debug, env, reload, log_level, quiet):
    """Run the Excel Template Filler Flask server locally."""

    os.environ['ENVIRONMENT'] = env

    if quiet:
        os.environ['VERBOSE_LOGGING'] = 'false'
        log_level = 'WARNING'
    os.environ['LOG_LEVEL'] = log_level.upper()

    setup_logging()
    logger = logging.getLogger(__name__)

    if quiet:
        logging.getLogger("excel_template_filler").setLevel(logging.WARNING)
        print(f"Server starting on http://{host}:{port} (quiet mode)")
        print("Press Ctrl+C to stop the server")
    else:
        logger.info("Starting Excel Template Filler server")
        logger.info(f"Environment: {env}")
        logger.info(f"Debug mode: {debug}")
        logger.info(f"Host: {host}")
        logger.info(f"Port: {port}")
        logger.info(f"Log level: {log_level}")

    app.config.update({
        'DEBUG': debug,
        'TESTING': env == 'testing',
    })

    if debug and not quiet:
        logger.info("Available endpoints:")
        logger.info("  GET  /api/v1/health        - Health check")
        logger.info("  POST /api/v1/fill          - Fill a template with JSON data")
        logger.info("  POST /api/v1/placeholders  - List template placeholders")

    try:
        app.run(
            host=host,
            port=port,
            debug=debug,
            use_reloader=reload,
            threaded=True
        )
    except KeyboardInterrupt:
        logger.info("Server stopped by user")
    except OSError as e:
        logger.error(f"Server error: {e}")
        sys.exit(1)


if __name__ == '__main__':
    run_server()
