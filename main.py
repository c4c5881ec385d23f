#!/usr/bin/env python3
"""
Main entry point for the stroke screening service.

Serves the FAST screening API:
1. Assessment storage (save / list recent / statistics)
2. Speech transcript analysis (Gemini-backed, never fails outward)
3. Risk fusion of facial, posture and speech metrics

Usage:
    python main.py --config configs/default.yaml --port 8000

Outputs are screening indicators only, not a medical diagnosis.
"""

import argparse
import logging
import sys
from pathlib import Path

from utils.api_server import create_app, start_server
from utils.config_loader import DEFAULT_CONFIG_PATH, get_nested_config, load_config

logger = logging.getLogger(__name__)


def configure_logging(config):
    """Configure root logging from the `logging` config section."""
    level_name = str(get_nested_config(config, 'logging.level', 'INFO')).upper()
    handlers = [logging.StreamHandler(sys.stdout)]

    log_file = get_nested_config(config, 'logging.file')
    if log_file:
        handlers.insert(0, logging.FileHandler(log_file))

    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers,
        force=True
    )


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description='Stroke Screen - FAST stroke screening API server',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Basic usage
  python main.py

  # With custom config
  python main.py --config custom.yaml

  # Override bind address
  python main.py --host 127.0.0.1 --port 9000
        """
    )

    parser.add_argument(
        '--config',
        type=str,
        default=str(DEFAULT_CONFIG_PATH),
        help='Path to configuration YAML file (default: configs/default.yaml)'
    )

    parser.add_argument(
        '--host',
        type=str,
        default=None,
        help='Host address (default: server.host from config)'
    )

    parser.add_argument(
        '--port',
        type=int,
        default=None,
        help='Port number (default: server.port from config)'
    )

    args = parser.parse_args()

    # Validate config path
    config_path = Path(args.config)
    if not config_path.exists():
        logging.basicConfig(level=logging.INFO)
        logger.error(f"Config file not found: {config_path}")
        sys.exit(1)

    config = load_config(str(config_path))
    configure_logging(config)
    logger.info(f"Loaded configuration from: {config_path}")

    host = args.host or get_nested_config(config, 'server.host', '0.0.0.0')
    port = args.port or get_nested_config(config, 'server.port', 8000)

    try:
        app = create_app(config=config)
        start_server(app, host=host, port=port)

    except KeyboardInterrupt:
        logger.warning("Server interrupted by user")
        sys.exit(1)

    except Exception as e:
        logger.error(f"Server failed: {type(e).__name__}: {str(e)}")
        logger.exception("Full traceback:")
        sys.exit(1)


if __name__ == '__main__':
    main()
