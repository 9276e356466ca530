"""Entry point for the panelmon application."""

import argparse
import logging
import sys
from dataclasses import replace

from PySide6.QtWidgets import QApplication

from panelmon.api import PanelClient
from panelmon.config import load_settings
from panelmon.logging_config import configure_logging
from panelmon.models import DEFAULT_RANGE, RANGE_OPTIONS
from panelmon.ui.main_window import TelemetryView

# Configure logging early
configure_logging()
logger = logging.getLogger(__name__)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(prog="panelmon", description="Node network telemetry dashboard")
    parser.add_argument("--base-url", help="Panel root URL (env: PANELMON_BASE_URL)")
    parser.add_argument("--token", help="Session token (env: PANELMON_TOKEN)")
    parser.add_argument("--share", action="store_true", help="Use the read-only share endpoints")
    parser.add_argument("--node", type=int, default=None, help="Open this node's detail view")
    parser.add_argument("--range", dest="range_key", choices=list(RANGE_OPTIONS), default=DEFAULT_RANGE)
    return parser.parse_args(argv)


def main():
    """Main entry point for the panelmon application."""
    args = parse_args(sys.argv[1:])
    settings = load_settings()
    if args.base_url:
        settings = replace(settings, base_url=args.base_url)
    if args.token is not None:
        settings = replace(settings, token=args.token)
    if args.share:
        settings = replace(settings, share=True)

    if settings.shared and not settings.share:
        logger.info("No token configured, using read-only share endpoints")

    client = PanelClient(settings.base_url, token=settings.token, timeout=settings.timeout)
    logger.info("Panel client ready: base_url=%s, shared=%s", settings.base_url, settings.shared)

    app = QApplication(sys.argv[:1])
    window = TelemetryView(client, shared=settings.shared, node_id=args.node, range_key=args.range_key)
    window.show()
    window.load()

    sys.exit(app.exec())


if __name__ == "__main__":
    main()
