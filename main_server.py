#!/usr/bin/env python3

"""
Main entry point for the Shipments Backend web service.

Runs the Flask development server on the configured port. In production the
same application is served by a WSGI server, e.g.:

    gunicorn web_interface.shipments_app:app
"""

import sys
import os
import logging

# Ensure the project root is in the Python path
PROJECT_ROOT = os.path.dirname(os.path.abspath(__file__))
sys.path.insert(0, PROJECT_ROOT)

from common.config import Settings
from common.utils import setup_logging
from web_interface.shipments_app import create_app

if __name__ == '__main__':
    settings = Settings.from_env()
    setup_logging(settings.log_dir)
    app = create_app(settings)
    logging.getLogger(__name__).info(
        f"Shipments backend listening on :{settings.port} (mock carrier: {settings.mock_mode})"
    )
    app.run(host='0.0.0.0', port=settings.port)
