#!/usr/bin/env python3

"""
Main entry point for the Tracking Sync Workflow.

Runs one tracking sync pass directly, without going through the HTTP
endpoint. Intended for a cron job or CI schedule running next to the service.

The core logic is located in the `tracking.workflow` module.
"""

import sys
import os
import logging

# Ensure the project root is in the Python path
PROJECT_ROOT = os.path.dirname(os.path.abspath(__file__))
sys.path.insert(0, PROJECT_ROOT)

from common.config import Settings
from common.errors import ShipmentError
from common.utils import setup_logging
from crm.client import CrmClient
from shipping.carrier_client import get_carrier_client
from tracking.workflow import TrackingReconciler


def main():
    settings = Settings.from_env()
    setup_logging(settings.log_dir)
    logger = logging.getLogger(__name__)

    reconciler = TrackingReconciler(settings, CrmClient(settings), get_carrier_client(settings))
    try:
        counts = reconciler.sync()
    except ShipmentError as e:
        logger.error(f"Tracking sync failed: {e}")
        sys.exit(1)
    logger.info(f"Tracking sync complete: {counts}")


if __name__ == '__main__':
    main()
