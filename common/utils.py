# -*- coding: utf-8 -*-
"""
================================================================================
Common Utility Functions
================================================================================
Purpose:
----------------
This module provides small helpers shared by every part of the shipments
backend: reading secrets and settings, and configuring logging.

Secrets are looked up in the process environment first (this is how the
service is configured on the hosting platform) and then in a `secrets.txt`
file at the project root, which is convenient for local development.

Key Functions:
- `get_secret(key_name, default)`: Returns the value for a key from the
  environment or `secrets.txt`, or the default when neither has it.
- `get_flag(key_name, default)`: Reads a boolean-ish setting ("1", "true",
  "yes", "on").
- `setup_logging(log_dir)`: Configures the root logger once for the process.
----------------
"""

# =====================================================================================
# --- Imports and Configuration ---
# =====================================================================================
import os
import sys
import logging
from datetime import datetime

# The secrets file lives in the project root, one level above this package.
SECRETS_FILE = os.path.join(os.path.dirname(__file__), '..', 'secrets.txt')

TRUTHY_VALUES = ('1', 'true', 'yes', 'on')

LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'


# =====================================================================================
# --- Secrets ---
# =====================================================================================

def read_secrets_file(path=SECRETS_FILE):
    """
    Parses a `KEY=VALUE` secrets file into a dictionary.

    Blank lines and lines starting with `#` are ignored. A missing file is not
    an error; it simply yields an empty dictionary.
    """
    secrets = {}
    try:
        with open(path, 'r') as f:
            for line in f:
                line = line.strip()
                if not line or line.startswith('#') or '=' not in line:
                    continue
                key, value = line.split('=', 1)
                secrets[key.strip()] = value.strip()
    except FileNotFoundError:
        pass
    return secrets


def get_secret(key_name, default=None):
    """
    Reads a single secret or setting.

    The environment wins over `secrets.txt`. Empty environment values count as
    unset so that a blank variable on the host does not mask the file.

    Args:
        key_name (str): The name of the key to retrieve (e.g., "HUBSPOT_TOKEN").
        default: Value returned when the key is found nowhere.

    Returns:
        str or the default.
    """
    value = os.environ.get(key_name)
    if value:
        return value
    return read_secrets_file().get(key_name, default)


def get_flag(key_name, default=False):
    value = get_secret(key_name)
    if value is None:
        return default
    return value.strip().lower() in TRUTHY_VALUES


# =====================================================================================
# --- Logging ---
# =====================================================================================

def setup_logging(log_dir=None, level=logging.INFO):
    """
    Configures the root logger with a stdout handler and, when `log_dir` is
    given, a dated log file (e.g. `shipments_2024-01-31.log`).
    """
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        log_filename = datetime.now().strftime("shipments_%Y-%m-%d.log")
        handlers.append(logging.FileHandler(os.path.join(log_dir, log_filename)))

    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers)
    return logging.getLogger()
