# -*- coding: utf-8 -*-
"""
================================================================================
Shipments Backend Web Application
================================================================================
Purpose:
----------------
This module builds the Flask application that exposes the shipments backend
over HTTP. It is called by CRM cards and buttons (label creation) and by a
scheduled job (tracking sync).

Routes:
- `GET /`: plain-text liveness check.
- `GET /health`: JSON liveness check, reports whether the carrier is simulated.
- `/labels/create`: create the label for an existing shipment record
  (`listingId` in the query string or JSON body).
- `/labels/create-from-contact`: create a shipment record and label for a
  contact (`contactId` in the query string or JSON body).
- `POST /tracking/sync`: run one tracking sync pass. Protected by the
  `x-inbound-secret` header when `INBOUND_SECRET` is configured.

When a HubSpot portal id is configured, label routes answer with a small HTML
page that sends the browser back to the shipment record; otherwise they answer
with JSON.

The application is meant to be served by a WSGI server such as Gunicorn
(`web_interface.shipments_app:app`); `main_server.py` runs the development
server.
----------------
"""

# =====================================================================================
# --- Imports and Setup ---
# =====================================================================================
import hmac
import html
import json
import logging
from functools import wraps

from flask import Flask, current_app, jsonify, request

from common.config import Settings
from common.errors import MissingFieldError, UpstreamError
from crm.client import CrmClient
from shipping.carrier_client import get_carrier_client
from shipping.workflow import LabelOrchestrator
from tracking.workflow import TrackingReconciler

logger = logging.getLogger(__name__)

LABEL_METHODS = ['GET', 'POST', 'PUT', 'PATCH']

REDIRECT_TEMPLATE = (
    '<p>{message} <a href="{href}" target="_self">{link_text}</a></p>\n'
    '<script>window.location={script_url}</script>'
)


# =====================================================================================
# --- Helpers ---
# =====================================================================================

def _services():
    return current_app.extensions['shipments']


def _request_param(name):
    """Reads a parameter from the query string, then from the JSON body."""
    value = request.args.get(name)
    if value:
        return value
    body = request.get_json(silent=True) or {}
    value = body.get(name) if isinstance(body, dict) else None
    return None if value is None else str(value)


def _record_id_error(name, value):
    """Error response for a missing or non-numeric CRM record id, else None."""
    if not value:
        return _error(f'missing {name}', 400)
    if not value.isascii() or not value.isdigit():
        return _error(f'invalid {name}', 400)
    return None


def _error(message, status):
    return jsonify({'ok': False, 'error': message}), status


def require_inbound_secret(view):
    """Rejects the request with a 401 unless the shared secret matches."""
    @wraps(view)
    def wrapper(*args, **kwargs):
        secret = _services()['settings'].inbound_secret
        supplied = request.headers.get('x-inbound-secret', '')
        if secret and not hmac.compare_digest(supplied.encode(), secret.encode()):
            logger.warning(f"Rejected {request.path}: bad or missing inbound secret.")
            return _error('unauthorized', 401)
        return view(*args, **kwargs)
    return wrapper


def _label_response(result):
    """HTML redirect back to the shipment record when a portal is configured, JSON otherwise."""
    services = _services()
    settings = services['settings']
    if settings.hubspot_portal_id:
        if result['already_created']:
            message, link_text = "Shipment already created.", "Back to Shipment"
        else:
            message, link_text = "Label created.", "Return to Shipment"
        url = services['crm'].record_url(settings.shipment_object_type, result['listing_id'])
        page = REDIRECT_TEMPLATE.format(
            message=message,
            href=html.escape(url),
            # "</" must not close the script element early.
            script_url=json.dumps(url).replace('</', '<\\/'),
            link_text=link_text,
        )
        return page, 200

    body = {
        'ok': True,
        'listingId': result['listing_id'],
        'shipmentNumber': result['shipment_number'],
        'trackingNumber': result['tracking_number'],
        'trackingUrl': result['tracking_url'],
        'labelUrl': result['label_url'],
        'alreadyCreated': result['already_created'],
    }
    if 'contact_id' in result:
        body['contactId'] = result['contact_id']
    return jsonify(body), 200


def _run_label_job(route, job, object_id):
    """Runs a label job and maps its failures onto HTTP responses."""
    try:
        return _label_response(job(object_id))
    except MissingFieldError as e:
        return _error(str(e), 400)
    except UpstreamError as e:
        logger.error(f"[{route}] error: {e.payload}")
        return _error(e.payload, 500)
    except Exception as e:
        logger.exception(f"[{route}] unexpected error")
        return _error(str(e), 500)


# =====================================================================================
# --- Application Factory ---
# =====================================================================================

def create_app(settings=None, crm=None, carrier=None):
    """
    Builds the Flask application.

    Args:
        settings (Settings): Defaults to `Settings.from_env()`.
        crm (CrmClient): Defaults to a client built from the settings.
        carrier (CarrierClient): Defaults to `get_carrier_client(settings)`.
    """
    settings = settings or Settings.from_env()
    crm = crm or CrmClient(settings)
    carrier = carrier or get_carrier_client(settings)

    app = Flask(__name__)
    app.extensions['shipments'] = {
        'settings': settings,
        'crm': crm,
        'carrier': carrier,
        'labels': LabelOrchestrator(settings, crm, carrier),
        'tracking': TrackingReconciler(settings, crm, carrier),
    }

    # ---------------------------------------------------------------------------------
    # --- Health ---
    # ---------------------------------------------------------------------------------

    @app.route('/')
    def index():
        return "Shipments backend OK", 200, {'Content-Type': 'text/plain; charset=utf-8'}

    @app.route('/health')
    def health():
        return jsonify({'ok': True, 'mock': bool(carrier.is_mock)})

    # ---------------------------------------------------------------------------------
    # --- Labels ---
    # ---------------------------------------------------------------------------------

    @app.route('/labels/create', methods=LABEL_METHODS)
    def create_label():
        """Creates the label for an existing shipment record."""
        listing_id = _request_param('listingId')
        invalid = _record_id_error('listingId', listing_id)
        if invalid:
            return invalid
        return _run_label_job('/labels/create', _services()['labels'].create_label_for_listing, listing_id)

    @app.route('/labels/create-from-contact', methods=LABEL_METHODS)
    def create_label_from_contact():
        """Creates a shipment record and its label for a contact."""
        contact_id = _request_param('contactId')
        invalid = _record_id_error('contactId', contact_id)
        if invalid:
            return invalid
        return _run_label_job('/labels/create-from-contact',
                              _services()['labels'].create_label_from_contact, contact_id)

    # ---------------------------------------------------------------------------------
    # --- Tracking ---
    # ---------------------------------------------------------------------------------

    @app.route('/tracking/sync', methods=['POST'])
    @require_inbound_secret
    def tracking_sync():
        try:
            counts = _services()['tracking'].sync()
        except UpstreamError as e:
            logger.error(f"[/tracking/sync] error: {e.payload}")
            return _error(e.payload, 500)
        except Exception as e:
            logger.exception("[/tracking/sync] unexpected error")
            return _error(str(e), 500)
        return jsonify({'ok': True, 'scanned': counts['scanned'], 'updated': counts['updated']})

    return app


# Module-level application for WSGI servers.
app = create_app()
