# -*- coding: utf-8 -*-
"""
================================================================================
Royal Mail Carrier Client
================================================================================
Purpose:
----------------
Wraps the carrier calls the label and tracking workflows need behind one small
interface, `CarrierClient`:

- `create_shipment(...)`: authenticate, then create the shipment.
- `get_label(...)`: fetch the PDF label for a created shipment.
- `get_tracking(...)`: current tracking state of a tracking number.

Two implementations exist and one of them is chosen at startup by
`get_carrier_client(settings)`:

- `RoyalMailClient` talks to the live Royal Mail REST API. A fresh bearer
  token is fetched for every shipment and dropped once the label is
  downloaded.
- `MockCarrierClient` makes no network calls. It invents shipment and tracking
  numbers in the carrier's format and renders a placeholder PDF label, which
  lets the whole CRM flow be exercised without carrier credentials.
----------------
"""

# =====================================================================================
# --- Imports ---
# =====================================================================================
import uuid
import secrets
import logging
from datetime import date, datetime, timezone

import requests

from common.errors import UpstreamError
from common.models import CarrierShipment
from shipping.mock_label import render_placeholder_label

logger = logging.getLogger(__name__)

SERVICE_NAME = 'RoyalMail'
TRACKING_URL_BASE = "https://www.royalmail.com/track-your-item#/tracking-results/"


def tracking_url(tracking_number):
    """Public tracking page for a tracking number."""
    return f"{TRACKING_URL_BASE}{tracking_number}"


def build_party(address):
    """Carrier JSON for a sender or recipient."""
    return {
        'name': address.name,
        'address': {
            'addressLine1': address.line1,
            'city': address.city,
            'postcode': address.postcode,
            'countryCode': address.country_code,
        },
    }


def build_shipment_payload(service_code, sender, recipient, reference, package, shipment_date=None):
    """
    Builds the body of the "create domestic shipment" call.

    Args:
        service_code (str): Carrier service tier, e.g. "TR48" (Tracked 48).
        sender (Address): Sender address, already defaulted.
        recipient (Address): Recipient address.
        reference (str): Customer reference printed on the label.
        package (PackageSpec): Package format, weight and dimensions.
        shipment_date (date): Defaults to today.
    """
    shipment_date = shipment_date or date.today()
    return {
        'serviceCode': service_code,
        'shipmentDate': shipment_date.isoformat(),
        'sender': build_party(sender),
        'recipient': build_party(recipient),
        'package': {
            'packageFormat': package.format,
            'weightInGrams': package.weight_grams,
            'dimensions': {
                'lengthMM': package.length_mm,
                'widthMM': package.width_mm,
                'heightMM': package.height_mm,
            },
        },
        'references': {
            'customerReference': reference,
        },
    }


# =====================================================================================
# --- Interface ---
# =====================================================================================

class CarrierClient:
    """The carrier operations the workflows depend on."""

    is_mock = False

    def create_shipment(self, service_code, sender, recipient, reference, package):
        """Returns a CarrierShipment (shipment number, tracking number, token)."""
        raise NotImplementedError

    def get_label(self, shipment, recipient):
        """Returns the label PDF for a CarrierShipment as bytes."""
        raise NotImplementedError

    def get_tracking(self, tracking_number):
        """
        Returns `{'status', 'last_event': {code, description, location, time},
        'eta'}` or None when the carrier has nothing for this number.
        """
        raise NotImplementedError


# =====================================================================================
# --- Live Royal Mail API ---
# =====================================================================================

class RoyalMailClient(CarrierClient):

    def __init__(self, settings):
        self.base_url = settings.rm_base
        self.credentials = {
            'client_id': settings.rm_client_id,
            'client_secret': settings.rm_client_secret,
            'username': settings.rm_username,
            'password': settings.rm_password,
        }
        self.timeout = settings.http_timeout

    def authenticate(self):
        """Exchanges the API credentials for a single-use bearer token."""
        url = f"{self.base_url}/shipping/v2/token"
        try:
            response = requests.post(url, json=self.credentials, timeout=self.timeout)
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise UpstreamError.from_request_exception(SERVICE_NAME, e) from e

        token = (response.json() or {}).get('access_token')
        if not token:
            raise UpstreamError(SERVICE_NAME, "token response did not contain an access_token",
                                response.status_code, response.json())
        return token

    def create_shipment(self, service_code, sender, recipient, reference, package):
        token = self.authenticate()
        payload = build_shipment_payload(service_code, sender, recipient, reference, package)
        headers = {'Authorization': f'Bearer {token}', 'Content-Type': 'application/json'}

        logger.info(f"Creating {service_code} shipment for reference {reference}...")
        try:
            response = requests.post(f"{self.base_url}/shipping/v2/domestic", json=payload,
                                     headers=headers, timeout=self.timeout)
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise UpstreamError.from_request_exception(SERVICE_NAME, e) from e

        data = response.json() or {}
        if not data.get('shipmentNumber') or not data.get('trackingNumber'):
            raise UpstreamError(SERVICE_NAME, "create response did not contain a shipment and tracking number",
                                response.status_code, data)
        shipment = CarrierShipment(
            shipment_number=data.get('shipmentNumber'),
            tracking_number=data.get('trackingNumber'),
            token=token,
        )
        logger.info(f"Carrier shipment {shipment.shipment_number} created, tracking {shipment.tracking_number}.")
        return shipment

    def get_label(self, shipment, recipient):
        url = f"{self.base_url}/shipping/v2/{shipment.shipment_number}/label"
        try:
            response = requests.put(url, headers={'Authorization': f'Bearer {shipment.token}'}, timeout=self.timeout)
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise UpstreamError.from_request_exception(SERVICE_NAME, e) from e
        return response.content

    def get_tracking(self, tracking_number):
        # TODO: wire to the Royal Mail Tracking API once tracking credentials are issued.
        logger.warning(f"Live tracking lookup is not available; no data for {tracking_number}.")
        return None


# =====================================================================================
# --- Simulation ---
# =====================================================================================

class MockCarrierClient(CarrierClient):

    is_mock = True

    def __init__(self, tracking_status=""):
        self.tracking_status = tracking_status

    def create_shipment(self, service_code, sender, recipient, reference, package):
        # Royal Mail tracked items: two letters, nine digits, "GB".
        shipment = CarrierShipment(
            shipment_number=f"MOCK{uuid.uuid4().hex[:10].upper()}",
            tracking_number=f"TT{secrets.randbelow(10 ** 9):09d}GB",
            token='mock-token',
        )
        logger.info(f"[mock] Shipment {shipment.shipment_number} for reference {reference}, "
                    f"tracking {shipment.tracking_number}.")
        return shipment

    def get_label(self, shipment, recipient):
        return render_placeholder_label(shipment.tracking_number, recipient.postcode)

    def get_tracking(self, tracking_number):
        if not self.tracking_status:
            return None
        return {
            'status': self.tracking_status,
            'last_event': {
                'code': 'MOCK',
                'description': f"Simulated status: {self.tracking_status}",
                'location': 'Mock Depot',
                'time': datetime.now(timezone.utc).strftime('%Y-%m-%dT%H:%M:%SZ'),
            },
            'eta': None,
        }


def get_carrier_client(settings):
    """Picks the carrier implementation once, at startup."""
    if settings.mock_mode:
        logger.info("Carrier client running in simulation mode.")
        return MockCarrierClient(settings.mock_tracking_status)
    return RoyalMailClient(settings)
