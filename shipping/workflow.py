# -*- coding: utf-8 -*-
"""
================================================================================
Shipping Label Workflow
================================================================================
Purpose:
----------------
This module creates carrier shipments and shipping labels for CRM shipment
records ("listings" in HubSpot) and writes the results back to the CRM.

It can be started from two places:

1.  **An existing shipment record** (`create_label_for_listing`): the record
    already holds the sender and recipient. If a carrier shipment number is
    already set, the label was created before and nothing is done again.
2.  **A contact** (`create_label_from_contact`): the contact's address is
    validated, a new shipment record is created and associated with the
    contact, and once the label exists the tracking details are mirrored back
    onto the contact so CRM workflows keyed on contacts can react.

Key Steps (both entry points):
1.  Build the sender (configured defaults fill any blank field) and the
    recipient addresses.
2.  Create the shipment with the carrier (fresh token every time).
3.  Download the PDF label and upload it to CRM file storage.
4.  Patch the shipment record with the shipment number, tracking number,
    tracking URL, label URL and status "Label Printed".

Business rules: every shipment goes out as the configured service tier
(Tracked 48 by default) and package (a 100 g Letter by default).

NOTE: The "already created" check reads CRM state and then acts on it. Two
requests for the same record arriving together can both pass the check and
create two carrier shipments. Steps are not rolled back either: if the carrier
shipment succeeds but a later CRM write fails, the carrier side exists and the
CRM does not show it. Such records need to be fixed by hand.
----------------
"""

# =====================================================================================
# --- Imports ---
# =====================================================================================
import time
import logging
from datetime import datetime, timezone

from common.errors import MissingFieldError
from common.models import Address
from shipping.carrier_client import tracking_url

logger = logging.getLogger(__name__)


# =====================================================================================
# --- CRM Property Names ---
# =====================================================================================
CONTACT_OBJECT_TYPE = 'contacts'

LISTING_PROPERTIES = [
    # core
    'shipment_id', 'order_number', 'shipment_status',
    # addresses
    'sender_name', 'sender_line1', 'sender_city', 'sender_postcode', 'sender_country_code',
    'recipient_name', 'recipient_line1', 'recipient_city', 'recipient_postcode', 'recipient_country_code',
    # carrier results
    'rmg_shipment_number', 'tracking_number', 'label_url',
]

CONTACT_PROPERTIES = ['firstname', 'lastname', 'address', 'city', 'zip', 'country']

# Mirrored onto the contact so contact-based CRM workflows can react.
CONTACT_TRIGGER_PROPERTY = 'create_shipping_label'
CONTACT_TRACKING_PROPERTY = 'shipment_tracking_number'
CONTACT_STATUS_PROPERTY = 'shipment_status'
CONTACT_CREATED_AT_PROPERTY = 'shipment_created_at'

STATUS_CREATED = 'Created'
STATUS_LABEL_PRINTED = 'Label Printed'

DEFAULT_COUNTRY_CODE = 'GB'


# =====================================================================================
# --- Address Helpers ---
# =====================================================================================

def parse_country_code(value):
    """
    Returns an ISO-2 country code for a free-text CRM country value.

    Contacts often hold "United Kingdom" or nothing at all; only an explicit
    two-letter code is trusted, anything else falls back to GB.
    """
    value = (value or '').strip()
    if len(value) == 2 and value.isalpha():
        return value.upper()
    return DEFAULT_COUNTRY_CODE


def sender_from_listing(props, default_sender):
    listing_sender = Address(
        name=props.get('sender_name') or '',
        line1=props.get('sender_line1') or '',
        city=props.get('sender_city') or '',
        postcode=props.get('sender_postcode') or '',
        country_code=props.get('sender_country_code') or '',
    )
    return listing_sender.with_defaults(default_sender)


def recipient_from_listing(props):
    return Address(
        name=props.get('recipient_name') or '',
        line1=props.get('recipient_line1') or '',
        city=props.get('recipient_city') or '',
        postcode=props.get('recipient_postcode') or '',
        country_code=props.get('recipient_country_code') or DEFAULT_COUNTRY_CODE,
    )


def recipient_from_contact(props):
    name = ' '.join(part for part in (props.get('firstname'), props.get('lastname')) if part)
    return Address(
        name=name,
        line1=props.get('address') or '',
        city=props.get('city') or '',
        postcode=props.get('zip') or '',
        country_code=parse_country_code(props.get('country')),
    )


def listing_address_properties(sender, recipient):
    """CRM properties describing both addresses of a new shipment record."""
    return {
        'sender_name': sender.name,
        'sender_line1': sender.line1,
        'sender_city': sender.city,
        'sender_postcode': sender.postcode,
        'sender_country_code': sender.country_code,
        'recipient_name': recipient.name,
        'recipient_line1': recipient.line1,
        'recipient_city': recipient.city,
        'recipient_postcode': recipient.postcode,
        'recipient_country_code': recipient.country_code,
    }


def utc_now_iso():
    return datetime.now(timezone.utc).strftime('%Y-%m-%dT%H:%M:%SZ')


# =====================================================================================
# --- Orchestrator ---
# =====================================================================================

class LabelOrchestrator:
    """
    Creates shipping labels for CRM shipment records.

    Args:
        settings (Settings): Service configuration (defaults and business rules).
        crm (CrmClient): CRM client.
        carrier (CarrierClient): Live or simulated carrier client.
    """

    def __init__(self, settings, crm, carrier):
        self.settings = settings
        self.crm = crm
        self.carrier = carrier
        self.listing_type = settings.shipment_object_type

    def create_label_for_listing(self, listing_id):
        """
        Creates the label for an existing shipment record.

        Returns:
            dict: `listing_id`, `shipment_number`, `tracking_number`,
                  `tracking_url`, `label_url` and `already_created`.
        """
        if not listing_id:
            raise MissingFieldError("missing listingId")

        props = self.crm.get_object(self.listing_type, listing_id, LISTING_PROPERTIES)

        # Idempotency: a shipment number means the carrier side already exists.
        if props.get('rmg_shipment_number'):
            logger.info(f"Listing {listing_id} already has shipment {props['rmg_shipment_number']}; skipping.")
            return {
                'listing_id': listing_id,
                'shipment_number': props['rmg_shipment_number'],
                'tracking_number': props.get('tracking_number'),
                'tracking_url': tracking_url(props['tracking_number']) if props.get('tracking_number') else None,
                'label_url': props.get('label_url'),
                'already_created': True,
            }

        sender = sender_from_listing(props, self.settings.sender)
        recipient = recipient_from_listing(props)
        return self._fulfil(listing_id, props, sender, recipient)

    def create_label_from_contact(self, contact_id):
        """
        Creates a shipment record for a contact, then its label.

        The contact must have an address line and a postcode; nothing is
        written anywhere when either is missing.

        Returns:
            dict: As `create_label_for_listing`, plus `contact_id`.
        """
        if not contact_id:
            raise MissingFieldError("missing contactId")

        contact = self.crm.get_object(CONTACT_OBJECT_TYPE, contact_id, CONTACT_PROPERTIES)
        if not contact.get('address') or not contact.get('zip'):
            raise MissingFieldError(f"contact {contact_id} is missing an address line or postcode")

        # -------------------------------------------------------------
        # Step 1: Flag the contact so CRM automation knows a label is coming.
        # -------------------------------------------------------------
        self.crm.update_object(CONTACT_OBJECT_TYPE, contact_id, {CONTACT_TRIGGER_PROPERTY: 'true'})

        # -------------------------------------------------------------
        # Step 2: Create the shipment record and link it to the contact.
        # -------------------------------------------------------------
        sender = self.settings.sender
        recipient = recipient_from_contact(contact)
        listing_props = {
            'shipment_id': f"{contact_id}-{int(time.time())}",
            'shipment_status': STATUS_CREATED,
        }
        listing_props.update(listing_address_properties(sender, recipient))

        listing_id = self.crm.create_object(self.listing_type, listing_props)
        self.crm.associate(self.listing_type, listing_id, CONTACT_OBJECT_TYPE, contact_id)

        # -------------------------------------------------------------
        # Step 3: Carrier shipment, label, and write-back to the listing.
        # -------------------------------------------------------------
        result = self._fulfil(listing_id, listing_props, sender, recipient)

        # -------------------------------------------------------------
        # Step 4: Mirror the outcome onto the contact.
        # -------------------------------------------------------------
        self.crm.update_object(CONTACT_OBJECT_TYPE, contact_id, {
            CONTACT_TRACKING_PROPERTY: result['tracking_number'],
            CONTACT_STATUS_PROPERTY: STATUS_LABEL_PRINTED,
            CONTACT_CREATED_AT_PROPERTY: utc_now_iso(),
        })

        result['contact_id'] = contact_id
        return result

    def _fulfil(self, listing_id, props, sender, recipient):
        """Carrier shipment → label → CRM file → CRM shipment record."""
        reference = props.get('order_number') or props.get('shipment_id') or listing_id

        shipment = self.carrier.create_shipment(
            self.settings.service_code, sender, recipient, reference, self.settings.package,
        )
        label = self.carrier.get_label(shipment, recipient)

        filename = f"{props.get('order_number') or props.get('shipment_id') or shipment.shipment_number}.pdf"
        label_url = self.crm.upload_file(label, filename, 'application/pdf')

        url = tracking_url(shipment.tracking_number)
        self.crm.update_object(self.listing_type, listing_id, {
            'rmg_shipment_number': shipment.shipment_number,
            'tracking_number': shipment.tracking_number,
            'tracking_url': url,
            'label_url': label_url,
            'shipment_status': STATUS_LABEL_PRINTED,
        })
        logger.info(f"Label created for listing {listing_id}: tracking {shipment.tracking_number}.")

        return {
            'listing_id': listing_id,
            'shipment_number': shipment.shipment_number,
            'tracking_number': shipment.tracking_number,
            'tracking_url': url,
            'label_url': label_url,
            'already_created': False,
        }
