# -*- coding: utf-8 -*-
"""
================================================================================
Tracking Sync Workflow
================================================================================
Purpose:
----------------
Brings the status of open CRM shipment records in line with what the carrier
reports. It is triggered from outside (a scheduled job calling
`POST /tracking/sync`, or `main_tracking.py`) and makes one pass per call.

Key Steps:
1.  **Fetch Open Shipments**: Search the CRM for shipment records whose status
    is neither "Delivered" nor "Cancelled". Only the first page is read.
2.  **Look Up Tracking**: For every record with a tracking number, ask the
    carrier for its current state. Records without a tracking number, and
    records the carrier has no data for, are skipped.
3.  **Patch the CRM**: Map the carrier state onto CRM properties and patch the
    record when anything is to be written.
4.  **Mirror to Contacts**: Copy the new status onto every contact associated
    with the shipment.

Records are processed one after another. Two overlapping runs are not kept
apart from each other.
----------------
"""

# =====================================================================================
# --- Imports ---
# =====================================================================================
import logging

from shipping.workflow import CONTACT_OBJECT_TYPE, CONTACT_STATUS_PROPERTY

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = ['Delivered', 'Cancelled']
STATUS_DELIVERED = 'Delivered'

SEARCH_PROPERTIES = ['tracking_number', 'shipment_status']

LAST_EVENT_PROPERTIES = {
    'code': 'last_event_code',
    'description': 'last_event_description',
    'location': 'last_event_location',
    'time': 'last_event_time',
}


def map_tracking_to_properties(tracking):
    """
    Translates a carrier tracking result into CRM shipment properties.

    Args:
        tracking (dict): `{'status', 'last_event': {code, description,
                         location, time}, 'eta'}`; any part may be missing.

    Returns:
        dict: The properties to patch. `delivered_datetime` is only set when
              the status is exactly "Delivered" and the last event has a time.
    """
    out = {}
    if tracking.get('status'):
        out['shipment_status'] = tracking['status']

    last_event = tracking.get('last_event') or {}
    for key, prop in LAST_EVENT_PROPERTIES.items():
        if last_event.get(key) is not None:
            out[prop] = last_event[key]

    if tracking.get('eta'):
        out['expected_delivery_date'] = tracking['eta']
    if tracking.get('status') == STATUS_DELIVERED and last_event.get('time'):
        out['delivered_datetime'] = last_event['time']
    return out


class TrackingReconciler:
    """
    One best-effort sync pass over open shipment records.

    Args:
        settings (Settings): Service configuration.
        crm (CrmClient): CRM client.
        carrier (CarrierClient): Live or simulated carrier client.
    """

    def __init__(self, settings, crm, carrier):
        self.crm = crm
        self.carrier = carrier
        self.listing_type = settings.shipment_object_type
        self.page_size = settings.tracking_page_size

    def get_open_shipments(self):
        filter_groups = [{
            'filters': [{
                'propertyName': 'shipment_status',
                'operator': 'NOT_IN',
                'values': TERMINAL_STATUSES,
            }]
        }]
        return self.crm.search_objects(self.listing_type, filter_groups, SEARCH_PROPERTIES, self.page_size)

    def mirror_status_to_contacts(self, listing_id, status):
        contact_ids = self.crm.get_associated_ids(self.listing_type, listing_id, CONTACT_OBJECT_TYPE)
        for contact_id in contact_ids:
            self.crm.update_object(CONTACT_OBJECT_TYPE, contact_id, {CONTACT_STATUS_PROPERTY: status})
        return contact_ids

    def sync(self):
        """
        Runs the sync pass.

        Returns:
            dict: `{'scanned': <records returned by the search>,
                    'updated': <records patched>}`
        """
        records = self.get_open_shipments()
        logger.info(f"Tracking sync: {len(records)} open shipments to check.")
        updated = 0

        for record in records:
            listing_id = record.get('id')
            tracking_number = (record.get('properties') or {}).get('tracking_number')
            if not tracking_number:
                continue

            tracking = self.carrier.get_tracking(tracking_number)
            if not tracking:
                logger.info(f"No tracking data for {tracking_number} (listing {listing_id}).")
                continue

            update = map_tracking_to_properties(tracking)
            if not update:
                continue

            self.crm.update_object(self.listing_type, listing_id, update)
            updated += 1

            if 'shipment_status' in update:
                self.mirror_status_to_contacts(listing_id, update['shipment_status'])

        logger.info(f"Tracking sync finished: scanned {len(records)}, updated {updated}.")
        return {'scanned': len(records), 'updated': updated}
