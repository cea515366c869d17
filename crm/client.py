# -*- coding: utf-8 -*-
"""
================================================================================
CRM (HubSpot) REST Client
================================================================================
Purpose:
----------------
A thin wrapper around the HubSpot CRM endpoints the shipments backend needs:

- object read / create / update (contacts and the shipment "listings" object)
- object search (used by the tracking sync)
- associations between a shipment and its contacts
- file upload, used to host the generated PDF labels

Every request carries the private-app bearer token and an explicit timeout.
Network errors and non-2xx responses are raised as `UpstreamError` with the
HubSpot error body attached; nothing is retried.
----------------
"""

# =====================================================================================
# --- Imports ---
# =====================================================================================
import json
import logging
from urllib.parse import quote

import requests

from common.errors import UpstreamError

logger = logging.getLogger(__name__)

SERVICE_NAME = 'HubSpot'


def _segment(value):
    """One URL path segment; slashes and dots cannot escape it."""
    return quote(str(value), safe='')


class CrmClient:

    def __init__(self, settings):
        self.token = settings.hubspot_token
        self.base_url = settings.hubspot_base_url
        self.app_url = settings.hubspot_app_url
        self.portal_id = settings.hubspot_portal_id
        self.folder_path = settings.label_folder_path
        self.timeout = settings.http_timeout

    # =================================================================================
    # --- Low-level request helper ---
    # =================================================================================

    def _request(self, method, path, **kwargs):
        """
        Sends one request to the CRM and returns the decoded JSON body
        (or None for empty responses such as 204).

        Raises:
            UpstreamError: on network errors and non-2xx responses.
        """
        url = f"{self.base_url}{path}"
        headers = kwargs.pop('headers', {})
        headers['Authorization'] = f"Bearer {self.token}"
        try:
            response = requests.request(method, url, headers=headers, timeout=self.timeout, **kwargs)
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            error = UpstreamError.from_request_exception(SERVICE_NAME, e)
            logger.error(f"{method} {path} failed: {error.payload}")
            raise error from e

        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    # =================================================================================
    # --- Objects ---
    # =================================================================================

    def get_object(self, object_type, object_id, properties):
        """Returns the requested properties of one record as a dict."""
        data = self._request(
            'GET', f"/crm/v3/objects/{object_type}/{_segment(object_id)}",
            params={'properties': ','.join(properties)},
        )
        return (data or {}).get('properties') or {}

    def create_object(self, object_type, properties):
        """Creates a record and returns its new id."""
        data = self._request('POST', f"/crm/v3/objects/{object_type}", json={'properties': properties})
        object_id = (data or {}).get('id')
        logger.info(f"Created {object_type} record {object_id}.")
        return object_id

    def update_object(self, object_type, object_id, properties):
        self._request('PATCH', f"/crm/v3/objects/{object_type}/{_segment(object_id)}", json={'properties': properties})
        logger.info(f"Updated {object_type} {object_id}: {sorted(properties)}")

    def search_objects(self, object_type, filter_groups, properties, limit=100):
        """
        Runs a CRM search and returns the first page of results.

        Only one page is fetched; callers that need more must page themselves.
        """
        body = {
            'filterGroups': filter_groups,
            'properties': properties,
            'limit': limit,
        }
        data = self._request('POST', f"/crm/v3/objects/{object_type}/search", json=body)
        return (data or {}).get('results') or []

    # =================================================================================
    # --- Associations ---
    # =================================================================================

    def associate(self, from_type, from_id, to_type, to_id):
        """Creates the default (two-way) association between two records."""
        self._request('PUT', f"/crm/v4/objects/{from_type}/{_segment(from_id)}"
                             f"/associations/default/{to_type}/{_segment(to_id)}")
        logger.info(f"Associated {from_type} {from_id} with {to_type} {to_id}.")

    def get_associated_ids(self, from_type, from_id, to_type):
        data = self._request('GET', f"/crm/v4/objects/{from_type}/{_segment(from_id)}/associations/{to_type}")
        return [str(item['toObjectId']) for item in (data or {}).get('results') or []]

    # =================================================================================
    # --- Files ---
    # =================================================================================

    def upload_file(self, content, filename, content_type):
        """
        Uploads a file to HubSpot Files as public but not indexable, so the
        label link works from the CRM without showing up in search engines.

        Returns:
            str: The hosted file URL, or "" if HubSpot did not return one.
        """
        files = {'file': (filename, content, content_type)}
        data = {
            'options': json.dumps({'access': 'PUBLIC_NOT_INDEXABLE'}),
            'folderPath': self.folder_path,
        }
        result = self._request('POST', "/files/v3/files", files=files, data=data) or {}
        url = result.get('url') or result.get('full_url') or ''
        logger.info(f"Uploaded {filename} to CRM files: {url}")
        return url

    # =================================================================================
    # --- Links ---
    # =================================================================================

    def record_url(self, object_type, object_id):
        """Human-facing link to a record in the HubSpot UI."""
        return f"{self.app_url}/contacts/{self.portal_id}/record/{object_type.upper()}/{_segment(object_id)}"
