# -*- coding: utf-8 -*-
"""
================================================================================
Service Configuration
================================================================================
Purpose:
----------------
All settings are read once at startup into a frozen `Settings` object, which
is then handed to the CRM client, the carrier client and the workflows. No
module reads the environment on its own after that point.

See `common.utils.get_secret` for where values come from (environment first,
then `secrets.txt`).
----------------
"""
from dataclasses import dataclass, field

from common.models import Address, PackageSpec
from common.utils import get_secret, get_flag


DEFAULT_SENDER = Address(
    name="Your Company",
    line1="1 Example Way",
    city="London",
    postcode="W1A 1AA",
    country_code="GB",
)


@dataclass(frozen=True)
class Settings:
    # --- CRM ---
    hubspot_token: str = ""
    hubspot_portal_id: str = ""
    hubspot_base_url: str = "https://api.hubapi.com"
    hubspot_app_url: str = "https://app.hubspot.com"
    shipment_object_type: str = "listings"
    label_folder_path: str = "/shipping-labels"

    # --- Carrier ---
    rm_base: str = "https://api.royalmail.net"
    rm_client_id: str = ""
    rm_client_secret: str = ""
    rm_username: str = ""
    rm_password: str = ""
    mock_mode: bool = True
    mock_tracking_status: str = ""

    # --- Business rules ---
    service_code: str = "TR48"
    package: PackageSpec = field(default_factory=PackageSpec)
    sender: Address = DEFAULT_SENDER

    # --- Service ---
    inbound_secret: str = ""
    tracking_page_size: int = 100
    http_timeout: float = 30
    port: int = 3000
    log_dir: str = ""

    @classmethod
    def from_env(cls):
        """Builds the settings from the environment / secrets.txt."""
        rm_client_id = get_secret('RM_CLIENT_ID', '')
        return cls(
            hubspot_token=get_secret('HUBSPOT_TOKEN', ''),
            hubspot_portal_id=get_secret('HUBSPOT_PORTAL_ID', ''),
            hubspot_base_url=get_secret('HUBSPOT_BASE_URL', cls.hubspot_base_url).rstrip('/'),
            hubspot_app_url=get_secret('HUBSPOT_APP_URL', cls.hubspot_app_url).rstrip('/'),
            shipment_object_type=get_secret('SHIPMENT_OBJECT_TYPE', cls.shipment_object_type),
            label_folder_path=get_secret('LABEL_FOLDER_PATH', cls.label_folder_path),
            rm_base=get_secret('RM_BASE', cls.rm_base).rstrip('/'),
            rm_client_id=rm_client_id,
            rm_client_secret=get_secret('RM_CLIENT_SECRET', ''),
            rm_username=get_secret('RM_USERNAME', ''),
            rm_password=get_secret('RM_PASSWORD', ''),
            # Without carrier credentials there is nothing live to talk to.
            mock_mode=get_flag('RM_MOCK') or not rm_client_id,
            mock_tracking_status=get_secret('MOCK_TRACKING_STATUS', ''),
            service_code=get_secret('RM_SERVICE_CODE', cls.service_code),
            package=PackageSpec(
                format=get_secret('PACKAGE_FORMAT', 'Letter'),
                weight_grams=int(get_secret('PACKAGE_WEIGHT_GRAMS', '100')),
            ),
            sender=Address(
                name=get_secret('SENDER_NAME', DEFAULT_SENDER.name),
                line1=get_secret('SENDER_LINE1', DEFAULT_SENDER.line1),
                city=get_secret('SENDER_CITY', DEFAULT_SENDER.city),
                postcode=get_secret('SENDER_POSTCODE', DEFAULT_SENDER.postcode),
                country_code=get_secret('SENDER_COUNTRY', DEFAULT_SENDER.country_code),
            ),
            inbound_secret=get_secret('INBOUND_SECRET', ''),
            tracking_page_size=int(get_secret('TRACKING_PAGE_SIZE', '100')),
            http_timeout=float(get_secret('HTTP_TIMEOUT_SECONDS', '30')),
            port=int(get_secret('PORT', '3000')),
            log_dir=get_secret('LOG_DIR', ''),
        )
