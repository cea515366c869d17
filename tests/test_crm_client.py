import json
import os
import sys
import unittest
import requests
from unittest.mock import patch, MagicMock

# Add project root to Python path
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, PROJECT_ROOT)

from common.config import Settings
from common.errors import UpstreamError
from crm.client import CrmClient

SETTINGS = Settings(
    hubspot_token='hs-token',
    hubspot_portal_id='47987553',
    hubspot_base_url='https://crm.example.com',
    http_timeout=7,
)


def json_response(body, status_code=200):
    response = MagicMock(status_code=status_code, content=json.dumps(body).encode())
    response.json.return_value = body
    return response


class TestCrmClient(unittest.TestCase):

    def setUp(self):
        self.client = CrmClient(SETTINGS)
        patcher = patch('crm.client.requests.request')
        self.mock_request = patcher.start()
        self.addCleanup(patcher.stop)

    def test_get_object_requests_properties(self):
        self.mock_request.return_value = json_response({'id': '101', 'properties': {'tracking_number': 'TT1'}})

        props = self.client.get_object('listings', '101', ['tracking_number', 'label_url'])

        self.assertEqual(props, {'tracking_number': 'TT1'})
        args, kwargs = self.mock_request.call_args
        self.assertEqual(args, ('GET', 'https://crm.example.com/crm/v3/objects/listings/101'))
        self.assertEqual(kwargs['params'], {'properties': 'tracking_number,label_url'})
        self.assertEqual(kwargs['headers']['Authorization'], 'Bearer hs-token')
        self.assertEqual(kwargs['timeout'], 7)

    def test_record_ids_cannot_change_the_request_path(self):
        self.mock_request.return_value = json_response({'id': '1', 'properties': {}})

        self.client.get_object('listings', '../contacts/77', ['tracking_number'])
        self.assertEqual(self.mock_request.call_args.args[1],
                         'https://crm.example.com/crm/v3/objects/listings/..%2Fcontacts%2F77')

        self.client.update_object('listings', '101?x=1', {'shipment_status': 'Created'})
        self.assertEqual(self.mock_request.call_args.args[1],
                         'https://crm.example.com/crm/v3/objects/listings/101%3Fx%3D1')

        self.client.associate('listings', '../a', 'contacts', '7/8')
        self.assertEqual(self.mock_request.call_args.args[1],
                         'https://crm.example.com/crm/v4/objects/listings/..%2Fa/associations/default/contacts/7%2F8')

        self.client.get_associated_ids('listings', '../555', 'contacts')
        self.assertEqual(self.mock_request.call_args.args[1],
                         'https://crm.example.com/crm/v4/objects/listings/..%2F555/associations/contacts')

    def test_create_object_returns_id(self):
        self.mock_request.return_value = json_response({'id': '555'}, 201)

        new_id = self.client.create_object('listings', {'shipment_id': 'X'})

        self.assertEqual(new_id, '555')
        self.assertEqual(self.mock_request.call_args.kwargs['json'], {'properties': {'shipment_id': 'X'}})

    def test_update_object_patches_properties(self):
        self.mock_request.return_value = json_response({'id': '101'})

        self.client.update_object('contacts', '77', {'shipment_status': 'Delivered'})

        args, kwargs = self.mock_request.call_args
        self.assertEqual(args, ('PATCH', 'https://crm.example.com/crm/v3/objects/contacts/77'))
        self.assertEqual(kwargs['json'], {'properties': {'shipment_status': 'Delivered'}})

    def test_search_objects_returns_first_page(self):
        self.mock_request.return_value = json_response({'results': [{'id': '1'}], 'paging': {'next': {}}})

        results = self.client.search_objects('listings', [{'filters': []}], ['tracking_number'], 100)

        self.assertEqual(results, [{'id': '1'}])
        self.mock_request.assert_called_once()
        self.assertEqual(self.mock_request.call_args.kwargs['json']['limit'], 100)

    def test_associate_uses_default_association(self):
        self.mock_request.return_value = MagicMock(status_code=204, content=b'')

        self.client.associate('listings', '555', 'contacts', '77')

        self.assertEqual(self.mock_request.call_args.args, (
            'PUT', 'https://crm.example.com/crm/v4/objects/listings/555/associations/default/contacts/77',
        ))

    def test_get_associated_ids(self):
        self.mock_request.return_value = json_response({'results': [{'toObjectId': 77}, {'toObjectId': 78}]})
        self.assertEqual(self.client.get_associated_ids('listings', '555', 'contacts'), ['77', '78'])

    def test_upload_file_is_public_not_indexable(self):
        self.mock_request.return_value = json_response({'url': 'https://files.example.com/a.pdf'})

        url = self.client.upload_file(b'%PDF', 'a.pdf', 'application/pdf')

        self.assertEqual(url, 'https://files.example.com/a.pdf')
        kwargs = self.mock_request.call_args.kwargs
        self.assertEqual(kwargs['files'], {'file': ('a.pdf', b'%PDF', 'application/pdf')})
        self.assertEqual(json.loads(kwargs['data']['options']), {'access': 'PUBLIC_NOT_INDEXABLE'})
        self.assertEqual(kwargs['data']['folderPath'], '/shipping-labels')

    def test_upload_file_falls_back_to_full_url(self):
        self.mock_request.return_value = json_response({'full_url': 'https://files.example.com/b.pdf'})
        self.assertEqual(self.client.upload_file(b'%PDF', 'b.pdf', 'application/pdf'), 'https://files.example.com/b.pdf')

    def test_http_error_raises_upstream_error_with_payload(self):
        error_response = MagicMock(status_code=404)
        error_response.json.return_value = {'message': 'resource not found'}
        self.mock_request.side_effect = requests.exceptions.HTTPError(response=error_response)

        with self.assertRaises(UpstreamError) as ctx:
            self.client.get_object('listings', '404', ['tracking_number'])
        self.assertEqual(ctx.exception.status_code, 404)
        self.assertEqual(ctx.exception.payload, {'message': 'resource not found'})

    def test_network_error_raises_upstream_error_with_message(self):
        self.mock_request.side_effect = requests.exceptions.ConnectionError('connection refused')

        with self.assertRaises(UpstreamError) as ctx:
            self.client.search_objects('listings', [], [], 10)
        self.assertIsNone(ctx.exception.status_code)
        self.assertIn('connection refused', ctx.exception.payload)

    def test_record_url(self):
        self.assertEqual(
            self.client.record_url('listings', '101'),
            'https://app.hubspot.com/contacts/47987553/record/LISTINGS/101',
        )


if __name__ == '__main__':
    unittest.main()
