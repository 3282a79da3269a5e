"""
Tests for the snapshot HTTP client.
"""
from unittest.mock import MagicMock

import pytest
import requests

from websites.client import SnapshotClient
from websites.exceptions import NotFound, TransportError


def response(status_code, payload=None, text=''):
    resp = MagicMock(status_code=status_code, text=text)
    if isinstance(payload, Exception):
        resp.json.side_effect = payload
    else:
        resp.json.return_value = payload
    return resp


@pytest.fixture
def session():
    return MagicMock(spec=requests.Session)


class TestSnapshotClient:

    def test_fetch_parses_snapshot(self, session):
        session.get.return_value = response(200, {
            'id': 12, 'domain': 'example.com', 'type': 'WordPress', 'plan': 'Free',
            'name': 'Example', 'monthlyQueries': 10, 'queryLimit': 5000,
            'lastSync': None, 'accessKey': 'ak_1',
        })
        client = SnapshotClient('https://api.example.com/', token='jwt', session=session)

        snapshot = client.fetch(12)

        assert snapshot.id == '12'
        assert snapshot.integration == 'wordpress'
        url = session.get.call_args[0][0]
        assert url == 'https://api.example.com/api/v1/websites/12/snapshot/'
        assert session.get.call_args.kwargs['headers']['Authorization'] == 'Bearer jwt'
        assert session.get.call_args.kwargs['timeout'] == 15

    def test_not_found(self, session):
        session.get.return_value = response(404)
        with pytest.raises(NotFound) as exc:
            SnapshotClient('https://api.example.com', session=session).fetch('missing')
        assert exc.value.identifier == 'missing'

    def test_server_error(self, session):
        session.get.return_value = response(503, text='unavailable')
        with pytest.raises(TransportError) as exc:
            SnapshotClient('https://api.example.com', session=session).fetch(1)
        assert exc.value.status_code == 503

    def test_network_failure(self, session):
        session.get.side_effect = requests.ConnectionError('refused')
        with pytest.raises(TransportError):
            SnapshotClient('https://api.example.com', session=session).fetch(1)

    def test_malformed_body(self, session):
        session.get.return_value = response(200, ValueError('not json'))
        with pytest.raises(TransportError):
            SnapshotClient('https://api.example.com', session=session).fetch(1)

    def test_missing_id_in_body(self, session):
        session.get.return_value = response(200, {'domain': 'example.com'})
        with pytest.raises(TransportError):
            SnapshotClient('https://api.example.com', session=session).fetch(1)

    @pytest.mark.parametrize('payload', [
        [],
        None,
        {'id': 1, 'globalStats': 'x'},
        {'id': 1, 'stats': [1, 2]},
        {'id': 1, 'content': {'pages': ['oops']}},
        {'id': 1, 'content': {'products': 'not-a-list'}},
        {'id': 1, 'queryLimit': [5000]},
    ])
    def test_wrong_shape_body(self, session, payload):
        session.get.return_value = response(200, payload)
        with pytest.raises(TransportError) as exc:
            SnapshotClient('https://api.example.com', session=session).fetch(1)
        assert exc.value.status_code == 200
