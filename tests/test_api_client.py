"""
REST client tests against a mocked requests session.
"""

from unittest.mock import MagicMock

import pytest
import requests

from api_client import ApiClient
from errors import ApiError, AuthenticationError


def make_response(status_code=200, json_data=None, text='', content=b'x'):
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 400
    response.text = text
    response.content = content
    if isinstance(json_data, Exception):
        response.json.side_effect = json_data
    else:
        response.json.return_value = json_data
    return response


@pytest.fixture
def session():
    session = MagicMock()
    session.headers = {}
    return session


@pytest.fixture
def client(session):
    return ApiClient(base_url='http://api.test/', token='tok', timeout=5, session=session)


class TestTransport:
    """Tests for request building and error mapping."""

    def test_bearer_header_and_timeout(self, client, session):
        session.request.return_value = make_response(json_data=[])
        client.list_branches()

        assert session.headers['Authorization'] == 'Bearer tok'
        session.request.assert_called_once_with('GET', 'http://api.test/api/branches', timeout=5)

    def test_clearing_token_drops_header(self, client, session):
        client.set_token(None)
        assert 'Authorization' not in session.headers

    def test_wrapped_list_unwrapped(self, client, session):
        session.request.return_value = make_response(json_data={'data': [{'_id': 1}]})
        assert client.list_employees() == [{'_id': 1}]

    def test_non_list_body_degrades(self, client, session):
        session.request.return_value = make_response(json_data={'message': 'odd'})
        assert client.list_vacations() == []

    def test_unauthorized(self, client, session):
        session.request.return_value = make_response(status_code=401)
        with pytest.raises(AuthenticationError) as exc:
            client.list_expenditures()
        assert exc.value.status_code == 401

    def test_server_error_message(self, client, session):
        session.request.return_value = make_response(status_code=400, json_data={'message': 'Duplicate QID'})
        with pytest.raises(ApiError) as exc:
            client.create_employee({'name': 'x'})
        assert exc.value.status_code == 400
        assert 'Duplicate QID' in exc.value.message

    def test_server_error_without_json(self, client, session):
        session.request.return_value = make_response(status_code=500, json_data=ValueError('no json'),
                                                     text='Internal Server Error')
        with pytest.raises(ApiError) as exc:
            client.delete_branch('b1')
        assert 'Internal Server Error' in exc.value.message

    def test_timeout(self, client, session):
        session.request.side_effect = requests.exceptions.Timeout()
        with pytest.raises(ApiError) as exc:
            client.list_branches()
        assert exc.value.message == 'Request timed out'

    def test_connection_error(self, client, session):
        session.request.side_effect = requests.exceptions.ConnectionError('refused')
        with pytest.raises(ApiError):
            client.list_branches()

    def test_empty_body(self, client, session):
        session.request.return_value = make_response(content=b'')
        assert client.delete_vacation('v1') is None


class TestEndpoints:
    """Tests for endpoint paths and payloads."""

    def test_vehicle_keyed_by_license(self, client, session):
        session.request.return_value = make_response(json_data={})
        client.update_vehicle('QA-1', {'branch': 'b2'})

        session.request.assert_called_once_with(
            'PUT', 'http://api.test/api/vehicles/QA-1', timeout=5, json={'branch': 'b2'}
        )

    def test_temp_employee_path(self, client, session):
        session.request.return_value = make_response(json_data={})
        client.delete_temp_employee('t1')
        session.request.assert_called_once_with('DELETE', 'http://api.test/api/temp-employees/t1', timeout=5)

    def test_login_sets_token(self, session):
        client = ApiClient(base_url='http://api.test', session=session, timeout=5)
        session.request.return_value = make_response(json_data={'token': 'new', 'user': {'name': 'Admin'}})

        data = client.login('a@b.c', 'pw')

        assert data['user']['name'] == 'Admin'
        assert client.token == 'new'
        assert session.headers['Authorization'] == 'Bearer new'

    def test_login_without_token(self, session):
        client = ApiClient(base_url='http://api.test', session=session, timeout=5)
        session.request.return_value = make_response(json_data={'message': 'Invalid credentials'})

        with pytest.raises(AuthenticationError) as exc:
            client.login('a@b.c', 'bad')
        assert exc.value.message == 'Invalid credentials'
        assert 'Authorization' not in session.headers

    def test_upload(self, client, session):
        session.request.return_value = make_response(json_data={'success': True, 's3Url': 'https://s3/x.pdf'})
        result = client.upload_document('qidCopy', 'qid.pdf', b'%PDF', 'application/pdf', email='a@b.c')

        assert result['s3Url'] == 'https://s3/x.pdf'
        args, kwargs = session.request.call_args
        assert args == ('POST', 'http://api.test/api/upload/direct/qidCopy')
        assert kwargs['files'] == {'document': ('qid.pdf', b'%PDF', 'application/pdf')}
        assert kwargs['data'] == {'email': 'a@b.c'}
