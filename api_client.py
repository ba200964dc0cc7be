"""
api_client.py - REST API Client
One client per logged-in session carries the bearer token; every page that
talks to the backend receives it explicitly instead of reading a global.
"""

import logging

import requests

from config import Config
from errors import ApiError, AuthenticationError


logger = logging.getLogger(__name__)


class ApiClient:
    """Thin wrapper over requests.Session for the BranchDesk backend"""

    def __init__(self, base_url=None, token=None, timeout=None, session=None):
        self.base_url = (base_url or Config.API_BASE_URL).rstrip('/')
        self.timeout = timeout or Config.REQUEST_TIMEOUT
        self.session = session or requests.Session()
        self.token = None
        self.set_token(token)

    def set_token(self, token):
        self.token = token
        if token:
            self.session.headers['Authorization'] = f"Bearer {token}"
        else:
            self.session.headers.pop('Authorization', None)

    # =========================================================================
    # TRANSPORT
    # =========================================================================

    def _request(self, method, path, **kwargs):
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.exceptions.Timeout:
            logger.warning("%s %s timed out", method, path)
            raise ApiError("Request timed out")
        except requests.exceptions.RequestException as e:
            logger.warning("%s %s failed: %s", method, path, e)
            raise ApiError(f"Request error: {e}")

        if response.status_code == 401:
            raise AuthenticationError("Session expired, please log in again", status_code=401)

        if not response.ok:
            try:
                message = response.json().get('message') or response.text
            except (ValueError, AttributeError):
                message = response.text
            logger.warning("%s %s returned %s: %s", method, path, response.status_code, message)
            raise ApiError(f"Server error ({response.status_code}): {message}", status_code=response.status_code)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return None

    def _list(self, path):
        data = self._request('GET', path)
        # Some endpoints wrap their list as {"data": [...]}
        if isinstance(data, dict) and isinstance(data.get('data'), list):
            return data['data']
        return data if isinstance(data, list) else []

    # =========================================================================
    # AUTH
    # =========================================================================

    def login(self, email, password):
        """Exchange credentials for a token; the token is kept on the client"""
        data = self._request('POST', '/api/users/login', json={'email': email, 'password': password}) or {}
        if not data.get('token'):
            raise AuthenticationError(data.get('message') or "Invalid email or password", status_code=401)
        self.set_token(data['token'])
        return data

    # =========================================================================
    # READ
    # =========================================================================

    def list_branches(self):
        return self._list('/api/branches')

    def list_employees(self):
        return self._list('/api/employees')

    def list_temp_employees(self):
        return self._list('/api/temp-employees')

    def list_vehicles(self):
        return self._list('/api/vehicles')

    def list_vacations(self):
        return self._list('/api/vacations')

    def list_expenditures(self):
        return self._list('/api/expenditures')

    def list_activities(self):
        return self._list('/api/activities')

    # =========================================================================
    # WRITE
    # =========================================================================

    def create_branch(self, payload):
        return self._request('POST', '/api/branches', json=payload)

    def update_branch(self, branch_id, payload):
        return self._request('PUT', f'/api/branches/{branch_id}', json=payload)

    def delete_branch(self, branch_id):
        return self._request('DELETE', f'/api/branches/{branch_id}')

    def create_employee(self, payload):
        return self._request('POST', '/api/employees', json=payload)

    def update_employee(self, employee_id, payload):
        return self._request('PUT', f'/api/employees/{employee_id}', json=payload)

    def delete_employee(self, employee_id):
        return self._request('DELETE', f'/api/employees/{employee_id}')

    def create_temp_employee(self, payload):
        return self._request('POST', '/api/temp-employees', json=payload)

    def update_temp_employee(self, temp_employee_id, payload):
        return self._request('PUT', f'/api/temp-employees/{temp_employee_id}', json=payload)

    def delete_temp_employee(self, temp_employee_id):
        return self._request('DELETE', f'/api/temp-employees/{temp_employee_id}')

    def create_vehicle(self, payload):
        return self._request('POST', '/api/vehicles', json=payload)

    def update_vehicle(self, license_number, payload):
        return self._request('PUT', f'/api/vehicles/{license_number}', json=payload)

    def delete_vehicle(self, license_number):
        return self._request('DELETE', f'/api/vehicles/{license_number}')

    def create_vacation(self, payload):
        return self._request('POST', '/api/vacations', json=payload)

    def update_vacation(self, vacation_id, payload):
        return self._request('PUT', f'/api/vacations/{vacation_id}', json=payload)

    def delete_vacation(self, vacation_id):
        return self._request('DELETE', f'/api/vacations/{vacation_id}')

    def create_expenditure(self, payload):
        return self._request('POST', '/api/expenditures', json=payload)

    def update_expenditure(self, expenditure_id, payload):
        return self._request('PUT', f'/api/expenditures/{expenditure_id}', json=payload)

    def delete_expenditure(self, expenditure_id):
        return self._request('DELETE', f'/api/expenditures/{expenditure_id}')

    # =========================================================================
    # UPLOAD
    # =========================================================================

    def upload_document(self, document_type, filename, content, mimetype=None, email=None):
        """
        Upload one document file to storage.

        Returns the raw response body:
            {success, s3Url, document: {fileName, uploadedAt}, message}
        """
        files = {'document': (filename, content, mimetype or 'application/octet-stream')}
        data = {'email': email} if email else None
        return self._request('POST', f'/api/upload/direct/{document_type}', files=files, data=data) or {}
