"""
Document upload tests: response handling and partial success.
"""

from unittest.mock import MagicMock

import pytest

from errors import ApiError, AuthenticationError, UploadError
from uploads import document_record, upload_documents, merge_documents, upload_summary


class TestDocumentRecord:
    def test_success(self):
        record = document_record({
            'success': True,
            's3Url': 'https://s3/qid.pdf',
            'document': {'fileName': 'qid.pdf', 'uploadedAt': '2024-06-01T10:00:00Z'},
        })
        assert record == {'url': 'https://s3/qid.pdf', 'fileName': 'qid.pdf', 'uploadedAt': '2024-06-01T10:00:00Z'}

    def test_missing_timestamp_is_filled(self):
        record = document_record({'success': True, 's3Url': 'u'})
        assert record['uploadedAt']
        assert record['fileName'] is None

    @pytest.mark.parametrize('response', [None, {}, {'success': False, 'message': 'Too large'}])
    def test_failure(self, response):
        with pytest.raises(UploadError):
            document_record(response)


class TestUploadDocuments:
    """Tests for upload_documents."""

    def test_partial_success_is_reported(self):
        client = MagicMock()

        def upload(document_type, filename, content, mimetype, email=None):
            if document_type == 'visa':
                raise ApiError('Server error (413): too large', status_code=413)
            if document_type == 'contract':
                return {'success': False, 'message': 'Bad file type'}
            return {'success': True, 's3Url': f'https://s3/{filename}', 'document': {'fileName': filename}}

        client.upload_document.side_effect = upload
        files = {
            'qidCopy': ('qid.pdf', b'1', 'application/pdf'),
            'visa': ('visa.pdf', b'2', 'application/pdf'),
            'contract': ('c.exe', b'3', 'application/octet-stream'),
        }

        outcome = upload_documents(client, files, email='a@b.c')

        assert list(outcome['documents']) == ['qidCopy']
        assert outcome['documents']['qidCopy']['url'] == 'https://s3/qid.pdf'
        assert set(outcome['failed']) == {'visa', 'contract'}
        assert outcome['failed']['contract'] == 'Bad file type'
        assert client.upload_document.call_count == 3
        client.upload_document.assert_any_call('qidCopy', 'qid.pdf', b'1', 'application/pdf', email='a@b.c')

    def test_expired_session_propagates(self):
        client = MagicMock()
        client.upload_document.side_effect = AuthenticationError('Session expired', status_code=401)
        files = {
            'qidCopy': ('qid.pdf', b'1', 'application/pdf'),
            'visa': ('visa.pdf', b'2', 'application/pdf'),
        }

        with pytest.raises(AuthenticationError):
            upload_documents(client, files)
        assert client.upload_document.call_count == 1

    def test_no_files(self):
        client = MagicMock()
        assert upload_documents(client, {}) == {'documents': {}, 'failed': {}}
        client.upload_document.assert_not_called()


class TestHelpers:
    def test_merge_documents_keeps_existing(self):
        entity = {'name': 'Ahmed', 'documents': {'visa': {'url': 'old'}}}
        merged = merge_documents(entity, {'qidCopy': {'url': 'new'}})

        assert merged['documents'] == {'visa': {'url': 'old'}, 'qidCopy': {'url': 'new'}}
        assert entity['documents'] == {'visa': {'url': 'old'}}

    def test_summary(self):
        assert upload_summary({'documents': {'a': {}}, 'failed': {}}) == "1 document(s) uploaded successfully"
        message = upload_summary({'documents': {'a': {}}, 'failed': {'b': 'too large'}})
        assert message == "1 of 2 document(s) uploaded. Failed: b: too large"
