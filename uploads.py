"""
uploads.py - Document Uploads
Each document type is uploaded as its own request. There is no batch
atomicity: files that made it stay uploaded, failures are reported back.
"""

import logging
from datetime import datetime

from errors import ApiError, AuthenticationError, UploadError


logger = logging.getLogger(__name__)


EMPLOYEE_UPLOAD_TYPES = [
    ('profilePicture', 'Profile Picture', ['png', 'jpg', 'jpeg']),
    ('medicalCard', 'Medical Card', ['pdf', 'png', 'jpg', 'jpeg']),
    ('visa', 'Visa Document', ['pdf', 'png', 'jpg', 'jpeg']),
    ('contract', 'Contract', ['pdf', 'png', 'jpg', 'jpeg']),
    ('qidCopy', 'QID Copy', ['pdf', 'png', 'jpg', 'jpeg']),
    ('passportCopy', 'Passport Copy', ['pdf', 'png', 'jpg', 'jpeg']),
]

VEHICLE_UPLOAD_TYPES = [
    ('licenseDocument', 'License Document', ['pdf', 'png', 'jpg', 'jpeg']),
    ('insuranceDocument', 'Insurance Document', ['pdf', 'png', 'jpg', 'jpeg']),
]


def document_record(response):
    """
    Stored document record derived from an upload response.

    Raises:
        UploadError: the backend reported the upload as unsuccessful
    """
    if not response or not response.get('success'):
        message = (response or {}).get('message') or "Upload failed"
        raise UploadError(message)

    document = response.get('document') or {}
    return {
        'url': response.get('s3Url'),
        'fileName': document.get('fileName'),
        'uploadedAt': document.get('uploadedAt') or datetime.now().isoformat(),
    }


def upload_documents(client, files, email=None):
    """
    Upload several documents, one request per document type.

    Args:
        client: ApiClient of the current session
        files: {document_type: (filename, content_bytes, mimetype)}
        email: Owner email sent alongside each file

    Returns:
        {'documents': {type: record}, 'failed': {type: message}}

    Raises:
        AuthenticationError: the session expired; remaining files are not sent
    """
    documents = {}
    failed = {}

    for document_type, (filename, content, mimetype) in files.items():
        try:
            response = client.upload_document(document_type, filename, content, mimetype, email=email)
            documents[document_type] = document_record(response)
            logger.info("Uploaded %s (%s)", document_type, filename)
        except AuthenticationError:
            raise
        except (ApiError, UploadError) as e:
            failed[document_type] = str(e)
            logger.warning("Upload of %s failed: %s", document_type, e)

    return {'documents': documents, 'failed': failed}


def merge_documents(entity, documents):
    """New entity dict with uploaded document records stored per type"""
    merged = dict(entity.get('documents') or {})
    merged.update(documents)
    return dict(entity, documents=merged)


def upload_summary(outcome):
    """One-line user message describing a (possibly partial) upload"""
    ok = len(outcome['documents'])
    bad = len(outcome['failed'])
    if not bad:
        return f"{ok} document(s) uploaded successfully"
    details = "; ".join(f"{k}: {v}" for k, v in outcome['failed'].items())
    return f"{ok} of {ok + bad} document(s) uploaded. Failed: {details}"
