"""
S3 access for task attachments and user data exports.

Browsers never stream file bodies through Lambda: uploads and downloads go
straight to S3 through presigned URLs minted here.
"""
import json
from typing import Any, Dict, Optional

import boto3
from botocore.exceptions import ClientError

from logger_config import get_logger
from utils.exceptions import DataStoreError

logger = get_logger(__name__)

DEFAULT_URL_EXPIRY_SECONDS = 3600
MISSING_OBJECT_CODES = ('404', 'NoSuchKey', 'NotFound')


class S3Service:
    """One bucket's objects and presigned URLs."""

    def __init__(self, bucket_name: str):
        self.bucket_name = bucket_name
        self._s3_client = None

    @property
    def s3_client(self):
        """Created on first use so cold starts skip it when unused."""
        if self._s3_client is None:
            self._s3_client = boto3.client('s3')
        return self._s3_client

    def _error(self, operation: str, key: str, error: ClientError) -> DataStoreError:
        logger.error(f'S3 {operation} failed for s3://{self.bucket_name}/{key}: {str(error)}')
        return DataStoreError(f'S3 {operation} failed: {str(error)}', operation=operation)

    def object_exists(self, key: str) -> bool:
        """False for a missing object; other head errors are logged and also give False."""
        try:
            self.s3_client.head_object(Bucket=self.bucket_name, Key=key)
        except ClientError as e:
            if e.response.get('Error', {}).get('Code', '') not in MISSING_OBJECT_CODES:
                logger.warning(f'Could not stat s3://{self.bucket_name}/{key}: {str(e)}')
            return False
        return True

    def put_json_object(
        self,
        key: str,
        data: Dict[str, Any],
        metadata: Optional[Dict[str, str]] = None
    ) -> None:
        """
        Store ``data`` as pretty-printed JSON.

        Raises:
            DataStoreError: If S3 rejects the write
        """
        request: Dict[str, Any] = {
            'Bucket': self.bucket_name,
            'Key': key,
            'Body': json.dumps(data, indent=2, default=str).encode('UTF-8'),
            'ContentType': 'application/json',
        }
        if metadata:
            request['Metadata'] = metadata
        try:
            self.s3_client.put_object(**request)
        except ClientError as e:
            raise self._error('put_object', key, e) from e
        logger.info(f'Wrote s3://{self.bucket_name}/{key}')

    def delete_object(self, key: str) -> None:
        """
        Delete an object; a missing key is not an error.

        Raises:
            DataStoreError: If S3 rejects the delete
        """
        try:
            self.s3_client.delete_object(Bucket=self.bucket_name, Key=key)
        except ClientError as e:
            raise self._error('delete_object', key, e) from e
        logger.info(f'Deleted s3://{self.bucket_name}/{key}')

    def presigned_upload_url(
        self,
        key: str,
        content_type: Optional[str] = None,
        expires_in: int = DEFAULT_URL_EXPIRY_SECONDS
    ) -> str:
        """PUT URL the browser uploads the file body to."""
        params: Dict[str, Any] = {'Bucket': self.bucket_name, 'Key': key}
        if content_type:
            params['ContentType'] = content_type
        return self.s3_client.generate_presigned_url(
            'put_object', Params=params, ExpiresIn=expires_in
        )

    def presigned_download_url(
        self,
        key: str,
        expires_in: int = DEFAULT_URL_EXPIRY_SECONDS
    ) -> str:
        return self.s3_client.generate_presigned_url(
            'get_object',
            Params={'Bucket': self.bucket_name, 'Key': key},
            ExpiresIn=expires_in
        )
