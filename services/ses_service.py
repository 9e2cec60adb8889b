"""
SES service for transactional email.
"""
import boto3
from typing import Optional
from botocore.exceptions import ClientError
from email_templates import EmailMessage
from logger_config import get_logger
from utils.exceptions import EmailDeliveryError

logger = get_logger(__name__)


class SESService:
    """Service for sending HTML + plain text email through SES."""

    def __init__(self, from_address: str) -> None:
        """
        Initialize SES service.

        Args:
            from_address: Verified sender address
        """
        self.from_address = from_address
        self._client = None

    @property
    def client(self):
        """Lazy initialization of SES client."""
        if self._client is None:
            self._client = boto3.client('ses')
        return self._client

    def send(self, recipient: str, message: EmailMessage) -> Optional[str]:
        """
        Send one email.

        Args:
            recipient: Destination address
            message: Rendered subject and bodies

        Returns:
            SES message id

        Raises:
            EmailDeliveryError: If SES rejects the message
        """
        try:
            response = self.client.send_email(
                Source=self.from_address,
                Destination={'ToAddresses': [recipient]},
                Message={
                    'Subject': {'Data': message.subject, 'Charset': 'UTF-8'},
                    'Body': {
                        'Html': {'Data': message.html, 'Charset': 'UTF-8'},
                        'Text': {'Data': message.text, 'Charset': 'UTF-8'},
                    },
                },
            )
        except ClientError as e:
            logger.error(f'SES send_email to {recipient} failed: {str(e)}')
            raise EmailDeliveryError(
                f'Failed to send email: {str(e)}', recipient=recipient
            ) from e

        logger.info(f'Email "{message.subject}" sent to {recipient}')
        return response.get('MessageId')
