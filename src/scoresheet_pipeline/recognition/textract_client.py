"""Recognition service backed by AWS Textract."""

import logging
from typing import TYPE_CHECKING, List, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError, NoCredentialsError, PartialCredentialsError

from scoresheet_pipeline.config import settings
from scoresheet_pipeline.exceptions import InvalidDocument, RecognitionServiceUnavailable
from scoresheet_pipeline.extraction.layout import LayoutReconstructor
from scoresheet_pipeline.recognition.response_parser import parse_textract_response
from scoresheet_pipeline.recognition.schemas import RecognitionResult
from scoresheet_pipeline.validation.image_quality import image_size

if TYPE_CHECKING:
    from mypy_boto3_textract import TextractClient

logger = logging.getLogger(__name__)

INVALID_DOCUMENT_CODES = {
    "BadDocumentException",
    "DocumentTooLargeException",
    "UnsupportedDocumentException",
    "InvalidParameterException",
}
AUTH_CODES = {
    "AccessDeniedException",
    "UnrecognizedClientException",
    "InvalidSignatureException",
    "ExpiredTokenException",
}
QUOTA_CODES = {
    "ProvisionedThroughputExceededException",
    "ThrottlingException",
    "LimitExceededException",
}


def get_textract_client() -> "TextractClient":
    """Create a Textract client using credentials and timeouts from settings.

    Returns:
        Configured boto3 Textract client.
    """
    return boto3.client(
        "textract",
        region_name=settings.AWS_REGION,
        aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
        aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
        aws_session_token=settings.AWS_SESSION_TOKEN,
        config=Config(
            retries={"max_attempts": settings.TEXTRACT_MAX_ATTEMPTS, "mode": "standard"},
            connect_timeout=settings.TEXTRACT_CONNECT_TIMEOUT_SECONDS,
            read_timeout=settings.TEXTRACT_READ_TIMEOUT_SECONDS,
        ),
    )


class TextractRecognitionService:
    """Turns an image into positioned text fragments with Textract DetectDocumentText."""

    def __init__(
        self,
        textract_client,
        reconstructor: Optional[LayoutReconstructor] = None,
        block_type: str = "LINE",
    ):
        """Initializes the service.

        Args:
            textract_client: Boto3 Textract client.
            reconstructor (LayoutReconstructor, optional): Groups fragments into the reading-order text.
            block_type (str): Textract block type used as fragments, LINE or WORD.
        """
        self.textract_client = textract_client
        self.reconstructor = reconstructor or LayoutReconstructor()
        self.block_type = block_type

    def recognize(self, image_bytes: bytes, language_hints: Optional[List[str]] = None) -> RecognitionResult:
        """Recognizes the text of one image.

        Args:
            image_bytes: Encoded image.
            language_hints: Accepted for interface compatibility; Textract detects language itself.

        Returns:
            RecognitionResult: Fragments in pixel coordinates and the reading-order full text.

        Raises:
            InvalidDocument: If Textract rejects the image itself.
            RecognitionServiceUnavailable: On network, credential, quota or service failures.
        """
        if language_hints:
            logger.debug(f"Textract ignores language hints {language_hints}")

        response = self._detect(image_bytes)
        width, height = self._page_size(image_bytes)
        fragments = parse_textract_response(response, width, height, self.block_type)
        full_text = "\n".join(self.reconstructor.row_lines(fragments))
        logger.info(f"Textract returned {len(fragments)} {self.block_type} fragments")
        return RecognitionResult(fragments=fragments, full_text=full_text)

    def _detect(self, image_bytes: bytes) -> dict:
        try:
            return self.textract_client.detect_document_text(Document={"Bytes": image_bytes})
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "Unknown")
            message = e.response.get("Error", {}).get("Message", str(e))
            if code in INVALID_DOCUMENT_CODES:
                raise InvalidDocument(f"The recognition service rejected the image: {message}") from e
            if code in AUTH_CODES:
                raise RecognitionServiceUnavailable(
                    f"Recognition service refused credentials: {message}", "auth"
                ) from e
            if code in QUOTA_CODES:
                raise RecognitionServiceUnavailable(f"Recognition service quota exceeded: {message}", "quota") from e
            raise RecognitionServiceUnavailable(f"Recognition service error {code}: {message}", "service") from e
        except (NoCredentialsError, PartialCredentialsError) as e:
            raise RecognitionServiceUnavailable(f"No usable AWS credentials: {e}", "auth") from e
        except BotoCoreError as e:
            # Connection, TLS, proxy and timeout failures on the way to the service
            raise RecognitionServiceUnavailable(f"Recognition service unreachable: {e}", "network") from e

    @staticmethod
    def _page_size(image_bytes: bytes) -> tuple[int, int]:
        try:
            return image_size(image_bytes)
        except InvalidDocument:
            logger.warning("Could not read image size; scaling geometry to the default page size")
            return settings.DEFAULT_PAGE_WIDTH, settings.DEFAULT_PAGE_HEIGHT
