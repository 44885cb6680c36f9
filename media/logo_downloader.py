"""Downloads remote club logos into the local uploads tree."""
import logging
import os
import posixpath
import time
from datetime import datetime
from typing import Callable, List, Optional, Tuple
from urllib.parse import urlparse

import requests

from config import LogoConfig
from media.image_naming import LOGO, SYSTEM_UPLOADER, build_image_name, name_prefix
from processor.errors import DownloadRejected
from processor.models import DownloadResult, LogoRequest

logger = logging.getLogger(__name__)

CONTENT_TYPE_EXTENSIONS = {
    'image/jpeg': '.jpg',
    'image/jpg': '.jpg',
    'image/png': '.png',
    'image/gif': '.gif',
    'image/webp': '.webp',
    'image/svg+xml': '.svg',
}
DEFAULT_EXTENSION = '.jpg'
PUBLIC_PREFIX = '/uploads/'
CUSTOM_SUFFIX = 'mysideline'


class LogoDownloader:
    """Fetches images over HTTP with retries and size/type guards."""

    CHUNK_SIZE = 8192

    def __init__(
        self,
        config: Optional[LogoConfig] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """
        Initialize the downloader.

        Args:
            config: Limits, allowed types and the uploads root
            clock: Returns the current local time, used for file naming
        """
        self.config = config or LogoConfig()
        self.clock = clock

    def download(
        self, logo_url, entity_type: str, entity_id, image_type: str = LOGO
    ) -> DownloadResult:
        """
        Download a logo and store it under the uploads root.

        Args:
            logo_url: Absolute http(s) URL of the image
            entity_type: Owning entity type, e.g. "carnival"
            entity_id: Owning entity id
            image_type: Image type, defaults to logo

        Returns:
            DownloadResult; failures are reported, never raised
        """
        attempts = 0
        try:
            self._validate_url(logo_url)

            logger.info(f"Downloading logo from: {logo_url}")
            data, content_type, attempts = self._download_with_retries(logo_url)

            extension = self.get_file_extension(logo_url, content_type)
            upload_date = self.clock().date()
            final_dir = os.path.join(
                self.config.uploads_root, entity_type, str(entity_id), image_type
            )
            sequence = self._next_sequence(
                final_dir, name_prefix(entity_type, entity_id, image_type, upload_date)
            )
            image_name = build_image_name(
                entity_type=entity_type,
                entity_id=entity_id,
                image_type=image_type,
                original_name=f"mysideline-logo{extension}",
                upload_date=upload_date,
                sequence=sequence,
                uploader=SYSTEM_UPLOADER,
                custom_suffix=CUSTOM_SUFFIX,
            )

            local_path = self._store(data, final_dir, image_name.filename)
            public_url = PUBLIC_PREFIX + image_name.full_path

            logger.info(f"Logo downloaded and stored: {public_url}")
            return DownloadResult(
                success=True,
                original_url=logo_url,
                public_url=public_url,
                local_path=local_path,
                filename=image_name.filename,
                file_size=len(data),
                content_type=content_type,
                metadata=image_name.metadata,
                attempts=attempts,
            )

        except DownloadRejected as e:
            logger.warning(f"Logo download rejected for {logo_url}: {e}")
            return DownloadResult(
                success=False,
                original_url=logo_url,
                error=str(e),
                attempts=getattr(e, 'attempts', attempts),
            )
        except Exception as e:
            logger.error(f"Error downloading logo from {logo_url}: {e}")
            return DownloadResult(
                success=False, original_url=logo_url, error=str(e), attempts=attempts
            )

    def download_many(self, logo_requests: List[LogoRequest]) -> List[DownloadResult]:
        """
        Download logos one after another with a polite pause in between.

        Args:
            logo_requests: Logo download requests

        Returns:
            One DownloadResult per request, in request order
        """
        logger.info(f"Starting bulk logo download for {len(logo_requests)} logos")
        results = []

        for index, request in enumerate(logo_requests):
            logger.info(f"Downloading logo {index + 1}/{len(logo_requests)}")
            result = self.download(
                request.logo_url, request.entity_type, request.entity_id, request.image_type
            )
            result.request_index = index
            result.request = request
            results.append(result)

            if index < len(logo_requests) - 1:
                time.sleep(self.config.bulk_delay_seconds)

        success_count = sum(1 for result in results if result.success)
        logger.info(
            f"Bulk logo download completed: {success_count}/{len(logo_requests)} successful"
        )
        return results

    def _validate_url(self, logo_url) -> None:
        if not logo_url or not isinstance(logo_url, str):
            raise DownloadRejected('Invalid logo URL provided', retryable=False)

        try:
            parsed = urlparse(logo_url)
        except ValueError as e:
            raise DownloadRejected(f"Invalid URL format: {e}", retryable=False)

        if parsed.scheme not in ('http', 'https'):
            raise DownloadRejected('Only HTTP/HTTPS URLs are supported', retryable=False)
        if not parsed.netloc:
            raise DownloadRejected('Invalid URL format', retryable=False)

    def _download_with_retries(self, url: str) -> Tuple[bytes, str, int]:
        """
        Fetch the image, retrying with a linear backoff.

        Returns:
            Tuple of (body, content type, attempts used)

        Raises:
            DownloadRejected: If every attempt fails
        """
        max_retries = self.config.max_retries

        for attempt in range(1, max_retries + 1):
            try:
                data, content_type = self._fetch(url)
                return data, content_type, attempt

            except (DownloadRejected, requests.RequestException) as e:
                if attempt < max_retries and getattr(e, 'retryable', True):
                    logger.warning(
                        f"Download attempt {attempt}/{max_retries} failed: {e}. "
                        f"Retrying in {attempt} seconds..."
                    )
                    time.sleep(attempt)
                else:
                    logger.error(f"Download failed after {attempt} attempts. Last error: {e}")
                    if isinstance(e, DownloadRejected):
                        e.attempts = attempt
                        raise
                    rejected = DownloadRejected(f"Request error: {e}")
                    rejected.attempts = attempt
                    raise rejected from e

        raise DownloadRejected('No download attempts were made')

    def _fetch(self, url: str) -> Tuple[bytes, str]:
        headers = {
            'User-Agent': self.config.user_agent,
            'Accept': 'image/*,*/*;q=0.8',
            'Accept-Encoding': 'identity',
        }
        limit = self.config.max_file_size_bytes

        with requests.get(
            url, headers=headers, timeout=self.config.timeout_ms / 1000, stream=True
        ) as response:
            if not 200 <= response.status_code < 300:
                raise DownloadRejected(f"HTTP {response.status_code}: {response.reason}")

            content_type = response.headers.get('Content-Type', '')
            if not self.is_valid_content_type(content_type):
                raise DownloadRejected(f"Invalid content type: {content_type}")

            declared = response.headers.get('Content-Length')
            if declared and declared.isdigit() and int(declared) > limit:
                raise DownloadRejected(f"File too large: {declared} bytes (max: {limit})")

            chunks = []
            total = 0
            for chunk in response.iter_content(chunk_size=self.CHUNK_SIZE):
                total += len(chunk)
                if total > limit:
                    raise DownloadRejected(f"File too large: {total} bytes (max: {limit})")
                chunks.append(chunk)

        return b''.join(chunks), content_type

    def is_valid_content_type(self, content_type: str) -> bool:
        content_type = (content_type or '').lower().strip()
        return any(content_type.startswith(prefix) for prefix in self.config.allowed_mime_prefixes)

    def get_file_extension(self, url: str, content_type: str) -> str:
        """
        Pick a file extension from the URL path, else the MIME type.

        Falls back to .jpg when neither is recognised.
        """
        extension = posixpath.splitext(urlparse(url).path)[1].lower()
        if extension in self.config.allowed_extensions:
            return extension

        content_type = (content_type or '').lower()
        for mime_type, mapped in CONTENT_TYPE_EXTENSIONS.items():
            if content_type.startswith(mime_type):
                return mapped

        return DEFAULT_EXTENSION

    def _next_sequence(self, directory: str, prefix: str) -> int:
        if not os.path.isdir(directory):
            return 1
        existing = [name for name in os.listdir(directory) if name.startswith(prefix + '-')]
        return len(existing) + 1

    def _store(self, data: bytes, final_dir: str, filename: str) -> str:
        # Write to temp first so the final path only ever holds complete files
        temp_dir = os.path.join(self.config.uploads_root, 'temp')
        os.makedirs(temp_dir, exist_ok=True)
        temp_path = os.path.join(temp_dir, filename)

        final_path = os.path.join(final_dir, filename)

        try:
            with open(temp_path, 'wb') as handle:
                handle.write(data)
            os.makedirs(final_dir, exist_ok=True)
            os.replace(temp_path, final_path)
        except OSError:
            if os.path.exists(temp_path):
                os.remove(temp_path)
            raise

        return final_path
