"""
HTTP image host adapter - Implements ImageHost protocol.

Uploads go as multipart form data (field "image") and the host answers
with {"imageUrl": ...}. Deletes address the image by its public id,
which is the last path segment of the stored URL without extension:

    https://cdn.example.com/uploads/abc123.png  ->  abc123
"""

import logging
from urllib.parse import urlparse

import httpx

from src.domain.exceptions import ImageHostError

logger = logging.getLogger(__name__)


def public_id_from_url(image_url: str) -> str:
    """Extract the host's public id from an image URL."""
    path = urlparse(image_url).path
    last_segment = path.rstrip("/").rsplit("/", 1)[-1]
    public_id = last_segment.split(".", 1)[0]
    if not public_id:
        raise ImageHostError(f"Cannot derive public id from {image_url!r}")
    return public_id


def _error_message(response: httpx.Response, fallback: str) -> str:
    try:
        data = response.json()
    except ValueError:
        return fallback
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return fallback


class HttpImageHost:
    """
    Implements ImageHost protocol via httpx.

    A client can be injected (e.g. one using httpx.MockTransport);
    otherwise one is created with the given timeout.
    """

    def __init__(
        self,
        upload_url: str,
        delete_url: str,
        timeout: float = 20.0,
        client: httpx.Client | None = None,
    ) -> None:
        self.upload_url = upload_url
        self.delete_url = delete_url.rstrip("/")
        self._client = client or httpx.Client(timeout=timeout)

    def upload(self, filename: str, content: bytes, content_type: str) -> str:
        try:
            response = self._client.post(
                self.upload_url,
                files={"image": (filename, content, content_type)},
            )
        except httpx.HTTPError as exc:
            raise ImageHostError("Error uploading image") from exc

        if response.is_error:
            raise ImageHostError(_error_message(response, "Error uploading image"))

        try:
            image_url = response.json()["imageUrl"]
        except (ValueError, KeyError, TypeError) as exc:
            raise ImageHostError("Image host returned no image URL") from exc

        logger.info("Uploaded image %s as %s", filename, image_url)
        return image_url

    def delete(self, image_url: str) -> None:
        public_id = public_id_from_url(image_url)
        try:
            response = self._client.delete(f"{self.delete_url}/{public_id}")
        except httpx.HTTPError as exc:
            raise ImageHostError("Error deleting image") from exc

        if response.is_error:
            raise ImageHostError(_error_message(response, "Error deleting image"))
        logger.info("Deleted image %s", public_id)

    def close(self) -> None:
        self._client.close()
