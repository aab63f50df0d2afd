"""Downloads PDFs from arbitrary URLs for URL ingest."""

import httpx

from shared.exceptions.errors import SourceFetchFailedError
from shared.helper.HelperConfig import HelperConfig

PDF_SIGNATURE = b"%PDF"


class WebClient:
    """Plain httpx client without a base URL. Lifecycle mirrors the backend clients: boot() then close()."""

    def __init__(self, helper_config: HelperConfig, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self.logging = helper_config.get_logger()
        self.timeout = helper_config.get_number_val("WEB_TIMEOUT", default=30.0)
        self.max_bytes = int(helper_config.get_number_val("WEB_MAX_BYTES", default=200 * 1024 * 1024))
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    ##########################################
    ############ CORE REQUESTS ###############
    ##########################################

    async def boot(self) -> None:
        self._client = httpx.AsyncClient(timeout=self.timeout, follow_redirects=True, transport=self._transport)

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def do_fetch_pdf(self, url: str) -> bytes:
        """Download a PDF.

        Args:
            url (str): Absolute http(s) URL.

        Returns:
            bytes: The response body.

        Raises:
            SourceFetchFailedError: On invalid URLs, network errors, non-2xx
                status, oversized bodies, or content that is not a PDF.
        """
        if self._client is None:
            raise Exception("HTTP client not initialised. Call boot() before making requests.")
        if not url.lower().startswith(("http://", "https://")):
            raise SourceFetchFailedError(f"Unsupported URL '{url}'. Only http(s) URLs can be fetched.")

        try:
            response = await self._client.get(url)
        except httpx.HTTPError as e:
            self.logging.warning("Fetching %s failed: %s", url, e)
            raise SourceFetchFailedError(f"Failed to download PDF from URL: {e}") from e

        if not response.is_success:
            self.logging.warning("Fetching %s failed with status %d", url, response.status_code)
            raise SourceFetchFailedError(f"Failed to download PDF from URL: status {response.status_code}.")

        data = response.content
        if not data:
            raise SourceFetchFailedError("URL returned an empty body.")
        if len(data) > self.max_bytes:
            raise SourceFetchFailedError(f"Downloaded file exceeds {self.max_bytes} bytes.")

        content_type = response.headers.get("content-type", "").lower()
        if "pdf" not in content_type and data.lstrip()[:4] != PDF_SIGNATURE:
            self.logging.warning("Fetching %s returned non-PDF content (%s)", url, content_type or "no content type")
            raise SourceFetchFailedError(f"URL did not return a PDF (content type '{content_type or 'unknown'}').")

        self.logging.info("Downloaded %d bytes from %s", len(data), url)
        return data
