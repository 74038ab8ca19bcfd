"""ArXiv client: paper id parsing, PDF download, abstract-page metadata."""

from dataclasses import dataclass
import html
import re

import httpx
import structlog

logger = structlog.get_logger()

_MODERN_ID = r"\d{4}\.\d{4,5}(?:v\d+)?"
_LEGACY_ID = r"[a-z-]+/\d{7}(?:v\d+)?"

_BARE_ID_PATTERNS = [
    re.compile(rf"^{_MODERN_ID}$"),
    re.compile(rf"^{_LEGACY_ID}$", re.IGNORECASE),
]

_URL_PATTERNS = [
    re.compile(rf"arxiv\.org/abs/({_MODERN_ID})(?!\d)", re.IGNORECASE),
    re.compile(rf"arxiv\.org/pdf/({_MODERN_ID})(?!\d)(?:\.pdf)?", re.IGNORECASE),
    re.compile(rf"arxiv\.org/abs/({_LEGACY_ID})(?!\d)", re.IGNORECASE),
    re.compile(rf"arxiv\.org/pdf/({_LEGACY_ID})(?!\d)(?:\.pdf)?", re.IGNORECASE),
]

_TITLE_META = re.compile(r'<meta name="citation_title" content="([^"]+)"')
_ABSTRACT_BLOCK = re.compile(
    r'<blockquote class="abstract[^"]*">\s*<span class="descriptor">Abstract:</span>'
    r"\s*([\s\S]*?)</blockquote>",
    re.IGNORECASE,
)
_TAG = re.compile(r"<[^>]+>")
_WHITESPACE = re.compile(r"\s+")


def extract_arxiv_id(value: str) -> str | None:
    """Normalize an ArXiv URL or bare id to the paper id.

    Accepts ``2301.00001``, ``hep-th/9901001`` (each with an optional
    version suffix) and ``arxiv.org/abs/<id>`` / ``arxiv.org/pdf/<id>[.pdf]``
    URLs. Returns None when nothing matches.
    """
    trimmed = value.strip()
    if not trimmed:
        return None

    for pattern in _BARE_ID_PATTERNS:
        if pattern.match(trimmed):
            return trimmed

    for pattern in _URL_PATTERNS:
        match = pattern.search(trimmed)
        if match:
            return match.group(1)

    return None


def pdf_filename(arxiv_id: str) -> str:
    return f"{arxiv_id.replace('/', '-')}.pdf"


@dataclass(frozen=True)
class ArxivMetadata:
    title: str
    abstract: str


def parse_arxiv_metadata(arxiv_id: str, page: str) -> ArxivMetadata:
    """Pull title and abstract out of an abstract page; missing parts get defaults."""
    title = f"arXiv:{arxiv_id}"
    abstract = ""

    title_match = _TITLE_META.search(page)
    if title_match:
        title = html.unescape(title_match.group(1))

    abstract_match = _ABSTRACT_BLOCK.search(page)
    if abstract_match:
        text = _TAG.sub("", abstract_match.group(1).strip())
        abstract = html.unescape(_WHITESPACE.sub(" ", text)).strip()

    return ArxivMetadata(title=title, abstract=abstract)


class ArxivClient:
    """Async client for arxiv.org.

    The underlying ``httpx.AsyncClient`` is created lazily and reused.
    """

    def __init__(
        self,
        base_url: str = "https://arxiv.org",
        user_agent: str = "Explorable-Research/1.0",
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.user_agent = user_agent
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                headers={"User-Agent": self.user_agent},
                timeout=self.timeout,
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def fetch_pdf(self, arxiv_id: str) -> tuple[bytes, str] | None:
        """Download the paper PDF.

        Returns:
            ``(data, filename)``, or None if ArXiv has no such paper.

        Raises:
            httpx.HTTPError: on any other transport or HTTP failure.
        """
        response = await self._get_client().get(f"{self.base_url}/pdf/{arxiv_id}.pdf")
        if response.status_code == httpx.codes.NOT_FOUND:
            logger.info("arxiv_pdf_not_found", arxiv_id=arxiv_id)
            return None
        response.raise_for_status()

        logger.info("arxiv_pdf_fetched", arxiv_id=arxiv_id, size=len(response.content))
        return response.content, pdf_filename(arxiv_id)

    async def fetch_metadata(self, arxiv_id: str) -> ArxivMetadata:
        """Title and abstract from the abstract page. Never raises."""
        try:
            response = await self._get_client().get(f"{self.base_url}/abs/{arxiv_id}")
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(
                "arxiv_metadata_fetch_failed",
                arxiv_id=arxiv_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return ArxivMetadata(title=f"arXiv:{arxiv_id}", abstract="")

        return parse_arxiv_metadata(arxiv_id, response.text)
