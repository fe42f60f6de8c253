"""Markdown image references: extraction, rewriting, naming and fetching"""

import logging
import os
import re
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple
from urllib.parse import urljoin, urlsplit

import httpx

from jiralink.models import FetchedImage, ImageReference
from jiralink.services.url_safety import is_safe_url

logger = logging.getLogger(__name__)

MAX_IMAGE_BYTES = 10 * 1024 * 1024
MAX_REDIRECTS = 5

_IMAGE_RE = re.compile(
    r"!\[(?P<alt>(?:\\.|[^\]\\])*)\]"
    r"\(\s*"
    r"(?P<dest><[^<>\n]*>|[^\s()<>]+(?:\([^\s()]*\)[^\s()<>]*)*)"
    r"(?:\s+(?P<title>\"[^\"]*\"|'[^']*'|\([^()]*\)))?"
    r"\s*\)"
)
_FENCE_RE = re.compile(r"^[ \t>]*(?P<fence>`{3,}|~{3,})")
# Inline code spans never cross a blank line.
_CODE_SPAN_RE = re.compile(
    r"(?<!`)(?P<ticks>`+)(?!`)(?:(?!\n[ \t]*\n).)+?(?<!`)(?P=ticks)(?!`)", re.DOTALL
)

CONTENT_TYPE_EXTENSIONS = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/gif": ".gif",
    "image/webp": ".webp",
    "image/svg+xml": ".svg",
}
DEFAULT_EXTENSION = ".bin"
KNOWN_EXTENSIONS = {
    ".png", ".jpg", ".jpeg", ".gif", ".webp", ".svg",
    ".bmp", ".ico", ".tif", ".tiff", ".avif",
}

TRUSTED_TOKEN_HOSTS = ("github.com",)
TRUSTED_TOKEN_SUFFIXES = (".github.com", ".githubusercontent.com")

Edit = Tuple[int, int, str]


def _code_ranges(markdown: str) -> List[Tuple[int, int]]:
    """Character ranges covered by fenced code blocks and inline code spans."""
    ranges: List[Tuple[int, int]] = []
    offset = 0
    fence: Optional[str] = None
    fence_start = 0
    for line in markdown.splitlines(keepends=True):
        m = _FENCE_RE.match(line)
        if fence is None:
            if m:
                fence = m.group("fence")
                fence_start = offset
        elif m and m.group("fence")[0] == fence[0] and len(m.group("fence")) >= len(fence):
            ranges.append((fence_start, offset + len(line)))
            fence = None
        offset += len(line)
    if fence is not None:
        ranges.append((fence_start, len(markdown)))

    for m in _CODE_SPAN_RE.finditer(markdown):
        if not any(start <= m.start() < end for start, end in ranges):
            ranges.append((m.start(), m.end()))
    return ranges


def extract_images(markdown: Optional[str]) -> List[ImageReference]:
    """Return every image reference in document order (duplicates included)."""
    if not markdown:
        return []
    code = _code_ranges(markdown)
    refs: List[ImageReference] = []
    for m in _IMAGE_RE.finditer(markdown):
        if any(start <= m.start() < end for start, end in code):
            continue
        dest = m.group("dest")
        if dest.startswith("<") and dest.endswith(">"):
            dest = dest[1:-1].strip()
        refs.append(
            ImageReference(
                alt=m.group("alt"),
                url=dest,
                raw=m.group(0),
                start=m.start(),
                end=m.end(),
            )
        )
    return refs


def plan_rewrites(markdown: str, url_to_filename: Mapping[str, str]) -> List[Edit]:
    """Compute (start, length, replacement) edits against the unmodified source."""
    edits: List[Edit] = []
    for ref in extract_images(markdown):
        filename = url_to_filename.get(ref.url)
        if filename is None:
            continue
        edits.append((ref.start, ref.end - ref.start, f"![{ref.alt}]({filename})"))
    return edits


def apply_edits(text: str, edits: Iterable[Edit]) -> str:
    # Back to front, so earlier offsets stay valid after each splice.
    result = text
    for start, length, replacement in sorted(edits, key=lambda e: e[0], reverse=True):
        result = result[:start] + replacement + result[start + length:]
    return result


def rewrite_images(markdown: Optional[str], url_to_filename: Mapping[str, str]) -> str:
    """Point mapped image references at their uploaded filenames."""
    if not markdown or not url_to_filename:
        return markdown or ""
    return apply_edits(markdown, plan_rewrites(markdown, url_to_filename))


def _with_suffix(filename: str, n: int) -> str:
    dot = filename.rfind(".")
    if dot > 0:
        return f"{filename[:dot]}-{n}{filename[dot:]}"
    return f"{filename}-{n}"


def dedupe_filenames(entries: Sequence[Tuple[str, str]]) -> Dict[str, str]:
    """Map each URL to a filename unique within the batch.

    Colliding names are numbered in input order starting at 1
    (img.png -> img-1.png, img-2.png); unique names pass through untouched.
    A suffix already taken by another name in the batch is skipped.
    """
    counts: Dict[str, int] = {}
    for _url, filename in entries:
        counts[filename] = counts.get(filename, 0) + 1

    used = {filename for filename, count in counts.items() if count == 1}
    seen: Dict[str, int] = {}
    result: Dict[str, str] = {}
    for url, filename in entries:
        if counts[filename] == 1:
            result[url] = filename
            continue
        n = seen.get(filename, 0) + 1
        while _with_suffix(filename, n) in used:
            n += 1
        seen[filename] = n
        candidate = _with_suffix(filename, n)
        used.add(candidate)
        result[url] = candidate
    return result


def normalize_content_type(value: Optional[str]) -> str:
    return (value or "").split(";", 1)[0].strip().lower()


def filename_for(url: str, content_type: str) -> str:
    """Derive an attachment filename from the URL path and content type."""
    name = urlsplit(url).path.rsplit("/", 1)[-1] or "image"
    ext = os.path.splitext(name)[1].lower()
    if ext in KNOWN_EXTENSIONS:
        return name
    return name + CONTENT_TYPE_EXTENSIONS.get(content_type, DEFAULT_EXTENSION)


def is_trusted_token_host(url: str) -> bool:
    """Hosts that may receive the source-hosting token."""
    host = (urlsplit(url).hostname or "").lower()
    if not host:
        return False
    return host in TRUSTED_TOKEN_HOSTS or host.endswith(TRUSTED_TOKEN_SUFFIXES)


def _parse_content_length(header_value: Optional[str]) -> Optional[int]:
    if not header_value:
        return None
    try:
        size = int(header_value)
    except (TypeError, ValueError):
        logger.warning(f"Invalid Content-Length header: {header_value}")
        return None
    return size if size >= 0 else None


class ImageFetcher:
    """Downloads images under the URL policy, content-type and size limits.

    fetch() never raises: every rejection is logged and reported as None.
    """

    def __init__(
        self,
        http_client: Optional[httpx.Client] = None,
        *,
        timeout: float = 30.0,
        max_bytes: int = MAX_IMAGE_BYTES,
    ):
        self.http = http_client or httpx.Client(timeout=timeout, follow_redirects=False)
        self.max_bytes = max_bytes

    def close(self) -> None:
        self.http.close()

    @staticmethod
    def _headers_for(url: str, auth_token: Optional[str]) -> Dict[str, str]:
        headers = {"Accept": "image/*"}
        if auth_token and is_trusted_token_host(url):
            headers["Authorization"] = f"token {auth_token}"
        return headers

    def fetch(
        self,
        url: str,
        auth_token: Optional[str] = None,
        allowed_hosts: Optional[Iterable[str]] = None,
    ) -> Optional[FetchedImage]:
        allowed = list(allowed_hosts or [])
        if not is_safe_url(url, allowed):
            logger.warning(f"Skipping image with unsafe URL: {url}")
            return None
        try:
            return self._fetch(url, auth_token, allowed)
        except Exception as e:
            logger.warning(f"Failed to download image {url}: {e}")
            return None

    def _fetch(
        self, url: str, auth_token: Optional[str], allowed: List[str]
    ) -> Optional[FetchedImage]:
        current = url
        for _hop in range(MAX_REDIRECTS + 1):
            request = self.http.build_request(
                "GET", current, headers=self._headers_for(current, auth_token)
            )
            response = self.http.send(request, stream=True, follow_redirects=False)
            try:
                if response.is_redirect:
                    location = response.headers.get("location")
                    if not location:
                        logger.warning(f"Failed to download image {url}: redirect without Location")
                        return None
                    target = urljoin(current, location)
                    if not is_safe_url(target, allowed):
                        logger.warning(f"Skipping image {url}: redirect to unsafe URL {target}")
                        return None
                    current = target
                    continue
                return self._read_image(url, response)
            finally:
                response.close()

        logger.warning(f"Failed to download image {url}: too many redirects")
        return None

    def _read_image(self, url: str, response: httpx.Response) -> Optional[FetchedImage]:
        if not response.is_success:
            logger.warning(
                f"Failed to download image {url}: {response.status_code} {response.reason_phrase}"
            )
            return None

        content_type = normalize_content_type(response.headers.get("content-type"))
        if not content_type.startswith("image/"):
            logger.warning(f'Skipping image {url}: non-image content-type "{content_type}"')
            return None

        declared = _parse_content_length(response.headers.get("content-length"))
        if declared is not None and declared > self.max_bytes:
            logger.warning(
                f"Skipping image {url}: declared size {declared} exceeds {self.max_bytes} bytes"
            )
            return None

        chunks = []
        received = 0
        for chunk in response.iter_bytes():
            received += len(chunk)
            if received > self.max_bytes:
                logger.warning(f"Skipping image {url}: body exceeds {self.max_bytes} bytes")
                return None
            chunks.append(chunk)

        return FetchedImage(
            url=url,
            content=b"".join(chunks),
            filename=filename_for(url, content_type),
            content_type=content_type,
        )
