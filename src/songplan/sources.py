"""Read song text from a local file or an http(s) URL.

Song pages on the web usually carry the song in one or more ``<pre>`` blocks;
those are extracted with BeautifulSoup.  Pages without ``<pre>`` fall back to
the visible body text.
"""

import logging
from pathlib import Path, PurePosixPath
from urllib.parse import urlparse

import httpx
from bs4 import BeautifulSoup

from .exceptions import FetchError, SourceError

logger = logging.getLogger(__name__)

_FETCH_HEADERS = {
    "User-Agent": "songplan (+https://pypi.org/project/songplan/)",
    "Accept": "text/plain,text/html;q=0.9,*/*;q=0.5",
}

_HTML_SUFFIXES = (".html", ".htm")


def is_url(location: str) -> bool:
    return urlparse(location).scheme in ("http", "https")


def html_to_text(html: str) -> str:
    """Return the song text carried by an HTML page."""
    soup = BeautifulSoup(html, "html.parser")
    blocks = [pre.get_text() for pre in soup.find_all("pre")]
    if blocks:
        return "\n\n".join(block.strip("\n") for block in blocks)
    for tag in soup(["script", "style"]):
        tag.decompose()
    body = soup.body or soup
    return body.get_text("\n").strip()


def fetch_text(url: str, timeout: float = 15) -> str:
    """GET *url* and return its song text.

    Raises FetchError on network failures (status 0) and non-200 responses.
    """
    try:
        resp = httpx.get(url, headers=_FETCH_HEADERS, follow_redirects=True, timeout=timeout)
    except httpx.RequestError as exc:
        raise FetchError(url, 0) from exc
    if resp.status_code != 200:
        raise FetchError(url, resp.status_code)
    logger.debug("Fetched %s (%d bytes)", url, len(resp.content))
    if "html" in resp.headers.get("content-type", ""):
        return html_to_text(resp.text)
    return resp.text


def read_source(location: str) -> tuple[str, str]:
    """Return ``(text, filename)`` for a path or URL.

    *filename* is the last path component, used for dialect detection by
    suffix and as a fallback title.

    Raises:
        FetchError:  For URLs that cannot be fetched.
        SourceError: For local files that cannot be read.
    """
    if is_url(location):
        name = PurePosixPath(urlparse(location).path).name
        return fetch_text(location), name

    path = Path(location)
    try:
        data = path.read_bytes()
    except FileNotFoundError as exc:
        raise SourceError(location, "no such file") from exc
    except IsADirectoryError as exc:
        raise SourceError(location, "is a directory") from exc
    except OSError as exc:
        raise SourceError(location, exc.strerror or str(exc)) from exc

    text = data.decode("utf-8", errors="replace")
    if path.suffix.lower() in _HTML_SUFFIXES:
        text = html_to_text(text)
    return text, path.name
