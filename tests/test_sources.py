from unittest.mock import MagicMock, patch

import httpx
import pytest

from songplan.exceptions import FetchError, SourceError
from songplan.sources import fetch_text, html_to_text, is_url, read_source

TEST_URL = "https://songs.example.org/hymns/amazing-grace.txt"


def _response(status_code=200, text="", content_type="text/plain; charset=utf-8") -> MagicMock:
    resp = MagicMock()
    resp.status_code = status_code
    resp.text = text
    resp.content = text.encode("utf-8")
    resp.headers = {"content-type": content_type}
    return resp


# ---------------------------------------------------------------------------
# is_url
# ---------------------------------------------------------------------------


def test_is_url():
    assert is_url(TEST_URL)
    assert is_url("http://example.org/song")
    assert not is_url("songs/amazing_grace.txt")
    assert not is_url("C:\\songs\\grace.txt")


# ---------------------------------------------------------------------------
# html_to_text
# ---------------------------------------------------------------------------


def test_html_pre_block_extracted():
    html = "<html><body><h1>Amazing Grace</h1><pre>\nVerse 1\nAmazing grace\n</pre></body></html>"
    assert html_to_text(html) == "Verse 1\nAmazing grace"


def test_html_multiple_pre_blocks_joined():
    html = "<body><pre>Verse 1\nline</pre><p>ad</p><pre>Chorus\nline</pre></body>"
    assert html_to_text(html) == "Verse 1\nline\n\nChorus\nline"


def test_html_without_pre_uses_body_text():
    html = (
        "<html><head><style>p { color: red }</style></head>"
        "<body><p>Amazing grace</p><script>track()</script></body></html>"
    )
    text = html_to_text(html)
    assert "Amazing grace" in text
    assert "track()" not in text
    assert "color" not in text


# ---------------------------------------------------------------------------
# fetch_text
# ---------------------------------------------------------------------------


def test_fetch_plain_text():
    with patch("songplan.sources.httpx.get", return_value=_response(text="Verse 1\nAmazing grace")) as get:
        assert fetch_text(TEST_URL) == "Verse 1\nAmazing grace"
    assert get.call_args.kwargs["follow_redirects"] is True


def test_fetch_html_converted():
    resp = _response(text="<pre>Verse 1\nAmazing grace</pre>", content_type="text/html")
    with patch("songplan.sources.httpx.get", return_value=resp):
        assert fetch_text(TEST_URL) == "Verse 1\nAmazing grace"


def test_fetch_non_200_raises():
    with patch("songplan.sources.httpx.get", return_value=_response(status_code=404)):
        with pytest.raises(FetchError) as exc_info:
            fetch_text(TEST_URL)
    assert exc_info.value.status_code == 404
    assert exc_info.value.url == TEST_URL


def test_fetch_network_error_has_status_zero():
    with patch("songplan.sources.httpx.get", side_effect=httpx.ConnectError("refused")):
        with pytest.raises(FetchError) as exc_info:
            fetch_text(TEST_URL)
    assert exc_info.value.status_code == 0


# ---------------------------------------------------------------------------
# read_source
# ---------------------------------------------------------------------------


def test_read_source_url_name_from_path():
    with patch("songplan.sources.fetch_text", return_value="Verse 1\nline") as fetch:
        text, name = read_source(TEST_URL)
    fetch.assert_called_once_with(TEST_URL)
    assert text == "Verse 1\nline"
    assert name == "amazing-grace.txt"


def test_read_source_local_file(tmp_path):
    path = tmp_path / "grace.cho"
    path.write_text("{title: Amazing Grace}\n", encoding="utf-8")
    assert read_source(str(path)) == ("{title: Amazing Grace}\n", "grace.cho")


def test_read_source_invalid_utf8_replaced(tmp_path):
    path = tmp_path / "grace.txt"
    path.write_bytes(b"Gr\xfc\xdfe\n")
    text, _ = read_source(str(path))
    assert text.startswith("Gr\ufffd")


def test_read_source_html_file_converted(tmp_path):
    path = tmp_path / "grace.html"
    path.write_text("<html><body><pre>Verse 1\nAmazing grace</pre></body></html>", encoding="utf-8")
    text, name = read_source(str(path))
    assert text == "Verse 1\nAmazing grace"
    assert name == "grace.html"


def test_read_source_missing_file(tmp_path):
    with pytest.raises(SourceError) as exc_info:
        read_source(str(tmp_path / "missing.txt"))
    assert exc_info.value.reason == "no such file"


def test_read_source_directory(tmp_path):
    with pytest.raises(SourceError):
        read_source(str(tmp_path))
