"""Tests for the orchestration layer and the request dispatcher."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from image_collector.collector import (
    analyze,
    download,
    download_batch,
    handle_request,
    health_check,
    select_resources,
)
from image_collector.errors import (
    ExtractionError,
    HTTPStatusError,
    TransportError,
    ValidationError,
)
from image_collector.models import DownloadedFile, Resource, SourceKind

PAGE = (
    '<img src="/small.png" alt="small">'
    '<img src="/big.jpg">'
    '<div style="background:url(/bg.gif)"></div>'
)


def _downloaded(url: str, filename: str = "a.png") -> DownloadedFile:
    return DownloadedFile(url=url, content=b"data", content_type="image/png", filename=filename)


class TestAnalyze:
    """Tests for analyze."""

    @patch("image_collector.collector.probe_sizes")
    @patch("image_collector.collector.fetch_page", return_value=PAGE)
    def test_ranks_by_probed_size(self, mock_fetch, mock_probe, config):
        mock_probe.return_value = {
            "https://h.test/small.png": 100,
            "https://h.test/big.jpg": 5000,
            "https://h.test/bg.gif": None,
        }
        result = analyze("https://h.test/page", config=config)

        mock_fetch.assert_called_once_with("https://h.test/page", config)
        probed = mock_probe.call_args.args[0]
        assert probed == [
            "https://h.test/small.png",
            "https://h.test/big.jpg",
            "https://h.test/bg.gif",
        ]
        assert [(r.url, r.size) for r in result.resources] == [
            ("https://h.test/big.jpg", 5000),
            ("https://h.test/small.png", 100),
            ("https://h.test/bg.gif", None),
        ]
        assert result.total == 3
        assert result.debug["html_length"] == len(PAGE)
        assert result.debug["base_url"] == "https://h.test/page"
        assert result.debug["candidates"] == 4

    @patch("image_collector.collector.probe_sizes")
    @patch("image_collector.collector.fetch_page", return_value=PAGE)
    def test_probe_can_be_disabled(self, mock_fetch, mock_probe, config):
        result = analyze("https://h.test/page", {"probeSizes": False}, config)
        mock_probe.assert_not_called()
        assert [r.url for r in result.resources][0] == "https://h.test/small.png"
        assert all(r.size is None for r in result.resources)

    @patch("image_collector.collector.probe_sizes", return_value={})
    @patch("image_collector.collector.fetch_page", return_value=PAGE)
    def test_include_images_false_yields_empty(self, mock_fetch, mock_probe, config):
        result = analyze("https://h.test/page", {"includeImages": False}, config)
        assert result.resources == []
        assert result.total == 0

    @patch("image_collector.collector.probe_sizes", return_value={})
    @patch("image_collector.collector.fetch_page", return_value="<p>no pictures here</p>")
    def test_no_images_is_not_an_error(self, mock_fetch, mock_probe, config):
        result = analyze("https://h.test/page", config=config)
        assert result.to_dict()["success"] is True
        assert result.to_dict()["resources"] == []

    @patch("image_collector.collector.fetch_page")
    def test_invalid_url_fails_before_fetch(self, mock_fetch, config):
        with pytest.raises(ValidationError):
            analyze("not-a-url", config=config)
        mock_fetch.assert_not_called()

    @patch("image_collector.collector.fetch_page", return_value="")
    def test_empty_page_is_an_extraction_error(self, mock_fetch, config):
        with pytest.raises(ExtractionError):
            analyze("https://h.test/page", config=config)


class TestDownload:
    """Tests for download and download_batch."""

    @patch("image_collector.collector.fetch_for_download")
    def test_invalid_url(self, mock_fetch, config):
        with pytest.raises(ValidationError):
            download("javascript:alert(1)", config)
        mock_fetch.assert_not_called()

    @patch("image_collector.collector.fetch_for_download")
    def test_batch_writes_files_and_records_failures(self, mock_fetch, config, tmp_path):
        def fake_fetch(url, _config):
            if url.endswith("missing.png"):
                raise HTTPStatusError(404, url)
            return _downloaded(url, filename="same.png")

        mock_fetch.side_effect = fake_fetch
        urls = ["https://a.com/1.png", "https://a.com/missing.png", "https://a.com/2.png"]
        with patch("image_collector.collector.time.sleep") as mock_sleep:
            result = download_batch(urls, tmp_path, config, delay=0.5)

        assert result.succeeded == 2
        assert result.failed == 1
        assert result.failures[0][0] == "https://a.com/missing.png"
        assert [p.name for p in result.saved] == ["same.png", "same-1.png"]
        assert (tmp_path / "same.png").read_bytes() == b"data"
        assert mock_sleep.call_count == 2
        mock_sleep.assert_called_with(0.5)

    @patch("image_collector.collector.fetch_for_download")
    def test_batch_without_delay_never_sleeps(self, mock_fetch, config, tmp_path):
        mock_fetch.side_effect = lambda url, _config: _downloaded(url)
        with patch("image_collector.collector.time.sleep") as mock_sleep:
            download_batch(["https://a.com/1.png", "https://a.com/2.png"], tmp_path, config)
        mock_sleep.assert_not_called()


def test_select_resources():
    resources = [Resource(f"https://a.com/{i}.png", SourceKind.IMG_TAG) for i in range(4)]
    chosen = select_resources(resources, [2, 0, 2])
    assert [r.url for r in chosen] == ["https://a.com/2.png", "https://a.com/0.png"]
    with pytest.raises(IndexError):
        select_resources(resources, [4])
    with pytest.raises(IndexError):
        select_resources(resources, [-1])


class TestHandleRequest:
    """Tests for the JSON request dispatcher."""

    @pytest.mark.parametrize("payload", [None, [], "analyze", {"url": "https://a.com"}])
    def test_invalid_request_format(self, payload):
        response = handle_request(payload)
        assert response["success"] is False
        assert response["message"] == "Invalid request format"
        assert response["debug_info"]["error_type"] == "RequestError"

    def test_unknown_action(self):
        response = handle_request({"action": "explode"})
        assert response["success"] is False
        assert response["message"] == "Unknown action: explode"

    @pytest.mark.parametrize("action", ["analyze", "download"])
    @pytest.mark.parametrize("url", [None, ""])
    @patch("image_collector.collector.fetch_for_download")
    @patch("image_collector.collector.fetch_page")
    def test_missing_url_fails_before_network(self, mock_page, mock_download, url, action):
        payload = {"action": action}
        if url is not None:
            payload["url"] = url
        response = handle_request(payload)
        assert response["success"] is False
        assert "Missing" in response["message"]
        mock_page.assert_not_called()
        mock_download.assert_not_called()

    def test_invalid_url(self):
        response = handle_request({"action": "analyze", "url": "nope"})
        assert response["success"] is False
        assert response["debug_info"]["error_type"] == "ValidationError"

    @patch("image_collector.collector.probe_sizes", return_value={"https://h.test/big.jpg": 9})
    @patch("image_collector.collector.fetch_page", return_value=PAGE)
    def test_analyze_success_shape(self, mock_fetch, mock_probe, config):
        response = handle_request(
            {"action": "analyze", "url": "https://h.test/", "options": {"includeImages": True}},
            config,
        )
        assert response["success"] is True
        assert response["total"] == 3
        assert response["resources"][0] == {
            "url": "https://h.test/big.jpg",
            "type": "image",
            "source": "img_tag",
            "alt": "",
            "size": 9,
        }
        assert response["resources"][1]["alt"] == "small"
        assert set(response["debug"]) >= {"html_length", "base_url"}

    @patch("image_collector.collector.fetch_page", side_effect=TransportError("Request failed: down"))
    def test_transport_error_is_reported(self, mock_fetch):
        response = handle_request({"action": "analyze", "url": "https://h.test/"})
        assert response["success"] is False
        assert response["message"] == "Request failed: down"
        assert response["debug_info"]["action"] == "analyze"

    @patch("image_collector.collector.fetch_for_download")
    def test_download_404_is_reported(self, mock_fetch):
        mock_fetch.side_effect = HTTPStatusError(404, "https://a.com/x.png")
        response = handle_request({"action": "download", "url": "https://a.com/x.png"})
        assert isinstance(response, dict)
        assert response["success"] is False
        assert response["debug_info"]["status_code"] == 404

    @patch("image_collector.collector.fetch_for_download")
    def test_download_success_returns_file(self, mock_fetch):
        mock_fetch.return_value = _downloaded("https://a.com/a.png")
        response = handle_request({"action": "download", "url": "https://a.com/a.png"})
        assert isinstance(response, DownloadedFile)
        assert response.headers()["Content-Disposition"] == 'attachment; filename="a.png"'
        assert response.headers()["Content-Length"] == "4"

    @patch("image_collector.collector.fetch_page", side_effect=KeyError("boom"))
    def test_unexpected_error_is_contained(self, mock_fetch):
        response = handle_request({"action": "analyze", "url": "https://h.test/"})
        assert response["success"] is False
        assert response["message"].startswith("Internal error")

    def test_health(self):
        response = handle_request({"action": "test"})
        assert response["success"] is True
        assert set(response) == set(health_check())
