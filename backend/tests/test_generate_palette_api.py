"""
API integration tests for the palette endpoint.

Tests the complete /generate_palette flow:
- multipart upload, url-encoded form and JSON bodies
- input validation and error payloads
- security headers and metrics
"""

import re
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from app.errors import FetchError
from main import app

HEX_RE = re.compile(r"^#[0-9a-f]{6}$")
IMAGE_URL = "https://example.com/photo.png"


class TestValidation:
    """Rejected requests"""

    @pytest.mark.parametrize("image_url", [
        "not-a-url",
        "not a url",
        "https://example.com/a.png\n",
        "https://example.com/a b.png",
    ])
    def test_invalid_url(self, test_client, image_url):
        response = test_client.post("/generate_palette", json={"image_url": image_url})

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid image URL."}

    def test_invalid_url_form(self, test_client):
        response = test_client.post("/generate_palette", data={"image_url": "not-a-url"})

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid image URL."}

    @pytest.mark.parametrize("num_colors", ["0", "101", "abc", "2.5"])
    def test_invalid_num_colors(self, test_client, num_colors):
        response = test_client.post(
            "/generate_palette",
            data={"image_url": IMAGE_URL, "num_colors": num_colors}
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid number of colors. Must be between 1 and 100."}

    def test_invalid_num_colors_json(self, test_client):
        response = test_client.post(
            "/generate_palette",
            json={"image_url": IMAGE_URL, "num_colors": 0}
        )

        assert response.status_code == 400
        assert response.json()["error"].startswith("Invalid number of colors")

    def test_missing_source(self, test_client):
        response = test_client.post("/generate_palette", json={"num_colors": 5})

        assert response.status_code == 400
        assert response.json() == {"error": "No image provided. Supply image_url or an image file."}

    def test_url_checked_before_count(self, test_client):
        """An invalid URL is reported even when num_colors is also bad"""
        response = test_client.post(
            "/generate_palette",
            data={"image_url": "ftp://example.com/a.png", "num_colors": "0"}
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid image URL."}

    def test_malformed_json(self, test_client):
        response = test_client.post(
            "/generate_palette",
            content=b"{not json",
            headers={"Content-Type": "application/json"}
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid request body."}


class TestUpload:
    """Multipart uploads"""

    def test_upload_two_colors(self, test_client, two_color_png):
        response = test_client.post(
            "/generate_palette",
            files={"image": ("blocks.png", two_color_png, "image/png")},
            data={"num_colors": "3"}
        )

        assert response.status_code == 200
        palette = response.json()["palette"]
        assert len(palette) == 3

        first, second, third = palette
        assert abs(first["red"] - 255) <= 1 and first["blue"] <= 1
        assert abs(second["blue"] - 255) <= 1 and second["red"] <= 1
        assert first["population"] > second["population"]
        assert third == first

        for entry in palette:
            assert HEX_RE.match(entry["hex"])
            assert set(entry) == {"hex", "red", "green", "blue", "hue", "chroma", "tone", "population"}

    def test_default_num_colors(self, test_client, two_color_png):
        response = test_client.post(
            "/generate_palette",
            files={"image": ("blocks.png", two_color_png, "image/png")}
        )

        assert response.status_code == 200
        assert len(response.json()["palette"]) == 16

    def test_upload_takes_precedence(self, test_client, two_color_png):
        """A file wins over image_url, which is never fetched"""
        with patch("app.services.palette_api.fetch_image") as mock_fetch:
            response = test_client.post(
                "/generate_palette",
                files={"image": ("blocks.png", two_color_png, "image/png")},
                data={"image_url": IMAGE_URL, "num_colors": "2"}
            )

        assert response.status_code == 200
        mock_fetch.assert_not_called()

    def test_unsupported_upload(self, test_client):
        response = test_client.post(
            "/generate_palette",
            files={"image": ("notes.txt", b"hello world", "text/plain")}
        )

        assert response.status_code == 500
        assert response.json() == {"error": "Unsupported image format: unknown"}


class TestRemoteImage:
    """image_url sources"""

    def test_json_body(self, test_client, two_color_png):
        with patch("app.services.palette_api.fetch_image", return_value=two_color_png) as mock_fetch:
            response = test_client.post(
                "/generate_palette",
                json={"image_url": IMAGE_URL, "num_colors": 2}
            )

        assert response.status_code == 200
        assert len(response.json()["palette"]) == 2
        mock_fetch.assert_called_once_with(IMAGE_URL)

    def test_form_body(self, test_client, two_color_png):
        with patch("app.services.palette_api.fetch_image", return_value=two_color_png):
            response = test_client.post(
                "/generate_palette",
                data={"image_url": IMAGE_URL, "num_colors": "5"}
            )

        assert response.status_code == 200
        assert len(response.json()["palette"]) == 5

    def test_fetch_failure(self, test_client):
        with patch("app.services.palette_api.fetch_image",
                   side_effect=FetchError("Failed to fetch image: 404 Not Found")):
            response = test_client.post("/generate_palette", json={"image_url": IMAGE_URL})

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to fetch image: 404 Not Found"}


class TestServerBehaviour:
    """Headers, metrics and unexpected failures"""

    def test_csp_header(self, test_client):
        response = test_client.get("/healthz")
        assert "default-src 'self'" in response.headers["content-security-policy"]

    def test_request_id_generated(self, test_client):
        response = test_client.get("/healthz")
        assert response.headers["x-request-id"].startswith("pal-")

    def test_request_id_echoed(self, test_client):
        response = test_client.post(
            "/generate_palette",
            data={"image_url": "bad"},
            headers={"X-Request-ID": "client-42"}
        )

        assert response.status_code == 400
        assert response.headers["x-request-id"] == "client-42"

    def test_malformed_request_id_replaced(self, test_client):
        response = test_client.get("/healthz", headers={"X-Request-ID": "has spaces"})
        assert response.headers["x-request-id"].startswith("pal-")

    def test_cors_preflight(self, test_client):
        response = test_client.options(
            "/generate_palette",
            headers={
                "Origin": "https://app.example.com",
                "Access-Control-Request-Method": "POST",
            }
        )

        assert response.status_code == 200
        assert "access-control-allow-origin" in response.headers

    def test_unexpected_error_is_hidden(self, two_color_png):
        """Unexpected failures still carry the CSP, request id and CORS headers"""
        client = TestClient(app, raise_server_exceptions=False)
        with patch("app.services.palette_api.generate_palette", side_effect=RuntimeError("boom")):
            response = client.post(
                "/generate_palette",
                files={"image": ("blocks.png", two_color_png, "image/png")},
                headers={"Origin": "https://app.example.com", "X-Request-ID": "req-500"}
            )

        assert response.status_code == 500
        assert response.json() == {"error": "Internal server error."}
        assert "default-src 'self'" in response.headers["content-security-policy"]
        assert response.headers["x-request-id"] == "req-500"
        assert "access-control-allow-origin" in response.headers

    def test_metrics_counters(self, test_client, two_color_png):
        test_client.post(
            "/generate_palette",
            files={"image": ("blocks.png", two_color_png, "image/png")},
            data={"num_colors": "4"}
        )
        test_client.post("/generate_palette", data={"image_url": "nope"})

        data = test_client.get("/metrics").json()

        assert data["counters"]["palette_requests_total"] == 2
        assert data["counters"]["palette_source_total_upload"] == 1
        assert data["counters"]["palette_failed_total_ValidationError"] == 1
        assert data["palette_size_stats"] == {"4": 1}
        assert data["timing_stats"]["palette_request_duration_ms"]["count"] == 1
