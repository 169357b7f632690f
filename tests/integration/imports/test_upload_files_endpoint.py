"""
Integration tests for POST /api/upload-files.

Each file is imported independently; the report lists successes and
per-file errors.
"""

from fastapi.testclient import TestClient

from logimporter.core.exceptions import BackendRejected


def _file(name: str, content: str):
    return ("files", (name, content.encode("utf-8"), "text/plain"))


class TestUploadFilesEndpoint:
    """Test multi-file uploads."""

    def test_single_file(self, test_client: TestClient, fake_pusher) -> None:
        response = test_client.post(
            "/api/upload-files",
            files=[_file("api.log", "service_name: api\nGET / 200\n\nGET /x 404\n")],
        )

        assert response.status_code == 200
        assert response.text == (
            "Processed 1 file(s), imported 2 total lines\n\n"
            "SUCCESS:\n"
            "✓ api.log: 2 lines imported (service: api)"
        )
        assert fake_pusher.calls == [("api", ["GET / 200", "GET /x 404"])]

    def test_partial_failure_reports_both(self, test_client: TestClient, fake_pusher) -> None:
        """Three files, the second without service_name: 2 successes, 1 error, HTTP 200."""
        response = test_client.post(
            "/api/upload-files",
            files=[
                _file("one.log", "service_name: one\na\nb\n"),
                _file("two.log", "no header here\nc\n"),
                _file("three.log", "service_name: three\nd\n"),
            ],
        )

        assert response.status_code == 200
        body = response.text
        assert body.startswith("Processed 3 file(s), imported 3 total lines\n\n")
        success_section, error_section = body.split("\n\nERRORS:\n")
        assert success_section.count("✓") == 2
        assert "✓ one.log: 2 lines imported (service: one)" in success_section
        assert "✓ three.log: 1 lines imported (service: three)" in success_section
        assert error_section == (
            "ERROR: two.log is missing service_name. "
            "Add 'service_name: your-service-name' as the first line"
        )
        assert [call[0] for call in fake_pusher.calls] == ["one", "three"]

    def test_failure_does_not_abort_siblings(self, test_client: TestClient, fake_pusher) -> None:
        fake_pusher.failures["one"] = BackendRejected(400, "entry too far behind")

        response = test_client.post(
            "/api/upload-files",
            files=[
                _file("one.log", "service_name: one\na\n"),
                _file("two.log", "service_name: two\nb\n"),
            ],
        )

        assert response.status_code == 200
        assert "✓ two.log: 1 lines imported (service: two)" in response.text
        assert (
            "Failed to import one.log: Loki returned status 400: entry too far behind"
            in response.text
        )

    def test_all_files_failed(self, test_client: TestClient, fake_pusher) -> None:
        response = test_client.post(
            "/api/upload-files",
            files=[
                _file("a.log", "plain line\n"),
                _file("b.log", "service_name: b\n\n   \n"),
            ],
        )

        assert response.status_code == 400
        assert response.text == (
            "ERROR: a.log is missing service_name. "
            "Add 'service_name: your-service-name' as the first line\n"
            "ERROR: b.log contains no valid log lines"
        )
        assert fake_pusher.calls == []

    def test_no_files(self, test_client: TestClient, fake_pusher) -> None:
        response = test_client.post("/api/upload-files", data={"other": "value"})

        assert response.status_code == 400
        assert response.text == "No files provided"
        assert fake_pusher.calls == []

    def test_uploads_are_counted(self, test_client: TestClient) -> None:
        test_client.post(
            "/api/upload-files",
            files=[
                _file("ok.log", "service_name: ok\nline\n"),
                _file("bad.log", "line\n"),
            ],
        )

        metrics = test_client.get("/metrics").text
        assert 'files_processed_total{outcome="success"} 1.0' in metrics
        assert 'files_processed_total{outcome="error"} 1.0' in metrics
        assert 'lines_imported_total{service_name="ok",endpoint="upload-files"} 1.0' in metrics

    def test_malformed_multipart_is_client_error(self, test_client: TestClient, fake_pusher) -> None:
        response = test_client.post(
            "/api/upload-files",
            content=b"--x\r\nContent-Disposition: form-data; name=\"files\"; filename=\"a.log\"\r\n\r\nservice_na",
            headers={"Content-Type": "multipart/form-data; boundary=x"},
        )

        assert 400 <= response.status_code < 500
        assert fake_pusher.calls == []

    def test_garbage_multipart_is_client_error(self, test_client: TestClient, fake_pusher) -> None:
        response = test_client.post(
            "/api/upload-files",
            content=b"\x00\x01 this is not multipart at all",
            headers={"Content-Type": "multipart/form-data; boundary=x"},
        )

        assert 400 <= response.status_code < 500
        assert fake_pusher.calls == []
