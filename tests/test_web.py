"""Unit tests for the SVG Frames web UI."""

import io
from unittest.mock import MagicMock, patch

import pytest

from svgframes.web import create_app

ANIMATED_SVG = (
    b'<svg xmlns="http://www.w3.org/2000/svg" width="320" height="240">'
    b'<rect width="10" height="10"><animate attributeName="x" from="0" to="100" dur="2s"/></rect>'
    b"</svg>"
)


@pytest.fixture
def app(tmp_path):
    app = create_app(work_dir=tmp_path)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


def _upload(client, filename="test.svg", content=ANIMATED_SVG):
    return client.post(
        "/api/upload",
        data={"file": (io.BytesIO(content), filename)},
        content_type="multipart/form-data",
    )


def _timing_state(**overrides):
    state = {
        "texts": {"start": "0s", "duration": "4s"},
        "lock": "end",
        "fps": 10,
    }
    state.update(overrides)
    return state


class TestCreateApp:
    def test_work_dir_argument(self, tmp_path):
        app = create_app(work_dir=tmp_path)
        assert app.config["WORK_DIR"] == tmp_path

    def test_environment_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv("SVGFRAMES_WORK_DIR", str(tmp_path / "env"))
        monkeypatch.setenv("SVGFRAMES_MAX_CONTENT_LENGTH", "100")
        app = create_app()
        assert app.config["WORK_DIR"] == tmp_path / "env"
        assert app.config["MAX_CONTENT_LENGTH"] == 100

    def test_upload_limit(self, monkeypatch, tmp_path):
        monkeypatch.setenv("SVGFRAMES_MAX_CONTENT_LENGTH", "100")
        client = create_app(work_dir=tmp_path).test_client()
        resp = _upload(client)
        assert resp.status_code == 413
        assert "too large" in resp.get_json()["error"]


class TestIndex:
    def test_serves_html(self, client):
        resp = client.get("/")
        assert resp.status_code == 200
        assert b"SVG Frames" in resp.data

    def test_page_script_calls_api(self, client):
        page = client.get("/").data
        for endpoint in (b"/api/upload", b"/api/timing", b"/api/size", b"/export", b"/progress"):
            assert endpoint in page


class TestUpload:
    def test_upload_success(self, client):
        resp = _upload(client)
        assert resp.status_code == 200
        data = resp.get_json()
        assert "job_id" in data
        assert data["filename"] == "test.svg"
        assert data["width"] == 320
        assert data["height"] == 240
        assert data["animated"] is True

    def test_upload_no_file(self, client):
        resp = client.post("/api/upload")
        assert resp.status_code == 400

    def test_upload_not_svg(self, client):
        resp = _upload(client, filename="photo.svg", content=b"plain text, not markup")
        assert resp.status_code == 400
        assert "not a valid SVG" in resp.get_json()["error"]

    def test_upload_not_utf8(self, client):
        resp = _upload(client, content=b"\x89PNG\r\n\x1a\n")
        assert resp.status_code == 400
        assert "not a valid SVG" in resp.get_json()["error"]

    def test_upload_creates_file(self, client, tmp_path):
        resp = _upload(client)
        job_id = resp.get_json()["job_id"]
        input_file = tmp_path / job_id / "input.svg"
        assert input_file.exists()
        assert input_file.read_bytes() == ANIMATED_SVG


class TestTiming:
    def test_duration_edit(self, client):
        resp = client.post(
            "/api/timing",
            json={"state": _timing_state(), "edit": {"field": "duration", "value": "2s"}},
        )
        assert resp.status_code == 200
        state = resp.get_json()["state"]
        assert state["duration"] == 2
        assert state["end"] == 2
        assert state["texts"]["end"] == "2s"
        assert state["total_frames"] == 20

    def test_numeric_zero_value(self, client):
        resp = client.post(
            "/api/timing",
            json={"state": _timing_state(texts={"start": "2s", "duration": "4s"}),
                  "edit": {"field": "start", "value": 0}},
        )
        assert resp.status_code == 200
        state = resp.get_json()["state"]
        assert state["start"] == 0
        assert state["end"] == 4

    def test_numeric_value(self, client):
        resp = client.post(
            "/api/timing",
            json={"state": _timing_state(), "edit": {"field": "duration", "value": 5}},
        )
        assert resp.status_code == 200
        assert resp.get_json()["state"]["end"] == 5

    def test_no_edit_returns_settled_state(self, client):
        resp = client.post("/api/timing", json={"state": _timing_state()})
        assert resp.get_json()["state"]["total_frames"] == 40

    def test_invalid_value(self, client):
        resp = client.post(
            "/api/timing",
            json={"state": _timing_state(), "edit": {"field": "duration", "value": "soon"}},
        )
        assert resp.status_code == 422
        data = resp.get_json()
        assert data["field"] == "duration"
        assert "70000ms" in data["hint"]
        assert data["state"]["duration"] == 4

    def test_lock_change(self, client):
        resp = client.post(
            "/api/timing",
            json={"state": _timing_state(), "edit": {"field": "lock", "value": "start"}},
        )
        assert resp.get_json()["state"]["lock"] == "start"

    def test_bad_lock(self, client):
        resp = client.post(
            "/api/timing",
            json={"state": _timing_state(), "edit": {"field": "lock", "value": "middle"}},
        )
        assert resp.status_code == 400

    def test_total_frames_edit(self, client):
        resp = client.post(
            "/api/timing",
            json={"state": _timing_state(), "edit": {"field": "total_frames", "value": 8}},
        )
        state = resp.get_json()["state"]
        assert state["total_frames"] == 8
        assert state["fps"] == 2
        assert state["frame_rate_driver"] == "total_frames"

    def test_bad_fps(self, client):
        resp = client.post("/api/timing", json={"state": _timing_state(fps="fast")})
        assert resp.status_code == 400

    def test_unknown_field(self, client):
        resp = client.post(
            "/api/timing",
            json={"state": _timing_state(), "edit": {"field": "speed", "value": 1}},
        )
        assert resp.status_code == 400


class TestSize:
    def test_width_edit(self, client):
        resp = client.post(
            "/api/size",
            json={
                "original_width": 400,
                "original_height": 200,
                "edit": {"field": "width", "value": "100"},
            },
        )
        data = resp.get_json()
        assert data["width"] == "100"
        assert data["height"] == "50"
        assert data["size"] == {"width": 100, "height": 50}

    def test_bad_original(self, client):
        resp = client.post("/api/size", json={"original_width": "wide"})
        assert resp.status_code == 400


class TestExport:
    def test_export_unknown_job(self, client):
        resp = client.post("/api/jobs/nonexistent/export", json={})
        assert resp.status_code == 404

    def test_export_bad_lock(self, client):
        job_id = _upload(client).get_json()["job_id"]
        resp = client.post(
            f"/api/jobs/{job_id}/export",
            json={"animation": {"enabled": True, "lock": "middle"}},
        )
        assert resp.status_code == 400

    @patch("svgframes.web.routes.process")
    def test_export_runs_to_completion(self, mock_process, client, tmp_path):
        output = tmp_path / "input.zip"
        output.write_bytes(b"PK-archive")
        mock_process.return_value = MagicMock(
            output_path=output, filename="input.zip", frame_count=10, byte_size=10
        )

        job_id = _upload(client).get_json()["job_id"]
        resp = client.post(
            f"/api/jobs/{job_id}/export",
            json={"width": 160, "animation": {"enabled": True, "duration": "2s", "fps": 5}},
        )
        assert resp.status_code == 200
        assert resp.get_json()["status"] == "started"

        # The stream ends once the worker thread posts its sentinel
        stream = client.get(f"/api/jobs/{job_id}/progress")
        assert b'"stage": "complete"' in stream.data

        manifest = mock_process.call_args[0][0]
        assert manifest.width == 160
        assert manifest.animation.fps == 5

        status = client.get(f"/api/jobs/{job_id}/status").get_json()
        assert status["status"] == "done"
        assert status["result"]["frame_count"] == 10

        result = client.get(f"/api/jobs/{job_id}/result")
        assert result.status_code == 200
        assert result.data == b"PK-archive"

    @patch("svgframes.web.routes.process", side_effect=RuntimeError("boom"))
    def test_export_failure_reported(self, mock_process, client):
        job_id = _upload(client).get_json()["job_id"]
        client.post(f"/api/jobs/{job_id}/export", json={})

        stream = client.get(f"/api/jobs/{job_id}/progress")
        assert b"boom" in stream.data
        status = client.get(f"/api/jobs/{job_id}/status").get_json()
        assert status["status"] == "error"


class TestStatus:
    def test_status_after_upload(self, client):
        job_id = _upload(client).get_json()["job_id"]
        resp = client.get(f"/api/jobs/{job_id}/status")
        assert resp.status_code == 200
        assert resp.get_json()["status"] == "uploaded"

    def test_status_unknown_job(self, client):
        resp = client.get("/api/jobs/nonexistent/status")
        assert resp.status_code == 404

    def test_progress_without_export(self, client):
        job_id = _upload(client).get_json()["job_id"]
        resp = client.get(f"/api/jobs/{job_id}/progress")
        assert resp.status_code == 409


class TestDownload:
    def test_download_not_complete(self, client):
        job_id = _upload(client).get_json()["job_id"]
        resp = client.get(f"/api/jobs/{job_id}/result")
        assert resp.status_code == 409

    def test_download_unknown_job(self, client):
        resp = client.get("/api/jobs/nonexistent/result")
        assert resp.status_code == 404
