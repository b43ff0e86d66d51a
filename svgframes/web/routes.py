"""Web UI routes for SVG Frames."""

import json
import logging
import queue
import subprocess
import threading
import uuid
from pathlib import Path

from flask import (
    Blueprint,
    Response,
    current_app,
    jsonify,
    render_template,
    request,
    send_file,
)

from svgframes.export import process
from svgframes.manifest import AnimationConfig, ExportManifest, parse_lock
from svgframes.models import TimingField
from svgframes.sizing import SizeSolver
from svgframes.svgdoc import InvalidSvgError, load_svg
from svgframes.timing import DEFAULT_FPS, TimingSolver

logger = logging.getLogger(__name__)

bp = Blueprint("web", __name__, template_folder="templates")

# In-memory job store: job_id -> job dict
_jobs: dict[str, dict] = {}


@bp.route("/")
def index():
    return render_template("index.html")


@bp.route("/api/upload", methods=["POST"])
def upload():
    if "file" not in request.files:
        return jsonify({"error": "No file provided"}), 400

    f = request.files["file"]
    if not f.filename:
        return jsonify({"error": "Empty filename"}), 400

    job_id = uuid.uuid4().hex[:12]
    job_dir = Path(current_app.config["WORK_DIR"]) / job_id
    job_dir.mkdir(parents=True, exist_ok=True)

    input_path = job_dir / "input.svg"
    f.save(input_path)

    try:
        document = load_svg(input_path)
    except UnicodeDecodeError as e:
        raise InvalidSvgError("The chosen file is not a valid SVG: not UTF-8 text") from e

    _jobs[job_id] = {
        "dir": job_dir,
        "input_path": input_path,
        "filename": f.filename,
        "status": "uploaded",
    }

    return jsonify({
        "job_id": job_id,
        "filename": f.filename,
        "width": document.size.width,
        "height": document.size.height,
        "animated": document.is_animated,
    })


def _solver_from_request(data: dict) -> TimingSolver:
    texts = data.get("texts", {})
    driver = data.get("driver")
    frame_rate_driver = data.get("frame_rate_driver", "fps")
    return TimingSolver(
        start=texts.get("start", "0s"),
        duration=texts.get("duration", "1s"),
        end=texts.get("end"),
        lock=parse_lock(data.get("lock", "end")),
        fps=float(data.get("fps", DEFAULT_FPS)),
        total_frames=data.get("total_frames") if frame_rate_driver == "total_frames" else None,
        driver=TimingField(driver) if driver else None,
    )


@bp.route("/api/timing", methods=["POST"])
def timing():
    """Apply one edit to a posted timing state and return the settled state."""
    data = request.get_json() or {}
    try:
        solver = _solver_from_request(data.get("state", {}))
    except (TypeError, ValueError) as e:
        return jsonify({"error": str(e)}), 400

    edit = data.get("edit", {})
    name = edit.get("field")
    value = edit.get("value")
    finalize = bool(edit.get("finalize", False))

    if name in ("start", "duration", "end"):
        setter = getattr(solver, f"set_{name}")
        update = setter("" if value is None else str(value), finalize=finalize)
        if not update.ok:
            return jsonify({
                "error": "invalid value",
                "field": update.invalid_field.value,
                "hint": update.hint,
                "state": solver.as_dict(),
            }), 422
    elif name == "lock":
        try:
            solver.set_lock(parse_lock(str(value)))
        except ValueError as e:
            return jsonify({"error": str(e)}), 400
    elif name == "fps":
        solver.set_fps(value)
    elif name == "total_frames":
        solver.set_total_frames(value)
    elif name is not None:
        return jsonify({"error": f"Unknown field {name!r}"}), 400

    return jsonify({"state": solver.as_dict()})


@bp.route("/api/size", methods=["POST"])
def size():
    data = request.get_json() or {}
    try:
        sizer = SizeSolver(
            int(data.get("original_width", 1)),
            int(data.get("original_height", 1)),
            lock_aspect=bool(data.get("lock_aspect", True)),
        )
    except (TypeError, ValueError):
        return jsonify({"error": "original_width and original_height must be integers"}), 400

    sizer.width_text = str(data.get("width", sizer.width_text))
    sizer.height_text = str(data.get("height", sizer.height_text))

    edit = data.get("edit", {})
    finalize = bool(edit.get("finalize", False))
    if edit.get("field") == "width":
        inputs = sizer.set_width(str(edit.get("value", "")), finalize=finalize)
    elif edit.get("field") == "height":
        inputs = sizer.set_height(str(edit.get("value", "")), finalize=finalize)
    else:
        inputs = sizer.set_lock_aspect(sizer.lock_aspect)

    return jsonify({
        "width": inputs.width,
        "height": inputs.height,
        "size": {"width": inputs.size.width, "height": inputs.size.height},
    })


@bp.route("/api/jobs/<job_id>/export", methods=["POST"])
def start_export(job_id: str):
    if job_id not in _jobs:
        return jsonify({"error": "Job not found"}), 404

    job = _jobs[job_id]
    if job["status"] not in ("uploaded", "done", "error"):
        return jsonify({"error": f"Job is already {job['status']}"}), 409

    config = request.get_json() or {}
    ac = config.get("animation", {})

    try:
        animation = AnimationConfig(
            enabled=bool(ac.get("enabled", False)),
            start=str(ac.get("start", "0s")),
            duration=str(ac.get("duration", "1s")),
            end=ac.get("end"),
            lock=parse_lock(ac.get("lock", "end")).value,
            fps=float(ac.get("fps", DEFAULT_FPS)),
            total_frames=ac.get("total_frames"),
        )
    except (TypeError, ValueError) as e:
        return jsonify({"error": str(e)}), 400

    output_dir = job["dir"] / "output"
    manifest = ExportManifest(
        input=job["input_path"],
        output=output_dir,
        width=config.get("width"),
        height=config.get("height"),
        lock_aspect=config.get("lock_aspect", True),
        animation=animation,
    )

    progress_queue: queue.Queue = queue.Queue()
    job["progress_queue"] = progress_queue
    job["status"] = "processing"
    job["error"] = None

    def run():
        try:
            def on_progress(stage: str, frac: float):
                progress_queue.put({"stage": stage, "progress": round(frac, 3)})

            result = process(manifest, on_progress=on_progress)
            job["result"] = {
                "output_path": str(result.output_path),
                "filename": result.filename,
                "frame_count": result.frame_count,
                "byte_size": result.byte_size,
            }
            job["status"] = "done"
        except subprocess.CalledProcessError as e:
            job["status"] = "error"
            stderr = e.stderr if isinstance(e.stderr, str) else (e.stderr or b"").decode(errors="replace")
            job["error"] = f"ffmpeg failed: {stderr[-500:]}" if stderr else str(e)
        except Exception as e:
            logger.exception("Export job %s failed", job_id)
            job["status"] = "error"
            job["error"] = str(e)
        finally:
            progress_queue.put(None)  # sentinel

    threading.Thread(target=run, daemon=True).start()
    return jsonify({"status": "started"})


@bp.route("/api/jobs/<job_id>/progress")
def progress_stream(job_id: str):
    if job_id not in _jobs:
        return jsonify({"error": "Job not found"}), 404

    job = _jobs[job_id]
    q = job.get("progress_queue")

    if q is None:
        return jsonify({"error": "No export in progress"}), 409

    def generate():
        while True:
            try:
                msg = q.get(timeout=120)
            except queue.Empty:
                yield "data: {\"error\": \"timeout\"}\n\n"
                break
            if msg is None:
                if job["status"] == "error":
                    data = json.dumps({"error": job["error"]})
                else:
                    data = json.dumps({
                        "stage": "complete",
                        "progress": 1.0,
                        "result": job.get("result"),
                    })
                yield f"data: {data}\n\n"
                break
            yield f"data: {json.dumps(msg)}\n\n"

    return Response(generate(), mimetype="text/event-stream")


@bp.route("/api/jobs/<job_id>/result")
def download_result(job_id: str):
    if job_id not in _jobs:
        return jsonify({"error": "Job not found"}), 404

    job = _jobs[job_id]
    if job["status"] != "done":
        return jsonify({"error": "Job not complete"}), 409

    output_path = Path(job["result"]["output_path"])
    return send_file(output_path, as_attachment=True, download_name=job["result"]["filename"])


@bp.route("/api/jobs/<job_id>/status")
def job_status(job_id: str):
    if job_id not in _jobs:
        return jsonify({"error": "Job not found"}), 404

    job = _jobs[job_id]
    resp = {"status": job["status"], "filename": job.get("filename")}
    if job["status"] == "done":
        resp["result"] = job.get("result")
    if job["status"] == "error":
        resp["error"] = job.get("error")
    return jsonify(resp)
