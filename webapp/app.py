from __future__ import annotations

from pathlib import Path

from flask import Flask, jsonify, make_response, request

from contigpath.errors import SequenceFetchError
from contigpath.mpl_backend import configure_headless_matplotlib
from contigpath.params import ExplorerParams, to_float, to_int
from contigpath.session import (
    enter_at,
    enter_contig,
    export_paths_text,
    export_view,
    get_session,
    go_back,
    go_global,
    import_paths_text,
    prepare_session,
    render_view,
    resume_path,
    select_at,
    sequence_at,
    toggle_orientation,
)

configure_headless_matplotlib()

app = Flask(__name__)


def _error(exc: Exception):
    if isinstance(exc, LookupError):
        return jsonify({"error": exc.args[0] if exc.args else str(exc)}), 404
    if isinstance(exc, SequenceFetchError):
        cause = exc.__cause__
        message = f"{exc}: {cause}" if cause is not None else str(exc)
        return jsonify({"error": message}), 500
    return jsonify({"error": str(exc)}), 400


def _payload() -> dict:
    return request.get_json(silent=True) or {}


def _session_from(payload: dict):
    token = str(payload.get("token", "")).strip()
    if not token:
        raise ValueError("token is required")
    return get_session(token)


@app.post("/api/load")
def api_load():
    payload = _payload()
    required = ("fasta_path", "alignment_path", "telomere_path")
    for name in required:
        if not str(payload.get(name, "")).strip():
            return jsonify({"error": f"{name} is required"}), 400

    fai_text = str(payload.get("fai_path", "")).strip()
    try:
        session = prepare_session(
            fasta_path=Path(str(payload["fasta_path"]).strip()),
            alignment_path=Path(str(payload["alignment_path"]).strip()),
            telomere_path=Path(str(payload["telomere_path"]).strip()),
            fai_path=Path(fai_text) if fai_text else None,
            params=ExplorerParams.from_payload(payload.get("params", {})),
        )
        view = render_view(session)
    except Exception as exc:
        return _error(exc)

    report = session.dataset.load_report
    view["load_report"] = {
        "parsed": report.parsed,
        "skipped_malformed": report.skipped_malformed,
        "skipped_short": report.skipped_short,
        "skipped_unknown_contig": report.skipped_unknown_contig,
    }
    view["contigs"] = len(session.dataset.registry)
    return jsonify(view)


@app.get("/api/view/<token>")
def api_view(token: str):
    try:
        return jsonify(render_view(get_session(token)))
    except Exception as exc:
        return _error(exc)


@app.post("/api/navigate/enter")
def api_navigate_enter():
    payload = _payload()
    contig_name = str(payload.get("contig", "")).strip()
    y = payload.get("y")
    if not contig_name and y is None:
        return jsonify({"error": "contig or y is required"}), 400

    try:
        session = _session_from(payload)
        if contig_name:
            state = enter_contig(session, contig_name)
        else:
            state = enter_at(session, to_float(y, name="y"))
    except Exception as exc:
        return _error(exc)
    return jsonify(state)


@app.post("/api/navigate/select")
def api_navigate_select():
    payload = _payload()
    if payload.get("x") is None:
        return jsonify({"error": "x is required"}), 400
    if payload.get("y") is None:
        return jsonify({"error": "y is required"}), 400

    try:
        session = _session_from(payload)
        state = select_at(session, to_float(payload["x"], name="x"), to_float(payload["y"], name="y"))
    except Exception as exc:
        return _error(exc)
    return jsonify(state)


@app.post("/api/navigate/back")
def api_navigate_back():
    try:
        return jsonify(go_back(_session_from(_payload())))
    except Exception as exc:
        return _error(exc)


@app.post("/api/navigate/global")
def api_navigate_global():
    try:
        return jsonify(go_global(_session_from(_payload())))
    except Exception as exc:
        return _error(exc)


@app.post("/api/navigate/resume")
def api_navigate_resume():
    payload = _payload()
    if payload.get("index") is None:
        return jsonify({"error": "index is required"}), 400
    try:
        session = _session_from(payload)
        state = resume_path(session, to_int(payload["index"], name="index"))
    except Exception as exc:
        return _error(exc)
    return jsonify(state)


@app.post("/api/orientation/toggle")
def api_orientation_toggle():
    try:
        return jsonify(toggle_orientation(_session_from(_payload())))
    except Exception as exc:
        return _error(exc)


@app.get("/api/paths/<token>/export")
def api_paths_export(token: str):
    try:
        text = export_paths_text(get_session(token))
    except Exception as exc:
        return _error(exc)
    if not text:
        return jsonify({"error": "No paths to export."}), 400

    response = make_response(text)
    response.headers["Content-Type"] = "text/plain; charset=utf-8"
    response.headers["Content-Disposition"] = "attachment; filename=exported_paths.txt"
    return response


@app.post("/api/paths/import")
def api_paths_import():
    payload = _payload()
    text = payload.get("text")
    if not isinstance(text, str) or not text.strip():
        return jsonify({"error": "text is required"}), 400
    try:
        state = import_paths_text(_session_from(payload), text)
    except Exception as exc:
        return _error(exc)
    return jsonify(state)


@app.post("/api/sequence")
def api_sequence():
    payload = _payload()
    if payload.get("x") is None:
        return jsonify({"error": "x is required"}), 400
    if payload.get("y") is None:
        return jsonify({"error": "y is required"}), 400

    try:
        session = _session_from(payload)
        pair = sequence_at(session, to_float(payload["x"], name="x"), to_float(payload["y"], name="y"))
    except Exception as exc:
        return _error(exc)
    return jsonify(pair.to_payload(session.params.sequence_wrap))


@app.post("/api/export")
def api_export():
    payload = _payload()
    fmt = str(payload.get("format", "svg")).strip().lower()
    try:
        blob = export_view(_session_from(payload), fmt)
    except Exception as exc:
        return _error(exc)

    mime = "image/svg+xml" if fmt == "svg" else "image/png"
    response = make_response(blob)
    response.headers["Content-Type"] = mime
    response.headers["Content-Disposition"] = f"attachment; filename=contig_view.{fmt}"
    return response


if __name__ == "__main__":
    app.run(host="127.0.0.1", port=5000, debug=True, threaded=False)
