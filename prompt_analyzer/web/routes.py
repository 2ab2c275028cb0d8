## routes.py
from __future__ import annotations

import io
from pathlib import Path

from flask import Blueprint, abort, current_app, jsonify, request, send_file

from prompt_analyzer.domain.errors import BatchParseError, InputRejectedError, PreconditionError
from prompt_analyzer.domain.models import SessionKind
from prompt_analyzer.repositories.export_repository import ExportRepository, export_filename
from prompt_analyzer.services.analytics import format_duration, progress, top_keywords
from prompt_analyzer.services.batch_parser import BATCH_TEMPLATE_CSV, BATCH_TEMPLATE_FILENAME
from prompt_analyzer.services.workspace import AnalysisWorkspace


def _field(name: str) -> str:
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        payload = {}
    value = payload.get(name)
    if value is None:
        value = request.form.get(name)
    if value is not None and not isinstance(value, str):
        raise InputRejectedError(f"'{name}' must be a string.")
    return (value or "").strip()


def _kind_arg(default: SessionKind = SessionKind.MANUAL) -> SessionKind:
    raw = (request.args.get("kind") or "").strip().lower()
    if not raw:
        return default
    try:
        return SessionKind(raw)
    except ValueError:
        raise InputRejectedError(f"Unknown session kind: '{raw}'.") from None


def _link_for(export_id: str, p: Path) -> str:
    return f"/download/{export_id}/{p.name}"


def create_blueprint(workspace: AnalysisWorkspace, export_repo: ExportRepository) -> Blueprint:
    bp = Blueprint("web", __name__)

    def session_view(kind: SessionKind) -> dict:
        session = workspace.session(kind)
        items = workspace.items(kind)
        return dict(
            running=workspace.is_running(kind),
            revision=workspace.revision(kind),
            session=session.to_dict() if session else None,
            progress=progress(items).to_dict(),
        )

    def analytics_view(kind: SessionKind) -> dict:
        analytics = workspace.analytics(kind)
        return dict(
            analytics=analytics.to_dict(),
            topKeywords=[r.to_dict() for r in top_keywords(analytics)],
            processingTimeLabel=format_duration(analytics.processing_time_ms),
        )

    @bp.errorhandler(InputRejectedError)
    @bp.errorhandler(BatchParseError)
    @bp.errorhandler(PreconditionError)
    def rejected(e):
        current_app.logger.info("Request rejected: %s", e)
        return jsonify(error=str(e)), 400

    # -----------------------------
    # Manual analysis
    # -----------------------------
    @bp.get("/")
    def index():
        prompts = workspace.prompts
        keywords = workspace.keywords
        return jsonify(
            prompts=prompts,
            keywords=keywords,
            maxPrompts=workspace.max_prompts,
            canStart=bool(prompts) and bool(keywords) and not workspace.is_running(SessionKind.MANUAL),
            **session_view(SessionKind.MANUAL),
            **analytics_view(SessionKind.MANUAL),
        )

    @bp.post("/prompts")
    def add_prompt():
        return jsonify(prompts=workspace.add_prompt(_field("prompt"))), 201

    @bp.delete("/prompts/<int:index>")
    def remove_prompt(index: int):
        return jsonify(prompts=workspace.remove_prompt(index))

    @bp.post("/keywords")
    def add_keyword():
        return jsonify(keywords=workspace.add_keyword(_field("keyword"))), 201

    @bp.delete("/keywords/<keyword>")
    def remove_keyword(keyword: str):
        return jsonify(keywords=workspace.remove_keyword(keyword))

    @bp.post("/run")
    def run_analysis():
        if workspace.is_running(SessionKind.MANUAL):
            return jsonify(error="An analysis is already running."), 409
        session_id = workspace.start_analysis()
        current_app.logger.info("Started analysis %s", session_id)
        return jsonify(sessionId=session_id), 202

    @bp.post("/reset")
    def reset():
        workspace.reset(SessionKind.MANUAL)
        return jsonify(**session_view(SessionKind.MANUAL))

    @bp.get("/analytics")
    def analytics():
        return jsonify(**analytics_view(_kind_arg()))

    # -----------------------------
    # Export / download
    # -----------------------------
    def export(kind: SessionKind):
        payload = workspace.export_payload(kind)
        session = workspace.session(kind)
        filename = export_filename(session, workspace.clock())
        record = export_repo.save(payload, filename)
        current_app.logger.info("Exported %s session to %s", kind.value, record.path)
        return jsonify(exportId=record.export_id, filename=record.path.name, download=_link_for(record.export_id, record.path)), 201

    @bp.post("/export")
    def export_results():
        return export(_kind_arg())

    @bp.get("/exports")
    def list_exports():
        files = export_repo.list_exports()
        return jsonify(exports=[dict(filename=p.name, download=_link_for(p.parent.name, p)) for p in files])

    @bp.get("/download/<export_id>/<filename>")
    def download(export_id: str, filename: str):
        export_dir = export_repo.find_export_dir(export_id)
        if not export_dir:
            abort(404)

        full = (export_dir / filename).resolve()
        if export_dir.resolve() not in full.parents:
            abort(403)
        if not full.exists() or not full.is_file():
            abort(404)

        return send_file(full, as_attachment=True, mimetype="application/json")

    # -----------------------------
    # Batch analysis
    # -----------------------------
    @bp.get("/batch")
    def batch_state():
        rows = workspace.batch_rows
        return jsonify(
            rows=[r.to_dict() for r in rows],
            error=workspace.batch_error,
            maxRows=workspace.batch_runner.max_rows,
            **session_view(SessionKind.BATCH),
            **analytics_view(SessionKind.BATCH),
        )

    @bp.post("/batch/upload")
    def batch_upload():
        upload = request.files.get("file")
        data = upload.read() if upload is not None else request.get_data()
        rows = workspace.load_batch(data)
        current_app.logger.info("Batch upload accepted: %d rows", len(rows))
        return jsonify(rows=[r.to_dict() for r in rows]), 201

    @bp.post("/batch/run")
    def batch_run():
        if workspace.is_running(SessionKind.BATCH):
            return jsonify(error="A batch is already running."), 409
        session_id = workspace.start_batch()
        current_app.logger.info("Started batch %s", session_id)
        return jsonify(sessionId=session_id), 202

    @bp.post("/batch/reset")
    def batch_reset():
        workspace.reset(SessionKind.BATCH)
        return jsonify(**session_view(SessionKind.BATCH))

    @bp.post("/batch/export")
    def batch_export():
        return export(SessionKind.BATCH)

    @bp.get("/batch/template")
    def batch_template():
        return send_file(
            io.BytesIO(BATCH_TEMPLATE_CSV.encode("utf-8")),
            mimetype="text/csv",
            as_attachment=True,
            download_name=BATCH_TEMPLATE_FILENAME,
        )

    return bp
