"""
Vision Logger: メインアプリケーション
Flask front end for the camera capture + Gemini description logger.

Architecture: the camera is opened server-side with OpenCV and previewed in
the browser as an MJPEG stream. Captures, the API key and the log all
live in one AppSession for the lifetime of the process; nothing is
written to disk.
"""
import logging
import os
from datetime import datetime
from typing import Optional

from flask import (
    Blueprint, Flask, Response, current_app, flash, jsonify,
    redirect, render_template, request, url_for,
)

import config
from modules.camera import mjpeg_frames
from modules.credentials import KeyEntry
from modules.errors import describe_error
from modules.models import AppView
from modules.session import AppSession
from modules.storage import export_filename


bp = Blueprint("main", __name__)

VIEW_ENDPOINTS = {
    AppView.SETUP: "main.setup",
    AppView.CAPTURE: "main.capture_page",
    AppView.LOGS: "main.logs_page",
}


def create_app(session: Optional[AppSession] = None) -> Flask:
    app = Flask(__name__)
    # Per-run secret: flash messages don't need to survive a restart.
    app.secret_key = os.urandom(24)

    session = (session or AppSession()).open()
    app.extensions["vision_logger"] = session
    app.register_blueprint(bp)
    return app


def _session() -> AppSession:
    return current_app.extensions["vision_logger"]


def _goto(view: AppView):
    return redirect(url_for(VIEW_ENDPOINTS[view]))


@bp.before_request
def require_api_key():
    """No key yet: every screen but setup redirects to setup."""
    if request.endpoint == "main.setup":
        return None
    if not _session().credentials.is_set:
        return _goto(AppView.SETUP)
    return None


@bp.app_context_processor
def inject_header():
    session = current_app.extensions.get("vision_logger")
    return {"log_count": len(session.log) if session else 0}


@bp.app_template_filter("localtime")
def localtime_filter(timestamp: str) -> str:
    try:
        dt = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
    except ValueError:
        return timestamp
    return dt.astimezone().strftime("%c")


# ── ページルート ──

@bp.route("/")
def index():
    return _goto(_session().resolve_view(AppView.CAPTURE))


@bp.route("/setup", methods=["GET", "POST"])
def setup():
    """APIキー入力画面"""
    session = _session()
    view = session.resolve_view(AppView.SETUP)
    if view is not AppView.SETUP:
        return _goto(view)

    if request.method == "POST":
        entry = KeyEntry(request.form.get("api_key", ""))
        if entry.submit(session.credentials):
            # Redirect so the key is never rendered back into the form.
            return _goto(AppView.CAPTURE)
        flash("Please enter your Gemini API key.", "error")

    return render_template("setup.html", active_page="setup")


@bp.route("/capture", methods=["GET"])
def capture_page():
    """キャプチャ画面 (entering it starts the camera)"""
    session = _session()
    session.run(session.controller.start())
    controller = session.controller
    camera_error = controller.camera_error
    return render_template(
        "capture.html",
        active_page="capture",
        state=controller.state.value,
        can_capture=controller.can_capture,
        camera_error=describe_error(camera_error)[1] if camera_error else None,
    )


@bp.route("/logs")
def logs_page():
    """ログ画面 (leaving capture releases the camera)"""
    session = _session()
    session.run(session.controller.stop())
    return render_template(
        "logs.html",
        active_page="logs",
        records=session.log.records,
        confirm_message=config.CLEAR_CONFIRM_MESSAGE,
    )


# ── API エンドポイント ──

@bp.route("/capture", methods=["POST"])
def capture():
    """1フレームを撮影して Gemini で解析する"""
    session = _session()
    record, error = session.run(session.capture())
    if error is not None:
        category, message = describe_error(error)
        flash(message, category)
    elif record is not None:
        flash(f"Logged {record.short_id}", "success")
    return _goto(AppView.CAPTURE)


@bp.route("/capture/status")
def capture_status():
    session = _session()
    controller = session.controller
    error = controller.camera_error
    return jsonify({
        "state": controller.state.value,
        "can_capture": controller.can_capture,
        "error": error.message if error else None,
        "log_count": len(session.log),
    })


@bp.route("/video_feed")
def video_feed():
    """MJPEG ライブプレビュー"""
    camera = _session().controller.camera
    if camera is None:
        return "Camera is not streaming", 404
    return Response(
        mjpeg_frames(camera),
        mimetype="multipart/x-mixed-replace; boundary=frame",
    )


@bp.route("/export/json")
def export_json():
    return Response(
        _session().log.export_json(),
        mimetype="application/json",
        headers={
            "Content-Disposition": f"attachment; filename={export_filename('json')}",
        },
    )


@bp.route("/export/csv")
def export_csv():
    return Response(
        _session().log.export_csv(),
        mimetype="text/csv",
        headers={
            "Content-Disposition": f"attachment; filename={export_filename('csv')}",
        },
    )


@bp.route("/logs/clear", methods=["POST"])
def clear_logs():
    """ログを全削除する（確認必須）"""
    if request.form.get("confirm") != "yes":
        flash("Logs were not cleared.", "error")
        return _goto(AppView.LOGS)

    session = _session()
    session.run(session.clear_log())
    flash("All local logs cleared.", "success")
    return _goto(AppView.LOGS)


# ── 起動 ──

if __name__ == "__main__":
    logging.basicConfig(level=config.LOG_LEVEL, format=config.LOG_FORMAT)

    with AppSession() as session:
        app = create_app(session)

        print("=" * 50)
        print("  Vision Logger / Gemini 画像解析ログ")
        print("=" * 50)
        print(f"  サーバー: http://{config.FLASK_HOST}:{config.FLASK_PORT}")
        print(f"  モデル: {config.GEMINI_MODEL}")
        print("  ログはメモリ上のみ (終了時に消去されます)")
        print("=" * 50)

        app.run(
            host=config.FLASK_HOST,
            port=config.FLASK_PORT,
            debug=config.FLASK_DEBUG,
            threaded=True,
            use_reloader=False,
        )
