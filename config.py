"""
Vision Logger 設定ファイル
Configuration for the camera capture + Gemini description logger.

Everything here is a module constant. The API key is NOT configured here:
it is entered on the setup screen and only ever lives in process memory.
"""
import logging

# ── Flask 設定 ──
FLASK_HOST = "127.0.0.1"
FLASK_PORT = 5000
FLASK_DEBUG = False

# ── カメラ設定 ──
# OpenCV has no notion of facing mode, so the preference is mapped to a
# device index. If the preferred device can't be opened we fall back.
CAMERA_FACING = "environment"
CAMERA_INDEXES = {
    "environment": 1,
    "user": 0,
}
CAMERA_FALLBACK_INDEX = 0

# ── 画像設定 ──
JPEG_QUALITY = 80
PREVIEW_JPEG_QUALITY = 70
PREVIEW_FRAME_INTERVAL = 1 / 15  # seconds between MJPEG preview frames

# ── Gemini ──
GEMINI_MODEL = "gemini-2.5-flash-image"
ANALYSIS_PROMPT = (
    "Analyze this image in detail. Describe the objects, setting, and any "
    "text visible. Keep the response concise and structured."
)
NO_TEXT_PLACEHOLDER = "No analysis text returned."

# ── ユーザー向けメッセージ ──
ANALYSIS_ERROR_MESSAGE = (
    "Failed to analyze image. Please check your API key and try again."
)
CAMERA_ERROR_MESSAGE = "Unable to access camera. Please allow permissions."
CAMERA_LOST_MESSAGE = "Camera stream was interrupted."
CLEAR_CONFIRM_MESSAGE = (
    "Are you sure you want to clear all local logs? This cannot be undone."
)

# ── エクスポート ──
EXPORT_PREFIX = "gemini_logs"

# ── ログ設定 ──
LOG_LEVEL = logging.INFO
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
