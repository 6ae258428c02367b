# app.py
import logging
import os

import requests
from flask import Flask, Response, jsonify, request
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

import plex
from errors import QuizBackendError, ValidationError
from leaderboard import read_leaderboard, submit_score


# --- Config ---
PORT = int(os.environ.get("PORT", "3000"))
PUBLIC_DIR = os.path.abspath(os.environ.get("PUBLIC_DIR", "public"))

STREAM_CHUNK_SIZE = 64 * 1024


app = Flask(__name__, static_folder=PUBLIC_DIR, static_url_path="")
CORS(app, send_wildcard=True)


# --- Errors ---

@app.errorhandler(QuizBackendError)
def handle_backend_error(e: QuizBackendError):
    if e.status_code >= 500:
        app.logger.error(f"{request.method} {request.path} failed: {e.message} ({e.details})")
    else:
        app.logger.info(f"{request.method} {request.path} rejected: {e.message}")
    return jsonify(e.to_dict()), e.status_code


@app.errorhandler(HTTPException)
def handle_http_error(e: HTTPException):
    return jsonify({"error": e.description}), e.code


@app.errorhandler(Exception)
def handle_unexpected_error(e: Exception):
    app.logger.exception(f"Unhandled error on {request.method} {request.path}")
    return jsonify({"error": "Internal server error", "details": str(e)}), 500


# --- Streaming ---

def proxy_response(upstream, default_content_type: str, accept_ranges: bool = False) -> Response:
    """
    Pass an open upstream response through to the client unchanged.

    The upstream connection is closed when the body is exhausted or when
    the client goes away, whichever comes first.
    """

    def generate():
        try:
            for chunk in upstream.iter_content(chunk_size=STREAM_CHUNK_SIZE):
                if chunk:
                    yield chunk
        except requests.RequestException as e:
            app.logger.warning(f"Upstream stream broke off: {e}")
        finally:
            upstream.close()

    headers = {}
    content_length = upstream.headers.get("Content-Length")
    # iter_content decodes gzip, so the upstream length only holds for identity bodies
    if content_length and not upstream.headers.get("Content-Encoding"):
        headers["Content-Length"] = content_length
    if accept_ranges:
        headers["Accept-Ranges"] = "bytes"

    resp = Response(
        generate(),
        status=200,
        headers=headers,
        content_type=upstream.headers.get("Content-Type") or default_content_type,
    )
    resp.call_on_close(upstream.close)
    return resp


# --- Routes ---

@app.get("/")
def index():
    return app.send_static_file("index.html")


@app.get("/api/health")
def health():
    return jsonify(
        {
            "status": "ok",
            "plexConfigured": plex.is_configured(),
            "plexUrl": plex.PLEX_URL,
        }
    )


@app.get("/api/plex/music")
def plex_music():
    tracks = plex.fetch_tracks()
    return jsonify({"tracks": tracks})


@app.get("/api/plex/audio/<path:audio_path>")
def plex_audio(audio_path):
    upstream = plex.open_audio_stream(audio_path)
    return proxy_response(upstream, "audio/mpeg", accept_ranges=True)


@app.get("/api/plex/thumb/<path:thumb_path>")
def plex_thumb(thumb_path):
    upstream = plex.open_thumb_stream(thumb_path)
    return proxy_response(upstream, "image/jpeg")


@app.get("/api/leaderboard")
def get_leaderboard():
    return jsonify([entry.to_dict() for entry in read_leaderboard()])


@app.post("/api/leaderboard")
def post_leaderboard():
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        raise ValidationError({"body": "Expected a JSON object."})

    top = submit_score(
        name=body.get("name"),
        score=body.get("score"),
        difficulty=body.get("difficulty"),
        timer=body.get("timer"),
        total_time=body.get("totalTime"),
    )
    return jsonify({"success": True, "leaderboard": [entry.to_dict() for entry in top]})


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    app.logger.info(f"Music quiz server running on port {PORT}")
    app.logger.info(f"Plex URL: {plex.PLEX_URL}")
    app.logger.info(f"Plex token: {'configured' if plex.is_configured() else 'not configured'}")
    app.run(host="0.0.0.0", port=PORT)
