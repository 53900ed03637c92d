"""
Flask query server over the playlist cache.

Routes:
    GET /playlists          summaries batch written by the last run
    GET /playlists/<id>     cached track items of one playlist
    GET /search?q=<text>    tracks whose title, album or artist contains text
"""

from pathlib import Path
from typing import Any

from flask import Flask, abort, jsonify, request
from werkzeug.exceptions import HTTPException

from spot_rotator.core.logger import get_logger
from spot_rotator.server.library import CachedLibrary

logger = get_logger(__name__)


def create_app(cache_dir: Path, library: CachedLibrary | None = None) -> Flask:
    app = Flask(__name__)
    library = library or CachedLibrary(cache_dir)

    @app.route("/playlists", methods=["GET"])
    def get_playlists() -> Any:
        summaries = library.summaries()
        if summaries is None:
            abort(404)
        return jsonify(summaries)

    @app.route("/playlists/<playlist_id>", methods=["GET"])
    def get_playlist(playlist_id: str) -> Any:
        tracks = library.playlist_tracks(playlist_id)
        if tracks is None:
            abort(404)
        return jsonify(tracks)

    @app.route("/search", methods=["GET"])
    def search() -> Any:
        query = request.args.get("q", "")
        if not query:
            return jsonify({"error": "Query parameter 'q' is required."}), 400
        return jsonify(library.search(query))

    @app.errorhandler(Exception)
    def handle_error(exc: Exception) -> Any:
        if isinstance(exc, HTTPException):
            return exc
        logger.error(f"{request.method} {request.path} failed: {exc}", exc_info=True)
        return jsonify({"error": "Internal server error."}), 500

    return app
