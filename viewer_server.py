#!/usr/bin/env python3
"""Local page server for the bookmarks viewer.

Routes:
- GET  /            interactive page with the current view
- GET  /result      current view fragment
- POST /api/load    raw bookmarks file as request body
- POST /api/resort  {"container": "item-N" | "id": "N", "sortby": "text|date|url|org"}
"""

import json
import logging
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Dict
from urllib.parse import urlparse

from bookmark_models import BookmarkParseError, SortCriterion
from bookmark_viewer import BookmarkViewer, folder_id_from_container

logger = logging.getLogger('bookmark_viewer')


class ApiError(Exception):
    def __init__(self, status: int, message: str):
        super().__init__(message)
        self.status = status
        self.message = message


def _send_bytes(handler: BaseHTTPRequestHandler, status: int, body: bytes, content_type: str):
    handler.send_response(status)
    handler.send_header("Content-Type", content_type)
    handler.send_header("Content-Length", str(len(body)))
    handler.end_headers()
    handler.wfile.write(body)


def _send_json(handler: BaseHTTPRequestHandler, status: int, payload: Dict[str, object]):
    body = (json.dumps(payload, ensure_ascii=False) + "\n").encode("utf-8")
    _send_bytes(handler, status, body, "application/json; charset=utf-8")


def _read_body(handler: BaseHTTPRequestHandler) -> bytes:
    length = int(handler.headers.get("Content-Length") or 0)
    return handler.rfile.read(length) if length > 0 else b""


def api_load(viewer: BookmarkViewer, body: bytes) -> Dict[str, object]:
    if not body:
        raise ApiError(400, "Please select a file before clicking 'Load'")
    try:
        markup = viewer.load_and_render(body)
    except BookmarkParseError as e:
        logger.error(f"Could not parse uploaded bookmarks: {e}")
        raise ApiError(400, str(e))
    return {"ok": True, "html": markup, "count": len(viewer.index)}


def api_resort(viewer: BookmarkViewer, body: bytes) -> Dict[str, object]:
    try:
        payload = json.loads(body.decode("utf-8") or "{}")
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ApiError(400, f"Invalid JSON body: {e}")
    if not isinstance(payload, dict):
        raise ApiError(400, "JSON body must be an object")

    folder_id = str(payload.get("id") or folder_id_from_container(str(payload.get("container") or "")))
    try:
        sort_by = SortCriterion.from_value(payload.get("sortby"))
    except ValueError as e:
        raise ApiError(400, str(e))

    markup = viewer.resort(folder_id, sort_by)
    return {"ok": True, "changed": markup is not None, "id": folder_id, "html": markup}


def make_handler(viewer: BookmarkViewer):
    class ViewerHandler(BaseHTTPRequestHandler):
        def do_GET(self):
            path = urlparse(self.path).path
            if path == "/":
                _send_bytes(self, HTTPStatus.OK, viewer.render_page(interactive=True).encode("utf-8"),
                            "text/html; charset=utf-8")
                return
            if path == "/result":
                _send_bytes(self, HTTPStatus.OK, viewer.output.html().encode("utf-8"),
                            "text/html; charset=utf-8")
                return
            _send_json(self, 404, {"ok": False, "error": "Not found"})

        def do_POST(self):
            path = urlparse(self.path).path
            routes = {"/api/load": api_load, "/api/resort": api_resort}
            action = routes.get(path)
            if action is None:
                _send_json(self, 404, {"ok": False, "error": "Unknown endpoint"})
                return
            try:
                _send_json(self, 200, action(viewer, _read_body(self)))
            except ApiError as exc:
                _send_json(self, exc.status, {"ok": False, "error": exc.message})
            except Exception as exc:
                logger.exception(f"Error handling {path}")
                _send_json(self, 500, {"ok": False, "error": str(exc)})

        def log_message(self, format: str, *args: object):
            logger.debug(format % args)

    return ViewerHandler


def serve(viewer: BookmarkViewer):
    """Serve the viewer until interrupted; requests are handled one at a time"""
    host, port = viewer.config.host, viewer.config.port
    with HTTPServer((host, port), make_handler(viewer)) as server:
        print(f"🌐 Serving bookmarks viewer at http://{host}:{port}")
        try:
            server.serve_forever()
        except KeyboardInterrupt:
            print("\nStopped.")
