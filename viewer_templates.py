"""
Viewer Templates and Configuration for Bookmark Rendering
"""

import os
import html
from typing import Optional
from dataclasses import dataclass

from dateutil import tz

# Load .env file
from dotenv import load_dotenv
load_dotenv()  # This will load .env from current directory or parent directories


def _env_int(name: str, default: int) -> int:
    value = os.environ.get(name, '').strip()
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"Invalid integer for {name}: {value!r}")


@dataclass
class ViewerConfig:
    """Configuration for rendering and serving bookmarks"""
    date_format: str = "%d.%m.%Y"  # numeric day.month.year, like the fr-CH profile
    timezone: Optional[str] = None  # None = host local zone
    title: str = "Chrome Bookmarks Viewer"
    host: str = "127.0.0.1"
    port: int = 8077
    log_dir: Optional[str] = None

    @classmethod
    def from_env(cls) -> 'ViewerConfig':
        """Create config from environment variables"""
        return cls(
            date_format=os.environ.get('BOOKMARK_VIEWER_DATE_FORMAT') or cls.date_format,
            timezone=os.environ.get('BOOKMARK_VIEWER_TIMEZONE') or None,
            title=os.environ.get('BOOKMARK_VIEWER_TITLE') or cls.title,
            host=os.environ.get('BOOKMARK_VIEWER_HOST') or cls.host,
            port=_env_int('BOOKMARK_VIEWER_PORT', cls.port),
            log_dir=os.environ.get('BOOKMARK_VIEWER_LOG_DIR') or None,
        )

    def tzinfo(self):
        """Resolve the configured zone, falling back to the host zone"""
        if self.timezone:
            zone = tz.gettz(self.timezone)
            if zone is None:
                raise ValueError(f"Unknown timezone: {self.timezone}")
            return zone
        return tz.tzlocal()


HIGHLIGHT_DURATION_MS = 1000

PAGE_STYLE = """
body { font-family: -apple-system, "Segoe UI", Arial, sans-serif; margin: 20px; }
#controls { margin-bottom: 16px; }
#result dl { margin: 2px 0 2px 0; }
#result dd { margin-left: 20px; }
#result dl.collapsed > dd { display: none; }
#result .title { font-weight: bold; cursor: pointer; margin-right: 6px; }
#result .sort-btn { display: inline-block; width: 1.2em; text-align: center; margin-left: 2px;
    font-size: 0.75em; border: 1px solid #ccc; border-radius: 3px; cursor: pointer; color: #777; }
#result .sort-btn.active { background: #ddeeff; border-color: #7aa7d6; color: #000; }
#result .date { color: #999; font-size: 0.8em; margin-left: 8px; }
#result .link { margin: 1px 0; }
@keyframes highlightFxAnim { from { background: #ffff99; } to { background: transparent; } }
.item-highlight { animation: highlightFxAnim %(duration)dms; }
"""

# Client-side adapter: file picking, collapse toggling and sort clicks.
PAGE_SCRIPT = """
(function () {
    "use strict";
    const result = document.getElementById("result");
    const timers = new WeakMap();

    function highlight(el) {
        if (timers.has(el)) {
            clearTimeout(timers.get(el));
            el.classList.remove("item-highlight");
        }
        el.classList.add("item-highlight");
        timers.set(el, setTimeout(function () {
            el.classList.remove("item-highlight");
            timers.delete(el);
        }, %(duration)d));
    }

    result.addEventListener("click", function (e) {
        const title = e.target.closest(".title");
        if (title) {
            title.closest("dl.folder").classList.toggle("collapsed");
            return;
        }
        const btn = e.target.closest(".sort-btn");
        if (!btn) return;
        const container = btn.closest("dl.folder");
        fetch("/api/resort", {
            method: "POST",
            headers: { "Content-Type": "application/json" },
            body: JSON.stringify({ container: container.id, sortby: btn.dataset.sortby })
        })
            .then(function (res) { return res.json(); })
            .then(function (data) {
                if (!data.ok) { alert(data.error); return; }
                if (!data.changed) return;
                container.insertAdjacentHTML("afterend", data.html);
                container.remove();
                highlight(document.getElementById(container.id));
            });
    });

    document.getElementById("btnLoad").addEventListener("click", function () {
        if ((typeof window.FileReader) !== "function") {
            alert("The file API isn't supported on this browser. Please use a more modern browser.");
            return;
        }
        const fileInput = document.getElementById("fileinput");
        if (!(fileInput && fileInput.files)) {
            alert("This browser doesn't seem to support the 'files' property of file inputs.");
            return;
        }
        if (!fileInput.files[0]) {
            alert("Please select a file before clicking 'Load'");
            return;
        }
        fetch("/api/load", { method: "POST", body: fileInput.files[0] })
            .then(function (res) { return res.json(); })
            .then(function (data) {
                if (!data.ok) { alert(data.error); return; }
                result.innerHTML = data.html;
            });
    });
})();
"""

PAGE_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<title>{title}</title>
<style>{style}</style>
</head>
<body>
<h1>{title}</h1>
{controls}
<div id="result">{content}</div>
{script}
</body>
</html>
"""

LOAD_CONTROLS = """<div id="controls">
<input type="file" id="fileinput" accept=".json,application/json,*">
<button type="button" id="btnLoad">Load</button>
</div>"""


def build_page(content: str, config: ViewerConfig, interactive: bool = False) -> str:
    """Wrap rendered bookmark markup into a complete HTML page"""
    params = {'duration': HIGHLIGHT_DURATION_MS}
    return PAGE_TEMPLATE.format(
        title=html.escape(config.title),
        style=PAGE_STYLE % params,
        controls=LOAD_CONTROLS if interactive else "",
        content=content,
        script=f"<script>{PAGE_SCRIPT % params}</script>" if interactive else "",
    )
