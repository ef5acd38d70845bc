import json
import logging
import sys
from pathlib import Path

import pytest

# Ensure the repo root is on sys.path for absolute imports.
REPO_ROOT = Path(__file__).resolve().parents[1]
repo_root_str = str(REPO_ROOT)
if repo_root_str not in sys.path:
    sys.path.insert(0, repo_root_str)

from viewer_templates import ViewerConfig


SAMPLE_BOOKMARKS = {
    "checksum": "0f3e",
    "version": 1,
    "roots": {
        "bookmark_bar": {
            "id": "1",
            "name": "Bookmarks bar",
            "type": "folder",
            "date_added": "13270256129000000",
            "date_modified": "13270256130000000",
            "children": [
                {"id": "2", "name": "beta", "type": "url", "url": "https://b.com",
                 "date_added": "13270256129000002"},
                {"id": "3", "name": "Alpha", "type": "url", "url": "https://a.com",
                 "date_added": "13270256129000001"},
                {
                    "id": "4",
                    "name": "News & <Stuff>",
                    "type": "folder",
                    "children": [
                        {"id": "5", "name": "Zeta", "type": "url", "url": "https://z.org"},
                        {"id": "6", "name": "eta", "type": "url", "url": "https://e.org"},
                    ],
                },
            ],
        },
        "other": {
            "id": "7",
            "name": "Other bookmarks",
            "type": "folder",
            "children": [
                {"id": "8", "name": "Docs", "type": "url", "url": "https://docs.python.org"},
            ],
        },
        "synced": {"id": "9", "name": "Mobile bookmarks", "type": "folder", "children": []},
    },
}


@pytest.fixture
def config():
    return ViewerConfig(date_format="%Y-%m-%d", timezone="UTC")


@pytest.fixture
def sample_bytes():
    return json.dumps(SAMPLE_BOOKMARKS).encode("utf-8")


@pytest.fixture
def sample_file(tmp_path, sample_bytes):
    path = tmp_path / "Bookmarks"
    path.write_bytes(sample_bytes)
    return path


@pytest.fixture
def sample_data():
    return json.loads(json.dumps(SAMPLE_BOOKMARKS))


@pytest.fixture(autouse=True)
def reset_viewer_logger():
    logger = logging.getLogger("bookmark_viewer")
    yield
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
