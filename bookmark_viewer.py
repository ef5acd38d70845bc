#!/usr/bin/env python3
"""
Chrome Bookmarks Viewer
Renders a browser bookmarks file as nested lists whose folders can be re-sorted in place
by text, date or url.
"""

import os
import logging
import argparse
from datetime import datetime
from typing import List, Optional, Tuple

from bs4 import BeautifulSoup

from bookmark_models import (
    BookmarkDocument,
    BookmarkFolder,
    BookmarkParseError,
    SortCriterion,
    load_document,
)
from tree_renderer import RenderedIndex, TreeRenderer
from viewer_templates import ViewerConfig, build_page

logger = logging.getLogger('bookmark_viewer')

ITEM_ID_PREFIX = "item-"


def setup_viewer_logger(log_dir: Optional[str] = None, verbose: bool = False) -> logging.Logger:
    """Set up the shared viewer logger (console, plus a timestamped file when log_dir is set)"""
    logger.setLevel(logging.DEBUG)

    # Clear any existing handlers
    logger.handlers.clear()

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.DEBUG if verbose else logging.WARNING)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_filename = os.path.join(log_dir, f"{timestamp}.log")

        file_handler = logging.FileHandler(log_filename, encoding='utf-8')
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

        # Print to console so user knows where logs are
        print(f"📝 Detailed logging enabled: {log_filename}")

    # Don't propagate to root logger to avoid duplicate output
    logger.propagate = False

    return logger


def folder_id_from_container(container_id: str) -> str:
    """Extract N from an 'item-N' container id"""
    if container_id.startswith(ITEM_ID_PREFIX):
        return container_id[len(ITEM_ID_PREFIX):]
    return container_id


class LiveOutput:
    """The currently displayed markup, addressable by node id"""

    def __init__(self):
        self.soup = BeautifulSoup('<div id="result"></div>', 'html.parser')
        self.container = self.soup.find(id='result')

    def clear(self):
        self.container.clear()

    def fill(self, markup: str):
        self.clear()
        fragment = BeautifulSoup(markup, 'html.parser')
        for element in list(fragment.contents):
            self.container.append(element)

    def find_container(self, node_id: str):
        return self.container.find(id=f"{ITEM_ID_PREFIX}{node_id}")

    def replace_container(self, node_id: str, markup: str) -> bool:
        """Insert the new markup right after the old container, then drop the old one"""
        old = self.find_container(node_id)
        if old is None:
            return False

        fragment = BeautifulSoup(markup, 'html.parser')
        new = fragment.find(id=f"{ITEM_ID_PREFIX}{node_id}")
        if new is None:
            return False

        old.insert_after(new.extract())
        old.decompose()
        return True

    def html(self) -> str:
        return self.container.decode_contents()


class SortController:
    """Re-renders a single folder under a new ordering and splices it into the live output"""

    IDLE = "idle"
    RESORTING = "resorting"

    def __init__(self, renderer: TreeRenderer, index: RenderedIndex, output: LiveOutput):
        self.renderer = renderer
        self.index = index
        self.output = output
        self.state = self.IDLE

    def resort(self, folder_id: str, sort_by: SortCriterion) -> Optional[str]:
        """Returns the new folder markup, or None when nothing was changed"""
        folder = self.index.lookup(folder_id)
        if not isinstance(folder, BookmarkFolder):
            logger.warning(f"Could not find folder with id '{folder_id}'")
            return None

        self.state = self.RESORTING
        try:
            markup = self.renderer.render_folder(folder, sort_by, index_as_you_go=False)
            if not self.output.replace_container(folder_id, markup):
                logger.warning(f"Folder '{folder_id}' is indexed but not present in the output")
                return None
            self.index.register_subtree(folder)
            logger.info(f"Resorted folder '{folder_id}' by {sort_by.value}")
            return markup
        finally:
            self.state = self.IDLE

    def resort_from_affordance(self, container_id: str, sortby: Optional[str]) -> Optional[str]:
        """Handle a sort control activation coming from the page"""
        return self.resort(folder_id_from_container(container_id), SortCriterion.from_value(sortby))


class BookmarkViewer:
    def __init__(self, config: Optional[ViewerConfig] = None):
        self.config = config or ViewerConfig.from_env()
        self.document: Optional[BookmarkDocument] = None
        self.index = RenderedIndex()
        self.renderer = TreeRenderer(self.index, self.config)
        self.output = LiveOutput()
        self.controller = SortController(self.renderer, self.index, self.output)

    def load_and_render(self, file_bytes: bytes) -> str:
        """Parse a bookmarks file and render both roots, replacing any previous view"""
        # parse before clearing so a broken file keeps the previous view
        document = load_document(file_bytes)

        self.output.clear()
        self.index.clear()
        self.document = document

        markup = self.renderer.render(document.roots(), SortCriterion.ORIGINAL, index_as_you_go=True)
        self.output.fill(markup)

        logger.info(f"Rendered {len(document.roots())} roots, {len(self.index)} indexed items")
        return self.output.html()

    def load_file(self, bookmark_file: str) -> str:
        """Load bookmarks from Chrome/Edge bookmark file"""
        with open(bookmark_file, 'rb') as f:
            return self.load_and_render(f.read())

    def resort(self, folder_id: str, sort_by: SortCriterion) -> Optional[str]:
        return self.controller.resort(folder_id, sort_by)

    def render_page(self, interactive: bool = False) -> str:
        return build_page(self.output.html(), self.config, interactive=interactive)

    def save_page(self, output_file: str):
        """Save the current view as a standalone HTML page"""
        with open(output_file, 'w', encoding='utf-8') as f:
            f.write(self.render_page())


def parse_sort_arg(value: str) -> Tuple[str, SortCriterion]:
    """Parse an ID=CRITERION command-line value"""
    folder_id, sep, criterion = value.partition('=')
    if not sep or not folder_id:
        raise argparse.ArgumentTypeError(f"Expected ID=CRITERION, got '{value}'")
    try:
        return folder_id, SortCriterion.from_value(criterion)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e))


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Chrome Bookmarks Viewer")
    parser.add_argument("bookmark_file", help="Path to browser bookmark file")
    parser.add_argument("--output", "-o", help="Output HTML file (default: <bookmark_file>_viewer.html)")
    parser.add_argument("--sort", action="append", type=parse_sort_arg, default=[], metavar="ID=CRITERION",
                        help="Re-sort a folder after loading (criterion: text, date, url, org); repeatable")
    parser.add_argument("--serve", action="store_true", help="Serve an interactive page instead of writing a file")
    parser.add_argument("--host", help="Host to bind with --serve")
    parser.add_argument("--port", type=int, help="Port to bind with --serve")
    parser.add_argument("--date-format", help="strftime pattern for dates (default: %%d.%%m.%%Y)")
    parser.add_argument("--timezone", help="Time zone used to display dates (default: local)")
    parser.add_argument("--log-dir", help="Directory for detailed log files")
    parser.add_argument("--verbose", "-v", action="store_true", help="Show debug logging on the console")

    args = parser.parse_args(argv)

    try:
        config = ViewerConfig.from_env()
    except ValueError as e:
        print(f"Error: {e}")
        return 1

    if args.date_format:
        config.date_format = args.date_format
    if args.timezone:
        config.timezone = args.timezone
    if args.host:
        config.host = args.host
    if args.port:
        config.port = args.port
    if args.log_dir:
        config.log_dir = args.log_dir

    setup_viewer_logger(config.log_dir, args.verbose)

    if not os.path.exists(args.bookmark_file):
        print(f"Error: Bookmark file '{args.bookmark_file}' not found.")
        return 1

    try:
        viewer = BookmarkViewer(config)
    except ValueError as e:
        print(f"Error: {e}")
        return 1

    try:
        viewer.load_file(args.bookmark_file)
    except BookmarkParseError as e:
        logger.error(f"Could not parse {args.bookmark_file}: {e}")
        print(f"❌ {e}")
        return 1

    print(f"📚 Loaded {len(viewer.index)} bookmarks and folders from: {args.bookmark_file}")

    for folder_id, criterion in args.sort:
        if viewer.resort(folder_id, criterion) is not None:
            print(f"🔀 Folder {folder_id} sorted by {criterion.value}")

    if args.serve:
        from viewer_server import serve
        serve(viewer)
        return 0

    output_file = args.output
    if not output_file:
        base_name = os.path.splitext(args.bookmark_file)[0]
        output_file = f"{base_name}_viewer.html"

    viewer.save_page(output_file)
    print(f"✅ Page saved: {output_file}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
