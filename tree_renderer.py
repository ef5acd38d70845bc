"""
Tree Rendering for Bookmark Folders and Links
"""

import html
import logging
from functools import cmp_to_key
from typing import Callable, Dict, Iterator, List, Optional, Sequence

from bookmark_models import (
    BookmarkFolder,
    BookmarkLink,
    BookmarkNode,
    SortCriterion,
    decode_timestamp,
    format_date,
)
from viewer_templates import ViewerConfig

logger = logging.getLogger('bookmark_viewer')

SORT_BUTTONS = [
    (SortCriterion.TEXT, "T", "Sort by text"),
    (SortCriterion.DATE, "D", "Sort by date"),
    (SortCriterion.URL, "U", "Sort by url"),
    (SortCriterion.ORIGINAL, "O", "Original sorting"),
]

# field projected by each sort mode
SORT_FIELDS: Dict[SortCriterion, Callable[[BookmarkNode], Optional[str]]] = {
    SortCriterion.TEXT: lambda node: node.name,
    SortCriterion.DATE: lambda node: node.date_added,
    SortCriterion.URL: lambda node: getattr(node, 'url', None),
}


def compare_strings(a: Optional[str], b: Optional[str]) -> int:
    """Null-safe comparison: None sorts before any string"""
    if a is None and b is None:
        return 0
    if a is None:
        return -1
    if b is None:
        return 1
    if a < b:
        return -1
    if a > b:
        return 1
    return 0


def html_encode(text: Optional[str]) -> str:
    """Escape every markup-significant character"""
    return html.escape(text or "", quote=True)


def sort_nodes(nodes: Sequence[BookmarkNode], sort_by: SortCriterion) -> List[BookmarkNode]:
    """Return a stably sorted copy of nodes; the input sequence is left untouched"""
    if sort_by is SortCriterion.ORIGINAL:
        return list(nodes)

    project = SORT_FIELDS[sort_by]
    return sorted(
        nodes,
        key=cmp_to_key(lambda a, b: compare_strings(
            (project(a) or "").lower(), (project(b) or "").lower())),
    )


class RenderedIndex:
    """Maps node id to the node object whose markup is currently live"""

    def __init__(self):
        self._items: Dict[str, BookmarkNode] = {}

    def register(self, node: BookmarkNode):
        if not node.id:
            return

        old = self._items.get(node.id)
        if old is not None and old is not node:
            logger.warning(f"An item with id '{node.id}' was already indexed: new item takes precedence")
        self._items[node.id] = node

    def register_subtree(self, node: BookmarkNode):
        """Post-order registration of node and everything below it"""
        if isinstance(node, BookmarkFolder):
            for child in node.children:
                self.register_subtree(child)
        self.register(node)

    def lookup(self, node_id: str) -> Optional[BookmarkNode]:
        return self._items.get(node_id)

    def clear(self):
        self._items.clear()

    def __contains__(self, node_id: str) -> bool:
        return node_id in self._items

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[str]:
        return iter(self._items)


class TreeRenderer:
    """Renders bookmark nodes into nested, id-addressable HTML"""

    def __init__(self, index: RenderedIndex, config: Optional[ViewerConfig] = None):
        self.index = index
        self.config = config or ViewerConfig()
        self._zone = self.config.tzinfo()

    def render(self, nodes: Sequence[BookmarkNode], sort_by: SortCriterion = SortCriterion.ORIGINAL,
               index_as_you_go: bool = False) -> str:
        """Render a sequence of sibling nodes"""
        out: List[str] = []
        self._render_items(out, nodes, sort_by, index_as_you_go)
        return "".join(out)

    def render_folder(self, folder: BookmarkFolder, sort_by: SortCriterion = SortCriterion.ORIGINAL,
                      index_as_you_go: bool = False) -> str:
        out: List[str] = []
        self._render_folder(out, folder, sort_by, index_as_you_go)
        return "".join(out)

    def render_link(self, link: BookmarkLink, index_as_you_go: bool = False) -> str:
        out: List[str] = []
        self._render_link(out, link, index_as_you_go)
        return "".join(out)

    def render_date(self, node: BookmarkNode) -> str:
        """Date span; empty when the node has no decodable date_added"""
        # date_modified is deliberately not shown
        date = decode_timestamp(node.date_added)
        text = format_date(date, self.config.date_format, self._zone) if date else ""
        return f'<span class="date">{html_encode(text)}</span>'

    def _render_items(self, out: List[str], nodes: Sequence[BookmarkNode], sort_by: SortCriterion,
                      index_as_you_go: bool):
        for node in sort_nodes(nodes, sort_by):
            if isinstance(node, BookmarkFolder):
                self._render_folder(out, node, sort_by, index_as_you_go)
            elif isinstance(node, BookmarkLink):
                self._render_link(out, node, index_as_you_go)

    def _render_folder(self, out: List[str], folder: BookmarkFolder, sort_by: SortCriterion,
                       index_as_you_go: bool):
        out.append(f'<dl id="item-{html_encode(folder.id)}" class="folder">')
        out.append(f'<dt><span class="title">{html_encode(folder.name)}</span>')
        for criterion, label, title in SORT_BUTTONS:
            active = " active" if criterion is sort_by else ""
            out.append(f'<span class="sort-btn{active}" data-sortby="{criterion.value}" title="{title}">{label}</span>')
        out.append(self.render_date(folder))
        out.append('</dt><dd>')

        self._render_items(out, folder.children, sort_by, index_as_you_go)

        out.append('</dd></dl>')

        if index_as_you_go:
            self.index.register(folder)

    def _render_link(self, out: List[str], link: BookmarkLink, index_as_you_go: bool):
        # url is not sanitized (the file is chosen by the local user), only attribute-escaped
        out.append(
            f'<div id="item-{html_encode(link.id)}" class="link">'
            f'<a href="{html_encode(link.url)}">{html_encode(link.name)}</a>{self.render_date(link)}</div>'
        )

        if index_as_you_go:
            self.index.register(link)
