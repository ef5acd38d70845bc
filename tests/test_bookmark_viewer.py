import json
import logging

import pytest
from bs4 import BeautifulSoup

import bookmark_viewer as bv
from bookmark_models import BookmarkParseError, SortCriterion


@pytest.fixture
def viewer(config):
    return bv.BookmarkViewer(config)


def _child_ids(viewer, folder_id):
    container = viewer.output.find_container(folder_id)
    return [el["id"] for el in container.dd.find_all(id=True, recursive=False)]


def test_basic_load_scenario(viewer):
    data = {"roots": {"bookmark_bar": {"id": "1", "name": "Bar",
                                       "children": [{"id": "2", "name": "Site", "url": "http://x"}]}}}
    markup = viewer.load_and_render(json.dumps(data).encode("utf-8"))

    soup = BeautifulSoup(markup, "html.parser")
    folders = soup.find_all("dl")
    assert len(folders) == 1
    assert folders[0].find(class_="title").get_text() == "Bar"
    links = folders[0].find_all("a")
    assert [(a.get_text(), a["href"]) for a in links] == [("Site", "http://x")]
    assert sorted(viewer.index) == ["1", "2"]


def test_load_renders_both_roots_in_order(viewer, sample_bytes):
    viewer.load_and_render(sample_bytes)
    soup = BeautifulSoup(viewer.output.html(), "html.parser")
    top_level = [el["id"] for el in soup.find_all("dl", recursive=False)]
    assert top_level == ["item-1", "item-7"]
    # synced root is not rendered
    assert "9" not in viewer.index
    assert len(viewer.index) == 8


def test_load_replaces_previous_document(viewer, sample_bytes):
    viewer.load_and_render(sample_bytes)
    viewer.load_and_render(b'{"roots": {"other": {"id": "50", "name": "Only", "children": []}}}')
    assert list(viewer.index) == ["50"]
    assert viewer.output.find_container("1") is None
    assert viewer.output.find_container("50") is not None


def test_malformed_json_keeps_previous_view(viewer, sample_bytes):
    viewer.load_and_render(sample_bytes)
    before = viewer.output.html()
    with pytest.raises(BookmarkParseError):
        viewer.load_and_render(b"\x00not json")
    assert viewer.output.html() == before
    assert len(viewer.index) == 8


def test_malformed_json_renders_nothing(viewer):
    with pytest.raises(BookmarkParseError):
        viewer.load_and_render(b"{roots: ")
    assert viewer.output.html() == ""
    assert viewer.document is None


def test_resort_by_url_scenario(viewer):
    data = {"roots": {"bookmark_bar": {"id": "1", "name": "Bar", "children": [
        {"id": "2", "name": "B", "url": "b.com"},
        {"id": "3", "name": "A", "url": "a.com"},
    ]}}}
    viewer.load_and_render(json.dumps(data).encode("utf-8"))
    folder = viewer.index.lookup("1")

    markup = viewer.resort("1", SortCriterion.URL)

    assert markup is not None
    assert _child_ids(viewer, "1") == ["item-3", "item-2"]
    hrefs = [a["href"] for a in viewer.output.find_container("1").find_all("a")]
    assert hrefs == ["a.com", "b.com"]
    assert viewer.index.lookup("1") is folder
    assert viewer.index.lookup("2").url == "b.com"
    assert viewer.index.lookup("3").url == "a.com"
    assert viewer.controller.state == bv.SortController.IDLE
    # source order is untouched
    assert [c.id for c in folder.children] == ["2", "3"]


def test_resort_replaces_folder_in_place(viewer, sample_bytes):
    viewer.load_and_render(sample_bytes)
    viewer.resort("4", SortCriterion.TEXT)

    assert _child_ids(viewer, "1") == ["item-2", "item-3", "item-4"]
    assert _child_ids(viewer, "4") == ["item-6", "item-5"]
    assert len(viewer.output.container.find_all(id="item-4")) == 1
    active = viewer.output.find_container("4").select(".sort-btn.active")
    assert [b["data-sortby"] for b in active] == ["text"]


def test_resort_then_original_restores_order(viewer, sample_bytes):
    viewer.load_and_render(sample_bytes)
    original = viewer.output.html()
    viewer.resort("1", SortCriterion.TEXT)
    assert _child_ids(viewer, "1") == ["item-3", "item-2", "item-4"]
    viewer.resort("1", SortCriterion.ORIGINAL)
    assert viewer.output.html() == original


def test_resort_sorts_nested_folders_too(viewer, sample_bytes):
    viewer.load_and_render(sample_bytes)
    viewer.resort("1", SortCriterion.URL)
    # folder 4 has no url and sorts first; its links follow the same criterion
    assert _child_ids(viewer, "1") == ["item-4", "item-3", "item-2"]
    assert _child_ids(viewer, "4") == ["item-6", "item-5"]


def test_resort_unknown_id_is_a_logged_noop(viewer, sample_bytes, caplog):
    viewer.load_and_render(sample_bytes)
    before = viewer.output.html()
    with caplog.at_level(logging.WARNING, logger="bookmark_viewer"):
        assert viewer.resort("404", SortCriterion.TEXT) is None
    assert viewer.output.html() == before
    assert "Could not find folder with id '404'" in caplog.text
    assert viewer.controller.state == bv.SortController.IDLE


def test_resort_on_link_id_is_a_noop(viewer, sample_bytes):
    viewer.load_and_render(sample_bytes)
    before = viewer.output.html()
    assert viewer.resort("2", SortCriterion.TEXT) is None
    assert viewer.output.html() == before


def test_resort_from_affordance_resolves_container(viewer, sample_bytes):
    viewer.load_and_render(sample_bytes)
    assert viewer.controller.resort_from_affordance("item-7", "date") is not None
    active = viewer.output.find_container("7").select(".sort-btn.active")
    assert [b["data-sortby"] for b in active] == ["date"]


def test_folder_id_from_container():
    assert bv.folder_id_from_container("item-12") == "12"
    assert bv.folder_id_from_container("12") == "12"


def test_render_page_wraps_output(viewer, sample_bytes):
    viewer.load_and_render(sample_bytes)
    page = viewer.render_page()
    assert page.startswith("<!DOCTYPE html>")
    assert 'id="item-1"' in page
    assert "btnLoad" not in page
    assert "btnLoad" in viewer.render_page(interactive=True)


def test_parse_sort_arg():
    assert bv.parse_sort_arg("12=url") == ("12", SortCriterion.URL)
    with pytest.raises(Exception):
        bv.parse_sort_arg("12")
    with pytest.raises(Exception):
        bv.parse_sort_arg("12=size")


def test_main_writes_page(sample_file, tmp_path, monkeypatch):
    monkeypatch.setenv("BOOKMARK_VIEWER_TIMEZONE", "UTC")
    output = tmp_path / "out.html"
    code = bv.main([str(sample_file), "-o", str(output), "--sort", "4=text", "--date-format", "%Y/%m/%d"])

    assert code == 0
    soup = BeautifulSoup(output.read_text(encoding="utf-8"), "html.parser")
    inner = soup.find(id="item-4")
    assert [el["id"] for el in inner.dd.find_all(id=True, recursive=False)] == ["item-6", "item-5"]
    assert soup.find(id="item-1").dt.find(class_="date").get_text() == "2021/07/08"


def test_main_default_output_name(sample_file):
    assert bv.main([str(sample_file)]) == 0
    assert (sample_file.parent / "Bookmarks_viewer.html").exists()


def test_main_missing_file(tmp_path, capsys):
    assert bv.main([str(tmp_path / "nope")]) == 1
    assert "not found" in capsys.readouterr().out


def test_main_reports_parse_failure(tmp_path, capsys):
    bad = tmp_path / "Bookmarks"
    bad.write_text("not json", encoding="utf-8")
    output = tmp_path / "out.html"
    assert bv.main([str(bad), "-o", str(output)]) == 1
    assert "Invalid JSON" in capsys.readouterr().out
    assert not output.exists()


def test_setup_viewer_logger_writes_file(tmp_path):
    logger = bv.setup_viewer_logger(str(tmp_path / "logs"))
    logger.warning("hello log")
    for handler in logger.handlers:
        handler.flush()
    log_files = list((tmp_path / "logs").glob("*.log"))
    assert len(log_files) == 1
    assert "WARNING - hello log" in log_files[0].read_text(encoding="utf-8")
    assert logger.propagate is False


def test_main_rejects_unknown_timezone(sample_file, capsys):
    assert bv.main([str(sample_file), "--timezone", "Nowhere/Atlantis"]) == 1
    assert "Unknown timezone" in capsys.readouterr().out


def test_query_string_urls_survive_load_and_resort(viewer):
    url = "https://example.com/?a=1&region=us&notify=1&copy=2"
    data = {"roots": {"bookmark_bar": {"id": "1", "name": "Bar", "children": [
        {"id": "2", "name": "Query", "url": url},
        {"id": "3", "name": "Plain", "url": "https://a.com"},
    ]}}}
    markup = viewer.load_and_render(json.dumps(data).encode("utf-8"))
    assert BeautifulSoup(markup, "html.parser").find(id="item-2").a["href"] == url
    assert viewer.output.find_container("2").a["href"] == url

    viewer.resort("1", SortCriterion.TEXT)
    assert _child_ids(viewer, "1") == ["item-3", "item-2"]
    assert viewer.output.find_container("2").a["href"] == url

    page = BeautifulSoup(viewer.render_page(), "html.parser")
    assert page.find(id="item-2").a["href"] == url
