"""Tests for harvester.services.sections.extract_sections."""

from bs4 import BeautifulSoup

from harvester.services.sections import extract_sections


def _sections(html: str):
    return extract_sections(BeautifulSoup(html, "lxml"))


class TestExtractSections:
    def test_list_items_with_links(self):
        html = """
        <h2>Solutions</h2>
        <ul>
          <li><a href="/fleet">Fleet</a><p>Track vehicles</p></li>
          <li>Plain item</li>
        </ul>
        """
        sections = _sections(html)
        assert len(sections) == 1
        assert sections[0].title == "Solutions"
        first, second = sections[0].items
        assert first.name == "Fleet"
        assert first.link == "/fleet"
        assert first.description == "Track vehicles"
        assert second.name == "Plain item"
        assert second.link == ""
        assert second.description is None

    def test_stops_at_next_heading(self):
        html = """
        <h2>First</h2>
        <ul><li>A</li></ul>
        <h3>Second</h3>
        <ol><li>B</li><li>C</li></ol>
        """
        sections = _sections(html)
        assert [s.title for s in sections] == ["First", "Second"]
        assert [i.name for i in sections[0].items] == ["A"]
        assert [i.name for i in sections[1].items] == ["B", "C"]

    def test_heading_without_items_dropped(self):
        html = "<h2>Intro</h2><p>Just text</p><h2>Links</h2><ul><li>X</li></ul>"
        assert [s.title for s in _sections(html)] == ["Links"]

    def test_definition_list_pairs(self):
        html = """
        <h3>Specs</h3>
        <dl>
          <dt>Bands</dt><dd>LTE <a href="/lte">details</a></dd>
          <dt>Weight</dt>
          <dt>Ports</dt><dd>2x Ethernet</dd>
        </dl>
        """
        items = _sections(html)[0].items
        assert [i.name for i in items] == ["Bands", "Weight", "Ports"]
        assert items[0].description == "LTE details"
        assert items[0].link == "/lte"
        assert items[1].description is None
        assert items[2].description == "2x Ethernet"

    def test_intervening_content_is_scanned(self):
        html = "<h2>News</h2><p>lead</p><div>box</div><ul><li>Story</li></ul>"
        assert [i.name for i in _sections(html)[0].items] == ["Story"]

    def test_empty_document(self):
        assert _sections("<html><body></body></html>") == []
