from bs4 import BeautifulSoup

from extraction import is_card_image
from sections import SectionLocator, classify_headings, normalize_heading_text


def _headings(html):
    return BeautifulSoup(html, "lxml").select("h2, h3")


def test_normalize_strips_quotes_and_whitespace():
    assert normalize_heading_text("  “エール”  Deck ") == "エール deck"
    assert normalize_heading_text('"Main"\nDeck') == "main deck"


def test_classify_japanese_headings():
    matches = classify_headings(_headings("<h3>推しホロメン</h3><h3>メインデッキ</h3><h3>エールデッキ</h3>"))
    assert matches["oshi"].get_text() == "推しホロメン"
    assert matches["main"].get_text() == "メインデッキ"
    assert matches["energy"].get_text() == "エールデッキ"


def test_classify_english_headings_with_quotes():
    matches = classify_headings(_headings("<h2>Oshi Holomem</h2><h2>Main Deck</h2><h2>“Cheer” Deck</h2>"))
    assert matches["oshi"] is not None
    assert matches["main"] is not None
    assert matches["energy"].get_text() == "“Cheer” Deck"


def test_sections_are_matched_independently():
    matches = classify_headings(_headings("<h3>Main Deck</h3><h3>Notes</h3>"))
    assert matches["main"] is not None
    assert matches["oshi"] is None
    assert matches["energy"] is None


def test_first_heading_in_document_order_wins():
    matches = classify_headings(_headings("<h3 id='a'>メイン</h3><h3 id='b'>メインデッキ</h3>"))
    assert matches["main"]["id"] == "a"


def test_no_headings_match():
    matches = classify_headings(_headings("<h3>Section A</h3><h3>Section B</h3>"))
    assert matches == {"oshi": None, "main": None, "energy": None}


def test_locator_prefers_next_sibling():
    soup = BeautifulSoup(
        """
        <div>
          <h3>推しホロメン</h3>
          <div id="near"><img src="/cardlist/hSD01/hSD01-001_OSR.png"></div>
          <img src="/cardlist/hBP01/hBP01-010.png">
        </div>
        """,
        "lxml",
    )
    locator = SectionLocator(is_card_image)
    heading = locator.locate(soup)["oshi"]
    sources = [image["src"] for image in locator.candidate_images(heading)]
    assert sources == ["/cardlist/hSD01/hSD01-001_OSR.png"]


def test_locator_falls_back_to_parent_sibling():
    soup = BeautifulSoup(
        """
        <div class="header"><h3>エールデッキ</h3></div>
        <div class="cards"><img data-src="/cardlist/hY01/hY01-001_C.png" src="/loading.gif"></div>
        """,
        "lxml",
    )
    locator = SectionLocator(is_card_image)
    heading = locator.locate(soup)["energy"]
    neighbourhoods = list(locator.neighbourhoods(heading))
    assert [n.get("class") for n in neighbourhoods] == [["header"], ["cards"]]
    images = list(locator.candidate_images(heading))
    assert len(images) == 1


def test_locator_yields_nothing_without_card_images():
    soup = BeautifulSoup("<section><h3>メインデッキ</h3><p>empty</p></section>", "lxml")
    locator = SectionLocator(is_card_image)
    assert list(locator.candidate_images(locator.locate(soup)["main"])) == []


def test_locator_stops_at_the_next_section_heading():
    soup = BeautifulSoup(
        """
        <main>
          <h3>推しホロメン</h3><p>1枚</p>
          <h3>メインデッキ</h3><p>50枚</p>
          <div><img src="/cardlist/hBP01/hBP01-010.png"></div>
        </main>
        """,
        "lxml",
    )
    locator = SectionLocator(is_card_image)
    located = locator.locate(soup)
    boundaries = [heading for heading in located.values() if heading is not None]
    assert [n.name for n in locator.neighbourhoods(located["oshi"], boundaries)] == ["p"]
    assert list(locator.candidate_images(located["oshi"], boundaries)) == []
    assert len(list(locator.candidate_images(located["main"], boundaries))) == 1
