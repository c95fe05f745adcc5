import pytest

from gallerysync.errors import ResolutionError
from gallerysync.responses import (
    UNTITLED_ALBUM,
    extract_gallery_id,
    extract_space_id,
    parse_share_page,
    parse_vendor_response,
)

SHARE_URL = "https://lightroom.adobe.com/shares/4f2a9c1e"
ALBUM_ID = "0123456789abcdef0123456789abcdef"


def test_parse_vendor_response_strips_prefix():
    assert parse_vendor_response('while (1) {}\n{"base": "x", "resources": []}') == {"base": "x", "resources": []}
    assert parse_vendor_response(b'while(1){}{"id": 1}') == {"id": 1}
    assert parse_vendor_response('{"plain": true}') == {"plain": True}


@pytest.mark.parametrize("raw", ["", "while (1) {}", "while (1) {}<html>nope</html>"])
def test_parse_vendor_response_rejects_unparsable(raw):
    with pytest.raises(ResolutionError):
        parse_vendor_response(raw)


def test_extract_ids():
    assert extract_space_id(SHARE_URL) == "4f2a9c1e"
    assert extract_gallery_id(SHARE_URL + "/?ref=mail") == "4f2a9c1e"
    assert extract_gallery_id("https://example.com/shares/4f2a9c1e") is None


def test_parse_share_page_prefers_album_attributes_and_name():
    page = (
        "<html><head><title>Ignored | Adobe Lightroom</title></head>"
        f'<script>window.SharesConfig = {{albumAttributes: {{"id":"{ALBUM_ID}"}}, '
        '"name":"Caf\\u00e9 Nights - May 2024"}</script></html>'
    )
    parsed = parse_share_page(page, SHARE_URL)

    assert parsed.space_id == "4f2a9c1e"
    assert parsed.album_id == ALBUM_ID
    assert parsed.title == "Café Nights - May 2024"


def test_parse_share_page_falls_back_to_title_and_assets_url():
    page = (
        "<html><head><title>Kyoto &amp; Nara | Adobe Lightroom</title></head>"
        f'<link href="/v2/spaces/4f2a9c1e/albums/{ALBUM_ID}/assets?limit=50"></html>'
    )
    parsed = parse_share_page(page, SHARE_URL)

    assert parsed.album_id == ALBUM_ID
    assert parsed.title == "Kyoto & Nara"


def test_parse_share_page_defaults():
    parsed = parse_share_page("<html></html>", SHARE_URL)
    assert parsed.album_id is None
    assert parsed.title == UNTITLED_ALBUM

    with pytest.raises(ResolutionError):
        parse_share_page("<html></html>", "https://lightroom.adobe.com/gallery")
