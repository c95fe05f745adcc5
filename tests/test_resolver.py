import pytest

from gallerysync.context import RunContext
from gallerysync.errors import AuthenticationUnavailable, ResolutionError
from gallerysync.models import GalleryEntry, PrivateAsset, PublicAsset
from gallerysync.resolver import GalleryResolver, ResolvedGallery, should_sync
from helpers import json_response, make_response

SHARES = "https://lightroom.adobe.com/v2"
SHARE_URL = "https://lightroom.adobe.com/shares/space1"
ALBUM_HEX = "a" * 32


def share_page(title="Kyoto - October 2023", album_hex=ALBUM_HEX):
    return make_response(
        200,
        f"<html><head><title>{title} | Adobe Lightroom</title></head>"
        f'<script>albumAttributes: {{"id":"{album_hex}"}}</script></html>',
    )


def asset_detail(asset_id):
    return json_response(
        {
            "id": asset_id,
            "links": {"/rels/rendition_type/2048": {"href": f"renditions/{asset_id}/2048"}},
            "payload": {"captureDate": "2023-10-14T09:12:00"},
        }
    )


def test_public_gallery(session):
    session.add("GET", SHARE_URL, share_page())
    session.add(
        "GET",
        f"{SHARES}/spaces/space1/albums/{ALBUM_HEX}/assets",
        json_response({"base": "https://photos.adobe.io/v2/spaces/space1/", "resources": [
            {"asset": {"id": "p2"}}, {"asset": {"id": "p1"}}, {"id": "p3"},
        ]}),
    )
    session.add("GET", f"{SHARES}/spaces/space1/assets/p1", asset_detail("p1"))
    session.add("GET", f"{SHARES}/spaces/space1/assets/p2", asset_detail("p2"))
    # p3 detail is missing: only that asset is dropped

    gallery = GalleryResolver(session).resolve(GalleryEntry(url=SHARE_URL), RunContext(session=session))

    assert gallery.album_id == "space1"
    assert gallery.title == "Kyoto - October 2023"
    assert gallery.gallery_url == SHARE_URL
    assert gallery.mode == "public"
    assert [a.id for a in gallery.assets] == ["p2", "p1"]
    assert all(isinstance(a, PublicAsset) for a in gallery.assets)
    assert gallery.assets[0].url == "https://photos.adobe.io/v2/spaces/space1/renditions/p2/2048"
    assert gallery.skipped == [("p3", "asset detail unavailable")]

    listing_call = [kw for m, url, kw in session.calls if url.endswith("/assets")][0]
    assert listing_call["params"] == {"subtype": "image", "limit": 1000}
    assert listing_call["headers"]["x-api-key"] == "LightroomMobileWeb1"


def test_album_listing_falls_back_to_space(session):
    session.add("GET", SHARE_URL, share_page())
    session.add("GET", f"{SHARES}/spaces/space1/albums/{ALBUM_HEX}/assets", make_response(403, "forbidden"))
    session.add("GET", f"{SHARES}/spaces/space1/assets", json_response({"resources": [{"id": "p1"}]}))
    session.add("GET", f"{SHARES}/spaces/space1/assets/p1", asset_detail("p1"))

    gallery = GalleryResolver(session).resolve(GalleryEntry(url=SHARE_URL), RunContext(session=session))

    assert [a.id for a in gallery.assets] == ["p1"]
    # default rendition base when the listing has none
    assert gallery.assets[0].url.startswith("https://photos.adobe.io/v2/spaces/space1/")


def test_unreachable_share_page(session):
    session.add("GET", SHARE_URL, make_response(404, "gone"))
    with pytest.raises(ResolutionError):
        GalleryResolver(session).resolve(GalleryEntry(url=SHARE_URL), RunContext(session=session))


def test_private_gallery_requires_credentials(session):
    entry = GalleryEntry(album_id="alb1", album_name="Harbour", type="private")
    with pytest.raises(AuthenticationUnavailable):
        GalleryResolver(session).resolve(entry, RunContext(session=session))
    assert session.calls == []


def test_private_gallery(session):
    headers = {"X-API-Key": "client", "authorization": "Bearer t"}
    session.add("GET", "https://lr.adobe.io/v2/catalog", json_response({"id": "cat1"}))
    session.add(
        "GET",
        "https://lr.adobe.io/v2/catalogs/cat1/albums/alb1/assets",
        json_response({
            "resources": [{"id": "rel1", "asset": {"id": "x1", "payload": {}}}],
            "links": {"next": {"href": "albums/alb1/assets?page=2"}},
            "base": "https://lr.adobe.io/v2/catalogs/cat1/",
        }),
    )
    session.add(
        "GET",
        "https://lr.adobe.io/v2/catalogs/cat1/albums/alb1/assets?page=2",
        json_response({"resources": [{"asset": {"id": "x2"}}, {"nothing": True}]}),
    )
    context = RunContext(session=session, auth_headers=headers)
    entry = GalleryEntry(album_id="alb1", album_name="Harbour - May 2022", type="private")

    gallery = GalleryResolver(session).resolve(entry, context)

    assert context.catalog_id == "cat1"
    assert gallery.album_id == "alb1"
    assert gallery.gallery_url == "private:alb1"
    assert gallery.title == "Harbour - May 2022"
    assert [a.id for a in gallery.assets] == ["x1", "x2"]
    assert all(isinstance(a, PrivateAsset) for a in gallery.assets)
    assert gallery.skipped == [("?", "malformed asset")]


@pytest.mark.parametrize(
    "tag, title, description, entry_tag, expected",
    [
        ("", "Anything", None, None, True),
        ("japan", "Kyoto - October 2023", None, None, False),
        ("japan", "JAPAN trip", None, None, True),
        ("japan", "Kyoto", "Photos from Japan", None, True),
        ("japan", "Kyoto", None, "japan-2023", True),
    ],
)
def test_should_sync(tag, title, description, entry_tag, expected):
    gallery = ResolvedGallery(album_id="x", title=title, gallery_url="u", mode="public", description=description)
    assert should_sync(gallery, GalleryEntry(url="u", tag=entry_tag), tag) is expected


def test_tag_miss_stops_before_listing_assets(session):
    session.add("GET", SHARE_URL, share_page())
    session.add("GET", f"{SHARES}/spaces/space1/albums/{ALBUM_HEX}/assets", json_response({"resources": [{"id": "p1"}]}))
    session.add("GET", f"{SHARES}/spaces/space1/assets/p1", asset_detail("p1"))

    gallery = GalleryResolver(session).resolve(GalleryEntry(url=SHARE_URL), RunContext(session=session), "portfolio")

    assert gallery.filtered
    assert gallery.assets == []
    assert session.urls() == [SHARE_URL]
    assert not should_sync(gallery, GalleryEntry(url=SHARE_URL), "portfolio")


def test_private_tag_miss_needs_no_network_or_credentials(session):
    entry = GalleryEntry(album_id="alb1", album_name="Harbour - May 2022", type="private")

    gallery = GalleryResolver(session).resolve(entry, RunContext(session=session), "portfolio")

    assert gallery.filtered
    assert session.calls == []

    matching = GalleryEntry(album_id="alb1", album_name="Harbour", type="private", tag="portfolio")
    with pytest.raises(AuthenticationUnavailable):
        GalleryResolver(session).resolve(matching, RunContext(session=session), "portfolio")
