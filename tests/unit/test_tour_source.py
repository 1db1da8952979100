"""Unit tests for the Turai tour source"""

import asyncio

import pytest

from tour_video.providers.tour import TourSnapshot, TourSourceError, TuraiTourSource
from tests.mocks import FakeResponse, make_slideshow_payload

BASE = "https://turai.org"


@pytest.fixture
def source(fake_session):
    return TuraiTourSource(BASE, api_key="turai-secret-key", session=fake_session)


class TestCreateTour:

    @pytest.mark.asyncio
    async def test_returns_share_code(self, source, fake_session):
        fake_session.add("POST", f"{BASE}/api/tour-maker/wizard/generate", FakeResponse(
            json_data={"success": True, "data": {"shareCode": "xyz789"}},
        ))

        code = await source.create_tour("Lisbon", topic="street art")

        assert code == "xyz789"
        _, _, kwargs = fake_session.calls[0]
        assert kwargs["json"] == {
            "location": "Lisbon",
            "theme": "hidden_gems",
            "focus": "street art",
            "email": "vibepost@turai.app",
        }
        assert kwargs["headers"]["X-API-Key"] == "turai-secret-key"

    @pytest.mark.asyncio
    async def test_top_level_share_code(self, source, fake_session):
        fake_session.add("POST", f"{BASE}/api/tour-maker/wizard/generate", FakeResponse(
            json_data={"shareCode": "top"},
        ))
        assert await source.create_tour("Lisbon", theme="food") == "top"

    @pytest.mark.asyncio
    async def test_http_error(self, source, fake_session):
        fake_session.add("POST", f"{BASE}/api/tour-maker/wizard/generate", FakeResponse(
            status=500, body=b"internal error",
        ))
        with pytest.raises(TourSourceError, match="500"):
            await source.create_tour("Lisbon")

    @pytest.mark.asyncio
    async def test_missing_share_code(self, source, fake_session):
        fake_session.add("POST", f"{BASE}/api/tour-maker/wizard/generate", FakeResponse(
            json_data={"success": True, "data": {}},
        ))
        with pytest.raises(TourSourceError, match="No share code"):
            await source.create_tour("Lisbon")

    def test_repr_masks_key(self, source):
        assert "turai-secret-key" not in repr(source)


class TestFetchSnapshot:

    @pytest.mark.asyncio
    async def test_parses_slideshow(self, source, fake_session):
        payload = make_slideshow_payload(
            pois=[{"name": "Belem Tower"}, {"name": "LX Factory"}],
            narrations=[{"poiIndex": 0, "narrationText": "A fortress.", "audioUrl": "/a/0.mp3"}],
            destination="Lisbon",
        )
        fake_session.add("GET", f"{BASE}/api/slideshows/xyz789", FakeResponse(json_data=payload))

        snapshot = await source.fetch_snapshot("xyz789")

        assert snapshot.poi_count == 2
        assert snapshot.narration_count == 1
        assert snapshot.destination == "Lisbon"
        assert snapshot.ready is False
        assert snapshot.stops[0].narration_text == "A fortress."
        assert snapshot.stops[0].audio_url == f"{BASE}/a/0.mp3"
        assert snapshot.stops[1].audio_url is None

    @pytest.mark.asyncio
    async def test_http_error(self, source, fake_session):
        fake_session.add("GET", f"{BASE}/api/slideshows/xyz789", FakeResponse(status=404))
        with pytest.raises(TourSourceError, match="404"):
            await source.fetch_snapshot("xyz789")

    @pytest.mark.asyncio
    async def test_invalid_json(self, source, fake_session):
        fake_session.add("GET", f"{BASE}/api/slideshows/xyz789", FakeResponse(body=b"<html>"))
        with pytest.raises(TourSourceError, match="invalid JSON"):
            await source.fetch_snapshot("xyz789")

    @pytest.mark.asyncio
    async def test_timeout(self, source, fake_session):
        fake_session.add("GET", f"{BASE}/api/slideshows/xyz789", asyncio.TimeoutError())
        with pytest.raises(TourSourceError):
            await source.fetch_snapshot("xyz789")


class TestParseSnapshot:

    def test_narrations_matched_by_index_then_stop_number(self, source):
        payload = make_slideshow_payload(
            pois=[{"name": "A"}, {"name": "B"}, {"name": "C"}],
            narrations=[
                {"stopNumber": 3, "text": "third"},
                {"poiIndex": 0, "narrationText": "first"},
                {"narrationText": "leftover"},
            ],
            envelope=False,
        )

        snapshot = source.parse_snapshot("xyz", payload)

        assert [s.narration_text for s in snapshot.stops] == ["first", "leftover", "third"]
        assert [s.index for s in snapshot.stops] == [0, 1, 2]
        assert snapshot.ready is True

    def test_image_urls_collected_deduped_and_capped(self, fake_session):
        source = TuraiTourSource(BASE, session=fake_session, max_images_per_stop=4)
        payload = make_slideshow_payload(
            pois=[{
                "name": "A",
                "heroImageUrl": "/img/hero.jpg",
                "photoUrls": ["https://cdn.x/1.jpg", "/img/hero.jpg"],
                "photos": [{"url": "https://cdn.x/2.jpg"}, "https://cdn.x/3.jpg", {"caption": "no url"}],
            }],
            narrations=[{"poiIndex": 0, "photoUrls": ["https://cdn.x/n.jpg"], "thumbnailUrl": "/t.jpg"}],
        )

        urls = source.parse_snapshot("xyz", payload).stops[0].image_urls

        assert urls == [
            f"{BASE}/img/hero.jpg",
            "https://cdn.x/n.jpg",
            "https://cdn.x/1.jpg",
            "https://cdn.x/2.jpg",
        ]

    def test_description_fallback(self, source):
        payload = make_slideshow_payload(pois=[{"description": "Old market"}], narrations=[])

        stop = source.parse_snapshot("xyz", payload).stops[0]

        assert stop.name == "Stop 1"
        assert stop.description == "Old market"
        assert stop.narration_text is None

    def test_empty_payload(self, source):
        snapshot = source.parse_snapshot("xyz", None)
        assert isinstance(snapshot, TourSnapshot)
        assert snapshot.stops == []
        assert snapshot.ready is False

    @pytest.mark.parametrize("tour", ["Lisbon", ["not", "a", "dict"], 42])
    def test_non_object_tour_is_empty(self, source, tour):
        snapshot = source.parse_snapshot("xyz", {"data": {"tour": tour, "narrations": "pending"}})

        assert snapshot.stops == []
        assert snapshot.poi_count == 0
        assert snapshot.narration_count == 0

    def test_non_list_collections_are_ignored(self, source):
        payload = {"data": {
            "tour": {"pointsOfInterest": {"name": "Castle"}},
            "narrations": [{"narrationText": "Hello"}],
        }}

        snapshot = source.parse_snapshot("xyz", payload)

        assert snapshot.poi_count == 0
        assert snapshot.narration_count == 1

    def test_string_photo_lists_are_ignored(self, source):
        payload = make_slideshow_payload(
            pois=[{"name": "Castle", "photoUrls": "https://cdn.x/1.jpg", "photos": "nope"}],
            narrations=[{"narrationText": "Hi", "photoUrls": "https://cdn.x/2.jpg"}],
        )

        stop = source.parse_snapshot("xyz", payload).stops[0]

        assert stop.image_urls == []
