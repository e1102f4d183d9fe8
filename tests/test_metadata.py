import unittest

from brainz_scrobbler.metadata import (
    NSEC_PER_SEC,
    ScrobbleMetadata,
    Song,
    listen_payload,
    strip_album,
    track_metadata,
)

from .data.songs import make_metadata, make_song, tagged_song


class SongTests(unittest.TestCase):
    def test_is_metadata_good(self):
        self.assertTrue(make_song().is_metadata_good)
        self.assertFalse(make_song(url="").is_metadata_good)
        self.assertFalse(make_song(artist="").is_metadata_good)
        self.assertFalse(make_song(title="").is_metadata_good)

    def test_same_track(self):
        """Songs are the same track if both id and url match"""
        song = make_song(1)
        self.assertTrue(song.same_track(make_song(1)))
        self.assertFalse(song.same_track(make_song(2)))
        self.assertFalse(song.same_track(make_song(1, url="file:///other.flac")))
        self.assertFalse(song.same_track(None))

    def test_with_length(self):
        song = tagged_song.with_length(45)
        self.assertEqual(song.length_nanosec, 45 * NSEC_PER_SEC)
        self.assertTrue(song.same_track(tagged_song))
        self.assertEqual(
            song.musicbrainz_recording_id, tagged_song.musicbrainz_recording_id
        )
        # original is untouched
        self.assertEqual(tagged_song.length_nanosec, 305 * NSEC_PER_SEC)

    def test_unknown_attribute_raises(self):
        with self.assertRaises(TypeError):
            Song(url="x", artist="a", title="t", musicbrainz_foo="bar")

    def test_effective_albumartist(self):
        self.assertEqual(make_song(albumartist="Various").effective_albumartist, "Various")
        self.assertEqual(make_song(1).effective_albumartist, "Artist1")


class ScrobbleMetadataTests(unittest.TestCase):
    def test_dict_conversion(self):
        metadata = ScrobbleMetadata.from_song(tagged_song)
        self.assertEqual(ScrobbleMetadata.from_dict(metadata.to_dict()), metadata)

    def test_from_dict_requires_artist_and_title(self):
        with self.assertRaises(KeyError):
            ScrobbleMetadata.from_dict({"title": "Track"})
        with self.assertRaises(KeyError):
            ScrobbleMetadata.from_dict({"artist": "Artist", "title": ""})


class TrackMetadataTests(unittest.TestCase):
    def test_minimal(self):
        """Only artist, title and the client info for an untagged song"""
        metadata = make_metadata(1, album="", length_nanosec=0, track=0)
        obj = track_metadata(metadata, client=("player", "1.0"))

        self.assertEqual(
            obj,
            {
                "artist_name": "Artist1",
                "track_name": "Track1",
                "additional_info": {
                    "media_player": "player",
                    "media_player_version": "1.0",
                    "submission_client": "player",
                    "submission_client_version": "1.0",
                },
            },
        )

    def test_fully_tagged(self):
        obj = track_metadata(ScrobbleMetadata.from_song(tagged_song))
        info = obj["additional_info"]

        self.assertEqual(obj["artist_name"], "Portishead")
        self.assertEqual(obj["release_name"], "Dummy")
        self.assertEqual(obj["track_name"], "Roads")
        self.assertEqual(info["duration_ms"], 305000)
        self.assertEqual(info["tracknumber"], 6)
        self.assertEqual(info["release_mbid"], tagged_song.musicbrainz_album_id)
        self.assertEqual(info["recording_mbid"], tagged_song.musicbrainz_recording_id)
        self.assertEqual(info["track_mbid"], tagged_song.musicbrainz_track_id)
        self.assertEqual(info["work_mbids"], [tagged_song.musicbrainz_work_id])

        # split on "/", duplicates removed, order kept
        self.assertEqual(
            info["artist_mbids"],
            [
                "8f6bd1e4-fbe1-4f50-aa9b-94c450ec0f11",
                "11111111-2222-3333-4444-555555555555",
            ],
        )

    def test_prefer_albumartist(self):
        metadata = make_metadata(1, albumartist="Various Artists")
        self.assertEqual(track_metadata(metadata)["artist_name"], "Artist1")
        self.assertEqual(
            track_metadata(metadata, prefer_albumartist=True)["artist_name"],
            "Various Artists",
        )

        # without album artist the track artist is used either way
        metadata = make_metadata(2)
        self.assertEqual(
            track_metadata(metadata, prefer_albumartist=True)["artist_name"], "Artist2"
        )

    def test_original_album_id_fallback(self):
        metadata = make_metadata(1, musicbrainz_original_album_id="orig-id")
        info = track_metadata(metadata)["additional_info"]
        self.assertEqual(info["release_mbid"], "orig-id")

    def test_strip_album(self):
        self.assertEqual(strip_album("Album [CD 2]"), "Album")
        self.assertEqual(strip_album("Album (disc 10)"), "Album")
        self.assertEqual(strip_album("Discography"), "Discography")


class ListenPayloadTests(unittest.TestCase):
    def test_import_payload(self):
        listens = [(1000, make_metadata(1)), (1001, make_metadata(2))]
        body = listen_payload("import", listens)

        self.assertEqual(body["listen_type"], "import")
        self.assertEqual([p["listened_at"] for p in body["payload"]], [1000, 1001])
        self.assertEqual(
            [p["track_metadata"]["track_name"] for p in body["payload"]],
            ["Track1", "Track2"],
        )

    def test_playing_now_payload_has_no_timestamp(self):
        body = listen_payload("playing_now", [(None, make_metadata(1))])
        self.assertEqual(body["listen_type"], "playing_now")
        self.assertEqual(len(body["payload"]), 1)
        self.assertNotIn("listened_at", body["payload"][0])
