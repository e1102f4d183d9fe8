import re
from typing import Iterable, List, Optional, Tuple

from brainz_scrobbler.version import __version__

NSEC_PER_MSEC = 1000000
NSEC_PER_SEC = 1000000000

CLIENT_NAME = "brainz-scrobbler"
CLIENT_VERSION = __version__

MUSICBRAINZ_ID_FIELDS = (
    "musicbrainz_album_artist_id",
    "musicbrainz_artist_id",
    "musicbrainz_original_artist_id",
    "musicbrainz_album_id",
    "musicbrainz_original_album_id",
    "musicbrainz_recording_id",
    "musicbrainz_track_id",
    "musicbrainz_work_id",
)

_DISC_SUFFIX = re.compile(r"\s*[(\[]\s*(?:disc|cd)\s*\d+\s*[)\]]\s*$", re.IGNORECASE)


class Song:
    """
    Song record handed over by the player. Only the attributes below are
    used by the scrobbler.

    How to use:
    >>> song = Song(id=1, url="file:///a.flac", artist="Artist", title="Track")
    >>> song.is_metadata_good
    True
    >>> Song(url="file:///b.flac", title="No artist").is_metadata_good
    False
    """

    def __init__(
        self,
        id: Optional[int] = None,
        url: str = "",
        artist: str = "",
        title: str = "",
        album: str = "",
        albumartist: str = "",
        length_nanosec: int = 0,
        track: int = 0,
        is_stream: bool = False,
        valid: bool = True,
        **musicbrainz_ids: str,
    ):
        unknown = set(musicbrainz_ids) - set(MUSICBRAINZ_ID_FIELDS)
        if unknown:
            raise TypeError(f"Unknown song attributes: {', '.join(sorted(unknown))}")

        self.id = id
        self.url = url
        self.artist = artist
        self.title = title
        self.album = album
        self.albumartist = albumartist
        self.length_nanosec = length_nanosec
        self.track = track
        self.is_stream = is_stream
        self.valid = valid

        for field in MUSICBRAINZ_ID_FIELDS:
            setattr(self, field, musicbrainz_ids.get(field, ""))

    def __repr__(self):
        return f"<Song {self.artist!r} - {self.title!r} ({self.url})>"

    @property
    def is_valid(self) -> bool:
        return self.valid

    @property
    def is_metadata_good(self) -> bool:
        return bool(self.url and self.artist and self.title)

    @property
    def effective_albumartist(self) -> str:
        return self.albumartist or self.artist

    def same_track(self, other: Optional["Song"]) -> bool:
        """Whether both records refer to the same track (id and url)."""
        if other is None:
            return False
        return self.id == other.id and self.url == other.url

    def with_length(self, seconds: int) -> "Song":
        """Returns a copy of the song with its length set to the given seconds."""
        return Song(
            id=self.id,
            url=self.url,
            artist=self.artist,
            title=self.title,
            album=self.album,
            albumartist=self.albumartist,
            length_nanosec=seconds * NSEC_PER_SEC,
            track=self.track,
            is_stream=self.is_stream,
            valid=self.valid,
            **{field: getattr(self, field) for field in MUSICBRAINZ_ID_FIELDS},
        )


class ScrobbleMetadata:
    """The part of a Song that is stored with a pending listen."""

    FIELDS = (
        "artist",
        "albumartist",
        "album",
        "title",
        "length_nanosec",
        "track",
    ) + MUSICBRAINZ_ID_FIELDS

    def __init__(self, **values):
        self.artist = values.get("artist", "")
        self.albumartist = values.get("albumartist", "")
        self.album = values.get("album", "")
        self.title = values.get("title", "")
        self.length_nanosec = int(values.get("length_nanosec", 0) or 0)
        self.track = int(values.get("track", 0) or 0)
        for field in MUSICBRAINZ_ID_FIELDS:
            setattr(self, field, values.get(field, "") or "")

    @classmethod
    def from_song(cls, song: Song) -> "ScrobbleMetadata":
        return cls(**{field: getattr(song, field) for field in cls.FIELDS})

    @classmethod
    def from_dict(cls, data: dict) -> "ScrobbleMetadata":
        """
        :raises KeyError: If artist or title are missing
        """
        if not data["artist"] or not data["title"]:
            raise KeyError("artist and title must not be empty")
        return cls(**{k: v for k, v in data.items() if k in cls.FIELDS})

    def to_dict(self) -> dict:
        return {field: getattr(self, field) for field in self.FIELDS}

    def __eq__(self, other):
        if not isinstance(other, ScrobbleMetadata):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self):
        return f"<ScrobbleMetadata {self.artist!r} - {self.title!r}>"

    @property
    def effective_albumartist(self) -> str:
        return self.albumartist or self.artist


def strip_album(album: str) -> str:
    """
    >>> strip_album("Some Album (Disc 2)")
    'Some Album'
    """
    return _DISC_SUFFIX.sub("", album).strip()


def strip_title(title: str) -> str:
    return title.strip()


def _artist_mbids(metadata: ScrobbleMetadata) -> List[str]:
    mbids = []
    for field in (
        "musicbrainz_album_artist_id",
        "musicbrainz_artist_id",
        "musicbrainz_original_artist_id",
    ):
        for mbid in getattr(metadata, field).split("/"):
            if mbid and mbid not in mbids:
                mbids.append(mbid)
    return mbids


def track_metadata(
    metadata: ScrobbleMetadata,
    prefer_albumartist: bool = False,
    client: Tuple[str, str] = (CLIENT_NAME, CLIENT_VERSION),
) -> dict:
    """
    Maps scrobble metadata to the track_metadata object of the
    ListenBrainz submit-listens API.

    :param metadata: ScrobbleMetadata object
    :param prefer_albumartist: Send the album artist instead of the track
        artist as artist_name
    :param client: Tuple of player name and version sent as media_player
        and submission_client
    :return: dict ready to be serialised as JSON
    """
    if prefer_albumartist:
        artist_name = metadata.effective_albumartist
    else:
        artist_name = metadata.artist

    obj = {"artist_name": artist_name}
    if metadata.album:
        obj["release_name"] = strip_album(metadata.album)
    obj["track_name"] = strip_title(metadata.title)

    name, version = client
    additional_info = {}
    if metadata.length_nanosec > 0:
        additional_info["duration_ms"] = metadata.length_nanosec // NSEC_PER_MSEC
    if metadata.track > 0:
        additional_info["tracknumber"] = metadata.track
    additional_info["media_player"] = name
    additional_info["media_player_version"] = version
    additional_info["submission_client"] = name
    additional_info["submission_client_version"] = version

    artist_mbids = _artist_mbids(metadata)
    if artist_mbids:
        additional_info["artist_mbids"] = artist_mbids

    release_mbid = (
        metadata.musicbrainz_album_id or metadata.musicbrainz_original_album_id
    )
    if release_mbid:
        additional_info["release_mbid"] = release_mbid
    if metadata.musicbrainz_recording_id:
        additional_info["recording_mbid"] = metadata.musicbrainz_recording_id
    if metadata.musicbrainz_track_id:
        additional_info["track_mbid"] = metadata.musicbrainz_track_id
    if metadata.musicbrainz_work_id:
        additional_info["work_mbids"] = [metadata.musicbrainz_work_id]

    obj["additional_info"] = additional_info
    return obj


def listen_payload(
    listen_type: str,
    listens: Iterable[Tuple[Optional[int], ScrobbleMetadata]],
    prefer_albumartist: bool = False,
) -> dict:
    """
    Builds the body of a submit-listens request.

    :param listen_type: "playing_now" or "import"
    :param listens: Iterable of (timestamp, metadata) tuples. The timestamp
        is left out of the payload item if it is None (now playing).
    :param prefer_albumartist: See track_metadata()
    """
    payload = []
    for timestamp, metadata in listens:
        item = {}
        if timestamp is not None:
            item["listened_at"] = timestamp
        item["track_metadata"] = track_metadata(metadata, prefer_albumartist)
        payload.append(item)

    return {"listen_type": listen_type, "payload": payload}
