"""
Embedded tag access for synced MP3 files.

A thin adapter over mutagen's ID3 support exposing exactly the fields the
sync needs. Everything is stored in the ID3v2 tag:

    Field               Frame
    -----               -----
    title               TIT2
    performers          TPE1 (multi-value)
    album               TALB
    album artists       TPE2 (multi-value)
    fingerprint         TXXX:Description   (the YouTube video id)
    release id          TXXX:MusicBrainz Album Id
    release group id    TXXX:MusicBrainz Release Group Id
    release status      TXXX:MusicBrainz Album Status
    release country     TXXX:MusicBrainz Album Release Country
    cover               APIC (front cover, description = provenance)

The TXXX descriptions for MusicBrainz identifiers follow the names
MusicBrainz Picard writes, so other tools pick them up.

Container policy:
    An ID3v1 trailer is kept up to date if the file already had one, and
    never created otherwise. No other tag container is ever added.
"""

from pathlib import Path
from typing import Sequence

from mutagen import MutagenError
from mutagen.id3 import (
    APIC,
    ID3,
    TALB,
    TIT2,
    TPE1,
    TPE2,
    TXXX,
    Encoding,
    ID3NoHeaderError,
    ID3v1SaveOptions,
    PictureType,
)

from ytplaylist.core.exceptions import TagError


FINGERPRINT_DESCRIPTION = "Description"
RELEASE_ID_DESCRIPTION = "MusicBrainz Album Id"
RELEASE_GROUP_ID_DESCRIPTION = "MusicBrainz Release Group Id"
RELEASE_STATUS_DESCRIPTION = "MusicBrainz Album Status"
RELEASE_COUNTRY_DESCRIPTION = "MusicBrainz Album Release Country"

CONTAINER_ID3V2 = "id3v2"
CONTAINER_ID3V1 = "id3v1"

_ID3V1_SIZE = 128


def detect_containers(path: Path) -> frozenset[str]:
    """Return the tag container types physically present in the file."""
    found = set()
    with open(path, "rb") as f:
        if f.read(3) == b"ID3":
            found.add(CONTAINER_ID3V2)
        f.seek(0, 2)
        if f.tell() >= _ID3V1_SIZE:
            f.seek(-_ID3V1_SIZE, 2)
            if f.read(3) == b"TAG":
                found.add(CONTAINER_ID3V1)
    return frozenset(found)


class TagFile:
    """
    Read/write view of one file's embedded metadata.

    Changes are kept in memory until save() is called.

    Example:
        tag = TagFile.open(path)
        if tag.title != "Song":
            tag.title = "Song"
            tag.save()
    """

    def __init__(self, path: Path, tags: ID3, containers_on_disk: frozenset[str]) -> None:
        self.path = path
        self._tags = tags
        self.containers_on_disk = containers_on_disk

    @classmethod
    def open(cls, path: Path) -> "TagFile":
        """
        Load the tags of `path`. A file without an ID3v2 tag gets an empty one.

        Raises:
            TagError: If the file cannot be read or the tag is corrupt.
        """
        try:
            containers = detect_containers(path)
            try:
                tags = ID3(str(path))
            except ID3NoHeaderError:
                tags = ID3()
        except (OSError, MutagenError) as e:
            raise TagError(
                f"Cannot read tags of {path.name}: {e}",
                details={"path": str(path)}
            ) from e
        return cls(path, tags, containers)

    # --- text frames -------------------------------------------------------

    def _get_text(self, key: str) -> str:
        frame = self._tags.get(key)
        if frame is None or not frame.text:
            return ""
        return str(frame.text[0])

    def _get_list(self, key: str) -> list[str]:
        frame = self._tags.get(key)
        if frame is None:
            return []
        return [str(value) for value in frame.text if str(value)]

    def _set_text(self, frame_class: type, values: Sequence[str]) -> None:
        self._tags.delall(frame_class.__name__)
        values = [value for value in values if value]
        if values:
            self._tags.add(frame_class(encoding=Encoding.UTF8, text=list(values)))

    @property
    def title(self) -> str:
        return self._get_text("TIT2")

    @title.setter
    def title(self, value: str) -> None:
        self._set_text(TIT2, [value])

    @property
    def performers(self) -> list[str]:
        return self._get_list("TPE1")

    @performers.setter
    def performers(self, values: Sequence[str]) -> None:
        self._set_text(TPE1, values)

    @property
    def album(self) -> str:
        return self._get_text("TALB")

    @album.setter
    def album(self, value: str) -> None:
        self._set_text(TALB, [value])

    @property
    def album_artists(self) -> list[str]:
        return self._get_list("TPE2")

    @album_artists.setter
    def album_artists(self, values: Sequence[str]) -> None:
        self._set_text(TPE2, values)

    # --- user text frames --------------------------------------------------

    def get_user_text(self, description: str) -> str:
        return self._get_text(f"TXXX:{description}")

    def set_user_text(self, description: str, value: str | None) -> None:
        self._tags.delall(f"TXXX:{description}")
        if value:
            self._tags.add(TXXX(encoding=Encoding.UTF8, desc=description, text=[value]))

    @property
    def fingerprint(self) -> str:
        """The YouTube video id this file was downloaded from ("" if unknown)."""
        return self.get_user_text(FINGERPRINT_DESCRIPTION).strip()

    @fingerprint.setter
    def fingerprint(self, value: str) -> None:
        self.set_user_text(FINGERPRINT_DESCRIPTION, value)

    @property
    def release_id(self) -> str:
        return self.get_user_text(RELEASE_ID_DESCRIPTION)

    @release_id.setter
    def release_id(self, value: str | None) -> None:
        self.set_user_text(RELEASE_ID_DESCRIPTION, value)

    @property
    def release_group_id(self) -> str:
        return self.get_user_text(RELEASE_GROUP_ID_DESCRIPTION)

    @release_group_id.setter
    def release_group_id(self, value: str | None) -> None:
        self.set_user_text(RELEASE_GROUP_ID_DESCRIPTION, value)

    @property
    def release_status(self) -> str:
        return self.get_user_text(RELEASE_STATUS_DESCRIPTION)

    @release_status.setter
    def release_status(self, value: str | None) -> None:
        self.set_user_text(RELEASE_STATUS_DESCRIPTION, value)

    @property
    def release_country(self) -> str:
        return self.get_user_text(RELEASE_COUNTRY_DESCRIPTION)

    @release_country.setter
    def release_country(self, value: str | None) -> None:
        self.set_user_text(RELEASE_COUNTRY_DESCRIPTION, value)

    # --- cover -------------------------------------------------------------

    @property
    def pictures(self) -> list[APIC]:
        return self._tags.getall("APIC")

    @property
    def has_picture(self) -> bool:
        return bool(self.pictures)

    @property
    def picture_description(self) -> str | None:
        """Provenance marker of the first attached picture, if any."""
        pictures = self.pictures
        return pictures[0].desc if pictures else None

    def set_cover(self, data: bytes, mime: str, description: str) -> None:
        """Replace all attached pictures with a single front cover."""
        self._tags.delall("APIC")
        self._tags.add(APIC(
            encoding=Encoding.UTF8,
            mime=mime,
            type=PictureType.COVER_FRONT,
            desc=description,
            data=data,
        ))

    # --- persistence -------------------------------------------------------

    def save(self) -> None:
        """
        Write the tag back to disk following the container policy.

        Raises:
            TagError: If the file cannot be written.
        """
        if CONTAINER_ID3V1 in self.containers_on_disk:
            v1 = ID3v1SaveOptions.UPDATE
        else:
            v1 = ID3v1SaveOptions.REMOVE
        try:
            self._tags.save(str(self.path), v1=v1, v2_version=4)
        except (OSError, MutagenError) as e:
            raise TagError(
                f"Cannot write tags of {self.path.name}: {e}",
                details={"path": str(self.path)}
            ) from e
        self.containers_on_disk = detect_containers(self.path)
