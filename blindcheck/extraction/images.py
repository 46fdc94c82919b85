import io
from typing import Any, ClassVar

from PIL import ExifTags, Image, PngImagePlugin

from blindcheck.extraction.base import (
    RESERVED_PROPERTY_KEYS,
    BaseFormatExtractor,
    PositionedText,
    RawProperties,
)
from blindcheck.extraction.exceptions import MalformedContainerError
from blindcheck.extraction.xmp import XmpReader, find_xmp_packet

XP_TAGS = frozenset({"XPTitle", "XPComment", "XPAuthor", "XPKeywords", "XPSubject"})


def _display(tag: str, value: Any) -> str:
    if tag in XP_TAGS:
        raw = bytes(value) if isinstance(value, (tuple, list)) else value
        if isinstance(raw, bytes):
            return raw.decode("utf-16-le", errors="replace").rstrip("\x00").strip()
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace").rstrip("\x00").strip()
    if isinstance(value, (tuple, list)):
        return ", ".join(str(v) for v in value)
    return str(value).strip()


class RasterImageExtractor(BaseFormatExtractor):
    """EXIF, PNG text chunks and XMP of a raster image, read with Pillow.

    Images carry no positioned text; the XMP packet is a supplemental
    source, so a broken packet does not hide the EXIF data.
    """

    file_type = "Image"

    PNG_TEXT_KEYS: ClassVar[dict[str, str]] = {
        "Title": "title",
        "Description": "description",
        "Author": "author",
        "Software": "software",
        "Copyright": "copyright",
        "Source": "source",
        "Comment": "comment",
        "Creation Time": "creationTime",
    }
    # property -> EXIF tags tried in order
    EXIF_FIELDS: ClassVar[dict[str, tuple[str, ...]]] = {
        "author": ("Artist", "XPAuthor", "Author"),
        "creator": ("Creator", "XPSubject"),
        "software": ("Software",),
        "description": ("ImageDescription", "XPComment"),
        "copyright": ("Copyright", "XPAuthor"),
        "creationDate": ("DateTimeOriginal", "DateTimeDigitized"),
        "modificationDate": ("DateTime",),
    }

    def _read_tags(self, data: bytes) -> tuple[RawProperties, dict[str, str], dict[str, str]]:
        try:
            with Image.open(io.BytesIO(data)) as image:
                basics: RawProperties = {
                    "width": image.width,
                    "height": image.height,
                    "format": image.format or "",
                }
                exif = image.getexif()
                raw_tags: dict[str, Any] = {
                    ExifTags.TAGS.get(tag_id, str(tag_id)): value for tag_id, value in exif.items()
                }
                for tag_id, value in exif.get_ifd(ExifTags.IFD.Exif).items():
                    raw_tags.setdefault(ExifTags.TAGS.get(tag_id, str(tag_id)), value)
                if ExifTags.IFD.GPSInfo in exif:
                    basics["hasGpsData"] = True
                text_chunks = (
                    dict(image.text) if isinstance(image, PngImagePlugin.PngImageFile) else {}
                )
        except Exception as exc:
            raise MalformedContainerError(f"Could not read image: {exc}") from exc

        tags = {name: _display(name, value) for name, value in raw_tags.items()}
        return basics, tags, text_chunks

    def get_raw_properties(self, data: bytes) -> RawProperties:
        properties, tags, text_chunks = self._read_tags(data)
        for target, candidates in self.EXIF_FIELDS.items():
            for name in candidates:
                if tags.get(name):
                    properties[target] = tags[name]
                    break
        for key, value in text_chunks.items():
            if key == "XML:com.adobe.xmp" or not str(value).strip():
                continue
            target = self._text_chunk_key(key)
            if not target or target in RESERVED_PROPERTY_KEYS:
                continue
            properties[target] = str(value).strip()
        return properties

    @classmethod
    def _text_chunk_key(cls, key: str) -> str:
        """``Creation Time`` -> ``creationTime``; well-known keys use their mapping."""
        if key in cls.PNG_TEXT_KEYS:
            return cls.PNG_TEXT_KEYS[key]
        compact = key.replace(" ", "")
        return compact[:1].lower() + compact[1:]

    def get_supplemental_properties(self, data: bytes) -> RawProperties:
        packet = find_xmp_packet(data)
        if packet is None:
            return {}
        return XmpReader().read(packet)

    def get_exif(self, data: bytes) -> dict[str, str]:
        _, tags, _ = self._read_tags(data)
        return {name: value for name, value in tags.items() if name != "GPSInfo"}

    def get_positioned_text(self, data: bytes) -> list[PositionedText]:
        _ = data
        return []


class JpegExtractor(RasterImageExtractor):
    file_type = "JPEG Image"


class PngExtractor(RasterImageExtractor):
    file_type = "PNG Image"


class TiffExtractor(RasterImageExtractor):
    file_type = "TIFF Image"
