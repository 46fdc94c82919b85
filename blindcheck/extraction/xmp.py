import xml.etree.ElementTree as ET
from typing import ClassVar

from blindcheck.extraction.base import RawProperties
from blindcheck.extraction.exceptions import PartialExtractionError

XMP_START = b"<x:xmpmeta"
XMP_END = b"</x:xmpmeta>"


def find_xmp_packet(data: bytes) -> bytes | None:
    """Return the raw ``x:xmpmeta`` packet embedded anywhere in *data*."""
    start = data.find(XMP_START)
    if start == -1:
        return None
    end = data.find(XMP_END, start)
    if end == -1:
        return None
    return data[start : end + len(XMP_END)]


class XmpReader:
    """Maps Dublin Core / XMP / Photoshop fields onto result property names."""

    FIELDS: ClassVar[dict[str, str]] = {
        "title": "title",
        "description": "description",
        "rights": "rights",
        "Copyright": "copyright",
        "CreatorTool": "creatorTool",
        "CreateDate": "creationDate",
        "ModifyDate": "modificationDate",
        "MetadataDate": "metadataDate",
        "Credit": "credit",
        "Source": "source",
    }

    @staticmethod
    def _text(element: ET.Element) -> str:
        return " ".join(part.strip() for part in element.itertext() if part.strip())

    def read(self, packet: bytes) -> RawProperties:
        try:
            root = ET.fromstring(packet.decode("utf-8", errors="replace"))
        except ET.ParseError as exc:
            raise PartialExtractionError(f"Unreadable XMP packet: {exc}") from exc

        # first element per local name, in document order
        by_name: dict[str, ET.Element] = {}
        for element in root.iter():
            by_name.setdefault(element.tag.rsplit("}", 1)[-1], element)

        properties: RawProperties = {}
        for source, target in self.FIELDS.items():
            if source in by_name:
                value = self._text(by_name[source])
                if value:
                    properties[target] = value
        creator = self._text(by_name["creator"]) if "creator" in by_name else ""
        if creator:
            properties["creator"] = creator
            properties["author"] = creator
        elif "Artist" in by_name and self._text(by_name["Artist"]):
            properties["author"] = self._text(by_name["Artist"])
        return properties
