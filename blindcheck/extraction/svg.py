import xml.etree.ElementTree as ET

from blindcheck.extraction.base import BaseFormatExtractor, PositionedText, RawProperties
from blindcheck.extraction.exceptions import MalformedContainerError
from blindcheck.extraction.xmp import XmpReader, find_xmp_packet

INKSCAPE_NS = "{http://www.inkscape.org/namespaces/inkscape}"


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _text(element: ET.Element) -> str:
    return " ".join(part.strip() for part in element.itertext() if part.strip())


class SvgExtractor(BaseFormatExtractor):
    """Title, description, editor attributes and XMP of an SVG drawing."""

    file_type = "SVG Image"

    def _parse(self, data: bytes) -> ET.Element:
        try:
            return ET.fromstring(data)
        except ET.ParseError as exc:
            raise MalformedContainerError(f"Could not parse SVG: {exc}") from exc

    def get_raw_properties(self, data: bytes) -> RawProperties:
        root = self._parse(data)
        properties: RawProperties = {}
        for element in root.iter():
            name = _local_name(element.tag)
            if name == "title" and "title" not in properties and _text(element):
                properties["title"] = _text(element)
            elif name == "desc" and "description" not in properties and _text(element):
                properties["description"] = _text(element)

        for attribute, value in root.attrib.items():
            if _local_name(attribute) == "docname":
                properties["docName"] = value
            elif attribute == f"{INKSCAPE_NS}version" or _local_name(attribute) == "CreatorTool":
                properties["creatorTool"] = value

        # Without an XMP packet, any <creator> element names the author.
        if find_xmp_packet(data) is None:
            for element in root.iter():
                if _local_name(element.tag) == "creator" and _text(element):
                    properties["author"] = _text(element)
                    break
        return properties

    def get_supplemental_properties(self, data: bytes) -> RawProperties:
        packet = find_xmp_packet(data)
        if packet is None:
            return {}
        return XmpReader().read(packet)

    def get_positioned_text(self, data: bytes) -> list[PositionedText]:
        _ = data
        return []
