import io

import docx
import openpyxl
import pytest
from docx.opc.constants import RELATIONSHIP_TYPE as RT
from docx.oxml import OxmlElement
from docx.oxml.ns import qn
from PIL import Image
from PIL.PngImagePlugin import PngInfo
from pptx import Presentation
from pptx.util import Inches

from blindcheck.config.settings import Settings

ARTIST_TAG = 0x013B
SOFTWARE_TAG = 0x0131
MAKE_TAG = 0x010F


def _add_hyperlink(paragraph, url: str, text: str) -> None:  # type: ignore[no-untyped-def]
    r_id = paragraph.part.relate_to(url, RT.HYPERLINK, is_external=True)
    hyperlink = OxmlElement("w:hyperlink")
    hyperlink.set(qn("r:id"), r_id)
    run = OxmlElement("w:r")
    text_element = OxmlElement("w:t")
    text_element.text = text
    run.append(text_element)
    hyperlink.append(run)
    paragraph._p.append(hyperlink)


@pytest.fixture()
def integration_settings(monkeypatch: pytest.MonkeyPatch) -> Settings:
    monkeypatch.setenv("NER_ENABLED", "false")
    monkeypatch.setenv("BATCH_CONCURRENCY", "2")
    return Settings()


@pytest.fixture()
def docx_bytes() -> bytes:
    """Two paragraphs (the second with a hyperlink) and a one-row table."""
    document = docx.Document()
    document.core_properties.author = "Jane Doe"
    document.core_properties.last_modified_by = "John Smith"
    document.core_properties.title = "Draft"
    document.add_paragraph("Draft prepared by Jane Doe.")
    paragraph = document.add_paragraph("See the project page ")
    _add_hyperlink(paragraph, "https://lab.example.org/jane", "here")
    table = document.add_table(rows=1, cols=2)
    table.cell(0, 0).text = "Contact"
    table.cell(0, 1).text = "jane@uni.edu"
    buf = io.BytesIO()
    document.save(buf)
    return buf.getvalue()


@pytest.fixture()
def pptx_bytes() -> bytes:
    """Two blank slides with a textbox each; slide 2 links to the lab site."""
    presentation = Presentation()
    presentation.core_properties.author = "Jane Doe"
    blank = presentation.slide_layouts[6]

    first = presentation.slides.add_slide(blank)
    box = first.shapes.add_textbox(Inches(1), Inches(1), Inches(4), Inches(1))
    box.text_frame.text = "Contact jane@uni.edu"

    second = presentation.slides.add_slide(blank)
    box = second.shapes.add_textbox(Inches(1), Inches(1), Inches(4), Inches(1))
    run = box.text_frame.paragraphs[0].add_run()
    run.text = "site"
    run.hyperlink.address = "https://lab.example.org/team"

    buf = io.BytesIO()
    presentation.save(buf)
    return buf.getvalue()


@pytest.fixture()
def xlsx_bytes() -> bytes:
    """A 'Data' sheet with a hyperlinked cell and a 'Notes' sheet."""
    workbook = openpyxl.Workbook()
    workbook.properties.creator = "Jane Doe"
    workbook.properties.lastModifiedBy = "John Smith"
    sheet = workbook.active
    sheet.title = "Data"
    sheet["A1"] = "Name"
    sheet["B1"] = "Email"
    sheet["A2"] = "Jane Doe"
    sheet["B2"] = "jane@uni.edu"
    sheet["C2"] = "site"
    sheet["C2"].hyperlink = "https://lab.example.org"
    notes = workbook.create_sheet("Notes")
    notes["A1"] = "Funded by NIH"
    buf = io.BytesIO()
    workbook.save(buf)
    return buf.getvalue()


@pytest.fixture()
def png_bytes() -> bytes:
    info = PngInfo()
    info.add_text("Author", "Jane Doe")
    info.add_text("Software", "GIMP")
    buf = io.BytesIO()
    Image.new("RGB", (4, 3)).save(buf, format="PNG", pnginfo=info)
    return buf.getvalue()


@pytest.fixture()
def jpeg_bytes() -> bytes:
    exif = Image.Exif()
    exif[ARTIST_TAG] = "Jane Doe"
    exif[SOFTWARE_TAG] = "Photo Tool"
    exif[MAKE_TAG] = "Canon"
    buf = io.BytesIO()
    Image.new("RGB", (4, 3)).save(buf, format="JPEG", exif=exif)
    return buf.getvalue()


@pytest.fixture()
def svg_bytes() -> bytes:
    return b"""<?xml version="1.0" encoding="UTF-8"?>
<svg xmlns="http://www.w3.org/2000/svg"
     xmlns:inkscape="http://www.inkscape.org/namespaces/inkscape"
     xmlns:sodipodi="http://sodipodi.sourceforge.net/DTD/sodipodi-0.dtd"
     xmlns:rdf="http://www.w3.org/1999/02/22-rdf-syntax-ns#"
     xmlns:cc="http://creativecommons.org/ns#"
     xmlns:dc="http://purl.org/dc/elements/1.1/"
     inkscape:version="1.3" sodipodi:docname="figure.svg">
  <title>Figure 1</title>
  <desc>Pipeline overview</desc>
  <metadata>
    <rdf:RDF>
      <cc:Work>
        <dc:creator><cc:Agent><dc:title>Jane Doe</dc:title></cc:Agent></dc:creator>
      </cc:Work>
    </rdf:RDF>
  </metadata>
  <rect width="10" height="10"/>
</svg>
"""


@pytest.fixture()
def csv_bytes() -> bytes:
    return b"name,email\nJane Doe,jane@uni.edu\nBob Roe,bob@uni.edu\n"


@pytest.fixture()
def json_bytes() -> bytes:
    return (
        b'{"title": "Data", "metadata": {"author": "Jane Doe", "lastModifiedBy": "Bob"},'
        b' "items": [1, 2]}'
    )


@pytest.fixture()
def markdown_bytes() -> bytes:
    return b"""---
title: Draft
authors:
  - Jane Doe
  - John Smith
tags: [nlp]
---
# Heading

Contact [me](mailto:jane@uni.edu) or see https://lab.example.org/x.
"""
