"""
Minimal WordprocessingML writer for the recognized Markdown text.

Produces the three parts Word needs to open a document: the content-types
manifest, the package relationships and ``word/document.xml``. One paragraph
per source line; Markdown headings become bold runs.
"""

import io
import re
import zipfile
from xml.sax.saxutils import escape

_CONTENT_TYPES = """<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<Types xmlns="http://schemas.openxmlformats.org/package/2006/content-types">
  <Default Extension="rels" ContentType="application/vnd.openxmlformats-package.relationships+xml"/>
  <Default Extension="xml" ContentType="application/xml"/>
  <Override PartName="/word/document.xml" ContentType="application/vnd.openxmlformats-officedocument.wordprocessingml.document.main+xml"/>
</Types>"""

_RELS = """<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<Relationships xmlns="http://schemas.openxmlformats.org/package/2006/relationships">
  <Relationship Id="rId1" Type="http://schemas.openxmlformats.org/officeDocument/2006/relationships/officeDocument" Target="word/document.xml"/>
</Relationships>"""

_DOCUMENT = """<?xml version="1.0" encoding="UTF-8" standalone="yes"?>
<w:document xmlns:w="http://schemas.openxmlformats.org/wordprocessingml/2006/main">
  <w:body>
{paragraphs}
  </w:body>
</w:document>"""

_HEADING = re.compile(r"^(#{1,3})\s+(.*)$")


def _paragraph(line: str) -> str:
    match = _HEADING.match(line)
    if match:
        text, props = match.group(2), "<w:rPr><w:b/></w:rPr>"
    else:
        text, props = line, ""
    return (
        f'    <w:p><w:r>{props}<w:t xml:space="preserve">{escape(text)}</w:t></w:r></w:p>'
    )


def render_docx(markdown: str) -> bytes:
    """Render ``markdown`` as a .docx package and return its bytes."""
    paragraphs = "\n".join(_paragraph(line) for line in markdown.splitlines())

    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        zf.writestr("[Content_Types].xml", _CONTENT_TYPES)
        zf.writestr("_rels/.rels", _RELS)
        zf.writestr("word/document.xml", _DOCUMENT.format(paragraphs=paragraphs))
    return buffer.getvalue()
