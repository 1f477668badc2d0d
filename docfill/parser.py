# docfill/parser.py
from __future__ import annotations
import io, logging, re, zipfile
from typing import List, Optional
from docx import Document
from docx.document import Document as DocxDocument
from docx.opc.exceptions import PackageNotFoundError
from docx.oxml.ns import qn
from .errors import MalformedTemplateError

logger = logging.getLogger(__name__)

# leftmost-first, shortest run up to the next closing brace; may span lines
PLACEHOLDER_PATTERN = re.compile(r"\{(.*?)\}", re.DOTALL)

# run content python-docx reads back as text besides w:t; w:br only counts
# when it is a line break, page and column breaks read as nothing
RUN_CONTENT_TEXT = {
    "w:tab": "\t",
    "w:ptab": "\t",
    "w:br": "\n",
    "w:cr": "\n",
    "w:noBreakHyphen": "-",
}
LINE_BREAK_TYPES = (None, "textWrapping")

# what python-docx raises for bytes that are not a Word package
_BAD_PACKAGE = (zipfile.BadZipFile, PackageNotFoundError, KeyError, ValueError)


def open_document(data: bytes) -> DocxDocument:
    try:
        return Document(io.BytesIO(data))
    except _BAD_PACKAGE as e:
        raise MalformedTemplateError(f"Not a valid .docx template: {e}") from e


def run_content_text(name: str, br_type: Optional[str] = None) -> str:
    if name == "w:br" and br_type not in LINE_BREAK_TYPES:
        return ""
    return RUN_CONTENT_TEXT.get(name, "")


_W_P, _W_T, _W_TYPE = qn("w:p"), qn("w:t"), qn("w:type")
_RUN_CONTENT = {qn(name): name for name in RUN_CONTENT_TEXT}


def _paragraph_text(p) -> str:
    # every w:t below the paragraph counts, so runs wrapped in content
    # controls, tracked insertions, smart tags or simple fields are read too;
    # paragraphs nested in text boxes are read on their own
    parts: List[str] = []

    def walk(el):
        for child in el:
            if child.tag == _W_P:
                continue
            if child.tag == _W_T:
                parts.append(child.text or "")
            elif child.tag in _RUN_CONTENT:
                parts.append(run_content_text(_RUN_CONTENT[child.tag], child.get(_W_TYPE)))
            else:
                walk(child)

    walk(p)
    return "".join(parts)


def template_text(data: bytes) -> str:
    """
    Plain text of the main document body, one line per paragraph.
    Table cells are included in reading order; headers and footers are not.
    """
    doc = open_document(data)
    body = doc.element.body
    return "\n".join(_paragraph_text(p) for p in body.iter(_W_P))


def extract_placeholders(text: Optional[str]) -> List[str]:
    """
    '{a}{a}{b}' -> ['a', 'b'];  '{a{b}c}' -> ['a{b'].
    Empty braces are consumed by the scan but never reported.
    """
    if not text:
        return []
    seen = set(); out = []
    for m in PLACEHOLDER_PATTERN.finditer(text):
        name = m.group(1)
        if name and name not in seen:
            seen.add(name); out.append(name)
    return out


def placeholders_of(data: bytes) -> List[str]:
    names = extract_placeholders(template_text(data))
    logger.info("Found %d placeholder(s) in template", len(names))
    return names
