# docfill/exporter.py
from __future__ import annotations
import io, logging, os, re, zipfile
from typing import Any, List, Mapping, Optional
from xml.sax.saxutils import unescape
from docxtpl import DocxTemplate
from jinja2 import TemplateError
from lxml import etree
from .errors import RenderError, StorageError
from .parser import open_document, run_content_text, template_text
from .template_context import build_template_context

logger = logging.getLogger(__name__)

_TAG_RE = re.compile(r"(<[^>]*>)")
_TAG_NAME_RE = re.compile(r"</?([\w:.-]+)")
_ENTITIES = {"&quot;": '"', "&apos;": "'"}
_BR_TYPE_RE = re.compile(r'\bw:type="([^"]*)"')
# literal braces go out as character references: Jinja never sees them, and
# docxtpl's post-render rewrite of {_{ }_} {_% %_} cannot match them
_BRACES = {"{": "&#123;", "}": "&#125;"}
# zip entries are re-stamped so equal inputs give equal bytes
_FIXED_DATE = (1980, 1, 1, 0, 0, 0)


def _tag_name(tag: str) -> str:
    m = _TAG_NAME_RE.match(tag)
    return m.group(1) if m else ""


def _same_structure(tags: List[str]) -> bool:
    """
    True when dropping ``tags`` leaves the XML well formed: whatever they
    close they re-open, as when Word splits one run into several.
    """
    closed: List[str] = []
    opened: List[str] = []
    for tag in tags:
        if tag.startswith("<?") or tag.endswith("/>"):
            continue
        name = _tag_name(tag)
        if tag.startswith("</"):
            if opened and opened[-1] == name:
                opened.pop()
            else:
                closed.append(name)
        else:
            opened.append(name)
    return closed == opened[::-1]


class PlaceholderTemplate(DocxTemplate):
    """
    DocxTemplate for documents written with single-brace ``{name}`` fields.

    Before docxtpl's own XML clean-up, every ``{name}`` found in run text is
    replaced by ``{{ values[fields[i]] }}`` and the name is stored in
    ``self.fields[i]``. Any other brace is written as a character reference.
    """

    def __init__(self, template_file, *args, **kwargs):
        super().__init__(template_file, *args, **kwargs)
        self.fields: List[str] = []

    def patch_xml(self, src_xml: str) -> str:
        return super().patch_xml(self.wrap_placeholders(src_xml))

    def _field(self, name: str) -> str:
        if not name:
            return _BRACES["{"] + _BRACES["}"]
        self.fields.append(name)
        return "{{ values[fields[%d]] }}" % (len(self.fields) - 1)

    @staticmethod
    def _literal(held: List[str]) -> str:
        return "".join(_BRACES.get(piece, piece) for piece in held)

    def wrap_placeholders(self, xml: str) -> str:
        out: List[str] = []
        held: Optional[List[str]] = None   # xml consumed since an unclosed '{'
        tags: List[str] = []
        name: List[str] = []
        in_text = False
        for i, token in enumerate(_TAG_RE.split(xml)):
            if i % 2:
                tag = _tag_name(token)
                if tag == "w:t" and not token.endswith("/>"):
                    in_text = not token.startswith("</")
                if held is None:
                    out.append(token)
                elif tag == "w:p":
                    # placeholders never span paragraphs
                    out.append(self._literal(held)); out.append(token)
                    held = None
                else:
                    held.append(token); tags.append(token)
                    if not token.startswith("</"):
                        br_type = _BR_TYPE_RE.search(token)
                        name.append(run_content_text(tag, br_type.group(1) if br_type else None))
                continue
            for ch in token:
                if held is None:
                    if ch == "{" and in_text:
                        held, tags, name = ["{"], [], []
                    else:
                        out.append(_BRACES.get(ch, ch))
                elif ch == "}" and in_text:
                    if _same_structure(tags):
                        out.append(self._field(unescape("".join(name), _ENTITIES)))
                    else:
                        out.append(self._literal(held)); out.append(_BRACES[ch])
                    held = None
                else:
                    held.append(ch)
                    if in_text:
                        name.append(ch)
        if held is not None:
            out.append(self._literal(held))
        return "".join(out)


def _normalize_archive(data: bytes) -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(io.BytesIO(data)) as src, \
            zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED) as dst:
        for info in src.infolist():
            item = zipfile.ZipInfo(info.filename, date_time=_FIXED_DATE)
            item.compress_type = zipfile.ZIP_DEFLATED
            item.external_attr = info.external_attr
            dst.writestr(item, src.read(info.filename))
    return buf.getvalue()


def render_docx(data: bytes, values: Mapping[str, Any]) -> bytes:
    doc = open_document(data)
    tpl = PlaceholderTemplate(io.BytesIO(data))
    tpl.docx = doc
    try:
        ctx = build_template_context(values, tpl.fields)
        tpl.render(ctx, autoescape=True)
    except (TemplateError, etree.XMLSyntaxError) as e:
        raise RenderError(f"Could not fill template: {e}") from e
    out = io.BytesIO()
    tpl.save(out)
    logger.info("Rendered template with %d value(s), %d field(s) filled",
                len(values), len(tpl.fields))
    return _normalize_archive(out.getvalue())


class DocxRenderer:
    """Renderer capability backed by python-docx and docxtpl."""

    def text(self, data: bytes) -> str:
        return template_text(data)

    def render(self, data: bytes, values: Mapping[str, Any]) -> bytes:
        return render_docx(data, values)


def read_template(path: str) -> bytes:
    try:
        with open(path, "rb") as f:
            return f.read()
    except OSError as e:
        raise StorageError(f"Could not read template {path}: {e}") from e


def write_output(data: bytes, out_path: str) -> str:
    try:
        out_dir = os.path.dirname(out_path)
        if out_dir:
            os.makedirs(out_dir, exist_ok=True)
        with open(out_path, "wb") as f:
            f.write(data)
    except OSError as e:
        raise StorageError(f"Could not write {out_path}: {e}") from e
    logger.info("Wrote %s (%d bytes)", out_path, len(data))
    return out_path
