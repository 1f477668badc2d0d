# docfill/template_context.py
from __future__ import annotations
import re
from typing import Any, Dict, List, Mapping
from markupsafe import Markup, escape
from .errors import RenderError

# characters XML 1.0 does not allow in a document, even escaped
_XML_FORBIDDEN = re.compile("[\x00-\x08\x0b\x0c\x0e-\x1f\ud800-\udfff\ufffe\uffff]")


def _check_value(name: str, value: str) -> str:
    m = _XML_FORBIDDEN.search(value)
    if m:
        raise RenderError(
            f"Value for placeholder {name!r} contains a character that is not "
            f"allowed in a document (U+{ord(m.group(0)):04X})"
        )
    return value


def _xml_text(value: str) -> Markup:
    # braces as character references, so docxtpl's post-render clean-up of
    # {_{ }_} {_% %_} leaves the value as typed
    return Markup(str(escape(value)).replace("{", "&#123;").replace("}", "&#125;"))


def build_template_context(values: Mapping[str, Any], fields: List[str]) -> Dict[str, Any]:
    """
    The rewritten template looks placeholders up as ``values[fields[i]]``,
    so names never have to survive Jinja's lexer. Names absent from
    ``values`` resolve to Jinja's Undefined and render as empty text.

    ``fields`` is filled while the template parts are patched, which happens
    inside render(), so it is passed through by reference.
    """
    ctx_values = {
        str(k): _xml_text(_check_value(str(k), "" if v is None else str(v)))
        for k, v in values.items()
    }
    return {"values": ctx_values, "fields": fields}
