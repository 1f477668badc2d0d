# docfill/pipeline.py
"""
Fill-and-export pipeline.

A run moves through fixed states::

    AWAITING_TEMPLATE -> EXTRACTED -> AWAITING_VALUES -> RENDERED
        -> CONVERSION_REQUESTED -> CONVERTED | SKIPPED -> DELIVERED

Each stage either advances the state or raises and leaves it as it was, so
the caller can retry that stage. The module-level functions are the boundary
used by a front end: they never raise DocFillError, they return an Outcome.
"""
from __future__ import annotations
import logging, os
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, List, Mapping, Optional, Protocol, Union, get_args
from .config import Settings, get_settings
from .converter import LibreOfficeConverter
from .errors import ConversionError, DocFillError, InvalidTransitionError
from .exporter import DocxRenderer, read_template, write_output
from .parser import extract_placeholders as scan_placeholders
from .schema import FillRequest, OutputFormat, Outcome

logger = logging.getLogger(__name__)

DEFAULT_BASENAME = "contract"


class Renderer(Protocol):
    def text(self, data: bytes) -> str: ...
    def render(self, data: bytes, values: Mapping[str, Any]) -> bytes: ...


class Converter(Protocol):
    def convert(self, data: bytes, target: str = "pdf") -> bytes: ...


class PipelineState(str, Enum):
    AWAITING_TEMPLATE = "awaiting_template"
    EXTRACTED = "extracted"
    AWAITING_VALUES = "awaiting_values"
    RENDERED = "rendered"
    CONVERSION_REQUESTED = "conversion_requested"
    CONVERTED = "converted"
    SKIPPED = "skipped"
    DELIVERED = "delivered"


S = PipelineState
ALLOWED: Dict[str, FrozenSet[PipelineState]] = {
    "load": frozenset({S.AWAITING_TEMPLATE}),
    "request_values": frozenset({S.EXTRACTED}),
    "submit": frozenset({S.AWAITING_VALUES, S.RENDERED}),
    "preview": frozenset({S.RENDERED}),
    "convert": frozenset({S.RENDERED}),
    "deliver": frozenset({S.CONVERTED, S.SKIPPED}),
}


def resolve_destination(destination: str, fmt: str) -> str:
    if os.path.isdir(destination):
        return os.path.join(destination, f"{DEFAULT_BASENAME}.{fmt}")
    return destination


class Pipeline:
    def __init__(self, renderer: Optional[Renderer] = None,
                 converter: Optional[Converter] = None,
                 settings: Optional[Settings] = None):
        self.renderer = renderer or DocxRenderer()
        self._settings = settings
        self._converter = converter
        self.reset()

    # settings and the default converter are only needed for a pdf
    # conversion, so a bad DOCFILL_* value cannot fail extraction or preview
    @property
    def settings(self) -> Settings:
        if self._settings is None:
            self._settings = get_settings()
        return self._settings

    @property
    def converter(self) -> Converter:
        if self._converter is None:
            self._converter = LibreOfficeConverter(self.settings)
        return self._converter

    def reset(self) -> None:
        self.state = S.AWAITING_TEMPLATE
        self.template: Optional[bytes] = None
        self.placeholders: List[str] = []
        self.rendered: Optional[bytes] = None
        self.output: Optional[bytes] = None
        self.output_format: Optional[OutputFormat] = None

    def _guard(self, operation: str) -> None:
        if self.state not in ALLOWED[operation]:
            raise InvalidTransitionError(operation, self.state)

    def load(self, source: Union[str, bytes]) -> List[str]:
        """Take a template (path or raw bytes) and extract its placeholders."""
        self._guard("load")
        data = read_template(source) if isinstance(source, str) else bytes(source)
        names = scan_placeholders(self.renderer.text(data))
        self.template, self.placeholders = data, names
        self.state = S.EXTRACTED
        logger.info("Template loaded, %d placeholder(s)", len(names))
        return list(names)

    def request_values(self) -> List[str]:
        self._guard("request_values")
        self.state = S.AWAITING_VALUES
        return list(self.placeholders)

    def submit(self, values: Mapping[str, Any]) -> bytes:
        self._guard("submit")
        request = FillRequest(values=dict(values))
        rendered = self.renderer.render(self.template, request.values)
        self.rendered, self.output, self.output_format = rendered, None, None
        self.state = S.RENDERED
        return rendered

    def preview(self) -> bytes:
        self._guard("preview")
        return self.rendered

    def convert(self, fmt: OutputFormat = "docx") -> bytes:
        self._guard("convert")
        if fmt not in get_args(OutputFormat):
            raise ConversionError(f"Unsupported output format: {fmt!r}")
        if fmt == "docx":
            self.output, self.output_format = self.rendered, fmt
            self.state = S.SKIPPED
            return self.output
        self.state = S.CONVERSION_REQUESTED
        try:
            converted = self.converter.convert(self.rendered, fmt)
        except Exception:
            self.state = S.RENDERED
            raise
        self.output, self.output_format = converted, fmt
        self.state = S.CONVERTED
        return converted

    def deliver(self, destination: str) -> str:
        self._guard("deliver")
        path = write_output(self.output, resolve_destination(destination, self.output_format))
        self.state = S.DELIVERED
        return path

    def step(self, operation: str, *args, **kwargs) -> Outcome:
        """Run one stage and report it as an Outcome instead of raising."""
        method: Callable[..., Any] = getattr(self, operation)
        try:
            result = method(*args, **kwargs)
        except DocFillError as e:
            logger.error("%s failed in state %s: %s", operation, self.state.value, e)
            return Outcome.failed(e, state=self.state.value)
        out = Outcome.ok(state=self.state.value)
        if isinstance(result, bytes):
            out.data = result
        elif isinstance(result, list):
            out.placeholders = result
        elif isinstance(result, str):
            out.path = result
        return out


def extract_placeholders(data: bytes, renderer: Optional[Renderer] = None) -> Outcome:
    return Pipeline(renderer=renderer).step("load", data)


def render_preview(data: bytes, values: Mapping[str, Any],
                   renderer: Optional[Renderer] = None) -> Outcome:
    pipe = Pipeline(renderer=renderer)
    for operation, args in (("load", (data,)), ("request_values", ()), ("submit", (values,))):
        out = pipe.step(operation, *args)
        if not out.success:
            return out
    return pipe.step("preview")


def render_and_export(data: bytes, values: Mapping[str, Any], fmt: OutputFormat,
                      destination: str, renderer: Optional[Renderer] = None,
                      converter: Optional[Converter] = None,
                      settings: Optional[Settings] = None) -> Outcome:
    pipe = Pipeline(renderer=renderer, converter=converter, settings=settings)
    stages = (
        ("load", (data,)),
        ("request_values", ()),
        ("submit", (values,)),
        ("convert", (fmt,)),
        ("deliver", (destination,)),
    )
    for operation, args in stages:
        out = pipe.step(operation, *args)
        if not out.success:
            return out
    return out

