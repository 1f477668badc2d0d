"""Shared fixtures: small .docx templates built in memory with python-docx."""

import io
import logging

import pytest
from docx import Document
from docx.oxml import parse_xml
from docx.oxml.ns import nsdecls


def build_docx(*paragraphs, table=None):
    """Build a .docx and return its bytes.

    Each paragraph is either a string (one run) or a list of strings (one
    run each, odd runs bold so Word-style run splits are realistic).
    ``table`` is a list of rows, each a list of cell texts.
    """
    doc = Document()
    for paragraph in paragraphs:
        if isinstance(paragraph, str):
            doc.add_paragraph(paragraph)
            continue
        p = doc.add_paragraph()
        for i, text in enumerate(paragraph):
            p.add_run(text).bold = bool(i % 2)
    if table:
        t = doc.add_table(rows=len(table), cols=len(table[0]))
        for r, row in enumerate(table):
            for c, text in enumerate(row):
                t.cell(r, c).text = text
    buf = io.BytesIO()
    doc.save(buf)
    return buf.getvalue()


def build_docx_xml(*paragraphs):
    """Build a .docx whose body paragraphs are given as raw w:p inner XML."""
    doc = Document()
    body = doc.element.body
    for inner in paragraphs:
        body.sectPr.addprevious(parse_xml(f"<w:p {nsdecls('w')}>{inner}</w:p>"))
    buf = io.BytesIO()
    doc.save(buf)
    return buf.getvalue()


@pytest.fixture
def make_template():
    return build_docx


@pytest.fixture
def make_xml_template():
    return build_docx_xml


@pytest.fixture
def letter_template():
    return build_docx(
        "Dear {name}, your {role} starts {date}.",
        "Regards, {sender}",
    )


@pytest.fixture(autouse=True)
def reset_docfill_logger():
    yield
    logger = logging.getLogger("docfill")
    for handler in logger.handlers:
        handler.close()
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)
