from __future__ import annotations

import xml.etree.ElementTree as ET

from splkit.domain.xmltree import (
    attribute_name,
    child,
    children,
    collapse,
    collapse_inline,
    descend,
    iter_paths,
    local_name,
    normalize_whitespace,
    squash,
    text_of,
)

XML = (
    '<document xmlns="urn:hl7-org:v3" xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance">'
    "<component><section><title>  First \n title </title></section></component>"
    "<component><section><title>Second</title></section>"
    "<section><title>Third</title></section></component>"
    '<value xsi:type="CE"/>'
    "</document>"
)


def _root() -> ET.Element:
    return ET.fromstring(XML)  # noqa: S314


def test_local_name_strips_namespace() -> None:
    assert local_name("{urn:hl7-org:v3}section") == "section"
    assert local_name("section") == "section"


def test_attribute_names_use_stable_prefixes() -> None:
    assert attribute_name("{http://www.w3.org/2001/XMLSchema-instance}type") == "xsi:type"
    assert attribute_name("code") == "code"


def test_whitespace_helpers() -> None:
    assert collapse("  \n ") is None
    assert collapse(" a \n  b ") == " a b "
    assert squash(" a \n  b ") == "a b"
    assert squash(None) == ""


def test_child_lookup_ignores_namespaces() -> None:
    root = _root()

    assert len(children(root, "component")) == 2
    first = descend(root, "component", "section", "title")
    assert text_of(first) == "First title"
    assert child(root, "missing") is None
    assert descend(root, "component", "missing", "title") is None


def test_iter_paths_indexes_every_step() -> None:
    paths = [path for path, _element, _ancestors in iter_paths(_root())]

    assert paths[0] == "/document[1]"
    assert "/document[1]/component[2]/section[2]/title[1]" in paths
    assert "/document[1]/component[1]/section[1]/title[1]" in paths
    assert len(paths) == len(set(paths))


def test_iter_paths_reports_ancestors() -> None:
    for path, element, ancestors in iter_paths(_root()):
        if path.endswith("section[2]/title[1]"):
            assert [local_name(a.tag) for a in ancestors] == ["document", "component", "section"]
            assert element.text == "Third"


def test_inline_whitespace_keeps_word_breaks() -> None:
    assert collapse_inline("  \n ") == " "
    assert collapse_inline(" a \n  b ") == " a b "
    assert collapse_inline("") is None
    assert collapse_inline(None) is None


def test_normalized_markup_keeps_blank_between_inline_elements() -> None:
    markup = "<paragraph>\n  <content>WARNING:</content> <content>Do not\n   crush.</content>\n</paragraph>"
    paragraph = ET.fromstring(markup)  # noqa: S314

    normalize_whitespace(paragraph)

    assert ET.tostring(paragraph, encoding="unicode") == (
        "<paragraph> <content>WARNING:</content> <content>Do not crush.</content> </paragraph>"
    )
