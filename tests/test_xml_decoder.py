import pytest

from radiko_harvest.exceptions import XMLDecodeError
from radiko_harvest.services.xml_decoder_service import TEXT_KEY, decode_xml


def test_attributes_and_children_share_keys() -> None:
    tree = decode_xml('<station id="TBS"><name>TBSラジオ</name></station>')
    assert tree == {"station": {"id": "TBS", "name": "TBSラジオ"}}


def test_repeated_siblings_become_list_in_document_order() -> None:
    tree = decode_xml("<stations><station><id>A</id></station><station><id>B</id></station></stations>")
    assert tree["stations"]["station"] == [{"id": "A"}, {"id": "B"}]


def test_single_child_stays_mapping_unless_forced() -> None:
    xml = "<stations><station><id>A</id></station></stations>"
    assert decode_xml(xml)["stations"]["station"] == {"id": "A"}
    assert decode_xml(xml, force_list={"station"})["stations"]["station"] == [{"id": "A"}]


def test_leaf_text_is_parsed_as_number() -> None:
    tree = decode_xml("<progs><date>20240101</date><ratio>1.5</ratio><name>J-WAVE</name></progs>")
    assert tree["progs"] == {"date": 20240101, "ratio": 1.5, "name": "J-WAVE"}


def test_leading_zeros_keep_text() -> None:
    assert decode_xml("<t>0500</t>") == {"t": "0500"}


def test_attribute_values_are_never_numbers() -> None:
    tree = decode_xml('<prog id="10001" dur="1800"><title>Show</title></prog>')
    assert tree["prog"]["id"] == "10001"
    assert tree["prog"]["dur"] == "1800"


def test_empty_and_blank_elements_decode_to_empty_string() -> None:
    tree = decode_xml("<prog><desc/><pfm>  </pfm></prog>")
    assert tree["prog"] == {"desc": "", "pfm": ""}


def test_text_alongside_attributes_uses_text_key() -> None:
    tree = decode_xml('<logo width="224">https://example.jp/logo.png</logo>')
    assert tree["logo"] == {"width": "224", TEXT_KEY: "https://example.jp/logo.png"}


def test_escaped_markup_stays_text() -> None:
    tree = decode_xml("<info>&lt;p&gt;news&lt;/p&gt;</info>")
    assert tree == {"info": "<p>news</p>"}


def test_namespaces_reduced_to_local_names() -> None:
    tree = decode_xml('<r:root xmlns:r="urn:x"><r:item r:kind="a">v</r:item></r:root>')
    assert tree == {"root": {"item": {"kind": "a", TEXT_KEY: "v"}}}


def test_comments_are_ignored() -> None:
    assert decode_xml("<a><!-- note --><b>x</b></a>") == {"a": {"b": "x"}}


def test_str_input_with_encoding_declaration() -> None:
    tree = decode_xml('<?xml version="1.0" encoding="UTF-8"?>\n<name>文化放送</name>')
    assert tree == {"name": "文化放送"}


@pytest.mark.parametrize("raw", [b"", b"<stations><station></stations>", b"not xml at all"])
def test_malformed_xml_raises(raw: bytes) -> None:
    with pytest.raises(XMLDecodeError):
        decode_xml(raw)
