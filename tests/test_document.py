import logging

from notice_pdf.parsing.document import ParsedDocument, parse_fragment


def test_recovered_content_loss_is_logged(caplog):
    with caplog.at_level(logging.DEBUG):
        doc = ParsedDocument.parse(
            "<N7100001><被保険者氏名>A&B</被保険者氏名></N7100001>"
        )
    assert doc.root_tag == "N7100001"
    assert doc.first_text("被保険者氏名") != "A&B"
    assert any("recovery mode" in m for m in caplog.messages)


def test_well_formed_xml_logs_nothing(caplog):
    with caplog.at_level(logging.DEBUG):
        doc = ParsedDocument.parse(
            "<N7100001><被保険者氏名>A&amp;B</被保険者氏名></N7100001>"
        )
    assert doc.first_text("被保険者氏名") == "A&B"
    assert not any("recovery mode" in m for m in caplog.messages)


def test_truncated_xml_keeps_what_was_read():
    root = parse_fragment("<N7160001><被保険者氏名>山田</被保険者氏名><賞与")
    assert root is not None
    assert ParsedDocument(root).first_text("被保険者氏名") == "山田"


def test_text_without_markup():
    assert parse_fragment("") is None
    assert ParsedDocument.parse("plain text").is_empty
