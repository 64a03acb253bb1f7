import pytest
from conftest import DATA_ROOT, EMPLOYMENT_DOC

from notice_pdf.parsing.document import ParsedDocument
from notice_pdf.pipeline.classifier import (
    UNKNOWN,
    DocumentShape,
    classify,
    classify_file_name,
    detect_shape,
)
from notice_pdf.schemas import Category, PdfStrategy, ProcedureType


@pytest.mark.parametrize(
    "form_code,expected_type,expected_strategy",
    [
        ("N7100001", ProcedureType.ACQUISITION, PdfStrategy.INDIVIDUAL),
        ("N7130001", ProcedureType.ACQUISITION, PdfStrategy.INDIVIDUAL),
        ("N7140001", ProcedureType.MONTHLY_REVISION, PdfStrategy.COMBINED),
        ("N7150001", ProcedureType.BASIS_ASSESSMENT, PdfStrategy.COMBINED),
        ("N7160001", ProcedureType.BONUS, PdfStrategy.COMBINED),
        ("N7170003", ProcedureType.ACQUISITION, PdfStrategy.INDIVIDUAL),
        ("N7200001", ProcedureType.ACQUISITION, PdfStrategy.INDIVIDUAL),
        ("N7210001", ProcedureType.MONTHLY_REVISION, PdfStrategy.INDIVIDUAL),
    ],
)
def test_social_insurance_forms(form_code, expected_type, expected_strategy):
    xml = f'<?xml version="1.0" encoding="UTF-8"?><{form_code}><_被保険者/></{form_code}>'
    info = classify(xml)
    assert info.type == expected_type
    assert info.category == Category.SOCIAL_INSURANCE
    assert info.pdf_strategy == expected_strategy


@pytest.mark.parametrize(
    "xml",
    [
        "",
        "this is not xml at all",
        "<UNKNOWN_FORM><x/></UNKNOWN_FORM>",
        "<N7999999/>",
        "<n7100001/>",
    ],
)
def test_unrecognized_input_is_unknown(xml):
    assert classify(xml) == UNKNOWN
    assert classify(xml).category == Category.UNKNOWN


def test_truncated_form_is_still_classified():
    info = classify("<N7100001><_被保険者><被保険者氏名>山田")
    assert info.type == ProcedureType.ACQUISITION


def test_form_code_in_text_is_not_a_root():
    assert classify("<DATA>N7100001</DATA>") == UNKNOWN


def test_data_root_uses_first_numeric_form_id():
    info = classify(DATA_ROOT)
    assert info.type == ProcedureType.ACQUISITION
    assert info.category == Category.SOCIAL_INSURANCE
    assert info.pdf_strategy == PdfStrategy.INDIVIDUAL


@pytest.mark.parametrize(
    "form_id,expected",
    [
        ("2003083901", ProcedureType.ACQUISITION),
        ("2003084001", ProcedureType.LOSS),
        ("2003084101", ProcedureType.ACQUISITION),
        ("1234567", ProcedureType.OTHER),
    ],
)
def test_data_root_form_ids(form_id, expected):
    info = classify(f"<DataRoot><様式ID>{form_id}</様式ID></DataRoot>")
    assert info.type == expected
    assert info.category == Category.SOCIAL_INSURANCE


def test_data_root_without_form_id_is_combined():
    info = classify("<DataRoot><other/></DataRoot>")
    assert info.type == ProcedureType.OTHER
    assert info.pdf_strategy == PdfStrategy.COMBINED


def test_employment_doc_acquisition():
    info = classify(EMPLOYMENT_DOC)
    assert info.type == ProcedureType.ACQUISITION
    assert info.category == Category.EMPLOYMENT_INSURANCE
    assert info.pdf_strategy == PdfStrategy.INDIVIDUAL


def test_employment_doc_loss_and_other():
    loss = classify("<DOC><TITLE>雇用保険被保険者資格喪失確認通知書</TITLE></DOC>")
    assert loss.type == ProcedureType.LOSS
    other = classify("<DOC><TITLE>返戻のお知らせ</TITLE></DOC>")
    assert other.type == ProcedureType.OTHER
    assert other.category == Category.EMPLOYMENT_INSURANCE
    assert other.pdf_strategy == PdfStrategy.COMBINED


def test_detect_shape():
    assert detect_shape(ParsedDocument.parse("junk")) is DocumentShape.NONE
    assert detect_shape(ParsedDocument.parse("<N7150001/>")) is DocumentShape.SOCIAL_INSURANCE_FORM
    assert detect_shape(ParsedDocument.parse(DATA_ROOT)) is DocumentShape.DATA_ROOT
    assert detect_shape(ParsedDocument.parse(EMPLOYMENT_DOC)) is DocumentShape.EMPLOYMENT_DOC
    assert detect_shape(ParsedDocument.parse("<Other/>")) is DocumentShape.UNKNOWN


@pytest.mark.parametrize(
    "file_name,expected_type,expected_category",
    [
        ("月額変更届.xml", ProcedureType.MONTHLY_REVISION, Category.SOCIAL_INSURANCE),
        ("算定基礎届.xml", ProcedureType.BASIS_ASSESSMENT, Category.SOCIAL_INSURANCE),
        ("賞与支払届.xml", ProcedureType.BONUS, Category.SOCIAL_INSURANCE),
        ("資格取得届.xml", ProcedureType.ACQUISITION, Category.SOCIAL_INSURANCE),
        ("被扶養者異動届.xml", ProcedureType.ACQUISITION, Category.SOCIAL_INSURANCE),
        ("雇保_資格取得.xml", ProcedureType.ACQUISITION, Category.EMPLOYMENT_INSURANCE),
        ("雇保_資格喪失.xml", ProcedureType.LOSS, Category.EMPLOYMENT_INSURANCE),
        ("document.xml", ProcedureType.OTHER, Category.UNKNOWN),
    ],
)
def test_classify_file_name(file_name, expected_type, expected_category):
    info = classify_file_name(file_name)
    assert info.type == expected_type
    assert info.category == expected_category
