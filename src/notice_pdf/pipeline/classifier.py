"""
Procedure classification of a single notice XML.

The root element decides which of the known notice shapes a document has;
each shape has exactly one rule, applied in a fixed order.
"""

import re
from enum import Enum

from notice_pdf.parsing.document import ParsedDocument, element_text
from notice_pdf.schemas import Category, PdfStrategy, ProcedureInfo, ProcedureType

# Social-insurance notice forms by root tag.
SOCIAL_INSURANCE_FORMS: dict[str, ProcedureType] = {
    "N7100001": ProcedureType.ACQUISITION,  # 資格取得確認および標準報酬決定通知書
    "N7130001": ProcedureType.ACQUISITION,  # 標準報酬決定通知書
    "N7140001": ProcedureType.MONTHLY_REVISION,  # 標準報酬改定通知書
    "N7150001": ProcedureType.BASIS_ASSESSMENT,  # 算定基礎届
    "N7160001": ProcedureType.BONUS,  # 賞与支払届
    "N7170003": ProcedureType.ACQUISITION,  # 被扶養者（異動）届
    "N7200001": ProcedureType.ACQUISITION,  # 70歳以上被用者通知書
    "N7210001": ProcedureType.MONTHLY_REVISION,  # 70歳以上被用者月額改定通知書
}

# 70歳以上被用者月額改定: a revision form that is still split per person.
INDIVIDUAL_REVISION_FORMS = frozenset({"N7210001"})

# DataRoot 様式ID fragments, checked in order.
DATA_ROOT_FORM_IDS: list[tuple[str, ProcedureType]] = [
    ("30839", ProcedureType.ACQUISITION),
    ("30840", ProcedureType.LOSS),
    ("30841", ProcedureType.ACQUISITION),
]

_DIGITS = re.compile(r"\d+")

UNKNOWN = ProcedureInfo(ProcedureType.OTHER, Category.UNKNOWN, PdfStrategy.COMBINED)


class DocumentShape(Enum):
    NONE = "none"  # no root element could be recovered
    SOCIAL_INSURANCE_FORM = "social_insurance_form"
    DATA_ROOT = "data_root"
    EMPLOYMENT_DOC = "employment_doc"
    UNKNOWN = "unknown"


def detect_shape(doc: ParsedDocument) -> DocumentShape:
    tag = doc.root_tag
    if tag is None:
        return DocumentShape.NONE
    if tag in SOCIAL_INSURANCE_FORMS:
        return DocumentShape.SOCIAL_INSURANCE_FORM
    if tag == "DataRoot":
        return DocumentShape.DATA_ROOT
    if tag == "DOC":
        return DocumentShape.EMPLOYMENT_DOC
    return DocumentShape.UNKNOWN


def _strategy_for(procedure_type: ProcedureType) -> PdfStrategy:
    if procedure_type in (ProcedureType.ACQUISITION, ProcedureType.LOSS):
        return PdfStrategy.INDIVIDUAL
    return PdfStrategy.COMBINED


def _classify_social_insurance(doc: ParsedDocument) -> ProcedureInfo:
    form_code = doc.root_tag
    procedure_type = SOCIAL_INSURANCE_FORMS[form_code]
    strategy = (
        PdfStrategy.INDIVIDUAL
        if form_code in INDIVIDUAL_REVISION_FORMS
        else _strategy_for(procedure_type)
    )
    return ProcedureInfo(procedure_type, Category.SOCIAL_INSURANCE, strategy)


def _classify_data_root(doc: ParsedDocument) -> ProcedureInfo:
    form_id = next(
        (
            text
            for element in doc.iter_elements("様式ID")
            if _DIGITS.fullmatch(text := element_text(element))
        ),
        None,
    )
    if form_id is not None:
        for fragment, procedure_type in DATA_ROOT_FORM_IDS:
            if fragment in form_id:
                return ProcedureInfo(
                    procedure_type, Category.SOCIAL_INSURANCE, PdfStrategy.INDIVIDUAL
                )
    return ProcedureInfo(
        ProcedureType.OTHER, Category.SOCIAL_INSURANCE, PdfStrategy.COMBINED
    )


def _classify_employment_doc(doc: ParsedDocument) -> ProcedureInfo:
    title = doc.first_text("TITLE")
    if title is not None:
        if "資格取得" in title:
            return ProcedureInfo(
                ProcedureType.ACQUISITION,
                Category.EMPLOYMENT_INSURANCE,
                PdfStrategy.INDIVIDUAL,
            )
        if "資格喪失" in title:
            return ProcedureInfo(
                ProcedureType.LOSS, Category.EMPLOYMENT_INSURANCE, PdfStrategy.INDIVIDUAL
            )
    return ProcedureInfo(
        ProcedureType.OTHER, Category.EMPLOYMENT_INSURANCE, PdfStrategy.COMBINED
    )


def classify_document(doc: ParsedDocument) -> ProcedureInfo:
    shape = detect_shape(doc)
    if shape is DocumentShape.SOCIAL_INSURANCE_FORM:
        return _classify_social_insurance(doc)
    if shape is DocumentShape.DATA_ROOT:
        return _classify_data_root(doc)
    if shape is DocumentShape.EMPLOYMENT_DOC:
        return _classify_employment_doc(doc)
    return UNKNOWN


def classify(xml_text: str) -> ProcedureInfo:
    """
    Classify a notice XML by its root element. Never raises.

    >>> classify("<N7140001><_被保険者/></N7140001>").type.value
    '月額変更'
    >>> classify("not xml") == UNKNOWN
    True
    """
    return classify_document(ParsedDocument.parse(xml_text))


def classify_file_name(file_name: str) -> ProcedureInfo:
    """
    Guess the procedure from a file name, for documents `classify` cannot place.

    >>> classify_file_name("雇保_資格喪失.xml").category.value
    '雇用保険'
    """
    if "月額変更" in file_name:
        return ProcedureInfo(
            ProcedureType.MONTHLY_REVISION, Category.SOCIAL_INSURANCE, PdfStrategy.COMBINED
        )
    if "算定基礎" in file_name:
        return ProcedureInfo(
            ProcedureType.BASIS_ASSESSMENT, Category.SOCIAL_INSURANCE, PdfStrategy.COMBINED
        )
    if "賞与" in file_name:
        return ProcedureInfo(
            ProcedureType.BONUS, Category.SOCIAL_INSURANCE, PdfStrategy.COMBINED
        )

    category = (
        Category.EMPLOYMENT_INSURANCE if "雇保" in file_name else Category.SOCIAL_INSURANCE
    )
    if "資格取得" in file_name or "被扶養" in file_name:
        return ProcedureInfo(ProcedureType.ACQUISITION, category, PdfStrategy.INDIVIDUAL)
    if "資格喪失" in file_name:
        return ProcedureInfo(ProcedureType.LOSS, category, PdfStrategy.INDIVIDUAL)

    return UNKNOWN
