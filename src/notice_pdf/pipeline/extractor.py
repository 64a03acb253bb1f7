"""
Extraction of the naming information of a notice: insured persons, the
dates a procedure is named after, and the notice title.

Each known XML shape has its own extractor returning a partial result;
`extract_naming_info` picks one and fills in the defaults.
"""

import re
from typing import Any, Optional

from lxml import etree

from notice_pdf.parsing.document import ParsedDocument
from notice_pdf.parsing.era import format_era_date
from notice_pdf.schemas import InsurerInfo, NamingInfo, ProcedureType

DEFAULT_NOTICE_TITLE = "通知書"

# Standard titles of the forms whose XML carries no title of its own.
FORM_NOTICE_TITLES: dict[str, str] = {
    "N7100001": "健康保険・厚生年金保険資格取得確認および標準報酬決定通知書",
    "N7130001": "健康保険・厚生年金保険被保険者標準報酬決定通知書",
    "N7140001": "健康保険・厚生年金保険標準報酬改定通知書",
    "N7200001": "厚生年金保険70歳以上被用者該当および標準報酬月額相当額のお知らせ",
    "N7210001": "厚生年金保険70歳以上被用者標準報酬月額相当額改定のお知らせ",
}

SUBJECT_BLOCK_TAG = "_被保険者"
# The first of these in document order wins; 被用者漢字氏名 is used by the
# 70歳以上被用者 forms.
SUBJECT_NAME_TAGS = ("被保険者氏名", "被保険者漢字氏名", "被用者漢字氏名")
SUBJECT_NAME_PATTERN = re.compile("|".join(SUBJECT_NAME_TAGS))
SUBJECT_NUMBER_TAG = "被保険者番号"

REVISION_DATE_PREFIXES = ("改定年月", "月額改定年月")
APPLICABLE_DATE_PREFIX = "適用年月"
BONUS_DATE_PREFIX = "賞与支払年月日"

DATA_ROOT_NAME_PATTERN = re.compile(r"P1_被保険者(?:x|氏名x)(?:漢字)?氏名")
DATA_ROOT_ACQUISITION_DATE_TAG = "P1_被保険者x取得年月日"

# Attached per-person PDFs are referenced as "...-0001_....pdf".
PDF_REFERENCE_PATTERN = re.compile(r".*-\d{4}_.*\.pdf")
PDF_SEQUENCE_PATTERN = re.compile(r"-(\d{4})_")


def _date_from_group(
    doc: ParsedDocument,
    prefix: str,
    with_day: bool = False,
    within: Optional[etree._Element] = None,
) -> Optional[str]:
    """
    Assemble `{prefix}_元号/_年/_月[/_日]` into an era date; None unless every part exists.
    """
    parts = ["元号", "年", "月"] + (["日"] if with_day else [])
    values = [doc.first_text(f"{prefix}_{part}", within=within) for part in parts]
    if any(v is None for v in values):
        return None
    return format_era_date(*values)


def extract_notice_title(
    xml_text: str, cover_sheet_xml: Optional[str] = None
) -> str:
    """
    Resolve the notice title: the cover sheet's APPTITLE, the document's TITLE
    without a trailing "の件", the standard title of its form, or "通知書".

    >>> extract_notice_title("<DOC><TITLE>返戻のお知らせの件</TITLE></DOC>")
    '返戻のお知らせ'
    >>> extract_notice_title("<UNKNOWN/>")
    '通知書'
    """
    return _resolve_title(ParsedDocument.parse(xml_text), cover_sheet_xml)


def _resolve_title(doc: ParsedDocument, cover_sheet_xml: Optional[str]) -> str:
    if cover_sheet_xml:
        app_title = ParsedDocument.parse(cover_sheet_xml).first_text("APPTITLE")
        if app_title:
            return app_title

    title = doc.first_text("TITLE")
    if title:
        title = re.sub(r"の件$", "", title).strip()
        if title:
            return title

    form_title = FORM_NOTICE_TITLES.get(doc.root_tag or "")
    if form_title:
        return form_title

    return DEFAULT_NOTICE_TITLE


def _extract_social_insurance(
    doc: ParsedDocument, procedure_type: ProcedureType
) -> dict[str, Any]:
    insurers: list[InsurerInfo] = []
    blocks = list(doc.iter_elements(SUBJECT_BLOCK_TAG))

    if blocks:
        # The count is the number of blocks, named or not.
        count = len(blocks)
        for block in blocks:
            name = doc.first_matching_text(SUBJECT_NAME_PATTERN, within=block)
            if name is None:
                continue
            insurers.append(
                InsurerInfo(
                    name=name,
                    insurer_number=doc.first_text(SUBJECT_NUMBER_TAG, within=block),
                )
            )
    else:
        name = doc.first_matching_text(SUBJECT_NAME_PATTERN)
        count = 0
        if name is not None:
            insurers.append(InsurerInfo(name=name))
            count = 1

    info: dict[str, Any] = {"insurer_count": count, "all_insurers": insurers}

    if procedure_type in (
        ProcedureType.MONTHLY_REVISION,
        ProcedureType.BASIS_ASSESSMENT,
    ):
        for prefix in REVISION_DATE_PREFIXES:
            revision_date = _date_from_group(doc, prefix)
            if revision_date is not None:
                info["revision_date"] = revision_date
                break

    if procedure_type == ProcedureType.MONTHLY_REVISION:
        info["applicable_date"] = _date_from_group(doc, APPLICABLE_DATE_PREFIX)

    if procedure_type == ProcedureType.BONUS:
        info["bonus_payment_date"] = _date_from_group(
            doc, BONUS_DATE_PREFIX, with_day=True
        )

    return info


def _extract_data_root(doc: ParsedDocument) -> dict[str, Any]:
    info: dict[str, Any] = {"insurer_count": 1, "all_insurers": []}

    name = doc.first_matching_text(DATA_ROOT_NAME_PATTERN)
    if name is not None:
        info["all_insurers"].append(InsurerInfo(name=name))

    acquisition = next(doc.iter_elements(DATA_ROOT_ACQUISITION_DATE_TAG), None)
    if acquisition is not None:
        values = [
            doc.first_text(f"P1_{part}", within=acquisition)
            for part in ("元号", "年", "月", "日")
        ]
        if all(v is not None for v in values):
            info["revision_date"] = format_era_date(*values)

    return info


def _extract_employment_insurance(doc: ParsedDocument) -> dict[str, Any]:
    info: dict[str, Any] = {"insurer_count": 1, "all_insurers": []}

    name = doc.first_text("NAME")
    if name is not None:
        info["all_insurers"].append(InsurerInfo(name=name))

    sequence_numbers = {
        m.group(1)
        for uri in doc.attribute_values("Reference", "URI")
        if PDF_REFERENCE_PATTERN.fullmatch(uri)
        and (m := PDF_SEQUENCE_PATTERN.search(uri))
    }
    if sequence_numbers:
        info["insurer_count"] = max(len(sequence_numbers), 1)

    return info


def extract_naming_info(
    xml_text: str,
    procedure_type: ProcedureType,
    cover_sheet_xml: Optional[str] = None,
) -> NamingInfo:
    """
    Extract everything a PDF file name is built from. Never raises.

    :param xml_text: the notice XML
    :param procedure_type: the type `classify` gave this document
    :param cover_sheet_xml: the folder's kagami XML, whose APPTITLE wins as title
    :return: a `NamingInfo`; fields that could not be found stay empty

    >>> info = extract_naming_info(
    ...     "<N7100001><_被保険者><被保険者氏名>田名網　亜衣子</被保険者氏名></_被保険者></N7100001>",
    ...     ProcedureType.ACQUISITION,
    ... )
    >>> info.insurer_count, info.first_insurer_name == "田名網　亜衣子"
    (1, True)
    """
    doc = ParsedDocument.parse(xml_text)

    info: dict[str, Any] = {}
    if doc.has_element("DataRoot"):
        info = _extract_data_root(doc)
    elif doc.has_element("DOC"):
        info = _extract_employment_insurance(doc)
    elif doc.is_social_insurance_form:
        info = _extract_social_insurance(doc, procedure_type)

    insurers = info.get("all_insurers", [])
    return NamingInfo(
        notice_title=_resolve_title(doc, cover_sheet_xml),
        first_insurer_name=insurers[0].name if insurers else "",
        insurer_count=info.get("insurer_count", 0),
        all_insurers=insurers,
        revision_date=info.get("revision_date"),
        applicable_date=info.get("applicable_date"),
        bonus_payment_date=info.get("bonus_payment_date"),
    )
