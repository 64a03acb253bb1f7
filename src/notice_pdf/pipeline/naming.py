"""
PDF file naming.

Names are assembled from `NamingInfo` first and made filesystem safe
afterwards; extracted names are never altered before that point.
"""

import re
from pathlib import PurePosixPath

from notice_pdf.schemas import NamingInfo, ProcedureType

COVER_SHEET_TITLE = "日本年金機構からのお知らせ"
COVER_SHEET_FILE_NAME = "表紙.pdf"
FALLBACK_FILE_NAME = "通知書.pdf"

# Characters Windows forbids in file names, replaced by their full-width forms.
# The double quote is deliberately left as it is.
FORBIDDEN_CHARACTERS: dict[str, str] = {
    "/": "／",
    "\\": "＼",
    ":": "：",
    "*": "＊",
    "?": "？",
    '"': '"',
    "<": "＜",
    ">": "＞",
    "|": "｜",
}
_TRANSLATION = str.maketrans(FORBIDDEN_CHARACTERS)


def _person_file_name(info: NamingInfo) -> str:
    if info.first_insurer_name:
        if info.insurer_count > 1:
            others = info.insurer_count - 1
            return f"{info.first_insurer_name}様他{others}名_{info.notice_title}.pdf"
        return f"{info.first_insurer_name}様_{info.notice_title}.pdf"
    return f"{info.notice_title}.pdf"


def _dated_file_name(date: str | None, info: NamingInfo) -> str:
    if date:
        return f"{date}_{info.notice_title}.pdf"
    return f"{info.notice_title}.pdf"


def generate_pdf_file_name(procedure_type: ProcedureType, info: NamingInfo) -> str:
    """
    Build the (unsanitized) file name of a combined PDF.

    >>> generate_pdf_file_name(ProcedureType.ACQUISITION, NamingInfo("通知書", "山田", 3))
    '山田様他2名_通知書.pdf'
    >>> generate_pdf_file_name(ProcedureType.BONUS, NamingInfo("表紙"))
    '表紙.pdf'
    """
    if info.notice_title == COVER_SHEET_TITLE or "表紙" in info.notice_title:
        return COVER_SHEET_FILE_NAME

    if procedure_type == ProcedureType.MONTHLY_REVISION:
        # 適用年月, or 改定年月 when the notice has no 適用年月
        return _dated_file_name(info.applicable_date or info.revision_date, info)
    if procedure_type == ProcedureType.BASIS_ASSESSMENT:
        return _dated_file_name(info.revision_date, info)
    if procedure_type == ProcedureType.BONUS:
        return _dated_file_name(info.bonus_payment_date, info)
    # 取得, 喪失 and その他 all name the persons when there are any.
    return _person_file_name(info)


def sanitize_file_name(file_name: str) -> str:
    """
    Replace forbidden characters with full-width ones and normalize whitespace.

    >>> sanitize_file_name("file/name.pdf")
    'file／name.pdf'
    >>> sanitize_file_name("  a \\u3000 b.pdf  ")
    'a b.pdf'
    >>> sanitize_file_name(".pdf")
    '通知書.pdf'
    """
    sanitized = file_name.translate(_TRANSLATION)
    sanitized = re.sub(r"\s+", " ", sanitized).strip()
    if not sanitized or sanitized == ".pdf":
        return FALLBACK_FILE_NAME
    return sanitized


def generate_safe_pdf_file_name(procedure_type: ProcedureType, info: NamingInfo) -> str:
    return sanitize_file_name(generate_pdf_file_name(procedure_type, info))


def generate_individual_pdf_file_name(
    procedure_type: ProcedureType, insurer_name: str, notice_title: str
) -> str:
    """
    File name of one person's PDF when a notice is split per person.

    Only acquisition and loss notices are split, so every other type falls
    back to the title alone.
    """
    if procedure_type in (ProcedureType.ACQUISITION, ProcedureType.LOSS):
        return sanitize_file_name(f"{insurer_name}様_{notice_title}.pdf")
    return sanitize_file_name(f"{notice_title}.pdf")


def unique_file_name(file_name: str, taken: set[str]) -> str:
    """
    Return `file_name`, or `stem_2.ext`, `stem_3.ext`, ... if already taken,
    and record the result in `taken`.

    >>> taken = {"a.pdf"}
    >>> unique_file_name("a.pdf", taken), unique_file_name("a.pdf", taken)
    ('a_2.pdf', 'a_3.pdf')
    """
    candidate = file_name
    path = PurePosixPath(file_name)
    n = 2
    while candidate in taken:
        candidate = f"{path.stem}_{n}{path.suffix}"
        n += 1
    taken.add(candidate)
    return candidate
