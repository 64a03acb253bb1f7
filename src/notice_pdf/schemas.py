import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Literal, Optional

import orjson
from pydantic import BaseModel, field_validator


class ProcedureType(str, Enum):
    MONTHLY_REVISION = "月額変更"
    BASIS_ASSESSMENT = "算定基礎届"
    BONUS = "賞与"
    ACQUISITION = "取得"
    LOSS = "喪失"
    OTHER = "その他"


class Category(str, Enum):
    SOCIAL_INSURANCE = "社会保険"
    LABOR_INSURANCE = "労働保険"
    EMPLOYMENT_INSURANCE = "雇用保険"
    UNKNOWN = "不明"


class PdfStrategy(str, Enum):
    INDIVIDUAL = "individual"  # one PDF per insured person
    COMBINED = "combined"  # all persons in one PDF


@dataclass(frozen=True)
class ProcedureInfo:
    type: ProcedureType
    category: Category
    pdf_strategy: PdfStrategy


@dataclass
class InsurerInfo:
    """
    One insured person as written in the notice.

    The name keeps full-width spaces; it is only made filesystem safe when a
    file name is generated.
    """

    name: str
    insurer_number: Optional[str] = None


@dataclass
class NamingInfo:
    notice_title: str
    first_insurer_name: str = ""
    insurer_count: int = 0
    all_insurers: list[InsurerInfo] = field(default_factory=list)
    revision_date: Optional[str] = None  # e.g. "R07年09月"
    applicable_date: Optional[str] = None  # monthly revision only
    bonus_payment_date: Optional[str] = None  # e.g. "R07年06月15日"


@dataclass
class DocumentPair:
    type: Literal["kagami", "notification"]
    xml_path: str
    xsl_path: str
    xml_file_name: str
    xsl_file_name: str


@dataclass
class FolderStructure:
    """
    A folder of the input archive: its XML/XSL pairs plus every file it holds.

    `files` is keyed by archive-relative path, the same keys used by
    `DocumentPair.xml_path` and `DocumentPair.xsl_path`.
    """

    folder_name: str
    documents: list[DocumentPair]
    xml_xsl_files: list[str]
    other_files: list[str]
    files: dict[str, bytes] = field(default_factory=dict, repr=False)


@dataclass
class OutputFile:
    name: str
    data: bytes = field(repr=False)


@dataclass
class ProcessedFolder:
    folder_name: str
    success: bool
    outputs: list[OutputFile] = field(default_factory=list)
    failures: int = 0
    xml_xsl_files: list[str] = field(default_factory=list)
    other_files: list[str] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def pdf_count(self) -> int:
        return sum(1 for o in self.outputs if o.name.endswith(".pdf"))


@dataclass
class FolderReport:
    folder: str
    success: bool
    pdf_count: int
    failure_count: int
    error: Optional[str] = None


@dataclass
class ConversionSummary:
    folders: list[FolderReport]

    @property
    def succeeded(self) -> int:
        return sum(1 for f in self.folders if f.success)

    @property
    def failed(self) -> int:
        return sum(1 for f in self.folders if not f.success)

    @property
    def pdf_count(self) -> int:
        return sum(f.pdf_count for f in self.folders)

    @property
    def failure_count(self) -> int:
        return sum(f.failure_count for f in self.folders)

    @staticmethod
    def from_folders(processed: list[ProcessedFolder]) -> "ConversionSummary":
        return ConversionSummary(
            [
                FolderReport(
                    folder=p.folder_name,
                    success=p.success,
                    pdf_count=p.pdf_count,
                    failure_count=p.failures,
                    error=p.error,
                )
                for p in processed
            ]
        )

    def to_json(self) -> str:
        """
        Serialize the summary, totals included, to a newline-terminated JSON string.
        """
        buf = orjson.dumps(
            {
                "succeeded": self.succeeded,
                "failed": self.failed,
                "pdfs": self.pdf_count,
                "failures": self.failure_count,
                "folders": self.folders,
            },
            option=orjson.OPT_APPEND_NEWLINE | orjson.OPT_INDENT_2,
        )
        return buf.decode("utf-8")


@dataclass
class ConversionResult:
    archive: bytes = field(repr=False)
    summary: ConversionSummary


class ConversionOptions(BaseModel):
    folder_pattern: str = r"^\d{4}_"
    workers: int = 1
    expand_nested: bool = True
    file_name_fallback: bool = False
    max_archive_bytes: int = 100 * 1024 * 1024

    @field_validator("folder_pattern")
    @classmethod
    def pattern_must_compile(cls, v: str) -> str:
        try:
            re.compile(v)
        except re.error as e:
            raise ValueError(f"Invalid folder pattern '{v}': {e}") from e
        return v

    @field_validator("workers", "max_archive_bytes")
    @classmethod
    def must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Must be at least 1")
        return v


class NoticePdfError(Exception):
    """Base class for errors raised by notice_pdf."""


class RenderError(NoticePdfError):
    """XSLT transformation or PDF rendering failed for one document."""


class ArchiveError(NoticePdfError):
    """The input archive could not be read."""


class NoFoldersFoundError(ArchiveError):
    """The archive holds no folder matching the folder pattern."""
