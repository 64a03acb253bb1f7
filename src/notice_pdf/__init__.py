from notice_pdf.pipeline.classifier import classify, classify_file_name
from notice_pdf.pipeline.extractor import extract_naming_info, extract_notice_title
from notice_pdf.pipeline.naming import (
    generate_individual_pdf_file_name,
    generate_pdf_file_name,
    generate_safe_pdf_file_name,
    sanitize_file_name,
)
from notice_pdf.pipeline.orchestrator import (
    convert_archive,
    process_folder_documents,
    process_folders,
)
from notice_pdf.pipeline.splitter import split_by_subject
from notice_pdf.render.renderer import Renderer, XsltPdfRenderer
from notice_pdf.schemas import ConversionOptions, NamingInfo, ProcedureInfo

__all__ = [
    "ConversionOptions",
    "NamingInfo",
    "ProcedureInfo",
    "Renderer",
    "XsltPdfRenderer",
    "classify",
    "classify_file_name",
    "convert_archive",
    "extract_naming_info",
    "extract_notice_title",
    "generate_individual_pdf_file_name",
    "generate_pdf_file_name",
    "generate_safe_pdf_file_name",
    "process_folder_documents",
    "process_folders",
    "sanitize_file_name",
    "split_by_subject",
]
