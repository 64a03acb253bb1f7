"""
Drives classification, extraction, splitting and naming over the folders of
an archive and hands every document to the renderer.

Documents inside a folder are processed one after another; folders may run
in parallel since they share nothing.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import PurePosixPath
from typing import Optional

from tqdm import tqdm

from notice_pdf.io.archive import decode_text, read_archive
from notice_pdf.io.export import create_result_archive
from notice_pdf.io.folders import analyze_folder_structure
from notice_pdf.pipeline.classifier import classify, classify_file_name
from notice_pdf.pipeline.extractor import extract_naming_info
from notice_pdf.pipeline.naming import (
    generate_individual_pdf_file_name,
    generate_safe_pdf_file_name,
    unique_file_name,
)
from notice_pdf.pipeline.splitter import find_subject_blocks, split_by_subject
from notice_pdf.render.renderer import Renderer
from notice_pdf.schemas import (
    ArchiveError,
    Category,
    ConversionOptions,
    ConversionResult,
    ConversionSummary,
    DocumentPair,
    FolderStructure,
    NamingInfo,
    NoFoldersFoundError,
    OutputFile,
    PdfStrategy,
    ProcedureInfo,
    ProcessedFolder,
    RenderError,
)

ERROR_SUFFIX = "_変換エラー.txt"


class _FolderOutputs:
    """Generated files of one folder, with collision-free names."""

    def __init__(self, existing_names: list[str]):
        self.outputs: list[OutputFile] = []
        self.failures = 0
        self.taken: set[str] = set(existing_names)

    def add(self, name: str, data: bytes) -> str:
        name = unique_file_name(name, self.taken)
        self.outputs.append(OutputFile(name, data))
        return name

    def add_failure(self, pdf_name: str, pair: DocumentPair, error: Exception) -> str:
        self.failures += 1
        message = (
            "PDFの変換中にエラーが発生しました\n\n"
            f"ドキュメント: {pair.xml_file_name}\n"
            f"スタイルシート: {pair.xsl_file_name}\n"
            f"出力予定ファイル: {pdf_name}\n"
            f"エラー内容: {error}\n"
        )
        return self.add(
            f"{PurePosixPath(pdf_name).stem}{ERROR_SUFFIX}", message.encode("utf-8")
        )


def _render(renderer: Renderer, xml_text: str, xsl_text: str) -> bytes:
    return renderer.render(renderer.transform(xml_text, xsl_text))


def _render_into(
    outputs: _FolderOutputs,
    renderer: Renderer,
    pair: DocumentPair,
    pdf_name: str,
    xml_text: str,
    xsl_text: str,
) -> None:
    try:
        pdf = _render(renderer, xml_text, xsl_text)
    except RenderError as e:
        logging.error(f"Failed to convert {pair.xml_path} ({pdf_name}): {e}")
        outputs.add_failure(pdf_name, pair, e)
        return
    name = outputs.add(pdf_name, pdf)
    logging.info(f"  -> {name}")


def split_documents(
    xml_text: str, info: ProcedureInfo, naming: NamingInfo, label: str = ""
) -> Optional[list[tuple[str, str]]]:
    """
    Per-person `(file_name, xml)` pairs for a notice that is to be split, or
    None when the notice is rendered as one combined PDF.

    A notice is split when its strategy is individual and it names more than
    one person. If the person blocks in the XML do not line up with the named
    persons, or a block cannot be isolated, a warning is logged and None is
    returned so the caller falls back to one combined PDF.
    """
    if info.pdf_strategy != PdfStrategy.INDIVIDUAL or len(naming.all_insurers) <= 1:
        return None

    blocks = find_subject_blocks(xml_text)
    if len(blocks) != len(naming.all_insurers):
        logging.warning(
            f"{label}: {len(blocks)} person blocks but {len(naming.all_insurers)} "
            "named persons, generating a combined PDF instead"
        )
        return None

    documents = []
    for insurer, block in zip(naming.all_insurers, blocks):
        individual_xml = split_by_subject(xml_text, block)
        if individual_xml == xml_text:
            logging.warning(
                f"{label}: could not isolate {insurer.name}, generating a combined PDF instead"
            )
            return None
        name = generate_individual_pdf_file_name(
            info.type, insurer.name, naming.notice_title
        )
        documents.append((name, individual_xml))
    return documents


def _classify_pair(
    xml_text: str, pair: DocumentPair, options: ConversionOptions
) -> ProcedureInfo:
    info = classify(xml_text)
    if info.category == Category.UNKNOWN and options.file_name_fallback:
        guessed = classify_file_name(pair.xml_file_name)
        if guessed.category != Category.UNKNOWN:
            logging.info(
                f"{pair.xml_file_name}: classified by file name as {guessed.type.value}"
            )
            return guessed
    return info


def process_document(
    pair: DocumentPair,
    folder: FolderStructure,
    renderer: Renderer,
    outputs: _FolderOutputs,
    cover_sheet_xml: Optional[str],
    options: ConversionOptions,
) -> None:
    xml_text = decode_text(folder.files[pair.xml_path])
    xsl_text = decode_text(folder.files[pair.xsl_path])

    info = _classify_pair(xml_text, pair, options)
    naming = extract_naming_info(xml_text, info.type, cover_sheet_xml)
    logging.debug(f"{pair.xml_file_name}: {info} {naming}")

    documents = split_documents(xml_text, info, naming, label=pair.xml_path)
    if documents is not None:
        logging.info(
            f"{pair.xml_file_name}: generating {len(documents)} individual PDFs"
        )
        for pdf_name, individual_xml in documents:
            _render_into(outputs, renderer, pair, pdf_name, individual_xml, xsl_text)
        return

    pdf_name = generate_safe_pdf_file_name(info.type, naming)
    _render_into(outputs, renderer, pair, pdf_name, xml_text, xsl_text)


def process_folder_documents(
    folder: FolderStructure,
    renderer: Renderer,
    options: Optional[ConversionOptions] = None,
) -> ProcessedFolder:
    """
    Convert every document pair of `folder`, cover sheet first.

    Render failures become `*_変換エラー.txt` entries instead of PDFs; any other
    exception propagates to the caller.
    """
    options = options or ConversionOptions()
    outputs = _FolderOutputs(
        [PurePosixPath(path).name for path in folder.files]
    )

    cover_sheet_xml: Optional[str] = None
    kagami = next((d for d in folder.documents if d.type == "kagami"), None)
    if kagami is not None:
        cover_sheet_xml = decode_text(folder.files[kagami.xml_path])

    for index, pair in enumerate(folder.documents, start=1):
        logging.info(
            f"Document {index}/{len(folder.documents)}: {pair.xml_file_name}"
        )
        process_document(pair, folder, renderer, outputs, cover_sheet_xml, options)

    return ProcessedFolder(
        folder_name=folder.folder_name,
        success=True,
        outputs=outputs.outputs,
        failures=outputs.failures,
        xml_xsl_files=folder.xml_xsl_files,
        other_files=folder.other_files,
    )


def _process_folder_safely(
    folder: FolderStructure, renderer: Renderer, options: ConversionOptions
) -> ProcessedFolder:
    start = time.perf_counter()
    try:
        result = process_folder_documents(folder, renderer, options)
    except Exception as e:
        logging.exception(f"Failed to process folder {folder.folder_name}")
        return ProcessedFolder(
            folder_name=folder.folder_name,
            success=False,
            xml_xsl_files=folder.xml_xsl_files,
            other_files=folder.other_files,
            error=str(e) or type(e).__name__,
        )
    logging.info(
        f"{folder.folder_name}: {result.pdf_count} PDFs generated "
        f"({time.perf_counter() - start:.1f}s)"
    )
    return result


def process_folders(
    folders: list[FolderStructure],
    renderer: Renderer,
    options: Optional[ConversionOptions] = None,
) -> list[ProcessedFolder]:
    """
    Process folders in order; a failing folder is reported, not raised.

    With `options.workers > 1` folders run on a thread pool; results keep the
    input order either way.
    """
    options = options or ConversionOptions()
    if options.workers == 1 or len(folders) <= 1:
        return [
            _process_folder_safely(folder, renderer, options)
            for folder in tqdm(folders, desc="Folders", unit="folder")
        ]

    with ThreadPoolExecutor(max_workers=options.workers) as pool:
        results = pool.map(
            lambda folder: _process_folder_safely(folder, renderer, options), folders
        )
        return list(tqdm(results, total=len(folders), desc="Folders", unit="folder"))


def convert_archive(
    data: bytes,
    renderer: Renderer,
    options: Optional[ConversionOptions] = None,
) -> ConversionResult:
    """
    Convert a whole input archive into the output archive and its summary.

    :param data: the uploaded ZIP archive
    :param renderer: XSLT + PDF collaborator
    :param options: conversion options; defaults apply when omitted
    :raises ArchiveError: when the archive is too large or unreadable
    :raises NoFoldersFoundError: when no folder matches `options.folder_pattern`
    """
    options = options or ConversionOptions()
    if len(data) > options.max_archive_bytes:
        raise ArchiveError(
            f"Archive is {len(data)} bytes, the limit is {options.max_archive_bytes}"
        )

    files = read_archive(data, expand_nested=options.expand_nested)
    folders, root_files = analyze_folder_structure(files, options.folder_pattern)
    if not folders:
        raise NoFoldersFoundError(
            f"No folder matching '{options.folder_pattern}' in the archive"
        )
    logging.info(f"Found {len(folders)} folders")

    processed = process_folders(folders, renderer, options)
    summary = ConversionSummary.from_folders(processed)
    logging.info(
        f"Conversion complete: {summary.succeeded} succeeded, {summary.failed} failed"
    )
    for report in summary.folders:
        if report.success:
            logging.info(f"  ✓ {report.folder}: {report.pdf_count} PDFs")
        else:
            logging.info(f"  ✗ {report.folder}: {report.error}")

    archive = create_result_archive(processed, folders, root_files)
    return ConversionResult(archive=archive, summary=summary)
