"""
Folder discovery and XML/XSL pairing inside an extracted archive.

An e-Gov download holds one folder per filing (`0001_...`, `0002_...`),
each with a cover sheet (kagami) and the notices, every XML next to the
stylesheet that renders it.
"""

import logging
import re
from collections import defaultdict
from pathlib import PurePosixPath
from typing import Optional

from notice_pdf.io.archive import decode_text
from notice_pdf.parsing.document import ParsedDocument
from notice_pdf.schemas import DocumentPair, FolderStructure

# Arrival numbers (到達番号) name the cover sheet of some downloads.
ARRIVAL_NUMBER_PATTERN = re.compile(r"\d{18}")


def _extension(name: str) -> str:
    return PurePosixPath(name).suffix.lower()


def is_kagami(xml_file_name: str) -> bool:
    """
    >>> is_kagami("KAGAMI.xml"), is_kagami("202501011234567890.xml"), is_kagami("7100001.xml")
    (True, True, False)
    """
    stem = PurePosixPath(xml_file_name).stem
    return stem.lower() == "kagami" or ARRIVAL_NUMBER_PATTERN.fullmatch(stem) is not None


def _referenced_stylesheet(xml_text: str, xsl_files: list[str]) -> Optional[str]:
    doc = ParsedDocument.parse(xml_text)
    for reference in (doc.first_text("STYLESHEET"), doc.stylesheet_href()):
        if reference and reference in xsl_files:
            return reference
    return None


def detect_document_pairs(
    files: dict[str, bytes], folder_path: str = ""
) -> list[DocumentPair]:
    """
    Pair every XML of one folder with its stylesheet.

    :param files: `{file_name: content}` of the files directly in the folder
    :param folder_path: archive path of the folder, prefixed to the pair paths
    :return: pairs with cover sheets first; XMLs without a stylesheet are left out
    """
    names = sorted(files)
    xml_files = [f for f in names if _extension(f) == ".xml"]
    xsl_files = [f for f in names if _extension(f) == ".xsl"]

    pairs: list[DocumentPair] = []
    for xml_file in xml_files:
        stem = PurePosixPath(xml_file).stem
        kagami = is_kagami(xml_file)

        if kagami:
            xsl_file = next(
                (f for f in xsl_files if PurePosixPath(f).stem.lower() == "kagami"),
                None,
            )
        else:
            xsl_file = next(
                (f for f in xsl_files if PurePosixPath(f).stem == stem), None
            )
            if xsl_file is None:
                # DataRoot filings name their stylesheet inside the XML.
                xsl_file = _referenced_stylesheet(decode_text(files[xml_file]), xsl_files)

        if xsl_file is None:
            logging.debug(f"No stylesheet for {folder_path}/{xml_file}, skipping")
            continue

        pairs.append(
            DocumentPair(
                type="kagami" if kagami else "notification",
                xml_path=str(PurePosixPath(folder_path, xml_file)),
                xsl_path=str(PurePosixPath(folder_path, xsl_file)),
                xml_file_name=xml_file,
                xsl_file_name=xsl_file,
            )
        )

    # sorted() is stable, so notifications keep their order.
    return sorted(pairs, key=lambda p: p.type != "kagami")


def analyze_folder_structure(
    files: dict[str, bytes], folder_pattern: str = r"^\d{4}_"
) -> tuple[list[FolderStructure], dict[str, bytes]]:
    """
    Group archive entries into folders.

    A directory is a folder when any component of its path matches
    `folder_pattern`. Entries outside every folder are returned as root files.

    :param files: `{relative_path: content}` as from `read_archive`
    :param folder_pattern: regex searched in each directory name
    :return: (folders sorted by path, root files)
    """
    pattern = re.compile(folder_pattern)
    grouped: dict[str, dict[str, bytes]] = defaultdict(dict)
    root_files: dict[str, bytes] = {}

    for path, content in files.items():
        pure = PurePosixPath(path)
        parent = pure.parent
        if parent.parts and any(pattern.search(part) for part in parent.parts):
            grouped[str(parent)][pure.name] = content
        else:
            root_files[path] = content

    folders: list[FolderStructure] = []
    for folder_path in sorted(grouped):
        folder_files = grouped[folder_path]
        documents = detect_document_pairs(folder_files, folder_path)
        xml_xsl = [f for f in sorted(folder_files) if _extension(f) in (".xml", ".xsl")]
        others = [f for f in sorted(folder_files) if _extension(f) not in (".xml", ".xsl")]
        folders.append(
            FolderStructure(
                folder_name=folder_path,
                documents=documents,
                xml_xsl_files=xml_xsl,
                other_files=others,
                files={
                    str(PurePosixPath(folder_path, name)): content
                    for name, content in folder_files.items()
                },
            )
        )
        logging.info(
            f"{folder_path}: {len(documents)} documents, {len(others)} other files"
        )

    return folders, root_files
