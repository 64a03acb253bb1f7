from pathlib import Path, PurePosixPath
from typing import Union

import polars as pl

from notice_pdf.io.archive import write_archive
from notice_pdf.schemas import ConversionSummary, FolderStructure, ProcessedFolder

FOLDER_ERROR_FILE_NAME = "変換エラー.txt"

REPORT_COLUMNS = ["folder", "success", "pdf_count", "failure_count", "error"]


def _folder_error_text(result: ProcessedFolder) -> str:
    return (
        "このフォルダの変換中にエラーが発生しました\n\n"
        f"フォルダ: {result.folder_name}\n"
        f"エラー内容: {result.error}\n\n"
        "元のXML/XSLファイルはそのまま含まれています。\n"
    )


def create_result_archive(
    processed: list[ProcessedFolder],
    folders: list[FolderStructure],
    root_files: dict[str, bytes],
) -> bytes:
    """
    Package generated PDFs next to the original inputs.

    Every folder keeps its original files. Successful folders gain their
    outputs; failed folders gain a `変換エラー.txt` describing the error.
    Files outside any folder are copied as they are.

    :param processed: per-folder results, as from `process_folders`
    :param folders: the folders the results were produced from
    :param root_files: archive entries outside any folder
    :return: ZIP archive bytes

    >>> from notice_pdf.schemas import OutputFile
    >>> import io, zipfile
    >>> folder = FolderStructure("0001_a", [], ["x.xml"], [], {"0001_a/x.xml": b"<x/>"})
    >>> done = ProcessedFolder("0001_a", True, [OutputFile("x.pdf", b"%PDF")])
    >>> data = create_result_archive([done], [folder], {"readme.txt": b""})
    >>> sorted(zipfile.ZipFile(io.BytesIO(data)).namelist())
    ['0001_a/x.pdf', '0001_a/x.xml', 'readme.txt']
    """
    originals = {folder.folder_name: folder.files for folder in folders}
    entries: dict[str, bytes] = dict(root_files)

    for result in processed:
        entries.update(originals.get(result.folder_name, {}))
        if result.success:
            for output in result.outputs:
                entries[str(PurePosixPath(result.folder_name, output.name))] = output.data
        else:
            entries[str(PurePosixPath(result.folder_name, FOLDER_ERROR_FILE_NAME))] = (
                _folder_error_text(result).encode("utf-8")
            )

    return write_archive(entries)


def export_report(summary: ConversionSummary, file_name: Union[str, Path]) -> None:
    """
    Write one CSV row per folder of a conversion.

    :param summary: as returned with the converted archive
    :param file_name: target CSV path
    """
    df = pl.DataFrame(
        [
            {
                "folder": report.folder,
                "success": report.success,
                "pdf_count": report.pdf_count,
                "failure_count": report.failure_count,
                "error": report.error,
            }
            for report in summary.folders
        ],
        schema={
            "folder": pl.Utf8,
            "success": pl.Boolean,
            "pdf_count": pl.Int64,
            "failure_count": pl.Int64,
            "error": pl.Utf8,
        },
    )
    df.write_csv(file_name)
