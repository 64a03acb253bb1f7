"""
notice-pdf: convert e-Gov notice archives (XML + XSL) into named PDFs.

Usage:
  notice-pdf convert [OPTIONS] SRC OUT
  notice-pdf inspect [OPTIONS] XML

Examples:
  notice-pdf convert download.zip converted.zip -v
  notice-pdf convert download.zip converted.zip --workers 4 --report report.csv
  notice-pdf inspect 0001_xxx/7100001.xml --cover-sheet 0001_xxx/kagami.xml
"""

import logging
from pathlib import Path
from typing import Optional

import orjson
import typer
from pydantic import ValidationError

from notice_pdf.io.archive import decode_text
from notice_pdf.io.export import export_report
from notice_pdf.pipeline.classifier import classify
from notice_pdf.pipeline.extractor import extract_naming_info
from notice_pdf.pipeline.naming import generate_safe_pdf_file_name
from notice_pdf.pipeline.orchestrator import convert_archive, split_documents
from notice_pdf.render.renderer import XsltPdfRenderer
from notice_pdf.schemas import ArchiveError, ConversionOptions

app = typer.Typer(help=__doc__, no_args_is_help=True)


def setup_logging(verbose: int):
    """Set up logging based on verbosity level."""
    if verbose == 0:
        level = logging.WARNING
    elif verbose == 1:
        level = logging.INFO
    else:  # verbose >= 2
        level = logging.DEBUG

    logging.basicConfig(level=level, format="%(levelname)s:%(name)s:%(message)s")


@app.command("convert", help="Convert an archive of notices and write the result ZIP.")
def convert(
    src: Path = typer.Argument(
        ..., exists=True, dir_okay=False, help="Input ZIP archive as downloaded"
    ),
    out: Path = typer.Argument(..., help="Output ZIP archive"),
    folder_pattern: str = typer.Option(
        r"^\d{4}_",
        "--folder-pattern",
        envvar="NOTICE_PDF_FOLDER_PATTERN",
        help="Regex selecting the folders to convert",
    ),
    workers: int = typer.Option(
        1,
        "--workers",
        "-w",
        envvar="NOTICE_PDF_WORKERS",
        help="Folders converted in parallel",
    ),
    expand_nested: bool = typer.Option(
        True,
        "--expand-nested/--no-expand-nested",
        help="Expand ZIP archives found inside the input",
    ),
    file_name_fallback: bool = typer.Option(
        False,
        "--file-name-fallback",
        help="Classify unrecognised documents by their file name",
    ),
    max_size: int = typer.Option(
        100, "--max-size", help="Largest accepted input archive, in MiB"
    ),
    report: Optional[Path] = typer.Option(
        None, "--report", "-r", help="Optional per-folder CSV report"
    ),
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase verbosity (-v for INFO, -vv for DEBUG)",
    ),
) -> None:
    """Convert every matching folder and print the summary as JSON."""
    setup_logging(verbose)

    try:
        options = ConversionOptions(
            folder_pattern=folder_pattern,
            workers=workers,
            expand_nested=expand_nested,
            file_name_fallback=file_name_fallback,
            max_archive_bytes=max_size * 1024 * 1024,
        )
    except ValidationError as e:
        raise typer.BadParameter(str(e)) from e

    try:
        result = convert_archive(src.read_bytes(), XsltPdfRenderer(), options)
    except ArchiveError as e:
        logging.error(str(e))
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e

    out.write_bytes(result.archive)
    logging.info(f"Wrote {out}")
    if report is not None:
        export_report(result.summary, report)
        logging.info(f"Wrote report {report}")
    typer.echo(result.summary.to_json(), nl=False)


@app.command("inspect", help="Show how a single notice XML would be named.")
def inspect(
    xml: Path = typer.Argument(..., exists=True, dir_okay=False, help="Notice XML"),
    cover_sheet: Optional[Path] = typer.Option(
        None, "--cover-sheet", "-c", exists=True, dir_okay=False, help="Kagami XML"
    ),
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase verbosity (-v for INFO, -vv for DEBUG)",
    ),
) -> None:
    """Print classification, naming info and resulting PDF names as JSON."""
    setup_logging(verbose)

    xml_text = decode_text(xml.read_bytes())
    cover_sheet_xml = decode_text(cover_sheet.read_bytes()) if cover_sheet else None

    info = classify(xml_text)
    naming = extract_naming_info(xml_text, info.type, cover_sheet_xml)
    documents = split_documents(xml_text, info, naming, label=xml.name)

    typer.echo(
        orjson.dumps(
            {
                "procedure": info,
                "naming": naming,
                "file_name": generate_safe_pdf_file_name(info.type, naming),
                "individual_file_names": [name for name, _ in documents or []],
            },
            option=orjson.OPT_APPEND_NEWLINE | orjson.OPT_INDENT_2,
        ).decode("utf-8"),
        nl=False,
    )


if __name__ == "__main__":
    app()
