import io
import logging
import re
import zipfile
from pathlib import PurePosixPath

from notice_pdf.schemas import ArchiveError

# General purpose flag bit 11: member name is UTF-8.
_UTF8_FLAG = 0x800
_XML_ENCODING = re.compile(rb"""<\?xml[^>]*encoding=["']([A-Za-z0-9_.\-]+)["']""")


def _member_name(info: zipfile.ZipInfo) -> str:
    """
    Member name with Windows-made Japanese archives (CP932 names without the
    UTF-8 flag) decoded properly.
    """
    if info.flag_bits & _UTF8_FLAG:
        return info.filename
    try:
        return info.filename.encode("cp437").decode("cp932")
    except (UnicodeEncodeError, UnicodeDecodeError):
        return info.filename


def _is_ignored(name: str) -> bool:
    parts = PurePosixPath(name).parts
    return "__MACOSX" in parts or PurePosixPath(name).name in {".DS_Store", "Thumbs.db"}


def read_archive(data: bytes, expand_nested: bool = True) -> dict[str, bytes]:
    """
    Read a ZIP archive into `{relative_path: content}`.

    Nested `.zip` members are expanded under their own path without the
    extension (`a/b.zip` -> `a/b/...`) when `expand_nested` is set.

    :raises ArchiveError: when `data` is not a readable ZIP archive
    """
    try:
        archive = zipfile.ZipFile(io.BytesIO(data))
    except (zipfile.BadZipFile, zipfile.LargeZipFile) as e:
        raise ArchiveError(f"Not a readable ZIP archive: {e}") from e

    files: dict[str, bytes] = {}
    with archive:
        for info in archive.infolist():
            if info.is_dir():
                continue
            name = _member_name(info).replace("\\", "/").lstrip("/")
            if _is_ignored(name):
                continue
            try:
                content = archive.read(info)
            except (zipfile.BadZipFile, RuntimeError, EOFError) as e:
                raise ArchiveError(f"Cannot read '{name}': {e}") from e

            if expand_nested and name.lower().endswith(".zip"):
                prefix = name[: -len(".zip")]
                logging.debug(f"Expanding nested archive {name}")
                try:
                    nested = read_archive(content, expand_nested=True)
                except ArchiveError:
                    logging.warning(f"Keeping unreadable nested archive as-is: {name}")
                    files[name] = content
                    continue
                for nested_name, nested_content in nested.items():
                    files[f"{prefix}/{nested_name}"] = nested_content
                continue

            files[name] = content
    return files


def write_archive(entries: dict[str, bytes]) -> bytes:
    """Write `{relative_path: content}` as a DEFLATE ZIP, members sorted by path."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(
        buffer, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=6
    ) as archive:
        for name in sorted(entries):
            archive.writestr(name, entries[name])
    return buffer.getvalue()


def decode_text(data: bytes) -> str:
    """
    Decode an XML/XSL file: BOM first, then the XML declaration, then UTF-8,
    then CP932 (Shift_JIS as written by Windows).

    >>> decode_text("<a>あ</a>".encode("cp932"))
    '<a>あ</a>'
    """
    if data.startswith(b"\xef\xbb\xbf"):
        return data[3:].decode("utf-8", errors="replace")
    if data.startswith((b"\xff\xfe", b"\xfe\xff")):
        return data.decode("utf-16", errors="replace")

    declared = _XML_ENCODING.search(data[:200])
    if declared:
        encoding = declared.group(1).decode("ascii").lower()
        if encoding in {"shift_jis", "shift-jis", "sjis", "windows-31j"}:
            encoding = "cp932"
        try:
            return data.decode(encoding)
        except (LookupError, UnicodeDecodeError):
            pass

    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        return data.decode("cp932", errors="replace")
