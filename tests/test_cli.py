import polars as pl
import pytest
from conftest import KAGAMI, THREE_ACQUISITIONS, FakeRenderer, zip_names
from typer.testing import CliRunner

from notice_pdf.cli import app

runner = CliRunner()


@pytest.fixture
def fake_renderer(monkeypatch):
    monkeypatch.setattr("notice_pdf.cli.XsltPdfRenderer", FakeRenderer)


def test_convert(tmp_path, notice_archive, fake_renderer):
    src = tmp_path / "download.zip"
    src.write_bytes(notice_archive)
    out = tmp_path / "converted.zip"
    report = tmp_path / "report.csv"

    result = runner.invoke(app, ["convert", str(src), str(out), "--report", str(report), "-v"])

    assert result.exit_code == 0, result.output
    assert '"succeeded": 2' in result.output
    assert "0001_取得届/健康保険・厚生年金保険被保険者資格取得届.pdf" in zip_names(
        out.read_bytes()
    )

    df = pl.read_csv(report)
    assert df.columns == ["folder", "success", "pdf_count", "failure_count", "error"]
    assert df["folder"].to_list() == ["0001_取得届", "0002_賞与"]
    assert df["pdf_count"].to_list() == [4, 1]


def test_convert_unreadable_archive(tmp_path, fake_renderer):
    src = tmp_path / "broken.zip"
    src.write_bytes(b"not a zip")

    result = runner.invoke(app, ["convert", str(src), str(tmp_path / "out.zip")])

    assert result.exit_code == 1
    assert not (tmp_path / "out.zip").exists()


def test_convert_rejects_invalid_options(tmp_path, notice_archive, fake_renderer):
    src = tmp_path / "download.zip"
    src.write_bytes(notice_archive)
    out = tmp_path / "out.zip"

    result = runner.invoke(app, ["convert", str(src), str(out), "--folder-pattern", "["])
    assert result.exit_code == 2

    result = runner.invoke(
        app, ["convert", str(src), str(out)], env={"NOTICE_PDF_WORKERS": "0"}
    )
    assert result.exit_code == 2
    assert not out.exists()


def test_inspect(tmp_path):
    xml = tmp_path / "7100001.xml"
    xml.write_text(THREE_ACQUISITIONS, encoding="utf-8")
    kagami = tmp_path / "kagami.xml"
    kagami.write_text(KAGAMI, encoding="utf-8")

    result = runner.invoke(app, ["inspect", str(xml), "--cover-sheet", str(kagami)])

    assert result.exit_code == 0, result.output
    assert '"type": "取得"' in result.output
    assert '"insurer_count": 3' in result.output
    assert "佐藤 花子様_健康保険・厚生年金保険被保険者資格取得届.pdf" in result.output
    assert '"name": "山田　太郎"' in result.output
    assert '"insurer_number": "3"' in result.output
