import io
import zipfile

import pytest

from notice_pdf.schemas import RenderError

XSL = """<?xml version="1.0" encoding="UTF-8"?>
<xsl:stylesheet version="1.0" xmlns:xsl="http://www.w3.org/1999/XSL/Transform">
  <xsl:template match="/">
    <html><body><xsl:value-of select="."/></body></html>
  </xsl:template>
</xsl:stylesheet>
"""

KAGAMI = """<?xml version="1.0" encoding="UTF-8"?>
<DOC>
<APPTITLE>健康保険・厚生年金保険被保険者資格取得届</APPTITLE>
<BODY>事業主 様</BODY>
</DOC>
"""

SINGLE_ACQUISITION = """<?xml version="1.0" encoding="UTF-8"?>
<N7100001>
<_被保険者>
<被保険者番号>12</被保険者番号>
<被保険者氏名><![CDATA[田名網　亜衣子]]></被保険者氏名>
</_被保険者>
</N7100001>
"""

THREE_ACQUISITIONS = """<?xml version="1.0" encoding="UTF-8"?>
<?xml-stylesheet type="text/xsl" href="7100001.xsl"?>
<N7100001>
<事業所名称>株式会社テスト</事業所名称>
<_被保険者><被保険者番号>1</被保険者番号><被保険者氏名>山田　太郎</被保険者氏名></_被保険者>
<_被保険者><被保険者番号>2</被保険者番号><被保険者氏名>佐藤　花子</被保険者氏名></_被保険者>
<_被保険者><被保険者番号>3</被保険者番号><被保険者氏名>鈴木　一郎</被保険者氏名></_被保険者>
</N7100001>
"""

# Two named persons, one unnamed block: the block count does not match.
MISMATCHED_ACQUISITIONS = """<?xml version="1.0" encoding="UTF-8"?>
<N7100001>
<_被保険者><被保険者氏名>山田　太郎</被保険者氏名></_被保険者>
<_被保険者><被保険者氏名>佐藤　花子</被保険者氏名></_被保険者>
<_被保険者><被保険者番号>3</被保険者番号></_被保険者>
</N7100001>
"""

MONTHLY_REVISION = """<?xml version="1.0" encoding="UTF-8"?>
<N7140001>
<改定年月_元号>9</改定年月_元号><改定年月_年>7</改定年月_年><改定年月_月>9</改定年月_月>
<適用年月_元号>9</適用年月_元号><適用年月_年>7</適用年月_年><適用年月_月>10</適用年月_月>
<_被保険者><被保険者氏名>山田　太郎</被保険者氏名></_被保険者>
<_被保険者><被保険者氏名>佐藤　花子</被保険者氏名></_被保険者>
</N7140001>
"""

BONUS = """<?xml version="1.0" encoding="UTF-8"?>
<N7160001>
<賞与支払年月日_元号>9</賞与支払年月日_元号>
<賞与支払年月日_年>7</賞与支払年月日_年>
<賞与支払年月日_月>6</賞与支払年月日_月>
<賞与支払年月日_日>15</賞与支払年月日_日>
<_被保険者><被保険者氏名>山田　太郎</被保険者氏名></_被保険者>
</N7160001>
"""

DATA_ROOT = """<?xml version="1.0" encoding="UTF-8"?>
<DataRoot>
<様式ID>様式</様式ID>
<様式ID>2003083901</様式ID>
<STYLESHEET>取得届.xsl</STYLESHEET>
<P1_被保険者x漢字氏名>高橋　次郎</P1_被保険者x漢字氏名>
<P1_被保険者x取得年月日>
<P1_元号>R</P1_元号><P1_年>7</P1_年><P1_月>4</P1_月><P1_日>1</P1_日>
</P1_被保険者x取得年月日>
</DataRoot>
"""

EMPLOYMENT_DOC = """<?xml version="1.0" encoding="UTF-8"?>
<DOC xmlns="http://www.e-gov.go.jp/sample">
<TITLE>雇用保険被保険者資格取得確認通知書の件</TITLE>
<NAME>伊藤　三郎</NAME>
<Signature>
<Reference URI="notice-0001_伊藤.pdf"/>
<Reference URI="notice-0002_伊藤.pdf"/>
<Reference URI="notice-0002_伊藤.pdf"/>
<Reference URI="#body"/>
</Signature>
</DOC>
"""


class FakeRenderer:
    """
    Renderer double: records every transformed XML and produces fake PDF bytes.

    Documents containing `fail_on` raise `RenderError` during the transform.
    """

    def __init__(self, fail_on=None):
        self.fail_on = fail_on
        self.transformed = []

    def transform(self, xml, xsl):
        if self.fail_on is not None and self.fail_on in xml:
            raise RenderError(f"cannot transform document containing {self.fail_on}")
        self.transformed.append(xml)
        return f"<html>{len(self.transformed)}</html>"

    def render(self, html):
        return b"%PDF-1.7 " + html.encode("utf-8")


class Cp932ZipInfo(zipfile.ZipInfo):
    """Stores the member name as CP932 without the UTF-8 flag, as Windows does."""

    def _encodeFilenameFlags(self):
        return self.filename.encode("cp932"), self.flag_bits & ~0x800


def make_zip(entries, utf8_names=True):
    """Build ZIP bytes from `{path: bytes | str}`."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        for name, content in entries.items():
            if isinstance(content, str):
                content = content.encode("utf-8")
            if utf8_names:
                archive.writestr(name, content)
            else:
                archive.writestr(Cp932ZipInfo(name), content)
    return buffer.getvalue()


def zip_names(data):
    with zipfile.ZipFile(io.BytesIO(data)) as archive:
        return sorted(archive.namelist())


def zip_read(data, name):
    with zipfile.ZipFile(io.BytesIO(data)) as archive:
        return archive.read(name)


@pytest.fixture
def renderer():
    return FakeRenderer()


@pytest.fixture
def notice_archive():
    """An e-Gov style download with two folders and a root file."""
    return make_zip(
        {
            "0001_取得届/kagami.xml": KAGAMI,
            "0001_取得届/kagami.xsl": XSL,
            "0001_取得届/7100001.xml": THREE_ACQUISITIONS,
            "0001_取得届/7100001.xsl": XSL,
            "0001_取得届/添付.txt": "memo",
            "0002_賞与/7160001.xml": BONUS,
            "0002_賞与/7160001.xsl": XSL,
            "説明.txt": "readme",
        }
    )
