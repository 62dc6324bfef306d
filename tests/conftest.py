"""Shared test configuration and fixtures."""

from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).parent.parent.resolve()

# Page 1 has a two-cell row above a one-cell row; page 2 has no text
SAMPLE_PAGES = [
    b"BT /F1 12 Tf 72 700 Td (Hello) Tj ET\n"
    b"BT /F1 12 Tf 200 700 Td (World) Tj ET\n"
    b"BT /F1 12 Tf 72 680 Td (Row2) Tj ET",
    b"",
]


def build_pdf(pages: list[bytes]) -> bytes:
    """Return a minimal PDF with one Helvetica font and one content stream per page."""
    kids = " ".join(f"{4 + 2 * i} 0 R" for i in range(len(pages)))
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        f"<< /Type /Pages /Kids [{kids}] /Count {len(pages)} >>".encode(),
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    ]
    for i, content in enumerate(pages):
        objects.append(
            (
                "<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
                f"/Resources << /Font << /F1 3 0 R >> >> /Contents {5 + 2 * i} 0 R >>"
            ).encode()
        )
        objects.append(b"<< /Length %d >>\nstream\n" % len(content) + content + b"\nendstream")

    out = bytearray(b"%PDF-1.4\n")
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += b"%d 0 obj\n" % number + body + b"\nendobj\n"

    xref_at = len(out)
    out += b"xref\n0 %d\n" % (len(objects) + 1)
    out += b"0000000000 65535 f \n"
    for offset in offsets:
        out += b"%010d 00000 n \n" % offset
    out += b"trailer\n<< /Size %d /Root 1 0 R >>\nstartxref\n%d\n%%%%EOF\n" % (len(objects) + 1, xref_at)
    return bytes(out)


@pytest.fixture
def sample_pdf(tmp_path):
    path = tmp_path / "sample.pdf"
    path.write_bytes(build_pdf(SAMPLE_PAGES))
    return path
