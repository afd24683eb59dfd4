import os

# Must be set before app modules are imported
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("EMBED_MAX_RETRIES", "0")
os.environ.setdefault("EMBED_BACKOFF_FACTOR", "0")
os.environ.setdefault("ALLOW_DEGRADED_SCORE", "false")

import numpy as np
import pytest


class FakeEmbeddingClient:
    """Stands in for EmbeddingClient; maps text to a fixed vector."""

    def __init__(self, vectors=None, default=None, error=None, fail_on=None):
        self.vectors = vectors or {}
        self.default = default if default is not None else [1.0, 0.0, 0.0]
        self.error = error
        self.fail_on = fail_on
        self.calls = []

    async def embed(self, text, timeout=None):
        self.calls.append(text)
        if self.error is not None and (self.fail_on is None or text == self.fail_on):
            raise self.error
        return np.asarray(self.vectors.get(text, self.default), dtype=np.float32)


@pytest.fixture
def fake_embedder():
    return FakeEmbeddingClient


@pytest.fixture
def sample_resume():
    return "5 years experience in React and Node.js"


@pytest.fixture
def sample_job():
    return "We need a senior engineer with 3 years experience in React, Node.js, AWS"


def _build_pdf(*pages, form=None) -> bytes:
    """
    Hand-assemble a minimal PDF. Each page argument is a content stream; `form`
    is the content of a Form XObject every page may draw with `/X1 Do`.
    """
    def stream(content, header=b""):
        return b"<< " + header + b"/Length %d >>\nstream\n" % len(content) + content + b"\nendstream"

    first_page = 5
    kids = b" ".join(b"%d 0 R" % (first_page + 2 * i) for i in range(len(pages)))
    resources = b"<< /Font << /F1 3 0 R >> /XObject << /X1 4 0 R >> >>"
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [" + kids + b"] /Count %d >>" % len(pages),
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
        stream(form or b"", b"/Type /XObject /Subtype /Form /BBox [0 0 612 792] "
               b"/Resources << /Font << /F1 3 0 R >> >> "),
    ]
    for i, content in enumerate(pages):
        objects.append(
            b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] /Resources "
            + resources + b" /Contents %d 0 R >>" % (first_page + 2 * i + 1)
        )
        objects.append(stream(content))

    out = bytearray(b"%PDF-1.4\n")
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += b"%d 0 obj\n" % number + body + b"\nendobj\n"
    xref_at = len(out)
    out += b"xref\n0 %d\n0000000000 65535 f \n" % (len(objects) + 1)
    for offset in offsets:
        out += b"%010d 00000 n \n" % offset
    out += b"trailer\n<< /Size %d /Root 1 0 R >>\nstartxref\n%d\n%%%%EOF\n" % (len(objects) + 1, xref_at)
    return bytes(out)


@pytest.fixture
def build_pdf():
    return _build_pdf
