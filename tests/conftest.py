import pytest

from .support import make_pdf


@pytest.fixture
def ten_page_pdf() -> bytes:
    return make_pdf(pages=10, width=300, height=400)
