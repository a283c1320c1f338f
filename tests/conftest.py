from pathlib import Path
import pytest

TEXTS = Path(__file__).parent / "texts"


@pytest.fixture
def texts():
    return {
        "escapes": TEXTS / "escapes.txt",
        "bytes": TEXTS / "bytes.txt",
        "croatian": TEXTS / "croatian.txt",
        "mojibake": TEXTS / "mojibake.txt",
    }
