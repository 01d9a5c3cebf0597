import pytest

from file_loader import FileLoader, PDF_TEXT_PLACEHOLDER
from schema import FileTooLargeError, UnsupportedFileError


@pytest.fixture
def loader():
    return FileLoader(max_file_mb=1)


@pytest.mark.parametrize("name, mime_type", [
    ("beleg.jpg", "image/jpeg"),
    ("beleg.JPEG", "image/jpeg"),
    ("beleg.png", "image/png"),
    ("beleg.bmp", "image/bmp"),
    ("auszug.pdf", "application/pdf"),
])
def test_supported_files(loader, tmp_path, name, mime_type):
    path = tmp_path / name
    path.write_bytes(b"data")

    payload, detected = loader.read_bytes(str(path))
    assert payload == b"data"
    assert detected == mime_type


def test_unsupported_type(loader, tmp_path):
    path = tmp_path / "tabelle.xlsx"
    path.write_bytes(b"data")
    with pytest.raises(UnsupportedFileError, match=".xlsx"):
        loader.validate(str(path))


def test_too_large(tmp_path):
    path = tmp_path / "gross.png"
    path.write_bytes(b"0" * 2048)
    with pytest.raises(FileTooLargeError):
        FileLoader(max_file_mb=0.001).validate(str(path))


def test_missing_file(loader, tmp_path):
    with pytest.raises(FileNotFoundError):
        loader.validate(str(tmp_path / "fehlt.pdf"))


def test_unreadable_pdf_gives_placeholder(loader, tmp_path):
    path = tmp_path / "kaputt.pdf"
    path.write_bytes(b"not a pdf at all")
    assert loader.extract_pdf_text(str(path)) == PDF_TEXT_PLACEHOLDER
