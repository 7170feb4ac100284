import pytest
from pydantic import ValidationError

from promptdrop.core.validation import DEFAULT_MAX_SIZE
from promptdrop.core.validation import FILE_INVALID_TYPE
from promptdrop.core.validation import FILE_TOO_LARGE
from promptdrop.core.validation import TOO_MANY_FILES
from promptdrop.core.validation import FileConstraint
from promptdrop.core.validation import describe_accept
from promptdrop.core.validation import format_bytes
from promptdrop.core.validation import matches_accept
from promptdrop.core.validation import sniff_mime_type
from promptdrop.core.validation import split_drop

MB = 1024 * 1024


@pytest.mark.parametrize(
    "num_bytes, expected",
    [
        (0, "0 Bytes"),
        (1, "1 Bytes"),
        (1023, "1023 Bytes"),
        (1024, "1 KB"),
        (1536, "1.5 KB"),
        (5 * MB, "5 MB"),
        (10 * MB, "10 MB"),
        (1024**3, "1 GB"),
        (1024**4, "1 TB"),
        (2 * 1024**5, "2048 TB"),
    ],
)
def test_format_bytes(num_bytes, expected):
    assert format_bytes(num_bytes) == expected


def test_format_bytes_rounds_to_two_decimals():
    assert format_bytes(1234567) == "1.18 MB"
    assert format_bytes(1234567, decimals=0) == "1 MB"


def test_format_bytes_negative():
    with pytest.raises(ValueError):
        format_bytes(-1)


def test_constraint_defaults_and_immutability():
    constraint = FileConstraint()
    assert constraint.max_files == 5
    assert constraint.max_size == DEFAULT_MAX_SIZE
    assert constraint.accept["application/pdf"] == [".pdf"]

    with pytest.raises(ValidationError):
        constraint.max_files = 10


@pytest.mark.parametrize("field", ["max_files", "max_size"])
def test_constraint_rejects_non_positive_limits(field):
    with pytest.raises(ValidationError):
        FileConstraint(**{field: 0})


@pytest.mark.parametrize(
    "name, mime, expected",
    [
        ("photo.png", "image/png", True),
        ("photo.webp", "image/webp", True),  # image/* wildcard
        ("scan.PDF", "", True),  # extension match, case-insensitive
        ("doc.pdf", "application/pdf", True),
        ("notes.txt", "text/plain", False),
        ("archive.zip", "application/zip", False),
    ],
)
def test_matches_accept(name, mime, expected):
    assert matches_accept(name, mime, FileConstraint()) is expected


def test_describe_accept():
    assert describe_accept(FileConstraint()) == ".jpeg, .jpg, .png, .gif, .pdf (Max 5 MB)"


def test_split_drop_tags_oversize_before_type(make_candidate):
    constraint = FileConstraint(max_size=10 * MB)
    big_zip = make_candidate("big.zip", size=15 * MB, mime_type="application/zip")

    accepted, rejected = split_drop([big_zip], constraint)

    assert accepted == []
    assert [e.code for e in rejected[0].errors] == [FILE_TOO_LARGE, FILE_INVALID_TYPE]


def test_split_drop_mixed(make_candidate):
    ok = make_candidate("ok.png")
    bad = make_candidate("bad.exe", mime_type="application/x-msdownload")

    accepted, rejected = split_drop([ok, bad], FileConstraint())

    assert accepted == [ok]
    assert len(rejected) == 1
    assert rejected[0].file == bad
    assert rejected[0].errors[0].code == FILE_INVALID_TYPE


def test_split_drop_too_many_in_one_drop(make_candidate):
    constraint = FileConstraint(max_files=2)
    candidates = [make_candidate(f"f{i}.png") for i in range(3)]

    accepted, rejected = split_drop(candidates, constraint)

    assert accepted == []
    assert len(rejected) == 3
    assert all(r.errors[0].code == TOO_MANY_FILES for r in rejected)
    assert rejected[0].errors[0].message == "Too many files"


def test_sniff_keeps_declared_type(monkeypatch):
    def _fail(*_args, **_kwargs):
        raise AssertionError("magic should not be called")

    monkeypatch.setattr("promptdrop.core.validation.magic.from_buffer", _fail)
    assert sniff_mime_type("a.png", b"data", "image/png") == "image/png"


@pytest.mark.parametrize("declared", [None, "", "application/octet-stream"])
def test_sniff_detects_generic_type(monkeypatch, declared):
    monkeypatch.setattr(
        "promptdrop.core.validation.magic.from_buffer",
        lambda buf, mime=True: "application/pdf",
    )
    assert sniff_mime_type("doc.pdf", b"%PDF-1.4", declared) == "application/pdf"


def test_sniff_falls_back_when_detection_fails(monkeypatch):
    def _boom(*_args, **_kwargs):
        raise RuntimeError("libmagic unavailable")

    monkeypatch.setattr("promptdrop.core.validation.magic.from_buffer", _boom)
    assert sniff_mime_type("x.bin", b"\x00", None) == "application/octet-stream"
