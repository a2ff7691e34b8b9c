"""Unit tests for the tags file reader."""

from collections.abc import Iterator
from pathlib import Path

import pytest
from pydantic import ValidationError

from transfer_classifier.data.reader import read_from_tsv
from transfer_classifier.errors import DatasetNotFoundError, MalformedRecordError


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "tags.tsv"
    path.write_text(text)
    return path


class TestReadFromTsv:
    def test_joins_folder_and_keeps_label(self, tmp_path: Path) -> None:
        tags = _write(tmp_path, "broccoli.jpg\tfood\ntoaster.jpg\tappliance\n")
        records = list(read_from_tsv(tags, tmp_path / "images"))
        assert [r.image_path for r in records] == [
            str(tmp_path / "images" / "broccoli.jpg"),
            str(tmp_path / "images" / "toaster.jpg"),
        ]
        assert [r.label for r in records] == ["food", "appliance"]

    def test_empty_file_yields_nothing(self, tmp_path: Path) -> None:
        tags = _write(tmp_path, "")
        assert list(read_from_tsv(tags, tmp_path)) == []

    def test_blank_lines_skipped(self, tmp_path: Path) -> None:
        tags = _write(tmp_path, "a.jpg\tx\n\n   \nb.jpg\ty\n")
        assert [r.label for r in read_from_tsv(tags, tmp_path)] == ["x", "y"]

    def test_crlf_line_endings(self, tmp_path: Path) -> None:
        tags = tmp_path / "tags.tsv"
        tags.write_bytes(b"a.jpg\tx\r\nb.jpg\ty\r\n")
        assert [r.label for r in read_from_tsv(tags, tmp_path)] == ["x", "y"]

    def test_extra_fields_ignored(self, tmp_path: Path) -> None:
        tags = _write(tmp_path, "a.jpg\tx\tcomment\n")
        (record,) = read_from_tsv(tags, tmp_path)
        assert record.label == "x"

    def test_preserves_file_order_and_duplicates(self, tmp_path: Path) -> None:
        tags = _write(tmp_path, "b.jpg\tx\na.jpg\tx\nb.jpg\tx\n")
        names = [Path(r.image_path).name for r in read_from_tsv(tags, tmp_path)]
        assert names == ["b.jpg", "a.jpg", "b.jpg"]

    def test_missing_label_raises_with_line_number(self, tmp_path: Path) -> None:
        tags = _write(tmp_path, "a.jpg\tx\nb.jpg\n")
        with pytest.raises(MalformedRecordError, match=":2:"):
            list(read_from_tsv(tags, tmp_path))

    def test_missing_label_allowed_when_not_required(self, tmp_path: Path) -> None:
        tags = _write(tmp_path, "a.jpg\n")
        (record,) = read_from_tsv(tags, tmp_path, require_label=False)
        assert record.label is None

    def test_missing_file_raises_immediately(self, tmp_path: Path) -> None:
        with pytest.raises(DatasetNotFoundError):
            read_from_tsv(tmp_path / "nope.tsv", tmp_path)

    def test_missing_file_is_file_not_found(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            read_from_tsv(tmp_path / "nope.tsv", tmp_path)

    def test_returns_lazy_iterator(self, tmp_path: Path) -> None:
        tags = _write(tmp_path, "a.jpg\tx\nbad-line\n")
        records = read_from_tsv(tags, tmp_path)
        assert isinstance(records, Iterator)
        # First record parses before the malformed second line is reached.
        assert next(records).label == "x"
        with pytest.raises(MalformedRecordError):
            next(records)

    def test_file_read_before_iteration(self, tmp_path: Path) -> None:
        tags = _write(tmp_path, "a.jpg\tx\nb.jpg\ty\n")
        records = read_from_tsv(tags, tmp_path)
        tags.unlink()
        assert [r.label for r in records] == ["x", "y"]

    def test_records_are_frozen(self, tmp_path: Path) -> None:
        tags = _write(tmp_path, "a.jpg\tx\n")
        (record,) = read_from_tsv(tags, tmp_path)
        with pytest.raises(ValidationError):
            record.label = "y"  # type: ignore[misc]
