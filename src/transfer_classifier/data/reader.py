"""Tab-separated tags file reader."""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

from loguru import logger

from transfer_classifier.errors import DatasetNotFoundError, MalformedRecordError
from transfer_classifier.schemas.records import ImageData


def read_from_tsv(
    file: str | Path,
    folder: str | Path,
    require_label: bool = True,
) -> Iterator[ImageData]:
    """Read ``<image_filename>\\t<label>`` lines into ImageData records.

    The file is read immediately and closed; lines are parsed lazily in
    file order, so an abandoned iterator holds no open handle.  Blank lines are skipped and fields past the second are
    ignored.

    Args:
        file: Path to the headerless tags file.
        folder: Directory the image file names are relative to.
        require_label: If ``True`` (default), a line without a label field
            raises MalformedRecordError.  If ``False`` the label is ``None``.

    Raises:
        DatasetNotFoundError: ``file`` does not exist.
    """
    file = Path(file)
    if not file.is_file():
        msg = f"Tags file not found: {file}"
        raise DatasetNotFoundError(msg)
    lines = file.read_text(encoding="utf-8").split("\n")
    return _iter_records(file, lines, Path(folder), require_label)


def _iter_records(
    file: Path, lines: list[str], folder: Path, require_label: bool
) -> Iterator[ImageData]:
    count = 0
    for line_no, line in enumerate(lines, start=1):
        line = line.rstrip("\r\n")
        if not line.strip():
            continue
        fields = line.split("\t")
        if len(fields) < 2:
            if require_label:
                msg = (
                    f"{file}:{line_no}: expected 2 tab-separated fields, "
                    f"got {len(fields)}"
                )
                raise MalformedRecordError(msg)
            label = None
        else:
            label = fields[1]
        count += 1
        yield ImageData(image_path=str(folder / fields[0]), label=label)
    logger.debug(f"Read {count} record(s) from {file}")
