"""Smoke test: verify the transfer_classifier package is importable."""

import transfer_classifier


def test_package_version() -> None:
    """Package must declare a __version__ string."""
    assert isinstance(transfer_classifier.__version__, str)
    assert transfer_classifier.__version__ == "0.0.1"
