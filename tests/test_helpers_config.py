from __future__ import annotations

import logging
from pathlib import Path
from tempfile import TemporaryDirectory

import pytest

from dissect.amcache.helpers import config


def test_load_config() -> None:
    # FS layout:
    #
    # temp_dir1
    #   config_file
    #   symlink_dir2 -> ../temp_dir2
    # temp_dir2
    #   Amcache.hve

    with TemporaryDirectory() as temp_dir1, TemporaryDirectory() as temp_dir2:
        symlink = Path(temp_dir1).joinpath("symlink")
        symlink.symlink_to(temp_dir2)

        config_file = Path(temp_dir1).joinpath(config.CONFIG_NAME)
        config_file.write_text('INCLUDE_ASSOCIATED = True\nDENYLIST = "known-good.txt"')

        result = config.load(symlink.joinpath("Amcache.hve"))
        assert result.INCLUDE_ASSOCIATED is True
        assert result.DENYLIST == "known-good.txt"
        assert result.RECOVER_DELETED is False
        assert result.SKIP_TRANSACTION_LOGS is False
        assert result.ALLOWLIST is None


def test_load_config_defaults() -> None:
    result = config.load(None)

    for name, value in config.DEFAULTS.items():
        assert getattr(result, name) == value


def test_load_config_only_constants(caplog: pytest.LogCaptureFixture) -> None:
    with TemporaryDirectory() as temp_dir:
        Path(temp_dir).joinpath(config.CONFIG_NAME).write_text(
            "\n".join(
                [
                    "import os",
                    "RECOVER_DELETED = os.system('true')",
                    "SKIP_TRANSACTION_LOGS = True",
                    "ALLOWLIST, DENYLIST = 'a', 'b'",
                    "UNKNOWN = 1",
                ]
            )
        )

        with caplog.at_level(logging.WARNING):
            result = config.load([Path(temp_dir).joinpath("Amcache.hve")])

    assert result.RECOVER_DELETED is False
    assert result.SKIP_TRANSACTION_LOGS is True
    assert result.ALLOWLIST is None
    assert result.DENYLIST is None
    assert not hasattr(result, "UNKNOWN")
    assert "Unknown setting in config file: UNKNOWN" in caplog.text
