import logging
from datetime import date

import pytest

from data.synthetic_records import SynthesisOptions
from utils import load_config, setup_logging


def test_load_config(tmp_path):
    path = tmp_path / "run.yaml"
    path.write_text(
        "synthesis:\n"
        "  seed: 7\n"
        "  reference_date: 2025-10-04\n"
        "region:\n"
        "  spacing_m: 250\n"
    )
    config = load_config(path)
    assert config["region"]["spacing_m"] == 250
    opts = SynthesisOptions.from_dict(config["synthesis"])
    assert opts.seed == 7
    assert opts.reference_date == date(2025, 10, 4)


def test_load_empty_config(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("")
    assert load_config(path) == {}


def test_load_missing_config(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "nope.yaml")


def test_load_non_mapping_config(tmp_path):
    path = tmp_path / "list.yaml"
    path.write_text("- 1\n- 2\n")
    with pytest.raises(ValueError):
        load_config(path)


def test_setup_logging_file(tmp_path):
    log_file = tmp_path / "run.log"
    setup_logging("debug", str(log_file))
    logging.getLogger("test").debug("hello")
    for handler in logging.getLogger().handlers:
        handler.flush()
    assert "hello" in log_file.read_text()
    setup_logging("WARNING")
