import pytest
from sqlmodel import select

import config
from import_names import (
    DEFAULT_NAMES, NameFileError, import_names, parse_names, read_name_file, seed_default_names,
)
from models import Name


def test_parse_names_drops_blank_lines():
    assert parse_names("Smith\n\n  Jones \r\n\t\nBrown") == ["Smith", "Jones", "Brown"]


def test_read_name_file(tmp_path):
    path = tmp_path / "names.txt"
    path.write_text("Smith\nJones\n")
    assert read_name_file(path) == ["Smith", "Jones"]


@pytest.mark.parametrize("filename", ["names.csv", "names", "names.txt.bak"])
def test_read_name_file_rejects_other_extensions(tmp_path, filename):
    path = tmp_path / filename
    path.write_text("Smith\n")
    with pytest.raises(NameFileError):
        read_name_file(path)


def test_read_name_file_rejects_binary(tmp_path):
    path = tmp_path / "names.txt"
    path.write_bytes(b"\xff\xfe\x00\x81")
    with pytest.raises(NameFileError):
        read_name_file(path)


def test_import_skips_existing(session, add_names):
    add_names("Smith")
    added, skipped = import_names(session, ["Smith", " Jones ", {"name": "Brown", "origin": "English"}])
    assert (added, skipped) == (2, 1)
    brown = session.exec(select(Name).where(Name.name == "Brown")).one()
    assert brown.origin == "English"
    assert brown.is_user_uploaded is False


def test_default_names_only_seed_an_empty_table(session):
    assert seed_default_names(session) == len(DEFAULT_NAMES)
    assert seed_default_names(session) == 0


def test_config_defaults_and_strict_mode(monkeypatch):
    monkeypatch.delenv("NAME_PICKER_API_URL", raising=False)
    monkeypatch.delenv("NAME_PICKER_API_KEY", raising=False)
    assert config.api_url() == config.DEFAULT_API_URL
    assert config.api_key() == config.DEFAULT_API_KEY
    assert config.server_api_key() is None

    monkeypatch.setenv("NAME_PICKER_STRICT_CONFIG", "true")
    with pytest.raises(config.ConfigError):
        config.api_url()

    monkeypatch.setenv("NAME_PICKER_API_URL", "http://names.example/")
    assert config.api_url() == "http://names.example"
