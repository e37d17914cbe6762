import json

import pytest

from gator.config import CONFIG_FILE_NAME, Config, ConfigError, config_path, read, write


def test_read_missing_file_gives_empty_config(tmp_path):
    cfg = read(tmp_path / "absent.json")
    assert cfg.url is None
    assert cfg.name is None


def test_write_then_read_round_trip(tmp_path):
    target = tmp_path / "cfg.json"
    write(Config(url="sqlite:///gator.db", name="alice"), target)
    cfg = read(target)
    assert cfg == Config(url="sqlite:///gator.db", name="alice")


def test_written_file_uses_source_keys(tmp_path):
    target = tmp_path / "cfg.json"
    write(Config(url="sqlite:///x.db", name=None), target)
    assert json.loads(target.read_text()) == {
        "db_url": "sqlite:///x.db",
        "current_user_name": None,
    }


def test_written_file_is_indented_with_two_spaces(tmp_path):
    target = tmp_path / "cfg.json"
    write(Config(url="u", name="n"), target)
    lines = target.read_text().splitlines()
    assert lines[1].startswith('  "db_url"')


def test_set_user_updates_and_persists(tmp_path):
    target = tmp_path / "cfg.json"
    write(Config(url="sqlite:///gator.db"), target)
    cfg = read(target)
    cfg.set_user("bob")
    assert cfg.name == "bob"
    reloaded = read(target)
    assert reloaded.name == "bob"
    assert reloaded.url == "sqlite:///gator.db"


def test_set_user_on_missing_file_creates_it(tmp_path):
    target = tmp_path / "new.json"
    cfg = read(target)
    cfg.set_user("carol")
    assert json.loads(target.read_text())["current_user_name"] == "carol"


def test_read_invalid_json_raises(tmp_path):
    target = tmp_path / "cfg.json"
    target.write_text("{not json")
    with pytest.raises(ConfigError):
        read(target)


def test_read_non_object_raises(tmp_path):
    target = tmp_path / "cfg.json"
    target.write_text("[1, 2]")
    with pytest.raises(ConfigError):
        read(target)


def test_read_wrong_value_type_raises(tmp_path):
    target = tmp_path / "cfg.json"
    target.write_text('{"db_url": 5}')
    with pytest.raises(ConfigError):
        read(target)


def test_read_ignores_unknown_keys(tmp_path):
    target = tmp_path / "cfg.json"
    target.write_text('{"db_url": "a", "current_user_name": "b", "extra": 1}')
    assert read(target) == Config(url="a", name="b")


def test_config_path_is_in_home(tmp_path, monkeypatch):
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setenv("USERPROFILE", str(tmp_path))
    assert config_path() == tmp_path / CONFIG_FILE_NAME


def test_default_path_round_trip(tmp_path, monkeypatch):
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setenv("USERPROFILE", str(tmp_path))
    write(Config(url="db", name="dave"))
    assert read() == Config(url="db", name="dave")
    assert (tmp_path / CONFIG_FILE_NAME).exists()


def test_str_format():
    assert str(Config(url="db", name=None)) == 'Config{URL: "db", Name: ""}'