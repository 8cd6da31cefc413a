from pathlib import Path

import pytest

from grntest.grntest_config import ConfigError, TesterConfig, detect_suitable_diff, load_config


def test_defaults():
    config = TesterConfig()
    assert config.groonga == "groonga"
    assert config.base_directory == Path(".")
    assert config.temporary_directory == Path("tmp")
    assert config.first_timeout == 1.0
    assert config.output_type == "json"
    assert (config.diff, config.diff_options) == detect_suitable_diff()


def test_detect_suitable_diff_prefers_cut_diff(monkeypatch):
    monkeypatch.setattr("shutil.which", lambda name: "/usr/bin/cut-diff" if name == "cut-diff" else None)
    assert detect_suitable_diff() == ("cut-diff", ["--context-lines", "10"])
    monkeypatch.setattr("shutil.which", lambda name: None)
    assert detect_suitable_diff() == ("diff", ["-u"])


def test_load_config_accepts_kebab_and_snake_case(tmp_path):
    path = tmp_path / "grntest.yaml"
    path.write_text(
        "groonga: /opt/groonga/bin/groonga\n"
        "base-directory: test/functional\n"
        "diff_options: -u\n"
        "first-timeout: 2\n",
        encoding="utf-8",
    )
    config = load_config(path)
    assert config.groonga == "/opt/groonga/bin/groonga"
    assert config.base_directory == Path("test/functional")
    assert config.diff_options == ["-u"]
    assert config.first_timeout == 2.0


def test_load_config_on_top_of_existing_settings(tmp_path):
    path = tmp_path / "grntest.yaml"
    path.write_text("diff-options: [--context-lines, '3']\n", encoding="utf-8")
    base = TesterConfig(groonga="custom-groonga", diff="cut-diff")
    config = load_config(path, base)
    assert config is base
    assert config.groonga == "custom-groonga"
    assert config.diff_options == ["--context-lines", "3"]


def test_empty_config_file_keeps_defaults(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("", encoding="utf-8")
    assert load_config(path).groonga == "groonga"


@pytest.mark.parametrize(
    "text,message",
    [
        ("colour: red\n", "unknown configuration key"),
        ("- groonga\n", "top level must be a mapping"),
        ("groonga: [unclosed\n", "invalid YAML"),
        ("first-timeout: soon\n", "first-timeout must be a number"),
    ],
)
def test_invalid_config_files(tmp_path, text, message):
    path = tmp_path / "bad.yaml"
    path.write_text(text, encoding="utf-8")
    with pytest.raises(ConfigError) as excinfo:
        load_config(path)
    assert message in str(excinfo.value)


def test_missing_config_file(tmp_path):
    with pytest.raises(ConfigError):
        load_config(tmp_path / "missing.yaml")
