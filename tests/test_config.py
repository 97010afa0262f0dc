import pytest

from xdts2sts.config import ConfigError, ConvertConfig, load_config


@pytest.fixture(autouse=True)
def _isolated_cwd(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)


def test_defaults():
    assert load_config(env={}) == ConvertConfig()


def test_toml_file(tmp_path):
    path = tmp_path / "settings.toml"
    path.write_text('output_dir = "sts"\nworkers = 2\nsplit_cuts = true\nlog_level = "debug"\n', encoding="utf-8")
    config = load_config(path, env={})
    assert config.output_dir == "sts"
    assert config.workers == 2
    assert config.split_cuts is True
    assert config.log_level == "DEBUG"


def test_section_and_default_file(tmp_path):
    (tmp_path / "xdts2sts.toml").write_text("[xdts2sts]\nworkers = 8\n", encoding="utf-8")
    assert load_config(env={}).workers == 8


def test_environment_wins_over_file(tmp_path):
    path = tmp_path / "settings.toml"
    path.write_text("workers = 2\n", encoding="utf-8")
    config = load_config(path, env={"XDTS2STS_WORKERS": "6", "XDTS2STS_SPLIT_CUTS": "yes", "HOME": "/x"})
    assert config.workers == 6
    assert config.split_cuts is True


def test_unknown_keys_ignored(tmp_path, caplog):
    path = tmp_path / "settings.toml"
    path.write_text('colour = "blue"\n', encoding="utf-8")
    assert load_config(path, env={}) == ConvertConfig()
    assert "colour" in caplog.text


@pytest.mark.parametrize("value", ["0", "many"])
def test_bad_workers(value):
    with pytest.raises(ConfigError):
        load_config(env={"XDTS2STS_WORKERS": value})


def test_bad_toml(tmp_path):
    path = tmp_path / "settings.toml"
    path.write_text("workers = = 2\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(path, env={})


def test_missing_file(tmp_path):
    with pytest.raises(ConfigError):
        load_config(tmp_path / "nope.toml", env={})
