import pytest

from print_analytics.core.config import ENV_OVERRIDES, build_config, get_default_config, load_config, merge_config
from print_analytics.utils.exceptions import ConfigurationError


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    for name in ENV_OVERRIDES:
        monkeypatch.delenv(name, raising=False)


def test_merge_config_is_deep_and_does_not_mutate_base():
    base = get_default_config()
    merged = merge_config(base, {"server": {"port": 8080}})

    assert merged["server"]["port"] == 8080
    assert merged["server"]["host"] == "0.0.0.0"
    assert base["server"]["port"] == 3000


def test_build_config_generates_secret_when_missing():
    config = build_config()

    assert config["auth"]["jwt_secret"]
    assert config["auth"]["token_ttl_seconds"] == 3600
    assert config["rate_limits"]["auth"] == {"max_calls": 5, "window_seconds": 900}


@pytest.mark.parametrize("overrides", [
    {"server": {"port": 70000}},
    {"server": {"environment": "staging"}},
    {"storage": {"backend": "mongodb"}},
    {"auth": {"token_ttl_seconds": 0}},
    {"rate_limits": {"api": {"max_calls": 0, "window_seconds": 900}}},
])
def test_build_config_rejects_invalid_values(overrides):
    with pytest.raises(ConfigurationError):
        build_config(overrides)


def test_load_config_reads_yaml_then_environment(tmp_path, monkeypatch):
    config_file = tmp_path / "config.yaml"
    config_file.write_text(
        "server:\n  port: 4000\nstorage:\n  backend: json\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("PORT", "5000")
    monkeypatch.setenv("JWT_SECRET", "from-env")

    config = load_config(config_file=config_file)

    assert config["server"]["port"] == 5000
    assert config["storage"]["backend"] == "json"
    assert config["auth"]["jwt_secret"] == "from-env"


def test_load_config_rejects_bad_env_value(tmp_path, monkeypatch):
    monkeypatch.setenv("PORT", "not-a-number")

    with pytest.raises(ConfigurationError):
        load_config(config_file=tmp_path / "missing.yaml")


def test_load_config_reports_invalid_yaml(tmp_path):
    config_file = tmp_path / "config.yaml"
    config_file.write_text("server: [unclosed", encoding="utf-8")

    with pytest.raises(ConfigurationError):
        load_config(config_file=config_file, use_env=False)
