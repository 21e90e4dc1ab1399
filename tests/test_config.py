import logging

from practice_planner.core.config import DEFAULT_TIMEOUT_SECONDS, StoreConfig, configure_logging


def test_from_env_reads_and_strips(monkeypatch):
    monkeypatch.setenv("PRACTICE_STORE_URL", " https://cms.example.com/// ")
    monkeypatch.setenv("PRACTICE_STORE_TOKEN", "tok")
    monkeypatch.setenv("PRACTICE_STORE_TIMEOUT", "12.5")
    monkeypatch.setenv("PRACTICE_LOG_LEVEL", "info")
    monkeypatch.delenv("PRACTICE_STORE_FILE", raising=False)

    config = StoreConfig.from_env()
    assert config.api_url == "https://cms.example.com"
    assert config.api_token == "tok"
    assert config.timeout == 12.5
    assert config.log_level == "INFO"
    assert config.store_file is None
    assert config.is_remote_configured()


def test_store_option_beats_env_file(monkeypatch):
    monkeypatch.setenv("PRACTICE_STORE_FILE", "from-env.yaml")
    assert StoreConfig.from_env().store_file == "from-env.yaml"
    assert StoreConfig.from_env(store_file="cli.yaml").store_file == "cli.yaml"


def test_defaults_when_unset_or_bad(monkeypatch):
    for key in ("PRACTICE_STORE_URL", "PRACTICE_STORE_TOKEN", "PRACTICE_STORE_FILE", "PRACTICE_LOG_LEVEL"):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("PRACTICE_STORE_TIMEOUT", "soon")

    config = StoreConfig.from_env()
    assert config.api_url is None
    assert config.timeout == DEFAULT_TIMEOUT_SECONDS
    assert config.log_level == "WARNING"
    assert not config.is_remote_configured()


def test_configure_logging_sets_package_level():
    configure_logging("ERROR")
    assert logging.getLogger("practice_planner").level == logging.ERROR
    configure_logging("ERROR", verbose=True)
    assert logging.getLogger("practice_planner").level == logging.DEBUG
    configure_logging("NOT_A_LEVEL")
    assert logging.getLogger("practice_planner").level == logging.WARNING
    handlers = logging.getLogger("practice_planner").handlers
    assert len(handlers) == 1
