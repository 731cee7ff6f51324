import logging

import pytest

from convergedlb.config import Config, ConfigNotFoundError, CatalogConfig, RunningConfig
from convergedlb.logger import LoggingConfig


def test_default_config(running_config: RunningConfig) -> None:
    assert Config.dict() == {
        "logging": {"verbose": False, "quiet": False},
        "catalog": {"include": [], "exclude": []},
    }
    assert isinstance(Config.catalog, CatalogConfig)
    assert isinstance(Config.logging, LoggingConfig)
    assert Config().catalog is Config.catalog
    with pytest.raises(ConfigNotFoundError):
        Config.does_not_exist
    with pytest.raises(ConfigNotFoundError):
        Config().does_not_exist


def test_load_config(running_config: RunningConfig, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LB_EXCLUDE", "internal-map")
    Config.load_config(
        {
            "catalog": {"include": ["web-map"], "exclude": ["$(LB_EXCLUDE)", "$(NOT_DEFINED_ANYWHERE)"]},
            "unknown": {"foo": "bar"},
        }
    )
    assert Config.catalog.include == ["web-map"]
    # unresolved environment variables are dropped
    assert Config.catalog.exclude == ["internal-map"]
    # untouched sections keep their defaults
    assert Config.logging.verbose is False
    assert "unknown" not in Config.dict()


def test_should_collect() -> None:
    assert CatalogConfig().should_collect("anything") is True
    assert CatalogConfig().should_collect(None) is False
    assert CatalogConfig(include=["a"]).should_collect("a") is True
    assert CatalogConfig(include=["a"]).should_collect("b") is False
    assert CatalogConfig(exclude=["a"]).should_collect("a") is False
    assert CatalogConfig(include=["a"], exclude=["a"]).should_collect("a") is False


def test_add_config_requires_kind() -> None:
    class NoKind:
        pass

    with pytest.raises(RuntimeError):
        Config.add_config(NoKind)


def test_load_logging_config(running_config: RunningConfig) -> None:
    logger = logging.getLogger("convergedlb")
    level = logger.level
    try:
        Config.load_config({"logging": {"verbose": True}})
        assert Config.logging.verbose is True
        assert logger.level == logging.DEBUG
    finally:
        logger.setLevel(level)
