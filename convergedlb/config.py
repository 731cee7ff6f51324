import os
from typing import Any, ClassVar, Dict, List, Optional, Type

from attrs import define, field, fields

from convergedlb.json import from_json, to_json
from convergedlb.logger import log, LoggingConfig, setup_logger_from_config
from convergedlb.types import Json
from convergedlb.utils import replace_env_vars


class ConfigNotFoundError(AttributeError):
    pass


class RunningConfig:
    def __init__(self) -> None:
        """Initialize the global config."""
        self.data: Dict[str, Any] = {}
        self.classes: Dict[str, type] = {}
        self.types: Dict[str, Dict[str, Any]] = {}

    def apply(self, other: "RunningConfig") -> None:
        """Apply another config to this one.

        Only updates references, does not create a copy of the data.
        """
        if isinstance(other, RunningConfig):
            self.data = other.data
            self.classes = other.classes
            self.types = other.types
        else:
            raise TypeError(f"Cannot apply {type(other)} to RunningConfig")


_config = RunningConfig()


class MetaConfig(type):
    def __getattr__(cls, name: str) -> Any:
        if name in _config.data:
            return _config.data[name]
        else:
            raise ConfigNotFoundError(f"No such config {name}")


class Config(metaclass=MetaConfig):
    running_config: RunningConfig = _config

    def __getattr__(self, name: str) -> Any:
        if name in self.running_config.data:
            return self.running_config.data[name]
        else:
            raise ConfigNotFoundError(f"No such config {name}")

    @staticmethod
    def init_default_config() -> None:
        for config_id, config_data in Config.running_config.classes.items():
            if config_id not in Config.running_config.data:
                log.debug(f"Initializing defaults for config section {config_id}")
                Config.running_config.data[config_id] = config_data()

    @staticmethod
    def add_config(config: object) -> None:
        """Add a config to the config manager.

        Takes an attrs class as input and adds its fields to the config store.
        The class must have a kind ClassVar which specifies the top level config name.
        """
        if hasattr(config, "kind"):
            Config.running_config.classes[config.kind] = config  # type: ignore
            Config.running_config.types[config.kind] = {}  # type: ignore
            for attribute in fields(config):  # type: ignore
                Config.running_config.types[config.kind][attribute.name] = attribute.type  # type: ignore
        else:
            raise RuntimeError("Config must have a 'kind' attribute")

    @staticmethod
    def read_config(config: Json, reason: Optional[str] = None) -> Dict[str, Any]:
        """
        Structure the given json into the registered config classes.
        Environment variables of the form `$(NAME)` are resolved before.
        Unknown sections are logged and ignored.
        """
        new_config = {}
        for config_id, config_data in config.items():
            if config_data is None:
                config_data = {}
            if config_id in Config.running_config.classes:
                message = f" reason: {reason}" if reason else ""
                log.debug(f"Loading config section {config_id}" + message)
                clazz: Type[Any] = Config.running_config.classes[config_id]
                resolved = replace_env_vars(config_data, os.environ, keep_unresolved=False)
                new_config[config_id] = from_json(resolved, clazz)
            else:
                log.warning(f"Unknown config section {config_id}")
        return new_config

    @staticmethod
    def load_config(config: Json) -> None:
        """
        Replace the running config sections found in `config`.
        Sections not mentioned keep their current value or get their defaults.
        A logging section is applied to the package logger right away.
        """
        loaded = Config.read_config(config, reason="load")
        Config.running_config.data.update(loaded)
        Config.init_default_config()
        if LoggingConfig.kind in loaded:
            setup_logger_from_config("convergedlb", loaded[LoggingConfig.kind])

    @staticmethod
    def dict() -> Json:
        return to_json(Config.running_config.data)


@define
class CatalogConfig:
    kind: ClassVar[str] = "catalog"
    include: List[str] = field(
        factory=list,
        metadata={"description": "Names of url maps to catalog (default: all)"},
    )
    exclude: List[str] = field(
        factory=list,
        metadata={"description": "Names of url maps to skip (default: none)"},
    )

    def should_collect(self, name: Optional[str]) -> bool:
        if name is None:
            return False
        if self.include and name not in self.include:
            return False
        return name not in self.exclude


def add_default_configs() -> None:
    Config.add_config(LoggingConfig)
    Config.add_config(CatalogConfig)
