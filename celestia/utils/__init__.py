"""Configuration loading for the engine."""

from .config import AttrDict, EngineSettings, build_engine_settings, load_config

__all__ = [
    "AttrDict",
    "EngineSettings",
    "build_engine_settings",
    "load_config",
]
