"""dna.config settings files.

A dna.config can sit in any folder of the watched tree. Files closer to the
source file override the ones above them. The format is YAML, so the JSON
files written for earlier versions load unchanged::

    monitor: .
    outputPath: ../public
    generateOnStart: all
    logLevel: informative
"""
import os
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, List, Optional

import yaml

from .errors import ConfigurationError
from .logger import Logger, LogLevel

CONFIGURATION_FILE_NAME = "dna.config"


class GenerateOption(Enum):
    NONE = "none"
    ALL = "all"

    @classmethod
    def parse(cls, value: Any) -> "GenerateOption":
        if isinstance(value, bool):
            return cls.ALL if value else cls.NONE
        if isinstance(value, int):
            return cls.ALL if value else cls.NONE
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ConfigurationError(f"Unknown generateOnStart value '{value}'") from None


@dataclass
class DnaConfiguration:
    monitor_path: str = "."
    output_path: Optional[str] = None
    generate_on_start: GenerateOption = GenerateOption.NONE
    process_and_close: bool = False
    log_level: LogLevel = LogLevel.INFORMATIVE
    process_delay: int = 300


def resolve_path(base_dir: str, path: str) -> str:
    path = os.path.expanduser(str(path))
    if not os.path.isabs(path):
        path = os.path.join(base_dir, path)
    return os.path.normpath(os.path.abspath(path))


def load_settings(path: str, logger: Optional[Logger] = None) -> Optional[Dict[str, Any]]:
    """Raw settings of one dna.config, or None when missing or unreadable"""
    if not os.path.isfile(path):
        return None
    try:
        with open(path, "r", encoding="utf-8") as f:
            settings = yaml.safe_load(f) or {}
        if not isinstance(settings, dict):
            raise ConfigurationError("expected a mapping of settings")
        return settings
    except (OSError, yaml.YAMLError, ConfigurationError) as e:
        if logger:
            logger.error(f"Failed to load configuration file: {path}. {e}")
        return None


def apply_settings(configuration: DnaConfiguration, settings: Dict[str, Any], path: str,
                   logger: Optional[Logger] = None) -> DnaConfiguration:
    """Returns a copy of configuration with the settings from the file at path applied"""
    folder = os.path.dirname(os.path.abspath(path))
    result = replace(configuration)
    log = logger.log_tabbed if logger else (lambda *args, **kwargs: None)

    try:
        if settings.get("monitor"):
            result.monitor_path = resolve_path(folder, settings["monitor"])
            log("Monitor", result.monitor_path, 1)
        if settings.get("outputPath"):
            result.output_path = resolve_path(folder, settings["outputPath"])
            log("Output", result.output_path, 1)
        if settings.get("generateOnStart") is not None:
            result.generate_on_start = GenerateOption.parse(settings["generateOnStart"])
            log("GenerateOnStart", result.generate_on_start.value, 1)
        if settings.get("processAndClose") is not None:
            result.process_and_close = bool(settings["processAndClose"])
            log("ProcessAndClose", str(result.process_and_close), 1)
        if settings.get("logLevel") is not None:
            result.log_level = LogLevel.parse(settings["logLevel"])
            log("LogLevel", result.log_level.name.lower(), 1)
        if settings.get("processDelay") is not None:
            result.process_delay = int(settings["processDelay"])
            log("ProcessDelay", f"{result.process_delay}ms", 1)
    except (ValueError, TypeError, ConfigurationError) as e:
        if logger:
            logger.error(f"Invalid setting in configuration file: {path}. {e}")
        return configuration

    return result


def load_from_files(paths: List[str], configuration: Optional[DnaConfiguration] = None,
                    logger: Optional[Logger] = None) -> DnaConfiguration:
    result = replace(configuration) if configuration else DnaConfiguration()
    for path in paths:
        settings = load_settings(path, logger)
        if settings is None:
            continue
        if logger:
            logger.log(f"Configuration: {path}")
        result = apply_settings(result, settings, path, logger)
    return result


def configuration_search_paths(file_path: str, monitor_path: str) -> List[str]:
    """dna.config paths from the monitor folder down to the file's own folder"""
    monitor_path = os.path.normpath(os.path.abspath(monitor_path))
    folder = os.path.normpath(os.path.dirname(os.path.abspath(file_path)))

    if os.path.commonpath([monitor_path, folder]) != monitor_path:
        return [os.path.join(folder, CONFIGURATION_FILE_NAME)]

    paths = []
    while True:
        paths.append(os.path.join(folder, CONFIGURATION_FILE_NAME))
        if folder == monitor_path:
            break
        folder = os.path.dirname(folder)
    paths.reverse()
    return paths


def local_configuration(file_path: str, configuration: DnaConfiguration,
                        cache: Dict[str, DnaConfiguration], logger: Optional[Logger] = None) -> DnaConfiguration:
    """Merged settings for the folder of file_path, cached per folder.

    The output folder mirrors the source tree below the dna.config that set
    outputPath, and is the source folder itself when none did.
    """
    folder = os.path.normpath(os.path.dirname(os.path.abspath(file_path)))
    key = folder.casefold()
    if key in cache:
        return cache[key]

    monitor_path = os.path.normpath(os.path.abspath(configuration.monitor_path))
    anchor, output_base = monitor_path, configuration.output_path

    result = replace(configuration)
    for path in configuration_search_paths(file_path, monitor_path):
        settings = load_settings(path, logger)
        if settings is None:
            continue
        result = apply_settings(result, settings, path)
        if settings.get("outputPath"):
            anchor, output_base = os.path.dirname(path), result.output_path

    if output_base:
        relative = os.path.relpath(folder, anchor)
        result.output_path = os.path.normpath(os.path.join(output_base, relative))
    else:
        result.output_path = folder

    cache[key] = result
    return result
