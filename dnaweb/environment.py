import asyncio
import os
from dataclasses import replace
from typing import Any, Dict, List, Optional

from .config import (CONFIGURATION_FILE_NAME, DnaConfiguration, GenerateOption, apply_settings, load_from_files,
                     load_settings)
from .csharp_engine import CSharpEngine
from .data import ProcessResult
from .engine import BaseEngine
from .html_engine import HtmlEngine
from .logger import Logger, LogType
from .scheduler import ChangeScheduler, FolderWatcher


def load_configuration(working_dir: str, config_path: Optional[str] = None,
                       overrides: Optional[Dict[str, Any]] = None,
                       logger: Optional[Logger] = None) -> DnaConfiguration:
    """Defaults, then the startup dna.config, then overrides, then the monitor folder's dna.config"""
    configuration = DnaConfiguration(monitor_path=os.path.abspath(working_dir))

    config_path = config_path or os.path.join(working_dir, CONFIGURATION_FILE_NAME)
    configuration = load_from_files([os.path.abspath(config_path)], configuration, logger)

    if overrides:
        configuration = apply_settings(configuration, overrides, os.path.join(working_dir, CONFIGURATION_FILE_NAME),
                                       logger)

    # A monitor folder's own dna.config can point somewhere else again
    seen = {os.path.abspath(config_path).casefold()}
    while True:
        path = os.path.join(configuration.monitor_path, CONFIGURATION_FILE_NAME)
        if path.casefold() in seen:
            break
        seen.add(path.casefold())

        settings = load_settings(path, logger)
        if settings is None:
            break
        configuration = apply_settings(configuration, settings, path, logger)
        if overrides:
            # Settings given on the command line still win
            configuration = apply_settings(configuration, overrides,
                                           os.path.join(working_dir, CONFIGURATION_FILE_NAME))

    return configuration


class DnaEnvironment:
    """Everything the engines share: settings, the log writer and the processing lock"""

    def __init__(self, configuration: Optional[DnaConfiguration] = None, logger: Optional[Logger] = None):
        self.configuration = configuration or DnaConfiguration()
        self.logger = logger or Logger(self.configuration.log_level)
        self.engines: List[BaseEngine] = []
        self.disable_watching = False
        self._lock: Optional[asyncio.Lock] = None

    @property
    def lock(self) -> asyncio.Lock:
        # Created on first use so it belongs to the running loop
        if self._lock is None:
            self._lock = asyncio.Lock()
        return self._lock

    def add_engine(self, engine: BaseEngine) -> BaseEngine:
        self.engines.append(engine)
        return engine

    def add_default_engines(self) -> None:
        self.add_engine(HtmlEngine(self))
        self.add_engine(CSharpEngine(self))

    def all_extensions(self) -> List[str]:
        extensions = []
        for engine in self.engines:
            extensions += [ext for ext in engine.extensions if ext not in extensions]
        return extensions

    def report_when_idle(self) -> None:
        """Print the reports of every engine once the last running one finished"""
        if any(engine.processing for engine in self.engines):
            return
        for engine in self.engines:
            engine.output_generation_report()

    async def startup_generation(self) -> List[ProcessResult]:
        # Mark every engine busy first so the reports print once, at the end
        for engine in self.engines:
            engine.processing = True

        results = []
        for engine in self.engines:
            results += await engine.startup_generation()
        return results

    async def run(self) -> List[ProcessResult]:
        """Generate on start if asked, then watch until cancelled.

        With process_and_close the startup generation always runs and the
        results are returned straight away.
        """
        if not self.engines:
            self.add_default_engines()

        self.log_settings()

        if self.configuration.process_and_close:
            return await self.startup_generation()

        loop = asyncio.get_running_loop()
        watcher = FolderWatcher()
        for engine in self.engines:
            watcher.watch(ChangeScheduler(engine, loop))
        watcher.start()

        try:
            if self.configuration.generate_on_start == GenerateOption.ALL:
                await self.startup_generation()

            self.logger.log("Watching for changes, press Ctrl+C to stop", type=LogType.ATTENTION)
            while True:
                await asyncio.sleep(1)
        finally:
            self.disable_watching = True
            watcher.stop()

    def log_settings(self) -> None:
        self.logger.log("Settings", type=LogType.INFORMATION)
        self.logger.log_tabbed("Monitor", self.configuration.monitor_path, 1, type=LogType.INFORMATION)
        self.logger.log_tabbed("Output", self.configuration.output_path or "(next to sources)", 1,
                               type=LogType.INFORMATION)
        self.logger.log_tabbed("GenerateOnStart", self.configuration.generate_on_start.value, 1,
                               type=LogType.INFORMATION)
        self.logger.log_tabbed("ProcessDelay", f"{self.configuration.process_delay}ms", 1, type=LogType.INFORMATION)
        self.logger.log_tabbed("Engines", ", ".join(engine.name for engine in self.engines), 1,
                               type=LogType.INFORMATION)

    @classmethod
    def create(cls, configuration: DnaConfiguration, logger: Optional[Logger] = None) -> "DnaEnvironment":
        logger = logger or Logger(configuration.log_level)
        logger.level = configuration.log_level
        environment = cls(replace(configuration), logger)
        environment.add_default_engines()
        return environment
