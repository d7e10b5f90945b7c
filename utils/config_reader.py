import sys
from logging import Logger
from pathlib import Path
from typing import List

import yaml

from clinic_sync.catalog import DEFAULT_JOBS
from clinic_sync.config import Config, SyncJob, build_config, build_jobs

"""
Config
Loads the sync YAML file (api credentials, sync jobs, report and output
settings) and turns it into the Config / SyncJob values the sync core
expects. ${ENV_VAR} references are expanded when the values are built, so
secrets can stay out of the file.
"""


class ConfigReader:
    def __init__(self, log: Logger, configs_path: Path) -> None:
        """Initializes the reader with a configurations file path and a logger.

        :param configs_path: Path to the YAML configurations file.
        :param log: Logger instance for logging messages.
        """
        self.configs_path = Path(configs_path)
        self.configs_data = None
        self.log = log

    def load_configurations(self) -> "ConfigReader":
        """Loads the YAML file into configs_data.

        :return: Self for fluent interface.
        :raises SystemExit: If the file is missing, unreadable or not a mapping.
        """
        try:
            self._check_path_exists()
            with open(self.configs_path, "rb") as configs_file:
                data = yaml.safe_load(configs_file) or {}
        except FileNotFoundError as e:
            self.log.error("Issue loading file: %s" % (e))
            sys.exit(1)
        except (OSError, yaml.YAMLError) as e:
            self.log.error("Issue loading file '%s': %s" % (self.configs_path, e))
            sys.exit(1)

        if not isinstance(data, dict):
            self.log.error(
                "Config file '%s' must contain a mapping at the top level."
                % (self.configs_path)
            )
            sys.exit(1)
        self.configs_data = data
        self.log.info("Configuration loaded from '%s'." % (self.configs_path))
        return self

    def api_config(self) -> Config:
        return build_config(self._data())

    def sync_jobs(self) -> List[SyncJob]:
        return build_jobs(self._data(), DEFAULT_JOBS)

    def section(self, name: str) -> dict:
        return dict(self._data().get(name) or {})

    def _data(self) -> dict:
        if self.configs_data is None:
            self.load_configurations()
        return self.configs_data

    def _check_path_exists(self) -> None:
        """Checks if the Config file exists at the specified path.

        :raises FileNotFoundError: If the configurations file does not exist.
        """
        if not self.configs_path.is_file():
            raise FileNotFoundError(
                "The file '%s' does not exist." % (self.configs_path)
            )
