"""Reads the TibetScribe YAML configuration and fills in defaults."""

import logging
import os
from numbers import Real

import yaml

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = {
    'api_key_env': 'GEMINI_API_KEY',
    # Only 2.0-flash transcribes Tibetan script reliably
    'transcription_model': 'gemini-2.0-flash',
    'formatting_model': 'gemini-2.5-pro',
    'translation_model': 'gemini-2.5-pro',
    'explanation_model': 'gemini-2.5-pro',
    'translation_backend': 'gemini',
    'hf_translation_model': 'facebook/nllb-200-distilled-600M',
    'device': 'cuda',
    'quality_level': None,
    'log_dir': 'logs',
    'log_file': 'tibetscribe.log',
}

TRANSLATION_BACKENDS = ('gemini', 'huggingface')
DEVICES = ('cuda', 'cpu')

class ConfigLoader:
    """Loads and validates TibetScribe settings."""

    def load_config(self, config_path: str) -> dict:
        """
        Reads `config_path` and overlays it on DEFAULT_CONFIG.

        An empty file is valid and yields the defaults.

        Args:
            config_path: Path of the YAML file.

        Returns:
            The merged and validated settings.

        Raises:
            FileNotFoundError: If nothing exists at `config_path`.
            ConfigurationError: If the path is not a file, cannot be read,
                                is not a YAML mapping, or holds an invalid value.
        """
        logger.info(f"Loading configuration from: {config_path}")
        settings = self._read_mapping(config_path)
        unknown = sorted(set(settings) - set(DEFAULT_CONFIG))
        if unknown:
            logger.warning(f"Ignoring unknown configuration keys in {config_path}: {', '.join(unknown)}")

        config = dict(DEFAULT_CONFIG)
        config.update(settings)
        self.validate(config)
        logger.debug(f"Effective configuration: {config}")
        return config

    @staticmethod
    def _read_mapping(config_path: str) -> dict:
        if not os.path.exists(config_path):
            raise FileNotFoundError(f"Configuration file not found: {config_path}")
        if not os.path.isfile(config_path):
            raise ConfigurationError(f"Configuration path is not a file: {config_path}")

        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            logger.error(f"YAML syntax error in {config_path}: {e}")
            raise ConfigurationError(f"Invalid YAML format in {config_path}: {e}") from e
        except OSError as e:
            logger.error(f"Cannot read {config_path}: {e}", exc_info=True)
            raise ConfigurationError(f"Could not read configuration file {config_path}: {e}") from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigurationError(f"Invalid YAML structure in {config_path}. Root must be a mapping, got {type(data).__name__}.")
        return data

    def validate(self, config: dict) -> None:
        """
        Checks the values the pipeline depends on.

        Raises:
            ConfigurationError: If a value is out of range or unsupported.
        """
        level = config.get('quality_level')
        if level is not None:
            if isinstance(level, bool) or not isinstance(level, Real):
                raise ConfigurationError(f"quality_level must be a number or null, got {level!r}")
            if not 0 <= level <= 100:
                raise ConfigurationError(f"quality_level must be within [0, 100], got {level}")

        backend = config.get('translation_backend')
        if backend not in TRANSLATION_BACKENDS:
            raise ConfigurationError(
                f"Unsupported translation_backend '{backend}'. Choose one of: {', '.join(TRANSLATION_BACKENDS)}"
            )

        device = config.get('device')
        if device not in DEVICES:
            raise ConfigurationError(f"Invalid device '{device}'. Choose one of: {', '.join(DEVICES)}")
