"""
Application Configuration Loader
Loads corpus, classifier and telemetry settings from configs/app.yaml

Environment variables (read from .env when present) override the YAML values:
REVIEWS_SOURCE, SENTIMENT_MODEL_ID, TELEMETRY_ENDPOINT.
"""
import os
import yaml
from pathlib import Path
from typing import Dict, Any

from dotenv import load_dotenv

load_dotenv()

ENV_OVERRIDES = {
    'corpus': {'source': 'REVIEWS_SOURCE'},
    'classifier': {'model_id': 'SENTIMENT_MODEL_ID'},
    'telemetry': {'endpoint': 'TELEMETRY_ENDPOINT'},
}


class AppConfig:

    def __init__(self, config_path: str="configs/app.yaml"):
        """
        Initialize the config loader.

        :param config_path: Path to app.yaml
        """
        self.config_path = Path(config_path)
        self._config = None

    def load(self):
        """Load configuration from app.yaml"""
        with open(self.config_path, 'r') as f:
            self._config = yaml.safe_load(f)

    def _section(self, name: str) -> Dict[str, Any]:
        if self._config is None:
            self.load()
        if self._config is None:
            raise ValueError("Failed to load configuration")

        section = dict(self._config.get(name) or {})
        for key, env_name in ENV_OVERRIDES.get(name, {}).items():
            value = os.getenv(env_name)
            if value:
                section[key] = value
        return section

    @property
    def corpus(self) -> Dict[str, Any]:
        """Get corpus config"""
        return self._section('corpus')

    @property
    def classifier(self) -> Dict[str, Any]:
        """Get classifier config"""
        return self._section('classifier')

    @property
    def telemetry(self) -> Dict[str, Any]:
        """Get telemetry config"""
        return self._section('telemetry')
