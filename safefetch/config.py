"""
safefetch settings: the packaged config.yaml, overridden by SAFEFETCH_* / LOG_* env vars.
"""

import os
import yaml
from pathlib import Path
from typing import Dict, Any


class Config:
    """Nested settings for the request deadline, transport, classifier and logging."""
    
    def __init__(self, config_path: str = None):
        """Read ``config_path``, or the config.yaml packaged with safefetch."""
        if config_path is None:
            config_path = Path(__file__).parent / "config.yaml"
        
        self.config_path = Path(config_path)
        self._config = self._load_config()
    
    def _load_config(self) -> Dict[str, Any]:
        try:
            with open(self.config_path, 'r') as f:
                config = yaml.safe_load(f) or {}
        except FileNotFoundError:
            raise FileNotFoundError(f"Configuration file not found: {self.config_path}")
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file: {e}")
        
        if not isinstance(config, dict):
            raise ValueError(f"Configuration file must contain a mapping: {self.config_path}")
        
        return self._apply_env_overrides(config)
    
    def _apply_env_overrides(self, config: Dict[str, Any]) -> Dict[str, Any]:
        env_mappings = {
            'SAFEFETCH_TIMEOUT_MS': ('request', 'timeout_ms'),
            'SAFEFETCH_USER_AGENT': ('transport', 'user_agent'),
            'SAFEFETCH_TRANSPORT_TIMEOUT': ('transport', 'timeout'),
            'SAFEFETCH_MAX_REDIRECTS': ('transport', 'max_redirects'),
            'SAFEFETCH_MAX_RESPONSE_SIZE': ('transport', 'max_response_size'),
            'SAFEFETCH_SERVER_ERROR_MIN_STATUS': ('classifier', 'server_error_min_status'),
            'LOG_LEVEL': ('logging', 'level'),
            'LOG_RENDERER': ('logging', 'renderer'),
        }
        
        for env_var, config_path in env_mappings.items():
            env_value = os.getenv(env_var)
            if env_value is not None:
                current = config
                for key in config_path[:-1]:
                    if not isinstance(current.get(key), dict):
                        current[key] = {}
                    current = current[key]
                
                current[config_path[-1]] = self._convert_env_value(env_value)
        
        return config
    
    def _convert_env_value(self, value: str):
        """'true'/'false' become bools, then int, then float; anything else stays a string."""
        if value.lower() in ('true', 'false'):
            return value.lower() == 'true'
        
        try:
            return int(value)
        except ValueError:
            pass
        
        try:
            return float(value)
        except ValueError:
            pass
        
        return value
    
    def get(self, *keys, default=None):
        """Walk nested sections, e.g. ``get('transport', 'user_agent')``; ``default`` on any miss."""
        current = self._config
        for key in keys:
            if isinstance(current, dict) and key in current:
                current = current[key]
            else:
                return default
        return current
    
    @property
    def request(self) -> Dict[str, Any]:
        return self.get('request', default={})
    
    @property
    def transport(self) -> Dict[str, Any]:
        return self.get('transport', default={})
    
    @property
    def classifier(self) -> Dict[str, Any]:
        return self.get('classifier', default={})
    
    @property
    def logging(self) -> Dict[str, Any]:
        return self.get('logging', default={})


# Used by clients and transports built without explicit settings.
config = Config()
