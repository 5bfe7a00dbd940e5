"""
Configuration loader for the Local Device Server
Loads and validates configuration from YAML files
"""

import os
import yaml
import logging
from typing import Dict, Any
from pathlib import Path
from datetime import datetime
import pytz

logger = logging.getLogger(__name__)

def load_config(config_path: str = "config/config.yaml") -> Dict[str, Any]:
    """
    Load configuration from YAML file with validation
    """
    try:
        config_file = Path(config_path)
        if not config_file.exists():
            logger.error(f"Configuration file not found: {config_path}")
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_file, 'r') as f:
            config = yaml.safe_load(f) or {}

        # Validate required sections
        _validate_config(config)

        # Apply defaults
        config = _apply_defaults(config)
        config = _apply_env_overrides(config)

        logger.info(f"Configuration loaded from {config_path}")
        return config

    except Exception as e:
        logger.error(f"Failed to load configuration: {e}")
        raise

def _validate_config(config: Dict) -> None:
    """Validate that required configuration sections exist"""
    required_sections = ['server', 'discovery']

    for section in required_sections:
        if section not in config or config[section] is None:
            raise ValueError(f"Missing required configuration section: {section}")

    server = config['server']
    if 'port' in server and not isinstance(server['port'], int):
        raise ValueError("server.port must be an integer")

    discovery = config['discovery']
    max_addresses = discovery.get('max_scan_addresses')
    if max_addresses is not None and (not isinstance(max_addresses, int) or max_addresses < 1):
        raise ValueError("discovery.max_scan_addresses must be a positive integer")

    concurrency = discovery.get('max_concurrent_probes')
    if concurrency is not None and (not isinstance(concurrency, int) or concurrency < 1):
        raise ValueError("discovery.max_concurrent_probes must be a positive integer")

    # Database is optional, but complete when enabled
    db = config.get('database') or {}
    if db.get('enabled'):
        required_db_fields = ['host', 'port', 'database', 'username', 'password']
        for field in required_db_fields:
            if field not in db:
                raise ValueError(f"Missing required database field: {field}")

def _apply_defaults(config: Dict) -> Dict:
    """Apply default values to configuration"""

    # Server defaults
    server_defaults = {
        'host': '0.0.0.0',
        'port': 3001,
        'cors_origins': ['*']
    }
    for key, default_value in server_defaults.items():
        if key not in config['server']:
            config['server'][key] = default_value

    # Discovery defaults
    discovery_defaults = {
        'max_scan_addresses': 100,
        'max_concurrent_probes': 10,
        'probe_timeout': 1.0,
        'tuya_probe_timeout': 0.5,
        'reachability_timeout': 0.5,
        'reachability_ports': [80, 443, 6668],
        'use_ping': True,
        'use_reachability': True,
        'address_timeout': 15.0,
        'announcement_window': 3.0,
        'enable_announcements': True,
        'revalidate_passive': True,
        'ip_ranges': []
    }
    for key, default_value in discovery_defaults.items():
        if key not in config['discovery']:
            config['discovery'][key] = default_value

    # Control defaults
    if 'control' not in config or config['control'] is None:
        config['control'] = {}
    control_defaults = {
        'timeout_seconds': 3.0,
        'retry_attempts': 3,
        'retry_delay_seconds': 1.0
    }
    for key, default_value in control_defaults.items():
        if key not in config['control']:
            config['control'][key] = default_value

    # Cache defaults
    if 'cache' not in config or config['cache'] is None:
        config['cache'] = {}
    cache_defaults = {
        'recent_scan_seconds': 300,
        'retention_seconds': 3600,
        'storage': 'memory',
        'file': 'data/device_cache.json'
    }
    for key, default_value in cache_defaults.items():
        if key not in config['cache']:
            config['cache'][key] = default_value

    # Backend relay defaults (client side)
    if 'relay' not in config or config['relay'] is None:
        config['relay'] = {}
    relay_defaults = {
        'base_url': f"http://localhost:{config['server']['port']}/api",
        'scan_timeout_seconds': 30,
        'control_timeout_seconds': 5,
        'scan_retry_attempts': 2,
        'scan_retry_delay_seconds': 2.0,
        'fallback_ip_ranges': [
            '192.168.1.1-192.168.1.50',
            '192.168.0.1-192.168.0.50',
            '10.0.0.1-10.0.0.50'
        ]
    }
    for key, default_value in relay_defaults.items():
        if key not in config['relay']:
            config['relay'][key] = default_value

    # Vendor specific settings
    if 'vendors' not in config or config['vendors'] is None:
        config['vendors'] = {}
    if 'philips_hue' not in config['vendors']:
        config['vendors']['philips_hue'] = {'username': None}

    # Database is optional
    if 'database' not in config or config['database'] is None:
        config['database'] = {}
    if 'enabled' not in config['database']:
        config['database']['enabled'] = False

    # Logging defaults
    if 'logging' not in config or config['logging'] is None:
        config['logging'] = {}
    logging_defaults = {
        'level': 'INFO',
        'file': 'logs/device_server.log',
        'console_output': True,
        'timezone': 'UTC'
    }
    for key, default_value in logging_defaults.items():
        if key not in config['logging']:
            config['logging'][key] = default_value

    return config

def _apply_env_overrides(config: Dict) -> Dict:
    """Listening port and scan size can be overridden from the environment"""
    port = os.environ.get('PORT')
    if port:
        try:
            config['server']['port'] = int(port)
        except ValueError:
            logger.warning(f"Ignoring invalid PORT value: {port}")

    max_addresses = os.environ.get('MAX_SCAN_ADDRESSES')
    if max_addresses:
        try:
            config['discovery']['max_scan_addresses'] = max(1, int(max_addresses))
        except ValueError:
            logger.warning(f"Ignoring invalid MAX_SCAN_ADDRESSES value: {max_addresses}")

    return config


class TimezoneFormatter(logging.Formatter):
    """Formatter that renders timestamps in the configured timezone"""

    def __init__(self, fmt=None, timezone_name: str = 'UTC'):
        super().__init__(fmt)
        try:
            self.tz = pytz.timezone(timezone_name)
        except pytz.UnknownTimeZoneError:
            self.tz = pytz.utc

    def formatTime(self, record, datefmt=None):
        dt = datetime.fromtimestamp(record.created, tz=self.tz)
        if datefmt:
            return dt.strftime(datefmt)
        else:
            # Default format: YYYY-MM-DD HH:MM:SS TZ
            return dt.strftime('%Y-%m-%d %H:%M:%S %Z')

def setup_logging(config: Dict) -> None:
    """Setup logging based on configuration with timezone-aware timestamps"""
    log_config = config.get('logging', {})
    level = log_config.get('level', 'INFO')

    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    formatter = TimezoneFormatter(log_format, log_config.get('timezone', 'UTC'))

    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format=log_format,
        handlers=[]
    )

    # Console handler
    if log_config.get('console_output', True):
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        logging.getLogger().addHandler(console_handler)

    # File handler
    log_file = log_config.get('file')
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        logging.getLogger().addHandler(file_handler)

    logger.info(f"Logging configured: level={level}, timezone={log_config.get('timezone', 'UTC')}, "
                f"console={log_config.get('console_output', True)}, file={log_file}")

def get_sample_config() -> Dict:
    """Return a sample configuration for reference"""
    return {
        "server": {
            "host": "0.0.0.0",
            "port": 3001,
            "cors_origins": ["*"]
        },
        "discovery": {
            "max_scan_addresses": 100,
            "max_concurrent_probes": 10,
            "probe_timeout": 1.0,
            "reachability_timeout": 0.5,
            "announcement_window": 3.0,
            "revalidate_passive": True,
            "ip_ranges": []
        },
        "control": {
            "timeout_seconds": 3.0,
            "retry_attempts": 3,
            "retry_delay_seconds": 1.0
        },
        "cache": {
            "recent_scan_seconds": 300,
            "retention_seconds": 3600,
            "storage": "file",
            "file": "data/device_cache.json"
        },
        "relay": {
            "base_url": "http://localhost:3001/api",
            "scan_timeout_seconds": 30,
            "control_timeout_seconds": 5
        },
        "vendors": {
            "philips_hue": {"username": "your-hue-bridge-username"}
        },
        "database": {
            "enabled": False,
            "host": "localhost",
            "port": 5432,
            "database": "devices_db",
            "username": "postgres",
            "password": "postgres"
        },
        "logging": {
            "level": "INFO",
            "file": "logs/device_server.log",
            "console_output": True,
            "timezone": "UTC"
        }
    }
