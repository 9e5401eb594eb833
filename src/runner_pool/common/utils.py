"""
Utility functions used throughout runner-pool.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import structlog
import yaml


def setup_logging(level: str = "INFO") -> None:
    """Setup structured logging for the application"""
    
    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, level.upper()),
    )
    
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer()
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def utcnow() -> datetime:
    """Timezone-aware current time, comparable with EC2 launch times"""
    return datetime.now(timezone.utc)


def ensure_aware(value: datetime) -> datetime:
    """Treat naive timestamps as UTC"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def parse_csv(value: Optional[str]) -> List[str]:
    """Split a comma separated setting, dropping blanks"""
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


def load_yaml_config(file_path: str) -> Dict[str, Any]:
    """Load YAML configuration file"""
    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            return yaml.safe_load(f) or {}
    except FileNotFoundError as e:
        raise ValueError(f"Configuration file not found: {file_path}") from e
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML configuration: {e}") from e
