"""Default configuration values.

This module defines the built-in default configuration values that are used
when no other configuration sources provide values. The service list is
empty by default; a fleet is always described by a configuration file or
the environment.
"""

from typing import Any, Final

CONFIG_FILENAME: Final = "fleetwarden.toml"
ENV_PREFIX: Final = "FLEETWARDEN_"

DEFAULT_CONFIG: dict[str, Any] = {  # pyright: ignore[reportExplicitAny]
    "logging": {
        "level": "info",
        "format": "json",
        "file": "",
    },
    "monitor": {
        "interval": 5.0,
        "retry_attempts": 3,
        "attempts_per_cycle": 3,
        "base_retry_delay": 1.0,
        "max_retry_delay": 30.0,
        "check_timeout": 5.0,
    },
    "controller": {
        "operation_timeout": 60.0,
        "graceful_stop_timeout": 30.0,
        "health_wait_timeout": 30.0,
        "health_wait_interval": 2.0,
        "settle_delay": 2.0,
        "operation_ttl": 86400.0,
        "cleanup_interval": 3600.0,
    },
    "alerts": {
        "history_size": 1000,
        "listener_buffer": 100,
        "emit_state_changes": False,
        "sync_source": "node",
        "thresholds": {
            "cpu": {"warning": 80.0, "critical": 90.0, "margin": 5.0},
            "memory": {"warning": 85.0, "critical": 90.0, "margin": 5.0},
            "disk": {"warning": 80.0, "critical": 90.0, "margin": 5.0},
            "load": {"warning": 8.0, "critical": 10.0, "margin": 1.0},
        },
    },
    "sources": {
        "metrics_interval": 5.0,
        "disk_path": "/",
        "sync_url": "",
        "sync_interval": 10.0,
    },
    "server": {
        "host": "127.0.0.1",
        "port": 6380,
        "enabled": True,
    },
    "runtime": {
        "docker_binary": "docker",
    },
    "services": [],
}
