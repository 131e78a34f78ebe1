"""
onion-relay Configuration Management

Handles loading and validation of configuration from TOML file.
"""

from pathlib import Path
from typing import Any, Dict, Optional
from dataclasses import dataclass, field

import toml

from . import DEFAULT_CIRCUIT_LENGTH, MIN_CIRCUIT_LENGTH


# Default configuration path
DEFAULT_CONFIG_PATH = Path("/etc/onionrelay/config.toml")

# Largest TCP port
MAX_PORT = 65535


@dataclass
class NetworkConfig:
    """Node addressing. Relay N listens on base_relay_port + N."""
    host: str = "localhost"
    bind_host: str = "127.0.0.1"
    registry_port: int = 8080
    base_relay_port: int = 4000
    base_user_port: int = 3000


@dataclass
class OnionConfig:
    """Onion routing configuration."""
    circuit_length: int = DEFAULT_CIRCUIT_LENGTH


@dataclass
class TransportConfig:
    """HTTP transport configuration."""
    timeout: float = 10.0  # seconds


@dataclass
class DebugConfig:
    """Inspection endpoints (off by default)."""
    inspection: bool = False
    expose_private_key: bool = False


@dataclass
class Config:
    """
    Complete onion-relay configuration.
    """
    # Sub-configurations
    network: NetworkConfig = field(default_factory=NetworkConfig)
    onion: OnionConfig = field(default_factory=OnionConfig)
    transport: TransportConfig = field(default_factory=TransportConfig)
    debug: DebugConfig = field(default_factory=DebugConfig)

    # Paths
    config_path: Path = field(default_factory=lambda: DEFAULT_CONFIG_PATH)

    # Logging
    log_level: str = "INFO"
    log_file: Optional[Path] = None

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> 'Config':
        """
        Load configuration from file.

        A missing file yields the defaults.

        Args:
            config_path: Path to config file (default: /etc/onionrelay/config.toml)

        Returns:
            Loaded configuration

        Raises:
            ValueError: If the file cannot be parsed or holds a bad value
        """
        path = Path(config_path or DEFAULT_CONFIG_PATH)
        config = cls()
        config.config_path = path

        if not path.exists():
            return config

        try:
            data = toml.load(path)
        except (toml.TomlDecodeError, OSError) as e:
            raise ValueError(f"Failed to read {path}: {e}")

        try:
            config._apply_dict(data)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid value in {path}: {e}")
        return config

    def _apply_dict(self, data: Dict[str, Any]) -> None:
        """Apply dictionary data to config."""
        # Top-level settings
        if "log_level" in data:
            self.log_level = str(data["log_level"]).upper()
        if "log_file" in data:
            self.log_file = Path(data["log_file"])

        # Network config
        if "network" in data:
            n = data["network"]
            if "host" in n:
                self.network.host = str(n["host"])
            if "bind_host" in n:
                self.network.bind_host = str(n["bind_host"])
            if "registry_port" in n:
                self.network.registry_port = int(n["registry_port"])
            if "base_relay_port" in n:
                self.network.base_relay_port = int(n["base_relay_port"])
            if "base_user_port" in n:
                self.network.base_user_port = int(n["base_user_port"])

        # Onion config
        if "onion" in data:
            o = data["onion"]
            if "circuit_length" in o:
                self.onion.circuit_length = int(o["circuit_length"])

        # Transport config
        if "transport" in data:
            t = data["transport"]
            if "timeout" in t:
                self.transport.timeout = float(t["timeout"])

        # Debug config
        if "debug" in data:
            d = data["debug"]
            if "inspection" in d:
                self.debug.inspection = bool(d["inspection"])
            if "expose_private_key" in d:
                self.debug.expose_private_key = bool(d["expose_private_key"])

    def validate(self) -> None:
        """
        Validate configuration.

        Raises:
            ValueError: If configuration is invalid
        """
        for name in ("registry_port", "base_relay_port", "base_user_port"):
            port = getattr(self.network, name)
            if port < 1 or port > MAX_PORT:
                raise ValueError(f"Invalid {name}: {port}")

        if self.onion.circuit_length < MIN_CIRCUIT_LENGTH:
            raise ValueError(
                f"Invalid circuit length: {self.onion.circuit_length} "
                f"(minimum {MIN_CIRCUIT_LENGTH})"
            )

        if self.transport.timeout <= 0:
            raise ValueError(f"Invalid transport timeout: {self.transport.timeout}")

        if self.debug.expose_private_key and not self.debug.inspection:
            raise ValueError("expose_private_key requires inspection to be enabled")

        if self.log_level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Invalid log level: {self.log_level}")

    # === Addressing ===

    def relay_address(self, node_id: int) -> int:
        """Address (port) of relay node_id."""
        return self.network.base_relay_port + node_id

    def user_address(self, user_id: int) -> int:
        """Address (port) of user user_id."""
        return self.network.base_user_port + user_id

    @property
    def registry_url(self) -> str:
        return f"http://{self.network.host}:{self.network.registry_port}"
