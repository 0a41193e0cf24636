"""
ironsync startup initialization.

Orchestrates initialization of all components in the correct order:
1. Config (with validation)
2. Logging
3. Connections and resources (graph validation)

Any failure here is fatal: the process refuses to start with a partial
configuration.
"""

import os
from pathlib import Path

from ironsync.config.loader import Config, load_config
from ironsync.connections.manager import ConnectionManager
from ironsync.exceptions import InitializationError, IronsyncError
from ironsync.utils.logging import setup_logging_from_config


class IronsyncInitializer:
    """Handles complete initialization of an ironsync project."""

    def __init__(self, project_dir: Path, env: str | None = None, verbose: bool = False, setup_logging: bool = True):
        self.project_dir = Path(project_dir)
        self.env = env or os.environ.get("IRONSYNC_ENV")
        self.verbose = verbose
        self.setup_logging = setup_logging

        self.config: Config | None = None
        self.manager: ConnectionManager | None = None

    def initialize_all(self) -> tuple[Config, ConnectionManager]:
        """
        Initialize all components in the correct order.

        Returns:
            Tuple of (config, connection_manager)

        Raises:
            ConfigurationError: If the configuration is missing or invalid
            InitializationError: If any other initialization step fails
        """
        self.config = self._initialize_config()
        if self.setup_logging:
            self._initialize_logging()
        self.manager = self._initialize_connections()
        return self.config, self.manager

    def _initialize_config(self) -> Config:
        """Load and validate configuration."""
        try:
            config = load_config(self.project_dir, env=self.env)
            config.validate()
            return config
        except IronsyncError:
            raise
        except OSError as e:
            raise InitializationError(f"Cannot read configuration: {e}") from None

    def _initialize_logging(self) -> None:
        """Initialize logging from config."""
        try:
            setup_logging_from_config(self.config.data, project_dir=self.project_dir, verbose=self.verbose)
        except (OSError, ValueError, TypeError) as e:
            raise InitializationError(f"Failed to initialize logging: {e}") from None

    def _initialize_connections(self) -> ConnectionManager:
        """Build and validate the connection/resource graph."""
        try:
            return ConnectionManager(self.config.data)
        except IronsyncError:
            raise
        except (ValueError, TypeError) as e:
            raise InitializationError(f"Failed to initialize connections: {e}") from None


def initialize(
    project_dir: Path, env: str | None = None, verbose: bool = False, setup_logging: bool = True
) -> tuple[Config, ConnectionManager]:
    """
    Initialize an ironsync project.

    Args:
        project_dir: Directory holding config.yaml
        env: Environment name (config.{env}.yaml overlay)
        verbose: Force DEBUG logging
        setup_logging: Configure the ``ironsync`` logger from config

    Returns:
        Tuple of (config, connection_manager)
    """
    initializer = IronsyncInitializer(project_dir, env=env, verbose=verbose, setup_logging=setup_logging)
    return initializer.initialize_all()
