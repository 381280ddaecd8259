"""Configuration management for the store migrator."""

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from .constants import (
    DEFAULT_API_VERSION,
    DEFAULT_PAGE_SIZE,
    ERROR_SAMPLE_SIZE,
    METAFIELDS_BATCH_SIZE,
)


@dataclass
class ShopConfig:
    """Destination shop connection configuration."""

    shop: str
    access_token: str
    api_version: str = DEFAULT_API_VERSION
    timeout: int = 30
    max_connections: int = 10  # Requests are serial; a small pool is enough

    @property
    def endpoint(self) -> str:
        """Admin GraphQL endpoint for this shop."""
        domain = self.shop.removeprefix("https://").removeprefix("http://").rstrip("/")
        return f"https://{domain}/admin/api/{self.api_version}/graphql.json"


@dataclass
class RetryConfig:
    """Backoff settings for transport-level retries."""

    max_attempts: int = 5
    initial_delay: float = 1.0  # Seconds before the first retry
    max_delay: float = 32.0
    jitter: float = 0.5  # Uniform random seconds added to each wait


@dataclass
class ApplyConfig:
    """
    Apply run configuration.

    Controls where dumps are read from and how writes are batched.
    """

    dump_dir: Path = field(default_factory=lambda: Path("./dumps"))
    page_size: int = DEFAULT_PAGE_SIZE
    metafield_batch_size: int = METAFIELDS_BATCH_SIZE
    dry_run: bool = False
    error_sample_size: int = ERROR_SAMPLE_SIZE


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    format: str = "console"
    file: Path | None = None


@dataclass
class MigratorConfig:
    """
    Complete configuration for the store migrator.

    This combines all configuration sections.
    """

    shop: ShopConfig | None = None
    retry: RetryConfig = field(default_factory=RetryConfig)
    apply: ApplyConfig = field(default_factory=ApplyConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_file(cls, config_path: Path) -> "MigratorConfig":
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to YAML config file

        Returns:
            MigratorConfig instance
        """
        try:
            with open(config_path) as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file {config_path}: {e}") from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ValueError(
                f"Invalid configuration file structure in {config_path}: "
                f"expected dictionary, got {type(data).__name__}"
            )

        shop_data = data.get("shop")
        shop = ShopConfig(**shop_data) if shop_data else None

        retry = RetryConfig(**data.get("retry", {}))

        apply_data = dict(data.get("apply", {}))
        if apply_data.get("dump_dir"):
            apply_data["dump_dir"] = Path(apply_data["dump_dir"])
        apply = ApplyConfig(**apply_data)

        logging_data = dict(data.get("logging", {}))
        if logging_data.get("file"):
            logging_data["file"] = Path(logging_data["file"])
        logging = LoggingConfig(**logging_data)

        return cls(shop=shop, retry=retry, apply=apply, logging=logging)

    def to_file(self, config_path: Path) -> None:
        """
        Save configuration to YAML file.

        The access token is never written out.

        Args:
            config_path: Path to save config file
        """
        shop_data = None
        if self.shop:
            shop_data = {k: v for k, v in self.shop.__dict__.items() if k != "access_token"}

        data = {
            "shop": shop_data,
            "retry": self.retry.__dict__,
            "apply": {
                k: str(v) if isinstance(v, Path) else v for k, v in self.apply.__dict__.items()
            },
            "logging": {
                k: str(v) if isinstance(v, Path) else v
                for k, v in self.logging.__dict__.items()
                if v is not None
            },
        }

        config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(config_path, "w") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)

    @classmethod
    def from_env(cls) -> "MigratorConfig":
        """
        Create configuration from environment variables.

        Environment variables:
            DST_SHOP_DOMAIN: Destination shop domain (e.g. my-store.myshopify.com)
            DST_ADMIN_TOKEN: Destination Admin API access token
            SHOPIFY_API_VERSION: Admin API version (default: 2025-10)
            SHOPIFY_TIMEOUT: Request timeout in seconds (default: 30)
            DUMP_DIR: Dump directory (default: ./dumps)
            LOG_LEVEL: Logging level (default: INFO)
            LOG_FORMAT: console or json (default: console)

        Returns:
            MigratorConfig instance

        Raises:
            ValueError: If DST_SHOP_DOMAIN is set but the token is missing
        """
        shop_config = None
        shop_domain = os.getenv("DST_SHOP_DOMAIN")
        if shop_domain:
            token = os.environ.get("DST_ADMIN_TOKEN", "")
            if not token:
                raise ValueError(
                    "DST_SHOP_DOMAIN is set but required credentials are missing: "
                    "DST_ADMIN_TOKEN. Please set it to the destination Admin API token."
                )
            shop_config = ShopConfig(
                shop=shop_domain,
                access_token=token,
                api_version=os.environ.get("SHOPIFY_API_VERSION", DEFAULT_API_VERSION),
                timeout=int(os.environ.get("SHOPIFY_TIMEOUT", "30")),
            )

        apply_config = ApplyConfig(dump_dir=Path(os.environ.get("DUMP_DIR", "./dumps")))

        logging_config = LoggingConfig(
            level=os.environ.get("LOG_LEVEL", "INFO"),
            format=os.environ.get("LOG_FORMAT", "console"),
        )

        return cls(
            shop=shop_config,
            retry=RetryConfig(),
            apply=apply_config,
            logging=logging_config,
        )


def load_config(config_file: Path | None = None) -> MigratorConfig:
    """
    Load configuration from file or environment variables.

    Args:
        config_file: Optional path to YAML config file

    Returns:
        MigratorConfig instance

    Raises:
        FileNotFoundError: If config_file is specified but doesn't exist
    """
    if config_file:
        if not config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_file}")
        return MigratorConfig.from_file(config_file)
    return MigratorConfig.from_env()
