"""Objects shared by CLI commands, built from the global options."""

from pathlib import Path

import click

from timeflow.core.config import ConfigManager
from timeflow.core.ledger import Ledger


def get_config(ctx: click.Context) -> ConfigManager:
    """Get the ConfigManager selected by ``--config``."""
    obj = ctx.find_root().obj or {}
    config_path = obj.get("config_path")
    return ConfigManager(Path(config_path) if config_path else None)


def get_data_dir(ctx: click.Context, config_mgr: ConfigManager) -> Path:
    """Data directory from ``--data-dir`` or the configuration."""
    obj = ctx.find_root().obj or {}
    data_dir = obj.get("data_dir")
    return Path(data_dir) if data_dir else config_mgr.data_dir


def get_ledger(ctx: click.Context) -> Ledger:
    """Get Ledger for the selected data directory."""
    return Ledger(get_data_dir(ctx, get_config(ctx)))
