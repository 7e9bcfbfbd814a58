"""Hydra configuration for normalization and handle detection.

`config.yaml` in assetforge/configurations/ only holds a defaults list. It
mounts `normalization/base_normalization.yaml` under the `normalization` key
and `handle_detection/base_handle_detection.yaml` under `handle_detection`.
"""

import logging

from pathlib import Path

from hydra import compose, initialize_config_dir
from omegaconf import DictConfig, OmegaConf

console_logger = logging.getLogger(__name__)

CONFIG_DIR = Path(__file__).parent / "configurations"


def load_config(overrides: list[str] | None = None) -> DictConfig:
    """Compose the packaged defaults list into one config.

    The result has a `normalization` section holding the category conventions
    and a `handle_detection` section holding the render and width-profile
    settings.

    Args:
        overrides: Hydra override strings applied on top of the defaults, e.g.
            ["normalization.conventions.character.target_height=1.5"] or
            ["handle_detection.render_resolution=256"].

    Returns:
        Composed config with interpolations resolved.
    """
    if overrides is None:
        overrides = []

    with initialize_config_dir(config_dir=str(CONFIG_DIR), version_base=None):
        cfg = compose(config_name="config", overrides=overrides)

    OmegaConf.resolve(cfg)

    console_logger.debug("Configuration loaded successfully")
    return cfg


def load_section(name: str, cfg: DictConfig | None = None) -> DictConfig:
    """Return a configuration subtree, loading the defaults when `cfg` is None.

    Args:
        name: Top-level section name ("normalization" or "handle_detection").
        cfg: Subtree already selected by the caller, or None for defaults.

    Returns:
        The requested subtree.
    """
    if cfg is not None:
        return cfg
    return load_config()[name]
