"""
Decides which bootstrap file a proxy epoch is started with.

A request is one of three variants, checked in this order:
`Drain` always uses the fixed drain file, a configured custom config file is
used as-is, and otherwise a fresh bootstrap is generated for the epoch.
"""
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Union

from envoy_agent import settings
from envoy_agent.local.supervisor.errors import ConfigGenerationError

if TYPE_CHECKING:
    from envoy_agent.local.config import ProxyConfiguration
    from envoy_agent.local.supervisor.bootstrap import BootstrapWriter

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Generated:
    """Generate a fresh bootstrap file for the epoch."""
    epoch: int


@dataclass(frozen=True)
class Drain:
    """Apply an empty config so the proxy drains its connections."""


@dataclass(frozen=True)
class CustomOverride:
    """Use a user-supplied config file without generating one."""
    path: str


ConfigVariant = Union[Generated, Drain, CustomOverride]


def config_file(config_dir: Path, epoch: int) -> Path:
    """Returns the path of the generated bootstrap file for an epoch."""
    return Path(config_dir) / settings.EPOCH_FILE_TEMPLATE.format(epoch=epoch)


def select_variant(config: "ProxyConfiguration", epoch: int, drain: bool) -> ConfigVariant:
    """Picks the single config variant that applies to this epoch."""
    if drain:
        return Drain()
    if config.custom_config_file:
        return CustomOverride(config.custom_config_file)
    return Generated(epoch)


def resolve_config_path(variant: ConfigVariant, writer: "BootstrapWriter",
                        drain_path: Path = settings.DRAIN_FILE_PATH) -> Path:
    """
    Produces the file the proxy should load at startup.

    :param variant: The requested config variant.
    :param writer: The bootstrap writer used for the Generated variant.
    :param drain_path: The well-known drain bootstrap file.
    :return: The path handed to the proxy with `-c`.
    :raises ConfigGenerationError: If a Generated bootstrap could not be written.
    """
    if isinstance(variant, Drain):
        return Path(drain_path)
    if isinstance(variant, CustomOverride):
        # Certificates are still watched by the caller; only the file is not ours.
        return Path(variant.path)
    if isinstance(variant, Generated):
        try:
            return writer.create_file_for_epoch(variant.epoch)
        except ConfigGenerationError:
            raise
        except Exception as e:
            raise ConfigGenerationError(f"failed to generate bootstrap config for epoch {variant.epoch}: {e}") from e
    raise TypeError(f"Unknown config variant: {variant!r}")
