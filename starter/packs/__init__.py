"""Built-in packs and plugin registration."""

from __future__ import annotations

from importlib import metadata
from typing import Iterable, List, Set, Tuple, Type

from ..errors import PackError
from ..logging import get_logger
from .base import Pack, PackBase, Prompt
from .compose import DockerComposePack
from .golang import GolangPack
from .node import NodePack
from .python import PythonPack
from .service_yml import ServiceYmlPack

PLUGIN_GROUP = "starter.packs"

# Registration order doubles as the tie-break when several packs match.
BUILTIN_PACKS: Tuple[Type[PackBase], ...] = (
    DockerComposePack,
    ServiceYmlPack,
    PythonPack,
    NodePack,
    GolangPack,
)


def discover_packs(*, prompt: Prompt | None = None) -> List[Pack]:
    """Return fresh pack instances in registration order.

    Built-in packs come first, followed by packs registered under the
    ``starter.packs`` entry point group (sorted by entry point name). A plugin
    reusing the name of an already registered pack is skipped.
    """
    logger = get_logger("packs")
    packs: List[Pack] = [pack_cls(prompt) for pack_cls in BUILTIN_PACKS]
    names: Set[str] = {pack.name for pack in packs}

    for entry in _plugin_entry_points():
        try:
            pack = _build_plugin(entry.load(), prompt)
        except Exception as exc:
            raise PackError(f"Failed to load pack plugin '{entry.name}': {exc}") from exc
        if pack.name in names:
            logger.warning("Ignoring pack plugin %s: a pack named %s is already registered", entry.name, pack.name)
            continue
        logger.debug("Registered pack plugin %s (%s)", entry.name, pack.name)
        names.add(pack.name)
        packs.append(pack)
    return packs


def _build_plugin(target: object, prompt: Prompt | None) -> Pack:
    """Instantiate a plugin given as a pack class or a zero-argument factory."""
    if isinstance(target, type) and issubclass(target, PackBase):
        return target(prompt)
    if callable(target):
        pack = target()
        if isinstance(pack, Pack):
            return pack
    raise TypeError("a pack plugin must be a Pack subclass or a factory returning a Pack")


def _plugin_entry_points() -> Iterable[metadata.EntryPoint]:
    return sorted(metadata.entry_points().select(group=PLUGIN_GROUP), key=lambda entry: entry.name)


__all__ = [
    "BUILTIN_PACKS",
    "DockerComposePack",
    "GolangPack",
    "NodePack",
    "Pack",
    "PackBase",
    "PythonPack",
    "ServiceYmlPack",
    "discover_packs",
]
