"""
Channel catalog loading and sane defaults for when no file is present.

Kept small and focused; the launcher imports this.
"""

import json
import os
from dataclasses import dataclass
from typing import Optional, Tuple

from .tv_config import CHANNEL_FILE, DEFAULT_CHANNEL_COUNT
from .tv_device import SmartTV


@dataclass(frozen=True)
class ChannelCatalog:
    count: int
    names: Optional[Tuple[str, ...]] = None

    def __post_init__(self) -> None:
        if self.count < 1:
            raise ValueError("channel catalog requires at least 1 channel")
        if self.names is not None and len(self.names) != self.count:
            raise ValueError(f"channel catalog count={self.count} but {len(self.names)} names")


def _catalog_from_names(names) -> ChannelCatalog:
    cleaned = tuple(str(n).strip() for n in names)
    if not cleaned or any(not n for n in cleaned):
        raise ValueError("channel names must be non-empty")
    if any("," in n for n in cleaned):
        raise ValueError("channel names must not contain commas")
    return ChannelCatalog(count=len(cleaned), names=cleaned)


def parse_channel_spec(text: str) -> ChannelCatalog:
    """
    Parse a CLI/env channel value.

    "7"            -> seven unnamed channels
    "NRK1,NRK2,TV2" -> three named channels
    """
    text = text.strip()
    if not text:
        raise ValueError("empty channel specification")
    if text.isdigit():
        return ChannelCatalog(count=int(text))
    return _catalog_from_names(text.split(","))


def load_channel_catalog(path: Optional[str] = None) -> ChannelCatalog:
    """
    Load the catalog from a JSON file, or return the unnamed default if missing.

    Accepted shapes:
        {"channels": ["NRK1", "NRK2", ...]}
        {"channel_count": 7}
    """
    path = path or CHANNEL_FILE
    if not os.path.exists(path):
        return ChannelCatalog(count=DEFAULT_CHANNEL_COUNT)

    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)

    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a JSON object")
    if data.get("channels"):
        return _catalog_from_names(data["channels"])
    if "channel_count" in data:
        count = data["channel_count"]
        if isinstance(count, bool) or not isinstance(count, int):
            raise ValueError(f"{path}: 'channel_count' must be an integer, got {count!r}")
        return ChannelCatalog(count=count)
    raise ValueError(f"{path}: needs 'channels' or 'channel_count'")


def build_tv(catalog: ChannelCatalog) -> SmartTV:
    return SmartTV(channel_count=catalog.count, channel_names=catalog.names)
