from typing import Iterable, NamedTuple

import mmh3

COLOR_SEED = 1337
# NOTE: Each channel is offset into [192, 255], so colors stay readable on dark terminals
CHANNEL_BASE = 192
CHANNEL_RANGE = 64
PREFIX_DELIMITER = " | "


class DisplayColor(NamedTuple):
    red: int
    green: int
    blue: int


def color_for(uid: str) -> DisplayColor:
    """Map a pod uid to a stable pastel color.

    The same uid always gives the same color. An empty uid is valid.
    """

    hash_value = mmh3.hash(uid.encode("utf-8"), COLOR_SEED, signed=False)
    return DisplayColor(
        CHANNEL_BASE + hash_value % CHANNEL_RANGE,
        CHANNEL_BASE + (hash_value // CHANNEL_RANGE) % CHANNEL_RANGE,
        CHANNEL_BASE + (hash_value // CHANNEL_RANGE**2) % CHANNEL_RANGE,
    )


def colored(text: str, color: DisplayColor) -> str:
    return f"\x1b[38;2;{color.red};{color.green};{color.blue}m{text}\x1b[0m"


def build_prefix(prefixes: Iterable[str], pod_name: str, color: DisplayColor) -> str:
    return PREFIX_DELIMITER.join(colored(segment, color) for segment in [*prefixes, pod_name])


__all__ = ["DisplayColor", "color_for", "colored", "build_prefix", "PREFIX_DELIMITER"]
