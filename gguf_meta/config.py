"""
Decode configuration.

Defaults can be overridden through the environment:

- ``GGUF_META_MAX_ARRAY``: inline threshold for arrays (default 32)
- ``GGUF_META_MAX_STRING``: maximum string length in bytes (default 131072)
- ``GGUF_META_DEBUG``: enable debug logging (1/true/yes/on)
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import FrozenSet, Mapping, Optional, Tuple

DEFAULT_MAX_ARRAY = 32
DEFAULT_MAX_STRING = 131072
DEFAULT_MAX_ARRAY_DEPTH = 256
DEFAULT_MAX_ARRAY_LENGTH = 2**32

STRING_ERROR_MODES = ("replace", "strict", "surrogateescape")

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class Policy:
    """Array and string limits, consulted once per value.

    Attributes:
        max_array_inline: Arrays up to this many elements are expanded when
            ``inline_small_arrays`` is set and no explicit rule matched.
        max_string_length: Largest accepted string length in bytes.
        expand_keys: Array keys that are always expanded.
        expand_prefixes: Key prefixes whose arrays are always expanded.
        inline_small_arrays: Apply ``max_array_inline`` to arrays without an explicit rule.
        max_array_depth: Deepest array nesting accepted while skipping.
        max_array_length: Largest accepted array element count, checked before
            any element is read.
    """

    max_array_inline: int = DEFAULT_MAX_ARRAY
    max_string_length: int = DEFAULT_MAX_STRING
    expand_keys: FrozenSet[str] = frozenset()
    expand_prefixes: Tuple[str, ...] = ()
    inline_small_arrays: bool = False
    max_array_depth: int = DEFAULT_MAX_ARRAY_DEPTH
    max_array_length: int = DEFAULT_MAX_ARRAY_LENGTH

    def is_explicit(self, key: str) -> bool:
        """True if an exact key or a key prefix asks for expansion."""
        if key in self.expand_keys:
            return True
        return any(key.startswith(p) for p in self.expand_prefixes)


@dataclass(frozen=True)
class DecodeConfig:
    """Everything a decode needs, fixed at construction time."""

    policy: Policy = field(default_factory=Policy)
    align_before_value: bool = False
    debug: bool = False
    string_errors: str = "replace"
    key_prefix: str = ""

    def __post_init__(self) -> None:
        if self.string_errors not in STRING_ERROR_MODES:
            raise ValueError(
                f"string_errors must be one of {', '.join(STRING_ERROR_MODES)}, "
                f"got {self.string_errors!r}"
            )

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None, **overrides) -> "DecodeConfig":
        env = os.environ if env is None else env
        policy = Policy(
            max_array_inline=env_int(env, "GGUF_META_MAX_ARRAY", DEFAULT_MAX_ARRAY),
            max_string_length=env_int(env, "GGUF_META_MAX_STRING", DEFAULT_MAX_STRING),
        )
        kwargs = {"policy": policy, "debug": env_bool(env, "GGUF_META_DEBUG", False)}
        kwargs.update(overrides)
        return cls(**kwargs)


def env_int(env: Mapping[str, str], name: str, default: int) -> int:
    v = env.get(name, "").strip()
    if not v:
        return default
    try:
        n = int(v, 10)
    except ValueError:
        return default
    return n if n >= 0 else default


def env_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    v = env.get(name, "").strip().lower()
    if v in _TRUE:
        return True
    if v in _FALSE:
        return False
    return default


def parse_expand_list(text: str) -> Tuple[FrozenSet[str], Tuple[str, ...]]:
    """Split a comma-separated expand list into exact keys and prefixes.

    ``"tokenizer.*"`` becomes the prefix ``"tokenizer."``; anything without a
    trailing ``*`` is an exact key. Matching is a plain prefix test, not a glob.
    """
    keys = set()
    prefixes = []
    for item in (text or "").split(","):
        item = item.strip()
        if not item:
            continue
        if item.endswith("*"):
            prefix = item[:-1]
            if prefix not in prefixes:
                prefixes.append(prefix)
        else:
            keys.add(item)
    return frozenset(keys), tuple(prefixes)
