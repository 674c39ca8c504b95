from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal, Optional, cast

from donfig import Config

config = Config(
    "h5scalar",
    defaults=[
        {
            "read": {"convert_text": True, "reuse_buffer": True},
            "access": {
                "efile_prefix": None,
                "virtual_prefix": None,
                "virtual_view": "last_available",
                "virtual_printf_gap": 0,
            },
            "create": {"default_chunk": 64},
            "palette": {"max_bytes": 768},
        }
    ],
)


def parse_virtual_view(data: Any) -> Literal["first_missing", "last_available"]:
    if data in ("first_missing", "last_available"):
        return cast(Literal["first_missing", "last_available"], data)
    msg = f"Expected one of ('first_missing', 'last_available'), got {data!r} instead."
    raise ValueError(msg)


@dataclass(frozen=True)
class AccessConfig:
    """Dataset access settings passed explicitly to every open.

    External raw-data files and virtual sources named with relative paths
    are looked up under ``efile_prefix`` and ``virtual_prefix``. The process
    working directory is never changed.
    """

    efile_prefix: Optional[str] = None
    virtual_prefix: Optional[str] = None
    virtual_view: Literal["first_missing", "last_available"] = "last_available"
    virtual_printf_gap: int = 0

    @classmethod
    def from_config(cls, **overrides: Any) -> AccessConfig:
        values = dict(
            efile_prefix=config.get("access.efile_prefix"),
            virtual_prefix=config.get("access.virtual_prefix"),
            virtual_view=config.get("access.virtual_view"),
            virtual_printf_gap=config.get("access.virtual_printf_gap"),
        )
        values.update({k: v for k, v in overrides.items() if v is not None})
        values["virtual_view"] = parse_virtual_view(values["virtual_view"])
        values["virtual_printf_gap"] = int(values["virtual_printf_gap"])
        return cls(**values)
