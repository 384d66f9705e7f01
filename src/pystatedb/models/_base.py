"""Base model and JSON type aliases.

Every stored-value model inherits from :class:`StateDbBaseModel`, which
is frozen (stored records are replaced wholesale, never patched) and
ignores unknown keys so records written by newer builds still load.
"""

from __future__ import annotations

from typing import Any, TypeAlias

from pydantic import BaseModel, ConfigDict

JSONValue: TypeAlias = dict[str, Any] | list[Any] | str | int | float | bool | None
"""Any document that survives a ``json.dumps``/``json.loads`` round trip."""


class StateDbBaseModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
    )
