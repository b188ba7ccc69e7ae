"""Three-state field updates for partial writes.

A partial update has to tell apart a field the client left out (leave the
stored value alone), a field sent as ``null`` (clear it) and a field sent with
a value (overwrite it). ``FieldUpdate`` carries that distinction explicitly
instead of overloading ``None``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class UpdateKind(str, Enum):
    UNSET = "unset"
    CLEAR = "clear"
    SET = "set"


@dataclass(frozen=True)
class FieldUpdate(Generic[T]):
    """Update instruction for a single attribute."""

    kind: UpdateKind = UpdateKind.UNSET
    value: T | None = None

    @classmethod
    def unset(cls) -> FieldUpdate[T]:
        return cls()

    @classmethod
    def clear(cls) -> FieldUpdate[T]:
        return cls(kind=UpdateKind.CLEAR)

    @classmethod
    def set(cls, value: T) -> FieldUpdate[T]:
        return cls(kind=UpdateKind.SET, value=value)

    @classmethod
    def from_model(cls, model: BaseModel, name: str) -> FieldUpdate:
        """Read ``name`` off a pydantic model, honouring ``model_fields_set``.

        Fields the client never sent are UNSET; fields sent as ``null`` are
        CLEAR; anything else is SET.
        """
        if name not in model.model_fields_set:
            return cls.unset()
        value = getattr(model, name)
        if value is None:
            return cls.clear()
        return cls.set(value)

    @property
    def is_unset(self) -> bool:
        return self.kind is UpdateKind.UNSET

    @property
    def is_clear(self) -> bool:
        return self.kind is UpdateKind.CLEAR

    @property
    def is_set(self) -> bool:
        return self.kind is UpdateKind.SET
