"""Response envelope shared by every control endpoint."""

from __future__ import annotations

from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class Resp(BaseModel, Generic[T]):
    """`code` is 0 on success and 1 on a job control error described by `msg`."""

    code: int = 0
    msg: str | None = None
    data: T | None = None

    @classmethod
    def ok(cls, data: T | None = None) -> Resp[T]:
        return cls(code=0, data=data)

    @classmethod
    def err(cls, msg: str) -> Resp[T]:
        return cls(code=1, msg=msg)
