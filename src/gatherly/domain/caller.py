from __future__ import annotations

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True, slots=True)
class Authenticated:
    user_id: str


@dataclass(frozen=True, slots=True)
class Sandbox:
    """No durable identity: validate and echo, never persist."""


Caller = Union[Authenticated, Sandbox]

SANDBOX = Sandbox()
