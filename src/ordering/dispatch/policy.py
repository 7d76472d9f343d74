"""Dispatch policy: how long an assignment offer stays open."""

import os
from dataclasses import dataclass
from datetime import timedelta


@dataclass(frozen=True)
class DispatchPolicy:
    offer_ttl_seconds: int = 300

    @classmethod
    def from_env(cls) -> "DispatchPolicy":
        return cls(offer_ttl_seconds=int(os.getenv("ORDERING_OFFER_TTL_SECONDS", cls.offer_ttl_seconds)))

    @property
    def offer_ttl(self) -> timedelta:
        return timedelta(seconds=self.offer_ttl_seconds)


_current_policy: DispatchPolicy | None = None


def get_dispatch_policy() -> DispatchPolicy:
    global _current_policy
    if _current_policy is None:
        _current_policy = DispatchPolicy.from_env()
    return _current_policy


def set_dispatch_policy(policy: DispatchPolicy) -> None:
    global _current_policy
    _current_policy = policy


def reset_dispatch_policy() -> None:
    global _current_policy
    _current_policy = None
