"""Permission requirements attached to commands."""

from __future__ import annotations

import inspect
from typing import TYPE_CHECKING, Awaitable, Callable, Iterable, Union

import discord

if TYPE_CHECKING:
    from karma.context import Context

PermissionCheck = Callable[["Context"], Union[bool, Awaitable[bool]]]
PermissionResolvable = Union[int, discord.Permissions, PermissionCheck]


def permission_bits(permissions: Iterable[PermissionResolvable]) -> int | None:
    """Combine every bitmask in ``permissions``; ``None`` when there are none."""

    bits: int | None = None
    for perm in permissions:
        if isinstance(perm, discord.Permissions):
            value = perm.value
        elif isinstance(perm, int) and not isinstance(perm, bool):
            value = perm
        else:
            continue
        bits = value if bits is None else bits | value
    return bits


async def satisfies(context: "Context", permissions: Iterable[PermissionResolvable]) -> bool:
    """
    Evaluate ``permissions`` for the invoking member.

    Bitmasks are checked against the member's permissions in the invoking
    channel; callables are called with ``context`` and may be coroutines.
    Evaluation stops at the first failure.
    """

    for perm in permissions:
        bits = permission_bits([perm])
        if bits is not None:
            granted = context.channel.permissions_for(context.member)
            passed = (granted.value & bits) == bits
        elif callable(perm):
            result = perm(context)
            if inspect.isawaitable(result):
                result = await result
            passed = bool(result)
        else:
            passed = False

        if not passed:
            return False
    return True


__all__ = ["PermissionCheck", "PermissionResolvable", "permission_bits", "satisfies"]
