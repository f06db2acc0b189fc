from __future__ import annotations

import hashlib
from typing import Any

from planetwars_agent.domain.state import GameState, Player


def decision_seed(state: GameState, player: Player, requested_seed: int | None, *, salt: str) -> int:
    """Return deterministic seed for one decision pass.

    If the caller supplied `requested_seed`, derive from it and the tick so
    successive decisions differ but replays match. Otherwise derive a stable
    seed from the state snapshot itself; wall-clock time never enters.
    """
    if requested_seed is not None:
        return derive_seed(int(requested_seed), player.value, state.game_tick, salt)

    signature = _state_signature(state)
    payload = f"{signature}|{player.value}|{salt}".encode("utf-8")
    return int.from_bytes(hashlib.blake2b(payload, digest_size=8).digest(), "big")


def derive_seed(base_seed: int, *parts: Any) -> int:
    payload = "|".join([str(base_seed), *(str(part) for part in parts)]).encode("utf-8")
    return int.from_bytes(hashlib.blake2b(payload, digest_size=8).digest(), "big")


def _state_signature(state: GameState) -> str:
    territory_bits = [
        f"{territory.id}:{territory.owner.value}:{territory.n_ships:.3f}:"
        f"{'T' if territory.transporter is not None else '-'}"
        for territory in sorted(state.territories, key=lambda item: item.id)
    ]
    return f"{state.game_tick};" + ";".join(territory_bits)
