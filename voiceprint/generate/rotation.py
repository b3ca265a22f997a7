"""
voiceprint.generate.rotation - Hook and bridge rotation policies.

Selection is driven by an explicit RotationState value (cursor and last
choice per persona) and a seeded random.Random, so a generation is fully
reproducible from its inputs. The caller persists the returned state.
"""

from __future__ import annotations

import hashlib
import random
from collections.abc import Collection, Sequence

from voiceprint.models import PersonaProfile, RotationState


def derive_seed(*parts: object) -> int:
    """Stable 64-bit seed from arbitrary parts."""
    digest = hashlib.sha256("|".join(str(p) for p in parts).encode("utf-8")).digest()
    return int.from_bytes(digest[:8], "big")


def hook_weights(profile: PersonaProfile) -> list[float]:
    """Sampling weights for the profile's ranked hooks.

    Rank 1 carries hookRatio.primary, ranks 2-3 share hookRatio.secondary
    by count, and the remaining hooks share what is left by count. Weights
    are renormalized over the hooks that exist.
    """
    hooks = profile.voice_profile.hooks
    counts = [profile.voice_profile.hook_frequencies.get(h, 1) for h in hooks]
    ratio = profile.generation_parameters.hook_ratio
    if not hooks:
        return []

    weights = [ratio.primary]
    secondary = counts[1:3]
    secondary_total = sum(secondary)
    weights.extend(
        ratio.secondary * c / secondary_total if secondary_total else 0.0 for c in secondary
    )
    rest = counts[3:]
    rest_total = sum(rest)
    remainder = max(0.0, 1.0 - ratio.primary - ratio.secondary)
    weights.extend(remainder * c / rest_total if rest_total else 0.0 for c in rest)

    total = sum(weights)
    if total <= 0:
        return [1.0 / len(hooks)] * len(hooks)
    return [w / total for w in weights]


class PatternRotator:
    """Chooses one candidate per call according to a rotation policy."""

    def __init__(self, policy: str, rng: random.Random) -> None:
        if policy not in {"sequential", "weighted", "random"}:
            raise ValueError(f"Unknown rotation policy: {policy}")
        self.policy = policy
        self.rng = rng

    def pick(
        self,
        candidates: Sequence[str],
        weights: Sequence[float] | None = None,
        cursor: int = 0,
        last: str | None = None,
        exclude: Collection[str] = (),
    ) -> tuple[str, int] | None:
        """Return (candidate, index) or None when nothing is eligible.

        Excluded candidates are never returned. Under sequential rotation the
        previous choice is skipped whenever another candidate is eligible.
        """
        eligible = [i for i, c in enumerate(candidates) if c not in exclude]
        if not eligible:
            return None

        if self.policy == "sequential":
            fresh = [i for i in eligible if candidates[i] != last] or eligible
            n = len(candidates)
            for step in range(n):
                index = (cursor + step) % n
                if index in fresh:
                    return candidates[index], index
            return None

        if self.policy == "weighted" and weights is not None:
            chosen_weights = [weights[i] for i in eligible]
            if sum(chosen_weights) <= 0:
                chosen_weights = [1.0] * len(eligible)
            index = self.rng.choices(eligible, weights=chosen_weights, k=1)[0]
            return candidates[index], index

        index = self.rng.choice(eligible)
        return candidates[index], index


def advance_rotation(
    state: RotationState,
    hook: str | None,
    hook_index: int | None,
    bridge: str | None,
    bridge_index: int | None,
) -> RotationState:
    """Return the state after one successful generation."""
    return state.model_copy(
        update={
            "version": state.version + 1,
            "hook_cursor": hook_index + 1 if hook_index is not None else state.hook_cursor,
            "bridge_cursor": bridge_index + 1 if bridge_index is not None else state.bridge_cursor,
            "last_hook": hook if hook is not None else state.last_hook,
            "last_bridge": bridge if bridge is not None else state.last_bridge,
            "generations": state.generations + 1,
        }
    )
