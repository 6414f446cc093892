"""Application event sourcing – GlobalSequenceToken.

A tracking token marks how far a consumer has read the global log.  Global
sequence numbers are monotonic but may have holes: a transaction that
reserved a number can commit after a higher number is already visible, or
roll back and never appear.  The token therefore remembers the numbers it
skipped (``gaps``) and keeps asking for them until they show up or fall
further than ``max_gap_span`` behind ``position``.
"""

from __future__ import annotations

import dataclasses
import json
from typing import Any

from mp_eventstore.kernel.errors import ValidationError

DEFAULT_MAX_GAP_SPAN = 10_000


@dataclasses.dataclass(frozen=True)
class GlobalSequenceToken:
    """Immutable, JSON-serialisable cursor position over ``global_sequence``.

    ``position`` is the highest delivered global sequence; ``gaps`` are
    lower numbers not delivered yet.  ``GlobalSequenceToken()`` (position 0,
    no gaps) is the tail of the log.

    Tokens are partially ordered: ``a <= b`` when *b* has seen every event
    *a* has seen (see :meth:`covers`).
    """

    position: int = 0
    gaps: frozenset[int] = frozenset()

    def __post_init__(self) -> None:
        if isinstance(self.position, bool) or not isinstance(self.position, int) or self.position < 0:
            raise ValidationError(f"Token position must be a non-negative integer, got {self.position!r}")
        gaps = frozenset(self.gaps)
        if any(g <= 0 or g >= self.position for g in gaps):
            raise ValidationError("Token gaps must lie strictly between 0 and the position")
        object.__setattr__(self, "gaps", gaps)

    @classmethod
    def tail(cls) -> "GlobalSequenceToken":
        return cls()

    def covers(self, other: "GlobalSequenceToken") -> bool:
        """Return ``True`` if this token has seen every event *other* has seen."""
        if other.position > self.position:
            return False
        if other.position in self.gaps:
            return False
        return all(g in other.gaps for g in self.gaps if g < other.position)

    def __le__(self, other: object) -> bool:
        if not isinstance(other, GlobalSequenceToken):
            return NotImplemented
        return other.covers(self)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, GlobalSequenceToken):
            return NotImplemented
        return other.covers(self) and self != other

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, GlobalSequenceToken):
            return NotImplemented
        return self.covers(other)

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, GlobalSequenceToken):
            return NotImplemented
        return self.covers(other) and self != other

    def advanced_to(
        self,
        global_sequence: int,
        max_gap_span: int = DEFAULT_MAX_GAP_SPAN,
    ) -> "GlobalSequenceToken":
        """Return the token after delivering the event at *global_sequence*.

        Numbers skipped between the old position and *global_sequence*
        become gaps; gaps more than *max_gap_span* below the new position
        are dropped.
        """
        if global_sequence <= self.position:
            if global_sequence not in self.gaps:
                return self
            position = self.position
            gaps = self.gaps - {global_sequence}
        else:
            position = global_sequence
            first_missing = max(self.position + 1, global_sequence - max_gap_span)
            gaps = self.gaps | frozenset(range(first_missing, global_sequence))
        floor = position - max_gap_span
        return GlobalSequenceToken(position, frozenset(g for g in gaps if g >= floor))

    def to_dict(self) -> dict[str, Any]:
        return {"position": self.position, "gaps": sorted(self.gaps)}

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GlobalSequenceToken":
        try:
            position = data["position"]
            gaps = data.get("gaps") or []
        except (KeyError, TypeError, AttributeError) as exc:
            raise ValidationError(f"Malformed tracking token: {data!r}") from exc
        if not isinstance(gaps, list) or not all(isinstance(g, int) for g in gaps):
            raise ValidationError(f"Malformed tracking token gaps: {gaps!r}")
        return cls(position, frozenset(gaps))

    @classmethod
    def from_json(cls, raw: str) -> "GlobalSequenceToken":
        try:
            data = json.loads(raw)
        except (TypeError, ValueError) as exc:
            raise ValidationError(f"Malformed tracking token: {raw!r}") from exc
        return cls.from_dict(data)

    def __str__(self) -> str:
        if not self.gaps:
            return f"GlobalSequenceToken({self.position})"
        return f"GlobalSequenceToken({self.position}, gaps={sorted(self.gaps)})"


__all__ = ["DEFAULT_MAX_GAP_SPAN", "GlobalSequenceToken"]
