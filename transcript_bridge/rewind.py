"""Truncate a transcript at a cut point.

Turn timestamps are recorded when a message is persisted, which for
streamed assistant turns can be later than a logically later user turn.
The boundary is therefore the first *user* turn at or after the cutoff,
not the first turn of any role.
"""

from __future__ import annotations

from typing import List, Optional, Sequence

from .transcript import Turn


def find_rewind_boundary(transcript: Sequence[Turn], cutoff_ts: float) -> Optional[int]:
    """Index of the first user turn with ``ts >= cutoff_ts``, or None."""
    for i, turn in enumerate(transcript):
        if turn.role == "user" and turn.ts is not None and turn.ts >= cutoff_ts:
            return i
    return None


def rewind_to_timestamp(transcript: Sequence[Turn], cutoff_ts: float) -> List[Turn]:
    boundary = find_rewind_boundary(transcript, cutoff_ts)
    if boundary is not None:
        return list(transcript[:boundary])
    return [t for t in transcript if t.ts is None or t.ts < cutoff_ts]


def rewind_to_sequence(transcript: Sequence[Turn], seq: int) -> List[Turn]:
    """Keep turns appended before ``seq``; turns without a sequence number are kept."""
    return [t for t in transcript if t.seq is None or t.seq < seq]


def rewind_to_index(transcript: Sequence[Turn], index: int) -> List[Turn]:
    if index < 0 or index > len(transcript):
        raise IndexError(f"rewind index {index} out of range for {len(transcript)} turns")
    return list(transcript[:index])
