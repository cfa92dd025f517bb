from __future__ import annotations

from collections.abc import Iterable, Sequence

from bookstudio.errors import UpstreamSynthesisError


def assemble(buffers: Sequence[bytes]) -> bytes:
    """Concatenate encoded audio buffers in the given order.

    No re-encoding or silence trimming: MP3 frames from the same provider
    play back correctly when appended.
    """
    if not buffers:
        raise UpstreamSynthesisError("No audio segments to assemble")

    total_size = sum(len(buffer) for buffer in buffers)
    if total_size == 0:
        raise UpstreamSynthesisError("Assembled audio is empty")

    stitched = bytearray(total_size)
    offset = 0
    for buffer in buffers:
        stitched[offset : offset + len(buffer)] = buffer
        offset += len(buffer)
    return bytes(stitched)


def assemble_indexed(segments: Iterable[tuple[int, bytes]]) -> bytes:
    """Assemble ``(node_index, audio)`` pairs produced out of order."""
    ordered = sorted(segments, key=lambda pair: pair[0])
    return assemble([audio for _, audio in ordered])
