import pytest

from bookstudio.errors import UpstreamSynthesisError
from bookstudio.services.audio_assembler import assemble, assemble_indexed


def test_assemble_preserves_order_and_offsets():
    buffers = [b"\x01\x02", b"", b"\x03\x04\x05", b"\x06"]

    audio = assemble(buffers)

    assert audio == b"\x01\x02\x03\x04\x05\x06"
    assert len(audio) == sum(len(b) for b in buffers)


def test_assemble_rejects_no_segments():
    with pytest.raises(UpstreamSynthesisError):
        assemble([])


def test_assemble_rejects_all_empty_segments():
    with pytest.raises(UpstreamSynthesisError, match="empty"):
        assemble([b"", b""])


def test_assemble_indexed_restores_document_order():
    segments = [(2, b"C"), (0, b"A"), (1, b"B")]

    assert assemble_indexed(segments) == b"ABC"
