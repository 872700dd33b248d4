"""Tests for rebuilding files from frames."""

import dataclasses
import random

import pytest

from qrbackup import reassembler
from qrbackup.checksum import compute_crc32
from qrbackup.errors import (
    ConflictingMetadataError,
    CorruptionError,
    MissingPartsError,
    ReassemblyError,
)
from qrbackup.frame import Frame
from qrbackup.reassembler import (
    decode_transport_strings,
    file_identifier,
    group_frames,
    missing_indices,
    reassemble,
    reassemble_group,
)
from qrbackup.splitter import split_file

DATA = b"The quick brown fox jumps over the lazy dog. " * 5

# "notes.txt" leaves 30 body bytes per frame at budget 60
CAPACITY = 30


def _frames(data: bytes = DATA, name: str = "notes.txt", budget: int = 60) -> list[Frame]:
    return split_file(data, name, budget)


class TestFileIdentifier:
    def test_format(self):
        assert file_identifier("notes.txt", 0x1F) == "notes.txt 0000001F"


class TestDecodeTransportStrings:
    def test_valid_codes(self, make_codes, transcoder):
        frames, codes = make_codes(DATA)
        decoded = decode_transport_strings(codes, transcoder)
        assert decoded.frames == frames
        assert decoded.rejected == []

    def test_malformed_codes_are_rejected(self, make_codes, transcoder):
        _, codes = make_codes(DATA)
        bad = ["LSQRBT!!!", "LSQRBTAA", transcoder.encode(b"\x00" * 30)]
        decoded = decode_transport_strings(codes + bad, transcoder)

        assert len(decoded.frames) == len(codes)
        assert [code for code, _ in decoded.rejected] == bad


class TestGroupFrames:
    def test_groups_by_name_and_checksum(self):
        a = _frames(b"aaaa", "a.txt")
        b = _frames(b"bbbb", "a.txt")
        c = _frames(b"aaaa", "c.txt")
        groups = group_frames(a + b + c)
        assert set(groups) == {
            ("a.txt", compute_crc32(b"aaaa")),
            ("a.txt", compute_crc32(b"bbbb")),
            ("c.txt", compute_crc32(b"aaaa")),
        }


class TestReassembleGroup:
    def test_in_order(self):
        rebuilt = reassemble_group(_frames())
        assert rebuilt.data == DATA
        assert rebuilt.verified
        assert rebuilt.identifier == f"notes.txt {compute_crc32(DATA):08X}"

    def test_any_order(self):
        frames = _frames()
        random.Random(7).shuffle(frames)
        assert reassemble_group(frames).data == DATA

    def test_identical_duplicates_tolerated(self):
        frames = _frames()
        assert reassemble_group(frames + frames[:2]).data == DATA

    def test_empty_file(self):
        rebuilt = reassemble_group(_frames(b""))
        assert rebuilt.data == b""
        assert rebuilt.verified

    def test_missing_part(self):
        count = len(_frames())
        for removed in range(count):
            frames = _frames()
            del frames[removed]
            with pytest.raises(MissingPartsError) as excinfo:
                reassemble_group(frames)
            assert excinfo.value.missing == [removed]
            assert excinfo.value.missing_count == 1
            assert excinfo.value.found == [i for i in range(count) if i != removed]
            assert f"Missing parts: [{removed}]" in str(excinfo.value)

    def test_huge_count_lists_only_first_missing(self):
        frame = Frame("evil.bin", 0x1234, 0xFFFFFFFF, 0, 0, b"x")
        with pytest.raises(MissingPartsError) as excinfo:
            reassemble_group([frame])
        assert excinfo.value.missing_count == 0xFFFFFFFE
        assert excinfo.value.missing == list(range(1, 101))
        assert f"Could not read {0xFFFFFFFE} parts" in str(excinfo.value)
        assert "100, ...]" in str(excinfo.value)

    def test_zero_count(self):
        with pytest.raises(ConflictingMetadataError, match="count is zero"):
            reassemble_group([Frame("x.txt", 0, 0, 0, 0, b"secret")])

    def test_index_beyond_count(self):
        frames = _frames()
        stray = dataclasses.replace(frames[0], index=len(frames) + 5)
        with pytest.raises(ConflictingMetadataError, match="outside the range"):
            reassemble_group(frames + [stray])

    def test_index_equal_to_count(self):
        frames = _frames()
        frames[-1] = dataclasses.replace(frames[-1], index=len(frames))
        with pytest.raises(ConflictingMetadataError, match="outside the range"):
            reassemble_group(frames)

    def test_conflicting_count(self):
        frames = _frames()
        frames[0] = dataclasses.replace(frames[0], count=frames[0].count + 1)
        with pytest.raises(ConflictingMetadataError, match="conflicting data"):
            reassemble_group(frames)

    def test_duplicate_index_with_different_body(self):
        frames = _frames()
        forged = dataclasses.replace(frames[1], body=b"X" * len(frames[1].body))
        with pytest.raises(ConflictingMetadataError, match="part 1"):
            reassemble_group(frames + [forged])

    def test_flipped_byte_fails_verification(self):
        for position in range(len(_frames())):
            frames = _frames()
            body = bytearray(frames[position].body)
            body[len(body) // 2] ^= 0x01
            frames[position] = dataclasses.replace(frames[position], body=bytes(body))

            rebuilt = reassemble_group(frames)
            assert not rebuilt.verified, position
            assert rebuilt.data != DATA

    def test_empty_group(self):
        with pytest.raises(ValueError):
            reassemble_group([])

    def test_mixed_group(self):
        with pytest.raises(ValueError):
            reassemble_group(_frames(b"a", "a.txt") + _frames(b"b", "b.txt"))


class TestReassemble:
    def test_two_files(self):
        first = _frames(b"first file " * 10, "one.txt")
        second = _frames(b"second file " * 7, "two.txt")
        mixed = first + second
        random.Random(1).shuffle(mixed)

        outcomes = {outcome.file.file_name: outcome for outcome in reassemble(mixed)}
        assert outcomes["one.txt"].file.data == b"first file " * 10
        assert outcomes["two.txt"].file.data == b"second file " * 7
        assert all(outcome.ok for outcome in outcomes.values())

    def test_failure_isolated_to_its_group(self):
        good = _frames(b"good data " * 10, "good.txt")
        broken = _frames(b"broken data " * 10, "broken.txt")[1:]

        outcomes = {outcome.identifier.split()[0]: outcome for outcome in reassemble(good + broken)}
        assert outcomes["good.txt"].ok
        assert outcomes["good.txt"].file.data == b"good data " * 10
        assert isinstance(outcomes["broken.txt"].error, MissingPartsError)
        assert outcomes["broken.txt"].file is None

    def test_corruption_keeps_data(self):
        frames = _frames()
        frames[-1] = dataclasses.replace(frames[-1], body=frames[-1].body[:-1] + b"?")

        (outcome,) = reassemble(frames)
        assert isinstance(outcome.error, CorruptionError)
        assert outcome.file is not None
        assert not outcome.file.verified
        assert "File corrupted" in str(outcome.error)

    def test_part_count_counts_received_frames(self):
        frames = _frames()
        (outcome,) = reassemble(frames + frames[:1])
        assert outcome.part_count == len(frames) + 1

    def test_no_frames(self):
        assert reassemble([]) == []

    def test_same_name_different_checksum_are_separate(self):
        old = _frames(b"version one " * 4, "doc.txt")
        new = _frames(b"version two " * 4, "doc.txt")
        outcomes = reassemble(old + new)
        assert len(outcomes) == 2
        assert {outcome.file.data for outcome in outcomes} == {
            b"version one " * 4,
            b"version two " * 4,
        }

    def test_oversized_count_does_not_block_other_groups(self):
        evil = Frame("evil.bin", 0x1234, 0xFFFFFFFF, 0, 0, b"x")
        good = _frames(b"good" * 30, "good.bin")

        outcomes = {outcome.identifier.split()[0]: outcome for outcome in reassemble([evil] + good)}

        assert outcomes["good.bin"].ok
        assert outcomes["good.bin"].file.data == b"good" * 30
        assert isinstance(outcomes["evil.bin"].error, MissingPartsError)

    def test_unexpected_failure_isolated(self, monkeypatch):
        original = reassembler.reassemble_group

        def flaky(frames):
            if frames[0].file_name == "bad.txt":
                raise RuntimeError("boom")
            return original(frames)

        monkeypatch.setattr(reassembler, "reassemble_group", flaky)
        outcomes = {
            outcome.identifier.split()[0]: outcome
            for outcome in reassemble(_frames(b"a" * 40, "bad.txt") + _frames(b"b" * 40, "ok.txt"))
        }

        assert outcomes["ok.txt"].ok
        assert isinstance(outcomes["bad.txt"].error, ReassemblyError)
        assert "RuntimeError: boom" in str(outcomes["bad.txt"].error)


class TestMissingIndices:
    def test_gaps(self):
        assert missing_indices([1, 3], 5) == [0, 2, 4]

    def test_nothing_missing(self):
        assert missing_indices([0, 1, 2], 3) == []

    def test_limit(self):
        assert missing_indices([0], 10**9, limit=3) == [1, 2, 3]
        assert missing_indices([2, 5], 10, limit=4) == [0, 1, 3, 4]


class TestRoundTrip:
    @pytest.mark.parametrize(
        "size",
        [0, 1, CAPACITY, CAPACITY + 1, 3 * CAPACITY],
        ids=["empty", "one-byte", "one-unit", "unit-plus-one", "three-units"],
    )
    def test_split_transcode_reassemble(self, size, make_codes, transcoder):
        data = bytes(random.Random(size).randrange(256) for _ in range(size))
        frames, codes = make_codes(data)
        assert {len(frame.encode()) for frame in frames} == {60}

        shuffled = list(codes)
        random.Random(3).shuffle(shuffled)
        decoded = decode_transport_strings(shuffled, transcoder)
        (outcome,) = reassemble(decoded.frames)

        assert outcome.ok
        assert outcome.file.verified
        assert outcome.file.data == data
        assert outcome.file.file_name == "notes.txt"
