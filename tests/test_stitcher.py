"""Unit tests for stitchers and the audio store."""
import asyncio
import os

import pytest

from podcaster.audio.stitcher import ConcatStitcher, FfmpegStitcher, build_concat_list
from podcaster.audio.storage import AudioStore
from podcaster.core.errors import StitchError


def test_concat_joins_in_order():
    assert asyncio.run(ConcatStitcher().stitch("j", [b"a", b"b", b"c"])) == b"abc"


def test_single_segment_is_returned_unchanged():
    assert asyncio.run(ConcatStitcher().stitch("j", [b"only"])) == b"only"


def test_zero_segments_is_an_error(tmp_path):
    with pytest.raises(StitchError):
        asyncio.run(ConcatStitcher().stitch("j", []))
    with pytest.raises(StitchError):
        asyncio.run(FfmpegStitcher(AudioStore(str(tmp_path))).stitch("j", []))


def test_build_concat_list_escapes_quotes():
    out = build_concat_list(["/tmp/a.mp3", "/tmp/it's.mp3"])
    assert out == "file '/tmp/a.mp3'\nfile '/tmp/it'\\''s.mp3'\n"


def test_ffmpeg_missing_binary_is_stitch_error(tmp_path):
    store = AudioStore(str(tmp_path))
    stitcher = FfmpegStitcher(store, binary=str(tmp_path / "no-such-ffmpeg"), timeout_seconds=5)

    with pytest.raises(StitchError):
        asyncio.run(stitcher.stitch("job-1", [b"a", b"b"]))
    workdir = os.path.join(store.temp_root, "job-1")
    assert sorted(os.listdir(workdir)) == ["concat.txt", "segment_0000.mp3", "segment_0001.mp3"]


def test_audio_store_save_and_clear(tmp_path):
    store = AudioStore(str(tmp_path), base_url="/podcasts/")
    url = asyncio.run(store.save("job-1", b"mp3"))

    assert url == "/podcasts/job-1/audio"
    with open(store.path_for("job-1"), "rb") as f:
        assert f.read() == b"mp3"

    workdir = store.temp_dir("job-1")
    assert os.path.isdir(workdir)
    store.clear_temp("job-1")
    assert not os.path.exists(workdir)
    store.clear_temp("job-1")
