import os
from collections import Counter
from unittest import mock

import pytest

from distlab import mrapps
from distlab.mapreduce import KeyValue


def test_wc_map_splits_on_non_letters():
    kvs = mrapps.wc_map("f", "Hello, world! hello")
    assert kvs == [KeyValue("Hello", "1"), KeyValue("world", "1"), KeyValue("hello", "1")]


def test_wc_map_treats_digits_as_separators():
    kvs = mrapps.wc_map("f", "abc123def")
    assert [kv.key for kv in kvs] == ["abc", "def"]


def test_wc_map_keeps_unicode_letters():
    kvs = mrapps.wc_map("f", "café  naïve.")
    assert [kv.key for kv in kvs] == ["café", "naïve"]


def test_wc_map_of_text_without_letters_is_empty():
    assert mrapps.wc_map("f", "123 -- 456\n") == []


def test_wc_reduce_counts_map_output():
    text = "the cat and the hat and the bat"
    kvs = mrapps.wc_map("f", text)
    counts = Counter(kv.key for kv in kvs)
    for word, n in counts.items():
        values = [kv.value for kv in kvs if kv.key == word]
        assert mrapps.wc_reduce(word, values) == str(n)


def test_indexer_map_emits_each_word_once():
    kvs = mrapps.indexer_map("doc", "a b a c b")
    keys = [kv.key for kv in kvs]
    assert sorted(keys) == ["a", "b", "c"]
    assert len(keys) == len(set(keys))
    assert all(kv.value == "doc" for kv in kvs)


def test_indexer_reduce_sorts_documents():
    assert mrapps.indexer_reduce("w", ["d2", "d1"]) == "2 d1,d2"


def test_nocrash_map_reports_file_facts():
    kvs = mrapps.nocrash_map("in.txt", "hello")
    assert kvs[0] == KeyValue("a", "in.txt")
    assert kvs[1] == KeyValue("b", "6")
    assert kvs[2] == KeyValue("c", "5")
    assert kvs[3] == KeyValue("d", "xyzzy")


def test_nocrash_map_counts_bytes_not_characters():
    kvs = mrapps.nocrash_map("é", "é")
    assert kvs[1].value == str(len("é".encode("utf-8")))
    assert kvs[2].value == kvs[1].value


def test_nocrash_reduce_sorts_values():
    assert mrapps.nocrash_reduce("k", ["b", "a", "c"]) == "a b c"


def test_crash_map_without_failure_matches_nocrash():
    with mock.patch("secrets.randbelow", return_value=999):
        kvs = mrapps.crash_map("in.txt", "hello")
    assert kvs == mrapps.nocrash_map("in.txt", "hello")


def test_crash_map_exits_when_unlucky():
    with mock.patch("secrets.randbelow", return_value=0), mock.patch(
        "os._exit", side_effect=SystemExit(1)
    ):
        with pytest.raises(SystemExit):
            mrapps.crash_map("in.txt", "hello")


def test_crash_reduce_sometimes_stalls():
    with mock.patch("secrets.randbelow", return_value=500), mock.patch(
        "time.sleep"
    ) as sleep:
        result = mrapps.crash_reduce("k", ["z", "y"])
    assert result == "y z"
    sleep.assert_called_once_with(0.5)


def test_early_exit_map_emits_filename_once():
    assert mrapps.early_exit_map("f.txt", "anything") == [KeyValue("f.txt", "1")]


def test_early_exit_reduce_pauses_for_slow_keys():
    with mock.patch("time.sleep") as sleep:
        result = mrapps.early_exit_reduce("pg-tom_sawyer.txt", ["1", "1"])
    assert result == str(len(["1", "1"]))
    sleep.assert_called_once_with(3)


def test_early_exit_reduce_fast_for_other_keys():
    with mock.patch("time.sleep") as sleep:
        result = mrapps.early_exit_reduce("pg-grimm.txt", ["1"])
    assert result == "1"
    assert sleep.call_count == 0


def test_jobcount_counts_marker_files(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    with mock.patch("time.sleep"):
        first = mrapps.jobcount_map("f1", "")
        mrapps.jobcount_map("f2", "")
    assert first == [KeyValue("a", "x")]
    markers = list(tmp_path.glob("mr-worker-jobcount*"))
    assert len(markers) == 2
    assert mrapps.jobcount_reduce("a", ["x", "x"]) == str(len(markers))


def test_mtiming_map_reports_time_and_parallelism(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    pid = os.getpid()
    with mock.patch("time.sleep"):
        kvs = mrapps.mtiming_map("f", "")
    assert [kv.key for kv in kvs] == [f"times-{pid}", f"parallel-{pid}"]
    assert float(kvs[0].value) > 0
    assert kvs[1].value == "1"
    assert list(tmp_path.iterdir()) == []


def test_mtiming_reduce_sorts_values():
    assert mrapps.mtiming_reduce("k", ["2.0", "1.0"]) == "1.0 2.0"


def test_rtiming_map_emits_ten_letters():
    kvs = mrapps.rtiming_map("f", "")
    assert "".join(kv.key for kv in kvs) == "abcdefghij"
    assert {kv.value for kv in kvs} == {"1"}


def test_rtiming_reduce_ignores_unrelated_files(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "mr-worker-reduce-abc").write_text("x")
    (tmp_path / "mr-worker-map-1").write_text("x")
    with mock.patch("time.sleep"):
        result = mrapps.rtiming_reduce("a", ["1"])
    assert result == "1"
    assert not (tmp_path / f"mr-worker-reduce-{os.getpid()}").exists()


def test_load_app_by_name_and_path():
    assert mrapps.load_app("wc") == (mrapps.wc_map, mrapps.wc_reduce)
    assert mrapps.load_app("../mrapps/indexer.so") == (
        mrapps.indexer_map,
        mrapps.indexer_reduce,
    )
    assert mrapps.load_app("early_exit.so")[0] is mrapps.early_exit_map


def test_load_app_unknown_raises():
    with pytest.raises(ValueError, match="cannot load plugin"):
        mrapps.load_app("nonexistent.so")