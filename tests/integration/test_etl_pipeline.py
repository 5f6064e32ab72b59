"""
Integration tests for the transform pipeline over file-backed raw pages
"""

import json

import pytest

from core.exceptions import TransformationError
from ingestion.stores import FileRawPageStore
from ingestion.transformers.pipeline import TransformPipeline
from schemas.pages import malformed_page


def issue(key, summary, description=""):
    return {"key": key, "fields": {"summary": summary, "description": description}}


def read_output(path):
    return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]


@pytest.fixture
def raw_store(tmp_path):
    return FileRawPageStore(tmp_path / "raw")


@pytest.fixture
def pipeline(raw_store, tmp_path):
    return TransformPipeline(raw_store, tmp_path / "out")


def test_duplicate_issue_first_occurrence_wins(raw_store, pipeline, page_factory):
    raw_store.write("SPARK", 0, page_factory(0, [
        issue("SPARK-2", "newest"),
        issue("SPARK-1", "original title", "<p>Hello <b>world</b></p>"),
    ]))
    raw_store.write("SPARK", 50, page_factory(50, [
        issue("SPARK-1", "shifted copy", "<p>changed</p>"),
        issue("SPARK-0", "oldest"),
    ]))

    result = pipeline.run("SPARK")

    records = read_output(pipeline.output_path("SPARK"))
    assert [r["issue_id"] for r in records] == ["SPARK-2", "SPARK-1", "SPARK-0"]
    spark_1 = records[1]
    assert spark_1["title"] == "original title"
    assert spark_1["description_plaintext"] == "Hello world"
    assert spark_1["derived"]["summary"] == "Hello world"
    assert result["records_written"] == 3
    assert result["duplicates_skipped"] == 1


def test_pages_processed_in_numeric_offset_order(raw_store, pipeline, page_factory):
    raw_store.write("SPARK", 100, page_factory(100, [issue("SPARK-1", "from 100")]))
    raw_store.write("SPARK", 50, page_factory(50, [issue("SPARK-1", "from 50")]))

    pipeline.run("SPARK")

    records = read_output(pipeline.output_path("SPARK"))
    assert len(records) == 1
    assert records[0]["title"] == "from 50"


def test_invalid_json_page_is_skipped(raw_store, pipeline, page_factory, caplog):
    raw_store.write("SPARK", 0, page_factory(0, [issue("SPARK-3", "three")]))
    raw_store.project_dir("SPARK").joinpath("page_50.json").write_text("{broken json")
    raw_store.write("SPARK", 100, page_factory(100, [issue("SPARK-1", "one")]))

    result = pipeline.run("SPARK")

    records = read_output(pipeline.output_path("SPARK"))
    assert [r["issue_id"] for r in records] == ["SPARK-3", "SPARK-1"]
    assert result["pages_skipped"] == 1
    assert result["pages_read"] == 2
    assert "Skipping unreadable raw page" in caplog.text


def test_malformed_pages_are_skipped(raw_store, pipeline, page_factory, caplog):
    raw_store.write("SPARK", 0, malformed_page({"errorMessages": ["oops"]}))
    raw_store.write("SPARK", 50, {"total": 3})
    raw_store.write("SPARK", 100, page_factory(100, [issue("SPARK-1", "one")]))

    result = pipeline.run("SPARK")

    assert [r["issue_id"] for r in read_output(pipeline.output_path("SPARK"))] == ["SPARK-1"]
    assert result["pages_skipped"] == 2
    assert "Skipping malformed page" in caplog.text


def test_issue_without_key_is_skipped(raw_store, pipeline, page_factory):
    raw_store.write("SPARK", 0, page_factory(0, [
        {"fields": {"summary": "no key"}},
        "not even a dict",
        issue("SPARK-1", "one"),
    ]))

    result = pipeline.run("SPARK")

    assert [r["issue_id"] for r in read_output(pipeline.output_path("SPARK"))] == ["SPARK-1"]
    assert result["issues_skipped"] == 2


def test_unpaired_surrogate_does_not_stop_the_run(raw_store, pipeline):
    page = json.loads(
        b'{"startAt": 0, "total": 2, "issues": ['
        b'{"key": "SPARK-1", "fields": {"summary": "bad \\ud800 x"}},'
        b'{"key": "SPARK-2"}]}'
    )
    raw_store.write("SPARK", 0, page)

    result = pipeline.run("SPARK")

    records = read_output(pipeline.output_path("SPARK"))
    assert [r["issue_id"] for r in records] == ["SPARK-1", "SPARK-2"]
    assert records[0]["title"] == "bad \ud800 x"
    assert result["records_written"] == 2
    assert result["issues_skipped"] == 0


def test_output_is_append_only(raw_store, pipeline, page_factory):
    raw_store.write("SPARK", 0, page_factory(0, [issue("SPARK-1", "one"), issue("SPARK-2", "two")]))

    pipeline.run("SPARK")
    pipeline.run("SPARK")

    # dedup is scoped to a single run
    records = read_output(pipeline.output_path("SPARK"))
    assert [r["issue_id"] for r in records] == ["SPARK-1", "SPARK-2", "SPARK-1", "SPARK-2"]


def test_no_raw_pages_raises(pipeline, tmp_path):
    with pytest.raises(TransformationError):
        pipeline.run("SPARK")

    assert not (tmp_path / "out" / "SPARK.jsonl").exists()


def test_output_file_per_project(raw_store, pipeline, page_factory, tmp_path):
    raw_store.write("SPARK", 0, page_factory(0, [issue("SPARK-1", "one")]))
    raw_store.write("KAFKA", 0, page_factory(0, [issue("KAFKA-1", "one")]))

    pipeline.run("SPARK")
    pipeline.run("KAFKA")

    assert read_output(tmp_path / "out" / "SPARK.jsonl")[0]["project"] == "SPARK"
    assert read_output(tmp_path / "out" / "KAFKA.jsonl")[0]["project"] == "KAFKA"
