"""
Tests for tagcloud.py - the command line wrapper around the pipeline.
"""

import json

import pytest

import tagcloud


def answers(*values):
    queue = list(values)
    return lambda prompt: queue.pop(0)


def test_main_writes_html(tmp_path, text_file, capsys):
    output = tmp_path / "out" / "cloud.html"
    tagcloud.main([str(text_file), str(output), "-n", "3"])

    document = output.read_text(encoding="utf-8")
    assert "Top 3 words in" in document
    assert 'title="count: 4">the</span>' in document
    assert str(output) in capsys.readouterr().out


def test_main_prompts_for_missing_values(tmp_path, text_file):
    output = tmp_path / "prompted.html"
    tagcloud.main([], ask=answers(str(text_file), str(output), "2"))
    assert output.exists()


def test_prompted_n_must_be_integer(tmp_path, text_file):
    with pytest.raises(SystemExit):
        tagcloud.main([], ask=answers(str(text_file), str(tmp_path / "x.html"), "many"))


def test_flag_n_must_be_integer(tmp_path, text_file):
    with pytest.raises(SystemExit):
        tagcloud.main([str(text_file), str(tmp_path / "x.html"), "-n", "many"])


def test_missing_input(tmp_path):
    with pytest.raises(SystemExit) as excinfo:
        tagcloud.main([str(tmp_path / "nope.txt"), str(tmp_path / "x.html"), "-n", "3"])
    assert "not found" in str(excinfo.value)


def test_negative_n(tmp_path, text_file):
    output = tmp_path / "x.html"
    with pytest.raises(SystemExit) as excinfo:
        tagcloud.main([str(text_file), str(output), "-n", "-1"])
    assert "negative" in str(excinfo.value)
    assert not output.exists()


def test_insufficient_vocabulary_continues(tmp_path, text_file):
    output = tmp_path / "x.html"
    tagcloud.main([str(text_file), str(output), "-n", "50"])
    assert output.read_text(encoding="utf-8").count("<span") == 8


def test_strict_insufficient_vocabulary_stops(tmp_path, text_file):
    with pytest.raises(SystemExit):
        tagcloud.main([str(text_file), str(tmp_path / "x.html"), "-n", "50", "--strict"])


def test_invalid_font_range(tmp_path, text_file):
    with pytest.raises(SystemExit):
        tagcloud.main([
            str(text_file), str(tmp_path / "x.html"), "-n", "2",
            "--min-font", "40", "--max-font", "20",
        ])


def test_dump_json_and_plain_styles(tmp_path, text_file):
    output = tmp_path / "x.html"
    dump = tmp_path / "words" / "words.json"
    tagcloud.main([
        str(text_file), str(output), "-n", "2",
        "--stylesheet", "", "--no-inline-style", "--dump-json", str(dump),
    ])

    document = output.read_text(encoding="utf-8")
    assert "<link" not in document
    assert "<style>" not in document
    assert json.loads(dump.read_text(encoding="utf-8")) == [
        {"text": "cat", "count": 2, "size": 11},
        {"text": "the", "count": 4, "size": 48},
    ]
