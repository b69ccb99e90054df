"""Flask application exposing an upload-and-generate interface for tag clouds."""
from __future__ import annotations

import io
import json
import logging
import os
import time
from collections import OrderedDict
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from flask import Flask, jsonify, render_template, request
from werkzeug.utils import secure_filename

from tagcloud_core import (
    MAX_FONT_SIZE,
    MIN_FONT_SIZE,
    InputReadError,
    InsufficientVocabularyError,
    InvalidWordCountError,
    TagCloudConfig,
    TagCloudResult,
    WordCounts,
    count_words,
    entries_to_json,
    generate_tag_cloud_from_counts,
    load_word_counts,
)

BASE_DIR = Path(__file__).resolve().parent
UPLOAD_DIR = BASE_DIR / "data" / "uploads"

app = Flask(__name__, template_folder="templates")
logger = logging.getLogger(__name__)

CACHE_ENABLED = os.environ.get("TAGCLOUD_CACHE", "1").lower() not in {"0", "false", "no"}
CACHE_CAPACITY = max(1, int(os.environ.get("TAGCLOUD_CACHE_MAX", "8") or 8))
COUNTS_CACHE: OrderedDict[tuple, WordCounts] = OrderedDict()


def parse_bool(value: Any, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


def parse_word_count(payload: Mapping[str, Any]) -> int:
    raw = payload.get("n")
    if raw is None:
        raise InvalidWordCountError("n missing")
    if isinstance(raw, int) and not isinstance(raw, bool):
        return raw
    if isinstance(raw, float) and raw.is_integer():
        return int(raw)
    if isinstance(raw, str):
        try:
            return int(raw.strip())
        except ValueError:
            pass
    raise InvalidWordCountError(f"number of words must be an integer, got {raw!r}")


def build_config(payload: Mapping[str, Any]) -> TagCloudConfig:
    config = TagCloudConfig(
        min_font_size=int(payload.get("minFont", MIN_FONT_SIZE)),
        max_font_size=int(payload.get("maxFont", MAX_FONT_SIZE)),
        strict=parse_bool(payload.get("strict")),
        inline_style=parse_bool(payload.get("inlineStyle"), default=True),
    )
    if "stylesheet" in payload:
        config.stylesheet_url = str(payload["stylesheet"]) or None
    return config.validate()


def build_counts_cache_key(path: Path, config: TagCloudConfig) -> tuple:
    stat = path.stat()
    return (
        str(path),
        int(stat.st_mtime_ns),
        tuple(sorted(config.separators)),
    )


def get_cached_counts(path: Path, config: TagCloudConfig) -> tuple[Optional[tuple], Optional[WordCounts]]:
    if not CACHE_ENABLED:
        return None, None
    try:
        key = build_counts_cache_key(path, config)
    except OSError:
        return None, None
    entry = COUNTS_CACHE.get(key)
    if entry is not None:
        COUNTS_CACHE.move_to_end(key)
        logger.debug("Word count cache hit for %s", path)
        return key, entry
    return key, None


def store_cache_entry(cache_key: Optional[tuple], entry: WordCounts) -> None:
    if not CACHE_ENABLED or cache_key is None:
        return
    COUNTS_CACHE[cache_key] = entry
    COUNTS_CACHE.move_to_end(cache_key)
    while len(COUNTS_CACHE) > CACHE_CAPACITY:
        COUNTS_CACHE.popitem(last=False)


def build_analysis_payload(result: TagCloudResult) -> Dict[str, Any]:
    selection = result.selection
    return {
        "totalWords": result.word_counts.total,
        "uniqueWords": len(result.word_counts),
        "requested": selection.requested,
        "selected": len(selection),
        "insufficient": selection.insufficient,
        "minCount": selection.min_count,
        "maxCount": selection.max_count,
    }


def resolve_input_path(path_str: str) -> Path:
    candidate = (BASE_DIR / path_str).resolve() if not Path(path_str).is_absolute() else Path(path_str).resolve()
    if BASE_DIR not in candidate.parents and candidate != BASE_DIR:
        raise ValueError("Input path must stay within the project directory")
    if not candidate.is_file():
        raise FileNotFoundError(candidate)
    return candidate


@app.get("/")
def index() -> str:
    return render_template(
        "index.html",
        min_font=MIN_FONT_SIZE,
        max_font=MAX_FONT_SIZE,
    )


@app.post("/api/upload")
def upload() -> Any:
    if "file" not in request.files:
        return jsonify({"error": "No file part"}), 400
    file = request.files["file"]
    if not file or file.filename == "":
        return jsonify({"error": "No selected file"}), 400

    UPLOAD_DIR.mkdir(parents=True, exist_ok=True)
    filename = secure_filename(file.filename) or f"upload-{int(time.time())}.txt"
    timestamp = int(time.time())
    stored_name = f"{timestamp}-{filename}"
    destination = UPLOAD_DIR / stored_name
    file.save(destination)
    logger.info("Stored upload %s", destination)

    relative_path = destination.relative_to(BASE_DIR)
    return jsonify({
        "textPath": str(relative_path),
        "filename": filename,
        "stored": str(destination),
    })


@app.post("/api/generate")
def generate() -> Any:
    if request.mimetype == "application/json":
        payload = request.get_json(silent=True) or {}
    else:
        payload = request.form.to_dict(flat=True)
        if "config" in payload:
            try:
                payload.update(json.loads(payload.pop("config")))
            except json.JSONDecodeError:
                return jsonify({"error": "config is not valid JSON"}), 400

    try:
        n = parse_word_count(payload)
        config = build_config(payload)
    except ValueError as exc:
        return jsonify({"error": str(exc)}), 400

    text_path = payload.get("textPath")
    inline_text = payload.get("text")
    word_counts: Optional[WordCounts] = None

    if text_path:
        try:
            path = resolve_input_path(str(text_path))
        except FileNotFoundError:
            return jsonify({"error": f"Input file not found: {text_path}"}), 404
        except ValueError as exc:
            return jsonify({"error": str(exc)}), 400

        use_cache = CACHE_ENABLED and not parse_bool(payload.get("skipCache"))
        cache_key: Optional[tuple] = None
        if use_cache:
            cache_key, word_counts = get_cached_counts(path, config)
        if word_counts is None:
            try:
                word_counts = load_word_counts(path, config=config)
            except InputReadError as exc:
                return jsonify({"error": str(exc)}), 400
            if use_cache:
                store_cache_entry(cache_key, word_counts)
        source_name = payload.get("sourceName") or path.name
    elif isinstance(inline_text, str):
        source_name = payload.get("sourceName") or "submitted text"
        word_counts = count_words(io.StringIO(inline_text, newline=None), separators=config.separators)
    else:
        return jsonify({"error": "textPath or text missing"}), 400

    try:
        result = generate_tag_cloud_from_counts(
            word_counts,
            n,
            source_name=str(source_name),
            config=config,
        )
    except InvalidWordCountError as exc:
        return jsonify({"error": str(exc)}), 400
    except InsufficientVocabularyError as exc:
        return jsonify({
            "error": str(exc),
            "requested": exc.requested,
            "available": exc.available,
        }), 422

    response: Dict[str, Any] = {
        "words": entries_to_json(result.entries),
        "analysis": build_analysis_payload(result),
    }
    if parse_bool(payload.get("returnHtml"), default=True):
        response["html"] = result.html
    return jsonify(response)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    app.run(debug=True)
