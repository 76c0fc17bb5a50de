import logging

from flask import Blueprint, jsonify

from ...errors import tool_errors
from ...uploads import json_body, json_bool
from . import minify, ops

logger = logging.getLogger(__name__)

bp = Blueprint("text", __name__, url_prefix="/tools/text-web")


def _options(data):
    options = data.get("options") or {}
    if not isinstance(options, dict):
        raise ValueError("Options must be an object")
    return options


@bp.post("/case-converter")
@tool_errors("An error occurred while converting the text. Please try again.")
def case_converter_post():
    data = json_body()
    text = ops.require_text(data.get("text"))
    case = data.get("case") or "uppercase"
    return jsonify(output=ops.convert_case(text, case))


@bp.post("/char-counter")
@tool_errors("An error occurred while counting. Please try again.")
def char_counter_post():
    data = json_body()
    return jsonify(stats=ops.text_stats(data.get("text") or ""))


@bp.post("/word-counter")
@tool_errors("An error occurred while counting. Please try again.")
def word_counter_post():
    data = json_body()
    return jsonify(stats=ops.word_stats(data.get("text") or ""))


@bp.post("/css-minifier")
@tool_errors("An error occurred while minifying. Please try again.")
def css_minifier_post():
    data = json_body()
    return jsonify(minify.minify("css", data.get("text") or "", _options(data)))


@bp.post("/html-minifier")
@tool_errors("An error occurred while minifying. Please try again.")
def html_minifier_post():
    data = json_body()
    return jsonify(minify.minify("html", data.get("text") or "", _options(data)))


@bp.post("/js-minifier")
@tool_errors("An error occurred while minifying. Please try again.")
def js_minifier_post():
    data = json_body()
    return jsonify(minify.minify("js", data.get("text") or "", _options(data)))


@bp.post("/json-formatter")
@tool_errors("An error occurred while formatting JSON. Please try again.")
def json_formatter_post():
    data = json_body()
    return jsonify(ops.format_json(data.get("text"), data.get("indent", 2), data.get("mode") or "format"))


@bp.post("/json-validator")
@tool_errors("An error occurred while validating JSON. Please try again.")
def json_validator_post():
    data = json_body()
    result = ops.validate_json(
        data.get("text"),
        format_output=json_bool(data, "format_output", True),
        compact_output=json_bool(data, "compact_output"),
        sort_keys=json_bool(data, "sort_keys"),
    )
    return jsonify(result)


@bp.post("/lorem-ipsum")
@tool_errors("An error occurred while generating text. Please try again.")
def lorem_ipsum_post():
    data = json_body()
    result = ops.lorem_ipsum(
        paragraphs=data.get("paragraphs", 3),
        words_per_paragraph=data.get("words_per_paragraph", 50),
        start_with_lorem=json_bool(data, "start_with_lorem", True),
        seed=data.get("seed"),
    )
    return jsonify(result)


@bp.post("/meta-generator")
@tool_errors("An error occurred while generating meta tags. Please try again.")
def meta_generator_post():
    return jsonify(ops.meta_tags(json_body()))


@bp.post("/regex-tester")
@tool_errors("An error occurred while testing the pattern. Please try again.")
def regex_tester_post():
    data = json_body()
    flags = data.get("flags")
    result = ops.regex_test(data.get("pattern") or "", data.get("text") or "", "g" if flags is None else flags)
    logger.info("regex-tester pattern=%r matches=%d", data.get("pattern"), result["count"])
    return jsonify(result)


@bp.post("/remove-spaces")
@tool_errors("An error occurred while removing spaces. Please try again.")
def remove_spaces_post():
    data = json_body()
    return jsonify(ops.remove_spaces(data.get("text"), _options(data)))


@bp.post("/text-replacer")
@tool_errors("An error occurred while replacing text. Please try again.")
def text_replacer_post():
    data = json_body()
    result = ops.replace_text(
        data.get("text"),
        data.get("search") or "",
        data.get("replace") or "",
        case_sensitive=json_bool(data, "case_sensitive"),
        use_regex=json_bool(data, "use_regex"),
        replace_all=json_bool(data, "replace_all", True),
        whole_word=json_bool(data, "whole_word"),
    )
    return jsonify(result)


@bp.post("/text-sorter")
@tool_errors("An error occurred while sorting. Please try again.")
def text_sorter_post():
    data = json_body()
    result = ops.sort_lines(
        data.get("text"),
        sort_by=data.get("sort_by") or "alphabetical",
        order=data.get("order") or "ascending",
        case_sensitive=json_bool(data, "case_sensitive"),
        remove_duplicates=json_bool(data, "remove_duplicates"),
        ignore_empty_lines=json_bool(data, "ignore_empty_lines", True),
    )
    return jsonify(result)


@bp.post("/url-encode")
@tool_errors("An error occurred while encoding. Please try again.")
def url_encode_post():
    data = json_body()
    result = ops.url_encode(
        data.get("text") or "",
        mode=data.get("mode") or "encode",
        encode_spaces=json_bool(data, "encode_spaces", True),
        encode_special_chars=json_bool(data, "encode_special_chars", True),
    )
    return jsonify(result)


@bp.post("/base64")
@tool_errors("An error occurred while encoding. Please try again.")
def base64_post():
    data = json_body()
    return jsonify(ops.base64_text(data.get("text") or "", data.get("mode") or "encode"))
