import pytest

from koovlo.tools.text import minify, ops


@pytest.mark.parametrize("case,source,expected", [
    ("uppercase", "Hello", "HELLO"),
    ("titlecase", "hello wORLD", "Hello World"),
    ("sentencecase", "hELLO THERE", "Hello there"),
    ("camelcase", "Hello big World", "helloBigWorld"),
    ("snakecase", "helloBig World", "hello_big_world"),
    ("kebabcase", "helloBig World", "hello-big-world"),
    ("alternating", "abc", "AbC"),
    ("inverse", "aB", "Ab"),
])
def test_convert_case(case, source, expected):
    assert ops.convert_case(source, case) == expected


def test_convert_case_unknown():
    with pytest.raises(ValueError, match="Unknown case"):
        ops.convert_case("x", "shout")


def test_text_stats():
    stats = ops.text_stats("Hello world. Bye!\n\nNew para")
    assert stats["words"] == 5
    assert stats["sentences"] == 3
    assert stats["paragraphs"] == 2
    assert stats["lines"] == 3


def test_word_stats_minimum_times():
    stats = ops.word_stats("")
    assert stats["words"] == 0
    assert stats["reading_time"] == 0.1
    assert stats["speaking_time"] == 0.1


def test_format_and_minify_json():
    source = '{"b": 1, "a": [1, 2]}'
    assert ops.format_json(source, indent=2)["output"] == '{\n  "b": 1,\n  "a": [\n    1,\n    2\n  ]\n}'
    assert ops.format_json(source, mode="minify")["output"] == '{"b":1,"a":[1,2]}'
    assert ops.format_json(source, indent="tab")["output"].startswith('{\n\t"b"')


def test_format_json_errors():
    with pytest.raises(ValueError, match="Invalid JSON"):
        ops.format_json("{nope}")
    with pytest.raises(ValueError, match="Invalid JSON"):
        ops.format_json("[NaN]")


def test_validate_json_stats():
    result = ops.validate_json('{"a": {"b": [1, {"c": 2}]}}', format_output=False)
    assert result["valid"] is True
    assert result["output"] == '{"a": {"b": [1, {"c": 2}]}}'
    assert result["stats"] == {"size": 23, "lines": 1, "keys": 3, "depth": 4}


def test_validate_json_sorted_compact():
    result = ops.validate_json('{"b": 1, "a": 2}', format_output=False, sort_keys=True)
    assert result["output"] == '{"a":2,"b":1}'


def test_validate_json_reports_invalid():
    result = ops.validate_json("[1,")
    assert result["valid"] is False
    assert result["error"].startswith("Invalid JSON")


def test_lorem_ipsum_opening_and_shape():
    result = ops.lorem_ipsum(paragraphs=2, words_per_paragraph=8, seed=1)
    paragraphs = result["output"].split("\n\n")
    assert len(paragraphs) == 2
    assert paragraphs[0].startswith("Lorem ipsum dolor sit amet")
    assert all(len(p.split()) == 8 for p in paragraphs)
    assert result == ops.lorem_ipsum(paragraphs=2, words_per_paragraph=8, seed=1)


def test_lorem_ipsum_short_paragraph():
    assert ops.lorem_ipsum(1, 3)["output"] == "Lorem ipsum dolor."


def test_lorem_ipsum_limits():
    with pytest.raises(ValueError, match="Paragraphs must be between 1 and 50"):
        ops.lorem_ipsum(paragraphs=0)


def test_meta_tags_escape_values():
    output = ops.meta_tags({"title": 'A "B" <C>', "image": "https://x.test/i.png"})["output"]
    assert "<title>A &quot;B&quot; &lt;C&gt;</title>" in output
    assert '<meta property="og:type" content="website">' in output
    assert '<meta name="twitter:image" content="https://x.test/i.png">' in output
    assert "description" not in output


def test_regex_test_global_and_highlight():
    result = ops.regex_test(r"\d+", "<a1b22>", "g")
    assert result["count"] == 2
    assert result["matches"][1] == {"match": "22", "index": 4, "groups": []}
    assert result["highlighted"] == "&lt;a<mark>1</mark>b<mark>22</mark>&gt;"


def test_regex_test_first_match_only():
    assert ops.regex_test(r"\d", "1 2 3", "")["count"] == 1


def test_regex_test_bad_pattern():
    with pytest.raises(ValueError, match="Invalid regex pattern"):
        ops.regex_test("(", "x")


def test_replace_text_plain():
    assert ops.replace_text("Cat cat", "cat", "dog")["output"] == "dog dog"
    result = ops.replace_text("Cat cat", "cat", "dog", case_sensitive=True)
    assert result["output"] == "Cat dog"
    assert result["stats"]["replacements"] == 1


def test_replace_text_whole_word_and_backslash():
    assert ops.replace_text("cat catalog", "cat", "dog", whole_word=True)["output"] == "dog catalog"
    assert ops.replace_text("x", "x", "a\\b")["output"] == "a\\b"


def test_replace_text_regex_groups():
    result = ops.replace_text("John Smith", r"(\w+) (\w+)", "$2, $1", use_regex=True)
    assert result["output"] == "Smith, John"


def test_replace_text_first_only():
    assert ops.replace_text("a a a", "a", "b", replace_all=False)["output"] == "b a a"


def test_remove_spaces_defaults_and_all():
    assert ops.remove_spaces("  a \t b  \n c ")["output"] == "a b \n c"
    assert ops.remove_spaces("  a \t b  \n c ", {"remove_all": True})["output"] == "abc"
    with pytest.raises(ValueError, match="Unknown option: nope"):
        ops.remove_spaces("x", {"nope": True})


def test_sort_lines_dedupes_case_insensitively():
    result = ops.sort_lines("b\nA\nc\n\nb", remove_duplicates=True)
    assert result["output"] == "A\nb\nc"
    assert result["stats"] == {"original_lines": 4, "sorted_lines": 3, "duplicates_removed": 1}


def test_sort_lines_numerical_and_length():
    assert ops.sort_lines("item 10\nitem 2\nitem -3", sort_by="numerical")["output"] == "item -3\nitem 2\nitem 10"
    assert ops.sort_lines("aa\na\naaa", sort_by="length", order="descending")["output"] == "aaa\naa\na"


def test_url_encode_options():
    assert ops.url_encode("a b&c")["output"] == "a%20b%26c"
    assert ops.url_encode("a b&c", encode_spaces=False)["output"] == "a b%26c"
    assert ops.url_encode("it's (ok)!", encode_special_chars=False)["output"] == "it's%20(ok)!"


def test_url_decode():
    assert ops.url_encode("a%20b", mode="decode")["output"] == "a b"
    for bad in ("%zz", "%E9"):
        with pytest.raises(ValueError, match="Invalid URL encoding"):
            ops.url_encode(bad, mode="decode")


def test_base64_text_utf8():
    encoded = ops.base64_text("héllo")["output"]
    assert encoded == "aMOpbGxv"
    assert ops.base64_text(encoded, mode="decode")["output"] == "héllo"
    with pytest.raises(ValueError, match="Invalid Base64 string"):
        ops.base64_text("!!!", mode="decode")


def test_minify_css():
    source = "body {\n  color: #ffffff;\n  margin: 0 ;\n}\n/* note */\na { color : #112233 }"
    assert minify.minify_css(source) == "body{color:#fff;margin:0}a{color:#123}"


def test_minify_css_combines_rules():
    out = minify.minify_css("a{color:red}b{x:1}a{margin:0}", {"combine_rules": True})
    assert out == "a{color:red;margin:0}b{x:1}"


def test_minify_html():
    source = "<div>\n  <!-- c -->\n  <p>Hi   there</p>\n</div>"
    assert minify.minify_html(source) == "<div><p>Hi there</p></div>"


def test_minify_js_with_numbers():
    source = "// c\nvar x = 1.0;  /* b */\nif (x > 0.5) { y = x; }"
    assert minify.minify_js(source, {"compress_numbers": True}) == "var x=1;if(x>.5){y=x;}"


def test_minify_stats_and_errors():
    result = minify.minify("css", "a { }")
    assert result["output"] == "a{}"
    assert result["stats"]["saved_bytes"] == 2
    with pytest.raises(ValueError, match="Please enter some code"):
        minify.minify("css", "")
    with pytest.raises(ValueError, match="Unknown option"):
        minify.minify("js", "x", {"mangle": True})
