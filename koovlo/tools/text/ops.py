"""
Text and web utilities. Every function takes plain strings/options and
returns a JSON-ready dict; bad input raises ValueError.
"""
import base64
import binascii
import html
import json
import random
import re
from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import quote, unquote

CASES = (
    "uppercase", "lowercase", "titlecase", "sentencecase", "camelcase",
    "snakecase", "kebabcase", "alternating", "inverse",
)

LOREM_WORDS = (
    "lorem", "ipsum", "dolor", "sit", "amet", "consectetur", "adipiscing", "elit",
    "sed", "do", "eiusmod", "tempor", "incididunt", "ut", "labore", "et", "dolore",
    "magna", "aliqua", "enim", "ad", "minim", "veniam", "quis", "nostrud",
    "exercitation", "ullamco", "laboris", "nisi", "aliquip", "ex", "ea", "commodo",
    "consequat", "duis", "aute", "irure", "reprehenderit", "voluptate", "velit",
    "esse", "cillum", "fugiat", "nulla", "pariatur", "excepteur", "sint", "occaecat",
    "cupidatat", "non", "proident", "sunt", "culpa", "qui", "officia", "deserunt",
    "mollit", "anim", "id", "est", "laborum",
)
LOREM_OPENING = ("lorem", "ipsum", "dolor", "sit", "amet")

REGEX_FLAGS = {"i": re.IGNORECASE, "m": re.MULTILINE, "s": re.DOTALL}

SPACE_OPTIONS = {
    "remove_all": False,
    "leading_trailing": True,
    "extra_spaces": True,
    "tabs": True,
    "newlines": False,
}

SORT_KEYS = ("alphabetical", "length", "numerical")


def require_text(text: Optional[str], message: str = "Please enter some text") -> str:
    if text is None or not str(text).strip():
        raise ValueError(message)
    return str(text)


# ------------------ Case & counting ------------------

def _split_words(text: str) -> List[str]:
    spaced = re.sub(r"\W+", " ", text)
    return [w.lower() for w in re.split(r" |\B(?=[A-Z])", spaced) if w]


def convert_case(text: str, case: str) -> str:
    if case == "uppercase":
        return text.upper()
    if case == "lowercase":
        return text.lower()
    if case == "titlecase":
        return re.sub(r"\w\S*", lambda m: m.group(0)[0].upper() + m.group(0)[1:].lower(), text)
    if case == "sentencecase":
        return text[:1].upper() + text[1:].lower()
    if case == "camelcase":
        return re.sub(r"[^a-zA-Z0-9]+(.)", lambda m: m.group(1).upper(), text.lower())
    if case == "snakecase":
        return "_".join(_split_words(text))
    if case == "kebabcase":
        return "-".join(_split_words(text))
    if case == "alternating":
        return "".join(c.upper() if i % 2 == 0 else c.lower() for i, c in enumerate(text))
    if case == "inverse":
        return "".join(c.lower() if c == c.upper() else c.upper() for c in text)
    raise ValueError(f"Unknown case: {case}")


def text_stats(text: str) -> Dict[str, int]:
    text = text or ""
    return {
        "characters": len(text),
        "characters_no_spaces": len(re.sub(r"\s", "", text)),
        "words": len(text.split()),
        "sentences": len([s for s in re.split(r"[.!?]+", text) if s.strip()]),
        "paragraphs": len([p for p in re.split(r"\n\s*\n", text) if p.strip()]),
        "lines": len(text.split("\n")) if text else 0,
    }


def word_stats(text: str) -> Dict[str, Any]:
    """text_stats plus reading (200 wpm) and speaking (150 wpm) minutes."""
    result: Dict[str, Any] = text_stats(text)
    result["reading_time"] = round(max(0.1, result["words"] / 200), 1)
    result["speaking_time"] = round(max(0.1, result["words"] / 150), 1)
    return result


# ------------------ JSON ------------------

def _reject_constant(name):
    raise ValueError(f"{name} is not valid JSON")


def parse_json(text: str) -> Any:
    try:
        return json.loads(text, parse_constant=_reject_constant)
    except ValueError as ve:
        raise ValueError(f"Invalid JSON: {ve}")


def _indent(indent) -> Any:
    if indent in ("tab", "\t"):
        return "\t"
    try:
        size = int(indent)
    except (TypeError, ValueError):
        raise ValueError("Indent must be 2, 4 or tab")
    if size < 0 or size > 8:
        raise ValueError("Indent must be 2, 4 or tab")
    return size


def format_json(text: str, indent=2, mode: str = "format") -> Dict[str, Any]:
    require_text(text, "Please enter some JSON")
    parsed = parse_json(text)
    if mode == "format":
        output = json.dumps(parsed, indent=_indent(indent), ensure_ascii=False)
    elif mode == "minify":
        output = json.dumps(parsed, separators=(",", ":"), ensure_ascii=False)
    elif mode == "validate":
        output = text
    else:
        raise ValueError(f"Unknown mode: {mode}")
    return {"output": output, "valid": True}


def count_keys(value: Any) -> int:
    if isinstance(value, list):
        return sum(count_keys(item) for item in value)
    if isinstance(value, dict):
        return len(value) + sum(count_keys(v) for v in value.values())
    return 0


def json_depth(value: Any, current: int = 0) -> int:
    if isinstance(value, (list, dict)):
        children = value.values() if isinstance(value, dict) else value
        depths = [json_depth(child, current + 1) for child in children]
        return max(depths) if depths else current + 1
    return current


def validate_json(text: str, format_output: bool = True, compact_output: bool = False,
                  sort_keys: bool = False) -> Dict[str, Any]:
    require_text(text, "Please enter some JSON")
    try:
        parsed = parse_json(text)
    except ValueError as ve:
        return {
            "valid": False,
            "error": str(ve),
            "output": "",
            "stats": {"size": 0, "lines": 0, "keys": 0, "depth": 0},
        }

    if format_output:
        output = json.dumps(parsed, indent=2, sort_keys=sort_keys, ensure_ascii=False)
    elif compact_output or sort_keys:
        output = json.dumps(parsed, separators=(",", ":"), sort_keys=sort_keys, ensure_ascii=False)
    else:
        output = text
    compact = json.dumps(parsed, separators=(",", ":"), ensure_ascii=False)
    return {
        "valid": True,
        "error": "",
        "output": output,
        "stats": {
            "size": len(compact),
            "lines": len(output.split("\n")),
            "keys": count_keys(parsed),
            "depth": json_depth(parsed),
        },
    }


# ------------------ Generators ------------------

def lorem_ipsum(paragraphs=3, words_per_paragraph=50, start_with_lorem: bool = True,
                seed=None) -> Dict[str, Any]:
    try:
        paragraphs, words_per_paragraph = int(paragraphs), int(words_per_paragraph)
    except (TypeError, ValueError):
        raise ValueError("Please enter valid numbers")
    if not 1 <= paragraphs <= 50:
        raise ValueError("Paragraphs must be between 1 and 50")
    if not 1 <= words_per_paragraph <= 500:
        raise ValueError("Words per paragraph must be between 1 and 500")

    rng = random.Random(seed)
    result = []
    for p in range(paragraphs):
        words = [rng.choice(LOREM_WORDS) for _ in range(words_per_paragraph)]
        if p == 0 and start_with_lorem:
            opening = LOREM_OPENING[:words_per_paragraph]
            words[:len(opening)] = opening
        words[0] = words[0].capitalize()
        result.append(" ".join(words) + ".")
    output = "\n\n".join(result)
    return {"output": output, "stats": {"paragraphs": paragraphs, "words": paragraphs * words_per_paragraph}}


def meta_tags(fields: Mapping[str, Any]) -> Dict[str, Any]:
    def val(key, default=""):
        return html.escape(str(fields.get(key) or default).strip(), quote=True)

    title, description = val("title"), val("description")
    keywords, author = val("keywords"), val("author")
    url, image, site_name = val("url"), val("image"), val("site_name")
    og_type = val("type", "website")
    card = val("twitter_card", "summary_large_image")

    tags = []
    if title:
        tags.append(f"<title>{title}</title>")
        tags.append(f'<meta name="title" content="{title}">')
    if description:
        tags.append(f'<meta name="description" content="{description}">')
    if keywords:
        tags.append(f'<meta name="keywords" content="{keywords}">')
    if author:
        tags.append(f'<meta name="author" content="{author}">')

    if title:
        tags.append(f'<meta property="og:title" content="{title}">')
    if description:
        tags.append(f'<meta property="og:description" content="{description}">')
    if url:
        tags.append(f'<meta property="og:url" content="{url}">')
    if image:
        tags.append(f'<meta property="og:image" content="{image}">')
    if site_name:
        tags.append(f'<meta property="og:site_name" content="{site_name}">')
    tags.append(f'<meta property="og:type" content="{og_type}">')

    tags.append(f'<meta name="twitter:card" content="{card}">')
    if title:
        tags.append(f'<meta name="twitter:title" content="{title}">')
    if description:
        tags.append(f'<meta name="twitter:description" content="{description}">')
    if image:
        tags.append(f'<meta name="twitter:image" content="{image}">')

    tags.append('<meta name="viewport" content="width=device-width, initial-scale=1.0">')
    tags.append('<meta charset="UTF-8">')
    tags.append('<meta name="robots" content="index, follow">')
    return {"output": "\n".join(tags)}


# ------------------ Regex & replace ------------------

def compile_flags(flags: str) -> int:
    value = 0
    for flag in flags or "":
        if flag == "g":
            continue
        if flag not in REGEX_FLAGS:
            raise ValueError(f"Unknown regex flag: {flag}")
        value |= REGEX_FLAGS[flag]
    return value


def regex_test(pattern: str, text: str, flags: str = "g") -> Dict[str, Any]:
    """Matches plus the text with each match wrapped in <mark>, everything escaped."""
    text = text or ""
    if not pattern:
        return {"matches": [], "count": 0, "highlighted": html.escape(text)}
    try:
        regex = re.compile(pattern, compile_flags(flags))
    except re.error as ex:
        raise ValueError(f"Invalid regex pattern: {ex}")

    found = list(regex.finditer(text))
    if "g" not in (flags or ""):
        found = found[:1]

    matches = [{"match": m.group(0), "index": m.start(), "groups": list(m.groups())} for m in found]
    pieces = []
    cursor = 0
    for m in found:
        pieces.append(html.escape(text[cursor:m.start()]))
        pieces.append(f"<mark>{html.escape(m.group(0))}</mark>")
        cursor = m.end()
    pieces.append(html.escape(text[cursor:]))
    return {"matches": matches, "count": len(matches), "highlighted": "".join(pieces)}


def _python_template(replacement: str) -> str:
    """`$1` / `$&` style references -> re.sub templates."""
    replacement = replacement.replace("\\", "\\\\")
    replacement = replacement.replace("$&", r"\g<0>")
    return re.sub(r"\$(\d+)", r"\\g<\1>", replacement)


def replace_text(text: str, search: str, replace: str = "", case_sensitive: bool = False,
                 use_regex: bool = False, replace_all: bool = True,
                 whole_word: bool = False) -> Dict[str, Any]:
    require_text(text)
    if not search:
        raise ValueError("Please enter text to search for")
    flags = 0 if case_sensitive else re.IGNORECASE
    try:
        if use_regex:
            regex = re.compile(search, flags)
            template = _python_template(replace or "")
        else:
            escaped = re.escape(search)
            if whole_word:
                escaped = rf"\b{escaped}\b"
            regex = re.compile(escaped, flags)
            template = (replace or "").replace("\\", "\\\\")
        output, count = regex.subn(template, text, count=0 if replace_all else 1)
    except re.error as ex:
        raise ValueError(f"Invalid regex pattern: {ex}")
    return {
        "output": output,
        "stats": {"replacements": count, "original_length": len(text), "new_length": len(output)},
    }


# ------------------ Whitespace & sorting ------------------

def remove_spaces(text: str, options: Optional[Mapping] = None) -> Dict[str, Any]:
    require_text(text)
    opts = dict(SPACE_OPTIONS)
    for key, value in (options or {}).items():
        if key not in SPACE_OPTIONS:
            raise ValueError(f"Unknown option: {key}")
        opts[key] = bool(value)

    output = text
    if opts["remove_all"]:
        output = re.sub(r"\s", "", output)
    else:
        if opts["leading_trailing"]:
            output = output.strip()
        if opts["extra_spaces"]:
            output = re.sub(r"[ \t]+", " ", output)
        if opts["tabs"]:
            output = output.replace("\t", " ")
        if opts["newlines"]:
            output = output.replace("\n", " ")
    return {
        "output": output,
        "stats": {
            "original_length": len(text),
            "new_length": len(output),
            "spaces_removed": len(text) - len(output),
        },
    }


def _number_in(line: str) -> float:
    digits = re.sub(r"[^\d.-]", "", line)
    match = re.match(r"-?\d*\.?\d+", digits)
    return float(match.group(0)) if match else 0.0


def sort_lines(text: str, sort_by: str = "alphabetical", order: str = "ascending",
               case_sensitive: bool = False, remove_duplicates: bool = False,
               ignore_empty_lines: bool = True) -> Dict[str, Any]:
    require_text(text)
    if sort_by not in SORT_KEYS:
        raise ValueError(f"Unknown sort: {sort_by}")
    if order not in ("ascending", "descending"):
        raise ValueError(f"Unknown order: {order}")

    lines = text.split("\n")
    if ignore_empty_lines:
        lines = [line for line in lines if line.strip()]
    original = len(lines)
    if remove_duplicates:
        lines = list(dict.fromkeys(lines))

    if sort_by == "alphabetical":
        key = (lambda s: s) if case_sensitive else str.casefold
    elif sort_by == "length":
        key = len
    else:
        key = _number_in
    lines.sort(key=key, reverse=order == "descending")
    return {
        "output": "\n".join(lines),
        "stats": {
            "original_lines": original,
            "sorted_lines": len(lines),
            "duplicates_removed": original - len(lines),
        },
    }


# ------------------ Encoders ------------------

def url_encode(text: str, mode: str = "encode", encode_spaces: bool = True,
               encode_special_chars: bool = True) -> Dict[str, Any]:
    if not text:
        raise ValueError("Please enter some text")
    if mode == "encode":
        safe = "-_.~" if encode_special_chars else "-_.!~*'()"
        output = quote(text, safe=safe)
        if not encode_spaces:
            output = output.replace("%20", " ")
    elif mode == "decode":
        if re.search(r"%(?![0-9A-Fa-f]{2})", text):
            raise ValueError("Invalid URL encoding. Please check your input.")
        try:
            output = unquote(text, errors="strict")
        except UnicodeDecodeError:
            raise ValueError("Invalid URL encoding. Please check your input.")
    else:
        raise ValueError(f"Unknown mode: {mode}")
    change = (len(output) - len(text)) / len(text) * 100
    return {
        "output": output,
        "stats": {"original_length": len(text), "new_length": len(output), "change_percent": round(change, 2)},
    }


def base64_text(text: str, mode: str = "encode") -> Dict[str, Any]:
    if not text:
        raise ValueError("Please enter some text")
    if mode == "encode":
        return {"output": base64.b64encode(text.encode("utf-8")).decode("ascii")}
    if mode == "decode":
        try:
            raw = base64.b64decode(re.sub(r"\s", "", text), validate=True)
            return {"output": raw.decode("utf-8")}
        except (binascii.Error, UnicodeDecodeError):
            raise ValueError("Invalid Base64 string")
    raise ValueError(f"Unknown mode: {mode}")
