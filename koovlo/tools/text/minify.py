"""Regex minifiers for CSS, HTML and JavaScript."""
import re
from typing import Dict, Mapping, Optional

CSS_OPTIONS = {"remove_comments": True, "remove_whitespace": True, "shorten_colors": True, "combine_rules": False}
HTML_OPTIONS = {
    "remove_comments": True,
    "remove_whitespace": True,
    "collapse_whitespace": True,
    "remove_empty_attributes": False,
    "remove_optional_tags": False,
}
JS_OPTIONS = {"remove_comments": True, "remove_whitespace": True, "shorten_names": False, "compress_numbers": False}

# (pattern, replacement) applied in order
_CSS_WHITESPACE = (
    (r"\s+", " "),
    (r"\s*{\s*", "{"),
    (r"\s*}\s*", "}"),
    (r"\s*;\s*", ";"),
    (r"\s*:\s*", ":"),
    (r";\s*}", "}"),
    (r",\s*", ","),
)
_JS_PUNCTUATION = "{}()[];,:+-*/=<>!?"


def _options(defaults: Mapping[str, bool], given: Optional[Mapping]) -> Dict[str, bool]:
    merged = dict(defaults)
    for key, value in (given or {}).items():
        if key not in defaults:
            raise ValueError(f"Unknown option: {key}")
        merged[key] = bool(value)
    return merged


def stats(original: str, minified: str) -> Dict[str, object]:
    saved = len(original) - len(minified)
    return {
        "original_size": len(original),
        "minified_size": len(minified),
        "saved_bytes": saved,
        "saved_percent": round(saved / len(original) * 100, 2) if original else 0,
    }


def _combine_rules(css: str) -> str:
    rules: Dict[str, list] = {}
    for block in css.split("}"):
        if not block.strip():
            continue
        parts = block.split("{")
        if len(parts) == 2:
            rules.setdefault(parts[0].strip(), []).append(parts[1].strip())
    return "".join(f"{selector}{{{';'.join(decls)}}}" for selector, decls in rules.items())


def minify_css(css: str, options: Optional[Mapping] = None) -> str:
    opts = _options(CSS_OPTIONS, options)
    if opts["remove_comments"]:
        css = re.sub(r"/\*[\s\S]*?\*/", "", css)
    if opts["remove_whitespace"]:
        for pattern, repl in _CSS_WHITESPACE:
            css = re.sub(pattern, repl, css)
        css = css.strip()
    if opts["shorten_colors"]:
        # #aabbcc -> #abc, only when followed by a non-hex character
        css = re.sub(r"#([0-9a-fA-F])\1([0-9a-fA-F])\2([0-9a-fA-F])\3(?![0-9a-fA-F])", r"#\1\2\3", css)
    if opts["combine_rules"]:
        css = _combine_rules(css)
    return css


def minify_html(html: str, options: Optional[Mapping] = None) -> str:
    opts = _options(HTML_OPTIONS, options)
    if opts["remove_comments"]:
        html = re.sub(r"<!--[\s\S]*?-->", "", html)
    if opts["remove_whitespace"]:
        html = re.sub(r">\s+<", "><", html)
    if opts["collapse_whitespace"]:
        html = re.sub(r"\s+", " ", html)
        html = re.sub(r">\s", ">", html)
        html = re.sub(r"\s<", "<", html)
    if opts["remove_empty_attributes"]:
        html = re.sub(r"\s+\w+=\"\"", "", html)
        html = re.sub(r"\s+\w+=''", "", html)
    if opts["remove_optional_tags"]:
        html = re.sub(r"</html>|</head>|</body>|</p>|</li>|</dt>|</dd>", "", html, flags=re.IGNORECASE)
    return html.strip()


def minify_js(js: str, options: Optional[Mapping] = None) -> str:
    opts = _options(JS_OPTIONS, options)
    if opts["remove_comments"]:
        js = re.sub(r"//.*$", "", js, flags=re.MULTILINE)
        js = re.sub(r"/\*[\s\S]*?\*/", "", js)
    if opts["remove_whitespace"]:
        js = re.sub(r"\s+", " ", js)
        js = re.sub(r"\s*([" + re.escape(_JS_PUNCTUATION) + r"])\s*", r"\1", js)
        js = js.strip()
    if opts["compress_numbers"]:
        js = re.sub(r"(\d)\.0+(?![\d.])", r"\1", js)
        js = re.sub(r"(?<![\w.])0\.(\d+)", r".\1", js)
    if opts["shorten_names"]:
        js = re.sub(r"\s+", " ", js).strip()
    return js


MINIFIERS = {"css": minify_css, "html": minify_html, "js": minify_js}


def minify(kind: str, text: str, options: Optional[Mapping] = None) -> Dict[str, object]:
    if not text:
        raise ValueError("Please enter some code to minify")
    output = MINIFIERS[kind](text, options)
    return {"output": output, "stats": stats(text, output)}
