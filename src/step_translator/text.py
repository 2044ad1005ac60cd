"""String escaping and naming helpers shared by the script generators."""

import re

# Bindings every generated browser script already declares
RESERVED_BINDINGS = frozenset({"page", "expect", "test", "request", "findInFrame"})

JS_KEYWORDS = frozenset({
    "await", "break", "case", "catch", "class", "const", "continue", "debugger",
    "default", "delete", "do", "else", "enum", "export", "extends", "false",
    "finally", "for", "function", "if", "import", "in", "instanceof", "let",
    "new", "null", "return", "super", "switch", "this", "throw", "true", "try",
    "typeof", "var", "void", "while", "with", "yield",
})

_LEADING_VERBS = re.compile(
    r"^(Click on|Type text on|Hover over|Select option on|Assert|Test)\s*",
    re.IGNORECASE,
)


def escape_string(value: str | None) -> str:
    """Escape a value for a double-quoted TypeScript string."""
    if not value:
        return ""
    return (
        value.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\n", "\\n")
        .replace("\r", "\\r")
        .replace("\t", "\\t")
    )


def escape_template_literal(value: str | None) -> str:
    """Escape a value for a TypeScript template literal."""
    if not value:
        return ""
    return value.replace("\\", "\\\\").replace("`", "\\`").replace("${", "\\${")


def escape_regex(value: str | None) -> str:
    """Escape a value for the body of a JavaScript regex literal."""
    if not value:
        return ""
    return re.sub(r"([.*+?^${}()|\[\]\\/])", r"\\\1", value)


def regex_literal(pattern: str) -> str:
    """Wrap a user supplied pattern in a JavaScript regex literal."""
    return "/" + re.sub(r"(?<!\\)/", r"\\/", pattern) + "/"


def sanitize_filename(name: str) -> str:
    """Turn a test name into a lower-case file stem."""
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")
    return slug[:50] or "test"


def element_var_name(step_name: str) -> str:
    """
    Derive a camelCase variable name from a step name.

    'Click on div "Recent Reports..."' -> 'divRecentReports'
    """
    cleaned = _LEADING_VERBS.sub("", step_name)
    cleaned = cleaned.replace('"', "").replace("'", "").replace("...", "")
    cleaned = re.sub(r"[^a-zA-Z0-9_\s]", " ", cleaned).strip()

    words = cleaned.split()[:4]
    if not words:
        return "element"

    name = words[0].lower() + "".join(w.lower().capitalize() for w in words[1:])
    if name[0].isdigit():
        name = f"element{name[0].upper()}{name[1:]}"
    if name in JS_KEYWORDS or name in RESERVED_BINDINGS:
        name = f"{name}Element"
    return name


def unique_name(base: str, used: set[str]) -> str:
    """Return base, or base2, base3... whichever is not in used yet."""
    name = base
    counter = 2
    while name in used:
        name = f"{base}{counter}"
        counter += 1
    used.add(name)
    return name
