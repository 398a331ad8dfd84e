import re

_NBSP = "\u00a0"
_THIN = "\u2009"
_NNBSP = "\u202f"

_RE_SOFT_HYPHEN = re.compile("\u00ad")
_RE_ZERO_WIDTH = re.compile("[\u200b\u200c\u200d\ufeff]")
_RE_SPECIAL_SPACES = re.compile("[{}]".format(re.escape(_NBSP + _THIN + _NNBSP)))
_RE_CRLF = re.compile(r"\r\n?")

# end-of-line hyphenation join: "Thiruvanantha-\n puram" -> "Thiruvananthapuram"
_RE_EOL_HYPH = re.compile(r"(?<=[a-z])-[ \t]*\n[ \t]*(?=[a-z])")


def normalize_text(text: str) -> str:
    """
    Make extracted text safe for line-oriented scanning: unify newlines,
    replace exotic spaces, drop soft hyphens and zero-width characters.
    Line structure is preserved.
    """
    if not text:
        return text
    s = _RE_CRLF.sub("\n", text)
    s = _RE_SOFT_HYPHEN.sub("", s)
    s = _RE_ZERO_WIDTH.sub("", s)
    s = _RE_SPECIAL_SPACES.sub(" ", s)
    return s


def normalize_hyphenation(text: str) -> str:
    # Only lowercase-to-lowercase joins; "B.Tech -\n Civil" stays untouched
    if not text:
        return text
    return _RE_EOL_HYPH.sub("", normalize_text(text))
