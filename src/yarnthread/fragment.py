"""
Yarn - Share links and URL fragments.

The fragment is the only state-transfer channel. Capsule text is placed
after '#'. Characters a fragment may carry literally (RFC 3986 pchar, '/'
and '?') are left alone, which covers both base64 alphabets and ':'.
Anything else is percent-encoded, and reading a fragment back
percent-decodes it.
"""

from urllib.parse import quote, unquote, urldefrag

# RFC 3986 sub-delims plus ':' '@' '/' '?'; unreserved characters are always safe
_FRAGMENT_SAFE = "!$&'()*+,;=:@/?"


def share_url(base_url: str, fragment: str) -> str:
    """Build a share link: base URL (without any fragment) + '#' + fragment."""
    base, _ = urldefrag(base_url)
    return f"{base}#{quote(fragment, safe=_FRAGMENT_SAFE)}"


def fragment_from_url(url_or_fragment: str) -> str:
    """
    Extract and percent-decode the fragment of a URL.

    Accepts a full URL, a bare '#fragment', or the fragment text itself.
    Returns '' when there is no fragment.
    """
    text = url_or_fragment.strip()

    if "#" in text:
        text = text.split("#", 1)[1]
    elif "://" in text:
        return ""

    return unquote(text)
