import nh3

ALLOWED_TAGS = {
    "p", "br", "b", "i", "em", "strong",
    "ul", "ol", "li", "a", "span", "div",
}
ALLOWED_ATTRIBUTES = {"a": {"href", "target"}}
# dropped together with their content
STRIPPED_CONTENT_TAGS = {"script", "style"}


def sanitize(html: str) -> str:
    """Clean product description HTML down to a small formatting whitelist."""
    if not html:
        return ""
    return nh3.clean(
        str(html),
        tags=ALLOWED_TAGS,
        attributes=ALLOWED_ATTRIBUTES,
        clean_content_tags=STRIPPED_CONTENT_TAGS,
    )
