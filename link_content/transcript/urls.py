"""URL predicates used for provider selection and resource keys."""

from __future__ import annotations

import re
from urllib.parse import parse_qs, urljoin, urlsplit

from bs4 import BeautifulSoup


_YOUTUBE_HOST_RE = re.compile(r"youtube(?:-nocookie)?\.com|youtu\.be", re.IGNORECASE)
_VIDEO_ID_RE = re.compile(r"^[A-Za-z0-9_-]{6,}$")
_EMBED_PATH_RE = re.compile(r"^/(?:embed|shorts|live|v)/([^/?#]+)")
_DIRECT_MEDIA_RE = re.compile(
    r"\.(?:mp3|m4a|aac|wav|flac|ogg|oga|opus|mp4|m4v|mov|webm|mkv)(?:$|[?#])",
    re.IGNORECASE,
)


def is_youtube_url(url: str) -> bool:
    try:
        host = (urlsplit(url).hostname or "").lower()
    except ValueError:
        host = ""
    if host:
        return bool(_YOUTUBE_HOST_RE.search(host))
    return bool(_YOUTUBE_HOST_RE.search(url))


def extract_youtube_video_id(url: str) -> str | None:
    """Return the video id of a YouTube watch/short/embed URL, or None.

    Examples:
        >>> extract_youtube_video_id("https://youtu.be/dQw4w9WgXcQ")
        'dQw4w9WgXcQ'
        >>> extract_youtube_video_id("https://www.youtube.com/watch?v=dQw4w9WgXcQ&t=3")
        'dQw4w9WgXcQ'
    """
    try:
        parts = urlsplit(url.strip())
    except ValueError:
        return None
    host = (parts.hostname or "").lower()
    candidate: str | None = None
    if host == "youtu.be" or host.endswith(".youtu.be"):
        candidate = parts.path.lstrip("/").split("/")[0] or None
    elif "youtube.com" in host or "youtube-nocookie.com" in host:
        if parts.path.startswith("/watch"):
            candidate = (parse_qs(parts.query).get("v") or [None])[0]
        else:
            match = _EMBED_PATH_RE.match(parts.path)
            candidate = match.group(1) if match else None
    if candidate and _VIDEO_ID_RE.match(candidate):
        return candidate
    return None


def is_direct_media_url(url: str) -> bool:
    try:
        path = urlsplit(url).path
    except ValueError:
        path = url
    return bool(_DIRECT_MEDIA_RE.search(path))


def extract_embedded_youtube_url_from_html(html: str, base_url: str | None = None) -> str | None:
    """Find the first YouTube video embedded in a page and return its watch URL.

    Looks at iframes first, then Open Graph video tags.
    """
    try:
        soup = BeautifulSoup(html, "html.parser")
    except Exception:  # noqa: BLE001
        return None

    candidates: list[str] = []
    for iframe in soup.find_all("iframe"):
        src = iframe.get("src") or iframe.get("data-src")
        if isinstance(src, str):
            candidates.append(src)
    for key in ("og:video", "og:video:url", "og:video:secure_url", "twitter:player"):
        tag = soup.find("meta", attrs={"property": key}) or soup.find("meta", attrs={"name": key})
        content = tag.get("content") if tag else None
        if isinstance(content, str):
            candidates.append(content)

    for candidate in candidates:
        absolute = candidate.strip()
        if absolute.startswith("//"):
            absolute = f"https:{absolute}"
        elif base_url:
            absolute = urljoin(base_url, absolute)
        if not is_youtube_url(absolute):
            continue
        video_id = extract_youtube_video_id(absolute)
        if video_id:
            return f"https://www.youtube.com/watch?v={video_id}"
    return None
