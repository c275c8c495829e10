"""
Fetch roster inputs from public share links.

Each input kind has its own accepted file types: clients, workers and tasks
are tables, rules must be JSON. A fetched file is saved as `<kind><ext>`
(`tasks.xlsx`, `rules.json`) so the loader sees the same names it would get
from local files. Downloads are streamed and capped at MAX_REMOTE_FILE_MB.
"""

from __future__ import annotations

import io
import re
import zipfile
from collections.abc import Callable
from pathlib import Path
from typing import Any
from urllib.parse import ParseResult, parse_qs, urlencode, urlparse, urlunparse

import requests

MAX_REMOTE_FILE_MB = 25
MAX_REMOTE_FILE_BYTES = MAX_REMOTE_FILE_MB * 1024 * 1024
REQUEST_TIMEOUT_SECONDS = 60
SNIFF_BYTES = 4096

TABLE_EXTS = (".csv", ".tsv", ".txt", ".xlsx", ".xlsm")
INPUT_EXTS = {
    "clients": TABLE_EXTS,
    "workers": TABLE_EXTS,
    "tasks": TABLE_EXTS,
    "rules": (".json",),
}

MEDIA_TYPE_EXTS = {
    "text/csv": ".csv",
    "text/tab-separated-values": ".tsv",
    "application/json": ".json",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": ".xlsx",
    "application/vnd.ms-excel.sheet.macroenabled.12": ".xlsm",
}


def is_remote(source: str | Path | None) -> bool:
    if source is None:
        return False
    return urlparse(str(source)).scheme in {"http", "https"}


def _with_query(parsed: ParseResult, **params: str) -> str:
    query = parse_qs(parsed.query, keep_blank_values=True)
    query.update({key: [value] for key, value in params.items()})
    return urlunparse(parsed._replace(query=urlencode(query, doseq=True)))


def _github_raw(parsed: ParseResult) -> str | None:
    parts = parsed.path.strip("/").split("/")
    if len(parts) < 5 or parts[2] != "blob":
        return None
    owner, repo, _, *ref_and_path = parts
    return f"https://raw.githubusercontent.com/{owner}/{repo}/{'/'.join(ref_and_path)}"


def _google_export(parsed: ParseResult) -> str | None:
    # Sheets export the linked tab as CSV; one tab is one roster table.
    sheet = re.search(r"/spreadsheets/d/([^/]+)", parsed.path)
    if sheet:
        gid = parse_qs(parsed.query).get("gid", ["0"])[0]
        return f"https://docs.google.com/spreadsheets/d/{sheet.group(1)}/export?format=csv&gid={gid}"
    drive_file = re.search(r"/file/d/([^/]+)", parsed.path)
    file_id = drive_file.group(1) if drive_file else parse_qs(parsed.query).get("id", [None])[0]
    if file_id:
        return f"https://drive.google.com/uc?export=download&id={file_id}"
    return None


SHARE_LINK_REWRITES: list[tuple[Callable[[str], bool], Callable[[ParseResult], str | None]]] = [
    (lambda host: host == "github.com", _github_raw),
    (lambda host: host in {"docs.google.com", "drive.google.com"}, _google_export),
    (lambda host: host.endswith("dropbox.com"), lambda parsed: _with_query(parsed, dl="1")),
    (lambda host: host.endswith("1drv.ms") or host.endswith("onedrive.live.com"), lambda parsed: _with_query(parsed, download="1")),
]


def direct_download_url(raw_url: str) -> str:
    """Rewrite a share page link to the URL that serves the file itself."""
    parsed = urlparse(raw_url.strip())
    if parsed.scheme not in {"http", "https"}:
        raise ValueError("URL must start with http:// or https://")
    host = parsed.netloc.lower()
    for matches, rewrite in SHARE_LINK_REWRITES:
        if matches(host):
            rewritten = rewrite(parsed)
            if rewritten:
                return rewritten
    return urlunparse(parsed)


def _too_large() -> ValueError:
    return ValueError(f"Remote file is larger than {MAX_REMOTE_FILE_MB} MB.")


def _declared_size(headers: Any) -> int | None:
    try:
        return int(headers.get("Content-Length", ""))
    except ValueError:
        return None


def download(url: str) -> tuple[bytes, str, str]:
    """Return (body, media type, final URL after redirects)."""
    with requests.get(url, stream=True, timeout=REQUEST_TIMEOUT_SECONDS, allow_redirects=True) as response:
        response.raise_for_status()
        declared = _declared_size(response.headers)
        if declared is not None and declared > MAX_REMOTE_FILE_BYTES:
            raise _too_large()
        body = bytearray()
        for chunk in response.iter_content(chunk_size=64 * 1024):
            body.extend(chunk)
            if len(body) > MAX_REMOTE_FILE_BYTES:
                raise _too_large()
        media_type = response.headers.get("content-type", "").split(";")[0].strip().lower()
        final_url = response.url or url
    return bytes(body), media_type, final_url


def sniff_extension(body: bytes) -> str:
    if body.startswith(b"PK"):
        try:
            with zipfile.ZipFile(io.BytesIO(body)) as archive:
                names = set(archive.namelist())
        except zipfile.BadZipFile:
            return ""
        if "xl/vbaProject.bin" in names:
            return ".xlsm"
        return ".xlsx" if "xl/workbook.xml" in names else ""
    head = body[:SNIFF_BYTES].decode("utf-8", errors="replace").lstrip("\ufeff \t\r\n")
    if not head:
        return ""
    if head.startswith(("{", "[")):
        return ".json"
    return ".tsv" if "\t" in head.splitlines()[0] else ".csv"


def resolve_extension(kind: str, urls: list[str], media_type: str, body: bytes) -> str:
    """First extension that the input kind accepts: URL suffix, then media type, then content."""
    allowed = INPUT_EXTS[kind]
    candidates = [Path(urlparse(url).path).suffix.lower() for url in urls]
    candidates.append(MEDIA_TYPE_EXTS.get(media_type, ""))
    candidates.append(sniff_extension(body))
    for candidate in candidates:
        if candidate in allowed:
            return candidate
    raise ValueError(f"The {kind} link did not return a supported file ({', '.join(allowed)})")


def fetch_input(kind: str, raw_url: str, folder: Path) -> dict[str, Any]:
    """Download one roster input into folder; returns {"kind", "url", "path", "bytes"}."""
    if kind not in INPUT_EXTS:
        raise ValueError(f"Unknown input kind: {kind}")
    url = direct_download_url(raw_url)
    body, media_type, final_url = download(url)
    ext = resolve_extension(kind, [final_url, url], media_type, body)
    target = Path(folder) / f"{kind}{ext}"
    target.write_bytes(body)
    return {"kind": kind, "url": url, "path": target, "bytes": len(body)}
